# Copyright contributors to the manifest-status project. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from datetime import datetime, timezone
from typing import Optional

RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def get_timestamp() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def to_rfc3339(dt: Optional[datetime] = None) -> str:
    """Format an instant as RFC3339 in UTC with whole seconds, e.g. 1996-12-19T16:39:57Z."""
    dt = to_utc(dt) if dt else get_timestamp()
    return dt.strftime(RFC3339_FORMAT)
