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

from typing import Optional


class StatusError(Exception):
    pass


class StoreError(StatusError):
    pass


class StoreUnavailable(StoreError):

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Record store is unavailable: {message}")


class NotFound(StoreError):

    def __init__(self, name: str, namespace: Optional[str] = None):
        self.name = name
        self.namespace = namespace
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"Record '{location}' was not found")


class RemoteRejected(StoreError):

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.reason = reason
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.status_code is None:
            return f"Record store rejected the request: {self.message}"
        return f"Record store rejected the request [{self.status_code} {self.reason or ''}]: {self.message}"


class PreconditionViolated(StatusError):

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)
