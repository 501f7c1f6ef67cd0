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

import logging
import os
from typing import List, Mapping, Optional, Tuple

from manifest_status.models.status import Applier

logger = logging.getLogger(__name__)

UNKNOWN_ORIGIN = "unknown origin"

# (url, job name, build number) variables per CI system, in order of preference
CI_BUILD_VARS: List[Tuple[str, str, str]] = [
    ("BUILD_URL", "JOB_NAME", "BUILD_NUMBER"),  # jenkins
    ("CIRCLE_BUILD_URL", "CIRCLE_JOB", "CIRCLE_BUILD_NUM"),  # circleci
]


def resolve(env: Optional[Mapping[str, str]] = None) -> Applier:
    """Infer who or what is applying from an environment snapshot.

    Never fails. When nothing identifies the originator a placeholder
    identity is returned and a warning is logged.
    """
    env = env if env is not None else os.environ.copy()

    for url_key, job_key, number_key in CI_BUILD_VARS:
        if url_key in env and job_key in env and number_key in env:
            return Applier(name=f"{env[job_key]}#{env[number_key]}", url=env[url_key])

    if "USER" in env:
        return Applier(name=env["USER"], url=None)

    logger.warning("Could not infer applier from this environment")
    return Applier(name=UNKNOWN_ORIGIN, url=None)
