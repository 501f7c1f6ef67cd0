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

import os
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_CRD_GROUP = "babylontech.co.uk"
DEFAULT_CRD_VERSION = "v1"
DEFAULT_CRD_PLURAL = "shipcatmanifests"
DEFAULT_CRD_KIND = "ShipcatManifest"
DEFAULT_REQUEST_TIMEOUT = int(os.getenv("DEFAULT_REQUEST_TIMEOUT", "30"))

PROJECT_LOG_LEVEL = os.getenv("PROJECT_LOG_LEVEL", "")
ROOT_LOG_LEVEL = os.getenv("ROOT_LOG_LEVEL", "")


class StatusConfig(BaseSettings):
    group: Optional[str] = Field(DEFAULT_CRD_GROUP, description="API group of the manifest custom resource.")
    version: Optional[str] = Field(DEFAULT_CRD_VERSION, description="API version of the manifest custom resource.")
    plural: Optional[str] = Field(DEFAULT_CRD_PLURAL, description="Plural resource name used in API paths.")
    kind: Optional[str] = Field(DEFAULT_CRD_KIND, description="Kind written into applied custom resources.")
    kubeconfig: Optional[str] = Field(
        None, description="Path to the kubeconfig file. Falls back to $KUBECONFIG, then ~/.kube/config."
    )
    context: Optional[str] = Field(None, description="Kubeconfig context to use instead of the current-context.")
    request_timeout: Optional[int] = Field(DEFAULT_REQUEST_TIMEOUT, description="Seconds to wait for the API server.")
    ssl_verify: Optional[bool] = Field(
        True,
        description="Verify the API server certificate. Ignored when the cluster entry sets insecure-skip-tls-verify.",
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "MANIFEST_STATUS_"
        extra = "ignore"

    def api_version(self) -> str:
        return f"{self.group}/{self.version}"

    def resource_path(self, namespace: str, name: Optional[str] = None) -> str:
        path = f"/apis/{self.group}/{self.version}/namespaces/{namespace}/{self.plural}"
        return f"{path}/{name}" if name else path
