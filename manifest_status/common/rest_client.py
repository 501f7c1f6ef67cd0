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

import json
import logging
from typing import Any, Dict, Optional, Tuple, Union

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from manifest_status.app.config import DEFAULT_REQUEST_TIMEOUT, StatusConfig
from manifest_status.common.kubeconfig import KubeConfig, load_config
from manifest_status.errors import NotFound, RemoteRejected, StoreUnavailable

MERGE_PATCH = "application/merge-patch+json"

logger = logging.getLogger(__name__)


class RestClient:
    def __init__(
        self,
        server: str,
        headers: Optional[Dict[str, str]] = None,
        verify: Union[bool, str] = True,
        cert: Optional[Union[str, Tuple[str, str]]] = None,
        timeout: Optional[int] = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.base_url = server.rstrip("/")
        self.headers = dict(headers) if headers else {}
        self.headers["Accept"] = "application/json"
        self.verify = verify
        self.cert = cert
        self.timeout = timeout
        self.kube_config: Optional[KubeConfig] = None
        if verify is False:
            urllib3.disable_warnings(InsecureRequestWarning)

    @classmethod
    def from_kube_config(cls, kube_config: KubeConfig, ssl_verify: bool = True, timeout: Optional[int] = DEFAULT_REQUEST_TIMEOUT) -> "RestClient":
        client = cls(
            kube_config.server,
            headers=kube_config.headers(),
            verify=kube_config.requests_verify(ssl_verify),
            cert=kube_config.requests_cert(),
            timeout=timeout,
        )
        client.kube_config = kube_config
        return client

    @classmethod
    def from_config(cls, config: StatusConfig) -> "RestClient":
        kube_config = load_config(config)
        return cls.from_kube_config(kube_config, ssl_verify=config.ssl_verify, timeout=config.request_timeout)

    def close(self):
        if self.kube_config:
            self.kube_config.cleanup()

    def url(self, endpoint: str) -> str:
        _endpoint = endpoint.lstrip("/")
        return f"{self.base_url}/{_endpoint}"

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", endpoint, params=params)

    def patch(self, endpoint: str, body: Union[bytes, str], content_type: str = MERGE_PATCH) -> Dict[str, Any]:
        return self.request("PATCH", endpoint, data=body, headers={"Content-Type": content_type})

    def request(self, method: str, endpoint: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> Dict[str, Any]:
        url = self.url(endpoint)
        _headers = dict(self.headers)
        if headers:
            _headers.update(headers)
        try:
            response = requests.request(
                method, url, headers=_headers, verify=self.verify, cert=self.cert, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise StoreUnavailable(f"{method} {url}: {e}") from e
        return self.handle(method, url, response)

    def handle(self, method: str, url: str, response: requests.Response) -> Dict[str, Any]:
        if response.ok:
            try:
                return response.json()
            except ValueError as e:
                logger.warning(f"{method} {url} returned a body that is not JSON")
                raise RemoteRejected(f"response is not JSON: {e}", status_code=response.status_code, reason=response.reason) from e

        # the API server answers errors with a Status object
        try:
            status = response.json()
        except ValueError:
            status = {}
        if not isinstance(status, dict):
            status = {}
        message = status.get("message") or response.text or response.reason
        logger.warning(f"{method} {url} returned {response.status_code}: {message}")
        if response.status_code == 404:
            details = status.get("details") or {}
            raise NotFound(details.get("name") or url.rsplit("/", 1)[-1])
        raise RemoteRejected(message, status_code=response.status_code, reason=status.get("reason") or response.reason)


def dumps(data: Dict[str, Any]) -> bytes:
    return json.dumps(data).encode("utf-8")
