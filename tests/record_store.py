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
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests

from manifest_status.app.config import StatusConfig
from manifest_status.common.rest_client import MERGE_PATCH, RestClient

SERVER = "https://cluster.test:6443"


def merge_patch(target: Any, patch: Any) -> Any:
    # RFC 7386
    if not isinstance(patch, dict):
        return patch
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result


def build_record(name: str, namespace: str, status: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    config = StatusConfig()
    record = {
        "apiVersion": config.api_version(),
        "kind": config.kind,
        "metadata": {"name": name, "namespace": namespace, "resourceVersion": "1"},
        "spec": {"name": name, "version": "1.0.0"},
    }
    if status is not None:
        record["status"] = status
    return record


def response(status_code: int, body: Any, url: str = SERVER, reason: str = "") -> requests.Response:
    r = requests.Response()
    r.status_code = status_code
    r.reason = reason
    r.url = url
    r._content = json.dumps(body).encode("utf-8")
    return r


def failure(code: int, reason: str, message: str, name: Optional[str] = None) -> Dict[str, Any]:
    status = {"kind": "Status", "apiVersion": "v1", "status": "Failure", "message": message, "reason": reason, "code": code}
    if name:
        status["details"] = {"name": name}
    return status


class RecordStore:
    """In-memory stand-in for the API server's custom resource endpoints."""

    def __init__(self, config: Optional[StatusConfig] = None):
        self.config = config if config else StatusConfig()
        self.records: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.fail_next: Optional[Tuple[int, str, str]] = None

    def add(self, name: str, namespace: str, status: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record = build_record(name, namespace, status)
        self.records[(namespace, name)] = record
        return record

    def status(self, name: str, namespace: str) -> Dict[str, Any]:
        return self.records[(namespace, name)].get("status", {})

    def patches(self) -> List[Dict[str, Any]]:
        return [body for method, _, body in self.calls if method == "PATCH"]

    def _locate(self, path: str) -> Tuple[str, str, bool]:
        prefix = self.config.resource_path("NAMESPACE").split("NAMESPACE")[0]
        assert path.startswith(prefix), path
        parts = path[len(prefix):].split("/")
        namespace, plural, name = parts[0], parts[1], parts[2]
        assert plural == self.config.plural
        return namespace, name, len(parts) > 3 and parts[3] == "status"

    def request(self, method, url, headers=None, data=None, **kwargs) -> requests.Response:
        body = json.loads(data) if data else None
        self.calls.append((method, url, body))
        if self.fail_next:
            code, reason, message = self.fail_next
            self.fail_next = None
            return response(code, failure(code, reason, message), url=url, reason=reason)

        namespace, name, subresource = self._locate(urlparse(url).path)
        record = self.records.get((namespace, name))
        if record is None:
            return response(404, failure(404, "NotFound", f'{self.config.plural} "{name}" not found', name), url=url, reason="Not Found")

        if method == "GET":
            return response(200, record, url=url)
        if method == "PATCH":
            assert subresource
            assert headers["Content-Type"] == MERGE_PATCH
            # the status subresource ignores everything but .status
            record["status"] = merge_patch(record.get("status"), body.get("status"))
            if not record["status"]:
                del record["status"]
            record["metadata"]["resourceVersion"] = str(int(record["metadata"]["resourceVersion"]) + 1)
            return response(200, record, url=url)
        return response(405, failure(405, "MethodNotAllowed", f"{method} is not supported"), url=url)


def install(monkeypatch, store: RecordStore) -> RestClient:
    monkeypatch.setattr(requests, "request", store.request)
    return RestClient(SERVER, headers={"Authorization": "Bearer test"})
