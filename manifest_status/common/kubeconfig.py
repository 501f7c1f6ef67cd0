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

import atexit
import base64
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import yaml
from pydantic import BaseModel, Field

from manifest_status.app.config import StatusConfig
from manifest_status.errors import StoreUnavailable

SERVICE_HOST_ENV = "KUBERNETES_SERVICE_HOST"
SERVICE_PORT_ENV = "KUBERNETES_SERVICE_PORT"
SERVICE_ACCOUNT_DIR = Path(os.getenv("SERVICE_ACCOUNT_DIR", "/var/run/secrets/kubernetes.io/serviceaccount"))
DEFAULT_KUBECONFIG = Path.home() / ".kube" / "config"

logger = logging.getLogger(__name__)

# decoded inline credentials still on disk, removed at exit if nobody cleaned up
_data_files: Set[str] = set()


class KubeConfig(BaseModel):
    server: str = Field(..., description="Base URL of the API server.")
    namespace: Optional[str] = Field(None, description="Default namespace of the selected context.")
    token: Optional[str] = Field(None, description="Bearer token.")
    username: Optional[str] = None
    password: Optional[str] = None
    ca_file: Optional[str] = Field(None, description="Path to the CA bundle for the API server.")
    cert_file: Optional[str] = Field(None, description="Path to the client certificate.")
    key_file: Optional[str] = Field(None, description="Path to the client key.")
    verify: bool = Field(True, description="False when the cluster entry skips TLS verification.")
    data_files: List[str] = Field(default_factory=list, exclude=True, description="Files decoded from inline kubeconfig data.")

    def cleanup(self):
        remove_data_files(self.data_files)
        self.data_files = []

    def headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        if self.username and self.password:
            basic = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
            return {"Authorization": f"Basic {basic}"}
        return {}

    def requests_verify(self, ssl_verify: bool = True) -> Union[bool, str]:
        if not self.verify or not ssl_verify:
            return False
        return self.ca_file if self.ca_file else True

    def requests_cert(self):
        if self.cert_file and self.key_file:
            return (self.cert_file, self.key_file)
        return self.cert_file


def incluster_config(env: Optional[Dict[str, str]] = None, account_dir: Path = SERVICE_ACCOUNT_DIR) -> KubeConfig:
    env = env if env is not None else os.environ.copy()
    host = env.get(SERVICE_HOST_ENV)
    port = env.get(SERVICE_PORT_ENV)
    if not host or not port:
        raise StoreUnavailable(f"{SERVICE_HOST_ENV} and {SERVICE_PORT_ENV} are not set, not running in a cluster")
    if ":" in host:
        host = f"[{host}]"
    token_file = account_dir / "token"
    if not token_file.exists():
        raise StoreUnavailable(f"Service account token {token_file} does not exist")
    ca_file = account_dir / "ca.crt"
    namespace_file = account_dir / "namespace"
    return KubeConfig(
        server=f"https://{host}:{port}",
        token=token_file.read_text().strip(),
        ca_file=ca_file.as_posix() if ca_file.exists() else None,
        namespace=namespace_file.read_text().strip() if namespace_file.exists() else None,
    )


def kubeconfig_path(config: StatusConfig, env: Optional[Dict[str, str]] = None) -> Path:
    env = env if env is not None else os.environ.copy()
    if config.kubeconfig:
        return Path(config.kubeconfig).expanduser()
    if env.get("KUBECONFIG"):
        # only the first file of a merged KUBECONFIG list is read
        return Path(env["KUBECONFIG"].split(os.pathsep)[0]).expanduser()
    return DEFAULT_KUBECONFIG


def _named(entries: List[Dict[str, Any]], name: str, key: str) -> Dict[str, Any]:
    for entry in entries or []:
        if entry.get("name") == name:
            return entry.get(key) or {}
    raise StoreUnavailable(f"No {key} named '{name}' in kubeconfig")


def remove_data_files(paths: List[str]):
    for path in paths:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        _data_files.discard(path)


atexit.register(lambda: remove_data_files(list(_data_files)))


def _data_file(data: str, suffix: str, created: List[str]) -> str:
    try:
        content = base64.b64decode(data)
    except ValueError as e:
        raise StoreUnavailable(f"Invalid base64 data in kubeconfig: {e}") from e
    # NamedTemporaryFile creates the file readable by its owner only
    with tempfile.NamedTemporaryFile(mode="wb", prefix="manifest-status-", suffix=suffix, delete=False) as f:
        _data_files.add(f.name)
        created.append(f.name)
        f.write(content)
        return f.name


def _file_or_data(entry: Dict[str, Any], key: str, base_dir: Path, suffix: str, created: List[str]) -> Optional[str]:
    if entry.get(f"{key}-data"):
        return _data_file(entry[f"{key}-data"], suffix, created)
    if entry.get(key):
        path = Path(entry[key]).expanduser()
        return (path if path.is_absolute() else base_dir / path).as_posix()
    return None


def load_kube_config(path: Path, context: Optional[str] = None) -> KubeConfig:
    if not path.exists():
        raise StoreUnavailable(f"Kubeconfig {path} does not exist")
    try:
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise StoreUnavailable(f"Failed to read kubeconfig {path}: {e}") from e

    context_name = context if context else data.get("current-context")
    if not context_name:
        raise StoreUnavailable(f"Kubeconfig {path} has no current-context")
    ctx = _named(data.get("contexts"), context_name, "context")
    cluster = _named(data.get("clusters"), ctx.get("cluster"), "cluster")
    user = _named(data.get("users"), ctx["user"], "user") if ctx.get("user") else {}

    if not cluster.get("server"):
        raise StoreUnavailable(f"Cluster '{ctx.get('cluster')}' in kubeconfig has no server")

    base_dir = path.parent
    token = user.get("token")
    if not token and user.get("tokenFile"):
        try:
            token = Path(user["tokenFile"]).expanduser().read_text().strip()
        except OSError as e:
            raise StoreUnavailable(f"Failed to read token file: {e}") from e
    if "exec" in user and not token and not user.get("client-certificate-data") and not user.get("client-certificate"):
        raise StoreUnavailable(f"User for context '{context_name}' needs an exec credential plugin, log in first")

    logger.debug(f"Using kubeconfig {path} context {context_name}")
    created: List[str] = []
    try:
        ca_file = _file_or_data(cluster, "certificate-authority", base_dir, ".crt", created)
        cert_file = _file_or_data(user, "client-certificate", base_dir, ".crt", created)
        key_file = _file_or_data(user, "client-key", base_dir, ".key", created)
    except StoreUnavailable:
        remove_data_files(created)
        raise
    return KubeConfig(
        server=cluster["server"].rstrip("/"),
        namespace=ctx.get("namespace"),
        token=token,
        username=user.get("username"),
        password=user.get("password"),
        ca_file=ca_file,
        cert_file=cert_file,
        key_file=key_file,
        verify=not cluster.get("insecure-skip-tls-verify", False),
        data_files=created,
    )


def load_config(config: StatusConfig, env: Optional[Dict[str, str]] = None) -> KubeConfig:
    """In-cluster service account first, kubeconfig otherwise."""
    env = env if env is not None else os.environ.copy()
    try:
        return incluster_config(env)
    except StoreUnavailable as e:
        logger.debug(f"Not using in-cluster config: {e.message}")
    return load_kube_config(kubeconfig_path(config, env), config.context)
