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
import subprocess
from typing import Any, Dict, List, Optional

import yaml

from manifest_status.app.config import StatusConfig
from manifest_status.errors import RemoteRejected, StoreUnavailable
from manifest_status.models.manifest import Manifest

KUBECTL = "kubectl"

logger = logging.getLogger(__name__)


def build_crd(manifest: Manifest, config: StatusConfig) -> Dict[str, Any]:
    return {
        "apiVersion": config.api_version(),
        "kind": config.kind,
        "metadata": {
            "name": manifest.name,
            "namespace": manifest.namespace,
        },
        "spec": manifest.spec(),
    }


def run_cmd(args: List[str], stdin: Optional[str] = None, timeout: Optional[int] = None) -> subprocess.CompletedProcess:
    logger.debug(f"{KUBECTL} {' '.join(args)}")
    try:
        return subprocess.run(
            [KUBECTL] + args,
            input=stdin,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            universal_newlines=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise StoreUnavailable(f"{KUBECTL} not found: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise StoreUnavailable(f"{KUBECTL} timed out after {timeout}s") from e


def apply_crd(manifest: Manifest, config: StatusConfig) -> bool:
    """Apply the manifest custom resource, returning whether it changed."""
    document = yaml.safe_dump(build_crd(manifest, config), default_flow_style=False, sort_keys=False)
    args = ["apply", "-n", manifest.namespace, "-f", "-"]
    if config.kubeconfig:
        args += ["--kubeconfig", config.kubeconfig]
    if config.context:
        args += ["--context", config.context]
    process = run_cmd(args, stdin=document, timeout=config.request_timeout)

    stdout = process.stdout.strip()
    if process.returncode != 0:
        logger.error(f"An error occurred. Return code: {process.returncode}")
        logger.error(process.stderr)
        raise RemoteRejected(process.stderr.strip() or stdout, reason=f"{KUBECTL} exited with {process.returncode}")

    if stdout:
        logger.debug(stdout)
    changed = not stdout.endswith("unchanged")
    logger.info(f"Applied {config.kind} {manifest.namespace}/{manifest.name} (changed={changed})")
    return changed


def apply_manifest(manifest: Manifest, config: StatusConfig) -> bool:
    """Apply a versioned, secret-free manifest as its custom resource."""
    manifest.check_versioned()
    return apply_crd(manifest, config)
