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

import subprocess

import pytest
import yaml

from manifest_status import kubectl
from manifest_status.app.config import StatusConfig
from manifest_status.errors import PreconditionViolated, RemoteRejected, StoreUnavailable
from manifest_status.models.manifest import Manifest, ManifestState
from manifest_status.models.status import Applier
from manifest_status.status_client import StatusClient
from tests import record_store

MANIFEST = Manifest(name="foo", namespace="dev", version="1.2.3", image="quay.io/foo")


class Kubectl:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls = []

    def __call__(self, args, input=None, **kwargs):
        self.calls.append((args, input))
        return subprocess.CompletedProcess(args, self.returncode, stdout=self.stdout, stderr=self.stderr)


def test_build_crd():
    crd = kubectl.build_crd(MANIFEST, StatusConfig())
    assert crd == {
        "apiVersion": "babylontech.co.uk/v1",
        "kind": "ShipcatManifest",
        "metadata": {"name": "foo", "namespace": "dev"},
        "spec": {"name": "foo", "namespace": "dev", "version": "1.2.3", "image": "quay.io/foo"},
    }


def test_apply_crd(monkeypatch):
    fake = Kubectl(stdout="shipcatmanifest.babylontech.co.uk/foo configured\n")
    monkeypatch.setattr(subprocess, "run", fake)
    assert kubectl.apply_crd(MANIFEST, StatusConfig(kubeconfig=None, context=None)) is True
    args, document = fake.calls[0]
    assert args == ["kubectl", "apply", "-n", "dev", "-f", "-"]
    assert yaml.safe_load(document)["spec"]["version"] == "1.2.3"


def test_apply_crd_unchanged(monkeypatch):
    monkeypatch.setattr(subprocess, "run", Kubectl(stdout="shipcatmanifest.babylontech.co.uk/foo unchanged\n"))
    assert kubectl.apply_crd(MANIFEST, StatusConfig()) is False


def test_apply_crd_rejected(monkeypatch):
    monkeypatch.setattr(subprocess, "run", Kubectl(returncode=1, stderr="error validating data"))
    with pytest.raises(RemoteRejected) as e:
        kubectl.apply_crd(MANIFEST, StatusConfig())
    assert "error validating data" in str(e.value)


def test_apply_crd_without_kubectl(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("kubectl")

    monkeypatch.setattr(subprocess, "run", missing)
    with pytest.raises(StoreUnavailable):
        kubectl.apply_crd(MANIFEST, StatusConfig())


@pytest.mark.parametrize(
    "manifest",
    [
        Manifest(name="foo", namespace="dev"),
        Manifest(name="foo", namespace="dev", version="1.2.3", state=ManifestState.Completed),
    ],
)
def test_status_client_apply_preconditions(monkeypatch, manifest):
    fake = Kubectl()
    monkeypatch.setattr(subprocess, "run", fake)
    store = record_store.RecordStore()
    sc = StatusClient(manifest, client=record_store.install(monkeypatch, store), applier=Applier(name="clux"))
    with pytest.raises(PreconditionViolated):
        sc.apply(manifest)
    assert fake.calls == []


def test_status_client_apply(monkeypatch):
    monkeypatch.setattr(subprocess, "run", Kubectl(stdout="shipcatmanifest.babylontech.co.uk/foo created"))
    store = record_store.RecordStore()
    sc = StatusClient(MANIFEST, client=record_store.install(monkeypatch, store), applier=Applier(name="clux"))
    assert sc.apply(MANIFEST) is True


def test_apply_crd_passes_kubeconfig(monkeypatch):
    fake = Kubectl(stdout="shipcatmanifest.babylontech.co.uk/foo configured")
    monkeypatch.setattr(subprocess, "run", fake)
    kubectl.apply_crd(MANIFEST, StatusConfig(kubeconfig="/etc/kube/config", context="prod"))
    args, _ = fake.calls[0]
    assert args[-4:] == ["--kubeconfig", "/etc/kube/config", "--context", "prod"]
