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
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from manifest_status import applier as applier_resolver
from manifest_status import kubectl, patch
from manifest_status.app.config import StatusConfig
from manifest_status.common.rest_client import RestClient, dumps
from manifest_status.errors import NotFound, PreconditionViolated, RemoteRejected
from manifest_status.models.manifest import Manifest
from manifest_status.models.status import STORED, Applier, ManifestRecord, ManifestStatus

logger = logging.getLogger(__name__)


class StatusClient:
    """Status reporting for a single manifest record.

    Every update sends exactly one merge patch to the status subresource of
    the record and returns the status the store acknowledged. Nothing is
    cached and nothing is retried.
    """

    def __init__(
        self,
        manifest: Manifest,
        config: Optional[StatusConfig] = None,
        client: Optional[RestClient] = None,
        applier: Optional[Applier] = None,
        env: Optional[Mapping[str, str]] = None,
        _logger: Optional[logging.Logger] = None,
    ) -> None:
        self.manifest = manifest
        self.name = manifest.name
        self.namespace = manifest.namespace
        self.config = config if config else StatusConfig()
        self.logger = _logger if _logger else logger
        # raises StoreUnavailable when no cluster config can be loaded
        self.client = client if client else RestClient.from_config(self.config)
        self.applier = applier if applier else applier_resolver.resolve(env)

    @property
    def path(self) -> str:
        return self.config.resource_path(self.namespace, self.name)

    def close(self):
        self.client.close()

    def apply(self, manifest: Manifest) -> bool:
        """Write the manifest custom resource itself. It must be versioned and free of secrets."""
        return kubectl.apply_manifest(manifest, self.config)

    def get(self) -> ManifestRecord:
        try:
            data = self.client.get(self.path)
        except NotFound as e:
            raise NotFound(self.name, self.namespace) from e
        return self._decode(data)

    def fetch(self) -> ManifestStatus:
        record = self.get()
        return record.status if record.status is not None else ManifestStatus()

    def send(self, status_patch: patch.StatusPatch) -> ManifestStatus:
        self.manifest.check_identity()
        data = status_patch.to_merge_patch()
        self.logger.debug(f"Patching {self.namespace}/{self.name} status: {data}")
        try:
            result = self.client.patch(f"{self.path}/status", dumps(data))
        except NotFound as e:
            raise NotFound(self.name, self.namespace) from e
        record = self._decode(result)
        status = record.status if record.status is not None else ManifestStatus()
        self.logger.debug(f"Patched status: {status.model_dump(mode='json', by_alias=True, exclude_none=True)}")
        return status

    def update_generate(self, ok: bool, reason: Optional[str] = None, message: Optional[str] = None) -> ManifestStatus:
        if ok:
            return self.update_generate_true()
        return self.update_generate_false(*self._failure(reason, message))

    def update_apply(self, ok: bool, upgrade_reason: str, reason: Optional[str] = None, message: Optional[str] = None) -> ManifestStatus:
        if ok:
            return self.update_apply_true(upgrade_reason)
        return self.update_apply_false(upgrade_reason, *self._failure(reason, message))

    def update_rollout(self, ok: bool, reason: Optional[str] = None, message: Optional[str] = None) -> ManifestStatus:
        if ok:
            return self.update_rollout_true()
        return self.update_rollout_false(*self._failure(reason, message))

    def update_generate_true(self) -> ManifestStatus:
        self.logger.debug("Setting generated true")
        return self.send(patch.generate_ok(self.applier))

    def update_generate_false(self, reason: str, message: str) -> ManifestStatus:
        self.logger.debug("Setting generated false")
        return self.send(patch.generate_failed(self.applier, reason, message))

    def update_apply_true(self, upgrade_reason: str) -> ManifestStatus:
        self._upgrade(upgrade_reason)
        self.logger.debug("Setting applied true")
        return self.send(patch.apply_ok(self.applier, upgrade_reason))

    def update_apply_false(self, upgrade_reason: str, reason: str, message: str) -> ManifestStatus:
        self._upgrade(upgrade_reason)
        self.logger.debug("Setting applied false")
        return self.send(patch.apply_failed(self.applier, upgrade_reason, reason, message))

    def update_rollout_true(self) -> ManifestStatus:
        self.logger.debug("Setting rolledout true")
        return self.send(patch.rollout_ok(self.applier))

    def update_rollout_false(self, reason: str, message: str) -> ManifestStatus:
        self.logger.debug("Setting rolledout false")
        return self.send(patch.rollout_failed(self.applier, reason, message))

    @staticmethod
    def _failure(reason: Optional[str], message: Optional[str]):
        if reason is None or message is None:
            raise PreconditionViolated("a failed phase needs both a reason and a message")
        return reason, message

    @staticmethod
    def _upgrade(upgrade_reason: Optional[str]):
        # a missing value would be sent as null and wipe the recorded one
        if upgrade_reason is None:
            raise PreconditionViolated("an apply needs an upgrade reason", field="upgrade_reason")

    def _decode(self, data: Dict[str, Any]) -> ManifestRecord:
        try:
            return ManifestRecord.model_validate(data, context={STORED: True})
        except ValidationError as e:
            self.logger.warning(f"Unreadable record {self.namespace}/{self.name}: {e}")
            raise RemoteRejected(f"record {self.namespace}/{self.name} could not be decoded: {e}") from e
