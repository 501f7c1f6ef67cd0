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

"""Sparse status patches, one per phase transition.

Each builder sets exactly one condition slot and the summary fields that
transition owns. A summary field that was never assigned is left out of the
patch and stays as it is in the record; a field assigned ``None`` is sent as
JSON ``null`` and removed from the record by the merge.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from manifest_status.app.utils import get_timestamp
from manifest_status.models.status import (
    Applier,
    CamelModel,
    Condition,
    Phase,
    Timestamp,
    condition_bad,
    condition_ok,
)


class SummaryPatch(CamelModel):
    last_successful_generate: Optional[Timestamp] = None
    last_apply: Optional[Timestamp] = None
    last_successful_apply: Optional[Timestamp] = None
    last_rollout: Optional[Timestamp] = None
    last_successful_rollout: Optional[Timestamp] = None
    reason: Optional[str] = None
    status: Optional[bool] = None
    upgrade_reason: Optional[str] = None

    def touched(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def clears(self, field: str) -> bool:
        return field in self.model_fields_set and getattr(self, field) is None


class StatusPatch(BaseModel):
    phase: Phase
    condition: Condition
    summary: SummaryPatch

    def to_merge_patch(self) -> Dict[str, Any]:
        # the condition is sent whole so stale reason/message/url keys are nulled out
        condition = self.condition.model_dump(mode="json", by_alias=True)
        return {
            "status": {
                "conditions": {self.phase.value: condition},
                "summary": self.summary.touched(),
            }
        }


def generate_ok(applier: Applier, now: Optional[datetime] = None) -> StatusPatch:
    now = now if now else get_timestamp()
    return StatusPatch(
        phase=Phase.generated,
        condition=condition_ok(applier, now=now),
        summary=SummaryPatch(last_successful_generate=now),
    )


def generate_failed(applier: Applier, reason: str, message: str, now: Optional[datetime] = None) -> StatusPatch:
    now = now if now else get_timestamp()
    return StatusPatch(
        phase=Phase.generated,
        condition=condition_bad(applier, reason, message, now=now),
        summary=SummaryPatch(reason=message, status=False),
    )


def apply_ok(applier: Applier, upgrade_reason: str, now: Optional[datetime] = None) -> StatusPatch:
    now = now if now else get_timestamp()
    return StatusPatch(
        phase=Phase.applied,
        condition=condition_ok(applier, now=now),
        summary=SummaryPatch(last_apply=now, last_successful_apply=now, upgrade_reason=upgrade_reason),
    )


def apply_failed(applier: Applier, upgrade_reason: str, reason: str, message: str, now: Optional[datetime] = None) -> StatusPatch:
    now = now if now else get_timestamp()
    return StatusPatch(
        phase=Phase.applied,
        condition=condition_bad(applier, reason, message, now=now),
        summary=SummaryPatch(last_apply=now, reason=message, status=False, upgrade_reason=upgrade_reason),
    )


def rollout_ok(applier: Applier, now: Optional[datetime] = None) -> StatusPatch:
    now = now if now else get_timestamp()
    return StatusPatch(
        phase=Phase.rolledout,
        condition=condition_ok(applier, now=now),
        summary=SummaryPatch(last_rollout=now, last_successful_rollout=now, status=True, reason=None),
    )


def rollout_failed(applier: Applier, reason: str, message: str, now: Optional[datetime] = None) -> StatusPatch:
    now = now if now else get_timestamp()
    return StatusPatch(
        phase=Phase.rolledout,
        condition=condition_bad(applier, reason, message, now=now),
        summary=SummaryPatch(last_rollout=now, status=False, reason=message),
    )
