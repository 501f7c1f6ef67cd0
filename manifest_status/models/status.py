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

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationInfo,
    model_validator,
)
from pydantic.alias_generators import to_camel

from manifest_status.app.utils import get_timestamp, to_rfc3339, to_utc

# RFC3339, UTC, whole seconds on the wire. Decoding accepts any offset.
Timestamp = Annotated[datetime, AfterValidator(to_utc), PlainSerializer(lambda dt: to_rfc3339(dt), return_type=str)]

# validation context flag for documents read back from the record store
STORED = "stored"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Phase(str, Enum):
    generated = "generated"
    applied = "applied"
    rolledout = "rolledout"


class Applier(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Human readable text describing what applied.")
    url: Optional[str] = Field(None, description="Link to logs or origin of the apply (if possible).")


class Condition(CamelModel):
    """Outcome of one phase at one point in time.

    Laid out like a kubernetes PodCondition without the probe timestamps.
    The phases are named slots rather than a typed list so that each one can
    be merge-patched on its own.
    """

    status: bool = Field(..., description="Whether or not the phase is in a good state.")
    reason: Optional[str] = Field(None, description="Error reason token if not in a good state.")
    message: Optional[str] = Field(None, description="One sentence error message if not in a good state.")
    last_transition: Timestamp = Field(..., alias="lastTransitionTime", description="When the condition was last written.")
    source: Optional[Applier] = Field(None, description="Originator for this condition.")

    @model_validator(mode="after")
    def check_reason(self, info: ValidationInfo) -> "Condition":
        # records read back from the store may hold slots written by other tools
        if info.context and info.context.get(STORED):
            return self
        if self.status and (self.reason is not None or self.message is not None):
            raise ValueError("a healthy condition cannot carry a reason or message")
        if not self.status and (self.reason is None or self.message is None):
            raise ValueError("an unhealthy condition requires both reason and message")
        return self


def condition_ok(applier: Applier, now: Optional[datetime] = None) -> Condition:
    return Condition(
        status=True,
        reason=None,
        message=None,
        last_transition=now if now else get_timestamp(),
        source=applier,
    )


def condition_bad(applier: Applier, reason: str, message: str, now: Optional[datetime] = None) -> Condition:
    return Condition(
        status=False,
        reason=reason,
        message=message,
        last_transition=now if now else get_timestamp(),
        source=applier,
    )


class Conditions(CamelModel):
    generated: Optional[Condition] = Field(
        None, description="Template generation. Failures cover manifest completion, secret resolution and serialisation."
    )
    applied: Optional[Condition] = Field(
        None, description="Cluster application. Failures cover invalid charts, admission rejections and network errors."
    )
    rolledout: Optional[Condition] = Field(
        None, description="Rollout verification. Failures cover deployments not rolling out in time."
    )

    def get(self, phase: Phase) -> Optional[Condition]:
        return getattr(self, phase.value)


class ConditionSummary(CamelModel):
    last_successful_generate: Optional[Timestamp] = Field(None, description="When the template was last generated successfully.")
    last_apply: Optional[Timestamp] = Field(None, description="When the manifest was last applied, successful or not.")
    last_successful_apply: Optional[Timestamp] = Field(None, description="When an apply last passed all checks.")
    last_rollout: Optional[Timestamp] = Field(None, description="When a rollout wait last completed.")
    last_successful_rollout: Optional[Timestamp] = Field(None, description="When a rollout wait last completed and passed.")
    reason: Optional[str] = Field(None, description="Best effort reason for the most recent failure. Cleared by a successful rollout.")
    status: bool = Field(False, description="True when the most recent relevant check passed.")
    upgrade_reason: Optional[str] = Field(None, description="Best effort reason for why an apply was triggered.")


class ManifestStatus(CamelModel):
    conditions: Conditions = Field(default_factory=Conditions, description="Individual phase conditions.")
    summary: Optional[ConditionSummary] = Field(None, description="Readable rollup of the conditions.")


class ObjectMeta(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str
    namespace: Optional[str] = None
    resource_version: Optional[str] = None
    uid: Optional[str] = None
    generation: Optional[int] = None
    labels: Optional[Dict[str, str]] = None


class ManifestRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    api_version: Optional[str] = None
    kind: Optional[str] = None
    metadata: ObjectMeta
    spec: Optional[Dict[str, Any]] = None
    status: Optional[ManifestStatus] = None
