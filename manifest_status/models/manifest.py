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

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from manifest_status.errors import PreconditionViolated

# RFC 1123 label, the shape kubernetes enforces on object names and namespaces
DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


class ManifestState(str, Enum):
    Base = "Base"
    Completed = "Completed"
    Stubbed = "Stubbed"


class Manifest(BaseModel):
    """A deployable manifest as seen by status reporting.

    Only the identifying fields are modelled. Everything else in the manifest
    is kept as extra data so that it can be written back out as the custom
    resource spec.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., description="The name of the service the manifest deploys.")
    namespace: str = Field(..., description="The namespace the manifest is deployed into.")
    version: Optional[str] = Field(None, description="The pinned version. Must be set before the manifest is applied.")
    state: ManifestState = Field(
        ManifestState.Base, description="Base until secrets are resolved (Completed) or replaced by placeholders (Stubbed)."
    )

    def is_base(self) -> bool:
        return self.state == ManifestState.Base

    def check_identity(self):
        for field in ["name", "namespace"]:
            value = getattr(self, field)
            if not value or not DNS_LABEL.match(value):
                raise PreconditionViolated(f"'{value}' is not a resolved identifier", field=field)
        if not self.is_base():
            raise PreconditionViolated(f"manifest {self.name} is in state {self.state.value}, expected Base", field="state")

    def check_versioned(self):
        self.check_identity()
        if not self.version:
            raise PreconditionViolated(f"manifest {self.name} has no version", field="version")

    def spec(self) -> dict:
        return self.model_dump(mode="json", exclude={"state"}, exclude_none=True)
