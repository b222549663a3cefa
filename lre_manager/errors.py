# /*
# Copyright 2026 The NativeLink Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Exception types raised by the bring-up workflow."""

from __future__ import annotations


class LreManagerError(RuntimeError):
    """Base class for every bring-up failure."""


class MalformedPatch(LreManagerError):
    """A patch targets a resource or field path absent from the topology."""

    def __init__(self, kind: str, name: str, path: str, reason: str) -> None:
        self.kind = kind
        self.name = name
        self.path = path
        super().__init__(f"Malformed patch for {kind}/{name} at '{path}': {reason}")


class RejectedConfiguration(LreManagerError):
    """The control plane refused the submitted manifest at admission."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Configuration rejected by control plane: {detail.strip()}")


class ControlPlaneError(LreManagerError):
    """A control-plane query failed for a reason other than NotFound."""


class ConditionFailed(LreManagerError):
    """A watched resource reached a terminal failure condition."""

    def __init__(self, selector: str, reason: str) -> None:
        self.selector = selector
        self.reason = reason
        super().__init__(f"{selector} failed: {reason}")


class StageFailed(LreManagerError):
    """A bring-up stage did not succeed.

    Attributes:
        stage: Name of the stage that failed.
        selector: Resource selector the stage was waiting on.
        reason: Human readable cause.
    """

    def __init__(self, stage: str, selector: str, reason: str) -> None:
        self.stage = stage
        self.selector = selector
        self.reason = reason
        super().__init__(f"Stage {stage} failed while waiting on {selector}: {reason}")


class BringupTimedOut(StageFailed):
    """A stage deadline elapsed before its readiness condition held."""


class PipelineFailed(StageFailed):
    """The image rebuild pipeline reported a terminal failure."""


class BringupIncomplete(LreManagerError):
    """Gateways were requested before the bring-up reached READY."""


class GatewayUnresolved(LreManagerError):
    """A gateway still has no address after a successful bring-up."""

    def __init__(self, gateway: str) -> None:
        self.gateway = gateway
        super().__init__(f"Gateway '{gateway}' has no assigned address")


class SmokeTestFailed(LreManagerError):
    """The end-to-end smoke build did not complete successfully."""

    def __init__(self, exit_code: int, stderr_tail: str) -> None:
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        super().__init__(f"Smoke test exited with code {exit_code}")
