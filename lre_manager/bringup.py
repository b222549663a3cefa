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

"""Dependency-ordered bring-up state machine."""

from __future__ import annotations

import enum
import time
from collections.abc import Callable

from rich.panel import Panel

from lre_manager import console, logger
from lre_manager.config import TimeoutConfig
from lre_manager.constants import (
    CONDITION_READY,
    CONDITION_SUCCEEDED,
    KIND_DEPLOYMENT,
    KIND_KUSTOMIZATION,
    KIND_PIPELINERUN,
    KUSTOMIZATION_APP,
    KUSTOMIZATION_CONFIGMAPS,
    KUSTOMIZATION_TEKTON,
    LABEL_TEKTON_PIPELINE,
    PIPELINE_NAME,
    PIPELINE_RUN_PREFIX,
)
from lre_manager.control_plane import ControlPlane
from lre_manager.errors import BringupTimedOut, ConditionFailed, PipelineFailed, StageFailed
from lre_manager.poller import ConditionIs, Exists, PollResult, ReadinessGate, RolloutComplete, wait_for
from lre_manager.topology import Topology


class Stage(enum.Enum):
    """Bring-up states. The first seven are stages; the last two are terminal."""

    SUBMIT_CONFIGURATION = "submit-configuration"
    CORE_RESOURCES = "core-resources"
    PIPELINE_CREATED = "pipeline-created"
    PIPELINE_SUCCEEDED = "pipeline-succeeded"
    GENERATED_CONFIGURATION = "generated-configuration"
    APPLICATION = "application"
    ROLLOUT = "rollout"
    READY = "ready"
    FAILED = "failed"


NEXT: dict[Stage, Stage] = {
    Stage.SUBMIT_CONFIGURATION: Stage.CORE_RESOURCES,
    Stage.CORE_RESOURCES: Stage.PIPELINE_CREATED,
    Stage.PIPELINE_CREATED: Stage.PIPELINE_SUCCEEDED,
    Stage.PIPELINE_SUCCEEDED: Stage.GENERATED_CONFIGURATION,
    Stage.GENERATED_CONFIGURATION: Stage.APPLICATION,
    Stage.APPLICATION: Stage.ROLLOUT,
    Stage.ROLLOUT: Stage.READY,
}
BRINGUP_STAGES: tuple[Stage, ...] = tuple(NEXT)
TERMINAL_STAGES = frozenset({Stage.READY, Stage.FAILED})

STAGE_TITLES = {
    Stage.SUBMIT_CONFIGURATION: "Submitting configuration",
    Stage.CORE_RESOURCES: "Waiting for Tekton resources",
    Stage.PIPELINE_CREATED: "Waiting for rebuild pipeline to be created",
    Stage.PIPELINE_SUCCEEDED: "Waiting for rebuild pipeline to succeed",
    Stage.GENERATED_CONFIGURATION: "Waiting for configmaps",
    Stage.APPLICATION: "Waiting for application kustomization",
    Stage.ROLLOUT: "Waiting for deployment rollouts",
}


class BringupOrchestrator:
    """Finite-state machine that drives one bring-up to READY or FAILED.

    Each stage has one transition method. A successful transition moves to
    ``NEXT[state]``; any error moves to FAILED and propagates. Nothing moves
    backwards and no stage runs twice.

    Args:
        client: Control plane to submit to and poll.
        topology: Descriptor supplying the rollout units.
        timeouts: Poll interval and stage deadlines.
        manifest: Composed manifest to submit, or None to start at
            CORE_RESOURCES against an already-submitted configuration.
        clock: Monotonic time source passed to the poller.
        sleep: Sleep function passed to the poller.
    """

    def __init__(
        self,
        client: ControlPlane,
        topology: Topology,
        timeouts: TimeoutConfig,
        manifest: str | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.topology = topology
        self.timeouts = timeouts
        self.manifest = manifest
        self.clock = clock
        self.sleep = sleep
        self.state = Stage.SUBMIT_CONFIGURATION if manifest is not None else Stage.CORE_RESOURCES
        self.history: list[Stage] = []
        self.results: dict[Stage, list[PollResult]] = {}
        self.pipeline_run: str | None = None
        self._transitions: dict[Stage, Callable[[], None]] = {
            Stage.SUBMIT_CONFIGURATION: self._submit_configuration,
            Stage.CORE_RESOURCES: self._core_resources,
            Stage.PIPELINE_CREATED: self._pipeline_created,
            Stage.PIPELINE_SUCCEEDED: self._pipeline_succeeded,
            Stage.GENERATED_CONFIGURATION: self._generated_configuration,
            Stage.APPLICATION: self._application,
            Stage.ROLLOUT: self._rollout,
        }

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STAGES

    def step(self) -> Stage:
        """Run the current stage and advance.

        Returns:
            The new state.

        Raises:
            RuntimeError: If the machine is already in a terminal state.
            LreManagerError: Whatever the stage raised; the state becomes FAILED.
        """
        if self.done:
            raise RuntimeError(f"Bring-up already finished in state {self.state.value}")
        stage = self.state
        self.history.append(stage)
        number = BRINGUP_STAGES.index(stage) + 1
        console.print(Panel.fit(f"[{number}/{len(BRINGUP_STAGES)}] {STAGE_TITLES[stage]}", style="bold blue"))
        try:
            self._transitions[stage]()
        except Exception:
            self.state = Stage.FAILED
            raise
        self.state = NEXT[stage]
        return self.state

    def run(self) -> None:
        """Step through every remaining stage until READY.

        Raises:
            StageFailed: The first stage that failed or timed out.
        """
        while not self.done:
            self.step()
        console.print("[green]\u2705 All bring-up stages completed[/green]")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _submit_configuration(self) -> None:
        output = self.client.apply(self.manifest)
        for line in output.splitlines():
            console.print(f"  {line}")
        console.print("[green]\u2705 Configuration accepted[/green]")

    def _core_resources(self) -> None:
        self._await(ReadinessGate(
            KIND_KUSTOMIZATION, ConditionIs(CONDITION_READY),
            self.timeouts.reconcile_timeout, name=KUSTOMIZATION_TEKTON,
        ))

    def _pipeline_created(self) -> None:
        deadline = self.timeouts.pipeline_creation_deadline
        if deadline is None:
            logger.warning("Waiting for %s* without a deadline", PIPELINE_RUN_PREFIX)
        result = self._await(ReadinessGate(
            KIND_PIPELINERUN, Exists(), deadline, name_prefix=PIPELINE_RUN_PREFIX,
        ))
        self.pipeline_run = result.matched[0] if result.matched else None
        console.print(f"[yellow]\u2139\ufe0f  Found pipeline: {self.pipeline_run}[/yellow]")

    def _pipeline_succeeded(self) -> None:
        self._await(ReadinessGate(
            KIND_PIPELINERUN, ConditionIs(CONDITION_SUCCEEDED, fail_on_false=True),
            self.timeouts.pipeline_timeout, selector=f"{LABEL_TEKTON_PIPELINE}={PIPELINE_NAME}",
        ))

    def _generated_configuration(self) -> None:
        self._await(ReadinessGate(
            KIND_KUSTOMIZATION, ConditionIs(CONDITION_READY),
            self.timeouts.reconcile_timeout, name=KUSTOMIZATION_CONFIGMAPS,
        ))

    def _application(self) -> None:
        self._await(ReadinessGate(
            KIND_KUSTOMIZATION, ConditionIs(CONDITION_READY),
            self.timeouts.reconcile_timeout, name=KUSTOMIZATION_APP,
        ))

    def _rollout(self) -> None:
        for unit in self.topology.units:
            self._await(ReadinessGate(
                KIND_DEPLOYMENT, RolloutComplete(), self.timeouts.rollout_timeout, name=unit.name,
            ))

    def _await(self, gate: ReadinessGate) -> PollResult:
        stage = self.state
        console.print(f"[yellow]\u2139\ufe0f  Waiting for {gate.describe()}...[/yellow]")
        try:
            result = wait_for(self.client, gate, self.timeouts.poll_interval, clock=self.clock, sleep=self.sleep)
        except ConditionFailed as err:
            failure = PipelineFailed if stage is Stage.PIPELINE_SUCCEEDED else StageFailed
            raise failure(stage.value, gate.describe(), err.reason) from err
        self.results.setdefault(stage, []).append(result)
        if not result.ready:
            cause = result.last_error or result.detail or "condition not met"
            raise BringupTimedOut(stage.value, gate.describe(), f"not ready after {gate.deadline:g}s ({cause})")
        console.print(f"[green]\u2705 {gate.describe()} ready ({result.attempts} checks)[/green]")
        return result
