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

"""Readiness gates and the fixed-interval polling primitive."""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_never,
)

from lre_manager import logger
from lre_manager.constants import CONDITION_PROGRESSING, REASON_PROGRESS_DEADLINE
from lre_manager.control_plane import ControlPlane
from lre_manager.errors import ConditionFailed, ControlPlaneError


class Readiness(enum.Enum):
    """Outcome of a bounded wait."""

    READY = "ready"
    TIMED_OUT = "timed_out"


class GateStatus(enum.Enum):
    """Result of evaluating a condition against one query snapshot."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Evaluation:
    status: GateStatus
    detail: str = ""
    matched: tuple[str, ...] = ()


def _name(resource: dict) -> str:
    return resource.get("metadata", {}).get("name", "<unnamed>")


def _find_condition(resource: dict, condition_type: str) -> dict | None:
    for condition in resource.get("status", {}).get("conditions") or []:
        if condition.get("type") == condition_type:
            return condition
    return None


def _generation_pending(resource: dict) -> bool:
    generation = resource.get("metadata", {}).get("generation")
    observed = resource.get("status", {}).get("observedGeneration")
    return generation is not None and observed is not None and observed < generation


# ============================================================================
# Conditions
# ============================================================================

class Condition(Protocol):
    def evaluate(self, resources: list[dict]) -> Evaluation:
        ...


@dataclass(frozen=True)
class Exists:
    """Satisfied as soon as any resource matches the gate's selector."""

    def evaluate(self, resources: list[dict]) -> Evaluation:
        if not resources:
            return Evaluation(GateStatus.PENDING, "not created yet")
        names = tuple(_name(r) for r in resources)
        return Evaluation(GateStatus.READY, ", ".join(names), names)


@dataclass(frozen=True)
class ConditionIs:
    """Satisfied when every matching resource has ``<type>=True``.

    Attributes:
        type: Status condition type, e.g. ``Ready`` or ``Succeeded``.
        fail_on_false: Treat ``<type>=False`` as terminal instead of pending.
    """

    type: str
    fail_on_false: bool = False

    def evaluate(self, resources: list[dict]) -> Evaluation:
        if not resources:
            return Evaluation(GateStatus.PENDING, "not found")
        pending: list[str] = []
        for resource in resources:
            name = _name(resource)
            if _generation_pending(resource):
                pending.append(f"{name}: latest generation not observed")
                continue
            condition = _find_condition(resource, self.type)
            if condition is None:
                pending.append(f"{name}: no {self.type} condition")
                continue
            status = condition.get("status")
            if status == "True":
                continue
            reason = condition.get("reason", "")
            if status == "False" and self.fail_on_false:
                return Evaluation(GateStatus.FAILED, f"{name}: {reason}: {condition.get('message', '')}".strip())
            pending.append(f"{name}: {self.type}={status} {reason}".strip())
        if pending:
            return Evaluation(GateStatus.PENDING, "; ".join(pending))
        names = tuple(_name(r) for r in resources)
        return Evaluation(GateStatus.READY, ", ".join(names), names)


@dataclass(frozen=True)
class RolloutComplete:
    """Satisfied when a Deployment rollout has fully progressed.

    Mirrors ``kubectl rollout status``: the spec generation is observed, all
    replicas are updated, no old replicas remain, and every updated replica is
    available. ``ProgressDeadlineExceeded`` is terminal.
    """

    def evaluate(self, resources: list[dict]) -> Evaluation:
        if not resources:
            return Evaluation(GateStatus.PENDING, "not found")
        for resource in resources:
            name = _name(resource)
            spec = resource.get("spec", {})
            status = resource.get("status", {})
            generation = resource.get("metadata", {}).get("generation", 0)
            if status.get("observedGeneration", 0) < generation:
                return Evaluation(GateStatus.PENDING, f"{name}: waiting for spec update to be observed")
            progressing = _find_condition(resource, CONDITION_PROGRESSING)
            if progressing and progressing.get("reason") == REASON_PROGRESS_DEADLINE:
                return Evaluation(GateStatus.FAILED, f"{name}: exceeded its progress deadline")
            desired = spec.get("replicas", 1)
            updated = status.get("updatedReplicas", 0)
            total = status.get("replicas", 0)
            available = status.get("availableReplicas", 0)
            if updated < desired:
                return Evaluation(GateStatus.PENDING, f"{name}: {updated} of {desired} new replicas updated")
            if total > updated:
                return Evaluation(GateStatus.PENDING, f"{name}: {total - updated} old replicas pending termination")
            if available < updated:
                return Evaluation(GateStatus.PENDING, f"{name}: {available} of {updated} updated replicas available")
        names = tuple(_name(r) for r in resources)
        return Evaluation(GateStatus.READY, ", ".join(names), names)


# ============================================================================
# Gates
# ============================================================================

@dataclass(frozen=True)
class ReadinessGate:
    """One blocking wait on a resource selector.

    Exactly one of *name*, *name_prefix*, or *selector* is normally set; with
    none set every resource of *kind* matches.

    Attributes:
        kind: kubectl resource type.
        condition: Predicate evaluated on each query snapshot.
        deadline: Seconds before the wait times out, or None for no deadline.
        name: Exact resource name.
        name_prefix: Resource name prefix, for resources with generated names.
        selector: Label selector.
    """

    kind: str
    condition: Condition
    deadline: float | None
    name: str | None = None
    name_prefix: str | None = None
    selector: str | None = None

    def describe(self) -> str:
        if self.name:
            return f"{self.kind}/{self.name}"
        if self.name_prefix:
            return f"{self.kind}/{self.name_prefix}*"
        if self.selector:
            return f"{self.kind} -l {self.selector}"
        return self.kind

    def fetch(self, client: ControlPlane) -> list[dict]:
        resources = client.get(self.kind, name=self.name, selector=self.selector)
        if self.name_prefix:
            resources = [r for r in resources if _name(r).startswith(self.name_prefix)]
        return resources


@dataclass(frozen=True)
class PollResult:
    """Outcome of wait_for.

    Attributes:
        readiness: READY or TIMED_OUT.
        matched: Names of resources that satisfied the condition.
        attempts: Number of queries issued.
        detail: Last evaluation detail (why it was still pending).
        last_error: Last transient query error, if the final attempt failed.
    """

    readiness: Readiness
    matched: tuple[str, ...] = ()
    attempts: int = 0
    detail: str = ""
    last_error: str | None = None

    @property
    def ready(self) -> bool:
        return self.readiness is Readiness.READY


def _is_pending(evaluation: Evaluation) -> bool:
    return evaluation.status is GateStatus.PENDING


def wait_for(
    client: ControlPlane,
    gate: ReadinessGate,
    interval: float,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """Poll *gate* at a fixed interval until it holds or its deadline elapses.

    Missing resources and ControlPlaneError are both treated as "not yet":
    they are retried until the deadline. The final check is scheduled at the
    deadline so a condition that holds before it is always observed.

    Args:
        client: Control plane to query.
        gate: What to wait for, and for how long.
        interval: Seconds between checks; never grows.
        clock: Monotonic time source.
        sleep: Blocking sleep used between checks.

    Returns:
        PollResult with READY or TIMED_OUT.

    Raises:
        ConditionFailed: If the condition reports a terminal failure.
    """
    started = clock()

    def _elapsed() -> float:
        return clock() - started

    def _stop(retry_state) -> bool:
        return gate.deadline is not None and _elapsed() >= gate.deadline

    def _wait(retry_state) -> float:
        if gate.deadline is None:
            return interval
        return max(0.0, min(interval, gate.deadline - _elapsed()))

    retrying = Retrying(
        stop=stop_never if gate.deadline is None else _stop,
        wait=_wait,
        retry=retry_if_exception_type(ControlPlaneError) | retry_if_result(_is_pending),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.DEBUG),
    )

    attempts = 0

    def _check() -> Evaluation:
        nonlocal attempts
        attempts += 1
        evaluation = gate.condition.evaluate(gate.fetch(client))
        logger.debug("%s: %s (%s)", gate.describe(), evaluation.status.value, evaluation.detail)
        return evaluation

    try:
        evaluation = retrying(_check)
    except RetryError as err:
        attempt = err.last_attempt
        if attempt.failed:
            return PollResult(
                Readiness.TIMED_OUT,
                attempts=attempts,
                last_error=str(attempt.exception()),
            )
        return PollResult(
            Readiness.TIMED_OUT,
            attempts=attempts,
            detail=attempt.result().detail,
        )

    if evaluation.status is GateStatus.FAILED:
        raise ConditionFailed(gate.describe(), evaluation.detail)
    return PollResult(Readiness.READY, matched=evaluation.matched, attempts=attempts, detail=evaluation.detail)
