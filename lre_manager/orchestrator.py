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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

import shlex
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from rich.panel import Panel

from lre_manager import console
from lre_manager.bringup import BringupOrchestrator, Stage
from lre_manager.config import ClusterConfig, SmokeConfig, SourceConfig, TimeoutConfig
from lre_manager.control_plane import ControlPlane, KubectlControlPlane
from lre_manager.diagnostics import dump_cluster_state
from lre_manager.errors import LreManagerError
from lre_manager.gateways import ResolvedGateways, resolve_gateways
from lre_manager.manifest import build_patches, compose_manifest
from lre_manager.smoke import run_smoke_test
from lre_manager.topology import Topology, load_topology
from lre_manager.utils import require_command


@dataclass
class BringupReport:
    """What a completed run observed.

    Attributes:
        history: Stages visited, in order.
        pipeline_run: Name of the rebuild PipelineRun that was found.
        gateways: Resolved gateway addresses, once available.
        smoke_output: Standard output of the smoke build, if it ran.
    """

    history: list[Stage] = field(default_factory=list)
    pipeline_run: str | None = None
    gateways: ResolvedGateways | None = None
    smoke_output: str | None = None


# ============================================================================
# Internal helpers
# ============================================================================


def _check_prerequisites(smoke_cfg: SmokeConfig | None) -> None:
    """Check that kubectl and, when a smoke test will run, its launcher exist.

    Args:
        smoke_cfg: Smoke settings, or None when the smoke test is skipped.
    """
    prereqs = ["kubectl"]
    if smoke_cfg is not None:
        wrapper = shlex.split(smoke_cfg.wrapper)
        prereqs.append(wrapper[0] if wrapper else smoke_cfg.bazel)
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in prereqs:
        require_command(cmd)
    console.print("[green]\u2705 All required tools are available[/green]")


def compose_from_config(
    source_cfg: SourceConfig,
    image_overrides: dict[str, str] | None = None,
    topology: Topology | None = None,
) -> str:
    """Compose the manifest for the packaged (or given) topology.

    Args:
        source_cfg: Patch values.
        image_overrides: Optional per-unit image overrides.
        topology: Descriptor override, or None for the packaged one.

    Returns:
        The finalized manifest text.
    """
    if topology is None:
        topology = load_topology()
    return compose_manifest(topology, build_patches(source_cfg, image_overrides))


def topology_gateways(topology: Topology) -> dict[str, str]:
    """Map a topology's gateway names onto resolve_gateways keyword arguments."""
    kwargs: dict[str, str] = {}
    if "cache" in topology.gateways:
        kwargs["cache_gateway"] = topology.gateways["cache"]
    if "scheduler" in topology.gateways:
        kwargs["scheduler_gateway"] = topology.gateways["scheduler"]
    return kwargs


# ============================================================================
# Public API
# ============================================================================


def run_bringup(
    *,
    cluster_cfg: ClusterConfig,
    source_cfg: SourceConfig | None,
    timeout_cfg: TimeoutConfig,
    smoke_cfg: SmokeConfig | None,
    image_overrides: dict[str, str] | None = None,
    submit: bool = True,
    dump_state: bool = False,
    dump_on_failure: bool = False,
    client: ControlPlane | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> BringupReport:
    """Run the bring-up workflow: compose, submit, wait, resolve, smoke test.

    Args:
        cluster_cfg: Control-plane access settings.
        source_cfg: Patch values for the composed manifest; unused when not submitting.
        timeout_cfg: Poll interval and stage deadlines.
        smoke_cfg: Smoke build settings, or None to skip the smoke test.
        image_overrides: Optional per-unit image overrides.
        submit: Whether to compose and submit; False starts at the first wait.
        dump_state: Print cluster state after gateways resolve.
        dump_on_failure: Print cluster state when any stage fails.
        client: Control plane override; defaults to kubectl.
        clock: Monotonic time source for the poller.
        sleep: Sleep function for the poller.

    Returns:
        BringupReport of the completed run.

    Raises:
        LreManagerError: The first failure; no later stage runs.
    """
    topology = load_topology()
    manifest = None
    if submit:
        if source_cfg is None:
            raise ValueError("source_cfg is required when submitting")
        manifest = compose_from_config(source_cfg, image_overrides, topology)
    if client is None:
        _check_prerequisites(smoke_cfg)
        client = KubectlControlPlane(cluster_cfg)

    report = BringupReport()
    orchestrator = BringupOrchestrator(client, topology, timeout_cfg, manifest, clock=clock, sleep=sleep)
    try:
        orchestrator.run()
        report.history = list(orchestrator.history)
        report.pipeline_run = orchestrator.pipeline_run
        report.gateways = resolve_gateways(client, orchestrator, **topology_gateways(topology))
        if dump_state and isinstance(client, KubectlControlPlane):
            dump_cluster_state(client, topology)
        if smoke_cfg is not None:
            report.smoke_output = run_smoke_test(report.gateways, smoke_cfg)
    except LreManagerError:
        if dump_on_failure and isinstance(client, KubectlControlPlane):
            dump_cluster_state(client, topology)
        raise
    return report

