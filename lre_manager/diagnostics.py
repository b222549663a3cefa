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

"""Cluster state dump for operator diagnosis."""

from __future__ import annotations

from rich.panel import Panel

from lre_manager import console
from lre_manager.constants import DIAGNOSTIC_LOG_TAIL_LINES, KIND_GATEWAY
from lre_manager.control_plane import KubectlControlPlane
from lre_manager.topology import Topology


def diagnostic_commands(topology: Topology) -> list[tuple[str, list[str], bool]]:
    """List the kubectl queries that make up a state dump.

    Args:
        topology: Descriptor supplying the unit names for log collection.

    Returns:
        Tuples of (title, kubectl args, namespaced).
    """
    commands = [
        ("services", ["get", "svc", "-A"], False),
        ("pods", ["get", "pod", "-A"], False),
        ("deployments", ["get", "deployments", "-A"], False),
        ("gateways", ["describe", KIND_GATEWAY], True),
    ]
    for unit in topology.units:
        commands.append((
            f"{unit.role} logs",
            ["logs", "-l", f"app={unit.name}", f"--tail={DIAGNOSTIC_LOG_TAIL_LINES}", "--all-containers"],
            True,
        ))
    return commands


def dump_cluster_state(client: KubectlControlPlane, topology: Topology) -> None:
    """Print services, pods, deployments, gateways, and unit logs.

    Never raises; failed queries are reported inline.

    Args:
        client: kubectl-backed control plane.
        topology: Descriptor supplying the unit names.
    """
    console.print(Panel.fit("Cluster state", style="bold blue"))
    for title, args, namespaced in diagnostic_commands(topology):
        console.print(f"[yellow]{title}:[/yellow]")
        ok, stdout, stderr = client.kubectl(args, namespaced=namespaced)
        if ok:
            console.print(stdout.rstrip(), markup=False, highlight=False)
        else:
            console.print(f"[yellow]\u26a0\ufe0f  kubectl {' '.join(args)} failed: {stderr.strip()[:200]}[/yellow]")
