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

"""Gateway address resolution."""

from __future__ import annotations

from dataclasses import dataclass

from rich.panel import Panel

from lre_manager import console
from lre_manager.bringup import BringupOrchestrator, Stage
from lre_manager.constants import GATEWAY_CACHE, GATEWAY_SCHEDULER, KIND_GATEWAY
from lre_manager.control_plane import ControlPlane
from lre_manager.errors import BringupIncomplete, GatewayUnresolved


@dataclass(frozen=True)
class GatewayAddress:
    """A gateway and the address the control plane assigned to it.

    Attributes:
        name: Gateway resource name.
        address: First entry of ``status.addresses``, or None if unassigned.
    """

    name: str
    address: str | None


@dataclass(frozen=True)
class ResolvedGateways:
    cache: str
    scheduler: str


def read_gateway(client: ControlPlane, name: str) -> GatewayAddress:
    """Read a gateway's first assigned address without waiting.

    Args:
        client: Control plane to query.
        name: Gateway resource name.

    Returns:
        GatewayAddress whose address is None when not yet assigned or missing.
    """
    resources = client.get(KIND_GATEWAY, name=name)
    if not resources:
        return GatewayAddress(name, None)
    addresses = resources[0].get("status", {}).get("addresses") or []
    value = addresses[0].get("value") if addresses else None
    return GatewayAddress(name, value or None)


def resolve_gateways(
    client: ControlPlane,
    orchestrator: BringupOrchestrator,
    cache_gateway: str = GATEWAY_CACHE,
    scheduler_gateway: str = GATEWAY_SCHEDULER,
) -> ResolvedGateways:
    """Resolve both gateway addresses after a successful bring-up.

    No retry: once every stage is READY an empty address means the
    environment is misconfigured.

    Args:
        client: Control plane to query.
        orchestrator: The bring-up whose success gates this read.
        cache_gateway: Name of the remote cache gateway.
        scheduler_gateway: Name of the remote executor gateway.

    Returns:
        The resolved cache and scheduler addresses.

    Raises:
        BringupIncomplete: If the orchestrator has not reached READY.
        GatewayUnresolved: If either gateway has no address.
    """
    if orchestrator.state is not Stage.READY:
        raise BringupIncomplete(f"Gateways requested while bring-up is in state {orchestrator.state.value}")

    console.print(Panel.fit("Resolving gateway addresses", style="bold blue"))
    resolved: dict[str, str] = {}
    for name in (cache_gateway, scheduler_gateway):
        gateway = read_gateway(client, name)
        if gateway.address is None:
            raise GatewayUnresolved(name)
        console.print(f"  {name:<18}: {gateway.address}")
        resolved[name] = gateway.address
    return ResolvedGateways(cache=resolved[cache_gateway], scheduler=resolved[scheduler_gateway])
