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

"""Deployment topology: units, gateways, and wiring invariants."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field

from lre_manager.constants import (
    ENV_CAS_ENDPOINT,
    ENV_SCHEDULER_ENDPOINT,
    ROLE_SCHEDULER,
    ROLE_STORAGE,
    ROLE_WORKER,
    ROLLOUT_ORDER,
    TOPOLOGY,
    WORKER_CONFIG_MOUNT,
    WORKER_SHARED_MOUNT,
)

_POD_DNS_RE = re.compile(r"\.pod(\.|$)|^\d+-\d+-\d+-\d+\.")


@dataclass(frozen=True)
class DeploymentUnit:
    """One deployable tier of the cluster.

    Attributes:
        role: Logical role (storage, scheduler or worker).
        name: Deployment name, also used as the rollout selector.
        service: Stable Service name peers use to reach this unit.
        replicas: Desired replica count.
        image: Main container image reference.
        env: Main container environment bindings.
    """

    role: str
    name: str
    service: str
    replicas: int
    image: str
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Topology:
    """The base descriptor the manifest is composed from.

    Attributes:
        units: Deployment units in rollout order.
        gateways: Gateway names keyed by purpose (``cache``, ``scheduler``).
        resources: Kubernetes documents, treated as read-only.
    """

    units: tuple[DeploymentUnit, ...]
    gateways: dict[str, str]
    resources: tuple[dict, ...]

    def unit(self, role: str) -> DeploymentUnit:
        """Return the unit for *role*.

        Raises:
            KeyError: If no unit has that role.
        """
        for unit in self.units:
            if unit.role == role:
                return unit
        raise KeyError(role)

    def find(self, kind: str, name: str) -> dict | None:
        """Return the resource document with this kind and name, if any."""
        for doc in self.resources:
            if doc.get("kind") == kind and doc.get("metadata", {}).get("name") == name:
                return doc
        return None


def _main_container(deployment: dict) -> dict:
    containers = deployment["spec"]["template"]["spec"]["containers"]
    return containers[0]


def _unit_from_deployment(role: str, service: str, deployment: dict) -> DeploymentUnit:
    container = _main_container(deployment)
    env = {item["name"]: str(item.get("value", "")) for item in container.get("env", [])}
    return DeploymentUnit(
        role=role,
        name=deployment["metadata"]["name"],
        service=service,
        replicas=int(deployment["spec"].get("replicas", 1)),
        image=container["image"],
        env=env,
    )


def load_topology(descriptor: dict | None = None) -> Topology:
    """Build a Topology from a parsed descriptor.

    Args:
        descriptor: Parsed topology YAML, or None for the packaged one.

    Returns:
        The validated topology.

    Raises:
        ValueError: If a declared unit has no Deployment or the wiring is invalid.
    """
    descriptor = TOPOLOGY if descriptor is None else descriptor
    resources = tuple(descriptor.get("resources", []))
    gateways = dict(descriptor.get("gateways", {}))
    lookup = Topology(units=(), gateways=gateways, resources=resources)

    units: list[DeploymentUnit] = []
    for entry in descriptor.get("units", []):
        deployment = lookup.find("Deployment", entry["deployment"])
        if deployment is None:
            raise ValueError(f"Unit '{entry['role']}' references missing Deployment '{entry['deployment']}'")
        units.append(_unit_from_deployment(entry["role"], entry.get("service", entry["deployment"]), deployment))

    roles = tuple(unit.role for unit in units)
    if roles != ROLLOUT_ORDER:
        raise ValueError(f"Units must be declared in order {ROLLOUT_ORDER}, got {roles}")

    topology = Topology(units=tuple(units), gateways=gateways, resources=resources)
    validate_topology(topology)
    validate_references(topology)
    return topology


def _host(value: str) -> str:
    return value.split("://", 1)[-1].split("/", 1)[0].split(":", 1)[0]


def _is_pod_address(value: str) -> bool:
    host = _host(value)
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return bool(_POD_DNS_RE.search(host))


def validate_topology(topology: Topology) -> None:
    """Check the peer wiring invariants of the worker tier.

    The worker must reach storage and scheduler through their Service names,
    its Service must be headless, and its pod must stage the executable into
    a shared emptyDir and mount its config file.

    Raises:
        ValueError: On the first violated invariant.
    """
    worker = topology.unit(ROLE_WORKER)
    expected = {
        ENV_CAS_ENDPOINT: topology.unit(ROLE_STORAGE).service,
        ENV_SCHEDULER_ENDPOINT: topology.unit(ROLE_SCHEDULER).service,
    }
    for key, service in expected.items():
        value = worker.env.get(key)
        if value is None:
            raise ValueError(f"Worker is missing env binding {key}")
        if _is_pod_address(value):
            raise ValueError(f"Worker env {key}={value} is a pod address, not a service name")
        if _host(value).split(".", 1)[0] != service:
            raise ValueError(f"Worker env {key}={value} does not reference service '{service}'")

    service = topology.find("Service", worker.service)
    if service is None or service.get("spec", {}).get("clusterIP") != "None":
        raise ValueError(f"Worker service '{worker.service}' must be headless (clusterIP: None)")

    deployment = topology.find("Deployment", worker.name)
    pod_spec = deployment["spec"]["template"]["spec"]
    mounts = {m["mountPath"] for m in _main_container(deployment).get("volumeMounts", [])}
    if WORKER_CONFIG_MOUNT not in mounts or WORKER_SHARED_MOUNT not in mounts:
        raise ValueError(f"Worker must mount {WORKER_CONFIG_MOUNT} and {WORKER_SHARED_MOUNT}")
    shared = [v for v in pod_spec.get("volumes", []) if "emptyDir" in v]
    if not shared or not pod_spec.get("initContainers"):
        raise ValueError("Worker must stage its executable via an init container into an emptyDir volume")


def _references(doc: dict) -> list[tuple[str, str]]:
    """List the (kind, name) pairs a Flux document points at."""
    spec = doc.get("spec", {})
    kind = doc.get("kind")
    refs: list[tuple[str, str]] = []
    if kind == "Kustomization":
        source = spec.get("sourceRef")
        if source:
            refs.append((source.get("kind", "GitRepository"), source.get("name", "")))
        refs += [("Kustomization", dep.get("name", "")) for dep in spec.get("dependsOn", [])]
    elif kind == "Alert":
        provider = spec.get("providerRef")
        if provider:
            refs.append(("Provider", provider.get("name", "")))
        refs += [(src.get("kind", ""), src.get("name", "")) for src in spec.get("eventSources", [])]
    return refs


def validate_references(topology: Topology) -> None:
    """Check that every sourceRef, dependsOn, providerRef and eventSource resolves.

    Raises:
        ValueError: On the first dangling reference.
    """
    for doc in topology.resources:
        for kind, name in _references(doc):
            if topology.find(kind, name) is None:
                owner = f"{doc.get('kind')}/{doc.get('metadata', {}).get('name')}"
                raise ValueError(f"{owner} references missing {kind}/{name}")
