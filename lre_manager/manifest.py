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

"""Patch operations and deterministic manifest composition."""

from __future__ import annotations

import copy
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import yaml

from lre_manager.config import SourceConfig
from lre_manager.constants import (
    ALERT_IMAGE,
    ALERT_WORKER,
    ALERT_WORKER_INIT,
    GIT_REPOSITORY_NAME,
    KUSTOMIZATION_APP,
    PATCH_KIND_ALERT,
    PATCH_KIND_DEPLOYMENT,
    PATCH_KIND_GIT_REPOSITORY,
    PATCH_KIND_KUSTOMIZATION,
    PATH_BRANCH,
    PATH_COMMIT,
    PATH_CONTAINER_IMAGE,
    PATH_FLAKE_OUTPUT,
    PATH_OVERLAY,
    PATH_REPO_URL,
)
from lre_manager.errors import MalformedPatch
from lre_manager.topology import Topology

OP_REPLACE = "replace"
OP_ADD = "add"
KUSTOMIZE_API_VERSION = "kustomize.config.k8s.io/v1beta1"
OPERATOR_COMPONENT = "kubernetes/components/operator"


@dataclass(frozen=True)
class PatchOperation:
    """A single JSON6902-style field override on one topology resource.

    Attributes:
        kind: Target resource kind (e.g. ``GitRepository``).
        name: Target resource name.
        path: JSON pointer to the field (e.g. ``/spec/ref/branch``).
        value: Replacement value.
        op: ``replace`` (field must exist) or ``add`` (parent must exist).
    """

    kind: str
    name: str
    path: str
    value: Any
    op: str = OP_REPLACE


# ============================================================================
# Patch list construction
# ============================================================================

def build_patches(source_cfg: SourceConfig, image_overrides: dict[str, str] | None = None) -> list[PatchOperation]:
    """Translate source settings into the ordered override list.

    Args:
        source_cfg: Overlay, repository, and build-artifact settings.
        image_overrides: Optional mapping of Deployment name to image reference.

    Returns:
        Patch operations in application order.
    """
    patches = [
        PatchOperation(PATCH_KIND_KUSTOMIZATION, KUSTOMIZATION_APP, PATH_OVERLAY, source_cfg.overlay),
        PatchOperation(PATCH_KIND_GIT_REPOSITORY, GIT_REPOSITORY_NAME, PATH_REPO_URL, source_cfg.repo_url),
        PatchOperation(PATCH_KIND_GIT_REPOSITORY, GIT_REPOSITORY_NAME, PATH_BRANCH, source_cfg.branch),
    ]
    if source_cfg.commit:
        patches.append(
            PatchOperation(PATCH_KIND_GIT_REPOSITORY, GIT_REPOSITORY_NAME, PATH_COMMIT, source_cfg.commit, op=OP_ADD)
        )
    patches.extend([
        PatchOperation(PATCH_KIND_ALERT, ALERT_IMAGE, PATH_FLAKE_OUTPUT, source_cfg.image_flake_output),
        PatchOperation(PATCH_KIND_ALERT, ALERT_WORKER_INIT, PATH_FLAKE_OUTPUT, source_cfg.worker_init_flake_output),
        PatchOperation(PATCH_KIND_ALERT, ALERT_WORKER, PATH_FLAKE_OUTPUT, source_cfg.worker_flake_output),
    ])
    for unit, image in (image_overrides or {}).items():
        patches.append(PatchOperation(PATCH_KIND_DEPLOYMENT, unit, PATH_CONTAINER_IMAGE, image))
    return patches


# ============================================================================
# JSON pointer application
# ============================================================================

def _pointer_tokens(patch: PatchOperation) -> list[str]:
    if not patch.path.startswith("/") or patch.path == "/":
        raise MalformedPatch(patch.kind, patch.name, patch.path, "path must be a non-root JSON pointer")
    return [token.replace("~1", "/").replace("~0", "~") for token in patch.path[1:].split("/")]


def _list_index(patch: PatchOperation, token: str, size: int, allow_end: bool) -> int:
    if allow_end and token == "-":
        return size
    if not token.isdigit():
        raise MalformedPatch(patch.kind, patch.name, patch.path, f"'{token}' is not a list index")
    index = int(token)
    limit = size + 1 if allow_end else size
    if index >= limit:
        raise MalformedPatch(patch.kind, patch.name, patch.path, f"index {index} out of range")
    return index


def _apply_patch(doc: dict, patch: PatchOperation) -> None:
    if patch.op not in (OP_REPLACE, OP_ADD):
        raise MalformedPatch(patch.kind, patch.name, patch.path, f"unsupported op '{patch.op}'")

    *parents, leaf = _pointer_tokens(patch)
    node: Any = doc
    for token in parents:
        if isinstance(node, dict):
            if token not in node:
                raise MalformedPatch(patch.kind, patch.name, patch.path, f"field '{token}' not present")
            node = node[token]
        elif isinstance(node, list):
            node = node[_list_index(patch, token, len(node), allow_end=False)]
        else:
            raise MalformedPatch(patch.kind, patch.name, patch.path, f"cannot descend into '{token}'")

    value = copy.deepcopy(patch.value)
    if isinstance(node, dict):
        if patch.op == OP_REPLACE and leaf not in node:
            raise MalformedPatch(patch.kind, patch.name, patch.path, f"field '{leaf}' not present")
        node[leaf] = value
    elif isinstance(node, list):
        index = _list_index(patch, leaf, len(node), allow_end=patch.op == OP_ADD)
        if patch.op == OP_ADD:
            node.insert(index, value)
        else:
            node[index] = value
    else:
        raise MalformedPatch(patch.kind, patch.name, patch.path, f"cannot set '{leaf}' on a scalar")


def apply_patches(topology: Topology, patches: Sequence[PatchOperation]) -> list[dict]:
    """Apply patches in order to a deep copy of the topology resources.

    Args:
        topology: Base descriptor; never mutated.
        patches: Ordered overrides. Later patches win on the same field.

    Returns:
        Patched resource documents, in descriptor order.

    Raises:
        MalformedPatch: If a target resource or field path does not exist.
    """
    docs = copy.deepcopy(list(topology.resources))
    index = {(d.get("kind"), d.get("metadata", {}).get("name")): d for d in docs}
    for patch in patches:
        target = index.get((patch.kind, patch.name))
        if target is None:
            raise MalformedPatch(patch.kind, patch.name, patch.path, "no such resource in topology")
        _apply_patch(target, patch)
    return docs


def compose_manifest(topology: Topology, patches: Sequence[PatchOperation]) -> str:
    """Produce the finalized multi-document manifest.

    Output is byte-identical for equal inputs: keys are sorted and documents
    keep descriptor order.

    Args:
        topology: Base descriptor.
        patches: Ordered overrides.

    Returns:
        YAML text ready for ``kubectl apply -f``.

    Raises:
        MalformedPatch: If a patch does not match the descriptor.
    """
    docs = apply_patches(topology, patches)
    return yaml.safe_dump_all(docs, sort_keys=True, default_flow_style=False, explicit_start=True)


def render_kustomization(patches: Sequence[PatchOperation], components: Sequence[str] = (OPERATOR_COMPONENT,)) -> str:
    """Render the patches as a kustomize overlay (``kustomization.yaml``).

    Consecutive patches on the same target are grouped into one JSON6902 patch.

    Args:
        patches: Ordered overrides.
        components: Kustomize components the overlay builds on.

    Returns:
        YAML text of the overlay.
    """
    groups: list[tuple[tuple[str, str], list[dict]]] = []
    for patch in patches:
        target = (patch.kind, patch.name)
        if not groups or groups[-1][0] != target:
            groups.append((target, []))
        groups[-1][1].append({"op": patch.op, "path": patch.path, "value": patch.value})

    overlay = {
        "apiVersion": KUSTOMIZE_API_VERSION,
        "kind": "Kustomization",
        "components": list(components),
        "patches": [
            {
                "patch": yaml.safe_dump(ops, sort_keys=False, default_flow_style=False),
                "target": {"kind": kind, "name": name},
            }
            for (kind, name), ops in groups
        ],
    }
    return yaml.safe_dump(overlay, sort_keys=False, default_flow_style=False)
