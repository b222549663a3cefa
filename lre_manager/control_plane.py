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

"""Control-plane client: manifest submission and read-only resource queries."""

from __future__ import annotations

import json
from typing import Protocol

from lre_manager import logger
from lre_manager.config import ClusterConfig
from lre_manager.errors import ControlPlaneError, RejectedConfiguration
from lre_manager.utils import kubectl_base_args, run_kubectl

NOT_FOUND_MARKERS = ("NotFound", "not found")


class ControlPlane(Protocol):
    """The operations the bring-up needs from a cluster control plane."""

    def apply(self, manifest: str) -> str:
        """Submit a manifest; return the control plane's acceptance output."""
        ...

    def get(self, kind: str, *, name: str | None = None, selector: str | None = None) -> list[dict]:
        """Return matching resources; an empty list when none exist yet."""
        ...


class KubectlControlPlane:
    """ControlPlane backed by the kubectl CLI.

    Args:
        cluster_cfg: Context, namespace, and per-call timeout.
    """

    def __init__(self, cluster_cfg: ClusterConfig) -> None:
        self.cluster_cfg = cluster_cfg

    def kubectl(self, args: list[str], stdin: str | None = None, namespaced: bool = True) -> tuple[bool, str, str]:
        """Run kubectl scoped to the configured context and namespace."""
        base = kubectl_base_args(self.cluster_cfg.kube_context, self.cluster_cfg.namespace if namespaced else None)
        return run_kubectl([*base, *args], timeout=self.cluster_cfg.kubectl_timeout, stdin=stdin)

    def apply(self, manifest: str) -> str:
        """Submit the manifest with ``kubectl apply -f -``.

        Acceptance only means admission passed; reconciliation is asynchronous.

        Raises:
            RejectedConfiguration: With kubectl's stderr, on any non-zero exit.
        """
        ok, stdout, stderr = self.kubectl(["apply", "-f", "-"], stdin=manifest)
        if not ok:
            raise RejectedConfiguration(stderr or stdout)
        logger.debug("kubectl apply accepted:\n%s", stdout)
        return stdout

    def get(self, kind: str, *, name: str | None = None, selector: str | None = None) -> list[dict]:
        """Query resources of *kind* by name or label selector.

        Raises:
            ControlPlaneError: On any failure other than NotFound.
        """
        args = ["get", kind]
        if name:
            args.append(name)
        if selector:
            args += ["-l", selector]
        args += ["-o", "json"]

        ok, stdout, stderr = self.kubectl(args)
        if not ok:
            if name and any(marker in stderr for marker in NOT_FOUND_MARKERS):
                return []
            raise ControlPlaneError(f"kubectl {' '.join(args)} failed: {stderr.strip()[:200]}")
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as err:
            raise ControlPlaneError(f"kubectl {' '.join(args)} returned invalid JSON") from err
        if payload.get("kind", "").endswith("List"):
            return list(payload.get("items", []))
        return [payload]
