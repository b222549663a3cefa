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

"""Constants, topology descriptor loading, and topo_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent
TOPOLOGY_FILE = PACKAGE_DIR / "topology.yaml"


def load_topology_descriptor(path: Path = TOPOLOGY_FILE) -> dict:
    """Load the base deployment topology from topology.yaml.

    Args:
        path: Descriptor file to read, the packaged one by default.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    with open(path) as f:
        return yaml.safe_load(f)


TOPOLOGY = load_topology_descriptor()


def topo_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the TOPOLOGY dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = TOPOLOGY
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Resource kinds (kubectl resource.group form) --
KIND_KUSTOMIZATION = "kustomizations.kustomize.toolkit.fluxcd.io"
KIND_PIPELINERUN = "pipelineruns.tekton.dev"
KIND_DEPLOYMENT = "deployments.apps"
KIND_GATEWAY = "gateways.gateway.networking.k8s.io"

# -- Flux kustomizations --
KUSTOMIZATION_TEKTON = "nativelink-tekton-resources"
KUSTOMIZATION_CONFIGMAPS = "nativelink-configmaps"
KUSTOMIZATION_APP = "nativelink"

# -- Patch targets --
PATCH_KIND_KUSTOMIZATION = "Kustomization"
PATCH_KIND_GIT_REPOSITORY = "GitRepository"
PATCH_KIND_ALERT = "Alert"
PATCH_KIND_DEPLOYMENT = "Deployment"
GIT_REPOSITORY_NAME = "nativelink"
ALERT_IMAGE = "nativelink-image-alert"
ALERT_WORKER_INIT = "nativelink-worker-init-alert"
ALERT_WORKER = "nativelink-worker-alert"

PATH_OVERLAY = "/spec/path"
PATH_REPO_URL = "/spec/url"
PATH_BRANCH = "/spec/ref/branch"
PATH_COMMIT = "/spec/ref/commit"
PATH_FLAKE_OUTPUT = "/spec/eventMetadata/flakeOutput"
PATH_CONTAINER_IMAGE = "/spec/template/spec/containers/0/image"

# -- Tekton --
PIPELINE_RUN_PREFIX = "rebuild-nativelink-run-"
LABEL_TEKTON_PIPELINE = "tekton.dev/pipeline"
PIPELINE_NAME = "rebuild-nativelink"

# -- Conditions --
CONDITION_READY = "Ready"
CONDITION_SUCCEEDED = "Succeeded"
CONDITION_PROGRESSING = "Progressing"
REASON_PROGRESS_DEADLINE = "ProgressDeadlineExceeded"

# -- Unit roles, in rollout order --
ROLE_STORAGE = "storage"
ROLE_SCHEDULER = "scheduler"
ROLE_WORKER = "worker"
ROLLOUT_ORDER = (ROLE_STORAGE, ROLE_SCHEDULER, ROLE_WORKER)

# -- Worker env bindings that must name peer services --
ENV_CAS_ENDPOINT = "CAS_ENDPOINT"
ENV_SCHEDULER_ENDPOINT = "SCHEDULER_ENDPOINT"
WORKER_CONFIG_MOUNT = "/worker.json"
WORKER_SHARED_MOUNT = "/shared"

# -- Gateways --
GATEWAY_CACHE = topo_value("gateways", "cache", default="cache-gateway")
GATEWAY_SCHEDULER = topo_value("gateways", "scheduler", default="scheduler-gateway")

# -- Namespaces --
NS_DEFAULT = "default"

# -- Source defaults --
DEFAULT_OVERLAY = "./kubernetes/overlays/lre"
DEFAULT_REPO_URL = "https://github.com/TraceMachina/nativelink.git"
DEFAULT_BRANCH = "main"
DEFAULT_IMAGE_FLAKE_OUTPUT = "./src_root#image"
DEFAULT_WORKER_INIT_FLAKE_OUTPUT = "./src_root#nativelink-worker-init"
DEFAULT_WORKER_FLAKE_OUTPUT = "./src_root#nativelink-worker-lre-cc"

# -- Timeouts (seconds) --
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_RECONCILE_TIMEOUT_SECONDS = 15 * 60
DEFAULT_PIPELINE_CREATION_TIMEOUT_SECONDS = 30 * 60
DEFAULT_PIPELINE_TIMEOUT_SECONDS = 45 * 60
DEFAULT_ROLLOUT_TIMEOUT_SECONDS = 10 * 60
DEFAULT_KUBECTL_TIMEOUT_SECONDS = 30

# -- Smoke test defaults --
DEFAULT_INSTANCE_NAME = "main"
DEFAULT_SMOKE_TARGET = "@local-remote-execution//examples:hello_lre"
DEFAULT_BAZEL = "bazel"
DEFAULT_REMOTE_SCHEME = "grpc"
SMOKE_STDERR_TAIL_LINES = 40

# -- Diagnostics --
DIAGNOSTIC_LOG_TAIL_LINES = 200
