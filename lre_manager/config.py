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

"""Configuration classes, config resolution, and display."""

from __future__ import annotations

import typer
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from lre_manager import console, logger
from lre_manager.constants import (
    DEFAULT_BAZEL,
    DEFAULT_BRANCH,
    DEFAULT_IMAGE_FLAKE_OUTPUT,
    DEFAULT_INSTANCE_NAME,
    DEFAULT_KUBECTL_TIMEOUT_SECONDS,
    DEFAULT_OVERLAY,
    DEFAULT_PIPELINE_CREATION_TIMEOUT_SECONDS,
    DEFAULT_PIPELINE_TIMEOUT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RECONCILE_TIMEOUT_SECONDS,
    DEFAULT_REMOTE_SCHEME,
    DEFAULT_REPO_URL,
    DEFAULT_ROLLOUT_TIMEOUT_SECONDS,
    DEFAULT_SMOKE_TARGET,
    DEFAULT_WORKER_FLAKE_OUTPUT,
    DEFAULT_WORKER_INIT_FLAKE_OUTPUT,
    NS_DEFAULT,
)


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """Control-plane access, auto-loaded from LRE_* env vars.

    Attributes:
        namespace: Namespace holding the deployed resources.
        kube_context: kubectl context to use, or None for the current one.
        kubectl_timeout: Per-invocation kubectl timeout in seconds.
    """

    model_config = SettingsConfigDict(env_prefix="LRE_", extra="ignore")

    namespace: str = NS_DEFAULT
    kube_context: str | None = None
    kubectl_timeout: int = Field(default=DEFAULT_KUBECTL_TIMEOUT_SECONDS, ge=1)


class SourceConfig(BaseSettings):
    """Patch values for the composed manifest, auto-loaded from LRE_* env vars.

    Attributes:
        overlay: Overlay path the application Kustomization deploys.
        repo_url: Git repository Flux pulls manifests and sources from.
        branch: Branch to track.
        commit: Commit to pin, or None to follow the branch head.
        image_flake_output: Build artifact for the CAS/scheduler image.
        worker_init_flake_output: Build artifact for the worker init image.
        worker_flake_output: Build artifact for the worker image.
    """

    model_config = SettingsConfigDict(env_prefix="LRE_", extra="ignore")

    overlay: str = DEFAULT_OVERLAY
    repo_url: str = Field(default=DEFAULT_REPO_URL, pattern=r"^(https?|ssh)://\S+$")
    branch: str = Field(default=DEFAULT_BRANCH, min_length=1)
    commit: str | None = Field(default=None, pattern=r"^[0-9a-f]{7,40}$")
    image_flake_output: str = DEFAULT_IMAGE_FLAKE_OUTPUT
    worker_init_flake_output: str = DEFAULT_WORKER_INIT_FLAKE_OUTPUT
    worker_flake_output: str = DEFAULT_WORKER_FLAKE_OUTPUT


class TimeoutConfig(BaseSettings):
    """Polling cadence and per-stage deadlines, auto-loaded from LRE_* env vars.

    All durations are in seconds.

    Attributes:
        poll_interval: Fixed delay between readiness queries.
        reconcile_timeout: Deadline for each Flux Kustomization to become Ready.
        pipeline_creation_timeout: Deadline for the rebuild PipelineRun to appear.
        wait_forever_for_pipeline_creation: Opt in to an unbounded creation wait.
        pipeline_timeout: Deadline for the rebuild PipelineRun to succeed.
        rollout_timeout: Deadline for each Deployment rollout.
    """

    model_config = SettingsConfigDict(env_prefix="LRE_", extra="ignore")

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    reconcile_timeout: float = Field(default=DEFAULT_RECONCILE_TIMEOUT_SECONDS, gt=0)
    pipeline_creation_timeout: float = Field(default=DEFAULT_PIPELINE_CREATION_TIMEOUT_SECONDS, gt=0)
    wait_forever_for_pipeline_creation: bool = False
    pipeline_timeout: float = Field(default=DEFAULT_PIPELINE_TIMEOUT_SECONDS, gt=0)
    rollout_timeout: float = Field(default=DEFAULT_ROLLOUT_TIMEOUT_SECONDS, gt=0)

    @property
    def pipeline_creation_deadline(self) -> float | None:
        """Creation deadline, or None when the unbounded wait was requested."""
        if self.wait_forever_for_pipeline_creation:
            return None
        return self.pipeline_creation_timeout


class SmokeConfig(BaseSettings):
    """Smoke build settings, auto-loaded from LRE_SMOKE_* env vars.

    Attributes:
        instance_name: Remote instance name passed to the build.
        target: Bazel target to run.
        bazel: Bazel executable.
        wrapper: Command prefix such as ``nix develop --impure --command``.
        scheme: URL scheme for the remote cache and executor endpoints.
    """

    model_config = SettingsConfigDict(env_prefix="LRE_SMOKE_", extra="ignore")

    instance_name: str = Field(default=DEFAULT_INSTANCE_NAME, min_length=1)
    target: str = DEFAULT_SMOKE_TARGET
    bazel: str = DEFAULT_BAZEL
    wrapper: str = ""
    scheme: str = Field(default=DEFAULT_REMOTE_SCHEME, pattern=r"^(grpc|grpcs)$")


# ============================================================================
# Config resolution
# ============================================================================

def parse_image_overrides(values: list[str] | None) -> dict[str, str]:
    """Parse ``unit=image`` CLI values into a mapping.

    Args:
        values: Raw option values, or None.

    Returns:
        Mapping of deployment name to image reference, in CLI order.

    Raises:
        typer.BadParameter: If a value is not of the form ``unit=image``.
    """
    overrides: dict[str, str] = {}
    for raw in values or []:
        unit, sep, image = raw.partition("=")
        if not sep or not unit or not image:
            raise typer.BadParameter(f"--image expects UNIT=IMAGE, got '{raw}'")
        overrides[unit] = image
    return overrides


def resolve_config(
    *,
    namespace: str | None = None,
    kube_context: str | None = None,
    overlay: str | None = None,
    repo_url: str | None = None,
    branch: str | None = None,
    commit: str | None = None,
    poll_interval: float | None = None,
    wait_forever_for_pipeline: bool = False,
) -> tuple[ClusterConfig, SourceConfig, TimeoutConfig]:
    """Merge CLI overrides, environment variables, and defaults into config objects.

    Resolution priority: CLI arguments > LRE_* environment variables > defaults.

    Returns:
        Tuple of (ClusterConfig, SourceConfig, TimeoutConfig).
    """
    cluster_overrides = {
        key: value
        for key, value in (("namespace", namespace), ("kube_context", kube_context))
        if value is not None
    }
    source_overrides = {
        key: value
        for key, value in (("overlay", overlay), ("repo_url", repo_url), ("branch", branch), ("commit", commit))
        if value is not None
    }
    timeout_overrides: dict[str, object] = {}
    if poll_interval is not None:
        timeout_overrides["poll_interval"] = poll_interval
    if wait_forever_for_pipeline:
        logger.warning("Pipeline creation wait is unbounded; a missing trigger will hang the run")
        timeout_overrides["wait_forever_for_pipeline_creation"] = True

    # Init kwargs win over env and go through the same Field validation.
    return (
        ClusterConfig(**cluster_overrides),
        SourceConfig(**source_overrides),
        TimeoutConfig(**timeout_overrides),
    )


def resolve_smoke_config(
    *,
    instance_name: str | None = None,
    target: str | None = None,
    wrapper: str | None = None,
) -> SmokeConfig:
    """Apply CLI overrides on top of LRE_SMOKE_* environment variables and defaults."""
    overrides = {
        key: value
        for key, value in (("instance_name", instance_name), ("target", target), ("wrapper", wrapper))
        if value is not None
    }
    return SmokeConfig(**overrides)


# ============================================================================
# Display
# ============================================================================

def _fmt_seconds(value: float | None) -> str:
    return "unbounded" if value is None else f"{value:g}s"


def display_config(
    cluster_cfg: ClusterConfig,
    source_cfg: SourceConfig,
    timeout_cfg: TimeoutConfig,
    image_overrides: dict[str, str] | None = None,
) -> None:
    """Print the effective configuration for this run.

    Args:
        cluster_cfg: Control-plane access settings.
        source_cfg: Patch values for the composed manifest.
        timeout_cfg: Polling cadence and stage deadlines.
        image_overrides: Optional per-unit image overrides.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))

    console.print("[yellow]Cluster:[/yellow]")
    console.print(f"  namespace          : {cluster_cfg.namespace}")
    console.print(f"  kube_context       : {cluster_cfg.kube_context or '(current)'}")

    console.print("[yellow]Source:[/yellow]")
    console.print(f"  overlay            : {source_cfg.overlay}")
    console.print(f"  repo_url           : {source_cfg.repo_url}")
    console.print(f"  branch             : {source_cfg.branch}")
    console.print(f"  commit             : {source_cfg.commit or '(branch head)'}")
    for unit, image in (image_overrides or {}).items():
        console.print(f"  image[{unit}] : {image}")

    console.print("[yellow]Timeouts:[/yellow]")
    console.print(f"  poll_interval      : {_fmt_seconds(timeout_cfg.poll_interval)}")
    console.print(f"  reconcile          : {_fmt_seconds(timeout_cfg.reconcile_timeout)}")
    console.print(f"  pipeline_creation  : {_fmt_seconds(timeout_cfg.pipeline_creation_deadline)}")
    console.print(f"  pipeline           : {_fmt_seconds(timeout_cfg.pipeline_timeout)}")
    console.print(f"  rollout            : {_fmt_seconds(timeout_cfg.rollout_timeout)}")
