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

"""Bring-up subcommands (up, wait, gateways)."""

from __future__ import annotations

import typer

from lre_manager import console
from lre_manager.config import display_config, parse_image_overrides, resolve_config, resolve_smoke_config
from lre_manager.orchestrator import run_bringup

app = typer.Typer(help="Deploy the cluster and wait for it to become ready.")


@app.command()
def up(
    namespace: str | None = typer.Option(None, "--namespace", help="Namespace (overrides LRE_NAMESPACE)"),
    kube_context: str | None = typer.Option(None, "--context", help="kubectl context"),
    overlay: str | None = typer.Option(None, "--overlay", help="Overlay path (overrides LRE_OVERLAY)"),
    repo_url: str | None = typer.Option(None, "--repo-url", help="Source repository URL"),
    branch: str | None = typer.Option(None, "--branch", help="Source branch"),
    commit: str | None = typer.Option(None, "--commit", help="Source commit to pin"),
    image: list[str] | None = typer.Option(None, "--image", help="Image override as UNIT=IMAGE (repeatable)"),
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds between readiness checks"),
    wait_forever_for_pipeline: bool = typer.Option(
        False, "--wait-forever-for-pipeline", help="Wait without deadline for the rebuild pipeline to appear"),
    skip_smoke: bool = typer.Option(False, "--skip-smoke", help="Skip the smoke build"),
    instance_name: str | None = typer.Option(None, "--instance-name", help="Remote instance name"),
    target: str | None = typer.Option(None, "--target", help="Bazel target for the smoke build"),
    wrapper: str | None = typer.Option(None, "--wrapper", help="Command prefix, e.g. 'nix develop --impure --command'"),
    dump_state: bool = typer.Option(True, "--dump-state/--no-dump-state", help="Print cluster state before the smoke build"),
    dump_on_failure: bool = typer.Option(False, "--dump-on-failure", help="Print cluster state if any stage fails"),
) -> None:
    """Submit the configuration, wait for every stage, and run the smoke build."""
    cluster_cfg, source_cfg, timeout_cfg = resolve_config(
        namespace=namespace,
        kube_context=kube_context,
        overlay=overlay,
        repo_url=repo_url,
        branch=branch,
        commit=commit,
        poll_interval=poll_interval,
        wait_forever_for_pipeline=wait_forever_for_pipeline,
    )
    image_overrides = parse_image_overrides(image)
    display_config(cluster_cfg, source_cfg, timeout_cfg, image_overrides)

    report = run_bringup(
        cluster_cfg=cluster_cfg,
        source_cfg=source_cfg,
        timeout_cfg=timeout_cfg,
        smoke_cfg=None if skip_smoke else resolve_smoke_config(
            instance_name=instance_name, target=target, wrapper=wrapper),
        image_overrides=image_overrides,
        dump_state=dump_state,
        dump_on_failure=dump_on_failure,
    )
    console.print(f"[green]\u2705 Bring-up complete (cache={report.gateways.cache}, "
                  f"scheduler={report.gateways.scheduler})[/green]")


@app.command()
def wait(
    namespace: str | None = typer.Option(None, "--namespace", help="Namespace (overrides LRE_NAMESPACE)"),
    kube_context: str | None = typer.Option(None, "--context", help="kubectl context"),
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds between readiness checks"),
    wait_forever_for_pipeline: bool = typer.Option(
        False, "--wait-forever-for-pipeline", help="Wait without deadline for the rebuild pipeline to appear"),
    dump_on_failure: bool = typer.Option(False, "--dump-on-failure", help="Print cluster state if any stage fails"),
) -> None:
    """Wait for an already-submitted configuration; no smoke build."""
    cluster_cfg, _, timeout_cfg = resolve_config(
        namespace=namespace,
        kube_context=kube_context,
        poll_interval=poll_interval,
        wait_forever_for_pipeline=wait_forever_for_pipeline,
    )
    run_bringup(
        cluster_cfg=cluster_cfg,
        source_cfg=None,
        timeout_cfg=timeout_cfg,
        smoke_cfg=None,
        submit=False,
        dump_on_failure=dump_on_failure,
    )


@app.command()
def gateways(
    namespace: str | None = typer.Option(None, "--namespace", help="Namespace (overrides LRE_NAMESPACE)"),
    kube_context: str | None = typer.Option(None, "--context", help="kubectl context"),
) -> None:
    """Confirm readiness, then print ``cache_ip=`` and ``scheduler_ip=`` lines to stdout."""
    cluster_cfg, _, timeout_cfg = resolve_config(namespace=namespace, kube_context=kube_context)
    report = run_bringup(
        cluster_cfg=cluster_cfg,
        source_cfg=None,
        timeout_cfg=timeout_cfg,
        smoke_cfg=None,
        submit=False,
    )
    typer.echo(f"cache_ip={report.gateways.cache}")
    typer.echo(f"scheduler_ip={report.gateways.scheduler}")
