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

"""Manifest subcommands (render)."""

from __future__ import annotations

import typer

from lre_manager.config import parse_image_overrides, resolve_config
from lre_manager.manifest import build_patches, render_kustomization
from lre_manager.orchestrator import compose_from_config

app = typer.Typer(help="Compose deployment manifests.")


@app.command()
def render(
    overlay: str | None = typer.Option(None, "--overlay", help="Overlay path (overrides LRE_OVERLAY)"),
    repo_url: str | None = typer.Option(None, "--repo-url", help="Source repository URL"),
    branch: str | None = typer.Option(None, "--branch", help="Source branch"),
    commit: str | None = typer.Option(None, "--commit", help="Source commit to pin"),
    image: list[str] | None = typer.Option(None, "--image", help="Image override as UNIT=IMAGE (repeatable)"),
    kustomize: bool = typer.Option(
        False, "--kustomize", help="Print the equivalent kustomization.yaml instead"),
) -> None:
    """Print the composed manifest to stdout without touching the cluster."""
    _, source_cfg, _ = resolve_config(overlay=overlay, repo_url=repo_url, branch=branch, commit=commit)
    image_overrides = parse_image_overrides(image)
    if kustomize:
        typer.echo(render_kustomization(build_patches(source_cfg, image_overrides)), nl=False)
    else:
        typer.echo(compose_from_config(source_cfg, image_overrides), nl=False)
