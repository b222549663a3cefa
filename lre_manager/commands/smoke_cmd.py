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

"""Smoke test subcommands (run)."""

from __future__ import annotations

import typer

from lre_manager.config import resolve_smoke_config
from lre_manager.gateways import ResolvedGateways
from lre_manager.smoke import run_smoke_test

app = typer.Typer(help="Run the end-to-end smoke build.")


@app.command()
def run(
    cache: str = typer.Option(..., "--cache", help="Cache gateway address (host or host:port)"),
    scheduler: str = typer.Option(..., "--scheduler", help="Scheduler gateway address (host or host:port)"),
    instance_name: str | None = typer.Option(None, "--instance-name", help="Remote instance name"),
    target: str | None = typer.Option(None, "--target", help="Bazel target to build"),
    wrapper: str | None = typer.Option(None, "--wrapper", help="Command prefix, e.g. 'nix develop --impure --command'"),
) -> None:
    """Run the smoke build against explicit gateway addresses."""
    smoke_cfg = resolve_smoke_config(instance_name=instance_name, target=target, wrapper=wrapper)
    run_smoke_test(ResolvedGateways(cache=cache, scheduler=scheduler), smoke_cfg)
