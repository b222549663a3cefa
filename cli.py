#!/usr/bin/env python3
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

"""
cli.py - Bring up a NativeLink remote-execution cluster and smoke test it.

Subcommands:
    manifest   Compose deployment manifests (render)
    bringup    Deploy and wait for readiness (up, wait, gateways)
    smoke      Run the smoke build against known gateways (run)

Examples:
    # Full bring-up followed by the smoke build
    ./cli.py bringup up

    # Pin a commit and swap the worker image
    ./cli.py bringup up --commit 0123abc --image nativelink-worker=ghcr.io/me/worker:dev

    # Print the composed manifest without touching the cluster
    ./cli.py manifest render --branch my-feature

    # Print gateway addresses of a cluster that is already up
    ./cli.py bringup gateways

For detailed usage information, run: ./cli.py --help
"""

from __future__ import annotations

import logging
import sys

import typer

from lre_manager import console
from lre_manager.commands import bringup_cmd, manifest_cmd, smoke_cmd

app = typer.Typer(
    help="Bring up a NativeLink remote-execution cluster and smoke test it.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(manifest_cmd.app, name="manifest")
app.add_typer(bringup_cmd.app, name="bringup")
app.add_typer(smoke_cmd.app, name="smoke")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
