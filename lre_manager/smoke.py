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

"""End-to-end smoke build through the resolved gateways."""

from __future__ import annotations

import shlex

import sh
from rich.panel import Panel

from lre_manager import console, logger
from lre_manager.config import SmokeConfig
from lre_manager.constants import SMOKE_STDERR_TAIL_LINES
from lre_manager.errors import SmokeTestFailed
from lre_manager.gateways import ResolvedGateways


def build_smoke_command(gateways: ResolvedGateways, smoke_cfg: SmokeConfig) -> list[str]:
    """Build the argv for one remote build of the smoke target.

    Args:
        gateways: Resolved cache and scheduler addresses.
        smoke_cfg: Instance name, target, bazel binary, and optional wrapper.

    Returns:
        Full argv, wrapper first when one is configured.
    """
    return [
        *shlex.split(smoke_cfg.wrapper),
        smoke_cfg.bazel,
        "run",
        f"--remote_instance_name={smoke_cfg.instance_name}",
        f"--remote_cache={smoke_cfg.scheme}://{gateways.cache}",
        f"--remote_executor={smoke_cfg.scheme}://{gateways.scheduler}",
        "--verbose_failures",
        smoke_cfg.target,
    ]


def _tail(text: bytes | str, lines: int = SMOKE_STDERR_TAIL_LINES) -> str:
    if isinstance(text, bytes):
        text = text.decode(errors="replace")
    return "\n".join(text.splitlines()[-lines:])


def run_smoke_test(gateways: ResolvedGateways, smoke_cfg: SmokeConfig) -> str:
    """Run the smoke build and require it to succeed.

    Args:
        gateways: Resolved cache and scheduler addresses.
        smoke_cfg: Smoke build settings.

    Returns:
        The build's standard output.

    Raises:
        SmokeTestFailed: If the build exits non-zero.
    """
    argv = build_smoke_command(gateways, smoke_cfg)
    console.print(Panel.fit(f"Running smoke test ({smoke_cfg.target})", style="bold blue"))
    logger.info("Smoke command: %s", shlex.join(argv))
    try:
        output = sh.Command(argv[0])(*argv[1:])
    except sh.ErrorReturnCode as err:
        tail = _tail(err.stderr)
        console.print(tail, style="red", markup=False, highlight=False)
        raise SmokeTestFailed(err.exit_code, tail) from err
    console.print("[green]\u2705 Smoke test passed[/green]")
    return str(output)
