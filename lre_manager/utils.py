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

"""Utility functions for kubectl invocation and command checks."""

from __future__ import annotations

import subprocess

import sh


def require_command(cmd: str) -> None:
    """Fail fast when a tool the bring-up shells out to is missing.

    Args:
        cmd: Executable name, e.g. ``kubectl`` or ``bazel``.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found on PATH.") from err


def kubectl_base_args(kube_context: str | None, namespace: str | None) -> list[str]:
    """Build the global kubectl flags for a context and namespace.

    Args:
        kube_context: kubectl context, or None for the current one.
        namespace: Namespace to scope the command to, or None.

    Returns:
        Flag list to prepend to a kubectl invocation.
    """
    args: list[str] = []
    if kube_context:
        args += ["--context", kube_context]
    if namespace:
        args += ["-n", namespace]
    return args


def run_kubectl(args: list[str], timeout: int = 30, stdin: str | None = None) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because readiness parsing needs stdout and
    stderr kept apart (NotFound detection reads stderr, JSON reads stdout).

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.
        stdin: Optional text fed to kubectl's standard input.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            input=stdin,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)
