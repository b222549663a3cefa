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

from __future__ import annotations

from types import SimpleNamespace
from unittest import mock

import pytest
import sh

from lre_manager import smoke
from lre_manager.config import SmokeConfig
from lre_manager.errors import SmokeTestFailed
from lre_manager.gateways import ResolvedGateways

GATEWAYS = ResolvedGateways(cache="172.20.255.200", scheduler="172.20.255.201")


def _patch_sh(monkeypatch, command):
    factory = mock.Mock(return_value=command)
    monkeypatch.setattr(smoke, "sh", SimpleNamespace(Command=factory, ErrorReturnCode=sh.ErrorReturnCode))
    return factory


class TestBuildSmokeCommand:

    def test_defaults(self):
        argv = smoke.build_smoke_command(GATEWAYS, SmokeConfig())
        assert argv == [
            "bazel",
            "run",
            "--remote_instance_name=main",
            "--remote_cache=grpc://172.20.255.200",
            "--remote_executor=grpc://172.20.255.201",
            "--verbose_failures",
            "@local-remote-execution//examples:hello_lre",
        ]

    def test_wrapper_prefixes_bazel(self):
        cfg = SmokeConfig(wrapper="nix develop --impure --command")
        argv = smoke.build_smoke_command(GATEWAYS, cfg)
        assert argv[:5] == ["nix", "develop", "--impure", "--command", "bazel"]

    def test_instance_name_and_scheme(self):
        cfg = SmokeConfig(instance_name="lre", scheme="grpcs")
        argv = smoke.build_smoke_command(GATEWAYS, cfg)
        assert "--remote_instance_name=lre" in argv
        assert "--remote_cache=grpcs://172.20.255.200" in argv


class TestRunSmokeTest:

    def test_success_returns_output(self, monkeypatch):
        command = mock.Mock(return_value="Hello, LRE!\n")
        factory = _patch_sh(monkeypatch, command)
        assert smoke.run_smoke_test(GATEWAYS, SmokeConfig()) == "Hello, LRE!\n"
        factory.assert_called_once_with("bazel")
        assert command.call_args.args[0] == "run"

    def test_failure_raises_with_stderr_tail(self, monkeypatch):
        stderr = "\n".join(f"line {i}" for i in range(100)).encode()
        command = mock.Mock(side_effect=sh.ErrorReturnCode_1("bazel run", b"", stderr))
        _patch_sh(monkeypatch, command)
        with pytest.raises(SmokeTestFailed) as excinfo:
            smoke.run_smoke_test(GATEWAYS, SmokeConfig())
        assert excinfo.value.exit_code == 1
        lines = excinfo.value.stderr_tail.splitlines()
        assert len(lines) == 40
        assert lines[-1] == "line 99"
