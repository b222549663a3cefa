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

from unittest import mock

import pytest
import yaml
from typer.testing import CliRunner

import cli
from cli import app
from lre_manager.commands import bringup_cmd, smoke_cmd
from lre_manager.errors import BringupTimedOut
from lre_manager.gateways import ResolvedGateways
from lre_manager.orchestrator import BringupReport

runner = CliRunner()


class TestManifestRender:

    def test_renders_manifest(self):
        result = runner.invoke(app, ["manifest", "render", "--branch", "feature", "--commit", "0123abc"])
        assert result.exit_code == 0
        docs = list(yaml.safe_load_all(result.stdout))
        repo = next(d for d in docs if d["kind"] == "GitRepository")
        assert repo["spec"]["ref"] == {"branch": "feature", "commit": "0123abc"}

    def test_renders_kustomization(self):
        result = runner.invoke(app, ["manifest", "render", "--kustomize"])
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["kind"] == "Kustomization"

    def test_malformed_image_override(self):
        result = runner.invoke(app, ["manifest", "render", "--image", "nativelink-worker"])
        assert result.exit_code != 0


class TestBringupCommands:

    def test_gateways_prints_addresses(self, monkeypatch):
        report = BringupReport(gateways=ResolvedGateways(cache="10.0.0.1", scheduler="10.0.0.2"))
        run = mock.Mock(return_value=report)
        monkeypatch.setattr(bringup_cmd, "run_bringup", run)
        result = runner.invoke(app, ["bringup", "gateways", "--namespace", "lre"])
        assert result.exit_code == 0
        assert "cache_ip=10.0.0.1\nscheduler_ip=10.0.0.2\n" in result.stdout
        assert run.call_args.kwargs["submit"] is False
        assert run.call_args.kwargs["cluster_cfg"].namespace == "lre"

    def test_up_skip_smoke(self, monkeypatch):
        report = BringupReport(gateways=ResolvedGateways(cache="10.0.0.1", scheduler="10.0.0.2"))
        run = mock.Mock(return_value=report)
        monkeypatch.setattr(bringup_cmd, "run_bringup", run)
        result = runner.invoke(app, ["bringup", "up", "--skip-smoke", "--image", "nativelink-cas=cas:dev"])
        assert result.exit_code == 0
        assert run.call_args.kwargs["smoke_cfg"] is None
        assert run.call_args.kwargs["image_overrides"] == {"nativelink-cas": "cas:dev"}


class TestSmokeCommand:

    def test_run_uses_given_gateways(self, monkeypatch):
        run = mock.Mock(return_value="ok")
        monkeypatch.setattr(smoke_cmd, "run_smoke_test", run)
        result = runner.invoke(app, ["smoke", "run", "--cache", "10.0.0.1", "--scheduler", "10.0.0.2"])
        assert result.exit_code == 0
        gateways, smoke_cfg = run.call_args.args
        assert gateways == ResolvedGateways(cache="10.0.0.1", scheduler="10.0.0.2")
        assert smoke_cfg.instance_name == "main"


class TestMainExitCode:

    @pytest.fixture()
    def printed(self, monkeypatch):
        console = mock.Mock()
        monkeypatch.setattr(cli, "console", console)
        monkeypatch.setattr(cli.sys, "argv", ["lre-manager", "bringup", "up", "--skip-smoke"])
        return console

    def test_stage_timeout_exits_one_with_red_line(self, monkeypatch, printed):
        timed_out = BringupTimedOut("core-resources", "kustomizations nativelink", "not ready after 900s")
        monkeypatch.setattr(bringup_cmd, "run_bringup", mock.Mock(side_effect=timed_out))
        with pytest.raises(SystemExit) as exc:
            cli.main()
        assert exc.value.code == 1
        line = printed.print.call_args.args[0]
        assert line.startswith("[red]\u274c Stage core-resources failed")
        assert "not ready after 900s" in line

    def test_success_exits_zero(self, monkeypatch, printed):
        report = BringupReport(gateways=ResolvedGateways(cache="10.0.0.1", scheduler="10.0.0.2"))
        monkeypatch.setattr(bringup_cmd, "run_bringup", mock.Mock(return_value=report))
        with pytest.raises(SystemExit) as exc:
            cli.main()
        assert exc.value.code == 0
        printed.print.assert_not_called()
