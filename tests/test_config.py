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

"""Config precedence: CLI over LRE_* environment over defaults."""

from __future__ import annotations

import pytest
import typer
from pydantic import ValidationError

from lre_manager.config import (
    SourceConfig,
    TimeoutConfig,
    parse_image_overrides,
    resolve_config,
    resolve_smoke_config,
)


class TestResolveConfig:

    def test_defaults(self):
        cluster, source, timeout = resolve_config()
        assert cluster.namespace == "default"
        assert cluster.kube_context is None
        assert source.overlay == "./kubernetes/overlays/lre"
        assert source.branch == "main"
        assert source.commit is None
        assert timeout.poll_interval == 2.0
        assert timeout.pipeline_creation_deadline == 30 * 60

    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("LRE_NAMESPACE", "lre")
        monkeypatch.setenv("LRE_BRANCH", "release")
        monkeypatch.setenv("LRE_ROLLOUT_TIMEOUT", "42")
        cluster, source, timeout = resolve_config()
        assert cluster.namespace == "lre"
        assert source.branch == "release"
        assert timeout.rollout_timeout == 42

    def test_cli_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("LRE_NAMESPACE", "lre")
        monkeypatch.setenv("LRE_BRANCH", "release")
        monkeypatch.setenv("LRE_OVERLAY", "./kubernetes/overlays/env")
        cluster, source, _ = resolve_config(namespace="ci", branch="feature")
        assert cluster.namespace == "ci"
        assert source.branch == "feature"
        assert source.overlay == "./kubernetes/overlays/env"

    def test_invalid_commit_rejected(self):
        with pytest.raises(ValidationError):
            resolve_config(commit="not-a-sha")

    def test_invalid_repo_url_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig(repo_url="github.com/TraceMachina/nativelink")

    def test_wait_forever_for_pipeline(self):
        _, _, timeout = resolve_config(wait_forever_for_pipeline=True)
        assert timeout.pipeline_creation_deadline is None

    def test_poll_interval_override(self):
        _, _, timeout = resolve_config(poll_interval=0.5)
        assert timeout.poll_interval == 0.5

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ValidationError):
            TimeoutConfig(poll_interval=0)

    @pytest.mark.parametrize("interval", [0.0, -1.0])
    def test_cli_interval_is_validated(self, interval):
        with pytest.raises(ValidationError):
            resolve_config(poll_interval=interval)

    def test_cli_interval_is_validated_with_unbounded_wait(self):
        with pytest.raises(ValidationError):
            resolve_config(poll_interval=-1.0, wait_forever_for_pipeline=True)

    def test_cli_overrides_keep_env_for_other_fields(self, monkeypatch):
        monkeypatch.setenv("LRE_KUBECTL_TIMEOUT", "7")
        monkeypatch.setenv("LRE_REPO_URL", "https://example.com/fork.git")
        cluster, source, _ = resolve_config(namespace="ci", branch="feature")
        assert cluster.kubectl_timeout == 7
        assert source.repo_url == "https://example.com/fork.git"


class TestSmokeConfig:

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("LRE_SMOKE_TARGET", "//foo:bar")
        monkeypatch.setenv("LRE_SMOKE_INSTANCE_NAME", "lre")
        cfg = resolve_smoke_config(instance_name="ci")
        assert cfg.target == "//foo:bar"
        assert cfg.instance_name == "ci"

    def test_empty_instance_name_rejected(self):
        with pytest.raises(ValidationError):
            resolve_smoke_config(instance_name="")

    def test_env_scheme_is_validated(self, monkeypatch):
        monkeypatch.setenv("LRE_SMOKE_SCHEME", "http")
        with pytest.raises(ValidationError):
            resolve_smoke_config(target="//foo:bar")


class TestParseImageOverrides:

    def test_parses_pairs(self):
        assert parse_image_overrides(["nativelink-worker=ghcr.io/me/worker:dev", "nativelink-cas=cas:1"]) == {
            "nativelink-worker": "ghcr.io/me/worker:dev",
            "nativelink-cas": "cas:1",
        }

    def test_none(self):
        assert parse_image_overrides(None) == {}

    @pytest.mark.parametrize("raw", ["nativelink-worker", "=image", "nativelink-worker="])
    def test_malformed(self, raw):
        with pytest.raises(typer.BadParameter):
            parse_image_overrides([raw])
