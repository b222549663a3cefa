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

import pytest

from lre_manager.bringup import Stage
from lre_manager.constants import KIND_GATEWAY
from lre_manager.errors import BringupIncomplete, GatewayUnresolved
from lre_manager.gateways import read_gateway, resolve_gateways
from tests.factories import gateway


class TestResolveGateways:

    def test_resolves_both_addresses(self, cluster):
        resolved = resolve_gateways(cluster, SimpleNamespace(state=Stage.READY))
        assert resolved.cache == "172.20.255.200"
        assert resolved.scheduler == "172.20.255.201"

    @pytest.mark.parametrize("state", [Stage.ROLLOUT, Stage.FAILED, Stage.SUBMIT_CONFIGURATION])
    def test_refuses_before_ready(self, cluster, state):
        with pytest.raises(BringupIncomplete, match=state.value):
            resolve_gateways(cluster, SimpleNamespace(state=state))
        assert cluster.queries == []

    def test_empty_address_is_unresolved(self, cluster):
        cluster.script(KIND_GATEWAY, "scheduler-gateway", [gateway("scheduler-gateway", None)])
        with pytest.raises(GatewayUnresolved) as excinfo:
            resolve_gateways(cluster, SimpleNamespace(state=Stage.READY))
        assert excinfo.value.gateway == "scheduler-gateway"

    def test_unresolved_is_not_retried(self, cluster):
        cluster.script(KIND_GATEWAY, "cache-gateway", [gateway("cache-gateway", None)])
        with pytest.raises(GatewayUnresolved):
            resolve_gateways(cluster, SimpleNamespace(state=Stage.READY))
        assert cluster.queries == [(KIND_GATEWAY, "cache-gateway")]

    def test_custom_gateway_names(self, cluster):
        cluster.script(KIND_GATEWAY, "cas-gw", [gateway("cas-gw", "10.0.0.1")])
        resolved = resolve_gateways(cluster, SimpleNamespace(state=Stage.READY), cache_gateway="cas-gw")
        assert resolved.cache == "10.0.0.1"


class TestReadGateway:

    def test_missing_gateway(self, cluster):
        assert read_gateway(cluster, "nope").address is None

    def test_takes_first_address(self, cluster):
        doc = gateway("cache-gateway", "10.0.0.1")
        doc["status"]["addresses"].append({"type": "Hostname", "value": "cache.example"})
        cluster.script(KIND_GATEWAY, "cache-gateway", [doc])
        assert read_gateway(cluster, "cache-gateway").address == "10.0.0.1"
