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

from lre_manager.diagnostics import diagnostic_commands, dump_cluster_state


class TestDiagnostics:

    def test_collects_logs_for_every_unit(self, topology):
        titles = [title for title, _, _ in diagnostic_commands(topology)]
        assert titles[:4] == ["services", "pods", "deployments", "gateways"]
        assert titles[4:] == ["storage logs", "scheduler logs", "worker logs"]

    def test_cluster_wide_queries_are_not_namespaced(self, topology):
        commands = {title: (args, namespaced) for title, args, namespaced in diagnostic_commands(topology)}
        assert commands["pods"] == (["get", "pod", "-A"], False)
        assert "app=nativelink-worker" in commands["worker logs"][0]
        assert commands["worker logs"][1] is True

    def test_dump_survives_failed_queries(self, topology):
        client = mock.Mock()
        client.kubectl.side_effect = [(False, "", "connection refused")] + [(True, "ok\n", "")] * 6
        dump_cluster_state(client, topology)
        assert client.kubectl.call_count == 7
