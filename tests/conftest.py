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

import os

import pytest

from lre_manager.config import TimeoutConfig
from lre_manager.topology import load_topology
from tests.factories import FakeClock, healthy_cluster


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep LRE_* variables from the developer's shell out of config tests."""
    for key in list(os.environ):
        if key.startswith("LRE_"):
            monkeypatch.delenv(key)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def topology():
    return load_topology()


@pytest.fixture()
def timeouts():
    return TimeoutConfig(
        poll_interval=2.0,
        reconcile_timeout=30.0,
        pipeline_creation_timeout=60.0,
        pipeline_timeout=120.0,
        rollout_timeout=20.0,
    )


@pytest.fixture()
def cluster():
    return healthy_cluster()
