# Copyright 2026 Google LLC
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
#
# SPDX-License-Identifier: Apache-2.0

"""Shared test fakes for cargo-workspace.

Provides recording fakes for the publish action and the
already-published check, so scheduler tests never shell out to cargo,
plus builders for package records and on-disk workspaces.

Usage::

    from tests._fakes import FakeCheck, FakePublisher

    publisher = FakePublisher(fail={'core'})
    check = FakeCheck(published={'utils'})
"""

from tests._fakes._cargo import (
    WS_ROOT as WS_ROOT,
    make_plan as make_plan,
    make_record as make_record,
    write_workspace as write_workspace,
)
from tests._fakes._publisher import FakeCheck as FakeCheck, FakePublisher as FakePublisher, fake_result as fake_result

__all__ = [
    'WS_ROOT',
    'FakeCheck',
    'FakePublisher',
    'fake_result',
    'make_plan',
    'make_record',
    'write_workspace',
]
