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

"""Backends for the external collaborators of the publish scheduler.

- :func:`run_command` / :class:`CommandResult`: subprocess runner.
- :class:`CargoPublisher`: ``cargo publish`` (the publish action).
- :class:`CargoSearchCheck`: ``cargo search`` already-published check.
- :class:`CratesIoRegistry`: crates.io API already-published check.
"""

from cargo_workspace.backends._run import CommandResult, run_command
from cargo_workspace.backends.cargo import CargoPublisher, CargoSearchCheck
from cargo_workspace.backends.crates_io import CratesIoRegistry

__all__ = [
    'CargoPublisher',
    'CargoSearchCheck',
    'CommandResult',
    'CratesIoRegistry',
    'run_command',
]
