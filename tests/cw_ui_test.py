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

"""Tests for cargo_workspace.ui."""

from __future__ import annotations

import io

from cargo_workspace.graph import build_graph, topo_sort
from cargo_workspace.observer import PublishStage
from cargo_workspace.scheduler import SchedulerResult
from cargo_workspace.ui import LogProgressUI, print_plan, print_summary
from rich.console import Console
from tests._fakes import make_record


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=120, color_system=None), buf


class TestPrintPlan:
    """Tests for print_plan."""

    def test_rows_in_publish_order(self) -> None:
        """Packages appear in publish order with their dependencies."""
        graph = build_graph([
            make_record('app', deps=['core']),
            make_record('core'),
            make_record('docs', publishable=False),
        ])
        console, buf = _console()

        print_plan(topo_sort(graph), graph, console=console)

        out = buf.getvalue()
        assert out.index('core') < out.index('app')
        assert 'no' in out


class TestPrintSummary:
    """Tests for print_summary."""

    def test_outcomes(self) -> None:
        """Each package shows its outcome; markup in causes is escaped."""
        graph = build_graph([
            make_record('utils'),
            make_record('core', deps=['utils']),
            make_record('app', deps=['core']),
        ])
        result = SchedulerResult(
            published=['utils'],
            failed={'core': 'error: [bold]boom[/bold]\nmore detail'},
        )
        console, buf = _console()

        print_summary(topo_sort(graph), result, console=console)

        out = buf.getvalue()
        assert '1 published, 1 failed' in out
        assert '[bold]boom[/bold]' in out
        assert 'more detail' not in out
        assert 'not attempted' in out


class TestLogProgressUI:
    """Tests for LogProgressUI."""

    def test_tracks_stages(self) -> None:
        """Stage changes update the per-package rows."""
        with LogProgressUI() as ui:
            ui.init_packages([('utils', '0.1.0'), ('core', '0.1.0')])
            ui.on_stage('utils', PublishStage.PUBLISHING)
            ui.on_stage('utils', PublishStage.PUBLISHED)
            ui.on_error('core', 'boom')
            ui.on_stage('ghost', PublishStage.PUBLISHED)
            ui.on_complete()

        rows = ui._packages  # noqa: SLF001 - inspecting internal state
        assert rows['utils'].stage == PublishStage.PUBLISHED
        assert rows['utils'].elapsed_str.endswith('s')
        assert rows['core'].stage == PublishStage.FAILED
        assert 'ghost' not in rows
