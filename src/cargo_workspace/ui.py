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

"""Progress reporting and terminal tables for publish runs.

Observers::

    scheduler.py                    ui.py
    ┌──────────────┐    callback    ┌────────────────────┐
    │ publish_plan │───────────────▶│ LogProgressUI (CLI)│
    │              │                │ NullProgressUI     │
    └──────────────┘                └────────────────────┘

Tables (rich)::

    print_plan()      publish order for ``cargo-workspace list``
    print_summary()   per-package outcome after ``cargo-workspace publish``
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from types import TracebackType
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cargo_workspace.logging import get_logger
from cargo_workspace.observer import PublishObserver, PublishStage

if TYPE_CHECKING:
    from cargo_workspace.graph import DependencyGraph, PublishPlan
    from cargo_workspace.scheduler import SchedulerResult

logger = get_logger(__name__)

# Emoji and color for each stage.
_STAGE_DISPLAY: dict[PublishStage, tuple[str, str]] = {
    PublishStage.WAITING: ('⏳', 'dim'),
    PublishStage.CHECKING: ('🔍', 'cyan'),
    PublishStage.PUBLISHING: ('📤', 'cyan'),
    PublishStage.PUBLISHED: ('✅', 'green'),
    PublishStage.DRY_RUN: ('🧪', 'magenta'),
    PublishStage.FAILED: ('❌', 'red bold'),
    PublishStage.SKIPPED: ('⏭️ ', 'dim'),
}

_TERMINAL_STAGES = frozenset({
    PublishStage.PUBLISHED,
    PublishStage.DRY_RUN,
    PublishStage.FAILED,
    PublishStage.SKIPPED,
})


@dataclass
class _PackageRow:
    """Internal tracking for one package."""

    name: str
    version: str
    stage: PublishStage = PublishStage.WAITING
    start_time: float | None = None
    end_time: float | None = None

    @property
    def elapsed_str(self) -> str:
        """Formatted elapsed time string."""
        if self.start_time is None:
            return '-'
        end = self.end_time if self.end_time is not None else time.monotonic()
        return f'{end - self.start_time:.1f}s'


class NullProgressUI(PublishObserver):
    """No-op observer for tests and library use."""

    def __enter__(self) -> NullProgressUI:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""


@dataclass
class LogProgressUI(PublishObserver):
    """Structured-log observer: one log line per stage transition."""

    _packages: dict[str, _PackageRow] = field(default_factory=dict)

    def __enter__(self) -> LogProgressUI:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""

    def init_packages(self, packages: Sequence[tuple[str, str]]) -> None:
        """Register packages."""
        for name, version in packages:
            self._packages[name] = _PackageRow(name=name, version=version)

    def on_stage(self, name: str, stage: PublishStage, *, reason: str = '') -> None:
        """Log the stage transition."""
        row = self._packages.get(name)
        if row is None:
            return
        row.stage = stage
        if stage not in {PublishStage.WAITING, PublishStage.SKIPPED} and row.start_time is None:
            row.start_time = time.monotonic()
        if stage in _TERMINAL_STAGES:
            row.end_time = time.monotonic()
        emoji, _ = _STAGE_DISPLAY[stage]
        logger.info(
            'stage_change',
            package=name,
            version=row.version,
            stage=f'{emoji} {stage.value}',
            reason=reason or None,
            elapsed=row.elapsed_str,
        )

    def on_error(self, name: str, error: str) -> None:
        """Mark the package failed."""
        row = self._packages.get(name)
        if row is not None:
            row.stage = PublishStage.FAILED
            row.end_time = time.monotonic()
        logger.error('package_error', package=name, error=error)

    def on_complete(self) -> None:
        """Log completion counts per stage."""
        counts = {stage.value: 0 for stage in PublishStage}
        for row in self._packages.values():
            counts[row.stage.value] += 1
        logger.info('publish_ui_complete', total=len(self._packages), **counts)


def print_plan(plan: PublishPlan, graph: DependencyGraph, *, console: Console | None = None) -> None:
    """Print the publish order as a table."""
    console = console or Console()
    table = Table(title='Publish order', title_justify='left')
    table.add_column('#', justify='right', style='dim')
    table.add_column('Package', style='bold')
    table.add_column('Version')
    table.add_column('Publish')
    table.add_column('Workspace deps', style='dim')
    for pos, pkg in enumerate(plan, start=1):
        table.add_row(
            str(pos),
            pkg.name,
            pkg.version,
            '[green]yes[/green]' if pkg.publishable else '[yellow]no[/yellow]',
            ', '.join(graph.dependencies_of(pkg.name)) or '-',
        )
    console.print(table)


def print_summary(plan: PublishPlan, result: SchedulerResult, *, console: Console | None = None) -> None:
    """Print the per-package outcome of a publish run."""
    console = console or Console(stderr=True)
    table = Table(title=f'Publish summary: {result.summary()}', title_justify='left')
    table.add_column('Package', style='bold')
    table.add_column('Version')
    table.add_column('Result')
    for pkg in plan:
        if pkg.name in result.failed:
            stage, note = PublishStage.FAILED, result.failed[pkg.name].splitlines()[0]
        elif pkg.name in result.published:
            stage, note = PublishStage.PUBLISHED, ''
        elif pkg.name in result.dry_run:
            stage, note = PublishStage.DRY_RUN, ''
        elif pkg.name in result.skipped:
            stage, note = PublishStage.SKIPPED, result.skipped[pkg.name]
        else:
            stage, note = PublishStage.WAITING, 'not attempted'
        emoji, style = _STAGE_DISPLAY[stage]
        label = f'{emoji} [{style}]{stage.value}[/{style}]'
        table.add_row(pkg.name, pkg.version, f'{label} ({escape(note)})' if note else label)
    console.print(table)


__all__ = [
    'LogProgressUI',
    'NullProgressUI',
    'print_plan',
    'print_summary',
]
