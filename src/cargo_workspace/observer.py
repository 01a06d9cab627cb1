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

"""Observer protocol and stage enum for the publish scheduler.

The scheduler reports progress through :class:`PublishObserver`; the
implementations live in :mod:`cargo_workspace.ui`::

    observer.py  ← PublishStage, PublishObserver
      ↑              ↑
      │              │
    ui.py        scheduler.py

Stage indicators::

    ⏳ waiting → 🔍 checking → 📤 publishing → ✅ published
                                             → ❌ failed
    ⏭️  skipped (not publishable / checkpointed / already on the registry)
    🧪 dry run (command previewed, nothing recorded)
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from enum import Enum
from types import TracebackType


class PublishStage(str, Enum):
    """Scheduler stage for a single package."""

    WAITING = 'waiting'
    CHECKING = 'checking'
    PUBLISHING = 'publishing'
    PUBLISHED = 'published'
    DRY_RUN = 'dry_run'
    FAILED = 'failed'
    SKIPPED = 'skipped'


class PublishObserver(AbstractContextManager['PublishObserver']):
    """Receives publish progress updates.

    Implementations must support the context manager protocol for
    setup and teardown of UI resources.
    """

    def init_packages(self, packages: Sequence[tuple[str, str]]) -> None:
        """Register all packages of the plan.

        Args:
            packages: ``(name, version)`` tuples in publish order.
        """

    def on_stage(self, name: str, stage: PublishStage, *, reason: str = '') -> None:
        """Notify that a package has entered a new stage.

        Args:
            name: Package name.
            stage: The new stage.
            reason: Why, for :attr:`PublishStage.SKIPPED`.
        """

    def on_error(self, name: str, error: str) -> None:
        """Notify that a package has failed."""

    def on_complete(self) -> None:
        """Notify that the publish walk has ended."""

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Clean up UI resources."""


__all__ = [
    'PublishObserver',
    'PublishStage',
]
