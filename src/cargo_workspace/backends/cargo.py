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

"""Cargo CLI backends: the publish action and a ``cargo search`` check.

:class:`CargoPublisher` implements
:class:`~cargo_workspace.scheduler.PublishAction` by running
``cargo publish`` in the package directory. :class:`CargoSearchCheck`
implements :class:`~cargo_workspace.scheduler.PublishedCheck` with
``cargo search``.

Authentication uses ``--token`` when given; otherwise cargo falls back
to ``CARGO_REGISTRY_TOKEN`` or ``~/.cargo/credentials.toml``.

Blocking subprocess calls are dispatched to ``asyncio.to_thread()``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import re
from collections.abc import Callable
from pathlib import Path

from cargo_workspace.backends._run import CommandResult, run_command
from cargo_workspace.logging import get_logger

log = get_logger('cargo_workspace.backends.cargo')

# stderr fragments cargo prints when the version is already on the index.
_ALREADY_PUBLISHED_MARKERS = (
    'already exists on crates.io index',
    'is already uploaded',
)

# A `cargo search` result line: name = "1.2.3"    # description
_SEARCH_LINE_RE = re.compile(r'^\s*(?P<name>[A-Za-z0-9_-]+)\s*=\s*"(?P<version>[^"]+)"')

Runner = Callable[..., CommandResult]


def is_already_published_error(stderr: str) -> bool:
    """Return True if cargo's stderr says the version is already uploaded."""
    return any(marker in stderr for marker in _ALREADY_PUBLISHED_MARKERS)


class CargoPublisher:
    """Publishes one crate with ``cargo publish``.

    Args:
        runner: Subprocess runner (defaults to :func:`run_command`).
    """

    def __init__(self, *, runner: Runner = run_command) -> None:
        """Initialize with a subprocess runner."""
        self._runner = runner

    def build_command(
        self,
        *,
        dry_run: bool = False,
        token: str | None = None,
        registry: str | None = None,
    ) -> list[str]:
        """Return the ``cargo publish`` argument list."""
        cmd = ['cargo', 'publish']
        if dry_run:
            cmd.append('--dry-run')
        if token:
            cmd.extend(['--token', token])
        if registry:
            cmd.extend(['--registry', registry])
        return cmd

    async def publish(
        self,
        name: str,
        path: Path,
        version: str,
        *,
        dry_run: bool = False,
        token: str | None = None,
        registry: str | None = None,
    ) -> CommandResult:
        """Run ``cargo publish`` in ``path``.

        An "already uploaded" rejection is reported as success, so a
        resumed run can safely retry a package whose upload finished
        just before an interruption.
        """
        cmd = self.build_command(dry_run=dry_run, token=token, registry=registry)
        log.info('publish', package=name, version=version, dry_run=dry_run)
        result = await asyncio.to_thread(self._runner, cmd, cwd=path)
        if not result.ok and is_already_published_error(result.stderr):
            log.info('already_published', package=name, version=version)
            return dataclasses.replace(result, return_code=0)
        return result


class CargoSearchCheck:
    """Already-published check based on ``cargo search``.

    ``cargo search`` only reports the newest version, so a package counts
    as published when that version equals the one being released.

    Args:
        runner: Subprocess runner (defaults to :func:`run_command`).
    """

    def __init__(self, *, runner: Runner = run_command) -> None:
        """Initialize with a subprocess runner."""
        self._runner = runner

    async def check_published(self, name: str, version: str, registry: str | None = None) -> bool:
        """Return True if ``cargo search`` lists ``name`` at ``version``."""
        cmd = ['cargo', 'search', name, '--limit', '1']
        if registry:
            cmd.extend(['--registry', registry])
        result = await asyncio.to_thread(self._runner, cmd)
        if not result.ok:
            log.warning('cargo_search_failed', package=name, stderr=result.stderr[:500])
            return False
        for line in result.stdout.splitlines():
            match = _SEARCH_LINE_RE.match(line)
            if match and match.group('name') == name:
                published = match.group('version') == version
                log.info('cargo_search', package=name, latest=match.group('version'), published=published)
                return published
        log.info('cargo_search', package=name, latest=None, published=False)
        return False


__all__ = [
    'CargoPublisher',
    'CargoSearchCheck',
    'is_already_published_error',
]
