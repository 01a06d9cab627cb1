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

"""Fake publish action and already-published check.

Both satisfy the :class:`~cargo_workspace.scheduler.PublishAction` and
:class:`~cargo_workspace.scheduler.PublishedCheck` protocols.
"""

from __future__ import annotations

from pathlib import Path

from cargo_workspace.backends._run import CommandResult


def fake_result(*, ok: bool = True, stderr: str = '', dry_run: bool = False) -> CommandResult:
    """Return a :class:`CommandResult` for a fake ``cargo publish``."""
    cmd = ['cargo', 'publish', '--dry-run'] if dry_run else ['cargo', 'publish']
    return CommandResult(
        command=cmd,
        return_code=0 if ok else 101,
        stderr=stderr,
    )


class FakePublisher:
    """Recording publish action.

    Every call is appended to :attr:`calls` as
    ``(name, version, dry_run)``, in call order.
    """

    def __init__(
        self,
        *,
        fail: set[str] | None = None,
        raise_for: set[str] | None = None,
        stderr: str = 'error: failed to publish',
    ) -> None:
        """Initialize with the packages that should fail.

        Args:
            fail: Names whose publish returns a non-zero exit code.
            raise_for: Names whose publish raises ``RuntimeError``.
            stderr: stderr text reported for failing packages.
        """
        self.fail = set(fail or ())
        self.raise_for = set(raise_for or ())
        self.stderr = stderr
        self.calls: list[tuple[str, str, bool]] = []
        self.tokens: list[str | None] = []
        self.registries: list[str | None] = []

    @property
    def names(self) -> list[str]:
        """Names passed to :meth:`publish`, in call order."""
        return [name for name, _, _ in self.calls]

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
        """Record the call and return the configured result."""
        self.calls.append((name, version, dry_run))
        self.tokens.append(token)
        self.registries.append(registry)
        if name in self.raise_for:
            msg = f'cargo not found while publishing {name}'
            raise RuntimeError(msg)
        if name in self.fail:
            return fake_result(ok=False, stderr=self.stderr, dry_run=dry_run)
        return fake_result(dry_run=dry_run)


class FakeCheck:
    """Already-published check answering from a fixed set of names."""

    def __init__(self, *, published: set[str] | None = None, error: Exception | None = None) -> None:
        """Initialize with the names reported as already published."""
        self.published = set(published or ())
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def check_published(self, name: str, version: str, registry: str | None = None) -> bool:
        """Return True if ``name`` is in :attr:`published`."""
        self.calls.append((name, version))
        if self.error is not None:
            raise self.error
        return name in self.published
