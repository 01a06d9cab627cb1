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

"""Sequential, checkpointed publish scheduler.

Walks a :class:`~cargo_workspace.graph.PublishPlan` in order and runs the
publish action for one package at a time. Package N+1 never starts before
package N has returned, and the first failure ends the walk.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ PublishAction       │ The thing that actually publishes one package │
    │                     │ (``cargo publish``). Injected, so tests can   │
    │                     │ use a fake.                                    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ PublishedCheck      │ "Is name@version already on the registry?"    │
    │                     │ Only asked with ``skip_published``.           │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Checkpoint          │ Written after every confirmed success, never  │
    │                     │ before. A crash mid-publish means "retry".    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Fail-fast           │ One failure stops the walk. Later packages     │
    │                     │ may depend on the one that failed.            │
    └─────────────────────┴────────────────────────────────────────────────┘

Per-package decision::

    not publishable ──────────────▶ skip
    resume + checkpointed ────────▶ skip
    skip_published + on registry ─▶ skip (recorded in the checkpoint)
    dry run ──────────────────────▶ preview only, checkpoint untouched
    otherwise ────────────────────▶ sleep(delay) if a real publish ran
                                    before, then publish
                                    ok   → record_success()
                                           (write fails → stop)
                                    fail → stop, keep checkpoint

Usage::

    from cargo_workspace.scheduler import SchedulerConfig, publish_plan

    result = await publish_plan(
        plan,
        action=CargoPublisher(),
        config=SchedulerConfig(resume=True, delay=30),
        store=CheckpointStore.for_workspace(root),
    )
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from cargo_workspace.backends._run import CommandResult
from cargo_workspace.checkpoint import CheckpointStore
from cargo_workspace.errors import CargoWorkspaceError, E
from cargo_workspace.graph import PublishPlan
from cargo_workspace.logging import get_logger, package_context
from cargo_workspace.manifest import PackageRecord
from cargo_workspace.observer import PublishObserver, PublishStage
from cargo_workspace.ui import NullProgressUI

logger = get_logger(__name__)

SKIP_NOT_PUBLISHABLE = 'publish = false'
SKIP_CHECKPOINTED = 'published in an earlier run'
SKIP_ON_REGISTRY = 'already on the registry'


@runtime_checkable
class PublishAction(Protocol):
    """Publishes a single package."""

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
        """Publish ``name@version`` from ``path``.

        Returns:
            The command result. A non-zero return code is a failure.
        """
        ...


@runtime_checkable
class PublishedCheck(Protocol):
    """Answers whether a package version is already published."""

    async def check_published(self, name: str, version: str, registry: str | None = None) -> bool:
        """Return ``True`` if ``name@version`` exists on ``registry``."""
        ...


@dataclass(frozen=True)
class SchedulerConfig:
    """Configuration for a publish run.

    Attributes:
        dry_run: Run the action in preview mode and never write the
            checkpoint.
        resume: Skip packages recorded in the existing checkpoint.
        skip_published: Skip packages the :class:`PublishedCheck`
            reports as already published.
        delay: Seconds to wait between consecutive real publishes.
        token: Registry token passed to the action.
        registry: Alternative registry name passed to the action and check.
    """

    dry_run: bool = False
    resume: bool = False
    skip_published: bool = False
    delay: float = 0.0
    token: str | None = None
    registry: str | None = None


@dataclass
class SchedulerResult:
    """Outcome of a publish walk.

    Attributes:
        published: Packages published in this run, in order.
        dry_run: Packages previewed in dry-run mode.
        skipped: Skipped package name to reason.
        failed: The failed package mapped to its cause (at most one entry).
        checkpoint_path: Checkpoint file left behind for ``--resume``,
            or ``None`` when nothing needs resuming.
    """

    published: list[str] = field(default_factory=list)
    dry_run: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    checkpoint_path: Path | None = None

    @property
    def ok(self) -> bool:
        """Return True if no package failed."""
        return not self.failed

    @property
    def failed_package(self) -> str | None:
        """Name of the package that stopped the walk, if any."""
        return next(iter(self.failed), None)

    def summary(self) -> str:
        """Return a human-readable summary."""
        parts = []
        if self.published:
            parts.append(f'{len(self.published)} published')
        if self.dry_run:
            parts.append(f'{len(self.dry_run)} dry-run')
        if self.skipped:
            parts.append(f'{len(self.skipped)} skipped')
        if self.failed:
            parts.append(f'{len(self.failed)} failed')
        return ', '.join(parts) if parts else 'no packages processed'


def _failure_cause(result: CommandResult) -> str:
    detail = result.stderr.strip() or result.stdout.strip()
    if detail:
        return detail
    return f'{result.command_str} exited with code {result.return_code}'


async def _run_action(
    pkg: PackageRecord,
    *,
    action: PublishAction,
    config: SchedulerConfig,
) -> str | None:
    """Run the publish action for one package.

    Returns:
        ``None`` on success, or the failure cause.
    """
    try:
        result = await action.publish(
            pkg.name,
            pkg.path,
            pkg.version,
            dry_run=config.dry_run,
            token=config.token,
            registry=config.registry,
        )
    except Exception as exc:  # noqa: BLE001 - any action error ends the walk with a cause
        return str(exc) or type(exc).__name__
    if not result.ok:
        return _failure_cause(result)
    return None


async def publish_plan(
    plan: PublishPlan,
    *,
    action: PublishAction,
    config: SchedulerConfig,
    store: CheckpointStore,
    published_check: PublishedCheck | None = None,
    observer: PublishObserver | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> SchedulerResult:
    """Publish every package of ``plan`` in order.

    Args:
        plan: Packages in publish order.
        action: Publishes one package.
        config: Run configuration.
        store: Checkpoint store for this workspace.
        published_check: Registry check, required with ``skip_published``.
        observer: Progress observer (``None`` for no UI).
        sleep: Awaitable used for the inter-publish delay.

    Returns:
        A :class:`SchedulerResult`. An action failure or a failed
        checkpoint write is reported in :attr:`SchedulerResult.failed`
        rather than raised.

    Raises:
        CargoWorkspaceError: Before any action runs, if the checkpoint is
            corrupted or stale, or ``skip_published`` has no check.
    """
    if observer is None:
        observer = NullProgressUI()
    if config.skip_published and published_check is None:
        raise CargoWorkspaceError(
            E.PUBLISH_CHECK_UNAVAILABLE,
            'skip_published was requested without an already-published check.',
            hint='Pass --check cargo or --check crates-io.',
        )

    if config.resume:
        store.load()
        store.validate(plan)
    elif not config.dry_run:
        store.clear()
        store.start(plan)
    checkpoint = store.checkpoint

    observer.init_packages([(p.name, p.version) for p in plan])
    result = SchedulerResult()
    published_before = False

    logger.info(
        'publish_start',
        packages=len(plan),
        dry_run=config.dry_run,
        resume=config.resume,
        skip_published=config.skip_published,
        delay=config.delay,
    )

    for pkg in plan:
        with package_context(pkg.name, pkg.version):
            name = pkg.name

            if not pkg.publishable:
                reason = SKIP_NOT_PUBLISHABLE
            elif config.resume and checkpoint.is_done(name):
                reason = SKIP_CHECKPOINTED
            else:
                reason = ''
            if reason:
                result.skipped[name] = reason
                observer.on_stage(name, PublishStage.SKIPPED, reason=reason)
                logger.info('package_skipped', reason=reason)
                continue

            if config.skip_published and published_check is not None:
                observer.on_stage(name, PublishStage.CHECKING)
                try:
                    on_registry = await published_check.check_published(name, pkg.version, config.registry)
                except Exception as exc:  # noqa: BLE001 - a failed check stops the walk like a failed publish
                    cause = f'already-published check failed: {exc}'
                    _record_failure(result, observer, name, cause)
                    break
                if on_registry:
                    if not config.dry_run and not _checkpoint(store, result, observer, pkg):
                        break
                    result.skipped[name] = SKIP_ON_REGISTRY
                    observer.on_stage(name, PublishStage.SKIPPED, reason=SKIP_ON_REGISTRY)
                    logger.info('package_skipped', reason=SKIP_ON_REGISTRY)
                    continue

            if not config.dry_run and published_before and config.delay > 0:
                logger.info('publish_delay', seconds=config.delay, next_package=name)
                await sleep(config.delay)

            observer.on_stage(name, PublishStage.PUBLISHING)
            cause = await _run_action(pkg, action=action, config=config)
            if cause is not None:
                _record_failure(result, observer, name, cause)
                break

            if config.dry_run:
                result.dry_run.append(name)
                observer.on_stage(name, PublishStage.DRY_RUN)
                logger.info('package_dry_run')
                continue

            published_before = True
            if not _checkpoint(store, result, observer, pkg):
                break
            result.published.append(name)
            observer.on_stage(name, PublishStage.PUBLISHED)
            logger.info('package_published')

    if not config.dry_run:
        if result.ok:
            store.clear()
        elif store.exists():
            result.checkpoint_path = store.path

    observer.on_complete()
    logger.info(
        'publish_complete',
        summary=result.summary(),
        published=len(result.published),
        skipped=len(result.skipped),
        failed=len(result.failed),
    )
    return result


def _record_failure(result: SchedulerResult, observer: PublishObserver, name: str, cause: str) -> None:
    result.failed[name] = cause
    observer.on_error(name, cause)
    logger.error('package_failed', error=cause)


def _checkpoint(
    store: CheckpointStore,
    result: SchedulerResult,
    observer: PublishObserver,
    pkg: PackageRecord,
) -> bool:
    """Record a completed package. A failed write stops the walk at that package."""
    try:
        store.record_success(pkg.name, pkg.version)
    except CargoWorkspaceError as exc:
        _record_failure(result, observer, pkg.name, str(exc))
        return False
    return True


__all__ = [
    'PublishAction',
    'PublishedCheck',
    'SKIP_CHECKPOINTED',
    'SKIP_NOT_PUBLISHABLE',
    'SKIP_ON_REGISTRY',
    'SchedulerConfig',
    'SchedulerResult',
    'publish_plan',
]
