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

"""Publish checkpoint with resume support.

Records which packages of a publish plan have already been published, in
a JSON file under the workspace ``target/`` directory. An interrupted
``cargo-workspace publish`` can then resume from the first package that
did not finish.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Checkpoint          │ A checklist: ✅ utils@0.1.0, ⬜ core, ⬜ app  │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Atomic save         │ Write to a temp file first, then rename.      │
    │                     │ If we crash mid-write, the old file is fine.  │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Plan fingerprint    │ A hash of the ordered name@version list.      │
    │                     │ Resume only works if the plan is unchanged.   │
    └─────────────────────┴────────────────────────────────────────────────┘

File format (``target/cargo-workspace-publish.json``)::

    {
      "workspace_root": "/src/my-workspace",
      "plan_fingerprint": "9c1f...",
      "published": ["utils@0.1.0"],
      "updated_at": "2026-01-01T00:00:00+00:00"
    }

Lifecycle::

    fresh run   → clear() → start(plan) → record_success() ... → clear()
    failed run  → file keeps every success so far
    resume run  → load() → validate(plan) → record_success() ... → clear()

Usage::

    store = CheckpointStore.for_workspace(root)
    store.load()
    store.validate(plan)
    store.record_success('core', '0.1.0')
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from cargo_workspace.errors import CargoWorkspaceError, E
from cargo_workspace.graph import PublishPlan
from cargo_workspace.logging import get_logger

logger = get_logger(__name__)

CHECKPOINT_FILENAME = 'cargo-workspace-publish.json'


@dataclass
class Checkpoint:
    """In-memory checkpoint record.

    Attributes:
        workspace_root: Absolute workspace root the checkpoint belongs to.
        plan_fingerprint: :meth:`PublishPlan.fingerprint` of the plan
            being published.
        completed: Completed package name to published version, in
            completion order.
        updated_at: ISO 8601 UTC timestamp of the last write.
    """

    workspace_root: str
    plan_fingerprint: str = ''
    completed: dict[str, str] = field(default_factory=dict)
    updated_at: str = ''

    def is_done(self, name: str) -> bool:
        """Return True if ``name`` is recorded as published."""
        return name in self.completed

    @property
    def is_empty(self) -> bool:
        """Return True if nothing has been recorded."""
        return not self.completed

    def to_dict(self) -> dict[str, object]:
        """Return the JSON-serializable form."""
        return {
            'workspace_root': self.workspace_root,
            'plan_fingerprint': self.plan_fingerprint,
            'published': [f'{name}@{version}' for name, version in self.completed.items()],
            'updated_at': self.updated_at,
        }


def _corrupted(path: Path, detail: str) -> CargoWorkspaceError:
    return CargoWorkspaceError(
        E.CHECKPOINT_CORRUPTED,
        f'Checkpoint file {path} {detail}',
        hint='Inspect the file, or delete it and publish without --resume.',
    )


def _parse(path: Path, text: str) -> Checkpoint:
    """Parse checkpoint JSON, raising ``CHECKPOINT_CORRUPTED`` on any defect."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise _corrupted(path, f'contains invalid JSON: {exc}') from exc
    if not isinstance(data, dict):
        raise _corrupted(path, 'does not contain a JSON object.')

    for key in ('workspace_root', 'plan_fingerprint', 'published'):
        if key not in data:
            raise _corrupted(path, f'is missing required field: {key}')
    root = data['workspace_root']
    fingerprint = data['plan_fingerprint']
    published = data['published']
    if not isinstance(root, str) or not isinstance(fingerprint, str) or not isinstance(published, list):
        raise _corrupted(path, 'has fields of the wrong type.')

    completed: dict[str, str] = {}
    for entry in published:
        if not isinstance(entry, str) or '@' not in entry:
            raise _corrupted(path, f'has an invalid published entry: {entry!r}')
        name, _, version = entry.rpartition('@')
        if not name or not version:
            raise _corrupted(path, f'has an invalid published entry: {entry!r}')
        completed[name] = version

    updated_at = data.get('updated_at', '')
    return Checkpoint(
        workspace_root=root,
        plan_fingerprint=fingerprint,
        completed=completed,
        updated_at=updated_at if isinstance(updated_at, str) else '',
    )


class CheckpointStore:
    """Reads, validates and atomically writes the publish checkpoint.

    Args:
        path: Checkpoint file location.
        workspace_root: Workspace the checkpoint belongs to.
    """

    def __init__(self, path: Path, workspace_root: Path) -> None:
        """Initialize with the checkpoint path and workspace root."""
        self._path = path
        self._root = str(workspace_root)
        self._checkpoint = Checkpoint(workspace_root=self._root)

    @classmethod
    def for_workspace(cls, workspace_root: Path) -> CheckpointStore:
        """Return a store at ``<workspace_root>/target/cargo-workspace-publish.json``."""
        return cls(workspace_root / 'target' / CHECKPOINT_FILENAME, workspace_root)

    @property
    def path(self) -> Path:
        """Checkpoint file location."""
        return self._path

    @property
    def checkpoint(self) -> Checkpoint:
        """The current in-memory checkpoint."""
        return self._checkpoint

    def exists(self) -> bool:
        """Return True if a checkpoint file is present."""
        return self._path.exists()

    def load(self) -> Checkpoint:
        """Load the checkpoint from disk.

        Returns:
            The stored checkpoint, or an empty one if no file exists.

        Raises:
            CargoWorkspaceError: ``CHECKPOINT_CORRUPTED`` if the file
                exists but cannot be read or parsed.
        """
        if not self._path.exists():
            logger.debug('checkpoint_absent', path=str(self._path))
            self._checkpoint = Checkpoint(workspace_root=self._root)
            return self._checkpoint
        try:
            text = self._path.read_text(encoding='utf-8')
        except OSError as exc:
            raise _corrupted(self._path, f'cannot be read: {exc}') from exc

        self._checkpoint = _parse(self._path, text)
        logger.info(
            'checkpoint_loaded',
            path=str(self._path),
            completed=list(self._checkpoint.completed),
        )
        return self._checkpoint

    def start(self, plan: PublishPlan) -> None:
        """Begin a fresh in-memory checkpoint for ``plan``.

        Nothing is written until the first :meth:`record_success`.
        """
        self._checkpoint = Checkpoint(workspace_root=self._root, plan_fingerprint=plan.fingerprint())

    def validate(self, plan: PublishPlan) -> None:
        """Check that the loaded checkpoint can resume ``plan``.

        An empty checkpoint is adopted for ``plan``. A non-empty one must
        belong to this workspace, every completed package must still be
        in the plan at the same version, and the plan fingerprint must be
        unchanged.

        Raises:
            CargoWorkspaceError: ``CHECKPOINT_STALE`` on any mismatch.
        """
        cp = self._checkpoint
        if cp.is_empty:
            cp.plan_fingerprint = plan.fingerprint()
            return

        if cp.workspace_root != self._root:
            raise self._stale(f'belongs to workspace {cp.workspace_root}, not {self._root}.')

        missing = [name for name in cp.completed if name not in plan]
        if missing:
            raise self._stale(f'records packages that are no longer in the publish plan: {", ".join(missing)}.')

        for name, version in cp.completed.items():
            pkg = plan.get(name)
            if pkg is not None and pkg.version != version:
                raise self._stale(f"records {name}@{version}, but the workspace now has {name}@{pkg.version}.")

        if cp.plan_fingerprint != plan.fingerprint():
            raise self._stale('was written for a different publish order or package set.')

        logger.info('checkpoint_valid', completed=list(cp.completed), remaining=len(plan) - len(cp.completed))

    def _stale(self, detail: str) -> CargoWorkspaceError:
        logger.error('checkpoint_stale', path=str(self._path), detail=detail)
        return CargoWorkspaceError(
            E.CHECKPOINT_STALE,
            f'Checkpoint {self._path} {detail}',
            hint='The workspace changed since the interrupted run. Delete the checkpoint and publish without --resume.',
        )

    def record_success(self, name: str, version: str) -> None:
        """Append ``name`` to the completed set and persist atomically.

        Uses ``tempfile`` + ``os.replace``: if the process dies mid-write,
        the previous checkpoint file is untouched.

        Raises:
            CargoWorkspaceError: ``CHECKPOINT_WRITE_FAILED`` if the file
                cannot be written. The in-memory record still holds
                ``name``.
        """
        cp = self._checkpoint
        if name in cp.completed:
            return
        cp.completed[name] = version
        cp.updated_at = datetime.now(timezone.utc).isoformat()
        try:
            self._save()
        except OSError as exc:
            logger.error('checkpoint_write_failed', path=str(self._path), package=name, error=str(exc))
            raise CargoWorkspaceError(
                E.CHECKPOINT_WRITE_FAILED,
                f'{name}@{version} was published but could not be recorded in {self._path}: {exc}',
                hint='Make the target directory writable, then re-run with --resume.',
            ) from exc
        logger.debug('checkpoint_recorded', package=name, version=version, completed=len(cp.completed))

    def _save(self) -> None:
        content = json.dumps(self._checkpoint.to_dict(), indent=2) + '\n'
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix='.cargo-workspace-publish-',
            suffix='.tmp',
        )
        closed = False
        try:
            os.write(fd, content.encode('utf-8'))
            os.close(fd)
            closed = True
            os.replace(tmp_path, self._path)
        except BaseException:
            if not closed:
                os.close(fd)
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        """Delete the checkpoint file and reset the in-memory record.

        Raises:
            CargoWorkspaceError: ``CHECKPOINT_WRITE_FAILED`` if the file
                cannot be removed.
        """
        if self._path.exists():
            try:
                self._path.unlink()
            except OSError as exc:
                raise CargoWorkspaceError(
                    E.CHECKPOINT_WRITE_FAILED,
                    f'Could not remove checkpoint {self._path}: {exc}',
                    hint='Make the target directory writable, or delete the file by hand.',
                ) from exc
            logger.info('checkpoint_removed', path=str(self._path))
        self._checkpoint = Checkpoint(workspace_root=self._root)


__all__ = [
    'CHECKPOINT_FILENAME',
    'Checkpoint',
    'CheckpointStore',
]
