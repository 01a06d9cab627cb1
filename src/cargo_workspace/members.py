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

"""Workspace member resolution.

Expands the ``[workspace].members`` patterns of a root ``Cargo.toml``
into the set of directories that hold member manifests.

Cargo workspace layout (directory names are arbitrary)::

    rust/
    ├── Cargo.toml           ← [workspace] members = ["utils", "crates/*"]
    ├── utils/
    │   └── Cargo.toml       ← literal member
    └── crates/
        ├── core/
        │   └── Cargo.toml   ← matched by crates/*
        └── app/
            └── Cargo.toml   ← matched by crates/*

Rules:

- Literal members are kept when the directory holds a ``Cargo.toml``.
- Glob members (``*``, ``?``, ``[``) match directories that contain a
  ``Cargo.toml``.
- ``[workspace].exclude`` entries drop a directory and everything
  below it.
- A pattern that matches nothing is not fatal. It is returned in
  :attr:`MemberResolution.unmatched` so the caller can warn about it.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from cargo_workspace.errors import CargoWorkspaceWarning, E
from cargo_workspace.logging import get_logger

logger = get_logger(__name__)

_GLOB_CHARS = frozenset('*?[')


@dataclass(frozen=True)
class MemberResolution:
    """Directories resolved from member patterns.

    Attributes:
        directories: Absolute member directories, deduplicated and sorted.
        unmatched: Patterns that resolved to no directory, in declaration order.
    """

    directories: list[Path] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[CargoWorkspaceWarning]:
        """One discovery warning per unmatched pattern."""
        return [
            CargoWorkspaceWarning(
                E.MEMBER_NO_MATCH,
                f"Member pattern '{pattern}' matched no package directory.",
                hint='Fix or remove the pattern in [workspace].members.',
            )
            for pattern in self.unmatched
        ]


def is_glob(pattern: str) -> bool:
    """Return True if the member pattern contains glob metacharacters."""
    return any(c in _GLOB_CHARS for c in pattern)


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(path.absolute()))


def _is_excluded(directory: Path, excluded: list[Path]) -> bool:
    return any(directory == ex or ex in directory.parents for ex in excluded)


def _expand(root: Path, pattern: str) -> list[Path]:
    """Expand one pattern to directories holding a ``Cargo.toml``."""
    if is_glob(pattern):
        return [match for match in sorted(root.glob(pattern)) if match.is_dir() and (match / 'Cargo.toml').is_file()]
    candidate = root / pattern
    return [candidate] if (candidate / 'Cargo.toml').is_file() else []


def resolve_members(
    root: Path,
    patterns: Iterable[str],
    excludes: Iterable[str] = (),
    *,
    include_root: bool = False,
) -> MemberResolution:
    """Resolve member patterns to member directories.

    Args:
        root: Workspace root directory.
        patterns: Entries of ``[workspace].members``.
        excludes: Entries of ``[workspace].exclude``.
        include_root: Also treat ``root`` as a member (the root manifest
            has a ``[package]`` table).

    Returns:
        A :class:`MemberResolution` with the directories and the
        patterns that matched nothing.
    """
    root = _normalize(root)
    excluded = [_normalize(root / ex) for ex in excludes]
    found: dict[Path, None] = {}
    unmatched: list[str] = []

    if include_root:
        found[root] = None

    for pattern in patterns:
        matches = [d for d in (_normalize(m) for m in _expand(root, pattern)) if not _is_excluded(d, excluded)]
        if not matches:
            logger.warning('member_pattern_unmatched', pattern=pattern, root=str(root))
            unmatched.append(pattern)
            continue
        for directory in matches:
            found[directory] = None

    directories = sorted(found)
    logger.debug('members_resolved', count=len(directories), unmatched=len(unmatched))
    return MemberResolution(directories=directories, unmatched=unmatched)


__all__ = [
    'MemberResolution',
    'is_glob',
    'resolve_members',
]
