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

"""Cargo workspace discovery.

Runs member resolution and manifest normalization for a workspace root
and returns the full set of :class:`~cargo_workspace.manifest.PackageRecord`
objects plus any discovery warnings.

Pipeline::

    Cargo.toml ([workspace])
         │
         ▼
    WorkspaceContext ──▶ resolve_members() ──▶ member directories
                                                    │
                       first pass: read names ◀─────┘
                                │
                                ▼
                       second pass: normalize_manifest()
                                │
                                ▼
                       Workspace(packages, warnings)

Usage::

    from cargo_workspace.workspace import discover_workspace

    ws = discover_workspace(Path('/path/to/workspace'))
    for warning in ws.warnings:
        render_warning(warning)
    graph = build_graph(ws.packages)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cargo_workspace.errors import CargoWorkspaceError, CargoWorkspaceWarning, E
from cargo_workspace.logging import get_logger
from cargo_workspace.manifest import (
    MANIFEST_FILENAME,
    PackageRecord,
    WorkspaceContext,
    load_manifest,
    normalize_manifest,
)
from cargo_workspace.members import resolve_members

logger = get_logger(__name__)


@dataclass(frozen=True)
class Workspace:
    """A discovered Cargo workspace.

    Attributes:
        context: Workspace-level shared values from the root manifest.
        packages: Normalized member packages, sorted by name.
        warnings: Non-fatal discovery warnings (unmatched member patterns).
    """

    context: WorkspaceContext
    packages: list[PackageRecord] = field(default_factory=list)
    warnings: list[CargoWorkspaceWarning] = field(default_factory=list)

    @property
    def root(self) -> Path:
        """Absolute workspace root directory."""
        return self.context.root


def load_context(root: Path) -> WorkspaceContext:
    """Load the :class:`WorkspaceContext` from ``root/Cargo.toml``.

    Raises:
        CargoWorkspaceError: If the root manifest is missing, invalid,
            or has no ``[workspace]`` table.
    """
    manifest = root / MANIFEST_FILENAME
    if not manifest.is_file():
        raise CargoWorkspaceError(
            E.WORKSPACE_NOT_FOUND,
            f'No {MANIFEST_FILENAME} found at {root}',
            hint='Point --workspace-root at the directory containing your workspace Cargo.toml.',
        )
    return WorkspaceContext.from_manifest(root, load_manifest(manifest))


def discover_workspace(root: Path) -> Workspace:
    """Discover and normalize every member of the workspace at ``root``.

    Args:
        root: Workspace root directory.

    Returns:
        A :class:`Workspace` with packages sorted by name.

    Raises:
        CargoWorkspaceError: On configuration errors (missing workspace,
            unparsable manifests, unresolvable inheritance, no members).
    """
    context = load_context(root)
    resolution = resolve_members(
        context.root,
        context.members,
        context.exclude,
        include_root=context.has_root_package,
    )

    # First pass: parse every manifest and collect names, so path
    # dependencies can be named by the package they point at.
    manifests: dict[Path, dict[str, Any]] = {}
    member_names: dict[Path, str] = {}
    for directory in resolution.directories:
        raw = load_manifest(directory / MANIFEST_FILENAME)
        manifests[directory] = raw
        name = raw.get('package', {}).get('name') if isinstance(raw.get('package'), dict) else None
        if isinstance(name, str):
            member_names[directory] = name

    # Second pass: normalize against the shared workspace context.
    packages: list[PackageRecord] = []
    for directory, raw in manifests.items():
        record = normalize_manifest(directory, raw, context, member_names)
        if record is not None:
            packages.append(record)

    if not packages:
        raise CargoWorkspaceError(
            E.WORKSPACE_NO_MEMBERS,
            f'No packages found in workspace {context.root} (members={list(context.members)})',
            hint='Check that [workspace].members matches directories with a Cargo.toml.',
        )

    packages.sort(key=lambda p: p.name)
    logger.info(
        'workspace_discovered',
        root=str(context.root),
        packages=len(packages),
        unmatched_patterns=len(resolution.unmatched),
    )
    return Workspace(context=context, packages=packages, warnings=resolution.warnings)


__all__ = [
    'Workspace',
    'discover_workspace',
    'load_context',
]
