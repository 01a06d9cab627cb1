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

"""Manifest loading and normalization.

Turns the raw table of a member ``Cargo.toml`` into a canonical
:class:`PackageRecord`. The workspace-level shared fields are passed in
as an explicit read-only :class:`WorkspaceContext`, so
:func:`normalize_manifest` is a pure function of ``(manifest, context)``.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ WorkspaceContext    │ The root Cargo.toml's shared answers: member  │
    │                     │ patterns, [workspace.package] fields, and     │
    │                     │ [workspace.dependencies].                     │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Inheritance marker  │ ``version.workspace = true`` means "ask the   │
    │                     │ root". No answer at the root is fatal.        │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Workspace dep       │ A dependency whose source is a path inside    │
    │                     │ the workspace. Registry deps never count,     │
    │                     │ even if a member has the same name.           │
    └─────────────────────┴────────────────────────────────────────────────┘

Dependency sources::

    utils = { path = "../utils" }        → workspace (path inside root)
    utils = { workspace = true }         → look up [workspace.dependencies]
    serde = "1.0"                        → registry (external)
    utils = { version = "0.1" }          → registry (external)

Dev-dependencies only order publishing when they carry a ``version``
(cargo strips path-only dev-dependencies from the published manifest).
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from cargo_workspace.errors import CargoWorkspaceError, E
from cargo_workspace.logging import get_logger

logger = get_logger(__name__)

MANIFEST_FILENAME = 'Cargo.toml'

# Version cargo assumes when [package].version is omitted.
DEFAULT_VERSION = '0.0.0'

_DEPENDENCY_TABLES = ('dependencies', 'build-dependencies', 'dev-dependencies')


@dataclass(frozen=True)
class PackageRecord:
    """One normalized workspace member.

    Attributes:
        name: Package name, unique within the workspace.
        version: Resolved version (never an inheritance marker).
        path: Absolute package directory.
        manifest_path: Path to the package's ``Cargo.toml``.
        publishable: ``False`` only when the manifest disables publishing.
        workspace_dependencies: Names of workspace members this package
            depends on.
        external_dependencies: Names of registry dependencies.
    """

    name: str
    version: str
    path: Path
    manifest_path: Path
    publishable: bool = True
    workspace_dependencies: frozenset[str] = frozenset()
    external_dependencies: frozenset[str] = frozenset()


@dataclass(frozen=True)
class WorkspaceContext:
    """Read-only workspace-level values from the root manifest.

    Attributes:
        root: Absolute workspace root directory.
        members: ``[workspace].members`` patterns.
        exclude: ``[workspace].exclude`` patterns.
        package_fields: ``[workspace.package]`` shared fields.
        dependencies: ``[workspace.dependencies]`` entries.
        metadata: ``[workspace.metadata]`` table.
        has_root_package: Whether the root manifest is also a package.
    """

    root: Path
    members: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    package_fields: Mapping[str, Any] = field(default_factory=dict)
    dependencies: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)
    has_root_package: bool = False

    @classmethod
    def from_manifest(cls, root: Path, raw: Mapping[str, Any]) -> WorkspaceContext:
        """Build the context from the parsed root ``Cargo.toml``.

        Raises:
            CargoWorkspaceError: If the manifest has no ``[workspace]`` table.
        """
        workspace = raw.get('workspace')
        if not isinstance(workspace, Mapping):
            raise CargoWorkspaceError(
                E.WORKSPACE_NOT_FOUND,
                f'{root / MANIFEST_FILENAME} has no [workspace] table.',
                hint='Point --workspace-root at the directory holding the workspace Cargo.toml.',
            )
        return cls(
            root=Path(os.path.normpath(root.absolute())),
            members=tuple(_string_list(workspace.get('members', []), 'workspace.members', root)),
            exclude=tuple(_string_list(workspace.get('exclude', []), 'workspace.exclude', root)),
            package_fields=dict(workspace.get('package', {})),
            dependencies=dict(workspace.get('dependencies', {})),
            metadata=dict(workspace.get('metadata', {})),
            has_root_package=isinstance(raw.get('package'), Mapping),
        )


def _string_list(value: Any, key: str, root: Path) -> list[str]:  # noqa: ANN401 - raw TOML value
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CargoWorkspaceError(
            E.MANIFEST_INVALID,
            f'{key} in {root / MANIFEST_FILENAME} must be a list of strings.',
        )
    return list(value)


def load_manifest(path: Path) -> dict[str, Any]:
    """Read and parse a ``Cargo.toml`` into plain Python data.

    Raises:
        CargoWorkspaceError: If the file cannot be read or is not valid TOML.
    """
    try:
        text = path.read_text(encoding='utf-8')
    except OSError as exc:
        raise CargoWorkspaceError(
            E.MANIFEST_PARSE_ERROR,
            f'Cannot read {path}: {exc}',
        ) from exc
    try:
        return tomlkit.parse(text).unwrap()
    except tomlkit.exceptions.TOMLKitError as exc:
        raise CargoWorkspaceError(
            E.MANIFEST_PARSE_ERROR,
            f'Invalid TOML in {path}: {exc}',
            hint='Run cargo metadata to see the full parse error.',
        ) from exc


def find_workspace_root(start: Path | None = None) -> Path:
    """Walk up from ``start`` to the first ``Cargo.toml`` with ``[workspace]``.

    Args:
        start: Directory to start from (defaults to the current directory).

    Raises:
        CargoWorkspaceError: If no workspace manifest is found.
    """
    origin = (start or Path.cwd()).resolve()
    for directory in [origin, *origin.parents]:
        manifest = directory / MANIFEST_FILENAME
        if not manifest.is_file():
            continue
        try:
            raw = load_manifest(manifest)
        except CargoWorkspaceError as exc:
            logger.warning('manifest_unreadable', path=str(manifest), error=str(exc))
            continue
        if 'workspace' in raw:
            logger.debug('workspace_root_found', root=str(directory))
            return directory
    raise CargoWorkspaceError(
        E.WORKSPACE_NOT_FOUND,
        f'No Cargo.toml with a [workspace] table found in {origin} or its parents.',
        hint='Run from inside a Cargo workspace or pass --workspace-root.',
    )


def _inherits(value: Any) -> bool:  # noqa: ANN401 - raw TOML value
    return isinstance(value, Mapping) and value.get('workspace') is True


def _resolve_inherited(package: str, key: str, value: Any, context: WorkspaceContext) -> Any:  # noqa: ANN401
    """Replace a ``{workspace = true}`` marker with the workspace value."""
    if not _inherits(value):
        return value
    if key not in context.package_fields:
        raise CargoWorkspaceError(
            E.INHERIT_UNRESOLVED,
            f"Package '{package}' sets {key}.workspace = true, but [workspace.package] defines no {key}.",
            hint=f'Add {key} to [workspace.package] in {context.root / MANIFEST_FILENAME}.',
        )
    return context.package_fields[key]


def _is_publishable(value: Any) -> bool:  # noqa: ANN401 - raw TOML value
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, list):
        return len(value) > 0
    return True


def _iter_dependency_tables(raw: Mapping[str, Any]) -> Iterator[tuple[str, Mapping[str, Any]]]:
    """Yield ``(kind, table)`` for every dependency table, including target tables."""
    scopes: list[Mapping[str, Any]] = [raw]
    targets = raw.get('target', {})
    if isinstance(targets, Mapping):
        scopes.extend(t for t in targets.values() if isinstance(t, Mapping))
    for scope in scopes:
        for kind in _DEPENDENCY_TABLES:
            table = scope.get(kind)
            if isinstance(table, Mapping):
                yield kind, table


def _inside(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def _resolve_dependency(
    key: str,
    spec: Any,  # noqa: ANN401 - raw TOML value
    directory: Path,
    context: WorkspaceContext,
) -> tuple[str, Path | None, bool]:
    """Classify one dependency entry.

    Returns:
        ``(package name, local directory or None, declares a version)``.
        The directory is ``None`` for registry dependencies.
    """
    base = directory
    if _inherits(spec):
        spec = context.dependencies.get(key, {})
        base = context.root
    if not isinstance(spec, Mapping):
        # Plain version string: always a registry dependency.
        return key, None, True
    name = spec.get('package', key)
    local = spec.get('path')
    target = Path(os.path.normpath(base / local)) if isinstance(local, str) else None
    return name, target, 'version' in spec


def normalize_manifest(
    directory: Path,
    raw: Mapping[str, Any],
    context: WorkspaceContext,
    member_names: Mapping[Path, str] | None = None,
) -> PackageRecord | None:
    """Normalize one member manifest into a :class:`PackageRecord`.

    Args:
        directory: Absolute member directory.
        raw: Parsed ``Cargo.toml`` of the member.
        context: Workspace-level shared values.
        member_names: Optional map of member directory to package name,
            used to name path dependencies by their real package name.

    Returns:
        The record, or ``None`` if the manifest has no ``[package]`` table.

    Raises:
        CargoWorkspaceError: On a missing name or an unresolvable
            inheritance marker.
    """
    package = raw.get('package')
    if not isinstance(package, Mapping):
        logger.debug('manifest_skipped', path=str(directory), reason='no [package] table')
        return None

    name = package.get('name')
    if not isinstance(name, str) or not name:
        raise CargoWorkspaceError(
            E.MANIFEST_INVALID,
            f'{directory / MANIFEST_FILENAME} has no [package].name.',
        )

    version = _resolve_inherited(name, 'version', package.get('version'), context)
    publishable = _is_publishable(_resolve_inherited(name, 'publish', package.get('publish'), context))
    if version is None:
        # Cargo treats a versionless package as unpublishable.
        version = DEFAULT_VERSION
        publishable = False
    if not isinstance(version, str):
        raise CargoWorkspaceError(
            E.MANIFEST_INVALID,
            f"Package '{name}' has a non-string version: {version!r}",
        )

    names = member_names or {}
    internal: set[str] = set()
    external: set[str] = set()
    for kind, table in _iter_dependency_tables(raw):
        for key, spec in table.items():
            dep_name, target, has_version = _resolve_dependency(key, spec, directory, context)
            if target is None or not _inside(target, context.root):
                external.add(dep_name)
                continue
            if kind == 'dev-dependencies' and not has_version:
                continue
            internal.add(names.get(target, dep_name))

    return PackageRecord(
        name=name,
        version=version,
        path=directory,
        manifest_path=directory / MANIFEST_FILENAME,
        publishable=publishable,
        workspace_dependencies=frozenset(internal),
        external_dependencies=frozenset(external),
    )


__all__ = [
    'DEFAULT_VERSION',
    'MANIFEST_FILENAME',
    'PackageRecord',
    'WorkspaceContext',
    'find_workspace_root',
    'load_manifest',
    'normalize_manifest',
]
