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

"""Tests for cargo_workspace.workspace (discovery on disk)."""

from __future__ import annotations

from pathlib import Path

import pytest
from cargo_workspace.errors import CargoWorkspaceError, E
from cargo_workspace.workspace import discover_workspace, load_context
from tests._fakes import write_workspace

_ROOT_MANIFEST = """\
[workspace]
members = ["crates/*"]
exclude = ["crates/experimental"]

[workspace.package]
version = "0.1.0"

[workspace.dependencies]
utils = { path = "crates/utils", version = "0.1.0" }
"""

_CRATES = {
    'crates/utils': '[package]\nname = "utils"\nversion.workspace = true\n',
    'crates/core': (
        '[package]\nname = "core"\nversion.workspace = true\n\n[dependencies]\nutils.workspace = true\nserde = "1"\n'
    ),
    'crates/app': (
        '[package]\nname = "app"\nversion = "0.2.0"\n\n'
        '[dependencies]\ncore = { path = "../core", version = "0.1.0" }\n'
        'utils = { path = "../utils", version = "0.1.0" }\n'
    ),
    'crates/examples': (
        '[package]\nname = "examples"\nversion = "0.1.0"\npublish = false\n\n'
        '[dependencies]\napp = { path = "../app" }\n'
    ),
    'crates/experimental': '[package]\nname = "experimental"\nversion = "0.0.1"\n',
}


class TestDiscoverWorkspace:
    """Tests for discover_workspace."""

    def test_discovers_members(self, tmp_path: Path) -> None:
        """Every non-excluded member is normalized, sorted by name."""
        root = write_workspace(tmp_path / 'ws', _ROOT_MANIFEST, _CRATES)

        ws = discover_workspace(root)

        names = [p.name for p in ws.packages]
        assert names == ['app', 'core', 'examples', 'utils']
        assert ws.warnings == []
        assert ws.root == root

    def test_dependencies_resolved(self, tmp_path: Path) -> None:
        """Inherited and path dependencies become workspace edges."""
        root = write_workspace(tmp_path / 'ws', _ROOT_MANIFEST, _CRATES)

        by_name = {p.name: p for p in discover_workspace(root).packages}

        assert by_name['core'].workspace_dependencies == frozenset({'utils'})
        assert by_name['core'].external_dependencies == frozenset({'serde'})
        assert by_name['core'].version == '0.1.0'
        assert by_name['app'].workspace_dependencies == frozenset({'core', 'utils'})
        assert by_name['app'].version == '0.2.0'
        assert not by_name['examples'].publishable

    def test_unmatched_pattern_warns(self, tmp_path: Path) -> None:
        """A member pattern matching nothing is a warning; discovery continues."""
        manifest = _ROOT_MANIFEST.replace('members = ["crates/*"]', 'members = ["crates/*", "plugins/*"]')
        root = write_workspace(tmp_path / 'ws', manifest, _CRATES)

        ws = discover_workspace(root)

        assert len(ws.packages) == 4
        assert [w.code for w in ws.warnings] == [E.MEMBER_NO_MATCH]

    def test_literal_member_without_manifest_warns(self, tmp_path: Path) -> None:
        """A listed directory with no Cargo.toml is left out with a warning."""
        manifest = '[workspace]\nmembers = ["utils", "core"]\n'
        root = write_workspace(tmp_path / 'ws', manifest, {'utils': '[package]\nname = "utils"\nversion = "0.1.0"\n'})
        (root / 'core').mkdir()

        ws = discover_workspace(root)

        assert [p.name for p in ws.packages] == ['utils']
        assert [w.code for w in ws.warnings] == [E.MEMBER_NO_MATCH]
        assert "'core'" in str(ws.warnings[0])

    def test_root_package_is_member(self, tmp_path: Path) -> None:
        """A root manifest with [package] contributes a package."""
        manifest = '[workspace]\nmembers = []\n\n[package]\nname = "solo"\nversion = "1.0.0"\n'
        root = write_workspace(tmp_path / 'ws', manifest)

        ws = discover_workspace(root)

        assert [p.name for p in ws.packages] == ['solo']
        assert ws.packages[0].path == root

    def test_no_members(self, tmp_path: Path) -> None:
        """A workspace with no packages is an error."""
        root = write_workspace(tmp_path / 'ws', '[workspace]\nmembers = ["crates/*"]\n')

        with pytest.raises(CargoWorkspaceError) as exc_info:
            discover_workspace(root)

        assert exc_info.value.code == E.WORKSPACE_NO_MEMBERS

    def test_unresolvable_inheritance_stops_discovery(self, tmp_path: Path) -> None:
        """A member inheriting an undefined field fails discovery."""
        root = write_workspace(
            tmp_path / 'ws',
            '[workspace]\nmembers = ["crates/*"]\n',
            {'crates/core': '[package]\nname = "core"\nversion.workspace = true\n'},
        )

        with pytest.raises(CargoWorkspaceError) as exc_info:
            discover_workspace(root)

        assert exc_info.value.code == E.INHERIT_UNRESOLVED


class TestLoadContext:
    """Tests for load_context."""

    def test_missing_manifest(self, tmp_path: Path) -> None:
        """A directory without Cargo.toml is not a workspace."""
        with pytest.raises(CargoWorkspaceError) as exc_info:
            load_context(tmp_path)
        assert exc_info.value.code == E.WORKSPACE_NOT_FOUND
