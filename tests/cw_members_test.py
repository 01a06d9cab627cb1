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

"""Tests for cargo_workspace.members."""

from __future__ import annotations

from pathlib import Path

from cargo_workspace.errors import E
from cargo_workspace.members import is_glob, resolve_members


def _crate(root: Path, rel: str) -> Path:
    crate = root / rel
    crate.mkdir(parents=True, exist_ok=True)
    (crate / 'Cargo.toml').write_text(f'[package]\nname = "{crate.name}"\n', encoding='utf-8')
    return crate


class TestIsGlob:
    """Tests for is_glob."""

    def test_literal(self) -> None:
        """Plain paths are not globs."""
        assert not is_glob('crates/core')

    def test_star(self) -> None:
        """Wildcards make a glob."""
        assert is_glob('crates/*')
        assert is_glob('crate?')
        assert is_glob('crates/[ab]*')


class TestResolveMembers:
    """Tests for resolve_members."""

    def test_glob_matches_dirs_with_manifest(self, tmp_path: Path) -> None:
        """A glob selects only directories holding a Cargo.toml."""
        _crate(tmp_path, 'crates/a')
        _crate(tmp_path, 'crates/b')
        (tmp_path / 'crates' / 'docs').mkdir()

        result = resolve_members(tmp_path, ['crates/*'])

        assert [d.name for d in result.directories] == ['a', 'b']
        assert result.unmatched == []

    def test_literal_member(self, tmp_path: Path) -> None:
        """A literal path is a member when its directory holds a Cargo.toml."""
        _crate(tmp_path, 'tools/cli')

        result = resolve_members(tmp_path, ['tools/cli'])

        assert result.directories == [tmp_path / 'tools' / 'cli']

    def test_literal_without_manifest_is_unmatched(self, tmp_path: Path) -> None:
        """An existing directory with no Cargo.toml is reported, not dropped silently."""
        _crate(tmp_path, 'utils')
        (tmp_path / 'core').mkdir()

        result = resolve_members(tmp_path, ['utils', 'core'])

        assert result.directories == [tmp_path / 'utils']
        assert result.unmatched == ['core']
        assert [w.code for w in result.warnings] == [E.MEMBER_NO_MATCH]

    def test_exclude_removes_subtree(self, tmp_path: Path) -> None:
        """An excluded directory and everything below it is dropped."""
        _crate(tmp_path, 'crates/a')
        _crate(tmp_path, 'crates/legacy')

        result = resolve_members(tmp_path, ['crates/*'], ['crates/legacy'])

        assert [d.name for d in result.directories] == ['a']

    def test_duplicates_collapse(self, tmp_path: Path) -> None:
        """A directory matched by two patterns appears once."""
        _crate(tmp_path, 'crates/a')

        result = resolve_members(tmp_path, ['crates/*', 'crates/a', './crates/a'])

        assert result.directories == [tmp_path / 'crates' / 'a']

    def test_unmatched_pattern_is_reported(self, tmp_path: Path) -> None:
        """A pattern matching nothing becomes a warning, not an error."""
        _crate(tmp_path, 'crates/a')

        result = resolve_members(tmp_path, ['crates/*', 'missing/*'])

        assert result.unmatched == ['missing/*']
        warnings = result.warnings
        assert len(warnings) == 1
        assert warnings[0].code == E.MEMBER_NO_MATCH
        assert 'missing/*' in str(warnings[0])

    def test_fully_excluded_pattern_is_unmatched(self, tmp_path: Path) -> None:
        """A pattern whose every match is excluded counts as unmatched."""
        _crate(tmp_path, 'crates/legacy')

        result = resolve_members(tmp_path, ['crates/legacy'], ['crates/legacy'])

        assert result.directories == []
        assert result.unmatched == ['crates/legacy']

    def test_include_root(self, tmp_path: Path) -> None:
        """The root directory is a member when it is also a package."""
        _crate(tmp_path, 'crates/a')

        result = resolve_members(tmp_path, ['crates/*'], include_root=True)

        assert result.directories == sorted([tmp_path, tmp_path / 'crates' / 'a'])

    def test_sorted_output(self, tmp_path: Path) -> None:
        """Directories come back sorted regardless of pattern order."""
        _crate(tmp_path, 'z')
        _crate(tmp_path, 'a')

        result = resolve_members(tmp_path, ['z', 'a'])

        assert result.directories == [tmp_path / 'a', tmp_path / 'z']
