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

"""Tests for the cargo-workspace CLI.

The real ``cargo publish`` backend is replaced by a fake, so these tests
drive the full discovery, sorting and scheduling path without cargo.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from cargo_workspace import __version__
from cargo_workspace.checkpoint import CheckpointStore
from cargo_workspace.cli import build_parser, main
from tests._fakes import FakePublisher, write_workspace

_ROOT_MANIFEST = """\
[workspace]
members = ["crates/*"]

[workspace.package]
version = "0.1.0"
"""

_CRATES = {
    'crates/utils': '[package]\nname = "utils"\nversion.workspace = true\n',
    'crates/core': (
        '[package]\nname = "core"\nversion.workspace = true\n\n'
        '[dependencies]\nutils = { path = "../utils", version = "0.1.0" }\n'
        'serde = "1"\n'
    ),
    'crates/app': (
        '[package]\nname = "app"\nversion.workspace = true\n\n'
        '[dependencies]\ncore = { path = "../core", version = "0.1.0" }\n'
    ),
}


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A three-package workspace: utils <- core <- app."""
    return write_workspace(tmp_path / 'ws', _ROOT_MANIFEST, _CRATES).resolve()


def _use_publisher(monkeypatch: pytest.MonkeyPatch, publisher: FakePublisher) -> None:
    monkeypatch.setattr('cargo_workspace.cli.CargoPublisher', lambda: publisher)


class TestParser:
    """Tests for build_parser."""

    def test_publish_flags(self) -> None:
        """publish accepts its flags."""
        args = build_parser().parse_args([
            'publish',
            '--dry-run',
            '--resume',
            '--skip-published',
            '--publish-interval',
            '2.5',
            '--check',
            'crates-io',
            '--registry',
            'internal',
        ])
        assert args.command == 'publish'
        assert args.dry_run
        assert args.resume
        assert args.skip_published is True
        assert args.publish_interval == 2.5
        assert args.check == 'crates-io'
        assert args.registry == 'internal'

    def test_publish_defaults_defer_to_settings(self) -> None:
        """Unset flags stay None so workspace settings apply."""
        args = build_parser().parse_args(['publish'])
        assert args.skip_published is None
        assert args.publish_interval is None
        assert args.check is None
        assert args.workspace_root is None

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        """--version prints the package version."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(['--version'])
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for main()."""

    def test_no_command(self) -> None:
        """No subcommand is a usage error."""
        assert main([]) == 2

    def test_explain(self, capsys: pytest.CaptureFixture[str]) -> None:
        """explain prints a known code."""
        assert main(['explain', 'CW-CHECKPOINT-STALE']) == 0
        assert 'CW-CHECKPOINT-STALE' in capsys.readouterr().out

    def test_explain_unknown(self, capsys: pytest.CaptureFixture[str]) -> None:
        """explain rejects unknown codes."""
        assert main(['explain', 'CW-NOPE']) == 1
        assert 'Unknown error code' in capsys.readouterr().out

    def test_list_json(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """list --format json prints the publish order."""
        assert main(['--quiet', 'list', '--workspace-root', str(workspace), '--format', 'json']) == 0

        rows = json.loads(capsys.readouterr().out)
        assert [row['name'] for row in rows] == ['utils', 'core', 'app']
        assert rows[2]['dependencies'] == ['core']
        assert rows[1]['external_dependencies'] == ['serde']
        assert rows[2]['external_dependencies'] == []

    def test_cargo_subcommand_prefix(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Running as ``cargo workspace`` drops the leading subcommand word."""
        assert main(['workspace', 'list', '-w', str(workspace), '--format', 'json']) == 0
        assert json.loads(capsys.readouterr().out)[0]['name'] == 'utils'

    def test_cycle_is_reported(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A dependency cycle exits 1 with the cycle path on stderr."""
        root = write_workspace(
            tmp_path / 'ws',
            '[workspace]\nmembers = ["a", "b"]\n',
            {
                'a': '[package]\nname = "a"\nversion = "0.1.0"\n[dependencies]\nb = { path = "../b", version = "0.1.0" }\n',
                'b': '[package]\nname = "b"\nversion = "0.1.0"\n[dependencies]\na = { path = "../a", version = "0.1.0" }\n',
            },
        )

        assert main(['--quiet', 'list', '-w', str(root)]) == 1

        err = capsys.readouterr().err
        assert 'CW-GRAPH-CYCLE-DETECTED' in err
        assert 'a -> b -> a' in err

    def test_missing_workspace(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A directory without a workspace manifest exits 1."""
        assert main(['--quiet', 'list', '-w', str(tmp_path)]) == 1
        assert 'CW-WORKSPACE-NOT-FOUND' in capsys.readouterr().err


class TestPublishCommand:
    """Tests for the publish subcommand."""

    def test_publish_all(self, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Every package is published in order and no checkpoint remains."""
        publisher = FakePublisher()
        _use_publisher(monkeypatch, publisher)

        assert main(['--quiet', 'publish', '-w', str(workspace)]) == 0

        assert publisher.names == ['utils', 'core', 'app']
        assert not CheckpointStore.for_workspace(workspace).exists()

    def test_dry_run(self, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """--dry-run previews every package and writes nothing."""
        publisher = FakePublisher()
        _use_publisher(monkeypatch, publisher)

        assert main(['--quiet', 'publish', '-w', str(workspace), '--dry-run']) == 0

        assert [dry for _, _, dry in publisher.calls] == [True, True, True]
        assert not (workspace / 'target').exists()

    def test_failure_then_resume(
        self,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A failure exits 1 and keeps the checkpoint; --resume finishes the rest."""
        failing = FakePublisher(fail={'core'})
        _use_publisher(monkeypatch, failing)

        assert main(['--quiet', 'publish', '-w', str(workspace)]) == 1
        assert failing.names == ['utils', 'core']
        err = capsys.readouterr().err
        assert 'CW-PUBLISH-FAILED' in err
        assert '--resume' in err
        assert CheckpointStore.for_workspace(workspace).exists()

        resumed = FakePublisher()
        _use_publisher(monkeypatch, resumed)

        assert main(['--quiet', 'publish', '-w', str(workspace), '--resume']) == 0
        assert resumed.names == ['core', 'app']
        assert not CheckpointStore.for_workspace(workspace).exists()

    def test_stale_resume(self, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A version bump after a failure makes --resume refuse to run."""
        _use_publisher(monkeypatch, FakePublisher(fail={'core'}))
        assert main(['--quiet', 'publish', '-w', str(workspace)]) == 1

        manifest = workspace / 'Cargo.toml'
        manifest.write_text(_ROOT_MANIFEST.replace('0.1.0', '0.2.0'), encoding='utf-8')
        resumed = FakePublisher()
        _use_publisher(monkeypatch, resumed)

        assert main(['--quiet', 'publish', '-w', str(workspace), '--resume']) == 1
        assert resumed.calls == []

    def test_settings_from_metadata(self, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """[workspace.metadata.cargo-workspace] supplies the registry."""
        manifest = workspace / 'Cargo.toml'
        manifest.write_text(
            _ROOT_MANIFEST + '\n[workspace.metadata.cargo-workspace]\nregistry = "internal"\n',
            encoding='utf-8',
        )
        publisher = FakePublisher()
        _use_publisher(monkeypatch, publisher)

        assert main(['--quiet', 'publish', '-w', str(workspace)]) == 0
        assert set(publisher.registries) == {'internal'}

    def test_negative_interval(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A negative --publish-interval is rejected before publishing."""
        assert main(['--quiet', 'publish', '-w', str(workspace), '--publish-interval', '-1']) == 1
        assert 'CW-CONFIG-INVALID-VALUE' in capsys.readouterr().err
