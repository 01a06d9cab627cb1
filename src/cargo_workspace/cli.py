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

"""CLI entry point for cargo-workspace.

Constructs the backends and injects them into the scheduler.

Subcommands::

    cargo-workspace publish   Publish every workspace package in dependency order
    cargo-workspace list      Show the publish order without publishing
    cargo-workspace explain   Explain an error code

Usage::

    # Preview the order:
    cargo-workspace list

    # Verify every package without uploading:
    cargo-workspace publish --dry-run

    # Publish, waiting 30s between uploads, skipping versions already live:
    cargo-workspace publish --publish-interval 30 --skip-published

    # Continue after a failure:
    cargo-workspace publish --resume

Also runs as a cargo subcommand (``cargo workspace publish``).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich_argparse import RichHelpFormatter

from cargo_workspace import __version__
from cargo_workspace.backends import CargoPublisher, CargoSearchCheck, CratesIoRegistry
from cargo_workspace.checkpoint import CheckpointStore
from cargo_workspace.config import ALLOWED_CHECKS, load_settings
from cargo_workspace.errors import CargoWorkspaceError, E, explain, render_error, render_warning
from cargo_workspace.graph import DependencyGraph, PublishPlan, build_graph, topo_sort
from cargo_workspace.logging import configure_logging, get_logger
from cargo_workspace.manifest import find_workspace_root
from cargo_workspace.scheduler import PublishedCheck, SchedulerConfig, publish_plan
from cargo_workspace.ui import LogProgressUI, print_plan, print_summary
from cargo_workspace.workspace import Workspace, discover_workspace

logger = get_logger(__name__)


def _resolve_root(args: argparse.Namespace) -> Path:
    """Return the workspace root from ``--workspace-root`` or by walking up from CWD."""
    if args.workspace_root is not None:
        return Path(args.workspace_root).resolve()
    return find_workspace_root()


def _load_plan(args: argparse.Namespace) -> tuple[Workspace, DependencyGraph, PublishPlan]:
    """Discover the workspace, render discovery warnings, and sort it.

    Configuration and structural errors propagate before anything is
    published.
    """
    workspace = discover_workspace(_resolve_root(args))
    for warning in workspace.warnings:
        render_warning(warning)
    graph = build_graph(workspace.packages)
    plan = topo_sort(graph)
    return workspace, graph, plan


def _create_check(kind: str) -> PublishedCheck:
    """Return the already-published check backend named ``kind``."""
    if kind == 'crates-io':
        return CratesIoRegistry()
    return CargoSearchCheck()


async def _cmd_publish(args: argparse.Namespace) -> int:
    """Handle the ``publish`` subcommand."""
    workspace, _graph, plan = _load_plan(args)
    settings = load_settings(workspace.context)

    registry = args.registry if args.registry is not None else settings.registry
    config = SchedulerConfig(
        dry_run=args.dry_run,
        resume=args.resume,
        skip_published=args.skip_published if args.skip_published is not None else settings.skip_published,
        delay=args.publish_interval if args.publish_interval is not None else settings.publish_interval,
        token=args.token,
        registry=registry,
    )
    if config.delay < 0:
        raise CargoWorkspaceError(
            E.CONFIG_INVALID_VALUE,
            f'--publish-interval must be >= 0, got {config.delay}',
        )
    check = _create_check(args.check or settings.check) if config.skip_published else None
    store = CheckpointStore.for_workspace(workspace.root)

    with LogProgressUI() as ui:
        result = await publish_plan(
            plan,
            action=CargoPublisher(),
            config=config,
            store=store,
            published_check=check,
            observer=ui,
        )
    print_summary(plan, result)

    failed = result.failed_package
    if failed is not None:
        hint = (
            f"Fix the failure and run 'cargo-workspace publish --resume' (checkpoint: {result.checkpoint_path})."
            if result.checkpoint_path is not None
            else 'Fix the failure and run the publish again.'
        )
        render_error(
            CargoWorkspaceError(
                E.PUBLISH_FAILED,
                f"Publishing '{failed}' failed: {result.failed[failed]}",
                hint=hint,
            ),
        )
        return 1
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    """Handle the ``list`` subcommand."""
    _workspace, graph, plan = _load_plan(args)
    if args.format == 'json':
        rows = [
            {
                'name': pkg.name,
                'version': pkg.version,
                'path': str(pkg.path),
                'publishable': pkg.publishable,
                'dependencies': graph.dependencies_of(pkg.name),
                'external_dependencies': sorted(pkg.external_dependencies),
            }
            for pkg in plan
        ]
        print(json.dumps(rows, indent=2))  # noqa: T201 - CLI output
        return 0
    print_plan(plan, graph)
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    """Handle the ``explain`` subcommand."""
    result = explain(args.code)
    if result is None:
        print(f'Unknown error code: {args.code}')  # noqa: T201 - CLI output
        return 1
    print(result)  # noqa: T201 - CLI output
    return 0


def _add_workspace_root(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--workspace-root',
        '-w',
        metavar='PATH',
        default=None,
        help='Workspace root directory. Defaults to the nearest parent with a [workspace] Cargo.toml.',
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured :class:`argparse.ArgumentParser`.
    """
    RichHelpFormatter.styles['argparse.groups'] = 'bold yellow'
    parser = argparse.ArgumentParser(
        prog='cargo-workspace',
        description='Publish Cargo workspace packages in dependency order.',
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging.')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only log warnings and errors.')
    parser.add_argument('--json-log', action='store_true', help='Emit logs as JSON lines.')

    subparsers = parser.add_subparsers(dest='command')

    publish_parser = subparsers.add_parser(
        'publish',
        help='Publish every workspace package in dependency order.',
        formatter_class=RichHelpFormatter,
    )
    _add_workspace_root(publish_parser)
    publish_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Run cargo publish --dry-run for each package. The checkpoint is never written.',
    )
    publish_parser.add_argument(
        '--skip-published',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Skip packages whose version is already on the registry.',
    )
    publish_parser.add_argument(
        '--resume',
        action='store_true',
        help='Continue from the checkpoint left by a failed run.',
    )
    publish_parser.add_argument(
        '--token',
        default=None,
        help='Registry token passed to cargo publish (default: cargo credentials / CARGO_REGISTRY_TOKEN).',
    )
    publish_parser.add_argument(
        '--registry',
        default=None,
        help='Alternative registry name from .cargo/config.toml.',
    )
    publish_parser.add_argument(
        '--publish-interval',
        type=float,
        default=None,
        metavar='SECONDS',
        help='Seconds to wait between publishes (default: 0).',
    )
    publish_parser.add_argument(
        '--check',
        choices=sorted(ALLOWED_CHECKS),
        default=None,
        help='Already-published check used by --skip-published (default: cargo).',
    )

    list_parser = subparsers.add_parser(
        'list',
        help='Show the publish order without publishing.',
        formatter_class=RichHelpFormatter,
    )
    _add_workspace_root(list_parser)
    list_parser.add_argument(
        '--format',
        choices=['text', 'json'],
        default='text',
        help='Output format (default: text).',
    )

    explain_parser = subparsers.add_parser(
        'explain',
        help='Explain an error code.',
        formatter_class=RichHelpFormatter,
    )
    explain_parser.add_argument('code', help='Error code, e.g. CW-CHECKPOINT-STALE.')

    return parser


def _strip_cargo_subcommand(argv: list[str]) -> list[str]:
    """Drop the ``workspace`` word cargo passes when run as ``cargo workspace``."""
    if argv and argv[0] == 'workspace':
        return argv[1:]
    return argv


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args(_strip_cargo_subcommand(list(sys.argv[1:] if argv is None else argv)))
    configure_logging(verbose=args.verbose, quiet=args.quiet, json_log=args.json_log)

    try:
        command = args.command
        if command == 'publish':
            return asyncio.run(_cmd_publish(args))
        if command == 'list':
            return _cmd_list(args)
        if command == 'explain':
            return _cmd_explain(args)

        parser.print_help()
        print(  # noqa: T201 - CLI output
            f'\n{parser.prog}: error: please provide a command',
            file=sys.stderr,
        )
        return 2

    except CargoWorkspaceError as exc:
        render_error(exc)
        return 1
    except KeyboardInterrupt:
        logger.info('interrupted')
        return 130


def _main() -> None:
    """Wrapper for the [project.scripts] entry point."""
    sys.exit(main())


__all__ = [
    'build_parser',
    'main',
]
