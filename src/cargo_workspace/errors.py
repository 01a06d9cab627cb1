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

"""Structured error system for cargo-workspace.

Every error has a unique ``CW-NAMED-KEY`` code, a human-readable message,
and an optional hint with a suggested fix.

Key Concepts (ELI5)::

    ┌────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                │ ELI5 Explanation                            │
    ├────────────────────────┼─────────────────────────────────────────────┤
    │ ErrorCode              │ A unique named ID like                      │
    │                        │ "CW-GRAPH-CYCLE-DETECTED" for each error.   │
    ├────────────────────────┼─────────────────────────────────────────────┤
    │ ErrorInfo              │ A bundle of code + message + hint. Like an  │
    │                        │ error card with a fix suggestion attached.  │
    ├────────────────────────┼─────────────────────────────────────────────┤
    │ CargoWorkspaceError    │ An exception you can raise. Carries the     │
    │                        │ error card so renderers can display it.     │
    ├────────────────────────┼─────────────────────────────────────────────┤
    │ explain()              │ Looks up an error code and prints details.  │
    └────────────────────────┴─────────────────────────────────────────────┘

Code categories::

    CW-CONFIG-*       Configuration errors ([workspace.metadata.cargo-workspace])
    CW-WORKSPACE-*    Workspace discovery errors
    CW-MEMBER-*       Member pattern warnings
    CW-MANIFEST-*     Manifest parsing errors
    CW-INHERIT-*      Workspace field inheritance errors
    CW-GRAPH-*        Dependency graph errors
    CW-CHECKPOINT-*   Checkpoint / resume errors
    CW-PUBLISH-*      Publish action errors

Usage::

    from cargo_workspace.errors import CargoWorkspaceError, E

    raise CargoWorkspaceError(
        code=E.GRAPH_CYCLE_DETECTED,
        message='Circular dependency: a -> b -> a',
        hint='Remove one of the edges in the cycle.',
    )
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape as rich_escape


class ErrorCode(str, Enum):
    """Enumeration of all cargo-workspace diagnostic codes.

    Use these constants instead of raw strings when raising
    :class:`CargoWorkspaceError`.
    """

    # Configuration
    CONFIG_INVALID_KEY = 'CW-CONFIG-INVALID-KEY'
    CONFIG_INVALID_VALUE = 'CW-CONFIG-INVALID-VALUE'

    # Workspace discovery
    WORKSPACE_NOT_FOUND = 'CW-WORKSPACE-NOT-FOUND'
    WORKSPACE_NO_MEMBERS = 'CW-WORKSPACE-NO-MEMBERS'
    MEMBER_NO_MATCH = 'CW-MEMBER-NO-MATCH'

    # Manifests
    MANIFEST_PARSE_ERROR = 'CW-MANIFEST-PARSE-ERROR'
    MANIFEST_INVALID = 'CW-MANIFEST-INVALID'
    INHERIT_UNRESOLVED = 'CW-INHERIT-UNRESOLVED'

    # Dependency graph
    GRAPH_DUPLICATE_PACKAGE = 'CW-GRAPH-DUPLICATE-PACKAGE'
    GRAPH_DANGLING_DEPENDENCY = 'CW-GRAPH-DANGLING-DEPENDENCY'
    GRAPH_CYCLE_DETECTED = 'CW-GRAPH-CYCLE-DETECTED'

    # Checkpoint / resume
    CHECKPOINT_CORRUPTED = 'CW-CHECKPOINT-CORRUPTED'
    CHECKPOINT_STALE = 'CW-CHECKPOINT-STALE'
    CHECKPOINT_WRITE_FAILED = 'CW-CHECKPOINT-WRITE-FAILED'

    # Publish
    PUBLISH_FAILED = 'CW-PUBLISH-FAILED'
    PUBLISH_CHECK_UNAVAILABLE = 'CW-PUBLISH-CHECK-UNAVAILABLE'


# Convenience alias for shorter imports.
E = ErrorCode


@dataclass(frozen=True)
class ErrorInfo:
    """Metadata for a single error code.

    Attributes:
        code: The ``CW-NAMED-KEY`` error code.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    code: ErrorCode
    message: str
    hint: str = ''


class CargoWorkspaceError(Exception):
    """Base exception for all cargo-workspace errors.

    Args:
        code: The error code from :class:`ErrorCode`.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    def __init__(self, code: ErrorCode, message: str, hint: str = '') -> None:
        """Initialize with an error code, message, and optional hint."""
        self.info = ErrorInfo(code=code, message=message, hint=hint)
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def hint(self) -> str:
        """Suggestion for fixing this error, or empty string."""
        return self.info.hint


class CargoWorkspaceWarning(UserWarning):
    """Base warning for all cargo-workspace warnings.

    Same structure as :class:`CargoWorkspaceError` but reported to the
    caller instead of being raised.
    """

    def __init__(self, code: ErrorCode, message: str, hint: str = '') -> None:
        """Initialize with an error code, message, and optional hint."""
        self.info = ErrorInfo(code=code, message=message, hint=hint)
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def hint(self) -> str:
        """Suggestion for addressing this warning, or empty string."""
        return self.info.hint


ERRORS: dict[ErrorCode, ErrorInfo] = {
    E.WORKSPACE_NOT_FOUND: ErrorInfo(
        code=E.WORKSPACE_NOT_FOUND,
        message='No Cargo.toml with a [workspace] table was found.',
        hint='Run from inside a Cargo workspace or pass --workspace-root.',
    ),
    E.MEMBER_NO_MATCH: ErrorInfo(
        code=E.MEMBER_NO_MATCH,
        message='A workspace member pattern matched no package directory.',
        hint='Fix or remove the pattern in [workspace].members.',
    ),
    E.INHERIT_UNRESOLVED: ErrorInfo(
        code=E.INHERIT_UNRESOLVED,
        message='A package inherits a field the workspace does not define.',
        hint='Add the field to [workspace.package] in the root Cargo.toml.',
    ),
    E.GRAPH_DUPLICATE_PACKAGE: ErrorInfo(
        code=E.GRAPH_DUPLICATE_PACKAGE,
        message='Two workspace members declare the same package name.',
        hint='Rename one of the packages or drop it from the workspace.',
    ),
    E.GRAPH_DANGLING_DEPENDENCY: ErrorInfo(
        code=E.GRAPH_DANGLING_DEPENDENCY,
        message='A package depends on a workspace path that is not a member.',
        hint='Add the dependency directory to [workspace].members or remove it from [workspace].exclude.',
    ),
    E.GRAPH_CYCLE_DETECTED: ErrorInfo(
        code=E.GRAPH_CYCLE_DETECTED,
        message='Circular dependency detected in the workspace dependency graph.',
        hint="Run 'cargo-workspace list' and break one edge of the reported cycle.",
    ),
    E.CHECKPOINT_CORRUPTED: ErrorInfo(
        code=E.CHECKPOINT_CORRUPTED,
        message='The publish checkpoint file cannot be read.',
        hint='Inspect target/cargo-workspace-publish.json, or delete it to start fresh.',
    ),
    E.CHECKPOINT_STALE: ErrorInfo(
        code=E.CHECKPOINT_STALE,
        message='The publish checkpoint does not match the current workspace.',
        hint='The workspace changed since the interrupted run. Delete the checkpoint and run without --resume.',
    ),
    E.CHECKPOINT_WRITE_FAILED: ErrorInfo(
        code=E.CHECKPOINT_WRITE_FAILED,
        message='The publish checkpoint could not be written.',
        hint='Make target/ writable, then re-run with --resume.',
    ),
    E.PUBLISH_FAILED: ErrorInfo(
        code=E.PUBLISH_FAILED,
        message='cargo publish failed for a package.',
        hint="Fix the failure and re-run 'cargo-workspace publish --resume'.",
    ),
}


def explain(code: str) -> str | None:
    """Return a detailed explanation for an error code.

    Args:
        code: The error code string, e.g. ``"CW-CHECKPOINT-STALE"``.

    Returns:
        A formatted explanation string, or ``None`` if the code is unknown.
    """
    try:
        error_code = ErrorCode(code)
    except ValueError:
        return None

    info = ERRORS.get(error_code)
    if info is None:
        return f'{code}: No detailed explanation available.'

    lines = [f'{code}: {info.message}']
    if info.hint:
        lines.append(f'  Hint: {info.hint}')
    return '\n'.join(lines)


def _render(label: str, style: str, info: ErrorInfo, out: TextIO) -> None:
    """Print one diagnostic in compiler style, colored when on a TTY."""
    if out.isatty():
        console = Console(file=out, highlight=False)
        msg = rich_escape(info.message)
        console.print(f'[bold {style}]{label}\\[{info.code.value}][/bold {style}][bold]: {msg}[/bold]')
        if info.hint:
            console.print('  [dim]|[/dim]')
            console.print(f'  [dim]=[/dim] [cyan]hint[/cyan]: {rich_escape(info.hint)}')
        console.print()
    else:
        print(f'{label}[{info.code.value}]: {info.message}', file=out)  # noqa: T201 - CLI output
        if info.hint:
            print('  |', file=out)  # noqa: T201 - CLI output
            print(f'  = hint: {info.hint}', file=out)  # noqa: T201 - CLI output
        print(file=out)  # noqa: T201 - CLI output


def render_error(exc: CargoWorkspaceError, *, file: TextIO | None = None) -> None:
    """Render an error in Rust-compiler style.

    Output format::

        error[CW-GRAPH-CYCLE-DETECTED]: Circular dependency: a -> b -> a
          |
          = hint: Break one edge of the reported cycle.

    Args:
        exc: The error to render.
        file: Output stream (defaults to ``sys.stderr``).
    """
    _render('error', 'red', exc.info, file or sys.stderr)


def render_warning(exc: CargoWorkspaceWarning, *, file: TextIO | None = None) -> None:
    """Render a warning in Rust-compiler style.

    Args:
        exc: The warning to render.
        file: Output stream (defaults to ``sys.stderr``).
    """
    _render('warning', 'yellow', exc.info, file or sys.stderr)


__all__ = [
    'E',
    'ERRORS',
    'CargoWorkspaceError',
    'CargoWorkspaceWarning',
    'ErrorCode',
    'ErrorInfo',
    'explain',
    'render_error',
    'render_warning',
]
