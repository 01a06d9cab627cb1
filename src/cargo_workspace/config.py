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

"""Publish settings from ``[workspace.metadata.cargo-workspace]``.

Lets a workspace pin its publish defaults in the root ``Cargo.toml``
instead of repeating flags on every run. Command-line flags override
these values.

Supported keys::

    [workspace.metadata.cargo-workspace]
    publish-interval = 30          # seconds between real publishes
    skip-published   = true        # consult the registry before publishing
    registry         = "my-corp"   # alternative registry name
    check            = "crates-io" # "cargo" (cargo search) or "crates-io" (HTTP API)

Validation Pipeline::

    [workspace.metadata.cargo-workspace]
    ┌──────────────────────┐
    │ publish-intervall=5  │  ← typo!
    └──────────┬───────────┘
               ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 1. Unknown key   │────→│ CW-CONFIG-INVALID-KEY:       │
    │    detection     │     │ hint: "Did you mean          │
    └────────┬─────────┘     │       'publish-interval'?"   │
             ▼               └──────────────────────────────┘
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 2. Type / value  │────→│ CW-CONFIG-INVALID-VALUE      │
    │    check         │     └──────────────────────────────┘
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ PublishSettings  │  ← frozen dataclass
    └──────────────────┘
"""

from __future__ import annotations

import difflib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from cargo_workspace.errors import CargoWorkspaceError, E
from cargo_workspace.logging import get_logger
from cargo_workspace.manifest import WorkspaceContext

logger = get_logger(__name__)

# Key under [workspace.metadata].
METADATA_KEY = 'cargo-workspace'

VALID_KEYS: frozenset[str] = frozenset({
    'check',
    'publish-interval',
    'registry',
    'skip-published',
})

ALLOWED_CHECKS: frozenset[str] = frozenset({'cargo', 'crates-io'})

_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'check': str,
    'publish-interval': (int, float),
    'registry': str,
    'skip-published': bool,
}


@dataclass(frozen=True)
class PublishSettings:
    """Workspace-level publish defaults.

    Attributes:
        publish_interval: Seconds to wait between real publishes.
        skip_published: Skip versions already on the registry.
        registry: Alternative registry name, or ``None`` for crates.io.
        check: Already-published check backend: ``"cargo"`` or ``"crates-io"``.
    """

    publish_interval: float = 0.0
    skip_published: bool = False
    registry: str | None = None
    check: str = 'cargo'


def _suggest_key(unknown: str) -> str | None:
    """Return the closest valid key for a typo, or None."""
    matches = difflib.get_close_matches(unknown, VALID_KEYS, n=1, cutoff=0.6)
    return matches[0] if matches else None


def _validate_value_type(key: str, value: Any) -> None:  # noqa: ANN401 - dynamic config values
    """Raise if a config value has the wrong type."""
    expected = _TYPE_MAP[key]
    # bool is an int subclass; never accept it for numeric keys.
    if not isinstance(value, expected) or (isinstance(value, bool) and expected is not bool):
        type_name = expected.__name__ if isinstance(expected, type) else 'number'
        raise CargoWorkspaceError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'{key}' must be {type_name}, got {type(value).__name__}",
            hint=f'Check the value of {key} in [workspace.metadata.{METADATA_KEY}].',
        )


def load_settings(context: WorkspaceContext) -> PublishSettings:
    """Read and validate publish settings from the workspace metadata.

    Returns:
        The validated settings, or defaults if the table is absent.

    Raises:
        CargoWorkspaceError: On unknown keys or invalid values.
    """
    raw = context.metadata.get(METADATA_KEY)
    if raw is None:
        return PublishSettings()
    if not isinstance(raw, Mapping):
        raise CargoWorkspaceError(
            code=E.CONFIG_INVALID_VALUE,
            message=f'[workspace.metadata.{METADATA_KEY}] must be a table.',
        )

    for key, value in raw.items():
        if key not in VALID_KEYS:
            suggestion = _suggest_key(key)
            raise CargoWorkspaceError(
                code=E.CONFIG_INVALID_KEY,
                message=f"Unknown key '{key}' in [workspace.metadata.{METADATA_KEY}].",
                hint=f"Did you mean '{suggestion}'?" if suggestion else f'Valid keys: {", ".join(sorted(VALID_KEYS))}',
            )
        _validate_value_type(key, value)

    interval = float(raw.get('publish-interval', 0))
    if interval < 0:
        raise CargoWorkspaceError(
            code=E.CONFIG_INVALID_VALUE,
            message=f'publish-interval must be >= 0, got {interval}',
        )
    check = raw.get('check', 'cargo')
    if check not in ALLOWED_CHECKS:
        raise CargoWorkspaceError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"check must be one of {sorted(ALLOWED_CHECKS)}, got '{check}'",
            hint="Use 'cargo' for cargo search or 'crates-io' for the crates.io API.",
        )

    settings = PublishSettings(
        publish_interval=interval,
        skip_published=raw.get('skip-published', False),
        registry=raw.get('registry'),
        check=check,
    )
    logger.debug('settings_loaded', settings=settings)
    return settings


__all__ = [
    'ALLOWED_CHECKS',
    'METADATA_KEY',
    'PublishSettings',
    'VALID_KEYS',
    'load_settings',
]
