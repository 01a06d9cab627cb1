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

"""Structured logging for cargo-workspace.

Configures `structlog <https://www.structlog.org/>`_ with two output modes:

- **Console** (default): colored, human-readable output when stderr is a TTY.
- **JSON** (``--json-log``): one JSON object per line, for CI log scrapers.

Both modes write to stderr so stdout stays clean for piped output
(e.g. ``cargo-workspace list --format json | jq``).

While the scheduler works on a package it binds ``package`` and
``version`` with :func:`package_context`, so every line logged underneath
(subprocess runner, cargo and crates.io backends) names the package::

    publish          package=core version=0.1.0 dry_run=False
    command_failed   package=core version=0.1.0 return_code=101

Usage::

    from cargo_workspace.logging import configure_logging, get_logger, package_context

    configure_logging(verbose=True)
    log = get_logger(__name__)
    with package_context('core', '0.1.0'):
        log.info('publish')
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Third-party loggers that log every HTTP request at INFO. They only
# show up with --verbose.
_CHATTY_LOGGERS = ('httpx', 'httpcore')


def _level_for(*, verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.WARNING
    if verbose:
        return logging.DEBUG
    return logging.INFO


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_log: bool = False,
) -> None:
    """Configure structlog for cargo-workspace.

    Call once at startup, before any logging calls. ``quiet`` wins over
    ``verbose`` when both are given.

    Args:
        verbose: Enable debug-level output, including HTTP request lines.
        quiet: Only show warnings and errors.
        json_log: Use JSON output instead of console output.
    """
    level = _level_for(verbose=verbose, quiet=quiet)
    logging.basicConfig(
        format='%(message)s',
        stream=sys.stderr,
        level=level,
        force=True,
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if verbose else max(level, logging.WARNING))

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_log:
        shared_processors.insert(3, structlog.processors.TimeStamper(fmt='iso', utc=True))
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        shared_processors.insert(3, structlog.processors.TimeStamper(fmt='%H:%M:%S'))
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


@contextmanager
def package_context(name: str, version: str) -> Iterator[None]:
    """Bind ``package`` and ``version`` to every log line in the block."""
    with structlog.contextvars.bound_contextvars(package=name, version=version):
        yield


def get_logger(name: str = 'cargo_workspace') -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger.

    Args:
        name: Logger name, used for filtering and identification.
    """
    return structlog.get_logger(name)


__all__ = [
    'configure_logging',
    'get_logger',
    'package_context',
]
