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

"""crates.io registry check.

:class:`CratesIoRegistry` implements
:class:`~cargo_workspace.scheduler.PublishedCheck` using the
`crates.io API <https://crates.io/api/v1>`_::

    GET /api/v1/crates/{name}/{version}    → 200 if the version exists

Alternative registries are not queried over HTTP; use
:class:`~cargo_workspace.backends.cargo.CargoSearchCheck` for those.
"""

from __future__ import annotations

import httpx

from cargo_workspace.logging import get_logger
from cargo_workspace.net import DEFAULT_POOL_SIZE, DEFAULT_TIMEOUT, http_client, request_with_retry

log = get_logger('cargo_workspace.backends.crates_io')


class CratesIoRegistry:
    """crates.io already-published check.

    Args:
        base_url: Base URL of the crates.io API host.
        pool_size: HTTP connection pool size.
        timeout: HTTP request timeout in seconds.
        transport: Custom httpx transport (tests).
    """

    #: Base URL for the production crates.io registry.
    DEFAULT_BASE_URL: str = 'https://crates.io'

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        pool_size: int = DEFAULT_POOL_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize with crates.io base URL, pool size, and timeout."""
        self._base_url = base_url.rstrip('/')
        self._pool_size = pool_size
        self._timeout = timeout
        self._transport = transport

    async def check_published(self, name: str, version: str, registry: str | None = None) -> bool:
        """Return True if ``name@version`` exists on crates.io.

        Args:
            name: Crate name.
            version: Version string.
            registry: Must be ``None`` or ``"crates-io"``.

        Raises:
            ValueError: If an alternative registry is requested.
            httpx.HTTPError: If the API stays unreachable after retries.
        """
        if registry not in (None, 'crates-io'):
            msg = f'CratesIoRegistry cannot check alternative registry {registry!r}'
            raise ValueError(msg)
        url = f'{self._base_url}/api/v1/crates/{name}/{version}'
        async with http_client(pool_size=self._pool_size, timeout=self._timeout, transport=self._transport) as client:
            response = await request_with_retry(client, 'GET', url)
        available = response.status_code == 200
        if available:
            log.info('crate_version_available', crate=name, version=version)
        else:
            log.debug('crate_version_not_found', crate=name, version=version, status=response.status_code)
        return available


__all__ = [
    'CratesIoRegistry',
]
