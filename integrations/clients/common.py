from __future__ import annotations

import aiohttp

DEFAULT_REQUEST_TIMEOUT = 10


class ClientRequestError(Exception):
    """A torrent client answered, but not with a usable torrent listing."""


def client_timeout(seconds: float = DEFAULT_REQUEST_TIMEOUT) -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(total=seconds)
