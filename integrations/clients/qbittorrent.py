from __future__ import annotations

from typing import Any, Dict, List

import aiohttp

from .common import DEFAULT_REQUEST_TIMEOUT, ClientRequestError, client_timeout


async def qbittorrent_login(
    session: aiohttp.ClientSession,
    base_url: str,
    username: str,
    password: str,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> None:
    login_url = base_url.rstrip('/') + '/api/v2/auth/login'
    form = aiohttp.FormData()
    form.add_field('username', username)
    form.add_field('password', password)
    resp = await session.post(login_url, data=form, timeout=client_timeout(timeout))
    status = getattr(resp, 'status', None)
    if status != 200:
        raise ClientRequestError(f'qBittorrent login failed: HTTP {status}')


async def qbittorrent_list_torrents(
    session: aiohttp.ClientSession,
    base_url: str,
    username: str,
    password: str,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> List[Dict[str, Any]]:
    await qbittorrent_login(session, base_url, username, password, timeout)
    info_url = base_url.rstrip('/') + '/api/v2/torrents/info'
    r = await session.get(info_url, timeout=client_timeout(timeout))
    status = getattr(r, 'status', None)
    if status != 200:
        raise ClientRequestError(f'qBittorrent torrents/info failed: HTTP {status}')
    data = await r.json()
    if not isinstance(data, list):
        raise ClientRequestError('qBittorrent torrents/info returned no list')
    return [d for d in data if isinstance(d, dict)]
