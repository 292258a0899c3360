from __future__ import annotations

from typing import Any, Dict, List, Optional

import aiohttp

from .common import DEFAULT_REQUEST_TIMEOUT, ClientRequestError, client_timeout

LIST_KEYS = ['name', 'progress']


async def deluge_request(
    session: aiohttp.ClientSession,
    base_url: str,
    method: str,
    params: list[Any],
    password: Optional[str],
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    url = base_url.rstrip('/')
    if not url.endswith('/json'):
        url = url + '/json'
    body_login = {"method": "auth.login", "params": [password or 'deluge'], "id": 1}
    r1 = await session.post(url, json=body_login, timeout=client_timeout(timeout))
    if getattr(r1, 'status', None) not in (200, 204):
        raise ClientRequestError(f'Deluge login failed: HTTP {getattr(r1, "status", None)}')
    login = await r1.json()
    if isinstance(login, dict) and login.get('result') is False:
        raise ClientRequestError('Deluge login rejected')
    body = {"method": method, "params": params, "id": 2}
    r2 = await session.post(url, json=body, timeout=client_timeout(timeout))
    if getattr(r2, 'status', None) not in (200, 204):
        raise ClientRequestError(f'Deluge {method} failed: HTTP {getattr(r2, "status", None)}')
    j = await r2.json()
    if not isinstance(j, dict):
        raise ClientRequestError(f'Deluge {method} returned no object')
    if j.get('error'):
        raise ClientRequestError(f'Deluge {method} error: {j.get("error")}')
    return j


async def deluge_list_torrents(
    session: aiohttp.ClientSession,
    base_url: str,
    password: Optional[str],
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> List[Dict[str, Any]]:
    j = await deluge_request(session, base_url, 'core.get_torrents_status', [{}, LIST_KEYS], password, timeout)
    result = j.get('result')
    if not isinstance(result, dict):
        raise ClientRequestError('Deluge core.get_torrents_status returned no result')
    out: List[Dict[str, Any]] = []
    for info_hash, status in result.items():
        if not isinstance(status, dict):
            continue
        out.append({
            'hash': info_hash,
            'name': status.get('name'),
            # Deluge reports 0..100
            'progress_percent': status.get('progress'),
        })
    return out
