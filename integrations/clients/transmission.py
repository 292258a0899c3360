from __future__ import annotations

from typing import Any, Dict, List, Optional

import aiohttp

from .common import DEFAULT_REQUEST_TIMEOUT, ClientRequestError, client_timeout

LIST_FIELDS = ['id', 'hashString', 'name', 'percentDone']


def transmission_rpc_url(base_url: str) -> str:
    url = base_url.rstrip('/')
    if not url.endswith('/rpc'):
        url = url + '/transmission/rpc'
    return url


async def transmission_call(
    session: aiohttp.ClientSession,
    base_url: str,
    username: Optional[str],
    password: Optional[str],
    method: str,
    arguments: Dict[str, Any],
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    url = transmission_rpc_url(base_url)
    headers: Dict[str, str] = {}
    auth = aiohttp.BasicAuth(username or '', password or '') if (username or password) else None
    body = {"method": method, "arguments": arguments}
    resp = await session.post(url, json=body, headers=headers, auth=auth, timeout=client_timeout(timeout))
    if getattr(resp, 'status', None) == 409:
        # CSRF handshake: retry once with the session id the daemon handed out
        sid = getattr(resp, 'headers', {}).get('X-Transmission-Session-Id')
        if not sid:
            raise ClientRequestError('Transmission returned 409 without a session id')
        headers['X-Transmission-Session-Id'] = sid
        resp = await session.post(url, json=body, headers=headers, auth=auth, timeout=client_timeout(timeout))
    status = getattr(resp, 'status', None)
    if status not in (200, 204):
        raise ClientRequestError(f'Transmission {method} failed: HTTP {status}')
    j = await resp.json()
    if not isinstance(j, dict):
        raise ClientRequestError(f'Transmission {method} returned no object')
    if j.get('result') not in (None, 'success'):
        raise ClientRequestError(f'Transmission {method} failed: {j.get("result")}')
    return j


async def transmission_list_torrents(
    session: aiohttp.ClientSession,
    base_url: str,
    username: Optional[str],
    password: Optional[str],
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> List[Dict[str, Any]]:
    j = await transmission_call(session, base_url, username, password, 'torrent-get', {"fields": LIST_FIELDS}, timeout)
    arr = (j.get('arguments') or {}).get('torrents')
    if not isinstance(arr, list):
        raise ClientRequestError('Transmission torrent-get returned no torrents list')
    return [t for t in arr if isinstance(t, dict)]
