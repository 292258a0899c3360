from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

import aiohttp

from core.models import FetchFailure, FetchResult, FetchSuccess, Server, Torrent
from core.utils import to_torrent

from . import qbittorrent as qb_mod
from . import transmission as tr_mod
from . import deluge as dl_mod
from .common import DEFAULT_REQUEST_TIMEOUT, ClientRequestError

SUPPORTED_TYPES = ('qbittorrent', 'transmission', 'deluge')


async def list_raw_torrents(
    session: aiohttp.ClientSession,
    server: Server,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> List[Dict[str, Any]]:
    typ = str(server.type or '').lower()
    url = str(server.address or '')
    if typ == 'qbittorrent':
        return await qb_mod.qbittorrent_list_torrents(session, url, server.username or '', server.password or '', timeout)
    if typ == 'transmission':
        return await tr_mod.transmission_list_torrents(session, url, server.username, server.password, timeout)
    if typ == 'deluge':
        return await dl_mod.deluge_list_torrents(session, url, server.password, timeout)
    raise ClientRequestError(f'unsupported server type: {server.type}')


class TorrentFetcher:
    def __init__(self, request_timeout: float = DEFAULT_REQUEST_TIMEOUT, debug_logging: bool = False) -> None:
        self.request_timeout = request_timeout
        self.debug_logging = debug_logging

    async def fetch(self, session: aiohttp.ClientSession, server: Server) -> FetchResult:
        try:
            raw = await list_raw_torrents(session, server, self.request_timeout)
        except ClientRequestError as e:
            return FetchFailure(reason=str(e))
        except asyncio.TimeoutError:
            return FetchFailure(reason=f'timed out after {self.request_timeout}s')
        except aiohttp.ClientError as e:
            return FetchFailure(reason=f'{type(e).__name__}: {e}')
        except Exception as e:
            return FetchFailure(reason=f'unexpected {type(e).__name__}: {e}')
        torrents: List[Torrent] = []
        seen = set()
        for item in raw:
            t = to_torrent(item)
            if t is None or t.id in seen:
                if self.debug_logging:
                    logging.info(f'Server {server.label}: ignoring torrent without unique id: {item.get("name")}')
                continue
            seen.add(t.id)
            torrents.append(t)
        return FetchSuccess(torrents=torrents)
