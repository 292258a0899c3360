from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.composer import NotificationComposer
from core.models import (
    Classification,
    FetchFailure,
    FetchSuccess,
    NotificationBatch,
    Server,
    SnapshotSet,
    Torrent,
    snapshot_from_torrents,
)
from core.rules import build_name_filter, classify_torrent, is_server_eligible


@dataclass
class SweepSummary:
    checked: int = 0
    skipped: int = 0
    failed: int = 0
    new: int = 0
    finished: int = 0
    notifications: int = 0
    # server id -> 'ok' | 'skipped' | 'fetch_failed' | 'error'
    per_server: Dict[str, str] = field(default_factory=dict)
    started_at: float = field(default_factory=time.time)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'checked': self.checked,
            'skipped': self.skipped,
            'failed': self.failed,
            'new': self.new,
            'finished': self.finished,
            'notifications': self.notifications,
            'per_server': dict(self.per_server),
            'duration_s': round(time.time() - self.started_at, 3),
        }


def reconcile(
    server: Server,
    previous: SnapshotSet,
    torrents: List[Torrent],
) -> Tuple[List[Torrent], List[Torrent], SnapshotSet]:
    """Diff a fetched torrent list against the stored baseline.

    Returns the new and newly completed torrents plus the replacement
    snapshot, which covers every fetched torrent whatever its classification.
    """
    accepts = build_name_filter(server.include_filter, server.exclude_filter)
    new: List[Torrent] = []
    done: List[Torrent] = []
    for torrent in torrents:
        verdict = classify_torrent(torrent, previous, server, accepts)
        if verdict is Classification.NEW:
            new.append(torrent)
        elif verdict is Classification.COMPLETED:
            done.append(torrent)
    return new, done, snapshot_from_torrents(torrents)


class ReconciliationEngine:
    def __init__(
        self,
        store: Any,
        fetcher: Any,
        composer: Optional[NotificationComposer] = None,
        *,
        session: Any = None,
        log_event: Optional[Callable[..., None]] = None,
        debug_logging: bool = False,
    ) -> None:
        # store: .read(server_id) / .write(server_id, snapshot)
        # fetcher: .fetch(session, server) -> FetchSuccess | FetchFailure
        self.store = store
        self.fetcher = fetcher
        self.composer = composer or NotificationComposer()
        self.session = session
        self.log_event = log_event or (lambda *a, **k: None)
        self.debug_logging = debug_logging
        self.last_summary = SweepSummary()

    async def run(self, servers: List[Server]) -> List[NotificationBatch]:
        summary = SweepSummary()
        self.last_summary = summary
        tasks = [self._check_isolated(server, summary) for server in servers]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        batches: List[NotificationBatch] = []
        for server, res in zip(servers, results):
            if isinstance(res, BaseException):
                logging.error(f"Unhandled error in server {server.label} task: {res}")
                continue
            if res is not None:
                batches.append(res)
        summary.notifications = len(batches)
        return batches

    async def _check_isolated(self, server: Server, summary: SweepSummary) -> Optional[NotificationBatch]:
        try:
            return await self.check_server(server, summary)
        except Exception as e:
            summary.failed += 1
            summary.per_server[server.id] = 'error'
            logging.error(f'Server {server.label}: processing error: {e}')
            return None

    async def check_server(self, server: Server, summary: SweepSummary) -> Optional[NotificationBatch]:
        if not is_server_eligible(server):
            summary.skipped += 1
            summary.per_server[server.id] = 'skipped'
            if self.debug_logging:
                logging.info(f'Server {server.label}: not configured or no alarms enabled; skipping')
            return None

        previous = self.store.read(server.id) or {}

        result = await self.fetcher.fetch(self.session, server)
        if isinstance(result, FetchFailure):
            summary.failed += 1
            summary.per_server[server.id] = 'fetch_failed'
            logging.warning(f'Server {server.label}: cannot retrieve torrents ({result.reason}); skipping until next sweep')
            self.log_event('fetch_failed', server=server.id, reason=result.reason)
            return None
        if not isinstance(result, FetchSuccess):
            raise TypeError(f'unexpected fetch result {type(result).__name__}')
        if self.debug_logging:
            logging.info(f'Server {server.label}: retrieved {len(result.torrents)} torrent(s)')

        new, done, current = reconcile(server, previous, result.torrents)
        # Synchronous on purpose: no await between load and replace of the shared file
        self.store.write(server.id, current)

        summary.checked += 1
        summary.new += len(new)
        summary.finished += len(done)
        summary.per_server[server.id] = 'ok'
        self.log_event('server_checked', server=server.id, torrents=len(current), new=len(new), finished=len(done))
        if self.debug_logging:
            logging.info(f'Server {server.label}: {len(new)} new torrents, {len(done)} newly finished torrents')
        return self.composer.compose(server, new, done)


async def sweep(
    servers: List[Server],
    engine: ReconciliationEngine,
    publish: Callable[[NotificationBatch], Any],
    log_fn: Callable[[str], None],
) -> SweepSummary:
    batches = await engine.run(servers)
    for batch in batches:
        await publish(batch)
    summary = engine.last_summary
    log_fn("Sweep summary:")
    log_fn(
        f"  servers: checked={summary.checked} skipped={summary.skipped} failed={summary.failed}"
    )
    log_fn(
        f"  torrents: new={summary.new} finished={summary.finished} notifications={summary.notifications}"
    )
    for sid, status in summary.per_server.items():
        log_fn(f"  {sid}: {status}")
    return summary
