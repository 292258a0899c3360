from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from storage.snapshots import SnapshotStore

DISCORD_LIMIT = 1900
SLACK_LIMIT = 38000


def _notif_destinations(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    notifications = config.get('notifications') if isinstance(config.get('notifications'), dict) else {}
    dests = notifications.get('destinations') if isinstance(notifications, dict) else None
    if isinstance(dests, list) and dests:
        return [d for d in dests if isinstance(d, dict) and d.get('url')]
    return []


def _notif_match_server(dest: Dict[str, Any], server_id: str) -> bool:
    sv = dest.get('servers')
    if not isinstance(sv, list) or not sv:
        return True
    if '*' in sv:
        return True
    return server_id in [str(s) for s in sv]


def _dest_key(dest: Dict[str, Any]) -> str:
    return str(dest.get('name') or dest.get('url'))


def format_text(title: str, detail_lines: List[str], dry_run: bool, limit: int) -> str:
    content = '\n'.join([f'**{title}**'] + [f'- {line}' for line in detail_lines])
    if dry_run:
        content = '[DRY RUN]\n' + content
    if len(content) > limit:
        content = content[:limit] + '\n...'
    return content


def generic_payload(
    notification_id: int,
    title: str,
    body: str,
    detail_lines: List[str],
    affected_count: int,
    server_id: str,
    dry_run: bool,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        'notificationId': notification_id,
        'serverId': server_id,
        'title': title,
        'body': body,
        'lines': list(detail_lines),
        'count': affected_count,
    }
    if dry_run:
        payload['dryRun'] = True
    return payload


class WebhookSink:
    """Delivers notifications to the configured webhook destinations.

    Redelivering a notification id replaces the earlier notification: Discord
    messages are edited in place and generic receivers get ``notificationId``
    to upsert on. When a ``store`` is given, Discord message ids are kept in it
    so the edit also happens on a later run.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: Dict[str, Any],
        dry_run: bool = False,
        debug_logging: bool = False,
        store: Optional[SnapshotStore] = None,
    ) -> None:
        self.session = session
        self.config = config
        self.dry_run = dry_run
        self.debug_logging = debug_logging
        self.store = store
        self.discord_messages: Dict[Tuple[str, int], str] = store.message_ids() if store is not None else {}

    async def deliver(
        self,
        notification_id: int,
        title: str,
        body: str,
        detail_lines: List[str],
        affected_count: int,
        server_id: str,
    ) -> None:
        payload = generic_payload(notification_id, title, body, detail_lines, affected_count, server_id, self.dry_run)
        for dest in _notif_destinations(self.config):
            if not _notif_match_server(dest, server_id):
                continue
            await self._send(dest, notification_id, payload)

    async def _send(self, dest: Dict[str, Any], notification_id: int, payload: Dict[str, Any]) -> None:
        url = dest.get('url')
        typ = str(dest.get('type') or 'generic').lower()
        timeout = aiohttp.ClientTimeout(total=5)
        headers = dest.get('headers') if isinstance(dest.get('headers'), dict) else None
        try:
            if typ == 'discord':
                await self._send_discord(dest, notification_id, payload, timeout)
            elif typ == 'slack':
                text = format_text(payload['title'], payload['lines'], self.dry_run, SLACK_LIMIT)
                resp = await self.session.post(url, json={'text': text}, timeout=timeout)
                _ = getattr(resp, 'status', None)
            else:
                resp = await self.session.post(url, json=payload, headers=headers, timeout=timeout)
                _ = getattr(resp, 'status', None)
        except Exception as e:
            if self.debug_logging:
                logging.warning(f"Notify({typ}): send failed: {e}")

    def _remember(self, key: Tuple[str, int], message_id: Optional[str]) -> None:
        if message_id is None:
            self.discord_messages.pop(key, None)
        else:
            self.discord_messages[key] = message_id
        if self.store is not None:
            self.store.record_message(key[0], key[1], message_id)

    async def _send_discord(
        self,
        dest: Dict[str, Any],
        notification_id: int,
        payload: Dict[str, Any],
        timeout: aiohttp.ClientTimeout,
    ) -> None:
        url = str(dest.get('url')).rstrip('/')
        content = format_text(payload['title'], payload['lines'], self.dry_run, DISCORD_LIMIT)
        key = (_dest_key(dest), notification_id)
        message_id = self.discord_messages.get(key)
        if message_id:
            resp = await self.session.patch(f'{url}/messages/{message_id}', json={'content': content}, timeout=timeout)
            if getattr(resp, 'status', None) in (200, 204):
                return
            # Message was deleted on the Discord side; post a fresh one
            self._remember(key, None)
        resp = await self.session.post(f'{url}?wait=true', json={'content': content}, timeout=timeout)
        if getattr(resp, 'status', None) == 200:
            try:
                data = await resp.json()
            except Exception:
                data = None
            if isinstance(data, dict) and data.get('id'):
                self._remember(key, str(data['id']))
