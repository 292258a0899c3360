from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core.models import NotificationBatch, Server, Torrent

# Notification ids are NOTIFY_BASE + server order so later sweeps replace
# the previous notification of the same server.
NOTIFY_BASE = 10000
MAX_DETAIL_LINES = 5
BODY_SEPARATOR = ', '

DEFAULT_TEMPLATES: Dict[str, str] = {
    'added_one': '{count} new torrent added',
    'added_other': '{count} new torrents added',
    'finished_one': '{count} torrent finished',
    'finished_other': '{count} torrents finished',
    'mixed_one': '{new} torrent added and {done} torrent finished',
    'mixed_other': '{new} new and {done} finished torrents',
    'and_others': 'and {others} others, such as {name}',
}


def notification_id_for(server: Server) -> int:
    return NOTIFY_BASE + int(server.order)


class NotificationComposer:
    def __init__(self, templates: Optional[Dict[str, Any]] = None) -> None:
        self.templates = dict(DEFAULT_TEMPLATES)
        for key, value in (templates or {}).items():
            if key in DEFAULT_TEMPLATES and isinstance(value, str) and value:
                self.templates[key] = value

    def _render(self, key: str, **fields: Any) -> str:
        try:
            return self.templates[key].format(**fields)
        except (KeyError, IndexError, ValueError) as e:
            logging.warning(f'Notify: template {key!r} failed to format ({e}); using default')
            return DEFAULT_TEMPLATES[key].format(**fields)

    def title(self, new_count: int, done_count: int) -> Optional[str]:
        if new_count > 0 and done_count > 0:
            # Singular only for exactly one added plus one finished
            key = 'mixed_one' if new_count + done_count == 2 else 'mixed_other'
            return self._render(key, new=new_count, done=done_count)
        if new_count > 0:
            key = 'added_one' if new_count == 1 else 'added_other'
            return self._render(key, count=new_count)
        if done_count > 0:
            key = 'finished_one' if done_count == 1 else 'finished_other'
            return self._render(key, count=done_count)
        return None

    def detail_lines(self, affected: List[Torrent]) -> List[str]:
        if len(affected) <= MAX_DETAIL_LINES:
            return [t.name for t in affected]
        lines = [t.name for t in affected[:4]]
        # References the item at index 5, not the fifth item
        lines.append(self._render('and_others', others=len(affected) - 4, name=affected[5].name))
        return lines

    def compose(
        self,
        server: Server,
        new: List[Torrent],
        done: List[Torrent],
    ) -> Optional[NotificationBatch]:
        new = list(new or [])
        done = list(done or [])
        title = self.title(len(new), len(done))
        if title is None:
            return None
        affected = new + done
        return NotificationBatch(
            server_id=server.id,
            new=new,
            done=done,
            title=title,
            body=BODY_SEPARATOR.join(t.name for t in affected),
            detail_lines=self.detail_lines(affected),
            notification_id=notification_id_for(server),
        )
