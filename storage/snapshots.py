from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from core.models import SnapshotEntry, SnapshotSet

SNAPSHOT_FORMAT_VERSION = 1


class MalformedSnapshotEntry(ValueError):
    pass


def encode_entry(entry: SnapshotEntry) -> Dict[str, Any]:
    return {'id': entry.id, 'done': bool(entry.done)}


def decode_entry(raw: Any) -> SnapshotEntry:
    if not isinstance(raw, dict):
        raise MalformedSnapshotEntry(f'not an object: {raw!r}')
    entry_id = raw.get('id')
    done = raw.get('done')
    if not isinstance(entry_id, str) or not entry_id:
        raise MalformedSnapshotEntry(f'missing id: {raw!r}')
    if not isinstance(done, bool):
        raise MalformedSnapshotEntry(f'missing done flag: {raw!r}')
    return SnapshotEntry(id=entry_id, done=done)


def encode_set(snapshot: SnapshotSet) -> List[Dict[str, Any]]:
    return [encode_entry(e) for e in sorted(snapshot.values(), key=lambda e: e.id)]


def decode_set(raw: Any, debug_logging: bool = False) -> SnapshotSet:
    out: SnapshotSet = {}
    if not isinstance(raw, list):
        return out
    for item in raw:
        try:
            entry = decode_entry(item)
        except MalformedSnapshotEntry as e:
            # Treated as absent; the torrent is evaluated without a baseline
            if debug_logging:
                logging.warning(f'Skipping malformed snapshot entry: {e}')
            continue
        out[entry.id] = entry
    return out


def _empty_document() -> Dict[str, Any]:
    return {'version': SNAPSHOT_FORMAT_VERSION, 'servers': {}, 'messages': {}}


def load_document(path: str, debug_logging: bool = False) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as file:
            doc = json.load(file)
    except (OSError, ValueError):
        # Missing, unreadable, non-UTF-8 or invalid JSON; the next write replaces it
        if debug_logging:
            logging.warning("Snapshot file not found or is invalid. Starting with empty baselines.")
        return _empty_document()
    if not isinstance(doc, dict) or doc.get('version') != SNAPSHOT_FORMAT_VERSION:
        if debug_logging:
            logging.warning("Snapshot file has an unknown format version. Starting with empty baselines.")
        return _empty_document()
    if not isinstance(doc.get('servers'), dict):
        doc['servers'] = {}
    if not isinstance(doc.get('messages'), dict):
        doc['messages'] = {}
    return doc


def save_document(doc: Dict[str, Any], path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = path + '.tmp'
    with open(tmp_path, 'w', encoding='utf-8') as file:
        json.dump(doc, file, indent=4)
    os.replace(tmp_path, path)


class SnapshotStore:
    """Per-server torrent baselines kept in one JSON file.

    ``write`` replaces a server's whole set through a temp file and
    ``os.replace``, so a reader never observes a partially written set.
    Neither call yields to the event loop, which keeps concurrent servers
    from interleaving their read-modify-replace cycles.

    The same document also maps each webhook destination's notification ids
    to the chat message posted for them, so a later run can edit that message.
    """

    def __init__(self, path: str, debug_logging: bool = False) -> None:
        self.path = path
        self.debug_logging = debug_logging

    def read(self, server_id: str) -> Optional[SnapshotSet]:
        doc = load_document(self.path, self.debug_logging)
        raw = doc['servers'].get(server_id)
        if raw is None:
            return None
        return decode_set(raw, self.debug_logging)

    def write(self, server_id: str, snapshot: SnapshotSet) -> None:
        doc = load_document(self.path, self.debug_logging)
        doc['servers'][server_id] = encode_set(snapshot)
        save_document(doc, self.path)

    def clear(self, server_id: Optional[str] = None) -> bool:
        doc = load_document(self.path, self.debug_logging)
        if server_id is None:
            doc['servers'] = {}
        elif server_id in doc['servers']:
            doc['servers'].pop(server_id, None)
        else:
            return False
        save_document(doc, self.path)
        return True

    def server_ids(self) -> List[str]:
        return sorted(load_document(self.path, self.debug_logging)['servers'].keys())

    def message_ids(self) -> Dict[Tuple[str, int], str]:
        out: Dict[Tuple[str, int], str] = {}
        for dest, ids in load_document(self.path, self.debug_logging)['messages'].items():
            if not isinstance(ids, dict):
                continue
            for notification_id, message_id in ids.items():
                try:
                    key = (str(dest), int(notification_id))
                except (TypeError, ValueError):
                    continue
                if isinstance(message_id, str) and message_id:
                    out[key] = message_id
        return out

    def record_message(self, dest: str, notification_id: int, message_id: Optional[str]) -> None:
        """Remember (or with ``None`` forget) the message posted for a notification."""
        doc = load_document(self.path, self.debug_logging)
        ids = doc['messages'].get(dest)
        if not isinstance(ids, dict):
            ids = {}
        if message_id is None:
            if str(notification_id) not in ids:
                return
            ids.pop(str(notification_id), None)
        else:
            ids[str(notification_id)] = message_id
        doc['messages'][dest] = ids
        save_document(doc, self.path)
