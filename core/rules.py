from __future__ import annotations

from typing import Callable, List, Optional

from core.models import Classification, Server, SnapshotSet, Torrent

FILTER_DELIMITER = '|'

NameFilter = Callable[[str], bool]


def parse_filter(raw: Optional[str]) -> Optional[List[str]]:
    """Split a pipe-delimited filter string into uppercased tokens.

    Returns None when no filter is set. Empty segments are kept: an empty
    include token (e.g. from a trailing pipe in ``"ubuntu|"``) matches every
    name. ``str.split`` keeps trailing empty segments, so a trailing pipe is
    permissive here as well as a leading or doubled one (``"|ubuntu"``,
    ``"a||b"``); splitters that drop trailing empties only honour the latter.
    """
    if not raw:
        return None
    return [token.upper() for token in str(raw).split(FILTER_DELIMITER)]


def include_matches(upper_name: str, include_tokens: Optional[List[str]]) -> bool:
    if include_tokens is None:
        return True
    for token in include_tokens:
        if token == '' or token in upper_name:
            return True
    return False


def exclude_matches(upper_name: str, exclude_tokens: Optional[List[str]]) -> bool:
    if exclude_tokens is None:
        return False
    for token in exclude_tokens:
        if token != '' and token in upper_name:
            return True
    return False


def build_name_filter(include_filter: Optional[str], exclude_filter: Optional[str]) -> NameFilter:
    """Build the accept predicate for torrent names. Exclude always wins over include."""
    include_tokens = parse_filter(include_filter)
    exclude_tokens = parse_filter(exclude_filter)

    def accepts(name: str) -> bool:
        upper_name = (name or '').upper()
        if not include_matches(upper_name, include_tokens):
            return False
        return not exclude_matches(upper_name, exclude_tokens)

    return accepts


def is_server_configured(server: Server) -> bool:
    return bool(server.type) and bool(server.address)


def is_server_eligible(server: Server) -> bool:
    if not is_server_configured(server):
        return False
    return bool(server.alarm_on_new or server.alarm_on_finished)


def classify_torrent(
    torrent: Torrent,
    previous: SnapshotSet,
    server: Server,
    accepts: NameFilter,
) -> Classification:
    entry = previous.get(torrent.id)
    if entry is None:
        # Never evaluated for completion without a baseline
        if server.alarm_on_new and accepts(torrent.name):
            return Classification.NEW
        return Classification.UNCLASSIFIED
    if (
        not entry.done
        and torrent.is_done
        and server.alarm_on_finished
        and accepts(torrent.name)
    ):
        return Classification.COMPLETED
    return Classification.UNCLASSIFIED
