from __future__ import annotations

from typing import Any, Dict, Optional

from core.models import Torrent


def clamp_fraction(value: Any, scale: float = 1.0) -> Optional[float]:
    try:
        frac = float(value) / scale
    except (TypeError, ValueError):
        return None
    # clamp 0..1
    return max(0.0, min(1.0, frac))


def get_completion_fraction(raw: Dict[str, Any]) -> float:
    # qBittorrent 'progress' and Transmission 'percentDone' are 0..1
    for key in ('progress', 'percentDone'):
        if raw.get(key) is not None:
            frac = clamp_fraction(raw.get(key))
            if frac is not None:
                return frac
    # Deluge reports percent
    if raw.get('progress_percent') is not None:
        frac = clamp_fraction(raw.get('progress_percent'), 100.0)
        if frac is not None:
            return frac
    size = raw.get('total_size') or raw.get('size')
    left = raw.get('amount_left')
    try:
        if size and left is not None and int(size) > 0:
            return max(0.0, min(1.0, (int(size) - int(left)) / int(size)))
    except (TypeError, ValueError):
        pass
    return 0.0


def get_torrent_id(raw: Dict[str, Any]) -> Optional[str]:
    for key in ('hash', 'hashString', 'info_hash'):
        val = raw.get(key)
        if val:
            return str(val).lower()
    return None


def to_torrent(raw: Dict[str, Any]) -> Optional[Torrent]:
    torrent_id = get_torrent_id(raw)
    if not torrent_id:
        return None
    return Torrent(
        id=torrent_id,
        name=str(raw.get('name') or ''),
        fraction=get_completion_fraction(raw),
    )
