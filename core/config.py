from __future__ import annotations

import os
import re
from typing import Any, Dict, List, Optional

VALID_SERVER_TYPES = {'qbittorrent', 'transmission', 'deluge'}
VALID_DESTINATION_TYPES = {'discord', 'slack', 'generic'}


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        import yaml  # type: ignore
    except Exception:
        return {}
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
            return data if isinstance(data, dict) else {}
    except Exception:
        return {}


def _get_env(key: str, default: Any = None) -> Any:
    return os.environ.get(key, default)


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def env_key_for(server_id: str) -> str:
    return re.sub(r'[^A-Z0-9]', '_', str(server_id).upper())


class ConfigAccessor:
    def __init__(self, cfg: Dict[str, Any]) -> None:
        self.cfg = cfg if isinstance(cfg, dict) else {}

    # Servers, in configured order
    def servers(self) -> List[Dict[str, Any]]:
        servers = self.cfg.get('servers') if isinstance(self.cfg.get('servers'), list) else []
        return [s for s in servers if isinstance(s, dict)]

    # Credentials from env take precedence over YAML (e.g. SEEDBOX_PASSWORD)
    def server_credentials(self, server_id: str, server_cfg: Dict[str, Any]) -> Dict[str, Optional[str]]:
        prefix = env_key_for(server_id)
        return {
            'username': _get_env(f'{prefix}_USERNAME') or server_cfg.get('username'),
            'password': _get_env(f'{prefix}_PASSWORD') or server_cfg.get('password'),
        }

    # Notifications accessors
    def notification_destinations(self) -> List[Dict[str, Any]]:
        notif = self.cfg.get('notifications') if isinstance(self.cfg.get('notifications'), dict) else {}
        dests = notif.get('destinations') if isinstance(notif.get('destinations'), list) else []
        out: List[Dict[str, Any]] = []
        for d in dests:
            if not isinstance(d, dict):
                continue
            url = d.get('url')
            typ = str(d.get('type') or 'generic').lower()
            if not url or typ not in VALID_DESTINATION_TYPES:
                continue
            out.append(d)
        return out

    def templates(self) -> Dict[str, Any]:
        notif = self.cfg.get('notifications') if isinstance(self.cfg.get('notifications'), dict) else {}
        return notif.get('templates') if isinstance(notif.get('templates'), dict) else {}

    # General settings accessor
    def general(self, key: str, default: Any = None) -> Any:
        gen = self.cfg.get('general') if isinstance(self.cfg.get('general'), dict) else {}
        return gen.get(key, default)


def _sanitize_server(raw: Dict[str, Any], order: int) -> Dict[str, Any]:
    out = dict(raw)
    name = str(raw.get('name') or '').strip()
    out['name'] = name
    out['id'] = str(raw.get('id') or name or f'server{order}').strip()
    address = raw.get('address') or raw.get('url')
    out['address'] = str(address).strip() if address else None
    typ = raw.get('type')
    out['type'] = str(typ).strip().lower() if typ else None
    for key in ('include_filter', 'exclude_filter'):
        val = raw.get(key)
        if isinstance(val, list):
            # YAML lists are accepted and joined back into the pipe form
            val = '|'.join(str(v) for v in val)
        out[key] = str(val) if val is not None else None
    out['alarm_on_new'] = _as_bool(raw.get('alarm_on_new'), False)
    out['alarm_on_finished'] = _as_bool(raw.get('alarm_on_finished'), False)
    return out


def sanitize_config(cfg: Dict[str, Any], debug_logging: bool = False) -> Dict[str, Any]:
    if not isinstance(cfg, dict):
        return {}
    out = dict(cfg)

    def _nz(v, cast, default):
        try:
            return cast(v)
        except Exception:
            return default

    gen = out.get('general') if isinstance(out.get('general'), dict) else {}
    if gen:
        if 'request_timeout' in gen:
            gen['request_timeout'] = max(1, _nz(gen.get('request_timeout'), int, 10))
        for flag in ('enabled', 'debug_logging', 'structured_logs', 'dry_run'):
            if flag in gen:
                gen[flag] = _as_bool(gen.get(flag))
        out['general'] = gen

    # Servers: coerce fields, drop entries that are not mappings or repeat an id
    servers = out.get('servers') if isinstance(out.get('servers'), list) else []
    cleaned_servers = []
    seen_ids = set()
    for order, raw in enumerate(servers):
        if not isinstance(raw, dict):
            if debug_logging:
                import logging
                logging.warning(f'Ignoring invalid server entry: {raw}')
            continue
        srv = _sanitize_server(raw, order)
        if srv['id'] in seen_ids:
            if debug_logging:
                import logging
                logging.warning(f"Ignoring server with duplicate id '{srv['id']}'")
            continue
        seen_ids.add(srv['id'])
        srv['order'] = order
        cleaned_servers.append(srv)
    if 'servers' in out:
        out['servers'] = cleaned_servers

    # Notifications destinations validation/cleanup
    notif = out.get('notifications') if isinstance(out.get('notifications'), dict) else {}
    dests = notif.get('destinations') if isinstance(notif.get('destinations'), list) else []
    cleaned = []
    for d in dests:
        if not isinstance(d, dict):
            continue
        url = d.get('url')
        typ = str(d.get('type') or 'generic').lower()
        if not url or typ not in VALID_DESTINATION_TYPES:
            if debug_logging:
                import logging
                logging.warning(f'Ignoring invalid notification destination: {d}')
            continue
        sv = d.get('servers')
        if sv is not None and not isinstance(sv, list):
            d['servers'] = [str(sv)]
        cleaned.append(d)
    if notif:
        notif['destinations'] = cleaned
        out['notifications'] = notif
    return out


def validate_config(cfg: Dict[str, Any], debug_logging: bool = False) -> None:
    try:
        import logging as _lg
        problems = []
        servers = cfg.get('servers') if isinstance(cfg.get('servers'), list) else []
        if not servers:
            problems.append('No servers configured; nothing will be checked.')
        for s in servers:
            if not isinstance(s, dict):
                continue
            label = s.get('name') or s.get('id')
            if not s.get('address') or not s.get('type'):
                problems.append(f"Server '{label}' is missing address or type; it will be skipped.")
            elif str(s.get('type')).lower() not in VALID_SERVER_TYPES:
                problems.append(f"Server '{label}' has unsupported type '{s.get('type')}'; fetching will fail.")
            if not s.get('alarm_on_new') and not s.get('alarm_on_finished'):
                problems.append(f"Server '{label}' has no alarms enabled; it will be skipped.")
        notif = cfg.get('notifications') if isinstance(cfg.get('notifications'), dict) else {}
        dests = notif.get('destinations') if isinstance(notif.get('destinations'), list) else []
        for d in dests:
            if isinstance(d, dict) and not d.get('url'):
                problems.append(f"Notification destination '{d.get('name') or d.get('type')}' missing url; it will be ignored.")
        for p in problems:
            _lg.warning(p)
    except Exception:
        # Never raise due to validation
        pass
