from __future__ import annotations

from typing import Any, Dict, List

from core.config import ConfigAccessor
from core.models import Server
from core.rules import is_server_configured, is_server_eligible


def server_from_config(entry: Dict[str, Any], accessor: ConfigAccessor) -> Server:
    order = int(entry.get('order') or 0)
    server_id = str(entry.get('id') or f'server{order}')
    creds = accessor.server_credentials(server_id, entry)
    return Server(
        id=server_id,
        order=order,
        name=str(entry.get('name') or ''),
        address=entry.get('address') or None,
        type=entry.get('type') or None,
        include_filter=entry.get('include_filter') or None,
        exclude_filter=entry.get('exclude_filter') or None,
        alarm_on_new=bool(entry.get('alarm_on_new')),
        alarm_on_finished=bool(entry.get('alarm_on_finished')),
        username=creds.get('username'),
        password=creds.get('password'),
    )


class ServerRegistry:
    """Servers defined in the ``servers:`` section of a sanitized config."""

    def __init__(self, config: Dict[str, Any]) -> None:
        self.accessor = ConfigAccessor(config)

    def list_servers(self) -> List[Server]:
        servers = [server_from_config(entry, self.accessor) for entry in self.accessor.servers()]
        return sorted(servers, key=lambda s: s.order)

    def list_eligible_servers(self) -> List[Server]:
        return [s for s in self.list_servers() if is_server_eligible(s)]

    def describe(self) -> List[Dict[str, Any]]:
        return [
            {
                'id': s.id,
                'order': s.order,
                'name': s.name,
                'type': s.type,
                'configured': is_server_configured(s),
                'eligible': is_server_eligible(s),
                'alarm_on_new': s.alarm_on_new,
                'alarm_on_finished': s.alarm_on_finished,
            }
            for s in self.list_servers()
        ]
