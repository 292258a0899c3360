import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict

from core.config import ConfigAccessor, load_yaml as _load_yaml, sanitize_config as _sanitize_config
from integrations.services import ServerRegistry
from storage.snapshots import SnapshotStore, load_document


def _env(key: str, default: Any) -> Any:
    return os.environ.get(key, default)


def _load_config() -> Dict[str, Any]:
    cfg_path = _env('CONFIG_PATH', '/app/config.yaml')
    return _sanitize_config(_load_yaml(cfg_path))


def _snapshot_path() -> str:
    path = ConfigAccessor(_load_config()).general('snapshot_file_path', None)
    return path or _env('SNAPSHOT_FILE_PATH', '/app/data/snapshots.json')


def cmd_list(args):
    print(json.dumps(load_document(_snapshot_path()), indent=2))


def cmd_clear(args):
    store = SnapshotStore(_snapshot_path())
    if args.server:
        if store.clear(args.server):
            print(f"Cleared {args.server}")
        else:
            print("Server not found")
    else:
        store.clear()
        print("Cleared all snapshots")


def cmd_servers(args):
    print(json.dumps(ServerRegistry(_load_config()).describe(), indent=2))


def cmd_status(args):
    doc = load_document(_snapshot_path())
    per_server = {}
    for sid, entries in (doc.get('servers') or {}).items():
        entries = entries if isinstance(entries, list) else []
        done = sum(1 for e in entries if isinstance(e, dict) and e.get('done') is True)
        per_server[sid] = {'torrents': len(entries), 'done': done}
    print(
        json.dumps(
            {
                "snapshot_file": _snapshot_path(),
                "version": doc.get('version'),
                "servers": per_server,
            },
            indent=2,
        )
    )


def cmd_check(args):
    # Imported lazily: the checker module configures logging on import
    import checker

    summary = asyncio.run(checker.main())
    if summary is None:
        print(json.dumps({"skipped": True}, indent=2))
    else:
        print(json.dumps(summary.as_dict(), indent=2))


def main():
    ap = argparse.ArgumentParser(description="Torrent server checker CLI")
    sub = ap.add_subparsers(dest='cmd')

    p_check = sub.add_parser('check', help='Run one sweep over all eligible servers')
    p_check.set_defaults(func=cmd_check)

    p_servers = sub.add_parser('servers', help='List configured servers and their eligibility')
    p_servers.set_defaults(func=cmd_servers)

    p_list = sub.add_parser('list', help='Dump stored torrent snapshots')
    p_list.set_defaults(func=cmd_list)

    p_clear = sub.add_parser('clear', help='Clear snapshots (all or one server)')
    p_clear.add_argument('--server', help='Server id to clear (e.g., seedbox)')
    p_clear.set_defaults(func=cmd_clear)

    p_status = sub.add_parser('status', help='Show per-server snapshot counts')
    p_status.set_defaults(func=cmd_status)

    args = ap.parse_args()
    if not hasattr(args, 'func'):
        ap.print_help()
        sys.exit(1)
    args.func(args)


if __name__ == '__main__':
    main()
