import os
import asyncio
import logging
import aiohttp
from typing import Any, Dict, Optional

# Helper function to get environment variables with type casting
def get_env_var(key, default=None, cast_to=str):
    value = os.environ.get(key, default)
    if value is not None:
        return cast_to(value)
    return default

def _truthy(x) -> bool:
    return str(x).lower() in ['true', '1', 'yes']

# Fetch debug flag from environment and set logging level
DEBUG_LOGGING = get_env_var('DEBUG_LOGGING', default='false', cast_to=_truthy)
logging_level = logging.DEBUG if DEBUG_LOGGING else logging.INFO

# Set up logging (avoid duplicate handlers)
logging.basicConfig(
    format='%(asctime)s [%(levelname)s]: %(message)s',
    level=logging_level,
    handlers=[logging.StreamHandler()],
    force=True,
)

# Dedicated non-propagating logger for structured event logs to avoid duplicates
EVENT_LOG = logging.getLogger('server_checker.events')
EVENT_LOG.setLevel(logging_level)
EVENT_LOG.propagate = False
for _h in list(EVENT_LOG.handlers):
    EVENT_LOG.removeHandler(_h)
_h = logging.StreamHandler()
_h.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s]: %(message)s'))
EVENT_LOG.addHandler(_h)

CONFIG_PATH = get_env_var('CONFIG_PATH', '/app/config.yaml')
SNAPSHOT_FILE_PATH = get_env_var('SNAPSHOT_FILE_PATH', '/app/data/snapshots.json')
STRUCTURED_LOGS = get_env_var('STRUCTURED_LOGS', default='true', cast_to=_truthy)
DRY_RUN = get_env_var('DRY_RUN', default='false', cast_to=_truthy)
CHECKER_ENABLED = get_env_var('CHECKER_ENABLED', default='true', cast_to=_truthy)
REQUEST_TIMEOUT = get_env_var('REQUEST_TIMEOUT', 10, cast_to=int)

from core.config import load_yaml as _load_yaml
from core.config import sanitize_config as _sanitize_config
from core.config import validate_config as _validate_config
from core.config import ConfigAccessor as _ConfigAccessor

# YAML config loading
CONFIG: Dict[str, Any] = _sanitize_config(_load_yaml(CONFIG_PATH), DEBUG_LOGGING)
_validate_config(CONFIG, DEBUG_LOGGING)

_AC = _ConfigAccessor(CONFIG)

# Prefer YAML general for app-level settings; fallback to env-loaded defaults
def _get_general(key: str, default: Any) -> Any:
    val = _AC.general(key, None)
    return default if val is None else val

DEBUG_LOGGING = bool(_get_general('debug_logging', DEBUG_LOGGING))
STRUCTURED_LOGS = bool(_get_general('structured_logs', STRUCTURED_LOGS))
DRY_RUN = bool(_get_general('dry_run', DRY_RUN))
CHECKER_ENABLED = bool(_get_general('enabled', CHECKER_ENABLED))
SNAPSHOT_FILE_PATH = str(_get_general('snapshot_file_path', SNAPSHOT_FILE_PATH))
REQUEST_TIMEOUT = int(_get_general('request_timeout', REQUEST_TIMEOUT))

from core.composer import NotificationComposer
from core.events import EventBus
from core.runner import ReconciliationEngine, SweepSummary, sweep as runner_sweep
from integrations.clients import TorrentFetcher
from integrations.notifications import WebhookSink
from integrations.services import ServerRegistry
from storage.snapshots import SnapshotStore


def build_engine(
    session,
    log_event,
    config: Optional[Dict[str, Any]] = None,
    store: Optional[SnapshotStore] = None,
) -> ReconciliationEngine:
    cfg = CONFIG if config is None else config
    return ReconciliationEngine(
        store or SnapshotStore(SNAPSHOT_FILE_PATH, DEBUG_LOGGING),
        TorrentFetcher(request_timeout=REQUEST_TIMEOUT, debug_logging=DEBUG_LOGGING),
        NotificationComposer(_ConfigAccessor(cfg).templates()),
        session=session,
        log_event=log_event,
        debug_logging=DEBUG_LOGGING,
    )


async def run_sweep(
    session,
    config: Optional[Dict[str, Any]] = None,
    snapshot_path: Optional[str] = None,
) -> Optional[SweepSummary]:
    cfg = CONFIG if config is None else config
    if not CHECKER_ENABLED:
        logging.info('Server checker is disabled (general.enabled=false); skipping sweep')
        return None
    registry = ServerRegistry(cfg)
    servers = registry.list_eligible_servers()
    if DEBUG_LOGGING:
        logging.info(f'Checking {len(servers)} eligible server(s)')
    store = SnapshotStore(snapshot_path or SNAPSHOT_FILE_PATH, DEBUG_LOGGING)
    sink = WebhookSink(session, cfg, dry_run=DRY_RUN, debug_logging=DEBUG_LOGGING, store=store)
    bus = EventBus(sink, structured_logs=STRUCTURED_LOGS, debug_logging=DEBUG_LOGGING, logger=EVENT_LOG)
    engine = build_engine(session, bus.log, cfg, store)
    return await runner_sweep(servers, engine, bus.publish, logging.info)


async def main() -> Optional[SweepSummary]:
    async with aiohttp.ClientSession() as session:
        if DEBUG_LOGGING:
            logging.info('Running server checker sweep')
        return await run_sweep(session)

if __name__ == '__main__':
    asyncio.run(main())
