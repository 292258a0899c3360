from __future__ import annotations

import json
import logging
from typing import Any

from core.models import NotificationBatch


class EventBus:
    def __init__(
        self,
        sink: Any,
        *,
        structured_logs: bool,
        debug_logging: bool,
        logger,
    ) -> None:
        # sink: expects .deliver(notification_id, title, body, detail_lines, affected_count, server_id)
        self.sink = sink
        self.structured_logs = structured_logs
        self.debug_logging = debug_logging
        self.logger = logger

    def log(self, event: str, **fields) -> None:
        payload = {"event": event, **fields}
        try:
            if self.structured_logs:
                self.logger.info(json.dumps(payload, ensure_ascii=False))
            else:
                self.logger.info(f"{event}: {fields}")
        except Exception:
            self.logger.info(str(payload))

    async def publish(self, batch: NotificationBatch) -> None:
        self.log(
            'notification',
            server=batch.server_id,
            id=batch.notification_id,
            title=batch.title,
            new=len(batch.new),
            finished=len(batch.done),
            lines=batch.detail_lines,
        )
        if self.sink is None:
            return
        try:
            await self.sink.deliver(
                batch.notification_id,
                batch.title,
                batch.body,
                batch.detail_lines,
                batch.affected_count,
                batch.server_id,
            )
        except Exception as e:
            logging.warning(f"Server {batch.server_id}: notify error: {e}")
