from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


@dataclass(frozen=True)
class Server:
    id: str
    order: int
    name: str = ''
    address: Optional[str] = None
    type: Optional[str] = None
    include_filter: Optional[str] = None
    exclude_filter: Optional[str] = None
    alarm_on_new: bool = False
    alarm_on_finished: bool = False
    # fetcher credentials; unused by the core
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Torrent:
    id: str
    name: str
    fraction: float

    @property
    def is_done(self) -> bool:
        return self.fraction == 1.0


@dataclass(frozen=True)
class SnapshotEntry:
    id: str
    done: bool


# Unique by id, order irrelevant
SnapshotSet = Dict[str, SnapshotEntry]


def snapshot_from_torrents(torrents: List[Torrent]) -> SnapshotSet:
    return {t.id: SnapshotEntry(id=t.id, done=t.is_done) for t in torrents}


class Classification(Enum):
    NEW = 'new'
    COMPLETED = 'completed'
    UNCLASSIFIED = 'unclassified'


@dataclass(frozen=True)
class FetchSuccess:
    torrents: List[Torrent]


@dataclass(frozen=True)
class FetchFailure:
    reason: str


FetchResult = Union[FetchSuccess, FetchFailure]


@dataclass
class NotificationBatch:
    server_id: str
    new: List[Torrent]
    done: List[Torrent]
    title: str
    body: str
    detail_lines: List[str]
    notification_id: int

    @property
    def affected(self) -> List[Torrent]:
        return list(self.new) + list(self.done)

    @property
    def affected_count(self) -> int:
        return len(self.new) + len(self.done)
