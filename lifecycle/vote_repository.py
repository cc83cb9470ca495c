"""In-memory materialized list of vote records."""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from ledger.ledger_gateway import LedgerGateway, VoteRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteStats:
    total_votes: int
    verified_votes: int
    today_votes: int


class VoteRepository:
    """
    Snapshot of the registry's records.

    refresh() is the only mutator and always swaps in a complete new
    snapshot, so readers see the records as of one point in time.
    """

    def __init__(self, gateway: LedgerGateway):
        self.gateway = gateway
        self._snapshot: Tuple[VoteRecord, ...] = ()
        self._subscribers: List[Callable[[Tuple[VoteRecord, ...]], None]] = []
        self.refreshed_at: Optional[float] = None

    @property
    def votes(self) -> Tuple[VoteRecord, ...]:
        return self._snapshot

    def subscribe(self, callback: Callable[[Tuple[VoteRecord, ...]], None]) -> Callable[[], None]:
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    async def refresh(self) -> Tuple[VoteRecord, ...]:
        records = await self.gateway.list_records()
        self._snapshot = tuple(records)
        self.refreshed_at = time.time()
        logger.info(f"Vote list refreshed: {len(self._snapshot)} record(s)")

        for callback in list(self._subscribers):
            try:
                callback(self._snapshot)
            except Exception as e:
                logger.error(f"Vote list subscriber {callback!r} failed: {e}")
        return self._snapshot

    def get(self, vote_id: str) -> Optional[VoteRecord]:
        for record in self._snapshot:
            if record.id == vote_id:
                return record
        return None

    def search(self, term: str) -> List[VoteRecord]:
        needle = term.strip().lower()
        if not needle:
            return list(self._snapshot)
        return [
            r for r in self._snapshot
            if needle in r.title.lower() or needle in r.creator.lower()
        ]

    def stats(self, today: Optional[date] = None) -> VoteStats:
        today = today or date.today()
        snapshot = self._snapshot
        return VoteStats(
            total_votes=len(snapshot),
            verified_votes=sum(1 for r in snapshot if r.is_verified),
            today_votes=sum(
                1 for r in snapshot
                if datetime.fromtimestamp(r.timestamp).date() == today),
        )
