"""Test doubles and builders shared across the suite."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from chat_sla.sla.application import IChatRepository, ISLAConfigProvider, RecalculationFilter
from chat_sla.sla.domain import Chat, Message, SLAConfigSnapshot, SLAMetrics

NEW_YORK = ZoneInfo("America/New_York")


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def ny(*args) -> datetime:
    return datetime(*args, tzinfo=NEW_YORK)


def customer(at: datetime) -> Message:
    return Message(role="customer", created_at=at)


def agent(at: datetime) -> Message:
    return Message(role="agent", created_at=at)


# ==================== FAKES ====================

class FakeChatRepository(IChatRepository):
    """
    In-memory chat store with keyset paging.

    fail_save_ids: chat ids whose save_metrics raises
    fail_fetch_on_call: 1-based fetch_batch call number that raises
    """

    def __init__(
        self,
        chats: List[Chat],
        fail_save_ids: Optional[set] = None,
        fail_fetch_on_call: Optional[int] = None,
        fail_count: bool = False,
        save_delay: float = 0
    ):
        self.chats = sorted(chats, key=lambda chat: chat.id)
        self.fail_save_ids = fail_save_ids or set()
        self.fail_fetch_on_call = fail_fetch_on_call
        self.fail_count = fail_count
        self.save_delay = save_delay

        self.saved: Dict[str, SLAMetrics] = {}
        self.requested_limits: List[int] = []
        self.fetch_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    def _matching(self, chat_filter: RecalculationFilter) -> List[Chat]:
        matched = []
        for chat in self.chats:
            if chat_filter.chat_id is not None:
                if chat.id == chat_filter.chat_id:
                    matched.append(chat)
                continue
            if chat_filter.start_date is not None and chat.opened_at < chat_filter.start_date:
                continue
            if chat_filter.end_date is not None and chat.opened_at > chat_filter.end_date:
                continue
            matched.append(chat)
        return matched

    async def count(self, chat_filter: RecalculationFilter) -> int:
        if self.fail_count:
            raise ConnectionError("database unavailable")
        return len(self._matching(chat_filter))

    async def fetch_batch(self, chat_filter, after_id, limit):
        self.fetch_calls += 1
        self.requested_limits.append(limit)
        if self.fail_fetch_on_call == self.fetch_calls:
            raise ConnectionError("connection reset")

        matched = [
            chat for chat in self._matching(chat_filter)
            if after_id is None or chat.id > after_id
        ]
        return matched[:limit]

    async def get_by_id(self, chat_id: str) -> Optional[Chat]:
        for chat in self.chats:
            if chat.id == chat_id:
                return chat
        return None

    async def save_metrics(self, chat_id: str, metrics: SLAMetrics) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.save_delay)
            if chat_id in self.fail_save_ids:
                raise RuntimeError(f"write conflict on {chat_id}")
            self.saved[chat_id] = metrics
        finally:
            self.in_flight -= 1


class StaticConfigProvider(ISLAConfigProvider):
    """Returns a fixed snapshot and counts how often it was asked."""

    def __init__(self, snapshot: Optional[SLAConfigSnapshot] = None):
        self.snapshot = snapshot or SLAConfigSnapshot.defaults()
        self.calls = 0

    async def load_snapshot(self) -> SLAConfigSnapshot:
        self.calls += 1
        return self.snapshot

