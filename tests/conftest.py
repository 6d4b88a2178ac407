"""Shared fixtures."""

from datetime import datetime
from typing import List, Optional

import pytest

from chat_sla.sla.domain import Chat
from support import StaticConfigProvider, agent, customer, utc


# ==================== FIXTURES ====================

@pytest.fixture
def make_chat():
    """Factory for a closed, fully answered chat opened at the given UTC instant."""

    def _make_chat(chat_id: str, opened_at: Optional[datetime] = None, **overrides) -> Chat:
        opened = opened_at or utc(2024, 2, 5, 15, 0, 0)
        fields = dict(
            id=chat_id,
            opened_at=opened,
            first_agent_assigned_at=opened.replace(minute=1),
            closed_at=opened.replace(hour=opened.hour + 1),
            messages=[
                customer(opened),
                agent(opened.replace(minute=3)),
            ],
        )
        fields.update(overrides)
        return Chat(**fields)

    return _make_chat


@pytest.fixture
def chats(make_chat) -> List[Chat]:
    return [make_chat(f"chat-{i:03d}") for i in range(1, 8)]


@pytest.fixture
def config_provider() -> StaticConfigProvider:
    return StaticConfigProvider()
