"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for the SLA engine:
- Models: SQLAlchemy ORM models
- Repositories: chat data access and SLA configuration providers
- SLA Logger: structured SLA event logging
"""

from chat_sla.sla.infrastructure.models import ChatModel, MessageModel, SystemSettingModel
from chat_sla.sla.infrastructure.repositories import (
    SETTING_DISPATCH,
    SQLAlchemyChatRepository,
    SystemSettingsConfigProvider,
    YAMLConfigProvider,
    build_config_snapshot,
    create_config_provider,
)
from chat_sla.sla.infrastructure.sla_logger import SLALogCategory, SLALogger

__all__ = [
    "ChatModel",
    "MessageModel",
    "SystemSettingModel",
    "SETTING_DISPATCH",
    "SQLAlchemyChatRepository",
    "SystemSettingsConfigProvider",
    "YAMLConfigProvider",
    "build_config_snapshot",
    "create_config_provider",
    "SLALogCategory",
    "SLALogger",
]
