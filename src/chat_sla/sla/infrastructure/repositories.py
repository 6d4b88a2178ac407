"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the application interfaces.

- SQLAlchemyChatRepository: chats and messages in, SLA columns out
- SystemSettingsConfigProvider: SLA configuration from key/value rows
- YAMLConfigProvider: SLA configuration from a YAML file
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import yaml
from pydantic import ValidationError
from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from chat_sla.config import VALID_MESSAGE_ROLES, VALID_SETTING_CATEGORIES, settings
from chat_sla.core import ConfigurationException, RepositoryException
from chat_sla.shared.infrastructure.logging import get_logger
from chat_sla.sla.application import IChatRepository, ISLAConfigProvider, RecalculationFilter
from chat_sla.sla.domain import (
    Chat,
    EnabledMetrics,
    HolidayConfig,
    Message,
    OfficeHoursConfig,
    SLAConfig,
    SLAConfigSnapshot,
    SLAMetrics,
)
from chat_sla.sla.infrastructure.models import ChatModel, SystemSettingModel

logger = get_logger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Drivers without timezone support (sqlite) hand back naive UTC values."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SQLAlchemyChatRepository(IChatRepository):
    """
    SQLAlchemy implementation of the chat repository.

    Each call opens its own short-lived session, so concurrent save_metrics
    calls from one recalculation batch never share a session.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    @staticmethod
    def _apply_filter(stmt: Select, chat_filter: RecalculationFilter) -> Select:
        if chat_filter.chat_id is not None:
            return stmt.where(ChatModel.id == chat_filter.chat_id)
        if chat_filter.start_date is not None:
            stmt = stmt.where(ChatModel.opened_at >= chat_filter.start_date)
        if chat_filter.end_date is not None:
            stmt = stmt.where(ChatModel.opened_at <= chat_filter.end_date)
        return stmt

    @staticmethod
    def _to_entity(model: ChatModel) -> Chat:
        messages = []
        for message in model.messages:
            if message.role not in VALID_MESSAGE_ROLES:
                logger.warning(
                    f"Skipping message with unknown role '{message.role}'",
                    extra={"chat_id": model.id, "message_id": message.id}
                )
                continue
            messages.append(Message(role=message.role, created_at=_as_utc(message.created_at)))

        return Chat(
            id=model.id,
            opened_at=_as_utc(model.opened_at),
            first_agent_assigned_at=_as_utc(model.first_agent_assigned_at),
            picked_up_at=_as_utc(model.picked_up_at),
            response_at=_as_utc(model.response_at),
            closed_at=_as_utc(model.closed_at),
            provider=model.provider,
            priority=model.priority,
            messages=messages,
        )

    async def count(self, chat_filter: RecalculationFilter) -> int:
        stmt = self._apply_filter(select(func.count()).select_from(ChatModel), chat_filter)
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to count chats: {e}") from e

    async def fetch_batch(
        self,
        chat_filter: RecalculationFilter,
        after_id: Optional[str],
        limit: int
    ) -> List[Chat]:
        """Keyset page: id > after_id ORDER BY id LIMIT limit, messages eagerly loaded."""
        stmt = self._apply_filter(
            select(ChatModel).options(selectinload(ChatModel.messages)),
            chat_filter
        )
        if after_id is not None:
            stmt = stmt.where(ChatModel.id > after_id)
        stmt = stmt.order_by(ChatModel.id.asc()).limit(limit)

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                models = result.scalars().all()
                return [self._to_entity(model) for model in models]
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to fetch chats after {after_id!r}: {e}") from e

    async def get_by_id(self, chat_id: str) -> Optional[Chat]:
        stmt = (
            select(ChatModel)
            .options(selectinload(ChatModel.messages))
            .where(ChatModel.id == chat_id)
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
                return self._to_entity(model) if model is not None else None
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load chat {chat_id}: {e}") from e

    async def save_metrics(self, chat_id: str, metrics: SLAMetrics) -> None:
        """UPDATE the SLA columns; BH columns are left alone when they were not computed."""
        stmt = update(ChatModel).where(ChatModel.id == chat_id).values(**metrics.to_dict())
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to save SLA metrics for chat {chat_id}: {e}") from e

        if result.rowcount == 0:
            raise RepositoryException(f"Chat {chat_id} not found", {"chat_id": chat_id})


# ========== Configuration ==========

def _parse_int(raw: str) -> int:
    return int(raw.strip())


def _parse_float(raw: str) -> float:
    return float(raw.strip())


def _parse_str(raw: str) -> str:
    return raw.strip()


def _parse_json(raw: str) -> Any:
    return json.loads(raw)


# key -> (section, field or None for a whole-section JSON document, parser)
SETTING_DISPATCH: Dict[str, Tuple[str, Optional[str], Callable[[str], Any]]] = {
    "sla.pickup_target": ("sla", "pickup_target", _parse_int),
    "sla.first_response_target": ("sla", "first_response_target", _parse_int),
    "sla.avg_response_target": ("sla", "avg_response_target", _parse_int),
    "sla.resolution_target": ("sla", "resolution_target", _parse_int),
    "sla.compliance_target": ("sla", "compliance_target", _parse_float),
    "sla.channel_overrides": ("sla", "channel_overrides", _parse_json),
    "sla.priority_overrides": ("sla", "priority_overrides", _parse_json),
    "sla.enabledMetrics": ("enabled_metrics", None, _parse_json),
    "office_hours.start": ("office_hours", "start", _parse_str),
    "office_hours.end": ("office_hours", "end", _parse_str),
    "office_hours.working_days": ("office_hours", "working_days", _parse_json),
    "office_hours.timezone": ("office_hours", "timezone", _parse_str),
    "holidays.config": ("holidays", None, _parse_json),
}

_SECTION_MODELS = {
    "sla": SLAConfig,
    "office_hours": OfficeHoursConfig,
    "enabled_metrics": EnabledMetrics,
    "holidays": HolidayConfig,
}


def _build_section(section: str, values: Dict[str, Any]):
    model = _SECTION_MODELS[section]
    try:
        return model.model_validate(values)
    except ValidationError as e:
        logger.warning(
            f"Invalid {section} settings, using defaults",
            extra={"section": section, "errors": e.errors(include_url=False)}
        )
        return model()


def build_config_snapshot(rows: Iterable[Tuple[str, str]]) -> SLAConfigSnapshot:
    """
    Resolve key/value settings rows into a typed configuration snapshot.

    Unknown keys are reported and ignored. A value that fails to parse is
    skipped, so its field keeps the default. A section that fails
    validation as a whole (e.g. office hours ending before they start) falls
    back to that section's defaults.
    """
    sections: Dict[str, Dict[str, Any]] = {name: {} for name in _SECTION_MODELS}

    for key, raw in rows:
        entry = SETTING_DISPATCH.get(key)
        if entry is None:
            logger.warning(f"Ignoring unknown SLA setting '{key}'", extra={"setting_key": key})
            continue

        section, field, parser = entry
        try:
            value = parser(raw)
        except (ValueError, TypeError) as e:
            logger.warning(
                f"Unparsable value for SLA setting '{key}', using default",
                extra={"setting_key": key, "error": str(e)}
            )
            continue

        if field is None:
            if not isinstance(value, dict):
                logger.warning(
                    f"SLA setting '{key}' must be a JSON object, using default",
                    extra={"setting_key": key}
                )
                continue
            sections[section].update(value)
        else:
            sections[section][field] = value

    return SLAConfigSnapshot(
        sla=_build_section("sla", sections["sla"]),
        office_hours=_build_section("office_hours", sections["office_hours"]),
        enabled_metrics=_build_section("enabled_metrics", sections["enabled_metrics"]),
        holidays=_build_section("holidays", sections["holidays"]),
    )


class SystemSettingsConfigProvider(ISLAConfigProvider):
    """
    SLA configuration provider backed by the system_settings table.

    Only rows in the sla, office_hours and holidays categories are read; the
    table also holds settings that belong to other parts of the product.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def load_snapshot(self) -> SLAConfigSnapshot:
        stmt = select(SystemSettingModel.key, SystemSettingModel.value).where(
            SystemSettingModel.category.in_(VALID_SETTING_CATEGORIES)
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                rows = [(row.key, row.value) for row in result]
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load system settings: {e}") from e

        return build_config_snapshot(rows)


class YAMLConfigProvider(ISLAConfigProvider):
    """
    SLA configuration provider that loads from YAML.

    The file is read on every load_snapshot() call, so edits are picked up
    by the next recalculation run. Expected layout:

        sla: {pickup_target: 120, ...}
        office_hours: {start: "09:00", end: "17:00", working_days: [1, 2, 3, 4, 5], timezone: ...}
        enabled_metrics: {pickup: true, first_response: true, ...}
        holidays: {enabled: false, holidays: [...], exclude_from_sla: true}
    """

    def __init__(self, config_path: Path):
        self._config_path = Path(config_path)

    def _load_config(self) -> SLAConfigSnapshot:
        if not self._config_path.exists():
            logger.warning(f"SLA config file not found: {self._config_path}, using defaults")
            return SLAConfigSnapshot.defaults()

        try:
            with open(self._config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(
                f"Invalid YAML in {self._config_path}: {e}",
                {"path": str(self._config_path)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationException(
                f"{self._config_path} must contain a mapping of sections",
                {"path": str(self._config_path)}
            )

        try:
            return SLAConfigSnapshot(
                sla=SLAConfig.model_validate(data.get("sla") or {}),
                office_hours=OfficeHoursConfig.model_validate(data.get("office_hours") or {}),
                enabled_metrics=EnabledMetrics.model_validate(data.get("enabled_metrics") or {}),
                holidays=HolidayConfig.model_validate(data.get("holidays") or {}),
            )
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid SLA configuration in {self._config_path}",
                {"path": str(self._config_path), "errors": e.errors(include_url=False)}
            ) from e

    async def load_snapshot(self) -> SLAConfigSnapshot:
        return self._load_config()


def create_config_provider(
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None
) -> ISLAConfigProvider:
    """Provider selected by settings.sla_config_source."""
    if settings.sla_config_source == "yaml":
        return YAMLConfigProvider(settings.sla_config_path)

    if session_maker is None:
        raise ConfigurationException("A database session maker is required for the database config source")
    return SystemSettingsConfigProvider(session_maker)
