"""Automation Store - persistence operations the engine needs"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from automation_engine.models.automation import (
    AutomationActionModel,
    AutomationModel,
    AutomationRunModel,
    NotificationModel,
    RunStatus,
)
from automation_engine.models.base import new_id
from automation_engine.schemas.automation import Action, Trigger, parse_action, parse_trigger
from automation_engine.core.exceptions import AutomationConfigError
from automation_engine.core.logging_config import get_logger

logger = get_logger(__name__)


def to_db_timestamp(instant: Optional[datetime]) -> Optional[datetime]:
    """Aware or naive-UTC datetime -> naive UTC for TIMESTAMP columns"""
    if instant is None:
        return None
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(timezone.utc).replace(tzinfo=None)


def from_db_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class AutomationRecord:
    """An automation row with its trigger parsed into a variant"""
    id: str
    user_id: str
    name: str
    is_active: bool
    trigger: Trigger
    trigger_config: Dict[str, Any]
    last_run_at: Optional[datetime]
    next_run_at: Optional[datetime]


@dataclass
class ActionRecord:
    id: str
    sort_order: int
    action: Action


def to_automation_record(row: AutomationModel) -> AutomationRecord:
    """
    Parse a stored automation row.

    Raises:
        AutomationConfigError: If the trigger configuration is invalid
    """
    try:
        trigger = parse_trigger(row.trigger_type, row.trigger_config)
    except AutomationConfigError as e:
        e.automation_id = row.id
        raise

    return AutomationRecord(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        is_active=bool(row.is_active),
        trigger=trigger,
        trigger_config=dict(row.trigger_config or {}),
        last_run_at=from_db_timestamp(row.last_run_at),
        next_run_at=from_db_timestamp(row.next_run_at),
    )


class AutomationStore:
    """
    Reads and writes automations, their actions, runs and notifications.

    Every write commits immediately: a run record must be visible as
    "running" before its actions execute, and each later write must stand
    on its own if a sibling write fails. A failed commit is rolled back
    so the session stays usable for the run-closing write.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def _commit(self, stmt=None) -> None:
        try:
            if stmt is not None:
                await self.db.execute(stmt)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_due_automations(
        self,
        now: datetime,
        limit: Optional[int] = None
    ) -> List[AutomationModel]:
        """Active, not deleted automations whose next_run_at is at or before now"""
        stmt = select(AutomationModel).where(
            and_(
                AutomationModel.is_active == True,  # noqa: E712
                AutomationModel.deleted_at.is_(None),
                AutomationModel.next_run_at.isnot(None),
                AutomationModel.next_run_at <= to_db_timestamp(now)
            )
        ).order_by(
            AutomationModel.next_run_at.asc()
        )

        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def fetch_automation(self, automation_id: str) -> Optional[AutomationModel]:
        """One automation by id regardless of is_active/next_run_at; deleted rows excluded"""
        stmt = select(AutomationModel).where(
            and_(
                AutomationModel.id == str(automation_id),
                AutomationModel.deleted_at.is_(None)
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def fetch_actions(self, automation_id: str) -> List[ActionRecord]:
        """
        Ordered actions of an automation.

        Ties on sort_order keep insertion order.

        Raises:
            AutomationConfigError: If any stored action cannot be parsed
        """
        stmt = select(AutomationActionModel).where(
            AutomationActionModel.automation_id == str(automation_id)
        ).order_by(
            AutomationActionModel.sort_order.asc(),
            AutomationActionModel.created_at.asc()
        )
        result = await self.db.execute(stmt)

        records = []
        for row in result.scalars().all():
            try:
                action = parse_action(row.action_type, row.action_config)
            except AutomationConfigError as e:
                e.automation_id = str(automation_id)
                e.details["action_id"] = row.id
                raise
            records.append(ActionRecord(id=row.id, sort_order=row.sort_order or 0, action=action))
        return records

    async def fetch_stale_runs(self, started_before: datetime) -> List[AutomationRunModel]:
        """Runs still marked running that started before the given instant"""
        stmt = select(AutomationRunModel).where(
            and_(
                AutomationRunModel.status == RunStatus.RUNNING,
                AutomationRunModel.started_at < to_db_timestamp(started_before)
            )
        ).order_by(AutomationRunModel.started_at.asc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_run(self, automation_id: str, started_at: datetime) -> str:
        """Create a run in the running state and return its id"""
        run = AutomationRunModel(
            id=new_id(),
            automation_id=str(automation_id),
            status=RunStatus.RUNNING,
            started_at=to_db_timestamp(started_at),
        )
        self.db.add(run)
        await self._commit()
        return run.id

    async def close_run(
        self,
        run_id: str,
        status: RunStatus,
        completed_at: datetime,
        error: Optional[str] = None
    ) -> None:
        stmt = update(AutomationRunModel).where(
            AutomationRunModel.id == run_id
        ).values(
            status=status,
            completed_at=to_db_timestamp(completed_at),
            error=error,
        )
        await self._commit(stmt)

    async def update_automation(self, automation_id: str, **values: Any) -> None:
        """
        Update schedule-related columns of an automation.

        Accepted keys: last_run_at, next_run_at, is_active, trigger_config.
        """
        allowed = {"last_run_at", "next_run_at", "is_active", "trigger_config"}
        unknown = set(values) - allowed
        if unknown:
            raise ValueError(f"Cannot update automation columns: {sorted(unknown)}")

        for key in ("last_run_at", "next_run_at"):
            if key in values:
                values[key] = to_db_timestamp(values[key])

        stmt = update(AutomationModel).where(
            AutomationModel.id == str(automation_id)
        ).values(**values)
        await self._commit(stmt)

    async def deactivate_automation(self, automation_id: str) -> None:
        await self.update_automation(automation_id, is_active=False, next_run_at=None)

    async def insert_notification(
        self,
        user_id: str,
        run_id: Optional[str],
        title: str,
        message: Optional[str] = None,
        link: Optional[str] = None
    ) -> str:
        notification = NotificationModel(
            id=new_id(),
            user_id=str(user_id),
            title=title,
            message=message,
            link=link or None,
            automation_run_id=run_id,
        )
        self.db.add(notification)
        await self._commit()
        return notification.id
