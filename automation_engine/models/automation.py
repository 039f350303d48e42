"""Automation, action, run and notification models"""

import enum
from sqlalchemy import Column, String, Text, Boolean, Integer, Enum, JSON, TIMESTAMP, ForeignKey, Index
from sqlalchemy.dialects.mysql import CHAR
from sqlalchemy.orm import relationship

from automation_engine.models.base import Base, BaseModel, new_id, utcnow


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class TriggerType(str, enum.Enum):
    """How an automation is started"""
    SCHEDULE = "schedule"
    MANUAL = "manual"


class ActionType(str, enum.Enum):
    """Side effect performed by one automation action"""
    EMAIL = "email"
    NOTIFICATION = "notification"


class RunStatus(str, enum.Enum):
    """Run lifecycle: running -> success | failed"""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class AutomationModel(BaseModel):
    """
    Automations table.
    
    trigger_config holds the user-authored schedule together with the
    engine-owned runs_completed counter; the two are split apart when the
    row is read (see schemas.automation.parse_trigger).
    """
    __tablename__ = "automations"
    
    user_id = Column(CHAR(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")
    trigger_type = Column(
        Enum(TriggerType, name="trigger_type", values_callable=_enum_values),
        nullable=False,
        default=TriggerType.MANUAL
    )
    trigger_config = Column(JSON, nullable=False, default=dict)
    last_run_at = Column(TIMESTAMP, nullable=True)
    next_run_at = Column(TIMESTAMP, nullable=True)
    deleted_at = Column(TIMESTAMP, nullable=True)
    
    actions = relationship(
        "AutomationActionModel",
        back_populates="automation",
        cascade="all, delete-orphan",
        order_by="AutomationActionModel.sort_order"
    )
    runs = relationship(
        "AutomationRunModel",
        back_populates="automation",
        cascade="all, delete-orphan"
    )
    
    __table_args__ = (
        Index("idx_automations_due", "is_active", "next_run_at"),
    )


class AutomationActionModel(Base):
    """Ordered actions belonging to one automation"""
    __tablename__ = "automation_actions"
    
    id = Column(CHAR(36), primary_key=True, default=new_id)
    automation_id = Column(
        CHAR(36),
        ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    action_type = Column(
        Enum(ActionType, name="action_type", values_callable=_enum_values),
        nullable=False
    )
    action_config = Column(JSON, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    
    automation = relationship("AutomationModel", back_populates="actions")


class AutomationRunModel(Base):
    """One execution attempt of an automation's action list"""
    __tablename__ = "automation_runs"
    
    id = Column(CHAR(36), primary_key=True, default=new_id)
    automation_id = Column(
        CHAR(36),
        ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    status = Column(
        Enum(RunStatus, name="run_status", values_callable=_enum_values),
        nullable=False,
        default=RunStatus.RUNNING
    )
    started_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    completed_at = Column(TIMESTAMP, nullable=True)
    error = Column(Text, nullable=True)
    
    automation = relationship("AutomationModel", back_populates="runs")


class NotificationModel(Base):
    """In-app notifications; rows created by notification actions link back to their run"""
    __tablename__ = "notifications"
    
    id = Column(CHAR(36), primary_key=True, default=new_id)
    user_id = Column(CHAR(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    link = Column(String(2048), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, server_default="0")
    automation_run_id = Column(
        CHAR(36),
        ForeignKey("automation_runs.id", ondelete="SET NULL"),
        nullable=True
    )
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
