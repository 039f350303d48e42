"""Action Dispatcher - executes a single automation action"""

import asyncio
import re
from dataclasses import dataclass
from typing import List, Optional

from automation_engine.core.config import settings
from automation_engine.core.exceptions import MailTransportError
from automation_engine.core.logging_config import get_logger
from automation_engine.core.monitoring import MetricsCollector
from automation_engine.schemas.automation import (
    Action,
    EmailAction,
    EmailFormat,
    NotificationAction,
)
from automation_engine.services.automation_store import AutomationStore
from automation_engine.services.mail_transport import OutgoingEmail, SMTPMailTransport

logger = get_logger(__name__)

_ADDRESS_DELIMITERS = re.compile(r"[,;\n]")


def parse_email_addresses(value: Optional[str]) -> List[str]:
    """Split a comma/semicolon/newline separated address list"""
    if not value:
        return []
    return [part.strip() for part in _ADDRESS_DELIMITERS.split(value) if part.strip()]


@dataclass(frozen=True)
class ActionContext:
    """Who and which run an action executes for"""
    automation_id: str
    user_id: str
    run_id: str


@dataclass(frozen=True)
class ActionOutcome:
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "ActionOutcome":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> "ActionOutcome":
        return cls(ok=False, error=error)


class ActionDispatcher:
    """
    Runs one action against its channel and reports a uniform outcome.

    No retries happen here. Channel errors, configuration errors and
    timeouts all come back as a failed ActionOutcome; the orchestrator
    keeps going with the next action either way.
    """

    def __init__(
        self,
        store: AutomationStore,
        mail_transport: Optional[SMTPMailTransport] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.store = store
        self.mail_transport = mail_transport or SMTPMailTransport()
        self.timeout_seconds = timeout_seconds or settings.ACTION_TIMEOUT_SECONDS

    async def execute(self, action: Action, context: ActionContext) -> ActionOutcome:
        """
        Execute a single action.

        Args:
            action: Email or notification action
            context: Automation, owning user and run the action belongs to

        Returns:
            ActionOutcome with ok=False and a readable error on any failure
        """
        try:
            await asyncio.wait_for(self._dispatch(action, context), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            outcome = ActionOutcome.failure(
                f"{action.kind} action timed out after {self.timeout_seconds:g}s"
            )
        except MailTransportError as e:
            logger.warning("mail_delivery_failed", run_id=context.run_id, **e.to_dict())
            outcome = ActionOutcome.failure(e.message)
        except Exception as e:
            outcome = ActionOutcome.failure(str(e) or type(e).__name__)
        else:
            outcome = ActionOutcome.success()

        MetricsCollector.record_action(action.kind, outcome.ok)
        if not outcome.ok:
            logger.error(
                "automation_action_failed",
                automation_id=context.automation_id,
                run_id=context.run_id,
                action_type=action.kind,
                error=outcome.error
            )
        return outcome

    async def _dispatch(self, action: Action, context: ActionContext) -> None:
        if isinstance(action, EmailAction):
            await self._send_email(action)
        elif isinstance(action, NotificationAction):
            await self._create_notification(action, context)
        else:
            raise TypeError(f"Unsupported action: {type(action).__name__}")

    async def _send_email(self, action: EmailAction) -> None:
        config = action.config
        email = OutgoingEmail(
            to=parse_email_addresses(config.to),
            cc=parse_email_addresses(config.cc),
            bcc=parse_email_addresses(config.bcc),
            reply_to=config.reply_to or None,
            subject=config.subject,
            body=config.body,
            html=config.format is EmailFormat.HTML,
        )
        await self.mail_transport.send(email)

    async def _create_notification(self, action: NotificationAction, context: ActionContext) -> None:
        config = action.config
        notification_id = await self.store.insert_notification(
            user_id=context.user_id,
            run_id=context.run_id,
            title=config.title,
            message=config.message,
            link=config.link,
        )
        logger.info(
            "notification_created",
            notification_id=notification_id,
            user_id=context.user_id,
            run_id=context.run_id
        )
