"""Custom exceptions for the automation engine"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvocationAuthorizationError(Exception):
    """
    Raised when the invocation surface is called without valid credentials.
    
    This exception is raised when:
    - The Authorization header is missing
    - The bearer token cannot be decoded or its signature is invalid
    - The token has expired
    
    Nothing is processed once this has been raised.
    """
    
    def __init__(
        self,
        message: str = "Unauthorized",
        reason: str = "missing_authorization",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.reason = reason
        self.details = details or {}
        self.timestamp = _utcnow()
        
        super().__init__(message)
    
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging.
        
        Returns:
            Dictionary representation of the error
        """
        return {
            "error_type": "invocation_authorization_error",
            "message": self.message,
            "reason": self.reason,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }
    
    def get_api_response(self) -> Dict[str, Any]:
        """Response body for the invocation surface"""
        return {"error": self.message}


class AutomationQueryError(Exception):
    """
    Raised when automations cannot be selected at all.
    
    This is the batch-level failure: no automation is processed and no
    run record is created.
    """
    
    def __init__(
        self,
        message: str,
        automation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.automation_id = automation_id
        self.details = details or {}
        self.timestamp = _utcnow()
        
        super().__init__(message)
    
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging.
        
        Returns:
            Dictionary representation of the error
        """
        return {
            "error_type": "automation_query_error",
            "message": self.message,
            "automation_id": self.automation_id,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }
    
    def get_api_response(self) -> Dict[str, Any]:
        """Response body for the invocation surface"""
        return {"error": self.message}


class AutomationConfigError(ValueError):
    """
    Raised when a stored trigger or action configuration cannot be parsed.
    
    Contained to the single automation it belongs to.
    """
    
    def __init__(
        self,
        message: str,
        automation_id: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.automation_id = automation_id
        self.field = field
        self.details = details or {}
        self.timestamp = _utcnow()
        
        super().__init__(message)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": "automation_config_error",
            "message": self.message,
            "automation_id": self.automation_id,
            "field": self.field,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }


class MailTransportError(Exception):
    """
    Raised when an email cannot be delivered.
    
    This exception is raised when:
    - The SMTP server rejects the connection, login or message
    - The transport times out
    - The message has no usable recipients
    """
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        self.timestamp = _utcnow()
        
        super().__init__(message)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": "mail_transport_error",
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }


class MailTransportNotConfiguredError(MailTransportError):
    """Raised when SMTP host or credentials are missing; never a silent skip"""
    
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "SMTP not configured. Please set SMTP_HOST, SMTP_USER, and SMTP_PASSWORD.",
            details=details
        )


class ScheduleAdvanceError(Exception):
    """
    Raised when the schedule state of an automation cannot be persisted
    after a run.
    
    A failure here can leave an automation stuck on an old next_run_at or
    let it run past its count limit, so it is always logged at critical level.
    """
    
    def __init__(
        self,
        message: str,
        automation_id: Optional[str] = None,
        run_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.automation_id = automation_id
        self.run_id = run_id
        self.details = details or {}
        self.timestamp = _utcnow()
        
        super().__init__(message)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": "schedule_advance_error",
            "message": self.message,
            "automation_id": self.automation_id,
            "run_id": self.run_id,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }
