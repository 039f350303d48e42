"""Common API dependencies for invocation authorization"""

from typing import Any, Dict, Optional
from fastapi import Header, Request

from automation_engine.core.exceptions import InvocationAuthorizationError
from automation_engine.core.security import verify_token


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise InvocationAuthorizationError(reason="missing_authorization")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvocationAuthorizationError(reason="malformed_authorization")
    return token.strip()


async def require_invocation_token(
    request: Request,
    authorization: Optional[str] = Header(None)
) -> Dict[str, Any]:
    """
    Authorize a call to the invocation surface.

    Args:
        request: Incoming request; the caller's subject is stored on its state
        authorization: Authorization header value ("Bearer <jwt>")

    Returns:
        Decoded token payload

    Raises:
        InvocationAuthorizationError: If the header is missing, malformed,
            badly signed or expired
    """
    token = _extract_bearer_token(authorization)

    payload = verify_token(token)
    if payload is None:
        raise InvocationAuthorizationError(reason="invalid_token")

    request.state.user_id = payload.get("sub")
    return payload
