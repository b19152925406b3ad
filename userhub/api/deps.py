"""Request dependencies: settings, token service, user store, and the auth/role gates."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session

from userhub.core.config import Settings
from userhub.core.database import get_db
from userhub.core.security import InvalidTokenError, TokenService
from userhub.schemas.auth import SessionClaims
from userhub.schemas.user import UserIdPath
from userhub.schemas.validation import validate_payload
from userhub.services.user_store import UserStore

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    """The TokenService built at startup with the configured secret."""
    return request.app.state.token_service


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    return UserStore(db)


def get_session_token(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> str | None:
    """The session cookie named by the app's COOKIE_NAME, if sent."""
    return request.cookies.get(settings.COOKIE_NAME)


def get_current_claims(
    token: Annotated[str | None, Depends(get_session_token)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> SessionClaims:
    """Dependency: require a valid session cookie and return its claims. Raises 401 otherwise."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token is required",
        )
    try:
        return tokens.verify(token)
    except InvalidTokenError as e:
        logger.error("Authentication error: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e


def require_roles(*roles: str) -> Callable[..., SessionClaims]:
    """Dependency factory: authenticated and role in roles, else 403."""
    allowed = frozenset(roles)

    def dependency(
        claims: Annotated[SessionClaims, Depends(get_current_claims)],
    ) -> SessionClaims:
        if claims.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this resource",
            )
        return claims

    return dependency


require_admin = require_roles("admin")


def get_user_id(user_id: str) -> int:
    """Dependency: the {user_id} path parameter as a positive integer, else 400."""
    result = validate_payload(UserIdPath, {"id": user_id})
    if not result.ok:
        raise RequestValidationError(result.errors)
    return result.value.id


CurrentClaims = Annotated[SessionClaims, Depends(get_current_claims)]
AdminClaims = Annotated[SessionClaims, Depends(require_admin)]
UserId = Annotated[int, Depends(get_user_id)]
Store = Annotated[UserStore, Depends(get_user_store)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Tokens = Annotated[TokenService, Depends(get_token_service)]
