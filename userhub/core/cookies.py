"""Session cookie helpers: the signed token travels in an httpOnly cookie."""

from typing import TYPE_CHECKING

from fastapi import Response

if TYPE_CHECKING:
    from userhub.core.config import Settings


def set_token_cookie(
    response: Response, token: str, settings: "Settings", max_age: int
) -> None:
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def clear_token_cookie(response: Response, settings: "Settings") -> None:
    """Tell the client to drop the token. The token itself stays valid until exp."""
    response.delete_cookie(
        key=settings.COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
