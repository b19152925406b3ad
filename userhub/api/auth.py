"""Sign-up, sign-in and sign-out. The session token is set/cleared as a cookie."""

import logging

from fastapi import APIRouter, HTTPException, Response, status

from userhub.api.deps import AppSettings, Store, Tokens
from userhub.core.cookies import clear_token_cookie, set_token_cookie
from userhub.schemas.auth import MessageResponse, SignInRequest, SignUpRequest
from userhub.schemas.user import UserPublic, UserResponse
from userhub.services import auth as auth_service
from userhub.services.user_store import DuplicateEmailError, UserNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sign-up", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def sign_up(
    body: SignUpRequest,
    response: Response,
    store: Store,
    tokens: Tokens,
    settings: AppSettings,
) -> UserResponse:
    """Register a user (role defaults to user) and start a session."""
    try:
        user = auth_service.sign_up(
            store,
            name=body.name,
            email=body.email,
            password=body.password,
            role=body.role,
            rounds=settings.BCRYPT_ROUNDS,
        )
    except DuplicateEmailError as e:
        logger.info("Sign-up rejected, email already registered: %s", body.email)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    token = tokens.issue(auth_service.claims_for(user))
    set_token_cookie(response, token, settings, max_age=tokens.max_age_seconds)

    logger.info("User signed up: %s", user.email)
    return UserResponse(
        message="User created successfully",
        user=UserPublic.model_validate(user),
    )


@router.post("/sign-in", response_model=UserResponse)
def sign_in(
    body: SignInRequest,
    response: Response,
    store: Store,
    tokens: Tokens,
    settings: AppSettings,
) -> UserResponse:
    """Check email and password; on success set a fresh session cookie."""
    try:
        user = auth_service.sign_in(store, body.email, body.password)
    except (UserNotFoundError, auth_service.InvalidCredentialsError) as e:
        logger.info("Sign-in failed for %s: %s", body.email, e.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from e

    token = tokens.issue(auth_service.claims_for(user))
    set_token_cookie(response, token, settings, max_age=tokens.max_age_seconds)

    logger.info("User signed in: %s", user.email)
    return UserResponse(
        message="User signed in successfully",
        user=UserPublic.model_validate(user),
    )


@router.post("/sign-out", response_model=MessageResponse)
def sign_out(response: Response, settings: AppSettings) -> MessageResponse:
    """
    Clear the session cookie. Sessions are not stored server-side, so a copy
    of the token kept elsewhere stays valid until it expires.
    """
    clear_token_cookie(response, settings)
    logger.info("User signed out")
    return MessageResponse(message="User signed out successfully")
