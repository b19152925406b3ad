"""Sign-up and sign-in: uniqueness check, hashing, persistence and credential checks."""

import logging

from userhub.core.security import BCRYPT_ROUNDS, hash_password, verify_password
from userhub.models import User
from userhub.schemas.auth import SessionClaims
from userhub.services.user_store import DuplicateEmailError, UserNotFoundError, UserStore

logger = logging.getLogger(__name__)


class InvalidCredentialsError(Exception):
    """Raised when the password does not match the stored digest."""

    def __init__(self, message: str = "Invalid password") -> None:
        self.message = message
        super().__init__(message)


def sign_up(
    store: UserStore,
    name: str,
    email: str,
    password: str,
    role: str = "user",
    rounds: int = BCRYPT_ROUNDS,
) -> User:
    """
    Register a new user and return the stored row.

    The email pre-check only saves a bcrypt round for the common case; two
    concurrent sign-ups can both pass it, and the unique index on users.email
    then rejects the second insert with DuplicateEmailError.
    """
    if store.find_by_email(email) is not None:
        raise DuplicateEmailError(email)
    digest = hash_password(password, rounds=rounds)
    user = store.insert(name=name, email=email, password_digest=digest, role=role)
    logger.info("User created successfully: %s", email)
    return user


def sign_in(store: UserStore, email: str, password: str) -> User:
    """Return the user whose email and password match; raise otherwise."""
    user = store.find_by_email(email)
    if user is None:
        raise UserNotFoundError()
    if not verify_password(password, user.password):
        raise InvalidCredentialsError()
    logger.info("User authenticated successfully: %s", email)
    return user


def claims_for(user: User) -> SessionClaims:
    """Session claims (id, email, role) to embed in the token."""
    return SessionClaims(id=user.id, email=user.email, role=user.role)
