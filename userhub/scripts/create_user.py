"""
Create a user (e.g. first admin). Run from project root:
  python -m userhub.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m userhub.scripts.create_user "Ann Lee" ann@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from userhub.core.config import get_settings
from userhub.core.database import build_session_factory
from userhub.core.logging import configure_logging
from userhub.schemas.auth import SignUpRequest
from userhub.schemas.validation import format_validation_errors, validate_payload
from userhub.services.auth import sign_up
from userhub.services.user_store import DuplicateEmailError, StorageError, UserStore

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Userhub user from the command line.")
    parser.add_argument("name", help="Display name (2-255 chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (6-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    result = validate_payload(
        SignUpRequest,
        {"name": args.name, "email": args.email, "password": args.password, "role": args.role},
    )
    if not result.ok:
        print(format_validation_errors(result.errors), file=sys.stderr)
        return 1
    payload = result.value

    db = build_session_factory(settings)()
    try:
        user = sign_up(
            UserStore(db),
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            rounds=settings.BCRYPT_ROUNDS,
        )
    except DuplicateEmailError:
        print(f"User '{payload.email}' already exists.", file=sys.stderr)
        return 1
    except StorageError as e:
        logger.exception("Could not create user: %s", e.message)
        return 1
    finally:
        db.close()
    print(f"Created user '{user.email}' (id={user.id}) with role '{user.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
