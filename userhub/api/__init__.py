"""API routes mounted under API_PREFIX."""

from fastapi import APIRouter

from userhub.api import auth, users

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])


@router.get("")
def api_root() -> dict[str, str]:
    return {"message": "Userhub API is running"}
