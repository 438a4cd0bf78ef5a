"""Current user endpoint."""

from fastapi import APIRouter

from minerr.api.auth import AuthenticatedUser, CurrentUser

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=AuthenticatedUser)
async def get_me(user: CurrentUser) -> AuthenticatedUser:
    """Return the identity carried by the bearer token."""
    return user
