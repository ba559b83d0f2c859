"""Current user route."""

from fastapi import APIRouter

from nexusai.api.deps import CurrentUser
from nexusai.schemas.user import UserRead

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the acting user's profile. The stored password never leaves the server."""
    return UserRead.model_validate(current_user, from_attributes=True)
