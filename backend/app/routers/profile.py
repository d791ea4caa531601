"""Own profile endpoints."""

from fastapi import APIRouter, Depends

from app.models.profile import ProfileResponse, ProfileUpdate
from app.services import profile_service
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/api/profile", tags=["profile"])


def _profile_response(profile: dict) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile["user_id"],
        name=profile["name"],
        email=profile.get("email", ""),
        team_name=profile.get("team_name"),
        role=profile["role"],
        created_at=profile["created_at"],
    )


@router.get("/me", response_model=ProfileResponse)
async def get_me(user=Depends(get_current_user)):
    return _profile_response(user)


@router.patch("/me", response_model=ProfileResponse)
async def update_me(body: ProfileUpdate, user=Depends(get_current_user)):
    """Change display name or team name."""
    profile = await profile_service.update_own_profile(
        user["user_id"], name=body.name, team_name=body.team_name,
    )
    return _profile_response(profile)
