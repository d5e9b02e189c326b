"""
Identité de l'appelant à partir d'un token déjà émis.
Le token est lu dans le cookie `access_token` ou l'en-tête Authorization.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.core.security import decode_subject
from app.models.profile import Profile
from app.repositories.profile_repository import ProfileRepository
from app.services.dashboard_service import profile_to_api_dict

router = APIRouter(prefix="/v1", tags=["auth"])

COOKIE_NAME = "access_token"


def get_token(request: Request):
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token


def get_current_profile(request: Request, db: Session = Depends(get_db)) -> Profile:
    """Extract and validate current profile from token."""
    token = get_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    profile_id = decode_subject(token)
    if not profile_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    profile = ProfileRepository(db).get(profile_id)
    if not profile:
        raise HTTPException(status_code=401, detail="User not found")

    return profile


def get_current_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if not profile.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return profile


@router.get("/me")
def get_me(profile: Profile = Depends(get_current_profile)):
    """Get current authenticated profile."""
    return profile_to_api_dict(profile)
