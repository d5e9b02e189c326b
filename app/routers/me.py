"""
Me Router - Tableau de bord étudiant.
Endpoints: /v1/me/*
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.models.profile import Profile
from app.routers.auth import get_current_profile
from app.services.dashboard_service import build_user_dashboard

router = APIRouter(prefix="/v1/me", tags=["me"])


@router.get("/dashboard")
def get_dashboard(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Impact, badges, défis actifs et commandes de l'utilisateur."""
    return build_user_dashboard(db, profile)
