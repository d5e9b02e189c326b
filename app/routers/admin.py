"""
Admin Router - Gestion hypermarché.
Endpoints: /v1/admin/*
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.core.logging import get_logger
from app.models.profile import Profile
from app.routers.auth import get_current_admin
from app.services.dashboard_service import (
    build_admin_stats,
    list_admin_baskets,
    list_admin_orders,
    list_admin_students,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


# =============================================================================
# STATS
# =============================================================================

@router.get("/stats")
def get_admin_stats(admin: Profile = Depends(get_current_admin), db: Session = Depends(get_db)):
    """Vue d'ensemble: revenus, impact, stock, commandes par statut."""
    stats = build_admin_stats(db)
    logger.info("Admin stats served", user_id=admin.id, total_orders=stats["total_orders"])
    return stats


# =============================================================================
# LISTES
# =============================================================================

@router.get("/baskets")
def get_admin_baskets(admin: Profile = Depends(get_current_admin), db: Session = Depends(get_db)):
    baskets = list_admin_baskets(db)
    return {"count": len(baskets), "baskets": baskets}


@router.get("/orders")
def get_admin_orders(admin: Profile = Depends(get_current_admin), db: Session = Depends(get_db)):
    orders = list_admin_orders(db)
    return {"count": len(orders), "orders": orders}


@router.get("/students")
def get_admin_students(admin: Profile = Depends(get_current_admin), db: Session = Depends(get_db)):
    students = list_admin_students(db)
    return {"count": len(students), "students": students}
