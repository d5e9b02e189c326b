"""
Tableaux de bord: étudiant (impact, badges, défis, commandes) et admin.
"""
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from app.models.order import Order, OrderStatus
from app.models.profile import Profile
from app.repositories.basket_repository import BasketRepository
from app.repositories.loyalty_repository import LoyaltyRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.profile_repository import ProfileRepository
from app.services.catalog_service import basket_to_api_dict


def profile_to_api_dict(profile: Profile) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "student_status": profile.student_status,
        "university": profile.university,
        "points": profile.points,
        "level": profile.level,
        "premium": profile.premium,
        "is_admin": profile.is_admin,
        "preferences": profile.preferences or {"dietary": [], "categories": []},
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
    }


def order_to_api_dict(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "basket_id": order.basket_id,
        "quantity": order.quantity,
        "total_price": order.total_price,
        "status": order.status,
        "pickup_method": order.pickup_method,
        "pickup_time": order.pickup_time.isoformat() if order.pickup_time else None,
        "points_earned": order.points_earned,
        "co2_saved": order.co2_saved,
        "food_saved": order.food_saved,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def build_user_dashboard(session: Session, profile: Profile) -> Dict[str, Any]:
    loyalty = LoyaltyRepository(session)
    orders = OrderRepository(session).list_for_user(profile.id)

    earned = loyalty.earned_badge_ids(profile.id)
    progress = {uc.challenge_id: uc for uc in loyalty.list_user_challenges(profile.id)}

    badges = [
        {
            "id": b.id,
            "code": b.code,
            "name": b.name,
            "description": b.description,
            "icon": b.icon,
            "points_reward": b.points_reward,
            "earned": b.id in earned,
        }
        for b in loyalty.list_badges()
    ]

    challenges = []
    for c in loyalty.list_active_challenges():
        uc = progress.get(c.id)
        challenges.append({
            "id": c.id,
            "title": c.title,
            "description": c.description,
            "challenge_type": c.challenge_type,
            "goal_value": c.goal_value,
            "points_reward": c.points_reward,
            "end_date": c.end_date.isoformat() if c.end_date else None,
            "progress": uc.progress if uc else 0,
            "completed": uc.completed if uc else False,
            "completed_at": uc.completed_at.isoformat() if uc and uc.completed_at else None,
        })

    return {
        "profile": profile_to_api_dict(profile),
        "impact": {
            "co2_saved": round(sum(o.co2_saved or 0 for o in orders), 3),
            "food_saved": round(sum(o.food_saved or 0 for o in orders), 3),
            "orders_count": len(orders),
        },
        "badges": badges,
        "challenges": challenges,
        "orders": [order_to_api_dict(o) for o in orders],
    }


def build_admin_stats(session: Session) -> Dict[str, Any]:
    orders = OrderRepository(session)
    totals = orders.totals()
    by_status = orders.count_by_status()
    students = ProfileRepository(session).list_students()

    return {
        "total_revenue": round(totals["revenue"], 2),
        "food_saved": round(totals["food_saved"], 3),
        "co2_saved": round(totals["co2_saved"], 3),
        "total_stock": BasketRepository(session).total_stock(),
        "orders_by_status": {
            OrderStatus.CONFIRMED.value: by_status.get(OrderStatus.CONFIRMED.value, 0),
            OrderStatus.COMPLETED.value: by_status.get(OrderStatus.COMPLETED.value, 0),
            OrderStatus.CANCELLED.value: by_status.get(OrderStatus.CANCELLED.value, 0),
        },
        "total_orders": totals["count"],
        "active_students": len(students),
        "average_basket": round(totals["revenue"] / max(totals["count"], 1), 2),
    }


def list_admin_orders(session: Session) -> List[Dict[str, Any]]:
    result = []
    for order in OrderRepository(session).list_all_with_details():
        item = order_to_api_dict(order)
        item["user_id"] = order.user_id
        item["profile"] = {
            "full_name": order.profile.full_name,
            "email": order.profile.email,
        } if order.profile else None
        item["basket"] = {"title": order.basket.title} if order.basket else None
        result.append(item)
    return result


def list_admin_baskets(session: Session) -> List[Dict[str, Any]]:
    return [basket_to_api_dict(b) for b in BasketRepository(session).list_all()]


def list_admin_students(session: Session) -> List[Dict[str, Any]]:
    return [profile_to_api_dict(p) for p in ProfileRepository(session).list_students()]
