"""
Script de seed du catalogue et des données de fidélité (idempotent).
Lancer avec: python seeds/seed_catalog.py
"""
import sys
import os
from datetime import timedelta

# Ajouter le chemin racine au PYTHONPATH
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger

from app.db.session import get_db_session
from app.models.basket import Basket, BasketCategory
from app.models.loyalty import Badge, Challenge, BadgeCondition, ChallengeType
from app.models.profile import utcnow
from app.core.config import FIRST_ORDER_BADGE_CODE, FIRST_ORDER_BADGE_NAME

BADGES = [
    {
        "code": FIRST_ORDER_BADGE_CODE,
        "name": FIRST_ORDER_BADGE_NAME,
        "description": "Première commande passée",
        "icon": "sprout",
        "condition_type": BadgeCondition.ORDERS_COUNT.value,
        "condition_value": 1,
        "points_reward": 50,
    },
    {
        "code": "eco_warrior",
        "name": "Éco-Guerrier",
        "description": "10 kg de CO₂ évités",
        "icon": "leaf",
        "condition_type": BadgeCondition.CO2_SAVED.value,
        "condition_value": 10,
        "points_reward": 100,
    },
    {
        "code": "points_collector",
        "name": "Collectionneur",
        "description": "1000 points cumulés",
        "icon": "trophy",
        "condition_type": BadgeCondition.POINTS_TOTAL.value,
        "condition_value": 1000,
        "points_reward": 150,
    },
]

CHALLENGES = [
    {
        "title": "3 paniers cette semaine",
        "description": "Commandez 3 paniers avant dimanche",
        "challenge_type": ChallengeType.WEEKLY.value,
        "goal_value": 3,
        "points_reward": 100,
        "days": 7,
    },
    {
        "title": "Objectif zéro gaspi",
        "description": "10 commandes dans le mois",
        "challenge_type": ChallengeType.MONTHLY.value,
        "goal_value": 10,
        "points_reward": 300,
        "days": 30,
    },
]

BASKETS = [
    {
        "title": "Panier fruits & légumes",
        "description": "Fruits et légumes de saison, légèrement abîmés",
        "category": BasketCategory.ALIMENTAIRE.value,
        "original_price": 15.0,
        "discounted_price": 5.0,
        "stock": 12,
        "store_name": "Hypermarché Centre",
        "store_location": "12 rue de la République, Lyon",
        "co2_saved": 2.5,
        "food_saved": 3.0,
    },
    {
        "title": "Kit hygiène étudiant",
        "description": "Savons, dentifrice et shampoing proches de la date",
        "category": BasketCategory.HYGIENE.value,
        "original_price": 20.0,
        "discounted_price": 7.5,
        "stock": 8,
        "store_name": "Hypermarché Centre",
        "store_location": "12 rue de la République, Lyon",
        "co2_saved": 1.2,
        "food_saved": 0.0,
    },
    {
        "title": "Fournitures de rentrée",
        "description": "Cahiers, stylos et classeurs de fin de série",
        "category": BasketCategory.FOURNITURES.value,
        "original_price": 25.0,
        "discounted_price": 9.9,
        "stock": 5,
        "store_name": "Hypermarché Campus",
        "store_location": "Avenue des Universités, Villeurbanne",
        "co2_saved": 0.8,
        "food_saved": 0.0,
    },
    {
        "title": "Panier mixte du soir",
        "description": "Épicerie, boulangerie et hygiène",
        "category": BasketCategory.MIXTE.value,
        "original_price": 18.0,
        "discounted_price": 6.0,
        "stock": 10,
        "store_name": "Hypermarché Campus",
        "store_location": "Avenue des Universités, Villeurbanne",
        "co2_saved": 1.8,
        "food_saved": 2.0,
    },
]


def seed_badges(db):
    for data in BADGES:
        existing = db.query(Badge).filter(Badge.code == data["code"]).first()
        if existing:
            logger.info(f"Updating badge {data['code']}")
            for key, value in data.items():
                setattr(existing, key, value)
        else:
            logger.info(f"Creating badge {data['code']}")
            db.add(Badge(**data))


def seed_challenges(db):
    now = utcnow()
    for data in CHALLENGES:
        data = dict(data)
        days = data.pop("days")
        existing = db.query(Challenge).filter(Challenge.title == data["title"]).first()
        if existing:
            logger.info(f"Challenge already present: {data['title']}")
            continue
        logger.info(f"Creating challenge {data['title']}")
        db.add(Challenge(start_date=now, end_date=now + timedelta(days=days), active=True, **data))


def seed_baskets(db):
    now = utcnow()
    for data in BASKETS:
        existing = db.query(Basket).filter(
            Basket.title == data["title"],
            Basket.store_name == data["store_name"],
        ).first()
        if existing:
            logger.info(f"Basket already present: {data['title']}")
            continue
        logger.info(f"Creating basket {data['title']}")
        db.add(Basket(available_until=now + timedelta(days=2), **data))


def main():
    with get_db_session() as db:
        seed_badges(db)
        seed_challenges(db)
        seed_baskets(db)
    logger.success("Catalog seeded")


if __name__ == "__main__":
    main()
