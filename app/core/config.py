"""
Configuration de l'application (variables d'environnement).
"""
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Base de données
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "postgresql+psycopg2://ecopanier:ecopanier@db:5432/ecopanier",
)

# Redis (rate limiting + files RQ)
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")

# JWT
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGO = os.getenv("JWT_ALGO", "HS256")
ACCESS_TOKEN_MINUTES = int(os.getenv("ACCESS_TOKEN_MINUTES", "60"))

# Fidélité
POINTS_PER_EURO = int(os.getenv("POINTS_PER_EURO", "10"))
FIRST_ORDER_BADGE_CODE = os.getenv("FIRST_ORDER_BADGE_CODE", "first_order")
FIRST_ORDER_BADGE_NAME = os.getenv("FIRST_ORDER_BADGE_NAME", "Premier Pas")

# Rate limiting commandes (anti double-submit)
ORDER_RATE_LIMIT_MAX = int(os.getenv("ORDER_RATE_LIMIT_MAX", "5"))
ORDER_RATE_LIMIT_WINDOW = int(os.getenv("ORDER_RATE_LIMIT_WINDOW", "60"))

# Réconciliation des effets de commande
RECONCILE_QUEUE = os.getenv("RECONCILE_QUEUE", "default")
RECONCILE_INTERVAL_SEC = int(os.getenv("RECONCILE_INTERVAL_SEC", "600"))
RECONCILE_OLDER_THAN_MINUTES = int(os.getenv("RECONCILE_OLDER_THAN_MINUTES", "5"))
