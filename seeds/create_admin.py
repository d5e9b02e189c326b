"""
Création (ou mise à jour) du profil administrateur.
Lancer avec: python seeds/create_admin.py
"""
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger

from app.db.session import get_db_session
from app.models.profile import Profile
from app.core.security import create_access_token

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@ecopanier.fr")
ADMIN_NAME = "Administrateur EcoPanier"


def create_admin() -> str:
    """Retourne l'id du profil admin."""
    with get_db_session() as db:
        admin = db.query(Profile).filter(Profile.email == ADMIN_EMAIL).first()
        if admin:
            logger.info("Updating existing admin profile...")
        else:
            logger.info("Creating admin profile...")
            admin = Profile(email=ADMIN_EMAIL, full_name=ADMIN_NAME)
            db.add(admin)

        admin.full_name = ADMIN_NAME
        admin.is_admin = True
        admin.student_status = False
        admin.points = 1000
        admin.level = 5
        db.flush()
        return admin.id


if __name__ == "__main__":
    admin_id = create_admin()
    logger.success(f"Admin ready: {ADMIN_EMAIL} ({admin_id})")
    print(create_access_token(subject=admin_id, minutes=60 * 24))
