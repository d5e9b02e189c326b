from typing import Optional, List

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.profile import Profile


class ProfileRepository:

    def __init__(self, session: Session):
        self.session = session

    def get(self, profile_id: str) -> Optional[Profile]:
        return self.session.get(Profile, profile_id)

    def get_points(self, profile_id: str) -> Optional[int]:
        """Solde de points, None si le profil n'existe pas."""
        return self.session.query(Profile.points).filter(Profile.id == profile_id).scalar()

    def increment_points(self, profile_id: str, delta: int) -> bool:
        """
        Incrément atomique (points = points + delta) côté base.
        Retourne False si le profil n'existe pas.
        """
        stmt = (
            update(Profile)
            .where(Profile.id == profile_id)
            .values(points=Profile.points + delta)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount > 0

    def list_students(self) -> List[Profile]:
        return (
            self.session.query(Profile)
            .filter(Profile.is_admin == False)  # noqa: E712
            .order_by(Profile.created_at.desc())
            .all()
        )
