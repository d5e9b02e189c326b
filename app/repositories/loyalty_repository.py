from datetime import datetime
from typing import Optional, List, Set

from sqlalchemy import update, case, and_, or_
from sqlalchemy.orm import Session

from app.models.loyalty import Badge, UserBadge, Challenge, UserChallenge


class LoyaltyRepository:
    """Badges, défis et progression par utilisateur."""

    def __init__(self, session: Session):
        self.session = session

    # Badges

    def find_badge(self, code: str, name: Optional[str] = None) -> Optional[Badge]:
        """Cherche par code stable, puis par nom affiché."""
        badge = self.session.query(Badge).filter(Badge.code == code).first()
        if badge is None and name:
            badge = self.session.query(Badge).filter(Badge.name == name).first()
        return badge

    def list_badges(self) -> List[Badge]:
        return self.session.query(Badge).order_by(Badge.condition_value.asc(), Badge.name.asc()).all()

    def find_user_badge(self, user_id: str, badge_id: str) -> Optional[UserBadge]:
        return self.session.query(UserBadge).filter(
            UserBadge.user_id == user_id,
            UserBadge.badge_id == badge_id,
        ).first()

    def create_user_badge(self, user_id: str, badge_id: str) -> UserBadge:
        user_badge = UserBadge(user_id=user_id, badge_id=badge_id)
        self.session.add(user_badge)
        self.session.flush()
        return user_badge

    def earned_badge_ids(self, user_id: str) -> Set[str]:
        rows = self.session.query(UserBadge.badge_id).filter(UserBadge.user_id == user_id).all()
        return {r.badge_id for r in rows}

    # Défis

    def list_active_challenges(self) -> List[Challenge]:
        return (
            self.session.query(Challenge)
            .filter(Challenge.active == True)  # noqa: E712
            .order_by(Challenge.start_date.asc())
            .all()
        )

    def find_user_challenge(self, user_id: str, challenge_id: str) -> Optional[UserChallenge]:
        return self.session.query(UserChallenge).filter(
            UserChallenge.user_id == user_id,
            UserChallenge.challenge_id == challenge_id,
        ).first()

    def list_user_challenges(self, user_id: str) -> List[UserChallenge]:
        return self.session.query(UserChallenge).filter(UserChallenge.user_id == user_id).all()

    def create_user_challenge(self, user_id: str, challenge: Challenge, now: datetime) -> UserChallenge:
        completed = 1 >= challenge.goal_value
        user_challenge = UserChallenge(
            user_id=user_id,
            challenge_id=challenge.id,
            progress=1,
            completed=completed,
            completed_at=now if completed else None,
        )
        self.session.add(user_challenge)
        self.session.flush()
        return user_challenge

    def increment_user_challenge(self, user_id: str, challenge: Challenge, now: datetime) -> bool:
        """
        progress += 1 en une seule requête.

        completed passe à True quand progress atteint goal_value et n'est
        jamais remis à False; completed_at est posé au passage à True.
        Retourne False si la ligne n'existe pas encore.
        """
        reached = UserChallenge.progress + 1 >= challenge.goal_value
        stmt = (
            update(UserChallenge)
            .where(
                UserChallenge.user_id == user_id,
                UserChallenge.challenge_id == challenge.id,
            )
            .values(
                progress=UserChallenge.progress + 1,
                completed=or_(UserChallenge.completed, reached),
                completed_at=case(
                    (and_(UserChallenge.completed == False, reached), now),  # noqa: E712
                    else_=UserChallenge.completed_at,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount > 0
