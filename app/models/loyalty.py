"""Loyalty models - Badges, défis et progression par utilisateur."""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.profile import Base, new_id, utcnow


class BadgeCondition(str, Enum):
    ORDERS_COUNT = "orders_count"
    POINTS_TOTAL = "points_total"
    CO2_SAVED = "co2_saved"
    STREAK_DAYS = "streak_days"


class ChallengeType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SPECIAL = "special"


class Badge(Base):
    __tablename__ = "badges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # Clé symbolique stable (le nom affiché peut changer)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(String(50), nullable=False, default="award")
    condition_type: Mapped[str] = mapped_column(String(20), nullable=False, default=BadgeCondition.ORDERS_COUNT.value)
    condition_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    points_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserBadge(Base):
    __tablename__ = "user_badges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    badge_id: Mapped[str] = mapped_column(String(36), ForeignKey("badges.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Contrainte unique: un user ne peut pas avoir le même badge 2 fois
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badge"),
    )


class Challenge(Base):
    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    challenge_type: Mapped[str] = mapped_column(String(20), nullable=False, default=ChallengeType.WEEKLY.value)
    goal_value: Mapped[int] = mapped_column(Integer, nullable=False)
    points_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)


class UserChallenge(Base):
    """Progression d'un utilisateur sur un défi. completed ne repasse jamais à False."""

    __tablename__ = "user_challenges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    challenge_id: Mapped[str] = mapped_column(String(36), ForeignKey("challenges.id"), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_user_challenge"),
    )
