"""Create marketplace and loyalty tables

Revision ID: marketplace_001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'marketplace_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('student_status', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('university', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('premium', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('preferences', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('points >= 0', name='ck_profiles_points_positive'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    op.create_table(
        'baskets',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('original_price', sa.Float(), nullable=False),
        sa.Column('discounted_price', sa.Float(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('store_name', sa.String(255), nullable=False),
        sa.Column('store_location', sa.String(255), nullable=False, server_default=''),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('available_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('co2_saved', sa.Float(), nullable=False, server_default='0'),
        sa.Column('food_saved', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('stock >= 0', name='ck_baskets_stock_positive'),
        sa.CheckConstraint('discounted_price <= original_price', name='ck_baskets_discount'),
    )
    op.create_index('ix_baskets_category', 'baskets', ['category'])

    op.create_table(
        'orders',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('basket_id', sa.String(36), sa.ForeignKey('baskets.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('pickup_method', sa.String(20), nullable=False),
        sa.Column('pickup_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('co2_saved', sa.Float(), nullable=False, server_default='0'),
        sa.Column('food_saved', sa.Float(), nullable=False, server_default='0'),
        sa.Column('first_order', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('effects_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity >= 1', name='ck_orders_quantity_positive'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_basket_id', 'orders', ['basket_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    # Réconciliation: commandes dont les effets ne sont pas terminés
    op.create_index(
        'ix_orders_effects_pending', 'orders', ['created_at'],
        postgresql_where=sa.text('effects_completed_at IS NULL'),
    )

    op.create_table(
        'order_effects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('effect', sa.String(80), nullable=False),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'effect', name='uq_order_effect'),
    )
    op.create_index('ix_order_effects_order_id', 'order_effects', ['order_id'])

    op.create_table(
        'badges',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('icon', sa.String(50), nullable=False, server_default='award'),
        sa.Column('condition_type', sa.String(20), nullable=False, server_default='orders_count'),
        sa.Column('condition_value', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('points_reward', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'user_badges',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('badge_id', sa.String(36), sa.ForeignKey('badges.id'), nullable=False),
        sa.Column('earned_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'badge_id', name='uq_user_badge'),
    )
    op.create_index('ix_user_badges_user_id', 'user_badges', ['user_id'])

    op.create_table(
        'challenges',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('challenge_type', sa.String(20), nullable=False, server_default='weekly'),
        sa.Column('goal_value', sa.Integer(), nullable=False),
        sa.Column('points_reward', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_challenges_active', 'challenges', ['active'])

    op.create_table(
        'user_challenges',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('challenge_id', sa.String(36), sa.ForeignKey('challenges.id'), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'challenge_id', name='uq_user_challenge'),
    )
    op.create_index('ix_user_challenges_user_id', 'user_challenges', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_user_challenges_user_id', table_name='user_challenges')
    op.drop_table('user_challenges')
    op.drop_index('ix_challenges_active', table_name='challenges')
    op.drop_table('challenges')
    op.drop_index('ix_user_badges_user_id', table_name='user_badges')
    op.drop_table('user_badges')
    op.drop_table('badges')
    op.drop_index('ix_order_effects_order_id', table_name='order_effects')
    op.drop_table('order_effects')
    op.drop_index('ix_orders_effects_pending', table_name='orders')
    op.drop_index('ix_orders_created_at', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_basket_id', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_baskets_category', table_name='baskets')
    op.drop_table('baskets')
    op.drop_index('ix_profiles_email', table_name='profiles')
    op.drop_table('profiles')
