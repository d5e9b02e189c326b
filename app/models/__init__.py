from app.models.profile import Profile, Base
from app.models.basket import Basket, BasketCategory, CATEGORY_LABELS
from app.models.order import Order, OrderEffect, OrderStatus, PickupMethod
from app.models.loyalty import Badge, UserBadge, Challenge, UserChallenge

__all__ = [
    'Profile', 'Base', 'Basket', 'BasketCategory', 'CATEGORY_LABELS',
    'Order', 'OrderEffect', 'OrderStatus', 'PickupMethod',
    'Badge', 'UserBadge', 'Challenge', 'UserChallenge',
]
