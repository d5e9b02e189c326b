"""
Hiérarchie d'exceptions pour le workflow de commande.

Permet de distinguer:
- Erreurs de saisie (rejetées avant toute écriture, l'utilisateur corrige)
- Échec de l'écriture de la commande (aucun effet, retry complet possible)
- Échecs après écriture (la commande existe, les effets sont rejouables)
"""
from typing import List, Optional

from sqlalchemy.exc import DBAPIError, OperationalError


class OrderError(Exception):
    """Exception de base pour le workflow de commande."""

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        order_id: Optional[str] = None,
        retryable: bool = False,
    ):
        self.step = step
        self.order_id = order_id
        self.retryable = retryable
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.step:
            parts.append(f"step={self.step}")
        if self.order_id:
            parts.append(f"order_id={self.order_id}")
        return " | ".join(parts)


# =============================================================================
# ERREURS DE SAISIE (aucune écriture)
# =============================================================================

class InputError(OrderError):
    """Requête invalide, rejetée avant toute écriture."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, step="validate", retryable=False, **kwargs)


class Unauthenticated(InputError):
    """Aucun profil pour l'utilisateur."""

    def __init__(self, message: str = "Vous devez être connecté pour commander", **kwargs):
        super().__init__(message, **kwargs)


class InvalidQuantity(InputError):
    """Quantité hors de [1, stock]."""

    def __init__(self, quantity: int, stock: int, **kwargs):
        self.quantity = quantity
        self.stock = stock
        super().__init__(f"Quantité invalide: {quantity} (stock disponible: {stock})", **kwargs)


class InvalidPickupMethod(InputError):
    """Mode de récupération inconnu."""

    def __init__(self, pickup_method: str, **kwargs):
        self.pickup_method = pickup_method
        super().__init__(f"Mode de récupération invalide: {pickup_method}", **kwargs)


class BasketNotFound(InputError):
    """Panier inexistant."""

    def __init__(self, basket_id: str, **kwargs):
        self.basket_id = basket_id
        super().__init__(f"Panier introuvable: {basket_id}", **kwargs)


# =============================================================================
# ÉCRITURE DE LA COMMANDE
# =============================================================================

class OrderWriteFailed(OrderError):
    """La base a refusé l'insertion de la commande. Aucun effet de bord."""

    def __init__(self, message: str = "Order insert rejected", **kwargs):
        super().__init__(message, step="order", retryable=True, **kwargs)


# =============================================================================
# ÉCHECS APRÈS ÉCRITURE (commande existante)
# =============================================================================

class PostAnchorError(OrderError):
    """
    Un effet a échoué après l'écriture de la commande.

    La commande n'est pas annulée: les effets sont idempotents et
    rejoués par la réconciliation.
    """

    def __init__(
        self,
        message: str,
        step: str,
        order_id: Optional[str] = None,
        failed_steps: Optional[List[str]] = None,
    ):
        self.failed_steps = failed_steps or [step]
        super().__init__(message, step=step, order_id=order_id, retryable=True)


class PointsUpdateFailed(PostAnchorError):
    def __init__(self, message: str = "Points update failed", **kwargs):
        super().__init__(message, step="points", **kwargs)


class BadgeAwardFailed(PostAnchorError):
    def __init__(self, message: str = "Badge award failed", **kwargs):
        super().__init__(message, step="badge", **kwargs)


class ChallengeUpdateFailed(PostAnchorError):
    def __init__(self, message: str = "Challenge update failed", **kwargs):
        super().__init__(message, step="challenges", **kwargs)


# =============================================================================
# HELPERS
# =============================================================================

def is_retryable(exc: Exception) -> bool:
    """Vérifie si une exception est retryable."""
    if isinstance(exc, OrderError):
        return exc.retryable
    # Base momentanément indisponible / connexion coupée
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return False
