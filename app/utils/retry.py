"""
Retry avec backoff exponentiel pour les jobs de réconciliation et la mise en file.

Par défaut on ne rejoue que ce que `is_retryable` accepte (base
momentanément indisponible, effets post-commande). Un appelant peut
fournir son propre prédicat (ex: erreurs Redis à l'enqueue).
"""
import random
import time
from functools import wraps
from typing import Callable, Optional, TypeVar

from app.core.logging import get_logger
from app.core.exceptions import is_retryable

logger = get_logger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[Exception], bool]


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Délai avant la tentative suivante, avec jitter de +/-30%."""
    delay = min(max_delay, base_delay * (2 ** attempt))
    return delay * (0.7 + random.random() * 0.6)


def with_retry(
    fn: Callable[[], T],
    retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    should_retry: RetryPredicate = is_retryable,
    step: Optional[str] = None,
) -> T:
    """
    Exécute fn() jusqu'à retries + 1 fois.

    L'exception de la dernière tentative (ou la première non rejouable)
    est relevée telle quelle.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as e:
            if attempt >= retries or not should_retry(e):
                logger.warning(
                    f"Giving up after {attempt + 1} attempt(s)",
                    step=step,
                    error_type=type(e).__name__,
                    attempt=attempt + 1,
                )
                raise

            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.info(
                f"Retrying {step or 'call'} in {delay:.2f}s",
                step=step,
                error_type=type(e).__name__,
                attempt=attempt + 1,
            )
            time.sleep(delay)
            attempt += 1


def retry(
    retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    should_retry: RetryPredicate = is_retryable,
    step: Optional[str] = None,
):
    """Version décorateur de with_retry."""
    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @wraps(fn)
        def wrapper(*args, **kwargs) -> T:
            return with_retry(
                lambda: fn(*args, **kwargs),
                retries=retries,
                base_delay=base_delay,
                max_delay=max_delay,
                should_retry=should_retry,
                step=step or fn.__name__,
            )
        return wrapper
    return decorator
