"""Pricing engine.

The server-side price is the only price ever charged. A client-submitted
total is used solely to detect a stale or tampered checkout form.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation

from registrations.domain.errors import PriceMismatchError
from registrations.domain.models import Category, Event, PriceQuote
from registrations.domain.value_objects import ZERO


def is_early_bird_active(event: Event, now: datetime) -> bool:
    return event.early_bird is not None and event.early_bird.contains(now)


def is_registration_closed(event: Event, now: datetime) -> bool:
    if event.registration_closes_at is None:
        return False
    return now > event.registration_closes_at


def compute_price(
    event: Event, category: Category, vanity_requested: bool, now: datetime
) -> PriceQuote:
    """Return the authoritative price for a registration attempt."""
    base = category.list_price
    if category.early_bird_price is not None and is_early_bird_active(event, now):
        base = category.early_bird_price

    premium = ZERO
    if vanity_requested and event.vanity.enabled:
        premium = event.vanity.premium

    return PriceQuote(base=base, vanity_premium=premium)


def verify_client_price(quote: PriceQuote, client_total, tolerance: Decimal) -> None:
    """Reject a client total that differs from the quote by more than tolerance.

    Raises:
        PriceMismatchError: If the totals disagree, in either direction.
    """
    try:
        submitted = Decimal(str(client_total))
    except (InvalidOperation, ValueError):
        raise PriceMismatchError(quote.total.amount, client_total)

    if not submitted.is_finite() or abs(submitted - quote.total.amount) > tolerance:
        raise PriceMismatchError(quote.total.amount, client_total)
