"""Listing validation — pure functions, no side effects."""

from __future__ import annotations

import math
from numbers import Real
from typing import Any

from marketplace_ads.models import CONDITION_OPTIONS, SHIPPING_OPTIONS, Ad

TITLE_MIN_LENGTH = 5

TITLE_REQUIRED = "Title is required"
TITLE_TOO_SHORT = f"Title is too short (min {TITLE_MIN_LENGTH} chars)"
PRICE_REQUIRED = "Price is required"
PRICE_NEGATIVE = "Price cannot be negative"
CATEGORY_REQUIRED = "Category is required"
DESCRIPTION_REQUIRED = "Description is required"


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


def _one_of_message(label: str, options: tuple[str, ...]) -> str:
    return f"{label} must be one of: {', '.join(options)}"


def validate_ad(ad: Ad, *, strict: bool = False) -> dict[str, str]:
    """Return ``{field: message}`` for every invalid field of *ad*.

    An empty dict means the listing is publishable. At most one message is
    reported per field.

    ``condition`` and ``offer_shipping`` are only checked when *strict* is
    true; by default imported values outside the fixed option sets pass.
    """
    errors: dict[str, str] = {}

    if _is_blank(ad.title):
        errors["title"] = TITLE_REQUIRED
    elif len(ad.title) < TITLE_MIN_LENGTH:
        errors["title"] = TITLE_TOO_SHORT

    if not _is_number(ad.price):
        errors["price"] = PRICE_REQUIRED
    elif ad.price < 0:  # type: ignore[operator]
        errors["price"] = PRICE_NEGATIVE

    if _is_blank(ad.category):
        errors["category"] = CATEGORY_REQUIRED

    if _is_blank(ad.description):
        errors["description"] = DESCRIPTION_REQUIRED

    if strict:
        if ad.condition not in CONDITION_OPTIONS:
            errors["condition"] = _one_of_message("Condition", CONDITION_OPTIONS)
        if ad.offer_shipping not in SHIPPING_OPTIONS:
            errors["offer_shipping"] = _one_of_message("Offer shipping", SHIPPING_OPTIONS)

    return errors


def is_publishable(ad: Ad, *, strict: bool = False) -> bool:
    return not validate_ad(ad, strict=strict)
