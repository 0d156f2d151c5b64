"""marketplace-ads — Build, check and bulk-export classified-ad listings."""

__version__ = "0.2.0"

REQUIRED_HEADERS: tuple[str, ...] = (
    "TITLE",
    "PRICE",
    "CONDITION",
    "DESCRIPTION",
    "CATEGORY",
    "OFFER SHIPPING",
)
