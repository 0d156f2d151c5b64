"""In-memory working set of listings owned by a single session."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from marketplace_ads.models import Ad
from marketplace_ads.validation import validate_ad


class Catalog:
    """Ordered collection of :class:`Ad` keyed by id.

    Ids are unique within the catalog and never reused: once removed, an id
    cannot be added again.
    """

    def __init__(self, ads: Iterable[Ad] = ()) -> None:
        self._ads: dict[str, Ad] = {}
        self._retired: set[str] = set()
        self.extend(ads)

    def __len__(self) -> int:
        return len(self._ads)

    def __iter__(self) -> Iterator[Ad]:
        return iter(list(self._ads.values()))

    def __contains__(self, ad_id: object) -> bool:
        return ad_id in self._ads

    def _check_new_id(self, ad_id: str, pending: set[str] | None = None) -> None:
        if ad_id in self._ads or (pending is not None and ad_id in pending):
            raise ValueError(f"Duplicate ad id: {ad_id}")
        if ad_id in self._retired:
            raise ValueError(f"Ad id was already used and removed: {ad_id}")

    def get(self, ad_id: str) -> Ad:
        try:
            return self._ads[ad_id]
        except KeyError:
            raise KeyError(f"Unknown ad id: {ad_id}") from None

    def add(self, ad: Ad) -> Ad:
        self._check_new_id(ad.id)
        self._ads[ad.id] = ad
        return ad

    def extend(self, ads: Iterable[Ad]) -> list[Ad]:
        """Add every ad in *ads*, or none of them if any id is rejected."""
        batch = list(ads)
        pending: set[str] = set()
        for ad in batch:
            self._check_new_id(ad.id, pending)
            pending.add(ad.id)
        for ad in batch:
            self._ads[ad.id] = ad
        return batch

    def replace(self, ad: Ad) -> Ad:
        """Swap in *ad* for the stored listing with the same id."""
        if ad.id not in self._ads:
            raise KeyError(f"Unknown ad id: {ad.id}")
        self._ads[ad.id] = ad
        return ad

    def remove(self, ad_id: str) -> Ad:
        ad = self.get(ad_id)
        del self._ads[ad_id]
        self._retired.add(ad_id)
        return ad

    def errors(self, *, strict: bool = False) -> dict[str, dict[str, str]]:
        """Return ``{ad_id: error map}`` for listings that are not publishable."""
        report: dict[str, dict[str, str]] = {}
        for ad in self._ads.values():
            errors = validate_ad(ad, strict=strict)
            if errors:
                report[ad.id] = errors
        return report

    def is_exportable(self, *, strict: bool = False) -> bool:
        return bool(self._ads) and not self.errors(strict=strict)
