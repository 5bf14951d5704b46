"""EAN catalog lookup with a product-detail cache."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional

import requests

from .allegro_client import AllegroClient
from .auth import Clock
from .config_loader import ListingSettings
from .errors import ListingError
from .models import CachedProduct, CatalogCandidate, RankedCandidate, utc_now
from .ranking import rank_products, top_candidates
from .storage import ListingStore
from .validators import is_valid_ean

logger = logging.getLogger(__name__)


class CatalogSearch:
    """Finds Allegro catalog products for an EAN and ranks them."""

    def __init__(
        self,
        client: AllegroClient,
        store: ListingStore,
        settings: ListingSettings,
        clock: Optional[Clock] = None,
    ) -> None:
        self.client = client
        self.store = store
        self.settings = settings
        self.clock = clock or utc_now

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(hours=self.settings.cache_ttl_hours)

    def _load_from_cache(self, product_id: str) -> Optional[dict]:
        try:
            cached = self.store.get_cached_product(product_id)
        except (ListingError, requests.RequestException) as e:
            logger.error("Product cache read failed for %s: %s", product_id, e)
            return None
        if cached is None or cached.fetched_at is None or not cached.payload:
            return None
        if cached.fetched_at <= self.clock() - self.cache_ttl:
            logger.debug("Cache expired: %s", product_id)
            return None
        logger.info("Cache hit: %s", product_id)
        return cached.payload

    def search_by_ean(self, ean: str) -> List[CatalogCandidate]:
        """Fetch detail records for the first summaries the catalog returns.

        Candidates keep the order of the upstream summaries. A candidate whose
        detail fetch fails is logged and left out.
        """
        if not is_valid_ean(ean):
            raise ValueError(f"Invalid EAN: {ean!r} (expected 8, 12, 13 or 14 digits)")

        summaries = self.client.search_products_by_ean(ean)
        candidates = []
        for summary in summaries[: self.settings.max_details]:
            product_id = summary.get("id") if isinstance(summary, dict) else None
            if not product_id:
                continue
            product_id = str(product_id)

            detail = self._load_from_cache(product_id)
            if detail is None:
                try:
                    detail = self.client.fetch_product_detail(product_id)
                except (ListingError, requests.RequestException) as e:
                    logger.warning("Detail fetch failed for %s: %s", product_id, e)
                    continue
            if not detail:
                logger.warning("Empty detail for %s, skipping", product_id)
                continue
            candidates.append(CatalogCandidate.from_detail(detail))

        logger.info("EAN %s: %d of %d candidates fetched", ean, len(candidates), len(summaries))
        return candidates

    def cache_ranked(self, ean: str, ranked: List[RankedCandidate]) -> None:
        fetched_at = self.clock()
        for item in ranked:
            entry = CachedProduct(
                product_id=item.product_id,
                payload=item.candidate.raw_detail,
                fetched_at=fetched_at,
                ean=ean,
                main_image_url=item.main_image_url,
                title=item.candidate.raw_detail.get("name"),
                score=item.score,
            )
            try:
                self.store.save_cached_product(entry)
            except (ListingError, requests.RequestException) as e:
                logger.error("Product cache write failed for %s: %s", item.product_id, e)

    def find_top_candidates(self, ean: str, limit: Optional[int] = None) -> List[RankedCandidate]:
        """Search, rank and cache; return the best ``limit`` candidates (default top 3)."""
        candidates = self.search_by_ean(ean)
        if not candidates:
            return []
        ranked = rank_products(candidates)
        self.cache_ranked(ean, ranked)
        return top_candidates(ranked, limit if limit is not None else self.settings.top_n)
