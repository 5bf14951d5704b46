"""Allegro catalog listing: token lifecycle, EAN search, ranking and offer creation."""

from .allegro_client import AllegroClient
from .auth import TokenManager
from .catalog import CatalogSearch
from .config_loader import ListingSettings, load_settings
from .offers import OfferService
from .ranking import rank_products, score_product
from .validators import is_valid_ean

__all__ = [
    "AllegroClient",
    "CatalogSearch",
    "ListingSettings",
    "OfferService",
    "TokenManager",
    "is_valid_ean",
    "load_settings",
    "rank_products",
    "score_product",
]
