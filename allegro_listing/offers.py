"""Create Allegro offers from a catalog product and a warehouse row."""

from __future__ import annotations

import logging
from typing import Any, Dict

import requests

from .allegro_client import AllegroClient
from .config_loader import ListingSettings
from .errors import GatewayError, InsufficientStockError, ListingError, NotFoundError
from .models import STATUS_CREATED, STATUS_FAILED, InventoryRow, ListingAttempt, OfferResult
from .storage import ListingStore

logger = logging.getLogger(__name__)


def build_offer_payload(
    product_id: str,
    warehouse_item_id: str,
    row: InventoryRow,
    quantity: int,
    currency: str,
) -> Dict[str, Any]:
    return {
        "productSet": [{"product": {"id": product_id}}],
        "sellingMode": {"price": {"amount": f"{row.allegro_price:.2f}", "currency": currency}},
        "stock": {"available": quantity},
        "publication": {"status": "ACTIVE"},
        "external": {"id": warehouse_item_id},
        "name": row.name,
    }


class OfferService:
    def __init__(self, client: AllegroClient, store: ListingStore, settings: ListingSettings) -> None:
        self.client = client
        self.store = store
        self.settings = settings

    def _log_attempt(self, attempt: ListingAttempt) -> bool:
        try:
            self.store.append_listing_attempt(attempt)
            return True
        except (ListingError, requests.RequestException) as e:
            logger.error("Listing log insert failed for %s: %s", attempt.warehouse_item_id, e)
            return False

    def create_offer_from_candidate(self, warehouse_item_id: str, product_id: str) -> OfferResult:
        """List ``product_id`` with a fixed quantity taken from the warehouse row.

        The listed quantity is always ``settings.listing_quantity`` and the row
        must hold at least that much stock. Not idempotent: calling twice
        creates two offers.
        """
        warehouse_item_id = (warehouse_item_id or "").strip()
        product_id = (product_id or "").strip()
        if not warehouse_item_id or not product_id:
            raise ValueError("warehouse_item_id and product_id are required")

        row = self.store.find_inventory_row(warehouse_item_id)
        if row is None:
            raise NotFoundError(f"No warehouse item matches {warehouse_item_id!r}")

        quantity = self.settings.listing_quantity
        if row.total_stock < quantity:
            logger.info(
                "Not listing %s: stock %g below the required %d",
                warehouse_item_id, row.total_stock, quantity,
            )
            raise InsufficientStockError(row.total_stock, quantity)

        payload = build_offer_payload(
            product_id, warehouse_item_id, row, quantity, self.settings.currency
        )

        try:
            offer = self.client.create_offer(payload)
        except (ListingError, requests.RequestException) as e:
            message = str(e) or "Allegro offer creation failed"
            logged = self._log_attempt(ListingAttempt(
                warehouse_item_id=warehouse_item_id,
                ean=row.ean,
                product_id=product_id,
                offer_id=None,
                quantity_listed=quantity,
                status=STATUS_FAILED,
                error=message,
            ))
            logger.error("Offer creation failed for %s: %s", warehouse_item_id, message)
            raise GatewayError(message, attempt_logged=logged) from e

        offer_id = offer.get("id")
        self._log_attempt(ListingAttempt(
            warehouse_item_id=warehouse_item_id,
            ean=row.ean,
            product_id=product_id,
            offer_id=offer_id,
            quantity_listed=quantity,
            status=STATUS_CREATED,
        ))
        logger.info("Created Allegro offer %s for %s", offer_id, warehouse_item_id)
        return OfferResult(
            offer_id=offer_id,
            status=STATUS_CREATED,
            quantity_listed=quantity,
            operation_id=offer.get("operationId"),
        )
