"""Persistence adapters for tokens, the product cache, inventory and the listing log."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .config_loader import ListingSettings
from .errors import ConfigurationError, StorageError, TokenConflictError
from .models import CachedProduct, InventoryRow, ListingAttempt, TokenRecord, parse_timestamp

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ListingStore:
    """Repository interface shared by the Supabase and local backends."""

    def latest_token(self) -> Optional[TokenRecord]:
        raise NotImplementedError

    def insert_token(self, fields: Dict[str, Any]) -> TokenRecord:
        raise NotImplementedError

    def update_token(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
    ) -> TokenRecord:
        raise NotImplementedError

    def get_cached_product(self, product_id: str) -> Optional[CachedProduct]:
        raise NotImplementedError

    def save_cached_product(self, entry: CachedProduct) -> None:
        raise NotImplementedError

    def find_inventory_row(self, warehouse_item_id: str) -> Optional[InventoryRow]:
        raise NotImplementedError

    def append_listing_attempt(self, attempt: ListingAttempt) -> None:
        raise NotImplementedError

    def listing_attempts(self) -> List[ListingAttempt]:
        raise NotImplementedError


class SupabaseStore(ListingStore):
    """Store backed by the Supabase REST (PostgREST) interface."""

    def __init__(
        self,
        url: str,
        service_key: str,
        settings: Optional[ListingSettings] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not url or not service_key:
            raise ConfigurationError(
                "Supabase not configured. Please set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
            )
        self.settings = settings or ListingSettings()
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout = self.settings.request_timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        })

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        headers = {"Prefer": prefer} if prefer else {}
        response = self.session.request(
            method,
            f"{self.rest_url}/{table}",
            params=params,
            json=payload,
            headers=headers,
            timeout=self.timeout,
        )
        if not 200 <= response.status_code < 300:
            raise StorageError(
                f"Supabase {method} {table} failed", response.status_code, response.text
            )
        if not response.text:
            return None
        return response.json()

    def latest_token(self) -> Optional[TokenRecord]:
        rows = self._request(
            "GET",
            self.settings.token_table,
            params={"select": "*", "order": "updated_at.desc", "limit": 1},
        )
        return TokenRecord.from_row(rows[0]) if rows else None

    def insert_token(self, fields: Dict[str, Any]) -> TokenRecord:
        rows = self._request(
            "POST", self.settings.token_table, payload=fields, prefer="return=representation"
        )
        if not rows:
            raise StorageError("Supabase insert returned no token row")
        return TokenRecord.from_row(rows[0])

    def update_token(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
    ) -> TokenRecord:
        params = {"id": f"eq.{record_id}"}
        if expected_updated_at is not None:
            params["updated_at"] = f"eq.{expected_updated_at.isoformat()}"
        rows = self._request(
            "PATCH",
            self.settings.token_table,
            params=params,
            payload=fields,
            prefer="return=representation",
        )
        if not rows:
            if expected_updated_at is not None:
                raise TokenConflictError(f"Token record {record_id} was replaced concurrently")
            raise StorageError(f"Token record {record_id} not found")
        return TokenRecord.from_row(rows[0])

    def get_cached_product(self, product_id: str) -> Optional[CachedProduct]:
        rows = self._request(
            "GET",
            self.settings.cache_table,
            params={"select": "*", "product_id": f"eq.{product_id}", "limit": 1},
        )
        return CachedProduct.from_row(rows[0]) if rows else None

    def save_cached_product(self, entry: CachedProduct) -> None:
        self._request(
            "POST",
            self.settings.cache_table,
            params={"on_conflict": "product_id"},
            payload=entry.to_row(),
            prefer="resolution=merge-duplicates",
        )

    def _find_inventory_by(self, column: str, value: str) -> Optional[Dict[str, Any]]:
        rows = self._request(
            "GET",
            self.settings.inventory_table,
            params={"select": "*", column: f"eq.{value}", "limit": 1},
        )
        return rows[0] if rows else None

    def find_inventory_row(self, warehouse_item_id: str) -> Optional[InventoryRow]:
        try:
            row = self._find_inventory_by("id", warehouse_item_id)
        except StorageError as e:
            # A SKU that is not a valid id literal (uuid/int column) answers 400.
            if e.status != 400:
                raise
            logger.debug("Inventory id lookup rejected for %s, trying SKU", warehouse_item_id)
            row = None
        if row is None:
            row = self._find_inventory_by("sku", warehouse_item_id)
        return InventoryRow.from_row(row) if row else None

    def append_listing_attempt(self, attempt: ListingAttempt) -> None:
        self._request("POST", self.settings.listing_log_table, payload=attempt.to_row())

    def listing_attempts(self) -> List[ListingAttempt]:
        rows = self._request(
            "GET",
            self.settings.listing_log_table,
            params={"select": "*", "order": "created_at.asc"},
        )
        return [ListingAttempt.from_row(row) for row in rows or []]


class LocalStore(ListingStore):
    """JSON-file store for offline runs and tests."""

    TOKENS = "tokens.json"
    CACHE = "product_cache.json"
    INVENTORY = "inventory.json"
    LISTING_LOG = "listing_log.json"

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _read(self, filename: str) -> List[Dict[str, Any]]:
        path = self.base_dir / filename
        if not path.exists():
            return []
        with path.open("r", encoding="utf-8") as f:
            return json.load(f) or []

    def _write(self, filename: str, rows: List[Dict[str, Any]]) -> None:
        path = self.base_dir / filename
        tmp = path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(rows, f, ensure_ascii=False, indent=2, default=str)
        tmp.replace(path)

    def latest_token(self) -> Optional[TokenRecord]:
        with self._lock:
            rows = self._read(self.TOKENS)
        if not rows:
            return None
        newest = max(rows, key=lambda r: parse_timestamp(r.get("updated_at")) or _EPOCH)
        return TokenRecord.from_row(newest)

    def insert_token(self, fields: Dict[str, Any]) -> TokenRecord:
        row = dict(fields, id=str(uuid.uuid4()))
        with self._lock:
            rows = self._read(self.TOKENS)
            rows.append(row)
            self._write(self.TOKENS, rows)
        return TokenRecord.from_row(row)

    def update_token(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
    ) -> TokenRecord:
        with self._lock:
            rows = self._read(self.TOKENS)
            for row in rows:
                if str(row.get("id")) != str(record_id):
                    continue
                if expected_updated_at is not None and parse_timestamp(row.get("updated_at")) != expected_updated_at:
                    raise TokenConflictError(f"Token record {record_id} was replaced concurrently")
                row.update(fields)
                self._write(self.TOKENS, rows)
                return TokenRecord.from_row(row)
        if expected_updated_at is not None:
            raise TokenConflictError(f"Token record {record_id} was replaced concurrently")
        raise StorageError(f"Token record {record_id} not found")

    def get_cached_product(self, product_id: str) -> Optional[CachedProduct]:
        with self._lock:
            rows = self._read(self.CACHE)
        for row in rows:
            if str(row.get("product_id")) == str(product_id):
                return CachedProduct.from_row(row)
        return None

    def save_cached_product(self, entry: CachedProduct) -> None:
        with self._lock:
            rows = [r for r in self._read(self.CACHE) if str(r.get("product_id")) != entry.product_id]
            rows.append(entry.to_row())
            self._write(self.CACHE, rows)

    def add_inventory_row(self, row: Dict[str, Any]) -> None:
        """Seed a warehouse row; the inventory itself is owned elsewhere."""
        with self._lock:
            rows = self._read(self.INVENTORY)
            rows.append(row)
            self._write(self.INVENTORY, rows)

    def find_inventory_row(self, warehouse_item_id: str) -> Optional[InventoryRow]:
        with self._lock:
            rows = self._read(self.INVENTORY)
        for column in ("id", "sku"):
            for row in rows:
                if str(row.get(column, "")) == warehouse_item_id:
                    return InventoryRow.from_row(row)
        return None

    def append_listing_attempt(self, attempt: ListingAttempt) -> None:
        with self._lock:
            rows = self._read(self.LISTING_LOG)
            rows.append(attempt.to_row())
            self._write(self.LISTING_LOG, rows)

    def listing_attempts(self) -> List[ListingAttempt]:
        with self._lock:
            rows = self._read(self.LISTING_LOG)
        return [ListingAttempt.from_row(row) for row in rows]


def build_store(settings: ListingSettings, local_dir: Optional[str] = None) -> ListingStore:
    if local_dir:
        return LocalStore(local_dir)
    if not settings.has_supabase:
        raise ConfigurationError(
            "Supabase not configured. Please set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
        )
    return SupabaseStore(settings.supabase_url, settings.supabase_key, settings)
