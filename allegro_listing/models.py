"""Data models used across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

DEFAULT_PRODUCT_TITLE = "Produkt Allegro"

STATUS_CREATED = "CREATED"
STATUS_FAILED = "FAILED"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as stored by PostgREST or the local store."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return number


@dataclass
class TokenGrant:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"
    scope: str = ""

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "TokenGrant":
        return cls(
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token", ""),
            expires_in=int(data.get("expires_in") or 0),
            token_type=data.get("token_type", "bearer"),
            scope=data.get("scope", "") or "",
        )


@dataclass
class TokenRecord:
    id: Optional[str]
    access_token: str
    refresh_token: str
    expires_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TokenRecord":
        record_id = row.get("id")
        return cls(
            id=str(record_id) if record_id is not None else None,
            access_token=row.get("access_token", "") or "",
            refresh_token=row.get("refresh_token", "") or "",
            expires_at=parse_timestamp(row.get("expires_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )


@dataclass
class IssuedToken:
    access_token: str
    refresh_token: str
    record_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: TokenRecord) -> "IssuedToken":
        return cls(
            access_token=record.access_token,
            refresh_token=record.refresh_token,
            record_id=record.id,
        )


@dataclass(frozen=True)
class CatalogCandidate:
    product_id: str
    title: str
    images: List[str]
    parameters: List[Dict[str, Any]]
    category_id: Optional[str]
    raw_detail: Dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_detail(cls, detail: Dict[str, Any]) -> "CatalogCandidate":
        images = [
            img.get("url")
            for img in (detail.get("images") or [])
            if isinstance(img, dict) and img.get("url")
        ]
        category = detail.get("category") or {}
        category_id = category.get("id") if isinstance(category, dict) else None
        return cls(
            product_id=str(detail.get("id", "")),
            title=detail.get("name") or DEFAULT_PRODUCT_TITLE,
            images=images,
            parameters=list(detail.get("parameters") or []),
            category_id=str(category_id) if category_id is not None else None,
            raw_detail=detail,
        )


@dataclass
class RankedCandidate:
    candidate: CatalogCandidate
    score: float
    reasons: List[str]

    @property
    def product_id(self) -> str:
        return self.candidate.product_id

    @property
    def title(self) -> str:
        return self.candidate.title

    @property
    def main_image_url(self) -> Optional[str]:
        return self.candidate.images[0] if self.candidate.images else None

    def to_summary(self) -> Dict[str, Any]:
        return {
            "productId": self.candidate.product_id,
            "title": self.candidate.title,
            "mainImageUrl": self.main_image_url,
            "images": list(self.candidate.images),
            "categoryId": self.candidate.category_id,
            "score": self.score,
            "reason": list(self.reasons),
        }


@dataclass
class CachedProduct:
    product_id: str
    payload: Dict[str, Any]
    fetched_at: Optional[datetime]
    ean: str = ""
    main_image_url: Optional[str] = None
    title: Optional[str] = None
    score: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CachedProduct":
        score = row.get("score")
        return cls(
            product_id=str(row.get("product_id", "")),
            payload=row.get("payload") or {},
            fetched_at=parse_timestamp(row.get("fetched_at")),
            ean=row.get("ean") or "",
            main_image_url=row.get("main_image_url"),
            title=row.get("title"),
            score=float(score) if score is not None else None,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "ean": self.ean,
            "payload": self.payload,
            "main_image_url": self.main_image_url,
            "title": self.title,
            "score": self.score,
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
        }


@dataclass
class InventoryRow:
    id: str
    sku: str
    name: str
    ean: Optional[str]
    total_stock: float
    allegro_price: float

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "InventoryRow":
        return cls(
            id=str(row.get("id", "")),
            sku=str(row.get("sku", "") or ""),
            name=row.get("name", "") or "",
            ean=row.get("ean") or None,
            total_stock=_to_number(row.get("total_stock")),
            allegro_price=_to_number(row.get("allegro_price")),
        )


@dataclass
class ListingAttempt:
    warehouse_item_id: str
    ean: Optional[str]
    product_id: str
    offer_id: Optional[str]
    quantity_listed: int
    status: str
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def to_row(self) -> Dict[str, Any]:
        return {
            "warehouse_item_id": self.warehouse_item_id,
            "ean": self.ean,
            "product_id": self.product_id,
            "allegro_offer_id": self.offer_id,
            "quantity_listed": self.quantity_listed,
            "status": self.status,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ListingAttempt":
        return cls(
            warehouse_item_id=str(row.get("warehouse_item_id", "")),
            ean=row.get("ean"),
            product_id=str(row.get("product_id", "")),
            offer_id=row.get("allegro_offer_id"),
            quantity_listed=int(row.get("quantity_listed") or 0),
            status=row.get("status", ""),
            error=row.get("error"),
            created_at=parse_timestamp(row.get("created_at")) or utc_now(),
        )


@dataclass
class OfferResult:
    offer_id: Optional[str]
    status: str
    quantity_listed: int
    operation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offerId": self.offer_id,
            "status": self.status,
            "quantityListed": self.quantity_listed,
            "operationId": self.operation_id,
        }
