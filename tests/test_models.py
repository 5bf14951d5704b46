"""Tests for data models."""

from datetime import datetime, timezone

from allegro_listing.models import (
    CachedProduct,
    CatalogCandidate,
    InventoryRow,
    ListingAttempt,
    RankedCandidate,
    TokenGrant,
    TokenRecord,
    parse_timestamp,
)


def test_parse_timestamp_accepts_z_suffix():
    """Test parsing of PostgREST style UTC timestamps."""
    parsed = parse_timestamp("2026-10-18T12:00:00Z")
    assert parsed == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def test_parse_timestamp_naive_is_utc():
    """Test that naive timestamps are read as UTC."""
    assert parse_timestamp("2026-10-18T12:00:00").tzinfo == timezone.utc
    assert parse_timestamp("") is None
    assert parse_timestamp("not a date") is None


def test_token_record_from_row():
    """Test creating a TokenRecord from a table row."""
    record = TokenRecord.from_row({
        "id": 7,
        "access_token": "a",
        "refresh_token": "r",
        "expires_at": "2026-10-18T13:00:00+00:00",
        "updated_at": "2026-10-18T12:00:00+00:00",
    })
    assert record.id == "7"
    assert record.expires_at.hour == 13


def test_token_grant_from_response():
    """Test parsing the OAuth response."""
    grant = TokenGrant.from_response({"access_token": "a", "refresh_token": "r", "expires_in": "43199"})
    assert grant.expires_in == 43199
    assert grant.scope == ""


def test_catalog_candidate_from_detail():
    """Test building a candidate from a product detail record."""
    candidate = CatalogCandidate.from_detail({
        "id": "p-1",
        "name": "Kubek",
        "images": [{"url": "https://img/1.jpg"}, {"url": ""}, {"url": "https://img/2.jpg"}],
        "parameters": [{"name": "Marka", "values": ["X"]}],
        "category": {"id": "123"},
    })
    assert candidate.product_id == "p-1"
    assert candidate.images == ["https://img/1.jpg", "https://img/2.jpg"]
    assert candidate.category_id == "123"
    assert candidate.raw_detail["name"] == "Kubek"


def test_catalog_candidate_default_title():
    """Test the fallback title for unnamed products."""
    candidate = CatalogCandidate.from_detail({"id": "p-2"})
    assert candidate.title == "Produkt Allegro"
    assert candidate.images == []
    assert candidate.category_id is None


def test_ranked_candidate_summary():
    """Test the presentation shape of a ranked candidate."""
    candidate = CatalogCandidate.from_detail({"id": "p-1", "name": "Kubek", "images": [{"url": "u1"}]})
    summary = RankedCandidate(candidate, 12.5, ["Zdjęcia: 1"]).to_summary()
    assert summary == {
        "productId": "p-1",
        "title": "Kubek",
        "mainImageUrl": "u1",
        "images": ["u1"],
        "categoryId": None,
        "score": 12.5,
        "reason": ["Zdjęcia: 1"],
    }


def test_inventory_row_coerces_numbers():
    """Test that stock and price tolerate strings and junk."""
    row = InventoryRow.from_row({"id": 1, "sku": "SKU-1", "name": "Kubek", "total_stock": "7", "allegro_price": None})
    assert row.id == "1"
    assert row.total_stock == 7.0
    assert row.allegro_price == 0.0
    assert InventoryRow.from_row({"total_stock": "n/a"}).total_stock == 0.0


def test_listing_attempt_row_round_trip():
    """Test the listing log row mapping."""
    attempt = ListingAttempt(
        warehouse_item_id="w-1",
        ean="5901234123457",
        product_id="p-1",
        offer_id="o-1",
        quantity_listed=5,
        status="CREATED",
    )
    row = attempt.to_row()
    assert row["allegro_offer_id"] == "o-1"
    assert row["error"] is None
    assert ListingAttempt.from_row(row).offer_id == "o-1"


def test_cached_product_from_row():
    """Test reading a cache row."""
    cached = CachedProduct.from_row({
        "product_id": "p-1",
        "payload": {"id": "p-1"},
        "fetched_at": "2026-10-18T10:00:00+00:00",
        "score": "46",
    })
    assert cached.score == 46.0
    assert cached.fetched_at.hour == 10
