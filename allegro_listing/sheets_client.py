"""Sheet exporters for the listing log and ranked catalog candidates."""

from __future__ import annotations

import csv
import os
from pathlib import Path
from typing import Iterable, List

import gspread
from google.oauth2.service_account import Credentials

from .models import ListingAttempt, RankedCandidate, utc_now


LISTING_HEADERS = [
    "created_at",
    "warehouse_item_id",
    "ean",
    "product_id",
    "allegro_offer_id",
    "quantity_listed",
    "status",
    "error",
]

CANDIDATE_HEADERS = [
    "searched_at",
    "ean",
    "rank",
    "product_id",
    "title",
    "score",
    "main_image_url",
    "category_id",
    "reason",
]


def listing_values(attempt: ListingAttempt) -> List[str]:
    row = attempt.to_row()
    return ["" if row.get(field) is None else str(row[field]) for field in LISTING_HEADERS]


def candidate_values(ean: str, rank: int, item: RankedCandidate, searched_at: str) -> List[str]:
    return [
        searched_at,
        ean,
        str(rank),
        item.product_id,
        item.title,
        f"{item.score:.1f}",
        item.main_image_url or "",
        item.candidate.category_id or "",
        "; ".join(item.reasons),
    ]


class GoogleSheetsClient:
    """Real Google Sheets client using gspread."""

    def __init__(self, service_account_file: str, spreadsheet_url: str) -> None:
        # Extract spreadsheet ID from URL
        if "/d/" in spreadsheet_url:
            self.spreadsheet_id = spreadsheet_url.split("/d/")[1].split("/")[0]
        else:
            self.spreadsheet_id = spreadsheet_url.replace("\ufeff", "").strip()

        scopes = [
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
        ]
        creds = Credentials.from_service_account_file(service_account_file, scopes=scopes)
        self.client = gspread.authorize(creds)
        self.spreadsheet = self.client.open_by_key(self.spreadsheet_id)

        self.listings_name = os.getenv("SHEETS_NAME_LISTINGS", "Allegro Listings")
        self.candidates_name = os.getenv("SHEETS_NAME_CANDIDATES", "Allegro Candidates")

    def _get_or_create_worksheet(self, name: str, headers: List[str]) -> gspread.Worksheet:
        """Get worksheet by name, create it with a header row if it doesn't exist."""
        try:
            worksheet = self.spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            worksheet = self.spreadsheet.add_worksheet(title=name, rows=1000, cols=len(headers))
        if not worksheet.row_values(1):
            worksheet.append_row(headers)
        return worksheet

    def append_listing_attempts(self, attempts: Iterable[ListingAttempt]) -> int:
        values = [listing_values(a) for a in attempts]
        if values:
            worksheet = self._get_or_create_worksheet(self.listings_name, LISTING_HEADERS)
            worksheet.append_rows(values, value_input_option="RAW")
        return len(values)

    def append_ranked_candidates(self, ean: str, ranked: List[RankedCandidate]) -> int:
        searched_at = utc_now().isoformat()
        values = [candidate_values(ean, i, item, searched_at) for i, item in enumerate(ranked, 1)]
        if values:
            worksheet = self._get_or_create_worksheet(self.candidates_name, CANDIDATE_HEADERS)
            worksheet.append_rows(values, value_input_option="RAW")
        return len(values)


class LocalSheetsClient:
    """Local CSV-based exporter for offline runs."""

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.listings_name = os.getenv("SHEETS_NAME_LISTINGS", "allegro_listings")
        self.candidates_name = os.getenv("SHEETS_NAME_CANDIDATES", "allegro_candidates")

    def _ensure_file(self, filename: str, headers: List[str]) -> Path:
        path = self.base_dir / filename
        if not path.exists():
            with path.open("w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(headers)
        return path

    def _append(self, filename: str, headers: List[str], values: List[List[str]]) -> int:
        path = self._ensure_file(filename, headers)
        with path.open("a", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerows(values)
        return len(values)

    def append_listing_attempts(self, attempts: Iterable[ListingAttempt]) -> int:
        values = [listing_values(a) for a in attempts]
        return self._append(f"{self.listings_name}.csv", LISTING_HEADERS, values)

    def append_ranked_candidates(self, ean: str, ranked: List[RankedCandidate]) -> int:
        searched_at = utc_now().isoformat()
        values = [candidate_values(ean, i, item, searched_at) for i, item in enumerate(ranked, 1)]
        return self._append(f"{self.candidates_name}.csv", CANDIDATE_HEADERS, values)
