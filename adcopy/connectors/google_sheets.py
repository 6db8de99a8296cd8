"""Google Sheets store backed by gspread and a service account."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional

import gspread
from dotenv import load_dotenv
from google.oauth2.service_account import Credentials

from adcopy.connectors.base import DEFAULT_RANGE, BaseSheetStore, SheetData, SheetStoreError
from adcopy.schema import SheetValues

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class SheetsConfigError(SheetStoreError):
    pass


def _resolve_creds_path() -> str:
    load_dotenv()
    path = os.environ.get("ADCOPY_GOOGLE_CREDS_JSON") or os.environ.get(
        "GOOGLE_APPLICATION_CREDENTIALS"
    )
    if not path:
        raise SheetsConfigError(
            "Google credentials not configured. Set ADCOPY_GOOGLE_CREDS_JSON or "
            "GOOGLE_APPLICATION_CREDENTIALS to a Service Account JSON path."
        )
    if not Path(path).exists():
        raise SheetsConfigError(f"Credential file not found: {path}")
    return path


def _normalize(values: Any) -> SheetValues:
    return [[("" if cell is None else str(cell)) for cell in row] for row in (values or [])]


class GoogleSheetsStore(BaseSheetStore):
    """Reads and writes one worksheet per spreadsheet id.

    gspread is synchronous, so every call runs in a worker thread.
    """

    def __init__(self, worksheet: Optional[str] = None, client: Any = None):
        self.worksheet = worksheet
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        creds_path = _resolve_creds_path()
        creds = Credentials.from_service_account_file(creds_path, scopes=SCOPES)
        self._client = gspread.authorize(creds)
        return self._client

    def _open(self, sheet_id: str) -> Any:
        sh = self._get_client().open_by_key(sheet_id)
        return sh.worksheet(self.worksheet) if self.worksheet else sh.sheet1

    # ── Blocking helpers ──────────────────────────────────────────────────────

    def _read(self, sheet_id: str, range: str) -> SheetData:
        ws = self._open(sheet_id)
        return SheetData(values=_normalize(ws.get(range)), title=ws.title)

    def _write(self, sheet_id: str, values: SheetValues) -> None:
        ws = self._open(sheet_id)
        ws.clear()
        ws.update(values=values, range_name="A1")

    # ── Store interface ───────────────────────────────────────────────────────

    async def get_sheet_data(self, sheet_id: str, range: str = DEFAULT_RANGE) -> SheetData:
        try:
            return await asyncio.to_thread(self._read, sheet_id, range)
        except SheetStoreError:
            raise
        except Exception as exc:
            raise SheetStoreError(f"Failed to read sheet {sheet_id}: {exc}") from exc

    async def save_sheet_data(self, sheet_id: str, values: SheetValues) -> bool:
        try:
            await asyncio.to_thread(self._write, sheet_id, values)
        except SheetsConfigError:
            raise
        except Exception as exc:
            logger.error("failed to save sheet %s: %s", sheet_id, exc)
            return False
        logger.info("saved %d rows to sheet %s", len(values), sheet_id)
        return True
