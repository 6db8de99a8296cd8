"""Local CSV spreadsheet store: one ``<sheet_id>.csv`` file per sheet."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pandas as pd

from adcopy.connectors.base import DEFAULT_RANGE, BaseSheetStore, SheetData, SheetStoreError
from adcopy.mappers import column_index
from adcopy.schema import SheetValues

logger = logging.getLogger(__name__)


def _column_bounds(range: str) -> tuple[int, int]:
    """``"A:Z"`` → ``(0, 26)``; open-ended ranges read every column."""
    start, _, end = range.partition(":")
    start = "".join(c for c in start if c.isalpha()) or "A"
    end = "".join(c for c in end if c.isalpha())
    lo = column_index(start)
    hi = column_index(end) + 1 if end else 10_000
    return lo, hi


class CsvSheetStore(BaseSheetStore):
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, sheet_id: str) -> Path:
        return self.root / f"{sheet_id}.csv"

    def _read(self, sheet_id: str, range: str) -> SheetData:
        p = self.path_for(sheet_id)
        if not p.exists():
            raise SheetStoreError(f"Sheet file not found: {p}")
        try:
            df = pd.read_csv(p, header=None, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return SheetData(values=[], title=sheet_id)
        except (pd.errors.ParserError, UnicodeDecodeError) as exc:
            raise SheetStoreError(f"Could not parse {p}: {exc}") from exc

        lo, hi = _column_bounds(range)
        values = df.iloc[:, lo:hi].values.tolist()
        # Trailing blanks come from padding, not from the sheet.
        rows = []
        for row in values:
            while row and row[-1] == "":
                row.pop()
            rows.append([str(c) for c in row])
        return SheetData(values=rows, title=sheet_id)

    def _write(self, sheet_id: str, values: SheetValues) -> None:
        p = self.path_for(sheet_id)
        p.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(values).fillna("")
        df.to_csv(p, header=False, index=False, encoding="utf-8")

    async def get_sheet_data(self, sheet_id: str, range: str = DEFAULT_RANGE) -> SheetData:
        return await asyncio.to_thread(self._read, sheet_id, range)

    async def save_sheet_data(self, sheet_id: str, values: SheetValues) -> bool:
        try:
            await asyncio.to_thread(self._write, sheet_id, values)
        except OSError as exc:
            logger.error("failed to write %s: %s", self.path_for(sheet_id), exc)
            return False
        logger.info("saved %d rows to %s", len(values), self.path_for(sheet_id))
        return True
