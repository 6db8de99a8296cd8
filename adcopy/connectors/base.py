"""Spreadsheet store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from adcopy.schema import SheetValues

DEFAULT_RANGE = "A:Z"


class SheetStoreError(RuntimeError):
    """A sheet could not be read (as opposed to a sheet with zero rows)."""


@dataclass
class SheetData:
    values: SheetValues = field(default_factory=list)
    title: Optional[str] = None


class BaseSheetStore(ABC):
    @abstractmethod
    async def get_sheet_data(self, sheet_id: str, range: str = DEFAULT_RANGE) -> SheetData:
        """Return the cell values of *range*; raise SheetStoreError on failure."""
        ...

    @abstractmethod
    async def save_sheet_data(self, sheet_id: str, values: SheetValues) -> bool:
        """Overwrite the sheet with *values*; False when the write failed."""
        ...
