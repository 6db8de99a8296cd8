"""Spreadsheet store connectors."""
from adcopy.connectors.base import BaseSheetStore, SheetData, SheetStoreError
from adcopy.connectors.csv_sheets import CsvSheetStore

__all__ = ["BaseSheetStore", "CsvSheetStore", "SheetData", "SheetStoreError"]
