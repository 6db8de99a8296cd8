"""Ad Copy Sheets: LLM-generated Google Ads titles/descriptions written back to spreadsheets."""

__version__ = "0.3.0"
