"""
Google Sheets client utilities using gspread and service account credentials.

This module encapsulates authentication and the worksheet operations the
template and usage backends need: reading rows as dictionaries, appending
rows, making sure a header row exists, and deleting expired rows.

Example:
    >>> client = GoogleSheetsClient(spreadsheet_name="Reply Templates")
    >>> rows = client.read_records("templates")
    >>> client.append_row("usage", ["t1", 0, "facebook.com/groups/123", "2024-01-01T00:00:00+00:00"])
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Sequence

import gspread
from google.oauth2.service_account import Credentials

DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class GoogleSheetsClient:
    """
    Lightweight wrapper around gspread for the template and usage worksheets.

    API behavior:
        - Authenticates using a service account JSON file located at the path in
          environment variable GOOGLE_SERVICE_ACCOUNT_PATH.
        - Opens the spreadsheet by ID (argument or GOOGLE_SHEET_ID) when set,
          otherwise by the provided spreadsheet name.

    Example usage:
        client = GoogleSheetsClient(spreadsheet_name="Reply Templates")
        templates = client.read_records("templates")
    """

    def __init__(self, spreadsheet_name: str, spreadsheet_id: str | None = None):
        service_account_path = os.getenv("GOOGLE_SERVICE_ACCOUNT_PATH")
        if not service_account_path:
            raise RuntimeError("GOOGLE_SERVICE_ACCOUNT_PATH is required but missing.")

        credentials_path = Path(service_account_path)
        if not credentials_path.is_file():
            raise RuntimeError(f"Service account file not found at {credentials_path}")

        credentials = Credentials.from_service_account_file(
            str(credentials_path),
            scopes=DEFAULT_SCOPES,
        )
        client = gspread.authorize(credentials)

        spreadsheet_id = spreadsheet_id or os.getenv("GOOGLE_SHEET_ID")
        try:
            if spreadsheet_id:
                self.spreadsheet = client.open_by_key(spreadsheet_id)
            else:
                self.spreadsheet = client.open(spreadsheet_name)
        except gspread.SpreadsheetNotFound as exc:
            raise RuntimeError(
                f"Spreadsheet not found. Name='{spreadsheet_name}', "
                f"ID='{spreadsheet_id or 'unset'}'."
            ) from exc

    def get_sheet(self, sheet_name: str) -> Any:
        """
        Retrieve a worksheet by name.

        Raises:
            RuntimeError: If the worksheet cannot be located.
        """
        try:
            return self.spreadsheet.worksheet(sheet_name)
        except gspread.WorksheetNotFound as exc:
            raise RuntimeError(f"Worksheet '{sheet_name}' not found.") from exc

    def read_records(self, sheet_name: str) -> List[Dict[str, Any]]:
        """
        Read all rows from a worksheet as a list of dictionaries keyed by header.
        """
        worksheet = self.get_sheet(sheet_name)
        return worksheet.get_all_records()

    def append_row(self, sheet_name: str, row: List[Any]) -> None:
        """
        Append a row to the end of a worksheet.
        """
        worksheet = self.get_sheet(sheet_name)
        worksheet.append_row(row, value_input_option="USER_ENTERED")

    def ensure_header(self, sheet_name: str, header: Sequence[str]) -> None:
        """
        Write the header row when the worksheet is still empty.
        """
        worksheet = self.get_sheet(sheet_name)
        existing = worksheet.get_all_values()
        if not any(cell for row in existing for cell in row):
            worksheet.append_row(list(header), value_input_option="USER_ENTERED")

    def delete_rows(self, sheet_name: str, row_numbers: Sequence[int]) -> None:
        """
        Delete rows by 1-based row number, bottom-up so earlier numbers stay valid.
        """
        worksheet = self.get_sheet(sheet_name)
        for row_number in sorted(set(row_numbers), reverse=True):
            worksheet.delete_rows(row_number)
