"""
Google Sheets / Drive service construction shared by the Google-backed stores.
"""

from __future__ import annotations

import logging
from typing import Optional

import google.auth
from google.oauth2 import service_account
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


def get_credentials(service_account_file: Optional[str] = None):
    if service_account_file:
        return service_account.Credentials.from_service_account_file(
            service_account_file, scopes=SCOPES
        )
    credentials, _ = google.auth.default(scopes=SCOPES)
    return credentials


def build_sheets_service(credentials):
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


def build_drive_service(credentials):
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


def quote_sheet(sheet_name: str, a1: str) -> str:
    """Return an A1 range qualified with a (quoted) sheet name."""
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{a1}"


def column_letter(column: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA."""
    letters = ""
    while column > 0:
        column, remainder = divmod(column - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def ensure_sheet(service, spreadsheet_id: str, sheet_name: str) -> bool:
    """
    Make sure a sheet (tab) with the given title exists.

    Returns True when the sheet had to be created.
    """
    meta = (
        service.spreadsheets()
        .get(spreadsheetId=spreadsheet_id, fields="sheets.properties.title")
        .execute()
    )
    titles = [
        sheet.get("properties", {}).get("title")
        for sheet in meta.get("sheets", [])
    ]
    if sheet_name in titles:
        return False

    logger.info("Creating sheet %r in spreadsheet %s", sheet_name, spreadsheet_id)
    service.spreadsheets().batchUpdate(
        spreadsheetId=spreadsheet_id,
        body={"requests": [{"addSheet": {"properties": {"title": sheet_name}}}]},
    ).execute()
    return True
