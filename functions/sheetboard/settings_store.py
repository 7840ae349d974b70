"""
Board settings kept in three labeled cells (A1:B3) of a settings sheet.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Protocol

from sqlalchemy.orm import sessionmaker

from sheetboard.google_api import ensure_sheet, quote_sheet
from sheetboard.table import SheetRow

LABELS = ["Password", "FolderName", "PageSize"]
ROW_PASSWORD = 1
ROW_FOLDER_NAME = 2
ROW_PAGE_SIZE = 3

FALLBACK_PAGE_SIZE = 5


@dataclass
class BoardConfig:
    password: str
    folder_name: str
    page_size: int


def normalize_password(value: Any) -> str:
    # Spreadsheets hand numeric passwords back as numbers.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if value is None:
        return ""
    return str(value)


def normalize_page_size(value: Any) -> int:
    try:
        page_size = int(float(value))
    except (TypeError, ValueError):
        return FALLBACK_PAGE_SIZE
    return page_size or FALLBACK_PAGE_SIZE


def config_from_cells(values: List[Any]) -> BoardConfig:
    values = list(values) + [None] * (len(LABELS) - len(values))
    return BoardConfig(
        password=normalize_password(values[0]),
        folder_name="" if values[1] is None else str(values[1]),
        page_size=normalize_page_size(values[2]),
    )


class SettingsStore(Protocol):
    """Defines the operations the config service needs from the settings cells."""

    def ensure_defaults(self, password: str, folder_name: str, page_size: int) -> None:
        ...

    def read(self) -> BoardConfig:
        ...

    def write_page_size(self, page_size: int) -> None:
        ...


class InMemorySettingsStore:
    """Test double for the settings sheet."""

    def __init__(self, values: List[Any] | None = None):
        self.values: List[Any] = list(values) if values else []

    def ensure_defaults(self, password: str, folder_name: str, page_size: int) -> None:
        if not self.values:
            self.values = [password, folder_name, page_size]

    def read(self) -> BoardConfig:
        return config_from_cells(self.values)

    def write_page_size(self, page_size: int) -> None:
        self.values[ROW_PAGE_SIZE - 1] = page_size


class SheetsSettingsStore:
    """Settings cells on a dedicated Google Sheets tab."""

    def __init__(self, service, spreadsheet_id: str, sheet_name: str):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    def _values(self):
        return self.service.spreadsheets().values()

    def ensure_defaults(self, password: str, folder_name: str, page_size: int) -> None:
        created = ensure_sheet(self.service, self.spreadsheet_id, self.sheet_name)
        if not created:
            return
        rows = [
            [LABELS[0], password],
            [LABELS[1], folder_name],
            [LABELS[2], page_size],
        ]
        self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=quote_sheet(self.sheet_name, "A1:B3"),
            valueInputOption="RAW",
            body={"values": rows},
        ).execute()

    def read(self) -> BoardConfig:
        result = (
            self._values()
            .get(
                spreadsheetId=self.spreadsheet_id,
                range=quote_sheet(self.sheet_name, "B1:B3"),
                valueRenderOption="UNFORMATTED_VALUE",
            )
            .execute()
        )
        rows = result.get("values", [])
        return config_from_cells([row[0] if row else None for row in rows])

    def write_page_size(self, page_size: int) -> None:
        self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=quote_sheet(self.sheet_name, f"B{ROW_PAGE_SIZE}"),
            valueInputOption="RAW",
            body={"values": [[page_size]]},
        ).execute()


class SqlSettingsStore:
    """Settings cells stored as sheet rows in the SQL row table."""

    def __init__(self, session_factory: sessionmaker, sheet_name: str = "Settings"):
        self.Session = session_factory
        self.sheet_name = sheet_name

    def ensure_defaults(self, password: str, folder_name: str, page_size: int) -> None:
        with self.Session() as session:
            if session.get(SheetRow, (self.sheet_name, ROW_PASSWORD)):
                return
            defaults = [password, folder_name, page_size]
            for row_number, (label, value) in enumerate(zip(LABELS, defaults), 1):
                session.add(
                    SheetRow(
                        sheet=self.sheet_name,
                        row_number=row_number,
                        cells=[label, value],
                    )
                )
            session.commit()

    def read(self) -> BoardConfig:
        values: List[Any] = []
        with self.Session() as session:
            for row_number in (ROW_PASSWORD, ROW_FOLDER_NAME, ROW_PAGE_SIZE):
                row = session.get(SheetRow, (self.sheet_name, row_number))
                cells = row.cells if row else []
                values.append(cells[1] if len(cells) > 1 else None)
        return config_from_cells(values)

    def write_page_size(self, page_size: int) -> None:
        with self.Session() as session:
            row = session.get(SheetRow, (self.sheet_name, ROW_PAGE_SIZE))
            if row is None:
                session.add(
                    SheetRow(
                        sheet=self.sheet_name,
                        row_number=ROW_PAGE_SIZE,
                        cells=[LABELS[2], page_size],
                    )
                )
            else:
                row.cells = [LABELS[2], page_size]
            session.commit()
