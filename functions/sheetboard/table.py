"""
Row-oriented post table backed by a spreadsheet, SQL, or memory.

All implementations speak in sheet coordinates: row 1 is the header and
row 2 holds the oldest post. Rows are only ever appended or rewritten in
place, never removed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Protocol

from sqlalchemy import JSON, Column, Integer, String, create_engine, func, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from sheetboard.google_api import column_letter, ensure_sheet, quote_sheet

HEADER = ["ID", "Name", "Text", "CreatedAt", "UpdatedAt", "Visible"]
NUM_COLUMNS = len(HEADER)

COL_NAME = 2
COL_UPDATED_AT = 5
COL_VISIBLE = 6

FIRST_DATA_ROW = 2


@dataclass
class Post:
    id: int
    name: str
    text: str
    created_at: str
    updated_at: str
    visible: bool = True

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "text": self.text,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def _as_timestamp(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def is_visible(value: Any) -> bool:
    return value == 1 or value == "1"


def parse_id(value: Any) -> int:
    """Numeric value of an ID cell; blanks and junk count as 0."""
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def pad_row(row: list) -> list:
    row = list(row)
    if len(row) < NUM_COLUMNS:
        row.extend([""] * (NUM_COLUMNS - len(row)))
    return row[:NUM_COLUMNS]


def row_to_post(row: list, position: int) -> Post:
    row = pad_row(row)
    return Post(
        id=parse_id(row[0]) or position,
        name=str(row[1] or ""),
        text=str(row[2] or ""),
        created_at=_as_timestamp(row[3]),
        updated_at=_as_timestamp(row[4]),
        visible=is_visible(row[5]),
    )


def post_to_row(post: Post) -> list:
    return [
        post.id,
        post.name,
        post.text,
        post.created_at,
        post.updated_at,
        1 if post.visible else 0,
    ]


class PostTable(Protocol):
    """Defines the operations the post service needs from the backing table."""

    def ensure_header(self) -> None:
        ...

    def read_rows(self) -> List[list]:
        ...

    def read_ids(self) -> list:
        ...

    def append_row(self, row: list) -> None:
        ...

    def write_cells(self, row_number: int, column: int, values: list) -> None:
        ...


class InMemoryPostTable:
    """List-backed table for development and tests."""

    def __init__(self):
        self.rows: List[list] = []

    def ensure_header(self) -> None:
        if not self.rows:
            self.rows.append(list(HEADER))

    def read_rows(self) -> List[list]:
        return [list(row) for row in self.rows[1:]]

    def read_ids(self) -> list:
        return [row[0] if row else "" for row in self.rows[1:]]

    def append_row(self, row: list) -> None:
        self.ensure_header()
        self.rows.append(pad_row(row))

    def write_cells(self, row_number: int, column: int, values: list) -> None:
        row = self.rows[row_number - 1]
        start = column - 1
        row[start : start + len(values)] = list(values)

    def reset(self) -> None:
        """Clear all stored rows (useful in tests)."""
        self.rows.clear()


class SheetsPostTable:
    """Google Sheets implementation using the Sheets API v4 values endpoints."""

    def __init__(self, service, spreadsheet_id: str, sheet_name: str):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    def _values(self):
        return self.service.spreadsheets().values()

    def _get(self, a1: str) -> List[list]:
        result = (
            self._values()
            .get(
                spreadsheetId=self.spreadsheet_id,
                range=quote_sheet(self.sheet_name, a1),
                valueRenderOption="UNFORMATTED_VALUE",
            )
            .execute()
        )
        return result.get("values", [])

    def ensure_header(self) -> None:
        ensure_sheet(self.service, self.spreadsheet_id, self.sheet_name)
        if self._get("A1:F1"):
            return
        self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=quote_sheet(self.sheet_name, "A1:F1"),
            valueInputOption="RAW",
            body={"values": [list(HEADER)]},
        ).execute()

    def read_rows(self) -> List[list]:
        return [pad_row(row) for row in self._get("A2:F")]

    def read_ids(self) -> list:
        return [row[0] if row else "" for row in self._get("A2:A")]

    def append_row(self, row: list) -> None:
        self._values().append(
            spreadsheetId=self.spreadsheet_id,
            range=quote_sheet(self.sheet_name, "A:F"),
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": [list(row)]},
        ).execute()

    def write_cells(self, row_number: int, column: int, values: list) -> None:
        start = f"{column_letter(column)}{row_number}"
        end = f"{column_letter(column + len(values) - 1)}{row_number}"
        self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=quote_sheet(self.sheet_name, f"{start}:{end}"),
            valueInputOption="RAW",
            body={"values": [list(values)]},
        ).execute()


Base = declarative_base()


class SheetRow(Base):
    __tablename__ = "sheet_rows"

    sheet = Column(String, primary_key=True)
    row_number = Column(Integer, primary_key=True)
    cells = Column(JSON, nullable=False)


def create_sql_sessionmaker(database_url: str) -> sessionmaker:
    """
    Build a session factory for the sheet-row schema. Accepts any SQLAlchemy
    URL (e.g., Postgres, or SQLite for tests).
    """
    if not database_url:
        raise ValueError("DATABASE_URL is required for the SQL row table")
    engine = create_engine(
        database_url,
        future=True,
        pool_pre_ping=True,
        pool_recycle=1800,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(
        bind=engine, class_=Session, expire_on_commit=False, future=True
    )


class SqlPostTable:
    """
    SQLAlchemy-backed sheet: each row is stored as a JSON list of cells keyed
    by (sheet, row_number).
    """

    def __init__(self, session_factory: sessionmaker, sheet_name: str = "Posts"):
        self.Session = session_factory
        self.sheet_name = sheet_name

    def _rows(self, session: Session, start: int = 1) -> list[SheetRow]:
        stmt = (
            select(SheetRow)
            .where(SheetRow.sheet == self.sheet_name, SheetRow.row_number >= start)
            .order_by(SheetRow.row_number.asc())
        )
        return list(session.execute(stmt).scalars())

    def ensure_header(self) -> None:
        with self.Session() as session:
            if session.get(SheetRow, (self.sheet_name, 1)):
                return
            session.add(
                SheetRow(sheet=self.sheet_name, row_number=1, cells=list(HEADER))
            )
            session.commit()

    def read_rows(self) -> List[list]:
        with self.Session() as session:
            return [
                pad_row(row.cells) for row in self._rows(session, FIRST_DATA_ROW)
            ]

    def read_ids(self) -> list:
        return [row[0] for row in self.read_rows()]

    def append_row(self, row: list) -> None:
        with self.Session() as session:
            last = session.execute(
                select(func.max(SheetRow.row_number)).where(
                    SheetRow.sheet == self.sheet_name
                )
            ).scalar()
            session.add(
                SheetRow(
                    sheet=self.sheet_name,
                    row_number=max(last or 0, 1) + 1,
                    cells=pad_row(row),
                )
            )
            session.commit()

    def write_cells(self, row_number: int, column: int, values: list) -> None:
        with self.Session() as session:
            existing = session.get(SheetRow, (self.sheet_name, row_number))
            if existing is None:
                raise KeyError(row_number)
            cells = pad_row(existing.cells)
            start = column - 1
            cells[start : start + len(values)] = list(values)
            # Reassign so the JSON column is flagged dirty.
            existing.cells = cells
            session.commit()
