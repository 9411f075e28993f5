"""
Schema-driven extraction of tabular source payloads.

Both upstream formats are reduced to a :class:`RawTable` (header labels
plus rows of cell text):

- JSON tables described by a ``fields`` array and ``data`` row arrays
- HTML ``<table>`` elements, whose (possibly multi-level) header is
  expanded through ``rowspan``/``colspan`` into one label per column

Records are then assembled by header *label*, never by position, so a
reordered source table maps to the same fields and a table that lacks
any required label contributes nothing.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import MISSING, dataclass, field, fields
from typing import Any, Generic, TypeVar

from bs4 import BeautifulSoup, Tag

R = TypeVar("R")

IDENTITY_KEYS = ("code", "name")


def normalize_label(label: str) -> str:
    """Drop all whitespace (including full-width spaces) from a header label."""
    return "".join(str(label).split())


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value)


def strip_text(raw: str) -> str:
    """Parser for identity and text columns."""
    return raw.strip()


@dataclass
class RawTable:
    """Header labels and data rows of one source table."""

    fields: list[str]
    rows: list[list[str]] = field(default_factory=list)
    title: str = ""

    @classmethod
    def from_json(cls, payload: Any) -> "RawTable | None":
        """Build from a ``{"fields": [...], "data": [[...], ...]}`` object.

        Returns None when the payload does not have that shape.
        """
        if not isinstance(payload, dict):
            return None

        labels = payload.get("fields")
        data = payload.get("data")
        if not isinstance(labels, list) or not isinstance(data, list):
            return None

        rows = [
            [_cell_text(cell) for cell in row]
            for row in data
            if isinstance(row, list)
        ]
        return cls(
            fields=[normalize_label(_cell_text(label)) for label in labels],
            rows=rows,
            title=_cell_text(payload.get("title", "")),
        )

    def column_index(self) -> dict[str, int]:
        """Map each header label to its first column position."""
        index: dict[str, int] = {}
        for position, label in enumerate(self.fields):
            index.setdefault(label, position)
        return index


@dataclass(frozen=True)
class HtmlTableLayout:
    """CSS selectors locating a source's tables, header rows and data rows.

    When ``header_selector`` is None, header rows are the rows made only
    of ``<th>`` cells.
    """

    table_selector: str
    row_selector: str
    header_selector: str | None = None


def _span(cell: Tag, attr: str) -> int:
    try:
        return max(1, int(cell.get(attr, 1)))
    except (TypeError, ValueError):
        return 1


def resolve_header(header_rows: Sequence[Tag]) -> list[str]:
    """Expand header rows into one label per column.

    Each column is labelled by the lowest header cell covering it, so a
    two-level header such as ``營業收入 > 當月營收`` resolves to ``當月營收``
    while ``rowspan`` cells such as ``公司代號`` keep their own text.
    """
    grid: dict[tuple[int, int], str] = {}

    for row_idx, row in enumerate(header_rows):
        col_idx = 0
        for cell in row.find_all(["th", "td"], recursive=False):
            while (row_idx, col_idx) in grid:
                col_idx += 1
            label = normalize_label(cell.get_text())
            rowspan, colspan = _span(cell, "rowspan"), _span(cell, "colspan")
            for dr in range(rowspan):
                for dc in range(colspan):
                    grid[(row_idx + dr, col_idx + dc)] = label
            col_idx += colspan

    if not grid:
        return []

    width = max(col for _, col in grid) + 1
    depth = len(header_rows)
    labels = []
    for col in range(width):
        label = ""
        for row_idx in range(depth - 1, -1, -1):
            label = grid.get((row_idx, col), "")
            if label:
                break
        labels.append(label)
    return labels


def _header_rows(table: Tag, layout: HtmlTableLayout) -> list[Tag]:
    if layout.header_selector:
        return table.select(layout.header_selector)
    return [
        row
        for row in table.find_all("tr")
        if row.find("th", recursive=False) and not row.find("td", recursive=False)
    ]


def html_tables(html: str, layout: HtmlTableLayout) -> list[RawTable]:
    """Parse every table matching ``layout`` into a RawTable."""
    soup = BeautifulSoup(html, "html.parser")
    tables = []

    for table in soup.select(layout.table_selector):
        labels = resolve_header(_header_rows(table, layout))
        rows = [
            [cell.get_text(strip=True) for cell in row.find_all("td", recursive=False)]
            for row in table.select(layout.row_selector)
        ]
        tables.append(RawTable(fields=labels, rows=rows))

    return tables


@dataclass(frozen=True)
class Column:
    """Binds a source header label to a record field and its parser."""

    label: str
    key: str
    parser: Callable[[str], Any] = strip_text


class RecordBuilder(Generic[R]):
    """Accumulates the fields of one record and validates completeness.

    A record is built only when every required field has been set and the
    identity fields are non-empty. ``required`` defaults to the fields of
    ``record_cls`` that have no default value.
    """

    def __init__(
        self,
        record_cls: type[R],
        required: Iterable[str] | None = None,
    ) -> None:
        self._record_cls = record_cls
        self._fields = frozenset(f.name for f in fields(record_cls))
        self._required = frozenset(
            required if required is not None else _required_keys(record_cls)
        )
        self._values: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> "RecordBuilder[R]":
        if key not in self._fields:
            raise KeyError(f"{self._record_cls.__name__} has no field {key!r}")
        self._values[key] = value
        return self

    @property
    def missing(self) -> frozenset[str]:
        return self._required - self._values.keys()

    def build(self) -> R | None:
        if self.missing:
            return None
        for key in IDENTITY_KEYS:
            value = self._values.get(key)
            if key in self._fields and not (isinstance(value, str) and value.strip()):
                return None
        return self._record_cls(**self._values)


def _required_keys(record_cls: type) -> set[str]:
    return {
        f.name
        for f in fields(record_cls)
        if f.default is MISSING and f.default_factory is MISSING
    }


def extract_records(
    table: RawTable,
    columns: Sequence[Column],
    record_cls: type[R],
) -> list[R]:
    """Assemble records from one table by header label.

    Returns an empty list when any column label is absent from the
    table header. Rows too short for a required column, or with an empty
    code or name, are dropped.
    """
    missing_keys = _required_keys(record_cls) - {c.key for c in columns}
    if missing_keys:
        raise ValueError(
            f"Columns do not cover {record_cls.__name__} fields: {sorted(missing_keys)}"
        )

    required = [c.key for c in columns]
    index = table.column_index()
    positions = []
    for column in columns:
        position = index.get(normalize_label(column.label))
        if position is None:
            return []
        positions.append(position)

    records = []
    for row in table.rows:
        builder = RecordBuilder(record_cls, required)
        for column, position in zip(columns, positions):
            if position < len(row):
                builder.set(column.key, column.parser(row[position]))
        record = builder.build()
        if record is not None:
            records.append(record)

    return records


def extract_from_tables(
    tables: Iterable[RawTable],
    columns: Sequence[Column],
    record_cls: type[R],
) -> list[R]:
    """Concatenate :func:`extract_records` over several tables."""
    records: list[R] = []
    for table in tables:
        records.extend(extract_records(table, columns, record_cls))
    return records
