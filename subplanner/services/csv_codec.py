"""CSV import/export of the subscription collection.

The interchange schema carries ``id,name,price,billingCycle,nextBillingDate,
category,color``. Display order and the active flag are store-only and do
not survive a round trip.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Iterator, Optional

from pydantic import ValidationError

from subplanner.schemas.subscription import BillingCycle, Subscription

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["id", "name", "price", "billingCycle", "nextBillingDate", "category", "color"]
REQUIRED_COLUMNS = CSV_COLUMNS[:5]
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
VALID_CYCLES = {cycle.value for cycle in BillingCycle}


@dataclass(frozen=True)
class RowError:
    """A rejected row. ``line`` is 1-based; None marks a file-level problem."""

    line: Optional[int]
    message: str

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"Line {self.line}: {self.message}"


@dataclass
class DecodeResult:
    subscriptions: list[Subscription] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)


# =============================================================================
# Encoding
# =============================================================================


def escape_field(value: str) -> str:
    """Quote a field if it holds a separator, a quote or a line break."""
    if any(char in value for char in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def format_price(price: float) -> str:
    if float(price).is_integer():
        return str(int(price))
    return repr(float(price))


def encode_subscriptions(subscriptions: Iterable[Subscription]) -> str:
    """Render subscriptions as CSV text, header first, in iteration order."""
    lines = [",".join(CSV_COLUMNS)]
    for sub in subscriptions:
        row = [
            sub.id,
            sub.name,
            format_price(sub.price),
            sub.billing_cycle.value,
            sub.next_billing_date.isoformat(),
            sub.category or "",
            sub.color or "",
        ]
        lines.append(",".join(escape_field(value) for value in row))
    return "\n".join(lines)


def export_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"subscriptions_{day.strftime('%Y%m%d')}.csv"


# =============================================================================
# Decoding
# =============================================================================


def _scan_fields(text: str) -> tuple[list[str], bool]:
    """Split ``text`` into fields and report whether a quoted field is left open.

    A quote opens a quoted field only at the start of a field. Anywhere else
    it is kept as a literal character.
    """
    fields = []
    current = []
    in_quotes = False
    at_field_start = True
    i = 0

    while i < len(text):
        char = text[i]
        if in_quotes:
            if char == '"' and i + 1 < len(text) and text[i + 1] == '"':
                current.append('"')
                i += 1
            elif char == '"':
                in_quotes = False
            else:
                current.append(char)
        elif char == '"' and at_field_start:
            in_quotes = True
        elif char == ",":
            fields.append("".join(current))
            current = []
            at_field_start = True
            i += 1
            continue
        else:
            current.append(char)
        at_field_start = False
        i += 1

    fields.append("".join(current))
    return fields, in_quotes


def parse_csv_line(line: str) -> list[str]:
    """Split one CSV record into fields, honoring quotes and doubled quotes."""
    fields, _ = _scan_fields(line)
    return fields


def split_records(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, record)`` pairs from CSV text.

    A record continues onto the next line only while a quoted field is open,
    and is reported under the number of its first line. A quote that is
    never closed does not swallow the lines after it: they are yielded one
    per line.
    """
    pending: list[str] = []
    start = 0

    for number, raw in enumerate(text.split("\n"), start=1):
        if not pending:
            start = number
        pending.append(raw.rstrip("\r"))

        _, still_open = _scan_fields("\n".join(pending))
        if not still_open:
            yield start, "\n".join(pending)
            pending = []

    for offset, line in enumerate(pending):
        yield start + offset, line


def read_records(text: str) -> list[tuple[int, str]]:
    """Strip a byte order mark and surrounding blanks, then split into trimmed records."""
    return [(number, record.strip()) for number, record in split_records(text.lstrip("\ufeff").strip())]


def build_header_map(header: str) -> dict[str, int]:
    return {name.strip().lower(): index for index, name in enumerate(parse_csv_line(header))}


def value_for(values: list[str], header_map: dict[str, int], column: str) -> str:
    index = header_map.get(column.lower())
    if index is None or index >= len(values):
        return ""
    return values[index].strip()


def _parse_row(values: list[str], header_map: dict[str, int]) -> tuple[Optional[Subscription], Optional[str]]:
    """Validate one row. Returns either a subscription or an error message."""
    row = {column: value_for(values, header_map, column) for column in CSV_COLUMNS}

    if not all(row[column] for column in REQUIRED_COLUMNS):
        return None, "missing required fields"

    price_text = row["price"]
    try:
        price = float(price_text)
    except ValueError:
        return None, f"invalid price ({price_text})"
    if not math.isfinite(price) or price < 0:
        return None, f"invalid price ({price_text})"

    if row["billingCycle"] not in VALID_CYCLES:
        return None, f"billingCycle must be 'monthly' or 'yearly' ({row['billingCycle']})"

    if not DATE_PATTERN.match(row["nextBillingDate"]):
        return None, f"invalid date, expected YYYY-MM-DD ({row['nextBillingDate']})"

    try:
        subscription = Subscription(
            id=row["id"],
            name=row["name"],
            price=price,
            billing_cycle=row["billingCycle"],
            next_billing_date=row["nextBillingDate"],
            category=row["category"] or None,
            color=row["color"] or None,
        )
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return None, f"invalid {location} ({first['msg']})"

    return subscription, None


def decode_subscriptions(text: str) -> DecodeResult:
    """Parse CSV text into subscriptions, collecting one error per bad row.

    A bad row never stops the import; every remaining row is still parsed.
    """
    result = DecodeResult()
    records = read_records(text)

    if len(records) < 2:
        result.errors.append(RowError(None, "CSV file is empty or only has a header row"))
        return result

    _, header = records[0]
    header_map = build_header_map(header)

    for number, record in records[1:]:
        if not record:
            continue

        subscription, error = _parse_row(parse_csv_line(record), header_map)
        if error is not None:
            result.errors.append(RowError(number, error))
            continue
        result.subscriptions.append(subscription)

    logger.info(
        f"Decoded {len(result.subscriptions)} subscriptions from CSV with {len(result.errors)} errors"
    )
    return result
