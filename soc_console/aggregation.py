"""Aggregation of raw API records into chart-ready results.

Every function here is pure and synchronous. Records are untyped mappings
exactly as the API returned them; a ``key`` argument is either a field name
or a callable taking the record.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Hashable, Iterable, Mapping, Optional, Sequence, Union

Record = Mapping[str, Any]
KeyFn = Union[str, Callable[[Record], Any]]

UNKNOWN_LABEL = "unknown"

# Epoch numbers above this are taken to be milliseconds.
_EPOCH_MS_THRESHOLD = 10**11


@dataclass(frozen=True)
class AggregationResult:
    """Ordered labels with positionally matching numeric values."""

    labels: tuple[str, ...] = ()
    values: tuple[Union[int, float], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "values", tuple(self.values))
        if len(self.labels) != len(self.values):
            raise ValueError(
                f"labels and values differ in length ({len(self.labels)} != {len(self.values)})"
            )
        if len(set(self.labels)) != len(self.labels):
            raise ValueError("labels must be unique")

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def total(self) -> Union[int, float]:
        return sum(self.values)

    def items(self) -> list[tuple[str, Union[int, float]]]:
        return list(zip(self.labels, self.values))

    def get(self, label: str, default: Union[int, float] = 0) -> Union[int, float]:
        try:
            return self.values[self.labels.index(label)]
        except ValueError:
            return default

    def to_dict(self) -> dict[str, Any]:
        return {"labels": list(self.labels), "values": list(self.values)}


def _key_fn(key: KeyFn) -> Callable[[Record], Any]:
    if callable(key):
        return key
    return lambda record: record.get(key) if isinstance(record, Mapping) else None


def _label(value: Any, missing_label: str) -> str:
    if value is None:
        return missing_label
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _count(
    records: Iterable[Record],
    key: KeyFn,
    *,
    missing_label: str = UNKNOWN_LABEL,
    exclude: Iterable[Any] = (),
) -> dict[str, int]:
    fn = _key_fn(key)
    skipped = set(exclude)
    counts: dict[str, int] = {}
    for record in records:
        value = fn(record)
        if skipped and isinstance(value, Hashable) and value in skipped:
            continue
        label = _label(value, missing_label)
        counts[label] = counts.get(label, 0) + 1
    return counts


def frequency_table(
    records: Iterable[Record],
    key: KeyFn,
    *,
    missing_label: str = UNKNOWN_LABEL,
    exclude: Iterable[Any] = (),
) -> AggregationResult:
    """Group records by key and count each group.

    Labels keep first-seen order. Records whose key is None or missing are
    counted under ``missing_label`` rather than dropped. Labels are strings, so
    a literal value equal to ``missing_label`` lands in the same group; pass a
    distinct ``missing_label`` where the two must be told apart. Key values
    listed in ``exclude`` are skipped entirely.
    """
    counts = _count(records, key, missing_label=missing_label, exclude=exclude)
    return AggregationResult(labels=tuple(counts), values=tuple(counts.values()))


def to_number(value: Any) -> float:
    """Parse a number leniently; anything unparseable becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def parse_date(value: Any) -> Optional[date]:
    """Project a timestamp onto its calendar date.

    Aware datetimes are converted to UTC first. Accepts datetime/date
    objects, ISO-8601 strings (a trailing ``Z`` included) and epoch numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        seconds = value / 1000.0 if abs(value) > _EPOCH_MS_THRESHOLD else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            try:
                return date.fromisoformat(text[:10])
            except ValueError:
                return None
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date()


def time_bucket(records: Iterable[Record], key: KeyFn) -> AggregationResult:
    """Count records per calendar date, in ascending date order.

    Labels are ISO dates (``YYYY-MM-DD``). Records whose date cannot be
    parsed are counted in a trailing ``unknown`` bucket.
    """
    fn = _key_fn(key)
    buckets: dict[date, int] = {}
    unknown = 0
    for record in records:
        day = parse_date(fn(record))
        if day is None:
            unknown += 1
            continue
        buckets[day] = buckets.get(day, 0) + 1

    ordered = sorted(buckets)
    labels = [d.isoformat() for d in ordered]
    values = [buckets[d] for d in ordered]
    if unknown:
        labels.append(UNKNOWN_LABEL)
        values.append(unknown)
    return AggregationResult(labels=tuple(labels), values=tuple(values))


def top_n(
    records: Iterable[Record],
    key: KeyFn,
    n: int,
    *,
    missing_label: str = UNKNOWN_LABEL,
    exclude: Iterable[Any] = (),
) -> AggregationResult:
    """The ``n`` most frequent key values, most frequent first.

    Ties keep first-seen order.
    """
    if n <= 0:
        return AggregationResult()
    counts = _count(records, key, missing_label=missing_label, exclude=exclude)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:n]
    return AggregationResult(
        labels=tuple(label for label, _ in ranked),
        values=tuple(count for _, count in ranked),
    )


def ratio(numerator: Union[int, float], denominator: Union[int, float]) -> int:
    """Whole-number percentage of numerator over denominator; 0 when empty."""
    if not denominator:
        return 0
    # Half-up, not Python's banker's rounding.
    return int(math.floor(100 * numerator / denominator + 0.5))


def _is_finite_number(value: Any) -> bool:
    return math.isfinite(to_number(value))


def valid_coordinates(
    records: Iterable[Record],
    lat_key: KeyFn = "latitude",
    lng_key: KeyFn = "longitude",
) -> list[Record]:
    """Keep only records whose latitude and longitude are finite numbers."""
    lat_fn = _key_fn(lat_key)
    lng_fn = _key_fn(lng_key)
    return [
        record
        for record in records
        if _is_finite_number(lat_fn(record)) and _is_finite_number(lng_fn(record))
    ]


def filter_records(records: Iterable[Record], predicate: Callable[[Record], bool]) -> list[Record]:
    return [r for r in records if predicate(r)]


def count_where(records: Iterable[Record], predicate: Callable[[Record], bool]) -> int:
    return sum(1 for r in records if predicate(r))


def distinct_count(records: Iterable[Record], key: KeyFn) -> int:
    """Number of distinct key values; missing values count as one value."""
    fn = _key_fn(key)
    return len({_label(fn(r), UNKNOWN_LABEL) for r in records})


def sum_field(records: Iterable[Record], key: KeyFn) -> float:
    """Sum of a numeric field, skipping values that do not parse."""
    fn = _key_fn(key)
    total = 0.0
    for record in records:
        n = to_number(fn(record))
        if math.isfinite(n):
            total += n
    return total


def mean_field(records: Sequence[Record], key: KeyFn) -> float:
    """Mean of a numeric field over the values that parse; 0 when none do."""
    fn = _key_fn(key)
    numbers = [n for n in (to_number(fn(r)) for r in records) if math.isfinite(n)]
    if not numbers:
        return 0.0
    return sum(numbers) / len(numbers)


def split_counts(
    records: Sequence[Record],
    predicate: Callable[[Record], bool],
    labels: tuple[str, str],
) -> AggregationResult:
    """Two-bucket result: records matching ``predicate`` and the rest."""
    matched = count_where(records, predicate)
    return AggregationResult(labels=labels, values=(matched, len(records) - matched))
