# query_builder.py
"""
Search / filter query for the service list.

Turns the optional query-string parameters of GET /api/services into one
parameterized SQL statement over the services/users join:

- every filter that is present appends exactly one `AND` clause,
- absent (or empty) filters append nothing,
- user input only ever travels as psycopg named parameters,
- results are always newest first.

Numeric filters are validated here; bad values raise InvalidFilterError,
which the route turns into a 400.
"""
import math
from dataclasses import dataclass, field

BASE_SELECT = """
    SELECT s.*, u.username AS seller_username, u.avatar AS seller_avatar
    FROM services s
    JOIN users u ON s.seller_id = u.id
    WHERE 1=1"""

ORDER_BY = " ORDER BY s.created_at DESC, s.id DESC"

MAX_LIMIT = 100


class InvalidFilterError(ValueError):
    """A search parameter could not be parsed or is out of range."""


@dataclass
class SearchFilters:
    q: str | None = None
    category: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    rating: float | None = None
    # Paging is optional; without limit the whole result set is returned
    limit: int | None = None
    offset: int | None = None

    def active_filters(self) -> dict:
        """The filters that will produce a WHERE clause (paging excluded)."""
        values = {
            "q": self.q,
            "category": self.category,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "rating": self.rating,
        }
        return {k: v for k, v in values.items() if v is not None}


@dataclass
class BuiltQuery:
    sql: str
    params: dict = field(default_factory=dict)
    clauses: list[str] = field(default_factory=list)


# ---------------------------------------------------------
# Parsing raw query-string values
# ---------------------------------------------------------

def _blank(raw) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def _parse_float(name: str, raw) -> float | None:
    if _blank(raw):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidFilterError(f"{name} must be a number, got {raw!r}")
    if math.isnan(value) or math.isinf(value):
        raise InvalidFilterError(f"{name} must be a finite number, got {raw!r}")
    return value


def _parse_int(name: str, raw) -> int | None:
    if _blank(raw):
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidFilterError(f"{name} must be an integer, got {raw!r}")


def _parse_text(name: str, raw) -> str | None:
    if _blank(raw):
        return None
    text = str(raw).strip()
    # PostgreSQL rejects NUL in text parameters
    if "\x00" in text:
        raise InvalidFilterError(f"{name} must not contain NUL characters")
    return text


def parse_filters(
    q=None,
    category=None,
    min_price=None,
    max_price=None,
    rating=None,
    limit=None,
    offset=None,
) -> SearchFilters:
    """
    Validate raw strings (as received in the query string) into SearchFilters.

    Raises InvalidFilterError with a message suitable for the client.
    """
    filters = SearchFilters(
        q=_parse_text("q", q),
        category=_parse_text("category", category),
        min_price=_parse_float("minPrice", min_price),
        max_price=_parse_float("maxPrice", max_price),
        rating=_parse_float("rating", rating),
        limit=_parse_int("limit", limit),
        offset=_parse_int("offset", offset),
    )

    if filters.min_price is not None and filters.min_price < 0:
        raise InvalidFilterError("minPrice cannot be negative")
    if filters.max_price is not None and filters.max_price < 0:
        raise InvalidFilterError("maxPrice cannot be negative")
    if (
        filters.min_price is not None
        and filters.max_price is not None
        and filters.min_price > filters.max_price
    ):
        raise InvalidFilterError("minPrice cannot be greater than maxPrice")
    if filters.rating is not None and not (0 <= filters.rating <= 5):
        raise InvalidFilterError("rating must be between 0 and 5")
    if filters.limit is not None and not (1 <= filters.limit <= MAX_LIMIT):
        raise InvalidFilterError(f"limit must be between 1 and {MAX_LIMIT}")
    if filters.offset is not None and filters.offset < 0:
        raise InvalidFilterError("offset cannot be negative")
    if filters.offset is not None and filters.limit is None:
        raise InvalidFilterError("offset requires limit")

    return filters


# ---------------------------------------------------------
# Building the statement
# ---------------------------------------------------------

def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally (backslash is the default ESCAPE)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_service_search(filters: SearchFilters) -> BuiltQuery:
    clauses: list[str] = []
    params: dict = {}

    # Free text: one placeholder shared by the three columns
    if filters.q is not None:
        clauses.append("(s.title ILIKE %(q)s OR s.description ILIKE %(q)s OR s.category ILIKE %(q)s)")
        params["q"] = f"%{escape_like(filters.q)}%"

    # Category: case-insensitive whole-value match
    if filters.category is not None:
        clauses.append("s.category ILIKE %(category)s")
        params["category"] = escape_like(filters.category)

    if filters.min_price is not None:
        clauses.append("s.price >= %(min_price)s")
        params["min_price"] = filters.min_price

    if filters.max_price is not None:
        clauses.append("s.price <= %(max_price)s")
        params["max_price"] = filters.max_price

    if filters.rating is not None:
        clauses.append("s.rating >= %(rating)s")
        params["rating"] = filters.rating

    sql = BASE_SELECT + "".join(f"\n      AND {clause}" for clause in clauses) + ORDER_BY

    if filters.limit is not None:
        sql += " LIMIT %(limit)s OFFSET %(offset)s"
        params["limit"] = filters.limit
        params["offset"] = filters.offset or 0

    return BuiltQuery(sql=sql, params=params, clauses=clauses)
