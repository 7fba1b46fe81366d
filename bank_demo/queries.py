"""
Query Builder Module

Translates a filter set, a sort column and direction and a page window into a count
query and a data query for one entity, plus the ordered bound parameters.

Table names, column names and sort directions only ever come from the
per-entity constants in this module; sort columns requested by callers are
resolved through a whitelist. Every caller-supplied value is bound as a
parameter and never interpolated into the SQL text.

Money columns sort through ``CAST(... AS NUMERIC)`` because SQLite stores
them as text, and are searched through their two-decimal text form.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
import re

from .exceptions import ValidationError
from .models import AccountStatus, AccountType, CustomerType, Page, TransactionType
from .storage import DatabaseInterface, Row


INTEGER_PATTERN = re.compile(r"[+-]?\d+")
MAX_INT = 2 ** 31 - 1
MIN_INT = -(2 ** 31)

SORT_DIRECTIONS = ("ASC", "DESC")
LIKE_ESCAPE = "\\"


def parse_int(value: str, field_name: str) -> int:
    """Parse a 32-bit integer or raise ValidationError"""
    parsed = try_parse_int(value)
    if parsed is None:
        raise ValidationError(f"Invalid {field_name} '{value}': must be an integer")
    return parsed


def try_parse_int(value: str) -> Optional[int]:
    """Parse a 32-bit integer, returning None when the text is not one"""
    if not isinstance(value, str) or not INTEGER_PATTERN.fullmatch(value):
        return None
    parsed = int(value)
    if parsed < MIN_INT or parsed > MAX_INT:
        return None
    return parsed


def parse_id_list(value: str, field_name: str) -> List[int]:
    """Parse a comma-separated id list; any malformed element fails the whole list"""
    return [parse_int(part.strip(), field_name) for part in value.split(",")]


def like_pattern(search: str) -> str:
    """Lower-case a search string and wrap it for a partial match"""
    escaped = (
        search.lower()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _present(value: Optional[str]) -> bool:
    return value is not None and value != ""


def _label(value: Optional[str], enum_cls, field_name: str) -> Optional[str]:
    """Validate an equality filter against its enum domain"""
    if not _present(value):
        return None
    return enum_cls.parse(value, field_name).value


@dataclass(frozen=True)
class PageRequest:
    """Sort and page window for a list query"""
    page: int = 0
    size: int = 10
    sort_by: Optional[str] = None
    sort_order: str = "asc"

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(frozen=True)
class EntityQuerySpec:
    """Trusted SQL fragments describing one listable entity"""
    name: str
    from_clause: str
    count_from_clause: str
    select_list: str
    id_column: str
    sortable: Dict[str, str]
    search_columns: Tuple[str, ...]
    group_by: Optional[str] = None


@dataclass
class BuiltQuery:
    """
    Count and data queries sharing one filter parameter list.

    The count query binds ``params``; the data query binds ``params``
    followed by ``page_params`` (limit, offset).
    """
    count_sql: str
    data_sql: str
    params: List[Any]
    page_params: List[Any]

    @property
    def data_params(self) -> List[Any]:
        return self.params + self.page_params


ACCOUNT_QUERY = EntityQuerySpec(
    name="account",
    from_clause="accounts a",
    count_from_clause="accounts a",
    select_list="a.account_id, a.customer_id, a.account_type, a.status, a.balance",
    id_column="a.account_id",
    sortable={
        "account_id": "a.account_id",
        "customer_id": "a.customer_id",
        "account_type": "a.account_type",
        "status": "a.status",
        "balance": "CAST(a.balance AS NUMERIC)",
    },
    search_columns=(
        "CAST(a.account_id AS TEXT)",
        "CAST(a.account_type AS TEXT)",
        "CAST(a.status AS TEXT)",
        "CAST(a.balance AS TEXT)",
    ),
)

TRANSACTION_FROM = (
    "transactions t "
    "LEFT JOIN transaction_metadata tm ON t.transaction_id = tm.transaction_id"
)

TRANSACTION_QUERY = EntityQuerySpec(
    name="transaction",
    from_clause=TRANSACTION_FROM,
    count_from_clause=TRANSACTION_FROM,
    select_list=(
        "t.transaction_id, t.account_id, t.transaction_type, t.transaction_date, "
        "t.amount, t.currency, t.channel, "
        "tm.channel_details, tm.location, tm.device_type, tm.auth_method"
    ),
    id_column="t.transaction_id",
    sortable={
        "transaction_id": "t.transaction_id",
        "account_id": "t.account_id",
        "transaction_type": "t.transaction_type",
        "transaction_date": "t.transaction_date",
        "amount": "CAST(t.amount AS NUMERIC)",
        "currency": "t.currency",
        "channel": "t.channel",
    },
    search_columns=(
        "CAST(t.transaction_type AS TEXT)",
        "CAST(t.amount AS TEXT)",
        "CAST(t.channel AS TEXT)",
        "CAST(t.currency AS TEXT)",
        "tm.location",
        "CAST(tm.device_type AS TEXT)",
        "CAST(tm.auth_method AS TEXT)",
    ),
)

CUSTOMER_COLUMNS = (
    "c.customer_id, c.first_name, c.last_name, c.email, c.phone, "
    "c.customer_type, c.created_at"
)

CUSTOMER_QUERY = EntityQuerySpec(
    name="customer",
    from_clause="customers c LEFT JOIN accounts a ON c.customer_id = a.customer_id",
    count_from_clause="customers c",
    select_list=CUSTOMER_COLUMNS,
    id_column="c.customer_id",
    sortable={
        "customer_id": "c.customer_id",
        "first_name": "c.first_name",
        "last_name": "c.last_name",
        "email": "c.email",
        "phone": "c.phone",
        "customer_type": "c.customer_type",
        "created_at": "c.created_at",
    },
    search_columns=("c.first_name", "c.last_name", "c.email"),
    group_by=CUSTOMER_COLUMNS,
)


class QueryBuilder:
    """
    Accumulates WHERE clauses and bound values for one entity, then renders
    the count and data statements.
    """

    def __init__(self, spec: EntityQuerySpec, select_extra: Optional[str] = None):
        self.spec = spec
        self.select_extra = select_extra
        self._clauses: List[str] = []
        self._params: List[Any] = []
        self._order_by = f"{spec.id_column} ASC"
        self._page_params: List[Any] = []

    def where_equals(self, column: str, value: Optional[Any]) -> "QueryBuilder":
        """Exact match, skipped when the value is absent or empty"""
        if value is None or value == "":
            return self
        self._clauses.append(f"{column} = ?")
        self._params.append(value)
        return self

    def where_in(self, column: str, values: List[Any]) -> "QueryBuilder":
        if not values:
            return self
        placeholders = ", ".join("?" for _ in values)
        self._clauses.append(f"{column} IN ({placeholders})")
        self._params.extend(values)
        return self

    def where_search(self, search: str) -> "QueryBuilder":
        """Case-insensitive partial match across the entity's search columns"""
        pattern = like_pattern(search)
        conditions = " OR ".join(
            f"LOWER({column}) LIKE ? ESCAPE '{LIKE_ESCAPE}'"
            for column in self.spec.search_columns
        )
        self._clauses.append(f"({conditions})")
        self._params.extend([pattern] * len(self.spec.search_columns))
        return self

    def where_id_or_search(self, explicit_id: Optional[str], search: Optional[str],
                           field_name: str) -> "QueryBuilder":
        """
        Identifier filter takes precedence over free-text search. A search
        string that parses as an integer is an exact identifier match.
        """
        if _present(explicit_id):
            return self.where_equals(self.spec.id_column, parse_int(explicit_id, field_name))
        if _present(search):
            search_id = try_parse_int(search)
            if search_id is not None:
                return self.where_equals(self.spec.id_column, search_id)
            return self.where_search(search)
        return self

    def order_by(self, sort_by: Optional[str], sort_order: Optional[str]) -> "QueryBuilder":
        direction = (sort_order or "asc").upper()
        if direction not in SORT_DIRECTIONS:
            raise ValidationError(f"Invalid sortOrder '{sort_order}'. Allowed values: asc, desc")

        if not sort_by:
            column = self.spec.id_column
        elif sort_by in self.spec.sortable:
            column = self.spec.sortable[sort_by]
        else:
            allowed = ", ".join(self.spec.sortable)
            raise ValidationError(
                f"Invalid sortBy '{sort_by}' for {self.spec.name}. Allowed values: {allowed}"
            )

        if column == self.spec.id_column:
            self._order_by = f"{column} {direction}"
        else:
            # Identifier ascending breaks ties between equal sort keys
            self._order_by = f"{column} {direction}, {self.spec.id_column} ASC"
        return self

    def paginate(self, page: int, size: int, max_size: Optional[int] = None) -> "QueryBuilder":
        if page < 0 or page > MAX_INT:
            raise ValidationError(f"Invalid page {page}: must be between 0 and {MAX_INT}")
        if size < 1 or size > MAX_INT:
            raise ValidationError(f"Invalid size {size}: must be between 1 and {MAX_INT}")
        if max_size is not None and size > max_size:
            raise ValidationError(f"Invalid size {size}: must be at most {max_size}")
        self._page_params = [size, page * size]
        return self

    def _where_sql(self) -> str:
        if not self._clauses:
            return ""
        return " WHERE " + " AND ".join(self._clauses)

    def build(self) -> BuiltQuery:
        where = self._where_sql()
        spec = self.spec

        count_sql = f"SELECT COUNT(*) AS total FROM {spec.count_from_clause}{where}"

        select_list = spec.select_list
        if self.select_extra:
            select_list = f"{select_list}, {self.select_extra}"
        data_sql = f"SELECT {select_list} FROM {spec.from_clause}{where}"
        if spec.group_by:
            data_sql += f" GROUP BY {spec.group_by}"
        data_sql += f" ORDER BY {self._order_by}"
        if self._page_params:
            data_sql += " LIMIT ? OFFSET ?"

        return BuiltQuery(count_sql, data_sql, list(self._params), list(self._page_params))


@dataclass
class AccountFilter:
    account_type: Optional[str] = None
    status: Optional[str] = None
    account_id: Optional[str] = None
    search: Optional[str] = None


@dataclass
class TransactionFilter:
    transaction_type: Optional[str] = None
    transaction_id: Optional[str] = None
    search: Optional[str] = None
    account_ids: Optional[str] = None


@dataclass
class CustomerFilter:
    customer_type: Optional[str] = None
    customer_id: Optional[str] = None
    search: Optional[str] = None


def build_account_query(filters: AccountFilter, page: PageRequest,
                        max_size: Optional[int] = None) -> BuiltQuery:
    return (
        QueryBuilder(ACCOUNT_QUERY)
        .where_equals("a.account_type", _label(filters.account_type, AccountType, "accountType"))
        .where_equals("a.status", _label(filters.status, AccountStatus, "status"))
        .where_id_or_search(filters.account_id, filters.search, "accountId")
        .order_by(page.sort_by, page.sort_order)
        .paginate(page.page, page.size, max_size)
        .build()
    )


def build_transaction_query(filters: TransactionFilter, page: PageRequest,
                            max_size: Optional[int] = None) -> BuiltQuery:
    builder = QueryBuilder(TRANSACTION_QUERY).where_equals(
        "t.transaction_type", _label(filters.transaction_type, TransactionType, "transactionType")
    )
    if _present(filters.account_ids):
        builder.where_in("t.account_id", parse_id_list(filters.account_ids, "accountIds"))
    return (
        builder
        .where_id_or_search(filters.transaction_id, filters.search, "transactionId")
        .order_by(page.sort_by, page.sort_order)
        .paginate(page.page, page.size, max_size)
        .build()
    )


def build_customer_query(filters: CustomerFilter, page: PageRequest, account_ids_expression: str,
                         max_size: Optional[int] = None) -> BuiltQuery:
    """
    Customer rows carry their account ids through a LEFT JOIN collapsed by
    ``account_ids_expression`` (a dialect-specific aggregate over a.account_id).
    """
    return (
        QueryBuilder(CUSTOMER_QUERY, select_extra=f"{account_ids_expression} AS account_ids")
        .where_equals("c.customer_type", _label(filters.customer_type, CustomerType, "customerType"))
        .where_id_or_search(filters.customer_id, filters.search, "customerId")
        .order_by(page.sort_by, page.sort_order)
        .paginate(page.page, page.size, max_size)
        .build()
    )


T = TypeVar("T")


def fetch_page(database: DatabaseInterface, query: BuiltQuery,
               mapper: Callable[[Row], T]) -> Page[T]:
    """
    Run the count query, then the data query, and assemble a page.

    The two statements are separate round trips without a shared snapshot:
    a write landing between them can make total_count disagree with items.
    """
    total = database.scalar(query.count_sql, query.params)
    rows = database.query(query.data_sql, query.data_params)
    return Page(items=[mapper(row) for row in rows], total_count=int(total or 0))
