"""
=====================================
Clause variants stored on a Builder.
=====================================

Where, having, order, union and aggregate entries are plain dataclasses.
Each where/having variant carries a ``type`` tag that grammars use to look up
the compiler for it, and a ``boolean`` conjunction ("and" / "or") used when
the clause is joined to the one before it.

Where variants:
- RawWhere, BasicWhere, InWhere, NotInWhere, InRawWhere, NotInRawWhere
- NullWhere, NotNullWhere, BetweenWhere, DateBasedWhere, ColumnWhere
- NestedWhere, SubWhere, ExistsWhere, NotExistsWhere, RowValuesWhere
- JsonContainsWhere, JsonLengthWhere

Having variants:
- BasicHaving, RawHaving, BetweenHaving, NullHaving, NotNullHaving
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, List, Union

from query.expression import Expression

if TYPE_CHECKING:
    from query.builder import Builder


Column = Union[str, Expression]


class WhereType(str, Enum):
    """Type tags for where clause variants."""

    RAW = 'raw'
    BASIC = 'basic'
    IN = 'in'
    NOT_IN = 'not_in'
    IN_RAW = 'in_raw'
    NOT_IN_RAW = 'not_in_raw'
    NULL = 'null'
    NOT_NULL = 'not_null'
    BETWEEN = 'between'
    DATE_BASED = 'date_based'
    COLUMN = 'column'
    NESTED = 'nested'
    SUB = 'sub'
    EXISTS = 'exists'
    NOT_EXISTS = 'not_exists'
    ROW_VALUES = 'row_values'
    JSON_CONTAINS = 'json_contains'
    JSON_LENGTH = 'json_length'


class HavingType(str, Enum):
    """Type tags for having clause variants."""

    BASIC = 'basic'
    RAW = 'raw'
    BETWEEN = 'between'
    NULL = 'null'
    NOT_NULL = 'not_null'


class WhereClause:
    """Marker base for where clause variants."""

    type: ClassVar[WhereType]
    boolean: str


class HavingClause:
    """Marker base for having clause variants."""

    type: ClassVar[HavingType]
    boolean: str


# ====================
# Where variants
# ====================

@dataclass
class RawWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.RAW
    sql: str
    boolean: str = 'and'


@dataclass
class BasicWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.BASIC
    column: Column
    operator: str
    value: Any
    boolean: str = 'and'


@dataclass
class InWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.IN
    column: Column
    values: List[Any]
    boolean: str = 'and'


@dataclass
class NotInWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.NOT_IN
    column: Column
    values: List[Any]
    boolean: str = 'and'


@dataclass
class InRawWhere(WhereClause):
    """Integer-only in-list inlined into the SQL without bindings.

    Values are coerced to int when the clause is added; nothing else may be
    stored here.
    """

    type: ClassVar[WhereType] = WhereType.IN_RAW
    column: Column
    values: List[int]
    boolean: str = 'and'


@dataclass
class NotInRawWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.NOT_IN_RAW
    column: Column
    values: List[int]
    boolean: str = 'and'


@dataclass
class NullWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.NULL
    column: Column
    boolean: str = 'and'


@dataclass
class NotNullWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.NOT_NULL
    column: Column
    boolean: str = 'and'


@dataclass
class BetweenWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.BETWEEN
    column: Column
    values: List[Any]
    not_: bool = False
    boolean: str = 'and'


@dataclass
class DateBasedWhere(WhereClause):
    """Comparison against one part of a date/time column.

    ``part`` is one of date, time, day, month or year.
    """

    type: ClassVar[WhereType] = WhereType.DATE_BASED
    part: str
    column: Column
    operator: str
    value: Any
    boolean: str = 'and'


@dataclass
class ColumnWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.COLUMN
    first: Column
    operator: str
    second: Column
    boolean: str = 'and'


@dataclass
class NestedWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.NESTED
    query: 'Builder'
    boolean: str = 'and'


@dataclass
class SubWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.SUB
    column: Column
    operator: str
    query: 'Builder'
    boolean: str = 'and'


@dataclass
class ExistsWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.EXISTS
    query: 'Builder'
    boolean: str = 'and'


@dataclass
class NotExistsWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.NOT_EXISTS
    query: 'Builder'
    boolean: str = 'and'


@dataclass
class RowValuesWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.ROW_VALUES
    columns: List[Column]
    operator: str
    values: List[Any]
    boolean: str = 'and'


@dataclass
class JsonContainsWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.JSON_CONTAINS
    column: str
    value: Any
    not_: bool = False
    boolean: str = 'and'


@dataclass
class JsonLengthWhere(WhereClause):
    type: ClassVar[WhereType] = WhereType.JSON_LENGTH
    column: str
    operator: str
    value: Any
    boolean: str = 'and'


# ====================
# Having variants
# ====================

@dataclass
class BasicHaving(HavingClause):
    type: ClassVar[HavingType] = HavingType.BASIC
    column: Column
    operator: str
    value: Any
    boolean: str = 'and'


@dataclass
class RawHaving(HavingClause):
    type: ClassVar[HavingType] = HavingType.RAW
    sql: str
    boolean: str = 'and'


@dataclass
class BetweenHaving(HavingClause):
    type: ClassVar[HavingType] = HavingType.BETWEEN
    column: Column
    values: List[Any]
    not_: bool = False
    boolean: str = 'and'


@dataclass
class NullHaving(HavingClause):
    type: ClassVar[HavingType] = HavingType.NULL
    column: Column
    boolean: str = 'and'


@dataclass
class NotNullHaving(HavingClause):
    type: ClassVar[HavingType] = HavingType.NOT_NULL
    column: Column
    boolean: str = 'and'


# ====================
# Other components
# ====================

@dataclass
class Order:
    column: Column
    direction: str = 'asc'


@dataclass
class RawOrder:
    sql: str


@dataclass
class UnionClause:
    query: 'Builder'
    all: bool = False


@dataclass
class Aggregate:
    function: str
    columns: List[Column] = field(default_factory=lambda: ['*'])
