"""
Claim Value Model
=================
Collapses every claim payload kind onto seven value variants. Each variant
owns its database table and knows how to insert itself.

Tables (all start with id, property_id):
- string:      string
- entity:      entity_id
- coordinates: latitude, longitude, precision, globe_id
- quantity:    amount, lower_bound, upper_bound, unit_id
- time:        time, precision
- none:        (no value columns)
- unknown:     (no value columns)

Rows in "none" and "unknown" have the same shape; only the table name tells
them apart.
"""

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, NamedTuple, Optional, Tuple

from sqlalchemy import Column, Integer, MetaData, REAL, Table, Text
from sqlalchemy.types import UserDefinedType

from wd2sql.entity import STRING_KINDS, ClaimData, DataKind
from wd2sql.ids import encode_item


class Timestamp(UserDefinedType):
    """DATETIME column storing normalized timestamp text as-is"""
    cache_ok = True

    def get_col_spec(self, **kw):
        return "DATETIME"


class ColumnDef(NamedTuple):
    name: str
    type_: Any
    nullable: bool = False


KEY_COLUMNS = (
    ColumnDef('id', Integer),
    ColumnDef('property_id', Integer),
)


@dataclass(frozen=True)
class Value:
    """Base of the value variants; see VALUE_TYPES"""
    table_name: ClassVar[str]
    value_columns: ClassVar[Tuple[ColumnDef, ...]] = ()

    @classmethod
    def table_definition(cls) -> Tuple[str, Tuple[ColumnDef, ...]]:
        """Table name and ordered columns, key columns first"""
        return cls.table_name, KEY_COLUMNS + cls.value_columns

    @classmethod
    def build_table(cls, metadata: MetaData) -> Table:
        table_name, columns = cls.table_definition()
        return Table(
            table_name,
            metadata,
            *(Column(column.name, column.type_, nullable=column.nullable) for column in columns),
        )

    def row(self, id: int, property_id: int) -> Dict[str, Any]:
        row = {'id': id, 'property_id': property_id}
        for column in self.value_columns:
            row[column.name] = getattr(self, column.name)
        return row

    def store(self, connection, schema, id: int, property_id: int):
        """Insert one row into this variant's table. Database errors propagate."""
        connection.execute(schema.table_for(self).insert(), self.row(id, property_id))


@dataclass(frozen=True)
class StringValue(Value):
    string: str

    table_name = 'string'
    value_columns = (ColumnDef('string', Text),)


@dataclass(frozen=True)
class EntityValue(Value):
    entity_id: int

    table_name = 'entity'
    value_columns = (ColumnDef('entity_id', Integer),)


@dataclass(frozen=True)
class CoordinatesValue(Value):
    latitude: float
    longitude: float
    precision: float
    globe_id: int

    table_name = 'coordinates'
    value_columns = (
        ColumnDef('latitude', REAL),
        ColumnDef('longitude', REAL),
        ColumnDef('precision', REAL),
        ColumnDef('globe_id', Integer),
    )


@dataclass(frozen=True)
class QuantityValue(Value):
    amount: float
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    unit_id: Optional[int] = None

    table_name = 'quantity'
    value_columns = (
        ColumnDef('amount', REAL),
        ColumnDef('lower_bound', REAL, nullable=True),
        ColumnDef('upper_bound', REAL, nullable=True),
        ColumnDef('unit_id', Integer, nullable=True),
    )


@dataclass(frozen=True)
class TimeValue(Value):
    time: str
    precision: int

    table_name = 'time'
    value_columns = (
        ColumnDef('time', Timestamp()),
        ColumnDef('precision', Integer),
    )


@dataclass(frozen=True)
class NoValue(Value):
    table_name = 'none'


@dataclass(frozen=True)
class UnknownValue(Value):
    table_name = 'unknown'


VALUE_TYPES = (
    StringValue,
    EntityValue,
    CoordinatesValue,
    QuantityValue,
    TimeValue,
    NoValue,
    UnknownValue,
)


def _string(payload, language):
    return StringValue(payload)


def _monolingual_text(payload, language):
    return StringValue(payload.text)


def _multilingual_text(payload, language):
    for text in payload:
        if text.language == language:
            return StringValue(text.text)
    return NoValue()


def _entity_reference(payload, language):
    return EntityValue(payload.encode())


def _globe_coordinate(payload, language):
    return CoordinatesValue(
        latitude=payload.latitude,
        longitude=payload.longitude,
        precision=payload.precision,
        globe_id=encode_item(payload.globe.number),
    )


def _quantity(payload, language):
    return QuantityValue(
        amount=payload.amount,
        lower_bound=payload.lower_bound,
        upper_bound=payload.upper_bound,
        unit_id=None if payload.unit is None else encode_item(payload.unit.number),
    )


def _time(payload, language):
    return TimeValue(time=payload.time, precision=payload.precision)


CONVERTERS: Dict[DataKind, Callable[[Any, str], Value]] = {
    **{kind: _string for kind in STRING_KINDS},
    DataKind.MONOLINGUAL_TEXT: _monolingual_text,
    DataKind.MULTILINGUAL_TEXT: _multilingual_text,
    DataKind.ITEM: _entity_reference,
    DataKind.PROPERTY: _entity_reference,
    DataKind.LEXEME: _entity_reference,
    DataKind.FORM: _entity_reference,
    DataKind.SENSE: _entity_reference,
    DataKind.GLOBE_COORDINATE: _globe_coordinate,
    DataKind.QUANTITY: _quantity,
    DataKind.TIME: _time,
    DataKind.NO_VALUE: lambda payload, language: NoValue(),
    DataKind.UNKNOWN_VALUE: lambda payload, language: UnknownValue(),
}


def value_from_claim(data: ClaimData, language: str = 'en') -> Value:
    """Convert a claim payload into its value variant"""
    return CONVERTERS[data.kind](data.payload, language)
