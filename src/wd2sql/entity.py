"""
Wikidata Entity Records
=======================
Parses one decoded JSON entity from a Wikidata dump into an Entity.

Only the parts of the document that end up in the database are kept:
- the entity id
- label and description in a single language
- the main snak and rank of every statement

Dump quirks handled here:
- empty maps are serialized as empty lists ("claims": [])
- lexemes carry "lemmas" instead of "labels"
- MediaInfo documents use "statements" instead of "claims"

Usage:
    from wd2sql.entity import parse_entity

    entity = parse_entity(json.loads(line), language='en')
    print(entity.id.encode(), entity.label, len(entity.claims))
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from wd2sql.ids import (
    encode_form, encode_item, encode_lexeme, encode_property, encode_sense
)


class EntityParseError(ValueError):
    """Raised when a JSON document does not have the shape of an entity"""


class EntityKind(Enum):
    ITEM = 'item'
    PROPERTY = 'property'
    LEXEME = 'lexeme'
    FORM = 'form'
    SENSE = 'sense'


# Q42, P31, L7, L7-F2, L7-S1
ENTITY_ID_PATTERN = re.compile(r'([QPL])(\d+)(?:-([FS])(\d+))?\Z', re.ASCII)

PREFIX_KINDS = {
    'Q': EntityKind.ITEM,
    'P': EntityKind.PROPERTY,
    'L': EntityKind.LEXEME,
}


@dataclass(frozen=True)
class EntityId:
    """Textual Wikidata id split into kind, number and form/sense index"""
    kind: EntityKind
    number: int
    index: Optional[int] = None

    @classmethod
    def parse(cls, text: Any) -> 'EntityId':
        if not isinstance(text, str):
            raise EntityParseError(f"Invalid entity id: {text!r}")

        match = ENTITY_ID_PATTERN.match(text)
        if not match:
            raise EntityParseError(f"Invalid entity id: {text!r}")

        prefix, number, sub_prefix, index = match.groups()
        if sub_prefix is None:
            return cls(PREFIX_KINDS[prefix], int(number))

        if prefix != 'L':
            raise EntityParseError(f"Only lexemes have forms and senses: {text!r}")

        kind = EntityKind.FORM if sub_prefix == 'F' else EntityKind.SENSE
        return cls(kind, int(number), int(index))

    def encode(self) -> int:
        """Position of this id in the unified key space"""
        if self.kind is EntityKind.ITEM:
            return encode_item(self.number)
        if self.kind is EntityKind.PROPERTY:
            return encode_property(self.number)
        if self.kind is EntityKind.LEXEME:
            return encode_lexeme(self.number)
        if self.kind is EntityKind.FORM:
            return encode_form(self.number, self.index)
        return encode_sense(self.number, self.index)

    def __str__(self):
        if self.kind is EntityKind.ITEM:
            return f"Q{self.number}"
        if self.kind is EntityKind.PROPERTY:
            return f"P{self.number}"
        if self.kind is EntityKind.LEXEME:
            return f"L{self.number}"
        sub_prefix = 'F' if self.kind is EntityKind.FORM else 'S'
        return f"L{self.number}-{sub_prefix}{self.index}"


class DataKind(Enum):
    """Every kind of claim payload found in a dump"""
    COMMONS_MEDIA = 'commonsMedia'
    STRING = 'string'
    EXTERNAL_ID = 'external-id'
    URL = 'url'
    MATH = 'math'
    GEO_SHAPE = 'geo-shape'
    MUSICAL_NOTATION = 'musical-notation'
    TABULAR_DATA = 'tabular-data'
    MONOLINGUAL_TEXT = 'monolingualtext'
    MULTILINGUAL_TEXT = 'multilingualtext'
    ITEM = 'wikibase-item'
    PROPERTY = 'wikibase-property'
    LEXEME = 'wikibase-lexeme'
    FORM = 'wikibase-form'
    SENSE = 'wikibase-sense'
    GLOBE_COORDINATE = 'globe-coordinate'
    QUANTITY = 'quantity'
    TIME = 'time'
    NO_VALUE = 'novalue'
    UNKNOWN_VALUE = 'somevalue'


# Datatypes whose datavalue is a bare string
STRING_KINDS = frozenset({
    DataKind.COMMONS_MEDIA,
    DataKind.STRING,
    DataKind.EXTERNAL_ID,
    DataKind.URL,
    DataKind.MATH,
    DataKind.GEO_SHAPE,
    DataKind.MUSICAL_NOTATION,
    DataKind.TABULAR_DATA,
})

REFERENCE_KINDS = {
    EntityKind.ITEM: DataKind.ITEM,
    EntityKind.PROPERTY: DataKind.PROPERTY,
    EntityKind.LEXEME: DataKind.LEXEME,
    EntityKind.FORM: DataKind.FORM,
    EntityKind.SENSE: DataKind.SENSE,
}


class Rank(Enum):
    PREFERRED = 'preferred'
    NORMAL = 'normal'
    DEPRECATED = 'deprecated'


@dataclass(frozen=True)
class Text:
    text: str
    language: str


@dataclass(frozen=True)
class GlobeCoordinate:
    latitude: float
    longitude: float
    precision: float
    globe: EntityId


@dataclass(frozen=True)
class Quantity:
    amount: float
    lower_bound: Optional[float]
    upper_bound: Optional[float]
    unit: Optional[EntityId]


@dataclass(frozen=True)
class Time:
    """Normalized timestamp ("YYYY-MM-DD HH:MM:SS") and precision code (0-14)"""
    time: str
    precision: int


@dataclass(frozen=True)
class ClaimData:
    """Payload of a main snak, tagged with its kind"""
    kind: DataKind
    payload: Any = None


@dataclass(frozen=True)
class Claim:
    property: EntityId
    data: ClaimData
    rank: Rank = Rank.NORMAL


@dataclass
class Entity:
    id: EntityId
    label: Optional[str] = None
    description: Optional[str] = None
    claims: List[Claim] = field(default_factory=list)


def parse_entity(document: Any, language: str = 'en') -> Entity:
    """
    Build an Entity from a decoded dump line.

    Raises:
        EntityParseError: if the document is not a well-formed item,
            property or lexeme
    """
    if not isinstance(document, dict):
        raise EntityParseError("Entity must be a JSON object")

    entity_id = EntityId.parse(document.get('id'))
    if entity_id.kind not in (EntityKind.ITEM, EntityKind.PROPERTY, EntityKind.LEXEME):
        raise EntityParseError(f"Unsupported top-level entity: {entity_id}")

    label = _term(document.get('labels'), language)
    if label is None and entity_id.kind is EntityKind.LEXEME:
        label = _term(document.get('lemmas'), language)

    claims = document.get('claims')
    if claims is None:
        claims = document.get('statements')

    return Entity(
        id=entity_id,
        label=label,
        description=_term(document.get('descriptions'), language),
        claims=_parse_claims(claims),
    )


def _term(terms: Any, language: str) -> Optional[str]:
    """Value of a labels/descriptions/lemmas map in one language"""
    if not terms:
        return None
    if not isinstance(terms, dict):
        raise EntityParseError("Term list must be a JSON object")

    term = terms.get(language)
    if term is None:
        return None
    if not isinstance(term, dict) or not isinstance(term.get('value'), str):
        raise EntityParseError(f"Invalid term for language {language!r}")
    return term['value']


def _parse_claims(claims: Any) -> List[Claim]:
    if not claims:
        return []
    if not isinstance(claims, dict):
        raise EntityParseError("Claims must be a JSON object")

    parsed = []
    for property_id, statements in claims.items():
        prop = EntityId.parse(property_id)
        if prop.kind is not EntityKind.PROPERTY:
            raise EntityParseError(f"Claims must be keyed by property, got {property_id!r}")
        if not isinstance(statements, list):
            raise EntityParseError(f"Statements for {property_id} must be a list")

        for statement in statements:
            parsed.append(parse_claim(prop, statement))

    return parsed


def parse_claim(prop: EntityId, statement: Any) -> Claim:
    if not isinstance(statement, dict):
        raise EntityParseError(f"Statement for {prop} must be a JSON object")

    try:
        rank = Rank(statement.get('rank', Rank.NORMAL.value))
    except ValueError:
        raise EntityParseError(f"Unknown rank: {statement.get('rank')!r}")

    return Claim(property=prop, data=parse_snak(statement.get('mainsnak')), rank=rank)


def parse_snak(snak: Any) -> ClaimData:
    if not isinstance(snak, dict):
        raise EntityParseError("Snak must be a JSON object")

    snaktype = snak.get('snaktype')
    if snaktype == 'novalue':
        return ClaimData(DataKind.NO_VALUE)
    if snaktype == 'somevalue':
        return ClaimData(DataKind.UNKNOWN_VALUE)
    if snaktype != 'value':
        raise EntityParseError(f"Unknown snak type: {snaktype!r}")

    datavalue = snak.get('datavalue')
    if not isinstance(datavalue, dict) or 'value' not in datavalue:
        raise EntityParseError("Value snak without datavalue")

    parser = DATAVALUE_PARSERS.get(datavalue.get('type'))
    if parser is None:
        raise EntityParseError(f"Unknown datavalue type: {datavalue.get('type')!r}")

    return parser(datavalue['value'], snak.get('datatype'))


def _parse_string(value: Any, datatype: Optional[str]) -> ClaimData:
    if not isinstance(value, str):
        raise EntityParseError("String datavalue must be a string")

    try:
        kind = DataKind(datatype) if datatype else DataKind.STRING
    except ValueError:
        raise EntityParseError(f"Unknown datatype: {datatype!r}")

    if kind not in STRING_KINDS:
        raise EntityParseError(f"Datatype {datatype!r} does not take a string")
    return ClaimData(kind, value)


def _parse_text(value: Any) -> Text:
    if not isinstance(value, dict):
        raise EntityParseError("Text datavalue must be a JSON object")

    text, language = value.get('text'), value.get('language')
    if not isinstance(text, str) or not isinstance(language, str):
        raise EntityParseError("Text datavalue needs text and language")
    return Text(text=text, language=language)


def _parse_monolingual_text(value: Any, datatype: Optional[str]) -> ClaimData:
    return ClaimData(DataKind.MONOLINGUAL_TEXT, _parse_text(value))


def _parse_multilingual_text(value: Any, datatype: Optional[str]) -> ClaimData:
    if not isinstance(value, list):
        raise EntityParseError("Multilingual text datavalue must be a list")
    return ClaimData(DataKind.MULTILINGUAL_TEXT, [_parse_text(text) for text in value])


def _parse_entity_reference(value: Any, datatype: Optional[str]) -> ClaimData:
    if not isinstance(value, dict):
        raise EntityParseError("Entity datavalue must be a JSON object")

    if 'id' in value:
        reference = EntityId.parse(value['id'])
    else:
        # Older dumps only carry entity-type and numeric-id
        try:
            kind = EntityKind(value.get('entity-type'))
        except ValueError:
            raise EntityParseError(f"Unknown entity type: {value.get('entity-type')!r}")

        number = value.get('numeric-id')
        if kind not in PREFIX_KINDS.values() or not _is_int(number):
            raise EntityParseError("Entity datavalue without usable id")
        reference = EntityId(kind, number)

    return ClaimData(REFERENCE_KINDS[reference.kind], reference)


def _parse_globe_coordinate(value: Any, datatype: Optional[str]) -> ClaimData:
    if not isinstance(value, dict):
        raise EntityParseError("Coordinate datavalue must be a JSON object")

    return ClaimData(DataKind.GLOBE_COORDINATE, GlobeCoordinate(
        latitude=_number(value.get('latitude'), 'latitude'),
        longitude=_number(value.get('longitude'), 'longitude'),
        precision=_number(value.get('precision'), 'precision'),
        globe=_parse_item_uri(value.get('globe')),
    ))


def _parse_quantity(value: Any, datatype: Optional[str]) -> ClaimData:
    if not isinstance(value, dict):
        raise EntityParseError("Quantity datavalue must be a JSON object")

    unit = value.get('unit', '1')
    lower_bound = value.get('lowerBound')
    upper_bound = value.get('upperBound')

    return ClaimData(DataKind.QUANTITY, Quantity(
        amount=_decimal(value.get('amount'), 'amount'),
        lower_bound=None if lower_bound is None else _decimal(lower_bound, 'lowerBound'),
        upper_bound=None if upper_bound is None else _decimal(upper_bound, 'upperBound'),
        # "1" is the dimensionless unit
        unit=None if unit == '1' else _parse_item_uri(unit),
    ))


TIME_PATTERN = re.compile(r'([+-]?)(\d+)-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})Z\Z', re.ASCII)


def normalize_time(text: Any) -> str:
    """
    Convert a Wikibase timestamp to UTC text, "YYYY-MM-DD HH:MM:SS+00:00".

    Example:
        "+2001-12-31T00:00:00Z" -> "2001-12-31 00:00:00+00:00"
        "-0044-03-15T00:00:00Z" -> "-0044-03-15 00:00:00+00:00"
        "+1850-00-00T00:00:00Z" -> "1850-01-01 00:00:00+00:00"
    """
    match = TIME_PATTERN.match(text) if isinstance(text, str) else None
    if not match:
        raise EntityParseError(f"Invalid time: {text!r}")

    sign, year, month, day, hour, minute, second = match.groups()
    year, month, day = int(year), max(int(month), 1), max(int(day), 1)
    hour, minute, second = int(hour), int(minute), int(second)

    if month > 12 or day > 31 or hour > 23 or minute > 59 or second > 60:
        raise EntityParseError(f"Time out of range: {text!r}")

    if sign == '-' and year:
        year_text = f"-{year:04d}"
    elif year > 9999:
        year_text = f"+{year}"
    else:
        year_text = f"{year:04d}"

    return f"{year_text}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}:{second:02d}+00:00"


def _parse_time(value: Any, datatype: Optional[str]) -> ClaimData:
    if not isinstance(value, dict):
        raise EntityParseError("Time datavalue must be a JSON object")

    precision = value.get('precision')
    if not _is_int(precision):
        raise EntityParseError(f"Invalid time precision: {precision!r}")

    return ClaimData(DataKind.TIME, Time(time=normalize_time(value.get('time')), precision=precision))


DATAVALUE_PARSERS: Dict[str, Callable[[Any, Optional[str]], ClaimData]] = {
    'string': _parse_string,
    'monolingualtext': _parse_monolingual_text,
    'multilingualtext': _parse_multilingual_text,
    'wikibase-entityid': _parse_entity_reference,
    'globecoordinate': _parse_globe_coordinate,
    'quantity': _parse_quantity,
    'time': _parse_time,
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EntityParseError(f"Invalid {name}: {value!r}")
    return float(value)


def _decimal(value: Any, name: str) -> float:
    """Quantities are serialized as signed decimal strings ("+1.5")"""
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise EntityParseError(f"Invalid {name}: {value!r}")
    return _number(value, name)


def _parse_item_uri(uri: Any) -> EntityId:
    """http://www.wikidata.org/entity/Q2 -> Q2"""
    if not isinstance(uri, str):
        raise EntityParseError(f"Invalid entity URI: {uri!r}")

    entity_id = EntityId.parse(uri.rsplit('/', 1)[-1])
    if entity_id.kind is not EntityKind.ITEM:
        raise EntityParseError(f"Expected an item URI: {uri!r}")
    return entity_id
