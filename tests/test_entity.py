"""
Tests for parsing dump documents into entities.
"""

import pytest

from wd2sql.entity import (
    DataKind,
    EntityId,
    EntityKind,
    EntityParseError,
    GlobeCoordinate,
    Quantity,
    Rank,
    Text,
    Time,
    normalize_time,
    parse_entity,
    parse_snak,
)


class TestEntityId:
    """Tests for textual id parsing and encoding."""

    @pytest.mark.parametrize("text, kind, number, index", [
        ("Q42", EntityKind.ITEM, 42, None),
        ("P31", EntityKind.PROPERTY, 31, None),
        ("L7", EntityKind.LEXEME, 7, None),
        ("L7-F2", EntityKind.FORM, 7, 2),
        ("L7-S1", EntityKind.SENSE, 7, 1),
    ])
    def test_parse(self, text, kind, number, index):
        entity_id = EntityId.parse(text)

        assert entity_id == EntityId(kind, number, index)
        assert str(entity_id) == text

    @pytest.mark.parametrize("text", ["X1", "Q", "q42", "Q42x", "P3-F1", "L1-X2", "Q42\n", "Q\u0661\u0662", 42, None])
    def test_parse_rejects_invalid_ids(self, text):
        with pytest.raises(EntityParseError):
            EntityId.parse(text)

    def test_encode_uses_namespace_offsets(self):
        assert EntityId.parse("Q42").encode() == 42
        assert EntityId.parse("P31").encode() == 1_000_000_031
        assert EntityId.parse("L7").encode() == 2_000_000_007
        assert EntityId.parse("L7-F2").encode() == 200_000_000_000 + 2_000_000_007
        assert EntityId.parse("L7-S2").encode() == 210_000_000_000 + 2_000_000_007


class TestParseEntity:
    """Tests for whole-document parsing."""

    def test_label_and_description(self, entity_document):
        entity = parse_entity(entity_document('Q42', 'Douglas Adams', 'English writer'))

        assert entity.id == EntityId(EntityKind.ITEM, 42)
        assert entity.label == 'Douglas Adams'
        assert entity.description == 'English writer'
        assert entity.claims == []

    def test_other_language_is_ignored(self, entity_document):
        entity = parse_entity(entity_document('Q42', 'Douglas Adams', 'Schriftsteller', language='de'))

        assert entity.label is None
        assert entity.description is None

    def test_configured_language(self, entity_document):
        entity = parse_entity(entity_document('Q42', 'Douglas Adams', language='de'), language='de')

        assert entity.label == 'Douglas Adams'

    def test_empty_maps_serialized_as_lists(self):
        entity = parse_entity({'id': 'P31', 'labels': [], 'descriptions': [], 'claims': []})

        assert entity.id.kind is EntityKind.PROPERTY
        assert entity.label is None
        assert entity.claims == []

    def test_lexeme_uses_lemma_as_label(self):
        entity = parse_entity({
            'type': 'lexeme',
            'id': 'L7',
            'lemmas': {'en': {'language': 'en', 'value': 'run'}},
            'claims': {},
        })

        assert entity.id.encode() == 2_000_000_007
        assert entity.label == 'run'

    def test_claims_flattened_in_order(self, entity_document, snak, statement):
        entity = parse_entity(entity_document('Q1', claims={
            'P31': [
                statement(snak('wikibase-item', 'wikibase-entityid', {'entity-type': 'item', 'numeric-id': 5, 'id': 'Q5'}, 'P31')),
                statement(snak('wikibase-item', 'wikibase-entityid', {'entity-type': 'item', 'numeric-id': 6, 'id': 'Q6'}, 'P31'), 'preferred'),
            ],
            'P1476': [
                statement(snak('string', 'string', 'abc', 'P1476'), 'deprecated'),
            ],
        }))

        assert [str(claim.property) for claim in entity.claims] == ['P31', 'P31', 'P1476']
        assert [claim.rank for claim in entity.claims] == [Rank.NORMAL, Rank.PREFERRED, Rank.DEPRECATED]
        assert entity.claims[1].data.payload == EntityId(EntityKind.ITEM, 6)

    def test_statements_key_is_accepted(self, snak, statement):
        entity = parse_entity({'id': 'Q1', 'statements': {'P1': [statement(snak('string', 'string', 'x'))]}})

        assert len(entity.claims) == 1

    @pytest.mark.parametrize("document", [
        [],
        "Q1",
        {},
        {'id': 'L1-F1'},
        {'id': 'Q1', 'labels': 'en'},
        {'id': 'Q1', 'labels': {'en': {'language': 'en'}}},
        {'id': 'Q1', 'claims': {'Q5': []}},
        {'id': 'Q1', 'claims': {'P1': {}}},
        {'id': 'Q1', 'claims': {'P1': ['statement']}},
        {'id': 'Q1', 'claims': {'P1': [{'rank': 'bogus', 'mainsnak': {'snaktype': 'novalue'}}]}},
    ])
    def test_malformed_documents(self, document):
        with pytest.raises(EntityParseError):
            parse_entity(document)


class TestParseSnak:
    """Tests for payload classification."""

    def test_novalue_and_somevalue(self):
        assert parse_snak({'snaktype': 'novalue', 'property': 'P1'}).kind is DataKind.NO_VALUE
        assert parse_snak({'snaktype': 'somevalue', 'property': 'P1'}).kind is DataKind.UNKNOWN_VALUE

    @pytest.mark.parametrize("datatype, kind", [
        ('commonsMedia', DataKind.COMMONS_MEDIA),
        ('string', DataKind.STRING),
        ('external-id', DataKind.EXTERNAL_ID),
        ('url', DataKind.URL),
        ('math', DataKind.MATH),
        ('geo-shape', DataKind.GEO_SHAPE),
        ('musical-notation', DataKind.MUSICAL_NOTATION),
        ('tabular-data', DataKind.TABULAR_DATA),
        (None, DataKind.STRING),
    ])
    def test_string_kinds(self, snak, datatype, kind):
        data = parse_snak(snak(datatype, 'string', 'payload'))

        assert data.kind is kind
        assert data.payload == 'payload'

    def test_string_value_with_non_string_datatype(self, snak):
        with pytest.raises(EntityParseError):
            parse_snak(snak('quantity', 'string', 'payload'))

    def test_unknown_datatype(self, snak):
        with pytest.raises(EntityParseError):
            parse_snak(snak('entity-schema', 'string', 'E1'))

    def test_monolingual_text(self, snak):
        data = parse_snak(snak('monolingualtext', 'monolingualtext', {'text': 'Bonjour', 'language': 'fr'}))

        assert data.kind is DataKind.MONOLINGUAL_TEXT
        assert data.payload == Text('Bonjour', 'fr')

    def test_multilingual_text(self, snak):
        data = parse_snak(snak(None, 'multilingualtext', [
            {'text': 'Hallo', 'language': 'de'},
            {'text': 'Hello', 'language': 'en'},
        ]))

        assert data.kind is DataKind.MULTILINGUAL_TEXT
        assert data.payload == [Text('Hallo', 'de'), Text('Hello', 'en')]

    @pytest.mark.parametrize("value, kind", [
        ({'entity-type': 'item', 'numeric-id': 5, 'id': 'Q5'}, DataKind.ITEM),
        ({'entity-type': 'property', 'numeric-id': 31, 'id': 'P31'}, DataKind.PROPERTY),
        ({'entity-type': 'lexeme', 'numeric-id': 7, 'id': 'L7'}, DataKind.LEXEME),
        ({'entity-type': 'form', 'id': 'L7-F1'}, DataKind.FORM),
        ({'entity-type': 'sense', 'id': 'L7-S1'}, DataKind.SENSE),
        ({'entity-type': 'item', 'numeric-id': 5}, DataKind.ITEM),
    ])
    def test_entity_references(self, snak, value, kind):
        data = parse_snak(snak('wikibase-item', 'wikibase-entityid', value))

        assert data.kind is kind

    def test_entity_reference_without_id(self, snak):
        with pytest.raises(EntityParseError):
            parse_snak(snak('wikibase-form', 'wikibase-entityid', {'entity-type': 'form'}))

    def test_globe_coordinate(self, snak):
        data = parse_snak(snak('globe-coordinate', 'globecoordinate', {
            'latitude': 52.5,
            'longitude': 13.4,
            'altitude': None,
            'precision': 0.01,
            'globe': 'http://www.wikidata.org/entity/Q2',
        }))

        assert data.payload == GlobeCoordinate(52.5, 13.4, 0.01, EntityId(EntityKind.ITEM, 2))

    def test_globe_coordinate_without_precision(self, snak):
        with pytest.raises(EntityParseError):
            parse_snak(snak('globe-coordinate', 'globecoordinate', {
                'latitude': 52.5,
                'longitude': 13.4,
                'precision': None,
                'globe': 'http://www.wikidata.org/entity/Q2',
            }))

    def test_quantity_with_unit_and_bounds(self, snak):
        data = parse_snak(snak('quantity', 'quantity', {
            'amount': '+1.5',
            'lowerBound': '+1.4',
            'upperBound': '+1.6',
            'unit': 'http://www.wikidata.org/entity/Q11573',
        }))

        assert data.payload == Quantity(1.5, 1.4, 1.6, EntityId(EntityKind.ITEM, 11573))

    def test_dimensionless_quantity(self, snak):
        data = parse_snak(snak('quantity', 'quantity', {'amount': '-3', 'unit': '1'}))

        assert data.payload == Quantity(-3.0, None, None, None)

    def test_quantity_with_invalid_amount(self, snak):
        with pytest.raises(EntityParseError):
            parse_snak(snak('quantity', 'quantity', {'amount': 'lots', 'unit': '1'}))

    def test_time(self, snak):
        data = parse_snak(snak('time', 'time', {
            'time': '+2001-12-31T00:00:00Z',
            'timezone': 0,
            'before': 0,
            'after': 0,
            'precision': 11,
            'calendarmodel': 'http://www.wikidata.org/entity/Q1985727',
        }))

        assert data.kind is DataKind.TIME
        assert data.payload == Time('2001-12-31 00:00:00+00:00', 11)

    def test_unknown_datavalue_type(self, snak):
        with pytest.raises(EntityParseError):
            parse_snak(snak('string', 'blob', 'x'))

    def test_value_snak_without_datavalue(self):
        with pytest.raises(EntityParseError):
            parse_snak({'snaktype': 'value', 'property': 'P1'})


class TestNormalizeTime:
    """Tests for Wikibase timestamp normalization."""

    @pytest.mark.parametrize("text, expected", [
        ('+2001-12-31T00:00:00Z', '2001-12-31 00:00:00+00:00'),
        ('+1850-00-00T00:00:00Z', '1850-01-01 00:00:00+00:00'),
        ('-0044-03-15T00:00:00Z', '-0044-03-15 00:00:00+00:00'),
        ('-13798000000-00-00T00:00:00Z', '-13798000000-01-01 00:00:00+00:00'),
        ('+20000-01-01T00:00:00Z', '+20000-01-01 00:00:00+00:00'),
        ('+0000-01-01T12:30:45Z', '0000-01-01 12:30:45+00:00'),
    ])
    def test_normalize(self, text, expected):
        assert normalize_time(text) == expected

    @pytest.mark.parametrize("text", [
        '2001-12-31', '+2001-13-01T00:00:00Z', '+2001-01-01T25:00:00Z',
        '+2001-01-01T00:00:00Z\n', '+\u0662\u0660\u0660\u0661-01-01T00:00:00Z', None,
    ])
    def test_invalid(self, text):
        with pytest.raises(EntityParseError):
            normalize_time(text)
