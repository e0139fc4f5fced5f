"""
Pytest configuration and fixtures.

Provides builders for Wikidata dump documents and an in-memory database.
"""

import json

import pytest
from sqlalchemy import create_engine


def make_snak(datatype, value_type, value, prop='P1'):
    return {
        'snaktype': 'value',
        'property': prop,
        'datatype': datatype,
        'datavalue': {'value': value, 'type': value_type},
    }


def make_statement(mainsnak, rank='normal'):
    return {'mainsnak': mainsnak, 'type': 'statement', 'rank': rank}


def make_entity(entity_id='Q1', label=None, description=None, claims=None, language='en'):
    document = {
        'type': 'item',
        'id': entity_id,
        'labels': {},
        'descriptions': {},
        'claims': claims if claims is not None else {},
    }
    if label is not None:
        document['labels'][language] = {'language': language, 'value': label}
    if description is not None:
        document['descriptions'][language] = {'language': language, 'value': description}
    return document


def make_dump(documents):
    """Dump file contents in the wrapped-array layout used by Wikidata"""
    lines = ['[']
    lines.extend(json.dumps(document) + ',' for document in documents)
    if documents:
        lines[-1] = lines[-1][:-1]
    lines.append(']')
    return '\n'.join(lines) + '\n'


@pytest.fixture
def snak():
    return make_snak


@pytest.fixture
def statement():
    return make_statement


@pytest.fixture
def entity_document():
    return make_entity


@pytest.fixture
def dump_text():
    return make_dump


@pytest.fixture
def connection():
    """Connection to a throwaway in-memory SQLite database"""
    engine = create_engine('sqlite://')
    with engine.connect() as conn:
        yield conn
    engine.dispose()
