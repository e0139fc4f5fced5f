"""
Wikidata Dump Loader
====================
Streams a Wikidata JSON dump into a fresh SQLite database.

The dump is one JSON array with one entity per line:

    [
    {"type":"item","id":"Q1",...},
    {"type":"item","id":"Q2",...}
    ]

Each line is parsed, converted and written before the next one is read.
Failures are isolated to the line they occur on: the error is logged with the
line number and loading continues. Only setup failures (existing destination,
unreadable input, unusable database) stop the run.

Writes are grouped into transactions of `batch_size` entities. By default
SQLite journaling and synchronous writes are turned off for speed, so an
interrupted run leaves a database that must be deleted, not resumed.

Usage:
    from wd2sql.loader import load_dump

    stats = load_dump('latest-all.json', 'wikidata.db')
    print(f"{stats.entities:,} entities, {stats.errors:,} errors")
"""

import bz2
import gzip
import json
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, List, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from wd2sql.config import LoaderConfig, config
from wd2sql.entity import Entity, EntityParseError, Rank, parse_entity
from wd2sql.schema import Schema
from wd2sql.values import value_from_claim

logger = logging.getLogger(__name__)

# Lines wrapping the entity array
ARRAY_DELIMITERS = (b'[', b']')


class LoaderError(Exception):
    """Fatal setup failure; the run stops before any entity is loaded"""


class DestinationExistsError(LoaderError):
    pass


class SchemaCreationError(LoaderError):
    pass


class LineOutcome(Enum):
    SKIPPED = 'skipped'
    READ_ERROR = 'read_error'
    JSON_ERROR = 'json_error'
    RECORD_ERROR = 'record_error'
    STORED = 'stored'
    STORE_ERROR = 'store_error'

    @property
    def is_entity(self) -> bool:
        """Parsed entities count towards batches whether or not storing succeeded"""
        return self in (LineOutcome.STORED, LineOutcome.STORE_ERROR)


@dataclass
class LoadStats:
    lines: int = 0
    entities: int = 0
    bytes: int = 0
    skipped: int = 0
    read_errors: int = 0
    json_errors: int = 0
    record_errors: int = 0
    store_errors: int = 0
    claims: int = 0
    deprecated_claims: int = 0
    commits: int = 0
    failed_indices: List[str] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return self.read_errors + self.json_errors + self.record_errors + self.store_errors

    def record(self, outcome: LineOutcome):
        if outcome is LineOutcome.SKIPPED:
            self.skipped += 1
        elif outcome is LineOutcome.READ_ERROR:
            self.read_errors += 1
        elif outcome is LineOutcome.JSON_ERROR:
            self.json_errors += 1
        elif outcome is LineOutcome.RECORD_ERROR:
            self.record_errors += 1
        elif outcome is LineOutcome.STORE_ERROR:
            self.store_errors += 1

        if outcome.is_entity:
            self.entities += 1


ProgressCallback = Callable[[LoadStats, bool], None]


def create_sqlite_engine(path, disable_durability: bool = True) -> Engine:
    """
    SQLAlchemy engine for a SQLite file.

    With disable_durability, every connection runs without a rollback journal
    and without synchronous writes.
    """
    engine = create_engine(URL.create('sqlite', database=str(path)))

    if disable_durability:
        @event.listens_for(engine, 'connect')
        def _disable_durability(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA synchronous = OFF")
            cursor.execute("PRAGMA journal_mode = OFF")
            cursor.close()

    return engine


class DumpLoader:
    """
    Load entity lines into an open database connection

    Features:
    - Per-line outcome, aggregated into LoadStats
    - Deprecated claims dropped, sibling claims kept
    - Commit every batch_size entities
    - Indices built once after the last line
    """

    def __init__(
        self,
        connection: Connection,
        schema: Optional[Schema] = None,
        language: str = 'en',
        batch_size: int = 1000,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.connection = connection
        self.schema = schema or Schema()
        self.language = language
        self.batch_size = batch_size
        self.on_progress = on_progress
        self.stats = LoadStats()

    def setup(self):
        """Create the tables and open the first transaction"""
        try:
            self.schema.create_tables(self.connection)
            self.connection.commit()
        except SQLAlchemyError as e:
            raise SchemaCreationError(f"Error creating tables: {e}") from e

        try:
            self.connection.begin()
        except SQLAlchemyError as e:
            raise LoaderError(f"Error starting transaction: {e}") from e

    def load(self, stream: Iterable[bytes]) -> LoadStats:
        self.setup()

        line_number = 0
        try:
            for line_number, raw in enumerate(stream, start=1):
                self.process_line(line_number, raw)
        except (OSError, EOFError) as e:
            # EOFError: truncated .gz/.bz2 stream
            logger.error(f"Error reading dump after line {line_number}: {e}")

        return self.finish()

    def process_line(self, line_number: int, raw: bytes) -> LineOutcome:
        outcome = self._process(line_number, raw)
        self.stats.record(outcome)

        if outcome.is_entity and self.stats.entities % self.batch_size == 0:
            self._next_transaction(line_number)
            self._report_progress(finished=False)

        return outcome

    def _process(self, line_number: int, raw: bytes) -> LineOutcome:
        line = raw.rstrip(b'\r\n')
        self.stats.lines += 1
        self.stats.bytes += len(line)

        line = line.strip()
        if not line or line in ARRAY_DELIMITERS:
            return LineOutcome.SKIPPED

        # Remove trailing comma
        if line.endswith(b','):
            line = line[:-1]

        try:
            text = line.decode('utf-8')
        except UnicodeDecodeError as e:
            logger.error(f"Error reading line {line_number}: {e}")
            return LineOutcome.READ_ERROR

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing JSON at line {line_number}: {e}")
            return LineOutcome.JSON_ERROR

        try:
            entity = parse_entity(document, self.language)
        except EntityParseError as e:
            logger.error(f"Error parsing entity from JSON at line {line_number}: {e}")
            return LineOutcome.RECORD_ERROR

        try:
            self.store_entity(entity)
        except (SQLAlchemyError, OverflowError) as e:
            # OverflowError: an id beyond SQLite's signed 64-bit INTEGER
            logger.error(f"Error storing entity at line {line_number}: {e}")
            return LineOutcome.STORE_ERROR

        return LineOutcome.STORED

    def store_entity(self, entity: Entity) -> int:
        """
        Write the meta row and one value row per non-deprecated claim.

        Returns:
            Number of value rows written
        """
        entity_id = entity.id.encode()

        self.connection.execute(self.schema.meta.insert(), {
            'id': entity_id,
            'label': entity.label,
            'description': entity.description,
        })

        stored = 0
        for claim in entity.claims:
            if claim.rank is Rank.DEPRECATED:
                self.stats.deprecated_claims += 1
                continue

            value = value_from_claim(claim.data, self.language)
            value.store(self.connection, self.schema, entity_id, claim.property.encode())
            stored += 1
            self.stats.claims += 1

        return stored

    def _commit(self, context: str = '') -> bool:
        try:
            self.connection.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error committing transaction{context}: {e}")
            self._discard_transaction()
            return False

        self.stats.commits += 1
        return True

    def _discard_transaction(self):
        try:
            self.connection.rollback()
        except SQLAlchemyError as e:
            logger.error(f"Error discarding failed transaction: {e}")

    def _next_transaction(self, line_number: int):
        self._commit(f" at line {line_number}")

        try:
            self.connection.begin()
        except SQLAlchemyError as e:
            # The next write opens a transaction on its own
            logger.error(f"Error starting transaction at line {line_number}: {e}")

    def _report_progress(self, finished: bool):
        if self.on_progress is not None:
            self.on_progress(self.stats, finished)

    def finish(self) -> LoadStats:
        """Commit what is left, then build the indices"""
        self._commit()
        self._report_progress(finished=True)

        logger.debug("Creating indices")
        self.stats.failed_indices = self.schema.create_indices(self.connection)

        try:
            self.connection.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error committing indices: {e}")

        logger.info(
            f"Loaded {self.stats.entities:,} entities ({self.stats.claims:,} claims) "
            f"from {self.stats.lines:,} lines with {self.stats.errors:,} errors"
        )
        return self.stats


@contextmanager
def open_dump(json_file: str, stdin_sentinel: str = '-') -> Iterator[BinaryIO]:
    """Open a dump for binary line reading; .gz and .bz2 are decompressed on the fly"""
    if json_file == stdin_sentinel:
        yield sys.stdin.buffer
        return

    try:
        if json_file.endswith('.gz'):
            handle = gzip.open(json_file, 'rb')
        elif json_file.endswith('.bz2'):
            handle = bz2.open(json_file, 'rb')
        else:
            handle = open(json_file, 'rb')
    except OSError as e:
        raise LoaderError(f"Error opening JSON file '{json_file}': {e}") from e

    with handle:
        yield handle


def load_dump(
    json_file: str,
    sqlite_file: str,
    loader_config: Optional[LoaderConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> LoadStats:
    """
    Load a whole dump into a new SQLite database.

    Raises:
        DestinationExistsError: if sqlite_file already exists
        LoaderError: if the dump or the database cannot be opened, or the
            schema cannot be created
    """
    loader_config = loader_config or config.loader

    if Path(sqlite_file).exists():
        raise DestinationExistsError(
            f"The database '{sqlite_file}' already exists. Updating an existing database "
            f"is not supported. Choose a new filename for the database."
        )

    with open_dump(json_file, loader_config.stdin_sentinel) as stream:
        engine = create_sqlite_engine(sqlite_file, loader_config.disable_durability)

        try:
            try:
                connection = engine.connect()
            except SQLAlchemyError as e:
                raise LoaderError(f"Error opening SQLite database '{sqlite_file}': {e}") from e

            with connection:
                loader = DumpLoader(
                    connection,
                    language=loader_config.language,
                    batch_size=loader_config.batch_size,
                    on_progress=on_progress,
                )
                return loader.load(stream)
        finally:
            engine.dispose()
