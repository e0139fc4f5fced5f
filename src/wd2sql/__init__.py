"""Transform a Wikidata JSON dump into an SQLite database"""

__version__ = "0.1.0"
