"""
Unified Identifier Space
========================
Maps the separate Wikidata id namespaces onto one 64-bit integer key space.

Layout:
- items:       Q<n>       ->  n
- properties:  P<n>       ->  n + 1e9
- lexemes:     L<n>       ->  n + 2e9
- forms:       L<n>-F<i>  ->  lexeme(n) + i * 1e11
- senses:      L<n>-S<i>  ->  lexeme(n) + i * 1e11 + 1e10

Raw ids are assumed to stay below the next namespace offset; this is not
checked.
"""

PROPERTY_OFFSET = 1_000_000_000
LEXEME_OFFSET = 2_000_000_000

# Must exceed any lexeme id so that form/sense indices never overlap
SUB_INDEX_MULTIPLIER = 100_000_000_000
SENSE_OFFSET = 10_000_000_000


def encode_item(raw_id: int) -> int:
    return raw_id


def encode_property(raw_id: int) -> int:
    return raw_id + PROPERTY_OFFSET


def encode_lexeme(raw_id: int) -> int:
    return raw_id + LEXEME_OFFSET


def encode_form(lexeme_id: int, form_index: int) -> int:
    return encode_lexeme(lexeme_id) + form_index * SUB_INDEX_MULTIPLIER


def encode_sense(lexeme_id: int, sense_index: int) -> int:
    return encode_lexeme(lexeme_id) + sense_index * SUB_INDEX_MULTIPLIER + SENSE_OFFSET
