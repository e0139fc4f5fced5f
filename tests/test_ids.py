"""
Tests for the unified identifier space.
"""

from wd2sql.ids import (
    encode_form, encode_item, encode_lexeme, encode_property, encode_sense
)


class TestNamespaces:
    """Items, properties and lexemes live in separate ranges."""

    def test_item_keeps_its_number(self):
        assert encode_item(42) == 42

    def test_property_offset(self):
        assert encode_property(31) == 1_000_000_031

    def test_lexeme_offset(self):
        assert encode_lexeme(7) == 2_000_000_007

    def test_ranges_do_not_overlap(self):
        largest = 999_999_999

        assert encode_item(largest) < encode_property(0)
        assert encode_property(largest) < encode_lexeme(0)

    def test_items_below_one_billion(self):
        for raw_id in (0, 1, 5, 123_456_789, 999_999_999):
            assert 0 <= encode_item(raw_id) < 1_000_000_000
            assert 1_000_000_000 <= encode_property(raw_id) < 2_000_000_000
            assert encode_lexeme(raw_id) >= 2_000_000_000


class TestFormsAndSenses:
    """Forms and senses of a lexeme get their own slots."""

    def test_exact_values(self):
        assert encode_form(7, 2) == 2_000_000_007 + 200_000_000_000
        assert encode_sense(7, 1) == 2_000_000_007 + 100_000_000_000 + 10_000_000_000

    def test_form_and_sense_with_same_index_differ(self):
        for index in range(10):
            assert encode_form(1234, index) != encode_sense(1234, index)

    def test_no_collisions_across_indices(self):
        keys = []
        for lexeme_id in (1, 2, 999_999, 50_000_000):
            for index in range(1, 25):
                keys.append(encode_form(lexeme_id, index))
                keys.append(encode_sense(lexeme_id, index))

        assert len(keys) == len(set(keys))

    def test_sub_entities_stay_within_signed_64_bits(self):
        assert encode_sense(999_999_999, 1000) < 2 ** 63
