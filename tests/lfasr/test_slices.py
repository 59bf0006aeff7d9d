"""Tests for slice id generation."""

import pytest

from lfasr.slices import SLICE_ID_SEED, SliceIdGenerator


class TestSliceIdGenerator:
    def test_first_id_follows_seed(self):
        gen = SliceIdGenerator()

        assert gen.current == SLICE_ID_SEED
        assert gen.next() == "aaaaaaaaaa"
        assert gen.next() == "aaaaaaaaab"

    def test_carry_into_next_position(self):
        gen = SliceIdGenerator("aaaaaaaaaz")

        assert gen.next() == "aaaaaaaaba"

    def test_carry_across_several_positions(self):
        gen = SliceIdGenerator("aaaaaaazzz")

        assert gen.next() == "aaaaaabaaa"

    def test_ids_strictly_increasing_and_distinct(self):
        gen = SliceIdGenerator()
        ids = [gen.next() for _ in range(26**2 + 5)]

        assert all(a < b for a, b in zip(ids, ids[1:]))
        assert len(set(ids)) == len(ids)
        assert all(len(i) == len(SLICE_ID_SEED) for i in ids)

    def test_exhaustion_raises_without_wrapping(self):
        gen = SliceIdGenerator("zz")

        with pytest.raises(OverflowError):
            gen.next()

        assert gen.current == "zz"

    def test_generators_are_independent(self):
        first = SliceIdGenerator()
        second = SliceIdGenerator()
        first.next()
        first.next()

        assert second.next() == "aaaaaaaaaa"

    def test_iterator_protocol(self):
        gen = SliceIdGenerator()

        assert [next(gen) for _ in range(3)] == ["aaaaaaaaaa", "aaaaaaaaab", "aaaaaaaaac"]
