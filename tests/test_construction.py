"""
Tests for the construction controller and table filling.
"""
import random

import pytest
from structlog.testing import capture_logs

from xorfilter.config import FilterConfig
from xorfilter.construction import ConstructionController, fill_table
from xorfilter.exceptions import ConstructionExhausted, EmptyInputError
from xorfilter.hashing import fingerprint32
from xorfilter.peeling import peel


def _check_invariant(params, table, keys, fingerprint):
    for key in keys:
        i0, i1, i2 = params.slot_triple(key)
        assert table[i0] ^ table[i1] ^ table[i2] == fingerprint(key)


class TestFillTable:
    """Test cases for fill_table."""

    def test_fill_satisfies_xor_invariant(self):
        """Test filling from a hand-built peeling order."""
        triples = [(0, 2, 4), (0, 3, 4), (1, 3, 5)]
        fingerprints = [0xAB, 0x00, 0xFF]

        order = peel(triples, 6)
        assert order is not None

        table = fill_table(order, triples, fingerprints, 6, 'B')

        assert len(table) == 6
        for triple, fp in zip(triples, fingerprints):
            a, b, c = triple
            assert table[a] ^ table[b] ^ table[c] == fp

    def test_fill_zero_fingerprints(self):
        """Test that zero fingerprints need no special handling."""
        triples = [(0, 1, 2)]

        table = fill_table(peel(triples, 3), triples, [0], 3, 'I')

        assert list(table) == [0, 0, 0]

    def test_fill_64_bit_values(self):
        """Test that full 64-bit fingerprints fit the table."""
        triples = [(0, 2, 4), (1, 3, 5)]
        fingerprints = [2 ** 64 - 1, 2 ** 63]

        table = fill_table(peel(triples, 6), triples, fingerprints, 6, 'Q')

        assert table[0] ^ table[2] ^ table[4] == 2 ** 64 - 1
        assert table[1] ^ table[3] ^ table[5] == 2 ** 63


class TestConstructionController:
    """Test cases for ConstructionController."""

    def test_construct(self):
        """Test building a table for distinct keys."""
        keys = [f"key_{i}".encode() for i in range(1000)]
        controller = ConstructionController()

        params, table = controller.construct(keys, fingerprint32, 'I', random.Random(1))

        assert params.table_size >= 1230
        assert len(table) == params.table_size
        _check_invariant(params, table, keys, fingerprint32)

    def test_construct_empty(self):
        """Test that zero keys raise EmptyInputError."""
        controller = ConstructionController()

        with pytest.raises(EmptyInputError):
            controller.construct([], fingerprint32, 'I', random.Random(1))

    def test_construct_deterministic(self):
        """Test that the same random source gives the same table."""
        keys = [f"key_{i}".encode() for i in range(500)]
        controller = ConstructionController()

        params1, table1 = controller.construct(keys, fingerprint32, 'I', random.Random(5))
        params2, table2 = controller.construct(keys, fingerprint32, 'I', random.Random(5))

        assert params1 == params2
        assert table1 == table2

    def test_exhausted(self):
        """Test that running out of attempts raises ConstructionExhausted."""
        # Two keys in a three-slot table always share all three slots
        config = FilterConfig(retries_per_size=5, max_attempts=5)
        controller = ConstructionController(config)

        with pytest.raises(ConstructionExhausted) as exc_info:
            controller.construct([b"a", b"b"], fingerprint32, 'I', random.Random(1))

        assert exc_info.value.key_count == 2
        assert exc_info.value.table_size == 3
        assert exc_info.value.attempts == 5

    def test_table_grows_after_retries(self):
        """Test that repeated failures at one size grow the table."""
        config = FilterConfig(retries_per_size=3, max_attempts=1000)
        controller = ConstructionController(config)
        keys = [b"a", b"b"]

        with capture_logs() as logs:
            params, table = controller.construct(keys, fingerprint32, 'I', random.Random(3))

        assert params.table_size > 3
        _check_invariant(params, table, keys, fingerprint32)

        grown = [log for log in logs if log["event"] == "table_grown"]
        assert grown
        assert grown[0]["table_size"] == 4
        assert grown[0]["attempts"] == 3

    def test_exhausted_logs_error(self):
        """Test that exhaustion is logged before raising."""
        config = FilterConfig(retries_per_size=1, max_attempts=1)
        controller = ConstructionController(config)

        with capture_logs() as logs:
            with pytest.raises(ConstructionExhausted):
                controller.construct([b"a", b"b"], fingerprint32, 'I', random.Random(1))

        assert any(log["event"] == "construction_exhausted" for log in logs)

    def test_grow(self):
        """Test the growth step rounds up."""
        controller = ConstructionController(FilterConfig(growth_factor=1.5))

        assert controller._grow(3) == 5
        assert controller._grow(1000) == 1500
        assert ConstructionController()._grow(3) == 4

    def test_invalid_config(self):
        """Test that the controller validates its configuration."""
        with pytest.raises(ValueError):
            ConstructionController(FilterConfig(max_attempts=0))
