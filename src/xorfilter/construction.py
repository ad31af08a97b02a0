"""
XOR filter construction: seed retries, table growth and slot filling.
"""
import math
import random
from array import array
from typing import Callable, List, Optional, Sequence, Tuple

import structlog

from xorfilter.config import FilterConfig
from xorfilter.exceptions import ConstructionExhausted, EmptyInputError
from xorfilter.hashing import HashParameters, SlotTriple
from xorfilter.peeling import PeelingOrder, peel


def fill_table(
    order: PeelingOrder,
    triples: Sequence[SlotTriple],
    fingerprints: Sequence[int],
    table_size: int,
    typecode: str,
) -> array:
    """
    Assign slot values so every key's three slots XOR to its fingerprint.

    Keys are processed in reverse peel order. A key's unique slot is not
    used by any key peeled after it, so each write leaves the slots of every
    already-filled key unchanged.

    Args:
        order: Peeling order from :func:`xorfilter.peeling.peel`
        triples: Slot triple of every key
        fingerprints: Fingerprint of every key
        table_size: Number of table slots
        typecode: ``array`` typecode for the slot width

    Returns:
        Filled table
    """
    table = array(typecode, [0]) * table_size

    for key_index, slot in reversed(order):
        value = fingerprints[key_index]
        for other in triples[key_index]:
            if other != slot:
                value ^= table[other]
        table[slot] = value

    return table


class ConstructionController:
    """Drives hashing and peeling until a usable table is found."""

    def __init__(self, config: Optional[FilterConfig] = None):
        """
        Initialize the controller.

        Args:
            config: Filter configuration (uses defaults if not provided)
        """
        self.config = config or FilterConfig()
        self.config.validate()
        self.logger = structlog.get_logger()

    def construct(
        self,
        keys: Sequence[bytes],
        fingerprint: Callable[[bytes], int],
        typecode: str,
        rng: random.Random,
    ) -> Tuple[HashParameters, array]:
        """
        Build a filled table for a set of distinct keys.

        Args:
            keys: Distinct keys
            fingerprint: Fingerprint function for the slot width
            typecode: ``array`` typecode for the slot width
            rng: Random source for every seed draw

        Returns:
            Hash parameters and the filled table

        Raises:
            EmptyInputError: If no keys were given
            ConstructionExhausted: If the retry budget runs out
        """
        num_keys = len(keys)
        if num_keys == 0:
            raise EmptyInputError()

        table_size = self.config.initial_table_size(num_keys)
        attempts = 0
        size_attempts = 0

        while attempts < self.config.max_attempts:
            if size_attempts >= self.config.retries_per_size:
                table_size = self._grow(table_size)
                size_attempts = 0
                self.logger.info(
                    "table_grown",
                    keys=num_keys,
                    table_size=table_size,
                    attempts=attempts,
                )

            params = HashParameters.generate(table_size, rng)
            triples = [params.slot_triple(key) for key in keys]
            order = peel(triples, table_size)
            attempts += 1
            size_attempts += 1

            if order is None:
                self.logger.debug(
                    "peeling_failed",
                    table_size=table_size,
                    attempt=attempts,
                )
                continue

            fingerprints: List[int] = [fingerprint(key) for key in keys]
            table = fill_table(order, triples, fingerprints, table_size, typecode)

            self.logger.debug(
                "construction_succeeded",
                keys=num_keys,
                table_size=table_size,
                attempts=attempts,
            )
            return params, table

        self.logger.error(
            "construction_exhausted",
            keys=num_keys,
            table_size=table_size,
            attempts=attempts,
        )
        raise ConstructionExhausted(num_keys, table_size, attempts)

    def _grow(self, table_size: int) -> int:
        """Next table size after a run of failed attempts."""
        return math.ceil(table_size * self.config.growth_factor)
