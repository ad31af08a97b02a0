"""
Hypergraph peeling for XOR filter construction.

Each key is a hyperedge joining its three slots. A slot referenced by exactly
one remaining key pins that key down, so the key can be removed ("peeled").
Peeling succeeds when every key is removed; otherwise a cyclic core remains
and the caller has to retry with different hash seeds.
"""
from collections import deque
from typing import List, Optional, Sequence, Tuple

from xorfilter.hashing import SlotTriple


PeelingOrder = List[Tuple[int, int]]


def peel(triples: Sequence[SlotTriple], table_size: int) -> Optional[PeelingOrder]:
    """
    Compute a peeling order for the given slot triples.

    The set of keys referencing each slot is tracked as a reference count plus
    the XOR of the referencing key indices: whenever the count is one, the XOR
    is exactly the index of the sole remaining key.

    Args:
        triples: Slot triple of every key, indexed by key position
        table_size: Number of table slots

    Returns:
        ``(key_index, unique_slot)`` pairs in peel order, or None if the
        hypergraph cannot be fully peeled
    """
    counts = [0] * table_size
    key_xor = [0] * table_size

    for key_index, triple in enumerate(triples):
        for slot in triple:
            counts[slot] += 1
            key_xor[slot] ^= key_index

    lone_slots = deque(slot for slot in range(table_size) if counts[slot] == 1)
    order: PeelingOrder = []

    while lone_slots:
        slot = lone_slots.popleft()

        # An earlier peel may have emptied this slot since it was queued
        if counts[slot] != 1:
            continue

        key_index = key_xor[slot]
        order.append((key_index, slot))

        for other in triples[key_index]:
            counts[other] -= 1
            key_xor[other] ^= key_index
            if counts[other] == 1:
                lone_slots.append(other)

    if len(order) != len(triples):
        return None
    return order
