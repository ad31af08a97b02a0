"""
Hash family and fingerprint functions for XOR filters.

Each filter table is split into three contiguous bands, and each of the three
seeded hash functions only ever lands inside its own band. A key therefore
always maps to three distinct slots, one per band.
"""
import random
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Tuple, Union

import mmh3
import xxhash


KeyLike = Union[bytes, bytearray, memoryview, str]
SlotTriple = Tuple[int, int, int]

SEED_BITS = 32
_MASK32 = 0xFFFFFFFF


def normalize_key(key: KeyLike) -> bytes:
    """
    Convert a key to immutable bytes.

    Args:
        key: Bytes-like object, or a string (encoded as UTF-8)

    Returns:
        Key as bytes

    Raises:
        TypeError: If the key is not bytes-like or a string
    """
    if isinstance(key, bytes):
        return key
    if isinstance(key, (bytearray, memoryview)):
        return bytes(key)
    if isinstance(key, str):
        return key.encode('utf-8')
    raise TypeError(f"keys must be bytes-like or str, not {type(key).__name__}")


def deduplicate(keys: Iterable[KeyLike]) -> List[bytes]:
    """
    Normalize keys and drop duplicates by content, keeping first-seen order.

    Args:
        keys: Keys to deduplicate

    Returns:
        List of distinct keys
    """
    return list(dict.fromkeys(normalize_key(key) for key in keys))


def partition_bands(table_size: int) -> Tuple[Tuple[int, int], ...]:
    """
    Split a table into three contiguous bands.

    The first band takes the extra slot when ``table_size % 3 >= 1`` and the
    second band takes one when ``table_size % 3 == 2``.

    Args:
        table_size: Number of slots (at least 3)

    Returns:
        Three ``(start, width)`` pairs covering ``[0, table_size)``
    """
    if table_size < 3:
        raise ValueError("table_size must be at least 3")

    base, remainder = divmod(table_size, 3)
    width0 = base + (1 if remainder >= 1 else 0)
    width1 = base + (1 if remainder == 2 else 0)
    width2 = table_size - width0 - width1

    return ((0, width0), (width0, width1), (width0 + width1, width2))


def hash0(seed: int, key: bytes) -> int:
    """Seeded 32-bit xxHash."""
    return xxhash.xxh32_intdigest(key, seed=seed)


def hash1(seed: int, key: bytes) -> int:
    """Seeded 32-bit MurmurHash3."""
    return mmh3.hash(key, seed, signed=False)


def hash2(seed: int, key: bytes) -> int:
    """Low 32 bits of seeded 64-bit xxHash."""
    return xxhash.xxh64_intdigest(key, seed=seed) & _MASK32


HASH_FUNCTIONS: Tuple[Callable[[int, bytes], int], ...] = (hash0, hash1, hash2)


@dataclass(frozen=True)
class HashParameters:
    """Table size and seeds that fully determine a key's slot triple."""

    table_size: int
    seeds: Tuple[int, int, int]

    def __post_init__(self):
        if self.table_size < 3:
            raise ValueError("table_size must be at least 3")
        if len(self.seeds) != 3:
            raise ValueError("exactly three seeds are required")
        for seed in self.seeds:
            if not isinstance(seed, int) or isinstance(seed, bool):
                raise ValueError(f"seed must be an integer: {seed!r}")
            if not 0 <= seed <= _MASK32:
                raise ValueError(f"seed out of 32-bit range: {seed}")
        # Normalise lists (e.g. from msgpack) to a tuple
        object.__setattr__(self, 'seeds', tuple(self.seeds))
        object.__setattr__(self, '_bands', partition_bands(self.table_size))

    @classmethod
    def generate(cls, table_size: int, rng: random.Random) -> "HashParameters":
        """
        Draw three fresh seeds from a random source.

        Args:
            table_size: Number of table slots
            rng: Random source to draw the seeds from

        Returns:
            New hash parameters
        """
        seeds = (
            rng.getrandbits(SEED_BITS),
            rng.getrandbits(SEED_BITS),
            rng.getrandbits(SEED_BITS),
        )
        return cls(table_size=table_size, seeds=seeds)

    @property
    def bands(self) -> Tuple[Tuple[int, int], ...]:
        """The ``(start, width)`` of each band."""
        return self._bands

    def slot_triple(self, key: bytes) -> SlotTriple:
        """
        Map a key to one slot index in each band.

        Args:
            key: Key bytes

        Returns:
            ``(i0, i1, i2)`` with ``i0`` in band 0, ``i1`` in band 1 and
            ``i2`` in band 2
        """
        (start0, width0), (start1, width1), (start2, width2) = self._bands
        seed0, seed1, seed2 = self.seeds
        return (
            start0 + hash0(seed0, key) % width0,
            start1 + hash1(seed1, key) % width1,
            start2 + hash2(seed2, key) % width2,
        )


def fingerprint8(key: bytes) -> int:
    """8-bit fingerprint from CRC-32."""
    return zlib.crc32(key) & 0xFF


def fingerprint16(key: bytes) -> int:
    """16-bit fingerprint from CRC-32."""
    return zlib.crc32(key) & 0xFFFF


def fingerprint32(key: bytes) -> int:
    """32-bit fingerprint (CRC-32)."""
    return zlib.crc32(key) & _MASK32


def fingerprint64(key: bytes) -> int:
    """64-bit fingerprint from unseeded xxHash64."""
    return xxhash.xxh64_intdigest(key)


FINGERPRINTS: Dict[int, Callable[[bytes], int]] = {
    8: fingerprint8,
    16: fingerprint16,
    32: fingerprint32,
    64: fingerprint64,
}

# array.array typecodes holding at least the given number of bits
SLOT_TYPECODES: Dict[int, str] = {
    8: 'B',
    16: 'H',
    32: 'I',
    64: 'Q',
}
