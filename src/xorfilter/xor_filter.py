"""
XOR filter implementation for static set membership.

An XOR filter stores an L-bit fingerprint for every key implicitly, as the XOR
of three table slots. Membership queries read three slots and compare the XOR
against the query key's fingerprint. False negatives are impossible; false
positives occur with probability about 2^-L.
"""
import random
import sys
from array import array
from typing import Dict, Iterable, Optional, Tuple, Type

import msgpack
import structlog

from xorfilter.config import FilterConfig
from xorfilter.construction import ConstructionController
from xorfilter.exceptions import EmptyInputError, FilterFormatError
from xorfilter.hashing import (
    FINGERPRINTS,
    SLOT_TYPECODES,
    HashParameters,
    KeyLike,
    deduplicate,
    normalize_key,
)


logger = structlog.get_logger()


class XorFilter:
    """
    Immutable probabilistic set built from a fixed collection of keys.

    Use :meth:`build` to construct a filter. Concrete subclasses fix the
    fingerprint width; building through the base class picks the subclass
    matching ``fingerprint_bits``.
    """

    FINGERPRINT_BITS: Optional[int] = None

    MAGIC = b"XORF"
    FORMAT_VERSION = 1

    def __init__(
        self,
        hash_parameters: HashParameters,
        table: array,
        num_keys: int,
        fingerprint_bits: Optional[int] = None,
    ):
        """
        Wrap an already filled table.

        Args:
            hash_parameters: Parameters the table was built with
            table: Filled slot table
            num_keys: Number of distinct keys the table encodes
            fingerprint_bits: Fingerprint width (defaults to the class width)

        Raises:
            ValueError: If the width is unsupported or the table does not match
        """
        bits = fingerprint_bits if fingerprint_bits is not None else self.FINGERPRINT_BITS
        if bits not in FINGERPRINTS:
            raise ValueError(f"Unsupported fingerprint width: {bits}")
        if self.FINGERPRINT_BITS is not None and bits != self.FINGERPRINT_BITS:
            raise ValueError(
                f"{type(self).__name__} uses {self.FINGERPRINT_BITS}-bit fingerprints, not {bits}"
            )
        if len(table) != hash_parameters.table_size:
            raise ValueError("table length does not match hash parameters")
        if num_keys < 1:
            raise ValueError("num_keys must be positive")

        self.fingerprint_bits = bits
        self.num_keys = num_keys
        self._params = hash_parameters
        self._table = array(SLOT_TYPECODES[bits], table)
        self._fingerprint = FINGERPRINTS[bits]

    @classmethod
    def build(
        cls,
        keys: Iterable[KeyLike],
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        fingerprint_bits: Optional[int] = None,
        config: Optional[FilterConfig] = None,
    ) -> "XorFilter":
        """
        Build a filter from a collection of keys.

        Duplicate keys are removed before construction. Passing ``seed`` (or
        a seeded ``rng``) makes construction reproducible: the same keys and
        seed always produce the same table.

        Args:
            keys: Keys to store (bytes-like or str)
            seed: Seed for the hash-seed generator
            rng: Random source to draw hash seeds from (takes precedence over ``seed``)
            fingerprint_bits: Fingerprint width when building through the base class
            config: Construction configuration (uses defaults if not provided)

        Returns:
            Filter containing every key

        Raises:
            EmptyInputError: If ``keys`` is empty
            ConstructionExhausted: If no table could be built within the retry budget
            ValueError: If the fingerprint width is unsupported
        """
        config = config or FilterConfig()
        filter_cls = cls._resolve_class(fingerprint_bits, config)
        bits = filter_cls.FINGERPRINT_BITS

        distinct = deduplicate(keys)
        if not distinct:
            raise EmptyInputError()

        if rng is None:
            rng = random.Random(seed)

        controller = ConstructionController(config)
        params, table = controller.construct(
            distinct, FINGERPRINTS[bits], SLOT_TYPECODES[bits], rng
        )

        xor_filter = filter_cls(params, table, num_keys=len(distinct))
        logger.info(
            "xor_filter_built",
            keys=len(distinct),
            table_size=params.table_size,
            fingerprint_bits=bits,
        )
        return xor_filter

    @classmethod
    def _resolve_class(
        cls, fingerprint_bits: Optional[int], config: FilterConfig
    ) -> Type["XorFilter"]:
        """Concrete filter class for a build request."""
        if cls.FINGERPRINT_BITS is not None:
            if fingerprint_bits is not None and fingerprint_bits != cls.FINGERPRINT_BITS:
                raise ValueError(
                    f"{cls.__name__} uses {cls.FINGERPRINT_BITS}-bit fingerprints, "
                    f"not {fingerprint_bits}"
                )
            return cls

        bits = fingerprint_bits if fingerprint_bits is not None else config.fingerprint_bits
        if bits not in FILTER_CLASSES:
            raise ValueError(f"Unsupported fingerprint width: {bits}")
        return FILTER_CLASSES[bits]

    @property
    def hash_parameters(self) -> HashParameters:
        """Hash parameters used to build the table."""
        return self._params

    @property
    def table_size(self) -> int:
        """Number of slots in the table."""
        return self._params.table_size

    @property
    def seeds(self) -> Tuple[int, int, int]:
        """The three hash seeds."""
        return self._params.seeds

    @property
    def size_bytes(self) -> int:
        """Memory taken by the slot values."""
        return self.table_size * self.fingerprint_bits // 8

    @property
    def bits_per_key(self) -> float:
        """Table bits spent per stored key."""
        return self.table_size * self.fingerprint_bits / self.num_keys

    @property
    def expected_false_positive_rate(self) -> float:
        """Probability that a non-member is reported as a member."""
        return 2.0 ** -self.fingerprint_bits

    def contains(self, key: KeyLike) -> bool:
        """
        Check if a key might be in the set.

        Args:
            key: Key to check

        Returns:
            True if the key might be in the set (possible false positive),
            False if the key is definitely not in the set
        """
        key = normalize_key(key)
        i0, i1, i2 = self._params.slot_triple(key)
        table = self._table
        return (table[i0] ^ table[i1] ^ table[i2]) == self._fingerprint(key)

    def is_member(self, key: KeyLike) -> bool:
        """Alias for :meth:`contains`."""
        return self.contains(key)

    def __contains__(self, key: KeyLike) -> bool:
        """Support 'in' operator."""
        return self.contains(key)

    def slot_values(self) -> Tuple[int, ...]:
        """Copy of the table contents."""
        return tuple(self._table)

    def serialize(self) -> bytes:
        """
        Serialize the filter to bytes.

        The table size, seeds, width and slot values are the complete state:
        a deserialized filter answers every query exactly like this one.

        Returns:
            Serialized filter as bytes
        """
        slots = array(self._table.typecode, self._table)
        if sys.byteorder == 'big':
            slots.byteswap()

        data = {
            "magic": self.MAGIC,
            "version": self.FORMAT_VERSION,
            "fingerprint_bits": self.fingerprint_bits,
            "table_size": self.table_size,
            "seeds": list(self.seeds),
            "num_keys": self.num_keys,
            "slots": slots.tobytes(),
        }
        return msgpack.packb(data, use_bin_type=True)

    @classmethod
    def deserialize(cls, data: bytes) -> "XorFilter":
        """
        Deserialize a filter from bytes.

        Args:
            data: Serialized filter bytes

        Returns:
            Filter of the concrete class matching the stored width

        Raises:
            FilterFormatError: If data is invalid
        """
        try:
            unpacked = msgpack.unpackb(data, raw=False)
        except (ValueError, TypeError, msgpack.exceptions.UnpackException) as e:
            raise FilterFormatError(f"Invalid serialized data: {e}") from e

        if not isinstance(unpacked, dict):
            raise FilterFormatError("Invalid serialized data: expected a map")
        if unpacked.get("magic") != cls.MAGIC:
            raise FilterFormatError("Invalid serialized data: bad magic")
        if unpacked.get("version") != cls.FORMAT_VERSION:
            raise FilterFormatError(
                f"Unsupported format version: {unpacked.get('version')}"
            )

        bits = unpacked.get("fingerprint_bits")
        if not isinstance(bits, int) or bits not in FILTER_CLASSES:
            raise FilterFormatError(f"Unsupported fingerprint width: {bits}")
        filter_cls = FILTER_CLASSES[bits]
        if cls.FINGERPRINT_BITS is not None and cls is not filter_cls:
            raise FilterFormatError(
                f"{cls.__name__} cannot load a {bits}-bit filter"
            )

        if not isinstance(unpacked.get("table_size"), int):
            raise FilterFormatError("Invalid serialized data: table_size must be an integer")

        try:
            params = HashParameters(
                table_size=unpacked["table_size"],
                seeds=tuple(unpacked["seeds"]),
            )
            num_keys = unpacked["num_keys"]
            raw_slots = unpacked["slots"]
        except (KeyError, TypeError, ValueError) as e:
            raise FilterFormatError(f"Invalid serialized data: {e}") from e

        typecode = SLOT_TYPECODES[bits]
        if not isinstance(raw_slots, bytes):
            raise FilterFormatError("Invalid serialized data: slots must be bytes")
        if len(raw_slots) != params.table_size * array(typecode).itemsize:
            raise FilterFormatError("Invalid serialized data: size mismatch")

        if not isinstance(num_keys, int) or isinstance(num_keys, bool):
            raise FilterFormatError("Invalid serialized data: num_keys must be an integer")
        if num_keys < 1:
            raise FilterFormatError("Invalid serialized data: num_keys must be positive")

        table = array(typecode)
        table.frombytes(raw_slots)
        if sys.byteorder == 'big':
            table.byteswap()

        return filter_cls(params, table, num_keys=num_keys)

    def save(self, path: str):
        """Write the serialized filter to a file."""
        with open(path, "wb") as f:
            f.write(self.serialize())

    @classmethod
    def load(cls, path: str) -> "XorFilter":
        """Read a filter written by :meth:`save`."""
        with open(path, "rb") as f:
            xor_filter = cls.deserialize(f.read())
        logger.debug("xor_filter_loaded", path=path, table_size=xor_filter.table_size)
        return xor_filter

    def get_stats(self) -> dict:
        """
        Get statistics about the filter.

        Returns:
            Dictionary with filter statistics
        """
        return {
            'num_keys': self.num_keys,
            'table_size': self.table_size,
            'fingerprint_bits': self.fingerprint_bits,
            'size_bytes': self.size_bytes,
            'bits_per_key': self.bits_per_key,
            'expected_false_positive_rate': self.expected_false_positive_rate,
            'seeds': self.seeds,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, XorFilter):
            return NotImplemented
        return (
            self.fingerprint_bits == other.fingerprint_bits
            and self._params == other._params
            and self._table == other._table
        )

    __hash__ = None

    def __repr__(self) -> str:
        """String representation."""
        return (f"{type(self).__name__}(keys={self.num_keys}, "
                f"slots={self.table_size}, "
                f"bits={self.fingerprint_bits}, "
                f"bits_per_key={self.bits_per_key:.2f})")


class XorFilter8(XorFilter):
    """XOR filter with 8-bit fingerprints (false positive rate about 0.39%)."""

    FINGERPRINT_BITS = 8


class XorFilter16(XorFilter):
    """XOR filter with 16-bit fingerprints (false positive rate about 0.0015%)."""

    FINGERPRINT_BITS = 16


class XorFilter32(XorFilter):
    """XOR filter with 32-bit fingerprints."""

    FINGERPRINT_BITS = 32


class XorFilter64(XorFilter):
    """XOR filter with 64-bit fingerprints."""

    FINGERPRINT_BITS = 64


FILTER_CLASSES: Dict[int, Type[XorFilter]] = {
    8: XorFilter8,
    16: XorFilter16,
    32: XorFilter32,
    64: XorFilter64,
}


def build_xor_filter(
    keys: Iterable[KeyLike],
    seed: Optional[int] = None,
    fingerprint_bits: int = 32,
    config: Optional[FilterConfig] = None,
) -> XorFilter:
    """Build an XOR filter of the given fingerprint width."""
    return XorFilter.build(keys, seed=seed, fingerprint_bits=fingerprint_bits, config=config)
