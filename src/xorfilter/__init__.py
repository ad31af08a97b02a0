"""
XOR Filter - Static probabilistic set membership.

This package builds compact, immutable XOR filters with:
- Constant-time membership queries (three table reads, two XORs)
- No false negatives
- False positive rate of about 2^-L for L-bit fingerprints (8/16/32/64)
- Reproducible construction from an explicit seed
- Compact msgpack serialization
"""

__version__ = "0.1.0"

from xorfilter.config import FilterConfig
from xorfilter.exceptions import (
    ConstructionExhausted,
    EmptyInputError,
    FilterFormatError,
    XorFilterError,
)
from xorfilter.hashing import HashParameters
from xorfilter.xor_filter import (
    XorFilter,
    XorFilter8,
    XorFilter16,
    XorFilter32,
    XorFilter64,
    build_xor_filter,
)

__all__ = [
    "XorFilter",
    "XorFilter8",
    "XorFilter16",
    "XorFilter32",
    "XorFilter64",
    "build_xor_filter",
    "FilterConfig",
    "HashParameters",
    "XorFilterError",
    "EmptyInputError",
    "ConstructionExhausted",
    "FilterFormatError",
]
