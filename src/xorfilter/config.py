"""
Configuration for XOR filter construction.
"""
from dataclasses import dataclass, asdict
import json
import math


@dataclass
class FilterConfig:
    """Tuning knobs for building XOR filters."""

    # Fingerprint width in bits (8, 16, 32 or 64)
    fingerprint_bits: int = 32

    # Table sizing
    load_factor: float = 1.23  # Slots per key for the first attempt
    growth_factor: float = 1.15  # Table growth after a size is exhausted

    # Retry budget
    retries_per_size: int = 100  # Seed draws before growing the table
    max_attempts: int = 1000  # Total seed draws across all sizes

    @classmethod
    def from_file(cls, path: str) -> "FilterConfig":
        """Load configuration from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls(**data)

    def to_file(self, path: str):
        """Save configuration to a JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    def validate(self) -> bool:
        """Validate configuration parameters."""
        if self.fingerprint_bits not in (8, 16, 32, 64):
            raise ValueError(
                f"Invalid fingerprint_bits: {self.fingerprint_bits} "
                f"(expected 8, 16, 32 or 64)"
            )

        if self.load_factor < 1.0:
            raise ValueError("load_factor must be at least 1.0")

        if self.growth_factor <= 1.0:
            raise ValueError("growth_factor must be greater than 1.0")

        if self.retries_per_size < 1:
            raise ValueError("retries_per_size must be at least 1")

        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        return True

    def initial_table_size(self, num_keys: int) -> int:
        """Table size for the first construction attempt."""
        return max(3, math.ceil(num_keys * self.load_factor))
