"""XOR filter exceptions."""


class XorFilterError(Exception):
    """Base exception for XOR filter errors."""


class EmptyInputError(XorFilterError, ValueError):
    """Raised when a filter is built from zero keys."""

    def __init__(self, message: str = "cannot build an XOR filter from an empty key set"):
        super().__init__(message)


class ConstructionExhausted(XorFilterError, RuntimeError):
    """Raised when no peelable hash seeds were found within the retry budget."""

    def __init__(self, key_count: int, table_size: int, attempts: int):
        self.key_count = key_count
        self.table_size = table_size
        self.attempts = attempts
        super().__init__(
            f"failed to construct XOR filter for {key_count} keys after "
            f"{attempts} attempts (final table size {table_size})"
        )


class FilterFormatError(XorFilterError, ValueError):
    """Serialized filter data is malformed."""
