"""Exception types raised by the pyeviotree package."""


class EvioException(Exception):
    """Base exception for all errors raised by this package."""
    pass


class DataTypeError(EvioException, TypeError):
    """Requested data kind does not match the structure's data type."""
    pass


class EvioOverflowError(EvioException, OverflowError):
    """A count, length or header field exceeds what the format can represent."""
    pass


class BufferTooSmallError(EvioException, ValueError):
    """
    Destination buffer cannot hold what is being written.

    Attributes:
        required (int): Number of bytes needed.
        available (int): Number of bytes left in the destination.
    """
    def __init__(self, required: int, available: int, what: str = "data"):
        super().__init__(f"Buffer too small to write {what}: "
                         f"need {required} bytes, have {available}")
        self.required = required
        self.available = available


class StructureMismatchError(EvioException, ValueError):
    """A child structure is incompatible with its parent's container type."""
    pass


class CompositeFormatError(EvioException, ValueError):
    """Bad composite format string, or composite data that does not fit it."""
    pass
