from enum import Enum
from typing import Optional

import numpy as np


class DataType(Enum):
    """
    EVIO content type codes.

    The code sits in the 6 bit type field of bank and segment headers and in
    the 4 bit field of tagsegment headers. Codes 0x21-0x24 only appear inside
    composite data.
    """
    UNKNOWN32 = 0x0
    UINT32 = 0x1
    FLOAT32 = 0x2
    CHARSTAR8 = 0x3
    SHORT16 = 0x4
    USHORT16 = 0x5
    CHAR8 = 0x6
    UCHAR8 = 0x7
    DOUBLE64 = 0x8
    LONG64 = 0x9
    ULONG64 = 0xa
    INT32 = 0xb
    TAGSEGMENT = 0xc
    ALSOSEGMENT = 0xd
    ALSOBANK = 0xe
    COMPOSITE = 0xf
    BANK = 0x10
    SEGMENT = 0x20
    HOLLERIT = 0x21
    NVALUE = 0x22
    nVALUE = 0x23
    mVALUE = 0x24

    @property
    def byte_width(self) -> int:
        """Size of one element in bytes, 0 for opaque or structure types."""
        return _BYTE_WIDTHS.get(self, 0)

    @property
    def numpy_dtype(self) -> Optional[np.dtype]:
        """Native-order numpy dtype for numeric types, None otherwise."""
        return _NUMPY_DTYPES.get(self)

    def is_structure(self) -> bool:
        """True if structures of this type hold other structures."""
        return self in _STRUCTURES

    def is_bank(self) -> bool:
        return self in (DataType.BANK, DataType.ALSOBANK)

    def is_segment(self) -> bool:
        return self in (DataType.SEGMENT, DataType.ALSOSEGMENT)

    def is_tag_segment(self) -> bool:
        return self is DataType.TAGSEGMENT

    def is_integer(self) -> bool:
        return self in _INTEGERS

    def __str__(self) -> str:
        if self is DataType.ALSOBANK:
            return "BANK"
        if self is DataType.ALSOSEGMENT:
            return "SEGMENT"
        return self.name


def get_data_type(code: int) -> DataType:
    """
    Look up a DataType by its code.

    Args:
        code: Raw type value taken from a header

    Returns:
        Matching DataType, or UNKNOWN32 for codes outside the defined ranges
    """
    if code > 0x24 or 0x10 < code < 0x20:
        return DataType.UNKNOWN32
    try:
        return DataType(code)
    except ValueError:
        return DataType.UNKNOWN32


def get_type_name(code: int) -> str:
    return str(get_data_type(code))


_STRUCTURES = frozenset((DataType.BANK, DataType.SEGMENT, DataType.TAGSEGMENT,
                         DataType.ALSOBANK, DataType.ALSOSEGMENT))

_INTEGERS = frozenset((DataType.UINT32, DataType.SHORT16, DataType.USHORT16,
                       DataType.CHAR8, DataType.UCHAR8, DataType.LONG64,
                       DataType.ULONG64, DataType.INT32))

_BYTE_WIDTHS = {
    DataType.UINT32: 4,
    DataType.FLOAT32: 4,
    DataType.SHORT16: 2,
    DataType.USHORT16: 2,
    DataType.CHAR8: 1,
    DataType.UCHAR8: 1,
    DataType.DOUBLE64: 8,
    DataType.LONG64: 8,
    DataType.ULONG64: 8,
    DataType.INT32: 4,
    DataType.HOLLERIT: 4,
    DataType.NVALUE: 4,
    DataType.nVALUE: 2,
    DataType.mVALUE: 1,
}

# Mapping from data types to numpy dtypes
_NUMPY_DTYPES = {
    DataType.UINT32: np.dtype(np.uint32),
    DataType.FLOAT32: np.dtype(np.float32),
    DataType.SHORT16: np.dtype(np.int16),
    DataType.USHORT16: np.dtype(np.uint16),
    DataType.CHAR8: np.dtype(np.int8),
    DataType.UCHAR8: np.dtype(np.uint8),
    DataType.DOUBLE64: np.dtype(np.float64),
    DataType.LONG64: np.dtype(np.int64),
    DataType.ULONG64: np.dtype(np.uint64),
    DataType.INT32: np.dtype(np.int32),
}


class StructureType(Enum):
    """Kind of EVIO structure, identified by the data type of its container."""
    UNKNOWN32 = 0x0
    TAGSEGMENT = 0xc
    SEGMENT = 0x20
    BANK = 0x10

    @property
    def alternate_value(self) -> Optional[int]:
        """The ALSO* code that also identifies this kind, if any."""
        return _ALTERNATES.get(self)

    def __str__(self) -> str:
        return self.name


_ALTERNATES = {
    StructureType.SEGMENT: 0xd,
    StructureType.BANK: 0xe,
}


def get_structure_type(code: int) -> StructureType:
    """Map a type code (primary or ALSO* value) to its StructureType."""
    if code in (0x10, 0xe):
        return StructureType.BANK
    if code in (0x20, 0xd):
        return StructureType.SEGMENT
    if code == 0xc:
        return StructureType.TAGSEGMENT
    return StructureType.UNKNOWN32
