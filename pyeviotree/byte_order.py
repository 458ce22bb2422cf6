import struct
import sys
from enum import Enum
from typing import Union

import numpy as np


class ByteOrder(Enum):
    """
    Byte order of an EVIO buffer.

    The values are the struct/numpy prefix characters, so ``order.value`` can be
    glued straight onto a struct format ('>I') or a numpy dtype ('>u4').
    """
    BIG_ENDIAN = '>'
    LITTLE_ENDIAN = '<'

    @classmethod
    def local(cls) -> 'ByteOrder':
        """Byte order of the running machine."""
        return cls.LITTLE_ENDIAN if sys.byteorder == 'little' else cls.BIG_ENDIAN

    @classmethod
    def from_value(cls, value: Union['ByteOrder', str, None]) -> 'ByteOrder':
        """
        Normalize the endian arguments accepted across the package.

        Args:
            value: ByteOrder, '<', '>', 'little', 'big' or None (local order)

        Returns:
            ByteOrder member
        """
        if value is None:
            return cls.local()
        if isinstance(value, ByteOrder):
            return value
        if value in ('<', 'little'):
            return cls.LITTLE_ENDIAN
        if value in ('>', 'big'):
            return cls.BIG_ENDIAN
        raise ValueError(f"Unknown byte order: {value!r}")

    @property
    def char(self) -> str:
        return self.value

    def opposite(self) -> 'ByteOrder':
        if self is ByteOrder.BIG_ENDIAN:
            return ByteOrder.LITTLE_ENDIAN
        return ByteOrder.BIG_ENDIAN

    def is_local(self) -> bool:
        return self is ByteOrder.local()

    def __str__(self) -> str:
        return 'big endian' if self is ByteOrder.BIG_ENDIAN else 'little endian'


def swap16(value: int) -> int:
    """Swap the bytes of a 16 bit unsigned value."""
    return ((value & 0xff) << 8) | ((value >> 8) & 0xff)


def swap32(value: int) -> int:
    """Swap the bytes of a 32 bit unsigned value."""
    return int.from_bytes((value & 0xffffffff).to_bytes(4, 'little'), 'big')


def swap64(value: int) -> int:
    """Swap the bytes of a 64 bit unsigned value."""
    return int.from_bytes((value & 0xffffffffffffffff).to_bytes(8, 'little'), 'big')


def swap_array(data: bytes, width: int) -> bytes:
    """
    Byte-swap every ``width`` sized element of ``data``.

    Args:
        data: Raw bytes, a whole number of elements long
        width: Element size in bytes (1, 2, 4 or 8)

    Returns:
        Swapped copy of the data
    """
    if width == 1 or not data:
        return bytes(data)
    if len(data) % width:
        raise ValueError(f"Cannot swap {len(data)} bytes in {width} byte elements")
    return np.frombuffer(data, dtype=f'u{width}').byteswap().tobytes()


def read_uint32(buffer, offset: int, order: ByteOrder) -> int:
    return struct.unpack_from(order.char + 'I', buffer, offset)[0]


def read_uint16(buffer, offset: int, order: ByteOrder) -> int:
    return struct.unpack_from(order.char + 'H', buffer, offset)[0]


def write_uint32(buffer, offset: int, value: int, order: ByteOrder) -> None:
    struct.pack_into(order.char + 'I', buffer, offset, value & 0xffffffff)
