"""
Composite data: a format string plus data laid out according to it.

On the wire one composite item is a tagsegment holding the format string
(CHARSTAR8), followed by a bank of type COMPOSITE holding the data. A
COMPOSITE structure's payload is a run of such items.

Format characters:

    i  32 bit unsigned int      I  32 bit signed int
    F  32 bit float             D  64 bit double
    S  16 bit signed short      s  16 bit unsigned short
    C  8 bit signed char        c  8 bit unsigned char
    L  64 bit signed long       l  64 bit unsigned long
    a  8 bit ASCII (string array)
    A  32 bit Hollerit

A number (max 15) in front of a format or parenthesis repeats it. N, n and m
in front of one take the repeat count from the data instead, as a 32, 16 or
8 bit value. When the format runs out before the data does, processing starts
again from the beginning of the format, except that a single format closing
the last parenthesis repeats until the data ends.
"""
import logging
import struct
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from pyeviotree.byte_order import ByteOrder
from pyeviotree.data_type import DataType
from pyeviotree.exceptions import CompositeFormatError, DataTypeError
from pyeviotree.header import BankHeader, TagSegmentHeader
from pyeviotree.strings import scan_strings, strings_to_raw_bytes, strings_to_raw_size

logger = logging.getLogger(__name__)

_FORMAT_CODES = {
    'i': 1, 'F': 2, 'a': 3, 'S': 4, 's': 5, 'C': 6,
    'c': 7, 'D': 8, 'L': 9, 'l': 10, 'I': 11, 'A': 12,
}

# format code -> (data type, struct character, width in bytes)
_CODE_TYPES = {
    1: (DataType.UINT32, 'I', 4),
    2: (DataType.FLOAT32, 'f', 4),
    3: (DataType.CHARSTAR8, None, 1),
    4: (DataType.SHORT16, 'h', 2),
    5: (DataType.USHORT16, 'H', 2),
    6: (DataType.CHAR8, 'b', 1),
    7: (DataType.UCHAR8, 'B', 1),
    8: (DataType.DOUBLE64, 'd', 8),
    9: (DataType.LONG64, 'q', 8),
    10: (DataType.ULONG64, 'Q', 8),
    11: (DataType.INT32, 'i', 4),
    12: (DataType.HOLLERIT, 'i', 4),
}

# repeat-from-data marker (bits 14-15) -> (data type, struct character, width)
_COUNT_TYPES = {
    1: (DataType.NVALUE, 'I', 4),
    2: (DataType.nVALUE, 'H', 2),
    3: (DataType.mVALUE, 'B', 1),
}

_COUNT_MARKERS = {4: 1, 2: 2, 1: 3}

_PADS = (0, 3, 2, 1)

# Repeat count of a format that runs to the end of the data
_REPEAT_FOREVER = 999999999


def compile_format(fmt: str) -> List[int]:
    """
    Translate a composite format string into its list of format ints.

    Each entry is ``(repeat << 8) | code`` with the repeat-from-data marker in
    bits 14-15. A left parenthesis has code 0 and its repeat count, a right
    parenthesis is 0.

    Args:
        fmt: Format string such as "N(I,2F)" or "3(2S,D)"

    Returns:
        List of ints

    Raises:
        CompositeFormatError: on an illegal or inconsistent format
    """
    ifmt = []
    nr = 0      # repeat count being read
    nn = 1      # 0 when the repeat count comes from data
    nb = 0      # bytes in a repeat count taken from data
    lev = 0     # parenthesis level

    for ch in fmt:
        if ch == ' ':
            continue

        if ch.isdigit():
            if nr < 0:
                raise CompositeFormatError("no negative repeats")
            nr = 10 * max(0, nr) + int(ch)
            if nr > 15:
                raise CompositeFormatError("no more than 15 repeats allowed")

        elif ch == '(':
            if nr < 0:
                raise CompositeFormatError("no negative repeats")
            lev += 1
            if nn == 0:
                ifmt.append(_COUNT_MARKERS[nb] << 14)
            else:
                ifmt.append((max(nn, nr) & 0x3F) << 8)
            nn = 1
            nr = 0
            nb = 0

        elif ch == ')':
            if nr >= 0:
                raise CompositeFormatError("cannot repeat right parenthesis")
            lev -= 1
            if lev < 0:
                raise CompositeFormatError("mismatched number of right/left parentheses")
            ifmt.append(0)
            nr = -1

        elif ch == ',':
            if nr >= 0:
                raise CompositeFormatError("cannot repeat comma")
            nr = 0

        elif ch == 'N':
            nn, nb = 0, 4
        elif ch == 'n':
            nn, nb = 0, 2
        elif ch == 'm':
            nn, nb = 0, 1

        else:
            kf = _FORMAT_CODES.get(ch)
            if kf is None:
                raise CompositeFormatError(f"illegal character {ch!r} in format {fmt!r}")
            if nr < 0:
                raise CompositeFormatError("no negative repeats")
            value = ((max(nn, nr) & 0x3F) << 8) + kf
            if nb > 0:
                value |= _COUNT_MARKERS[nb] << 14
            ifmt.append(value)
            nn = 1
            nb = 0
            nr = -1

    if lev != 0:
        raise CompositeFormatError("mismatched number of right/left parentheses")

    return ifmt


class _Level:
    __slots__ = ('left', 'nrepeat', 'irepeat')

    def __init__(self, left: int, nrepeat: int):
        self.left = left
        self.nrepeat = nrepeat
        self.irepeat = 0


def _format_steps(ifmt: Sequence[int], read_count: Callable[[int], int]) -> Iterator[Tuple[int, int]]:
    """
    Walk a compiled format forever, yielding ``(code, repeat)`` pairs.

    ``read_count(marker)`` is called whenever a repeat count has to be taken
    from the data; it must consume the count and return it.
    """
    nfmt = len(ifmt)
    levels: List[_Level] = []
    imt = 0

    while True:
        while True:
            imt += 1
            if imt > nfmt:
                # End of format, start over
                imt = 0
            elif ifmt[imt - 1] == 0:
                level = levels[-1]
                level.irepeat += 1
                if level.irepeat >= level.nrepeat:
                    levels.pop()
                else:
                    imt = level.left
            else:
                entry = ifmt[imt - 1]
                ncnf = (entry >> 8) & 0x3F
                kcnf = entry & 0xFF
                mcnf = (entry >> 14) & 0x3

                if kcnf == 0:
                    if mcnf:
                        ncnf = read_count(mcnf)
                        mcnf = 0
                    levels.append(_Level(imt, ncnf))
                else:
                    if levels and imt == nfmt - 1 and imt == levels[-1].left + 1:
                        # Only format in the closing parenthesis: repeat to the end
                        ncnf = _REPEAT_FOREVER
                    break

        if ncnf == 0 and mcnf:
            ncnf = read_count(mcnf)

        yield kcnf, ncnf


class _StallGuard:
    """Fails a format walk that cycles without consuming anything."""

    def __init__(self, ifmt: Sequence[int]):
        self.limit = len(ifmt) + 1
        self.count = 0

    def check(self, progressed: bool):
        if progressed:
            self.count = 0
            return
        self.count += 1
        if self.count > self.limit:
            raise CompositeFormatError("composite data does not match its format")


def _decode_items(data: bytes, order: ByteOrder, ifmt: Sequence[int]) -> Tuple[list, list]:
    items = []
    types = []
    pos = 0
    end = len(data)
    o = order.char

    def read_count(marker: int) -> int:
        nonlocal pos
        count_type, code, width = _COUNT_TYPES[marker]
        if pos + width > end:
            raise CompositeFormatError("composite data ends inside a repeat count")
        value = struct.unpack_from(o + code, data, pos)[0]
        pos += width
        items.append(value)
        types.append(count_type)
        return value

    steps = _format_steps(ifmt, read_count)
    guard = _StallGuard(ifmt)
    while pos < end:
        start = pos
        kcnf, ncnf = next(steps)
        data_type, code, width = _CODE_TYPES[kcnf]

        if kcnf == 3:
            n = min(ncnf, end - pos)
            items.append(scan_strings(data[pos:pos + n]).strings)
            types.append(DataType.CHARSTAR8)
            pos += n
        else:
            n = min(ncnf, (end - pos) // width)
            if n:
                items.extend(struct.unpack_from(f"{o}{n}{code}", data, pos))
                types.extend([data_type] * n)
                pos += n * width
            elif ncnf and pos < end:
                raise CompositeFormatError(
                    f"{end - pos} bytes left, too few for a {data_type.name} item")

        guard.check(pos != start)

    return items, types


def _encode_items(items: Sequence, types: Sequence[DataType], order: ByteOrder,
                  ifmt: Sequence[int]) -> bytes:
    out = bytearray()
    total = len(items)
    index = 0
    o = order.char

    def pack(code: str, value, data_type: DataType):
        try:
            out.extend(struct.pack(o + code, value))
        except struct.error as e:
            raise DataTypeError(f"value {value!r} does not fit in {data_type.name}") from e

    def read_count(marker: int) -> int:
        nonlocal index
        count_type, code, width = _COUNT_TYPES[marker]
        if index >= total:
            raise CompositeFormatError("not enough data items for format")
        if types[index] is not count_type:
            raise DataTypeError(f"Data type mismatch, expecting {count_type.name}, got {types[index].name}")
        value = items[index]
        index += 1
        pack(code, value, count_type)
        return value

    steps = _format_steps(ifmt, read_count)
    guard = _StallGuard(ifmt)
    while index < total:
        start = index
        kcnf, ncnf = next(steps)
        data_type, code, width = _CODE_TYPES[kcnf]

        if kcnf == 3:
            if index < total:
                if types[index] is not DataType.CHARSTAR8:
                    raise DataTypeError(f"Data type mismatch, expecting string, got {types[index].name}")
                raw = strings_to_raw_bytes(items[index])
                if ncnf != _REPEAT_FOREVER and ncnf != len(raw):
                    raise CompositeFormatError(
                        f"String format mismatch with string (array): format says {ncnf} bytes, "
                        f"strings take {len(raw)}")
                out.extend(raw)
                index += 1
        else:
            for _ in range(ncnf):
                if index >= total:
                    if ncnf == _REPEAT_FOREVER:
                        break
                    raise CompositeFormatError("not enough data items for format")
                if types[index] is not data_type:
                    raise DataTypeError(
                        f"Data type mismatch, expecting {data_type.name}, got {types[index].name}")
                pack(code, items[index], data_type)
                index += 1

        guard.check(index != start)

    return bytes(out)


def swap_data(data: bytes, src_order: Union[ByteOrder, str], ifmt: Sequence[int]) -> bytes:
    """
    Swap composite data (no headers, no padding) to the other byte order.

    Args:
        data: Data bytes laid out by the format
        src_order: Byte order the data is currently in
        ifmt: Compiled format from ``compile_format``

    Returns:
        Swapped copy of the data
    """
    src_order = ByteOrder.from_value(src_order)
    src = bytes(data)
    dest = bytearray(src)
    s = src_order.char
    d = src_order.opposite().char
    pos = 0
    end = len(src)

    def read_count(marker: int) -> int:
        nonlocal pos
        count_type, code, width = _COUNT_TYPES[marker]
        if pos + width > end:
            raise CompositeFormatError("composite data ends inside a repeat count")
        value = struct.unpack_from(s + code, src, pos)[0]
        struct.pack_into(d + code, dest, pos, value)
        pos += width
        return value

    steps = _format_steps(ifmt, read_count)
    guard = _StallGuard(ifmt)
    while pos < end:
        start = pos
        kcnf, ncnf = next(steps)
        data_type, code, width = _CODE_TYPES[kcnf]

        if width == 1:
            # chars and strings are copied as is
            pos += min(ncnf, end - pos)
        else:
            n = min(ncnf, (end - pos) // width)
            if n:
                swapped = np.frombuffer(src, dtype=f'u{width}', count=n, offset=pos).byteswap()
                dest[pos:pos + n * width] = swapped.tobytes()
                pos += n * width
            elif ncnf and pos < end:
                raise CompositeFormatError(
                    f"{end - pos} bytes left, too few for a {data_type.name} item")

        guard.check(pos != start)

    return bytes(dest)


def swap_all(raw: bytes, src_order: Union[ByteOrder, str]) -> bytes:
    """
    Swap a run of complete composite items to the other byte order.

    Swaps the tagsegment header, copies the format string, swaps the bank
    header and then the data of every item. Padding bytes come out as zeros.

    Args:
        raw: Bytes of one or more composite items
        src_order: Byte order the bytes are currently in

    Returns:
        Swapped copy
    """
    src_order = ByteOrder.from_value(src_order)
    dest_order = src_order.opposite()
    raw = bytes(raw)
    if len(raw) % 4:
        raise CompositeFormatError(f"composite data length {len(raw)} is not a multiple of 4")

    out = bytearray(len(raw))
    offset = 0
    while offset < len(raw):
        ts_header = TagSegmentHeader.from_buffer(raw, offset, src_order)
        format_words = ts_header.data_length
        if format_words < 1:
            raise CompositeFormatError("no format data")
        ts_header.write(out, offset, dest_order)
        offset += 4 * ts_header.header_length

        format_bytes = raw[offset:offset + 4 * format_words]
        strings = scan_strings(format_bytes).strings
        if not strings:
            raise CompositeFormatError("bad format string data")
        ifmt = compile_format(strings[0])
        out[offset:offset + len(format_bytes)] = format_bytes
        offset += 4 * format_words

        bank_header = BankHeader.from_buffer(raw, offset, src_order)
        data_words = bank_header.data_length
        if data_words < 1:
            raise CompositeFormatError("no data")
        bank_header.write(out, offset, dest_order)
        offset += 4 * bank_header.header_length

        if offset + 4 * data_words > len(raw):
            raise CompositeFormatError("bad format: composite item runs past end of data")
        n_bytes = 4 * data_words - bank_header.padding
        out[offset:offset + n_bytes] = swap_data(raw[offset:offset + n_bytes], src_order, ifmt)
        offset += 4 * data_words

    return bytes(out)


def strings_to_format(strings: Sequence[str]) -> Optional[str]:
    """Format string ("<bytes>a") describing the given string array."""
    size = strings_to_raw_size(strings)
    if size == 0:
        return None
    return f"{size}a"


class CompositeItems:
    """
    Builder for the data of a composite item.

    Items must be added in the order the format string consumes them,
    including the N/n/m repeat counts.
    """

    def __init__(self):
        self.items: list = []
        self.types: List[DataType] = []
        self.format_tag = 0
        self.data_tag = 0
        self.data_num = 0
        self._data_bytes = 0

    def clear(self):
        self.items = []
        self.types = []
        self.format_tag = self.data_tag = self.data_num = 0
        self._data_bytes = 0

    @property
    def padding(self) -> int:
        return _PADS[self._data_bytes % 4]

    @property
    def data_size(self) -> int:
        """Size of the data in bytes including padding."""
        return self._data_bytes + self.padding

    def _add(self, data_type: DataType, width: int, values) -> 'CompositeItems':
        if isinstance(values, (list, tuple, np.ndarray)):
            values = [v.item() if isinstance(v, np.generic) else v for v in values]
        else:
            values = [values.item() if isinstance(values, np.generic) else values]
        self.items.extend(values)
        self.types.extend([data_type] * len(values))
        self._data_bytes += width * len(values)
        return self

    def add_int(self, values) -> 'CompositeItems':
        return self._add(DataType.INT32, 4, values)

    def add_uint(self, values) -> 'CompositeItems':
        return self._add(DataType.UINT32, 4, values)

    def add_hollerit(self, values) -> 'CompositeItems':
        return self._add(DataType.HOLLERIT, 4, values)

    def add_short(self, values) -> 'CompositeItems':
        return self._add(DataType.SHORT16, 2, values)

    def add_ushort(self, values) -> 'CompositeItems':
        return self._add(DataType.USHORT16, 2, values)

    def add_long(self, values) -> 'CompositeItems':
        return self._add(DataType.LONG64, 8, values)

    def add_ulong(self, values) -> 'CompositeItems':
        return self._add(DataType.ULONG64, 8, values)

    def add_float(self, values) -> 'CompositeItems':
        return self._add(DataType.FLOAT32, 4, values)

    def add_double(self, values) -> 'CompositeItems':
        return self._add(DataType.DOUBLE64, 8, values)

    def add_char(self, values) -> 'CompositeItems':
        return self._add(DataType.CHAR8, 1, values)

    def add_uchar(self, values) -> 'CompositeItems':
        return self._add(DataType.UCHAR8, 1, values)

    def add_string(self, strings) -> 'CompositeItems':
        """Add a string array; it needs a matching "<bytes>a" in the format."""
        if isinstance(strings, str):
            strings = [strings]
        strings = list(strings)
        self.items.append(strings)
        self.types.append(DataType.CHARSTAR8)
        self._data_bytes += strings_to_raw_size(strings)
        return self

    def add_N(self, value: int) -> 'CompositeItems':
        """Add a 32 bit repeat count."""
        return self._add(DataType.NVALUE, 4, value)

    def add_n(self, value: int) -> 'CompositeItems':
        """Add a 16 bit repeat count."""
        return self._add(DataType.nVALUE, 2, value)

    def add_m(self, value: int) -> 'CompositeItems':
        """Add an 8 bit repeat count."""
        return self._add(DataType.mVALUE, 1, value)


class CompositeData:
    """
    One composite item: format string, decoded items and their raw bytes.

    ``raw_bytes`` always holds the complete item (tagsegment, format, bank
    header, data and padding) in ``byte_order``.
    """

    def __init__(self):
        self.format = ""
        self.format_ints: List[int] = []
        self.format_tag = 0
        self.data_tag = 0
        self.data_num = 0
        self.padding = 0
        self.byte_order = ByteOrder.BIG_ENDIAN
        self.raw_bytes = b''
        self.items: list = []
        self.types: List[DataType] = []

    @classmethod
    def create(cls, fmt: str, data: CompositeItems, format_tag: Optional[int] = None,
               data_tag: Optional[int] = None, data_num: Optional[int] = None,
               byte_order: Union[ByteOrder, str, None] = ByteOrder.BIG_ENDIAN) -> 'CompositeData':
        """
        Build a composite item from a format string and its data.

        Args:
            fmt: Format string
            data: Items to encode, in format order
            format_tag: Tag of the tagsegment holding the format (default data.format_tag)
            data_tag: Tag of the bank holding the data (default data.data_tag)
            data_num: Num of the bank holding the data (default data.data_num)
            byte_order: Byte order of the generated raw bytes

        Returns:
            CompositeData object
        """
        if fmt is None or data is None:
            raise ValueError("format and/or data arg is None")

        order = ByteOrder.from_value(byte_order)
        ifmt = compile_format(fmt)
        if not ifmt:
            raise CompositeFormatError("bad format string data")

        cd = cls()
        cd.format = fmt
        cd.format_ints = ifmt
        cd.format_tag = data.format_tag if format_tag is None else format_tag
        cd.data_tag = data.data_tag if data_tag is None else data_tag
        cd.data_num = data.data_num if data_num is None else data_num
        cd.byte_order = order
        cd.items = list(data.items)
        cd.types = list(data.types)

        payload = _encode_items(cd.items, cd.types, order, ifmt)
        cd.padding = _PADS[len(payload) % 4]
        payload += bytes(cd.padding)

        format_raw = strings_to_raw_bytes([fmt])
        ts_header = TagSegmentHeader(cd.format_tag, DataType.CHARSTAR8)
        ts_header.length = len(format_raw) // 4
        bank_header = BankHeader(cd.data_tag, DataType.COMPOSITE, cd.data_num)
        bank_header.padding = cd.padding
        bank_header.length = 1 + len(payload) // 4

        cd.raw_bytes = ts_header.to_bytes(order) + format_raw + bank_header.to_bytes(order) + payload
        logger.debug(f"created composite item, format '{fmt}', {len(cd.items)} items, "
                     f"{len(cd.raw_bytes)} bytes")
        return cd

    @classmethod
    def _read(cls, raw: bytes, offset: int, order: ByteOrder) -> Tuple['CompositeData', int]:
        ts_header = TagSegmentHeader.from_buffer(raw, offset, order)
        pos = offset + 4 * ts_header.header_length

        format_bytes = raw[pos:pos + 4 * ts_header.data_length]
        strings = scan_strings(format_bytes).strings
        if not strings:
            raise CompositeFormatError("bad format string data")
        fmt = strings[0]
        ifmt = compile_format(fmt)
        if not ifmt:
            raise CompositeFormatError("bad format string data")
        pos += 4 * ts_header.data_length

        bank_header = BankHeader.from_buffer(raw, pos, order)
        pos += 4 * bank_header.header_length
        data_bytes = 4 * bank_header.data_length - bank_header.padding
        if data_bytes < 2:
            raise CompositeFormatError("no composite data")
        end = pos + 4 * bank_header.data_length
        if end > len(raw):
            raise CompositeFormatError("composite item runs past end of data")

        cd = cls()
        cd.format = fmt
        cd.format_ints = ifmt
        cd.format_tag = ts_header.tag
        cd.data_tag = bank_header.tag
        cd.data_num = bank_header.number
        cd.padding = bank_header.padding
        cd.byte_order = order
        cd.items, cd.types = _decode_items(raw[pos:pos + data_bytes], order, ifmt)
        cd.raw_bytes = bytes(raw[offset:end])
        return cd, end

    @classmethod
    def from_bytes(cls, raw: bytes, byte_order: Union[ByteOrder, str, None] = ByteOrder.BIG_ENDIAN) -> 'CompositeData':
        """Decode the composite item at the start of ``raw``."""
        cd, _ = cls._read(bytes(raw), 0, ByteOrder.from_value(byte_order))
        return cd

    @classmethod
    def parse(cls, raw: bytes, byte_order: Union[ByteOrder, str, None] = ByteOrder.BIG_ENDIAN) -> List['CompositeData']:
        """
        Decode every composite item in a COMPOSITE payload.

        Args:
            raw: Payload bytes
            byte_order: Byte order of the payload

        Returns:
            List of CompositeData objects (empty for an empty payload)
        """
        order = ByteOrder.from_value(byte_order)
        raw = bytes(raw)
        result = []
        offset = 0
        while offset < len(raw):
            cd, offset = cls._read(raw, offset, order)
            result.append(cd)
        logger.debug(f"parsed {len(result)} composite items from {len(raw)} bytes")
        return result

    @staticmethod
    def generate_raw_bytes(data: Sequence['CompositeData'],
                           byte_order: Union[ByteOrder, str, None] = ByteOrder.BIG_ENDIAN) -> bytes:
        """
        Concatenate the raw bytes of several items in one byte order.

        Items held in the other byte order are swapped on the way.
        """
        order = ByteOrder.from_value(byte_order)
        out = bytearray()
        for cd in data:
            if cd.byte_order is order:
                out += cd.raw_bytes
            else:
                out += swap_all(cd.raw_bytes, cd.byte_order)
        return bytes(out)

    def swap(self):
        """Switch this item's raw bytes to the other byte order."""
        self.raw_bytes = swap_all(self.raw_bytes, self.byte_order)
        self.byte_order = self.byte_order.opposite()

    def _values_of(self, data_type: DataType) -> list:
        return [item for item, t in zip(self.items, self.types) if t is data_type]

    @property
    def n32_values(self) -> list:
        """Repeat counts read from the data as 32 bit values (N)."""
        return self._values_of(DataType.NVALUE)

    @property
    def n16_values(self) -> list:
        """Repeat counts read from the data as 16 bit values (n)."""
        return self._values_of(DataType.nVALUE)

    @property
    def n8_values(self) -> list:
        """Repeat counts read from the data as 8 bit values (m)."""
        return self._values_of(DataType.mVALUE)

    def __iter__(self):
        return iter(zip(self.types, self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __str__(self) -> str:
        lines = [f"composite format '{self.format}' (format tag {self.format_tag}, "
                 f"data tag {self.data_tag}, num {self.data_num}, {self.byte_order}):"]
        for data_type, item in self:
            lines.append(f"  {data_type.name:<10} {item}")
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return f"CompositeData(format={self.format!r}, items={len(self.items)})"
