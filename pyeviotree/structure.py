import logging
from typing import Callable, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from pyeviotree.byte_order import ByteOrder, swap_array
from pyeviotree.composite import CompositeData, swap_all
from pyeviotree.data_type import DataType, StructureType
from pyeviotree.exceptions import (BufferTooSmallError, DataTypeError, EvioException,
                                   EvioOverflowError, StructureMismatchError)
from pyeviotree.header import BankHeader, BaseStructureHeader, SegmentHeader, TagSegmentHeader
from pyeviotree.strings import scan_strings, strings_to_raw_bytes
from pyeviotree.tree_node import TreeNode
from pyeviotree.utils import make_hex_dump, make_word_dump

logger = logging.getLogger(__name__)

# Largest number of data items a single structure may hold
MAX_DATA_ITEMS = 2 ** 31 - 1

# Padding bytes for 1 byte data, indexed by (count % 4)
_BYTE_PADS = (0, 3, 2, 1)


class _Family(NamedTuple):
    name: str
    data_type: DataType
    # Signed/unsigned twin that set_* keeps instead of retyping
    counterpart: Optional[DataType] = None


_INT = _Family("int", DataType.INT32, DataType.UINT32)
_UINT = _Family("uint", DataType.UINT32, DataType.INT32)
_SHORT = _Family("short", DataType.SHORT16, DataType.USHORT16)
_USHORT = _Family("ushort", DataType.USHORT16, DataType.SHORT16)
_LONG = _Family("long", DataType.LONG64, DataType.ULONG64)
_ULONG = _Family("ulong", DataType.ULONG64, DataType.LONG64)
_FLOAT = _Family("float", DataType.FLOAT32)
_DOUBLE = _Family("double", DataType.DOUBLE64)
_CHAR = _Family("char", DataType.CHAR8, DataType.UCHAR8)
_UCHAR = _Family("uchar", DataType.UCHAR8, DataType.CHAR8)
_STRING = _Family("string", DataType.CHARSTAR8)
_COMPOSITE = _Family("composite", DataType.COMPOSITE)


def _padding_for(count: int, width: int) -> int:
    if width == 2:
        return 2 if count % 2 else 0
    if width == 1:
        return _BYTE_PADS[count % 4]
    return 0


class BaseStructure:
    """
    Node of an EVIO structure tree: a header plus either data or children.

    Data is held as raw bytes in ``byte_order`` until a typed getter is
    called. Numeric data then lives in a native-order numpy array, which is
    what gets serialized from then on, so edits made to the returned array
    are picked up by ``write``. Strings and composite items are handed out as
    tuples and only change through the set/append methods.

    Lengths are not maintained incrementally: every mutation marks this
    structure and its ancestors stale, and ``set_all_header_lengths`` on the
    root recomputes them before writing.
    """

    def __init__(self, header: BaseStructureHeader, byte_order: Union[ByteOrder, str, None] = None):
        self._header = header
        self.byte_order = ByteOrder.from_value(byte_order)
        self._raw: Optional[bytes] = None
        self._array: Optional[np.ndarray] = None
        self._strings: Optional[List[str]] = None
        self._composite: Optional[List[CompositeData]] = None
        self._string_end = 0
        self._bad_string_format = False
        self._lengths_up_to_date = False
        self._node = TreeNode(self)

    # ------------------------------------------------------------------
    # Header and kind

    @property
    def header(self) -> BaseStructureHeader:
        return self._header

    @property
    def structure_type(self) -> StructureType:
        return self._header.structure_type

    def get_structure_type(self) -> StructureType:
        return self._header.structure_type

    @property
    def tag(self) -> int:
        return self._header.tag

    @property
    def data_type(self) -> DataType:
        return self._header.data_type

    def is_container(self) -> bool:
        """True if this structure holds other structures rather than data."""
        return self._header.data_type.is_structure()

    # ------------------------------------------------------------------
    # Raw data

    @property
    def raw_bytes(self) -> bytes:
        """Payload bytes in ``byte_order``, padding included."""
        if self._array is not None:
            return self._encode_array(self.byte_order)
        if self._raw is None:
            return b''
        return self._raw

    def set_raw_bytes(self, raw: Optional[bytes]):
        """
        Replace the payload with raw bytes already in ``byte_order``.

        Typed caches are dropped and rebuilt from the new bytes on demand.
        """
        if self._node.child_count:
            raise StructureMismatchError("cannot set data on a structure that has children")
        self._raw = None if raw is None else bytes(raw)
        self._array = None
        self._strings = None
        self._composite = None
        self._string_end = 0
        self._bad_string_format = False
        self.set_lengths_up_to_date(False)

    def _take_contents(self, source: 'BaseStructure'):
        """Copy the data of ``source`` and move its children under this structure."""
        self.byte_order = source.byte_order
        self._raw = source._raw
        self._array = None if source._array is None else source._array.copy()
        self._strings = None if source._strings is None else list(source._strings)
        self._composite = None if source._composite is None else list(source._composite)
        self._string_end = source._string_end
        self._bad_string_format = source._bad_string_format
        children = source.children
        for child in children:
            self._node.add(child._node)
        self._lengths_up_to_date = source._lengths_up_to_date
        if children:
            # source and its ancestors lost the moved children
            source.set_lengths_up_to_date(False)

    def clear_data(self):
        """Drop all data. Containers are left alone."""
        if self.is_container():
            return
        self._raw = None
        self._array = None
        self._strings = None
        self._composite = None
        self._string_end = 0
        self._bad_string_format = False
        self._header.padding = 0
        self.set_lengths_up_to_date(False)

    def get_number_data_items(self) -> int:
        """
        Number of items in the payload.

        Containers report their payload word count, string structures the
        number of strings and composite structures the number of composite
        items.
        """
        if self.is_container():
            return self._header.length + 1 - self._header.header_length

        data_type = self._header.data_type
        if data_type is DataType.CHARSTAR8:
            return len(self._unpack_strings())
        if data_type is DataType.COMPOSITE:
            return len(self._unpack_composite())
        if self._array is not None:
            return int(self._array.size)

        raw = self._raw or b''
        width = data_type.byte_width or 1
        padding = self._header.padding if width < 4 else 0
        return max(0, len(raw) - padding) // width

    def data_length(self) -> int:
        """Payload length in 32 bit words."""
        if self.is_container():
            return sum(child.header.length + 1 for child in self.children)

        if self._array is not None:
            size = self._array.size * self._array.dtype.itemsize
        else:
            size = len(self._raw or b'')
        return (size + 3) // 4

    # ------------------------------------------------------------------
    # Numeric data

    def _check_family(self, family: _Family):
        data_type = self._header.data_type
        if data_type is not family.data_type:
            raise DataTypeError(
                f"cannot use {family.name} data with a structure of type {data_type}")

    def _check_settable(self):
        if self._node.child_count:
            raise StructureMismatchError("cannot set data on a structure that has children")

    def _encode_array(self, order: ByteOrder) -> bytes:
        array = self._array
        encoded = array.astype(array.dtype.newbyteorder(order.char)).tobytes()
        return encoded + bytes(self._header.padding)

    def _materialize_array(self) -> np.ndarray:
        if self._array is None:
            dtype = self._header.data_type.numpy_dtype
            raw = self._raw or b''
            width = dtype.itemsize
            padding = self._header.padding if width < 4 else 0
            count = max(0, len(raw) - padding) // width
            wire = np.frombuffer(raw, dtype=dtype.newbyteorder(self.byte_order.char), count=count)
            self._array = wire.astype(dtype)
            self._raw = None
        return self._array

    @staticmethod
    def _coerce(values, data_type: DataType) -> Optional[np.ndarray]:
        if values is None:
            return None
        dtype = data_type.numpy_dtype
        array = np.atleast_1d(np.asarray(values)).ravel()
        if dtype.kind in 'iu' and array.size and array.dtype.kind in 'iuO':
            info = np.iinfo(dtype)
            if array.min() < info.min or array.max() > info.max:
                raise EvioOverflowError(f"value does not fit in {data_type}")
        return array.astype(dtype)

    def _get_array(self, family: _Family) -> np.ndarray:
        self._check_family(family)
        return self._materialize_array()

    def _extend_array(self, values):
        new = self._coerce(values, self._header.data_type)
        if new is None or new.size == 0:
            return

        current = self._materialize_array()
        if MAX_DATA_ITEMS - current.size < new.size:
            raise EvioOverflowError("added data overflowed containing structure")

        combined = np.concatenate((current, new))
        self._array = combined
        self._header.padding = _padding_for(combined.size, combined.dtype.itemsize)
        self.set_lengths_up_to_date(False)

    def _append_array(self, family: _Family, values):
        self._check_family(family)
        self._extend_array(values)

    def _set_array(self, family: _Family, values):
        self._check_settable()
        data_type = self._header.data_type
        if data_type is not family.data_type and data_type is not family.counterpart:
            data_type = family.data_type
        new = self._coerce(values, data_type)
        if new is not None and new.size > MAX_DATA_ITEMS:
            raise EvioOverflowError("added data overflowed containing structure")

        self._header.data_type = data_type
        self.clear_data()
        self._array = np.empty(0, dtype=data_type.numpy_dtype)
        self._extend_array(new)

    def _update_array(self, family: _Family):
        self._check_family(family)
        if self._array is not None:
            self._header.padding = _padding_for(self._array.size, self._array.dtype.itemsize)
        self.set_lengths_up_to_date(False)

    def get_int_data(self) -> np.ndarray:
        """
        Get the 32 bit integer data.

        Returns:
            Native-order numpy array; in-place edits are serialized by write()

        Raises:
            DataTypeError: if the structure does not hold INT32 data
        """
        return self._get_array(_INT)

    def set_int_data(self, values):
        """Replace the data with 32 bit signed integers (a UINT32 structure keeps its type)."""
        self._set_array(_INT, values)

    def append_int_data(self, values):
        """Append 32 bit integers to the existing data."""
        self._append_array(_INT, values)

    def update_int_data(self):
        self._update_array(_INT)

    def get_uint_data(self) -> np.ndarray:
        return self._get_array(_UINT)

    def set_uint_data(self, values):
        self._set_array(_UINT, values)

    def append_uint_data(self, values):
        self._append_array(_UINT, values)

    def update_uint_data(self):
        self._update_array(_UINT)

    def get_short_data(self) -> np.ndarray:
        """
        Get the 16 bit integer data.

        Returns:
            Native-order numpy array

        Raises:
            DataTypeError: if the structure does not hold SHORT16 data
        """
        return self._get_array(_SHORT)

    def set_short_data(self, values):
        self._set_array(_SHORT, values)

    def append_short_data(self, values):
        self._append_array(_SHORT, values)

    def update_short_data(self):
        self._update_array(_SHORT)

    def get_ushort_data(self) -> np.ndarray:
        return self._get_array(_USHORT)

    def set_ushort_data(self, values):
        self._set_array(_USHORT, values)

    def append_ushort_data(self, values):
        self._append_array(_USHORT, values)

    def update_ushort_data(self):
        self._update_array(_USHORT)

    def get_long_data(self) -> np.ndarray:
        return self._get_array(_LONG)

    def set_long_data(self, values):
        self._set_array(_LONG, values)

    def append_long_data(self, values):
        self._append_array(_LONG, values)

    def update_long_data(self):
        self._update_array(_LONG)

    def get_ulong_data(self) -> np.ndarray:
        return self._get_array(_ULONG)

    def set_ulong_data(self, values):
        self._set_array(_ULONG, values)

    def append_ulong_data(self, values):
        self._append_array(_ULONG, values)

    def update_ulong_data(self):
        self._update_array(_ULONG)

    def get_float_data(self) -> np.ndarray:
        return self._get_array(_FLOAT)

    def set_float_data(self, values):
        self._set_array(_FLOAT, values)

    def append_float_data(self, values):
        self._append_array(_FLOAT, values)

    def update_float_data(self):
        self._update_array(_FLOAT)

    def get_double_data(self) -> np.ndarray:
        return self._get_array(_DOUBLE)

    def set_double_data(self, values):
        self._set_array(_DOUBLE, values)

    def append_double_data(self, values):
        self._append_array(_DOUBLE, values)

    def update_double_data(self):
        self._update_array(_DOUBLE)

    def get_char_data(self) -> np.ndarray:
        """Get the 8 bit data as a numpy array (int8 or uint8)."""
        return self._get_array(_CHAR)

    def set_char_data(self, values):
        self._set_array(_CHAR, values)

    def append_char_data(self, values):
        self._append_array(_CHAR, values)

    def update_char_data(self):
        self._update_array(_CHAR)

    def get_uchar_data(self) -> np.ndarray:
        return self._get_array(_UCHAR)

    def set_uchar_data(self, values):
        self._set_array(_UCHAR, values)

    def append_uchar_data(self, values):
        self._append_array(_UCHAR, values)

    def update_uchar_data(self):
        self._update_array(_UCHAR)

    # ------------------------------------------------------------------
    # String data

    def _unpack_strings(self) -> List[str]:
        if self._strings is None:
            result = scan_strings(self._raw or b'')
            self._strings = list(result.strings)
            self._string_end = result.string_end
            self._bad_string_format = result.bad_format
        return self._strings

    @property
    def bad_string_format(self) -> bool:
        """True if the string payload could not be split into strings."""
        if self._header.data_type is DataType.CHARSTAR8:
            self._unpack_strings()
        return self._bad_string_format

    @property
    def string_end(self) -> int:
        """Byte offset just past the last NUL of the string payload."""
        if self._header.data_type is DataType.CHARSTAR8:
            self._unpack_strings()
        return self._string_end

    def get_string_data(self) -> Tuple[str, ...]:
        """
        Get the string array.

        Badly formatted data comes back as a single string holding the
        whole payload; see ``bad_string_format``.

        Raises:
            DataTypeError: if the structure does not hold CHARSTAR8 data
        """
        self._check_family(_STRING)
        return tuple(self._unpack_strings())

    def set_string_data(self, strings: Union[str, Sequence[str], None]):
        """Replace the data with the given string(s), making this a CHARSTAR8 structure."""
        self._check_settable()
        if isinstance(strings, str):
            strings = [strings]
        strings = list(strings or [])
        if len(strings) > MAX_DATA_ITEMS:
            raise EvioOverflowError("added data overflowed containing structure")
        strings_to_raw_bytes(strings)

        self._header.data_type = DataType.CHARSTAR8
        self.clear_data()
        self._strings = []
        self.append_string_data(strings)

    def append_string_data(self, strings: Union[str, Sequence[str], None]):
        """
        Append one or more strings.

        Raises:
            DataTypeError: if the structure does not hold CHARSTAR8 data
            EvioException: if the existing string data is badly formatted
        """
        self._check_family(_STRING)
        if strings is None:
            return
        if isinstance(strings, str):
            strings = [strings]
        strings = list(strings)
        if not strings:
            return

        current = self._unpack_strings()
        if self._bad_string_format:
            raise EvioException("cannot add to badly formatted string data")
        if MAX_DATA_ITEMS - len(current) < len(strings):
            raise EvioOverflowError("added data overflowed containing structure")

        combined = current + strings
        raw = strings_to_raw_bytes(combined)
        self._raw = raw
        self._strings = combined
        self._string_end = sum(len(s) + 1 for s in combined)
        self._header.padding = 0
        self.set_lengths_up_to_date(False)

    def update_string_data(self):
        self._check_family(_STRING)
        if self._strings is not None and not self._bad_string_format:
            self._raw = strings_to_raw_bytes(self._strings)
            self._string_end = sum(len(s) + 1 for s in self._strings)
        self.set_lengths_up_to_date(False)

    # ------------------------------------------------------------------
    # Composite data

    def _unpack_composite(self) -> List[CompositeData]:
        if self._composite is None:
            self._composite = CompositeData.parse(self._raw or b'', self.byte_order)
        return self._composite

    def get_composite_data(self) -> Tuple[CompositeData, ...]:
        """
        Get the composite items, decoding the raw bytes if needed.

        Raises:
            DataTypeError: if the structure does not hold COMPOSITE data
            CompositeFormatError: if the raw bytes cannot be decoded
        """
        self._check_family(_COMPOSITE)
        return tuple(self._unpack_composite())

    def set_composite_data(self, data: Union[CompositeData, Sequence[CompositeData], None]):
        """Replace the composite items. The structure must already be of type COMPOSITE."""
        self._check_family(_COMPOSITE)
        self._check_settable()
        if isinstance(data, CompositeData):
            data = [data]
        data = list(data or [])
        raw = CompositeData.generate_raw_bytes(data, self.byte_order)

        self.clear_data()
        self._composite = data
        self._raw = raw
        self.set_lengths_up_to_date(False)

    def append_composite_data(self, data: Union[CompositeData, Sequence[CompositeData], None]):
        self._check_family(_COMPOSITE)
        if data is None:
            return
        if isinstance(data, CompositeData):
            data = [data]
        data = list(data)
        if not data:
            return

        current = self._unpack_composite()
        if MAX_DATA_ITEMS - len(current) < len(data):
            raise EvioOverflowError("added data overflowed containing structure")

        combined = current + data
        self._raw = CompositeData.generate_raw_bytes(combined, self.byte_order)
        self._composite = combined
        self._header.padding = 0
        self.set_lengths_up_to_date(False)

    def update_composite_data(self):
        self._check_family(_COMPOSITE)
        if self._composite is not None:
            self._raw = CompositeData.generate_raw_bytes(self._composite, self.byte_order)
        self.set_lengths_up_to_date(False)

    # ------------------------------------------------------------------
    # Lengths

    @property
    def lengths_up_to_date(self) -> bool:
        return self._lengths_up_to_date

    def set_lengths_up_to_date(self, up_to_date: bool):
        """Mark lengths current or stale; stale propagates to every ancestor."""
        self._lengths_up_to_date = up_to_date
        if not up_to_date:
            parent = self.parent
            if parent is not None:
                parent.set_lengths_up_to_date(False)

    def set_all_header_lengths(self) -> int:
        """
        Recompute the length of this structure and everything below it.

        Returns:
            The new header length in words

        Raises:
            EvioOverflowError: if a length does not fit its header
        """
        if self._lengths_up_to_date:
            return self._header.length

        if self.is_container():
            data_len = 0
            for child in self.children:
                data_len += child.set_all_header_lengths() + 1
        else:
            data_len = self.data_length()

        length = data_len + self._header.header_length - 1
        if length > self._header.MAX_LENGTH:
            raise EvioOverflowError("added data overflowed containing structure")

        self._header.length = length
        self._lengths_up_to_date = True
        return length

    def get_total_bytes(self) -> int:
        """Bytes this structure takes on the wire, according to its header."""
        return 4 * (self._header.length + 1)

    # ------------------------------------------------------------------
    # Tree

    @property
    def node(self) -> TreeNode:
        return self._node

    @property
    def parent(self) -> Optional['BaseStructure']:
        node = self._node.parent
        return None if node is None else node.value

    @property
    def children(self) -> Tuple['BaseStructure', ...]:
        return tuple(node.value for node in self._node.children)

    @property
    def child_count(self) -> int:
        return self._node.child_count

    def child_at(self, index: int) -> 'BaseStructure':
        return self._node.child_at(index).value

    def _check_child(self, child: 'BaseStructure'):
        if child is None:
            raise ValueError("child is None")
        data_type = self._header.data_type
        if not self.is_container():
            raise StructureMismatchError(
                f"cannot add a child to a structure of type {data_type}")
        kind = child.structure_type
        if ((data_type.is_bank() and kind is not StructureType.BANK) or
                (data_type.is_segment() and kind is not StructureType.SEGMENT) or
                (data_type.is_tag_segment() and kind is not StructureType.TAGSEGMENT)):
            raise StructureMismatchError(
                f"cannot add a {kind.name.lower()} to a container of type {data_type}")

    def insert(self, child: 'BaseStructure', index: int):
        """
        Insert ``child`` at ``index``, detaching it from any previous parent.

        Raises:
            StructureMismatchError: if this is not a container of child's kind
        """
        self._check_child(child)
        old_parent = child.parent
        self._node.insert(child._node, index)
        if old_parent is not None and old_parent is not self:
            old_parent.set_lengths_up_to_date(False)
        self.set_lengths_up_to_date(False)

    def add(self, child: 'BaseStructure'):
        """Append ``child`` as the last child."""
        self._check_child(child)
        old_parent = child.parent
        self._node.add(child._node)
        if old_parent is not None and old_parent is not self:
            old_parent.set_lengths_up_to_date(False)
        self.set_lengths_up_to_date(False)

    def remove(self, child: 'BaseStructure'):
        self._node.remove(child._node)
        self.set_lengths_up_to_date(False)

    def remove_all(self):
        if self._node.child_count:
            self._node.remove_all_children()
            self.set_lengths_up_to_date(False)

    def remove_from_parent(self):
        parent = self.parent
        if parent is not None:
            parent.remove(self)

    @property
    def root(self) -> 'BaseStructure':
        return self._node.root.value

    @property
    def level(self) -> int:
        return self._node.level

    @property
    def depth(self) -> int:
        return self._node.depth

    @property
    def next_sibling(self) -> Optional['BaseStructure']:
        node = self._node.next_sibling
        return None if node is None else node.value

    @property
    def previous_sibling(self) -> Optional['BaseStructure']:
        node = self._node.previous_sibling
        return None if node is None else node.value

    def is_ancestor_of(self, other: 'BaseStructure') -> bool:
        return other is not None and self._node.is_ancestor_of(other._node)

    def preorder(self) -> Iterator['BaseStructure']:
        """This structure, then all structures below it, depth first."""
        for node in self._node.preorder():
            yield node.value

    def visit_all_structures(self, listener, structure_filter: Optional[Callable[['BaseStructure'], bool]] = None):
        """
        Call ``listener.got_structure(self, structure)`` for every structure
        in this subtree (this one included) accepted by ``structure_filter``.
        """
        for structure in self.preorder():
            if structure_filter is None or structure_filter(structure):
                listener.got_structure(self, structure)

    def get_matching_structures(self, structure_filter: Callable[['BaseStructure'], bool]) -> List['BaseStructure']:
        """
        Find the structures in this subtree accepted by a filter.

        Args:
            structure_filter: Called with each structure, pre-order

        Returns:
            List of matching structures, possibly empty
        """
        return [s for s in self.preorder() if structure_filter(s)]

    # ------------------------------------------------------------------
    # Serialization

    def _serialized_size(self) -> int:
        size = 4 * self._header.header_length
        if self.is_container():
            return size + sum(child._serialized_size() for child in self.children)
        return size + 4 * self.data_length()

    def _payload_bytes(self, order: ByteOrder) -> bytes:
        data_type = self._header.data_type
        if self._array is not None:
            payload = self._encode_array(order)
        elif self._raw is None:
            payload = b''
        elif order is self.byte_order:
            payload = self._raw
        elif data_type is DataType.COMPOSITE:
            payload = swap_all(self._raw, self.byte_order)
        elif data_type.byte_width in (2, 4, 8):
            width = data_type.byte_width
            usable = len(self._raw) - len(self._raw) % width
            payload = swap_array(self._raw[:usable], width) + self._raw[usable:]
        else:
            # chars, strings and opaque data have no byte order
            payload = self._raw

        if len(payload) % 4:
            payload += bytes(4 - len(payload) % 4)
        return payload

    def _write(self, buffer, offset: int, order: ByteOrder) -> int:
        pos = offset + self._header.write(buffer, offset, order)
        if self.is_container():
            for child in self.children:
                pos += child._write(buffer, pos, order)
        else:
            payload = self._payload_bytes(order)
            buffer[pos:pos + len(payload)] = payload
            pos += len(payload)
        return pos - offset

    def write(self, buffer, offset: int = 0, order: Union[ByteOrder, str, None] = None) -> int:
        """
        Serialize this structure and everything below it into a buffer.

        Lengths must be current: call ``set_all_header_lengths()`` first.

        Args:
            buffer: Writable buffer (bytearray, memoryview, ...)
            offset: Byte offset to start writing at
            order: Byte order to write in (defaults to this structure's byte_order)

        Returns:
            Number of bytes written

        Raises:
            BufferTooSmallError: if the buffer cannot hold the structure
            EvioException: if the header lengths do not match the contents
        """
        order = self.byte_order if order is None else ByteOrder.from_value(order)
        total = self.get_total_bytes()
        available = len(buffer) - offset
        if available < total:
            raise BufferTooSmallError(total, available, self.structure_type.name.lower())

        size = self._serialized_size()
        if size != total:
            raise EvioException(
                f"{self.structure_type.name.lower()} header says {total} bytes but contents take "
                f"{size}; call set_all_header_lengths() first")

        written = self._write(buffer, offset, order)
        logger.debug(f"wrote {self.structure_type.name.lower()} tag={self.tag} "
                     f"({written} bytes, {order}) at offset {offset}")
        return written

    def to_bytes(self, order: Union[ByteOrder, str, None] = None) -> bytes:
        """Serialize this structure into a new bytes object."""
        buffer = bytearray(self.get_total_bytes())
        self.write(buffer, 0, order)
        return bytes(buffer)

    # ------------------------------------------------------------------
    # Display

    def get_hex_dump(self, max_bytes: int = 64, title: Optional[str] = None, words: bool = False) -> str:
        """
        Generate a hex dump of the payload.

        Args:
            max_bytes: Maximum number of bytes to include in the dump
            title: Optional title for the hex dump
            words: Dump 32 bit words in ``byte_order`` instead of bytes

        Returns:
            String containing formatted hexdump
        """
        data = self.raw_bytes[:max_bytes]
        title = title or f"{self.structure_type.name.capitalize()} tag={self.tag} data"
        if words:
            return make_word_dump(data, self.byte_order, title=title)
        return make_hex_dump(data, title=title)

    def tree_to_string(self, indent: str = "") -> str:
        """Indented one line per structure description of this subtree."""
        lines = [f"{indent}{self}"]
        for child in self.children:
            lines.append(child.tree_to_string(indent + "    "))
        return '\n'.join(lines)

    def __str__(self) -> str:
        kind = self.structure_type.name.lower()
        text = (f"<{kind}> tag={self._header.tag}(0x{self._header.tag:x}), "
                f"type={self._header.data_type}, len={self._header.length}")
        if isinstance(self._header, BankHeader):
            text += f", num={self._header.number}"
        if self.is_container():
            return text + f", children={self.child_count}"
        return text + f", pad={self._header.padding}, items={self.get_number_data_items()}"

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(tag=0x{self._header.tag:X}, "
                f"type={self._header.data_type.name}, length={self._header.length})")


class EvioBank(BaseStructure):
    """Structure with a 2 word header: 16 bit tag, 8 bit num."""

    def __init__(self, tag: int = 0, data_type: Union[DataType, int] = DataType.UNKNOWN32, num: int = 0,
                 byte_order: Union[ByteOrder, str, None] = None, header: Optional[BankHeader] = None):
        if header is None:
            header = BankHeader(tag, data_type, num)
        super().__init__(header, byte_order)

    @property
    def num(self) -> int:
        return self._header.number


class EvioSegment(BaseStructure):
    """Structure with a 1 word header: 8 bit tag, no num."""

    def __init__(self, tag: int = 0, data_type: Union[DataType, int] = DataType.UNKNOWN32,
                 byte_order: Union[ByteOrder, str, None] = None, header: Optional[SegmentHeader] = None):
        if header is None:
            header = SegmentHeader(tag, data_type)
        super().__init__(header, byte_order)


class EvioTagSegment(BaseStructure):
    """Structure with a 1 word header: 12 bit tag, 4 bit type, no num or padding."""

    def __init__(self, tag: int = 0, data_type: Union[DataType, int] = DataType.UNKNOWN32,
                 byte_order: Union[ByteOrder, str, None] = None, header: Optional[TagSegmentHeader] = None):
        if header is None:
            header = TagSegmentHeader(tag, data_type)
        super().__init__(header, byte_order)


class EvioEvent(EvioBank):
    """Top level bank of an event."""

    def __init__(self, tag: int = 0, data_type: Union[DataType, int] = DataType.BANK, num: int = 0,
                 byte_order: Union[ByteOrder, str, None] = None, header: Optional[BankHeader] = None):
        super().__init__(tag, data_type, num, byte_order, header)
        self.event_number = 0

    def __str__(self) -> str:
        return f"<event> #{self.event_number} " + super().__str__()[len("<bank> "):]


STRUCTURE_CLASSES = {
    StructureType.BANK: EvioBank,
    StructureType.SEGMENT: EvioSegment,
    StructureType.TAGSEGMENT: EvioTagSegment,
}
