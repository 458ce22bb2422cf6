import logging
from typing import Optional, Sequence, Union

from pyeviotree.byte_order import ByteOrder
from pyeviotree.composite import CompositeData
from pyeviotree.data_type import DataType
from pyeviotree.exceptions import EvioException, StructureMismatchError
from pyeviotree.structure import BaseStructure, EvioEvent

logger = logging.getLogger(__name__)


class EventBuilder:
    """
    Builds an event top down.

    Every change made through the builder is followed by a length
    recomputation, so the event can be written at any point.
    """

    def __init__(self, tag: int = 0, data_type: Union[DataType, int] = DataType.BANK, num: int = 0,
                 byte_order: Union[ByteOrder, str, None] = None, event: Optional[EvioEvent] = None):
        """
        Initialize an EventBuilder.

        Args:
            tag: Tag of the new event
            data_type: Data type of the new event (BANK for a bank of banks)
            num: Num of the new event
            byte_order: Byte order of the new event (local order when None)
            event: Existing event to work on instead of creating one
        """
        if event is None:
            event = EvioEvent(tag, data_type, num, byte_order)
        self.event = event

    def add_child(self, parent: BaseStructure, child: BaseStructure):
        """
        Add ``child`` as the last child of ``parent``.

        Raises:
            StructureMismatchError: if the byte orders differ, the parent does not
                hold structures, or it holds a different kind of structure
        """
        if parent is None or child is None:
            raise ValueError("parent and child must not be None")
        if child.byte_order is not parent.byte_order:
            raise StructureMismatchError(
                f"cannot add a {child.byte_order} child to a {parent.byte_order} parent")

        parent.add(child)
        logger.debug(f"added {child.structure_type.name.lower()} tag={child.tag} "
                     f"to {parent.structure_type.name.lower()} tag={parent.tag}")
        self.set_all_header_lengths()

    def remove(self, child: BaseStructure):
        """Remove ``child`` from its parent. The event itself cannot be removed."""
        if child is None:
            raise ValueError("child is None")
        if child is self.event:
            raise EvioException("cannot remove the event itself")
        parent = child.parent
        if parent is None:
            raise EvioException("structure has no parent")
        parent.remove(child)
        self.set_all_header_lengths()

    def clear_data(self, structure: BaseStructure):
        structure.clear_data()
        self.set_all_header_lengths()

    def set_int_data(self, structure: BaseStructure, values):
        structure.set_int_data(values)
        self.set_all_header_lengths()

    def append_int_data(self, structure: BaseStructure, values):
        structure.append_int_data(values)
        self.set_all_header_lengths()

    def set_uint_data(self, structure: BaseStructure, values):
        structure.set_uint_data(values)
        self.set_all_header_lengths()

    def append_uint_data(self, structure: BaseStructure, values):
        structure.append_uint_data(values)
        self.set_all_header_lengths()

    def set_short_data(self, structure: BaseStructure, values):
        structure.set_short_data(values)
        self.set_all_header_lengths()

    def append_short_data(self, structure: BaseStructure, values):
        structure.append_short_data(values)
        self.set_all_header_lengths()

    def set_ushort_data(self, structure: BaseStructure, values):
        structure.set_ushort_data(values)
        self.set_all_header_lengths()

    def append_ushort_data(self, structure: BaseStructure, values):
        structure.append_ushort_data(values)
        self.set_all_header_lengths()

    def set_long_data(self, structure: BaseStructure, values):
        structure.set_long_data(values)
        self.set_all_header_lengths()

    def append_long_data(self, structure: BaseStructure, values):
        structure.append_long_data(values)
        self.set_all_header_lengths()

    def set_ulong_data(self, structure: BaseStructure, values):
        structure.set_ulong_data(values)
        self.set_all_header_lengths()

    def append_ulong_data(self, structure: BaseStructure, values):
        structure.append_ulong_data(values)
        self.set_all_header_lengths()

    def set_float_data(self, structure: BaseStructure, values):
        structure.set_float_data(values)
        self.set_all_header_lengths()

    def append_float_data(self, structure: BaseStructure, values):
        structure.append_float_data(values)
        self.set_all_header_lengths()

    def set_double_data(self, structure: BaseStructure, values):
        structure.set_double_data(values)
        self.set_all_header_lengths()

    def append_double_data(self, structure: BaseStructure, values):
        structure.append_double_data(values)
        self.set_all_header_lengths()

    def set_char_data(self, structure: BaseStructure, values):
        structure.set_char_data(values)
        self.set_all_header_lengths()

    def append_char_data(self, structure: BaseStructure, values):
        structure.append_char_data(values)
        self.set_all_header_lengths()

    def set_uchar_data(self, structure: BaseStructure, values):
        structure.set_uchar_data(values)
        self.set_all_header_lengths()

    def append_uchar_data(self, structure: BaseStructure, values):
        structure.append_uchar_data(values)
        self.set_all_header_lengths()

    def set_string_data(self, structure: BaseStructure, strings: Union[str, Sequence[str]]):
        structure.set_string_data(strings)
        self.set_all_header_lengths()

    def append_string_data(self, structure: BaseStructure, strings: Union[str, Sequence[str]]):
        structure.append_string_data(strings)
        self.set_all_header_lengths()

    def set_composite_data(self, structure: BaseStructure,
                           data: Union[CompositeData, Sequence[CompositeData]]):
        structure.set_composite_data(data)
        self.set_all_header_lengths()

    def append_composite_data(self, structure: BaseStructure,
                              data: Union[CompositeData, Sequence[CompositeData]]):
        structure.append_composite_data(data)
        self.set_all_header_lengths()

    def set_all_header_lengths(self) -> int:
        return self.event.set_all_header_lengths()

    def to_bytes(self, order: Union[ByteOrder, str, None] = None) -> bytes:
        """Serialize the event (in its own byte order unless ``order`` is given)."""
        self.set_all_header_lengths()
        return self.event.to_bytes(order)

    def write(self, buffer, offset: int = 0, order: Union[ByteOrder, str, None] = None) -> int:
        """
        Serialize the event into a buffer.

        Args:
            buffer: Writable buffer
            offset: Byte offset to start writing at
            order: Byte order to write in (defaults to the event's)

        Returns:
            Number of bytes written
        """
        self.set_all_header_lengths()
        return self.event.write(buffer, offset, order)
