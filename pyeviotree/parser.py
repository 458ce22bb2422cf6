import logging
from typing import Callable, List, Optional, Union

from pyeviotree.byte_order import ByteOrder
from pyeviotree.data_type import DataType, StructureType
from pyeviotree.exceptions import EvioException
from pyeviotree.header import HEADER_CLASSES, BankHeader
from pyeviotree.structure import STRUCTURE_CLASSES, BaseStructure, EvioEvent

logger = logging.getLogger(__name__)

StructureFilter = Callable[[BaseStructure], bool]


class EvioListener:
    """
    Receives notifications while an event is parsed or scanned.

    Subclasses override the callbacks they care about.
    """

    def start_event_parse(self, event: BaseStructure):
        pass

    def got_structure(self, top_structure: BaseStructure, structure: BaseStructure):
        pass

    def end_event_parse(self, event: BaseStructure):
        pass


def _child_kind(data_type: DataType) -> StructureType:
    if data_type.is_bank():
        return StructureType.BANK
    if data_type.is_segment():
        return StructureType.SEGMENT
    return StructureType.TAGSEGMENT


def _parse_children(parent: BaseStructure, buffer, offset: int, length: int, order: ByteOrder):
    """
    Build the children of a container from its payload.

    Args:
        parent: Container structure
        buffer: Buffer holding the payload
        offset: Byte offset of the payload
        length: Payload length in bytes
        order: Byte order of the buffer
    """
    kind = _child_kind(parent.data_type)
    header_class = HEADER_CLASSES[kind]
    structure_class = STRUCTURE_CLASSES[kind]
    header_bytes = 4 * header_class.HEADER_LENGTH
    end = offset + length
    kind_name = kind.name.lower()

    pos = offset
    while pos < end:
        if end - pos < header_bytes:
            raise EvioException(
                f"{kind_name} header at offset {pos} runs past end of its container (offset {end})")
        header = header_class.from_buffer(buffer, pos, order)
        size = 4 * (header.length + 1)
        if size < header_bytes:
            raise EvioException(f"{kind_name} at offset {pos} has bad length {header.length}")
        if pos + size > end:
            raise EvioException(
                f"{kind_name} at offset {pos} with length {header.length} runs past end of "
                f"its container (offset {end})")

        logger.debug(f"{kind_name} at offset {pos}: tag={header.tag}, type={header.data_type}, "
                     f"length={header.length}")
        child = structure_class(header=header, byte_order=order)
        _fill_structure(child, buffer, pos + header_bytes, size - header_bytes, order)
        parent.add(child)
        pos += size


def _fill_structure(structure: BaseStructure, buffer, offset: int, length: int, order: ByteOrder):
    if structure.is_container():
        _parse_children(structure, buffer, offset, length, order)
    else:
        structure.set_raw_bytes(buffer[offset:offset + length])


def parse_event(buffer, offset: int = 0, endian: Union[ByteOrder, str, None] = '<') -> EvioEvent:
    """
    Parse one serialized event (a bank and everything inside it).

    Args:
        buffer: bytes, bytearray, memoryview or mmap holding the event
        offset: Byte offset where the event starts
        endian: Byte order of the buffer

    Returns:
        EvioEvent at the root of the parsed tree

    Raises:
        EvioException: if the event or one of its structures does not fit
    """
    order = ByteOrder.from_value(endian)

    header = BankHeader.from_buffer(buffer, offset, order)
    size = 4 * (header.length + 1)
    available = len(buffer) - offset
    if header.length < 1:
        raise EvioException(f"event at offset {offset} has bad length {header.length}")
    if size > available:
        raise EvioException(
            f"event length {header.length} words ({size} bytes) exceeds the {available} bytes available")

    logger.debug(f"event at offset {offset}: tag={header.tag}, num={header.number}, "
                 f"type={header.data_type}, length={header.length} ({order})")
    event = EvioEvent(header=header, byte_order=order)
    _fill_structure(event, buffer, offset + 8, size - 8, order)
    return event


class EventParser:
    """
    Parses events into structure trees and reports the structures found to
    registered listeners.
    """

    def __init__(self):
        self._listeners: List[EvioListener] = []
        self._filter: Optional[StructureFilter] = None
        self.notification_active = True

    def add_listener(self, listener: EvioListener):
        if listener is not None and listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: EvioListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> List[EvioListener]:
        return list(self._listeners)

    def set_filter(self, structure_filter: Optional[StructureFilter]):
        """Only structures accepted by ``structure_filter`` are reported (None accepts all)."""
        self._filter = structure_filter

    def parse_event(self, buffer, offset: int = 0, endian: Union[ByteOrder, str, None] = '<') -> EvioEvent:
        """
        Parse an event and notify the listeners.

        Args:
            buffer: Buffer holding the event
            offset: Byte offset where the event starts
            endian: Byte order of the buffer

        Returns:
            Parsed EvioEvent
        """
        event = parse_event(buffer, offset, endian)
        self.scan_structure(event)
        return event

    def scan_structure(self, structure: BaseStructure):
        """Report an already built tree to the listeners, as if it had just been parsed."""
        if not self.notification_active or not self._listeners:
            return

        for listener in self._listeners:
            listener.start_event_parse(structure)

        for child in structure.preorder():
            if self._filter is None or self._filter(child):
                for listener in self._listeners:
                    listener.got_structure(structure, child)

        for listener in self._listeners:
            listener.end_event_parse(structure)
