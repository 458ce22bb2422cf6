from typing import Tuple, Union

from pyeviotree.byte_order import ByteOrder, read_uint32, write_uint32
from pyeviotree.data_type import DataType, StructureType, get_data_type
from pyeviotree.exceptions import BufferTooSmallError, EvioOverflowError


class BaseStructureHeader:
    """
    Common part of the bank, segment and tagsegment headers.

    Attributes shared by all three kinds: length (in 32 bit words, not counting
    the length word itself), tag, data type and padding. Only banks put the num
    field on the wire, the other kinds keep it at 0.
    """

    # Number of 32 bit words in this kind of header
    HEADER_LENGTH = 1

    # Largest values the wire fields can hold
    MAX_TAG = 0xFF
    MAX_LENGTH = 0xFFFF

    STRUCTURE_TYPE = StructureType.UNKNOWN32

    def __init__(self, tag: int = 0, data_type: Union[DataType, int] = DataType.UNKNOWN32,
                 number: int = 0):
        self._length = 0
        self._tag = 0
        self._number = 0
        self._padding = 0
        self._data_type = DataType.UNKNOWN32
        self.tag = tag
        self.data_type = data_type
        self.number = number

    @property
    def length(self) -> int:
        return self._length

    @length.setter
    def length(self, value: int):
        if value < 0 or value > self.MAX_LENGTH:
            raise EvioOverflowError(
                f"{self.STRUCTURE_TYPE.name.lower()} length {value} out of range (max {self.MAX_LENGTH})")
        self._length = value

    @property
    def tag(self) -> int:
        return self._tag

    @tag.setter
    def tag(self, value: int):
        if value < 0 or value > self.MAX_TAG:
            raise EvioOverflowError(
                f"{self.STRUCTURE_TYPE.name.lower()} tag {value} out of range (max {self.MAX_TAG})")
        self._tag = value

    @property
    def number(self) -> int:
        return self._number

    @number.setter
    def number(self, value: int):
        if value < 0 or value > 0xFF:
            raise EvioOverflowError(f"num {value} out of range (max 255)")
        self._number = value

    @property
    def padding(self) -> int:
        return self._padding

    @padding.setter
    def padding(self, value: int):
        if value < 0 or value > 3:
            raise ValueError(f"padding must be 0-3, got {value}")
        self._padding = value

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @data_type.setter
    def data_type(self, value: Union[DataType, int]):
        if not isinstance(value, DataType):
            value = get_data_type(value)
        self._data_type = value

    @property
    def header_length(self) -> int:
        return self.HEADER_LENGTH

    @property
    def data_length(self) -> int:
        """Number of payload words: the length minus any extra header words."""
        return self._length - (self.HEADER_LENGTH - 1)

    @property
    def structure_type(self) -> StructureType:
        return self.STRUCTURE_TYPE

    def _type_pad_byte(self) -> int:
        return (self._data_type.value & 0x3F) | (self._padding << 6)

    def _words(self) -> Tuple[int, ...]:
        raise NotImplementedError

    def write(self, buffer, offset: int = 0, order: Union[ByteOrder, str, None] = None) -> int:
        """
        Write this header into a writable buffer.

        Args:
            buffer: bytearray, memoryview or other writable buffer
            offset: Byte offset to start writing at
            order: Byte order to write in (defaults to the local order)

        Returns:
            Number of bytes written
        """
        order = ByteOrder.from_value(order)
        size = 4 * self.HEADER_LENGTH
        available = len(buffer) - offset
        if available < size:
            raise BufferTooSmallError(size, available, "header")
        for i, word in enumerate(self._words()):
            write_uint32(buffer, offset + 4 * i, word, order)
        return size

    def to_bytes(self, order: Union[ByteOrder, str, None] = None) -> bytes:
        buffer = bytearray(4 * self.HEADER_LENGTH)
        self.write(buffer, 0, order)
        return bytes(buffer)

    @classmethod
    def from_buffer(cls, buffer, offset: int = 0,
                    endian: Union[ByteOrder, str, None] = '<') -> 'BaseStructureHeader':
        """
        Decode a header from a buffer.

        Args:
            buffer: Buffer holding the header
            offset: Byte offset where the header starts
            endian: Byte order of the buffer

        Returns:
            Header object of the calling class
        """
        order = ByteOrder.from_value(endian)
        size = 4 * cls.HEADER_LENGTH
        if len(buffer) - offset < size:
            raise BufferTooSmallError(size, len(buffer) - offset, "header")
        words = [read_uint32(buffer, offset + 4 * i, order) for i in range(cls.HEADER_LENGTH)]
        header = cls()
        header._decode(words)
        return header

    def _decode(self, words):
        raise NotImplementedError

    def copy(self) -> 'BaseStructureHeader':
        header = type(self)()
        header._length = self._length
        header._tag = self._tag
        header._number = self._number
        header._padding = self._padding
        header._data_type = self._data_type
        return header

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(tag={self._tag}, type={self._data_type.name}, "
                f"num={self._number}, length={self._length})")


class BankHeader(BaseStructureHeader):
    """
    Header of a bank: 2 words.

    Structure:
    - Word 1: length
    - Word 2: tag (16 bits) | pad (2 bits) | type (6 bits) | num (8 bits)

    Written big endian the second word lays out tag, type/pad, num in bytes
    4-7. Written little endian the same word puts num at byte 4, type/pad at
    byte 5 and the tag at bytes 6-7.
    """
    HEADER_LENGTH = 2
    MAX_TAG = 0xFFFF
    MAX_LENGTH = 0xFFFFFFFF
    STRUCTURE_TYPE = StructureType.BANK

    def _words(self) -> Tuple[int, ...]:
        info = (self._tag << 16) | (self._type_pad_byte() << 8) | self._number
        return self._length, info

    def _decode(self, words):
        self._length = words[0]
        bank_info = words[1]
        self._tag = (bank_info >> 16) & 0xFFFF
        self._padding = (bank_info >> 14) & 0x3
        self._data_type = get_data_type((bank_info >> 8) & 0x3F)
        self._number = bank_info & 0xFF

    def __str__(self) -> str:
        return f"""bank length: {self._length}
number:      {self._number}
data type:   {self._data_type}
tag:         {self._tag}
padding:     {self._padding}"""


class SegmentHeader(BaseStructureHeader):
    """
    Header of a segment: 1 word.

    Structure: tag (8 bits) | pad (2 bits) | type (6 bits) | length (16 bits)
    """
    STRUCTURE_TYPE = StructureType.SEGMENT

    def _words(self) -> Tuple[int, ...]:
        return ((self._tag << 24) | (self._type_pad_byte() << 16) | (self._length & 0xFFFF),)

    def _decode(self, words):
        word = words[0]
        self._length = word & 0xFFFF
        self._tag = (word >> 24) & 0xFF
        self._padding = (word >> 22) & 0x3
        self._data_type = get_data_type((word >> 16) & 0x3F)

    def __str__(self) -> str:
        return f"""segment length: {self._length}
data type:      {self._data_type}
tag:            {self._tag}
padding:        {self._padding}"""


class TagSegmentHeader(BaseStructureHeader):
    """
    Header of a tagsegment: 1 word.

    Structure: tag (12 bits) | type (4 bits) | length (16 bits)

    There is no room for padding or for the 0x10/0x20 bank and segment codes,
    so those are stored as ALSOBANK and ALSOSEGMENT.
    """
    MAX_TAG = 0xFFF
    STRUCTURE_TYPE = StructureType.TAGSEGMENT

    @BaseStructureHeader.data_type.setter
    def data_type(self, value: Union[DataType, int]):
        if not isinstance(value, DataType):
            value = get_data_type(value)
        if value is DataType.BANK:
            value = DataType.ALSOBANK
        elif value is DataType.SEGMENT:
            value = DataType.ALSOSEGMENT
        if value.value > 0xF:
            raise EvioOverflowError(f"data type {value.name} does not fit in a tagsegment header")
        self._data_type = value

    def _words(self) -> Tuple[int, ...]:
        composite = (self._tag << 4) | (self._data_type.value & 0xF)
        return ((composite << 16) | (self._length & 0xFFFF),)

    def _decode(self, words):
        word = words[0]
        self._length = word & 0xFFFF
        self._data_type = get_data_type((word >> 16) & 0xF)
        self._tag = (word >> 20) & 0xFFF

    def __str__(self) -> str:
        return f"""tag-seg length: {self._length}
data type:      {self._data_type}
tag:            {self._tag}"""


HEADER_CLASSES = {
    StructureType.BANK: BankHeader,
    StructureType.SEGMENT: SegmentHeader,
    StructureType.TAGSEGMENT: TagSegmentHeader,
}
