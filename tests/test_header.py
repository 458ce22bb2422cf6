import pytest

from pyeviotree.byte_order import ByteOrder
from pyeviotree.data_type import DataType, StructureType
from pyeviotree.exceptions import BufferTooSmallError, EvioOverflowError
from pyeviotree.header import BankHeader, SegmentHeader, TagSegmentHeader


def make_bank_header(tag, data_type, num, length, padding=0):
    header = BankHeader(tag, data_type, num)
    header.length = length
    header.padding = padding
    return header


# Known-good wire images: field positions differ between the byte orders,
# so both are checked byte for byte.

def test_bank_header_big_endian():
    header = make_bank_header(1, DataType.INT32, 1, 4)
    assert header.to_bytes('>') == bytes.fromhex("00000004" "00010b01")


def test_bank_header_little_endian():
    header = make_bank_header(1, DataType.INT32, 1, 4)
    assert header.to_bytes('<') == bytes.fromhex("04000000" "010b0100")


def test_bank_header_padding_byte():
    header = make_bank_header(0x1234, DataType.SHORT16, 0x56, 3, padding=2)
    assert header.to_bytes('>') == bytes.fromhex("00000003" "12348456")
    assert header.to_bytes('<') == bytes.fromhex("03000000" "56843412")


def test_segment_header_fixtures():
    header = SegmentHeader(0x12, DataType.UINT32)
    header.length = 5
    assert header.to_bytes('>') == bytes.fromhex("12010005")
    assert header.to_bytes('<') == bytes.fromhex("05000112")


def test_tagsegment_header_fixtures():
    header = TagSegmentHeader(0x123, DataType.CHARSTAR8)
    header.length = 2
    assert header.to_bytes('>') == bytes.fromhex("12330002")
    assert header.to_bytes('<') == bytes.fromhex("02003312")


@pytest.mark.parametrize("endian", ['<', '>'])
def test_bank_header_decode(endian):
    original = make_bank_header(0xFF31, DataType.USHORT16, 200, 17, padding=2)
    decoded = BankHeader.from_buffer(original.to_bytes(endian), 0, endian)
    assert decoded.tag == 0xFF31
    assert decoded.data_type is DataType.USHORT16
    assert decoded.number == 200
    assert decoded.length == 17
    assert decoded.padding == 2
    assert decoded.data_length == 16


@pytest.mark.parametrize("endian", [ByteOrder.LITTLE_ENDIAN, ByteOrder.BIG_ENDIAN])
def test_segment_and_tagsegment_decode(endian):
    segment = SegmentHeader(0xAB, DataType.CHAR8)
    segment.length = 9
    segment.padding = 3
    decoded = SegmentHeader.from_buffer(b'\x00' * 4 + segment.to_bytes(endian), 4, endian)
    assert (decoded.tag, decoded.data_type, decoded.length, decoded.padding) == \
        (0xAB, DataType.CHAR8, 9, 3)

    tagsegment = TagSegmentHeader(0xFFF, DataType.DOUBLE64)
    tagsegment.length = 0xFFFF
    decoded = TagSegmentHeader.from_buffer(tagsegment.to_bytes(endian), 0, endian)
    assert (decoded.tag, decoded.data_type, decoded.length) == (0xFFF, DataType.DOUBLE64, 0xFFFF)


def test_tagsegment_stores_also_types():
    assert TagSegmentHeader(1, DataType.BANK).data_type is DataType.ALSOBANK
    assert TagSegmentHeader(1, DataType.SEGMENT).data_type is DataType.ALSOSEGMENT
    assert TagSegmentHeader(1, DataType.COMPOSITE).data_type is DataType.COMPOSITE
    with pytest.raises(EvioOverflowError):
        TagSegmentHeader(1, DataType.HOLLERIT)


def test_field_ranges():
    with pytest.raises(EvioOverflowError, match="tag"):
        SegmentHeader(0x100)
    with pytest.raises(EvioOverflowError, match="tag"):
        TagSegmentHeader(0x1000)
    with pytest.raises(EvioOverflowError, match="num"):
        BankHeader(1, DataType.INT32, 256)
    with pytest.raises(EvioOverflowError, match="length"):
        SegmentHeader().length = 0x10000
    with pytest.raises(ValueError):
        BankHeader().padding = 4

    header = BankHeader(0xFFFF, DataType.INT32, 255)
    header.length = 0xFFFFFFFF
    assert header.length == 0xFFFFFFFF


def test_write_needs_room():
    header = BankHeader(1, DataType.INT32, 1)
    with pytest.raises(BufferTooSmallError) as excinfo:
        header.write(bytearray(10), 4, '>')
    assert excinfo.value.required == 8
    assert excinfo.value.available == 6

    buffer = bytearray(12)
    assert header.write(buffer, 4, '>') == 8
    assert buffer[:4] == b'\x00' * 4


def test_header_lengths_and_kinds():
    assert BankHeader().header_length == 2
    assert SegmentHeader().header_length == 1
    assert TagSegmentHeader().header_length == 1
    assert BankHeader().structure_type is StructureType.BANK
    assert TagSegmentHeader().structure_type is StructureType.TAGSEGMENT


def test_header_str():
    header = make_bank_header(1, DataType.ALSOBANK, 1, 4)
    text = str(header)
    assert "bank length: 4" in text
    assert "data type:   BANK" in text
    assert "tag-seg length: 0" in str(TagSegmentHeader())
    assert "segment length: 0" in str(SegmentHeader())


def test_copy_is_independent():
    header = make_bank_header(1, DataType.INT32, 1, 4)
    other = header.copy()
    other.tag = 2
    assert header.tag == 1
    assert other.length == 4
