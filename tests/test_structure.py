import numpy as np
import pytest
from numpy.testing import assert_array_equal

from pyeviotree import structure
from pyeviotree.data_type import DataType, StructureType
from pyeviotree.exceptions import (BufferTooSmallError, DataTypeError, EvioException,
                                   EvioOverflowError, StructureMismatchError)
from pyeviotree.parser import EvioListener, parse_event
from pyeviotree.strings import strings_to_raw_bytes
from pyeviotree.structure import EvioBank, EvioEvent, EvioSegment, EvioTagSegment


def words(values, byteorder='big'):
    return b''.join(int(x).to_bytes(4, byteorder) for x in values)


ROUND_TRIP_CASES = [
    ("set_int_data", "get_int_data", [-1, 0, 7, 2 ** 31 - 1], np.int32),
    ("set_uint_data", "get_uint_data", [0, 2 ** 32 - 1], np.uint32),
    ("set_short_data", "get_short_data", [-3, 4, 5], np.int16),
    ("set_ushort_data", "get_ushort_data", [65535, 1], np.uint16),
    ("set_long_data", "get_long_data", [-(2 ** 40), 7], np.int64),
    ("set_ulong_data", "get_ulong_data", [2 ** 63 + 1], np.uint64),
    ("set_float_data", "get_float_data", [1.5, -2.25], np.float32),
    ("set_double_data", "get_double_data", [3.141592653589793, -1e300], np.float64),
    ("set_char_data", "get_char_data", [-1, 2, 3], np.int8),
    ("set_uchar_data", "get_uchar_data", [255, 0, 1, 2, 3], np.uint8),
]


@pytest.mark.parametrize("setter,getter,values,dtype", ROUND_TRIP_CASES)
@pytest.mark.parametrize("endian", ['<', '>'])
def test_primitive_round_trip(setter, getter, values, dtype, endian):
    bank = EvioBank(5, DataType.UNKNOWN32, 1, byte_order=endian)
    getattr(bank, setter)(values)
    bank.set_all_header_lengths()

    parsed = parse_event(bank.to_bytes(), 0, endian)
    data = getattr(parsed, getter)()
    assert data.dtype == np.dtype(dtype)
    assert_array_equal(data, np.array(values, dtype=dtype))


@pytest.mark.parametrize("setter,getter,values,dtype", ROUND_TRIP_CASES)
def test_written_in_other_order(setter, getter, values, dtype):
    bank = EvioBank(5, DataType.UNKNOWN32, 1, byte_order='>')
    getattr(bank, setter)(values)
    bank.set_all_header_lengths()

    # From the typed cache
    little = bank.to_bytes('<')
    assert_array_equal(getattr(parse_event(little, 0, '<'), getter)(), values)

    # From raw bytes that were never decoded
    parsed = parse_event(bank.to_bytes('>'), 0, '>')
    assert parse_event(parsed.to_bytes('<'), 0, '<').header.length == bank.header.length
    assert_array_equal(getattr(parse_event(parsed.to_bytes('<'), 0, '<'), getter)(), values)


def test_get_wrong_type():
    bank = EvioBank(1, DataType.INT32, 1)
    bank.set_int_data([1, 2])
    with pytest.raises(DataTypeError, match="INT32"):
        bank.get_short_data()
    with pytest.raises(DataTypeError):
        bank.append_double_data([1.0])
    with pytest.raises(DataTypeError):
        bank.get_string_data()
    with pytest.raises(DataTypeError):
        bank.set_composite_data([])


def test_set_forces_type():
    bank = EvioBank(1, DataType.UNKNOWN32, 1)
    bank.set_float_data([1.5])
    assert bank.data_type is DataType.FLOAT32

    # signed/unsigned counterpart is kept, values take its dtype
    bank = EvioBank(1, DataType.UINT32, 1)
    bank.set_int_data([1])
    assert bank.data_type is DataType.UINT32
    assert bank.get_uint_data().dtype == np.uint32
    assert_array_equal(bank.get_uint_data(), [1])


@pytest.mark.parametrize("data_type,getter,appender", [
    (DataType.INT32, "get_uint_data", "append_uint_data"),
    (DataType.UINT32, "get_int_data", "append_int_data"),
    (DataType.SHORT16, "get_ushort_data", "append_ushort_data"),
    (DataType.ULONG64, "get_long_data", "append_long_data"),
    (DataType.UCHAR8, "get_char_data", "append_char_data"),
])
def test_counterpart_type_does_not_match(data_type, getter, appender):
    bank = EvioBank(1, data_type, 1)
    with pytest.raises(DataTypeError, match=data_type.name):
        getattr(bank, getter)()
    with pytest.raises(DataTypeError):
        getattr(bank, appender)([1])


def test_update_needs_exact_type():
    bank = EvioBank(1, DataType.INT32, 1)
    bank.set_int_data([-1])
    with pytest.raises(DataTypeError):
        bank.update_uint_data()
    assert_array_equal(bank.get_int_data(), [-1])


def test_set_value_out_of_range():
    bank = EvioBank(1, DataType.INT32, 1)
    bank.set_int_data([5])
    with pytest.raises(EvioOverflowError, match="INT32"):
        bank.set_uint_data([2 ** 32 - 1])
    assert bank.data_type is DataType.INT32
    assert_array_equal(bank.get_int_data(), [5])


def test_append_extends_data():
    segment = EvioSegment(1, DataType.INT32)
    segment.append_int_data([1, 2])
    segment.append_int_data(3)
    segment.append_int_data(None)
    segment.append_int_data([])
    assert_array_equal(segment.get_int_data(), [1, 2, 3])
    assert segment.get_number_data_items() == 3


def test_odd_short_count_padding():
    segment = EvioSegment(1, DataType.SHORT16)
    segment.append_short_data([1, 2, 3])
    assert segment.header.padding == 2
    assert len(segment.raw_bytes) == 2 * 3 + 2

    segment.append_short_data([4])
    assert segment.header.padding == 0
    assert len(segment.raw_bytes) == 8


@pytest.mark.parametrize("count,padding", [
    (1, 3), (2, 2), (3, 1), (4, 0), (5, 3), (6, 2), (7, 1), (8, 0),
])
def test_byte_padding(count, padding):
    bank = EvioBank(1, DataType.CHAR8, 1)
    bank.set_char_data(list(range(count)))
    assert bank.header.padding == padding
    assert len(bank.raw_bytes) == count + padding
    assert bank.get_number_data_items() == count


def test_overflow_leaves_data_intact(monkeypatch):
    monkeypatch.setattr(structure, "MAX_DATA_ITEMS", 4)
    bank = EvioBank(1, DataType.INT32, 1)
    bank.set_int_data([1, 2, 3])
    with pytest.raises(EvioOverflowError, match="overflowed"):
        bank.append_int_data([4, 5])
    assert_array_equal(bank.get_int_data(), [1, 2, 3])

    strings = EvioBank(2, DataType.CHARSTAR8, 1)
    strings.set_string_data(["a", "b", "c", "d"])
    with pytest.raises(EvioOverflowError):
        strings.append_string_data("e")
    assert strings.get_string_data() == ("a", "b", "c", "d")


def test_edits_to_returned_array_are_written():
    bank = EvioBank(1, DataType.INT32, 1, byte_order='>')
    bank.set_int_data([1, 2, 3])
    bank.get_int_data()[0] = 42
    bank.set_all_header_lengths()
    assert_array_equal(parse_event(bank.to_bytes(), 0, '>').get_int_data(), [42, 2, 3])


def test_string_data():
    bank = EvioBank(1, DataType.CHARSTAR8, 1)
    bank.set_string_data(["a", "", "bc"])
    assert bank.get_string_data() == ("a", "", "bc")

    bank.append_string_data("def")
    assert bank.get_string_data() == ("a", "", "bc", "def")
    assert bank.raw_bytes == strings_to_raw_bytes(["a", "", "bc", "def"])
    assert bank.string_end == 10
    assert bank.get_number_data_items() == 4

    bank.set_string_data("only")
    assert bank.get_string_data() == ("only",)


def test_bad_string_data_blocks_append():
    bank = EvioBank(1, DataType.CHARSTAR8, 1)
    raw = b"ab\x01c\x00\x04\x04\x04"
    bank.set_raw_bytes(raw)
    assert bank.get_string_data() == (raw.decode('latin-1'),)
    assert bank.bad_string_format
    with pytest.raises(EvioException, match="badly formatted"):
        bank.append_string_data("x")


def test_append_to_legacy_strings():
    bank = EvioBank(1, DataType.CHARSTAR8, 1)
    bank.set_raw_bytes(b"hello\x00\xff\x13")
    assert bank.get_string_data() == ("hello",)
    bank.append_string_data("x")
    assert bank.get_string_data() == ("hello", "x")
    assert bank.raw_bytes == strings_to_raw_bytes(["hello", "x"])


def test_update_string_data_invalidates_lengths(nested_event):
    strings = EvioBank(3, DataType.CHARSTAR8, 3, byte_order='>')
    strings.set_string_data(["abc"])
    nested_event.add(strings)
    nested_event.set_all_header_lengths()
    strings.update_string_data()
    assert not nested_event.lengths_up_to_date


def test_concrete_nested_event(nested_event, event_words):
    assert nested_event.set_all_header_lengths() == 6
    child = nested_event.child_at(0)
    assert child.header.length == 4

    raw = nested_event.to_bytes()
    assert raw == words(event_words, 'big')
    assert nested_event.to_bytes('<') == words(event_words, 'little')

    parsed = parse_event(raw, 0, '>')
    assert (parsed.tag, parsed.header.number) == (1, 1)
    assert parsed.child_count == 1
    parsed_child = parsed.child_at(0)
    assert (parsed_child.tag, parsed_child.header.number) == (2, 2)
    assert_array_equal(parsed_child.get_int_data(), [1, 2, 3])


def test_lengths_are_memoized(nested_event):
    first = nested_event.set_all_header_lengths()
    assert nested_event.lengths_up_to_date
    assert nested_event.set_all_header_lengths() == first
    assert nested_event.child_at(0).header.length == 4


def test_invalidation_reaches_root():
    root = EvioBank(1, DataType.BANK, 1)
    middle = EvioBank(2, DataType.BANK, 2)
    leaf = EvioBank(3, DataType.INT32, 3)
    leaf.set_int_data([1, 2, 3])
    middle.add(leaf)
    root.add(middle)
    assert root.set_all_header_lengths() == 8

    leaf.append_int_data([4, 5])
    assert not middle.lengths_up_to_date
    assert not root.lengths_up_to_date

    assert root.set_all_header_lengths() == 10
    assert middle.header.length == 8
    assert leaf.header.length == 6


def test_length_invariant_for_every_node():
    root = EvioEvent(1, DataType.BANK, 0, byte_order='<')
    segments = EvioBank(2, DataType.SEGMENT, 0, byte_order='<')
    shorts = EvioSegment(3, DataType.USHORT16, byte_order='<')
    shorts.set_ushort_data([1, 2, 3, 4, 5])
    text = EvioSegment(4, DataType.CHARSTAR8, byte_order='<')
    text.set_string_data(["run", "42"])
    segments.add(shorts)
    segments.add(text)
    doubles = EvioBank(5, DataType.DOUBLE64, 0, byte_order='<')
    doubles.set_double_data([0.5])
    root.add(segments)
    root.add(doubles)
    root.set_all_header_lengths()

    for node in root.preorder():
        assert node.header.length == len(node.to_bytes()) // 4 - 1


def test_write_checks():
    bank = EvioBank(1, DataType.INT32, 1)
    bank.set_int_data([1])
    with pytest.raises(EvioException, match="set_all_header_lengths"):
        bank.write(bytearray(64))

    bank.set_all_header_lengths()
    with pytest.raises(BufferTooSmallError):
        bank.write(bytearray(8))

    buffer = bytearray(16)
    assert bank.write(buffer, 4) == 12
    assert bank.get_total_bytes() == 12


def test_container_rules(nested_event):
    leaf = nested_event.child_at(0)
    with pytest.raises(StructureMismatchError):
        leaf.add(EvioBank(9, DataType.INT32, 9))
    with pytest.raises(StructureMismatchError):
        nested_event.add(EvioSegment(9, DataType.INT32))
    with pytest.raises(StructureMismatchError):
        nested_event.set_int_data([1])
    assert nested_event.child_count == 1


def test_clear_data(nested_event):
    leaf = nested_event.child_at(0)
    nested_event.clear_data()
    assert nested_event.child_count == 1

    leaf.clear_data()
    assert leaf.get_number_data_items() == 0
    assert leaf.header.padding == 0
    assert leaf.raw_bytes == b''


def test_tree_access(nested_event):
    child = nested_event.child_at(0)
    second = EvioBank(3, DataType.UINT32, 3, byte_order='>')
    nested_event.add(second)
    assert child.parent is nested_event
    assert child.next_sibling is second
    assert second.previous_sibling is child
    assert second.root is nested_event
    assert second.level == 1
    assert nested_event.depth == 1
    assert nested_event.is_ancestor_of(second)

    nested_event.set_all_header_lengths()
    second.remove_from_parent()
    assert second.parent is None
    assert not nested_event.lengths_up_to_date

    nested_event.remove_all()
    assert nested_event.child_count == 0


def test_search(nested_event):
    found = nested_event.get_matching_structures(lambda s: s.tag == 2)
    assert found == [nested_event.child_at(0)]

    class Collector(EvioListener):
        def __init__(self):
            self.seen = []

        def got_structure(self, top_structure, structure):
            assert top_structure is nested_event
            self.seen.append(structure.tag)

    collector = Collector()
    nested_event.visit_all_structures(collector)
    assert collector.seen == [1, 2]

    collector = Collector()
    nested_event.visit_all_structures(collector, lambda s: not s.is_container())
    assert collector.seen == [2]


def test_segment_and_tagsegment_children():
    event = EvioEvent(1, DataType.TAGSEGMENT, 0, byte_order='>')
    tagsegment = EvioTagSegment(0x123, DataType.UINT32, byte_order='>')
    tagsegment.set_uint_data([7])
    event.add(tagsegment)
    event.set_all_header_lengths()

    parsed = parse_event(event.to_bytes(), 0, '>')
    child = parsed.child_at(0)
    assert isinstance(child, EvioTagSegment)
    assert child.structure_type is StructureType.TAGSEGMENT
    assert child.tag == 0x123
    assert_array_equal(child.get_uint_data(), [7])


def test_number_data_items_for_container(nested_event):
    nested_event.set_all_header_lengths()
    assert nested_event.get_number_data_items() == 5


def test_display(nested_event):
    nested_event.set_all_header_lengths()
    text = nested_event.tree_to_string()
    assert "<bank> tag=1(0x1)" in text
    assert "    <bank> tag=2(0x2), type=INT32, len=4, num=2, pad=0, items=3" in text
    assert "offset" in nested_event.child_at(0).get_hex_dump()
    assert "00000001" in nested_event.child_at(0).get_hex_dump(words=True)
    assert str(EvioEvent(7)).startswith("<event> #0 tag=7")
