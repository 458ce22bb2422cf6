import pytest

from pyeviotree.builder import EventBuilder
from pyeviotree.data_type import DataType
from pyeviotree.exceptions import EvioException, StructureMismatchError
from pyeviotree.parser import parse_event
from pyeviotree.structure import EvioBank, EvioEvent, EvioSegment, EvioTagSegment


def words_to_bytes(words, byteorder='big'):
    return b''.join(int(x).to_bytes(4, byteorder) for x in words)


@pytest.fixture
def builder():
    return EventBuilder(tag=1, data_type=DataType.BANK, num=1, byte_order='>')


def test_build_event(builder, event_words):
    child = EvioBank(2, DataType.INT32, 2, byte_order='>')
    builder.add_child(builder.event, child)
    builder.set_int_data(child, [1, 2, 3])

    assert isinstance(builder.event, EvioEvent)
    assert builder.event.header.length == 6
    assert child.header.length == 4
    assert builder.to_bytes() == words_to_bytes(event_words)
    assert builder.to_bytes('<') == words_to_bytes(event_words, 'little')


def test_write_into_buffer(builder, event_words):
    child = EvioBank(2, DataType.INT32, 2, byte_order='>')
    builder.add_child(builder.event, child)
    builder.append_int_data(child, [1, 2])
    builder.append_int_data(child, 3)

    buffer = bytearray(32)
    assert builder.write(buffer, 4) == 28
    assert bytes(buffer[4:]) == words_to_bytes(event_words)
    assert bytes(buffer[:4]) == bytes(4)


def test_lengths_follow_every_change(builder):
    child = EvioBank(2, DataType.SHORT16, 0, byte_order='>')
    builder.add_child(builder.event, child)
    assert builder.event.header.length == 3

    builder.set_short_data(child, [1, 2, 3])
    assert child.header.length == 3
    assert child.header.padding == 2
    assert builder.event.header.length == 5

    builder.clear_data(child)
    assert child.header.length == 1
    assert builder.event.header.length == 3

    builder.remove(child)
    assert builder.event.header.length == 1
    assert builder.event.child_count == 0


def test_add_child_checks(builder):
    with pytest.raises(StructureMismatchError, match="child"):
        builder.add_child(builder.event, EvioBank(2, DataType.INT32, 0, byte_order='<'))
    with pytest.raises(StructureMismatchError, match="segment"):
        builder.add_child(builder.event, EvioSegment(2, DataType.INT32, byte_order='>'))

    leaf = EvioBank(3, DataType.INT32, 0, byte_order='>')
    builder.add_child(builder.event, leaf)
    with pytest.raises(StructureMismatchError):
        builder.add_child(leaf, EvioBank(4, DataType.INT32, 0, byte_order='>'))
    with pytest.raises(ValueError):
        builder.add_child(builder.event, None)
    assert builder.event.children == (leaf,)


def test_remove_checks(builder):
    with pytest.raises(EvioException, match="event itself"):
        builder.remove(builder.event)
    with pytest.raises(EvioException, match="no parent"):
        builder.remove(EvioBank(2, DataType.INT32, 0, byte_order='>'))


def test_tagsegment_container():
    builder = EventBuilder(tag=1, data_type=DataType.TAGSEGMENT, byte_order='<')
    tagsegment = EvioTagSegment(0x10, DataType.UINT32, byte_order='<')
    builder.add_child(builder.event, tagsegment)
    builder.set_uint_data(tagsegment, [5])

    data = builder.to_bytes()
    assert data == words_to_bytes([3, 0x00010C00, 0x01010001, 5], 'little')

    parsed = parse_event(data, 0, '<')
    child = parsed.child_at(0)
    assert isinstance(child, EvioTagSegment)
    assert child.tag == 0x10
    assert list(child.get_uint_data()) == [5]


def test_string_and_existing_event():
    event = EvioEvent(7, DataType.SEGMENT, 0, byte_order='>')
    builder = EventBuilder(event=event)
    assert builder.event is event

    segment = EvioSegment(1, DataType.CHARSTAR8, byte_order='>')
    builder.add_child(event, segment)
    builder.set_string_data(segment, "abc")
    builder.append_string_data(segment, ["de"])

    assert segment.get_string_data() == ("abc", "de")
    assert segment.header.length == 2
    assert event.header.length == 4
    assert parse_event(builder.to_bytes(), 0, '>').child_at(0).get_string_data() == ("abc", "de")
