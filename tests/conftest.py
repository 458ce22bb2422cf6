import pytest

from pyeviotree.data_type import DataType
from pyeviotree.structure import EvioBank


@pytest.fixture
def event_words():
    """
    Words of a bank (tag=1, num=1) of banks holding one int bank
    (tag=2, num=2) with data [1, 2, 3].
    """
    return [
        6,            # outer length
        0x00011001,   # tag=1, type=BANK, num=1
        4,            # inner length
        0x00020B02,   # tag=2, type=INT32, num=2
        1, 2, 3,
    ]


@pytest.fixture
def nested_event():
    """The tree described by event_words, built in memory (big endian)."""
    parent = EvioBank(1, DataType.BANK, 1, byte_order='>')
    child = EvioBank(2, DataType.INT32, 2, byte_order='>')
    child.set_int_data([1, 2, 3])
    parent.add(child)
    return parent
