import numpy as np
import pytest

from pyeviotree.data_type import (DataType, StructureType, get_data_type,
                                  get_structure_type, get_type_name)


@pytest.mark.parametrize("code,expected", [
    (0x0, DataType.UNKNOWN32),
    (0xb, DataType.INT32),
    (0xf, DataType.COMPOSITE),
    (0x10, DataType.BANK),
    (0x20, DataType.SEGMENT),
    (0x23, DataType.nVALUE),
    (0x11, DataType.UNKNOWN32),   # gap between BANK and SEGMENT
    (0x1f, DataType.UNKNOWN32),
    (0x25, DataType.UNKNOWN32),
    (0xffff, DataType.UNKNOWN32),
])
def test_get_data_type(code, expected):
    assert get_data_type(code) is expected


def test_names_normalize_also_types():
    assert str(DataType.ALSOBANK) == "BANK"
    assert str(DataType.ALSOSEGMENT) == "SEGMENT"
    assert get_type_name(0xe) == "BANK"
    assert get_type_name(0x2) == "FLOAT32"


def test_structure_queries():
    for dt in (DataType.BANK, DataType.SEGMENT, DataType.TAGSEGMENT,
               DataType.ALSOBANK, DataType.ALSOSEGMENT):
        assert dt.is_structure()
    assert not DataType.COMPOSITE.is_structure()
    assert DataType.ALSOBANK.is_bank()
    assert not DataType.SEGMENT.is_bank()
    assert DataType.ALSOSEGMENT.is_segment()
    assert DataType.TAGSEGMENT.is_tag_segment()


def test_integer_types():
    integers = [dt for dt in DataType if dt.is_integer()]
    assert len(integers) == 8
    assert DataType.USHORT16.is_integer()
    assert not DataType.FLOAT32.is_integer()
    assert not DataType.HOLLERIT.is_integer()


def test_byte_widths():
    assert DataType.DOUBLE64.byte_width == 8
    assert DataType.ULONG64.byte_width == 8
    assert DataType.HOLLERIT.byte_width == 4
    assert DataType.NVALUE.byte_width == 4
    assert DataType.nVALUE.byte_width == 2
    assert DataType.mVALUE.byte_width == 1
    assert DataType.CHARSTAR8.byte_width == 0
    assert DataType.BANK.byte_width == 0


def test_numpy_dtypes():
    assert DataType.INT32.numpy_dtype == np.dtype(np.int32)
    assert DataType.USHORT16.numpy_dtype == np.dtype(np.uint16)
    assert DataType.CHARSTAR8.numpy_dtype is None


def test_structure_type_lookup():
    assert get_structure_type(0x10) is StructureType.BANK
    assert get_structure_type(0xe) is StructureType.BANK
    assert get_structure_type(0xd) is StructureType.SEGMENT
    assert get_structure_type(0xc) is StructureType.TAGSEGMENT
    assert get_structure_type(0x3) is StructureType.UNKNOWN32
    assert StructureType.BANK.alternate_value == 0xe
    assert StructureType.TAGSEGMENT.alternate_value is None
