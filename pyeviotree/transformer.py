import logging
from typing import Optional

from pyeviotree.data_type import DataType
from pyeviotree.exceptions import EvioOverflowError
from pyeviotree.header import BankHeader, SegmentHeader, TagSegmentHeader
from pyeviotree.structure import EvioBank, EvioSegment, EvioTagSegment

logger = logging.getLogger(__name__)


def _check_num(num: int):
    if num < 0 or num > 0xFF:
        raise EvioOverflowError(f"num {num} does not fit in 8 bits")


def _normalized_type(data_type: DataType) -> DataType:
    if data_type is DataType.ALSOBANK:
        return DataType.BANK
    if data_type is DataType.ALSOSEGMENT:
        return DataType.SEGMENT
    return data_type


class StructureTransformer:
    """
    Conversions between banks, segments and tagsegments.

    The new structure gets a copy of the data and takes over the children of
    the old one, which is left without children. Every check is made before
    anything is built, so a failed conversion leaves no half-made structure.
    """

    @staticmethod
    def segment_to_bank(segment: EvioSegment, num: int = 0) -> EvioBank:
        """
        Create a bank holding the same data as a segment.

        Args:
            segment: Segment to convert
            num: Num of the new bank

        Returns:
            EvioBank
        """
        _check_num(num)
        old = segment.header
        header = BankHeader(old.tag, old.data_type, num)
        header.padding = old.padding
        header.length = old.length + 1

        bank = EvioBank(header=header, byte_order=segment.byte_order)
        bank._take_contents(segment)
        logger.debug(f"segment tag={old.tag} -> bank, length {header.length}")
        return bank

    @staticmethod
    def tagsegment_to_bank(tagsegment: EvioTagSegment, num: int = 0) -> EvioBank:
        """
        Create a bank holding the same data as a tagsegment.

        Args:
            tagsegment: Tagsegment to convert
            num: Num of the new bank

        Returns:
            EvioBank
        """
        _check_num(num)
        old = tagsegment.header
        header = BankHeader(old.tag, old.data_type, num)
        header.padding = old.padding
        header.length = old.length + 1

        bank = EvioBank(header=header, byte_order=tagsegment.byte_order)
        bank._take_contents(tagsegment)
        logger.debug(f"tagsegment tag={old.tag} -> bank, length {header.length}")
        return bank

    @staticmethod
    def segment_to_tagsegment(segment: EvioSegment) -> EvioTagSegment:
        old = segment.header
        data_type = _normalized_type(old.data_type)
        if not data_type.is_structure() and data_type.value > 0xF:
            raise EvioOverflowError(f"data type {data_type.name} does not fit in a tagsegment header")

        header = TagSegmentHeader(old.tag, data_type)
        header.padding = old.padding
        header.length = old.length

        tagsegment = EvioTagSegment(header=header, byte_order=segment.byte_order)
        tagsegment._take_contents(segment)
        logger.debug(f"segment tag={old.tag} -> tagsegment, length {header.length}")
        return tagsegment

    @staticmethod
    def tagsegment_to_segment(tagsegment: EvioTagSegment) -> EvioSegment:
        old = tagsegment.header
        if old.tag > SegmentHeader.MAX_TAG:
            raise EvioOverflowError(f"tag {old.tag} is too large to transform into segment")

        header = SegmentHeader(old.tag, old.data_type)
        header.padding = old.padding
        header.length = old.length

        segment = EvioSegment(header=header, byte_order=tagsegment.byte_order)
        segment._take_contents(tagsegment)
        logger.debug(f"tagsegment tag={old.tag} -> segment, length {header.length}")
        return segment

    @staticmethod
    def bank_to_segment(bank: EvioBank) -> EvioSegment:
        """
        Create a segment holding the same data as a bank. The num is lost.

        Raises:
            EvioOverflowError: if the bank is too long or its tag too large for a segment
        """
        old = bank.header
        if old.length > SegmentHeader.MAX_LENGTH:
            raise EvioOverflowError("Bank is too long to transform into segment")
        if old.tag > SegmentHeader.MAX_TAG:
            raise EvioOverflowError(f"tag {old.tag} is too large to transform into segment")

        header = SegmentHeader(old.tag, old.data_type)
        header.padding = old.padding
        header.length = max(0, old.length - 1)

        segment = EvioSegment(header=header, byte_order=bank.byte_order)
        segment._take_contents(bank)
        logger.debug(f"bank tag={old.tag} -> segment, length {header.length}")
        return segment

    @staticmethod
    def bank_to_tagsegment(bank: EvioBank) -> EvioTagSegment:
        """
        Create a tagsegment holding the same data as a bank. The num is lost.

        Raises:
            EvioOverflowError: if the bank is too long, its tag too large or its
                data type does not fit in a tagsegment header
        """
        old = bank.header
        if old.length > TagSegmentHeader.MAX_LENGTH:
            raise EvioOverflowError("Bank is too long to transform into tagsegment")
        if old.tag > TagSegmentHeader.MAX_TAG:
            raise EvioOverflowError(f"tag {old.tag} is too large to transform into tagsegment")
        data_type = _normalized_type(old.data_type)
        if not data_type.is_structure() and data_type.value > 0xF:
            raise EvioOverflowError(f"data type {data_type.name} does not fit in a tagsegment header")

        header = TagSegmentHeader(old.tag, data_type)
        header.padding = old.padding
        header.length = max(0, old.length - 1)

        tagsegment = EvioTagSegment(header=header, byte_order=bank.byte_order)
        tagsegment._take_contents(bank)
        logger.debug(f"bank tag={old.tag} -> tagsegment, length {header.length}")
        return tagsegment

    @classmethod
    def transform(cls, structure, target: str, num: Optional[int] = None):
        """
        Convert ``structure`` to the kind named by ``target``.

        Args:
            structure: Bank, segment or tagsegment
            target: "bank", "segment" or "tagsegment"
            num: Num for a new bank (default 0)

        Returns:
            The converted structure, or ``structure`` itself if it already has that kind
        """
        if isinstance(structure, EvioBank):
            source = "bank"
        elif isinstance(structure, EvioSegment):
            source = "segment"
        elif isinstance(structure, EvioTagSegment):
            source = "tagsegment"
        else:
            raise TypeError(f"cannot transform {type(structure).__name__}")

        if source == target:
            return structure
        if target == "bank":
            convert = cls.segment_to_bank if source == "segment" else cls.tagsegment_to_bank
            return convert(structure, 0 if num is None else num)
        if target == "segment":
            if source == "bank":
                return cls.bank_to_segment(structure)
            return cls.tagsegment_to_segment(structure)
        if target == "tagsegment":
            if source == "bank":
                return cls.bank_to_tagsegment(structure)
            return cls.segment_to_tagsegment(structure)
        raise ValueError(f"unknown structure kind: {target!r}")
