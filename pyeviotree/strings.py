"""
Codec for CHARSTAR8 (string array) payloads.

Each string is written followed by a single NUL and the whole payload is then
padded to a 4 byte boundary with 1 to 4 bytes of 0x04. The 0x04 trailer is
what marks the multi-string format: data whose last byte is not 0x04 comes
from older writers that stored one string and left anything after its NUL
undefined.
"""
import logging
from typing import Iterable, List, NamedTuple

logger = logging.getLogger(__name__)

PAD_CHAR = 0x04

# Number of 0x04 bytes to append, indexed by (payload length % 4)
_PAD_COUNTS = (4, 3, 2, 1)


class StringUnpackResult(NamedTuple):
    """Outcome of scanning a string payload."""
    strings: List[str]
    # Offset just past the last NUL, where new strings may be appended
    string_end: int
    bad_format: bool


def strings_to_raw_size(strings: Iterable[str]) -> int:
    """
    Number of bytes ``strings_to_raw_bytes`` would produce.

    Args:
        strings: Strings to size

    Returns:
        Payload size in bytes, 0 for an empty collection
    """
    total = 0
    count = 0
    for s in strings:
        total += len(s.encode('ascii')) + 1
        count += 1
    if count == 0:
        return 0
    return total + _PAD_COUNTS[total % 4]


def strings_to_raw_bytes(strings: Iterable[str]) -> bytes:
    """
    Encode strings into the evio CHARSTAR8 format.

    Args:
        strings: ASCII strings to encode

    Returns:
        Encoded payload; empty bytes for an empty collection
    """
    raw = bytearray()
    count = 0
    for s in strings:
        raw += s.encode('ascii')
        raw.append(0)
        count += 1
    if count == 0:
        return b''
    raw += bytes([PAD_CHAR]) * _PAD_COUNTS[len(raw) % 4]
    return bytes(raw)


def _is_good_char(c: int) -> bool:
    return 32 <= c < 127 or c == 0x09 or c == 0x0a


def scan_strings(raw: bytes, only_good_chars: bool = False) -> StringUnpackResult:
    """
    Split a CHARSTAR8 payload into its strings.

    Malformed data is never an error: it comes back as a single string holding
    the whole payload (or only its leading printable characters when
    ``only_good_chars`` is set) with ``bad_format`` True.

    Args:
        raw: Payload bytes
        only_good_chars: On bad data, return only the printable prefix

    Returns:
        StringUnpackResult
    """
    raw = bytes(raw)
    length = len(raw)
    if length < 4:
        return StringUnpackResult([], 0, False)

    # No trailing 0x04 means the old single string format
    no_ending_4 = raw[-1] != PAD_CHAR

    null_indexes = []
    bad_format = True
    bad_index = length

    for i, c in enumerate(raw):
        if c == 0:
            null_indexes.append(i)
            if no_ending_4:
                # Everything past the first NUL is undefined padding
                bad_format = False
                break
        elif not _is_good_char(c):
            bad_index = i
            if not null_indexes:
                break
            if c == PAD_CHAR:
                # Must be the trailing pad: at most 3 more bytes, all 0x04
                if length - i - 1 > 3:
                    break
                if all(b == PAD_CHAR for b in raw[i + 1:]):
                    bad_format = False
                break
            break

    if bad_format:
        logger.debug(f"bad string format in {length} byte payload at offset {bad_index}")
        if only_good_chars:
            prefix = bytearray()
            for c in raw[:bad_index]:
                if c == 0 or not _is_good_char(c):
                    break
                prefix.append(c)
            return StringUnpackResult([prefix.decode('ascii')], 0, True)
        return StringUnpackResult([raw.decode('latin-1')], 0, True)

    strings = []
    start = 0
    for index in null_indexes:
        strings.append(raw[start:index].decode('ascii'))
        start = index + 1
    return StringUnpackResult(strings, null_indexes[-1] + 1, False)


def unpack_raw_bytes_to_strings(raw: bytes, offset: int = 0, length: int = None,
                                only_good_chars: bool = False) -> List[str]:
    """
    Decode the strings held in ``raw[offset:offset + length]``.

    Args:
        raw: Buffer holding the payload
        offset: Start of the payload in bytes
        length: Payload length in bytes (to the end of raw when None)
        only_good_chars: On bad data, return only the printable prefix

    Returns:
        List of strings
    """
    end = len(raw) if length is None else offset + length
    return scan_strings(raw[offset:end], only_good_chars).strings
