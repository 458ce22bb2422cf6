import struct
from typing import Optional

from pyeviotree.byte_order import ByteOrder


def make_hex_dump(data, chunk_size: int = 16, title: Optional[str] = None, base_offset: int = 0) -> str:
    """
    Create a formatted hexdump of binary data.

    Args:
        data: Binary data to dump
        chunk_size: Number of bytes per line
        title: Optional title to display before the hex dump
        base_offset: Offset printed for the first byte

    Returns:
        String containing formatted hexdump
    """
    dump = []

    if title:
        dump.append(f"--- {title} ---")

    half_chunk = chunk_size // 2
    header = "  {:<10}  {:<{}}  {}".format("offset", "data", chunk_size * 3 + 1, "text")
    dump.append(header)
    dump.append("-" * len(header))
    for i in range(0, len(data), chunk_size):
        chunk = bytes(data[i:i + chunk_size])
        hex1 = ' '.join(f"{b:02x}" for b in chunk[:half_chunk])
        hex2 = ' '.join(f"{b:02x}" for b in chunk[half_chunk:])
        hex_part = f"{hex1}  {hex2}" if hex2 else hex1
        ascii_str = ''.join(chr(b) if 32 <= b < 127 else '.' for b in chunk)
        dump.append(f"  0x{base_offset + i:08x}  {hex_part:<{chunk_size * 3 + 1}}  {ascii_str}")
    return '\n'.join(dump)


def make_word_dump(data, order=ByteOrder.BIG_ENDIAN, title: Optional[str] = None,
                   base_offset: int = 0, words_per_line: int = 4) -> str:
    """
    Dump data as 32 bit words decoded in the given byte order.

    Trailing bytes that do not fill a whole word are ignored.

    Args:
        data: Binary data to dump
        order: Byte order used to decode each word
        title: Optional title to display before the dump
        base_offset: Byte offset printed for the first word
        words_per_line: Number of words per output line

    Returns:
        String containing the formatted word dump
    """
    order = ByteOrder.from_value(order)
    dump = []
    if title:
        dump.append(f"--- {title} ({order}) ---")

    count = len(data) // 4
    words = struct.unpack_from(f"{order.char}{count}I", data, 0) if count else ()
    for i in range(0, count, words_per_line):
        line = '  '.join(f"{w:08x}" for w in words[i:i + words_per_line])
        byte_offset = base_offset + 4 * i
        dump.append(f"  [{byte_offset // 4:6d}] 0x{byte_offset:08x}:  {line}")
    return '\n'.join(dump)
