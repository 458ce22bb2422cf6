import mmap

import click
from rich.console import Console
from rich.markup import escape

from pyeviotree.utils import make_hex_dump, make_word_dump


@click.command(name="hex")
@click.argument("filename", type=click.Path(exists=True))
@click.argument("offset", type=int, default=0)
@click.option("--size", "-s", type=int, default=30, help="Number of words to display (default: 30)")
@click.option("--bytes", "-b", "as_bytes", is_flag=True, help="Interpret offset as bytes instead of words")
@click.option("--endian", "-e", type=click.Choice(['<', '>']), default='>', help="Endianness: < for little-endian, > for big-endian")
@click.option("--ascii", "-a", "as_ascii", is_flag=True, help="Show bytes with an ASCII column instead of words")
@click.option('--verbose', '-v', is_flag=True, help="Enable verbose output")
@click.pass_context
def hex_command(ctx, filename, offset, size, as_bytes, endian, as_ascii, verbose):
    """
    Display hexadecimal dump of the file at the specified offset.

    OFFSET is specified in number of 32-bit words by default, or in bytes if --bytes is used.

    Examples:

    \b
    # Show 30 words starting at word offset 10
    pyeviotree hex event.bin 10

    \b
    # Show 20 words starting at byte offset 4096
    pyeviotree hex event.bin 4096 --size 20 --bytes

    \b
    # Use little-endian interpretation
    pyeviotree hex event.bin 10 --endian "<"
    """
    # Use either the command-specific verbose flag or the global one
    verbose = verbose or (ctx.obj or {}).get('VERBOSE', False)
    console = Console()

    # Convert word offset to byte offset if needed
    byte_offset = offset if as_bytes else offset * 4

    try:
        with open(filename, 'rb') as file:
            with mmap.mmap(file.fileno(), 0, access=mmap.ACCESS_READ) as mm:
                if byte_offset >= len(mm):
                    raise ValueError(f"offset {byte_offset} is past the end of the file ({len(mm)} bytes)")
                data = mm[byte_offset:byte_offset + size * 4]

        title = f"Memory dump at offset: {f'0x{byte_offset:X}' if as_bytes else f'word {offset}'}"
        if as_ascii:
            text = make_hex_dump(data, title=title, base_offset=byte_offset)
        else:
            text = make_word_dump(data, endian, title=title, base_offset=byte_offset)
        console.print(text, markup=False, highlight=False, soft_wrap=True)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            import traceback
            console.print(traceback.format_exc(), markup=False)
