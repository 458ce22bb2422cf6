import click
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from pyeviotree.data_type import DataType
from pyeviotree.parser import parse_event

# Typed getter to use for previewing each data type
_PREVIEW_GETTERS = {
    DataType.INT32: "get_int_data",
    DataType.UINT32: "get_uint_data",
    DataType.SHORT16: "get_short_data",
    DataType.USHORT16: "get_ushort_data",
    DataType.LONG64: "get_long_data",
    DataType.ULONG64: "get_ulong_data",
    DataType.FLOAT32: "get_float_data",
    DataType.DOUBLE64: "get_double_data",
    DataType.CHAR8: "get_char_data",
    DataType.UCHAR8: "get_uchar_data",
    DataType.CHARSTAR8: "get_string_data",
}


def describe_structure(structure) -> str:
    """One line label for a structure in the tree display."""
    header = structure.header
    kind = structure.structure_type.name.capitalize()
    label = f"[bold]{kind} 0x{header.tag:04X}[/bold] type={header.data_type}, length={header.length} words"
    if kind == "Bank":
        label += f", num={header.number}"
    if not structure.is_container() and header.padding:
        label += f", pad={header.padding}"
    return label


def data_preview(structure, preview: int = 3):
    """
    Short text preview of a leaf structure's data.

    Args:
        structure: Leaf structure
        preview: Number of elements to show

    Returns:
        Preview text, or None if the data type has no typed view
    """
    data_type = structure.data_type
    if data_type is DataType.COMPOSITE:
        items = structure.get_composite_data()
        formats = ", ".join(f"'{item.format}'" for item in items[:preview])
        more = f", ... ({len(items) - preview} more)" if len(items) > preview else ""
        return f"{len(items)} composite items: {formats}{more}"

    getter = _PREVIEW_GETTERS.get(data_type)
    if getter is None:
        return None

    data = getattr(structure, getter)()
    preview_count = min(preview, len(data))
    data_preview = ", ".join([f"{x!r}" if isinstance(x, str) else f"{x}" for x in data[:preview_count]])
    if len(data) > preview_count:
        data_preview += f", ... ({len(data) - preview_count} more values)"
    return f"[{data_preview}]"


def add_structure(tree: Tree, structure, depth: int = 0, max_depth: int = 5, preview: int = 3):
    """
    Add a structure's children (and their children) to a rich tree.

    Args:
        tree: Node to add to
        structure: Structure whose contents are added
        depth: Current depth level
        max_depth: Maximum depth to display
        preview: Number of children and data elements to preview
    """
    if not structure.is_container():
        text = data_preview(structure, preview)
        if text is not None:
            tree.add(f"Data: {escape(text)}")
        return

    children = structure.children
    if not children:
        tree.add("[dim]No children[/dim]")
        return
    if depth >= max_depth:
        tree.add(f"[dim]{len(children)} children not shown[/dim]")
        return

    for i, child in enumerate(children):
        if i < preview or i >= len(children) - preview or len(children) <= preview * 2:
            node = tree.add(describe_structure(child))
            add_structure(node, child, depth + 1, max_depth, preview)
        elif i == preview:
            tree.add(f"[dim]... {len(children) - (preview * 2)} more structures ...[/dim]")


@click.command(name="dump")
@click.argument("filename", type=click.Path(exists=True))
@click.option("--endian", "-e", type=click.Choice(['<', '>']), default='>', help="Endianness: < for little-endian, > for big-endian")
@click.option("--offset", "-o", type=int, default=0, help="Byte offset of the event in the file")
@click.option("--max-depth", type=int, default=5, help="Maximum depth to display")
@click.option("--preview", type=int, default=3, help="Number of preview elements")
@click.option('--verbose', '-v', is_flag=True, help="Enable verbose output")
@click.pass_context
def dump_command(ctx, filename, endian, offset, max_depth, preview, verbose):
    """
    Parse one serialized event and display its structure tree.

    Examples:

    \b
    # Event at the start of a big endian file
    pyeviotree dump event.bin

    \b
    # Little endian event 64 bytes into the file
    pyeviotree dump event.bin --endian "<" --offset 64
    """
    # Use either the command-specific verbose flag or the global one
    verbose = verbose or (ctx.obj or {}).get('VERBOSE', False)
    console = Console()

    try:
        with open(filename, 'rb') as file:
            data = file.read()

        event = parse_event(data, offset, endian)
        tree = Tree(f"[bold yellow]Event at offset 0x{offset:X}[/bold yellow] "
                    f"({event.get_total_bytes()} bytes, {event.byte_order})")
        node = tree.add(describe_structure(event))
        add_structure(node, event, 0, max_depth, preview)
        console.print(tree)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            import traceback
            console.print(traceback.format_exc(), markup=False)
