import logging

import click

# Import and register commands
from pyeviotree.cli.dump import dump_command
from pyeviotree.cli.hex import hex_command


@click.group()
@click.version_option(version="0.1.0")
@click.option('--verbose', '-v', is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """EVIO structure tree inspection toolkit."""
    # Create a context object to pass data between commands
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose

    # Configure logging
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=log_level,
                        format='%(levelname)s: %(message)s')


# Register commands with the CLI
cli.add_command(dump_command)
cli.add_command(hex_command)


# Entry point for the CLI
def main():
    """Entry point for the CLI when installed via pip."""
    cli(prog_name="pyeviotree")


if __name__ == "__main__":
    main()
