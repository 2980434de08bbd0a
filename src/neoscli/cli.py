import logging

import click

from . import __version__
from .commands.page import page

logging.basicConfig(level=logging.WARNING)


@click.group()
@click.version_option(__version__, prog_name="neoscli")
@click.option("-v", "--verbose", is_flag=True, help="Log content repository calls")
def main(verbose):
    """NEOS-CLI: manage Neos content repository documents."""
    if verbose:
        logging.getLogger("neoscli").setLevel(logging.DEBUG)


# register subcommands
main.add_command(page)

if __name__ == "__main__":
    main()
