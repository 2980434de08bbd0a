"""
Page commands for the Neos content repository.

Lists, removes, creates and resolves document nodes and publishes
workspaces through the high level content repository API, so all changes
made in a user workspace can be reviewed in the backend before publishing.
"""

import logging
import os

import click
from rich import box
from rich.console import Console
from rich.table import Table

from ..content_repository import NodeNotFoundError, RemoteContentRepository
from ..cr_service import CRConfig, CRService
from ..document_tree import DocumentTreePrinter, DocumentWalker
from ..url_resolver import URI_PATH_SEGMENT

logger = logging.getLogger(__name__)

DEFAULT_NODE_TYPE = "Neos.NodeTypes:Page"


def connection_options(f):
    """Options shared by every page command."""
    f = click.option(
        "-u",
        "--credentials",
        help="User credentials in format user:password (default: admin:admin)",
    )(f)
    f = click.option("-s", "--server", help="Server URL (default: http://localhost:8081)")(f)
    f = click.option(
        "-w",
        "--workspace",
        help="Workspace to use, e.g. 'user-admin' (default: live)",
    )(f)
    return f


def build_config(workspace=None, server=None, credentials=None):
    """Defaults, then the .neoscli file, then command line options."""
    config = CRConfig()
    config.load_config(os.getcwd())

    if server:
        config.server = server
    if credentials:
        config.credentials = credentials
    if workspace:
        config.workspace = workspace

    return config


def connect(ctx, workspace, server, credentials):
    """Return a CRService set up for the requested workspace."""
    config = build_config(workspace, server, credentials)
    provider = (ctx.obj or {}).get("provider")
    if provider is None:
        provider = RemoteContentRepository(config)

    cr = CRService(provider, site_node_name=config.site)
    cr.setup(config.workspace)
    return cr


def get_console():
    # created per call so output follows the current sys.stdout
    return Console()


def print_table(rows, headers, title=None):
    table = Table(*headers, title=title, box=box.MINIMAL_DOUBLE_HEAD)
    for row in rows:
        table.add_row(*(str(cell) for cell in row))
    get_console().print(table)


def print_deleted_pages(nodes):
    table = Table(box=box.MINIMAL_DOUBLE_HEAD)
    table.add_column("Deleted Pages", overflow="fold")
    for node in nodes:
        table.add_row(str(node))
    get_console().print(table)


def echo_error(e):
    logger.debug("Command failed", exc_info=e)
    click.echo(f"ERROR: {e}")


@click.group()
@click.pass_context
def page(ctx):
    """Manage Neos documents (pages) from the command line.

    Uses the high level content repository API instead of low level
    database access. Point it at a user workspace (e.g. 'user-admin') to
    review all changes in the backend before publishing them.
    """
    ctx.ensure_object(dict)


@page.command()
@connection_options
@click.pass_context
def info(ctx, workspace, server, credentials):
    """Show the current configuration of the working environment."""
    try:
        cr = connect(ctx, workspace, server, credentials)
        print_table(
            [
                ["Current Site Name", cr.current_site.name],
                ["Workspace Name", cr.workspace_name],
                ["Site node name", cr.current_site.node_name],
            ],
            ["Key", "Value"],
        )
    except Exception as e:
        echo_error(e)
        ctx.exit(1)


@page.command(name="list")
@click.option("-d", "--depth", type=click.IntRange(min=0), default=1, show_default=True, help="Depth to descend")
@click.option("-p", "--path", default="", help="Path, e.g. /news (without the /sites/<site> prefix)")
@connection_options
@click.pass_context
def list_documents(ctx, depth, path, workspace, server, credentials):
    """List all documents, optionally below a path.

    \b
      # Direct children of the site root
      neoscli page list

    \b
      # Two levels below /news in the admin workspace
      neoscli page list --path /news --depth 2 -w user-admin
    """
    try:
        cr = connect(ctx, workspace, server, credentials)
        root_node = cr.get_node_for_path(path)
        if root_node is None:
            raise NodeNotFoundError(f'Could not find any node on path "{path}"', path=path)
        DocumentTreePrinter(cr.provider, root_node, depth).print_tree()
    except Exception as e:
        echo_error(e)
        ctx.exit(1)


@page.command()
@click.option("-p", "--path", default="", help="Path, e.g. /news (without the /sites/<site> prefix)")
@click.option("--url", default="", help="Use the URL instead of a path, e.g. /news/my-news")
@click.option("-l", "--limit", type=click.IntRange(min=0), default=0, show_default=True, help="Maximum number of documents to remove, 0 for all")
@connection_options
@click.pass_context
def remove(ctx, path, url, limit, workspace, server, credentials):
    """Remove documents, optionally below a path or URL.

    The exit code is 0 only if at least one document was removed, else 1.
    Useful for bash while loops:

    \b
      while neoscli page remove --path /news --limit 50; do :; done
    """
    removed = []
    try:
        cr = connect(ctx, workspace, server, credentials)

        if url:
            root_node = cr.get_node_for_url(url)
        else:
            root_node = cr.get_node_for_path(path)
            if root_node is None:
                raise NodeNotFoundError(f'Could not find any node on path "{path}"', path=path)

        nodes_to_delete = DocumentWalker(cr.provider, root_node).get_nodes(limit)

        # descendants first, each removal then targets a node that still exists
        for node in reversed(nodes_to_delete):
            cr.provider.remove_node(node)
            removed.insert(0, node)

        print_deleted_pages(removed)
    except Exception as e:
        # removals already committed must still be reported
        if removed:
            print_deleted_pages(removed)
        echo_error(e)
        ctx.exit(1)

    ctx.exit(0 if removed else 1)


@page.command()
@connection_options
@click.pass_context
def publish(ctx, workspace, server, credentials):
    """Publish all pending changes in the workspace."""
    try:
        cr = connect(ctx, workspace, server, credentials)
        cr.publish()
        click.echo(f"Published workspace {cr.workspace_name}")
    except Exception as e:
        echo_error(e)
        ctx.exit(1)


@page.command(name="resolve-url")
@click.argument("url")
@connection_options
@click.pass_context
def resolve_url(ctx, url, workspace, server, credentials):
    """Resolve URL to the current Neos node path."""
    try:
        cr = connect(ctx, workspace, server, credentials)
        click.echo(cr.get_node_path_for_url(cr.get_node_for_path(""), url))
    except Exception as e:
        echo_error(e)
        ctx.exit(1)


@page.command()
@click.argument("parent_url")
@click.argument("name")
@click.option("-t", "--type", "type_name", default=DEFAULT_NODE_TYPE, show_default=True, help="Node type")
@click.option("--properties", help='Node properties as JSON, e.g. \'{"title":"My Fancy Title"}\'')
@click.option(
    "--overwrite-existing",
    is_flag=True,
    help="Update an existing node with that name instead of creating a new one named node-...",
)
@connection_options
@click.pass_context
def create(ctx, parent_url, name, type_name, properties, overwrite_existing, workspace, server, credentials):
    """Create a new page NAME below PARENT_URL.

    NAME is used for the node name and for the URL path segment.

    \b
      neoscli page create /news my-news --properties '{"title":"My News"}'
    """
    try:
        cr = connect(ctx, workspace, server, credentials)
        node_type = cr.get_node_type(type_name)
        parent_node = cr.get_node_for_url(parent_url)
        values = cr.decode_properties(properties) if properties else {}

        existing_node = cr.provider.get_child_node(parent_node, name)

        if overwrite_existing and existing_node is not None:
            node = existing_node
            click.echo(f"{node} already exists, updating properties...")
            node_type = None
        else:
            node_name = cr.generate_unique_node_name(parent_node, name)
            node = cr.provider.create_node(parent_node, node_name, node_type)
            if node_type.property_type(URI_PATH_SEGMENT) and URI_PATH_SEGMENT not in values:
                values[URI_PATH_SEGMENT] = node_name
            click.echo(f"{node} created.")

        if values:
            cr.set_node_properties(node, values, node_type)
    except Exception as e:
        echo_error(e)
        ctx.exit(1)
