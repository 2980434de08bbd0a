"""
Content repository related logic shared by the page commands.
"""

import json
import logging
import re
import uuid
from pathlib import Path

from .content_repository import (
    LIVE_WORKSPACE,
    ContentRepositoryError,
    InvalidInputError,
)
from .properties import PropertyMapper
from .url_resolver import UrlResolver

logger = logging.getLogger(__name__)

# Default configurations
DEFAULT_SERVER = "http://localhost:8081"
DEFAULT_CREDENTIALS = "admin:admin"
DEFAULT_API = "/neos/api/content-repository"
DEFAULT_TIMEOUT = 30
CONFIG_FILE_NAME = ".neoscli"


class CRConfig:
    """Connection settings for the content repository."""

    def __init__(self):
        self.server = DEFAULT_SERVER
        self.credentials = DEFAULT_CREDENTIALS
        self.api = DEFAULT_API
        self.timeout = DEFAULT_TIMEOUT
        self.site = None
        self.workspace = LIVE_WORKSPACE

    def load_config(self, start_path):
        """Load configuration from a .neoscli file walking up the directory tree."""
        config_file = self._find_up(start_path, CONFIG_FILE_NAME)
        if config_file:
            self._parse_config_file(config_file)
            return config_file
        return None

    def _find_up(self, start_path, filename):
        path = Path(start_path).resolve()
        while True:
            config_path = path / filename
            if config_path.is_file():
                return config_path
            if path == path.parent:
                return None
            path = path.parent

    def _parse_config_file(self, config_file):
        try:
            with open(config_file, "r") as f:
                lines = f.readlines()
        except OSError as e:
            logger.warning(f"Could not read config file {config_file}: {e}")
            return

        for line in lines:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            if key in ("server", "credentials", "api", "site", "workspace"):
                setattr(self, key, value)
            elif key == "timeout":
                try:
                    self.timeout = float(value)
                except ValueError:
                    logger.warning(f"Ignoring invalid timeout '{value}' in {config_file}")
            else:
                logger.warning(f"Ignoring unknown key '{key}' in {config_file}")


def render_valid_node_name(name):
    """Lowercase ``name`` and replace anything but [a-z0-9-] with dashes."""
    name = re.sub(r"[^a-z0-9\-]+", "-", name.strip().lower())
    return re.sub(r"-{2,}", "-", name).strip("-")


class CRService:
    """Workspace-bound view of the content repository for one invocation."""

    def __init__(self, provider, site_node_name=None):
        self.provider = provider
        self.site_node_name = site_node_name
        self.resolver = UrlResolver(provider)
        self.workspace_name = None
        self.current_site = None
        self.site_path = None
        self.root_node = None

    def setup(self, workspace=LIVE_WORKSPACE):
        """
        Bind the service to a workspace and locate the current site.

        Raises:
            InvalidInputError: the workspace does not exist
            ContentRepositoryError: no (matching) online site was found
        """
        if not self.provider.workspace_exists(workspace):
            raise InvalidInputError(f'Workspace "{workspace}" is invalid')
        self.workspace_name = workspace
        self.provider.workspace_name = workspace

        if self.site_node_name:
            site = self.provider.find_site(self.site_node_name)
        else:
            site = self.provider.find_first_online_site()
        if not site:
            raise ContentRepositoryError("No site found")

        self.current_site = site
        self.site_path = f"/sites/{site.node_name}"
        self.root_node = self.provider.get_node(self.site_path)
        if self.root_node is None:
            raise ContentRepositoryError(f'Site node "{self.site_path}" does not exist')
        logger.debug("Using site %s in workspace %s", self.site_path, workspace)

    def get_node_for_path(self, path):
        """Fetch a node by site-relative path, e.g. '/news'; None if missing."""
        if not path or path == "/":
            return self.root_node
        return self.provider.get_node(self.site_path + "/" + path.strip("/"))

    def get_node_for_url(self, url):
        return self.resolver.resolve(self.root_node, url)

    def get_node_path_for_url(self, document, url):
        return self.provider.get_path(self.resolver.resolve(document, url))

    def get_node_type(self, type_name):
        node_type = self.provider.get_node_type(type_name)
        if node_type is None:
            raise InvalidInputError("specified node type is not valid")
        return node_type

    def decode_properties(self, properties_json):
        try:
            data = json.loads(properties_json)
        except (TypeError, ValueError) as e:
            raise InvalidInputError("could not decode JSON data") from e
        if not isinstance(data, dict):
            raise InvalidInputError("could not decode JSON data")
        return data

    def set_node_properties(self, node, properties, node_type=None):
        """
        Convert and write properties given as JSON string or dict.

        Args:
            node (Node): target node
            properties (str or dict): raw property values
            node_type (NodeType): schema to use, looked up from the node if omitted
        """
        if isinstance(properties, str):
            properties = self.decode_properties(properties)
        if node_type is None:
            node_type = self.get_node_type(node.node_type)

        mapper = PropertyMapper(node_type, self.get_node_for_path, self.provider.import_resource)
        values = mapper.convert_all(properties)
        self.provider.set_properties(node, values)
        return values

    def publish(self):
        if not self.provider.workspace_exists(LIVE_WORKSPACE):
            raise ContentRepositoryError("Could not find the live workspace.")
        logger.debug("Publishing workspace %s", self.workspace_name)
        self.provider.publish(LIVE_WORKSPACE)

    def generate_unique_node_name(self, parent, ideal_name=None):
        name = render_valid_node_name(ideal_name or "")
        if not name or self.provider.get_child_node(parent, name) is not None:
            name = f"node-{uuid.uuid4().hex[:13]}"
        return name
