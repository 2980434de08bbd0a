"""
Content repository access for neoscli.

The content repository itself lives in the CMS. This module holds the
lightweight node handles used by the commands, the ContentProvider interface
every backend implements, and the HTTP client that talks to the
content-repository endpoint of a running Neos instance.
"""

import json
import logging
import os
import urllib.parse
from abc import ABC, abstractmethod
from datetime import datetime

import requests
from requests.auth import HTTPBasicAuth

logger = logging.getLogger(__name__)

DOCUMENT_NODE_TYPE = "Neos.Neos:Document"
LIVE_WORKSPACE = "live"


class ContentRepositoryError(Exception):
    """Base class for everything the content repository can complain about."""


class NodeNotFoundError(ContentRepositoryError):
    """No node (or URL segment) matched."""

    def __init__(self, message, segment=None, path=None):
        super().__init__(message)
        self.segment = segment
        self.path = path


class InvalidInputError(ContentRepositoryError):
    """Bad node type name, workspace name or property data."""


class AmbiguousNodeError(ContentRepositoryError):
    """More than one child document matched a URL path segment."""


class Node:
    """Handle for a node in one workspace snapshot."""

    def __init__(self, identifier, path, node_type, properties=None, name=None):
        self.identifier = identifier
        self.path = path
        self.node_type = node_type
        self.properties = dict(properties or {})
        self.name = name if name is not None else path.rstrip("/").rsplit("/", 1)[-1]

    @classmethod
    def from_json(cls, data):
        return cls(
            identifier=data.get("identifier"),
            path=data["path"],
            node_type=data.get("nodeType"),
            properties=data.get("properties") or {},
            name=data.get("name"),
        )

    def __str__(self):
        return self.path

    def __repr__(self):
        return f"Node({self.path!r}, {self.node_type!r})"

    def __eq__(self, other):
        return isinstance(other, Node) and other.path == self.path

    def __hash__(self):
        return hash(self.path)


class NodeType:
    """A node type name with its (merged) configuration."""

    def __init__(self, name, configuration=None):
        self.name = name
        self.configuration = configuration or {}

    def property_type(self, property_name):
        """Return the configured ``properties.<name>.type`` or None."""
        properties = self.configuration.get("properties") or {}
        return (properties.get(property_name) or {}).get("type")

    def __str__(self):
        return self.name


class Site:
    def __init__(self, name, node_name, online=True):
        self.name = name
        self.node_name = node_name
        self.online = online


class ImageValue:
    """Image property value pointing at an imported resource."""

    def __init__(self, resource_identifier):
        self.resource_identifier = resource_identifier

    def __eq__(self, other):
        return (
            isinstance(other, ImageValue)
            and other.resource_identifier == self.resource_identifier
        )

    def __repr__(self):
        return f"ImageValue({self.resource_identifier!r})"


class ContentProvider(ABC):
    """Access to the node tree of one workspace.

    Node operations always act on ``workspace_name``; callers bind it once
    per invocation (see CRService.setup).
    """

    workspace_name = LIVE_WORKSPACE

    @abstractmethod
    def get_child_documents(self, node):
        """Return the document children of ``node`` in their stored order."""

    def get_path(self, node):
        return node.path

    def get_property(self, node, name):
        return node.properties.get(name)

    @abstractmethod
    def get_node(self, path):
        """Return the node at the absolute ``path`` or None."""

    @abstractmethod
    def get_child_node(self, parent, name):
        """Return the direct child of ``parent`` named ``name`` or None."""

    @abstractmethod
    def create_node(self, parent, name, node_type):
        """Create a child node and return it."""

    @abstractmethod
    def remove_node(self, node):
        """Remove ``node`` (and with it its subtree)."""

    @abstractmethod
    def set_properties(self, node, properties):
        """Write already converted property values to ``node``."""

    @abstractmethod
    def get_node_type(self, name):
        """Return the NodeType called ``name`` or None."""

    @abstractmethod
    def workspace_exists(self, name):
        """Tell whether a workspace called ``name`` exists."""

    @abstractmethod
    def find_sites(self):
        """Return all sites, online or not, in repository order."""

    def find_first_online_site(self):
        """Return the first online Site or None."""
        return next((site for site in self.find_sites() if site.online), None)

    def find_site(self, node_name):
        """Return the online site with the given node name or None."""
        for site in self.find_sites():
            if site.online and site.node_name == node_name:
                return site
        return None

    @abstractmethod
    def publish(self, target_workspace):
        """Publish all pending changes of the bound workspace."""

    @abstractmethod
    def import_resource(self, source):
        """Import a file path or URL and return the resource identifier."""


def encode_property_value(value):
    """Convert a typed property value into its JSON wire form."""
    if isinstance(value, Node):
        return {"__node": value.identifier}
    if isinstance(value, ImageValue):
        return {"__image": {"resource": value.resource_identifier}}
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [encode_property_value(v) for v in value]
    return value


class RemoteContentRepository(ContentProvider):
    """ContentProvider backed by the CMS content-repository HTTP API."""

    def __init__(self, config):
        self.config = config
        self.base_url = f"{config.server.rstrip('/')}{config.api}"
        self.timeout = config.timeout
        self.session = requests.Session()
        username, password = config.credentials.split(":", 1)
        self.session.auth = HTTPBasicAuth(username, password)
        self.workspace_name = config.workspace
        self._sites = None

    def _request(self, method, endpoint, allow_missing=False, **kwargs):
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s %s", method, url, kwargs.get("params") or "")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ContentRepositoryError(f"Request to {url} failed: {e}") from e

        if allow_missing and response.status_code == 404:
            return None

        if not response.ok:
            raise ContentRepositoryError(
                f"{method} {endpoint} failed with status {response.status_code}: {response.text}"
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise ContentRepositoryError(f"Invalid JSON response from {url}: {e}") from e

    def _workspace_endpoint(self, suffix):
        workspace = urllib.parse.quote(self.workspace_name, safe="")
        return f"/workspaces/{workspace}{suffix}"

    def get_child_documents(self, node):
        result = self._request(
            "GET",
            self._workspace_endpoint("/children"),
            params={"path": node.path, "nodeType": DOCUMENT_NODE_TYPE},
        )
        return [Node.from_json(child) for child in result.get("nodes", [])]

    def get_node(self, path):
        result = self._request(
            "GET", self._workspace_endpoint("/node"), allow_missing=True, params={"path": path}
        )
        return Node.from_json(result) if result else None

    def get_child_node(self, parent, name):
        return self.get_node(f"{parent.path.rstrip('/')}/{name}")

    def create_node(self, parent, name, node_type):
        result = self._request(
            "POST",
            self._workspace_endpoint("/nodes"),
            json={"parentPath": parent.path, "name": name, "nodeType": str(node_type)},
        )
        return Node.from_json(result)

    def remove_node(self, node):
        self._request("DELETE", self._workspace_endpoint("/node"), params={"path": node.path})

    def set_properties(self, node, properties):
        payload = {name: encode_property_value(value) for name, value in properties.items()}
        result = self._request(
            "POST",
            self._workspace_endpoint("/properties"),
            params={"path": node.path},
            json={"properties": payload},
        )
        if result and "path" in result:
            node.properties = dict(result.get("properties") or {})
        else:
            node.properties.update(payload)
        return node

    def get_node_type(self, name):
        result = self._request(
            "GET", f"/node-types/{urllib.parse.quote(name, safe='')}", allow_missing=True
        )
        if not result:
            return None
        return NodeType(result.get("name", name), result.get("configuration") or {})

    def workspace_exists(self, name):
        endpoint = f"/workspaces/{urllib.parse.quote(name, safe='')}"
        return self._request("GET", endpoint, allow_missing=True) is not None

    def find_sites(self):
        # fetched once per invocation
        if self._sites is None:
            result = self._request("GET", "/sites")
            self._sites = [
                Site(s.get("name"), s["nodeName"], s.get("online", True))
                for s in result.get("sites", [])
            ]
        return self._sites

    def publish(self, target_workspace):
        self._request(
            "POST",
            self._workspace_endpoint("/publish"),
            json={"targetWorkspace": target_workspace},
        )

    def import_resource(self, source):
        if os.path.isfile(source):
            with open(source, "rb") as f:
                files = {"resource": (os.path.basename(source), f.read())}
            result = self._request("POST", "/resources", files=files)
        else:
            result = self._request("POST", "/resources", json={"uri": source})

        identifier = result.get("identifier")
        if not identifier:
            raise ContentRepositoryError(f"Failed to import resource {source}: {json.dumps(result)}")
        return identifier
