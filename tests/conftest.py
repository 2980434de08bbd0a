import uuid

import pytest

from neoscli.content_repository import (
    ContentProvider,
    ContentRepositoryError,
    Node,
    NodeType,
    Site,
)

DOCUMENT_TYPES = {"Neos.NodeTypes:Page", "Neos.Neos:Shortcut", "Neos.Neos:Document"}

PAGE_CONFIGURATION = {
    "superTypes": {"Neos.Neos:Document": True},
    "properties": {
        "title": {"type": "string"},
        "uriPathSegment": {"type": "string"},
        "hidden": {"type": "boolean"},
        "weight": {"type": "integer"},
        "publishedAt": {"type": "DateTime"},
        "author": {"type": "reference"},
        "related": {"type": "references"},
        "teaserImage": {"type": "Neos\\Media\\Domain\\Model\\ImageInterface"},
    },
}


class InMemoryContentRepository(ContentProvider):
    """Content provider keeping one node tree in memory.

    Records every child lookup in ``child_lookups`` so tests can assert how
    far a traversal went.
    """

    def __init__(self, site_node_name="site", workspaces=("live", "user-admin")):
        self.workspaces = set(workspaces)
        self.sites = [Site("My Site", site_node_name)]
        self.node_types = {
            "Neos.NodeTypes:Page": NodeType("Neos.NodeTypes:Page", PAGE_CONFIGURATION),
            "Neos.NodeTypes:Text": NodeType("Neos.NodeTypes:Text", {"properties": {"text": {"type": "string"}}}),
        }
        self.nodes = {}
        self.children = {}
        self.child_lookups = []
        self.removed = []
        self.published = []
        self.resources = []
        self.fail_on_remove = None
        self.add("/sites", "unstructured")
        self.add(f"/sites/{site_node_name}", "Neos.NodeTypes:Page", title="Home")

    def add(self, path, node_type="Neos.NodeTypes:Page", **properties):
        parent_path, _, name = path.rpartition("/")
        node = Node(str(uuid.uuid4()), path, node_type, properties, name=name)
        self.nodes[path] = node
        self.children.setdefault(path, [])
        if parent_path:
            self.children.setdefault(parent_path, []).append(path)
        return node

    def page(self, path, segment=None, **properties):
        segment = segment if segment is not None else path.rsplit("/", 1)[-1]
        return self.add(path, "Neos.NodeTypes:Page", uriPathSegment=segment, **properties)

    def get_child_documents(self, node):
        self.child_lookups.append(node.path)
        return [
            self.nodes[p]
            for p in self.children.get(node.path, [])
            if self.nodes[p].node_type in DOCUMENT_TYPES
        ]

    def get_node(self, path):
        return self.nodes.get(path)

    def get_child_node(self, parent, name):
        return self.nodes.get(f"{parent.path}/{name}")

    def create_node(self, parent, name, node_type):
        return self.add(f"{parent.path}/{name}", node_type.name)

    def remove_node(self, node):
        if self.fail_on_remove == node.path:
            raise ContentRepositoryError(f"Could not remove {node.path}")
        if node.path not in self.nodes:
            raise ContentRepositoryError(f"Node {node.path} does not exist")
        for path in list(self.nodes):
            if path == node.path or path.startswith(node.path + "/"):
                del self.nodes[path]
        parent_path = node.path.rpartition("/")[0]
        self.children[parent_path].remove(node.path)
        self.removed.append(node.path)

    def set_properties(self, node, properties):
        node.properties.update(properties)
        return node

    def get_node_type(self, name):
        return self.node_types.get(name)

    def workspace_exists(self, name):
        return name in self.workspaces

    def find_sites(self):
        return list(self.sites)

    def publish(self, target_workspace):
        self.published.append((self.workspace_name, target_workspace))

    def import_resource(self, source):
        self.resources.append(source)
        return f"resource-{len(self.resources)}"


@pytest.fixture
def repository():
    """Site with the tree

    /sites/site
        news            (uriPathSegment "news")
            first       ("first-post")
            second      ("second-post")
        about           ("about")
            team        ("team")
                alice   ("alice")
        contact         ("contact")
    """
    repo = InMemoryContentRepository()
    repo.page("/sites/site/news", title="News")
    repo.page("/sites/site/news/first", segment="first-post", title="First Post")
    repo.add("/sites/site/news/first/main", "Neos.NodeTypes:Text", text="Hello")
    repo.page("/sites/site/news/second", segment="second-post", title="Second Post")
    repo.page("/sites/site/about", title="About")
    repo.page("/sites/site/about/team")
    repo.page("/sites/site/about/team/alice")
    repo.page("/sites/site/contact")
    return repo
