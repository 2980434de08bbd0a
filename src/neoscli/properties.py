"""
Conversion of flat JSON property input into typed node property values.

The kind of each property is looked up once from the node type schema;
conversion then dispatches on that kind.
"""

import enum
import re
from datetime import datetime

from .content_repository import ImageValue, InvalidInputError, NodeNotFoundError

NULL_VALUE = "NULL"
IMAGE_INTERFACE = "Neos\\Media\\Domain\\Model\\ImageInterface"


class PropertyKind(enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATETIME = "DateTime"
    REFERENCE = "reference"
    REFERENCES = "references"
    IMAGE = IMAGE_INTERFACE

    @classmethod
    def from_schema(cls, type_name):
        """Map a node type property type to a kind, STRING for anything unknown."""
        for kind in cls:
            if kind.value == type_name:
                return kind
        return cls.STRING


def to_integer(value):
    """Integer value of the leading number in ``value``, 0 if there is none."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = re.match(r"\s*([+-]?\d+)", str(value))
    return int(match.group(1)) if match else 0


def to_boolean(value):
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)


def to_datetime(value):
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidInputError(f'could not parse date "{value}"') from e


def split_reference_paths(value):
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [path for path in re.split(r",\s*", str(value)) if path]


class PropertyMapper:
    """Converts raw property input for one node type.

    Args:
        node_type (NodeType): schema of the node receiving the properties
        resolve_path (callable): site-relative path -> Node or None
        import_resource (callable): file path or URL -> resource identifier
    """

    def __init__(self, node_type, resolve_path, import_resource):
        self.node_type = node_type
        self.resolve_path = resolve_path
        self.import_resource = import_resource
        self._kinds = {}
        self._converters = {
            PropertyKind.STRING: lambda value: value,
            PropertyKind.INTEGER: to_integer,
            PropertyKind.BOOLEAN: to_boolean,
            PropertyKind.DATETIME: to_datetime,
            PropertyKind.REFERENCE: self._reference,
            PropertyKind.REFERENCES: self._references,
            PropertyKind.IMAGE: self._image,
        }

    def kind_of(self, property_name):
        if property_name not in self._kinds:
            self._kinds[property_name] = PropertyKind.from_schema(
                self.node_type.property_type(property_name)
            )
        return self._kinds[property_name]

    def convert(self, property_name, value):
        if value == NULL_VALUE or value is None:
            return None
        return self._converters[self.kind_of(property_name)](value)

    def convert_all(self, properties):
        return {name: self.convert(name, value) for name, value in properties.items()}

    def _reference(self, value):
        node = self.resolve_path(str(value))
        if node is None:
            raise NodeNotFoundError(f'Could not find any node on path "{value}"', path=str(value))
        return node

    def _references(self, value):
        return [self._reference(path) for path in split_reference_paths(value)]

    def _image(self, value):
        return ImageValue(self.import_resource(str(value)))
