"""
Order-preserving JSON Schema document and its deterministic serializer.
"""

import json
from typing import Any, Dict, List, NamedTuple


class SchemaSerializationError(ValueError):
    """Raised when a schema value cannot be rendered as JSON text."""


def dump_json(value: Any, **kwargs) -> str:
    """
    Serialize a schema value, wrapping failures in SchemaSerializationError.

    NaN and infinite numbers are rejected since they are not valid JSON.
    """
    try:
        return json.dumps(value, allow_nan=False, **kwargs)
    except (TypeError, ValueError) as e:
        raise SchemaSerializationError(f"Failed to serialize schema: {e}") from e


class OrderedProperty(NamedTuple):
    name: str
    schema: Dict[str, Any]


class OrderedSchema:
    """
    JSON Schema object document whose properties keep declaration order.

    Serializing the same document twice always yields the same text.
    """

    def __init__(self, type: str = 'object', title: str = '', description: str = '',
                 properties: List[OrderedProperty] = None, required: List[str] = None):
        self.type = type
        self.title = title
        self.description = description
        self.properties: List[OrderedProperty] = properties if properties is not None else []
        self.required: List[str] = required if required is not None else []

    def property_names(self) -> List[str]:
        return [prop.name for prop in self.properties]

    def to_json(self) -> str:
        """
        Render the document as compact JSON text.

        Members are emitted in the order type, title, description,
        properties, required. Empty type, title, description and required
        are omitted; properties is always present.

        Raises:
            SchemaSerializationError: If a property schema holds a value that is
                not representable as JSON.
        """
        parts = []
        if self.type:
            parts.append('"type":' + dump_json(self.type))
        if self.title:
            parts.append('"title":' + dump_json(self.title))
        if self.description:
            parts.append('"description":' + dump_json(self.description))
        members = []
        for prop in self.properties:
            members.append(dump_json(prop.name) + ':' +
                           dump_json(prop.schema, sort_keys=True, separators=(',', ':')))
        parts.append('"properties":{' + ','.join(members) + '}')
        if self.required:
            parts.append('"required":' + dump_json(self.required, separators=(',', ':')))
        return '{' + ','.join(parts) + '}'

    def to_dict(self) -> Dict[str, Any]:
        """Returns an insertion-ordered dict with the same content as `to_json`."""
        result: Dict[str, Any] = {}
        if self.type:
            result['type'] = self.type
        if self.title:
            result['title'] = self.title
        if self.description:
            result['description'] = self.description
        result['properties'] = {prop.name: prop.schema for prop in self.properties}
        if self.required:
            result['required'] = list(self.required)
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrderedSchema):
            return NotImplemented
        return (self.type, self.title, self.description, self.properties, self.required) == \
            (other.type, other.title, other.description, other.properties, other.required)

    def __repr__(self) -> str:
        return f'OrderedSchema(title={self.title!r}, properties={self.property_names()!r}, required={self.required!r})'
