"""
Module to convert protobuf message descriptors to JSON Schema.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Union

from protojsonschema.annotations import AnnotationKey, AnnotationSet
from protojsonschema.descriptors import FieldDescriptor, FieldKind, MessageDescriptor, is_timestamp
from protojsonschema.orderedschema import OrderedProperty, OrderedSchema, dump_json
from protojsonschema.protoloader import ProtoLoader, find_message
from protojsonschema.resolver import (default_value, field_name, is_hidden, is_required,
                                      schema_title, should_generate)
from protojsonschema.typemapper import map_primitive

JsonSchema = Dict[str, Any]

logger = logging.getLogger(__name__)

# (annotation, schema keyword) in the order they are applied to a field schema
_STRING_ANNOTATIONS = [
    (AnnotationKey.DESCRIPTION, 'description'),
    (AnnotationKey.EXAMPLE, 'example'),
    (AnnotationKey.FORMAT, 'format'),
]
_BOUND_ANNOTATIONS = [
    (AnnotationKey.MIN_LENGTH, 'minLength'),
    (AnnotationKey.MAX_LENGTH, 'maxLength'),
    (AnnotationKey.MINIMUM, 'minimum'),
    (AnnotationKey.MAXIMUM, 'maximum'),
]


def timestamp_schema() -> JsonSchema:
    """
    Schema for google.protobuf.Timestamp values.

    The JSON mapping accepts an RFC 3339 string, and the object form with
    seconds and nanos is accepted as well.
    """
    return {
        "oneOf": [
            {
                "type": "string",
                "format": "date-time",
                "description": "RFC3339 timestamp string"
            },
            {
                "type": "object",
                "properties": {
                    "seconds": {
                        "type": "integer",
                        "description": "Seconds since Unix epoch"
                    },
                    "nanos": {
                        "type": "integer",
                        "minimum": 0,
                        "maximum": 999999999,
                        "description": "Nanoseconds within the second"
                    }
                },
                "required": ["seconds"],
                "additionalProperties": False
            }
        ]
    }


def json_number(value: Union[int, float]) -> Union[int, float]:
    """Returns integral floats as int so that 18.0 is written as 18."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class ProtoToJsonSchemaConverter:
    """
    Class to convert protobuf message descriptors to JSON Schema.

    The converter keeps no state between calls, so a single instance can be
    shared between threads.
    """

    def build_element_schema(self, field: FieldDescriptor) -> JsonSchema:
        """
        Build the schema for a single value of a field, ignoring cardinality.

        Args:
            field (FieldDescriptor): The field.

        Returns:
            dict: The element schema.
        """
        if is_timestamp(field):
            return timestamp_schema()
        schema: JsonSchema = {}
        json_type, json_format = map_primitive(field.kind)
        if json_type:
            schema['type'] = json_type
        if json_format:
            schema['format'] = json_format
        if field.kind == FieldKind.ENUM and field.enum is not None:
            schema['enum'] = [value.name for value in field.enum.values]
        return schema

    def apply_annotations(self, schema: JsonSchema, annotations: AnnotationSet) -> JsonSchema:
        """Copy the present field annotations onto the schema."""
        for key, keyword in _STRING_ANNOTATIONS:
            if annotations.has(key):
                schema[keyword] = annotations.get(key)
        present, value = default_value(annotations)
        if present:
            schema['default'] = value
        for key, keyword in _BOUND_ANNOTATIONS:
            if annotations.has(key):
                schema[keyword] = json_number(annotations.get(key))
        if annotations.has(AnnotationKey.PATTERN):
            schema['pattern'] = annotations.get(AnnotationKey.PATTERN)
        return schema

    def build_field_schema(self, field: FieldDescriptor) -> JsonSchema:
        """
        Build the schema for a field.

        Repeated fields are wrapped in an array once, before annotations are
        applied, so annotations land on the array schema and not on its items.

        Args:
            field (FieldDescriptor): The field.

        Returns:
            dict: The field schema.
        """
        schema = self.build_element_schema(field)
        if field.is_repeated:
            schema = {
                "type": "array",
                "items": schema
            }
        return self.apply_annotations(schema, field.annotations)

    def collect_properties(self, message: MessageDescriptor) -> Tuple[List[OrderedProperty], List[str]]:
        """
        Build the visible properties of a message in declaration order.

        If two fields resolve to the same name, the last one wins: it replaces
        the earlier schema in place and decides whether the name is required.

        Returns:
            tuple: (properties, required names)
        """
        properties: List[OrderedProperty] = []
        positions: Dict[str, int] = {}
        required: List[str] = []
        for field in message.fields:
            if is_hidden(field):
                continue
            name = field_name(field)
            schema = self.build_field_schema(field)
            if name in positions:
                logger.warning("Field %s of %s duplicates property name '%s'; the last field wins",
                               field.name, message.full_name, name)
                properties[positions[name]] = OrderedProperty(name, schema)
                if name in required:
                    required.remove(name)
            else:
                positions[name] = len(properties)
                properties.append(OrderedProperty(name, schema))
            if is_required(field):
                required.append(name)
        return properties, required

    def generate_schema(self, message: MessageDescriptor) -> Optional[JsonSchema]:
        """
        Generate the JSON Schema for a message.

        Args:
            message (MessageDescriptor): The message.

        Returns:
            dict: The schema, or None if schema generation is disabled for the message.
        """
        if not should_generate(message):
            logger.debug("Schema generation disabled for %s", message.full_name)
            return None
        schema: JsonSchema = {'type': 'object'}
        title = schema_title(message)
        if title:
            schema['title'] = title
        if message.annotations.description:
            schema['description'] = message.annotations.description
        properties, required = self.collect_properties(message)
        schema['properties'] = {prop.name: prop.schema for prop in properties}
        if required:
            schema['required'] = required
        return schema

    def generate_ordered_schema(self, message: MessageDescriptor) -> Optional[OrderedSchema]:
        """
        Generate an order-preserving JSON Schema for a message.

        Args:
            message (MessageDescriptor): The message.

        Returns:
            OrderedSchema: The schema, or None if schema generation is disabled for the message.
        """
        if not should_generate(message):
            logger.debug("Schema generation disabled for %s", message.full_name)
            return None
        properties, required = self.collect_properties(message)
        return OrderedSchema(
            type='object',
            title=schema_title(message),
            description=message.annotations.description or '',
            properties=properties,
            required=required)


def schema_to_json(schema: Optional[JsonSchema], indent: Optional[int] = 2) -> str:
    """
    Serialize an unordered schema to JSON text with sorted keys.

    Raises:
        ValueError: If schema is None, i.e. generation was disabled for the message.
        SchemaSerializationError: If the schema contains values that are not JSON.
    """
    if schema is None:
        raise ValueError("No schema: schema generation is disabled for this message")
    return dump_json(schema, indent=indent, sort_keys=True)


def generate_schema_json(message: MessageDescriptor, preserve_order: bool = False, indent: Optional[int] = 2) -> str:
    """
    Generate the JSON Schema text for a message.

    With preserve_order the compact, declaration-ordered form is returned and
    indent is ignored.

    Raises:
        ValueError: If schema generation is disabled for the message.
    """
    converter = ProtoToJsonSchemaConverter()
    if preserve_order:
        ordered = converter.generate_ordered_schema(message)
        if ordered is None:
            raise ValueError(f"Schema generation is disabled for message {message.full_name}")
        return ordered.to_json()
    schema = converter.generate_schema(message)
    if schema is None:
        raise ValueError(f"Schema generation is disabled for message {message.full_name}")
    return schema_to_json(schema, indent=indent)


def _render_messages(messages: List[MessageDescriptor], message_type: Optional[str],
                     preserve_order: bool, indent: Optional[int]) -> str:
    if message_type:
        message = find_message(messages, message_type)
        if message is None:
            raise ValueError(f'Message type {message_type} not found in the proto file.')
        return generate_schema_json(message, preserve_order=preserve_order, indent=indent)

    converter = ProtoToJsonSchemaConverter()
    if preserve_order:
        members = []
        for message in messages:
            ordered = converter.generate_ordered_schema(message)
            if ordered is not None:
                members.append(dump_json(message.full_name) + ':' + ordered.to_json())
        return '{' + ','.join(members) + '}'
    schemas = {}
    for message in messages:
        schema = converter.generate_schema(message)
        if schema is not None:
            schemas[message.full_name] = schema
    return dump_json(schemas, indent=indent, sort_keys=True)


def convert_proto_to_json_schema_string(proto_text: str, message_type: str = None,
                                        preserve_order: bool = False, indent: Optional[int] = 2) -> str:
    """
    Convert protobuf source text to JSON Schema text.

    Without message_type, the result is an object mapping the full name of
    every message that generates a schema to that schema.
    """
    messages = ProtoLoader().load_string(proto_text)
    return _render_messages(messages, message_type, preserve_order, indent)


def convert_proto_to_json_schema(proto_file_path: str, json_schema_path: str = None, message_type: str = None,
                                 proto_root: str = None, preserve_order: bool = False,
                                 indent: Optional[int] = 2) -> str:
    """
    Convert a Protobuf .proto file to JSON Schema.

    Args:
        proto_file_path (str): Path to the Protobuf .proto file.
        json_schema_path (str): Path to write the JSON Schema to. Optional.
        message_type (str): Name of the message to convert. All messages if omitted.
        proto_root (str): Additional directory to resolve imports against.
        preserve_order (bool): Emit properties in field declaration order.
        indent (int): Indentation of the unordered output.

    Returns:
        str: The JSON Schema text.

    Raises:
        FileNotFoundError: If the proto file or one of its imports does not exist.
        ValueError: If the message is unknown or does not generate a schema.
    """
    if not os.path.exists(proto_file_path):
        raise FileNotFoundError(f'Proto file {proto_file_path} does not exist.')

    loader = ProtoLoader(proto_root=proto_root)
    messages = loader.load_file(proto_file_path)
    result = _render_messages(messages, message_type, preserve_order, indent)

    if json_schema_path:
        with open(json_schema_path, 'w', encoding='utf-8') as json_file:
            json_file.write(result)
    return result
