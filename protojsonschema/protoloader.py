"""
Builds immutable message descriptors from Protobuf source files.
"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Tuple

from protojsonschema import protoparser
from protojsonschema.annotations import AnnotationSet
from protojsonschema.descriptors import (Cardinality, EnumDescriptor, EnumValueDescriptor, FieldDescriptor,
                                         FieldKind, MessageDescriptor)

logger = logging.getLogger(__name__)

WELL_KNOWN_PACKAGE = 'google.protobuf'
WELL_KNOWN_IMPORT_PREFIX = 'google/protobuf/'
OPTIONS_PROTO = 'jsonschema.proto'

# enums of google/protobuf/*.proto that may be referenced without the file on disk
WELL_KNOWN_ENUMS = {
    'google.protobuf.NullValue': EnumDescriptor(
        name='NullValue',
        full_name='google.protobuf.NullValue',
        values=(EnumValueDescriptor('NULL_VALUE', 0),)),
}

_CARDINALITIES = {
    'repeated': Cardinality.REPEATED,
    'required': Cardinality.REQUIRED,
}


def to_json_name(name: str) -> str:
    """Default JSON name of a field: underscores are dropped and the next letter is capitalized."""
    result = []
    capitalize_next = False
    for ch in name:
        if ch == '_':
            capitalize_next = True
        elif capitalize_next:
            result.append(ch.upper())
            capitalize_next = False
        else:
            result.append(ch)
    return ''.join(result)


def find_message(messages: List[MessageDescriptor], name: str) -> Optional[MessageDescriptor]:
    """Find a message by full name, falling back to the first message with that simple name."""
    name = name.lstrip('.')
    for message in messages:
        if message.full_name == name:
            return message
    for message in messages:
        if message.name == name:
            return message
    return None


class ProtoLoader:
    """
    Loads .proto files and their imports into message descriptors.

    Imports of google/protobuf/*.proto and of the schema options file
    jsonschema.proto are built in and need not exist on disk.
    """

    def __init__(self, proto_root: str = None, options_package: str = 'jsonschema'):
        self.proto_root = proto_root
        self.options_package = options_package
        self.files: Dict[str, protoparser.ProtoFile] = {}
        # full name -> ('message' | 'enum', parsed node)
        self.symbols: Dict[str, Tuple[str, Any]] = {}
        self.enum_descriptors: Dict[str, EnumDescriptor] = {}

    def load_file(self, proto_file_path: str) -> List[MessageDescriptor]:
        """
        Load a .proto file and return descriptors for all messages it declares.

        Args:
            proto_file_path (str): Path to the .proto file.

        Returns:
            list: Message descriptors, nested messages following their parent.
        """
        if not os.path.exists(proto_file_path):
            raise FileNotFoundError(f'Proto file {proto_file_path} does not exist.')
        path = os.path.abspath(proto_file_path)
        logger.debug("Loading proto file %s", path)
        proto_file = self._load_file_tree(path)
        return self._build_file(proto_file)

    def load_string(self, proto_text: str, base_dir: str = None) -> List[MessageDescriptor]:
        """Load Protobuf source text; imports resolve against base_dir and proto_root."""
        proto_file = protoparser.parse(proto_text)
        self._load_imports(proto_file, base_dir or os.getcwd())
        self._register_file(proto_file)
        return self._build_file(proto_file)

    def _load_file_tree(self, path: str) -> protoparser.ProtoFile:
        if path in self.files:
            return self.files[path]
        proto_file = protoparser.parse_from_file(path)
        self.files[path] = proto_file
        self._load_imports(proto_file, os.path.dirname(path))
        self._register_file(proto_file)
        return proto_file

    def _load_imports(self, proto_file: protoparser.ProtoFile, base_dir: str):
        for import_ in proto_file.imports:
            import_path = self._resolve_import(import_.path, base_dir)
            if import_path:
                self._load_file_tree(import_path)
            elif import_.path.startswith(WELL_KNOWN_IMPORT_PREFIX) or os.path.basename(import_.path) == OPTIONS_PROTO:
                logger.debug("Using built-in definitions for import %s", import_.path)
            else:
                raise FileNotFoundError(f'Import file {import_.path} does not exist.')

    def _resolve_import(self, import_path: str, base_dir: str) -> Optional[str]:
        candidates = [os.path.join(base_dir, import_path)]
        if self.proto_root:
            candidates.append(os.path.join(self.proto_root, import_path))
        for candidate in candidates:
            if os.path.exists(candidate):
                return os.path.abspath(candidate)
        return None

    def _register_file(self, proto_file: protoparser.ProtoFile):
        prefix = proto_file.package
        for enum in proto_file.enums:
            self.symbols[self._qualify(prefix, enum.name)] = ('enum', enum)
        for message in proto_file.messages:
            self._register_message(prefix, message)

    def _register_message(self, prefix: str, message: protoparser.Message):
        full_name = self._qualify(prefix, message.name)
        self.symbols[full_name] = ('message', message)
        for enum in message.enums:
            self.symbols[self._qualify(full_name, enum.name)] = ('enum', enum)
        for nested in message.messages:
            self._register_message(full_name, nested)

    @staticmethod
    def _qualify(prefix: str, name: str) -> str:
        return f'{prefix}.{name}' if prefix else name

    def resolve_type(self, type_name: str, scope: str) -> Tuple[str, str]:
        """
        Resolve a type reference the way protoc does, from the innermost scope outward.

        Args:
            type_name (str): The referenced type, possibly qualified or absolute.
            scope (str): Full name of the message containing the reference.

        Returns:
            tuple: (full name, 'message' | 'enum')

        Raises:
            ValueError: If the type cannot be resolved.
        """
        if type_name.startswith('.'):
            candidates = [type_name[1:]]
        else:
            parts = scope.split('.') if scope else []
            candidates = ['.'.join(parts[:i] + [type_name]) for i in range(len(parts), -1, -1)]
        for candidate in candidates:
            if candidate in self.symbols:
                return candidate, self.symbols[candidate][0]
        for candidate in candidates:
            if candidate in WELL_KNOWN_ENUMS:
                return candidate, 'enum'
            if candidate.startswith(WELL_KNOWN_PACKAGE + '.'):
                return candidate, 'message'
        raise ValueError(f"Type {type_name} referenced in {scope} cannot be resolved")

    def _annotations(self, options: Mapping[str, Any], where: str, target: str) -> AnnotationSet:
        prefix = self.options_package + '.'
        for name, value in options.items():
            if name.startswith(prefix) and isinstance(value, (protoparser.Identifier, protoparser.Aggregate)):
                raise ValueError(f"Option {name} of {where} expects a literal value, got {value}")
        try:
            return AnnotationSet.from_options(options, self.options_package, target)
        except ValueError as e:
            raise ValueError(f"{where}: {e}") from e

    def _build_file(self, proto_file: protoparser.ProtoFile) -> List[MessageDescriptor]:
        descriptors: List[MessageDescriptor] = []
        for message in proto_file.messages:
            self._build_message(message, proto_file.package, descriptors)
        return descriptors

    def _build_message(self, message: protoparser.Message, prefix: str,
                       descriptors: List[MessageDescriptor]) -> MessageDescriptor:
        full_name = self._qualify(prefix, message.name)
        fields = tuple(self._build_field(field, full_name) for field in message.fields)
        descriptor = MessageDescriptor(
            name=message.name,
            full_name=full_name,
            fields=fields,
            annotations=self._annotations(message.options, full_name, 'message'))
        descriptors.append(descriptor)
        for nested in message.messages:
            self._build_message(nested, full_name, descriptors)
        return descriptor

    def _build_field(self, field: protoparser.Field, scope: str) -> FieldDescriptor:
        where = f'{scope}.{field.name}'
        json_name = field.options.get('json_name')
        if not isinstance(json_name, str) or isinstance(json_name, protoparser.Identifier):
            json_name = to_json_name(field.name)
        cardinality = _CARDINALITIES.get(field.label, Cardinality.OPTIONAL)
        annotations = self._annotations(field.options, where, 'field')
        enum = None
        type_name = ''

        if field.key_type is not None:
            # map<K, V> is written as a JSON object
            kind = FieldKind.MESSAGE
            cardinality = Cardinality.OPTIONAL
            entry_name = to_json_name(field.name)
            type_name = f'{scope}.{entry_name[:1].upper()}{entry_name[1:]}Entry'
        elif field.group:
            kind = FieldKind.GROUP
            type_name, _ = self.resolve_type(field.type, scope)
        else:
            kind = FieldKind.from_proto_type(field.type)
            if kind is None:
                type_name, symbol_kind = self.resolve_type(field.type, scope)
                if symbol_kind == 'enum':
                    kind = FieldKind.ENUM
                    enum = self._enum_descriptor(type_name)
                else:
                    kind = FieldKind.MESSAGE

        return FieldDescriptor(
            name=field.name,
            kind=kind,
            number=field.number,
            json_name=json_name,
            cardinality=cardinality,
            type_name=type_name,
            enum=enum,
            annotations=annotations)

    def _enum_descriptor(self, full_name: str) -> EnumDescriptor:
        if full_name in WELL_KNOWN_ENUMS:
            return WELL_KNOWN_ENUMS[full_name]
        if full_name not in self.enum_descriptors:
            _, enum = self.symbols[full_name]
            self.enum_descriptors[full_name] = EnumDescriptor(
                name=enum.name,
                full_name=full_name,
                values=tuple(EnumValueDescriptor(value.name, value.number) for value in enum.values),
                annotations=self._annotations(enum.options, full_name, 'enum'))
        return self.enum_descriptors[full_name]


def load_messages(proto_file_path: str, proto_root: str = None) -> List[MessageDescriptor]:
    """Convenience wrapper around ProtoLoader.load_file."""
    return ProtoLoader(proto_root=proto_root).load_file(proto_file_path)
