"""
Immutable descriptor model for protobuf messages.

Descriptors are built once by the loader (or by hand) and are only read by the
schema converter.
"""

from enum import Enum
from typing import NamedTuple, Optional, Tuple

from protojsonschema.annotations import AnnotationSet


TIMESTAMP_FULL_NAME = 'google.protobuf.Timestamp'


class FieldKind(Enum):
    """Wire-level kind of a protobuf field."""
    BOOL = 'bool'
    INT32 = 'int32'
    SINT32 = 'sint32'
    SFIXED32 = 'sfixed32'
    INT64 = 'int64'
    SINT64 = 'sint64'
    SFIXED64 = 'sfixed64'
    UINT32 = 'uint32'
    FIXED32 = 'fixed32'
    UINT64 = 'uint64'
    FIXED64 = 'fixed64'
    FLOAT = 'float'
    DOUBLE = 'double'
    STRING = 'string'
    BYTES = 'bytes'
    ENUM = 'enum'
    MESSAGE = 'message'
    GROUP = 'group'

    @classmethod
    def from_proto_type(cls, proto_type: str) -> Optional['FieldKind']:
        """Returns the kind for a scalar type keyword, or None for named types."""
        if proto_type in ('enum', 'message', 'group'):
            return None
        try:
            return cls(proto_type)
        except ValueError:
            return None


class Cardinality(Enum):
    OPTIONAL = 'optional'
    REQUIRED = 'required'
    REPEATED = 'repeated'


class EnumValueDescriptor(NamedTuple):
    name: str
    number: int


class EnumDescriptor(NamedTuple):
    name: str
    full_name: str
    values: Tuple[EnumValueDescriptor, ...] = ()
    annotations: AnnotationSet = AnnotationSet()


class FieldDescriptor(NamedTuple):
    """
    A single message field.

    `json_name` is the descriptor-computed JSON name and may be empty.
    `type_name` is the fully qualified name of the referenced enum or message
    and is empty for scalar kinds.
    """
    name: str
    kind: Optional[FieldKind]
    number: int = 0
    json_name: str = ''
    cardinality: Cardinality = Cardinality.OPTIONAL
    type_name: str = ''
    enum: Optional[EnumDescriptor] = None
    annotations: AnnotationSet = AnnotationSet()

    @property
    def is_repeated(self) -> bool:
        return self.cardinality == Cardinality.REPEATED


class MessageDescriptor(NamedTuple):
    """A message with its fields in declaration order."""
    name: str
    full_name: str
    fields: Tuple[FieldDescriptor, ...] = ()
    annotations: AnnotationSet = AnnotationSet()


def is_timestamp(field: FieldDescriptor) -> bool:
    """Checks whether a field refers to the well-known timestamp message."""
    return field.kind == FieldKind.MESSAGE and field.type_name.lstrip('.') == TIMESTAMP_FULL_NAME


TIMESTAMP = MessageDescriptor(
    name='Timestamp',
    full_name=TIMESTAMP_FULL_NAME,
    fields=(
        FieldDescriptor('seconds', FieldKind.INT64, 1, 'seconds'),
        FieldDescriptor('nanos', FieldKind.INT32, 2, 'nanos'),
    ))
