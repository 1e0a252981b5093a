"""Maps protobuf field kinds to JSON Schema primitive types."""

from typing import Optional, Tuple

from protojsonschema.descriptors import FieldKind

_INTEGER_KINDS = frozenset([
    FieldKind.INT32, FieldKind.SINT32, FieldKind.SFIXED32,
    FieldKind.INT64, FieldKind.SINT64, FieldKind.SFIXED64,
    FieldKind.UINT32, FieldKind.FIXED32,
    FieldKind.UINT64, FieldKind.FIXED64,
])


def map_primitive(kind: Optional[FieldKind]) -> Tuple[Optional[str], Optional[str]]:
    """
    Map a field kind to a JSON Schema type and optional format.

    Args:
        kind (FieldKind): The protobuf field kind.

    Returns:
        tuple: (json_type, format). json_type is None for unsupported kinds,
        which means the field is unconstrained.
    """
    if kind == FieldKind.BOOL:
        return 'boolean', None
    if kind in _INTEGER_KINDS:
        return 'integer', None
    if kind in (FieldKind.FLOAT, FieldKind.DOUBLE):
        return 'number', None
    if kind in (FieldKind.STRING, FieldKind.ENUM):
        return 'string', None
    if kind == FieldKind.BYTES:
        return 'string', 'byte'
    if kind == FieldKind.MESSAGE:
        return 'object', None
    return None, None
