"""
Resolves schema-relevant values from descriptor annotations.

Precedence rules:

* field name: rename annotation, then the descriptor's JSON name, then the declared name
* schema title: title annotation, then the declared message name
* generation: on unless the generate_schema annotation is present and false
"""

import json
import math
from typing import Any, Tuple

from protojsonschema.annotations import AnnotationKey, AnnotationSet
from protojsonschema.descriptors import FieldDescriptor, MessageDescriptor


def should_generate(message: MessageDescriptor) -> bool:
    annotations = message.annotations
    if annotations.has(AnnotationKey.GENERATE_SCHEMA):
        return annotations.get(AnnotationKey.GENERATE_SCHEMA)
    return True


def schema_title(message: MessageDescriptor) -> str:
    annotations = message.annotations
    if annotations.has(AnnotationKey.TITLE):
        return annotations.get(AnnotationKey.TITLE)
    return message.name


def field_name(field: FieldDescriptor) -> str:
    annotations = field.annotations
    if annotations.has(AnnotationKey.JSON_NAME):
        return annotations.get(AnnotationKey.JSON_NAME)
    if field.json_name:
        return field.json_name
    return field.name


def is_hidden(field: FieldDescriptor) -> bool:
    annotations = field.annotations
    if annotations.has(AnnotationKey.HIDDEN):
        return annotations.get(AnnotationKey.HIDDEN)
    return False


def is_required(field: FieldDescriptor) -> bool:
    """A field is required only if annotated so; cardinality is never considered."""
    annotations = field.annotations
    if annotations.has(AnnotationKey.REQUIRED):
        return annotations.get(AnnotationKey.REQUIRED)
    return False


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number {text} is out of range")
    return value


def default_value(annotations: AnnotationSet) -> Tuple[bool, Any]:
    """
    Parse the default annotation as a JSON literal.

    Returns:
        tuple: (present, value). A missing or malformed literal yields (False, None).
    """
    if not annotations.has(AnnotationKey.DEFAULT):
        return False, None
    try:
        return True, json.loads(annotations.get(AnnotationKey.DEFAULT), parse_float=_finite_float,
                                 parse_constant=_reject_constant)
    except ValueError:
        return False, None
