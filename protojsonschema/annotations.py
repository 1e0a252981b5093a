"""
Schema annotations attached to message and field descriptors.

The vocabulary is closed. Every key is independently present or absent, and an
absent key is never the same thing as a false, zero or empty value.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1


class MissingAnnotationError(KeyError):
    """Raised when an absent annotation is read without checking presence first."""


class AnnotationKey(Enum):
    """Closed annotation vocabulary. The value is the option name used in .proto files."""
    TITLE = 'title'
    DESCRIPTION = 'description'
    EXAMPLE = 'example'
    FORMAT = 'format'
    DEFAULT = 'default'
    MIN_LENGTH = 'min_length'
    MAX_LENGTH = 'max_length'
    MINIMUM = 'minimum'
    MAXIMUM = 'maximum'
    PATTERN = 'pattern'
    REQUIRED = 'required'
    HIDDEN = 'hidden'
    JSON_NAME = 'json_name'
    GENERATE_SCHEMA = 'generate_schema'

    @property
    def value_type(self) -> str:
        return _VALUE_TYPES[self]


_VALUE_TYPES = {
    AnnotationKey.TITLE: 'string',
    AnnotationKey.DESCRIPTION: 'string',
    AnnotationKey.EXAMPLE: 'string',
    AnnotationKey.FORMAT: 'string',
    AnnotationKey.DEFAULT: 'string',
    AnnotationKey.MIN_LENGTH: 'int32',
    AnnotationKey.MAX_LENGTH: 'int32',
    AnnotationKey.MINIMUM: 'double',
    AnnotationKey.MAXIMUM: 'double',
    AnnotationKey.PATTERN: 'string',
    AnnotationKey.REQUIRED: 'bool',
    AnnotationKey.HIDDEN: 'bool',
    AnnotationKey.JSON_NAME: 'string',
    AnnotationKey.GENERATE_SCHEMA: 'bool',
}

# option names accepted on each kind of declaration, as defined in jsonschema.proto
_MESSAGE_OPTIONS = {
    'title': AnnotationKey.TITLE,
    'message_description': AnnotationKey.DESCRIPTION,
    'generate_schema': AnnotationKey.GENERATE_SCHEMA,
}
_FIELD_OPTIONS = {key.value: key for key in AnnotationKey
                  if key not in (AnnotationKey.TITLE, AnnotationKey.GENERATE_SCHEMA)}
_OPTIONS_BY_TARGET = {
    'message': _MESSAGE_OPTIONS,
    'field': _FIELD_OPTIONS,
    'enum': {},
}


def coerce_annotation_value(key: AnnotationKey, value: Any) -> Any:
    """
    Checks a value against the type of its annotation key.

    Args:
        key (AnnotationKey): The annotation key.
        value: The candidate value.

    Returns:
        The value, converted to float for double keys.

    Raises:
        TypeError: If the value does not have the key's type.
        ValueError: If an int32 value is out of range.
    """
    value_type = key.value_type
    if value_type == 'string':
        if not isinstance(value, str):
            raise TypeError(f"Annotation '{key.value}' expects a string, got {value!r}")
        return value
    if value_type == 'bool':
        if not isinstance(value, bool):
            raise TypeError(f"Annotation '{key.value}' expects a bool, got {value!r}")
        return value
    if value_type == 'int32':
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Annotation '{key.value}' expects an int32, got {value!r}")
        if value < INT32_MIN or value > INT32_MAX:
            raise ValueError(f"Annotation '{key.value}' value {value} is out of int32 range")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Annotation '{key.value}' expects a number, got {value!r}")
    return float(value)


class AnnotationSet:
    """
    Immutable, sparse set of annotation values keyed by AnnotationKey.

    Use `has` before `get`, or read the typed properties which return None when
    the annotation is absent.
    """

    __slots__ = ('_values',)

    def __init__(self, values: Optional[Mapping[AnnotationKey, Any]] = None, **kwargs: Any):
        collected: Dict[AnnotationKey, Any] = {}
        for key, value in (values or {}).items():
            key = AnnotationKey(key)
            collected[key] = coerce_annotation_value(key, value)
        for name, value in kwargs.items():
            key = AnnotationKey(name)
            collected[key] = coerce_annotation_value(key, value)
        object.__setattr__(self, '_values', MappingProxyType(collected))

    def __setattr__(self, name, value):
        raise AttributeError('AnnotationSet is immutable')

    @classmethod
    def from_options(cls, options: Mapping[str, Any], package: str = 'jsonschema',
                     target: str = 'field') -> 'AnnotationSet':
        """
        Builds an annotation set from parsed option names and values.

        Only options in the given extension package are considered, e.g.
        `jsonschema.min_length`. Other options are ignored. `target` is the
        kind of declaration the options belong to ('message', 'field' or
        'enum'); each accepts only its own option names.

        Raises:
            ValueError: If an option of the package is unknown, not allowed on
                the target, or has the wrong type.
        """
        allowed = _OPTIONS_BY_TARGET[target]
        prefix = package + '.'
        values: Dict[AnnotationKey, Any] = {}
        for option_name, value in options.items():
            if not option_name.startswith(prefix):
                continue
            short_name = option_name[len(prefix):]
            key = allowed.get(short_name)
            if key is None:
                if any(short_name in names for names in _OPTIONS_BY_TARGET.values()):
                    raise ValueError(f"Schema option '{option_name}' cannot be used on a {target}")
                raise ValueError(f"Unknown schema option '{option_name}'")
            try:
                values[key] = coerce_annotation_value(key, value)
            except TypeError as e:
                raise ValueError(str(e)) from e
        return cls(values)

    def has(self, key: AnnotationKey) -> bool:
        return key in self._values

    def get(self, key: AnnotationKey) -> Any:
        """Returns the value of a present annotation."""
        if key not in self._values:
            raise MissingAnnotationError(key.value)
        return self._values[key]

    def get_optional(self, key: AnnotationKey) -> Optional[Any]:
        return self._values[key] if key in self._values else None

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AnnotationSet):
            return NotImplemented
        return dict(self._values) == dict(other._values)

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __repr__(self) -> str:
        inner = ', '.join(f'{k.value}={v!r}' for k, v in self._values.items())
        return f'AnnotationSet({inner})'

    @property
    def title(self) -> Optional[str]:
        return self.get_optional(AnnotationKey.TITLE)

    @property
    def description(self) -> Optional[str]:
        return self.get_optional(AnnotationKey.DESCRIPTION)

    @property
    def example(self) -> Optional[str]:
        return self.get_optional(AnnotationKey.EXAMPLE)

    @property
    def format(self) -> Optional[str]:
        return self.get_optional(AnnotationKey.FORMAT)

    @property
    def default(self) -> Optional[str]:
        """The default value as an unparsed JSON literal."""
        return self.get_optional(AnnotationKey.DEFAULT)

    @property
    def min_length(self) -> Optional[int]:
        return self.get_optional(AnnotationKey.MIN_LENGTH)

    @property
    def max_length(self) -> Optional[int]:
        return self.get_optional(AnnotationKey.MAX_LENGTH)

    @property
    def minimum(self) -> Optional[float]:
        return self.get_optional(AnnotationKey.MINIMUM)

    @property
    def maximum(self) -> Optional[float]:
        return self.get_optional(AnnotationKey.MAXIMUM)

    @property
    def pattern(self) -> Optional[str]:
        return self.get_optional(AnnotationKey.PATTERN)

    @property
    def required(self) -> Optional[bool]:
        return self.get_optional(AnnotationKey.REQUIRED)

    @property
    def hidden(self) -> Optional[bool]:
        return self.get_optional(AnnotationKey.HIDDEN)

    @property
    def json_name(self) -> Optional[str]:
        return self.get_optional(AnnotationKey.JSON_NAME)

    @property
    def generate_schema(self) -> Optional[bool]:
        return self.get_optional(AnnotationKey.GENERATE_SCHEMA)
