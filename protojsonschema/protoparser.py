"""
Parser for Protobuf (proto2 and proto3) source files.

Converts the lark syntax tree into namedtuples that keep the declaration
order of fields, including fields declared inside oneofs.
"""

import functools
import re
import typing

from lark import Lark, Transformer
from lark.exceptions import UnexpectedInput, VisitError

BNF = r'''
proto: syntax? _toplevel*

syntax: ("syntax" | "edition") "=" STRING ";"

_toplevel: import_stmt
         | package
         | option
         | message
         | enum
         | extend
         | service
         | ";"

import_stmt: "import" import_modifier? STRING ";"
!import_modifier: "weak" | "public"

package: "package" full_ident ";"

option: "option" option_name "=" constant ";"
option_name: option_part ("." option_part)*
option_part: IDENT
           | "(" "."? full_ident ")"

?constant: full_ident           -> ident_constant
         | SIGN? (INT | FLOAT)  -> number_constant
         | SIGN IDENT           -> special_float_constant
         | STRING+              -> string_constant
         | aggregate

aggregate: "{" aggregate_field* "}"
aggregate_field: aggregate_key ":"? (constant | aggregate_list) ("," | ";")?
aggregate_key: IDENT
             | "[" full_ident ("/" full_ident)? "]" -> extension_key
aggregate_list: "[" (constant ("," constant)*)? "]"

message: "message" IDENT message_body
message_body: "{" _message_element* "}"
_message_element: field
                | enum
                | message
                | extend
                | extensions
                | option
                | oneof
                | map_field
                | reserved
                | group
                | ";"

field: label? type_ref IDENT "=" INT field_options? ";"
group: label "group" IDENT "=" INT message_body
map_field: "map" "<" type_ref "," type_ref ">" IDENT "=" INT field_options? ";"
!label: "optional" | "required" | "repeated"
!type_ref: "."? IDENT ("." IDENT)*
!full_ident: IDENT ("." IDENT)*

field_options: "[" field_option ("," field_option)* "]"
field_option: option_name "=" constant

oneof: "oneof" IDENT "{" _oneof_element* "}"
_oneof_element: oneof_field
              | option
              | ";"
oneof_field: type_ref IDENT "=" INT field_options? ";"

enum: "enum" IDENT enum_body
enum_body: "{" _enum_element* "}"
_enum_element: option
             | enum_field
             | reserved
             | ";"
enum_field: IDENT "=" SIGN? INT field_options? ";"

reserved: "reserved" (ranges | reserved_names) ";"
extensions: "extensions" ranges field_options? ";"
ranges: range ("," range)*
range: INT ("to" (INT | "max"))?
reserved_names: (STRING | IDENT) ("," (STRING | IDENT))*

extend: "extend" type_ref "{" _extend_element* "}"
_extend_element: field
               | group
               | ";"

service: "service" IDENT "{" _service_element* "}"
_service_element: option
                | rpc
                | ";"
rpc: "rpc" IDENT "(" "stream"? type_ref ")" "returns" "(" "stream"? type_ref ")" (rpc_body | ";")
rpc_body: "{" (option | ";")* "}"

IDENT: /[A-Za-z_][A-Za-z0-9_]*/
INT: /0[xX][0-9A-Fa-f]+|[1-9][0-9]*|0[0-7]*/
FLOAT.2: /([0-9]+\.[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?|[0-9]+[eE][+-]?[0-9]+/
SIGN: "-" | "+"
STRING: /"([^"\\\n]|\\.)*"|'([^'\\\n]|\\.)*'/
COMMENT: /\/\/[^\n]*/
BLOCK_COMMENT: /\/\*(.|\n)*?\*\//

%import common.WS
%ignore WS
%ignore COMMENT
%ignore BLOCK_COMMENT
'''


class ProtoParseError(ValueError):
    """Raised for .proto sources that do not parse."""

    def __init__(self, message: str, line: int = None, column: int = None):
        super().__init__(message)
        self.line = line
        self.column = column


class Identifier(str):
    """An unquoted identifier used as an option value, e.g. an enum value name."""


class Aggregate(dict):
    """A message literal option value, e.g. `{min_len: 1}`. Repeated keys collect into a list."""


Field = typing.NamedTuple('Field', [('label', str), ('type', str), ('name', str), ('number', int),
                                    ('options', typing.Dict[str, typing.Any]), ('key_type', str),
                                    ('oneof', str), ('group', bool)])
EnumValue = typing.NamedTuple('EnumValue', [('name', str), ('number', int), ('options', typing.Dict[str, typing.Any])])
Enum = typing.NamedTuple('Enum', [('name', str), ('values', typing.List['EnumValue']), ('options', typing.Dict[str, typing.Any])])
Option = typing.NamedTuple('Option', [('name', str), ('value', typing.Any)])
Oneof = typing.NamedTuple('Oneof', [('name', str), ('fields', typing.List['Field'])])
Group = typing.NamedTuple('Group', [('label', str), ('name', str), ('number', int), ('body', 'MessageBody')])
MessageBody = typing.NamedTuple('MessageBody', [('fields', typing.List['Field']), ('messages', typing.List['Message']),
                                                ('enums', typing.List['Enum']), ('options', typing.Dict[str, typing.Any])])
Message = typing.NamedTuple('Message', [('name', str), ('fields', typing.List['Field']), ('messages', typing.List['Message']),
                                        ('enums', typing.List['Enum']), ('options', typing.Dict[str, typing.Any])])
Import = typing.NamedTuple('Import', [('path', str), ('modifier', str)])
Package = typing.NamedTuple('Package', [('name', str)])
Syntax = typing.NamedTuple('Syntax', [('value', str)])
ProtoFile = typing.NamedTuple('ProtoFile', [('syntax', str), ('package', str), ('imports', typing.List['Import']),
                                            ('options', typing.Dict[str, typing.Any]), ('messages', typing.List['Message']),
                                            ('enums', typing.List['Enum'])])

_ESCAPES = {
    'a': '\a', 'b': '\b', 'f': '\f', 'n': '\n', 'r': '\r', 't': '\t', 'v': '\v',
    '\\': '\\', "'": "'", '"': '"', '?': '?',
}
_ESCAPE_RE = re.compile(r'\\(x[0-9A-Fa-f]{1,2}|[0-7]{1,3}|u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)')


def _unescape_match(match: re.Match) -> str:
    seq = match.group(1)
    if seq[0] == 'x':
        return chr(int(seq[1:], 16))
    if seq[0] in 'uU':
        return chr(int(seq[1:], 16))
    if seq[0] in '01234567':
        return chr(int(seq, 8))
    return _ESCAPES.get(seq, seq)


def unescape(text: str) -> str:
    """Decode the escape sequences of a proto string literal body."""
    return _ESCAPE_RE.sub(_unescape_match, text)


def parse_int(text: str) -> int:
    """Parse a decimal, hex or octal proto integer literal, with optional sign."""
    sign = 1
    if text[:1] in '+-':
        sign = -1 if text[0] == '-' else 1
        text = text[1:]
    if text[:2] in ('0x', '0X'):
        return sign * int(text[2:], 16)
    if len(text) > 1 and text[0] == '0':
        return sign * int(text[1:], 8)
    return sign * int(text)


class ProtoTransformer(Transformer):
    '''Converts syntax tree nodes into namedtuples'''

    def full_ident(self, tokens):
        return ''.join(tokens)

    def type_ref(self, tokens):
        return ''.join(tokens)

    def label(self, tokens):
        return str(tokens[0])

    def import_modifier(self, tokens):
        return str(tokens[0])

    def option_part(self, tokens):
        return str(tokens[0])

    def option_name(self, tokens):
        return '.'.join(tokens)

    def ident_constant(self, tokens):
        name = tokens[0]
        if name == 'true':
            return True
        if name == 'false':
            return False
        if name in ('inf', 'nan'):
            return float(name)
        return Identifier(name)

    def number_constant(self, tokens):
        text = ''.join(tokens)
        if tokens[-1].type == 'FLOAT':
            return float(text)
        return parse_int(text)

    def special_float_constant(self, tokens):
        sign, name = tokens
        if name not in ('inf', 'nan'):
            raise ProtoParseError(f"Invalid numeric constant '{sign}{name}'", name.line, name.column)
        return float(sign + name)

    def string_constant(self, tokens):
        return ''.join(unescape(token[1:-1]) for token in tokens)

    def aggregate_key(self, tokens):
        return str(tokens[0])

    def extension_key(self, tokens):
        return '[' + '/'.join(tokens) + ']'

    def aggregate_list(self, tokens):
        return list(tokens)

    def aggregate_field(self, tokens):
        key, value = tokens
        return key, value

    def aggregate(self, items):
        result = Aggregate()
        repeated = set()
        for key, value in items:
            if key in repeated:
                result[key].append(value)
            elif key in result:
                result[key] = [result[key], value]
                repeated.add(key)
            else:
                result[key] = value
        return result

    def syntax(self, tokens):
        return Syntax(tokens[0][1:-1])

    def import_stmt(self, tokens):
        modifier = tokens[0] if len(tokens) > 1 else ''
        return Import(unescape(tokens[-1][1:-1]), modifier)

    def package(self, tokens):
        return Package(tokens[0])

    def option(self, tokens):
        name, value = tokens
        return Option(name, value)

    def field_option(self, tokens):
        name, value = tokens
        return name, value

    def field_options(self, tokens):
        return dict(tokens)

    def field(self, tokens):
        items = list(tokens)
        options = items.pop() if isinstance(items[-1], dict) else {}
        label, type_name, name, number = ([None] + items)[-4:]
        return Field(label or '', type_name, str(name), parse_int(number), options, None, None, False)

    def oneof_field(self, tokens):
        items = list(tokens)
        options = items.pop() if isinstance(items[-1], dict) else {}
        type_name, name, number = items
        return Field('', type_name, str(name), parse_int(number), options, None, None, False)

    def map_field(self, tokens):
        items = list(tokens)
        options = items.pop() if isinstance(items[-1], dict) else {}
        key_type, value_type, name, number = items
        return Field('', value_type, str(name), parse_int(number), options, key_type, None, False)

    def group(self, tokens):
        label, name, number, body = tokens
        return Group(label, str(name), parse_int(number), body)

    def oneof(self, tokens):
        name = str(tokens[0])
        fields = [token for token in tokens[1:] if isinstance(token, Field)]
        return Oneof(name, [f._replace(oneof=name) for f in fields])

    def message_body(self, items):
        fields = []
        messages = []
        enums = []
        options = {}
        for item in items:
            if isinstance(item, Field):
                fields.append(item)
            elif isinstance(item, Oneof):
                fields.extend(item.fields)
            elif isinstance(item, Group):
                fields.append(Field(item.label, item.name, item.name.lower(), item.number, {}, None, None, True))
                messages.append(Message(item.name, *item.body))
            elif isinstance(item, Message):
                messages.append(item)
            elif isinstance(item, Enum):
                enums.append(item)
            elif isinstance(item, Option):
                options[item.name] = item.value
        return MessageBody(fields, messages, enums, options)

    def message(self, tokens):
        name, body = tokens
        return Message(str(name), *body)

    def enum_field(self, tokens):
        items = list(tokens)
        options = items.pop() if isinstance(items[-1], dict) else {}
        name = items[0]
        number = ''.join(items[1:])
        return EnumValue(str(name), parse_int(number), options)

    def enum_body(self, items):
        values = [item for item in items if isinstance(item, EnumValue)]
        options = {item.name: item.value for item in items if isinstance(item, Option)}
        return values, options

    def enum(self, tokens):
        name, (values, options) = tokens
        return Enum(str(name), values, options)

    def reserved(self, _):
        return None

    def extensions(self, _):
        return None

    def extend(self, _):
        return None

    def service(self, _):
        return None

    def proto(self, items):
        syntax = 'proto2'
        package = ''
        imports = []
        options = {}
        messages = []
        enums = []
        for item in items:
            if isinstance(item, Syntax):
                syntax = item.value
            elif isinstance(item, Package):
                package = item.name
            elif isinstance(item, Import):
                imports.append(item)
            elif isinstance(item, Option):
                options[item.name] = item.value
            elif isinstance(item, Message):
                messages.append(item)
            elif isinstance(item, Enum):
                enums.append(item)
        return ProtoFile(syntax, package, imports, options, messages, enums)


@functools.lru_cache(maxsize=1)
def _get_parser() -> Lark:
    return Lark(BNF, start='proto', parser='lalr', lexer='contextual')


def parse(data: str) -> ProtoFile:
    """
    Parse Protobuf source text.

    Raises:
        ProtoParseError: If the text is not valid Protobuf source.
    """
    try:
        tree = _get_parser().parse(data)
    except UnexpectedInput as e:
        raise ProtoParseError(f"Invalid proto source at line {e.line}, column {e.column}: {e}",
                              e.line, e.column) from e
    try:
        return ProtoTransformer().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ProtoParseError):
            raise e.orig_exc from e
        raise ProtoParseError(f"Invalid proto source: {e.orig_exc}") from e


def parse_from_file(file: str, encoding: str = "utf-8") -> ProtoFile:
    with open(file, 'r', encoding=encoding) as f:
        data = f.read()
    return parse(data)
