import importlib

# public name -> (module, attribute); modules are imported on first access so
# that the proto grammar is only built when a converter is used
_mappings = {
    "convert_proto_to_json_schema": ("protojsonschema.prototojsons", "convert_proto_to_json_schema"),
    "convert_proto_to_json_schema_string": ("protojsonschema.prototojsons", "convert_proto_to_json_schema_string"),
    "generate_schema_json": ("protojsonschema.prototojsons", "generate_schema_json"),
    "schema_to_json": ("protojsonschema.prototojsons", "schema_to_json"),
    "ProtoToJsonSchemaConverter": ("protojsonschema.prototojsons", "ProtoToJsonSchemaConverter"),
    "OrderedSchema": ("protojsonschema.orderedschema", "OrderedSchema"),
    "SchemaSerializationError": ("protojsonschema.orderedschema", "SchemaSerializationError"),
    "ProtoLoader": ("protojsonschema.protoloader", "ProtoLoader"),
    "load_messages": ("protojsonschema.protoloader", "load_messages"),
    "AnnotationSet": ("protojsonschema.annotations", "AnnotationSet"),
    "AnnotationKey": ("protojsonschema.annotations", "AnnotationKey"),
    "MessageDescriptor": ("protojsonschema.descriptors", "MessageDescriptor"),
    "FieldDescriptor": ("protojsonschema.descriptors", "FieldDescriptor"),
    "FieldKind": ("protojsonschema.descriptors", "FieldKind"),
    "map_primitive": ("protojsonschema.typemapper", "map_primitive"),
}


def __getattr__(name):
    if name in _mappings:
        module_name, attr_name = _mappings[name]
        return getattr(importlib.import_module(module_name), attr_name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(globals()) + list(_mappings))
