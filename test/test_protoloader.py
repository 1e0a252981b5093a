import os
import tempfile
import unittest

from protojsonschema.descriptors import TIMESTAMP_FULL_NAME, Cardinality, FieldKind
from protojsonschema.protoloader import ProtoLoader, find_message, load_messages, to_json_name
from protojsonschema.prototojsons import ProtoToJsonSchemaConverter


def proto_path(*parts):
    return os.path.join(os.path.dirname(__file__), 'proto', *parts)


class TestProtoLoader(unittest.TestCase):

    def test_json_names(self):
        self.assertEqual(to_json_name('display_name'), 'displayName')
        self.assertEqual(to_json_name('a_b_c'), 'aBC')
        self.assertEqual(to_json_name('plain'), 'plain')
        self.assertEqual(to_json_name('trailing_'), 'trailing')

    def test_user_proto(self):
        messages = load_messages(proto_path('user.proto'))
        self.assertEqual([m.full_name for m in messages],
                         ['example.users.UserRequest', 'example.users.UserRequest.Address', 'example.users.InternalAudit'])
        user = messages[0]
        fields = {f.name: f for f in user.fields}
        self.assertEqual(user.annotations.title, 'User Request')
        self.assertEqual(user.annotations.description, 'Payload for creating a user')
        self.assertEqual(fields['display_name'].json_name, 'displayName')
        self.assertEqual(fields['legacy_id'].json_name, 'id')
        self.assertEqual(fields['nick'].annotations.json_name, 'nickname')
        self.assertEqual(fields['tags'].cardinality, Cardinality.REPEATED)
        self.assertEqual(fields['role'].kind, FieldKind.ENUM)
        self.assertEqual(fields['role'].type_name, 'example.users.UserRequest.Role')
        self.assertEqual([v.name for v in fields['role'].enum.values], ['ROLE_UNSPECIFIED', 'ROLE_MEMBER', 'ROLE_ADMIN'])
        self.assertEqual(fields['address'].type_name, 'example.users.UserRequest.Address')
        self.assertEqual(fields['created_at'].type_name, TIMESTAMP_FULL_NAME)
        self.assertEqual(fields['age'].annotations.minimum, 18.0)
        self.assertTrue(fields['password'].annotations.hidden)
        self.assertIs(messages[2].annotations.generate_schema, False)

    def test_imports_and_scoping(self):
        messages = load_messages(proto_path('imports', 'order.proto'))
        self.assertEqual([m.full_name for m in messages], ['example.orders.Order', 'example.orders.Order.LineItem'])
        order = messages[0]
        self.assertEqual([f.name for f in order.fields],
                         ['order_id', 'total', 'currency', 'labels', 'card_token', 'iban', 'items'])
        fields = {f.name: f for f in order.fields}
        self.assertEqual(fields['total'].type_name, 'example.common.Money')
        self.assertEqual(fields['currency'].enum.full_name, 'example.common.Currency')
        self.assertEqual(fields['items'].type_name, 'example.orders.Order.LineItem')
        self.assertEqual(fields['items'].cardinality, Cardinality.REPEATED)

    def test_map_fields_are_objects(self):
        order = load_messages(proto_path('imports', 'order.proto'))[0]
        labels = next(f for f in order.fields if f.name == 'labels')
        self.assertEqual(labels.kind, FieldKind.MESSAGE)
        self.assertEqual(labels.cardinality, Cardinality.OPTIONAL)
        self.assertEqual(labels.type_name, 'example.orders.Order.LabelsEntry')
        schema = ProtoToJsonSchemaConverter().build_field_schema(labels)
        self.assertEqual(schema, {'type': 'object'})

    def test_order_schema(self):
        messages = load_messages(proto_path('imports', 'order.proto'))
        ordered = ProtoToJsonSchemaConverter().generate_ordered_schema(messages[0])
        self.assertEqual(ordered.property_names(),
                         ['orderId', 'total', 'currency', 'labels', 'cardToken', 'iban', 'items'])
        self.assertEqual(ordered.required, ['orderId'])
        schema = ordered.to_dict()
        self.assertEqual(schema['properties']['currency'], {'type': 'string', 'enum': ['CURRENCY_UNSPECIFIED', 'EUR', 'USD']})
        self.assertEqual(schema['properties']['items'], {'type': 'array', 'items': {'type': 'object'}})
        line_item = ProtoToJsonSchemaConverter().generate_schema(messages[1])
        self.assertEqual(line_item['properties']['quantity'], {'type': 'integer', 'minimum': 1})

    def test_proto_root_resolves_imports(self):
        with tempfile.TemporaryDirectory() as work_dir:
            with open(os.path.join(work_dir, 'main.proto'), 'w', encoding='utf-8') as f:
                f.write('syntax = "proto3";\nimport "common.proto";\n'
                        'message Wallet { example.common.Money balance = 1; }\n')
            messages = ProtoLoader(proto_root=proto_path('imports')).load_file(os.path.join(work_dir, 'main.proto'))
        self.assertEqual(messages[0].fields[0].type_name, 'example.common.Money')

    def test_cyclic_imports(self):
        with tempfile.TemporaryDirectory() as work_dir:
            with open(os.path.join(work_dir, 'a.proto'), 'w', encoding='utf-8') as f:
                f.write('syntax = "proto3";\npackage cyc;\nimport "b.proto";\nmessage A { B b = 1; }\n')
            with open(os.path.join(work_dir, 'b.proto'), 'w', encoding='utf-8') as f:
                f.write('syntax = "proto3";\npackage cyc;\nimport "a.proto";\nmessage B { A a = 1; }\n')
            messages = load_messages(os.path.join(work_dir, 'a.proto'))
        self.assertEqual([m.full_name for m in messages], ['cyc.A'])
        self.assertEqual(messages[0].fields[0].type_name, 'cyc.B')

    def test_groups(self):
        messages = load_messages(proto_path('proto2.proto'))
        self.assertEqual([m.full_name for m in messages], ['legacy.Record', 'legacy.Record.Entry'])
        record = messages[0]
        fields = {f.name: f for f in record.fields}
        self.assertEqual(fields['id'].cardinality, Cardinality.REQUIRED)
        self.assertEqual(len(fields['count'].annotations), 0)
        self.assertEqual(fields['entry'].kind, FieldKind.GROUP)
        self.assertEqual(fields['entry'].type_name, 'legacy.Record.Entry')
        schema = ProtoToJsonSchemaConverter().generate_schema(record)
        self.assertEqual(schema['properties']['entry'], {'type': 'array', 'items': {}})
        self.assertNotIn('required', schema)

    def test_missing_import(self):
        with self.assertRaises(FileNotFoundError):
            load_messages(proto_path('missing_import.proto'))

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_messages(proto_path('does_not_exist.proto'))

    def test_unresolved_type(self):
        with self.assertRaises(ValueError):
            ProtoLoader().load_string('syntax = "proto3";\nmessage A { Missing m = 1; }')

    def test_well_known_types_resolve_without_files(self):
        messages = ProtoLoader().load_string('''
            syntax = "proto3";
            import "google/protobuf/duration.proto";
            message A { google.protobuf.Duration ttl = 1; .google.protobuf.Timestamp at = 2; }
        ''')
        ttl, at = messages[0].fields
        self.assertEqual((ttl.kind, ttl.type_name), (FieldKind.MESSAGE, 'google.protobuf.Duration'))
        self.assertEqual(at.type_name, TIMESTAMP_FULL_NAME)

    def test_enum_identifier_rejected_for_schema_option(self):
        with self.assertRaises(ValueError):
            ProtoLoader().load_string('message A { string a = 1 [(jsonschema.format) = EMAIL]; }')

    def test_unknown_schema_option_rejected(self):
        with self.assertRaises(ValueError):
            ProtoLoader().load_string('message A { string a = 1 [(jsonschema.colour) = "red"]; }')

    def test_message_literal_options_of_other_packages_are_ignored(self):
        messages = ProtoLoader().load_string('''
            syntax = "proto3";
            message GetRequest {
              option (acme.resource) = { type: "acme/Thing" pattern: "things/{thing}" };
              string name = 1 [(validate.rules).string = {min_len: 1}, (jsonschema.required) = true];
            }
            message GetReply { string name = 1; }
            service Things {
              rpc Get (GetRequest) returns (GetReply) {
                option (google.api.http) = { get: "/v1/{name=things/*}" };
              }
            }
        ''')
        self.assertEqual([m.name for m in messages], ['GetRequest', 'GetReply'])
        self.assertTrue(messages[0].fields[0].annotations.required)

    def test_message_literal_rejected_for_schema_option(self):
        with self.assertRaises(ValueError):
            ProtoLoader().load_string('message A { string a = 1 [(jsonschema.description) = {text: "x"}]; }')

    def test_schema_options_on_wrong_declaration(self):
        with self.assertRaises(ValueError):
            ProtoLoader().load_string('message A { string a = 1 [(jsonschema.message_description) = "x"]; }')
        with self.assertRaises(ValueError):
            ProtoLoader().load_string('message A { option (jsonschema.required) = true; string a = 1; }')
        with self.assertRaises(ValueError):
            ProtoLoader().load_string('message A { option (jsonschema.hidden) = true; string a = 1; }')

    def test_null_value_is_an_enum(self):
        messages = ProtoLoader().load_string('''
            syntax = "proto3";
            import "google/protobuf/struct.proto";
            message A { google.protobuf.NullValue nothing = 1; }
        ''')
        field = messages[0].fields[0]
        self.assertEqual((field.kind, field.type_name), (FieldKind.ENUM, 'google.protobuf.NullValue'))
        schema = ProtoToJsonSchemaConverter().build_field_schema(field)
        self.assertEqual(schema, {'type': 'string', 'enum': ['NULL_VALUE']})

    def test_custom_options_package(self):
        messages = ProtoLoader(options_package='acme.schema').load_string(
            'message A { string a = 1 [(acme.schema.required) = true, (jsonschema.colour) = "red"]; }')
        self.assertTrue(messages[0].fields[0].annotations.required)

    def test_find_message(self):
        messages = load_messages(proto_path('user.proto'))
        self.assertEqual(find_message(messages, 'Address').full_name, 'example.users.UserRequest.Address')
        self.assertEqual(find_message(messages, '.example.users.UserRequest').name, 'UserRequest')
        self.assertIsNone(find_message(messages, 'Missing'))


if __name__ == '__main__':
    unittest.main()
