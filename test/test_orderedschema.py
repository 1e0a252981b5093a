import json
import unittest

from protojsonschema.orderedschema import OrderedProperty, OrderedSchema, SchemaSerializationError, dump_json


class TestOrderedSchema(unittest.TestCase):

    def test_member_order(self):
        schema = OrderedSchema(title='Thing', description='A thing', properties=[
            OrderedProperty('zeta', {'type': 'string'}),
            OrderedProperty('alpha', {'type': 'integer'}),
        ], required=['zeta'])
        self.assertEqual(
            schema.to_json(),
            '{"type":"object","title":"Thing","description":"A thing","properties":'
            '{"zeta":{"type":"string"},"alpha":{"type":"integer"}},"required":["zeta"]}')

    def test_nested_keys_are_sorted(self):
        schema = OrderedSchema(properties=[
            OrderedProperty('tags', {'type': 'array', 'items': {'type': 'string', 'format': 'byte'}, 'maxLength': 3}),
        ])
        self.assertEqual(
            schema.to_json(),
            '{"type":"object","properties":{"tags":{"items":{"format":"byte","type":"string"},'
            '"maxLength":3,"type":"array"}}}')

    def test_empty_members_are_omitted(self):
        self.assertEqual(OrderedSchema(type='').to_json(), '{"properties":{}}')
        self.assertEqual(OrderedSchema().to_dict(), {'type': 'object', 'properties': {}})

    def test_strings_are_escaped(self):
        schema = OrderedSchema(title='Say "hi"', description='line\nbreak',
                               properties=[OrderedProperty('a"b', {'pattern': '^\\d+$'})])
        parsed = json.loads(schema.to_json())
        self.assertEqual(parsed['title'], 'Say "hi"')
        self.assertEqual(parsed['description'], 'line\nbreak')
        self.assertEqual(parsed['properties'], {'a"b': {'pattern': '^\\d+$'}})

    def test_to_dict_matches_json(self):
        schema = OrderedSchema(title='T', properties=[OrderedProperty('b', {'type': 'boolean'}),
                                                      OrderedProperty('a', {'type': 'number'})], required=['a'])
        self.assertEqual(json.loads(schema.to_json()), schema.to_dict())
        self.assertEqual(list(schema.to_dict()['properties']), ['b', 'a'])

    def test_serialization_is_stable(self):
        schema = OrderedSchema(title='T', properties=[OrderedProperty('x', {'b': 1, 'a': [2, {'d': 3, 'c': 4}]})])
        self.assertEqual(schema.to_json(), schema.to_json())
        self.assertEqual(schema, OrderedSchema(title='T', properties=[
            OrderedProperty('x', {'a': [2, {'c': 4, 'd': 3}], 'b': 1})]))

    def test_infinite_value_fails(self):
        schema = OrderedSchema(properties=[OrderedProperty('x', {'maximum': float('inf')})])
        with self.assertRaises(SchemaSerializationError):
            schema.to_json()

    def test_dump_json_wraps_type_errors(self):
        with self.assertRaises(SchemaSerializationError) as context:
            dump_json({'value': object()})
        self.assertIsInstance(context.exception.__cause__, TypeError)
        self.assertIsInstance(context.exception, ValueError)


if __name__ == '__main__':
    unittest.main()
