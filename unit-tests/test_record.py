from unittest import TestCase

from ciphvault import record
from ciphvault.record import Record

from data_vault import NOTES_RTF, get_records


class TestRecord(TestCase):
    def test_typed_fields(self):
        r = Record(name='Bank', password='secret', notes=NOTES_RTF)
        self.assertEqual(list(r.fields.keys()), ['name', 'password', 'notes'])
        self.assertEqual(len(r.extra), 0)
        self.assertEqual(r['notes'], NOTES_RTF)

        # a value of the wrong type is kept as an unknown field
        r['notes'] = 'plain'
        self.assertNotIn('notes', r.fields)
        self.assertEqual(r.extra['notes'], 'plain')
        r['notes'] = NOTES_RTF
        self.assertNotIn('notes', r.extra)
        self.assertEqual(r.fields['notes'], NOTES_RTF)

    def test_key_order(self):
        r = Record.load({'modified': 'today', 'url': 'https://x', 'name': 'X', 'icon': b'\x00'})
        self.assertEqual(list(r.keys()), ['name', 'url', 'modified', 'icon'])
        self.assertEqual(list(r), ['name', 'url', 'modified', 'icon'])
        self.assertEqual(len(r), 4)
        self.assertEqual(list(r.to_dict().items()), list(r.items()))

    def test_load_rejects_unsupported_values(self):
        with self.assertRaises(TypeError):
            Record.load({'name': 5})
        with self.assertRaises(TypeError):
            Record.load({'name': None})
        with self.assertRaises(TypeError):
            Record.load({1: 'one'})
        with self.assertRaises(TypeError):
            Record.load({'tags': ['a', 'b']})

    def test_copy(self):
        r1 = get_records()[3]
        r2 = Record.load(r1)
        self.assertIsNot(r1, r2)
        self.assertEqual(r1, r2)
        r2['name'] = 'Other'
        r2['modified'] = 'now'
        self.assertEqual(r1['name'], 'Wiki')
        self.assertEqual(r1['modified'], 'yesterday')

    def test_mapping_access(self):
        r = Record(name='Bank', extra={'icon': b'\x01'})
        self.assertIn('name', r)
        self.assertIn('icon', r)
        self.assertNotIn('url', r)
        self.assertIsNone(r.get('url'))
        self.assertEqual(r.get('url', ''), '')
        with self.assertRaises(KeyError):
            _ = r['url']
        del r['icon']
        del r['name']
        self.assertEqual(len(r), 0)
        with self.assertRaises(KeyError):
            del r['name']

    def test_equality(self):
        r = Record(name='A', account='a')
        self.assertEqual(r, Record(account='a', name='A'))
        self.assertEqual(r, {'name': 'A', 'account': 'a'})
        self.assertNotEqual(r, {'name': 'A'})
        self.assertNotEqual(r, Record(name='A', account='a', notes=b''))
        self.assertNotEqual(r, 'A')

    def test_text(self):
        records = get_records()
        self.assertEqual(records[0].text('name'), 'Bank')
        self.assertIsNone(records[0].text('notes'))
        self.assertIn('Server room code 4711', records[1].text('notes'))
        self.assertIn('Server room code 4711', records[2].text('notes'))
        self.assertIsNone(records[3].text('icon'))

    def test_contains(self):
        r = Record(name='Straße', account='jdoe', notes=NOTES_RTF)
        self.assertTrue(r.contains('STRASSE'))
        self.assertTrue(r.contains('strasse', 'name'))
        self.assertFalse(r.contains('strasse', 'account'))
        self.assertTrue(r.contains('JDo'))
        self.assertTrue(r.contains('room code', 'notes'))
        self.assertFalse(r.contains('room code', 'name'))
        self.assertFalse(r.contains('jdoe', 'url'))
        self.assertTrue(r.contains(''))

    def test_repr_hides_password(self):
        r = Record(name='Bank', password='hunter2')
        self.assertNotIn('hunter2', repr(r))
        self.assertIn('Bank', repr(r))

    def test_field_by_index(self):
        self.assertEqual(record.field_by_index(0), 'name')
        self.assertEqual(record.field_by_index(5), 'notes')
        self.assertIsNone(record.field_by_index(6))
        self.assertIsNone(record.field_by_index(-1))
        self.assertEqual(record.TEXT_FIELDS, ('name', 'account', 'password', 'url', 'category'))
