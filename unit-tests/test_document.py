from unittest import TestCase

from ciphvault import crypto
from ciphvault.document import Document
from ciphvault.error import SaveError
from ciphvault.record import Record

from data_vault import VaultEnvironment, get_params, get_records, random_passphrase


class TestDocument(TestCase):
    vault_env = VaultEnvironment()

    def get_saved_data(self):
        document = Document()
        document.choose_passphrase(self.vault_env.passphrase)
        for record in get_records():
            document.add_entry(record)
        return document.data()

    def test_new_document(self):
        document = Document()
        self.assertFalse(document.is_locked)
        self.assertFalse(document.is_modified)
        self.assertTrue(document.needs_passphrase)
        self.assertEqual(document.store.number_of_items, 0)
        with self.assertRaises(SaveError):
            document.data()

    def test_choose_passphrase(self):
        document = Document()
        self.assertFalse(document.matches_passphrase(self.vault_env.passphrase))
        self.assertTrue(document.choose_passphrase(self.vault_env.passphrase))
        self.assertTrue(document.is_modified)
        self.assertFalse(document.needs_passphrase)
        self.assertEqual(document.key, self.vault_env.key)
        self.assertTrue(document.matches_passphrase(self.vault_env.passphrase))
        self.assertFalse(document.matches_passphrase(random_passphrase()))

        document.data()
        self.assertFalse(document.is_modified)
        self.assertFalse(document.choose_passphrase(self.vault_env.passphrase))
        self.assertFalse(document.is_modified)

    def test_add_and_save(self):
        document = Document()
        document.choose_passphrase(self.vault_env.passphrase)
        document.data()
        record_id = document.add_entry({'name': 'Bank', 'password': 'p'})
        self.assertEqual(record_id, 0)
        self.assertTrue(document.is_modified)
        self.assertEqual(document.store.visible_ids, (0,))
        document.data()
        self.assertFalse(document.is_modified)

    def test_unlock(self):
        document = Document()
        document.set_encrypted_data(self.get_saved_data())
        self.assertTrue(document.is_locked)
        self.assertTrue(document.needs_passphrase)

        self.assertFalse(document.unlock('wrong'))
        self.assertTrue(document.is_locked)
        self.assertTrue(document.needs_passphrase)

        self.assertTrue(document.unlock(self.vault_env.passphrase))
        self.assertFalse(document.is_locked)
        self.assertFalse(document.is_modified)
        self.assertTrue(document.matches_passphrase(self.vault_env.passphrase))
        self.assertEqual(document.store.records(), get_records())

    def test_unlock_without_data(self):
        document = Document()
        with self.assertLogs(level='WARNING'):
            self.assertFalse(document.unlock(self.vault_env.passphrase))

    def test_change_passphrase(self):
        document = Document()
        document.set_encrypted_data(self.get_saved_data())
        document.unlock(self.vault_env.passphrase)
        new_passphrase = random_passphrase()
        self.assertTrue(document.choose_passphrase(new_passphrase))
        data = document.data()

        reopened = Document()
        reopened.set_encrypted_data(data)
        self.assertFalse(reopened.unlock(self.vault_env.passphrase))
        self.assertTrue(reopened.unlock(new_passphrase))
        self.assertEqual(reopened.store.number_of_items, 4)

    def test_modify_entry(self):
        document = Document()
        document.set_encrypted_data(self.get_saved_data())
        document.unlock(self.vault_env.passphrase)

        previous = document.modify_entry(0, {'name': 'Zeta', 'password': 'new'})
        self.assertEqual(previous, get_records()[0])
        self.assertTrue(document.is_modified)
        self.assertEqual(document.store.item(0), Record(name='Zeta', password='new'))
        self.assertEqual(document.store.visible_ids, (2, 1, 3, 0))

        self.assertIsNone(document.modify_entry(99, {'name': 'Nobody'}))

    def test_delete_and_restore(self):
        document = Document()
        document.set_encrypted_data(self.get_saved_data())
        document.unlock(self.vault_env.passphrase)
        document.store.filter('internet', 'category')
        self.assertEqual(document.store.visible_ids, (1, 3))

        deleted = document.delete_entries([1, 42])
        self.assertEqual([x for x, _ in deleted], [1])
        self.assertEqual(deleted[0][1]['name'], 'Mail')
        self.assertTrue(document.is_modified)
        self.assertEqual(document.store.visible_ids, (3,))

        document.restore_entries(deleted)
        self.assertEqual(document.store.visible_ids, (1, 3))
        self.assertEqual(document.store.next_id, 4)

        data = document.data()
        self.assertFalse(document.is_modified)
        self.assertEqual(document.delete_entries([42]), [])
        self.assertFalse(document.is_modified)

        reopened = Document()
        reopened.set_encrypted_data(data)
        reopened.unlock(self.vault_env.passphrase)
        self.assertEqual(reopened.store.records(), get_records())

    def test_close(self):
        document = Document()
        document.set_encrypted_data(self.get_saved_data())
        document.unlock(self.vault_env.passphrase)
        document.add_entry({'name': 'New'})
        document.close()
        self.assertTrue(document.needs_passphrase)
        self.assertFalse(document.is_locked)
        self.assertFalse(document.is_modified)
        self.assertEqual(document.store.number_of_items, 0)

    def test_params(self):
        document = Document(get_params(default_sort_key='category', compression_level=0))
        document.set_encrypted_data(self.get_saved_data())
        document.unlock(self.vault_env.passphrase)
        self.assertEqual(document.store.visible_ids, (0, 2, 1, 3))

    def test_unlock_undecompressible_envelope(self):
        iv = bytes(8)
        payload = b'\x78\x9c' + b'\xff' * 10 + (2798628955).to_bytes(4, 'big')
        document = Document()
        document.set_encrypted_data(iv + crypto.encrypt_blowfish_cbc(payload, self.vault_env.key, iv))
        self.assertFalse(document.unlock(self.vault_env.passphrase))
        self.assertTrue(document.is_locked)
