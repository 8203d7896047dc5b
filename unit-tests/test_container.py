from unittest import TestCase, mock

from ciphvault import archiver, compression, container, crypto
from ciphvault.error import OpenError, SaveError, ResourceError
from ciphvault.store import RecordStore, SortDescriptor

from data_vault import VaultEnvironment, get_params, get_records, get_store


class TestContainer(TestCase):
    vault_env = VaultEnvironment()

    def test_save_and_open(self):
        store = get_store()
        data = container.save_container(store, self.vault_env.key)
        opened = container.open_container(data, crypto.derive_key(self.vault_env.passphrase))
        self.assertEqual(opened.records(), get_records())
        self.assertEqual(opened.next_id, 4)
        self.assertEqual(opened.visible_ids, (2, 0, 1, 3))
        self.assertEqual(opened.sort_descriptor, SortDescriptor('name'))

    def test_container_layout(self):
        store = RecordStore([{'name': 'A'}])
        data = container.save_container(store, self.vault_env.key)
        self.assertEqual(len(data) % 8, 0)
        iv, encrypted_data = container.split_container(data)
        self.assertEqual(len(iv), 8)
        decrypted = crypto.decrypt_blowfish_cbc(encrypted_data, self.vault_env.key, iv)
        self.assertTrue(compression.is_compressed(decrypted))
        self.assertEqual(compression.decompress(decrypted), archiver.encode_records(store.records()))

    def test_fresh_iv(self):
        store = get_store()
        data1 = container.save_container(store, self.vault_env.key)
        data2 = container.save_container(store, self.vault_env.key)
        self.assertNotEqual(data1[:8], data2[:8])
        self.assertNotEqual(data1, data2)

    def test_wrong_passphrase(self):
        data = container.save_container(get_store(), self.vault_env.key)
        with self.assertRaises(OpenError) as context:
            container.open_container(data, crypto.derive_key('wrong'))
        self.assertIn('passphrase', str(context.exception))

    def test_short_data(self):
        for data in (b'', b'\x00' * 4, b'\x00' * 8, b'\x00' * 12):
            with self.assertRaises(OpenError):
                container.open_container(data, self.vault_env.key)

    def test_not_an_archive(self):
        iv = bytes(8)
        data = iv + crypto.encrypt_blowfish_cbc(b'{"name": "A"}', self.vault_env.key, iv)
        with self.assertRaises(OpenError):
            container.open_container(data, self.vault_env.key)

    def test_uncompressed(self):
        iv = crypto.get_random_bytes(8)
        archive_data = archiver.encode_records(get_records())
        data = iv + crypto.encrypt_blowfish_cbc(archive_data, self.vault_env.key, iv)
        store = container.open_container(data, self.vault_env.key)
        self.assertEqual(store.records(), get_records())

    def test_compression_level(self):
        store = get_store()
        for level in (0, 9):
            data = container.save_container(store, self.vault_env.key, get_params(compression_level=level))
            self.assertEqual(container.open_container(data, self.vault_env.key).records(), get_records())

    def test_default_sort(self):
        data = container.save_container(get_store(), self.vault_env.key)
        params = get_params(default_sort_key='category', default_sort_ascending=False)
        store = container.open_container(data, self.vault_env.key, params)
        self.assertEqual(store.visible_ids, (1, 3, 2, 0))

    def test_filter_after_open(self):
        data = container.save_container(RecordStore([{'name': 'A'}, {'name': 'B'}]), self.vault_env.key)
        store = container.open_container(data, self.vault_env.key)
        store.filter('A', 'name')
        self.assertEqual(store.visible_ids, (0,))

    def test_save_without_key(self):
        with self.assertRaises(SaveError):
            container.save_container(get_store(), None)
        with self.assertRaises(SaveError):
            container.save_container(get_store(), b'')

    def test_save_without_random_source(self):
        with mock.patch('ciphvault.crypto.get_random_bytes', side_effect=ResourceError('no entropy')):
            with self.assertRaises(SaveError):
                container.save_container(get_store(), self.vault_env.key)

    def test_empty_store(self):
        data = container.save_container(RecordStore(), self.vault_env.key)
        store = container.open_container(data, self.vault_env.key)
        self.assertEqual(store.number_of_items, 0)
        self.assertEqual(store.next_id, 0)

    def test_undecompressible_envelope(self):
        # passes the padding and zlib header checks, as data decrypted with a wrong key occasionally does
        iv = bytes(8)
        for payload in (b'\x78\x9c' + b'\xff' * 10 + (2798628955).to_bytes(4, 'big'),
                        compression.compress(b'short')[:-4] + (0xfffffff0).to_bytes(4, 'big')):
            data = iv + crypto.encrypt_blowfish_cbc(payload, self.vault_env.key, iv)
            with self.assertRaises(OpenError):
                container.open_container(data, self.vault_env.key)
