#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testAESManager.py

    Description:
        Test suite for the AES-256-CBC AESManager. Verifies key/IV generation,
        encryption/decryption correctness, padding behavior and all
        error-handling branches.
"""

import os
import unittest
from cookievault.encryption.AES_manager import AESManager
from cookievault.handlers.error_handler import CookieVaultError, DecryptionError, ApplicationCodes, HTTPCodes


class TestAESManager(unittest.TestCase):

    PLAINTEXT = b'{"id":"cookie-vault-test-plaintext"}'

    """
        Prepare a fresh AESManager instance with a valid 32-byte AES key.
    """
    def setUp(self) -> None:

        self.key = AESManager.generate_key()

        self.manager = AESManager()
        self.manager.set_key(self.key)

        self.iv = AESManager.generate_iv()

    """
        generate_key() must return 32-byte random values.
    """
    def test_generate_key_properties(self):

        key1 = AESManager.generate_key()
        key2 = AESManager.generate_key()

        self.assertIsInstance(key1, bytes)
        self.assertEqual(32, len(key1))
        self.assertEqual(32, len(key2))
        self.assertNotEqual(key1, key2)

    """
        generate_iv() must return fresh 16-byte values.
    """
    def test_generate_iv_properties(self):

        iv1 = AESManager.generate_iv()
        iv2 = AESManager.generate_iv()

        self.assertIsInstance(iv1, bytes)
        self.assertEqual(16, len(iv1))
        self.assertEqual(16, len(iv2))
        self.assertNotEqual(iv1, iv2)

    """
        AESManager() must initialize with no key; encrypt should fail.
    """
    def test_encrypt_without_setting_key_fails(self):

        with self.assertRaises(CookieVaultError) as cm:
            AESManager().encrypt(self.iv, self.PLAINTEXT)

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_AES_KEY)

    """
        set_key() must reject invalid types and lengths.
    """
    def test_set_key_rejects_invalid_keys(self):

        with self.assertRaises(CookieVaultError) as cm:
            self.manager.set_key("not-bytes")  # type: ignore

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_AES_KEY)
        self.assertEqual(cm.exception.field, "aes_key")

        for bad_len in (0, 16, 24, 31, 33):
            with self.subTest(bad_len=bad_len):
                with self.assertRaises(CookieVaultError) as cm:
                    self.manager.set_key(os.urandom(bad_len))

                self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_AES_KEY)
                self.assertEqual(cm.exception.http_code, HTTPCodes.INTERNAL_SERVER_ERROR)

    """
        Encrypting and then decrypting returns the original plaintext.
    """
    def test_encrypt_decrypt_round_trip(self):

        ciphertext = self.manager.encrypt(self.iv, self.PLAINTEXT)

        self.assertEqual(0, len(ciphertext) % 16)
        self.assertNotIn(self.PLAINTEXT, ciphertext)
        self.assertEqual(self.PLAINTEXT, self.manager.decrypt(self.iv, ciphertext))

    """
        PKCS#7 always adds padding, so an empty or block-sized plaintext grows by one block.
    """
    def test_padding_adds_a_full_block(self):

        self.assertEqual(16, len(self.manager.encrypt(self.iv, b"")))
        self.assertEqual(32, len(self.manager.encrypt(self.iv, b"x" * 16)))
        self.assertEqual(b"", self.manager.decrypt(self.iv, self.manager.encrypt(self.iv, b"")))

    """
        Different IVs produce different ciphertexts for the same plaintext.
    """
    def test_iv_changes_ciphertext(self):

        first = self.manager.encrypt(self.iv, self.PLAINTEXT)
        second = self.manager.encrypt(AESManager.generate_iv(), self.PLAINTEXT)

        self.assertNotEqual(first, second)

    """
        encrypt(): invalid IV and plaintext types.
    """
    def test_encrypt_rejects_invalid_inputs(self):

        with self.assertRaises(CookieVaultError) as cm:
            self.manager.encrypt(os.urandom(12), self.PLAINTEXT)
        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_IV)

        with self.assertRaises(CookieVaultError) as cm:
            self.manager.encrypt(self.iv, "not-bytes")  # type: ignore
        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_TYPE)
        self.assertEqual(cm.exception.field, "plaintext")

    """
        decrypt(): misaligned or empty ciphertext raises DecryptionError.
    """
    def test_decrypt_rejects_misaligned_ciphertext(self):

        for bad in (b"", b"\x00" * 15, b"\x00" * 17):
            with self.subTest(length=len(bad)):
                with self.assertRaises(DecryptionError):
                    self.manager.decrypt(self.iv, bad)

    """
        decrypt(): wrong key yields a padding failure (or garbage), never the plaintext.
    """
    def test_decrypt_with_wrong_key_does_not_recover_plaintext(self):

        ciphertext = self.manager.encrypt(self.iv, self.PLAINTEXT)

        other = AESManager()
        other.set_key(AESManager.generate_key())

        try:
            recovered = other.decrypt(self.iv, ciphertext)
        except DecryptionError:
            return

        self.assertNotEqual(self.PLAINTEXT, recovered)


if __name__ == "__main__":
    unittest.main()
