#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testChecksumManager.py

    Description:

        Test suite for ChecksumManager. Covers SHA-256 checksums and key
        fingerprints, HMAC-SHA256 signing over multiple parts, constant-time
        verification, and the CookieVaultError codes raised on misuse.
"""

import hashlib
import hmac
import unittest

from cookievault.encryption.checksum_manager import ChecksumManager
from cookievault.handlers.error_handler import CookieVaultError, ApplicationCodes



class TestChecksumManager(unittest.TestCase):

    DATA = b"cookie-vault-test-payload"
    DATA_MODIFIED = b"cookie-vault-test-payload-modified"
    KEY = bytes(range(32))


    """
        Create fresh ChecksumManager for each test.
    """
    def setUp(self):
        self.manager = ChecksumManager()



    """
        compute_checksum returns deterministic 32-byte SHA-256 digest.
    """
    def test_compute_checksum_properties(self):

        digest1 = self.manager.compute_checksum(self.DATA)
        digest2 = self.manager.compute_checksum(self.DATA)

        self.assertIsInstance(digest1, bytes)
        self.assertEqual(32, len(digest1))
        self.assertEqual(digest1, digest2)
        self.assertEqual(hashlib.sha256(self.DATA).digest(), digest1)



    """
        compute_checksum rejects non-bytes data with INVALID_CHECKSUM_DATA.
    """
    def test_compute_checksum_rejects_invalid_type(self):

        with self.assertRaises(CookieVaultError) as cm:
            self.manager.compute_checksum("not-bytes")  # type: ignore[arg-type]

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_CHECKSUM_DATA)
        self.assertEqual(cm.exception.field, "data")



    """
        fingerprint is the hex SHA-256 of the key and never contains the key itself.
    """
    def test_fingerprint_hides_key(self):

        fingerprint = self.manager.fingerprint(self.KEY)

        self.assertEqual(64, len(fingerprint))
        self.assertEqual(hashlib.sha256(self.KEY).hexdigest(), fingerprint)
        self.assertNotIn(self.KEY.hex(), fingerprint)



    """
        Signing several parts equals signing their concatenation.
    """
    def test_compute_signature_over_parts(self):

        signature = self.manager.compute_signature(self.KEY, b"iv", b"ts", b"data")
        expected = hmac.new(self.KEY, b"ivtsdata", hashlib.sha256).digest()

        self.assertEqual(expected, signature)
        self.assertEqual(32, len(signature))



    """
        verify_signature returns True for correct data and False for modified data.
    """
    def test_verify_signature(self):

        signature = self.manager.compute_signature(self.KEY, self.DATA)

        self.assertTrue(self.manager.verify_signature(self.KEY, signature, self.DATA))
        self.assertFalse(self.manager.verify_signature(self.KEY, signature, self.DATA_MODIFIED))
        self.assertFalse(self.manager.verify_signature(bytes(32), signature, self.DATA))
        self.assertFalse(self.manager.verify_signature(self.KEY, signature[:-1], self.DATA))



    """
        compute_signature rejects short keys and non-bytes parts.
    """
    def test_compute_signature_rejects_invalid_inputs(self):

        with self.assertRaises(CookieVaultError) as cm:
            self.manager.compute_signature(b"short", self.DATA)
        self.assertEqual(cm.exception.field, "hmac_key")

        with self.assertRaises(CookieVaultError) as cm:
            self.manager.compute_signature(self.KEY, "not-bytes")  # type: ignore[arg-type]
        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_CHECKSUM_DATA)



    """
        verify_signature rejects a non-bytes expected signature.
    """
    def test_verify_signature_rejects_invalid_signature_type(self):

        with self.assertRaises(CookieVaultError) as cm:
            self.manager.verify_signature(self.KEY, "not-bytes", self.DATA)  # type: ignore[arg-type]

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_CHECKSUM)
        self.assertEqual(cm.exception.field, "expected_signature")


if __name__ == "__main__":
    unittest.main()
