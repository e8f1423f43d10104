#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testEnvelopeCodec.py

    Description:

        Test suite for EnvelopeCodec. Verifies the signature|iv|timestamp|ciphertext
        wire format, round trips, single-bit tamper detection in every field,
        wrong-key rejection, token format errors, and that decryption is never
        attempted before the signature verifies.
"""

import unittest
from unittest import mock

from cookievault.encryption.AES_manager import AESManager
from cookievault.encryption.checksum_manager import ChecksumManager
from cookievault.encryption.envelope_codec import EnvelopeCodec
from cookievault.handlers.error_handler import SessionDecodeError, TokenFormatError, AuthenticationError, DecryptionError


class TestEnvelopeCodec(unittest.TestCase):

    PLAINTEXT = b'{"id":"abc","attributes":{"role":"admin"}}'
    NOW_MS = 1_700_000_000_123

    """
        Fixed clock and a fresh key for each test.
    """
    def setUp(self) -> None:

        self.key = AESManager.generate_key()
        self.codec = EnvelopeCodec(clock=lambda: self.NOW_MS)

    """
        decrypt(encrypt(p)) == p byte for byte.
    """
    def test_round_trip(self):

        token = self.codec.encrypt(self.key, self.PLAINTEXT)

        self.assertEqual(self.PLAINTEXT, self.codec.decrypt(self.key, token))

    """
        Four lowercase hex fields with fixed widths for signature, IV and timestamp.
    """
    def test_wire_format(self):

        token = self.codec.encrypt(self.key, self.PLAINTEXT)
        signature, iv, timestamp, ciphertext = token.split("|")

        self.assertEqual(64, len(signature))
        self.assertEqual(32, len(iv))
        self.assertEqual(16, len(timestamp))
        self.assertEqual(0, len(ciphertext) % 32)
        self.assertEqual(token, token.lower())
        self.assertEqual(self.NOW_MS.to_bytes(8, "big").hex(), timestamp)

        expected = ChecksumManager().compute_signature(self.key, bytes.fromhex(iv), bytes.fromhex(timestamp), bytes.fromhex(ciphertext))
        self.assertEqual(expected.hex(), signature)

    """
        read_timestamp() returns the issue time carried in the envelope.
    """
    def test_read_timestamp(self):

        token = self.codec.encrypt(self.key, self.PLAINTEXT)

        self.assertEqual(self.NOW_MS, self.codec.read_timestamp(token))

    """
        Every call draws a fresh IV, so equal inputs give different tokens.
    """
    def test_fresh_iv_per_call(self):

        first = self.codec.encrypt(self.key, self.PLAINTEXT)
        second = self.codec.encrypt(self.key, self.PLAINTEXT)

        self.assertNotEqual(first.split("|")[1], second.split("|")[1])
        self.assertNotEqual(first, second)

    """
        A token sealed with one key fails authentication under another.
    """
    def test_wrong_key_fails_authentication(self):

        token = self.codec.encrypt(self.key, self.PLAINTEXT)

        with self.assertRaises(AuthenticationError):
            self.codec.decrypt(AESManager.generate_key(), token)

    """
        Flipping any single bit of any field character never decodes silently.
    """
    def test_single_bit_flips_are_detected(self):

        token = self.codec.encrypt(self.key, self.PLAINTEXT)
        fields = token.split("|")

        for field_index, field_text in enumerate(fields):
            for position, char in enumerate(field_text):
                for bit in range(8):
                    flipped = chr(ord(char) ^ (1 << bit))
                    tampered_fields = list(fields)
                    tampered_fields[field_index] = field_text[:position] + flipped + field_text[position + 1:]
                    tampered = "|".join(tampered_fields)

                    with self.subTest(field=field_index, position=position, bit=bit):
                        with self.assertRaises((TokenFormatError, AuthenticationError)):
                            self.codec.decrypt(self.key, tampered)

    """
        Wrong field counts, empty tokens and non-strings are format errors.
    """
    def test_malformed_tokens(self):

        token = self.codec.encrypt(self.key, self.PLAINTEXT)
        signature, iv, timestamp, ciphertext = token.split("|")

        bad_tokens = [
            "",
            "garbage",
            "|".join([signature, iv, timestamp]),
            token + "|00",
            "|".join([signature, iv, timestamp, ""]),
            "|".join([signature, iv, timestamp, ciphertext + "0"]),
            "|".join([signature, iv[:-2], timestamp, ciphertext]),
            "|".join([signature, iv, timestamp + "00", ciphertext]),
            "|".join([signature[:-2], iv, timestamp, ciphertext]),
            token.upper(),
            None,
        ]

        for bad in bad_tokens:
            with self.subTest(bad=bad):
                with self.assertRaises(TokenFormatError) as cm:
                    self.codec.decrypt(self.key, bad)  # type: ignore[arg-type]

                self.assertIsInstance(cm.exception, SessionDecodeError)

    """
        The cipher is never invoked when the signature does not verify.
    """
    def test_verify_before_decrypt(self):

        token = self.codec.encrypt(self.key, self.PLAINTEXT)
        signature, iv, timestamp, ciphertext = token.split("|")
        tampered = "|".join([signature, iv, timestamp, ("1" if ciphertext[0] == "0" else "0") + ciphertext[1:]])

        with mock.patch.object(AESManager, "decrypt") as aes_decrypt:
            with self.assertRaises(AuthenticationError):
                self.codec.decrypt(self.key, tampered)

        aes_decrypt.assert_not_called()

    """
        A correctly signed envelope over bad ciphertext still fails, as DecryptionError.
    """
    def test_authenticated_garbage_raises_decryption_error(self):

        checksum_manager = ChecksumManager()
        iv = AESManager.generate_iv()
        timestamp = self.NOW_MS.to_bytes(8, "big")

        # First block alone decrypts to a block ending in 0x11, not valid PKCS#7 padding
        aes = AESManager()
        aes.set_key(self.key)
        garbage = aes.encrypt(iv, b"\x00" * 15 + b"\x11")[:16]

        signature = checksum_manager.compute_signature(self.key, iv, timestamp, garbage)
        token = "|".join(part.hex() for part in (signature, iv, timestamp, garbage))

        with self.assertRaises(DecryptionError):
            self.codec.decrypt(self.key, token)


if __name__ == "__main__":
    unittest.main()
