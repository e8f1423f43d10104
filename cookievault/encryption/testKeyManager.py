#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testKeyManager.py

    Description:

        Test suite for KeyManager. Covers lazy generation, loading of operator
        supplied hex keys, KeyFormatError cases, audit events that carry only
        the key fingerprint, and convergence of concurrent first use on one key.
"""

import json
import os
import tempfile
import threading
import time
import unittest

from cookievault.encryption.AES_manager import AESManager
from cookievault.encryption.key_manager import KeyManager
from cookievault.handlers.error_handler import KeyFormatError, ApplicationCodes
from cookievault.utilities.audit_log import AuditLog


class TestKeyManager(unittest.TestCase):

    HEX_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"

    """
        Point the audit log at a temporary file.
    """
    def setUp(self) -> None:

        self._tmp = tempfile.TemporaryDirectory()
        self.audit_path = os.path.join(self._tmp.name, "audit.log")
        self.audit_log = AuditLog(self.audit_path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _audit_events(self):
        if not os.path.exists(self.audit_path):
            return []
        with open(self.audit_path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    """
        A cold manager has no key until current_key() is called.
    """
    def test_cold_manager_has_no_key(self):

        manager = KeyManager(audit_log=self.audit_log)

        self.assertFalse(manager.has_key())
        self.assertIsNone(manager.peek_key())
        self.assertIsNone(manager.export_key_hex())

    """
        current_key() generates once and then returns the same key.
    """
    def test_current_key_generates_lazily_and_is_stable(self):

        manager = KeyManager(audit_log=self.audit_log)

        key = manager.current_key()

        self.assertEqual(32, len(key))
        self.assertIs(key, manager.current_key())
        self.assertEqual(key, manager.peek_key())
        self.assertEqual(key.hex(), manager.export_key_hex())

    """
        Generation is audited with the fingerprint only, never the key.
    """
    def test_generation_audits_fingerprint_not_key(self):

        manager = KeyManager(audit_log=self.audit_log)
        key = manager.current_key()

        events = self._audit_events()
        self.assertEqual(["secret_key_generated"], [e["event"] for e in events])
        self.assertEqual(64, len(events[0]["fingerprint"]))

        with open(self.audit_path, encoding="utf-8") as f:
            self.assertNotIn(key.hex(), f.read())

    """
        load_key() decodes 64 hex characters, in either case.
    """
    def test_load_key(self):

        manager = KeyManager(audit_log=self.audit_log)

        key = manager.load_key(self.HEX_KEY.upper())

        self.assertEqual(bytes.fromhex(self.HEX_KEY), key)
        self.assertEqual(key, manager.current_key())
        self.assertEqual(self.HEX_KEY, manager.export_key_hex())
        self.assertEqual("secret_key_loaded", self._audit_events()[-1]["event"])

    """
        The constructor accepts a hex key so startup configuration fails fast.
    """
    def test_constructor_loads_hex_key(self):

        manager = KeyManager(hex_key=self.HEX_KEY, audit_log=self.audit_log)
        self.assertEqual(bytes.fromhex(self.HEX_KEY), manager.peek_key())

        with self.assertRaises(KeyFormatError):
            KeyManager(hex_key="abc", audit_log=self.audit_log)

    """
        load_key() rejects wrong lengths, non-hex text and non-strings.
    """
    def test_load_key_rejects_malformed_keys(self):

        manager = KeyManager(audit_log=self.audit_log)

        for bad in ("", self.HEX_KEY[:-1], self.HEX_KEY + "0", "zz" * 32, None, 42):
            with self.subTest(bad=bad):
                with self.assertRaises(KeyFormatError) as cm:
                    manager.load_key(bad)  # type: ignore[arg-type]

                self.assertEqual(ApplicationCodes.INVALID_KEY_FORMAT, cm.exception.application_code)

        self.assertFalse(manager.has_key())

    """
        Concurrent first calls all observe one key, generated exactly once.
    """
    def test_concurrent_first_use_converges_on_one_key(self):

        calls = []
        calls_lock = threading.Lock()

        def slow_generator() -> bytes:
            with calls_lock:
                calls.append(1)
            time.sleep(0.05)
            return AESManager.generate_key()

        manager = KeyManager(audit_log=self.audit_log, key_generator=slow_generator)

        thread_count = 16
        barrier = threading.Barrier(thread_count)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            key = manager.current_key()
            with results_lock:
                results.append(key)

        threads = [threading.Thread(target=worker) for _ in range(thread_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(thread_count, len(results))
        self.assertEqual(1, len(set(results)))
        self.assertEqual(1, len(calls))
        self.assertEqual(results[0], manager.current_key())


if __name__ == "__main__":
    unittest.main()
