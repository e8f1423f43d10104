#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testSessionHandler.py

    Description:

        Test suite for ClientSession and ClientSessionHandler. Covers fresh
        sessions, save/load round trips, inactivity expiry, never-expiring
        sessions, null versus absent attributes across a round trip, the
        no-key branch, hard decode failures from load() versus the degrading
        load_or_create(), payload schema checks, invalidation, cookie
        attributes, and concurrent first saves on a cold key manager.
"""

import json
import os
import tempfile
import threading
import unittest

from cookievault.encryption.envelope_codec import EnvelopeCodec
from cookievault.encryption.key_manager import KeyManager
from cookievault.handlers.error_handler import CookieVaultError, SessionDecodeError, AuthenticationError, TokenFormatError, SchemaError, ApplicationCodes
from cookievault.handlers.session_handler import ClientSession, ClientSessionHandler, CookieAttributes
from cookievault.utilities.audit_log import AuditLog
import cookievault.constants as CONSTANTS


class FakeClock:

    def __init__(self, now_ms: int) -> None:
        self.now = now_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class TestClientSessionHandler(unittest.TestCase):

    START_MS = 1_700_000_000_000

    """
        Build a handler over a cold key manager, a fake clock and a temporary audit log.
    """
    def setUp(self) -> None:

        self._tmp = tempfile.TemporaryDirectory()
        self.audit_path = os.path.join(self._tmp.name, "audit.log")
        self.audit_log = AuditLog(self.audit_path)

        self.clock = FakeClock(self.START_MS)
        self.key_manager = KeyManager(audit_log=self.audit_log)
        self.handler = ClientSessionHandler(self.key_manager, audit_log=self.audit_log, clock=self.clock)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _audit_events(self):
        if not os.path.exists(self.audit_path):
            return []
        with open(self.audit_path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    def _seal_payload(self, payload: dict) -> str:
        key = self.key_manager.current_key()
        return EnvelopeCodec(clock=self.clock).encrypt(key, json.dumps(payload).encode("utf-8"))

    def _valid_payload(self, **overrides) -> dict:
        payload = {
            "id": "A" * 32,
            "creationTime": self.START_MS,
            "lastAccessedTime": self.START_MS,
            "maxInactiveInterval": 3600,
            "attributes": {},
        }
        payload.update(overrides)
        return payload


    """
        A fresh session has a 32-character id, equal timestamps, the default interval and no attributes.
    """
    def test_new_session_defaults(self):

        session = self.handler.load(None)

        self.assertTrue(session.is_new)
        self.assertEqual(32, len(session.id))
        self.assertTrue(session.id.isalnum())
        self.assertEqual(self.START_MS, session.creation_time)
        self.assertEqual(self.START_MS, session.last_accessed_time)
        self.assertEqual(CONSTANTS.CLIENT_SESSION_DEFAULT_MAX_INACTIVE_INTERVAL, session.max_inactive_interval)
        self.assertEqual(0, len(session.attributes))

        self.assertNotEqual(session.id, self.handler.load("").id)

    """
        Scenario: role=admin survives a save/load round trip with the id unchanged.
    """
    def test_round_trip_restores_session(self):

        session = self.handler.load(None)
        session.set_attribute("role", "admin")

        token, cookie = self.handler.save(session)

        self.clock.advance(1_000)
        restored = self.handler.load(token)

        self.assertFalse(restored.is_new)
        self.assertEqual(session.id, restored.id)
        self.assertEqual(session.creation_time, restored.creation_time)
        self.assertEqual(self.START_MS + 1_000, restored.last_accessed_time)
        self.assertEqual("admin", restored.attributes.string("role"))
        self.assertEqual(token, cookie.value)

    """
        save() refreshes last_accessed_time.
    """
    def test_save_refreshes_last_access(self):

        session = self.handler.load(None)
        self.clock.advance(5_000)

        self.handler.save(session)

        self.assertEqual(self.START_MS + 5_000, session.last_accessed_time)
        self.assertEqual(self.START_MS, session.creation_time)

    """
        Interval of 1 second: 2 seconds idle expires, 0.5 seconds idle restores.
    """
    def test_expiry(self):

        session = self.handler.load(None)
        session.max_inactive_interval = 1
        token, _ = self.handler.save(session)

        self.clock.advance(500)
        restored = self.handler.load(token)
        self.assertFalse(restored.is_new)
        self.assertEqual(session.id, restored.id)

        self.clock.advance(1_500)
        expired = self.handler.load(token)
        self.assertTrue(expired.is_new)
        self.assertNotEqual(session.id, expired.id)
        self.assertEqual(self.clock.now, expired.creation_time)
        self.assertEqual(0, len(expired.attributes))

    """
        Exactly the interval elapsed is not yet expired.
    """
    def test_expiry_boundary(self):

        self.assertFalse(ClientSessionHandler.is_expired(0, 1, 1_000))
        self.assertTrue(ClientSessionHandler.is_expired(0, 1, 1_001))

    """
        Intervals <= 0 never expire regardless of elapsed time.
    """
    def test_never_expiring(self):

        for interval in (0, -1):
            with self.subTest(interval=interval):
                session = self.handler.load(None)
                session.max_inactive_interval = interval
                token, cookie = self.handler.save(session)

                self.assertIsNone(cookie.max_age)

                self.clock.advance(10 * 365 * 24 * 3600 * 1000)
                restored = self.handler.load(token)

                self.assertFalse(restored.is_new)
                self.assertEqual(session.id, restored.id)
                self.assertEqual(interval, restored.max_inactive_interval)

    """
        Explicit null and removed attributes stay distinguishable after a round trip.
    """
    def test_null_versus_absent_round_trip(self):

        session = self.handler.load(None)
        session.set_attribute("cleared", "value")
        session.set_attribute("removed", "value")
        session.set_attribute("cleared", None)
        session.remove_attribute("removed")

        token, _ = self.handler.save(session)
        restored = self.handler.load(token)

        self.assertTrue(restored.attributes.contains("cleared"))
        self.assertIsNone(restored.attribute("cleared"))
        self.assertFalse(restored.attributes.contains("removed"))
        self.assertIsNone(restored.attribute("removed"))

    """
        Nested JSON values survive a round trip.
    """
    def test_nested_attributes_round_trip(self):

        session = self.handler.load(None)
        session.set_attribute("profile", {"name": "Zoë", "tags": ["a", "b"], "age": 30, "score": 1.5, "ok": True})

        token, _ = self.handler.save(session)

        self.assertEqual(session.attributes.to_dict(), self.handler.load(token).attributes.to_dict())

    """
        Scenario: a cookie is present but no key was ever generated or loaded.
    """
    def test_cookie_without_key_gives_new_session(self):

        donor = KeyManager(audit_log=self.audit_log)
        donor_handler = ClientSessionHandler(donor, audit_log=self.audit_log, clock=self.clock)
        token, _ = donor_handler.save(donor_handler.load(None))

        session = self.handler.load(token)

        self.assertTrue(session.is_new)
        self.assertFalse(self.key_manager.has_key())
        self.assertIn("client_session_without_key", [e["event"] for e in self._audit_events()])

    """
        load() raises on a tampered cookie; load_or_create() degrades and audits.
    """
    def test_tampered_cookie_policy(self):

        session = self.handler.load(None)
        token, _ = self.handler.save(session)
        signature, rest = token.split("|", 1)
        tampered = ("0" if signature[0] != "0" else "1") + signature[1:] + "|" + rest

        with self.assertRaises(AuthenticationError):
            self.handler.load(tampered)

        with self.assertRaises(TokenFormatError):
            self.handler.load("not-a-token")

        degraded = self.handler.load_or_create(tampered)
        self.assertTrue(degraded.is_new)
        self.assertNotEqual(session.id, degraded.id)

        failures = [e for e in self._audit_events() if e["event"] == "client_session_decode_failure"]
        self.assertEqual(1, len(failures))
        self.assertEqual("ciphertext_auth_error", failures[0]["error_code"])

    """
        A token sealed under another key is an authentication failure.
    """
    def test_token_from_other_key(self):

        self.key_manager.current_key()
        other = KeyManager(audit_log=self.audit_log)
        other_handler = ClientSessionHandler(other, audit_log=self.audit_log, clock=self.clock)
        token, _ = other_handler.save(other_handler.load(None))

        with self.assertRaises(AuthenticationError):
            self.handler.load(token)

    """
        Authentic envelopes whose payload violates the schema raise SchemaError.
    """
    def test_schema_errors(self):

        bad_payloads = [
            [1, 2, 3],
            self._valid_payload(id=""),
            self._valid_payload(id=5),
            self._valid_payload(creationTime="now"),
            self._valid_payload(lastAccessedTime=True),
            self._valid_payload(maxInactiveInterval=1.5),
            self._valid_payload(attributes=[]),
            self._valid_payload(extra=1),
            self._valid_payload(lastAccessedTime=self.START_MS - 1),
        ]

        missing = self._valid_payload()
        del missing["attributes"]
        bad_payloads.append(missing)

        for payload in bad_payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(SchemaError) as cm:
                    self.handler.load(self._seal_payload(payload))

                self.assertIsInstance(cm.exception, SessionDecodeError)

        key = self.key_manager.current_key()
        not_json = EnvelopeCodec(clock=self.clock).encrypt(key, b"\xff\xfe not json")
        with self.assertRaises(SchemaError):
            self.handler.load(not_json)

    """
        A valid hand-built payload restores as written.
    """
    def test_valid_payload_restores(self):

        token = self._seal_payload(self._valid_payload(attributes={"n": None, "count": 2}))

        restored = self.handler.load(token)

        self.assertEqual("A" * 32, restored.id)
        self.assertEqual(2, restored.attributes.number("count"))
        self.assertTrue(restored.attributes.contains("n"))

    """
        invalidate() recreates the session; it is new again until the next save.
    """
    def test_invalidate(self):

        session = self.handler.load(None)
        session.set_attribute("role", "admin")
        session.max_inactive_interval = 60
        token, _ = self.handler.save(session)

        restored = self.handler.load(token)
        old_id = restored.id
        self.clock.advance(1_000)
        restored.invalidate(self.clock())

        self.assertTrue(restored.is_new)
        self.assertNotEqual(old_id, restored.id)
        self.assertEqual(self.clock.now, restored.creation_time)
        self.assertEqual(CONSTANTS.CLIENT_SESSION_DEFAULT_MAX_INACTIVE_INTERVAL, restored.max_inactive_interval)
        self.assertEqual(0, len(restored.attributes))

        new_token, _ = self.handler.save(restored)
        reloaded = self.handler.load(new_token)
        self.assertEqual(restored.id, reloaded.id)
        self.assertIsNone(reloaded.attribute("role"))

    """
        save(None) writes nothing; the recommended cookie is secure, HTTP-only and expires with the session.
    """
    def test_save_outputs(self):

        self.assertIsNone(self.handler.save(None))
        self.assertFalse(self.key_manager.has_key())

        session = self.handler.load(None)
        session.max_inactive_interval = 900
        token, cookie = self.handler.save(session)

        self.assertEqual(CookieAttributes(name=CONSTANTS.CLIENT_SESSION_COOKIE_NAME, value=token, max_age=900), cookie)
        self.assertTrue(cookie.secure)
        self.assertTrue(cookie.http_only)
        self.assertTrue(self.key_manager.has_key())

        with self.assertRaises(CookieVaultError):
            self.handler.save({"id": "not-a-session"})  # type: ignore[arg-type]

    """
        save() refuses session state that load() could not restore, before any key is generated.
    """
    def test_save_rejects_unrestorable_state(self):

        cases = [
            ("max_inactive_interval", 1.5),
            ("max_inactive_interval", True),
            ("max_inactive_interval", "3600"),
            ("creation_time", 1.5),
            ("id", ""),
            ("id", 42),
            ("attributes", {"role": "admin"}),
        ]

        for name, value in cases:
            with self.subTest(name=name, value=value):
                session = self.handler.load(None)
                setattr(session, name, value)

                with self.assertRaises(CookieVaultError) as cm:
                    self.handler.save(session)

                self.assertEqual(ApplicationCodes.INVALID_TYPE, cm.exception.application_code)
                self.assertEqual(name, cm.exception.field)

        self.assertFalse(self.key_manager.has_key())

        session = self.handler.load(None)
        session.max_inactive_interval = 0
        token, cookie = self.handler.save(session)
        self.assertIsNone(cookie.max_age)
        self.assertEqual(0, self.handler.load(token).max_inactive_interval)

    """
        load_or_create(create=False) returns only restored sessions.
    """
    def test_load_without_create(self):

        self.assertIsNone(self.handler.load_or_create(None, create=False))
        self.assertIsNone(self.handler.load_or_create("not-a-token", create=False))
        self.assertFalse(self.key_manager.has_key())

        token, _ = self.handler.save(self.handler.load(None))
        restored = self.handler.load_or_create(token, create=False)
        self.assertFalse(restored.is_new)

        self.clock.advance(3_600_001)
        self.assertIsNone(self.handler.load_or_create(token, create=False))
        self.assertTrue(self.handler.load_or_create(token).is_new)

    """
        The handler only accepts a KeyManager.
    """
    def test_constructor_validation(self):

        with self.assertRaises(CookieVaultError):
            ClientSessionHandler(object())  # type: ignore[arg-type]

        with self.assertRaises(CookieVaultError):
            ClientSessionHandler(self.key_manager, cookie_name="")

    """
        Concurrent first saves on a cold key manager all seal with one key.
    """
    def test_concurrent_first_save_uses_one_key(self):

        thread_count = 12
        barrier = threading.Barrier(thread_count)
        tokens = []
        tokens_lock = threading.Lock()

        def worker():
            session = self.handler.load(None)
            barrier.wait()
            token, _ = self.handler.save(session)
            with tokens_lock:
                tokens.append((session.id, token))

        threads = [threading.Thread(target=worker) for _ in range(thread_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(thread_count, len(tokens))

        key = self.key_manager.peek_key()
        codec = EnvelopeCodec()
        for session_id, token in tokens:
            self.assertEqual(session_id, json.loads(codec.decrypt(key, token))["id"])

        generated = [e for e in self._audit_events() if e["event"] == "secret_key_generated"]
        self.assertEqual(1, len(generated))

    """
        ClientSession.create() and is_expired() on the data object.
    """
    def test_client_session_object(self):

        session = ClientSession.create(1_000)
        session.max_inactive_interval = 2

        self.assertTrue(session.is_new)
        self.assertEqual(1_000, session.last_accessed_time)
        self.assertFalse(session.is_expired(3_000))
        self.assertTrue(session.is_expired(3_001))
        self.assertEqual({"id", "creationTime", "lastAccessedTime", "maxInactiveInterval", "attributes"}, set(session.to_payload()))


if __name__ == "__main__":
    unittest.main()
