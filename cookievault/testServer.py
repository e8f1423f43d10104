#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testServer.py

    Description:

        Test suite for the Flask integration. Drives the app through the
        Flask test client with explicit Cookie headers and checks that the
        session cookie is issued with the recommended attributes, restored on
        the next request, replaced silently when tampered, and that a
        malformed configured key aborts startup.
"""

import json
import os
import tempfile
import unittest

from cookievault.server import create_app
from cookievault.handlers.error_handler import KeyFormatError, ApplicationCodes
import cookievault.constants as CONSTANTS


class TestServer(unittest.TestCase):

    HEX_KEY = "8f" * 32

    """
        Create an app with a fixed key and a temporary audit log.
    """
    def setUp(self) -> None:

        self._tmp = tempfile.TemporaryDirectory()
        self.audit_path = os.path.join(self._tmp.name, "audit.log")

        self.app = create_app({"TESTING": True, "COOKIEVAULT_SECRET_KEY": self.HEX_KEY, "COOKIEVAULT_AUDIT_LOG": self.audit_path})
        self.client = self.app.test_client(use_cookies=False)
        self.cookie_name = CONSTANTS.CLIENT_SESSION_COOKIE_NAME

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _session_cookie(self, response) -> str:
        for header in response.headers.getlist("Set-Cookie"):
            if header.startswith(self.cookie_name + "="):
                return header
        self.fail("session cookie was not set")

    def _cookie_value(self, response) -> str:
        return self._session_cookie(response).split(";", 1)[0].split("=", 1)[1]

    def _with_cookie(self, value: str) -> dict:
        return {"Cookie": f"{self.cookie_name}={value}"}

    def _audit_events(self):
        if not os.path.exists(self.audit_path):
            return []
        with open(self.audit_path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    """
        A first request gets a new session and a secure, HTTP-only cookie expiring with the session.
    """
    def test_first_request_issues_cookie(self):

        response = self.client.get("/api/session")
        body = response.get_json()

        self.assertEqual(200, response.status_code)
        self.assertTrue(body["isNew"])
        self.assertEqual({}, body["attributes"])

        header = self._session_cookie(response)
        self.assertIn("Secure", header)
        self.assertIn("HttpOnly", header)
        self.assertIn("Max-Age=3600", header)
        self.assertEqual(4, len(self._cookie_value(response).split("|")))

    """
        Attributes set on one request are visible on the next, with the same id.
    """
    def test_attributes_persist_across_requests(self):

        first = self.client.post("/api/session/attributes", json={"role": "admin", "cleared": None})
        cookie = self._cookie_value(first)

        second = self.client.get("/api/session", headers=self._with_cookie(cookie))
        body = second.get_json()

        self.assertFalse(body["isNew"])
        self.assertEqual(first.get_json()["id"], body["id"])
        self.assertEqual({"role": "admin", "cleared": None}, body["attributes"])

        third = self.client.delete("/api/session/attributes/role", headers=self._with_cookie(self._cookie_value(second)))
        self.assertEqual({"cleared": None}, third.get_json()["attributes"])

    """
        A tampered cookie never reaches the user as an error: a fresh session is issued and the failure audited.
    """
    def test_tampered_cookie_degrades_to_new_session(self):

        cookie = self._cookie_value(self.client.post("/api/session/attributes", json={"role": "admin"}))
        tampered = ("0" if cookie[0] != "0" else "1") + cookie[1:]

        response = self.client.get("/api/session", headers=self._with_cookie(tampered))
        body = response.get_json()

        self.assertEqual(200, response.status_code)
        self.assertTrue(body["isNew"])
        self.assertEqual({}, body["attributes"])

        failures = [e for e in self._audit_events() if e["event"] == "client_session_decode_failure"]
        self.assertEqual(ApplicationCodes.CIPHERTEXT_AUTH_ERROR, failures[-1]["error_code"])

    """
        Responses that never touch the session carry no cookie and do not generate a key.
    """
    def test_untouched_session_sets_no_cookie(self):

        app = create_app({"TESTING": True, "COOKIEVAULT_SECRET_KEY": None, "COOKIEVAULT_AUDIT_LOG": self.audit_path})
        client = app.test_client(use_cookies=False)

        responses = [
            (404, client.get("/nope")),
            (405, client.put("/api/session")),
            (400, client.post("/api/session/attributes", data="role=admin", content_type="text/plain")),
        ]

        for status, response in responses:
            with self.subTest(status=status):
                self.assertEqual(status, response.status_code)
                self.assertEqual([], response.headers.getlist("Set-Cookie"))

        self.assertFalse(app.key_manager.has_key())

        cookie = self._cookie_value(self.client.get("/api/session"))
        response = self.client.get("/nope", headers=self._with_cookie(cookie))
        self.assertEqual([], response.headers.getlist("Set-Cookie"))

    """
        A rejected attribute merge leaves the session unchanged.
    """
    def test_failed_attribute_merge_is_not_applied(self):

        cookie = self._cookie_value(self.client.post("/api/session/attributes", json={"kept": 0}))

        response = self.client.post("/api/session/attributes", data='{"a": 1, "b": NaN}', content_type="application/json", headers=self._with_cookie(cookie))
        self.assertEqual(400, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_ATTRIBUTE_TYPE, response.get_json()["error_code"])

        body = self.client.get("/api/session", headers=self._with_cookie(self._cookie_value(response))).get_json()
        self.assertEqual({"kept": 0}, body["attributes"])

    """
        Invalidation issues a new id and drops attributes.
    """
    def test_invalidate(self):

        first = self.client.post("/api/session/attributes", json={"role": "admin"})

        response = self.client.post("/api/session/invalidate", headers=self._with_cookie(self._cookie_value(first)))
        body = response.get_json()

        self.assertTrue(body["isNew"])
        self.assertNotEqual(first.get_json()["id"], body["id"])

        reloaded = self.client.get("/api/session", headers=self._with_cookie(self._cookie_value(response))).get_json()
        self.assertEqual(body["id"], reloaded["id"])
        self.assertEqual({}, reloaded["attributes"])

    """
        A cookie from an app with a different key is replaced.
    """
    def test_cookie_from_other_key(self):

        other = create_app({"TESTING": True, "COOKIEVAULT_SECRET_KEY": "17" * 32, "COOKIEVAULT_AUDIT_LOG": self.audit_path})
        foreign = self._cookie_value(other.test_client(use_cookies=False).get("/api/session"))

        body = self.client.get("/api/session", headers=self._with_cookie(foreign)).get_json()

        self.assertTrue(body["isNew"])

    """
        Bad request bodies produce standard error packets.
    """
    def test_bad_attribute_requests(self):

        response = self.client.post("/api/session/attributes", data="[1]", content_type="application/json")
        self.assertEqual(400, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_REQUEST, response.get_json()["error_code"])

        response = self.client.post("/api/session/attributes", data="role=admin", content_type="text/plain")
        self.assertEqual(400, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_CONTENT_TYPE, response.get_json()["error_code"])

        response = self.client.get("/api/missing")
        self.assertEqual(404, response.status_code)
        self.assertEqual("failure", response.get_json()["response_status"])

    """
        A malformed configured key aborts app creation.
    """
    def test_malformed_key_aborts_startup(self):

        with self.assertRaises(KeyFormatError):
            create_app({"COOKIEVAULT_SECRET_KEY": "abc123", "COOKIEVAULT_AUDIT_LOG": self.audit_path})

    """
        Without a configured key the first response generates one.
    """
    def test_generated_key(self):

        app = create_app({"TESTING": True, "COOKIEVAULT_SECRET_KEY": None, "COOKIEVAULT_AUDIT_LOG": self.audit_path})
        self.assertFalse(app.key_manager.has_key())

        app.test_client(use_cookies=False).get("/api/session")

        self.assertTrue(app.key_manager.has_key())
        self.assertIn("secret_key_generated", [e["event"] for e in self._audit_events()])


if __name__ == "__main__":
    unittest.main()
