#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testAttributeStore.py

    Description:

        Test suite for AttributeStore. Covers explicit null versus absent keys,
        typed accessors and their coercions, AttributeTypeError cases, and
        isolation of stored values from caller mutation.
"""

import unittest

from cookievault.handlers.attribute_store import AttributeStore
from cookievault.handlers.error_handler import AttributeTypeError, CookieVaultError, ApplicationCodes


class TestAttributeStore(unittest.TestCase):

    def setUp(self) -> None:
        self.store = AttributeStore()

    """
        Explicit null and absence both read as None, but only null is contained.
    """
    def test_null_versus_absent(self):

        self.store.set("nothing", None)

        self.assertIsNone(self.store.get("nothing"))
        self.assertTrue(self.store.contains("nothing"))
        self.assertIn("nothing", self.store.to_dict())

        self.store.remove("nothing")

        self.assertIsNone(self.store.get("nothing"))
        self.assertFalse(self.store.contains("nothing"))
        self.assertNotIn("nothing", self.store.to_dict())

    """
        get() with a default tells an explicit null from an absent key.
    """
    def test_get_default_marks_absence(self):

        absent = object()
        self.store.set("nothing", None)

        self.assertIsNone(self.store.get("nothing", absent))
        self.assertIs(absent, self.store.get("missing", absent))

    """
        update() stores every value or, when one is invalid, none of them.
    """
    def test_update_is_all_or_nothing(self):

        self.store.set("kept", "old")

        with self.assertRaises(AttributeTypeError):
            self.store.update({"kept": "new", "a": 1, "b": float("nan")})

        self.assertEqual({"kept": "old"}, self.store.to_dict())

        self.store.update({"kept": "new", "cleared": None})
        self.assertEqual({"kept": "new", "cleared": None}, self.store.to_dict())

    """
        Removing a missing key is a no-op.
    """
    def test_remove_missing_key(self):

        self.store.remove("missing")
        self.assertEqual(0, len(self.store))

    """
        Typed accessors return None for absent and null values.
    """
    def test_typed_accessors_absent_and_null(self):

        self.store.set("null", None)

        for name in ("null", "absent"):
            with self.subTest(name=name):
                self.assertIsNone(self.store.string(name))
                self.assertIsNone(self.store.boolean(name))
                self.assertIsNone(self.store.number(name))

    """
        string() reads strings, booleans and numbers.
    """
    def test_string_accessor(self):

        self.store.set("role", "admin")
        self.store.set("flag", True)
        self.store.set("count", 3)
        self.store.set("ratio", 0.5)

        self.assertEqual("admin", self.store.string("role"))
        self.assertEqual("true", self.store.string("flag"))
        self.assertEqual("3", self.store.string("count"))
        self.assertEqual("0.5", self.store.string("ratio"))

        self.store.set("list", [1, 2])
        with self.assertRaises(AttributeTypeError):
            self.store.string("list")

    """
        boolean() accepts only booleans.
    """
    def test_boolean_accessor(self):

        self.store.set("flag", False)
        self.assertIs(False, self.store.boolean("flag"))

        for value in ("true", 1, [True], {"a": True}):
            with self.subTest(value=value):
                self.store.set("other", value)
                with self.assertRaises(AttributeTypeError) as cm:
                    self.store.boolean("other")

                self.assertEqual(ApplicationCodes.INVALID_ATTRIBUTE_TYPE, cm.exception.application_code)
                self.assertIsInstance(cm.exception, TypeError)
                self.assertIsInstance(cm.exception, CookieVaultError)

    """
        number() returns numbers, parses numeric strings and rejects the rest.
    """
    def test_number_accessor(self):

        self.store.set("count", 42)
        self.store.set("ratio", 1.25)
        self.store.set("text_int", "17")
        self.store.set("text_float", " 2.5 ")

        self.assertEqual(42, self.store.number("count"))
        self.assertEqual(1.25, self.store.number("ratio"))
        self.assertEqual(17, self.store.number("text_int"))
        self.assertEqual(2.5, self.store.number("text_float"))

        for value in (True, "abc", "nan", [1], {"n": 1}):
            with self.subTest(value=value):
                self.store.set("bad", value)
                with self.assertRaises(AttributeTypeError):
                    self.store.number("bad")

    """
        Typed setters validate the Python type before storing.
    """
    def test_typed_setters(self):

        self.store.set_string("s", "x")
        self.store.set_boolean("b", True)
        self.store.set_number("n", 7)
        self.store.set_string("cleared", None)

        self.assertEqual({"s": "x", "b": True, "n": 7, "cleared": None}, self.store.to_dict())

        with self.assertRaises(AttributeTypeError):
            self.store.set_string("s", 1)  # type: ignore[arg-type]
        with self.assertRaises(AttributeTypeError):
            self.store.set_boolean("b", "yes")  # type: ignore[arg-type]
        with self.assertRaises(AttributeTypeError):
            self.store.set_number("n", True)
        with self.assertRaises(AttributeTypeError):
            self.store.set_number("n", float("inf"))

    """
        Only JSON-like values with string keys can be stored.
    """
    def test_set_rejects_non_json_values(self):

        for value in (object(), {1: "a"}, {"nested": {2: "b"}}, b"bytes", float("nan"), {1, 2}):
            with self.subTest(value=repr(value)):
                with self.assertRaises(AttributeTypeError):
                    self.store.set("bad", value)

        with self.assertRaises(AttributeTypeError):
            self.store.set(1, "value")  # type: ignore[arg-type]

        self.assertFalse(self.store.contains("bad"))

    """
        Stored containers are copies; tuples become lists.
    """
    def test_values_are_copied(self):

        profile = {"tags": ["a"], "pair": (1, 2)}
        self.store.set("profile", profile)
        profile["tags"].append("b")

        self.assertEqual({"tags": ["a"], "pair": [1, 2]}, self.store.get("profile"))

        exported = self.store.to_dict()
        exported["profile"]["tags"].append("c")
        self.assertEqual(["a"], self.store.get("profile")["tags"])

    """
        Seeding from a dict validates and preserves insertion order.
    """
    def test_from_dict(self):

        store = AttributeStore.from_dict({"b": 1, "a": None, "c": {"x": [True]}})

        self.assertEqual(["b", "a", "c"], store.names())
        self.assertTrue(store.contains("a"))

        with self.assertRaises(AttributeTypeError):
            AttributeStore.from_dict(["not", "a", "dict"])  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
