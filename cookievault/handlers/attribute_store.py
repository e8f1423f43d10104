#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: attribute_store.py

    Description:
        JSON-like attribute bag carried inside a client session. Distinguishes
        an explicit null (key present, value None) from an absent key: both
        read back as None through get() and the typed accessors, but only the
        explicit null survives serialization. Typed accessors raise
        AttributeTypeError only when a present, non-null value cannot be
        coerced to the requested type.
"""


import typing
from cookievault.handlers.error_handler import AttributeTypeError
import cookievault.handlers.sanitization_validation as VALIDATION



class AttributeStore:

    """
        Create a store, optionally seeded from an existing mapping.

        @param initial (dict | None): Mapping of attribute names to JSON-like values.
        @ensures Seed values are validated and deep-copied.
    """
    def __init__(self, initial: typing.Optional[typing.Dict[str, typing.Any]] = None) -> None:

        self._values: typing.Dict[str, VALIDATION.JSONValue] = {}

        if initial is not None:
            if not isinstance(initial, dict):
                raise AttributeTypeError("Attributes must be a JSON object", "attributes")
            for name, value in initial.items():
                self.set(name, value)


    @classmethod
    def from_dict(cls, data: typing.Dict[str, typing.Any]) -> "AttributeStore":
        return cls(data)


    def to_dict(self) -> typing.Dict[str, VALIDATION.JSONValue]:
        return VALIDATION.validate_json_value(self._values, "attributes")


    ################################################################################################
    # Raw access
    ################################################################################################

    """
        Read a raw attribute value.

        @param name (str): Attribute name.
        @param default (Any): Returned when the name is absent; an explicit null still reads as None.
        @return JSONValue: The stored value, None for an explicit null, default when absent.
    """
    def get(self, name: str, default: typing.Any = None) -> VALIDATION.JSONValue:
        return self._values.get(name, default)


    def contains(self, name: str) -> bool:
        return name in self._values


    """
        Store a JSON-like value; None is kept as an explicit null.

        @param name (str): Attribute name.
        @param value (JSONValue): Value to store, deep-copied.
    """
    def set(self, name: str, value: typing.Any) -> None:
        self._validate_name(name)
        self._values[name] = VALIDATION.validate_json_value(value, name)


    """
        Merge several attributes at once.

        @param values (dict): Mapping of attribute names to JSON-like values.
        @ensures Either every value is stored or, on AttributeTypeError, none is.
    """
    def update(self, values: typing.Dict[str, typing.Any]) -> None:
        staged = AttributeStore(values)
        self._values.update(staged._values)


    def remove(self, name: str) -> None:
        self._values.pop(name, None)


    def names(self) -> typing.List[str]:
        return list(self._values.keys())


    def __contains__(self, name: object) -> bool:
        return name in self._values


    def __len__(self) -> int:
        return len(self._values)


    def __repr__(self) -> str:
        return f"AttributeStore({self._values!r})"


    ################################################################################################
    # Typed accessors
    ################################################################################################

    """
        Read an attribute as a string.

        @return str | None: None when absent or null; booleans read as "true"/"false",
                numbers as their decimal text.
        @ensures Raises AttributeTypeError for objects and arrays.
    """
    def string(self, name: str) -> typing.Optional[str]:
        value = self._values.get(name)

        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if VALIDATION.is_number(value):
            return str(value)

        raise AttributeTypeError(f"Attribute {name} is not a string", name)


    """
        Read an attribute as a boolean.

        @return bool | None: None when absent or null.
        @ensures Raises AttributeTypeError for any non-boolean value.
    """
    def boolean(self, name: str) -> typing.Optional[bool]:
        value = self._values.get(name)

        if value is None or isinstance(value, bool):
            return value

        raise AttributeTypeError(f"Attribute {name} is not a boolean", name)


    """
        Read an attribute as a number.

        @return int | float | None: None when absent or null; numeric strings are parsed.
        @ensures Raises AttributeTypeError for booleans, containers and non-numeric strings.
    """
    def number(self, name: str) -> typing.Optional[typing.Union[int, float]]:
        value = self._values.get(name)

        if value is None:
            return None
        if VALIDATION.is_number(value):
            return value

        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text)
            except ValueError:
                pass
            try:
                parsed = float(text)
            except ValueError:
                raise AttributeTypeError(f"Attribute {name} is not a number", name)
            if VALIDATION.is_number(parsed):
                return parsed

        raise AttributeTypeError(f"Attribute {name} is not a number", name)


    def set_string(self, name: str, value: typing.Optional[str]) -> None:
        if value is not None and not isinstance(value, str):
            raise AttributeTypeError(f"Attribute {name} must be set to a string", name)
        self.set(name, value)


    def set_boolean(self, name: str, value: typing.Optional[bool]) -> None:
        if value is not None and not isinstance(value, bool):
            raise AttributeTypeError(f"Attribute {name} must be set to a boolean", name)
        self.set(name, value)


    def set_number(self, name: str, value: typing.Optional[typing.Union[int, float]]) -> None:
        if value is not None and not VALIDATION.is_number(value):
            raise AttributeTypeError(f"Attribute {name} must be set to a finite number", name)
        self.set(name, value)


    def _validate_name(self, name: typing.Any) -> None:
        if not isinstance(name, str):
            raise AttributeTypeError("Attribute names must be strings", "name")
