# ============================================================
# Tests : tests/test_schema_inference.py
# Objet  : Aplatissement des payloads, treillis de types, lecture tolérante.
# ============================================================
"""Tests de l'inférence de schéma des datasets."""

from __future__ import annotations

import random

import pytest

from promptops.domain.schema_inference import (
    MIXED,
    TOP_LEVEL_PATH,
    flatten,
    fold,
    fold_payloads,
    join_types,
    observe_type,
    parse_type_map,
    stored_type_map,
)


def test_observe_type_distinguishes_booleans_from_numbers() -> None:
    assert observe_type(True) == "boolean"
    assert observe_type(0) == "number"
    assert observe_type(1.5) == "number"
    assert observe_type("x") == "string"
    assert observe_type(None) == "null"
    assert observe_type([]) == "array"
    assert observe_type({}) == "object"


def test_observe_type_rejects_non_json_values() -> None:
    with pytest.raises(TypeError):
        observe_type(object())


def test_flatten_nested_payload() -> None:
    """Objets parcourus, tableaux non parcourus, null enregistré au chemin."""
    payload = {
        "user": {"name": "Jane", "age": 31, "address": {"city": "Lyon"}},
        "tags": ["a", {"deep": 1}],
        "active": False,
        "note": None,
    }
    assert flatten(payload) == {
        "user.name": "string",
        "user.age": "number",
        "user.address.city": "string",
        "tags": "array",
        "active": "boolean",
        "note": "null",
    }


def test_flatten_empty_object_only_recorded_under_prefix() -> None:
    assert flatten({}) == {}
    assert flatten({"meta": {}}) == {"meta": "object"}


def test_flatten_scalar_without_prefix_uses_fallback_path() -> None:
    assert flatten(42) == {TOP_LEVEL_PATH: "number"}
    assert flatten(["x"]) == {TOP_LEVEL_PATH: "array"}


def test_join_types_lattice() -> None:
    assert join_types(None, "string") == "string"
    assert join_types("string", "string") == "string"
    assert join_types("string", "number") == MIXED
    assert join_types(MIXED, "string") == MIXED
    assert join_types(MIXED, MIXED) == MIXED


def test_fold_widens_and_never_removes_paths() -> None:
    base = {"a": {"type": "string"}, "b": {"type": "number"}}
    merged = fold(base, {"a": "number", "c": "null"})
    assert merged == {
        "a": {"type": MIXED},
        "b": {"type": "number"},
        "c": {"type": "null"},
    }
    # l'entrée n'est pas modifiée
    assert base["a"] == {"type": "string"}


def test_fold_payloads_scenario_user_name_widens() -> None:
    schema = fold_payloads({}, [{"user": {"name": "Jane"}, "tags": ["a", "b"]}])
    assert schema == {"user.name": {"type": "string"}, "tags": {"type": "array"}}
    schema = fold_payloads(schema, [{"user": {"name": 5}}])
    assert schema["user.name"] == {"type": MIXED}
    assert schema["tags"] == {"type": "array"}


def test_fold_is_monotonic_over_random_sequences() -> None:
    """Une fois typé T, un chemin reste T ou devient "mixed", jamais un troisième type."""
    rng = random.Random(1234)
    values = [None, True, 3, 2.5, "s", [], [1], {"k": "v"}, {}]
    keys = ["fields", "type", "f0", "f1", "f2", "f3"]
    schema: dict = {}
    first_seen: dict[str, str] = {}
    for _ in range(300):
        payload = {rng.choice(keys): rng.choice(values) for _ in range(3)}
        schema = fold_payloads(schema, [payload])
        for path, entry in schema.items():
            first_seen.setdefault(path, entry["type"])
            assert entry["type"] in (first_seen[path], MIXED)
        assert set(first_seen) == set(schema)


@pytest.mark.parametrize(
    "raw",
    [
        {"fields": {"a": {"type": "string"}}},
        {"a": {"type": "string"}},
        {"a": "string"},
        '{"fields": {"a": {"type": "string"}}}',
        b'{"a": "string"}',
    ],
)
def test_parse_type_map_accepts_legacy_layouts(raw) -> None:
    assert parse_type_map(raw) == {"a": {"type": "string"}}


@pytest.mark.parametrize("raw", [None, "", "not json", "[1, 2]", 12, {"a": 3}])
def test_parse_type_map_unreadable_input_is_empty(raw) -> None:
    assert parse_type_map(raw) == {}


def test_parse_type_map_normalizes_types_outside_the_lattice() -> None:
    assert parse_type_map(
        {"a": {"type": ["x"]}, "b": "banana", "c": {"type": 3}, "d": {"type": None}}
    ) == {
        "a": {"type": MIXED},
        "b": {"type": MIXED},
        "c": {"type": MIXED},
        "d": {"type": MIXED},
    }
    assert parse_type_map({"ok": "number", "n": {"type": "null"}}) == {
        "ok": {"type": "number"},
        "n": {"type": "null"},
    }


def test_stored_type_map_treats_fields_as_a_plain_path() -> None:
    stored = {"fields": {"type": "string"}, "user.name": {"type": "string"}}
    assert stored_type_map(stored) == stored
    assert stored_type_map({"fields": {"type": "object"}, "a": {"type": "number"}}) == {
        "fields": {"type": "object"},
        "a": {"type": "number"},
    }


@pytest.mark.parametrize("raw", [None, [], "x", {"a": "string"}, {"a": {}}])
def test_stored_type_map_skips_malformed_entries(raw) -> None:
    assert stored_type_map(raw) == {}
