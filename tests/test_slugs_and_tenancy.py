"""Tests de la dérivation de slugs et des objets de scope."""

from __future__ import annotations

from itertools import islice

import pytest

from promptops.domain.errors import ValidationError
from promptops.domain.slugs import copy_candidates, dedupe_candidates, generate_slug
from promptops.domain.tenancy import ProjectScope, parse_positive_id

EXPECTED_PROJECT_ID = 42


@pytest.mark.parametrize(
    ("name", "slug"),
    [
        ("Test", "test"),
        ("My Prompt", "my-prompt"),
        ("  Hello,  World!! v2 ", "hello-world-v2"),
        ("--A__b--", "a-b"),
        ("!!!", ""),
        ("Élan 2", "lan-2"),
    ],
)
def test_generate_slug(name: str, slug: str) -> None:
    assert generate_slug(name) == slug


def test_copy_candidates_sequence() -> None:
    assert list(islice(copy_candidates("X", "x"), 3)) == [
        ("X Copy", "x-copy"),
        ("X Copy 2", "x-copy-2"),
        ("X Copy 3", "x-copy-3"),
    ]


def test_dedupe_candidates_sequence() -> None:
    assert list(islice(dedupe_candidates("data"), 3)) == ["data", "data-2", "data-3"]


@pytest.mark.parametrize("value", ["42", " 42 ", 42])
def test_parse_positive_id_accepts_integers(value) -> None:
    assert parse_positive_id(value, "projectId") == EXPECTED_PROJECT_ID


@pytest.mark.parametrize(
    "value", ["0", "-3", "abc", "1.5", "", None, True, str(2**63), "99999999999999999999"]
)
def test_parse_positive_id_rejects_invalid(value) -> None:
    with pytest.raises(ValidationError) as exc:
        parse_positive_id(value, "projectId")
    assert exc.value.message == "Invalid project ID"


def test_scopes_are_value_objects() -> None:
    a = ProjectScope(1, 2, "u")
    assert a == ProjectScope(1, 2, "u")
    ref = a.entity(7)
    assert (ref.id, ref.tenant_id, ref.project_id) == (7, 1, 2)
    assert ref.version(3).prompt == ref
    with pytest.raises(AttributeError):
        a.tenant_id = 3  # type: ignore[misc]
