"""Dérivation de slugs et candidats de nommage pour les copies."""

from __future__ import annotations

import re
from collections.abc import Iterator

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def generate_slug(name: str) -> str:
    """Minuscule, segments alphanumériques joints par un tiret unique.

    >>> generate_slug("  Hello,  World!! v2 ")
    'hello-world-v2'
    """
    return "-".join(part for part in _NON_ALNUM_RE.split(name.lower()) if part)


def copy_candidates(name: str, slug: str) -> Iterator[tuple[str, str]]:
    """Suite infinie de (nom, slug) pour une copie: `X Copy`, puis `X Copy 2`, `X Copy 3`..."""
    n = 1
    while True:
        if n == 1:
            yield f"{name} Copy", f"{slug}-copy"
        else:
            yield f"{name} Copy {n}", f"{slug}-copy-{n}"
        n += 1


def dedupe_candidates(slug: str) -> Iterator[str]:
    """Slugs de datasets: `slug`, `slug-2`, `slug-3`..."""
    yield slug
    n = 2
    while True:
        yield f"{slug}-{n}"
        n += 1
