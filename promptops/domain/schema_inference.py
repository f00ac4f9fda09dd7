"""
Inférence incrémentale du schéma des datasets.

Chaque enregistrement écrit est aplati en paires (chemin, type observé) puis replié dans la
TypeMap persistée sur le dataset. Le repli est une jointure dans un treillis de types:
un chemin nouveau est ajouté tel quel, un type identique ne change rien, un type différent
élargit à "mixed", et "mixed" est absorbant. Aucun chemin n'est jamais retiré: la TypeMap
est l'union historique des formes observées, jamais recalculée par un scan complet.
"""

# ============================================================
# Module : promptops/domain/schema_inference.py
# Objet  : Aplatissement des payloads et jointure de types.
# ============================================================

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any, Literal

FieldType = Literal["string", "number", "boolean", "null", "array", "object", "mixed"]
TypeMap = dict[str, dict[str, str]]

MIXED: FieldType = "mixed"
FIELD_TYPES: frozenset[str] = frozenset(
    ("string", "number", "boolean", "null", "array", "object", MIXED)
)
# Chemin utilisé quand une valeur non-objet est aplatie sans préfixe. Inatteignable via
# l'API (le payload de haut niveau est toujours un objet), conservé tel quel.
TOP_LEVEL_PATH = "value"


def observe_type(value: Any) -> FieldType:
    """Type observé d'une valeur JSON (union étiquetée null/bool/number/string/array/object)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    raise TypeError(f"unsupported payload value: {type(value).__name__}")


def flatten(value: Any, prefix: str = "") -> dict[str, FieldType]:
    """Aplatit un payload en {chemin pointé: type}.

    - null, tableaux et scalaires sont enregistrés au chemin courant (les tableaux ne sont
      pas parcourus);
    - un objet non vide est parcouru clé par clé, sans entrée pour le conteneur lui-même;
    - un objet vide n'est enregistré ("object") que sous un préfixe non vide.
    """
    fields: dict[str, FieldType] = {}
    path = prefix or TOP_LEVEL_PATH
    kind = observe_type(value)

    if kind != "object":
        fields[path] = kind
        return fields

    if not value:
        if prefix:
            fields[path] = "object"
        return fields

    for key, nested in value.items():
        next_prefix = f"{prefix}.{key}" if prefix else str(key)
        fields.update(flatten(nested, next_prefix))
    return fields


def join_types(current: str | None, observed: str) -> str:
    """Jointure dans le treillis: absent -> observé, égal -> inchangé, sinon "mixed"."""
    if current is None:
        return observed
    if current == observed or current == MIXED:
        return current
    return MIXED


def fold(type_map: Mapping[str, Mapping[str, str]], observed: Mapping[str, str]) -> TypeMap:
    """Replie des observations dans une TypeMap et retourne une nouvelle map (l'entrée
    n'est pas modifiée)."""
    merged: TypeMap = {path: {"type": str(entry.get("type"))} for path, entry in type_map.items()}
    for path, kind in observed.items():
        existing = merged.get(path)
        widened = join_types(existing["type"] if existing else None, kind)
        if existing is None or existing["type"] != widened:
            merged[path] = {"type": widened}
    return merged


def fold_payloads(type_map: Mapping[str, Mapping[str, str]], payloads: Iterable[Any]) -> TypeMap:
    """Replie plusieurs payloads successivement (ajout en lot)."""
    merged: TypeMap = fold(type_map, {})
    for payload in payloads:
        merged = fold(merged, flatten(payload))
    return merged


def stored_type_map(value: Any) -> TypeMap:
    """TypeMap telle que persistée sur l'agrégat: map nue `{chemin: {"type": t}}`.

    Lecture stricte, sans enveloppe `fields`: un chemin nommé `fields` est un chemin comme
    un autre.
    """
    if not isinstance(value, Mapping):
        return {}
    return {
        str(path): {"type": str(entry["type"])}
        for path, entry in value.items()
        if isinstance(entry, Mapping) and "type" in entry
    }


def _legacy_field_type(field: Any) -> str | None:
    if isinstance(field, Mapping):
        if "type" not in field:
            return None
        kind = field["type"]
    elif isinstance(field, str):
        kind = field
    else:
        return None
    # hors treillis -> "mixed" (absorbant, compatible avec toute observation future)
    return kind if isinstance(kind, str) and kind in FIELD_TYPES else MIXED


def parse_type_map(value: Any) -> TypeMap:
    """Lit un schéma fourni par un client (ou hérité), de façon tolérante.

    Formats acceptés: `{"fields": {...}}`, `{chemin: {"type": t}}`, `{chemin: "t"}`, ou la
    chaîne JSON de l'un d'eux. Toute entrée illisible donne une TypeMap vide; un type hors
    du treillis devient "mixed". Ne sert pas à relire la colonne persistée
    (voir `stored_type_map`).
    """
    if not value:
        return {}
    if isinstance(value, str | bytes):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    if not isinstance(value, Mapping):
        return {}

    fields = value.get("fields")
    source = fields if isinstance(fields, Mapping) else value
    parsed: TypeMap = {}
    for path, field in source.items():
        kind = _legacy_field_type(field)
        if kind is None:
            continue
        parsed[str(path)] = {"type": kind}
    return parsed
