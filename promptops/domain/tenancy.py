"""Tenancy scope value objects.

A `ProjectScope` (tenant, project, acting user) is attached to every entity reference and
is the only isolation mechanism: each repository query is built from `where()` on one of
these objects, so rows of another tenant or project are never selected, updated, or used
for collision checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import and_

from promptops.domain.errors import ValidationError

# Plus grand identifiant stockable (INTEGER signé 64 bits)
MAX_ID = 2**63 - 1


def parse_positive_id(value: Any, name: str) -> int:
    """Parse a client-supplied identifier; reject non-integers and values outside 1..MAX_ID."""
    label = name[:-2] if name.lower().endswith("id") else name
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label} ID")
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError) as err:
        raise ValidationError(f"Invalid {label} ID") from err
    if parsed <= 0 or parsed > MAX_ID:
        raise ValidationError(f"Invalid {label} ID")
    return parsed


@dataclass(frozen=True)
class ProjectScope:
    """(tenant_id, project_id, user_id) bound to a request."""

    tenant_id: int
    project_id: int
    user_id: str = ""

    def where(self, model):
        """Tenancy predicate for any table carrying tenant_id/project_id."""
        return and_(model.tenant_id == self.tenant_id, model.project_id == self.project_id)

    def entity(self, entity_id: int) -> EntityRef:
        return EntityRef(entity_id, self)


@dataclass(frozen=True)
class EntityRef:
    """Identifiant d'une entité parent, toujours qualifié par son scope."""

    id: int
    scope: ProjectScope

    @property
    def tenant_id(self) -> int:
        return self.scope.tenant_id

    @property
    def project_id(self) -> int:
        return self.scope.project_id

    def where(self, model):
        return and_(self.scope.where(model), model.id == self.id)

    def version(self, version: int) -> PromptVersionRef:
        return PromptVersionRef(self, version)


@dataclass(frozen=True)
class PromptVersionRef:
    """Adresse d'une entrée du registre: (prompt, numéro de version) sous un scope."""

    prompt: EntityRef
    version: int

    def where(self, model):
        return and_(
            self.prompt.scope.where(model),
            model.prompt_id == self.prompt.id,
            model.version == self.version,
        )
