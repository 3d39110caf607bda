"""Explicit caller context.

Every use case receives the organization and acting user as plain
parameters; nothing is looked up from request-scoped globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from tms.domain.exceptions import ValidationError


@dataclass(frozen=True)
class RequestContext:
    organization_id: str
    actor: str

    def __post_init__(self) -> None:
        if not self.organization_id or not self.organization_id.strip():
            raise ValidationError("Organization ID is required")
        if not self.actor or not self.actor.strip():
            raise ValidationError("Actor is required")
