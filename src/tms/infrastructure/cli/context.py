"""Per-invocation state shared by every CLI command."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property

import click

from tms.application.context import RequestContext
from tms.application.transfer_service import TransferService
from tms.domain.exceptions import DomainException
from tms.infrastructure import bootstrap
from tms.infrastructure.catalog.json_catalog import JsonCatalog
from tms.infrastructure.config import Settings


@dataclass
class CliState:
    settings: Settings
    organization_id: str
    actor: str

    @property
    def request(self) -> RequestContext:
        try:
            return RequestContext(self.organization_id, self.actor)
        except DomainException as exc:
            raise click.ClickException(str(exc))

    @cached_property
    def service(self) -> TransferService:
        try:
            return bootstrap.transfer_service(self.settings)
        except DomainException as exc:
            raise click.ClickException(str(exc))

    @cached_property
    def catalog(self) -> JsonCatalog:
        return bootstrap.catalog(self.settings)


pass_state = click.make_pass_decorator(CliState)
