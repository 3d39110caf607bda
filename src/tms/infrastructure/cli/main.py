import click

from tms.infrastructure.cli.catalog_commands import catalog_add_lot, catalog_add_product, catalog_list
from tms.infrastructure.cli.context import CliState
from tms.infrastructure.cli.stock_commands import (
    stock_adjust,
    stock_available,
    stock_lots,
    stock_movements,
    stock_reconcile,
    stock_release,
    stock_reserve,
    stock_show,
)
from tms.infrastructure.cli.transfer_commands import (
    transfer_cancel,
    transfer_create,
    transfer_delete,
    transfer_dispatch,
    transfer_list,
    transfer_receive,
    transfer_show,
)
from tms.infrastructure.config import Settings
from tms.infrastructure.logging_config import configure_logging


@click.group()
@click.option("--org", envvar="TMS_ORG", default="default", show_default=True, help="Organization ID.")
@click.option("--actor", envvar="TMS_ACTOR", default="cli", show_default=True, help="Acting user.")
@click.pass_context
def cli(ctx: click.Context, org: str, actor: str) -> None:
    """TMS — Transfer Management System"""
    settings = Settings()
    configure_logging(settings.log_level)
    ctx.obj = CliState(settings=settings, organization_id=org, actor=actor)


@cli.group()
def transfer() -> None:
    """Manage transfers between locations."""


@cli.group()
def catalog() -> None:
    """Manage the local product and lot catalog."""


@cli.group()
def stock() -> None:
    """Inspect and adjust stock."""


# Register subcommands
transfer.add_command(transfer_cancel)
transfer.add_command(transfer_create)
transfer.add_command(transfer_delete)
transfer.add_command(transfer_dispatch)
transfer.add_command(transfer_list)
transfer.add_command(transfer_receive)
transfer.add_command(transfer_show)
catalog.add_command(catalog_add_lot)
catalog.add_command(catalog_add_product)
catalog.add_command(catalog_list)
stock.add_command(stock_adjust)
stock.add_command(stock_available)
stock.add_command(stock_lots)
stock.add_command(stock_movements)
stock.add_command(stock_reconcile)
stock.add_command(stock_release)
stock.add_command(stock_reserve)
stock.add_command(stock_show)
