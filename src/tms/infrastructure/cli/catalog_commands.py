"""CLI commands for the local product and lot catalog."""

from __future__ import annotations

from datetime import date

import click

from tms.domain.exceptions import DomainException
from tms.domain.model.lot import Lot, Product
from tms.infrastructure.cli.context import CliState, pass_state


@click.command("add-product")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--name", default="", help="Display name.")
@click.option("--lot-tracked", is_flag=True, default=False, help="Stock is tracked per lot.")
@pass_state
def catalog_add_product(state: CliState, product_id: str, name: str, lot_tracked: bool) -> None:
    """Add or update a product."""
    try:
        state.catalog.save_product(Product(id=product_id, name=name, lot_tracked=lot_tracked))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product '{product_id}' saved{' (lot tracked)' if lot_tracked else ''}")


@click.command("add-lot")
@click.option("--id", "lot_id", required=True, help="Lot ID.")
@click.option("--product", "product_id", required=True, help="Product the lot belongs to.")
@click.option("--expires", default=None, help="Expiry date (YYYY-MM-DD).")
@pass_state
def catalog_add_lot(state: CliState, lot_id: str, product_id: str, expires: str | None) -> None:
    """Add or update a lot."""
    try:
        expires_on = date.fromisoformat(expires) if expires else None
    except ValueError:
        raise click.BadParameter(f"Invalid date '{expires}'. Expected YYYY-MM-DD.")

    try:
        state.catalog.save_lot(Lot(id=lot_id, product_id=product_id, expires_on=expires_on))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Lot '{lot_id}' of '{product_id}' saved")


@click.command("list")
@pass_state
def catalog_list(state: CliState) -> None:
    """List products and their lots."""
    products = state.catalog.list_products()
    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'Product':<20} {'Name':<25} {'Lot':<15} {'Expires':<10}")
    click.echo("-" * 72)
    for product in products:
        lots = state.catalog.lots_for_product(product.id)
        click.echo(f"{product.id:<20} {product.name:<25} {'-' if not lots else '':<15}")
        for lot in lots:
            expires = lot.expires_on.isoformat() if lot.expires_on else "-"
            click.echo(f"{'':<20} {'':<25} {lot.id:<15} {expires:<10}")
