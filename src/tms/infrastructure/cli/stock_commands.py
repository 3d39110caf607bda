"""CLI commands for stock levels and the ledger."""

from __future__ import annotations

import click

from tms.domain.exceptions import DomainException
from tms.infrastructure.cli.context import CliState, pass_state


@click.command("adjust")
@click.option("--location", required=True, help="Location ID.")
@click.option("--product", required=True, help="Product ID.")
@click.option("--lot", default=None, help="Lot ID.")
@click.option("--quantity", required=True, type=int, help="Units to add (negative to remove).")
@click.option("--reason", default="", help="Why the stock is adjusted.")
@pass_state
def stock_adjust(
    state: CliState,
    location: str,
    product: str,
    lot: str | None,
    quantity: int,
    reason: str,
) -> None:
    """Record a stock adjustment (seeds or corrects on-hand)."""
    try:
        level = state.service.adjust_stock(
            state.request, location, product, quantity, reason=reason, lot_id=lot
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Stock of '{product}' at '{location}' adjusted by {quantity:+d}: "
        f"on hand {level.on_hand}, available {level.available}"
    )


@click.command("reserve")
@click.option("--location", required=True, help="Location ID.")
@click.option("--product", required=True, help="Product ID.")
@click.option("--lot", default=None, help="Lot ID.")
@click.option("--quantity", required=True, type=int, help="Units to hold back.")
@pass_state
def stock_reserve(state: CliState, location: str, product: str, lot: str | None, quantity: int) -> None:
    """Hold units back from availability."""
    try:
        level = state.service.reserve(state.request, location, product, quantity, lot_id=lot)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Reserved {quantity}: reserved {level.reserved}, available {level.available}")


@click.command("release")
@click.option("--location", required=True, help="Location ID.")
@click.option("--product", required=True, help="Product ID.")
@click.option("--lot", default=None, help="Lot ID.")
@click.option("--quantity", required=True, type=int, help="Units to release.")
@pass_state
def stock_release(state: CliState, location: str, product: str, lot: str | None, quantity: int) -> None:
    """Release previously reserved units."""
    try:
        level = state.service.release(state.request, location, product, quantity, lot_id=lot)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Released {quantity}: reserved {level.reserved}, available {level.available}")


@click.command("show")
@click.option("--location", default=None, help="Only this location.")
@pass_state
def stock_show(state: CliState, location: str | None) -> None:
    """Show current stock levels."""
    levels = state.service.stock_levels(location_id=location)

    if not levels:
        click.echo("No stock records found.")
        return

    click.echo(
        f"{'Location':<15} {'Product':<20} {'Lot':<12} {'On hand':>8} "
        f"{'Reserved':>9} {'Available':>10}"
    )
    click.echo("-" * 77)
    for level in levels:
        click.echo(
            f"{level.location_id:<15} {level.product_id:<20} {level.lot_id or '-':<12} "
            f"{level.on_hand:>8} {level.reserved:>9} {level.available:>10}"
        )


@click.command("available")
@click.option("--location", required=True, help="Location ID.")
@click.option("--product", required=True, help="Product ID.")
@click.option("--lot", default=None, help="Lot ID.")
@pass_state
def stock_available(state: CliState, location: str, product: str, lot: str | None) -> None:
    """Show available units of one product (and lot) at a location."""
    try:
        available = state.service.available_stock(location, product, lot)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(str(available))


@click.command("lots")
@click.option("--location", required=True, help="Location ID.")
@click.option("--product", required=True, help="Product ID.")
@click.option("--quantity", type=int, default=None, help="Suggest lots to cover this many units.")
@pass_state
def stock_lots(state: CliState, location: str, product: str, quantity: int | None) -> None:
    """List lots with stock, earliest expiry first."""
    try:
        lots = list(state.service.lots_available(location, product))
        suggestion = (
            state.service.suggest_lots(location, product, quantity) if quantity else []
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not lots:
        click.echo("No lots with available stock.")
        return

    click.echo(f"{'Lot':<15} {'Expires':<10} {'Available':>10}")
    click.echo("-" * 37)
    for lot in lots:
        expires = lot.expires_on.isoformat() if lot.expires_on else "-"
        click.echo(f"{lot.lot_id:<15} {expires:<10} {lot.quantity:>10}")

    if quantity:
        click.echo()
        click.echo("Suggested: " + ", ".join(f"{lot_id}:{qty}" for lot_id, qty in suggestion))


@click.command("movements")
@click.option("--location", default=None, help="Only this location.")
@click.option("--product", default=None, help="Only this product.")
@click.option("--source", "source_id", default=None, help="Only movements of this source (e.g. a transfer ID).")
@pass_state
def stock_movements(
    state: CliState,
    location: str | None,
    product: str | None,
    source_id: str | None,
) -> None:
    """Show the stock ledger."""
    movements = state.service.movements(
        location_id=location, product_id=product, source_id=source_id
    )

    if not movements:
        click.echo("No movements found.")
        return

    click.echo(
        f"{'ID':>5} {'Location':<15} {'Product':<20} {'Lot':<12} {'Dir':<4} "
        f"{'Qty':>6} {'Source':<14} {'Ref':<10}"
    )
    click.echo("-" * 92)
    for m in movements:
        click.echo(
            f"{m.id:>5} {m.location_id:<15} {m.product_id:<20} {m.lot_id or '-':<12} "
            f"{m.direction:<4} {m.quantity:>6} {m.source_kind:<14} {m.source_id[:10]:<10}"
        )


@click.command("reconcile")
@click.option("--repair", is_flag=True, default=False, help="Rewrite on-hand from the ledger.")
@pass_state
def stock_reconcile(state: CliState, repair: bool) -> None:
    """Compare stock levels against the ledger."""
    try:
        drifts = state.service.reconcile(repair=repair)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not drifts:
        click.echo("Stock levels agree with the ledger.")
        return

    for drift in drifts:
        click.echo(
            f"{drift.key}: level {drift.on_hand}, ledger {drift.ledger_balance} "
            f"({drift.difference:+d})"
        )
    click.echo(f"{len(drifts)} drift(s) {'repaired' if repair else 'found'}.")
