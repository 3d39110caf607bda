"""CLI commands for the Transfer aggregate."""

from __future__ import annotations

import click

from tms.application.dto import ReceiptDelta, TransferDTO, TransferLineSpec
from tms.domain.exceptions import DomainException
from tms.domain.model.transfer_state import TransferStatus
from tms.infrastructure.cli.context import CliState, pass_state


def _split_pair(pair: str, expected: str) -> tuple[str, int]:
    if ":" not in pair:
        raise click.BadParameter(f"Invalid line format '{pair}'. Expected '{expected}'.")
    name, qty_str = pair.rsplit(":", 1)
    try:
        qty = int(qty_str)
    except ValueError:
        raise click.BadParameter(f"Invalid quantity '{qty_str}' for '{name}'.")
    return name.strip(), qty


def _parse_lines(raw: str) -> list[TransferLineSpec]:
    """Parse 'SKU1:10,SKU2@LOT7:5' into TransferLineSpec list."""
    specs: list[TransferLineSpec] = []
    for pair in raw.split(","):
        item, qty = _split_pair(pair.strip(), "Product[@Lot]:Quantity")
        product_id, _, lot_id = item.partition("@")
        specs.append(TransferLineSpec(product_id=product_id, quantity=qty, lot_id=lot_id or None))
    return specs


def _parse_receipt(raw: str) -> list[ReceiptDelta]:
    """Parse '1:4,2:10' (line id : units) into ReceiptDelta list."""
    deltas: list[ReceiptDelta] = []
    for pair in raw.split(","):
        line, qty = _split_pair(pair.strip(), "LineId:Quantity")
        try:
            line_id = int(line)
        except ValueError:
            raise click.BadParameter(f"Invalid line id '{line}'.")
        deltas.append(ReceiptDelta(line_id=line_id, quantity=qty))
    return deltas


def _display_transfer(dto: TransferDTO) -> None:
    """Shared formatting for displaying a transfer."""
    flags = " ORPHANED" if dto.orphaned else ""
    click.echo(f"Transfer #{dto.id}  (status={dto.status}){flags}")
    click.echo(f"Route:    {dto.origin_id} -> {dto.destination_id}")
    click.echo(f"Created:  {dto.created_at} by {dto.created_by}")
    if dto.notes:
        click.echo(f"Notes:    {dto.notes}")
    click.echo()
    click.echo(
        f"  {'Line':>5} {'Product':<20} {'Lot':<12} {'Requested':>10} "
        f"{'Received':>9} {'Pending':>8} {'Status':<8}"
    )
    click.echo(f"  {'-'*77}")
    for line in dto.lines:
        click.echo(
            f"  {line.id:>5} {line.product_id:<20} {line.lot_id or '-':<12} "
            f"{line.requested:>10} {line.received:>9} {line.outstanding:>8} {line.status:<8}"
        )
    click.echo(f"  {'-'*77}")
    click.echo(
        f"  {'Totals':<39} {dto.total_requested:>10} "
        f"{dto.total_received:>9} {dto.total_outstanding:>8}"
    )


@click.command("create")
@click.option("--origin", required=True, help="Origin location ID.")
@click.option("--dest", "destination", required=True, help="Destination location ID.")
@click.option("--lines", required=True, help="Lines as 'Product[@Lot]:Qty,...'.")
@click.option("--notes", default="", help="Free-text notes.")
@pass_state
def transfer_create(state: CliState, origin: str, destination: str, lines: str, notes: str) -> None:
    """Create a new pending transfer."""
    specs = _parse_lines(lines)

    try:
        dto = state.service.create_transfer(state.request, origin, destination, specs, notes=notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_transfer(dto)


@click.command("dispatch")
@click.option("--id", "transfer_id", required=True, type=int, help="Transfer ID to dispatch.")
@pass_state
def transfer_dispatch(state: CliState, transfer_id: int) -> None:
    """Dispatch a transfer (deducts stock at the origin)."""
    try:
        dto = state.service.dispatch(state.request, transfer_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if dto.already_dispatched:
        click.echo(f"Transfer #{transfer_id} was already dispatched (status={dto.status}).")
    else:
        click.echo(f"Transfer #{transfer_id} dispatched: {dto.total_requested} unit(s) in transit.")


@click.command("receive")
@click.option("--id", "transfer_id", required=True, type=int, help="Transfer ID to receive.")
@click.option("--lines", default=None, help="Received units as 'LineId:Qty,...'.")
@click.option("--all", "receive_all", is_flag=True, help="Receive everything outstanding.")
@click.option("--receipt", "receipt_id", default=None, help="Receipt ID; resending it is a no-op.")
@pass_state
def transfer_receive(
    state: CliState,
    transfer_id: int,
    lines: str | None,
    receive_all: bool,
    receipt_id: str | None,
) -> None:
    """Receive units of a dispatched transfer (adds stock at the destination)."""
    if receive_all == (lines is not None):
        raise click.UsageError("Pass exactly one of --lines or --all.")

    try:
        if receive_all:
            result = state.service.receive_all(state.request, transfer_id, receipt_id=receipt_id)
        else:
            deltas = _parse_receipt(lines)
            result = state.service.receive(state.request, transfer_id, deltas, receipt_id=receipt_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if result.replayed:
        click.echo(f"Receipt {result.receipt_id} was already recorded; nothing changed.")
    for line in result.clamped_lines:
        click.echo(
            f"Warning: line #{line.line_id}: only {line.accepted} of {line.requested} "
            f"unit(s) were outstanding."
        )
    click.echo(
        f"Transfer #{transfer_id} received (receipt {result.receipt_id}), "
        f"status={result.transfer.status}."
    )


@click.command("cancel")
@click.option("--id", "transfer_id", required=True, type=int, help="Transfer ID to cancel.")
@pass_state
def transfer_cancel(state: CliState, transfer_id: int) -> None:
    """Cancel a transfer that has not been dispatched."""
    try:
        state.service.cancel(state.request, transfer_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Transfer #{transfer_id} cancelled.")


@click.command("delete")
@click.option("--id", "transfer_id", required=True, type=int, help="Transfer ID to delete.")
@pass_state
def transfer_delete(state: CliState, transfer_id: int) -> None:
    """Delete a transfer that never moved stock."""
    try:
        state.service.delete(state.request, transfer_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Transfer #{transfer_id} deleted.")


@click.command("show")
@click.option("--id", "transfer_id", required=True, type=int, help="Transfer ID to display.")
@pass_state
def transfer_show(state: CliState, transfer_id: int) -> None:
    """Show details of an existing transfer."""
    try:
        dto = state.service.get(state.request, transfer_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_transfer(dto)


@click.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TransferStatus]),
    default=None,
    help="Only transfers with this status.",
)
@click.option("--location", default=None, help="Only transfers from or to this location.")
@click.option("--orphaned", is_flag=True, default=False, help="Include orphaned headers.")
@pass_state
def transfer_list(state: CliState, status: str | None, location: str | None, orphaned: bool) -> None:
    """List transfers of the organization."""
    try:
        transfers = state.service.list(
            state.request, status=status, location_id=location, include_orphaned=orphaned
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not transfers:
        click.echo("No transfers found.")
        return

    click.echo(
        f"{'ID':>5} {'Origin':<15} {'Destination':<15} {'Status':<11} "
        f"{'Requested':>10} {'Received':>9}"
    )
    click.echo("-" * 70)
    for dto in transfers:
        click.echo(
            f"{dto.id:>5} {dto.origin_id:<15} {dto.destination_id:<15} {dto.status:<11} "
            f"{dto.total_requested:>10} {dto.total_received:>9}"
        )
