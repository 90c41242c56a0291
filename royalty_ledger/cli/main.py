"""
CLI for registering works, issuing licenses, recording royalty payments and
inspecting a royalty ledger database.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from royalty_ledger.auth.guard import SignatureGuard
from royalty_ledger.config import LedgerSettings
from royalty_ledger.crypto.keys import PrincipalKeyPair
from royalty_ledger.errors import LedgerError
from royalty_ledger.ledger import RoyaltyLedger
from royalty_ledger.verify.auditor import LedgerAuditor

app = typer.Typer(
    name="royalty-ledger",
    help="Register creative works, license them and track royalty payments",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def get_settings(ctx: typer.Context) -> LedgerSettings:
    return ctx.obj["settings"]


def open_ledger(ctx: typer.Context, guard: Optional[SignatureGuard] = None) -> RoyaltyLedger:
    settings = get_settings(ctx)
    try:
        return RoyaltyLedger.from_settings(settings, guard=guard)
    except Exception as e:
        console.print(f"[red]Failed to open database {settings.db_path}: {e}[/]")
        raise typer.Exit(1)


def load_key(key_file: Path) -> PrincipalKeyPair:
    try:
        data = json.loads(key_file.read_text(encoding="utf-8"))
        return PrincipalKeyPair.from_private_b64url(data["private_key"])
    except (OSError, ValueError, KeyError) as e:
        console.print(f"[red]Could not load key file {key_file}: {e}[/]")
        raise typer.Exit(1)


def signed_ledger(ctx: typer.Context, key_file: Path, operation: str, args: Dict[str, Any]):
    """Open the ledger with a guard that has accepted this key's signed invocation."""
    keypair = load_key(key_file)
    guard = SignatureGuard()
    guard.authorize(keypair.sign_invocation(operation, args))
    return open_ledger(ctx, guard), keypair.principal


def fail(e: LedgerError) -> None:
    console.print(f"[red]✗ {type(e).__name__}: {escape(str(e))}[/]")
    raise typer.Exit(1)


KeyOption = typer.Option(..., "--key", "-k", exists=True, dir_okay=False, help="Key file created by `keygen`")


@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Path to SQLite database (overrides ROYALTY_LEDGER_DB_PATH env var)",
    ),
):
    """Manage a creative-work royalty ledger."""
    try:
        settings = LedgerSettings.from_env(db)
        logging.basicConfig(
            level=settings.log_level,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/]")
        raise typer.Exit(1)
    ctx.obj = {"settings": settings}


@app.command()
def keygen(
    output: Path = typer.Option(..., "--output", "-o", help="Where to write the new key file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing key file"),
):
    """Generate an Ed25519 key; its principal identifies you on the ledger."""
    if output.exists() and not force:
        console.print(f"[red]{output} already exists (use --force to overwrite)[/]")
        raise typer.Exit(1)
    keypair = PrincipalKeyPair.generate()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps({
        "principal": keypair.principal,
        "private_key": keypair.private_key_b64url(),
    }), encoding="utf-8")
    output.chmod(0o600)
    console.print(f"[green]Wrote key to {output}[/]")
    console.print(f"Principal: {keypair.principal}")


@app.command("register-work")
def register_work(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Title of the work"),
    key: Path = KeyOption,
    description: str = typer.Option("", "--description", "-d"),
    content_type: str = typer.Option("text", "--content-type", "-t", help="image, music, text, ..."),
    primary: int = typer.Option(0, "--primary", help="Primary sale royalty in basis points"),
    secondary: int = typer.Option(0, "--secondary", help="Secondary sale royalty in basis points"),
    streaming_rate: int = typer.Option(0, "--streaming-rate", min=0),
    min_fee: int = typer.Option(0, "--min-fee", min=0, help="Minimum license fee"),
):
    """Register a new work owned by the key's principal."""
    args = {"title": title, "primary": primary, "secondary": secondary,
            "streaming_rate": str(streaming_rate), "min_fee": str(min_fee)}
    ledger, principal = signed_ledger(ctx, key, "register_work", args)
    with ledger:
        try:
            work_id = ledger.register_work(
                principal, title, description, content_type, primary, secondary, streaming_rate, min_fee
            )
        except LedgerError as e:
            fail(e)
    console.print(f"[green]Registered work {work_id}[/]")


@app.command("purchase-license")
def purchase_license(
    ctx: typer.Context,
    work_id: int = typer.Argument(...),
    amount: int = typer.Argument(..., min=0, help="Payment amount"),
    key: Path = KeyOption,
    license_type: str = typer.Option("personal", "--type", help="commercial, personal, limited, ..."),
    duration: int = typer.Option(0, "--duration", min=0, help="Seconds until expiry (0 = perpetual)"),
):
    """Buy a license on a work as the key's principal."""
    args = {"work_id": work_id, "amount": str(amount), "type": license_type, "duration": duration}
    ledger, principal = signed_ledger(ctx, key, "purchase_license", args)
    with ledger:
        try:
            license_id = ledger.purchase_license(work_id, principal, license_type, duration, amount)
        except LedgerError as e:
            fail(e)
    console.print(f"[green]Issued license {license_id} on work {work_id}[/]")


@app.command("record-payment")
def record_payment(
    ctx: typer.Context,
    work_id: int = typer.Argument(...),
    amount: int = typer.Argument(..., min=0),
    key: Path = KeyOption,
    payment_type: str = typer.Option("streaming", "--type", help="sale, streaming, ..."),
):
    """Record a royalty payment against a work."""
    args = {"work_id": work_id, "amount": str(amount), "type": payment_type}
    ledger, principal = signed_ledger(ctx, key, "record_payment", args)
    with ledger:
        try:
            payment_id = ledger.record_payment(work_id, principal, amount, payment_type)
        except LedgerError as e:
            fail(e)
    console.print(f"[green]Recorded payment {payment_id} on work {work_id}[/]")


@app.command("update-config")
def update_config(
    ctx: typer.Context,
    work_id: int = typer.Argument(...),
    key: Path = KeyOption,
    primary: int = typer.Option(..., "--primary"),
    secondary: int = typer.Option(..., "--secondary"),
    streaming_rate: int = typer.Option(..., "--streaming-rate", min=0),
    min_fee: int = typer.Option(..., "--min-fee", min=0),
):
    """Replace a work's royalty terms (all four terms are required)."""
    args = {"work_id": work_id, "primary": primary, "secondary": secondary,
            "streaming_rate": str(streaming_rate), "min_fee": str(min_fee)}
    ledger, principal = signed_ledger(ctx, key, "update_royalty_config", args)
    with ledger:
        try:
            ledger.update_royalty_config(work_id, principal, primary, secondary, streaming_rate, min_fee)
        except LedgerError as e:
            fail(e)
    console.print(f"[green]Updated royalty config for work {work_id}[/]")


@app.command()
def deactivate(ctx: typer.Context, work_id: int = typer.Argument(...), key: Path = KeyOption):
    """Stop a work from being licensed."""
    ledger, principal = signed_ledger(ctx, key, "deactivate_work", {"work_id": work_id})
    with ledger:
        try:
            ledger.deactivate_work(work_id, principal)
        except LedgerError as e:
            fail(e)
    console.print(f"[green]Deactivated work {work_id}[/]")


@app.command()
def reactivate(ctx: typer.Context, work_id: int = typer.Argument(...), key: Path = KeyOption):
    """Make a deactivated work licensable again."""
    ledger, principal = signed_ledger(ctx, key, "reactivate_work", {"work_id": work_id})
    with ledger:
        try:
            ledger.reactivate_work(work_id, principal)
        except LedgerError as e:
            fail(e)
    console.print(f"[green]Reactivated work {work_id}[/]")


@app.command()
def work(ctx: typer.Context, work_id: int = typer.Argument(...)):
    """Show a work with its royalty terms."""
    with open_ledger(ctx) as ledger:
        try:
            w = ledger.get_work(work_id)
            config = ledger.get_royalty_config(work_id)
        except LedgerError as e:
            fail(e)

    table = Table(title=f"Work {w.work_id}")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Title", escape(w.title))
    table.add_row("Creator", w.creator)
    table.add_row("Content type", w.content_type)
    table.add_row("Created", str(w.creation_time))
    table.add_row("Active", "yes" if w.is_active else "[red]no[/]")
    table.add_row("Licenses issued", str(w.license_count))
    table.add_row("Primary sale", f"{config.primary_sale_percentage} bp")
    table.add_row("Secondary sale", f"{config.secondary_sale_percentage} bp")
    table.add_row("Streaming rate", str(config.streaming_rate))
    table.add_row("Minimum license fee", str(config.minimum_license_fee))
    console.print(table)
    if w.description:
        console.print(f"  {escape(w.description[:160])}{'...' if len(w.description) > 160 else ''}")


@app.command()
def config(ctx: typer.Context, work_id: int = typer.Argument(...)):
    """Print a work's royalty configuration as JSON."""
    with open_ledger(ctx) as ledger:
        try:
            cfg = ledger.get_royalty_config(work_id)
        except LedgerError as e:
            fail(e)
    console.print_json(json.dumps(cfg.to_dict()))


@app.command()
def license(ctx: typer.Context, license_id: int = typer.Argument(...)):
    """Print a license as JSON, with its current validity."""
    with open_ledger(ctx) as ledger:
        try:
            lic = ledger.get_license(license_id)
        except LedgerError as e:
            fail(e)
        valid = ledger.verify_license(license_id)
    console.print_json(json.dumps({**lic.to_dict(), "valid": valid}))


@app.command()
def payment(ctx: typer.Context, payment_id: int = typer.Argument(...)):
    """Print a payment as JSON."""
    with open_ledger(ctx) as ledger:
        try:
            pay = ledger.get_payment(payment_id)
        except LedgerError as e:
            fail(e)
    console.print_json(json.dumps(pay.to_dict()))


@app.command("creator-works")
def creator_works(ctx: typer.Context, creator: str = typer.Argument(..., help="Creator principal")):
    """List the works registered by a creator, oldest first."""
    with open_ledger(ctx) as ledger:
        work_ids = ledger.get_creator_works(creator)
        if not work_ids:
            console.print(f"[yellow]No works registered by {creator}[/]")
            return
        table = Table(title="Creator Works")
        table.add_column("Work ID")
        table.add_column("Title")
        table.add_column("Active")
        table.add_column("Licenses")
        for work_id in work_ids:
            w = ledger.get_work(work_id)
            table.add_row(str(w.work_id), escape(w.title), "yes" if w.is_active else "no", str(w.license_count))
    console.print(table)


@app.command("work-licenses")
def work_licenses(ctx: typer.Context, work_id: int = typer.Argument(...)):
    """List every license issued on a work."""
    with open_ledger(ctx) as ledger:
        license_ids = ledger.get_work_licenses(work_id)
        if not license_ids:
            console.print(f"[yellow]No licenses found for work {work_id}[/]")
            return
        table = Table(title=f"Licenses for work {work_id}")
        for column in ("License ID", "Licensee", "Type", "Issued", "Expires", "Amount", "Valid"):
            table.add_column(column)
        for license_id in license_ids:
            lic = ledger.get_license(license_id)
            table.add_row(
                str(lic.license_id), lic.licensee, lic.license_type, str(lic.issue_time),
                "perpetual" if lic.is_perpetual else str(lic.expiration_time),
                str(lic.payment_amount), "yes" if ledger.verify_license(license_id) else "no",
            )
    console.print(table)


@app.command("work-payments")
def work_payments(ctx: typer.Context, work_id: int = typer.Argument(...)):
    """List every payment recorded against a work."""
    with open_ledger(ctx) as ledger:
        payment_ids = ledger.get_work_payments(work_id)
        if not payment_ids:
            console.print(f"[yellow]No payments found for work {work_id}[/]")
            return
        table = Table(title=f"Payments for work {work_id}")
        for column in ("Payment ID", "Payer", "Type", "Time", "Amount"):
            table.add_column(column)
        for payment_id in payment_ids:
            pay = ledger.get_payment(payment_id)
            table.add_row(str(pay.payment_id), pay.payer, pay.payment_type, str(pay.payment_time), str(pay.payment_amount))
    console.print(table)


@app.command("verify-license")
def verify_license(ctx: typer.Context, license_id: int = typer.Argument(...)):
    """Exit 0 if the license exists and has not expired, 1 otherwise."""
    with open_ledger(ctx) as ledger:
        valid = ledger.verify_license(license_id)
    if valid:
        console.print(f"[green]✓ License {license_id} is valid[/]")
    else:
        console.print(f"[red]✗ License {license_id} is not valid[/]")
        raise typer.Exit(1)


@app.command()
def stats(ctx: typer.Context):
    """Show registry-wide totals."""
    with open_ledger(ctx) as ledger:
        s = ledger.get_royalty_stats()
    table = Table(title="Royalty Stats")
    table.add_column("Works")
    table.add_column("Licenses")
    table.add_column("Payments")
    table.add_column("Revenue")
    table.add_row(str(s.total_works), str(s.total_licenses), str(s.total_payments), str(s.total_revenue))
    console.print(table)


@app.command()
def audit(ctx: typer.Context):
    """Re-check every ledger invariant against the stored records."""
    with open_ledger(ctx) as ledger:
        result = LedgerAuditor(ledger.store).audit()
    if result.is_valid:
        console.print(f"[green]✓ {result.message}[/]")
    else:
        console.print(f"[red]✗ {result.message}[/]")
        for failure in result.failures:
            console.print(f"  • {escape('[' + (failure.subject or '-') + ']')} {failure.category}: {escape(failure.message)}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
