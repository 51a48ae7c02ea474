"""anonboard CLI -- administrative entry point for the moderation engine."""

from __future__ import annotations

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from anonboard import __version__
from anonboard.errors import AnonBoardError

console = Console()


def _board(ctx: click.Context):
    """Build the Board lazily so ``--help`` works without a secret."""
    from anonboard.board import Board
    from anonboard.config import load_settings

    if "board" not in ctx.obj:
        ctx.obj["board"] = Board.from_settings(load_settings(ctx.obj.get("config")))
    return ctx.obj["board"]


class _Group(click.Group):
    """Report anonboard and validation errors as one red line instead of a traceback."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except (AnonBoardError, ValueError) as exc:
            console.print(f"[red]{type(exc).__name__}:[/] {exc}")
            ctx.exit(1)


@click.group(cls=_Group)
@click.version_option(version=__version__)
@click.option("--config", "-c", default=None, help="Path to anonboard.yaml")
@click.option("--log-level", default="WARNING", help="Logging level")
@click.pass_context
def main(ctx: click.Context, config: str | None, log_level: str):
    """anonboard -- pseudonymous identity and moderation engine.

    Administrative commands for accounts, identity resolution, bans,
    and the scheduled moderation sweep.
    """
    from anonboard.logging_setup import configure_logging

    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ── Accounts ─────────────────────────────────────────────────────────


@main.group()
def account():
    """Manage accounts and sessions."""


@account.command(name="create")
@click.argument("email")
@click.option("--name", default="", help="Display name")
@click.option("--role", default="member", type=click.Choice(["member", "moderator", "administrator"]))
@click.pass_context
def account_create(ctx: click.Context, email: str, name: str, role: str):
    """Create an account."""
    from anonboard.auth.models import Role

    acct = _board(ctx).accounts.create_account(email, display_name=name, role=Role(role))
    console.print(f"  Created account [cyan]{acct.id}[/] ({acct.email}, {acct.role.value})")


@account.command(name="show")
@click.argument("account_id")
@click.pass_context
def account_show(ctx: click.Context, account_id: str):
    """Show an account and its authored content."""
    history = _board(ctx).review.account_history(account_id)
    a = history.account
    lines = [
        f"Email:          {a.email}",
        f"Display name:   {a.display_name}",
        f"Role:           {a.role.value}",
        f"Reported count: {a.reported_count}",
        f"Ban:            {a.ban.state.value}" + (f" until {a.ban.expires_at}" if a.ban.expires_at else ""),
        f"Items:          {history.total_items} ({history.flagged_items} flagged, "
        f"{history.total_upvotes} upvotes)",
    ]
    console.print(Panel("\n".join(lines), title=f"Account {a.id}"))


@account.command(name="list")
@click.option("--banned", is_flag=True, help="Only banned accounts")
@click.option("--search", default="", help="Filter by email or display name")
@click.pass_context
def account_list(ctx: click.Context, banned: bool, search: str):
    """List accounts."""
    accounts = _board(ctx).accounts.list_accounts(banned=True if banned else None, search=search)
    if not accounts:
        console.print("[yellow]No accounts found.[/]")
        return

    table = Table(title=f"Accounts ({len(accounts)})")
    table.add_column("ID", style="dim")
    table.add_column("Email", style="cyan")
    table.add_column("Role")
    table.add_column("Reported", justify="right")
    table.add_column("Ban")
    for a in accounts:
        table.add_row(a.id, a.email, a.role.value, str(a.reported_count), a.ban.state.value)
    console.print(table)


@account.command(name="session")
@click.argument("account_id")
@click.pass_context
def account_session(ctx: click.Context, account_id: str):
    """Issue a bearer session token for an account."""
    board = _board(ctx)
    session = board.accounts.create_session(account_id, board.settings.session_hours)
    console.print(f"  Token: {session.token}")
    console.print(f"  Expires: {session.expires_at}")


# ── Moderation ───────────────────────────────────────────────────────


@main.command()
@click.argument("content_id")
@click.option("--actor", required=True, help="Account id of the moderator resolving")
@click.pass_context
def resolve(ctx: click.Context, content_id: str, actor: str):
    """Reveal the author of a content item (audited)."""
    from anonboard.auth.models import Role
    from anonboard.auth.permissions import has_permission

    board = _board(ctx)
    actor_account = board.accounts.require_account(actor)
    if not has_permission(actor_account, Role.moderator):
        console.print("[red]Only moderators and administrators can resolve identities.[/]")
        ctx.exit(1)

    result = board.resolve_identity(content_id, actor)
    ident = result.identity
    console.print(Panel(
        f"Account:  {ident.account_id}\n"
        f"Email:    {ident.email}\n"
        f"Name:     {ident.display_name}\n"
        f"Role:     {ident.role}\n"
        f"Reported: {ident.reported_count}\n"
        f"Ban:      {ident.ban_state}\n"
        f"Verified: {'yes' if result.hash_verified else 'no'}",
        title=f"Author of {content_id}",
    ))


@main.command()
@click.argument("account_id")
@click.option("--actor", required=True, help="Administrator account id")
@click.option("--days", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Temporary ban length in days (default: permanent)")
@click.option("--reason", default="", help="Reason recorded in the audit log")
@click.pass_context
def ban(ctx: click.Context, account_id: str, actor: str, days: float | None, reason: str):
    """Ban an account and hide its content."""
    from anonboard.auth.models import Role
    from anonboard.auth.permissions import has_permission

    board = _board(ctx)
    if not has_permission(board.accounts.require_account(actor), Role.administrator):
        console.print("[red]Only administrators can ban accounts.[/]")
        ctx.exit(1)

    acct = board.apply_ban(account_id, actor, reason=reason, duration_days=days)
    kind = "temporarily" if acct.ban.expires_at else "permanently"
    console.print(f"  [green]v[/] {acct.email} banned {kind}")


@main.command()
@click.argument("account_id")
@click.option("--actor", required=True, help="Administrator account id")
@click.pass_context
def unban(ctx: click.Context, account_id: str, actor: str):
    """Lift a ban and restore the account's content."""
    from anonboard.auth.models import Role
    from anonboard.auth.permissions import has_permission

    board = _board(ctx)
    if not has_permission(board.accounts.require_account(actor), Role.administrator):
        console.print("[red]Only administrators can unban accounts.[/]")
        ctx.exit(1)

    acct = board.lift_ban(account_id, actor)
    console.print(f"  [green]v[/] {acct.email} unbanned")


@main.command()
@click.option("--page", default=1, help="Page number")
@click.option("--limit", default=20, help="Items per page")
@click.pass_context
def flagged(ctx: click.Context, page: int, limit: int):
    """List flagged or hidden content awaiting review."""
    items, total = _board(ctx).review.flagged_content(page, limit)
    if not items:
        console.print("[green]Review queue is empty.[/]")
        return

    table = Table(title=f"Review queue ({total} items)")
    table.add_column("ID", style="dim")
    table.add_column("Reports", justify="right")
    table.add_column("Flagged", justify="center")
    table.add_column("Hidden", justify="center")
    table.add_column("Body")
    for c in items:
        table.add_row(
            c.id,
            str(c.report_count),
            "[red]Y[/]" if c.flagged else "N",
            "[yellow]Y[/]" if c.hidden else "N",
            c.body[:50],
        )
    console.print(table)


@main.command()
@click.pass_context
def sweep(ctx: click.Context):
    """Expire temporary bans and re-apply active ones (run from cron)."""
    expired, rehidden = _board(ctx).sweep()
    console.print(f"  Expired bans: {len(expired)}")
    console.print(f"  Re-hidden items: {rehidden}")


@main.command()
@click.option("--action", default=None, help="Filter by action, e.g. identity.resolved")
@click.option("--actor", default=None, help="Filter by actor id")
@click.option("--format", "fmt", default="table", type=click.Choice(["table", "json", "csv"]))
@click.option("--limit", default=50, help="Maximum events")
@click.pass_context
def audit(ctx: click.Context, action: str | None, actor: str | None, fmt: str, limit: int):
    """Show the security audit log."""
    log = _board(ctx).audit
    if fmt != "table":
        click.echo(log.export(fmt, action=action, actor=actor, limit=limit))
        return

    events = log.query(action=action, actor=actor, limit=limit)
    if not events:
        console.print("[yellow]No audit events.[/]")
        return

    table = Table(title=f"Audit log ({len(events)} events)")
    table.add_column("Time", style="dim")
    table.add_column("Actor")
    table.add_column("Action", style="cyan")
    table.add_column("Target")
    table.add_column("OK", justify="center")
    for e in events:
        table.add_row(
            e.timestamp[:19], e.actor, e.action, f"{e.target_type}/{e.target_id}",
            "[green]Y[/]" if e.success else "[red]N[/]",
        )
    console.print(table)


if __name__ == "__main__":
    main()
