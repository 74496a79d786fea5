#!/usr/bin/env python3
"""
CLI tool for inspecting contests, user activity and creation requests.
"""

import asyncio
import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from core.errors import Error
from core.log import configure_logging

from .config import ContestQueryConfig
from .service import ContestQueryService

console = Console()


def _time_range(start: Optional[str], end: Optional[str]) -> Optional[dict]:
    if start is None and end is None:
        return None
    return {"from": start or "", "to": end or ""}


def _pagination(page_size: Optional[int], cursor: Optional[str]) -> dict:
    return {"page_size": page_size, "cursor": cursor}


def _parse_contracts(ctx, param, values) -> list[dict]:
    """Turn ``CHAIN_ID:ADDRESS`` pairs into chain + contract selector items."""
    items = []
    for value in values:
        chain, _, address = value.partition(":")
        try:
            chain_id = int(chain)
        except ValueError:
            raise click.BadParameter(f"expected CHAIN_ID:ADDRESS, got {value!r}") from None
        if not address:
            raise click.BadParameter(f"missing contract address in {value!r}")
        items.append({"chain_id": chain_id, "contract_address": address})
    return items


def _run(ctx: click.Context, operation):
    """Run ``operation(service)`` and print errors in red with a non-zero exit."""
    service: ContestQueryService = ctx.obj

    async def _call():
        try:
            return await operation(service)
        finally:
            await service.shutdown()

    try:
        return asyncio.run(_call())
    except Error as e:
        console.print(f"[red]ERROR:[/red] {escape(str(e))}")
        sys.exit(1)
    except SQLAlchemyError as e:
        console.print(f"[red]ERROR:[/red] Database error: {escape(str(e))}")
        sys.exit(2)


def _emit_json(result) -> None:
    click.echo(json.dumps(result.model_dump(by_alias=True, mode="json"), indent=2))


def _print_next_cursor(next_cursor: Optional[str]) -> None:
    if next_cursor:
        console.print(f"\nNext cursor: [cyan]{next_cursor}[/cyan]")


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


@click.group()
@click.option(
    "--database-url",
    envvar="DATABASE_URL",
    help="Database URL (can also be set via DATABASE_URL env var)",
)
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to contests.toml config file",
)
@click.option(
    "--supported-chain-ids",
    help="Comma separated chain ids accepted in filters",
)
@click.option("--log-file", help="Also write logs to this file")
@click.pass_context
def cli(ctx, database_url, config, supported_chain_ids, log_file):
    """Contest query CLI - browse contests and related activity."""
    if ctx.obj is not None:
        return

    argv = []
    if config:
        argv += ["--config", config]
    if database_url:
        argv += ["--database-url", database_url]
    if supported_chain_ids:
        argv += ["--supported-chain-ids", supported_chain_ids]
    if log_file:
        argv += ["--log-file", log_file]

    try:
        settings = ContestQueryConfig(argv)
    except Error as e:
        console.print(f"[red]ERROR:[/red] {escape(str(e))}")
        sys.exit(1)

    log_file = settings.settings.get("log_file")
    if log_file:
        configure_logging(log_file)

    ctx.obj = ContestQueryService.from_config(settings)


@cli.command("list")
@click.option("--contest-id", "contest_ids", multiple=True, help="Match a contest id")
@click.option("--internal-id", "internal_ids", multiple=True, help="Match an internal key")
@click.option(
    "--contract",
    "contracts",
    multiple=True,
    callback=_parse_contracts,
    metavar="CHAIN_ID:ADDRESS",
    help="Match a contract address on a chain",
)
@click.option("--chain-id", "chain_ids", type=int, multiple=True, help="Filter by chain")
@click.option("--status", "statuses", multiple=True, help="Filter by contest status")
@click.option("--from", "start", help="Time range start (ISO-8601)")
@click.option("--to", "end", help="Time range end (ISO-8601)")
@click.option("--keyword", help="Partial match on contract address or internal key")
@click.option("--participants", is_flag=True, help="Include participants")
@click.option("--rewards", is_flag=True, help="Include reward claims")
@click.option("--creator-summary", is_flag=True, help="Include creator summary")
@click.option(
    "--leaderboard",
    help="Include leaderboard: 'latest' or a version number",
)
@click.option("--page-size", type=int, help="Items per page (1-100)")
@click.option("--cursor", help="Cursor returned by the previous page")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_context
def list_contests(
    ctx,
    contest_ids,
    internal_ids,
    contracts,
    chain_ids,
    statuses,
    start,
    end,
    keyword,
    participants,
    rewards,
    creator_summary,
    leaderboard,
    page_size,
    cursor,
    as_json,
):
    """List contests, newest window first."""
    items = [{"contest_id": value} for value in contest_ids]
    items += [{"internal_id": value} for value in internal_ids]
    items += contracts
    contest_filter = {
        "chain_ids": list(chain_ids) or None,
        "statuses": list(statuses) or None,
        "time_range": _time_range(start, end),
        "keyword": keyword,
    }
    selector = {"items": items or None, "filter": contest_filter}

    includes = {
        "participants": participants,
        "rewards": rewards,
        "creator_summary": creator_summary,
    }
    if leaderboard:
        if leaderboard == "latest":
            includes["leaderboard"] = {"mode": "latest"}
        else:
            includes["leaderboard"] = {"mode": "version", "version": leaderboard}

    result = _run(
        ctx,
        lambda service: service.query_contests(
            selector, includes, _pagination(page_size, cursor)
        ),
    )

    if as_json:
        _emit_json(result)
        return

    if not result.items:
        console.print("No contests found.")
        return

    table = Table(title="Contests")
    table.add_column("Contest ID", style="cyan")
    table.add_column("Chain", style="magenta")
    table.add_column("Contract", style="white")
    table.add_column("Status", style="green")
    table.add_column("Window End", style="blue")
    if participants:
        table.add_column("Participants", style="yellow")
    if rewards:
        table.add_column("Claims", style="yellow")
    if leaderboard:
        table.add_column("Leaderboard", style="dim")

    for item in result.items:
        contest = item.contest
        row = [
            contest.contest_id,
            str(contest.chain_id),
            contest.contract_address,
            contest.status,
            _fmt_time(contest.time_window_end),
        ]
        if participants:
            row.append(str(len(item.participants or [])))
        if rewards:
            row.append(str(len(item.rewards or [])))
        if leaderboard:
            row.append(f"v{item.leaderboard.version}" if item.leaderboard else "-")
        table.add_row(*row)

    console.print(table)
    console.print(f"\nTotal: {len(result.items)} contest(s)")
    _print_next_cursor(result.next_cursor)


@cli.command("user")
@click.argument("user_id")
@click.option("--contest-id", "contest_ids", multiple=True, help="Restrict to contest ids")
@click.option("--chain-id", "chain_ids", type=int, multiple=True, help="Filter by chain")
@click.option("--status", "statuses", multiple=True, help="Filter by contest status")
@click.option("--from", "start", help="Time range start (ISO-8601)")
@click.option("--to", "end", help="Time range end (ISO-8601)")
@click.option("--page-size", type=int, help="Items per page (1-100)")
@click.option("--cursor", help="Cursor returned by the previous page")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_context
def user_contests(
    ctx, user_id, contest_ids, chain_ids, statuses, start, end, page_size, cursor, as_json
):
    """Contests USER_ID participated in or claimed rewards from."""
    filters = {
        "contest_ids": list(contest_ids) or None,
        "chain_ids": list(chain_ids) or None,
        "statuses": list(statuses) or None,
        "time_range": _time_range(start, end),
    }
    result = _run(
        ctx,
        lambda service: service.query_user_contests(
            user_id, filters, _pagination(page_size, cursor)
        ),
    )

    if as_json:
        _emit_json(result)
        return

    if not result.items:
        console.print(f"No contest activity for {user_id}.")
        return

    table = Table(title=f"Contests for {user_id}")
    table.add_column("Contest ID", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Participations", style="yellow")
    table.add_column("Claims", style="yellow")
    table.add_column("Last Activity", style="blue")
    for entry in result.items:
        table.add_row(
            entry.contest.contest_id,
            entry.contest.status,
            str(len(entry.participations)),
            str(len(entry.reward_claims)),
            _fmt_time(entry.last_activity),
        )

    console.print(table)
    _print_next_cursor(result.next_cursor)


@cli.command("creator")
@click.argument("user_id")
@click.option("--network-id", "network_ids", type=int, multiple=True, help="Filter by network")
@click.option("--page-size", type=int, help="Items per page (1-100)")
@click.option("--cursor", help="Cursor returned by the previous page")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_context
def creator_contests(ctx, user_id, network_ids, page_size, cursor, as_json):
    """Contest creation requests submitted by USER_ID."""
    filters = {"network_ids": list(network_ids) or None}
    result = _run(
        ctx,
        lambda service: service.query_creator_contests(
            user_id, filters, _pagination(page_size, cursor)
        ),
    )

    if as_json:
        _emit_json(result)
        return

    if not result.items:
        console.print(f"No creation requests for {user_id}.")
        return

    table = Table(title=f"Creation requests for {user_id}")
    table.add_column("Request ID", style="cyan")
    table.add_column("Network", style="magenta")
    table.add_column("Status", style="green")
    table.add_column("Contest ID", style="white")
    table.add_column("Created", style="dim")
    for record in result.items:
        table.add_row(
            record.request.request_id,
            str(record.request.network_id),
            record.status,
            record.contest.contest_id if record.contest else "-",
            _fmt_time(record.request.created_at),
        )

    console.print(table)
    _print_next_cursor(result.next_cursor)


@cli.command("wallets")
@click.option("--user-id", help="External user id")
@click.option("--wallet", "wallet_address", help="Wallet address")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_context
def wallet_bindings(ctx, user_id, wallet_address, as_json):
    """Active wallet bindings for a user and/or wallet."""
    bindings = _run(
        ctx,
        lambda service: service.lookup_user_wallets(
            user_id=user_id, wallet_address=wallet_address
        ),
    )

    if as_json:
        click.echo(
            json.dumps(
                [binding.model_dump(by_alias=True, mode="json") for binding in bindings],
                indent=2,
            )
        )
        return

    if not bindings:
        console.print("No wallet bindings found.")
        return

    table = Table(title="Wallet Bindings")
    table.add_column("User", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Wallet", style="white")
    table.add_column("Source", style="magenta")
    table.add_column("Bound", style="dim")
    for binding in bindings:
        table.add_row(
            binding.user_id,
            binding.user_status,
            binding.wallet_address_checksum,
            binding.source,
            _fmt_time(binding.bound_at),
        )
    console.print(table)


if __name__ == "__main__":
    cli()
