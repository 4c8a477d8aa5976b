"""Command-line interface for the restock decision engine."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from restock.agents.cart_differ import describe_diff, diff as diff_carts
from restock.agents.substitute_ranker import find_substitutes
from restock.config import get_settings
from restock.enhancement.adapter import EnhancementAdapter
from restock.history import HistoryFileError, load_history, save_history, sync
from restock.logging_utils import configure_logging
from restock.models.cart import CartItem, CartSnapshot
from restock.models.history import PurchaseRecord
from restock.models.slots import DeliverySlot, SlotPreferences
from restock.models.substitution import SubstituteCandidate
from restock.pipeline import ReviewSession

app = typer.Typer(help="Household reorder review commands.")


@app.callback()
def _configure() -> None:
    settings = get_settings()
    configure_logging(
        settings.log_level,
        settings.log_format,
        secrets=[settings.llm_api_key] if settings.llm_api_key else [],
    )


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _echo(payload: Any, pretty: bool) -> None:
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty, ensure_ascii=False))


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _snapshot(payload: Any) -> CartSnapshot:
    if isinstance(payload, list):
        return CartSnapshot.from_items(CartItem.model_validate(entry) for entry in payload)
    return CartSnapshot.model_validate(payload)


@app.command()
def review(
    input_path: Path = typer.Argument(..., help="Session JSON with previous/current carts."),
    history_path: Optional[Path] = typer.Option(
        None, "--history", help="Purchase history JSON (defaults to the configured path)."
    ),
    reference_date: Optional[str] = typer.Option(
        None, "--date", help="Reference date (YYYY-MM-DD); defaults to today."
    ),
    use_llm: bool = typer.Option(True, "--llm/--no-llm", help="Allow LLM enhancement."),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print output JSON."),
) -> None:
    """
    Build a Review Pack for a session file.

    The file holds ``previous`` and ``current`` carts and optionally ``candidates`` (item
    name to substitute list), ``slots`` and ``preferences``.
    """

    try:
        payload = _read_json(input_path)
        previous = _snapshot(payload.get("previous") or [])
        current = _snapshot(payload["current"])
        candidates = {
            name: [SubstituteCandidate.model_validate(entry) for entry in entries]
            for name, entries in (payload.get("candidates") or {}).items()
        }
        slots = [DeliverySlot.model_validate(entry) for entry in payload.get("slots") or []]
        preferences = SlotPreferences.model_validate(payload.get("preferences") or {})
        when = date.fromisoformat(reference_date) if reference_date else None
        history = load_history(history_path)
    except KeyError as exc:
        _fail(f"Session file is missing {exc}.")
        return
    except (ValidationError, ValueError, HistoryFileError) as exc:
        _fail(f"Invalid input: {exc}")
        return

    session = ReviewSession(
        slot_preferences=preferences,
        adapter=None if use_llm else EnhancementAdapter(None),
    )
    pack = session.run(
        previous,
        current,
        history.records,
        candidates_by_item=candidates,
        slots=slots,
        reference_date=when,
    )
    _echo(pack.model_dump(mode="json"), pretty)


@app.command()
def diff(
    previous_path: Path = typer.Argument(..., help="Previous cart snapshot JSON."),
    current_path: Path = typer.Argument(..., help="Current cart snapshot JSON."),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print output JSON."),
) -> None:
    """Compare two cart snapshots."""

    try:
        previous = _snapshot(_read_json(previous_path))
        current = _snapshot(_read_json(current_path))
    except (ValidationError, ValueError) as exc:
        _fail(f"Invalid cart snapshot: {exc}")
        return

    result = diff_carts(previous, current)
    typer.secho(describe_diff(result), fg=typer.colors.CYAN, err=True)
    _echo(result.model_dump(mode="json"), pretty)


@app.command()
def rank(
    input_path: Path = typer.Argument(..., help="JSON with an unavailable `item` and `candidates`."),
    max_substitutes: Optional[int] = typer.Option(None, "--max", min=1, help="Results to keep."),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print output JSON."),
) -> None:
    """Rank substitute candidates for one unavailable item."""

    try:
        payload = _read_json(input_path)
        item = CartItem.model_validate(payload["item"])
        candidates = [SubstituteCandidate.model_validate(entry) for entry in payload.get("candidates") or []]
    except KeyError as exc:
        _fail(f"Input file is missing {exc}.")
        return
    except (ValidationError, ValueError) as exc:
        _fail(f"Invalid input: {exc}")
        return

    limit = max_substitutes or get_settings().max_substitutes
    result = find_substitutes(item, candidates, max_substitutes=limit)
    _echo(result.model_dump(mode="json"), pretty)


@app.command("sync-history")
def sync_history(
    records_path: Path = typer.Argument(..., help="JSON with new `records` and optional `orderIds`."),
    history_path: Optional[Path] = typer.Option(
        None, "--history", help="Purchase history JSON (defaults to the configured path)."
    ),
) -> None:
    """Merge newly scraped purchase records into the history document."""

    try:
        payload = _read_json(records_path)
        if isinstance(payload, list):
            payload = {"records": payload}
        records = [PurchaseRecord.model_validate(entry) for entry in payload.get("records") or []]
        order_ids = payload.get("orderIds") or sorted({record.order_id for record in records})
        document = load_history(history_path)
    except (ValidationError, ValueError, HistoryFileError) as exc:
        _fail(f"Unable to sync history: {exc}")
        return

    before = len(document.records)
    updated = sync(document, records, order_ids)
    target = save_history(updated, history_path)
    typer.echo(
        f"Synced {len(updated.records) - before} new record(s); "
        f"{len(updated.records)} total across {updated.orders_count} order(s) -> {target}"
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for `python -m restock`."""
    app(prog_name="restock", args=argv)


if __name__ == "__main__":
    main()
