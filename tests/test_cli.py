"""Tests for the typer command-line interface."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from restock.cli import app
from restock.config import get_settings

runner = CliRunner()


def write_json(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def last_json(result):
    # Log lines may share the captured stream; the JSON payload is printed last.
    return json.loads(result.stdout.strip().splitlines()[-1])


def cart_line(name, quantity=1, price=1.0, available=True, **extra):
    line = {
        "name": name,
        "quantity": quantity,
        "unitPrice": price,
        "totalPrice": round(price * quantity, 2),
        "available": available,
    }
    line.update(extra)
    return line


def test_diff_command_outputs_json(tmp_path):
    previous = write_json(tmp_path / "prev.json", [cart_line("Milk 1L", 1), cart_line("Bread")])
    current = write_json(tmp_path / "curr.json", [cart_line("Milk 1L", 2)])

    result = runner.invoke(app, ["diff", str(previous), str(current)])

    assert result.exit_code == 0, result.output
    payload = last_json(result)
    assert payload["summary"]["removed_count"] == 1
    assert payload["summary"]["changed_count"] == 1


def test_rank_command(tmp_path):
    source = write_json(
        tmp_path / "rank.json",
        {
            "item": cart_line("Butter 250g", price=2.0, available=False, brand="Brand X", size="250g"),
            "candidates": [
                {"productId": "p-1", "name": "Butter 200g", "unitPrice": 1.8, "brand": "Brand Y", "size": "200g"},
                {"productId": "p-2", "name": "Margarine", "unitPrice": 1.2},
            ],
        },
    )

    result = runner.invoke(app, ["rank", str(source), "--max", "1"])

    assert result.exit_code == 0, result.output
    payload = last_json(result)
    assert [entry["candidate"]["product_id"] for entry in payload["substitutes"]] == ["p-1"]


def test_sync_history_then_review(tmp_path):
    records = write_json(
        tmp_path / "orders.json",
        {
            "records": [
                {"productName": "Milk 1L", "purchaseDate": "2025-03-14", "orderId": "o-3"},
                {"productName": "Milk 1L", "purchaseDate": "2025-03-07", "orderId": "o-2"},
                {"productName": "Milk 1L", "purchaseDate": "2025-02-28", "orderId": "o-1"},
            ]
        },
    )

    synced = runner.invoke(app, ["sync-history", str(records)])
    assert synced.exit_code == 0, synced.output
    assert "Synced 3 new record(s)" in synced.stdout
    stored = json.loads(get_settings().history_path.read_text(encoding="utf-8"))
    assert stored["syncedOrderIds"] == ["o-1", "o-2", "o-3"]

    resynced = runner.invoke(app, ["sync-history", str(records)])
    assert "Synced 0 new record(s)" in resynced.stdout

    session = write_json(
        tmp_path / "session.json",
        {"previous": [], "current": [cart_line("Milk 1L", 2, 0.89), cart_line("Saffron threads")]},
    )
    result = runner.invoke(app, ["review", str(session), "--date", "2025-03-15", "--no-llm"])

    assert result.exit_code == 0, result.output
    pack = last_json(result)
    assert [d["product_name"] for d in pack["pruning"]["recommended_removals"]] == ["Milk 1L"]
    assert pack["prune_enhancement"] is None


def test_review_rejects_invalid_input(tmp_path):
    session = write_json(tmp_path / "session.json", {"current": [{"name": "", "quantity": -1}]})

    result = runner.invoke(app, ["review", str(session), "--no-llm"])

    assert result.exit_code == 1


def test_review_reports_missing_current_cart(tmp_path):
    session = write_json(tmp_path / "session.json", {"previous": []})

    result = runner.invoke(app, ["review", str(session)])

    assert result.exit_code == 1
