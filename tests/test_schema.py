"""Tests for the Postgres functions backing the atomic units."""

import re
from pathlib import Path

MIGRATION = (
    Path(__file__).resolve().parents[1]
    / "supabase"
    / "migrations"
    / "0001_candid_schema.sql"
)


def _function_body(name: str) -> str:
    sql = MIGRATION.read_text()
    match = re.search(
        rf"create or replace function {name}\(.*?\$\$(.*?)\$\$;", sql, re.DOTALL
    )
    assert match is not None, name
    return " ".join(match.group(1).split())


def test_settlement_locks_photos_before_any_trade_row() -> None:
    body = _function_body("apply_trade_settlement")

    photos_lock = body.index(
        "from photos where id = any (v_photo_ids) order by id for update"
    )
    trade_lock = body.index("from trades where id = p_trade_id for update")
    overlapping_lock = body.index("order by id for update", trade_lock)
    invalidation = body.index("set status = 'rejected'")

    assert photos_lock < trade_lock < overlapping_lock < invalidation


def test_settlement_checks_ownership_before_moving_photos() -> None:
    body = _function_body("apply_trade_settlement")

    assert body.index("'ownership_changed'") < body.index("update photos p")
    assert body.index("'not_pending'") < body.index("update photos p")


def test_capture_decides_first_in_session_under_lock_before_insert() -> None:
    body = _function_body("capture_photo")

    session_lock = body.index("for share")
    capturer_lock = body.index("pg_advisory_xact_lock")
    first_check = body.index("select not exists")
    insert = body.index("insert into photos")

    assert session_lock < capturer_lock < first_check < insert
