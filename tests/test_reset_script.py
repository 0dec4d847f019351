from datetime import datetime, timezone

from movienight.schemas.cycles import DailyCycleOut
from scripts.reset_daily_cycle import _parse_cycle_id, _summary_lines


def test_parse_cycle_id_accepts_iso_dates():
    assert _parse_cycle_id("2026-10-18") == "2026-10-18"
    assert _parse_cycle_id("  2026-01-02 ") == "2026-01-02"


def test_parse_cycle_id_rejects_invalid_values():
    assert _parse_cycle_id(None) is None
    assert _parse_cycle_id("") is None
    assert _parse_cycle_id("yesterday") is None
    assert _parse_cycle_id("2026-13-01") is None


def test_summary_lines_for_dry_run_without_cycle():
    assert _summary_lines(apply=False, before=None, after=None) == [
        "mode: dry-run",
        "before: (no cycle)",
    ]


def test_summary_lines_after_apply():
    created = datetime(2026, 10, 18, tzinfo=timezone.utc)
    before = DailyCycleOut(
        id="2026-10-18",
        current_status="GATHERING_VOTES",
        decisions={"a": True, "b": False},
        created_at=created,
    )
    after = DailyCycleOut(id="2026-10-18", current_status="WAITING_FOR_DECISIONS", created_at=created)

    assert _summary_lines(apply=True, before=before, after=after) == [
        "mode: apply",
        "before: 2026-10-18 GATHERING_VOTES decisions=2 nominations=0 votes=0",
        "after: 2026-10-18 WAITING_FOR_DECISIONS",
    ]
