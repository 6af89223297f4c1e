from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from battleplan.facts import FactSet, UrlFacts
from battleplan.github.models import GitHubUser, Issue
from battleplan.plan import Goal
from battleplan.ponder import (
    STAGE_DESCRIPTIONS,
    PipelineStage,
    PipelineStatus,
    StageKind,
    StageStatus,
    build_stages,
    days_since,
    extract_rfc,
    parse_checklist,
    ponder_goals,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
TRACKING_URL = "https://github.com/rust-lang/rust/issues/34511"


def _issue(body: str, *, updated_at: datetime | None = None, closed_at: datetime | None = None) -> Issue:
    return Issue(
        number=34511,
        title="Tracking issue for `impl Trait`",
        state="closed" if closed_at else "open",
        body=body,
        user=GitHubUser(id=1, login="nikomatsakis"),
        created_at=datetime(2016, 6, 27, tzinfo=timezone.utc),
        updated_at=updated_at or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
        closed_at=closed_at,
    )


def _goal(goal_id: str = "impl-trait", link: str = TRACKING_URL) -> Goal:
    return Goal(
        id=goal_id,
        goal="Stabilize impl Trait",
        pitch="Return unboxed closures",
        theme="expressiveness",
        tracking_link=link,
        release="2026",
    )


def _facts(body: str, **kwargs) -> UrlFacts:  # noqa: ANN003
    return UrlFacts({TRACKING_URL: FactSet(gh_issue=_issue(body, **kwargs))})


def test_detects_single_rfc_reference() -> None:
    rfc = extract_rfc(FactSet(gh_issue=_issue("See rust-lang/rfcs#1234 for details")))

    assert rfc is not None
    assert rfc.number == 1234
    assert rfc.completed is True
    assert rfc.pull_url == "https://github.com/rust-lang/rfcs/pull/1234"


def test_detects_rfc_pull_url() -> None:
    rfc = extract_rfc(
        FactSet(gh_issue=_issue("RFC: https://github.com/rust-lang/rfcs/pull/1522"))
    )
    assert rfc is not None and rfc.number == 1522


def test_ambiguous_rfc_uses_first_and_warns(caplog: pytest.LogCaptureFixture) -> None:
    body = "Implements rust-lang/rfcs#12\nAmended by https://github.com/rust-lang/rfcs/pull/34\n"

    with caplog.at_level(logging.WARNING, logger="battleplan.ponder"):
        rfc = extract_rfc(FactSet(gh_issue=_issue(body)), url=TRACKING_URL)

    assert rfc is not None and rfc.number == 12
    assert "multiple RFC candidates" in caplog.text
    assert "[12, 34]" in caplog.text


def test_repeated_rfc_reference_is_not_ambiguous(caplog: pytest.LogCaptureFixture) -> None:
    body = "Implements rust-lang/rfcs#12\nsee https://github.com/rust-lang/rfcs/pull/12\n"

    with caplog.at_level(logging.WARNING, logger="battleplan.ponder"):
        rfc = extract_rfc(FactSet(gh_issue=_issue(body)), url=TRACKING_URL)

    assert rfc is not None and rfc.number == 12
    assert "multiple RFC candidates" not in caplog.text


def test_no_rfc_without_reference_or_issue() -> None:
    assert extract_rfc(FactSet(gh_issue=_issue("no proposal here, see rust-lang/rust#1"))) is None
    assert extract_rfc(FactSet(gh_issue=None)) is None


def test_checklist_lines_in_document_order() -> None:
    body = "Steps:\n- [ ] task A\n- [x] task B\n"
    assert parse_checklist(body) == [("task A", False), ("task B", True)]


def test_checklist_accepts_any_mark_and_indentation() -> None:
    body = "\n".join(
        [
            "* [X] star bullet",
            "    - [✓] nested, unicode mark",
            "  -  [ ]   padded",
            "-[x] no space after bullet",
            "- [xx] two chars",
            "1. [x] numbered",
            "- [\t] tab mark",
        ]
    )
    assert parse_checklist(body) == [
        ("star bullet", True),
        ("nested, unicode mark", True),
        ("padded", False),
        ("tab mark", False),
    ]


def test_build_stages_with_rfc_and_tasks() -> None:
    facts = FactSet(
        gh_issue=_issue(
            "Implements rust-lang/rfcs#1522\n- [x] implement\n- [ ] document\n",
            closed_at=None,
        )
    )
    rfc = extract_rfc(facts)
    status = build_stages(facts, rfc, TRACKING_URL)

    rfc_url = "https://github.com/rust-lang/rfcs/pull/1522"
    assert [(s.stage, s.description, s.url, s.completed) for s in status.stages] == [
        (PipelineStage(StageKind.RFC_FILED), "RFC filed", rfc_url, True),
        (PipelineStage(StageKind.RFC_FCP), "RFC entered FCP", rfc_url, True),
        (PipelineStage(StageKind.RFC_ACCEPTED), "RFC accepted", rfc_url, True),
        (PipelineStage(StageKind.TRACKING_ISSUE_OPEN), "Tracking issue opened", TRACKING_URL, True),
        (PipelineStage.tracking_task("implement"), "implement", None, True),
        (PipelineStage.tracking_task("document"), "document", None, False),
        (PipelineStage(StageKind.TRACKING_ISSUE_CLOSED), "Tracking issue closed", TRACKING_URL, False),
    ]
    assert status.completed == (5, 7)


def test_build_stages_without_issue() -> None:
    status = build_stages(FactSet(gh_issue=None), None, TRACKING_URL)

    assert [(s.stage.kind, s.url, s.completed) for s in status.stages] == [
        (StageKind.TRACKING_ISSUE_OPEN, None, False),
        (StageKind.TRACKING_ISSUE_CLOSED, None, False),
    ]
    assert status.completed == (0, 2)


def test_closed_issue_completes_last_stage() -> None:
    closed = datetime(2026, 3, 2, tzinfo=timezone.utc)
    status = build_stages(FactSet(gh_issue=_issue("", closed_at=closed)), None, TRACKING_URL)
    assert status.stages[-1].completed is True
    assert status.completed == (2, 2)


def test_completion_counting() -> None:
    stage = PipelineStage(StageKind.TRACKING_ISSUE_OPEN)
    status = PipelineStatus.from_stages(
        StageStatus(stage=stage, description="x", url=None, completed=done)
        for done in (True, True, False, True)
    )
    assert status.completed == (3, 4)


def test_every_stage_kind_has_a_description() -> None:
    assert set(STAGE_DESCRIPTIONS) == set(StageKind) - {StageKind.TRACKING_TASK}
    assert PipelineStage.tracking_task("write docs").description == "write docs"


def test_days_since_clamps_clock_skew() -> None:
    assert days_since(NOW + timedelta(hours=5), NOW) == 0
    assert days_since(NOW - timedelta(days=2, hours=23), NOW) == 2


def test_future_update_reports_zero_days() -> None:
    reports = ponder_goals([_goal()], _facts("", updated_at=NOW + timedelta(days=3)), now=NOW)
    assert reports["impl-trait"].last_updated == ("2026-03-13", 0)


def test_ponder_goals_builds_report() -> None:
    reports = ponder_goals(
        [_goal()], _facts("Implements rust-lang/rfcs#1522\n- [ ] stabilize"), now=NOW
    )

    report = reports["impl-trait"]
    assert report.rfc is not None and report.rfc.number == 1522
    assert report.fcp is None
    assert report.completed is False
    assert report.last_updated == ("2026-03-01", 9)
    assert report.pipeline_status.completed == (4, 6)

    data = report.to_dict()
    assert data["pipeline_status"]["stages"][4] == [{"TrackingTask": "stabilize"}, "stabilize", None, False]
    assert data["pipeline_status"]["stages"][0][0] == "RfcFiled"


def test_missing_facts_are_omitted_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    other = "https://github.com/rust-lang/rust/issues/1"
    with caplog.at_level(logging.WARNING, logger="battleplan.ponder"):
        reports = ponder_goals(
            [_goal(), _goal("other", other)], _facts("- [x] done"), now=NOW
        )

    assert list(reports) == ["impl-trait"]
    assert f"no crawl info for {other}" in caplog.text


def test_unparsable_tracking_link_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="battleplan.ponder"):
        reports = ponder_goals([_goal("bogus", "not a url"), _goal()], _facts(""), now=NOW)

    assert list(reports) == ["impl-trait"]
    assert "unparsable tracking link" in caplog.text


def test_derivation_is_idempotent() -> None:
    facts = _facts("rust-lang/rfcs#7\n- [x] a\n- [ ] b\n* [-] c")
    first = ponder_goals([_goal()], facts, now=NOW)
    second = ponder_goals([_goal()], facts, now=NOW)

    assert first == second
    assert first["impl-trait"].to_dict() == second["impl-trait"].to_dict()
