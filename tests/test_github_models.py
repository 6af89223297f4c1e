from __future__ import annotations

from datetime import datetime, timezone

import pytest

from battleplan.github.models import comment_from_json, issue_from_json


def _payload(**overrides):  # noqa: ANN003, ANN202
    payload = {
        "number": 34511,
        "title": "Tracking issue for `impl Trait`\x00",
        "state": "closed",
        "body": "- [x] parse\x00 it",
        "user": {"id": 1, "login": "nikomatsakis"},
        "assignee": None,
        "labels": [{"name": "C-tracking-issue", "color": "f5f1fd"}],
        "milestone": None,
        "locked": False,
        "comments": 12,
        "created_at": "2016-06-27T17:00:00Z",
        "updated_at": "2026-01-05T08:30:00Z",
        "closed_at": "2026-01-05T08:30:00Z",
        "comments_url": "https://api.github.com/repos/rust-lang/rust/issues/34511/comments",
    }
    payload.update(overrides)
    return payload


def test_issue_from_json_normalizes_text_and_state() -> None:
    issue = issue_from_json(_payload())

    assert issue.title == "Tracking issue for `impl Trait`"
    assert issue.body == "- [x] parse it"
    assert issue.labels == ("C-tracking-issue",)
    assert issue.open is False
    assert issue.is_pull_request is False
    assert issue.updated_at == datetime(2026, 1, 5, 8, 30, tzinfo=timezone.utc)


def test_issue_with_pull_request_refs_and_missing_body() -> None:
    issue = issue_from_json(
        _payload(
            body=None,
            state="open",
            closed_at=None,
            pull_request={"url": "https://api.github.com/repos/rust-lang/rust/pulls/1"},
        )
    )

    assert issue.body == ""
    assert issue.open is True
    assert issue.is_pull_request is True
    assert issue.closed_at is None


def test_issue_dict_round_trip() -> None:
    issue = issue_from_json(_payload())
    assert issue_from_json(issue.to_dict()) == issue


def test_issue_from_json_rejects_bad_timestamp() -> None:
    with pytest.raises(ValueError):
        issue_from_json(_payload(updated_at="yesterday"))


def test_comment_issue_number_from_html_url() -> None:
    comment = comment_from_json(
        {
            "id": 5,
            "html_url": "https://github.com/rust-lang/rust/issues/34511#issuecomment-5",
            "body": "nominating",
            "user": {"id": 3, "login": "someone"},
            "created_at": "2026-01-01T00:00:00Z",
            "updated_at": "2026-01-01T00:00:00Z",
        }
    )
    assert comment.issue_number == 34511

    odd = comment_from_json(
        {
            "id": 6,
            "html_url": "https://github.com/rust-lang/rust/commit/abc#commitcomment-6",
            "body": "",
            "user": {"id": 3, "login": "someone"},
            "created_at": "2026-01-01T00:00:00Z",
            "updated_at": "2026-01-01T00:00:00Z",
        }
    )
    assert odd.issue_number is None
