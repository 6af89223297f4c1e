from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

PullRequestUrls = Mapping[str, str]


def _expect_dict(value: Any, *, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{where} must be an object")
    return value


def _expect_str(value: Any, *, where: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{where} must be a string")
    return value


def _expect_int(value: Any, *, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{where} must be an integer")
    return value


def _expect_optional_str(value: Any, *, where: str) -> str | None:
    if value is None:
        return None
    return _expect_str(value, where=where)


def _clean(text: str) -> str:
    return text.replace("\x00", "")


def parse_timestamp(value: Any, *, where: str) -> datetime:
    raw = _expect_str(value, where=where).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError as error:
        raise ValueError(f"{where} is not an ISO 8601 timestamp: {value!r}") from error
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_optional_timestamp(value: Any, *, where: str) -> datetime | None:
    if value is None:
        return None
    return parse_timestamp(value, where=where)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _format_optional_timestamp(value: datetime | None) -> str | None:
    return format_timestamp(value) if value is not None else None


@dataclass(frozen=True, slots=True)
class GitHubUser:
    id: int
    login: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "login": self.login}


def user_from_json(data: Any, *, where: str = "user") -> GitHubUser:
    obj = _expect_dict(data, where=where)
    return GitHubUser(
        id=_expect_int(obj.get("id"), where=f"{where}.id"),
        login=_expect_str(obj.get("login"), where=f"{where}.login"),
    )


def _optional_user(data: Any, *, where: str) -> GitHubUser | None:
    if data is None:
        return None
    return user_from_json(data, where=where)


@dataclass(frozen=True, slots=True)
class Milestone:
    id: int
    number: int
    state: str
    title: str
    description: str | None
    open_issues: int
    closed_issues: int
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    due_on: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "state": self.state,
            "title": self.title,
            "description": self.description,
            "open_issues": self.open_issues,
            "closed_issues": self.closed_issues,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "closed_at": _format_optional_timestamp(self.closed_at),
            "due_on": _format_optional_timestamp(self.due_on),
        }


def milestone_from_json(data: Any, *, where: str = "milestone") -> Milestone:
    obj = _expect_dict(data, where=where)
    description = _expect_optional_str(obj.get("description"), where=f"{where}.description")
    return Milestone(
        id=_expect_int(obj.get("id"), where=f"{where}.id"),
        number=_expect_int(obj.get("number"), where=f"{where}.number"),
        state=_expect_str(obj.get("state"), where=f"{where}.state"),
        title=_clean(_expect_str(obj.get("title"), where=f"{where}.title")),
        description=_clean(description) if description is not None else None,
        open_issues=_expect_int(obj.get("open_issues", 0), where=f"{where}.open_issues"),
        closed_issues=_expect_int(obj.get("closed_issues", 0), where=f"{where}.closed_issues"),
        created_at=parse_timestamp(obj.get("created_at"), where=f"{where}.created_at"),
        updated_at=parse_timestamp(obj.get("updated_at"), where=f"{where}.updated_at"),
        closed_at=_parse_optional_timestamp(obj.get("closed_at"), where=f"{where}.closed_at"),
        due_on=_parse_optional_timestamp(obj.get("due_on"), where=f"{where}.due_on"),
    )


@dataclass(frozen=True, slots=True)
class Issue:
    number: int
    title: str
    state: str
    body: str
    user: GitHubUser
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    assignee: GitHubUser | None = None
    labels: tuple[str, ...] = ()
    milestone: Milestone | None = None
    locked: bool = False
    comments: int = 0
    pull_request: PullRequestUrls | None = None
    comments_url: str | None = None
    html_url: str | None = None

    @property
    def open(self) -> bool:
        return self.state == "open"

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None

    def to_dict(self) -> dict[str, Any]:
        """Render back into the shape of a GitHub issue payload."""
        return {
            "number": self.number,
            "title": self.title,
            "state": self.state,
            "body": self.body,
            "user": self.user.to_dict(),
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "labels": [{"name": name} for name in self.labels],
            "milestone": self.milestone.to_dict() if self.milestone else None,
            "locked": self.locked,
            "comments": self.comments,
            "pull_request": dict(self.pull_request) if self.pull_request is not None else None,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "closed_at": _format_optional_timestamp(self.closed_at),
            "comments_url": self.comments_url,
            "html_url": self.html_url,
        }


def _labels(value: Any, *, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise TypeError(f"{where} must be an array")
    names: list[str] = []
    for idx, item in enumerate(value):
        if isinstance(item, str):
            names.append(item)
        else:
            label = _expect_dict(item, where=f"{where}[{idx}]")
            names.append(_expect_str(label.get("name"), where=f"{where}[{idx}].name"))
    return tuple(names)


def _pull_request_urls(value: Any, *, where: str) -> PullRequestUrls | None:
    if value is None:
        return None
    obj = _expect_dict(value, where=where)
    return {str(k): v for k, v in obj.items() if isinstance(v, str)}


def issue_from_json(data: Any, *, where: str = "issue") -> Issue:
    obj = _expect_dict(data, where=where)
    body = _expect_optional_str(obj.get("body"), where=f"{where}.body")
    milestone = obj.get("milestone")
    return Issue(
        number=_expect_int(obj.get("number"), where=f"{where}.number"),
        title=_clean(_expect_str(obj.get("title"), where=f"{where}.title")),
        state=_expect_str(obj.get("state"), where=f"{where}.state"),
        body=_clean(body or ""),
        user=user_from_json(obj.get("user"), where=f"{where}.user"),
        assignee=_optional_user(obj.get("assignee"), where=f"{where}.assignee"),
        labels=_labels(obj.get("labels"), where=f"{where}.labels"),
        milestone=milestone_from_json(milestone, where=f"{where}.milestone")
        if milestone is not None
        else None,
        locked=bool(obj.get("locked", False)),
        comments=_expect_int(obj.get("comments", 0), where=f"{where}.comments"),
        pull_request=_pull_request_urls(obj.get("pull_request"), where=f"{where}.pull_request"),
        created_at=parse_timestamp(obj.get("created_at"), where=f"{where}.created_at"),
        updated_at=parse_timestamp(obj.get("updated_at"), where=f"{where}.updated_at"),
        closed_at=_parse_optional_timestamp(obj.get("closed_at"), where=f"{where}.closed_at"),
        comments_url=_expect_optional_str(obj.get("comments_url"), where=f"{where}.comments_url"),
        html_url=_expect_optional_str(obj.get("html_url"), where=f"{where}.html_url"),
    )


@dataclass(frozen=True, slots=True)
class Comment:
    id: int
    html_url: str
    body: str
    user: GitHubUser
    created_at: datetime
    updated_at: datetime

    @property
    def issue_number(self) -> int | None:
        # https://github.com/<owner>/<repo>/issues/<n>#issuecomment-<id>
        tail = self.html_url.split("#", 1)[0].rstrip("/").rsplit("/", 1)[-1]
        try:
            return int(tail)
        except ValueError:
            return None


def comment_from_json(data: Any, *, where: str = "comment") -> Comment:
    obj = _expect_dict(data, where=where)
    return Comment(
        id=_expect_int(obj.get("id"), where=f"{where}.id"),
        html_url=_expect_str(obj.get("html_url"), where=f"{where}.html_url"),
        body=_clean(_expect_str(obj.get("body") or "", where=f"{where}.body")),
        user=user_from_json(obj.get("user"), where=f"{where}.user"),
        created_at=parse_timestamp(obj.get("created_at"), where=f"{where}.created_at"),
        updated_at=parse_timestamp(obj.get("updated_at"), where=f"{where}.updated_at"),
    )


@dataclass(frozen=True, slots=True)
class PullRequest:
    number: int
    state: str
    title: str
    body: str | None
    locked: bool
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    merged_at: datetime | None = None
    assignee: GitHubUser | None = None
    milestone: Milestone | None = None
    review_comments_url: str | None = None
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0

    @property
    def merged(self) -> bool:
        return self.merged_at is not None


def pull_request_from_json(data: Any, *, where: str = "pull_request") -> PullRequest:
    obj = _expect_dict(data, where=where)
    body = _expect_optional_str(obj.get("body"), where=f"{where}.body")
    milestone = obj.get("milestone")
    return PullRequest(
        number=_expect_int(obj.get("number"), where=f"{where}.number"),
        state=_clean(_expect_str(obj.get("state"), where=f"{where}.state")),
        title=_clean(_expect_str(obj.get("title"), where=f"{where}.title")),
        body=_clean(body) if body is not None else None,
        locked=bool(obj.get("locked", False)),
        created_at=parse_timestamp(obj.get("created_at"), where=f"{where}.created_at"),
        updated_at=parse_timestamp(obj.get("updated_at"), where=f"{where}.updated_at"),
        closed_at=_parse_optional_timestamp(obj.get("closed_at"), where=f"{where}.closed_at"),
        merged_at=_parse_optional_timestamp(obj.get("merged_at"), where=f"{where}.merged_at"),
        assignee=_optional_user(obj.get("assignee"), where=f"{where}.assignee"),
        milestone=milestone_from_json(milestone, where=f"{where}.milestone")
        if milestone is not None
        else None,
        review_comments_url=_expect_optional_str(
            obj.get("review_comments_url"), where=f"{where}.review_comments_url"
        ),
        commits=_expect_int(obj.get("commits", 0), where=f"{where}.commits"),
        additions=_expect_int(obj.get("additions", 0), where=f"{where}.additions"),
        deletions=_expect_int(obj.get("deletions", 0), where=f"{where}.deletions"),
        changed_files=_expect_int(obj.get("changed_files", 0), where=f"{where}.changed_files"),
    )
