"""Derive per-goal pipeline status from crawled tracking issues.

The derivation is a pure function of the plan's goals and a snapshot of the
crawled facts: RFC stages (when the tracking issue references an RFC) come
first, then the tracking issue itself, one stage per checklist line in body
order, and finally the issue's closure.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from .facts import FactSet, UrlFacts, load_url_facts, parse_tracking_url
from .github.models import Issue
from .output import write_yaml
from .plan import Goal, load_plan

logger = logging.getLogger(__name__)

RFC_REF_RE = re.compile(r"rust-lang/rfcs#(?P<number>\d+)")
RFC_URL_RE = re.compile(r"https://github\.com/rust-lang/rfcs/pull/(?P<number>\d+)")
RFC_PULL_URL_TEMPLATE = "https://github.com/rust-lang/rfcs/pull/{number}"

CHECKLIST_RE = re.compile(r"^\s*[*-] +\[(?P<mark>.)\] +(?P<description>.*)$")


class StageKind(str, Enum):
    RFC_FILED = "RfcFiled"
    RFC_FCP = "RfcFcp"
    RFC_ACCEPTED = "RfcAccepted"
    TRACKING_ISSUE_OPEN = "TrackingIssueOpen"
    TRACKING_TASK = "TrackingTask"
    ASSOCIATED_PULL = "AssociatedPull"
    TRACKING_ISSUE_FCP = "TrackingIssueFcp"
    TRACKING_ISSUE_CLOSED = "TrackingIssueClosed"


# TrackingTask is described by its own checklist text.
STAGE_DESCRIPTIONS: dict[StageKind, str] = {
    StageKind.RFC_FILED: "RFC filed",
    StageKind.RFC_FCP: "RFC entered FCP",
    StageKind.RFC_ACCEPTED: "RFC accepted",
    StageKind.TRACKING_ISSUE_OPEN: "Tracking issue opened",
    StageKind.ASSOCIATED_PULL: "Associated pull request",
    StageKind.TRACKING_ISSUE_FCP: "Tracking issue FCP",
    StageKind.TRACKING_ISSUE_CLOSED: "Tracking issue closed",
}


@dataclass(frozen=True, slots=True)
class PipelineStage:
    kind: StageKind
    task: str | None = None

    @classmethod
    def tracking_task(cls, description: str) -> PipelineStage:
        return cls(StageKind.TRACKING_TASK, description)

    @property
    def description(self) -> str:
        if self.kind is StageKind.TRACKING_TASK:
            return self.task or ""
        return STAGE_DESCRIPTIONS[self.kind]

    def to_data(self) -> Any:
        if self.kind is StageKind.TRACKING_TASK:
            return {self.kind.value: self.task}
        return self.kind.value


@dataclass(frozen=True, slots=True)
class StageStatus:
    stage: PipelineStage
    description: str
    url: str | None
    completed: bool

    def to_data(self) -> list[Any]:
        return [self.stage.to_data(), self.description, self.url, self.completed]


@dataclass(frozen=True, slots=True)
class PipelineStatus:
    completed: tuple[int, int]
    stages: tuple[StageStatus, ...]

    @classmethod
    def from_stages(cls, stages: Iterable[StageStatus]) -> PipelineStatus:
        stages = tuple(stages)
        done = sum(1 for s in stages if s.completed)
        return cls(completed=(done, len(stages)), stages=stages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed": list(self.completed),
            "stages": [s.to_data() for s in self.stages],
        }


@dataclass(frozen=True, slots=True)
class RfcInfo:
    number: int
    pull_url: str
    completed: bool

    def to_dict(self) -> dict[str, Any]:
        return {"num": self.number, "pr": self.pull_url, "completed": self.completed}


@dataclass(frozen=True, slots=True)
class GoalReport:
    rfc: RfcInfo | None
    fcp: str | None
    completed: bool
    last_updated: tuple[str, int] | None
    pipeline_status: PipelineStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "rfc": self.rfc.to_dict() if self.rfc else None,
            "fcp": self.fcp,
            "completed": self.completed,
            "last_updated": list(self.last_updated) if self.last_updated else None,
            "pipeline_status": self.pipeline_status.to_dict(),
        }


def parse_rfc_numbers(text: str) -> list[int]:
    numbers: list[int] = []
    for line in text.splitlines():
        match = RFC_REF_RE.search(line) or RFC_URL_RE.search(line)
        if match:
            numbers.append(int(match.group("number")))
    return numbers


def parse_checklist(body: str) -> list[tuple[str, bool]]:
    """Return (description, completed) for every checklist line of `body`.

    Any non-whitespace character between the brackets counts as done, so
    `[x]`, `[X]` and `[✓]` all complete a task.
    """
    steps: list[tuple[str, bool]] = []
    for line in body.splitlines():
        match = CHECKLIST_RE.match(line)
        if match:
            steps.append((match.group("description"), not match.group("mark").isspace()))
    return steps


def extract_rfc(facts: FactSet, *, url: str = "") -> RfcInfo | None:
    issue = facts.gh_issue
    if issue is None:
        return None

    numbers = parse_rfc_numbers(issue.body)
    if not numbers:
        return None
    if len(set(numbers)) > 1:
        logger.warning("multiple RFC candidates for %s: %s", url, numbers)

    number = numbers[0]
    # referenced from a tracking issue, so assumed accepted
    return RfcInfo(
        number=number,
        pull_url=RFC_PULL_URL_TEMPLATE.format(number=number),
        completed=True,
    )


def days_since(updated_at: datetime, now: datetime) -> int:
    return max(0, (now - updated_at).days)


def last_updated(issue: Issue, now: datetime) -> tuple[str, int]:
    return (issue.updated_at.strftime("%Y-%m-%d"), days_since(issue.updated_at, now))


def build_stages(facts: FactSet, rfc: RfcInfo | None, url: str) -> PipelineStatus:
    stages: list[tuple[PipelineStage, str | None, bool]] = []

    if rfc is not None:
        stages.append((PipelineStage(StageKind.RFC_FILED), rfc.pull_url, True))
        stages.append((PipelineStage(StageKind.RFC_FCP), rfc.pull_url, rfc.completed))
        stages.append((PipelineStage(StageKind.RFC_ACCEPTED), rfc.pull_url, rfc.completed))

    issue = facts.gh_issue
    if issue is not None:
        stages.append((PipelineStage(StageKind.TRACKING_ISSUE_OPEN), url, True))
        # TODO: follow URLs in task descriptions to check the linked work's state
        for description, done in parse_checklist(issue.body):
            stages.append((PipelineStage.tracking_task(description), None, done))
        stages.append(
            (PipelineStage(StageKind.TRACKING_ISSUE_CLOSED), url, issue.closed_at is not None)
        )
    else:
        stages.append((PipelineStage(StageKind.TRACKING_ISSUE_OPEN), None, False))
        stages.append((PipelineStage(StageKind.TRACKING_ISSUE_CLOSED), None, False))

    return PipelineStatus.from_stages(
        StageStatus(stage=stage, description=stage.description, url=stage_url, completed=done)
        for stage, stage_url, done in stages
    )


def derive(goal: Goal, url_facts: UrlFacts, now: datetime) -> GoalReport | None:
    url = parse_tracking_url(goal.tracking_link)
    if url is None:
        logger.warning("goal %s has an unparsable tracking link: %r", goal.id, goal.tracking_link)
        return None

    facts = url_facts.lookup(url)
    if facts is None:
        logger.warning("no crawl info for %s", url)
        return None

    rfc = extract_rfc(facts, url=url)
    return GoalReport(
        rfc=rfc,
        fcp=None,
        completed=False,
        last_updated=last_updated(facts.gh_issue, now) if facts.gh_issue else None,
        pipeline_status=build_stages(facts, rfc, url),
    )


def ponder_goals(
    goals: Iterable[Goal], url_facts: UrlFacts, *, now: datetime | None = None
) -> dict[str, GoalReport]:
    now = now or datetime.now(timezone.utc)
    reports: dict[str, GoalReport] = {}
    for goal in goals:
        logger.info("calculating goal for %s", goal.id)
        report = derive(goal, url_facts, now)
        if report is not None:
            reports[goal.id] = report
    return reports


def ponder(data_dir: str | Path) -> Path:
    plan = load_plan(data_dir)
    plan.validate()

    reports = ponder_goals(plan.goals, load_url_facts(data_dir))
    return write_yaml(
        "goals", {goal_id: report.to_dict() for goal_id, report in reports.items()}, data_dir
    )
