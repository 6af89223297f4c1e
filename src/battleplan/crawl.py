from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .facts import FactSet, UrlFacts, load_url_facts, parse_tracking_url, save_url_facts
from .github.client import GitHubApiError, GitHubClient
from .plan import Battleplan, load_plan

logger = logging.getLogger(__name__)

ISSUE_URL_RE = re.compile(
    r"^https?://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/issues/(?P<number>\d+)/?$"
)


@dataclass(frozen=True, slots=True)
class CrawlSummary:
    fetched: int
    skipped: int
    failed: int


def parse_issue_url(url: str) -> tuple[str, str, int] | None:
    match = ISSUE_URL_RE.match(url)
    if match is None:
        return None
    return match.group("owner"), match.group("repo"), int(match.group("number"))


def crawl_plan(plan: Battleplan, client: GitHubClient, url_facts: UrlFacts) -> CrawlSummary:
    """Fetch the tracking issue of every goal into `url_facts`.

    A goal whose fetch fails keeps whatever facts were recorded for it before.
    """
    fetched = skipped = failed = 0

    for goal in plan.goals:
        url = parse_tracking_url(goal.tracking_link)
        if url is None:
            logger.warning("goal %s has an unparsable tracking link: %r", goal.id, goal.tracking_link)
            skipped += 1
            continue

        issue_ref = parse_issue_url(url)
        if issue_ref is None:
            logger.info("goal %s: %s is not a GitHub issue, skipping", goal.id, url)
            skipped += 1
            continue

        owner, repo, number = issue_ref
        logger.info("crawling %s/%s#%d for goal %s", owner, repo, number, goal.id)
        try:
            issue = client.fetch_issue(owner, repo, number)
        except GitHubApiError as error:
            logger.error("failed to crawl %s: %s", url, error)
            failed += 1
            continue

        url_facts.record(url, FactSet(gh_issue=issue))
        fetched += 1

    logger.info("crawl finished: %d fetched, %d skipped, %d failed", fetched, skipped, failed)
    return CrawlSummary(fetched=fetched, skipped=skipped, failed=failed)


def crawl(data_dir: str | Path, client: GitHubClient) -> CrawlSummary:
    plan = load_plan(data_dir)
    plan.validate()

    url_facts = load_url_facts(data_dir)
    summary = crawl_plan(plan, client, url_facts)
    save_url_facts(url_facts, data_dir)
    return summary
