from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Mapping, TypeVar

import requests

from .models import (
    Comment,
    Issue,
    PullRequest,
    PullRequestUrls,
    comment_from_json,
    format_timestamp,
    issue_from_json,
    pull_request_from_json,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "rust battleplan (banderson@mozilla.com)"
ACCEPT = "application/vnd.github.v3+json"

PER_PAGE = 100
DELAY_SEC = 0.3

ErrorKind = Literal["transport", "http", "decode"]

M = TypeVar("M")


@dataclass(frozen=True, slots=True)
class ClientConfig:
    user_agent: str = DEFAULT_USER_AGENT
    token: str | None = None
    base_url: str = BASE_URL
    delay_sec: float = DELAY_SEC
    timeout_sec: float = 30.0


def load_client_config(env: Mapping[str, str] | None = None) -> ClientConfig:
    if env is None:
        env = os.environ

    return ClientConfig(
        user_agent=env.get("GITHUB_USER_AGENT") or DEFAULT_USER_AGENT,
        token=env.get("GITHUB_TOKEN") or None,
        base_url=(env.get("GITHUB_BASE_URL") or BASE_URL).rstrip("/"),
    )


@dataclass(frozen=True, slots=True)
class RateLimitInfo:
    limit: int | None = None
    remaining: int | None = None
    reset: int | None = None
    resource: str | None = None

    @property
    def exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0


class GitHubApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        status: int,
        url: str,
        rate_limit: RateLimitInfo | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.url = url
        self.rate_limit = rate_limit

    def __str__(self) -> str:
        return f"{self.kind} error ({self.status}) for {self.url}: {self.args[0]}"


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_rate_limit(headers: Mapping[str, str]) -> RateLimitInfo | None:
    limit = _parse_int(headers.get("X-RateLimit-Limit"))
    remaining = _parse_int(headers.get("X-RateLimit-Remaining"))
    reset = _parse_int(headers.get("X-RateLimit-Reset"))
    resource = headers.get("X-RateLimit-Resource")

    if limit is None and remaining is None and reset is None and resource is None:
        return None
    return RateLimitInfo(limit=limit, remaining=remaining, reset=reset, resource=resource)


def next_page_url(link_header: str | None) -> str | None:
    """Return the target of the `rel="next"` entry of a Link header, if any."""
    if not link_header:
        return None
    for link in link_header.split(","):
        target, _, params = link.strip().partition(";")
        rels = [p.strip() for p in params.split(";")]
        if 'rel="next"' in rels:
            return target.strip().lstrip("<").rstrip(">")
    return None


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    message = payload.get("message") if isinstance(payload, dict) else None
    return str(message or f"GitHub API request failed ({response.status_code})")


class GitHubClient:
    """Sequential, throttled client for the GitHub REST API.

    Every request waits `config.delay_sec` first; when the last response
    reported an exhausted quota the client also sleeps until the reported
    reset time. Multi-page results are only returned once every page has
    been fetched and decoded.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep

        self.last_rate_limit: RateLimitInfo | None = None

    def _headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": self._config.user_agent,
            "Accept": ACCEPT,
            "Time-Zone": "UTC",
        }
        if self._config.token:
            headers["Authorization"] = f"token {self._config.token}"
        return headers

    def _throttle(self) -> None:
        rate_limit = self.last_rate_limit
        if rate_limit is not None and rate_limit.exhausted and rate_limit.reset is not None:
            wait = rate_limit.reset - self._clock()
            if wait > 0:
                logger.info("rate limit exhausted, waiting %.0fs for reset", wait)
                self._sleep(wait)
        self._sleep(self._config.delay_sec)

    def _get(self, url: str, params: Mapping[str, Any] | None = None) -> requests.Response:
        self._throttle()
        logger.debug("GET %s %s", url, dict(params) if params else "")

        try:
            response = self._session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self._config.timeout_sec,
            )
        except requests.RequestException as error:
            raise GitHubApiError(
                str(error),
                kind="transport",
                status=0,
                url=url,
                rate_limit=self.last_rate_limit,
            ) from error

        rate_limit = _parse_rate_limit(response.headers)
        if rate_limit is not None:
            self.last_rate_limit = rate_limit

        if not 200 <= response.status_code < 300:
            raise GitHubApiError(
                _error_message(response),
                kind="http",
                status=response.status_code,
                url=url,
                rate_limit=rate_limit,
            )
        return response

    def _get_json(self, url: str, params: Mapping[str, Any] | None = None) -> tuple[Any, requests.Response]:
        response = self._get(url, params)
        try:
            return response.json(), response
        except ValueError as error:
            raise GitHubApiError(
                "response body is not valid JSON",
                kind="decode",
                status=response.status_code,
                url=url,
                rate_limit=self.last_rate_limit,
            ) from error

    def _decode(self, parse: Callable[[Any], M], payload: Any, *, url: str, status: int) -> M:
        try:
            return parse(payload)
        except (KeyError, TypeError, ValueError) as error:
            raise GitHubApiError(
                f"unexpected payload: {error}",
                kind="decode",
                status=status,
                url=url,
                rate_limit=self.last_rate_limit,
            ) from error

    def get_models(
        self,
        start_url: str,
        params: Mapping[str, Any],
        parse: Callable[[Any], M],
    ) -> list[M]:
        """Fetch every page starting at `start_url`, following `rel="next"` links."""
        items: list[M] = []
        url: str | None = start_url
        query: Mapping[str, Any] | None = params
        pages = 0

        while url is not None:
            payload, response = self._get_json(url, query)
            if not isinstance(payload, list):
                raise GitHubApiError(
                    "expected a JSON array page",
                    kind="decode",
                    status=response.status_code,
                    url=url,
                    rate_limit=self.last_rate_limit,
                )
            for item in payload:
                items.append(self._decode(parse, item, url=url, status=response.status_code))
            pages += 1

            # the next link already carries the full query string
            url = next_page_url(response.headers.get("Link"))
            query = None

        logger.debug("fetched %d item(s) over %d page(s) from %s", len(items), pages, start_url)
        return items

    def issues_since(self, repo: str, since: datetime) -> list[Issue]:
        return self.get_models(
            f"{self._config.base_url}/repos/{repo}/issues",
            {
                "state": "all",
                "since": format_timestamp(_as_utc(since)),
                "per_page": PER_PAGE,
                "direction": "asc",
            },
            issue_from_json,
        )

    def comments_since(self, repo: str, since: datetime) -> list[Comment]:
        return self.get_models(
            f"{self._config.base_url}/repos/{repo}/issues/comments",
            {
                "sort": "created",
                "direction": "asc",
                "since": format_timestamp(_as_utc(since)),
                "per_page": PER_PAGE,
            },
            comment_from_json,
        )

    def fetch_issue(self, owner: str, repo: str, number: int | str) -> Issue:
        url = f"{self._config.base_url}/repos/{owner}/{repo}/issues/{number}"
        payload, response = self._get_json(url)
        return self._decode(issue_from_json, payload, url=url, status=response.status_code)

    def fetch_pull_request(self, urls: PullRequestUrls) -> PullRequest:
        url = urls.get("url")
        if not url:
            raise GitHubApiError(
                "pull request references carry no API `url`",
                kind="decode",
                status=0,
                url=urls.get("html_url") or "",
            )
        payload, response = self._get_json(url)
        return self._decode(pull_request_from_json, payload, url=url, status=response.status_code)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
