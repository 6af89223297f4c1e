from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Mapping
from urllib.parse import urlsplit

from .github.models import Issue, issue_from_json

logger = logging.getLogger(__name__)

URL_FACTS_FILE = "url_facts.json"


def parse_tracking_url(value: str) -> str | None:
    """Normalize a tracking link, or return None when it is not an absolute http(s) URL."""
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return None
    return parts._replace(scheme=parts.scheme.lower(), netloc=parts.netloc.lower()).geturl()


@dataclass(frozen=True, slots=True)
class FactSet:
    gh_issue: Issue | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"gh_issue": self.gh_issue.to_dict() if self.gh_issue else None}


def fact_set_from_dict(data: Mapping[str, Any], *, where: str) -> FactSet:
    raw_issue = data.get("gh_issue")
    return FactSet(
        gh_issue=issue_from_json(raw_issue, where=f"{where}.gh_issue") if raw_issue is not None else None
    )


class UrlFacts:
    """Crawled facts keyed by normalized source URL."""

    def __init__(self, facts: Mapping[str, FactSet] | None = None) -> None:
        self._facts: dict[str, FactSet] = dict(facts or {})

    def lookup(self, url: str) -> FactSet | None:
        return self._facts.get(url)

    def record(self, url: str, facts: FactSet) -> None:
        self._facts[url] = facts

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._facts))

    def to_dict(self) -> dict[str, Any]:
        return {url: self._facts[url].to_dict() for url in self}


def _facts_path(data_dir: str | Path) -> Path:
    return Path(data_dir) / "gen" / URL_FACTS_FILE


def load_url_facts(data_dir: str | Path) -> UrlFacts:
    path = _facts_path(data_dir)
    if not path.exists():
        logger.warning("no crawl data at %s; run `battleplan crawl` first", path)
        return UrlFacts()

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise TypeError(f"{path} must contain a JSON object")
    facts = UrlFacts(
        {url: fact_set_from_dict(raw, where=url) for url, raw in data.items() if isinstance(raw, dict)}
    )
    logger.info("loaded facts for %d url(s) from %s", len(facts), path)
    return facts


def save_url_facts(facts: UrlFacts, data_dir: str | Path) -> Path:
    path = _facts_path(data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(facts.to_dict(), f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")
    os.replace(tmp, path)
    logger.info("%s updated", path)
    return path
