"""Battleplan configuration: themes, goals, problems, teams and releases.

Each kind lives in its own YAML file under the data directory as a list of
maps. Malformed records are reported as validation warnings and skipped so
one bad entry never hides the rest of the plan; cross references are checked
by `Battleplan.validate`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PlanError(RuntimeError):
    pass


class _FieldError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class Theme:
    id: str
    name: str
    team: str
    pitch: str
    top: bool = False


@dataclass(frozen=True, slots=True)
class Goal:
    id: str
    goal: str
    pitch: str
    theme: str
    tracking_link: str
    release: str
    top: bool = False


@dataclass(frozen=True, slots=True)
class Problem:
    id: str
    pitch: str
    theme: str


@dataclass(frozen=True, slots=True)
class Team:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Release:
    id: str
    future: bool = False


def _verr(message: str, *args: Any) -> None:
    logger.warning("validation error: " + message, *args)


@dataclass(slots=True)
class Battleplan:
    themes: list[Theme] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    problems: list[Problem] = field(default_factory=list)
    teams: list[Team] = field(default_factory=list)
    releases: list[Release] = field(default_factory=list)

    def validate(self) -> None:
        good = True
        team_ids = {t.id for t in self.teams}
        theme_ids = {t.id for t in self.themes}
        release_ids = {r.id for r in self.releases}

        for theme in self.themes:
            if theme.team not in team_ids:
                good = False
                _verr("theme %s mentions bogus team '%s'", theme.id, theme.team)
        for goal in self.goals:
            if goal.theme not in theme_ids:
                good = False
                _verr("goal %s mentions bogus theme '%s'", goal.id, goal.theme)
            if goal.release not in release_ids:
                good = False
                _verr("goal %s mentions bogus release '%s'", goal.id, goal.release)
            if goal.tracking_link.startswith("http://"):
                _verr("goal %s has non-https tracking link: %s", goal.id, goal.tracking_link)
        for problem in self.problems:
            if problem.theme not in theme_ids:
                good = False
                _verr("problem %s mentions bogus theme '%s'", problem.id, problem.theme)

        if not good:
            raise PlanError("invalid battleplan")


def _lookup(fields: dict[Any, Any], name: str) -> Any:
    if name not in fields:
        raise _FieldError(f"missing field `{name}`")
    return fields.pop(name)


def _lookup_string(fields: dict[Any, Any], name: str) -> str:
    value = _lookup(fields, name)
    if not isinstance(value, str):
        raise _FieldError(f"field `{name}` is not a string")
    return value


def _lookup_bool(fields: dict[Any, Any], name: str) -> bool:
    # absent flags are false
    if name not in fields:
        return False
    value = fields.pop(name)
    if not isinstance(value, bool):
        raise _FieldError(f"field `{name}` is not a bool")
    return value


def _root_list(data: Any, type_: str) -> list[Any]:
    if data is None:
        raise PlanError(f"{type_} yaml has no elements")
    if not isinstance(data, list):
        raise PlanError(f"{type_} yaml is not an array")
    return data


def _records_from_yaml(
    data: Any, type_: str, build: Callable[[dict[Any, Any], str], T]
) -> list[T]:
    out: list[T] = []
    for idx, item in enumerate(_root_list(data, type_)):
        if not isinstance(item, dict):
            _verr("%s %s is not a map", type_, idx)
            continue

        fields = dict(item)
        obj_id = str(idx)
        try:
            obj_id = _lookup_string(fields, "id")
            record = build(fields, obj_id)
        except _FieldError as error:
            _verr("%s %s; %s", type_, obj_id, error)
            continue

        for key in fields:
            _verr("%s %s has extra field: %r", type_, obj_id, key)
        out.append(record)
    return out


def _theme(fields: dict[Any, Any], id: str) -> Theme:
    return Theme(
        id=id,
        name=_lookup_string(fields, "name"),
        team=_lookup_string(fields, "team"),
        top=_lookup_bool(fields, "top"),
        pitch=_lookup_string(fields, "pitch"),
    )


def _goal(fields: dict[Any, Any], id: str) -> Goal:
    return Goal(
        id=id,
        goal=_lookup_string(fields, "goal"),
        top=_lookup_bool(fields, "top"),
        pitch=_lookup_string(fields, "pitch"),
        theme=_lookup_string(fields, "theme"),
        tracking_link=_lookup_string(fields, "tracking-link"),
        release=_lookup_string(fields, "release"),
    )


def _problem(fields: dict[Any, Any], id: str) -> Problem:
    return Problem(
        id=id,
        pitch=_lookup_string(fields, "pitch"),
        theme=_lookup_string(fields, "theme"),
    )


def _team(fields: dict[Any, Any], id: str) -> Team:
    return Team(id=id, name=_lookup_string(fields, "name"))


def _release(fields: dict[Any, Any], id: str) -> Release:
    return Release(id=id, future=_lookup_bool(fields, "future"))


def _yaml_from_file(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except OSError as error:
        raise PlanError(f"cannot read {path}") from error
    except yaml.YAMLError as error:
        raise PlanError(f"cannot parse {path}") from error


def load_plan(data_dir: str | Path) -> Battleplan:
    root = Path(data_dir)
    return Battleplan(
        themes=_records_from_yaml(_yaml_from_file(root / "themes.yml"), "theme", _theme),
        goals=_records_from_yaml(_yaml_from_file(root / "goals.yml"), "goal", _goal),
        problems=_records_from_yaml(_yaml_from_file(root / "problems.yml"), "problem", _problem),
        teams=_records_from_yaml(_yaml_from_file(root / "teams.yml"), "team", _team),
        releases=_records_from_yaml(_yaml_from_file(root / "releases.yml"), "release", _release),
    )
