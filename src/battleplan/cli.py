from __future__ import annotations

import argparse
import logging
import os

from .crawl import crawl
from .env import load_dotenv
from .github.client import GitHubClient, load_client_config
from .plan import load_plan
from .ponder import ponder

logger = logging.getLogger("battleplan")

DEFAULT_DATA_DIR = "./_data"


def _check(data_dir: str) -> None:
    load_plan(data_dir).validate()
    logger.info("battleplan is valid")


def _crawl(data_dir: str) -> None:
    client = GitHubClient(load_client_config())
    summary = crawl(data_dir, client)
    if summary.failed:
        logger.warning("%d tracking issue(s) could not be crawled", summary.failed)


def _ponder(data_dir: str) -> None:
    ponder(data_dir)


COMMANDS = {"check": _check, "crawl": _crawl, "ponder": _ponder}


def _report(error: BaseException) -> None:
    logger.error("err: %s", error)
    cause = error.__cause__ or error.__context__
    while cause is not None:
        logger.error("cause: %s", cause)
        cause = cause.__cause__ or cause.__context__


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(prog="battleplan", description="Battleplan command console")
    parser.add_argument(
        "--data-dir",
        default=os.environ.get("BATTLEPLAN_DATA_DIR", DEFAULT_DATA_DIR),
        help="directory holding the plan YAML files (default: ./_data)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("command", nargs="?", choices=sorted(COMMANDS), default="check")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        COMMANDS[args.command](args.data_dir)
    except Exception as error:  # noqa: BLE001
        _report(error)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
