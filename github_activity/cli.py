from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Optional

from .collector import ContributionsCollector
from .config import AppConfig, MissingTokenError, RunSettings, load_config, resolve_token
from .report import render_report

logger = logging.getLogger("github_activity")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="github-activity",
        description="Report a GitHub user's recent commits and releases as Markdown.",
    )
    parser.add_argument("username", nargs="?", help="GitHub username (prompted when omitted)")
    parser.add_argument("days", nargs="?", help="Number of days to look back (prompted when omitted, default 30)")
    return parser


def _configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, config.logging.level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_days(raw: str, default: int) -> int:
    raw = raw.strip()
    if not raw:
        return default
    try:
        days = int(raw)
    except ValueError:
        raise ValueError(f"Number of days must be an integer, got {raw!r}") from None
    if days <= 0:
        raise ValueError(f"Number of days must be positive, got {days}")
    return days


def app(argv: list[str] | None = None, prompt: Callable[[str], str] = input) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except ValueError as exc:
        parser.error(f"Invalid configuration: {exc}")
        return
    _configure_logging(config)

    try:
        token = resolve_token(config)
    except MissingTokenError as exc:
        parser.error(str(exc))
        return

    username = (args.username or prompt("Enter GitHub username: ")).strip()
    if not username:
        parser.error("A GitHub username is required")
        return

    raw_days: Optional[str] = args.days
    if raw_days is None:
        raw_days = prompt(f"Enter number of days to look back (default {config.report.days}): ")
    try:
        days = _parse_days(raw_days, config.report.days)
    except ValueError as exc:
        parser.error(str(exc))
        return

    settings = RunSettings(token=token, username=username, days=days)
    try:
        contributions = ContributionsCollector(settings, config).collect()
        report = render_report(username, contributions, config)
    except Exception as exc:
        logger.error("Report generation failed: %s", exc)
        parser.error(str(exc))
        return

    sys.stdout.write(report)


if __name__ == "__main__":  # pragma: no cover
    app(sys.argv[1:])
