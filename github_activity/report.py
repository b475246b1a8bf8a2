from __future__ import annotations

import json
from datetime import datetime
from typing import List

from .config import AppConfig
from .models import Commit, ContributionsResponse, DateRange, Release, RepositoryContribution

DEFAULT_HTML_ROOT = "https://github.com"


def _display_date(value: datetime) -> str:
    return value.strftime("%a %b %d %Y")


def build_intro(username: str, date_range: DateRange, html_root: str = DEFAULT_HTML_ROOT) -> str:
    return "\n".join(
        [
            "# GitHub report",
            "",
            f"[{username}]({html_root}/{username}) from {_display_date(date_range.start)} to {_display_date(date_range.end)}",
        ]
    )


def render_markdown(intro: str, contributions: ContributionsResponse, html_root: str = DEFAULT_HTML_ROOT) -> str:
    lines: List[str] = [intro.rstrip(), ""]
    for name, contribution in contributions.repositories.items():
        lines.extend(_render_repository(name, contribution, html_root))
    return "\n".join(lines).rstrip() + "\n"


def _render_repository(name: str, contribution: RepositoryContribution, html_root: str) -> List[str]:
    lines = [f"## [{name}]({html_root}/{name})", "", "### Commits", ""]
    lines.extend(_commit_line(commit) for commit in contribution.commits)
    lines.append("")
    if contribution.releases:
        lines.extend(["### Releases", ""])
        lines.extend(_release_line(release) for release in contribution.releases)
        lines.append("")
    return lines


def _commit_line(commit: Commit) -> str:
    message = commit.message.strip()
    summary = message.splitlines()[0].strip() if message else ""
    return f"- {summary} [{commit.sha}]({commit.url})"


def _release_line(release: Release) -> str:
    return f"- {release.name or release.tag} [{release.tag}]({release.url})"


def render_json(contributions: ContributionsResponse) -> str:
    return json.dumps(contributions.to_dict(), indent=2) + "\n"


def render_report(username: str, contributions: ContributionsResponse, config: AppConfig) -> str:
    output_format = config.output.format
    if output_format == "json":
        return render_json(contributions)
    if output_format == "markdown":
        html_root = config.github.html_root
        intro = build_intro(username, contributions.metadata.date_range, html_root)
        return render_markdown(intro, contributions, html_root)
    raise ValueError(f"Unsupported output format: {output_format}")
