from __future__ import annotations

import logging
from datetime import datetime
from typing import List

import requests

from .github_api import GitHubSession, request
from .models import Commit, FetchResult, PayloadError, Release, expect_list, format_timestamp

logger = logging.getLogger(__name__)

EARLY_STOP = "early-stop"
EXHAUSTIVE = "exhaustive"


def fetch_commits(session: GitHubSession, repo: str, username: str, cutoff: datetime) -> FetchResult[Commit]:
    """Commits authored by ``username`` in ``repo`` since ``cutoff``.

    A failing page ends pagination; the commits from earlier pages are kept.
    """
    result: FetchResult[Commit] = FetchResult()
    endpoint = session.url(f"/repos/{repo}/commits")
    page = 1
    while True:
        try:
            payload = request(
                session,
                endpoint,
                params={
                    "author": username,
                    "since": format_timestamp(cutoff),
                    "page": page,
                    "per_page": session.config.per_page,
                },
            )
            commits = [Commit.from_api(item) for item in expect_list(payload, endpoint)]
        except (requests.RequestException, PayloadError) as error:
            logger.warning("Failed to fetch commits for %s (page %d): %s", repo, page, error)
            result.error = str(error)
            break

        if not commits:
            break
        result.items.extend(commits)
        page += 1

    return result


def _page_is_exhausted(releases: List[Release], recent: List[Release], cutoff: datetime) -> bool:
    # Relies on GitHub listing releases newest first.
    if recent:
        return False
    oldest = releases[-1].published_at
    return oldest is None or oldest < cutoff


def fetch_releases(
    session: GitHubSession, repo: str, cutoff: datetime, scan: str = EARLY_STOP
) -> FetchResult[Release]:
    """Releases of ``repo`` published after ``cutoff``.

    With ``scan="early-stop"`` pagination ends at the first page that holds no
    recent release and ends with one older than the cutoff. ``"exhaustive"``
    reads every page.
    """
    if scan not in (EARLY_STOP, EXHAUSTIVE):
        raise ValueError(f"Unknown release scan mode: {scan!r}")

    result: FetchResult[Release] = FetchResult()
    endpoint = session.url(f"/repos/{repo}/releases")
    page = 1
    while True:
        try:
            payload = request(session, endpoint, params={"page": page, "per_page": session.config.per_page})
            releases = [Release.from_api(item) for item in expect_list(payload, endpoint)]
        except (requests.RequestException, PayloadError) as error:
            logger.warning("Failed to fetch releases for %s (page %d): %s", repo, page, error)
            result.error = str(error)
            break

        if not releases:
            break
        recent = [release for release in releases if release.published_after(cutoff)]
        if scan == EARLY_STOP and _page_is_exhausted(releases, recent, cutoff):
            logger.debug("Stopping release scan for %s at page %d", repo, page)
            break
        result.items.extend(recent)
        page += 1

    return result
