from __future__ import annotations

import logging
from datetime import datetime
from typing import Set

from .github_api import ACCEPT_COMMIT_SEARCH, GitHubSession, request
from .models import SearchPage

logger = logging.getLogger(__name__)

# The search API serves at most this many results per query.
SEARCH_RESULT_LIMIT = 1000


def build_search_query(username: str, cutoff: datetime) -> str:
    return f"author:{username} author-date:>{cutoff.date().isoformat()}"


def discover_repositories(session: GitHubSession, username: str, cutoff: datetime) -> Set[str]:
    """Return the full names of repositories ``username`` committed to after ``cutoff``.

    Walks the commit search endpoint newest first. Errors propagate: without
    the repository set there is nothing to report.
    """
    per_page = session.config.per_page
    repositories: Set[str] = set()
    page = 1
    while True:
        payload = request(
            session,
            session.url("/search/commits"),
            params={
                "q": build_search_query(username, cutoff),
                "sort": "author-date",
                "order": "desc",
                "page": page,
                "per_page": per_page,
            },
            headers={"Accept": ACCEPT_COMMIT_SEARCH},
        )
        result = SearchPage.from_api(payload)
        if result.empty:
            break
        repositories.update(result.repositories)
        if page * per_page >= min(result.total_count, SEARCH_RESULT_LIMIT):
            break
        page += 1

    logger.info("Discovered %d repositories for %s across %d search pages", len(repositories), username, page)
    return repositories
