from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from .config import AppConfig, RunSettings
from .discovery import discover_repositories
from .fetchers import fetch_commits, fetch_releases
from .github_api import GitHubSession
from .models import ContributionsResponse, DateRange, RepositoryContribution

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContributionsCollector:
    """Collect a user's recent commits and releases, one repository at a time.

    The commit and release listings of a repository are fetched side by side;
    the next repository starts only once both are done.
    """

    def __init__(
        self,
        settings: RunSettings,
        config: Optional[AppConfig] = None,
        session: Optional[GitHubSession] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.config = config or AppConfig()
        self._session = session
        self._clock = clock

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or self._clock()) - timedelta(days=self.settings.days)

    def _order(self, repositories: Iterable[str]) -> List[str]:
        if self.config.report.sort_repositories:
            return sorted(repositories)
        return list(repositories)

    def collect(self, username: Optional[str] = None) -> ContributionsResponse:
        username = username or self.settings.username
        cutoff = self.cutoff()
        owns_session = self._session is None
        session = self._session or GitHubSession.create(self.settings.token, self.config.github)
        try:
            repositories = self._collect(session, username, cutoff)
        finally:
            if owns_session:
                session.close()

        response = ContributionsResponse.build(DateRange(start=cutoff, end=self._clock()), repositories)
        logger.info(
            "Collected %d commits and %d releases across %d repositories for %s",
            response.metadata.total_commits,
            response.metadata.total_releases,
            response.metadata.repositories_count,
            username,
        )
        return response

    def _collect(self, session: GitHubSession, username: str, cutoff: datetime) -> Dict[str, RepositoryContribution]:
        discovered = discover_repositories(session, username, cutoff)
        scan = self.config.report.release_scan
        repositories: Dict[str, RepositoryContribution] = {}

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="github-activity") as executor:
            # Both workers share the session; it only issues GETs and keeps no cookies.
            for repo in self._order(discovered):
                commits_future = executor.submit(fetch_commits, session, repo, username, cutoff)
                releases_future = executor.submit(fetch_releases, session, repo, cutoff, scan)
                commits = commits_future.result()
                releases = releases_future.result()

                for kind, outcome in (("commits", commits), ("releases", releases)):
                    if not outcome.ok:
                        logger.warning(
                            "Keeping %d %s for %s after a failed fetch: %s",
                            len(outcome.items),
                            kind,
                            repo,
                            outcome.error,
                        )

                contribution = RepositoryContribution(commits=tuple(commits.items), releases=tuple(releases.items))
                if contribution.empty:
                    logger.debug("Skipping %s: no activity since %s", repo, cutoff.isoformat())
                    continue
                logger.debug("%s: %d commits, %d releases", repo, len(contribution.commits), len(contribution.releases))
                repositories[repo] = contribution

        return repositories
