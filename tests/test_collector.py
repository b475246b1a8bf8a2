from __future__ import annotations

import threading
import unittest
from datetime import datetime, timezone
from unittest import mock

import requests

from github_activity.collector import ContributionsCollector
from github_activity.config import AppConfig, ReportConfig, RunSettings
from github_activity.github_api import GitHubSession
from github_activity.models import Commit, FetchResult, Release
from github_activity.report import render_report

NOW = datetime(2024, 1, 10, tzinfo=timezone.utc)


def _commit(sha: str, message: str = "change") -> Commit:
    return Commit(sha=sha, date=datetime(2024, 1, 5, tzinfo=timezone.utc), message=message, url=f"https://x/{sha}")


def _release(tag: str) -> Release:
    return Release(tag=tag, name=f"Release {tag}", published_at=datetime(2024, 1, 6, tzinfo=timezone.utc), url=f"https://x/{tag}", body="")


class CollectorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = GitHubSession(http=mock.Mock(spec=requests.Session))
        self.settings = RunSettings(token="secret", username="alice", days=7)

    def _collector(self, config: AppConfig | None = None) -> ContributionsCollector:
        return ContributionsCollector(self.settings, config, session=self.session, clock=lambda: NOW)

    @mock.patch("github_activity.collector.fetch_releases")
    @mock.patch("github_activity.collector.fetch_commits")
    @mock.patch("github_activity.collector.discover_repositories")
    def test_single_repository_report(self, discover, commits, releases) -> None:
        discover.return_value = {"alice/proj"}
        commits.return_value = FetchResult([_commit("abc123", "fix bug\nextra")])
        releases.return_value = FetchResult()

        response = self._collector().collect("alice")

        cutoff = datetime(2024, 1, 3, tzinfo=timezone.utc)
        discover.assert_called_once_with(self.session, "alice", cutoff)
        commits.assert_called_once_with(self.session, "alice/proj", "alice", cutoff)
        releases.assert_called_once_with(self.session, "alice/proj", cutoff, "early-stop")
        self.assertEqual(response.metadata.total_commits, 1)
        self.assertEqual(response.metadata.total_releases, 0)
        self.assertEqual(response.metadata.repositories_count, 1)
        self.assertEqual(response.metadata.date_range.start, cutoff)
        self.assertEqual(response.metadata.date_range.end, NOW)

        report = render_report("alice", response, AppConfig())
        self.assertIn("## [alice/proj](https://github.com/alice/proj)", report)
        self.assertIn("- fix bug [abc123](https://x/abc123)", report)
        self.assertNotIn("extra", report)
        self.assertNotIn("### Releases", report)

    @mock.patch("github_activity.collector.fetch_releases")
    @mock.patch("github_activity.collector.fetch_commits")
    @mock.patch("github_activity.collector.discover_repositories")
    def test_inactive_repositories_are_excluded(self, discover, commits, releases) -> None:
        discover.return_value = {"alice/quiet", "alice/busy", "bob/tools"}
        commits.side_effect = lambda session, repo, username, cutoff: FetchResult(
            [_commit(f"{repo}-1"), _commit(f"{repo}-2")] if repo == "alice/busy" else []
        )
        releases.side_effect = lambda session, repo, cutoff, scan: FetchResult(
            [_release("v1")] if repo == "bob/tools" else []
        )

        response = self._collector().collect()

        self.assertEqual(list(response.repositories), ["alice/busy", "bob/tools"])
        self.assertEqual(response.metadata.repositories_count, len(response.repositories))
        self.assertEqual(
            response.metadata.total_commits, sum(len(item.commits) for item in response.repositories.values())
        )
        self.assertEqual(
            response.metadata.total_releases, sum(len(item.releases) for item in response.repositories.values())
        )
        for contribution in response.repositories.values():
            self.assertFalse(contribution.empty)

    @mock.patch("github_activity.collector.fetch_releases")
    @mock.patch("github_activity.collector.fetch_commits")
    @mock.patch("github_activity.collector.discover_repositories")
    def test_partial_failure_keeps_data_and_continues(self, discover, commits, releases) -> None:
        discover.return_value = {"alice/flaky", "alice/stable"}
        partial = FetchResult([_commit(f"sha{index}") for index in range(100)], error="connection reset")
        commits.side_effect = lambda session, repo, username, cutoff: (
            partial if repo == "alice/flaky" else FetchResult([_commit("ok")])
        )
        releases.return_value = FetchResult()

        with self.assertLogs("github_activity.collector", level="WARNING") as logs:
            response = self._collector().collect()

        self.assertEqual(len(response.repositories["alice/flaky"].commits), 100)
        self.assertEqual(len(response.repositories["alice/stable"].commits), 1)
        self.assertEqual(response.metadata.total_commits, 101)
        self.assertTrue(any("alice/flaky" in line for line in logs.output))

    @mock.patch("github_activity.collector.discover_repositories")
    def test_discovery_failure_aborts(self, discover) -> None:
        discover.side_effect = requests.HTTPError("GitHub API request failed: 401 Bad credentials")

        with self.assertRaises(requests.HTTPError):
            self._collector().collect()

    @mock.patch("github_activity.collector.fetch_releases")
    @mock.patch("github_activity.collector.fetch_commits")
    @mock.patch("github_activity.collector.discover_repositories")
    def test_fetches_pair_per_repository(self, discover, commits, releases) -> None:
        discover.return_value = {"a/one", "a/two", "a/three"}
        lock = threading.Lock()
        active = {"now": 0, "peak": 0}
        releases_started = {repo: threading.Event() for repo in discover.return_value}
        overlapped = []
        order = []

        def enter(repo: str) -> None:
            with lock:
                active["now"] += 1
                active["peak"] = max(active["peak"], active["now"])
                order.append(repo)

        def leave() -> None:
            with lock:
                active["now"] -= 1

        def fake_commits(session, repo, username, cutoff):
            enter(repo)
            try:
                overlapped.append(releases_started[repo].wait(timeout=5))
                return FetchResult([_commit(repo)])
            finally:
                leave()

        def fake_releases(session, repo, cutoff, scan):
            enter(repo)
            try:
                releases_started[repo].set()
                return FetchResult()
            finally:
                leave()

        commits.side_effect = fake_commits
        releases.side_effect = fake_releases

        response = self._collector().collect()

        self.assertEqual(overlapped, [True, True, True])
        self.assertLessEqual(active["peak"], 2)
        self.assertEqual(list(response.repositories), ["a/one", "a/three", "a/two"])
        self.assertEqual(order[0:2], ["a/one", "a/one"])
        self.assertEqual(order[2:4], ["a/three", "a/three"])

    @mock.patch("github_activity.collector.fetch_releases")
    @mock.patch("github_activity.collector.fetch_commits")
    @mock.patch("github_activity.collector.discover_repositories")
    def test_release_scan_mode_is_forwarded(self, discover, commits, releases) -> None:
        discover.return_value = {"a/one"}
        commits.return_value = FetchResult()
        releases.return_value = FetchResult()

        config = AppConfig(report=ReportConfig(release_scan="exhaustive"))
        response = self._collector(config).collect()

        self.assertEqual(releases.call_args.args[3], "exhaustive")
        self.assertEqual(response.repositories, {})
        self.assertEqual(response.metadata.repositories_count, 0)

    @mock.patch("github_activity.collector.GitHubSession.create")
    @mock.patch("github_activity.collector.discover_repositories")
    def test_owned_session_is_closed(self, discover, create) -> None:
        discover.return_value = set()
        created = create.return_value

        ContributionsCollector(self.settings, clock=lambda: NOW).collect()

        create.assert_called_once()
        self.assertEqual(create.call_args.args[0], "secret")
        created.close.assert_called_once_with()


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
