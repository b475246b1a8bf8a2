from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class PayloadError(ValueError):
    """Raised when a GitHub response does not have the expected shape."""


def parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise PayloadError(f"Expected an ISO-8601 timestamp, got {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as error:
        raise PayloadError(f"Invalid timestamp {value!r}") from error
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _require(payload: Mapping[str, Any], key: str, kind: type) -> Any:
    value = payload.get(key)
    if not isinstance(value, kind):
        raise PayloadError(f"Expected {key!r} to be {kind.__name__}, got {type(value).__name__}")
    return value


def expect_list(payload: Any, endpoint: str) -> List[Dict[str, Any]]:
    if not isinstance(payload, list):
        raise PayloadError(f"Expected a JSON array from {endpoint}, got {type(payload).__name__}")
    return payload


@dataclass(frozen=True, slots=True)
class Commit:
    sha: str
    date: datetime
    message: str
    url: str

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> "Commit":
        if not isinstance(item, Mapping):
            raise PayloadError("Commit entry is not an object")
        commit = _require(item, "commit", Mapping)
        author = _require(commit, "author", Mapping)
        return cls(
            sha=_require(item, "sha", str),
            date=parse_timestamp(author.get("date")),
            message=str(commit.get("message") or ""),
            url=str(item.get("html_url") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "sha": self.sha,
            "date": format_timestamp(self.date),
            "message": self.message,
            "url": self.url,
        }


@dataclass(frozen=True, slots=True)
class Release:
    tag: str
    name: str
    published_at: Optional[datetime]
    url: str
    body: str

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> "Release":
        if not isinstance(item, Mapping):
            raise PayloadError("Release entry is not an object")
        published = item.get("published_at")
        return cls(
            tag=_require(item, "tag_name", str),
            name=str(item.get("name") or ""),
            # Drafts have no publish date.
            published_at=parse_timestamp(published) if published is not None else None,
            url=str(item.get("html_url") or ""),
            body=str(item.get("body") or ""),
        )

    def published_after(self, cutoff: datetime) -> bool:
        return self.published_at is not None and self.published_at > cutoff

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "tag_name": self.tag,
            "name": self.name,
            "published_at": format_timestamp(self.published_at) if self.published_at else None,
            "url": self.url,
            "body": self.body,
        }


@dataclass(frozen=True, slots=True)
class SearchPage:
    total_count: int
    repositories: Tuple[str, ...]

    @property
    def empty(self) -> bool:
        return not self.repositories

    @classmethod
    def from_api(cls, payload: Any) -> "SearchPage":
        if not isinstance(payload, Mapping):
            raise PayloadError("Search response is not an object")
        items = _require(payload, "items", list)
        total_count = _require(payload, "total_count", int)
        names: List[str] = []
        for item in items:
            repository = item.get("repository") if isinstance(item, Mapping) else None
            if not isinstance(repository, Mapping):
                raise PayloadError("Search item has no repository")
            names.append(_require(repository, "full_name", str))
        return cls(total_count=total_count, repositories=tuple(names))


@dataclass(slots=True)
class FetchResult(Generic[T]):
    """Items gathered for one repository, plus the reason pagination stopped early, if any."""

    items: List[T] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class RepositoryContribution:
    commits: Tuple[Commit, ...] = ()
    releases: Tuple[Release, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.commits and not self.releases

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commits": [commit.to_dict() for commit in self.commits],
            "releases": [release.to_dict() for release in self.releases],
        }


@dataclass(frozen=True, slots=True)
class DateRange:
    start: datetime
    end: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"from": format_timestamp(self.start), "to": format_timestamp(self.end)}


@dataclass(frozen=True, slots=True)
class ContributionsMetadata:
    date_range: DateRange
    total_commits: int
    total_releases: int
    repositories_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date_range": self.date_range.to_dict(),
            "total_commits": self.total_commits,
            "total_releases": self.total_releases,
            "repositories_count": self.repositories_count,
        }


@dataclass(slots=True)
class ContributionsResponse:
    metadata: ContributionsMetadata
    repositories: Dict[str, RepositoryContribution]

    @classmethod
    def build(cls, date_range: DateRange, repositories: Dict[str, RepositoryContribution]) -> "ContributionsResponse":
        included = {name: contribution for name, contribution in repositories.items() if not contribution.empty}
        metadata = ContributionsMetadata(
            date_range=date_range,
            total_commits=sum(len(item.commits) for item in included.values()),
            total_releases=sum(len(item.releases) for item in included.values()),
            repositories_count=len(included),
        )
        return cls(metadata=metadata, repositories=included)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "repositories": {name: contribution.to_dict() for name, contribution in self.repositories.items()},
        }
