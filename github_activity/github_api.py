from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests
from requests import Response

from .config import GitHubConfig

logger = logging.getLogger(__name__)

_USER_AGENT = "github-activity/0.1"
ACCEPT_V3 = "application/vnd.github.v3+json"
ACCEPT_COMMIT_SEARCH = "application/vnd.github.cloak-preview+json"


@dataclass(slots=True)
class GitHubSession:
    http: requests.Session
    config: GitHubConfig = field(default_factory=GitHubConfig)

    @classmethod
    def create(cls, token: str, config: Optional[GitHubConfig] = None) -> "GitHubSession":
        session = requests.Session()
        session.headers.update(
            {
                "Accept": ACCEPT_V3,
                "Authorization": f"Bearer {token}",
                "User-Agent": _USER_AGENT,
            }
        )
        return cls(http=session, config=config or GitHubConfig())

    def url(self, path: str) -> str:
        return f"{self.config.api_root}{path}"

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "GitHubSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _error_message(response: Response) -> str:
    if response.headers.get("Content-Type", "").startswith("application/json"):
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return response.text


def _raise_for_status(response: Response) -> None:
    try:
        response.raise_for_status()
    except requests.HTTPError as error:
        raise requests.HTTPError(
            f"GitHub API request failed: {response.status_code} {_error_message(response)}",
            response=response,
        ) from error


def request(
    session: GitHubSession,
    url: str,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Any:
    """GET ``url`` and return the decoded JSON body.

    Query values are stringified and ``headers`` override the session's base
    headers for this call only. Failures are logged and re-raised.
    """
    query: Dict[str, str] = {key: str(value) for key, value in (params or {}).items()}
    try:
        response = session.http.get(url, params=query, headers=dict(headers or {}), timeout=session.config.timeout)
        _raise_for_status(response)
        return response.json()
    except requests.RequestException as error:
        logger.error("Request failed: %s %s: %s", url, query, error)
        raise
