from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


DEFAULT_CONFIG_PATH = Path("config/settings.yaml")
CONFIG_PATH_ENV = "GITHUB_ACTIVITY_CONFIG"
DEFAULT_DAYS = 30

RELEASE_SCAN_MODES = ("early-stop", "exhaustive")
OUTPUT_FORMATS = ("markdown", "json")


class MissingTokenError(RuntimeError):
    """Raised when the GitHub token environment variable is not set."""


@dataclass(slots=True)
class GitHubConfig:
    api_root: str = "https://api.github.com"
    html_root: str = "https://github.com"
    token_env: str = "GITHUB_TOKEN"
    per_page: int = 100
    timeout: float = 30.0


@dataclass(slots=True)
class ReportConfig:
    days: int = DEFAULT_DAYS
    sort_repositories: bool = True
    release_scan: str = "early-stop"


@dataclass(slots=True)
class OutputConfig:
    format: str = "markdown"


@dataclass(slots=True)
class LoggingConfig:
    level: str = "WARNING"


@dataclass(slots=True)
class AppConfig:
    github: GitHubConfig = field(default_factory=GitHubConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


@dataclass(frozen=True, slots=True)
class RunSettings:
    """Everything one collection run needs, independent of process state."""

    token: str
    username: str
    days: int = DEFAULT_DAYS

    def __post_init__(self) -> None:
        if self.days <= 0:
            raise ValueError(f"Lookback window must be a positive number of days, got {self.days}")


def default_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    override = env.get(CONFIG_PATH_ENV)
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> AppConfig:
    config_path = path or default_config_path()
    if not config_path.exists():
        return AppConfig()

    with config_path.open("r", encoding="utf-8") as handle:
        raw: Dict[str, Any] = yaml.safe_load(handle) or {}

    github_raw = raw.get("github", {})
    report_raw = raw.get("report", {})
    output_raw = raw.get("output", {})
    logging_raw = raw.get("logging", {})

    config = AppConfig(
        github=GitHubConfig(
            api_root=str(github_raw.get("api_root", "https://api.github.com")).rstrip("/"),
            html_root=str(github_raw.get("html_root", "https://github.com")).rstrip("/"),
            token_env=str(github_raw.get("token_env", "GITHUB_TOKEN")),
            per_page=int(github_raw.get("per_page", 100)),
            timeout=float(github_raw.get("timeout", 30)),
        ),
        report=ReportConfig(
            days=int(report_raw.get("days", DEFAULT_DAYS)),
            sort_repositories=bool(report_raw.get("sort_repositories", True)),
            release_scan=str(report_raw.get("release_scan", "early-stop")),
        ),
        output=OutputConfig(
            format=str(output_raw.get("format", "markdown")),
        ),
        logging=LoggingConfig(
            level=str(logging_raw.get("level", "WARNING")).upper(),
        ),
    )

    if config.report.release_scan not in RELEASE_SCAN_MODES:
        raise ValueError(
            f"Unknown release_scan mode {config.report.release_scan!r}; expected one of {', '.join(RELEASE_SCAN_MODES)}"
        )
    if config.output.format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format {config.output.format!r}; expected one of {', '.join(OUTPUT_FORMATS)}")
    if not 1 <= config.github.per_page <= 100:
        raise ValueError("github.per_page must be between 1 and 100")
    if config.report.days <= 0:
        raise ValueError(f"report.days must be a positive number of days, got {config.report.days}")

    return config


def resolve_token(config: AppConfig, environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    token = env.get(config.github.token_env, "").strip()
    if not token:
        raise MissingTokenError(f"Please set {config.github.token_env} environment variable")
    return token
