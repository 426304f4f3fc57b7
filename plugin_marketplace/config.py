"""Marketplace configuration — env-driven, shared by generator and store.

Centralized config using pydantic-settings. Reads from a .env file and
PLUGIN_MARKETPLACE_* environment variables; CLI flags override per run.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REPOSITORIES: list[str] = [
    "mattermost-plugin-github",
    "mattermost-plugin-autolink",
    "mattermost-plugin-zoom",
    "mattermost-plugin-jira",
    "mattermost-plugin-welcomebot",
    "mattermost-plugin-jenkins",
    "mattermost-plugin-antivirus",
    "mattermost-plugin-custom-attributes",
    "mattermost-plugin-aws-SNS",
    "mattermost-plugin-gitlab",
    "mattermost-plugin-nps",
    "mattermost-plugin-webex",
]


class MarketplaceSettings(BaseSettings):
    """Marketplace configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PLUGIN_MARKETPLACE_LOG_LEVEL=DEBUG
        export PLUGIN_MARKETPLACE_GITHUB_TOKEN=ghp_xxx
        export PLUGIN_MARKETPLACE_REPOSITORIES='["mattermost-plugin-jira"]'
        export PLUGIN_MARKETPLACE_ICON_PATHS='{"mattermost-plugin-jira": "data/icons/jira.svg"}'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PLUGIN_MARKETPLACE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    debug: bool = False

    # Release host
    github_token: str = ""
    github_owner: str = "mattermost"
    github_api_url: str = "https://api.github.com"
    request_timeout_seconds: float = 30.0

    # Generator
    repositories: list[str] = list(DEFAULT_REPOSITORIES)
    icon_paths: dict[str, str] = {}  # repository name -> local path or URL
    include_prerelease: bool = True
    existing_database: Path | None = None
    skip_failed_releases: bool = False
    workers: int = 1

    # Store
    database_path: Path = Path("plugins.json")
    default_per_page: int = 0

    @property
    def effective_log_level(self) -> str:
        """The log level after applying the debug switch."""
        return "DEBUG" if self.debug else self.log_level.upper()


# Module-level singleton — import as `from plugin_marketplace.config import settings`
settings = MarketplaceSettings()
