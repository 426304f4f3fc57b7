"""Release host access — the GitHub releases API behind a small protocol.

The reducer only needs ``fetch``; the generator pipeline also needs project
metadata and release listings.  Tests substitute in-memory hosts that
implement the same protocols.

No retries: a failed request, or a body that is not the JSON shape asked
for, raises ``ReleaseHostError`` and the caller decides whether to skip the
release or abort the run.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol, runtime_checkable

import requests
from pydantic import TypeAdapter, ValidationError

from plugin_marketplace.models.releases import ProjectInfo, ReleaseCandidate

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
RELEASES_PER_PAGE = 40

_RELEASES_ADAPTER: TypeAdapter[list[ReleaseCandidate]] = TypeAdapter(list[ReleaseCandidate])


class ReleaseHostError(RuntimeError):
    """Raised when the release host cannot be reached or answers with an error."""


@runtime_checkable
class ArtifactFetcher(Protocol):
    """Downloads release artifacts (bundles, signatures, icons)."""

    def fetch(self, url: str) -> bytes:
        """Return the body at *url*, raising ``ReleaseHostError`` on failure."""
        ...


@runtime_checkable
class ReleaseHost(ArtifactFetcher, Protocol):
    """Lists plugin projects' releases in addition to fetching artifacts."""

    def get_project(self, name: str) -> ProjectInfo:
        """Return metadata for project *name*."""
        ...

    def list_releases(self, name: str) -> list[ReleaseCandidate]:
        """Return every release of project *name*, drafts included."""
        ...


class GitHubReleaseHost:
    """``ReleaseHost`` backed by the GitHub REST API.

    Parameters
    ----------
    owner:
        The organisation or user owning the plugin repositories.
    token:
        Optional API token; anonymous requests are heavily rate limited.
    api_url:
        Base URL of the API (override for GitHub Enterprise).
    timeout:
        Per-request timeout in seconds.
    session:
        Optional pre-configured ``requests.Session``.  An injected session
        is shared by every calling thread; without one, each thread opens
        its own so the generator's worker pool never shares a session.
    """

    def __init__(
        self,
        owner: str,
        token: str = "",
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._owner = owner
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"User-Agent": "plugin-marketplace-generator"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._shared_session = session
        if session is not None:
            self._configure(session)
        self._local = threading.local()

    def _configure(self, session: requests.Session) -> None:
        session.headers.setdefault("User-Agent", self._headers["User-Agent"])
        if "Authorization" in self._headers:
            session.headers["Authorization"] = self._headers["Authorization"]

    @property
    def session(self) -> requests.Session:
        """The session used by the calling thread."""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._configure(session)
            self._local.session = session
            logger.debug("Opened HTTP session for thread %s.", threading.current_thread().name)
        return session

    def _get(
        self,
        url: str,
        *,
        params: dict[str, int] | None = None,
        accept: str = "application/vnd.github+json",
    ) -> requests.Response:
        try:
            response = self.session.get(
                url, params=params, headers={"Accept": accept}, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise ReleaseHostError(f"request to {url} failed: {exc}") from exc
        if not response.ok:
            raise ReleaseHostError(
                f"request to {url} failed with status code {response.status_code}"
            )
        return response

    def _get_json(
        self, url: str, *, params: dict[str, int] | None = None
    ) -> tuple[requests.Response, Any]:
        response = self._get(url, params=params)
        try:
            return response, response.json()
        except ValueError as exc:
            raise ReleaseHostError(f"unexpected response from {url}: {exc}") from exc

    def get_project(self, name: str) -> ProjectInfo:
        url = f"{self._api_url}/repos/{self._owner}/{name}"
        _, payload = self._get_json(url)
        try:
            return ProjectInfo.model_validate(payload)
        except ValidationError as exc:
            raise ReleaseHostError(f"unexpected response from {url}: {exc}") from exc

    def list_releases(self, name: str) -> list[ReleaseCandidate]:
        url: str | None = f"{self._api_url}/repos/{self._owner}/{name}/releases"
        params: dict[str, int] | None = {"per_page": RELEASES_PER_PAGE}
        releases: list[ReleaseCandidate] = []
        while url:
            response, payload = self._get_json(url, params=params)
            try:
                releases.extend(_RELEASES_ADAPTER.validate_python(payload))
            except ValidationError as exc:
                raise ReleaseHostError(f"unexpected response from {url}: {exc}") from exc
            # The next link already carries the query string.
            url = response.links.get("next", {}).get("url")
            params = None
        logger.debug("Found %d release(s) for %s/%s.", len(releases), self._owner, name)
        return releases

    def fetch(self, url: str) -> bytes:
        logger.debug("Fetching %s.", url)
        return self._get(url, accept="application/octet-stream").content
