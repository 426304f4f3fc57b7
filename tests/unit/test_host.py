"""Tests for the GitHub release host, using a stubbed requests session."""

from __future__ import annotations

import threading
from typing import Any

import pytest
import requests

from plugin_marketplace.generator.host import (
    RELEASES_PER_PAGE,
    ArtifactFetcher,
    GitHubReleaseHost,
    ReleaseHost,
    ReleaseHostError,
)
from plugin_marketplace.generator.pipeline import CatalogueGenerator, ProjectGenerationError

API = "https://api.github.com"


class _Response:
    def __init__(
        self,
        payload: Any = None,
        *,
        status_code: int = 200,
        content: bytes = b"",
        next_url: str | None = None,
        invalid_json: bool = False,
    ) -> None:
        self._payload = payload
        self._invalid_json = invalid_json
        self.status_code = status_code
        self.ok = status_code < 400
        self.content = content
        self.links = {"next": {"url": next_url}} if next_url else {}

    def json(self) -> Any:
        if self._invalid_json:
            raise requests.JSONDecodeError("Expecting value", "<html>", 0)
        return self._payload


class _Session:
    """Records GET calls and replays queued responses per URL."""

    def __init__(self, responses: dict[str, _Response] | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.responses = responses or {}
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> _Response:
        self.calls.append({"url": url, **kwargs})
        if url not in self.responses:
            raise requests.ConnectionError(f"no route to {url}")
        return self.responses[url]


def _release(tag: str) -> dict[str, Any]:
    return {"tag_name": tag, "name": tag, "draft": False, "prerelease": False, "assets": []}


class TestConstruction:
    def test_token_sets_authorization(self):
        session = _Session()
        GitHubReleaseHost("mattermost", "secret", session=session)
        assert session.headers["Authorization"] == "Bearer secret"
        assert "User-Agent" in session.headers

    def test_anonymous(self):
        session = _Session()
        GitHubReleaseHost("mattermost", session=session)
        assert "Authorization" not in session.headers

    def test_satisfies_protocols(self):
        host = GitHubReleaseHost("mattermost", session=_Session())
        assert isinstance(host, ReleaseHost)
        assert isinstance(host, ArtifactFetcher)


class TestGetProject:
    def test_returns_project(self):
        url = f"{API}/repos/mattermost/mattermost-plugin-demo"
        session = _Session(
            {url: _Response({"name": "mattermost-plugin-demo", "html_url": "https://github.com/x", "id": 1})}
        )
        project = GitHubReleaseHost("mattermost", session=session).get_project(
            "mattermost-plugin-demo"
        )
        assert project.name == "mattermost-plugin-demo"
        assert project.html_url == "https://github.com/x"

    def test_error_status(self):
        url = f"{API}/repos/mattermost/missing"
        session = _Session({url: _Response({"message": "Not Found"}, status_code=404)})
        with pytest.raises(ReleaseHostError, match="status code 404"):
            GitHubReleaseHost("mattermost", session=session).get_project("missing")

    def test_custom_api_url(self):
        session = _Session({"https://ghe.example.com/api/v3/repos/acme/p": _Response({"name": "p"})})
        host = GitHubReleaseHost("acme", api_url="https://ghe.example.com/api/v3/", session=session)
        assert host.get_project("p").name == "p"


class TestListReleases:
    def test_follows_pagination(self):
        first = f"{API}/repos/mattermost/demo/releases"
        second = f"{API}/repositories/1/releases?per_page={RELEASES_PER_PAGE}&page=2"
        session = _Session(
            {
                first: _Response([_release("v0.2.0"), _release("v0.1.0")], next_url=second),
                second: _Response([_release("v0.0.1")]),
            }
        )
        releases = GitHubReleaseHost("mattermost", session=session).list_releases("demo")

        assert [r.tag_name for r in releases] == ["v0.2.0", "v0.1.0", "v0.0.1"]
        assert session.calls[0]["params"] == {"per_page": RELEASES_PER_PAGE}
        assert session.calls[1]["params"] is None

    def test_empty(self):
        session = _Session({f"{API}/repos/mattermost/demo/releases": _Response([])})
        assert GitHubReleaseHost("mattermost", session=session).list_releases("demo") == []

    def test_network_error(self):
        with pytest.raises(ReleaseHostError, match="no route"):
            GitHubReleaseHost("mattermost", session=_Session()).list_releases("demo")


class TestFetch:
    def test_returns_content(self):
        url = "https://github.com/mattermost/demo/releases/download/v0.1.0/demo.tar.gz"
        session = _Session({url: _Response(content=b"bundle")})
        host = GitHubReleaseHost("mattermost", session=session, timeout=5.0)
        assert host.fetch(url) == b"bundle"
        assert session.calls[0]["headers"] == {"Accept": "application/octet-stream"}
        assert session.calls[0]["timeout"] == 5.0

    def test_error_status(self):
        url = "https://example.com/demo.tar.gz"
        session = _Session({url: _Response(status_code=500)})
        with pytest.raises(ReleaseHostError):
            GitHubReleaseHost("mattermost", session=session).fetch(url)


class TestMalformedResponses:
    """Bodies that are not the expected JSON fail as host errors."""

    def test_project_body_not_json(self):
        url = f"{API}/repos/mattermost/demo"
        session = _Session({url: _Response(invalid_json=True)})
        with pytest.raises(ReleaseHostError, match="unexpected response") as exc_info:
            GitHubReleaseHost("mattermost", session=session).get_project("demo")
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_project_wrong_shape(self):
        url = f"{API}/repos/mattermost/demo"
        session = _Session({url: _Response([{"name": "demo"}])})
        with pytest.raises(ReleaseHostError, match="unexpected response"):
            GitHubReleaseHost("mattermost", session=session).get_project("demo")

    def test_releases_body_not_json(self):
        url = f"{API}/repos/mattermost/demo/releases"
        session = _Session({url: _Response(invalid_json=True)})
        with pytest.raises(ReleaseHostError, match="unexpected response"):
            GitHubReleaseHost("mattermost", session=session).list_releases("demo")

    def test_error_object_instead_of_release_list(self):
        url = f"{API}/repos/mattermost/demo/releases"
        session = _Session({url: _Response({"message": "rate limited"})})
        with pytest.raises(ReleaseHostError, match="unexpected response"):
            GitHubReleaseHost("mattermost", session=session).list_releases("demo")

    def test_generator_reports_project_failure(self):
        session = _Session(
            {
                f"{API}/repos/mattermost/demo": _Response({"name": "demo"}),
                f"{API}/repos/mattermost/demo/releases": _Response(invalid_json=True),
            }
        )
        host = GitHubReleaseHost("mattermost", session=session)
        with pytest.raises(ProjectGenerationError, match="repository demo") as exc_info:
            CatalogueGenerator(host, ["demo"]).generate()
        assert isinstance(exc_info.value.__cause__, ReleaseHostError)


class TestSessions:
    def test_injected_session_shared(self):
        session = _Session()
        host = GitHubReleaseHost("mattermost", session=session)
        seen: list[Any] = []
        thread = threading.Thread(target=lambda: seen.append(host.session))
        thread.start()
        thread.join()
        assert seen == [session]
        assert host.session is session

    def test_session_per_thread(self):
        host = GitHubReleaseHost("mattermost", "secret")
        seen: list[requests.Session] = []
        threads = [threading.Thread(target=lambda: seen.append(host.session)) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(seen) == 2
        assert seen[0] is not seen[1]
        assert host.session is host.session
        assert host.session not in seen
        assert all(s.headers["Authorization"] == "Bearer secret" for s in seen)
