import json
import urllib.parse

import httpx
import pytest

import calauth.auth.google.flow as flow
from calauth.auth.google.errors import (
    AuthorizationTimeoutError,
    BrowserLaunchError,
    CalauthError,
    CallbackServerError,
    ConfigError,
    TokenExchangeError,
)
from calauth.auth.google.models import ClientConfig, GoogleToken
from calauth.auth.google.storage import load_token, save_token


def _get(url: str) -> httpx.Response:
    return httpx.get(url, trust_env=False)


@pytest.fixture
def exchanged(monkeypatch) -> list[str]:
    codes: list[str] = []

    async def fake_exchange(config: ClientConfig, code: str) -> GoogleToken:
        codes.append(code)
        return GoogleToken(access_token=f"access-for-{code}", refresh_token="1//refresh")

    monkeypatch.setattr(flow, "exchange_code_for_token_async", fake_exchange)
    return codes


class FakeBrowser:
    """Follows the authorization URL by calling the redirect URI directly."""

    def __init__(self, redirect_uri: str, query: str = "code=ABC123&state=state-token"):
        self.callback = f"{redirect_uri}?{query}"
        self.urls: list[str] = []
        self.responses: list[httpx.Response] = []

    def __call__(self, url: str) -> None:
        self.urls.append(url)
        self.responses.append(_get(self.callback))


def test_first_run_authorizes_in_browser_and_saves_token(tmp_path, config, redirect_uri, exchanged) -> None:
    path = tmp_path / "token.json"
    browser = FakeBrowser(redirect_uri, query="code=ABC123")

    token = flow.get_token(config, path, on_auth=browser, timeout=5)

    qs = urllib.parse.parse_qs(urllib.parse.urlparse(browser.urls[0]).query)
    assert qs["client_id"] == ["client-123"]
    assert qs["state"] == ["state-token"]
    assert browser.responses[0].status_code == 200
    assert "You can close this window." in browser.responses[0].text
    assert exchanged == ["ABC123"]
    assert token.access_token == "access-for-ABC123"
    assert json.loads(path.read_text(encoding="utf-8"))["access_token"] == "access-for-ABC123"


def test_second_run_reuses_cached_token(tmp_path, config, redirect_uri, exchanged) -> None:
    path = tmp_path / "token.json"
    first = flow.get_client(config, path, on_auth=FakeBrowser(redirect_uri), timeout=5)

    def no_browser(url: str) -> None:
        pytest.fail("cached token should not trigger authorization")

    second = flow.get_client(config, path, on_auth=no_browser, timeout=5)

    assert exchanged == ["ABC123"]
    assert first.auth.token == second.auth.token
    first.close()
    second.close()


def test_cached_token_skips_listener(tmp_path, config, monkeypatch) -> None:
    path = tmp_path / "token.json"
    cached = GoogleToken(access_token="cached", refresh_token="r")
    save_token(path, cached)

    def no_server(*args, **kwargs):
        raise AssertionError("listener should not start")

    monkeypatch.setattr(flow, "start_callback_server", no_server)

    assert flow.get_token(config, path) == cached


@pytest.mark.parametrize("content", [None, "garbage", "{}"])
def test_missing_or_corrupt_cache_runs_interactive_flow(tmp_path, config, redirect_uri, exchanged, content) -> None:
    path = tmp_path / "token.json"
    if content is not None:
        path.write_text(content, encoding="utf-8")

    token = flow.get_token(config, path, on_auth=FakeBrowser(redirect_uri), timeout=5)

    assert token.access_token == "access-for-ABC123"
    assert load_token(path) == token


def test_force_ignores_cached_token(tmp_path, config, redirect_uri, exchanged) -> None:
    path = tmp_path / "token.json"
    save_token(path, GoogleToken(access_token="stale"))

    token = flow.get_token(config, path, on_auth=FakeBrowser(redirect_uri), timeout=5, force=True)

    assert token.access_token == "access-for-ABC123"
    assert load_token(path) == token


def test_missing_configuration_fails_before_any_io(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "secret")

    def forbidden(*args, **kwargs):
        raise AssertionError("no file or network activity expected")

    monkeypatch.setattr(flow, "token_from_file", forbidden)
    monkeypatch.setattr(flow, "start_callback_server", forbidden)
    monkeypatch.setattr(flow, "save_token", forbidden)

    with pytest.raises(ConfigError, match="GOOGLE_CLIENT_ID"):
        flow.get_client(token_path=tmp_path / "token.json")
    assert not (tmp_path / "token.json").exists()


def test_callback_timeout_raises_and_releases_port(tmp_path, config, redirect_uri, exchanged) -> None:
    path = tmp_path / "token.json"

    with pytest.raises(AuthorizationTimeoutError, match="timed out"):
        flow.get_token(config, path, on_auth=lambda url: None, timeout=0.2)

    assert exchanged == []
    assert not path.exists()

    token = flow.get_token(config, path, on_auth=FakeBrowser(redirect_uri), timeout=5)
    assert token.access_token == "access-for-ABC123"


def test_callback_without_code_keeps_waiting(tmp_path, config, redirect_uri, exchanged) -> None:
    browser = FakeBrowser(redirect_uri, query="error=access_denied")

    with pytest.raises(AuthorizationTimeoutError):
        flow.get_token(config, tmp_path / "token.json", on_auth=browser, timeout=0.3)

    assert browser.responses[0].status_code == 400
    assert exchanged == []


def test_browser_launch_failure(tmp_path, config, monkeypatch, exchanged) -> None:
    opened: list[str] = []

    def fake_open(url: str) -> bool:
        opened.append(url)
        return False

    monkeypatch.setattr(flow.webbrowser, "open", fake_open)

    with pytest.raises(BrowserLaunchError):
        flow.get_token(config, tmp_path / "token.json", timeout=5)
    assert len(opened) == 1
    assert not (tmp_path / "token.json").exists()


def test_default_browser_is_used_without_on_auth(tmp_path, config, redirect_uri, monkeypatch, exchanged) -> None:
    browser = FakeBrowser(redirect_uri)

    def fake_open(url: str) -> bool:
        browser(url)
        return True

    monkeypatch.setattr(flow.webbrowser, "open", fake_open)

    token = flow.get_token(config, tmp_path / "token.json", timeout=5)
    assert token.access_token == "access-for-ABC123"
    assert len(browser.urls) == 1


def test_listener_bind_failure_is_fatal(tmp_path, config, monkeypatch, exchanged) -> None:
    def failing_server(*args, **kwargs):
        raise CallbackServerError("port in use")

    monkeypatch.setattr(flow, "start_callback_server", failing_server)

    with pytest.raises(CallbackServerError):
        flow.get_token(config, tmp_path / "token.json", on_auth=lambda url: None, timeout=5)


def test_exchange_failure_is_fatal(tmp_path, config, redirect_uri, monkeypatch) -> None:
    async def failing_exchange(config, code):
        raise TokenExchangeError("Token exchange failed: 400 invalid_grant")

    monkeypatch.setattr(flow, "exchange_code_for_token_async", failing_exchange)

    with pytest.raises(TokenExchangeError):
        flow.get_token(config, tmp_path / "token.json", on_auth=FakeBrowser(redirect_uri), timeout=5)
    assert not (tmp_path / "token.json").exists()


def test_progress_messages(tmp_path, config, redirect_uri, exchanged) -> None:
    messages: list[str] = []
    flow.get_token(config, tmp_path / "token.json", on_auth=FakeBrowser(redirect_uri), on_progress=messages.append, timeout=5)
    assert messages == ["Waiting for browser callback...", "Exchanging authorization code for tokens..."]


def test_ensure_token_available_uses_cache(tmp_path) -> None:
    path = tmp_path / "token.json"
    save_token(path, GoogleToken(access_token="cached"))
    flow.ensure_token_available(path)


def test_ensure_token_available_fails_fast_without_cache(tmp_path, monkeypatch) -> None:
    def forbidden(*args, **kwargs):
        raise AssertionError("browser flow must not start")

    monkeypatch.setattr(flow, "token_from_web", forbidden)

    with pytest.raises(CalauthError, match="login"):
        flow.ensure_token_available(tmp_path / "token.json")


@pytest.mark.asyncio
async def test_token_from_web_inside_running_loop(config, redirect_uri, exchanged) -> None:
    token = flow.token_from_web(config, on_auth=FakeBrowser(redirect_uri), timeout=5)
    assert token.access_token == "access-for-ABC123"
