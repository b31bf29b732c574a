"""Tests for the data-dump downloader and the HTTP retry helper."""

import json

import pytest
import requests

from tunebook import download, http_utils
from tunebook.config import INPUT_FILES


class FakeResponse:

    def __init__(self, status_code=200, content=b"[]", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(url)
        return self.responses.pop(0)


@pytest.fixture
def no_sleep(monkeypatch):
    """Record sleep durations instead of sleeping."""
    slept = []
    monkeypatch.setattr(http_utils.time, "sleep", slept.append)
    return slept


class TestGetWithRetry:

    def test_success(self, no_sleep):
        session = FakeSession([FakeResponse(content=b"ok")])
        resp = http_utils.get_with_retry(session, "http://x/y")
        assert resp.content == b"ok"
        assert session.calls == ["http://x/y"]

    def test_retries_server_errors(self, no_sleep):
        session = FakeSession([FakeResponse(503), FakeResponse(429, headers={"Retry-After": "1"}),
                               FakeResponse(content=b"ok")])
        resp = http_utils.get_with_retry(session, "http://x/y")
        assert resp.content == b"ok"
        assert len(session.calls) == 3

    def test_final_attempt_raises(self, no_sleep):
        session = FakeSession([FakeResponse(500)] * 4)
        with pytest.raises(requests.HTTPError):
            http_utils.get_with_retry(session, "http://x/y", max_retries=3)
        assert len(session.calls) == 4

    def test_retry_after_header(self, no_sleep):
        session = FakeSession([
            FakeResponse(503, headers={"Retry-After": "7"}),
            FakeResponse(503, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}),
            FakeResponse(content=b"ok"),
        ])
        http_utils.get_with_retry(session, "http://x/y", rate_limit=0.25)
        # numeric header honoured, date form falls back to exponential backoff
        assert no_sleep == [7, 2, 0.25]

    def test_client_error_not_retried(self, no_sleep):
        session = FakeSession([FakeResponse(404)])
        with pytest.raises(requests.HTTPError):
            http_utils.get_with_retry(session, "http://x/y")
        assert len(session.calls) == 1

    def test_progress_line(self):
        assert http_utils.progress_line(50, 100, 10.0) == "[50/100  50% 10s eta 10s]"
        assert http_utils.progress_line(0, 0, 0) == "[0/0   0% 0s eta 0s]"


class TestDownloadAll:

    @pytest.fixture
    def fake_get(self, monkeypatch):
        calls = []

        def fake(session, url, params=None, rate_limit=0.5, max_retries=3, timeout=60):
            calls.append(url)
            if url.endswith("sessions.json"):
                raise requests.ConnectionError("connection reset")
            return FakeResponse(content=json.dumps([{"url": url}]).encode())

        monkeypatch.setattr(download, "get_with_retry", fake)
        return calls

    def test_dump_url(self):
        assert download.dump_url("tunes.json", "https://example.org/json/") == \
            "https://example.org/json/tunes.json"

    def test_downloads_into_json_subdir(self, tmp_path, fake_get):
        downloaded, skipped, failed = download.download_all(
            tmp_path, filenames=["tunes.json", "sets.json"], verbose=False)
        assert downloaded == ["sets.json", "tunes.json"]
        assert skipped == []
        assert failed == []
        data = json.loads((tmp_path / "json" / "tunes.json").read_text())
        assert data[0]["url"].endswith("/tunes.json")

    def test_failures_reported_not_raised(self, tmp_path, fake_get, capsys):
        downloaded, _, failed = download.download_all(
            tmp_path, filenames=["tunes.json", "sessions.json"], verbose=True)
        assert downloaded == ["tunes.json"]
        assert failed == ["sessions.json"]
        assert "ERROR on sessions.json" in capsys.readouterr().out
        assert not (tmp_path / "json" / "sessions.json").exists()

    def test_existing_files_skipped(self, tmp_path, fake_get):
        (tmp_path / "json").mkdir()
        (tmp_path / "json" / "tunes.json").write_text("[]")
        downloaded, skipped, _ = download.download_all(
            tmp_path, filenames=["tunes.json"], verbose=False)
        assert downloaded == []
        assert skipped == ["tunes.json"]
        assert fake_get == []

    def test_corrupt_file_refetched(self, tmp_path, fake_get):
        (tmp_path / "json").mkdir()
        (tmp_path / "json" / "tunes.json").write_text("[{")
        downloaded, skipped, _ = download.download_all(
            tmp_path, filenames=["tunes.json"], verbose=False)
        assert downloaded == ["tunes.json"]
        assert skipped == []

    def test_force(self, tmp_path, fake_get):
        (tmp_path / "json").mkdir()
        (tmp_path / "json" / "tunes.json").write_text("[]")
        downloaded, _, _ = download.download_all(
            tmp_path, filenames=["tunes.json"], force=True, verbose=False)
        assert downloaded == ["tunes.json"]

    def test_default_file_list(self, tmp_path, fake_get):
        downloaded, _, failed = download.download_all(tmp_path, verbose=False)
        assert sorted(downloaded + failed) == sorted(INPUT_FILES.values())
