"""Tests for CLI command orchestration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from api_payloads import chapter_result, error_body, list_envelope, manga_result, tag_result, token_body
from http_doubles import API_URL, FakeHttpSession, FakeResponse
from mdloader.cli import main as cli_main
from mdloader.cli.exit_codes import AUTH_OR_USAGE_ERROR, INTERNAL_BUG, OUT_OF_RANGE, UPSTREAM_FAILURE
from mdloader.client.init import MangaDexClient
from mdloader.client.rate_limiter import RateLimiter
from mdloader.settings import MemorySettingsStore

MANGA_ID = "a96676e5-8ae2-425e-b549-7f15dd34a6d8"
CHAPTER_ID = "5e8bc984-5f3f-4fb1-b6ee-cf7f3812b112"
SERVER_URL = "https://node.example/token"


@pytest.fixture
def observed_levels(
    monkeypatch: pytest.MonkeyPatch,
    http: FakeHttpSession,
    settings: MemorySettingsStore,
    limiter: RateLimiter,
) -> list[int]:
    """Wire the CLI to the HTTP double and record logging reconfiguration."""
    levels: list[int] = []

    def _setup_logging(*, level: int) -> None:
        levels.append(level)

    monkeypatch.setattr(cli_main, "setup_logging", _setup_logging)
    monkeypatch.setattr(
        cli_main,
        "build_client",
        lambda settings_path: MangaDexClient(settings, http=http, api_url=API_URL, limiter=limiter),
    )
    return levels


def _last_json(output: str) -> dict[str, Any]:
    return json.loads(output.strip().splitlines()[-1])


def test_cli_default_mode_keeps_logging_and_prints_intro(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify default mode leaves logging alone and shows the banner."""
    http.route("GET", "/manga/tag", FakeResponse(200, [tag_result("t-1", "Action")]))

    result = CliRunner().invoke(cli_main.main, ["tags"])

    assert result.exit_code == 0, result.output
    assert observed_levels == []
    assert "Action (t-1)" in result.output
    assert "|_|" in result.output


@pytest.mark.parametrize(
    ("flags", "expected_level"),
    [(["--verbose"], 10), (["--json"], 30), (["--quiet"], 30)],
)
def test_cli_output_flags_adjust_logging(
    observed_levels: list[int],
    http: FakeHttpSession,
    flags: list[str],
    expected_level: int,
) -> None:
    """Verify verbose, JSON and quiet modes reconfigure logging levels."""
    http.route("GET", "/manga/tag", FakeResponse(200, []))

    result = CliRunner().invoke(cli_main.main, [*flags, "tags"])

    assert result.exit_code == 0, result.output
    assert observed_levels == [expected_level]


def test_login_stores_refresh_token(
    observed_levels: list[int],
    http: FakeHttpSession,
    settings: MemorySettingsStore,
) -> None:
    """Verify ``login`` authenticates and persists the refresh token."""
    http.route("POST", "/auth/login", FakeResponse(200, token_body("s-1", "r-1")))

    result = CliRunner().invoke(cli_main.main, ["login", "-u", "reader", "-p", "pw"])

    assert result.exit_code == 0, result.output
    assert "Logged in as reader" in result.output
    assert settings.get("refreshToken") == "r-1"


def test_login_rejection_maps_to_user_error(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify bad credentials end with the user-error exit code."""
    http.route("POST", "/auth/login", FakeResponse(401, error_body(401, "User / Password does not match")))

    result = CliRunner().invoke(cli_main.main, ["login", "-u", "reader", "-p", "wrong"])

    assert result.exit_code == AUTH_OR_USAGE_ERROR
    assert "MangaDex error [401]: User / Password does not match" in result.output


def test_logout_forgets_stored_token(
    observed_levels: list[int],
    http: FakeHttpSession,
    settings: MemorySettingsStore,
) -> None:
    """Verify ``logout`` restores the session, logs out and clears the token."""
    settings.set("refreshToken", "r-1")
    http.route("POST", "/auth/refresh", FakeResponse(200, token_body("s-1", "r-2")))
    http.route("POST", "/auth/logout", FakeResponse(200, {"result": "ok"}))

    result = CliRunner().invoke(cli_main.main, ["--json", "logout"])

    assert result.exit_code == 0, result.output
    assert _last_json(result.output) == {"status": "ok", "authenticated": False}
    assert settings.get("refreshToken") == ""
    assert http.calls_to("POST", "/auth/logout")[0].headers["Authorization"] == "Bearer s-1"


def test_status_reports_init_errors_in_json(
    observed_levels: list[int],
    http: FakeHttpSession,
    settings: MemorySettingsStore,
) -> None:
    """Verify ``status`` surfaces collected startup problems."""
    settings.set("refreshToken", "r-1")
    http.route("POST", "/auth/refresh", FakeResponse(503))
    http.route("GET", "/manga/tag", FakeResponse(200, [tag_result("t-1", "Action")]))

    result = CliRunner().invoke(cli_main.main, ["--json", "status"])

    assert result.exit_code == 0, result.output
    payload = _last_json(result.output)
    assert payload["authenticated"] is False
    assert payload["tags"] == 1
    assert payload["init_errors"] == [
        {"status": 503, "details": "Unable to contact authentication servers. Login required"}
    ]


def test_search_resolves_tag_names(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify tag names are resolved to IDs before searching."""
    http.route("GET", "/manga/tag", FakeResponse(200, [tag_result("t-1", "Action"), tag_result("t-2", "Romance")]))
    http.route("GET", "/manga", FakeResponse(200, list_envelope([manga_result("m-1")], limit=10, total=1)))

    result = CliRunner().invoke(
        cli_main.main,
        ["search", "yotsuba", "--limit", "10", "-t", "romance", "--tags-mode", "or", "-o", "year:desc"],
    )

    assert result.exit_code == 0, result.output
    assert "m-1  Yotsuba&!" in result.output
    params = http.calls_to("GET", "/manga")[0].params
    assert ("includedTags[]", "t-2") in params
    assert ("includedTagsMode", "OR") in params
    assert ("order[year]", "desc") in params


def test_search_forwards_demographic_filter(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify repeated demographic choices become array filters."""
    http.route("GET", "/manga", FakeResponse(200, list_envelope([manga_result("m-1")], limit=10, total=1)))

    result = CliRunner().invoke(cli_main.main, ["search", "-d", "seinen", "--demographic", "josei"])

    assert result.exit_code == 0, result.output
    params = http.calls_to("GET", "/manga")[0].params
    assert ("publicationDemographic[]", "seinen") in params
    assert ("publicationDemographic[]", "josei") in params


def test_search_rejects_unknown_demographic(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify demographic values outside the known set are usage errors."""
    result = CliRunner().invoke(cli_main.main, ["search", "-d", "kodomo"])

    assert result.exit_code == 2
    assert http.calls == []


def test_search_unknown_tag_maps_to_validation_error(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify unknown tag names end with the validation exit code."""
    http.route("GET", "/manga/tag", FakeResponse(200, [tag_result("t-1", "Action")]))

    result = CliRunner().invoke(cli_main.main, ["search", "-t", "Horror"])

    assert result.exit_code == OUT_OF_RANGE
    assert "Unknown tag: Horror" in result.output


def test_search_rejects_unsupported_sort_field(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify invalid sort fields are reported as usage errors."""
    result = CliRunner().invoke(cli_main.main, ["search", "-o", "popularity:desc"])

    assert result.exit_code == 2
    assert "Unsupported sort field: popularity" in result.output
    assert http.calls == []


def test_chapters_lists_rows(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify ``chapters`` forwards filters and prints rows."""
    http.route("GET", "/chapter", FakeResponse(200, list_envelope([chapter_result("c-1")], limit=100, total=1)))

    result = CliRunner().invoke(cli_main.main, ["chapters", MANGA_ID, "-l", "en", "-o", "chapter:desc"])

    assert result.exit_code == 0, result.output
    assert "Vol.1 Ch.2" in result.output
    assert "Scanlators" in result.output
    params = http.calls[0].params
    assert ("manga", MANGA_ID) in params
    assert ("order[chapter]", "desc") in params


def test_chapters_rejects_malformed_manga_id(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify malformed IDs fail before any request is made."""
    result = CliRunner().invoke(cli_main.main, ["chapters", "not-an-id"])

    assert result.exit_code == 2
    assert http.calls == []


def test_chapters_api_failure_maps_to_external_failure(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify API failures end with the external-failure exit code."""
    http.route("GET", "/chapter", FakeResponse(503))

    result = CliRunner().invoke(cli_main.main, ["--json", "chapters", MANGA_ID])

    assert result.exit_code == UPSTREAM_FAILURE
    payload = _last_json(result.output)
    assert payload["error"] == {"source": "MangaDex", "status": 503, "details": "Unknown Error"}


def _route_page(http: FakeHttpSession) -> None:
    http.route("GET", f"/chapter/{CHAPTER_ID}", FakeResponse(200, chapter_result(CHAPTER_ID)))
    http.route("GET", f"/at-home/server/{CHAPTER_ID}", FakeResponse(200, {"result": "ok", "baseUrl": SERVER_URL}))
    http.route("GET", f"{SERVER_URL}/data/hash123/p2.png", FakeResponse(200, content=b"page-two"))


def test_page_downloads_image(observed_levels: list[int], http: FakeHttpSession, tmp_path: Path) -> None:
    """Verify ``page`` writes the image bytes to the requested file."""
    _route_page(http)
    out_path = tmp_path / "pages" / "two.png"

    result = CliRunner().invoke(cli_main.main, ["--json", "page", CHAPTER_ID, "2", "--out", str(out_path)])

    assert result.exit_code == 0, result.output
    assert out_path.read_bytes() == b"page-two"
    assert _last_json(result.output) == {"status": "ok", "path": str(out_path), "bytes": 8}
    assert "Authorization" not in http.calls_to("GET", f"{SERVER_URL}/data/hash123/p2.png")[0].headers


def test_page_default_output_name(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify the default output file is named after chapter and page."""
    _route_page(http)
    runner = CliRunner()

    with runner.isolated_filesystem():
        result = runner.invoke(cli_main.main, ["--quiet", "page", CHAPTER_ID, "2"])
        saved = Path(f"{CHAPTER_ID}_002.png").read_bytes()

    assert result.exit_code == 0, result.output
    assert saved == b"page-two"


def test_page_out_of_range_maps_to_validation_error(observed_levels: list[int], http: FakeHttpSession) -> None:
    """Verify missing pages end with the validation exit code."""
    _route_page(http)

    result = CliRunner().invoke(cli_main.main, ["page", CHAPTER_ID, "9"])

    assert result.exit_code == OUT_OF_RANGE
    assert "out of range" in result.output


def test_unexpected_failure_maps_to_internal_bug(
    observed_levels: list[int],
    http: FakeHttpSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Verify unexpected exceptions end with the internal-bug exit code."""

    async def broken_init_tags(self: MangaDexClient) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(MangaDexClient, "init_tags", broken_init_tags)

    result = CliRunner().invoke(cli_main.main, ["tags"])

    assert result.exit_code == INTERNAL_BUG


def test_page_uses_at_home_metadata(observed_levels: list[int], http: FakeHttpSession, tmp_path: Path) -> None:
    """Verify ``page`` works when only the at-home answer lists page files."""
    http.route(
        "GET",
        f"/at-home/server/{CHAPTER_ID}",
        FakeResponse(
            200,
            {
                "result": "ok",
                "baseUrl": SERVER_URL,
                "chapter": {"hash": "live", "data": ["x1.png"], "dataSaver": ["x1.jpg"]},
            },
        ),
    )
    http.route("GET", f"{SERVER_URL}/data/live/x1.png", FakeResponse(200, content=b"live-page"))
    out_path = tmp_path / "one.png"

    result = CliRunner().invoke(cli_main.main, ["--quiet", "page", CHAPTER_ID, "1", "--out", str(out_path)])

    assert result.exit_code == 0, result.output
    assert out_path.read_bytes() == b"live-page"
    assert http.calls_to("GET", f"/chapter/{CHAPTER_ID}") == []
