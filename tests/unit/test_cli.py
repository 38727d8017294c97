"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from scrape_cascade.cli import build_parser, main
from scrape_cascade.config.settings import get_settings
from scrape_cascade.core.models import (
    AttemptOutcome,
    AttemptRecord,
    BatchResult,
    FinalSource,
    ScrapedItem,
    ScrapeTarget,
)


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _result(url: str) -> BatchResult:
    target = ScrapeTarget.from_url(url, city="Miami", state="FL")
    item = ScrapedItem(
        url=url,
        title="Zillow activity detected",
        content="placeholder",
        platform="Zillow",
        source="synthetic",
        synthetic=True,
        metadata={"confidence": "none"},
    )
    return BatchResult(
        target=target,
        items=[item],
        attempts=[AttemptRecord(source="synthetic", outcome=AttemptOutcome.SUCCEEDED, item_count=1)],
        final_source=FinalSource.SYNTHETIC,
    )


class TestParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args(["https://example.com"])
        assert args.urls == ["https://example.com"]
        assert args.city is None
        assert args.indent == 2

    def test_requires_a_url(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    def test_prints_json(self, capsys) -> None:
        url = "https://www.zillow.com/homedetails/1"
        fake_scrape = AsyncMock(return_value=[_result(url)])
        with patch("scrape_cascade.cli.scrape", fake_scrape), patch(
            "scrape_cascade.cli.configure_logging"
        ) as configure:
            exit_code = main([url, "--city", "Miami", "--state", "FL", "--log-level", "DEBUG"])

        assert exit_code == 0
        configure.assert_called_once_with("DEBUG")
        fake_scrape.assert_awaited_once()
        args, kwargs = fake_scrape.call_args
        assert args[0] == [url]
        assert kwargs["city"] == "Miami"
        assert kwargs["state"] == "FL"

        payload = json.loads(capsys.readouterr().out)
        assert payload[0]["url"] == url
        assert payload[0]["finalSource"] == "synthetic"
        assert payload[0]["items"][0]["confidence"] == "none"

    def test_compact_output(self, capsys) -> None:
        url = "https://www.zillow.com/homedetails/1"
        with patch("scrape_cascade.cli.scrape", AsyncMock(return_value=[_result(url)])), patch(
            "scrape_cascade.cli.configure_logging"
        ):
            main([url, "--indent", "0"])

        out = capsys.readouterr().out
        assert out.count("\n") == 1
        assert json.loads(out)[0]["synthetic"] is True
