"""Unit tests for the core data model (scrape_cascade.core.models)."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from scrape_cascade.core.models import (
    AttemptOutcome,
    AttemptRecord,
    BatchResult,
    FinalSource,
    JobResult,
    RunStatus,
    ScrapedItem,
    ScrapeTarget,
)


def _item(**overrides) -> ScrapedItem:
    values = {
        "url": "https://www.zillow.com/homedetails/123",
        "title": "123 Ocean Drive",
        "content": "3 bd, 2 ba",
        "platform": "Zillow",
        "source": "apify:maxcopell~zillow-detail-scraper",
        "extracted_at": datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return ScrapedItem(**values)


class TestRunStatus:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("READY", RunStatus.PENDING),
            ("RUNNING", RunStatus.RUNNING),
            ("SUCCEEDED", RunStatus.SUCCEEDED),
            ("FAILED", RunStatus.FAILED),
            ("ABORTED", RunStatus.ABORTED),
            ("TIMED-OUT", RunStatus.TIMED_OUT),
            ("ABORTING", RunStatus.RUNNING),
            ("TIMING-OUT", RunStatus.RUNNING),
            ("succeeded", RunStatus.SUCCEEDED),
        ],
    )
    def test_from_provider(self, raw: str, expected: RunStatus) -> None:
        assert RunStatus.from_provider(raw) is expected

    def test_unknown_status_is_running(self) -> None:
        assert RunStatus.from_provider("SOMETHING-NEW") is RunStatus.RUNNING
        assert RunStatus.from_provider(None) is RunStatus.RUNNING

    def test_terminal_and_failure_sets(self) -> None:
        assert RunStatus.SUCCEEDED.is_terminal
        assert not RunStatus.SUCCEEDED.is_failure
        for status in (RunStatus.FAILED, RunStatus.ABORTED, RunStatus.TIMED_OUT):
            assert status.is_terminal
            assert status.is_failure
        assert not RunStatus.PENDING.is_terminal
        assert not RunStatus.RUNNING.is_terminal

    def test_advance_moves_forward_from_non_terminal(self) -> None:
        assert RunStatus.PENDING.advance(RunStatus.RUNNING) is RunStatus.RUNNING
        assert RunStatus.RUNNING.advance(RunStatus.SUCCEEDED) is RunStatus.SUCCEEDED

    def test_terminal_status_is_sticky(self) -> None:
        assert RunStatus.FAILED.advance(RunStatus.RUNNING) is RunStatus.FAILED
        assert RunStatus.SUCCEEDED.advance(RunStatus.FAILED) is RunStatus.SUCCEEDED


class TestScrapeTarget:
    def test_from_url_infers_domain_and_platform(self) -> None:
        target = ScrapeTarget.from_url("https://www.zillow.com/homedetails/123")
        assert target.domain == "zillow.com"
        assert target.platform == "Zillow"

    def test_from_url_strips_whitespace(self) -> None:
        target = ScrapeTarget.from_url("  https://reddit.com/r/miami  ")
        assert target.url == "https://reddit.com/r/miami"
        assert target.platform == "Reddit"

    def test_malformed_url_is_unknown(self) -> None:
        target = ScrapeTarget.from_url("not a url")
        assert target.domain == ""
        assert target.platform == "Unknown"

    def test_locality(self) -> None:
        assert ScrapeTarget.from_url("https://x.com/a", city="Miami", state="FL").locality == "Miami, FL"
        assert ScrapeTarget.from_url("https://x.com/a", state="FL").locality == "FL"
        assert ScrapeTarget.from_url("https://x.com/a").locality is None

    def test_is_immutable(self) -> None:
        target = ScrapeTarget.from_url("https://www.zillow.com/")
        with pytest.raises(AttributeError):
            target.url = "https://other.com"  # type: ignore[misc]


class TestJobResult:
    def test_successful_requires_items(self) -> None:
        assert not JobResult(status=RunStatus.SUCCEEDED, dataset_id="ds").successful
        assert JobResult(status=RunStatus.SUCCEEDED, dataset_id="ds", items=[_item()]).successful

    def test_failed_status_is_not_successful(self) -> None:
        assert not JobResult(status=RunStatus.FAILED, items=[_item()]).successful


class TestSerialization:
    def test_item_to_dict_uses_downstream_keys(self) -> None:
        data = _item(metadata={"confidence": "high", "propertyData": {"price": 1}}).to_dict()
        assert data["extractedAt"] == "2026-01-05T10:00:00+00:00"
        assert data["synthetic"] is False
        assert data["confidence"] == "high"
        assert data["propertyData"] == {"price": 1}
        assert {"url", "title", "content", "platform", "source"} <= set(data)

    def test_attempt_to_dict(self) -> None:
        record = AttemptRecord(
            source="apify~website-content-crawler",
            outcome=AttemptOutcome.EMPTY_RESULT,
            duration_ms=1200,
            run_id="run-1",
        )
        assert record.to_dict() == {
            "source": "apify~website-content-crawler",
            "outcome": "empty_result",
            "durationMs": 1200,
            "error": None,
            "runId": "run-1",
            "itemCount": 0,
        }

    def test_batch_result_to_dict(self) -> None:
        target = ScrapeTarget.from_url("https://www.zillow.com/homedetails/123")
        result = BatchResult(
            target=target,
            items=[_item()],
            attempts=[AttemptRecord(source="direct", outcome=AttemptOutcome.SUCCEEDED)],
            final_source=FinalSource.DIRECT,
        )
        data = result.to_dict()
        assert data["finalSource"] == "direct"
        assert data["synthetic"] is False
        assert len(data["items"]) == 1
        assert data["attempts"][0]["source"] == "direct"


class TestBatchResultCopy:
    def test_copy_for_is_independent(self) -> None:
        first = ScrapeTarget.from_url("https://www.zillow.com/homedetails/123")
        second = ScrapeTarget.from_url("https://zillow.com/homedetails/123/")
        original = BatchResult(
            target=first,
            items=[_item()],
            attempts=[],
            final_source=FinalSource.ACTOR,
        )
        copy = original.copy_for(second)
        copy.items[0].metadata["touched"] = True

        assert copy.target is second
        assert copy.final_source is FinalSource.ACTOR
        assert "touched" not in original.items[0].metadata

    def test_synthetic_property(self) -> None:
        target = ScrapeTarget.from_url("https://www.zillow.com/")
        result = BatchResult(target=target, items=[_item()], attempts=[], final_source=FinalSource.SYNTHETIC)
        assert result.synthetic is True
