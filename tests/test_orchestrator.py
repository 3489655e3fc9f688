"""Tests for batch extraction."""
import asyncio
import threading

import pytest
from errors import InvalidExtractionResponse, UpstreamExtractionFailed
from schemas.takeoff import PageExtraction
from agents.orchestrator import (
    CooldownScheduler,
    PageStatus,
    number_pages,
    run_batch,
    run_batch_async,
)


class FakeClock:
    """Clock whose sleep advances time instead of blocking."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _extract(image, plan_id, page_number):
    return PageExtraction(plan_id=plan_id, page_number=page_number)


def _scheduler(interval=0.0):
    clock = FakeClock()
    return CooldownScheduler(interval, clock=clock, sleep=clock.sleep), clock


class TestCooldownScheduler:
    def test_spacing(self):
        scheduler, clock = _scheduler(2.0)
        assert scheduler.wait() == 0
        assert scheduler.wait() == 2.0
        clock.now += 5
        assert scheduler.wait() == 0
        assert clock.sleeps == [2.0]

    def test_zero_interval(self):
        scheduler, clock = _scheduler(0.0)
        for _ in range(3):
            scheduler.wait()
        assert clock.sleeps == []

    def test_negative_interval(self):
        with pytest.raises(ValueError):
            CooldownScheduler(-1)


class TestNumberPages:
    def test_numbering(self):
        assert number_pages(["a.png", "b.png"], first_page=3) == [(3, "a.png"), (4, "b.png")]


class TestRunBatch:
    def test_all_pages_succeed_in_order(self):
        scheduler, _ = _scheduler()
        result = run_batch(_extract, number_pages(["a", "b", "c"]), "plan-1", scheduler=scheduler)
        assert [o.status for o in result.outcomes] == [PageStatus.SUCCESS] * 3
        assert [p.page_number for p in result.pages] == [1, 2, 3]
        assert not result.is_partial

    def test_cooldown_between_calls(self):
        scheduler, clock = _scheduler(1.5)
        run_batch(_extract, number_pages(["a", "b", "c"]), "plan-1", scheduler=scheduler)
        assert clock.sleeps == [1.5, 1.5]

    def test_batch_over_cap_rejected_before_any_call(self):
        calls = []

        def extract(image, plan_id, page_number):
            calls.append(page_number)
            return _extract(image, plan_id, page_number)

        with pytest.raises(ValueError):
            run_batch(extract, number_pages(["x"] * 4), "plan-1", max_batch=3)
        assert calls == []

    def test_duplicate_page_numbers_rejected(self):
        with pytest.raises(ValueError):
            run_batch(_extract, [(1, "a"), (1, "b")], "plan-1")

    def test_failures_do_not_stop_the_batch(self):
        def extract(image, plan_id, page_number):
            if page_number == 2:
                raise InvalidExtractionResponse("bad json", "not json", page_number)
            if page_number == 3:
                raise UpstreamExtractionFailed("overloaded", status_code=529, page_number=page_number)
            return _extract(image, plan_id, page_number)

        scheduler, _ = _scheduler()
        result = run_batch(extract, number_pages(["a", "b", "c", "d"]), "plan-1", scheduler=scheduler)
        assert [o.page_number for o in result.succeeded] == [1, 4]
        assert [o.error_type for o in result.failed] == ["InvalidExtractionResponse", "UpstreamExtractionFailed"]
        assert result.is_partial

    def test_unexpected_errors_are_recorded(self):
        def extract(image, plan_id, page_number):
            raise RuntimeError("boom")

        scheduler, _ = _scheduler()
        result = run_batch(extract, number_pages(["a"]), "plan-1", scheduler=scheduler)
        assert result.failed[0].error == "boom"

    def test_cancel_keeps_finished_pages(self):
        cancel = threading.Event()

        def extract(image, plan_id, page_number):
            if page_number == 2:
                cancel.set()
            return _extract(image, plan_id, page_number)

        scheduler, _ = _scheduler()
        result = run_batch(extract, number_pages(["a", "b", "c", "d"]), "plan-1",
                           cancel_event=cancel, scheduler=scheduler)
        assert result.cancelled
        assert [o.page_number for o in result.succeeded] == [1, 2]
        assert [o.page_number for o in result.skipped] == [3, 4]

    def test_on_page_called_per_completed_page(self):
        seen = []
        scheduler, _ = _scheduler()
        run_batch(_extract, number_pages(["a", "b"]), "plan-1", on_page=seen.append, scheduler=scheduler)
        assert [o.page_number for o in seen] == [1, 2]

    def test_timing_recorded(self):
        scheduler, _ = _scheduler()
        result = run_batch(_extract, number_pages(["a", "b"]), "plan-1", scheduler=scheduler)
        batch = result.timing["spans"][0]
        assert batch["name"] == "batch"
        assert [c["name"] for c in batch["children"]] == ["page-1", "page-2"]
        assert result.outcomes[0].duration_seconds is not None


class TestRunBatchAsync:
    def test_outcomes_in_page_order(self):
        scheduler, _ = _scheduler()
        result = asyncio.run(run_batch_async(
            _extract, number_pages(["a", "b", "c", "d", "e"]), "plan-1", max_concurrent=2, scheduler=scheduler,
        ))
        assert [o.page_number for o in result.outcomes] == [1, 2, 3, 4, 5]
        assert len(result.succeeded) == 5

    def test_failure_isolated(self):
        def extract(image, plan_id, page_number):
            if page_number == 1:
                raise UpstreamExtractionFailed("down", status_code=503)
            return _extract(image, plan_id, page_number)

        scheduler, _ = _scheduler()
        result = asyncio.run(run_batch_async(extract, number_pages(["a", "b"]), "plan-1", scheduler=scheduler))
        assert [o.status for o in result.outcomes] == [PageStatus.FAILED, PageStatus.SUCCESS]

    def test_cancelled_before_start(self):
        cancel = threading.Event()
        cancel.set()
        seen = []
        scheduler, _ = _scheduler()
        result = asyncio.run(run_batch_async(
            _extract, number_pages(["a", "b"]), "plan-1", cancel_event=cancel, on_page=seen.append,
            scheduler=scheduler,
        ))
        assert result.cancelled
        assert len(result.skipped) == 2
        assert seen == []

    def test_cap(self):
        with pytest.raises(ValueError):
            asyncio.run(run_batch_async(_extract, number_pages(["x"] * 3), "plan-1", max_batch=2))
