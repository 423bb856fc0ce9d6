"""
Tests for the per-activity loop (nwbooker/booking/runner.py), including
end-to-end runs through the real client, matcher and retry controller.
"""
import logging
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from nwbooker.api.client import NordicWellnessClient
from nwbooker.booking.retry import RetryController
from nwbooker.booking.runner import ActivityRunner
from nwbooker.common.models import BookingOutcome, BookingRun, OutcomeKind, RunState
from nwbooker.common.scheduler import ScheduleClock, fixed_offset

TZ = fixed_offset(120)


class StopRunner(Exception):
    pass


def _scheduler(*now):
    return SimpleNamespace(
        now=MagicMock(side_effect=list(now)),
        wait_until=AsyncMock(),
        format_countdown=MagicMock(return_value="1s"),
    )


def _runner(activity, controller, scheduler, max_attempts=3, notifications=None):
    return ActivityRunner(
        activity=activity,
        clock=ScheduleClock(activity.schedule, 120),
        controller=controller,
        scheduler=scheduler,
        max_attempts=max_attempts,
        backoff_seconds=0,
        cooldown_seconds=0,
        notifications=notifications,
    )


def _listing(*slots):
    return {"groupActivities": list(slots)}


class TestRunForever:
    @pytest.mark.asyncio
    async def test_waits_for_each_wake_then_books_then_cools_down(self, activity):
        monday = TZ.localize(datetime(2030, 1, 7, 12, 0))
        scheduler = _scheduler(monday, monday + timedelta(days=1))
        controller = SimpleNamespace(run=AsyncMock(return_value=BookingRun(activity=activity)))
        runner = _runner(activity, controller, scheduler)
        runner.cooldown = AsyncMock(side_effect=[None, StopRunner()])

        with pytest.raises(StopRunner):
            await runner.run_forever()

        waits = [c.args[0] for c in scheduler.wait_until.call_args_list]
        assert waits == [
            TZ.localize(datetime(2030, 1, 7, 18, 0)),
            TZ.localize(datetime(2030, 1, 14, 18, 0)),
        ]
        assert controller.run.call_count == 2
        assert runner.cooldown.call_count == 2

    @pytest.mark.asyncio
    async def test_stops_when_schedule_has_no_future_runs(self, activity):
        controller = SimpleNamespace(run=AsyncMock())
        runner = _runner(activity, controller, _scheduler(TZ.localize(datetime(2030, 1, 7))))
        runner.clock = SimpleNamespace(next_wake=MagicMock(return_value=None), expression="0 0 0 1 1 * 2020")

        await runner.run_forever()

        controller.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_budget_and_backoff_come_from_runner(self, activity):
        controller = SimpleNamespace(run=AsyncMock(return_value=BookingRun(activity=activity)))
        runner = _runner(activity, controller, _scheduler(), max_attempts=7)

        await runner.run_occurrence()

        strategy = controller.run.call_args.args[1]
        assert strategy.max_attempts == 7
        assert strategy.delay_seconds == 0

    @pytest.mark.asyncio
    async def test_notifies_result(self, activity):
        run = BookingRun(activity=activity)
        controller = SimpleNamespace(run=AsyncMock(return_value=run))
        notifications = SimpleNamespace(notify=AsyncMock())
        runner = _runner(activity, controller, _scheduler(), notifications=notifications)

        await runner.run_occurrence()

        notifications.notify.assert_called_once_with(run)


class TestScenarios:
    @pytest.mark.asyncio
    async def test_a_books_on_first_try(self, config, activity, make_slot, make_response, caplog):
        caplog.set_level(logging.INFO)
        async with NordicWellnessClient(config) as client:
            client.client.get = AsyncMock(return_value=make_response(
                200, _listing(make_slot(id=11, name="Yoga Flow", start_time="2030-01-07T18:00:00"))
            ))
            client.client.post = AsyncMock(return_value=make_response(200, "OK"))
            runner = _runner(activity, RetryController(client), _scheduler(), max_attempts=3)

            run = await runner.run_occurrence()

        assert run.state == RunState.SUCCEEDED
        assert run.attempts_made == 1
        assert client.client.get.call_count == 1
        assert client.client.post.call_count == 1
        assert client.client.post.call_args.kwargs["data"]["ActivityId"] == "11"
        booked = [r for r in caplog.records if r.getMessage().startswith("Booked ")]
        assert len(booked) == 1
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    @pytest.mark.asyncio
    async def test_b_slot_opens_on_third_search(self, config, activity, make_slot, make_response):
        async with NordicWellnessClient(config) as client:
            client.client.get = AsyncMock(side_effect=[
                make_response(200, _listing()),
                make_response(200, _listing(
                    make_slot(id=11, name="Yoga Flow", start_time="2030-01-07T18:00:00", status="Unavailable"),
                    make_slot(id=12, name="Yoga Flow", start_time="2030-01-08T18:00:00"),
                )),
                make_response(200, _listing(
                    make_slot(id=11, name="Yoga Flow", start_time="2030-01-07T18:00:00"),
                )),
            ])
            client.client.post = AsyncMock(return_value=make_response(200, "OK"))
            runner = _runner(activity, RetryController(client), _scheduler(), max_attempts=3)

            run = await runner.run_occurrence()

        assert run.state == RunState.SUCCEEDED
        assert run.attempts_made == 3
        assert client.client.get.call_count == 3
        client.client.post.assert_called_once()

    @pytest.mark.asyncio
    async def test_c_always_400_exhausts_and_keeps_scheduling(
        self, config, activity, make_slot, make_response, caplog
    ):
        first = TZ.localize(datetime(2030, 1, 7, 12, 0))
        second = TZ.localize(datetime(2030, 1, 7, 18, 10))
        scheduler = _scheduler(first, second)

        async with NordicWellnessClient(config) as client:
            client.client.get = AsyncMock(return_value=make_response(
                200, _listing(make_slot(id=11, name="Yoga Flow", start_time="2030-01-07T18:00:00"))
            ))
            client.client.post = AsyncMock(return_value=make_response(400, "BAD_REQUEST"))
            runner = _runner(activity, RetryController(client), scheduler, max_attempts=3)
            runs = []
            original = runner.run_occurrence

            async def recording_occurrence():
                runs.append(await original())
                return runs[-1]

            runner.run_occurrence = recording_occurrence
            runner.cooldown = AsyncMock(side_effect=[None, StopRunner()])

            with pytest.raises(StopRunner):
                await runner.run_forever()

        assert [r.state for r in runs] == [RunState.EXHAUSTED, RunState.EXHAUSTED]
        assert all(r.attempts_made == 3 for r in runs)
        assert all(r.outcome.kind == OutcomeKind.REMOTE_FAILURE for r in runs)
        assert all(r.outcome.body == "BAD_REQUEST" for r in runs)
        assert client.client.post.call_count == 6
        # Second occurrence is the following Monday
        assert scheduler.wait_until.call_args_list[1].args[0] == TZ.localize(datetime(2030, 1, 14, 18, 0))
        errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 2
        assert all("BAD_REQUEST" in message for message in errors)
