import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from src.application.scheduler import SUNDAY, RecurringTask, TaskState, delay_until_next


class TestDelayUntilNext(unittest.TestCase):
    def test_days_until_sunday(self) -> None:
        wednesday = datetime(2026, 10, 14, 9, 30, tzinfo=timezone.utc)
        self.assertEqual(delay_until_next(SUNDAY, wednesday), timedelta(days=4))

    def test_same_day_is_immediate(self) -> None:
        sunday = datetime(2026, 10, 18, 23, 0, tzinfo=timezone.utc)
        self.assertEqual(delay_until_next(SUNDAY, sunday), timedelta(0))


class TestRecurringTask(unittest.IsolatedAsyncioTestCase):
    async def test_zero_initial_delay_fires_immediately(self) -> None:
        fired = asyncio.Event()

        async def task():
            fired.set()

        recurring = RecurringTask("test", initial_delay=0, interval=60, task=task)
        recurring.start()
        await asyncio.wait_for(fired.wait(), timeout=1)
        await recurring.stop()

        self.assertEqual(recurring.runs, 1)
        self.assertEqual(recurring.state, TaskState.CANCELLED)

    async def test_repeats_every_interval_until_stopped(self) -> None:
        calls = []
        third_call = asyncio.Event()

        async def task():
            calls.append(asyncio.get_running_loop().time())
            if len(calls) == 3:
                third_call.set()

        recurring = RecurringTask("test", initial_delay=0, interval=0.05, task=task)
        recurring.start()
        await asyncio.wait_for(third_call.wait(), timeout=2)
        await recurring.stop()
        count = len(calls)

        await asyncio.sleep(0.2)

        self.assertGreaterEqual(count, 3)
        self.assertEqual(len(calls), count)
        self.assertGreaterEqual(calls[1] - calls[0], 0.04)

    async def test_stop_while_waiting_prevents_any_run(self) -> None:
        calls = []

        async def task():
            calls.append(1)

        recurring = RecurringTask("test", initial_delay=60, interval=60, task=task)
        recurring.start()
        await asyncio.sleep(0)
        await asyncio.wait_for(recurring.stop(), timeout=1)

        self.assertEqual(calls, [])
        self.assertEqual(recurring.state, TaskState.CANCELLED)

    async def test_in_flight_run_finishes_before_stop_returns(self) -> None:
        started = asyncio.Event()
        release = asyncio.Event()
        finished = []

        async def task():
            started.set()
            await release.wait()
            finished.append(True)

        recurring = RecurringTask("test", initial_delay=0, interval=0.01, task=task)
        recurring.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        self.assertEqual(recurring.state, TaskState.RUNNING)

        stopping = asyncio.create_task(recurring.stop())
        await asyncio.sleep(0.05)
        self.assertFalse(stopping.done())

        release.set()
        await asyncio.wait_for(stopping, timeout=1)

        self.assertEqual(finished, [True])
        self.assertEqual(recurring.runs, 1)

    async def test_failing_task_keeps_schedule_alive(self) -> None:
        calls = []
        second_call = asyncio.Event()

        async def task():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            second_call.set()

        recurring = RecurringTask("test", initial_delay=0, interval=0.01, task=task)
        recurring.start()
        await asyncio.wait_for(second_call.wait(), timeout=1)
        await recurring.stop()

        self.assertGreaterEqual(len(calls), 2)

    async def test_start_twice_raises(self) -> None:
        async def task():
            pass

        recurring = RecurringTask("test", initial_delay=60, interval=60, task=task)
        recurring.start()
        with self.assertRaises(RuntimeError):
            recurring.start()
        await recurring.stop()

    def test_interval_must_be_positive(self) -> None:
        async def task():
            pass

        with self.assertRaises(ValueError):
            RecurringTask("test", initial_delay=0, interval=0, task=task)
