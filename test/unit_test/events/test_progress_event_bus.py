import asyncio

import pytest

from transmute_ai.events import ProgressEventBus
from transmute_ai.repos import InMemoryJobRepository
from transmute_ai.schemas.domain import Job, JobStatus, Stage, StageLogStatus


def _stage(bus, job_id, stage, status=StageLogStatus.started, job_status=JobStatus.analyzing):
    return bus.publish(job_id, job_status=job_status, stage=stage, status=status, message=f"{stage.value} {status.value}")


class TestPublish:
    def test_sequence_is_monotonic_per_job(self):
        bus = ProgressEventBus()

        a1 = _stage(bus, "a", Stage.analyze)
        b1 = _stage(bus, "b", Stage.analyze)
        a2 = _stage(bus, "a", Stage.analyze, StageLogStatus.completed)

        assert (a1.sequence, a2.sequence, b1.sequence) == (1, 2, 1)
        assert bus.latest("a") == a2

    def test_publish_without_subscribers_never_blocks(self):
        bus = ProgressEventBus(queue_size=1)
        for _ in range(50):
            _stage(bus, "a", Stage.plan)
        assert bus.latest("a").sequence == 50

    def test_queue_size_must_be_positive(self):
        with pytest.raises(ValueError):
            ProgressEventBus(queue_size=0)


class TestSubscription:
    @pytest.mark.asyncio
    async def test_subscriber_receives_events_in_order_until_terminal(self):
        bus = ProgressEventBus()
        sub = bus.subscribe("j1")

        _stage(bus, "j1", Stage.analyze)
        _stage(bus, "j1", Stage.analyze, StageLogStatus.completed)
        bus.publish("j1", job_status=JobStatus.completed, message="done")

        received = [e async for e in sub]

        assert [e.sequence for e in received] == [1, 2, 3]
        assert received[-1].is_terminal
        assert bus.subscriber_count("j1") == 0

    @pytest.mark.asyncio
    async def test_slow_subscriber_drops_events_and_is_flagged_for_resync(self):
        bus = ProgressEventBus(queue_size=2)
        slow = bus.subscribe("j1")
        fast = bus.subscribe("j1", maxsize=10)

        for stage in (Stage.analyze, Stage.plan, Stage.generate, Stage.validate):
            _stage(bus, "j1", stage)

        assert slow.needs_resync is True
        assert slow.missed == 2
        assert fast.needs_resync is False
        assert (await slow.get()).sequence == 1
        assert (await slow.get()).sequence == 2

        slow.acknowledge_resync()
        assert slow.needs_resync is False
        assert slow.missed == 0

    @pytest.mark.asyncio
    async def test_full_queue_still_ends_on_terminal_event(self):
        bus = ProgressEventBus(queue_size=1)
        sub = bus.subscribe("j1")

        _stage(bus, "j1", Stage.analyze)
        bus.publish("j1", job_status=JobStatus.failed, stage=Stage.analyze, message="boom")

        received = [e async for e in sub]

        assert received == []
        assert sub.needs_resync is True
        assert sub.closed

    @pytest.mark.asyncio
    async def test_late_subscriber_to_finished_job_gets_final_event(self):
        bus = ProgressEventBus()
        _stage(bus, "j1", Stage.deploy)
        bus.publish("j1", job_status=JobStatus.completed)

        async with bus.subscribe("j1") as sub:
            received = [e async for e in sub]

        assert [e.job_status for e in received] == [JobStatus.completed]

    @pytest.mark.asyncio
    async def test_close_ends_iteration_and_unsubscribes(self):
        bus = ProgressEventBus()
        sub = bus.subscribe("j1")
        assert bus.subscriber_count("j1") == 1

        consumer = asyncio.create_task(sub.get())
        await asyncio.sleep(0)
        sub.close()

        assert await consumer is None
        assert bus.subscriber_count("j1") == 0
        _stage(bus, "j1", Stage.analyze)
        assert await sub.get() is None


@pytest.mark.asyncio
async def test_current_status_reads_the_job_repository():
    jobs = InMemoryJobRepository()
    await jobs.create(Job(id="j1", status=JobStatus.planning))
    bus = ProgressEventBus(jobs)

    status = await bus.get_current_status("j1")

    assert status.status is JobStatus.planning
    assert await ProgressEventBus().get_current_status("j1") is None


class TestFinishedJobRetention:
    def test_oldest_finished_jobs_are_forgotten(self):
        bus = ProgressEventBus(retain_finished=2)

        for job_id in ("a", "b", "c"):
            _stage(bus, job_id, Stage.analyze)
            bus.publish(job_id, job_status=JobStatus.completed, message="done")

        assert bus.latest("a") is None
        assert bus.latest("b").is_terminal
        assert bus.latest("c").is_terminal
        assert set(bus._sequences) == {"b", "c"}
        assert _stage(bus, "a", Stage.analyze).sequence == 1

    def test_running_jobs_are_never_evicted(self):
        bus = ProgressEventBus(retain_finished=1)
        _stage(bus, "running", Stage.analyze)

        for job_id in ("a", "b", "c"):
            bus.publish(job_id, job_status=JobStatus.failed, message="failed")

        assert bus.latest("running").sequence == 1
        assert bus.latest("c").is_terminal
        assert bus.latest("a") is None

    @pytest.mark.asyncio
    async def test_late_subscriber_to_forgotten_job_waits_for_new_events(self):
        bus = ProgressEventBus(retain_finished=0)
        bus.publish("a", job_status=JobStatus.completed, message="done")

        sub = bus.subscribe("a")
        assert bus.subscriber_count("a") == 1
        sub.close()
        assert bus.subscriber_count("a") == 0

    def test_negative_retention_is_rejected(self):
        with pytest.raises(ValueError):
            ProgressEventBus(retain_finished=-1)
