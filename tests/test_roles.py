from __future__ import annotations

import asyncio

import pytest

from metapackage_tools.devloop import ProcessExitedError, RoleFailedError, RoleSlot, RoleState


class Tracker:
    def __init__(self) -> None:
        self.live = 0
        self.max_live = 0
        self.handles: list["FakeHandle"] = []


class FakeHandle:
    """Stands in for ``ProcessHandle``; exits only when told to."""

    def __init__(self, tracker: Tracker, *, ready_delay: float = 0.0, fail_ready: bool = False) -> None:
        self._tracker = tracker
        self._ready_delay = ready_delay
        self._fail_ready = fail_ready
        self._exit: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        self.killed = False
        self.output = ["starting"]
        tracker.live += 1
        tracker.max_live = max(tracker.max_live, tracker.live)
        tracker.handles.append(self)

    async def wait_ready(self) -> str:
        await asyncio.sleep(self._ready_delay)
        if self._fail_ready:
            self.finish(1)
            raise ProcessExitedError("fake", 1, self.output)
        return "ready"

    async def wait(self) -> int:
        return await asyncio.shield(self._exit)

    def finish(self, returncode: int) -> None:
        if not self._exit.done():
            self._tracker.live -= 1
            self._exit.set_result(returncode)

    async def kill(self) -> int:
        self.killed = True
        self.finish(-15)
        await asyncio.sleep(0)
        return -15


def _slot(tracker: Tracker, *, one_shot: bool = False, **options) -> RoleSlot:
    async def factory() -> FakeHandle:
        await asyncio.sleep(0)
        return FakeHandle(tracker, **options)

    return RoleSlot("docs", factory, one_shot=one_shot)


def test_start_marks_running_after_ready() -> None:
    async def scenario() -> None:
        tracker = Tracker()
        slot = _slot(tracker, ready_delay=0.01)
        assert slot.state is RoleState.NOT_STARTED

        handle = await slot.start()

        assert slot.state is RoleState.RUNNING
        assert slot.handle is handle
        assert slot.generation == 1
        await slot.kill()

    asyncio.run(scenario())


def test_concurrent_restarts_never_overlap() -> None:
    async def scenario() -> Tracker:
        tracker = Tracker()
        slot = _slot(tracker, ready_delay=0.01)
        await slot.start()

        await asyncio.gather(slot.restart(), slot.restart(), slot.restart())

        assert slot.generation == 4
        assert slot.state is RoleState.RUNNING
        assert [handle.killed for handle in tracker.handles] == [True, True, True, False]
        await slot.kill()
        return tracker

    tracker = asyncio.run(scenario())
    assert tracker.max_live == 1
    assert tracker.live == 0


def test_one_shot_success_is_not_a_failure() -> None:
    async def scenario() -> None:
        tracker = Tracker()
        slot = _slot(tracker, one_shot=True)
        handle = await slot.start()

        handle.finish(0)
        await asyncio.sleep(0.01)

        assert not slot.failure.done()
        assert slot.state is RoleState.RUNNING
        await slot.kill()

    asyncio.run(scenario())


@pytest.mark.parametrize(("one_shot", "returncode"), [(True, 2), (False, 0)])
def test_unrequested_exit_reports_failure(one_shot: bool, returncode: int) -> None:
    async def scenario() -> None:
        tracker = Tracker()
        slot = _slot(tracker, one_shot=one_shot)
        handle = await slot.start()

        handle.finish(returncode)

        with pytest.raises(RoleFailedError) as info:
            await asyncio.wait_for(slot.failure, 1)
        assert info.value.role == "docs"
        assert info.value.returncode == returncode
        assert info.value.output == ["starting"]
        assert slot.state is RoleState.KILLED
        await slot.kill()

    asyncio.run(scenario())


def test_killed_handles_do_not_report_failure() -> None:
    async def scenario() -> None:
        tracker = Tracker()
        slot = _slot(tracker)
        await slot.start()
        await slot.restart()
        await asyncio.sleep(0.01)

        assert not slot.failure.done()

        await slot.kill()
        await asyncio.sleep(0.01)

        assert slot.state is RoleState.KILLED
        assert slot.handle is None
        assert not slot.failure.done()

    asyncio.run(scenario())


def test_ready_failure_leaves_role_killed() -> None:
    async def scenario() -> None:
        slot = _slot(Tracker(), fail_ready=True)

        with pytest.raises(ProcessExitedError):
            await slot.start()

        assert slot.state is RoleState.KILLED

    asyncio.run(scenario())


def test_restart_after_kill_does_not_leave_a_live_process() -> None:
    async def scenario() -> Tracker:
        tracker = Tracker()
        slot = _slot(tracker, ready_delay=0.05)
        await slot.start()

        restart = asyncio.create_task(slot.restart())
        await asyncio.sleep(0)
        await slot.kill()
        await restart

        assert slot.state is RoleState.KILLED
        return tracker

    tracker = asyncio.run(scenario())
    assert tracker.live == 0
    assert all(handle.killed for handle in tracker.handles)
