from __future__ import annotations

import asyncio
import os
import signal

import pytest

from tasktui.config.types import ProjectConfig, TaskConfig
from tasktui.engine import Engine, RunState, cleanup
from tasktui.engine import shutdown

pytestmark = pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX only")


def _project(commands: dict[str, str]) -> ProjectConfig:
    return ProjectConfig(
        tasks={name: TaskConfig(name=name, command=cmd) for name, cmd in commands.items()}
    )


async def _until_live(engine: Engine, count: int, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(engine.state.live_processes) < count:
        if loop.time() > deadline:
            raise AssertionError(f"only {len(engine.state.live_processes)} tasks started")
        await asyncio.sleep(0.01)
    # give the shells time to install their traps
    await asyncio.sleep(0.3)


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch) -> list[tuple[int, int]]:
    calls: list[tuple[int, int]] = []
    original = shutdown.send_signal

    def spy(proc, sig, *, force=False):
        calls.append((proc.pid, sig))
        original(proc, sig, force=force)

    monkeypatch.setattr(shutdown, "send_signal", spy)
    return calls


def test_cleanup_without_live_processes_is_noop(sent: list[tuple[int, int]]) -> None:
    assert asyncio.run(cleanup(RunState(), timeout=0.1)) == []
    assert sent == []


def test_voluntary_exit_gets_no_kill(sent: list[tuple[int, int]]) -> None:
    async def main() -> tuple[list[str], Engine]:
        engine = Engine(cleanup_timeout=5)
        await engine.initialize(_project({"a": "sleep 30", "b": "sleep 30"}))
        await _until_live(engine, 2)
        killed = await engine.cleanup()
        await engine.wait_until_idle()
        return killed, engine

    killed, engine = asyncio.run(main())

    assert killed == []
    assert [sig for _, sig in sent] == [signal.SIGTERM, signal.SIGTERM]
    for name in ("a", "b"):
        assert not engine.state.buffers[name].running
        assert engine.state.buffers[name].errored
    assert engine.state.live_processes == {}


def test_only_the_straggler_is_killed(sent: list[tuple[int, int]]) -> None:
    async def main() -> tuple[list[str], Engine]:
        engine = Engine(cleanup_timeout=0.5)
        await engine.initialize(
            _project({"polite": "sleep 30", "stubborn": "trap '' TERM; sleep 30"})
        )
        await _until_live(engine, 2)
        stubborn_pid = engine.state.live_processes["stubborn"].pid
        killed = await engine.cleanup()
        await engine.wait_until_idle()
        assert (stubborn_pid, signal.SIGKILL) in sent
        return killed, engine

    killed, engine = asyncio.run(main())

    assert killed == ["stubborn"]
    assert [sig for _, sig in sent].count(signal.SIGKILL) == 1
    assert engine.state.buffers["stubborn"].exit_code is None
    assert engine.state.buffers["stubborn"].signal == signal.SIGKILL
    assert engine.state.buffers["polite"].signal == signal.SIGTERM
    assert engine.state.buffers["polite"].errored


def test_quit_stops_engine_and_second_cleanup_is_noop(sent: list[tuple[int, int]]) -> None:
    async def main() -> Engine:
        engine = Engine(cleanup_timeout=5)
        await engine.initialize(_project({"a": "sleep 30"}))
        await _until_live(engine, 1)
        await engine.quit()
        await engine.wait_until_idle()
        assert await engine.cleanup() == []
        return engine

    engine = asyncio.run(main())

    assert engine.stopped.is_set()
    assert len(sent) == 1


def test_quit_keeps_dependents_of_killed_tasks_queued(sent: list[tuple[int, int]]) -> None:
    async def main() -> Engine:
        engine = Engine(cleanup_timeout=5)
        await engine.initialize(
            ProjectConfig(
                tasks={
                    "a": TaskConfig(name="a", command="sleep 30"),
                    "b": TaskConfig(name="b", command="sleep 30", depends_on=("a",)),
                }
            )
        )
        await _until_live(engine, 1)
        await engine.quit()
        await asyncio.sleep(0.5)
        await engine.wait_until_idle()
        return engine

    engine = asyncio.run(main())

    assert "b" not in engine.state.buffers
    assert "b" not in engine.state.live_processes
    assert [item.name for item in engine.state.queue] == ["b"]
    assert engine.state.task_order == ["a"]
    assert len(sent) == 1


def test_signal_to_vanished_process_is_swallowed(monkeypatch: pytest.MonkeyPatch) -> None:
    def gone(pid: int, sig: int) -> None:
        raise ProcessLookupError(pid)

    monkeypatch.setattr(os, "killpg", gone)

    class Proc:
        pid = 999999

    shutdown.send_signal(Proc(), signal.SIGTERM)
    shutdown.send_signal(Proc(), signal.SIGKILL, force=True)
