import asyncio

import pytest

from mcfetch.download import InstallTask, TaskState
from mcfetch.exceptions import AggregateInstallError, InstallCancelled, McFetchError


def leaf(name, log, fail=False, delay=0.0):
    async def work():
        if delay:
            await asyncio.sleep(delay)
        log.append(name)
        if fail:
            raise RuntimeError(f"{name} broke")
        return name

    return InstallTask(name, work=work)


@pytest.mark.asyncio
async def test_success_returns_result():
    log = []
    root = InstallTask(
        "root",
        children=[leaf("a", log), leaf("b", log)],
        result_factory=lambda: "done",
    )
    assert await root.execute() == "done"
    assert log == ["a", "b"]
    assert all(t.state is TaskState.SUCCEEDED for t in root.walk())


@pytest.mark.asyncio
async def test_failure_is_isolated_and_aggregated():
    log = []
    phase = InstallTask(
        "phase",
        children=[leaf("a", log), leaf("bad", log, fail=True), leaf("c", log)],
        concurrency=2,
    )
    root = InstallTask("root", children=[phase])
    with pytest.raises(AggregateInstallError) as info:
        await root.execute()
    assert info.value.failed_names == ["bad"]
    assert sorted(log) == ["a", "bad", "c"]
    states = {t.name: t.state for t in root.leaves()}
    assert states == {
        "a": TaskState.SUCCEEDED,
        "bad": TaskState.FAILED,
        "c": TaskState.SUCCEEDED,
    }
    assert root.state is TaskState.FAILED


@pytest.mark.asyncio
async def test_required_failure_skips_later_siblings():
    log = []
    later = leaf("later", log)
    root = InstallTask(
        "root",
        children=[
            InstallTask("first", children=[leaf("x", log, fail=True)], required=True),
            later,
        ],
    )
    with pytest.raises(AggregateInstallError):
        await root.execute()
    assert log == ["x"]
    assert later.state is TaskState.CANCELLED


@pytest.mark.asyncio
async def test_expand_runs_when_phase_starts():
    log = []
    seen = {}

    async def produce():
        seen["json"] = True
        return [leaf("a", log)]

    async def expand():
        # 前一阶段的结果已经可用
        assert seen.get("json")
        return [leaf("lib-1", log), leaf("lib-2", log)]

    root = InstallTask(
        "root",
        children=[
            InstallTask("json", expand=produce),
            InstallTask("libs", expand=expand, concurrency=4),
        ],
    )
    await root.execute()
    assert sorted(log) == ["a", "lib-1", "lib-2"]
    assert len(list(root.leaves())) == 3


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    running = 0
    peak = 0

    async def work():
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    phase = InstallTask(
        "phase", children=[InstallTask(f"t{i}", work=work) for i in range(10)], concurrency=3
    )
    await InstallTask("root", children=[phase]).execute()
    assert 1 < peak <= 3


@pytest.mark.asyncio
async def test_cancel_stops_new_leaves():
    log = []
    root = InstallTask("root")

    async def cancel_now():
        log.append("first")
        root.cancel()

    root.add(InstallTask("first", work=cancel_now))
    second = root.add(leaf("second", log))

    with pytest.raises(InstallCancelled):
        await root.execute()
    assert log == ["first"]
    assert second.state is TaskState.CANCELLED
    assert root.state is TaskState.CANCELLED
    assert root.state.done


@pytest.mark.asyncio
async def test_cancel_before_execute():
    log = []
    root = InstallTask("root", children=[leaf("a", log)])
    root.cancel()
    with pytest.raises(InstallCancelled):
        await root.execute()
    assert log == []


@pytest.mark.asyncio
async def test_execute_only_once():
    root = InstallTask("root", children=[leaf("a", [])])
    await root.execute()
    with pytest.raises(McFetchError):
        await root.execute()


@pytest.mark.asyncio
async def test_cleanup_runs_on_failure():
    cleaned = []

    async def cleanup():
        cleaned.append(True)

    root = InstallTask("root", children=[leaf("bad", [], fail=True)], cleanup=cleanup)
    with pytest.raises(AggregateInstallError):
        await root.execute()
    assert cleaned == [True]


def test_leaf_cannot_have_children():
    async def work():
        return None

    with pytest.raises(ValueError):
        InstallTask("x", work=work, children=[InstallTask("y", work=work)])
