"""
安装任务树

每个节点要么是执行单个工作单元的叶子任务，要么是按顺序或有限并发运行子任务的阶段。
单个叶子失败不会中断兄弟任务，根任务在全部结束后统一报告失败。
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Tuple

from loguru import logger

from mcfetch.exceptions import AggregateInstallError, InstallCancelled, McFetchError

WorkFn = Callable[[], Awaitable[Any]]
ExpandFn = Callable[[], Awaitable[List["InstallTask"]]]


class TaskState(Enum):
    """任务状态"""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def done(self) -> bool:
        return self not in (TaskState.PENDING, TaskState.RUNNING)


class CancellationToken:
    """在任务树中共享的取消标记，每个叶子开始前检查"""

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class InstallTask:
    """
    安装任务节点

    Args:
        name: 可读名称，失败报告中使用
        work: 叶子任务的工作协程函数
        children: 子任务
        expand: 开始运行时生成子任务的协程函数，用于依赖前一阶段结果的阶段
        concurrency: 子任务并发数，None 表示顺序执行
        required: 失败时跳过后续兄弟任务
        result_factory: 成功后计算结果
        cleanup: execute 结束后调用（根任务释放资源）
    """

    def __init__(
        self,
        name: str,
        work: Optional[WorkFn] = None,
        children: Optional[List["InstallTask"]] = None,
        expand: Optional[ExpandFn] = None,
        concurrency: Optional[int] = None,
        required: bool = False,
        result_factory: Optional[Callable[[], Any]] = None,
        cleanup: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        if work is not None and (children or expand is not None):
            raise ValueError("叶子任务不能包含子任务")
        self.name = name
        self.work = work
        self.children: List[InstallTask] = list(children or [])
        self.expand = expand
        self.concurrency = concurrency
        self.required = required
        self.result_factory = result_factory
        self.cleanup = cleanup
        self.token = CancellationToken()
        self.state = TaskState.PENDING
        self.error: Optional[BaseException] = None
        self.result: Any = None

    @property
    def is_leaf(self) -> bool:
        return self.work is not None

    def add(self, child: "InstallTask") -> "InstallTask":
        self.children.append(child)
        return child

    def walk(self) -> Iterator["InstallTask"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def leaves(self) -> Iterator["InstallTask"]:
        return (task for task in self.walk() if task.is_leaf)

    def failures(self) -> List[Tuple[str, BaseException]]:
        """收集所有失败任务及其错误"""
        return [
            (task.name, task.error)
            for task in self.walk()
            if task.state is TaskState.FAILED and task.error is not None
        ]

    def cancel(self):
        """请求取消：不再启动新的叶子任务，进行中的下载会完成后停止"""
        logger.info(f"[取消] 任务 '{self.name}' 已请求取消")
        self.token.cancel()

    async def execute(self) -> Any:
        """
        执行任务树，只能调用一次

        Returns:
            根任务的结果

        Raises:
            AggregateInstallError: 有任务失败
            InstallCancelled: 任务被取消
        """
        if self.state is not TaskState.PENDING:
            raise McFetchError(f"任务 '{self.name}' 不能重复执行")

        try:
            await self._run(self.token)
        finally:
            if self.cleanup is not None:
                await self.cleanup()

        failures = self.failures()
        if failures:
            logger.error(f"[失败] '{self.name}': {len(failures)} 个任务失败")
            raise AggregateInstallError(
                f"'{self.name}' 有 {len(failures)} 个任务失败",
                failures=failures,
            )
        if self.state is TaskState.CANCELLED:
            raise InstallCancelled(f"'{self.name}' 已取消")

        logger.success(f"[完成] '{self.name}'")
        return self.result

    async def _run(self, token: CancellationToken):
        if token.cancelled:
            self._skip()
            return

        self.state = TaskState.RUNNING

        if self.is_leaf:
            try:
                self.result = await self.work()  # type: ignore[misc]
            except asyncio.CancelledError:
                self.state = TaskState.CANCELLED
                raise
            except Exception as e:
                self.error = e
                self.state = TaskState.FAILED
                logger.error(f"[错误] '{self.name}': {e}")
            else:
                self.state = TaskState.SUCCEEDED
            return

        if self.expand is not None:
            try:
                self.children.extend(await self.expand())
            except Exception as e:
                self.error = e
                self.state = TaskState.FAILED
                logger.error(f"[错误] '{self.name}': {e}")
                return

        if self.concurrency:
            await self._run_parallel(token)
        else:
            await self._run_sequential(token)
        self._settle()

    async def _run_sequential(self, token: CancellationToken):
        aborted = False
        for child in self.children:
            if aborted:
                child._skip()
                continue
            await child._run(token)
            if child.required and child.state is not TaskState.SUCCEEDED:
                aborted = True

    async def _run_parallel(self, token: CancellationToken):
        semaphore = asyncio.Semaphore(self.concurrency or 1)

        async def run_one(child: InstallTask):
            async with semaphore:
                await child._run(token)

        await asyncio.gather(*(run_one(child) for child in self.children))

    def _settle(self):
        states = {child.state for child in self.children}
        if TaskState.FAILED in states:
            self.state = TaskState.FAILED
        elif TaskState.CANCELLED in states:
            self.state = TaskState.CANCELLED
        else:
            self.state = TaskState.SUCCEEDED
            if self.result_factory is not None:
                self.result = self.result_factory()

    def _skip(self):
        if self.state.done:
            return
        self.state = TaskState.CANCELLED
        for child in self.children:
            child._skip()

    def __repr__(self) -> str:
        return f"<InstallTask {self.name!r} {self.state.value}>"
