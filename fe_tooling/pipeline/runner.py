"""
任务执行器 - 按依赖顺序执行任务

职责：
1. 校验任务表（未知任务/循环依赖）
2. 依赖任务在一次运行中只执行一次（并行分组共享同一依赖时等待其完成）
3. 分组内并行执行，分组失败时等全部结束后抛出第一个异常，终止后续步骤
4. 阻塞型阶段（服务/监听）推迟到其余任务完成后执行：
   最后一个在前台阻塞，其余在后台线程运行
5. 记录每个阶段的 TaskRun 并可写出 build-report.json（只保留最近 HISTORY_LIMIT 条）

测试要点：
- test_deps_run_once: 依赖只执行一次
- test_parallel_group_failure: 分组失败终止序列
- test_cycle_detection: 循环依赖
- test_skip_blocking: --once 跳过阻塞型任务
"""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from ..interfaces import IStage, TaskGraphError
from ..models import TaskRun
from .context import BuildContext
from .tasks import TaskDefinition, default_tasks

logger = logging.getLogger(__name__)

StageFactory = Callable[[BuildContext], IStage]

# 监听会话中保留的 TaskRun 上限
HISTORY_LIMIT = 500


@dataclass
class _Session:
    """一次 run() 的状态"""
    skip_blocking: bool
    events: dict[str, threading.Event] = field(default_factory=dict)
    errors: dict[str, BaseException] = field(default_factory=dict)
    runs: list[TaskRun] = field(default_factory=list)
    deferred: list[tuple[TaskDefinition, TaskRun]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class TaskRunner:
    """任务执行器"""

    def __init__(
        self,
        ctx: BuildContext,
        tasks: dict[str, TaskDefinition] | None = None,
        stage_factories: dict[str, StageFactory] | None = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        if stage_factories is None:
            from ..stages import default_stage_factories

            stage_factories = default_stage_factories()

        self.ctx = ctx
        self.tasks = tasks if tasks is not None else default_tasks()
        self.stage_factories = stage_factories
        self.max_workers = max(1, ctx.config.concurrency.max_workers)
        self._trigger_lock = threading.Lock()
        self.history: deque[TaskRun] = deque(maxlen=history_limit)
        if ctx.trigger is None:
            ctx.trigger = self.trigger

        self.validate()

    # === 校验 ===

    def validate(self) -> None:
        """检查未知任务/未知阶段/循环依赖"""
        for task in self.tasks.values():
            for ref in task.references():
                if ref not in self.tasks:
                    raise TaskGraphError(f"任务 {task.name} 引用了未知任务: {ref}")
            if task.stage is not None and task.stage not in self.stage_factories:
                raise TaskGraphError(f"任务 {task.name} 的阶段未注册: {task.stage}")

        state: dict[str, int] = {}  # 1: 访问中 2: 已完成

        def visit(name: str, path: tuple[str, ...]) -> None:
            if state.get(name) == 2:
                return
            if state.get(name) == 1:
                cycle = " -> ".join((*path, name))
                raise TaskGraphError(f"任务存在循环依赖: {cycle}")
            state[name] = 1
            for ref in self.tasks[name].references():
                visit(ref, (*path, name))
            state[name] = 2

        for name in self.tasks:
            visit(name, ())

    # === 执行 ===

    def run(self, names: list[str], *, skip_blocking: bool = False) -> list[TaskRun]:
        """按顺序执行任务，返回各阶段的运行记录"""
        for name in names:
            if name not in self.tasks:
                raise TaskGraphError(f"未知任务: {name}")

        session = _Session(skip_blocking=skip_blocking)
        for name in names:
            self._run_task(name, session)
        self._run_deferred(session)
        return session.runs

    def trigger(self, names: list[str]) -> list[TaskRun]:
        """监听/同步模式下重新执行任务（串行，不执行阻塞型任务）"""
        with self._trigger_lock:
            return self.run(names, skip_blocking=True)

    def _run_task(self, name: str, session: _Session) -> None:
        with session.lock:
            event = session.events.get(name)
            owner = event is None
            if owner:
                event = threading.Event()
                session.events[name] = event

        if not owner:
            event.wait()
            if name in session.errors:
                raise session.errors[name]
            return

        task = self.tasks[name]
        try:
            for dep in task.deps:
                self._run_task(dep, session)
            if task.stage is not None:
                self._run_stage(task, session)
            for group in task.steps:
                self._run_group(group, session)
        except BaseException as e:
            session.errors[name] = e
            raise
        finally:
            event.set()

    def _run_group(self, group: tuple[str, ...], session: _Session) -> None:
        if len(group) == 1:
            self._run_task(group[0], session)
            return

        workers = min(self.max_workers, len(group))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="task") as pool:
            futures = [pool.submit(self._run_task, name, session) for name in group]
            wait(futures)

        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise exc

    def _run_stage(self, task: TaskDefinition, session: _Session) -> None:
        run = TaskRun(task_name=task.name)
        with session.lock:
            session.runs.append(run)
            self.history.append(run)

        if task.blocking:
            if session.skip_blocking:
                logger.info(f"[{task.name}] 阻塞型任务已跳过")
                run.mark_skipped("skipped:blocking")
            else:
                session.deferred.append((task, run))
            return

        self._execute(task, run)

    def _execute(self, task: TaskDefinition, run: TaskRun) -> None:
        stage = self.stage_factories[task.stage](self.ctx)
        run.mark_running(task.stage)
        logger.info(f"[{task.name}] 开始")
        try:
            report = stage.run()
        except Exception as e:
            logger.error(f"[{task.name}] 失败: {e}")
            run.mark_failed(str(e))
            raise
        run.add_report(report)
        run.mark_succeeded()
        logger.info(f"[{task.name}] 完成 ({run.duration_sec:.2f}s)")

    def _run_deferred(self, session: _Session) -> None:
        if not session.deferred:
            return
        *background, (last_task, last_run) = session.deferred
        for task, run in background:
            thread = threading.Thread(
                target=self._execute_quietly,
                args=(task, run),
                name=f"task-{task.name}",
                daemon=True,
            )
            thread.start()
        self._execute(last_task, last_run)

    def _execute_quietly(self, task: TaskDefinition, run: TaskRun) -> None:
        try:
            self._execute(task, run)
        except Exception:
            logger.exception(f"[{task.name}] 后台任务异常退出")


def write_report(runs: Iterable[TaskRun], path: Path) -> Path:
    """写出 build-report.json"""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [run.model_dump(mode="json") for run in runs]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2, default=str)
    return path
