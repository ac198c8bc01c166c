"""
任务执行器单元测试

每个模块完成后必须运行：pytest tests/unit/test_runner.py -v
"""

import json
import threading
from pathlib import Path

import pytest

from fe_tooling.interfaces import LintError, TaskGraphError
from fe_tooling.models import LintIssue, LintSeverity, StageReport, TaskStatus
from fe_tooling.pipeline import BuildContext, TaskDefinition, TaskRunner, default_tasks, write_report
from fe_tooling.stages import Stage


class RecordingStage(Stage):
    """记录执行顺序的阶段"""

    def __init__(self, ctx, name, log, fail=False, done: threading.Event | None = None):
        self.name = name
        super().__init__(ctx)
        self.log = log
        self.fail = fail
        self.done = done

    def run(self) -> StageReport:
        self.log.append(self.name)
        if self.done is not None:
            self.done.set()
        if self.fail:
            raise LintError(f"{self.name} failed")
        return self.new_report()


def _runner(ctx, tasks, log, failing=(), events=None):
    events = events or {}
    factories = {
        t.stage: (
            lambda c, n=t.stage: RecordingStage(c, n, log, fail=n in failing, done=events.get(n))
        )
        for t in tasks
        if t.stage is not None
    }
    return TaskRunner(ctx, {t.name: t for t in tasks}, factories)


def _snapshot(root: Path) -> dict[str, bytes]:
    """构建目录快照（不含 .tmp）"""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and ".tmp" not in p.relative_to(root).parts
    }


def _stage(name, **kwargs) -> TaskDefinition:
    return TaskDefinition(name=name, stage=name, **kwargs)


class TestTaskGraph:
    """任务表校验"""

    def test_cycle_detection(self, ctx: BuildContext):
        tasks = [_stage("a", deps=["b"]), _stage("b", steps=[("a",)])]
        with pytest.raises(TaskGraphError, match="循环"):
            _runner(ctx, tasks, [])

    def test_unknown_reference(self, ctx: BuildContext):
        with pytest.raises(TaskGraphError):
            _runner(ctx, [_stage("a", deps=["missing"])], [])

    def test_unregistered_stage(self, ctx: BuildContext):
        with pytest.raises(TaskGraphError):
            TaskRunner(ctx, {"a": _stage("a")}, {})

    def test_unknown_task(self, ctx: BuildContext):
        runner = _runner(ctx, [_stage("a")], [])
        with pytest.raises(TaskGraphError):
            runner.run(["nope"])

    def test_default_registry_valid(self, ctx: BuildContext):
        runner = TaskRunner(ctx)
        assert set(runner.tasks) == set(default_tasks())
        assert ctx.trigger == runner.trigger


class TestTaskRunner:
    """执行顺序与失败处理"""

    def test_deps_run_once(self, ctx: BuildContext):
        log: list[str] = []
        tasks = [
            _stage("base"),
            _stage("left", deps=["base"]),
            _stage("right", deps=["base"]),
            TaskDefinition(name="all", steps=[("left", "right")]),
        ]

        runs = _runner(ctx, tasks, log).run(["all"])

        assert log.count("base") == 1
        assert log[0] == "base"
        assert sorted(log[1:]) == ["left", "right"]
        assert all(r.status == TaskStatus.SUCCEEDED for r in runs)

    def test_steps_in_order(self, ctx: BuildContext):
        log: list[str] = []
        tasks = [
            _stage("greet"),
            _stage("one"),
            _stage("two"),
            TaskDefinition(name="seq", deps=["greet"], steps=[("one",), ("two",)]),
        ]

        _runner(ctx, tasks, log).run(["seq"])

        assert log == ["greet", "one", "two"]

    def test_parallel_group_failure(self, ctx: BuildContext):
        """分组中一个失败：同组其他任务完成，后续步骤不执行"""
        log: list[str] = []
        tasks = [
            _stage("bad"),
            _stage("good"),
            _stage("after"),
            TaskDefinition(name="seq", steps=[("bad", "good"), ("after",)]),
        ]
        runner = _runner(ctx, tasks, log, failing={"bad"})

        with pytest.raises(LintError):
            runner.run(["seq"])

        assert sorted(log) == ["bad", "good"]
        statuses = {r.task_name: r.status for r in runner.history}
        assert statuses == {"bad": TaskStatus.FAILED, "good": TaskStatus.SUCCEEDED}

    def test_skip_blocking(self, ctx: BuildContext):
        log: list[str] = []
        tasks = [_stage("build"), _stage("serve", deps=["build"], blocking=True)]

        runs = _runner(ctx, tasks, log).run(["serve"], skip_blocking=True)

        assert log == ["build"]
        assert runs[-1].status == TaskStatus.SKIPPED
        assert "skipped:blocking" in runs[-1].flags

    def test_blocking_deferred(self, ctx: BuildContext):
        """阻塞型阶段最后执行：前面的放到后台线程，最后一个在前台"""
        log: list[str] = []
        watched = threading.Event()
        tasks = [
            _stage("build"),
            _stage("watch", blocking=True),
            TaskDefinition(name="default", steps=[("build",), ("watch",)]),
            _stage("serve", deps=["default"], blocking=True),
            _stage("late"),
            TaskDefinition(name="all", steps=[("serve",), ("late",)]),
        ]

        _runner(ctx, tasks, log, events={"watch": watched}).run(["all"])

        assert watched.wait(5)
        assert log.index("late") < log.index("serve")
        assert log.index("build") < log.index("serve")

    def test_trigger_skips_blocking(self, ctx: BuildContext):
        log: list[str] = []
        tasks = [_stage("sass"), _stage("serve", deps=["sass"], blocking=True)]
        _runner(ctx, tasks, log)

        ctx.trigger(["serve"])

        assert log == ["sass"]

    def test_history_is_capped(self, ctx: BuildContext):
        """监听反复触发时只保留最近的运行记录"""
        log: list[str] = []
        tasks = [_stage("sass")]
        runner = TaskRunner(
            ctx,
            {t.name: t for t in tasks},
            {"sass": lambda c: RecordingStage(c, "sass", log)},
            history_limit=3,
        )

        for _ in range(5):
            runner.trigger(["sass"])

        assert len(log) == 5
        assert len(runner.history) == 3
        assert all(r.status == TaskStatus.SUCCEEDED for r in runner.history)

    def test_write_report(self, ctx: BuildContext, tmp_path: Path):
        log: list[str] = []
        runs = _runner(ctx, [_stage("copy")], log).run(["copy"])

        path = write_report(runs, tmp_path / ".tmp/build-report.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data[0]["task_name"] == "copy"
        assert data[0]["status"] == "succeeded"


class TestDefaultTasks:
    """默认任务表（真实阶段 + fake 外部命令）"""

    def test_default_sequence(self):
        default = default_tasks()["default"]
        assert default.deps == ["greet"]
        assert default.steps[0] == ("clean",)
        assert default.steps[-1] == ("watchers",)

    def test_build_alias(self):
        assert default_tasks()["build"].steps == [("clean",), ("html",), ("copy",)]

    def test_default_once(self, ctx: BuildContext, project_root: Path):
        runs = TaskRunner(ctx).run(["default"], skip_blocking=True)

        assert (project_root / "app/css/main.css").exists()
        assert (project_root / "dist/scripts/app.min.js").exists()
        assert (project_root / "dist/css/main.css").exists()
        assert (project_root / "dist/scripts/sw-toolbox.js").exists()
        assert (project_root / "service-worker.js").exists()

        statuses = {r.task_name: r.status for r in runs}
        assert statuses["watchers"] == TaskStatus.SKIPPED
        assert statuses["gsw"] == TaskStatus.SUCCEEDED
        assert [r.task_name for r in runs][:2] == ["greet", "clean"]

    def test_default_twice_same_output(self, ctx: BuildContext, project_root: Path):
        """clean 之后重新构建：产物集合与内容完全一致"""
        TaskRunner(ctx).run(["default"], skip_blocking=True)
        first = _snapshot(project_root)

        ctx.trigger = None
        TaskRunner(ctx).run(["default"], skip_blocking=True)
        second = _snapshot(project_root)

        assert "dist/scripts/app.min.js" in first
        assert sorted(second) == sorted(first)
        assert second == first

    def test_lint_failure_halts_default(self, ctx: BuildContext, project_root: Path):
        ctx.script_linter.issues = [
            LintIssue(path=Path("app.js"), severity=LintSeverity.ERROR, message="Parsing error")
        ]

        with pytest.raises(LintError):
            TaskRunner(ctx).run(["default"], skip_blocking=True)

        # 同组的 sass 已完成，copy/gsw 未执行
        assert (project_root / "app/css/main.css").exists()
        assert not (project_root / "dist/css").exists()
        assert not (project_root / "service-worker.js").exists()

    def test_lint_failure_continues_in_sync_mode(self, ctx: BuildContext, project_root: Path):
        ctx.project = ctx.project.with_overrides(enable_sync=True)
        ctx.script_linter.issues = [
            LintIssue(path=Path("app.js"), severity=LintSeverity.ERROR, message="Parsing error")
        ]

        TaskRunner(ctx).run(["default"], skip_blocking=True)

        assert (project_root / "service-worker.js").exists()
