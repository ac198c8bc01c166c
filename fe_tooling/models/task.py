"""
任务运行模型 - 定义任务状态与生命周期

一次 TaskRunner.run() 会为每个被执行的任务生成一个 TaskRun
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .report import StageReport


class TaskStatus(str, Enum):
    """任务状态枚举"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class TaskRun(BaseModel):
    """任务运行记录"""
    task_name: str

    # 状态
    status: TaskStatus = TaskStatus.QUEUED
    stage: str | None = Field(None, description="当前执行的阶段")

    # 结果
    reports: list[StageReport] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def mark_running(self, stage: str | None = None) -> None:
        """标记为运行中"""
        self.status = TaskStatus.RUNNING
        self.started_at = datetime.now()
        self.stage = stage

    def mark_succeeded(self) -> None:
        """标记为成功"""
        self.status = TaskStatus.SUCCEEDED
        self.finished_at = datetime.now()

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = TaskStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def mark_skipped(self, reason: str) -> None:
        """标记为跳过（阻塞型任务在 --once 模式下）"""
        self.status = TaskStatus.SKIPPED
        self.finished_at = datetime.now()
        self.add_flag(reason)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)

    def add_report(self, report: StageReport) -> None:
        """记录阶段报告，并汇总其中的失败文件"""
        self.reports.append(report)
        for failure in report.failures:
            self.add_flag(f"{report.stage}:{failure.path}")

    @property
    def duration_sec(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
