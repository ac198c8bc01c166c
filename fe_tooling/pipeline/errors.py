"""
错误策略 - 单个文件失败不打断整个构建/监听循环

策略：
- IGNORE: 仅记录 debug 日志并继续
- NOTIFY: 记录日志或弹出提示（notify_via_console 为 False 时）后继续
- FAIL:   向上抛出，终止当前任务序列
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from ..config import ProjectDescriptor
from ..models import StageReport

logger = logging.getLogger(__name__)


class ErrorPolicy(str, Enum):
    """错误处理策略"""
    IGNORE = "ignore"
    NOTIFY = "notify"
    FAIL = "fail"


class ErrorHandler:
    """按策略处理阶段内单个文件的异常"""

    def __init__(
        self,
        policy: ErrorPolicy,
        project: ProjectDescriptor,
        console: Console | None = None,
    ):
        self.policy = policy
        self.project = project
        self.console = console or Console(stderr=True)

    def handle(self, report: StageReport, path: Path, exc: Exception) -> None:
        """记录失败；FAIL 策略下重新抛出"""
        report.add_failure(path, str(exc))

        if self.policy == ErrorPolicy.FAIL:
            raise exc

        if self.policy == ErrorPolicy.IGNORE:
            logger.debug(f"[{report.stage}] 已忽略错误 {path}: {exc}")
            return

        if self.project.notify_via_console:
            logger.error(f"[{report.stage}] {path}: {exc}")
        else:
            self.notify(report.stage, path, exc)

    def notify(self, stage: str, path: Path, exc: Exception) -> None:
        """终端提示框"""
        self.console.print(
            Panel(
                f"{path}\n{exc}",
                title=f"[bold red]{stage} 失败[/bold red]",
                border_style="red",
            )
        )


def should_fail_on_lint(project: ProjectDescriptor, server_active: bool) -> bool:
    """检查失败是否终止构建：仅在非自动刷新/同步模式下"""
    return not server_active and not project.enable_sync
