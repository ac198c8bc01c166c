"""
阶段基类 - 统一的输出目录约束/写文件/体积统计

每个阶段声明自己的输出目录（destinations），写出目录之外的路径视为配置错误
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..interfaces import PackageError
from ..models import StageReport
from ..pipeline.context import BuildContext
from ..pipeline.errors import ErrorHandler, ErrorPolicy

logger = logging.getLogger(__name__)


class Stage:
    """流水线阶段基类"""

    name: str = ""
    policy: ErrorPolicy = ErrorPolicy.NOTIFY
    blocking: bool = False

    def __init__(self, ctx: BuildContext):
        self.ctx = ctx
        self.config = ctx.config
        self.project = ctx.project
        self.errors: ErrorHandler = ctx.error_handler(self.policy)

    def destinations(self) -> list[Path]:
        """允许写入的目录"""
        return []

    def run(self) -> StageReport:
        raise NotImplementedError

    def new_report(self) -> StageReport:
        return StageReport(stage=self.name)

    # === 写文件 ===

    def check_destination(self, path: Path) -> None:
        target = path.resolve()
        for dest in self.destinations():
            if target.is_relative_to(dest.resolve()):
                return
        raise PackageError(f"[{self.name}] 输出路径不在允许的目录内: {path}")

    def write_text(self, report: StageReport, path: Path, text: str) -> Path:
        self.check_destination(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        report.add_written(path)
        self.ctx.written(path)
        return path

    def write_bytes(self, report: StageReport, path: Path, data: bytes) -> Path:
        self.check_destination(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        report.add_written(path)
        self.ctx.written(path)
        return path

    def report_size(self, report: StageReport, title: str) -> None:
        """生产模式下输出体积统计"""
        if not self.project.production:
            return
        entry = report.record_size(title, report.written)
        logger.info(entry.pretty())
