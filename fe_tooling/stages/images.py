"""
图片阶段 - 原地优化 image_path 下的图片
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..models import StageReport
from ..pipeline.errors import ErrorPolicy
from ..pipeline.fileset import collect
from .base import Stage

logger = logging.getLogger(__name__)


class ImageStage(Stage):
    """images: 图片优化"""

    name = "images"
    policy = ErrorPolicy.NOTIFY

    def destinations(self) -> list[Path]:
        return [self.config.image_dir]

    def run(self) -> StageReport:
        report = self.new_report()
        optimizer = self.ctx.get_image_optimizer()

        for path in collect(self.config.image_dir, self.config.images.extensions):
            if not self.ctx.cache.changed(self.name, path):
                continue
            try:
                self.check_destination(path)
                if optimizer.optimize(path, production=self.project.production):
                    report.add_written(path)
                    self.ctx.written(path)
                    # 优化后的内容不再重复处理
                    self.ctx.cache.changed(self.name, path)
                else:
                    report.add_skipped(path)
            except Exception as e:
                self.ctx.cache.forget(self.name, path)
                self.errors.handle(report, path, e)

        self.report_size(report, "images")
        logger.info(f"[{self.name}] 优化 {len(report.written)} 张图片, 失败 {len(report.failures)}")
        return report
