"""
杂项阶段 - 启动问候 / PageSpeed 性能审计
"""

from __future__ import annotations

import logging

from ..models import StageReport
from ..pipeline.errors import ErrorPolicy
from .base import Stage

logger = logging.getLogger(__name__)


class GreetStage(Stage):
    """greet: 输出项目名"""

    name = "greet"

    def run(self) -> StageReport:
        self.ctx.console.print(
            f"[green]Hello, tasks are initialising for {self.project.name or '(unnamed project)'}[/green]"
        )
        logger.debug(f"项目: {self.project.name} production={self.project.production} debug={self.project.debug}")
        return self.new_report()


class PageSpeedStage(Stage):
    """pagespeed: 对 project.url 运行 PageSpeed Insights（mobile）"""

    name = "pagespeed"
    policy = ErrorPolicy.FAIL

    def __init__(self, ctx, strategy: str = "mobile"):
        super().__init__(ctx)
        self.strategy = strategy

    def run(self) -> StageReport:
        report = self.new_report()
        result = self.ctx.get_auditor().audit(self.project.url, self.strategy)
        logger.info(f"[{self.name}] {result['url']} ({result['strategy']}): 性能得分 {result['score']}")
        for key, value in result.get("metrics", {}).items():
            logger.info(f"[{self.name}]   {key}: {value}")
        return report
