"""
脚本阶段 - ESLint 检查与转译压缩

职责：
1. jslint: 检查 js_path 下的脚本（排除 *.min.js），非同步模式下有错误即终止
2. jsmin: 转译 -> 压缩 -> 写出 <name>.min.js（源目录 + dist/scripts）
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..interfaces import LintError
from ..models import StageReport
from ..pipeline.errors import ErrorPolicy, should_fail_on_lint
from ..pipeline.fileset import collect, is_newer
from .base import Stage

logger = logging.getLogger(__name__)

MIN_SUFFIX = ".min.js"


def min_name(source: Path) -> str:
    """a.js -> a.min.js"""
    return source.stem + MIN_SUFFIX


class ScriptLintStage(Stage):
    """jslint: 按 google 风格检查脚本"""

    name = "jslint"
    policy = ErrorPolicy.NOTIFY

    def sources(self) -> list[Path]:
        return collect(self.config.js_dir, [".js"], exclude_suffixes=[MIN_SUFFIX])

    def run(self) -> StageReport:
        report = self.new_report()
        linter = self.ctx.get_script_linter()
        if not getattr(linter, "available", True):
            logger.warning("未配置 eslint，跳过脚本检查")
            return report

        files = [p for p in self.sources() if self.ctx.cache.changed(self.name, p)]
        if not files:
            return report

        try:
            report.issues.extend(linter.lint(files))
        except Exception as e:
            for path in files:
                self.ctx.cache.forget(self.name, path)
            self.errors.handle(report, self.config.js_dir, e)
            return report

        for issue in report.issues:
            logger.warning(issue.format())

        if report.error_count:
            # 有错误的文件下次仍需检查
            for issue in report.issues:
                self.ctx.cache.forget(self.name, issue.path)
            message = f"脚本检查发现 {report.error_count} 个错误"
            if should_fail_on_lint(self.project, self.ctx.server_active.is_set()):
                raise LintError(message)
            logger.error(message)
        return report


class ScriptStage(Stage):
    """jsmin: 转译并压缩脚本"""

    name = "jsmin"
    policy = ErrorPolicy.NOTIFY

    def destinations(self) -> list[Path]:
        return [self.config.js_dir, self.config.dist_scripts_dir]

    def dist_target(self, source: Path) -> Path:
        rel = source.relative_to(self.config.js_dir)
        return self.config.dist_scripts_dir / rel.with_name(min_name(source))

    def select(self) -> list[Path]:
        """源文件旁或 dist 中的 .min.js 缺失/过期时重新生成"""
        sources = collect(self.config.js_dir, [".js"], exclude_suffixes=[MIN_SUFFIX])
        selected = []
        for p in sources:
            changed = self.ctx.cache.changed(self.name, p)
            # clean 之后 dist 为空，即使内容未变也要重新写出
            if is_newer(p, self.dist_target(p)):
                selected.append(p)
            elif changed and is_newer(p, p.with_name(min_name(p))):
                selected.append(p)
        return selected

    def run(self) -> StageReport:
        report = self.new_report()
        transpiler = self.ctx.get_transpiler()
        minifier = self.ctx.get_js_minifier()

        for source in self.select():
            try:
                code = source.read_text(encoding="utf-8")
                code = transpiler.transpile(code, source)
                code = minifier.minify(code)

                self.write_text(report, source.with_name(min_name(source)), code)
                self.write_text(report, self.dist_target(source), code)
            except Exception as e:
                self.ctx.cache.forget(self.name, source)
                self.errors.handle(report, source, e)

        self.report_size(report, "scripts")
        logger.info(f"[{self.name}] 输出 {len(report.written)} 个文件, 失败 {len(report.failures)}")
        return report
