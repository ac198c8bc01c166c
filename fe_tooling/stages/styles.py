"""
样式阶段 - Sass 检查与编译

职责：
1. 收集 sass_path 下的入口文件（排除 _ 开头的局部文件）
2. 局部文件变化时，通过 @import 依赖图找到需要重新编译的入口文件
3. 编译 -> 补全前缀 -> (production) 压缩与体积统计 -> 写回源目录
4. scss-lint 检查（失败不阻断）

测试要点：
- test_compile_writes_css_beside_source: 输出位置
- test_partial_change_recompiles_dependents: 局部文件触发
- test_production_minifies: production 开关
- test_broken_file_does_not_stop_stage: 单文件失败隔离
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..models import StageReport
from ..pipeline.errors import ErrorPolicy
from ..pipeline.fileset import SASS_EXTENSIONS, collect, is_newer, is_partial
from .base import Stage

logger = logging.getLogger(__name__)


class StyleStage(Stage):
    """sass: 编译样式"""

    name = "sass"
    policy = ErrorPolicy.IGNORE

    def destinations(self) -> list[Path]:
        return [self.config.sass_dir]

    def select(self) -> list[Path]:
        """需要重新编译的入口文件"""
        sources = collect(self.config.sass_dir, SASS_EXTENSIONS)
        changed = [p for p in sources if self.ctx.cache.changed(self.name, p)]
        changed_partials = [p for p in changed if is_partial(p)]
        roots = [p for p in sources if not is_partial(p)]

        graph = self.ctx.import_graph()
        selected = []
        for root in roots:
            triggers = [root] if root in changed else []
            triggers.extend(p for p in changed_partials if graph.dependents(p, [root]))
            if not triggers:
                continue
            css_path = root.with_suffix(".css")
            if any(is_newer(t, css_path) for t in triggers):
                selected.append(root)
        return selected

    def run(self) -> StageReport:
        report = self.new_report()
        compiler = self.ctx.get_style_compiler()
        prefixer = self.ctx.get_prefixer()
        include_paths = self.config.sass_include_paths()

        for source in self.select():
            try:
                css, source_map = compiler.compile(
                    source, include_paths, source_map=self.project.debug
                )
                css = prefixer.prefix(css, self.config.styles.prefix_browsers)
                if self.project.production:
                    css = self.ctx.get_css_minifier().minify(css)

                css_path = source.with_suffix(".css")
                self.write_text(report, css_path, css)
                if source_map is not None:
                    self.write_text(report, css_path.with_name(css_path.name + ".map"), source_map)
            except Exception as e:
                self.ctx.cache.forget(self.name, source)
                self.errors.handle(report, source, e)

        self.report_size(report, "styles")
        logger.info(f"[{self.name}] 编译 {len(report.written)} 个文件, 失败 {len(report.failures)}")
        return report


class StyleLintStage(Stage):
    """scsslint: 样式检查（仅记录，不阻断）"""

    name = "scsslint"
    policy = ErrorPolicy.IGNORE

    def run(self) -> StageReport:
        report = self.new_report()
        linter = self.ctx.get_style_linter()
        if not getattr(linter, "available", True):
            logger.warning("未配置 scss-lint，跳过样式检查")
            return report

        files = [
            p
            for p in collect(self.config.sass_dir, SASS_EXTENSIONS, exclude_partials=True)
            if self.ctx.cache.changed(self.name, p)
        ]
        if not files:
            return report

        try:
            report.issues.extend(linter.lint(files))
        except Exception as e:
            for path in files:
                self.ctx.cache.forget(self.name, path)
            self.errors.handle(report, self.config.sass_dir, e)
            return report

        for issue in report.issues:
            logger.warning(issue.format())
        return report
