"""
样式工具适配器 - Sass 编译 / 前缀补全 / CSS 压缩 / Sass 检查

职责：
1. libsass 编译 .scss/.sass（输出风格与精度由配置决定）
2. postcss + autoprefixer 按浏览器列表补全前缀（未安装则原样返回）
3. rcssmin 压缩 CSS
4. scss-lint 检查并解析 JSON 输出

测试要点：
- test_compile_scss: 编译与 include_paths
- test_compile_error: 语法错误转换为 CompileError
- test_prefixer_passthrough: 未配置 postcss 时原样返回
- test_parse_scss_lint_json: 检查结果解析
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import rcssmin
import sass

from ..config import BuildConfig, get_config
from ..interfaces import (
    CompileError,
    IMinifier,
    IPrefixer,
    IStyleCompiler,
    IStyleLinter,
    LintError,
)
from ..models import LintIssue, LintSeverity
from .external import ExternalTool

logger = logging.getLogger(__name__)


class SassCompiler(IStyleCompiler):
    """libsass 编译器"""

    def __init__(self, config: BuildConfig | None = None, output_style: str | None = None):
        config = config or get_config()
        self.output_style = output_style or config.styles.sass_style
        self.precision = config.styles.precision

    def compile(
        self,
        source: Path,
        include_paths: list[Path],
        source_map: bool = False,
    ) -> tuple[str, str | None]:
        """编译单个 Sass 文件"""
        if not source.exists():
            raise CompileError(f"样式文件不存在: {source}")

        kwargs = {
            "filename": str(source),
            "output_style": self.output_style,
            "precision": self.precision,
            "include_paths": [str(p) for p in include_paths],
        }
        css_path = source.with_suffix(".css")
        if source_map:
            kwargs["source_map_filename"] = str(css_path.with_name(css_path.name + ".map"))
            kwargs["output_filename_hint"] = str(css_path)
            kwargs["source_map_contents"] = True

        try:
            result = sass.compile(**kwargs)
        except sass.CompileError as e:
            raise CompileError(f"Sass编译失败: {source}: {e}") from e

        if source_map:
            css, map_text = result
            return css, map_text
        return result, None


class Autoprefixer(IPrefixer):
    """postcss-cli + autoprefixer（通过 BROWSERSLIST 环境变量传入浏览器列表）"""

    def __init__(self, config: BuildConfig | None = None):
        config = config or get_config()
        self.tool = ExternalTool(
            "postcss",
            config.tools.postcss,
            timeout=config.tools.timeout_sec,
            error_cls=CompileError,
            cwd=config.base_dir,
        )
        self._warned = False

    def prefix(self, css: str, browsers: list[str]) -> str:
        if not self.tool.configured:
            if not self._warned:
                logger.warning("未配置 postcss，跳过浏览器前缀补全")
                self._warned = True
            return css
        result = self.tool.run(
            ["--use", "autoprefixer", "--no-map"],
            input_text=css,
            env={"BROWSERSLIST": ", ".join(browsers)},
        )
        return result.stdout


class CssMinifier(IMinifier):
    """rcssmin 压缩"""

    def __init__(self, keep_bang_comments: bool = False):
        self.keep_bang_comments = keep_bang_comments

    def minify(self, text: str) -> str:
        return rcssmin.cssmin(text, keep_bang_comments=self.keep_bang_comments)


class ScssLinter(IStyleLinter):
    """scss-lint 检查器"""

    # 0: 无问题 1: 仅警告 2: 有错误
    OK_CODES = (0, 1, 2)

    def __init__(self, config: BuildConfig | None = None):
        config = config or get_config()
        self.config_file = config.resolve(config.styles.lint_config)
        self.tool = ExternalTool(
            "scss-lint",
            config.tools.scss_lint,
            timeout=config.tools.timeout_sec,
            error_cls=LintError,
            cwd=config.base_dir,
        )

    @property
    def available(self) -> bool:
        return self.tool.configured

    def lint(self, files: list[Path]) -> list[LintIssue]:
        if not files:
            return []
        args = ["--format", "JSON"]
        if self.config_file.exists():
            args.extend(["--config", str(self.config_file)])
        result = self.tool.run([*args, *map(str, files)], ok_codes=self.OK_CODES)
        return parse_scss_lint_json(result.stdout)


def parse_scss_lint_json(output: str) -> list[LintIssue]:
    """解析 scss-lint --format JSON 输出"""
    if not output.strip():
        return []
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise LintError(f"scss-lint 输出无法解析: {e}") from e

    issues = []
    for path, entries in data.items():
        for entry in entries:
            severity = (
                LintSeverity.ERROR
                if entry.get("severity") == "error"
                else LintSeverity.WARNING
            )
            issues.append(
                LintIssue(
                    path=Path(path),
                    line=entry.get("line", 0),
                    column=entry.get("column", 0),
                    severity=severity,
                    rule=entry.get("linter"),
                    message=entry.get("reason", ""),
                )
            )
    return issues
