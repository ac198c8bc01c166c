"""
脚本工具适配器 - ESLint 检查 / Babel 转译 / JS 压缩

职责：
1. eslint --format json 检查（extends 与 rules 由配置生成）
2. babel 转译（未配置则原样返回）
3. rjsmin 压缩（保留 /*! ... */ 版权注释）
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import rjsmin

from ..config import BuildConfig, get_config
from ..interfaces import CompileError, IMinifier, IScriptLinter, ITranspiler, LintError
from ..models import LintIssue, LintSeverity
from .external import ExternalTool

logger = logging.getLogger(__name__)


class EsLinter(IScriptLinter):
    """ESLint 检查器"""

    # 0: 无错误 1: 有错误（警告不影响返回码）
    OK_CODES = (0, 1)

    def __init__(self, config: BuildConfig | None = None):
        config = config or get_config()
        self.config = config
        self.tool = ExternalTool(
            "eslint",
            config.tools.eslint,
            timeout=config.tools.timeout_sec,
            error_cls=LintError,
            cwd=config.base_dir,
        )

    @property
    def available(self) -> bool:
        return self.tool.configured

    def eslint_config(self) -> dict:
        """生成 eslint 配置（extends google，覆盖部分规则）"""
        return {
            "extends": self.config.scripts.eslint_extends,
            "rules": dict(self.config.scripts.eslint_rules),
        }

    def write_config(self) -> Path:
        self.config.tmp_dir.mkdir(parents=True, exist_ok=True)
        path = self.config.tmp_dir / "eslintrc.json"
        path.write_text(json.dumps(self.eslint_config(), indent=2), encoding="utf-8")
        return path

    def lint(self, files: list[Path]) -> list[LintIssue]:
        if not files:
            return []
        config_path = self.write_config()
        result = self.tool.run(
            ["--no-eslintrc", "--config", str(config_path), "--format", "json", *map(str, files)],
            ok_codes=self.OK_CODES,
        )
        return parse_eslint_json(result.stdout)


def parse_eslint_json(output: str) -> list[LintIssue]:
    """解析 eslint --format json 输出"""
    if not output.strip():
        return []
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise LintError(f"eslint 输出无法解析: {e}") from e

    issues = []
    for file_result in data:
        path = Path(file_result.get("filePath", ""))
        for msg in file_result.get("messages", []):
            issues.append(
                LintIssue(
                    path=path,
                    line=msg.get("line", 0),
                    column=msg.get("column", 0),
                    severity=LintSeverity.ERROR if msg.get("severity") == 2 else LintSeverity.WARNING,
                    rule=msg.get("ruleId"),
                    message=msg.get("message", ""),
                )
            )
    return issues


class BabelTranspiler(ITranspiler):
    """@babel/cli 转译（stdin -> stdout）"""

    def __init__(self, config: BuildConfig | None = None):
        config = config or get_config()
        self.tool = ExternalTool(
            "babel",
            config.tools.babel,
            timeout=config.tools.timeout_sec,
            error_cls=CompileError,
            cwd=config.base_dir,
        )
        self._warned = False

    def transpile(self, source: str, filename: Path) -> str:
        if not self.tool.configured:
            if not self._warned:
                logger.warning("未配置 babel，脚本不做转译")
                self._warned = True
            return source
        result = self.tool.run(["--filename", str(filename)], input_text=source)
        return result.stdout


class JsMinifier(IMinifier):
    """rjsmin 压缩"""

    def __init__(self, keep_bang_comments: bool = True):
        self.keep_bang_comments = keep_bang_comments

    def minify(self, text: str) -> str:
        return rjsmin.jsmin(text, keep_bang_comments=self.keep_bang_comments)
