"""
页面合并阶段 - 合并 HTML 中标记块引用的脚本/样式

标记格式：
    <!-- build:<type>[(<搜索目录>)] <输出路径> -->
    ... <script src=...> / <link href=...> 列表
    <!-- endbuild -->

type 支持 js / css（合并并压缩后替换为单个标签）以及 remove（删除整个块）；
其他类型原样保留。

测试要点：
- test_js_block_concatenated: 合并顺序与替换标签
- test_css_block_minified: 样式合并压缩
- test_missing_reference: 引用文件不存在
- test_unknown_block_untouched: 未知类型保持不变
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from ..interfaces import PackageError
from ..models import StageReport
from ..pipeline.errors import ErrorPolicy
from .base import Stage

logger = logging.getLogger(__name__)

BLOCK_RE = re.compile(
    r"(?P<indent>[ \t]*)<!--\s*build:(?P<type>\w+)(?:\((?P<alt>[^)]*)\))?\s*(?P<target>[^\s]*)\s*-->"
    r"(?P<body>.*?)"
    r"<!--\s*endbuild\s*-->",
    re.DOTALL,
)
SCRIPT_SRC_RE = re.compile(r"""<script\b[^>]*\bsrc\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
LINK_HREF_RE = re.compile(r"""<link\b[^>]*\bhref\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


@dataclass
class BuildBlock:
    """一个 build 标记块"""
    type: str
    target: str
    refs: list[str]
    search_dirs: list[str]
    indent: str = ""

    def tag(self) -> str:
        if self.type == "js":
            return f'{self.indent}<script src="{self.target}"></script>'
        return f'{self.indent}<link rel="stylesheet" href="{self.target}">'


def parse_block(match: re.Match[str]) -> BuildBlock:
    body = match.group("body")
    block_type = match.group("type").lower()
    pattern = SCRIPT_SRC_RE if block_type == "js" else LINK_HREF_RE
    alt = match.group("alt") or ""
    return BuildBlock(
        type=block_type,
        target=match.group("target"),
        refs=pattern.findall(body),
        search_dirs=[d.strip() for d in alt.split(",") if d.strip()],
        indent=match.group("indent"),
    )


class MarkupStage(Stage):
    """html: 合并并压缩标记块（useref）"""

    name = "html"
    policy = ErrorPolicy.NOTIFY

    def destinations(self) -> list[Path]:
        return [self.config.dist_dir]

    def sources(self) -> list[Path]:
        app_dir = self.config.app_dir
        if not app_dir.exists():
            return []
        return sorted(p for p in app_dir.glob("*.html") if p.is_file())

    def run(self) -> StageReport:
        report = self.new_report()
        for html_path in self.sources():
            try:
                self.process(report, html_path)
            except Exception as e:
                self.errors.handle(report, html_path, e)

        self.report_size(report, "html")
        return report

    def process(self, report: StageReport, html_path: Path) -> None:
        """处理单个页面：写出合并后的资源与改写后的页面"""
        html = html_path.read_text(encoding="utf-8")
        rel_dir = html_path.parent.relative_to(self.config.app_dir)
        bundles: list[tuple[Path, str]] = []

        def replace(match: re.Match[str]) -> str:
            block = parse_block(match)
            if block.type == "remove":
                return ""
            if block.type not in ("js", "css") or not block.target:
                return match.group(0)

            content = self.concat(block, html_path)
            target = self.config.dist_dir / rel_dir / block.target.lstrip("/")
            bundles.append((target, content))
            return block.tag()

        rewritten = BLOCK_RE.sub(replace, html)

        for target, content in bundles:
            self.write_text(report, target, content)
        self.write_text(report, self.config.dist_dir / rel_dir / html_path.name, rewritten)
        logger.info(f"[{self.name}] {html_path.name}: 合并 {len(bundles)} 个资源块")

    def concat(self, block: BuildBlock, html_path: Path) -> str:
        parts = []
        for ref in block.refs:
            source = self.resolve_ref(ref, block, html_path)
            parts.append(source.read_text(encoding="utf-8"))

        if block.type == "js":
            joined = ";\n".join(p.rstrip().rstrip(";") for p in parts)
            return self.ctx.get_js_minifier().minify(joined)
        return self.ctx.get_css_minifier().minify("\n".join(parts))

    def resolve_ref(self, ref: str, block: BuildBlock, html_path: Path) -> Path:
        """引用路径：/ 开头相对 app 根目录，否则相对页面所在目录；可附加搜索目录"""
        clean = ref.split("?", 1)[0].split("#", 1)[0]
        if clean.startswith(("http://", "https://", "//")):
            raise PackageError(f"不能合并远程资源: {ref}")

        if clean.startswith("/"):
            bases = [self.config.app_dir]
            clean = clean.lstrip("/")
        else:
            bases = [html_path.parent]
        bases.extend(self.config.resolve(d) for d in block.search_dirs)

        for base in bases:
            candidate = base / clean
            if candidate.is_file():
                return candidate
        raise PackageError(f"{html_path.name} 引用的文件不存在: {ref}")
