"""
离线清单阶段 - 生成 service-worker.js

职责：
1. 按 static file globs 收集图片/脚本/样式/页面
2. 计算内容哈希作为 revision，去掉 app 目录前缀得到 URL
3. 用 jinja2 模板渲染 service worker（条目排序，不含时间戳，输出可复现）

测试要点：
- test_entries_strip_prefix: URL 去前缀
- test_output_deterministic: 两次生成字节一致
- test_revision_changes_with_content: 内容变化 revision 变化
"""

from __future__ import annotations

import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..models import PrecacheEntry, StageReport
from ..pipeline.errors import ErrorPolicy
from ..pipeline.fileset import collect, file_digest, matches_any
from .base import Stage

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "service-worker.js.j2"


def render_service_worker(
    entries: list[PrecacheEntry], cache_id: str, import_scripts: list[str]
) -> str:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    template = env.get_template(TEMPLATE_NAME)
    return template.render(entries=entries, cache_id=cache_id, import_scripts=import_scripts)


class ServiceWorkerStage(Stage):
    """gsw: 生成离线缓存 service worker"""

    name = "gsw"
    policy = ErrorPolicy.FAIL

    @property
    def output_path(self) -> Path:
        return self.config.resolve(self.config.packaging.service_worker_file)

    def destinations(self) -> list[Path]:
        return [self.output_path]

    def static_files(self) -> list[Path]:
        """与 staticFileGlobs 对应的文件（去重排序）"""
        config = self.config
        files = set(collect(config.image_dir, config.images.extensions))
        files.update(collect(config.js_dir, [".js"]))
        files.update(collect(config.sass_dir, [".css"]))

        app_dir = config.app_dir
        if app_dir.exists():
            patterns = config.packaging.markup_patterns
            for path in app_dir.rglob("*"):
                if path.is_file() and matches_any(path.relative_to(app_dir), patterns):
                    files.add(path)
        return sorted(files)

    def to_url(self, path: Path) -> str:
        """去掉 app 目录前缀"""
        for base in (self.config.app_dir, self.config.base_dir):
            try:
                return path.relative_to(base).as_posix()
            except ValueError:
                continue
        return path.as_posix()

    def entries(self) -> list[PrecacheEntry]:
        entries = [
            PrecacheEntry(url=self.to_url(path), revision=file_digest(path))
            for path in self.static_files()
        ]
        return sorted(entries, key=lambda e: e.url)

    def import_scripts(self) -> list[str]:
        """importScripts 路径（相对发布目录，与 copy-sw-scripts 的输出一致）"""
        try:
            dest = self.config.dist_scripts_dir.relative_to(self.config.dist_dir)
        except ValueError:
            dest = Path("scripts")
        return [(dest / Path(p).name).as_posix() for p in self.config.packaging.sw_import_scripts]

    def run(self) -> StageReport:
        report = self.new_report()
        entries = self.entries()
        content = render_service_worker(entries, self.project.cache_id, self.import_scripts())
        self.write_text(report, self.output_path, content)
        logger.info(f"[{self.name}] {self.output_path.name}: 预缓存 {len(entries)} 个资源")
        return report
