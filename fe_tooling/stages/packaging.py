"""
打包阶段 - 清理 / 复制静态资源到发布目录

职责：
1. clean: 删除 .tmp 与 dist 下的内容（保留 .git 等）
2. copy: 复制 app/**（含隐藏文件，排除 Magento 与顶层 html）及服务器配置文件
3. copy-sw-scripts: 复制 service worker 依赖的脚本到 dist/scripts

测试要点：
- test_clean_keeps_git: 保留项
- test_copy_excludes: 排除规则
- test_copy_server_config: .htaccess 复制
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..interfaces import PackageError
from ..models import StageReport
from ..pipeline.errors import ErrorPolicy
from ..pipeline.fileset import matches_any
from .base import Stage

logger = logging.getLogger(__name__)


class CleanStage(Stage):
    """clean: 清理临时目录与发布目录"""

    name = "clean"
    policy = ErrorPolicy.FAIL

    def destinations(self) -> list[Path]:
        return [self.config.tmp_dir, self.config.dist_dir]

    def run(self) -> StageReport:
        report = self.new_report()
        keep = set(self.config.packaging.clean_keep)

        tmp_dir = self.config.tmp_dir
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir)
            report.add_written(tmp_dir)

        dist_dir = self.config.dist_dir
        if dist_dir.exists():
            for child in sorted(dist_dir.iterdir()):
                if child.name in keep:
                    report.add_skipped(child)
                    continue
                self.check_destination(child)
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
                report.add_written(child)

        logger.info(f"[{self.name}] 已删除 {len(report.written)} 项")
        return report


class CopyStage(Stage):
    """copy: 复制 app 目录到发布目录"""

    name = "copy"
    policy = ErrorPolicy.NOTIFY

    def destinations(self) -> list[Path]:
        return [self.config.dist_dir]

    def sources(self) -> list[Path]:
        app_dir = self.config.app_dir
        if not app_dir.exists():
            return []
        excludes = self.config.packaging.copy_excludes
        files = []
        for path in app_dir.rglob("*"):
            if path.is_file() and not matches_any(path.relative_to(app_dir), excludes):
                files.append(path)
        return sorted(files)

    def run(self) -> StageReport:
        report = self.new_report()
        app_dir = self.config.app_dir
        dist_dir = self.config.dist_dir

        for source in self.sources():
            target = dist_dir / source.relative_to(app_dir)
            try:
                self.copy_file(report, source, target)
            except Exception as e:
                self.errors.handle(report, source, e)

        server_config = self.config.resolve(self.config.packaging.server_config)
        if server_config.exists():
            try:
                self.copy_file(report, server_config, dist_dir / server_config.name)
            except Exception as e:
                self.errors.handle(report, server_config, e)
        else:
            logger.debug(f"服务器配置文件不存在，跳过: {server_config}")

        entry = report.record_size("copy", report.written)
        logger.info(entry.pretty())
        return report

    def copy_file(self, report: StageReport, source: Path, target: Path) -> None:
        self.check_destination(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        report.add_written(target)


class CopyServiceWorkerScriptsStage(Stage):
    """copy-sw-scripts: 复制 importScripts 引用的脚本"""

    name = "copy-sw-scripts"
    policy = ErrorPolicy.NOTIFY

    def destinations(self) -> list[Path]:
        return [self.config.dist_scripts_dir]

    def run(self) -> StageReport:
        report = self.new_report()
        dest_dir = self.config.dist_scripts_dir

        for script in self.config.packaging.sw_import_scripts:
            source = self.config.resolve(script)
            try:
                if not source.exists():
                    raise PackageError(f"脚本不存在: {source}")
                target = dest_dir / source.name
                self.check_destination(target)
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
                report.add_written(target)
            except Exception as e:
                self.errors.handle(report, source, e)
        return report
