"""
服务与监听阶段 - 本地服务器/自动刷新/文件监听（阻塞型）

- serve:       以 app 目录为根启动服务，页面/样式/脚本/图片变化时刷新浏览器
- serve:dist:  以发布目录为根启动服务（dist_port）
- sync:        在 serve 基础上，Sass 源文件变化时重新编译
- watchers:    不启动服务，只监听源目录并重新执行对应任务
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from ..models import StageReport
from ..pipeline.context import BuildContext
from ..pipeline.fileset import SASS_EXTENSIONS
from ..pipeline.watcher import Watcher
from .base import Stage

logger = logging.getLogger(__name__)

MARKUP_EXTENSIONS = [".php", ".jsp", ".jspf", ".htm", ".html"]


class ServeStage(Stage):
    """serve: 本地服务 + 自动刷新"""

    name = "serve"
    blocking = True

    def __init__(self, ctx: BuildContext, *, dist: bool = False, sync: bool = False):
        super().__init__(ctx)
        self.dist = dist
        self.sync = sync
        if dist:
            self.name = "serve:dist"
        elif sync:
            self.name = "sync"

    @property
    def root(self) -> Path:
        return self.config.dist_dir if self.dist else self.config.app_dir

    @property
    def port(self) -> int:
        return self.config.server.dist_port if self.dist else self.config.server.port

    def register_watches(self, server) -> None:
        config = self.config
        if self.dist:
            return
        server.watch(config.app_dir, MARKUP_EXTENSIONS)
        server.watch(config.sass_dir, [".css"])
        server.watch(config.js_dir, [".js"])
        server.watch(config.image_dir, config.images.extensions)
        server.watch(config.fonts_dir)
        if self.sync and self.ctx.trigger is not None:
            trigger = self.ctx.trigger
            server.watch(config.sass_dir, list(SASS_EXTENSIONS), lambda: trigger(["sass"]))

    def run(self) -> StageReport:
        report = self.new_report()
        server = self.ctx.new_dev_server()
        self.register_watches(server)

        self.ctx.server_active.set()
        try:
            server.serve(self.root, self.port)
        except KeyboardInterrupt:
            logger.info(f"[{self.name}] 服务已停止")
        finally:
            self.ctx.server_active.clear()
        return report


class WatchStage(Stage):
    """watchers: 监听源目录，变化时重新执行对应任务"""

    name = "watchers"
    blocking = True

    def __init__(self, ctx: BuildContext, stop_event: threading.Event | None = None):
        super().__init__(ctx)
        self.stop_event = stop_event

    def run(self) -> StageReport:
        report = self.new_report()
        if self.ctx.trigger is None:
            logger.warning("未设置任务触发器，跳过监听")
            return report
        watcher = Watcher(self.config, self.ctx.trigger, self.ctx.cache)
        watcher.run_forever(self.stop_event)
        return report
