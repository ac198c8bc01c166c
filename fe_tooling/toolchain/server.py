"""
本地开发服务器 - livereload 静态文件服务 + 浏览器自动刷新
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from livereload import Server

from ..config import BuildConfig, get_config
from ..interfaces import IDevServer

logger = logging.getLogger(__name__)


class LiveReloadServer(IDevServer):
    """livereload.Server 封装"""

    def __init__(self, config: BuildConfig | None = None):
        self.config = config or get_config()
        self.server = Server()

    def watch(
        self,
        directory: Path,
        extensions: list[str] | None = None,
        callback: Callable[[], None] | None = None,
    ) -> None:
        ignore = None
        if extensions:
            allowed = {e.lower() for e in extensions}

            def ignore(filename: str) -> bool:
                return Path(filename).suffix.lower() not in allowed

        self.server.watch(str(directory), callback, ignore=ignore)

    def serve(self, root: Path, port: int) -> None:
        prefix = self.config.server.log_prefix
        logger.info(f"[{prefix}] 本地服务: http://{self.config.server.host}:{port} -> {root}")
        self.server.serve(
            port=port,
            host=self.config.server.host,
            root=str(root),
            open_url_delay=1 if self.config.server.open_browser else None,
        )
