"""
文件监听 - 源文件变化时重新执行对应任务

路由规则（与默认构建一致）：
- sass_path 下的 .scss/.sass  -> scsslint, sass, gsw
- js_path 下的 .js（非 .min.js） -> jslint, jsmin, gsw
- image_path 下的图片          -> images, gsw

编译产物（.css/.min.js/.map）与流水线自身写出且内容未变的文件不会触发任务。

测试要点：
- test_route_change: 只返回变化目录对应的任务
- test_ignore_own_writes: 忽略自身写出
- test_debounce_merges_events: 短时间内多次变化合并为一次执行
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import BuildConfig
from .fileset import SASS_EXTENSIONS, ContentCache

logger = logging.getLogger(__name__)

IGNORED_SUFFIXES = (".min.js", ".map")


@dataclass(frozen=True)
class WatchRoute:
    """监听路由"""
    root: Path
    extensions: tuple[str, ...]
    tasks: tuple[str, ...]

    def matches(self, path: Path) -> bool:
        if path.suffix.lower() not in self.extensions:
            return False
        try:
            path.resolve().relative_to(self.root.resolve())
        except ValueError:
            return False
        return True


def build_routes(config: BuildConfig) -> list[WatchRoute]:
    return [
        WatchRoute(config.sass_dir, SASS_EXTENSIONS, ("scsslint", "sass", "gsw")),
        WatchRoute(config.js_dir, (".js",), ("jslint", "jsmin", "gsw")),
        WatchRoute(
            config.image_dir,
            tuple(e.lower() for e in config.images.extensions),
            ("images", "gsw"),
        ),
    ]


def route_change(routes: list[WatchRoute], path: Path) -> list[str]:
    """变化文件对应的任务列表（按路由顺序去重）"""
    if path.name.endswith(IGNORED_SUFFIXES):
        return []
    tasks: list[str] = []
    for route in routes:
        if route.matches(path):
            tasks.extend(t for t in route.tasks if t not in tasks)
    return tasks


class ChangeHandler(FileSystemEventHandler):
    """把 watchdog 事件合并后交给 trigger 执行"""

    def __init__(
        self,
        routes: list[WatchRoute],
        trigger: Callable[[list[str]], None],
        cache: ContentCache | None = None,
        delay: float = 0.3,
    ):
        super().__init__()
        self.routes = routes
        self.trigger = trigger
        self.cache = cache
        self.delay = delay
        self._pending: list[str] = []
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        raw = getattr(event, "dest_path", "") or event.src_path
        self.handle_path(Path(raw))

    def handle_path(self, path: Path) -> None:
        tasks = route_change(self.routes, path)
        if not tasks:
            return
        if self.cache is not None and self.cache.is_own_write(path):
            logger.debug(f"忽略自身写出: {path}")
            return

        logger.info(f"文件变化: {path} -> {', '.join(tasks)}")
        with self._lock:
            for task in tasks:
                if task not in self._pending:
                    self._pending.append(task)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        with self._lock:
            tasks = self._pending
            self._pending = []
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if not tasks:
            return
        try:
            self.trigger(tasks)
        except Exception:
            # 监听循环不因单次任务失败而退出
            logger.exception(f"任务执行失败: {', '.join(tasks)}")


class Watcher:
    """watchdog Observer 封装"""

    def __init__(
        self,
        config: BuildConfig,
        trigger: Callable[[list[str]], None],
        cache: ContentCache | None = None,
    ):
        self.routes = build_routes(config)
        self.handler = ChangeHandler(self.routes, trigger, cache)
        self.observer = Observer()

    def start(self) -> None:
        scheduled = set()
        for route in self.routes:
            root = route.root.resolve()
            if not root.exists() or root in scheduled:
                continue
            self.observer.schedule(self.handler, str(root), recursive=True)
            scheduled.add(root)
            logger.info(f"监听目录: {root}")
        self.observer.start()

    def stop(self) -> None:
        self.observer.stop()
        self.observer.join()

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """阻塞直到 Ctrl-C 或 stop_event 被设置"""
        stop_event = stop_event or threading.Event()
        self.start()
        try:
            while not stop_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("监听已停止")
        finally:
            self.stop()
