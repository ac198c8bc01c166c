"""
文件监听单元测试

每个模块完成后必须运行：pytest tests/unit/test_watcher.py -v
"""

import threading
from pathlib import Path

from fe_tooling.config import BuildConfig
from fe_tooling.pipeline.fileset import ContentCache
from fe_tooling.pipeline.watcher import ChangeHandler, build_routes, route_change


class TestRouteChange:
    """变化路由测试"""

    def test_route_change(self, build_config: BuildConfig, project_root: Path):
        routes = build_routes(build_config)

        assert route_change(routes, project_root / "app/css/_variables.scss") == ["scsslint", "sass", "gsw"]
        assert route_change(routes, project_root / "app/javascript/salmon/modules/app.js") == ["jslint", "jsmin", "gsw"]
        assert route_change(routes, project_root / "app/images/logo.PNG") == ["images", "gsw"]

    def test_outputs_ignored(self, build_config: BuildConfig, project_root: Path):
        """编译产物不触发任务"""
        routes = build_routes(build_config)

        assert route_change(routes, project_root / "app/css/main.css") == []
        assert route_change(routes, project_root / "app/css/main.css.map") == []
        assert route_change(routes, project_root / "app/javascript/salmon/modules/app.min.js") == []

    def test_outside_roots(self, build_config: BuildConfig, project_root: Path):
        routes = build_routes(build_config)
        assert route_change(routes, project_root / "app/other/x.js") == []


class TestChangeHandler:
    """事件合并测试"""

    def _handler(self, build_config, calls, cache=None):
        return ChangeHandler(build_routes(build_config), calls.append, cache, delay=60)

    def test_debounce_merges_events(self, build_config: BuildConfig, project_root: Path):
        calls: list[list[str]] = []
        handler = self._handler(build_config, calls)

        handler.handle_path(project_root / "app/css/main.scss")
        handler.handle_path(project_root / "app/javascript/salmon/modules/app.js")
        handler.flush()

        assert calls == [["scsslint", "sass", "gsw", "jslint", "jsmin"]]

    def test_ignore_own_writes(self, build_config: BuildConfig, project_root: Path):
        calls: list[list[str]] = []
        cache = ContentCache()
        source = project_root / "app/javascript/salmon/modules/app.js"
        cache.remember_written(source)
        handler = self._handler(build_config, calls, cache)

        handler.handle_path(source)
        handler.flush()

        assert calls == []

    def test_trigger_failure_does_not_propagate(self, build_config: BuildConfig, project_root: Path):
        def boom(tasks):
            raise RuntimeError("stage failed")

        handler = ChangeHandler(build_routes(build_config), boom, delay=60)
        handler.handle_path(project_root / "app/css/main.scss")
        handler.flush()

    def test_timer_flushes(self, build_config: BuildConfig, project_root: Path):
        done = threading.Event()
        calls: list[list[str]] = []

        def trigger(tasks):
            calls.append(tasks)
            done.set()

        handler = ChangeHandler(build_routes(build_config), trigger, delay=0.01)
        handler.handle_path(project_root / "app/images/logo.png")

        assert done.wait(5)
        assert calls == [["images", "gsw"]]
