"""
构建上下文 - 一次运行中各阶段共享的配置/缓存/工具实例

外部工具实例惰性创建，测试可直接替换为 fake 实现
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from rich.console import Console

from ..config import BuildConfig, ProjectDescriptor
from ..toolchain import (
    Autoprefixer,
    BabelTranspiler,
    CssMinifier,
    EsLinter,
    ImageOptimizer,
    JsMinifier,
    LiveReloadServer,
    PageSpeedClient,
    SassCompiler,
    ScssLinter,
)
from .errors import ErrorHandler, ErrorPolicy
from .fileset import ContentCache, ImportGraph

if TYPE_CHECKING:
    from ..interfaces import (
        IDevServer,
        IImageOptimizer,
        IMinifier,
        IPageAuditor,
        IPrefixer,
        IScriptLinter,
        IStyleCompiler,
        IStyleLinter,
        ITranspiler,
    )


@dataclass
class BuildContext:
    """构建上下文"""

    config: BuildConfig
    project: ProjectDescriptor
    cache: ContentCache = field(default_factory=ContentCache)
    console: Console = field(default_factory=lambda: Console(stderr=True))
    server_active: threading.Event = field(default_factory=threading.Event)

    # 工具实例（None 表示按配置惰性创建）
    style_compiler: IStyleCompiler | None = None
    prefixer: IPrefixer | None = None
    css_minifier: IMinifier | None = None
    style_linter: IStyleLinter | None = None
    script_linter: IScriptLinter | None = None
    transpiler: ITranspiler | None = None
    js_minifier: IMinifier | None = None
    image_optimizer: IImageOptimizer | None = None
    dev_server_factory: Callable[[], IDevServer] | None = None
    auditor: IPageAuditor | None = None

    # 监听/同步模式下重新执行任务（由 TaskRunner 设置）
    trigger: Callable[[list[str]], None] | None = None

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def error_handler(self, policy: ErrorPolicy) -> ErrorHandler:
        return ErrorHandler(policy, self.project, self.console)

    def import_graph(self) -> ImportGraph:
        return ImportGraph(self.config.sass_include_paths())

    def written(self, path: Path) -> None:
        """记录写出的文件（监听时据此忽略自身写入）"""
        self.cache.remember_written(path)

    # === 工具实例 ===

    def get_style_compiler(self) -> IStyleCompiler:
        with self._lock:
            if self.style_compiler is None:
                self.style_compiler = SassCompiler(self.config)
            return self.style_compiler

    def get_prefixer(self) -> IPrefixer:
        with self._lock:
            if self.prefixer is None:
                self.prefixer = Autoprefixer(self.config)
            return self.prefixer

    def get_css_minifier(self) -> IMinifier:
        with self._lock:
            if self.css_minifier is None:
                self.css_minifier = CssMinifier()
            return self.css_minifier

    def get_style_linter(self) -> IStyleLinter:
        with self._lock:
            if self.style_linter is None:
                self.style_linter = ScssLinter(self.config)
            return self.style_linter

    def get_script_linter(self) -> IScriptLinter:
        with self._lock:
            if self.script_linter is None:
                self.script_linter = EsLinter(self.config)
            return self.script_linter

    def get_transpiler(self) -> ITranspiler:
        with self._lock:
            if self.transpiler is None:
                self.transpiler = BabelTranspiler(self.config)
            return self.transpiler

    def get_js_minifier(self) -> IMinifier:
        with self._lock:
            if self.js_minifier is None:
                self.js_minifier = JsMinifier(self.config.scripts.keep_bang_comments)
            return self.js_minifier

    def get_image_optimizer(self) -> IImageOptimizer:
        with self._lock:
            if self.image_optimizer is None:
                self.image_optimizer = ImageOptimizer(self.config)
            return self.image_optimizer

    def get_auditor(self) -> IPageAuditor:
        with self._lock:
            if self.auditor is None:
                self.auditor = PageSpeedClient()
            return self.auditor

    def new_dev_server(self) -> IDevServer:
        if self.dev_server_factory is not None:
            return self.dev_server_factory()
        return LiveReloadServer(self.config)
