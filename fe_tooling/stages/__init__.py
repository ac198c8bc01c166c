"""
阶段模块 - 各类资源的处理阶段

子模块：
- styles: sass / scsslint
- scripts: jslint / jsmin
- images: images
- packaging: clean / copy / copy-sw-scripts
- markup: html（合并标记块）
- offline: gsw（service worker）
- serve: serve / serve:dist / sync / watchers
- audit: greet / pagespeed
"""

from .audit import GreetStage, PageSpeedStage
from .base import Stage
from .images import ImageStage
from .markup import MarkupStage
from .offline import ServiceWorkerStage
from .packaging import CleanStage, CopyServiceWorkerScriptsStage, CopyStage
from .scripts import ScriptLintStage, ScriptStage
from .serve import ServeStage, WatchStage
from .styles import StyleLintStage, StyleStage


def default_stage_factories() -> dict:
    """阶段名 -> 工厂（接收 BuildContext，返回阶段实例）"""
    return {
        "greet": GreetStage,
        "sass": StyleStage,
        "scsslint": StyleLintStage,
        "jslint": ScriptLintStage,
        "jsmin": ScriptStage,
        "images": ImageStage,
        "clean": CleanStage,
        "copy": CopyStage,
        "html": MarkupStage,
        "copy-sw-scripts": CopyServiceWorkerScriptsStage,
        "gsw": ServiceWorkerStage,
        "pagespeed": PageSpeedStage,
        "serve": ServeStage,
        "serve:dist": lambda ctx: ServeStage(ctx, dist=True),
        "sync": lambda ctx: ServeStage(ctx, sync=True),
        "watchers": WatchStage,
    }


__all__ = [
    "default_stage_factories",
    "Stage",
    "GreetStage",
    "PageSpeedStage",
    "StyleStage",
    "StyleLintStage",
    "ScriptLintStage",
    "ScriptStage",
    "ImageStage",
    "CleanStage",
    "CopyStage",
    "CopyServiceWorkerScriptsStage",
    "MarkupStage",
    "ServiceWorkerStage",
    "ServeStage",
    "WatchStage",
]
