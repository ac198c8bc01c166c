"""
工具适配层 - 第三方库与外部命令的薄封装

子模块：
- external: 外部命令调用（超时/错误转换）
- styles: libsass 编译 / autoprefixer / rcssmin / scss-lint
- scripts: eslint / babel / rjsmin
- images: Pillow / svgo
- server: livereload 本地服务
- audit: PageSpeed Insights
"""

from .audit import PageSpeedClient
from .external import ExternalTool
from .images import ImageOptimizer
from .scripts import BabelTranspiler, EsLinter, JsMinifier
from .server import LiveReloadServer
from .styles import Autoprefixer, CssMinifier, SassCompiler, ScssLinter

__all__ = [
    "ExternalTool",
    "SassCompiler",
    "Autoprefixer",
    "CssMinifier",
    "ScssLinter",
    "EsLinter",
    "BabelTranspiler",
    "JsMinifier",
    "ImageOptimizer",
    "LiveReloadServer",
    "PageSpeedClient",
]
