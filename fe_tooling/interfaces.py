"""
模块接口契约 - 定义各外部工具适配器的抽象接口

设计原则：
1. 阶段通过接口调用外部工具，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和fake替换（外部命令不必安装）

使用方式：
    from fe_tooling.interfaces import IScriptLinter

    class MyLinter(IScriptLinter):
        def lint(self, files: list[Path]) -> list[LintIssue]:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from .models import LintIssue, StageReport


# ============================================================================
# 样式工具接口
# ============================================================================

class IStyleCompiler(ABC):
    """Sass 编译器接口"""

    @abstractmethod
    def compile(
        self,
        source: Path,
        include_paths: list[Path],
        source_map: bool = False,
    ) -> tuple[str, str | None]:
        """
        编译单个 Sass 文件

        Args:
            source: .scss/.sass 源文件
            include_paths: @import 搜索路径
            source_map: 是否同时生成 source map

        Returns:
            (css文本, source map文本或None)

        Raises:
            CompileError: 编译失败
        """
        ...


class IPrefixer(ABC):
    """浏览器前缀处理接口"""

    @abstractmethod
    def prefix(self, css: str, browsers: list[str]) -> str:
        """按浏览器列表补全厂商前缀"""
        ...


class IMinifier(ABC):
    """压缩器接口（CSS/JS 共用）"""

    @abstractmethod
    def minify(self, text: str) -> str:
        """压缩文本"""
        ...


class IStyleLinter(ABC):
    """样式检查器接口"""

    @abstractmethod
    def lint(self, files: list[Path]) -> list[LintIssue]:
        """检查样式文件，返回问题列表"""
        ...


# ============================================================================
# 脚本工具接口
# ============================================================================

class IScriptLinter(ABC):
    """脚本检查器接口"""

    @abstractmethod
    def lint(self, files: list[Path]) -> list[LintIssue]:
        """检查脚本文件，返回问题列表"""
        ...


class ITranspiler(ABC):
    """脚本转译接口"""

    @abstractmethod
    def transpile(self, source: str, filename: Path) -> str:
        """
        转译单个脚本

        Args:
            source: 源码
            filename: 源文件路径（用于错误信息与配置查找）

        Returns:
            转译后的源码
        """
        ...


# ============================================================================
# 图片工具接口
# ============================================================================

class IImageOptimizer(ABC):
    """图片优化接口"""

    @abstractmethod
    def optimize(self, path: Path, production: bool = False) -> bool:
        """
        原地优化图片

        Args:
            path: 图片路径
            production: 生产模式使用更高的压缩级别

        Returns:
            是否改写了文件

        Raises:
            OptimizeError: 图片无法解析或优化失败
        """
        ...


# ============================================================================
# 服务与审计接口
# ============================================================================

class IDevServer(ABC):
    """本地开发服务器接口（带自动刷新）"""

    @abstractmethod
    def watch(
        self,
        directory: Path,
        extensions: list[str] | None = None,
        callback: Callable[[], None] | None = None,
    ) -> None:
        """监听目录（可按扩展名过滤）：文件变化时执行 callback（可选）并刷新浏览器"""
        ...

    @abstractmethod
    def serve(self, root: Path, port: int) -> None:
        """启动服务（阻塞，直到中断）"""
        ...


class IPageAuditor(ABC):
    """页面性能审计接口"""

    @abstractmethod
    def audit(self, url: str, strategy: str = "mobile") -> dict:
        """返回审计结果（至少包含 score）"""
        ...


# ============================================================================
# 流水线接口
# ============================================================================

class IStage(Protocol):
    """流水线阶段协议"""

    name: str

    def run(self) -> StageReport:
        """执行阶段"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class ToolingError(Exception):
    """基础异常"""
    pass


class ToolNotFoundError(ToolingError):
    """外部命令未配置或不存在"""
    pass


class CompileError(ToolingError):
    """编译/转译错误"""
    pass


class LintError(ToolingError):
    """检查未通过"""
    pass


class OptimizeError(ToolingError):
    """图片优化错误"""
    pass


class PackageError(ToolingError):
    """复制/合并/清单生成错误"""
    pass


class AuditError(ToolingError):
    """性能审计错误"""
    pass


class TaskGraphError(ToolingError):
    """任务定义错误（未知任务/循环依赖）"""
    pass
