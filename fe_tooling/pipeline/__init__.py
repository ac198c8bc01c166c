"""
流水线模块 - 任务编排与执行

子模块：
- context: 构建上下文（配置/项目描述/工具实例/缓存）
- fileset: 文件集合、增量判断、Sass 导入关系
- errors: 错误处理策略
- tasks: 任务定义
- runner: 任务执行器
- watcher: 源目录监听
"""

from .context import BuildContext
from .errors import ErrorHandler, ErrorPolicy, should_fail_on_lint
from .fileset import ContentCache, ImportGraph, collect, is_newer
from .runner import TaskRunner, write_report
from .tasks import TaskDefinition, TaskEnum, default_tasks
from .watcher import Watcher

__all__ = [
    "BuildContext",
    "ErrorHandler",
    "ErrorPolicy",
    "should_fail_on_lint",
    "ContentCache",
    "ImportGraph",
    "collect",
    "is_newer",
    "TaskRunner",
    "write_report",
    "TaskDefinition",
    "TaskEnum",
    "default_tasks",
    "Watcher",
]
