"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- TaskRun: 任务状态与生命周期
- StageReport: 单个阶段的写出/失败/体积统计
- LintIssue: 检查器输出的问题
- PrecacheEntry: 离线清单条目
"""

from .report import (
    FileFailure,
    LintIssue,
    LintSeverity,
    PrecacheEntry,
    SizeEntry,
    StageReport,
)
from .task import TaskRun, TaskStatus

__all__ = [
    "TaskRun",
    "TaskStatus",
    "StageReport",
    "FileFailure",
    "SizeEntry",
    "LintIssue",
    "LintSeverity",
    "PrecacheEntry",
]
