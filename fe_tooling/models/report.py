"""
阶段报告模型 - 单个阶段的处理结果

包括：
- StageReport: 写出/跳过/失败的文件与体积统计
- LintIssue: 检查器输出的单条问题
- PrecacheEntry: 离线清单中的单个资源
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class LintSeverity(str, Enum):
    """检查问题级别"""
    WARNING = "warning"
    ERROR = "error"


class LintIssue(BaseModel):
    """检查器输出的单条问题"""
    path: Path
    line: int = 0
    column: int = 0
    severity: LintSeverity = LintSeverity.WARNING
    rule: str | None = None
    message: str

    def format(self) -> str:
        """单行格式（类似 eslint stylish 输出）"""
        rule = f"  {self.rule}" if self.rule else ""
        return f"{self.path}:{self.line}:{self.column}  {self.severity.value}  {self.message}{rule}"


class FileFailure(BaseModel):
    """单个文件的失败记录"""
    path: Path
    error: str


class SizeEntry(BaseModel):
    """体积统计（gulp-size 的 title + 字节数）"""
    title: str
    files: int = 0
    bytes: int = 0

    def pretty(self) -> str:
        if self.bytes < 1024:
            size = f"{self.bytes} B"
        elif self.bytes < 1024 * 1024:
            size = f"{self.bytes / 1024:.2f} kB"
        else:
            size = f"{self.bytes / 1024 / 1024:.2f} MB"
        return f"'{self.title}' all files {size}"


class StageReport(BaseModel):
    """阶段处理报告"""
    stage: str
    written: list[Path] = Field(default_factory=list)
    skipped: list[Path] = Field(default_factory=list)
    failures: list[FileFailure] = Field(default_factory=list)
    issues: list[LintIssue] = Field(default_factory=list)
    sizes: list[SizeEntry] = Field(default_factory=list)

    def add_written(self, path: Path) -> None:
        self.written.append(path)

    def add_skipped(self, path: Path) -> None:
        self.skipped.append(path)

    def add_failure(self, path: Path, error: str) -> None:
        self.failures.append(FileFailure(path=path, error=error))

    def record_size(self, title: str, paths: list[Path]) -> SizeEntry:
        """统计已写出文件的总体积"""
        entry = SizeEntry(
            title=title,
            files=len(paths),
            bytes=sum(p.stat().st_size for p in paths if p.is_file()),
        )
        self.sizes.append(entry)
        return entry

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == LintSeverity.ERROR)

    @property
    def ok(self) -> bool:
        return not self.failures


class PrecacheEntry(BaseModel):
    """离线清单中的资源（URL + 内容哈希）"""
    url: str
    revision: str
