"""
外部命令封装 - scss-lint / eslint / babel / postcss / svgo

职责：
- 按配置的命令行调用外部工具
- 处理超时和错误
- 统一转换为 ToolingError 子类

依赖：
- 外部可执行文件（命令行由 config/build.yaml 的 tools 段指定）

测试要点：
- test_run_success: 正常调用
- test_run_timeout: 超时处理
- test_not_configured: 未配置命令
"""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from pathlib import Path

from ..interfaces import ToolingError, ToolNotFoundError


class ExternalTool:
    """外部命令行工具封装"""

    def __init__(
        self,
        name: str,
        command: str,
        timeout: int = 120,
        error_cls: type[ToolingError] = ToolingError,
        cwd: Path | None = None,
    ):
        self.name = name
        self.argv = shlex.split(command) if command else []
        self.timeout = timeout
        self.error_cls = error_cls
        self.cwd = cwd

    @property
    def configured(self) -> bool:
        return bool(self.argv)

    def _ensure_exe(self) -> None:
        if not self.argv:
            raise ToolNotFoundError(f"未配置外部命令: {self.name}")
        exe = self.argv[0]
        if shutil.which(exe) is None and not Path(exe).exists():
            raise ToolNotFoundError(f"外部命令不存在: {exe}")

    def run(
        self,
        args: list[str],
        *,
        input_text: str | None = None,
        ok_codes: tuple[int, ...] = (0,),
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """执行命令；返回码不在 ok_codes 中时抛出 error_cls"""
        self._ensure_exe()

        cmd = [*self.argv, *args]
        try:
            result = subprocess.run(
                cmd,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
                cwd=str(self.cwd) if self.cwd else None,
                env={**os.environ, **env} if env else None,
            )
        except subprocess.TimeoutExpired as e:
            raise self.error_cls(f"{self.name} 执行超时: {' '.join(cmd)}") from e
        except OSError as e:
            raise self.error_cls(f"{self.name} 无法启动: {e}") from e

        if result.returncode not in ok_codes:
            detail = (result.stderr or result.stdout or "").strip()
            raise self.error_cls(f"{self.name} 执行失败({result.returncode}): {detail}")

        return result
