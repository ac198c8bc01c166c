"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(ctx, project_root):
        StyleStage(ctx).run()
        assert (project_root / "app/css/main.css").exists()

外部命令（scss-lint/eslint/babel/postcss/livereload/PageSpeed）用 fake 替换；
libsass/rcssmin/rjsmin/Pillow 直接使用真实实现。
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from rich.console import Console

from fe_tooling.config import BuildConfig, ProjectDescriptor
from fe_tooling.interfaces import (
    IDevServer,
    IPageAuditor,
    IPrefixer,
    IScriptLinter,
    IStyleLinter,
    ITranspiler,
)
from fe_tooling.models import LintIssue
from fe_tooling.pipeline import BuildContext


# ============================================================================
# Fake 工具
# ============================================================================

class FakePrefixer(IPrefixer):
    """记录调用，原样返回"""

    def __init__(self):
        self.calls: list[list[str]] = []

    def prefix(self, css: str, browsers: list[str]) -> str:
        self.calls.append(list(browsers))
        return css


class FakeScriptLinter(IScriptLinter):
    """返回预设问题"""

    available = True

    def __init__(self, issues: list[LintIssue] | None = None):
        self.issues = issues or []
        self.calls: list[list[Path]] = []

    def lint(self, files: list[Path]) -> list[LintIssue]:
        self.calls.append(list(files))
        return list(self.issues)


class FakeStyleLinter(IStyleLinter):
    available = True

    def __init__(self, issues: list[LintIssue] | None = None):
        self.issues = issues or []
        self.calls: list[list[Path]] = []

    def lint(self, files: list[Path]) -> list[LintIssue]:
        self.calls.append(list(files))
        return list(self.issues)


class IdentityTranspiler(ITranspiler):
    def transpile(self, source: str, filename: Path) -> str:
        return source


class FakeDevServer(IDevServer):
    """记录 watch/serve 调用，不启动真实服务"""

    def __init__(self):
        self.watches: list[tuple[Path, list[str] | None, Callable[[], None] | None]] = []
        self.served: tuple[Path, int] | None = None

    def watch(self, directory, extensions=None, callback=None) -> None:
        self.watches.append((directory, extensions, callback))

    def serve(self, root: Path, port: int) -> None:
        self.served = (root, port)


class FakeAuditor(IPageAuditor):
    def __init__(self, score: int = 90):
        self.score = score
        self.calls: list[tuple[str, str]] = []

    def audit(self, url: str, strategy: str = "mobile") -> dict:
        self.calls.append((url, strategy))
        return {"url": url, "strategy": strategy, "score": self.score, "metrics": {}}


# ============================================================================
# 项目目录 Fixtures
# ============================================================================

@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """最小前端项目目录"""
    root = tmp_path / "site"
    for rel in (
        "app/css",
        "app/javascript/salmon/modules",
        "app/images",
        "bower_components",
        "node_modules/sw-toolbox",
        "dist",
    ):
        (root / rel).mkdir(parents=True)

    (root / "app/css/_variables.scss").write_text("$brand: #ff0000;\n", encoding="utf-8")
    (root / "app/css/main.scss").write_text(
        '@import "variables";\n.header { color: $brand; }\n',
        encoding="utf-8",
    )
    (root / "app/javascript/salmon/modules/app.js").write_text(
        "/*! banner */\nfunction add(a, b) {\n  return a + b;\n}\n",
        encoding="utf-8",
    )
    (root / "node_modules/sw-toolbox/sw-toolbox.js").write_text("// toolbox\n", encoding="utf-8")
    (root / "runtime-caching.js").write_text("// runtime\n", encoding="utf-8")
    return root


@pytest.fixture
def build_config(project_root: Path) -> BuildConfig:
    """以临时项目为 base_dir 的构建配置"""
    return BuildConfig(base_dir=project_root)


@pytest.fixture
def project() -> ProjectDescriptor:
    return ProjectDescriptor(name="demo", description="Demo site")


@pytest.fixture
def dev_server() -> FakeDevServer:
    return FakeDevServer()


@pytest.fixture
def ctx(
    build_config: BuildConfig, project: ProjectDescriptor, dev_server: FakeDevServer
) -> BuildContext:
    """外部命令全部替换为 fake 的构建上下文"""
    return BuildContext(
        config=build_config,
        project=project,
        console=Console(record=True, width=120),
        prefixer=FakePrefixer(),
        style_linter=FakeStyleLinter(),
        script_linter=FakeScriptLinter(),
        transpiler=IdentityTranspiler(),
        auditor=FakeAuditor(),
        dev_server_factory=lambda: dev_server,
    )
