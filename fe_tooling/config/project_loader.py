"""
项目描述加载器 - 读取 config/project.yaml（或 package.json）

职责：
- 解析项目名称/地址以及 debug/production/通知/同步 等开关
- 缓存加载结果（避免重复解析）

使用方式：
    project = ProjectLoader.load("config/project.yaml")
    if project.production:
        ...
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROJECT_PATH = Path("config/project.yaml")
FALLBACK_PROJECT_PATH = Path("package.json")


class ProjectDescriptor(BaseModel):
    """项目描述（对应 package.json 中构建相关的字段）"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    description: str = ""
    version: str = "0.0.0"
    url: str = ""

    debug: bool = False
    production: bool = False
    notify_via_console: bool = Field(default=True, alias="notifyViaConsole")
    enable_sync: bool = Field(default=False, alias="enableSync")

    @property
    def cache_id(self) -> str:
        """Service Worker 缓存ID"""
        return self.name or self.description

    def with_overrides(self, **overrides: bool | None) -> ProjectDescriptor:
        """返回覆盖了开关的副本（None 表示保持原值）"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return self.model_copy(update=changes)


class ProjectLoader:
    """项目描述加载器（缓存）"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, project_path: str | Path = DEFAULT_PROJECT_PATH) -> ProjectDescriptor:
        """加载并缓存项目描述"""
        path = Path(project_path)
        if not path.exists():
            raise FileNotFoundError(f"项目描述文件不存在: {path}")

        with open(path, "r", encoding="utf-8") as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}

        return ProjectDescriptor(**data)

    @classmethod
    def reload(cls, project_path: str | Path = DEFAULT_PROJECT_PATH) -> ProjectDescriptor:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(project_path)


def load_project(project_path: str | Path | None = None) -> ProjectDescriptor:
    """加载项目描述，未找到文件时返回默认描述"""
    if project_path is not None:
        return ProjectLoader.load(project_path)
    for candidate in (DEFAULT_PROJECT_PATH, FALLBACK_PROJECT_PATH):
        if candidate.exists():
            return ProjectLoader.load(candidate)
    return ProjectDescriptor()
