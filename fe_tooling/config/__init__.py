"""
配置层 - 加载构建配置与项目描述

职责：
- 加载 config/build.yaml（目录/样式/外部工具等构建参数）
- 加载 config/project.yaml（项目名称与 debug/production 等开关）
- 提供类型安全的配置访问接口
"""

from .build_config import BuildConfig, get_config, reload_config, set_config
from .project_loader import ProjectDescriptor, ProjectLoader, load_project

__all__ = [
    "BuildConfig",
    "get_config",
    "reload_config",
    "set_config",
    "ProjectDescriptor",
    "ProjectLoader",
    "load_project",
]
