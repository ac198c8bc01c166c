"""
构建配置 - 读取 config/build.yaml

职责：
- 加载源目录/输出目录/样式/浏览器列表等构建参数
- 加载外部工具命令行与超时
- 提供环境变量覆盖机制（FE_TOOLING_ 前缀）
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, EnvSettingsSource

SECTIONS = (
    "paths",
    "styles",
    "scripts",
    "images",
    "server",
    "tools",
    "packaging",
    "concurrency",
    "logging",
)

DEFAULT_CONFIG_PATH = Path("config/build.yaml")
FALLBACK_CONFIG_PATH = Path("build.yaml")

DEFAULT_PREFIX_BROWSERS = [
    "last 3 versions",
    "ie >= 8",
    "ie_mob >= 10",
    "ff >= 21",
    "chrome >= 28",
    "safari >= 6",
    "opera >= 11",
    "ios >= 7",
    "android >= 4.4",
    "bb >= 10",
    "> 1%",
]


class PathsConfig(BaseModel):
    """目录配置（相对路径基于 base_dir）"""

    app_path: Path = Path("app")
    sass_path: Path = Path("app/css")
    js_path: Path = Path("app/javascript/salmon/modules")
    image_path: Path = Path("app/images")
    fonts_path: Path = Path("app/css/font")
    bower_path: Path = Path("bower_components")
    dist_path: Path = Path("dist")
    dist_scripts_path: Path = Path("dist/scripts")
    tmp_path: Path = Path(".tmp")


class StylesConfig(BaseModel):
    """样式编译配置"""

    sass_style: Literal["nested", "expanded", "compact", "compressed"] = "compressed"
    precision: int = 10
    extra_include_paths: list[Path] = Field(default_factory=list)
    prefix_browsers: list[str] = Field(default_factory=lambda: list(DEFAULT_PREFIX_BROWSERS))
    lint_config: Path = Path("lint.yml")


class ScriptsConfig(BaseModel):
    """脚本检查/压缩配置"""

    eslint_extends: str = "google"
    eslint_rules: dict[str, Any] = Field(default_factory=lambda: {"eqeqeq": 1})
    keep_bang_comments: bool = True


class ImagesConfig(BaseModel):
    """图片优化配置"""

    extensions: list[str] = Field(
        default_factory=lambda: [".gif", ".jpg", ".jpeg", ".png", ".svg"]
    )
    jpeg_quality: int | None = None  # None: 保持原 JPEG 量化表


class ServerConfig(BaseModel):
    """本地服务器配置"""

    host: str = "localhost"
    port: int = 3000
    dist_port: int = 3001
    log_prefix: str = "WSK"
    open_browser: bool = False


class ToolsConfig(BaseModel):
    """外部命令配置（空字符串表示未安装，跳过对应可选步骤）"""

    scss_lint: str = ""
    eslint: str = ""
    babel: str = ""
    postcss: str = ""
    svgo: str = ""
    timeout_sec: int = 120


class PackagingConfig(BaseModel):
    """发布目录打包配置"""

    copy_excludes: list[str] = Field(default_factory=lambda: ["**/Magento/**", "*.html"])
    server_config: Path = Path("node_modules/apache-server-configs/dist/.htaccess")
    sw_import_scripts: list[Path] = Field(
        default_factory=lambda: [
            Path("node_modules/sw-toolbox/sw-toolbox.js"),
            Path("runtime-caching.js"),
        ]
    )
    service_worker_file: Path = Path("service-worker.js")
    markup_patterns: list[str] = Field(
        default_factory=lambda: ["**/*.php", "**/*.jsp", "**/*.jspf", "**/*.htm*"]
    )
    clean_keep: list[str] = Field(default_factory=lambda: [".git"])


class ConcurrencyConfig(BaseModel):
    """并发配置"""

    max_workers: int = 6


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: Path = Path("build.log")


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """递归合并，override 中的值优先"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class BuildConfig(BaseSettings):
    """构建配置（支持环境变量覆盖）"""

    base_dir: Path = Path(".")

    paths: PathsConfig = Field(default_factory=PathsConfig)
    styles: StylesConfig = Field(default_factory=StylesConfig)
    scripts: ScriptsConfig = Field(default_factory=ScriptsConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    packaging: PackagingConfig = Field(default_factory=PackagingConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "FE_TOOLING_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path, base_dir: str | Path | None = None) -> BuildConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        root = Path(base_dir) if base_dir is not None else None
        if not path.exists():
            return cls(base_dir=root) if root is not None else cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        options = data.get("build_options", data)
        values: dict[str, Any] = {name: cls._extract(options, name) for name in SECTIONS}

        # 环境变量优先于 YAML
        env = EnvSettingsSource(cls)()
        values = _deep_merge(values, {k: v for k, v in env.items() if k in SECTIONS})

        if root is not None:
            values["base_dir"] = root
        elif env.get("base_dir"):
            values["base_dir"] = env["base_dir"]
        else:
            values["base_dir"] = cls._base_dir_for(path, options)

        return cls(**values)

    @staticmethod
    def _base_dir_for(path: Path, options: dict[str, Any]) -> Path:
        """base_dir 缺省为配置文件所在目录的上一级（config/ 目录约定）"""
        raw = options.get("base_dir")
        if raw:
            base = Path(raw)
            return base if base.is_absolute() else (path.parent / base).resolve()
        parent = path.parent.resolve()
        return parent.parent if parent.name == "config" else parent

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            else:
                result[k] = v
        return result

    def resolve(self, path: str | Path) -> Path:
        """解析相对路径为基于 base_dir 的路径"""
        p = Path(path)
        return p if p.is_absolute() else self.base_dir / p

    # === 便捷访问方法 ===

    @property
    def app_dir(self) -> Path:
        return self.resolve(self.paths.app_path)

    @property
    def sass_dir(self) -> Path:
        return self.resolve(self.paths.sass_path)

    @property
    def js_dir(self) -> Path:
        return self.resolve(self.paths.js_path)

    @property
    def image_dir(self) -> Path:
        return self.resolve(self.paths.image_path)

    @property
    def fonts_dir(self) -> Path:
        return self.resolve(self.paths.fonts_path)

    @property
    def dist_dir(self) -> Path:
        return self.resolve(self.paths.dist_path)

    @property
    def dist_scripts_dir(self) -> Path:
        return self.resolve(self.paths.dist_scripts_path)

    @property
    def tmp_dir(self) -> Path:
        return self.resolve(self.paths.tmp_path)

    def sass_include_paths(self) -> list[Path]:
        """Sass 的 @import 搜索路径"""
        paths = [self.sass_dir, self.resolve(self.paths.bower_path)]
        paths.extend(self.resolve(p) for p in self.styles.extra_include_paths)
        return paths


# 全局配置实例
_config: BuildConfig | None = None


def get_config() -> BuildConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        default_path = DEFAULT_CONFIG_PATH
        if not default_path.exists() and FALLBACK_CONFIG_PATH.exists():
            default_path = FALLBACK_CONFIG_PATH
        _config = BuildConfig.from_yaml(default_path)
    return _config


def reload_config(
    yaml_path: str | Path | None = None, base_dir: str | Path | None = None
) -> BuildConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = BuildConfig.from_yaml(path, base_dir=base_dir)
    return _config


def set_config(config: BuildConfig) -> BuildConfig:
    """替换全局配置（CLI 与测试使用）"""
    global _config
    _config = config
    return config
