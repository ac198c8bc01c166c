"""
配置加载单元测试

每个模块完成后必须运行：pytest tests/unit/test_config.py -v
"""

import json
from pathlib import Path

import pytest

from fe_tooling.config import (
    BuildConfig,
    ProjectDescriptor,
    ProjectLoader,
    load_project,
    reload_config,
    set_config,
    get_config,
)


class TestBuildConfig:
    """构建配置测试"""

    def test_default_config(self, build_config: BuildConfig):
        """测试默认配置"""
        assert build_config.server.port == 3000
        assert build_config.server.dist_port == 3001
        assert build_config.styles.precision == 10
        assert build_config.concurrency.max_workers == 6
        assert "> 1%" in build_config.styles.prefix_browsers

    def test_resolved_dirs(self, build_config: BuildConfig, project_root: Path):
        """测试目录解析"""
        assert build_config.sass_dir == project_root / "app/css"
        assert build_config.dist_scripts_dir == project_root / "dist/scripts"
        assert build_config.tmp_dir == project_root / ".tmp"

    def test_sass_include_paths(self, build_config: BuildConfig, project_root: Path):
        """测试 Sass include 路径顺序"""
        paths = build_config.sass_include_paths()
        assert paths[0] == project_root / "app/css"
        assert paths[1] == project_root / "bower_components"

    def test_from_yaml_flattens_defaults(self, tmp_path: Path):
        """测试 {default: x} 形式展平，base_dir 取 config/ 的上一级"""
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        yaml_path = config_dir / "build.yaml"
        yaml_path.write_text(
            "build_options:\n"
            "  server:\n"
            "    port: {default: 8080}\n"
            "  styles:\n"
            "    sass_style: {default: expanded}\n"
            "  packaging:\n"
            "    clean_keep: [.git, .svn]\n",
            encoding="utf-8",
        )

        config = BuildConfig.from_yaml(yaml_path)

        assert config.server.port == 8080
        assert config.styles.sass_style == "expanded"
        assert config.packaging.clean_keep == [".git", ".svn"]
        assert config.base_dir == tmp_path.resolve()

    def test_from_yaml_missing_file(self, tmp_path: Path):
        """测试配置文件不存在时使用默认值"""
        config = BuildConfig.from_yaml(tmp_path / "missing.yaml", base_dir=tmp_path)
        assert config.base_dir == tmp_path
        assert config.paths.app_path == Path("app")

    def test_invalid_sass_style(self):
        """测试非法输出风格"""
        with pytest.raises(ValueError):
            BuildConfig(styles={"sass_style": "pretty"})

    def test_env_override(self, monkeypatch):
        """测试环境变量覆盖"""
        monkeypatch.setenv("FE_TOOLING_SERVER__PORT", "4000")
        config = BuildConfig()
        assert config.server.port == 4000

    def test_env_override_from_yaml(self, tmp_path: Path, monkeypatch):
        """测试加载 YAML 时环境变量仍然优先，其余 YAML 值保留"""
        yaml_path = tmp_path / "build.yaml"
        yaml_path.write_text(
            "build_options:\n"
            "  server:\n"
            "    port: {default: 3000}\n"
            "    dist_port: {default: 3100}\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("FE_TOOLING_SERVER__PORT", "4000")

        config = BuildConfig.from_yaml(yaml_path)

        assert config.server.port == 4000
        assert config.server.dist_port == 3100

    def test_reload_and_set_config(self, tmp_path: Path, build_config: BuildConfig):
        """测试全局配置替换"""
        yaml_path = tmp_path / "build.yaml"
        yaml_path.write_text("concurrency:\n  max_workers: {default: 2}\n", encoding="utf-8")

        loaded = reload_config(yaml_path)
        assert loaded.concurrency.max_workers == 2
        assert get_config() is loaded

        set_config(build_config)
        assert get_config() is build_config


class TestProjectDescriptor:
    """项目描述测试"""

    def test_aliases(self):
        """测试 package.json 风格的驼峰字段"""
        project = ProjectDescriptor(**{"name": "shop", "notifyViaConsole": False, "enableSync": True})
        assert project.notify_via_console is False
        assert project.enable_sync is True

    def test_cache_id_falls_back_to_description(self):
        assert ProjectDescriptor(description="Shop").cache_id == "Shop"
        assert ProjectDescriptor(name="shop", description="Shop").cache_id == "shop"

    def test_with_overrides_keeps_unset(self, project: ProjectDescriptor):
        """测试 None 表示保持原值"""
        updated = project.with_overrides(production=True, debug=None)
        assert updated.production is True
        assert updated.debug is project.debug
        assert project.production is False

    def test_load_package_json(self, tmp_path: Path):
        """测试从 package.json 加载并忽略无关字段"""
        path = tmp_path / "package.json"
        path.write_text(
            json.dumps({"name": "shop", "production": True, "devDependencies": {"gulp": "^3"}}),
            encoding="utf-8",
        )
        project = ProjectLoader.reload(path)
        assert project.name == "shop"
        assert project.production is True

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            ProjectLoader.load(tmp_path / "missing.yaml")

    def test_load_project_default(self, tmp_path: Path, monkeypatch):
        """测试没有任何描述文件时返回默认描述"""
        monkeypatch.chdir(tmp_path)
        project = load_project()
        assert project.name == ""
        assert project.notify_via_console is True
