"""
文件选择与增量判定单元测试

每个模块完成后必须运行：pytest tests/unit/test_fileset.py -v
"""

import os
from pathlib import Path

from fe_tooling.pipeline.fileset import (
    SASS_EXTENSIONS,
    ContentCache,
    ImportGraph,
    collect,
    is_newer,
    matches_any,
)


def _touch(path: Path, text: str = "", mtime: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


class TestCollect:
    """文件收集测试"""

    def test_collect_excludes_partials(self, tmp_path: Path):
        _touch(tmp_path / "main.scss")
        _touch(tmp_path / "_vars.scss")
        _touch(tmp_path / "sub/page.sass")
        _touch(tmp_path / "notes.txt")

        files = collect(tmp_path, SASS_EXTENSIONS, exclude_partials=True)

        assert files == [tmp_path / "main.scss", tmp_path / "sub/page.sass"]

    def test_collect_excludes_min_js(self, tmp_path: Path):
        _touch(tmp_path / "app.js")
        _touch(tmp_path / "app.min.js")

        assert collect(tmp_path, [".js"], exclude_suffixes=[".min.js"]) == [tmp_path / "app.js"]

    def test_collect_missing_root(self, tmp_path: Path):
        assert collect(tmp_path / "nope", [".js"]) == []


class TestGlob:
    """glob 匹配测试"""

    def test_single_star_does_not_cross_directories(self):
        assert matches_any(Path("index.html"), ["*.html"])
        assert not matches_any(Path("pages/index.html"), ["*.html"])

    def test_double_star(self):
        patterns = ["**/Magento/**"]
        assert matches_any(Path("Magento/theme.css"), patterns)
        assert matches_any(Path("vendor/Magento/a/b.js"), patterns)
        assert not matches_any(Path("vendor/magento.js"), patterns)

    def test_markup_patterns(self):
        patterns = ["**/*.php", "**/*.htm*"]
        assert matches_any(Path("index.php"), patterns)
        assert matches_any(Path("shop/list.html"), patterns)
        assert not matches_any(Path("shop/list.js"), patterns)


class TestIsNewer:
    def test_missing_target(self, tmp_path: Path):
        source = _touch(tmp_path / "a.scss")
        assert is_newer(source, tmp_path / "a.css")

    def test_mtime_compare(self, tmp_path: Path):
        source = _touch(tmp_path / "a.scss", mtime=1_000_000)
        target = _touch(tmp_path / "a.css", mtime=2_000_000)
        assert not is_newer(source, target)

        os.utime(source, (3_000_000, 3_000_000))
        assert is_newer(source, target)


class TestContentCache:
    """内容缓存测试"""

    def test_content_cache(self, tmp_path: Path):
        path = _touch(tmp_path / "a.js", "one")
        cache = ContentCache()

        assert cache.changed("jsmin", path)
        assert not cache.changed("jsmin", path)
        # 不同阶段各自缓存
        assert cache.changed("jslint", path)

        path.write_text("two", encoding="utf-8")
        assert cache.changed("jsmin", path)

    def test_forget(self, tmp_path: Path):
        path = _touch(tmp_path / "a.js", "one")
        cache = ContentCache()
        cache.changed("jsmin", path)
        cache.forget("jsmin", path)
        assert cache.changed("jsmin", path)

    def test_own_write(self, tmp_path: Path):
        path = _touch(tmp_path / "a.css", "body{}")
        cache = ContentCache()
        assert not cache.is_own_write(path)

        cache.remember_written(path)
        assert cache.is_own_write(path)

        path.write_text("body{color:red}", encoding="utf-8")
        assert not cache.is_own_write(path)


class TestImportGraph:
    """Sass 导入关系测试"""

    def test_import_graph_dependents(self, tmp_path: Path):
        """传递依赖：main -> _layout -> _vars"""
        vars_ = _touch(tmp_path / "_vars.scss", "$a: 1;")
        _touch(tmp_path / "_layout.scss", '@import "vars";')
        main = _touch(tmp_path / "main.scss", '@import "layout";\n')
        other = _touch(tmp_path / "other.scss", ".x { y: 1; }")

        graph = ImportGraph()

        assert graph.dependents(vars_, [main, other]) == [main]

    def test_include_paths(self, tmp_path: Path):
        lib = tmp_path / "bower_components"
        helper = _touch(lib / "grid/_grid.scss", ".g{}")
        main = _touch(tmp_path / "css/main.scss", "@import 'grid/grid';")

        graph = ImportGraph([lib])

        assert graph.imports_of(main) == [helper.resolve()]

    def test_cyclic_imports(self, tmp_path: Path):
        """循环导入不会死循环"""
        a = _touch(tmp_path / "_a.scss", '@import "b";')
        _touch(tmp_path / "_b.scss", '@import "a";')
        main = _touch(tmp_path / "main.scss", '@import "a";')
        unrelated = _touch(tmp_path / "_c.scss", "")

        graph = ImportGraph()

        assert graph.dependents(a, [main]) == [main]
        assert graph.dependents(unrelated, [main]) == []

    def test_remote_imports_ignored(self, tmp_path: Path):
        main = _touch(tmp_path / "main.scss", '@import "https://fonts.example.com/css";')
        assert ImportGraph().imports_of(main) == []
