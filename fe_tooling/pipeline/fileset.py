"""
文件选择与缓存 - 阶段输入的筛选/增量判定

职责：
1. 按扩展名递归收集源文件（排除下划线开头的局部文件、*.min.js 等）
2. 目标文件比源文件旧才重新生成（mtime 比较）
3. 按阶段缓存文件内容哈希，内容未变则跳过
4. 解析 Sass @import，局部文件变化时找到需重新编译的入口文件

测试要点：
- test_collect_excludes_partials: 局部文件排除
- test_is_newer: mtime 比较
- test_content_cache: 内容不变时跳过
- test_import_graph_dependents: 传递依赖与循环导入
"""

from __future__ import annotations

import hashlib
import re
import threading
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path

SASS_EXTENSIONS = (".scss", ".sass")

# 与 gulp-progeny 使用的正则一致
IMPORT_RE = re.compile(r"""^\s*@import\s*(?:\(\w+\)\s*)?['"]([^'"]+)['"]""", re.MULTILINE)


def is_partial(path: Path) -> bool:
    """Sass 局部文件（_开头）"""
    return path.name.startswith("_")


@lru_cache(maxsize=128)
def glob_regex(pattern: str) -> re.Pattern[str]:
    """glob -> 正则：* 与 ? 不跨目录，** 可跨目录"""
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def matches_any(rel_path: Path, patterns: Iterable[str]) -> bool:
    """相对路径（posix 形式）是否匹配任一 glob"""
    posix = rel_path.as_posix()
    return any(glob_regex(p).match(posix) for p in patterns)


def collect(
    root: Path,
    extensions: Iterable[str],
    *,
    exclude_partials: bool = False,
    exclude_suffixes: Iterable[str] = (),
    exclude_globs: Iterable[str] = (),
) -> list[Path]:
    """递归收集 root 下指定扩展名的文件（排序后返回）"""
    if not root.exists():
        return []

    exts = {e.lower() for e in extensions}
    suffixes = tuple(exclude_suffixes)
    globs = list(exclude_globs)

    files = []
    for path in root.rglob("*"):
        if not path.is_file() or path.suffix.lower() not in exts:
            continue
        if exclude_partials and is_partial(path):
            continue
        if suffixes and path.name.endswith(suffixes):
            continue
        if globs and matches_any(path.relative_to(root), globs):
            continue
        files.append(path)
    return sorted(files)


def is_newer(source: Path, target: Path) -> bool:
    """目标不存在或比源文件旧时返回 True"""
    if not target.exists():
        return True
    return source.stat().st_mtime > target.stat().st_mtime


def file_digest(path: Path) -> str:
    return hashlib.md5(path.read_bytes()).hexdigest()


class ContentCache:
    """按阶段缓存文件内容哈希（线程安全）"""

    def __init__(self):
        self._lock = threading.Lock()
        self._seen: dict[str, dict[Path, str]] = {}
        self._written: dict[Path, str] = {}

    def changed(self, stage: str, path: Path) -> bool:
        """首次出现或内容变化时返回 True，并记录新哈希"""
        digest = file_digest(path)
        key = path.resolve()
        with self._lock:
            seen = self._seen.setdefault(stage, {})
            if seen.get(key) == digest:
                return False
            seen[key] = digest
            return True

    def forget(self, stage: str, path: Path) -> None:
        """失败的文件下次仍需处理"""
        with self._lock:
            self._seen.get(stage, {}).pop(path.resolve(), None)

    def remember_written(self, path: Path) -> None:
        """记录流水线自己写出的文件"""
        digest = file_digest(path)
        with self._lock:
            self._written[path.resolve()] = digest

    def is_own_write(self, path: Path) -> bool:
        """文件内容与流水线最后一次写出时一致（监听时忽略该事件）"""
        key = path.resolve()
        with self._lock:
            expected = self._written.get(key)
        if expected is None or not path.exists():
            return False
        return file_digest(path) == expected

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()
            self._written.clear()


class ImportGraph:
    """Sass @import 依赖图"""

    def __init__(self, include_paths: Iterable[Path] = ()):
        self.include_paths = list(include_paths)

    def imports_of(self, path: Path) -> list[Path]:
        """解析单个文件直接导入的文件（无法解析的导入忽略）"""
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return []

        resolved = []
        for name in IMPORT_RE.findall(text):
            target = self._resolve(name.strip(), path.parent)
            if target is not None:
                resolved.append(target)
        return resolved

    def _resolve(self, name: str, base: Path) -> Path | None:
        if not name or name.startswith(("http://", "https://", "//", "url(")):
            return None
        rel = Path(name)
        for directory in [base, *self.include_paths]:
            for candidate in self._candidates(directory / rel):
                if candidate.is_file():
                    return candidate.resolve()
        return None

    @staticmethod
    def _candidates(stem: Path) -> list[Path]:
        if stem.suffix in (*SASS_EXTENSIONS, ".css"):
            return [stem, stem.with_name("_" + stem.name)]
        candidates = []
        for ext in (*SASS_EXTENSIONS, ".css"):
            candidates.append(stem.with_name(stem.name + ext))
            candidates.append(stem.with_name("_" + stem.name + ext))
        return candidates

    def dependents(self, changed: Path, roots: Iterable[Path]) -> list[Path]:
        """roots 中直接或间接导入了 changed 的入口文件"""
        target = changed.resolve()
        result = []
        for root in roots:
            if self._reaches(root.resolve(), target, set()):
                result.append(root)
        return result

    def _reaches(self, node: Path, target: Path, visiting: set[Path]) -> bool:
        if node in visiting:
            return False
        visiting.add(node)
        for child in self.imports_of(node):
            if child == target or self._reaches(child, target, visiting):
                return True
        return False
