"""
任务定义 - 任务名、依赖与执行步骤

职责：
1. 定义 CLI 可调用的任务：依赖任务 -> 自身阶段 -> 后续步骤
2. 步骤按顺序执行，同一步骤（元组）内的任务并行执行
3. 阻塞型任务（服务/监听）在 --once 模式下跳过

测试要点：
- test_default_sequence: 默认任务的步骤顺序
- test_build_alias: build 为 clean -> html -> copy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TaskEnum(str, Enum):
    """任务名枚举"""
    GREET = "greet"
    SASS = "sass"
    SCSS_LINT = "scsslint"
    JS_LINT = "jslint"
    JS_MIN = "jsmin"
    IMAGES = "images"
    CLEAN = "clean"
    COPY = "copy"
    HTML = "html"
    COPY_SW_SCRIPTS = "copy-sw-scripts"
    GSW = "gsw"
    PAGESPEED = "pagespeed"
    SERVE = "serve"
    SERVE_DIST = "serve:dist"
    SYNC = "sync"
    WATCHERS = "watchers"
    DEFAULT = "default"
    LINT = "lint"
    BUILD = "build"


Step = tuple[str, ...]


@dataclass
class TaskDefinition:
    """任务定义"""
    name: str
    description: str = ""
    deps: list[str] = field(default_factory=list)    # 先执行的任务（一次运行中各执行一次）
    stage: str | None = None                          # 本任务的阶段
    steps: list[Step] = field(default_factory=list)   # 随后按顺序执行的任务；元组内并行
    blocking: bool = False

    def references(self) -> list[str]:
        """引用到的所有任务名"""
        names = list(self.deps)
        for step in self.steps:
            names.extend(step)
        return names


def stage_task(name: str, description: str, **kwargs) -> TaskDefinition:
    """只执行同名阶段的任务"""
    return TaskDefinition(name=name, description=description, stage=name, **kwargs)


def default_tasks() -> dict[str, TaskDefinition]:
    """任务表"""
    T = TaskEnum
    tasks = [
        stage_task(T.GREET.value, "输出问候"),
        stage_task(T.SASS.value, "编译 Sass"),
        stage_task(T.SCSS_LINT.value, "检查 Sass"),
        stage_task(T.JS_LINT.value, "检查脚本"),
        stage_task(T.JS_MIN.value, "转译并压缩脚本"),
        stage_task(T.IMAGES.value, "优化图片"),
        stage_task(T.CLEAN.value, "清理 .tmp 与 dist"),
        stage_task(T.COPY.value, "复制静态资源到 dist"),
        stage_task(T.HTML.value, "合并页面中的 build 标记块"),
        stage_task(T.COPY_SW_SCRIPTS.value, "复制 service worker 依赖脚本"),
        stage_task(T.GSW.value, "生成 service worker", deps=[T.COPY_SW_SCRIPTS.value]),
        stage_task(T.PAGESPEED.value, "PageSpeed 性能审计"),
        stage_task(
            T.SERVE.value,
            "本地服务 + 自动刷新",
            deps=[T.SASS.value, T.JS_MIN.value],
            blocking=True,
        ),
        stage_task(
            T.SERVE_DIST.value,
            "完整构建后以 dist 为根启动服务",
            deps=[T.DEFAULT.value],
            blocking=True,
        ),
        stage_task(T.SYNC.value, "本地服务 + Sass 自动编译", deps=[T.SASS.value], blocking=True),
        stage_task(T.WATCHERS.value, "监听源文件", blocking=True),
        TaskDefinition(
            name=T.DEFAULT.value,
            description="完整构建并进入监听",
            deps=[T.GREET.value],
            steps=[
                # clean 与写 dist/scripts 的 jsmin 不能并行
                (T.CLEAN.value,),
                (
                    T.SCSS_LINT.value,
                    T.SASS.value,
                    T.JS_LINT.value,
                    T.JS_MIN.value,
                    T.IMAGES.value,
                ),
                (T.COPY.value,),
                (T.GSW.value,),
                (T.WATCHERS.value,),
            ],
        ),
        TaskDefinition(
            name=T.LINT.value,
            description="只做检查",
            deps=[T.JS_LINT.value, T.SCSS_LINT.value],
        ),
        TaskDefinition(
            name=T.BUILD.value,
            description="清理后合并页面资源并复制到 dist",
            steps=[(T.CLEAN.value,), (T.HTML.value,), (T.COPY.value,)],
        ),
    ]
    return {t.name: t for t in tasks}
