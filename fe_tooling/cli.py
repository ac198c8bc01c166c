"""
命令行入口

用法：
    fe-tooling [TASK ...] [--config PATH] [--project PATH] [--once]
               [--production | --no-production] [--debug] [--list]
               [--log-level LEVEL]

未指定任务时执行 default。退出码：0 成功，1 构建失败，130 中断。
"""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console
from rich.table import Table

from . import __version__
from .config import BuildConfig, get_config, load_project, reload_config, set_config
from .interfaces import ToolingError
from .pipeline import BuildContext, TaskRunner, default_tasks, write_report

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
REPORT_NAME = "build-report.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fe-tooling",
        description="前端资源构建：Sass 编译、脚本压缩、图片优化、打包与本地服务",
    )
    parser.add_argument("tasks", nargs="*", help="要执行的任务（默认：default）")
    parser.add_argument("--config", default="", help="构建配置文件（默认：config/build.yaml）")
    parser.add_argument("--project", default="", help="项目描述文件（默认：config/project.yaml 或 package.json）")
    parser.add_argument("--once", action="store_true", help="跳过服务/监听等阻塞型任务")
    parser.add_argument(
        "--production",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="覆盖项目描述中的 production 开关",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="生成 source map")
    parser.add_argument("--list", action="store_true", help="列出所有任务")
    parser.add_argument("--log-level", default="", help="日志级别（覆盖配置）")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(config: BuildConfig, level: str = "") -> None:
    """配置根日志：控制台 + 可选文件"""
    root = logging.getLogger()
    root.setLevel((level or config.logging.log_level).upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if config.logging.log_to_file:
        log_path = config.resolve(config.logging.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def print_tasks(console: Console) -> None:
    table = Table(title="任务列表")
    table.add_column("任务", style="cyan")
    table.add_column("说明")
    table.add_column("依赖")
    table.add_column("阻塞", justify="center")
    for task in default_tasks().values():
        table.add_row(
            task.name,
            task.description,
            ", ".join(task.deps),
            "是" if task.blocking else "",
        )
    console.print(table)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console(stderr=True)

    if args.list:
        print_tasks(console)
        return 0

    config = set_config(reload_config(args.config)) if args.config else get_config()
    setup_logging(config, args.log_level)

    project = load_project(args.project or None).with_overrides(
        production=args.production,
        debug=args.debug,
    )
    ctx = BuildContext(config=config, project=project, console=console)

    tasks = args.tasks or ["default"]
    runner: TaskRunner | None = None
    try:
        runner = TaskRunner(ctx)
        runner.run(tasks, skip_blocking=args.once)
    except ToolingError as e:
        logger.error(f"构建失败: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("已中断")
        return 130
    finally:
        if runner is not None and runner.history:
            write_report(runner.history, config.tmp_dir / REPORT_NAME)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
