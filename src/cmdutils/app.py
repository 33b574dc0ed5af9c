"""cmdutils 命令行入口与日志配置。

用法:
    cmdutils [-v]                       打印每种消息类型的示例
    cmdutils [-v] [--eyecatcher NAME] -- COMMAND [ARGS...]
                                        运行子进程并输出其结果
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from . import __version__
from .applog import AppLogger
from .config import Config, get_config
from .runtime import SpawnError, WaitInterruptedError, pipe_to_logger, run

__all__ = ["configure_logging", "main"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# 与 shell 约定一致：命令不存在
EXIT_SPAWN_FAILED = 127
# 128 + SIGINT(2)
EXIT_INTERRUPTED = 130


def configure_logging(config: Config) -> None:
    """配置诊断日志输出。

    LOG_DEBUG 模式下以 DEBUG 级别写入临时文件，否则以 INFO 级别写入 stderr。
    root logger 保持 WARNING，只对 cmdutils 命名空间启用详细日志。
    """
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("cmdutils").setLevel(log_level)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmdutils",
        description="Sanity check for cmdutils logging and process helpers",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "--eyecatcher",
        default="child",
        help="Label prefixed to streamed child output (default: child)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run")
    return parser


def _print_samples(app_logger: AppLogger) -> None:
    """打印每种消息类型的示例。"""
    object_name, other_name = "test", "test2"

    app_logger.println_err("Uh oh! The object '%s' does not exist", object_name)
    app_logger.println_warn(
        "Warning: duplicate entries exist: '%s' and '%s'", object_name, other_name
    )
    app_logger.println("Proceeding to step 2...")
    app_logger.println_success("SUCCESS!!")

    app_logger.println_err_verbose("Uh oh! The object '%s' does not exist", object_name)
    app_logger.println_warn_verbose(
        "Warning: duplicate entries exist: '%s' and '%s'", object_name, other_name
    )
    app_logger.println_verbose("Proceeding to step 2...")
    app_logger.println_success_verbose("SUCCESS!!")


def _run_command(app_logger: AppLogger, command: list[str], eyecatcher: str) -> int:
    """运行子进程：verbose 模式实时输出，否则结束后统一输出。"""
    try:
        if app_logger.verbose:
            exit_status = pipe_to_logger(command[0], command[1:], app_logger, eyecatcher)
        else:
            result = run(command[0], *command[1:])
            result.pretty_print(app_logger)
            exit_status = result.exit_status
    except SpawnError as e:
        app_logger.println_err("%s", e)
        app_logger.print_exception_verbose(e)
        return EXIT_SPAWN_FAILED
    except WaitInterruptedError as e:
        app_logger.println_warn("%s", e)
        return EXIT_INTERRUPTED

    if exit_status == 0:
        app_logger.println_success_verbose("%s exited with status 0", command[0])
    else:
        app_logger.println_err("%s exited with status %d", command[0], exit_status)
    if exit_status < 0:
        # 被信号终止，按 shell 约定转换为 128 + 信号编号
        return 128 - exit_status
    return exit_status


def main(argv: Sequence[str] | None = None) -> int:
    """主入口点。

    Returns:
        进程退出码
    """
    args = _build_parser().parse_args(argv)
    config = get_config()
    configure_logging(config)

    app_logger = AppLogger.from_config(config, verbose=config.verbose or args.verbose)
    logger.debug(f"Starting with {config!r}")

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]

    with app_logger:
        if not command:
            _print_samples(app_logger)
            return 0
        return _run_command(app_logger, command, args.eyecatcher)
