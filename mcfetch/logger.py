"""
日志模块

使用 loguru 输出控制台日志，并可在游戏目录下保留安装日志。
"""

import os
import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
INSTALL_LOG = Path("logs") / "mcfetch.log"


def setup_logger(
    level: Optional[str] = None,
    sink=sys.stdout,
    enqueue: bool = True,
    colorize: bool = True,
) -> None:
    """
    设置控制台日志

    Args:
        level: 日志级别，未指定时 MCFETCH_DEBUG=1 为 DEBUG，否则 INFO
        sink: 输出目标
        enqueue: 是否启用队列（线程安全）
        colorize: 是否启用颜色
    """
    if level is None:
        level = "DEBUG" if os.environ.get("MCFETCH_DEBUG", "0") == "1" else "INFO"

    logger.remove()

    logger.add(
        sink=sink,
        format=LOG_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=(level == "DEBUG"),
        diagnose=(level == "DEBUG"),
    )

    if level == "DEBUG":
        logger.debug("DEBUG 模式已启用")


def add_install_log(location: Union[str, Path], level: str = "DEBUG") -> int:
    """
    在游戏目录的 logs/mcfetch.log 中记录安装过程

    文件按大小轮转，只保留最近 3 份。

    Args:
        location: 游戏根目录
        level: 文件日志级别

    Returns:
        handler id，安装结束后用 logger.remove(id) 关闭
    """
    path = Path(location) / INSTALL_LOG
    path.parent.mkdir(parents=True, exist_ok=True)
    return logger.add(
        str(path),
        format=LOG_FORMAT,
        level=level,
        rotation="5 MB",
        retention=3,
        encoding="utf-8",
    )


__all__ = ["logger", "setup_logger", "add_install_log", "INSTALL_LOG"]
