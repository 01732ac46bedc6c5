"""
日志配置

控制台输出带颜色的两行格式（文件路径 + 日志内容），写文件时一行一条、不带颜色
tortoise 和 celery 的日志挂到同一组 handler 上
"""
import logging
import os
import sys

from colorama import Fore, Style, init as colorama_init

from imagegen.common.config import LogConfig, config

colorama_init(autoreset=True)

LOGGER_NAME = "imagegen"
THIRD_PARTY_LOGGERS = ("tortoise", "celery")


class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: Fore.BLUE,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }
    SEPARATOR = "-" * 80

    def __init__(self, colored: bool = True):
        super().__init__(
            fmt="%(asctime)s - [%(levelname).1s] - %(filename)s:%(lineno)d : %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.colored = colored

    def format(self, record):
        line = super().format(record)
        if not self.colored:
            return line

        color = self.COLORS.get(record.levelno, "")
        text = f"{Fore.CYAN}{record.pathname}{Style.RESET_ALL}\n{color}{line}{Style.RESET_ALL}"
        # DEBUG 日志较多，不加分割线
        if record.levelno >= logging.INFO:
            return f"{self.SEPARATOR}\n{text}\n{self.SEPARATOR}"
        return text


def _file_handler(log_file: str) -> logging.Handler:
    os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(ColorFormatter(colored=False))
    return handler


def setup_logging(log_config: LogConfig) -> logging.Logger:
    """
    按配置初始化项目 logger，重复调用会替换原有 handler
    """
    level = logging.getLevelName(log_config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColorFormatter())
    handlers = [console]
    if log_config.file:
        handlers.append(_file_handler(log_config.file))

    project_logger = logging.getLogger(LOGGER_NAME)
    project_logger.handlers = handlers
    project_logger.setLevel(level)
    project_logger.propagate = False

    for name in THIRD_PARTY_LOGGERS:
        third_party = logging.getLogger(name)
        third_party.handlers = list(handlers)
        third_party.setLevel(max(level, logging.INFO))
        third_party.propagate = False
    return project_logger


logger = setup_logging(config.log)
