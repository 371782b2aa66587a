"""
日志配置模块
所有模块的日志都汇总到 schemagen 日志记录器，统一输出到控制台和日志文件
"""
import logging
import os
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "schemagen"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 写日志前需要脱敏的字段
SENSITIVE_KEYS = ("password", "encrypted_password")


class DetailedFormatter(logging.Formatter):
    """在日志正文后追加 extra_context 中的上下文信息"""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        context = getattr(record, "extra_context", None)
        if context:
            lines = [f"  {key}: {value}" for key, value in context.items()]
            formatted += "\n上下文信息:\n" + "\n".join(lines)
        return formatted


def _attach_handler(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(DetailedFormatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    设置日志记录器

    重复调用会先清除已有的处理器，可以在运行时重新加载配置。

    Args:
        name: 日志记录器名称
        log_level: 日志级别（DEBUG, INFO, WARNING, ERROR, CRITICAL），默认读取 LOG_LEVEL
        log_file: 日志文件路径，默认读取 LOG_FILE；为空字符串时只输出到控制台
        console_output: 是否输出到控制台

    Returns:
        配置好的日志记录器
    """
    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    if log_file is None:
        log_file = os.getenv("LOG_FILE", "./logs/schemagen.log")

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
        # 文件中保留全部级别，便于排查
        _attach_handler(logger, logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG)

    if console_output:
        _attach_handler(logger, logging.StreamHandler(sys.stdout), level)

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    获取日志记录器

    schemagen 下的模块日志交给 schemagen 日志记录器统一输出，
    其他名称的日志记录器单独配置。

    Args:
        name: 日志记录器名称，通常传入 __name__
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        root = logging.getLogger(ROOT_LOGGER_NAME)
        if not root.handlers:
            setup_logger(ROOT_LOGGER_NAME)
        return logging.getLogger(name)

    logger = logging.getLogger(name)
    if not logger.handlers:
        setup_logger(name)
    return logger


def redact_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """返回脱敏后的连接配置副本"""
    return {
        key: ("***" if key in SENSITIVE_KEYS and value else value)
        for key, value in config.items()
    }


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    error: BaseException,
    context: Optional[Dict[str, Any]] = None
):
    """
    记录带有上下文的错误日志

    Args:
        logger: 日志记录器
        message: 错误消息
        error: 异常对象
        context: 额外的上下文信息（连接ID、SQL、表名等）
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": datetime.utcnow().isoformat(),
    }
    if context:
        details.update(context)
    if error.__traceback__ is not None:
        details["traceback"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

    logger.error(f"{message}: {error}", extra={"extra_context": details})


def log_sql_error(
    logger: logging.Logger,
    sql: str,
    connection_id: int,
    error: BaseException,
    parameters: Optional[Dict[str, Any]] = None
):
    """
    记录SQL执行错误

    Args:
        logger: 日志记录器
        sql: SQL语句（超过500个字符时截断）
        connection_id: 数据库连接ID
        error: 异常对象
        parameters: 绑定参数
    """
    context = {
        "sql": sql[:500] if sql else None,
        "connection_id": connection_id,
    }
    if parameters:
        context["parameters"] = parameters
    log_error_with_context(logger, "SQL执行失败", error, context)


def log_database_connection_error(
    logger: logging.Logger,
    db_config: Dict[str, Any],
    error: BaseException
):
    """
    记录数据库连接错误

    Args:
        logger: 日志记录器
        db_config: 连接参数（密码会被脱敏）
        error: 异常对象
    """
    log_error_with_context(logger, "数据库连接失败", error, {"db_config": redact_config(db_config)})


def log_render_error(
    logger: logging.Logger,
    generator_id: Optional[int],
    error: BaseException,
    template_name: Optional[str] = None,
    column_name: Optional[str] = None
):
    """记录代码渲染错误，附带出错的模板和列"""
    context = {"generator_id": generator_id}
    if template_name:
        context["template"] = template_name
    if column_name:
        context["column"] = column_name
    log_error_with_context(logger, "代码渲染失败", error, context)
