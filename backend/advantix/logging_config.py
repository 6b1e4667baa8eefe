"""
日志配置

功能:
- 控制台输出人类可读格式
- 文件输出结构化 JSON（app.log 全量，error.log 仅 WARNING 及以上）
- 日志轮转（10MB × 5）
- 告警辅助函数 log_alert
"""
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# LogRecord 自带字段，不属于 extra
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'asctime', 'taskName', 'short_name',
}


class StructuredFormatter(logging.Formatter):
    """结构化 JSON 日志格式化器

    输出格式:
    {
        "timestamp": "2025-01-15T10:30:15.123Z",
        "level": "INFO",
        "logger": "advantix.services.gher_service",
        "message": "invoice generated",
        "extra": {"invoice_number": "INV-202501-001"}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno <= logging.DEBUG:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                extra_fields[key] = value
            except (TypeError, ValueError):
                extra_fields[key] = str(value)

        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    """控制台格式：时间 级别 [模块] 消息，模块名去掉 advantix. 前缀"""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-8s [%(short_name)s] %(message)s", "%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.short_name = record.name.replace("advantix.", "", 1)
        return super().format(record)


# (文件名, 最低级别)
_FILE_TARGETS = (("app.log", logging.DEBUG), ("error.log", logging.WARNING))
_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5

# 第三方库只保留的最低级别
_QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "sqlalchemy": logging.WARNING,
    "multipart": logging.WARNING,
}


def setup_logging(log_dir: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """配置根日志记录器（可重复调用，旧 handler 会被替换）

    log_dir 为空时只输出到控制台；目录不可写时降级为仅控制台并记录警告
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(getattr(logging, level.upper(), logging.INFO))
    console.setFormatter(ReadableFormatter())
    root.addHandler(console)

    if log_dir:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            for filename, min_level in _FILE_TARGETS:
                handler = logging.handlers.RotatingFileHandler(
                    Path(log_dir) / filename, maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8"
                )
                handler.setLevel(min_level)
                handler.setFormatter(StructuredFormatter())
                root.addHandler(handler)
        except OSError as e:
            root.warning(f"文件日志不可用，仅输出到控制台: {e}")

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    return root


class AlertLevel:
    """告警级别"""
    P0_CRITICAL = "P0"  # 服务不可用
    P1_URGENT = "P1"    # 写入失败
    P2_WARNING = "P2"


_ALERT_LOG_LEVELS = {
    AlertLevel.P0_CRITICAL: logging.CRITICAL,
    AlertLevel.P1_URGENT: logging.ERROR,
    AlertLevel.P2_WARNING: logging.WARNING,
}


def log_alert(
    logger: logging.Logger,
    level: str,
    title: str,
    message: str,
    context: Optional[dict] = None,
    suggested_actions: Optional[list] = None
):
    """按告警级别写日志，告警信息放在 extra 中供 JSON 日志检索

    示例:
        log_alert(logger, AlertLevel.P1_URGENT, "发票生成失败", "数据库拒绝写入",
                  context={"month": "2025-01"}, suggested_actions=["检查数据库连接"])
    """
    extra = {"alert_level": level, "alert_title": title}
    if context:
        extra["context"] = context
    if suggested_actions:
        extra["suggested_actions"] = suggested_actions
    logger.log(_ALERT_LOG_LEVELS.get(level, logging.WARNING), f"[{level}] {title}: {message}", extra=extra)
