# src/common/logger.py
"""
Модуль структурированного логирования.
Поддерживает JSON и цветной текстовый формат, ротацию файлов и отдельный error.log.
"""

from __future__ import annotations

import inspect
import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from src.common.constants import TypeMsg


DEFAULT_LOGGER_NAME = "pharmacy_dispatch"

# Общие файловые хендлеры (одни на все логгеры процесса)
_GLOBAL_FILE_HANDLER: logging.Handler | None = None
_GLOBAL_ERROR_HANDLER: logging.Handler | None = None

_LOGGING_INITIALIZED: bool = False


# =============================================================================
# ФОРМАТТЕРЫ
# =============================================================================

class JsonFormatter(logging.Formatter):
    """Форматтер для JSON логов."""

    def format(self, record: logging.LogRecord) -> str:
        """Форматирует запись лога в JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Цветной форматтер для консоли (разработка)."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    GRAY = "\033[90m"

    def format(self, record: logging.LogRecord) -> str:
        """Форматирует запись лога с цветом."""
        color = self.COLORS.get(record.levelname, self.GRAY)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        caller_info = ""
        extra_data = getattr(record, "extra_data", None)
        if extra_data and extra_data.get("caller_function"):
            caller_info = (
                f" {self.GRAY}[{extra_data.get('caller_module')}."
                f"{extra_data.get('caller_function')}() "
                f"{extra_data.get('caller_file')}:{extra_data.get('caller_line')}]{self.RESET}"
            )

        message = f"{timestamp} {color}[{record.levelname}]{self.RESET}{caller_info} {record.getMessage()}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


class DateBasedRotatingFileHandler(RotatingFileHandler):
    """
    Хендлер с ротацией по размеру.
    Пишет в фиксированный файл, при ротации архивирует его с датой в имени.
    """

    def __init__(self, log_dir: str, max_bytes: int, logger_name: str = "app", encoding: str = "utf-8"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.logger_name = logger_name

        super().__init__(
            filename=str(self.log_dir / f"{logger_name}.log"),
            maxBytes=max_bytes,
            backupCount=0,
            encoding=encoding,
        )

    def doRollover(self) -> None:
        """Переименовывает текущий файл в архивный и открывает новый."""
        if self.stream:
            self.stream.close()
            self.stream = None

        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        archive_filename = self.log_dir / f"{self.logger_name}_{timestamp}.log"

        if os.path.exists(self.baseFilename):
            try:
                os.rename(self.baseFilename, archive_filename)
            except OSError:
                # Файл занят другим процессом — продолжаем писать в новый
                pass

        self.stream = self._open()


# =============================================================================
# ЛОГГЕР
# =============================================================================

_loggers: dict[str, logging.Logger] = {}


def _load_logging_options() -> dict[str, Any]:
    """Читает настройки логирования, с дефолтами если конфиг недоступен."""
    options: dict[str, Any] = {
        "level": "DEBUG",
        "format": "colored",
        "to_file": False,
        "file_path": "logs/app.log",
        "max_bytes": 10485760,
    }
    try:
        from src.config import settings

        section = settings.logging
        options.update(
            level=section.LOG_LEVEL,
            format=section.LOG_FORMAT,
            to_file=section.LOG_TO_FILE,
            file_path=section.LOG_FILE_PATH,
            max_bytes=section.LOG_MAX_BYTES,
        )
    except Exception:
        # Конфиг недоступен: остаются значения по умолчанию
        return options

    # Нестроковые значения заменяются умолчаниями
    if not isinstance(options["level"], str):
        options["level"] = "DEBUG"
    if not isinstance(options["format"], str):
        options["format"] = "colored"
    if not isinstance(options["file_path"], str):
        options["file_path"] = "logs/app.log"
    return options


def setup_logging() -> None:
    """
    Инициализирует систему логирования.
    Идемпотентна, вызывается при старте сервиса.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED:
        return

    _LOGGING_INITIALIZED = True

    get_logger(DEFAULT_LOGGER_NAME)

    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Возвращает настроенный логгер.
    Кэширует логгеры, чтобы не дублировать хендлеры.

    Args:
        name: Имя логгера

    Returns:
        Настроенный логгер
    """
    global _GLOBAL_FILE_HANDLER, _GLOBAL_ERROR_HANDLER

    if name in _loggers:
        return _loggers[name]

    options = _load_logging_options()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, options["level"].upper(), logging.DEBUG))

    if logger.handlers:
        return logger

    formatter: logging.Formatter = JsonFormatter() if options["format"] == "json" else ColoredFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if options["to_file"]:
        log_path = Path(options["file_path"])
        log_dir = log_path.parent
        log_name = log_path.stem

        # Каждый сервис пишет в свой файл
        service_name = os.getenv("SERVICE_NAME")
        if service_name:
            log_name = f"{log_name}_{service_name}"

        if _GLOBAL_FILE_HANDLER is None:
            _GLOBAL_FILE_HANDLER = DateBasedRotatingFileHandler(
                log_dir=str(log_dir),
                max_bytes=options["max_bytes"],
                logger_name=log_name,
            )
            _GLOBAL_FILE_HANDLER.setFormatter(formatter)
        logger.addHandler(_GLOBAL_FILE_HANDLER)

        if _GLOBAL_ERROR_HANDLER is None:
            _GLOBAL_ERROR_HANDLER = DateBasedRotatingFileHandler(
                log_dir=str(log_dir),
                max_bytes=options["max_bytes"],
                logger_name="error",
            )
            _GLOBAL_ERROR_HANDLER.setLevel(logging.ERROR)
            _GLOBAL_ERROR_HANDLER.setFormatter(formatter)
        logger.addHandler(_GLOBAL_ERROR_HANDLER)

    logger.propagate = False

    _loggers[name] = logger
    return logger


# =============================================================================
# ВСПОМОГАТЕЛЬНЫЕ ФУНКЦИИ ЛОГИРОВАНИЯ
# =============================================================================

def _get_caller_info() -> dict[str, Any]:
    """
    Получает информацию о коде, вызвавшем функцию логирования.

    Стек: [0] _get_caller_info, [1] log_*, [2] вызывающий код.
    """
    frame = inspect.currentframe()
    caller_frame = None
    try:
        if frame is None:
            return {}

        caller_frame = frame.f_back
        if caller_frame:
            caller_frame = caller_frame.f_back

        if caller_frame is None:
            return {}

        frame_info = inspect.getframeinfo(caller_frame)
        caller_module = inspect.getmodule(caller_frame)

        return {
            "caller_function": caller_frame.f_code.co_name,
            "caller_module": caller_module.__name__ if caller_module else "unknown",
            "caller_file": Path(frame_info.filename).name if frame_info.filename else "unknown",
            "caller_line": frame_info.lineno,
        }
    except Exception:
        return {}
    finally:
        # Фреймы держат ссылки на локальные переменные
        del frame
        del caller_frame


async def log_info(
    message: str,
    *,
    type_msg: TypeMsg = TypeMsg.INFO,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    """
    Асинхронное логирование с выбором уровня.

    Args:
        message: Сообщение
        type_msg: Уровень сообщения
        logger_name: Имя логгера
        extra: Дополнительные поля
    """
    logger = get_logger(logger_name)
    record_extra = {"extra_data": {**_get_caller_info(), **(extra or {})}}

    match type_msg:
        case TypeMsg.DEBUG:
            logger.debug(message, extra=record_extra)
        case TypeMsg.WARNING:
            logger.warning(message, extra=record_extra)
        case TypeMsg.ERROR:
            logger.error(message, extra=record_extra)
        case TypeMsg.CRITICAL:
            logger.critical(message, extra=record_extra)
        case _:
            logger.info(message, extra=record_extra)


async def log_debug(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    """Логирование DEBUG уровня."""
    await log_info(message, type_msg=TypeMsg.DEBUG, logger_name=logger_name, extra=extra)


async def log_warning(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    """Логирование WARNING уровня."""
    await log_info(message, type_msg=TypeMsg.WARNING, logger_name=logger_name, extra=extra)


async def log_error(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """
    Логирование ERROR уровня.

    Args:
        message: Сообщение об ошибке
        logger_name: Имя логгера
        extra: Дополнительные данные
        exc_info: Включать ли трейсбек исключения
    """
    logger = get_logger(logger_name)
    record_extra = {"extra_data": {**_get_caller_info(), **(extra or {})}}
    logger.error(message, extra=record_extra, exc_info=exc_info)
