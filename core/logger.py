from __future__ import annotations

import json
import logging
from typing import Any

from core.settings import Settings

LOGGER_NAME = 'app'


class KeyValueFormatter(logging.Formatter):
    """Текстовый формат: сообщение + структурированные поля в виде key=value."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = getattr(record, 'fields', None)
        if not fields:
            return message
        rendered = ' '.join(f'{key}={value}' for key, value in fields.items())
        return f'{message} | {rendered}'


class JsonFormatter(logging.Formatter):
    """Одна JSON-строка на запись (для сборщиков логов)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            'time': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        payload.update(getattr(record, 'fields', None) or {})
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class StructuredLogger:
    """
    Логгер с уровнями и структурированными полями.

    Поля, переданные в bind(), добавляются ко всем последующим записям
    дочернего логгера. Сам logging.Logger общий, состояние хранится
    только в неизменяемом словаре полей.
    """

    def __init__(self, logger: logging.Logger, fields: dict[str, Any] | None = None):
        self._logger = logger
        self._fields = dict(fields or {})

    def bind(self, **fields: Any) -> StructuredLogger:
        return StructuredLogger(self._logger, {**self._fields, **fields})

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def _log(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            msg,
            extra={'fields': {**self._fields, **fields}},
            stacklevel=3,
        )


def setup_logging(settings: Settings) -> StructuredLogger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(settings.LOG_LEVEL.upper())
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler()
        if settings.LOG_FORMAT.lower() == 'json':
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(
                KeyValueFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
        logger.addHandler(handler)

    return StructuredLogger(logger, {'app': settings.APP_NAME, 'env': settings.APP_ENV})


def get_logger(name: str | None = None) -> StructuredLogger:
    """Логгер без настройки обработчиков, для модулей инфраструктуры."""
    full_name = f'{LOGGER_NAME}.{name}' if name else LOGGER_NAME
    return StructuredLogger(logging.getLogger(full_name))
