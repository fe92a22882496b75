# src/infra/database.py
"""
Менеджер базы данных PostgreSQL.
Пул соединений, повтор при обрыве соединения и инициализация схемы заказов.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncGenerator, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool, Record

from src.common.logger import log_error, log_info, log_warning
from src.common.constants import TypeMsg

T = TypeVar("T")

# Ошибки, после которых запрос имеет смысл повторить
RETRYABLE_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    ConnectionRefusedError,
    OSError,
)

# Произвольный ключ advisory lock для миграции
SCHEMA_LOCK_ID = 520_617_001


def retry_on_connection_error(
    max_attempts: int = 3,
    delay: float = 1.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Декоратор повторного вызова при ошибках подключения.

    Повторяются только обрывы соединения. Ошибки SQL и бизнес-ошибки
    пробрасываются сразу.

    Вызов с retry=False выполняется ровно один раз: записи не повторяются,
    так как обрыв после COMMIT не означает, что запрос не выполнен.

    Args:
        max_attempts: Максимальное количество попыток
        delay: Базовая задержка между попытками (секунды)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, retry: bool = True, **kwargs: Any) -> T:
            attempts = max_attempts if retry else 1
            last_error: BaseException | None = None

            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    last_error = e
                    if attempt < attempts:
                        await log_warning(
                            f"Ошибка подключения к БД (попытка {attempt}/{attempts}): {e}"
                        )
                        await asyncio.sleep(delay * attempt)
                    else:
                        await log_error(f"Не удалось выполнить запрос после {attempts} попыток: {e}")

            raise last_error  # type: ignore[misc]

        return wrapper  # type: ignore[return-value]

    return decorator


class DatabaseManager:
    """
    Менеджер подключений к PostgreSQL.
    Один пул соединений на процесс (Singleton).
    """

    _instance: DatabaseManager | None = None
    _pool: Pool | None = None

    def __new__(cls) -> DatabaseManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._pool = None

    @property
    def pool(self) -> Pool:
        """Возвращает пул соединений."""
        if self._pool is None:
            raise RuntimeError("Пул соединений не инициализирован. Вызовите connect() сначала.")
        return self._pool

    @retry_on_connection_error(max_attempts=3, delay=1.0)
    async def connect(
        self,
        dsn: str | None = None,
        min_size: int = 5,
        max_size: int = 20,
        command_timeout: int = 60,
    ) -> None:
        """
        Создаёт пул соединений к PostgreSQL.

        Args:
            dsn: DSN строка подключения (если None, берётся из конфига)
            min_size: Минимальный размер пула
            max_size: Максимальный размер пула
            command_timeout: Таймаут команд (секунды)
        """
        if self._pool is not None:
            return

        if dsn is None:
            from src.config import settings
            dsn = settings.database.dsn
            min_size = settings.database.DB_MIN_POOL_SIZE
            max_size = settings.database.DB_MAX_POOL_SIZE
            command_timeout = settings.database.DB_COMMAND_TIMEOUT

        await log_info("Подключение к PostgreSQL...", type_msg=TypeMsg.INFO)

        self._pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
        )

        await log_info("Подключение к PostgreSQL установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info("Соединение с PostgreSQL закрыто", type_msg=TypeMsg.INFO)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для получения соединения из пула.

        Example:
            async with db.acquire() as conn:
                rows = await conn.fetch("SELECT * FROM orders")
        """
        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для транзакции.
        Commit при успехе, rollback при ошибке.
        """
        async with self.pool.acquire() as connection:
            async with connection.transaction():
                yield connection

    @retry_on_connection_error()
    async def execute(self, query: str, *args: Any) -> str:
        """Выполняет SQL запрос без возврата данных."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    @retry_on_connection_error()
    async def fetch(self, query: str, *args: Any) -> list[Record]:
        """Выполняет SQL запрос и возвращает все строки."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    @retry_on_connection_error()
    async def fetchrow(self, query: str, *args: Any) -> Record | None:
        """Выполняет SQL запрос и возвращает одну строку."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    @retry_on_connection_error()
    async def fetchval(self, query: str, *args: Any, column: int = 0) -> Any:
        """Выполняет SQL запрос и возвращает одно значение."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column)

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к БД.

        Returns:
            True если подключение работает
        """
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            await log_error(f"Health check PostgreSQL failed: {e}")
            return False


def get_db() -> DatabaseManager:
    """Возвращает глобальный экземпляр DatabaseManager."""
    return DatabaseManager()


async def init_db() -> None:
    """
    Инициализирует подключение к базе данных и применяет схему.
    Использует настройки из конфигурации.
    """
    from src.config import settings

    db = get_db()
    await db.connect(
        dsn=settings.database.dsn,
        min_size=settings.database.DB_MIN_POOL_SIZE,
        max_size=settings.database.DB_MAX_POOL_SIZE,
        command_timeout=settings.database.DB_COMMAND_TIMEOUT,
    )
    await log_info(
        f"PostgreSQL подключён: {settings.database.DB_HOST}:{settings.database.DB_PORT}/{settings.database.DB_NAME}",
        type_msg=TypeMsg.INFO,
    )

    await _init_schema(db)


async def _init_schema(db: DatabaseManager) -> None:
    """Применяет migrations/init.sql (идемпотентный DDL)."""
    from src.config.loader import get_project_root

    schema_path = get_project_root() / "migrations" / "init.sql"
    if not schema_path.exists():
        await log_error(f"Файл схемы БД не найден: {schema_path}")
        return

    schema_sql = schema_path.read_text(encoding="utf-8")

    await log_info("Применение схемы БД...", type_msg=TypeMsg.INFO)

    # Несколько инстансов API могут стартовать одновременно
    async with db.transaction() as conn:
        await conn.execute(f"SELECT pg_advisory_xact_lock({SCHEMA_LOCK_ID})")
        await conn.execute(schema_sql)

    await log_info("Схема БД успешно применена", type_msg=TypeMsg.INFO)


async def close_db() -> None:
    """Закрывает подключение к базе данных."""
    await get_db().disconnect()
    await log_info("PostgreSQL отключён", type_msg=TypeMsg.INFO)
