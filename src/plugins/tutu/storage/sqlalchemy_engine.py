"""SQLAlchemy异步引擎与会话管理模块

这个模块的作用:
1. 创建插件使用的SQLAlchemy异步数据库引擎
2. 为每个SQLite连接设置PRAGMA(WAL模式、超时、外键)
3. 提供数据库会话(Session)的创建和管理
4. 确保SQLite数据库文件所在目录存在

SQLite设置说明:
- journal_mode=WAL: 读写可以并发,适合查询多、写入少的机器人场景
- synchronous=NORMAL: 兼顾数据安全和写入速度
- busy_timeout: 数据库被其他连接锁定时的等待时间(来自配置)
- foreign_keys=ON: SQLite默认不检查外键,需要每个连接单独开启

使用方式:
```python
from .sqlalchemy_engine import get_session

async with get_session() as session:
    result = await session.execute(select(Picture))
    await session.commit()
```

测试或多数据库场景可以传入自己的会话工厂:
```python
async with get_session(my_sessionmaker) as session:
    ...
```
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from nonebot import logger
from sqlalchemy import event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import plugin_config


def _ensure_sqlite_parent_dir(database_url: str) -> None:
    """确保SQLite数据库文件所在的目录存在

    - 不是SQLite或是内存数据库(:memory:/空路径)时直接返回
    - 创建目录失败只记录警告,不中断启动

    Args:
        database_url: 数据库连接URL,如 "sqlite+aiosqlite:///data/tutu.db"
    """

    try:
        url = make_url(database_url)
    except Exception:
        return

    if not url.drivername.startswith("sqlite"):
        return

    db_path = url.database
    if not db_path or db_path == ":memory:":
        return

    try:
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    except Exception as exc:
        logger.warning(f"创建 SQLite 目录失败,将继续尝试启动:{exc}")


_ensure_sqlite_parent_dir(plugin_config.tutu_database_url)

# 整个插件共用一个引擎(连接池)
engine = create_async_engine(
    plugin_config.tutu_database_url,
    echo=False,
    future=True,
)


@event.listens_for(engine.sync_engine, "connect")
def set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
    """在每次数据库连接创建时设置SQLite的PRAGMA参数。"""

    if not engine.dialect.name.startswith("sqlite"):
        return

    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute(
        f"PRAGMA busy_timeout={int(plugin_config.tutu_sqlite_busy_timeout_ms)}"
    )
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# 会话工厂
# - expire_on_commit=False: 提交后对象仍然可用,不需要重新查询
# - autoflush=False: 手动控制flush时机
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncIterator[AsyncSession]:
    """获取一个异步数据库会话(使用async with语法)

    会话的生命周期:
    1. 进入async with时,从会话工厂创建新的Session
    2. with块内抛出任何异常时回滚事务,然后重新抛出
    3. 离开with块时关闭Session,连接归还连接池

    Args:
        session_factory: 会话工厂,默认使用插件全局的 AsyncSessionLocal

    Yields:
        AsyncSession: SQLAlchemy异步会话对象
    """

    factory = session_factory or AsyncSessionLocal
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
