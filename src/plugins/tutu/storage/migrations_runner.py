"""SQLite migrations 运行器（不依赖 Alembic）。

- migrations 目录下的 .sql 文件按文件名顺序执行，整批在一个事务内
- 已执行过的版本记录在 schema_migrations 表，重复启动时跳过
- 找不到任何 migration 文件时抛出 FileNotFoundError，由启动流程回退为 create_all
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional, Set

from nonebot import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from .sqlalchemy_engine import engine as default_engine

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_CREATE_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version TEXT PRIMARY KEY,
  applied_at INTEGER NOT NULL
)
"""


def migration_files(directory: Path = MIGRATIONS_DIR) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted((p for p in directory.glob("*.sql") if p.is_file()), key=lambda p: p.name)


def split_sql(sql: str) -> List[str]:
    """去掉整行 "--" 注释后按分号拆成语句。迁移文件里不要在字符串中写分号。"""

    body = "\n".join(
        line for line in (sql or "").splitlines()
        if line.strip() and not line.strip().startswith("--")
    )
    return [stmt.strip() for stmt in body.split(";") if stmt.strip()]


async def _applied_versions(conn: AsyncConnection) -> Set[str]:
    await conn.execute(text(_CREATE_VERSION_TABLE))
    result = await conn.execute(text("SELECT version FROM schema_migrations"))
    return {str(version) for version in result.scalars().all()}


async def _apply(conn: AsyncConnection, path: Path) -> bool:
    statements = split_sql(path.read_text(encoding="utf-8"))
    if not statements:
        return False

    logger.info(f"执行 migration：{path.name}（{len(statements)} 条语句）")
    for stmt in statements:
        await conn.exec_driver_sql(stmt)
    await conn.execute(
        text("INSERT INTO schema_migrations(version, applied_at) VALUES (:v, :ts)"),
        {"v": path.name, "ts": int(time.time())},
    )
    return True


async def run_migrations(
    engine: Optional[AsyncEngine] = None,
    directory: Path = MIGRATIONS_DIR,
) -> List[str]:
    """执行尚未应用的 migrations，返回本次应用的版本列表。"""

    files = migration_files(directory)
    if not files:
        raise FileNotFoundError(f"未发现 migrations 文件：{directory}")

    applied_now: List[str] = []
    async with (engine or default_engine).begin() as conn:
        done = await _applied_versions(conn)
        for path in files:
            if path.name not in done and await _apply(conn, path):
                applied_now.append(path.name)

    return applied_now
