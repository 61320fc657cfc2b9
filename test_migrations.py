"""
Tests for the SQL migrations runner
"""
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tutu.storage.migrations_runner import migration_files, run_migrations, split_sql
from tutu.storage.repositories.picture_repo import PictureRepository


@pytest_asyncio.fixture
async def bare_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    yield engine
    await engine.dispose()


def test_split_sql_drops_comments():
    sql = """
-- header
CREATE TABLE a (id INTEGER);

  -- indented comment
CREATE INDEX idx_a ON a (id);
"""
    assert split_sql(sql) == ["CREATE TABLE a (id INTEGER)", "CREATE INDEX idx_a ON a (id)"]


def test_bundled_migrations_exist():
    assert [p.name for p in migration_files()][0] == "0001_init.sql"


@pytest.mark.asyncio
async def test_run_migrations_is_repeatable(bare_engine):
    assert await run_migrations(bare_engine) == ["0001_init.sql"]
    assert await run_migrations(bare_engine) == []

    repository = PictureRepository(async_sessionmaker(bare_engine, expire_on_commit=False))
    await repository.append_word("P1", "cat")
    assert await repository.query_by_word("cat") == ["P1"]


@pytest.mark.asyncio
async def test_run_migrations_without_files(bare_engine, tmp_path):
    with pytest.raises(FileNotFoundError):
        await run_migrations(bare_engine, directory=tmp_path)
