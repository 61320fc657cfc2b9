"""
Tests for PictureRepository
"""
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tutu.exceptions import StorageError
from tutu.storage.repositories.picture_repo import CleanReport, PictureRepository


@pytest.mark.asyncio
async def test_append_word_is_idempotent(repository):
    """Tagging the same picture with the same word twice keeps one association"""
    await repository.append_word("P1", "cat")
    await repository.append_word("P1", "cat")

    assert await repository.list_words_for_picture("P1") == "cat"
    assert await repository.query_by_word("cat") == ["P1"]


@pytest.mark.asyncio
async def test_append_word_splits_on_whitespace(repository):
    await repository.append_word("P1", "cat  cute\tsmall")

    assert await repository.list_words_for_picture("P1") == "cat cute small"
    assert await repository.query_by_word("cute") == ["P1"]


@pytest.mark.asyncio
async def test_append_word_keeps_existing_words(repository):
    await repository.append_word("P1", "cat")
    await repository.append_word("P1", "dog")

    assert await repository.list_words_for_picture("P1") == "cat dog"


@pytest.mark.asyncio
async def test_replace_word_drops_previous_words(repository):
    await repository.append_word("P1", "a b")
    await repository.replace_word("P1", "c")

    assert await repository.list_words_for_picture("P1") == "c"
    assert await repository.query_by_word("a") == []
    assert await repository.query_by_word("b") == []
    assert await repository.query_by_word("c") == ["P1"]


@pytest.mark.asyncio
async def test_replace_word_on_unknown_picture_creates_it(repository):
    await repository.replace_word("P9", "new")

    assert await repository.query_by_word("new") == ["P9"]


@pytest.mark.asyncio
async def test_query_unknown_word_returns_nothing(repository):
    assert await repository.query_by_word("nothing") == []


@pytest.mark.asyncio
async def test_query_returns_most_recent_first(repository):
    """With equal timestamps the later association wins"""
    await repository.append_word("P1", "cat")
    await repository.append_word("P2", "cat")

    assert await repository.query_by_word("cat") == ["P2", "P1"]


@pytest.mark.asyncio
async def test_query_returns_at_most_two_distinct_pictures(repository):
    for name in ("P1", "P2", "P3"):
        await repository.append_word(name, "cat")

    for _ in range(10):
        result = await repository.query_by_word("cat")
        assert len(result) == 2
        assert result[0] == "P3"
        assert result[1] in ("P1", "P2")


@pytest.mark.asyncio
async def test_delete_picture_removes_associations(repository):
    await repository.append_word("P1", "cat")
    await repository.delete_picture("P1")

    assert await repository.query_by_word("cat") == []
    assert await repository.list_words_for_picture("P1") == ""


@pytest.mark.asyncio
async def test_delete_unknown_picture_is_noop(repository):
    await repository.append_word("P1", "cat")
    await repository.delete_picture("missing")
    await repository.delete_picture("missing")

    assert await repository.query_by_word("cat") == ["P1"]


@pytest.mark.asyncio
async def test_list_words_for_unknown_picture(repository):
    assert await repository.list_words_for_picture("missing") == ""


@pytest.mark.asyncio
async def test_random_picture_empty_database(repository):
    assert await repository.random_picture() is None


@pytest.mark.asyncio
async def test_random_picture_skips_untagged_pictures(repository):
    await repository.append_word("P1", "cat")
    await repository.append_word("P2", "dog")
    await repository.delete_picture("P2")

    for _ in range(10):
        assert await repository.random_picture() == "P1"


@pytest.mark.asyncio
async def test_count_pictures(repository):
    assert await repository.count_pictures() == 0

    await repository.append_word("P1", "a b")
    await repository.append_word("P2", "a")
    assert await repository.count_pictures() == 2

    await repository.delete_picture("P1")
    assert await repository.count_pictures() == 1


@pytest.mark.asyncio
async def test_clean_orphans(repository):
    await repository.append_word("P1", "a b")
    await repository.append_word("P2", "b")
    await repository.delete_picture("P1")

    report = await repository.clean_orphans()
    assert report == CleanReport(pictures=1, words=1)
    assert str(report) == "pic=1 word=1"

    again = await repository.clean_orphans()
    assert str(again) == "pic=0 word=0"
    assert await repository.query_by_word("b") == ["P2"]


@pytest.mark.asyncio
async def test_retagging_after_delete_reuses_picture(repository):
    await repository.append_word("P1", "cat")
    await repository.delete_picture("P1")
    await repository.append_word("P1", "dog")

    assert await repository.list_words_for_picture("P1") == "dog"
    assert await repository.count_pictures() == 1


@pytest.mark.asyncio
async def test_storage_error_keeps_driver_message():
    """Missing schema surfaces as StorageError, not a raw SQLAlchemy error"""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    repository = PictureRepository(async_sessionmaker(engine, expire_on_commit=False))
    try:
        with pytest.raises(StorageError) as exc_info:
            await repository.append_word("P1", "cat")
        assert "no such table" in str(exc_info.value)
    finally:
        await engine.dispose()
