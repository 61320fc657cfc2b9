"""Picture / Word / PictureWord 的数据访问层（DAO）。

所有操作单次执行、不自动重试；SQLAlchemy 异常统一转换为 StorageError（保留原始信息）。
"""

from __future__ import annotations

import functools
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import delete, distinct, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...exceptions import StorageError
from ..models import Picture, PictureWord, Word
from ..sqlalchemy_engine import get_session

T = TypeVar("T")


def _storage_errors(func_: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """把 SQLAlchemyError 转换为 StorageError。"""

    @functools.wraps(func_)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await func_(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc

    return wrapper


@dataclass(frozen=True)
class CleanReport:
    """clean 的结果：删除的孤立图片数与孤立词数。"""

    pictures: int
    words: int

    def __str__(self) -> str:
        return f"pic={self.pictures} word={self.words}"


class PictureRepository:
    """图片标签仓储。"""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._session_factory = session_factory

    # ==================== 内部工具 ====================

    @staticmethod
    async def _ensure_picture(session: AsyncSession, name: str) -> int:
        """获取图片 id，不存在则创建。

        先 INSERT ... ON CONFLICT DO NOTHING 再查询，
        并发创建同一图片时落败的一方直接读取已存在的行。
        """

        await session.execute(
            sqlite_insert(Picture).values(name=name).on_conflict_do_nothing(index_elements=["name"])
        )
        result = await session.execute(select(Picture.id).where(Picture.name == name))
        return int(result.scalar_one())

    @staticmethod
    async def _ensure_word(session: AsyncSession, word: str) -> int:
        """获取词 id，不存在则创建（同 _ensure_picture）。"""

        await session.execute(
            sqlite_insert(Word).values(word=word).on_conflict_do_nothing(index_elements=["word"])
        )
        result = await session.execute(select(Word.id).where(Word.word == word))
        return int(result.scalar_one())

    @staticmethod
    async def _find_picture_id(session: AsyncSession, name: str) -> Optional[int]:
        result = await session.execute(select(Picture.id).where(Picture.name == name))
        return result.scalar_one_or_none()

    @classmethod
    async def _append(cls, session: AsyncSession, picture: str, word_text: str) -> None:
        picture_id = await cls._ensure_picture(session, picture)
        now_ts = int(time.time())
        for word in word_text.split():
            word_id = await cls._ensure_word(session, word)
            # 已有关联时什么都不做，也不刷新 last_modified
            await session.execute(
                sqlite_insert(PictureWord)
                .values(picture_id=picture_id, word_id=word_id, last_modified=now_ts)
                .on_conflict_do_nothing(index_elements=["picture_id", "word_id"])
            )

    # ==================== 写操作 ====================

    @_storage_errors
    async def append_word(self, picture: str, word_text: str) -> None:
        """给图片追加词（空白分隔）；重复追加同一个词不产生新关联。"""

        async with get_session(self._session_factory) as session:
            await self._append(session, picture, word_text)
            await session.commit()

    @_storage_errors
    async def replace_word(self, picture: str, word_text: str) -> None:
        """删除图片原有的全部词，再设置为给定的词（同一事务）。"""

        async with get_session(self._session_factory) as session:
            picture_id = await self._find_picture_id(session, picture)
            if picture_id is not None:
                await session.execute(
                    delete(PictureWord).where(PictureWord.picture_id == picture_id),
                    execution_options={"synchronize_session": False},
                )
            await self._append(session, picture, word_text)
            await session.commit()

    @_storage_errors
    async def delete_picture(self, picture: str) -> None:
        """删除图片的全部关联；图片不存在时什么都不做。图片行留给 clean 处理。"""

        async with get_session(self._session_factory) as session:
            picture_id = await self._find_picture_id(session, picture)
            if picture_id is None:
                return
            await session.execute(
                delete(PictureWord).where(PictureWord.picture_id == picture_id),
                execution_options={"synchronize_session": False},
            )
            await session.commit()

    @_storage_errors
    async def clean_orphans(self) -> CleanReport:
        """删除没有任何关联的图片与词。"""

        # 批量删除不需要同步会话里的对象，rowcount 即删除行数
        no_sync = {"synchronize_session": False}
        async with get_session(self._session_factory) as session:
            pictures = await session.execute(
                delete(Picture).where(Picture.id.not_in(select(PictureWord.picture_id))),
                execution_options=no_sync,
            )
            words = await session.execute(
                delete(Word).where(Word.id.not_in(select(PictureWord.word_id))),
                execution_options=no_sync,
            )
            await session.commit()
            return CleanReport(pictures=int(pictures.rowcount or 0), words=int(words.rowcount or 0))

    # ==================== 读操作 ====================

    @_storage_errors
    async def query_by_word(self, word: str) -> List[str]:
        """按词查询图片，最多返回两张：

        1. 最近一次关联到该词的图片
        2. 该词下除第 1 张以外随机的一张
        """

        base = (
            select(Picture.name)
            .join(PictureWord, PictureWord.picture_id == Picture.id)
            .join(Word, Word.id == PictureWord.word_id)
            .where(Word.word == word)
        )

        async with get_session(self._session_factory) as session:
            result = await session.execute(
                base.order_by(PictureWord.last_modified.desc(), PictureWord.id.desc()).limit(1)
            )
            latest = result.scalar_one_or_none()
            if latest is None:
                return []

            result = await session.execute(
                base.where(Picture.name != latest).order_by(func.random()).limit(1)
            )
            other = result.scalar_one_or_none()

        return [latest] if other is None else [latest, other]

    @_storage_errors
    async def random_picture(self) -> Optional[str]:
        """从所有有关联的图片中随机取一张；没有图片时返回 None。"""

        async with get_session(self._session_factory) as session:
            result = await session.execute(
                select(Picture.name)
                .where(Picture.id.in_(select(PictureWord.picture_id)))
                .order_by(func.random())
                .limit(1)
            )
            return result.scalar_one_or_none()

    @_storage_errors
    async def list_words_for_picture(self, picture: str) -> str:
        """图片的全部词（按关联先后，空格分隔）；图片不存在或没有词时返回空字符串。"""

        async with get_session(self._session_factory) as session:
            result = await session.execute(
                select(Word.word)
                .join(PictureWord, PictureWord.word_id == Word.id)
                .join(Picture, Picture.id == PictureWord.picture_id)
                .where(Picture.name == picture)
                .order_by(PictureWord.id)
            )
            return " ".join(result.scalars().all())

    @_storage_errors
    async def count_pictures(self) -> int:
        """有关联的图片总数。"""

        async with get_session(self._session_factory) as session:
            result = await session.execute(select(func.count(distinct(PictureWord.picture_id))))
            return int(result.scalar_one() or 0)
