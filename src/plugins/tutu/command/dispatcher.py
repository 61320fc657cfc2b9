"""命令分发器 - 执行分类后的请求,生成回复

这个模块的作用:
1. 在会话锁内读取会话,请求未带图片时沿用会话中的上一张图片
2. 按请求类型调用图片标签仓储
3. 把结果或失败原因转换为回复文本(群聊回群,私聊回发送者)

"上一张图片"机制:
- 群里先发一张图片(RecordPrevImage,不回复)
- 再 "@tutu set 可爱" 时消息里没有图片,就使用会话记录的那张

回复数量:
- Ignore / RecordPrevImage: 0 条
- Query: 找到几张图片就回复几条(最多 2 条)
- 其余命令: 1 条

失败处理:
- InvalidCommandError(缺图片/缺文字/无结果)与 StorageError(数据库失败)
  都转换为一条 "<命令> fail: <原因>" 回复,不中断后续消息处理
"""

from __future__ import annotations

from dataclasses import replace
from typing import Awaitable, Callable, Dict, List

from nonebot import logger

from ..exceptions import InvalidCommandError, StorageError
from ..session.store import ChatSession, SessionStore
from ..storage.repositories.picture_repo import PictureRepository
from . import texts
from .models import Reply, Request, RequestKind, build_pic_output

Handler = Callable[[Request], Awaitable[List[str]]]


def _require_picture(request: Request) -> None:
    if not request.picture:
        raise InvalidCommandError(InvalidCommandError.NO_PIC)


def _require_text(request: Request) -> None:
    if not request.word:
        raise InvalidCommandError(InvalidCommandError.NO_TEXT)


class Dispatcher:
    """根据 Request 类型执行命令。"""

    def __init__(self, sessions: SessionStore, repository: PictureRepository) -> None:
        self.sessions = sessions
        self.repository = repository
        self._handlers: Dict[RequestKind, Handler] = {
            RequestKind.HELP: self._help,
            RequestKind.HELP_ADMIN: self._help_admin,
            RequestKind.ABOUT: self._about,
            RequestKind.SET: self._set,
            RequestKind.QUERY: self._query,
            RequestKind.RANDOM: self._random,
            RequestKind.DELETE: self._delete,
            RequestKind.REPLACE: self._replace,
            RequestKind.INFO: self._info,
            RequestKind.COUNT: self._count,
            RequestKind.CLEAN: self._clean,
        }

    async def dispatch(self, request: Request) -> List[Reply]:
        """执行一条请求,返回按顺序发送的回复列表。"""

        if request.kind is RequestKind.IGNORE:
            return []

        key = request.session_key
        async with self.sessions.lock(key):
            session = self.sessions.get_or_create(key)
            if not request.picture and session.last_image:
                request = replace(request, picture=session.last_image)

            if request.kind is RequestKind.RECORD_PREV_IMAGE:
                self._record_prev_image(key, session, request)
                return []

            lines = await self._run(request)

        return [Reply.for_request(request, text) for text in lines]

    def _record_prev_image(self, key: str, session: ChatSession, request: Request) -> None:
        if request.picture and request.picture != session.last_image:
            self.sessions.set_last_image(key, request.picture)
            logger.debug(f"会话 {key} 记录图片：{request.picture}")

    async def _run(self, request: Request) -> List[str]:
        command = request.kind.value
        handler = self._handlers[request.kind]
        try:
            return await handler(request)
        except InvalidCommandError as exc:
            return [f"{command} fail: {exc}"]
        except StorageError as exc:
            logger.error(f"{command} 执行失败：{exc}")
            return [f"{command} fail: {exc}"]

    # ==================== 固定文本 ====================

    async def _help(self, request: Request) -> List[str]:
        return [texts.HELP]

    async def _help_admin(self, request: Request) -> List[str]:
        return [texts.HELP_ADMIN]

    async def _about(self, request: Request) -> List[str]:
        return [texts.ABOUT]

    # ==================== 标签命令 ====================

    async def _set(self, request: Request) -> List[str]:
        _require_picture(request)
        _require_text(request)
        await self.repository.append_word(request.picture, request.word)
        return ["set ok"]

    async def _query(self, request: Request) -> List[str]:
        _require_text(request)
        pictures = await self.repository.query_by_word(request.word)
        if not pictures:
            raise InvalidCommandError(InvalidCommandError.NOT_FOUND)
        return [build_pic_output(p) for p in pictures]

    async def _random(self, request: Request) -> List[str]:
        picture = await self.repository.random_picture()
        if not picture:
            raise InvalidCommandError(InvalidCommandError.DB_EMPTY)
        return [build_pic_output(picture)]

    # ==================== 管理命令 ====================

    async def _delete(self, request: Request) -> List[str]:
        _require_picture(request)
        await self.repository.delete_picture(request.picture)
        return ["delete ok"]

    async def _replace(self, request: Request) -> List[str]:
        _require_picture(request)
        _require_text(request)
        await self.repository.replace_word(request.picture, request.word)
        return ["replace ok"]

    async def _info(self, request: Request) -> List[str]:
        _require_picture(request)
        words = await self.repository.list_words_for_picture(request.picture)
        if not words:
            raise InvalidCommandError(InvalidCommandError.NOT_FOUND)
        return [f"info ok: {words}"]

    async def _count(self, request: Request) -> List[str]:
        count = await self.repository.count_pictures()
        return [f"count ok: pic={count}"]

    async def _clean(self, request: Request) -> List[str]:
        report = await self.repository.clean_orphans()
        logger.info(f"clean 完成：{report}")
        return [f"clean ok: {report}"]
