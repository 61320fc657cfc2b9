"""会话状态：记录每个会话最近出现的一张图片。

会话键：群聊为 "g<群号>"，私聊为发送者QQ号。
会话在第一次访问时创建，进程存活期间一直保留（不淘汰，数量随会话数增长）。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict


@dataclass
class ChatSession:
    """单个会话的状态。"""

    last_image: str = ""


class SessionStore:
    """会话存储，每个会话键一把锁。

    同一会话的请求在锁内串行执行（读会话 -> 处理 -> 写会话），
    不同会话之间互不阻塞。
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, ChatSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get_or_create(self, key: str) -> ChatSession:
        session = self._sessions.get(key)
        if session is None:
            session = ChatSession()
            self._sessions[key] = session
        return session

    def set_last_image(self, key: str, token: str) -> None:
        self.get_or_create(key).last_image = token

    def lock(self, key: str) -> asyncio.Lock:
        """获取会话键对应的锁（不存在则创建）。"""

        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions
