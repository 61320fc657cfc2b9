"""消息处理流水线：事件过滤 -> 分类 -> 分发。HTTP 回调与 OneBot 入口共用。"""

from __future__ import annotations

from typing import List, Mapping

from nonebot import logger

from .classifier import MessageClassifier
from .dispatcher import Dispatcher
from .models import Reply

EVENT_PRIVATE_MESSAGE = "ReceiveNormalIM"
EVENT_GROUP_MESSAGE = "ReceiveClusterIM"
MESSAGE_EVENTS = frozenset({EVENT_PRIVATE_MESSAGE, EVENT_GROUP_MESSAGE})
SILENT_EVENTS = frozenset({"KeepAlive", "StatusChanged"})


class MessagePipeline:
    """处理一次入站事件，返回需要发送的回复。"""

    def __init__(self, classifier: MessageClassifier, dispatcher: Dispatcher) -> None:
        self.classifier = classifier
        self.dispatcher = dispatcher

    async def handle(self, params: Mapping[str, str]) -> List[Reply]:
        event = params.get("Event")
        if not event or event in SILENT_EVENTS:
            return []
        if event not in MESSAGE_EVENTS:
            logger.warning(f"Unknown event: {event}, params: {dict(params)}")
            return []

        request = self.classifier.classify(params)
        logger.debug(
            f"分类结果：{request.kind.value} sender={request.sender_id} "
            f"group={request.group_id or '-'} pic={request.picture or '-'} word={request.word or '-'}"
        )
        return await self.dispatcher.dispatch(request)
