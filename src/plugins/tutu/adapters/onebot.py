"""OneBot v11 入口：事件 -> 入站参数，回复 -> OneBot 消息。

入站：
- GroupMessageEvent  -> Event=ReceiveClusterIM，ExternalId=群号
- PrivateMessageEvent -> Event=ReceiveNormalIM，ExternalId 为空
- 文本段原样拼接；图片段转为 [图片=xxx/]；at 段转为 "[@QQ] "
- NoneBot 会去掉消息开头 @机器人 的段并设置 to_me，这里补回 "[@机器人QQ] " 标记

出站：
- 回复文本中的 [图片=xxx/] 还原为图片段
- 群聊回复用 send_group_msg，私聊用 send_private_msg
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional

from nonebot import logger
from nonebot.adapters.onebot.v11 import (
    Bot,
    Event,
    GroupMessageEvent,
    Message,
    MessageSegment,
    PrivateMessageEvent,
)

from ..command.models import PIC_END, PIC_START, Reply, ReplyKind, build_pic_output
from ..command.pipeline import EVENT_GROUP_MESSAGE, EVENT_PRIVATE_MESSAGE

_PIC_PATTERN = re.compile(re.escape(PIC_START) + r"(.*?)" + re.escape(PIC_END))


class OneBotEventParser:
    @staticmethod
    def render_message(message: Message) -> str:
        """把 OneBot 消息段拼接成带图片/at 标记的文本。"""

        parts = []
        for seg in message:
            if seg.type == "text":
                parts.append(seg.data.get("text", ""))
            elif seg.type == "image":
                # 优先使用文件标识，否则回退到链接
                ref = seg.data.get("file") or seg.data.get("file_id") or seg.data.get("url")
                if ref:
                    parts.append(build_pic_output(str(ref)))
            elif seg.type == "at":
                parts.append(f"[@{seg.data.get('qq')}] ")
            # 其余段（表情、回复等）忽略
        return "".join(parts)

    @staticmethod
    def to_params(event: Event, *, bot_id: str, bot_name: str) -> Optional[Dict[str, str]]:
        """将 OneBot 事件转换为入站参数；非群聊/私聊消息事件返回 None。"""

        if isinstance(event, GroupMessageEvent):
            event_type = EVENT_GROUP_MESSAGE
            group_id = str(event.group_id)
        elif isinstance(event, PrivateMessageEvent):
            event_type = EVENT_PRIVATE_MESSAGE
            group_id = ""
        else:
            return None

        text = OneBotEventParser.render_message(event.message)
        if group_id and event.to_me:
            text = f"[@{bot_id}] {text}"

        return {
            "Event": event_type,
            "Message": text,
            "QQ": str(event.user_id),
            "ExternalId": group_id,
            "RobotQQ": str(bot_id),
            "Name": bot_name,
        }


class ReplySender:
    """将回复发送到聊天窗口。"""

    @staticmethod
    def build_message(text: str) -> Message:
        """把回复文本还原成 OneBot 消息（图片标记 -> 图片段）。"""

        message = Message()
        pos = 0
        for match in _PIC_PATTERN.finditer(text):
            if match.start() > pos:
                message.append(MessageSegment.text(text[pos:match.start()]))
            message.append(MessageSegment.image(match.group(1)))
            pos = match.end()
        if pos < len(text):
            message.append(MessageSegment.text(text[pos:]))
        return message

    @staticmethod
    async def send(bot: Bot, replies: Iterable[Reply]) -> int:
        """按顺序发送回复，返回发送成功的条数；单条失败只记录日志。"""

        sent = 0
        for reply in replies:
            message = ReplySender.build_message(reply.text)
            try:
                if reply.kind is ReplyKind.GROUP_MESSAGE:
                    await bot.send_group_msg(group_id=int(reply.target_id), message=message)
                else:
                    await bot.send_private_msg(user_id=int(reply.target_id), message=message)
                sent += 1
            except Exception as exc:
                logger.warning(f"发送回复失败：target={reply.target_id} {exc}")
        return sent
