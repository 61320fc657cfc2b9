"""命令请求与回复的数据结构。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# 消息中图片的标记格式：[图片=xxx/]
PIC_START = "[图片="
PIC_END = "/]"


def build_pic_output(picture: str) -> str:
    """把图片标识包装成可发送的图片标记。"""

    return f"{PIC_START}{picture}{PIC_END}"


class RequestKind(str, Enum):
    """分类后的命令类型。"""

    IGNORE = "ignore"

    HELP = "help"
    HELP_ADMIN = "help_admin"
    ABOUT = "about"
    RECORD_PREV_IMAGE = "record_prev_image"
    SET = "set"
    QUERY = "query"
    RANDOM = "random"

    # 以下仅管理员私聊可用
    DELETE = "delete"
    REPLACE = "replace"
    INFO = "info"
    COUNT = "count"
    CLEAN = "clean"


@dataclass(frozen=True)
class Request:
    """一条入站消息分类后的命令。

    picture 为空时，分发器会使用会话中记录的上一张图片。
    """

    kind: RequestKind
    sender_id: str = ""
    group_id: str = ""
    is_in_group: bool = False
    picture: str = ""
    word: str = ""

    @property
    def session_key(self) -> str:
        return f"g{self.group_id}" if self.is_in_group else self.sender_id

    @classmethod
    def ignore(cls) -> "Request":
        return cls(kind=RequestKind.IGNORE)


class ReplyKind(str, Enum):
    """回复方式；值为回调协议中的名称。"""

    DIRECT_MESSAGE = "SendMessage"
    GROUP_MESSAGE = "SendClusterMessage"


@dataclass(frozen=True)
class Reply:
    """一条待发送的回复。"""

    kind: ReplyKind
    target_id: str
    text: str

    @classmethod
    def for_request(cls, request: Request, text: str) -> "Reply":
        """群聊请求回复到群，私聊请求回复给发送者。"""

        if request.is_in_group:
            return cls(kind=ReplyKind.GROUP_MESSAGE, target_id=request.group_id, text=text)
        return cls(kind=ReplyKind.DIRECT_MESSAGE, target_id=request.sender_id, text=text)
