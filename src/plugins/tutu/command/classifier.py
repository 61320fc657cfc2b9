"""消息分类器 - 将入站参数解析为命令请求

处理流程:
1. 忽略机器人自己发出的消息
2. 判断群聊/私聊(ExternalId 非空即群聊)
3. 群聊: 识别并去掉 "[@机器人QQ] " / "@机器人名 " 标记
4. 提取图片标记 [图片=xxx/],剩余文字拆成 命令 + 参数
5. 按场景匹配命令表

命令表:
- 群聊且@机器人: help / about / set / random
- 群聊未@机器人: 只记录图片,从不回复
- 私聊管理员: help(管理员版) / about / set / random / delete / replace / info / count / clean
- 私聊非管理员: 忽略
- 未识别的命令: 没有图片时把这个词当作查询词,有图片时只记录图片

入站参数(与回调表单一致):
- Message: 原始消息文本
- QQ: 发送者QQ号
- ExternalId: 群号,私聊为空
- RobotQQ: 机器人QQ号
- Name: 机器人显示名
"""

from __future__ import annotations

from typing import Dict, Mapping, Tuple

from ..policy.roles import RoleResolver
from .models import PIC_END, PIC_START, Request, RequestKind

GROUP_COMMANDS: Dict[str, RequestKind] = {
    "help": RequestKind.HELP,
    "about": RequestKind.ABOUT,
    "set": RequestKind.SET,
    "random": RequestKind.RANDOM,
}

ADMIN_COMMANDS: Dict[str, RequestKind] = {
    "help": RequestKind.HELP_ADMIN,
    "about": RequestKind.ABOUT,
    "set": RequestKind.SET,
    "random": RequestKind.RANDOM,
    "delete": RequestKind.DELETE,
    "replace": RequestKind.REPLACE,
    "info": RequestKind.INFO,
    "count": RequestKind.COUNT,
    "clean": RequestKind.CLEAN,
}


def parse_pics(message: str) -> Tuple[str, str]:
    """提取图片标记,返回 (最后一张图片标识, 去掉全部图片标记后的文字)。

    注意: 第一个 "/]" 出现在第一个 "[图片=" 之前时,直接丢弃剩余全部文字,
    只保留已经提取到的图片。这是旧版解析循环遗留的怪异行为,保持兼容,不要"修正"。
    """

    image = ""
    text = message
    while PIC_START in text and PIC_END in text:
        pos_start = text.find(PIC_START)
        pos_end = text.find(PIC_END)

        if pos_end < pos_start:
            return image, ""

        image = text[pos_start + len(PIC_START):pos_end]
        text = text[:pos_start] + text[pos_end + len(PIC_END):]

    return image, text


def parse_cmd(text: str) -> Tuple[str, str]:
    """拆分 命令 与 参数:第一个空白分隔的词是命令,其余部分(去首尾空白)是参数。"""

    parts = text.strip().split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1].strip()


class MessageClassifier:
    """将一次入站事件的参数映射分类为 Request。"""

    def __init__(self, roles: RoleResolver) -> None:
        self.roles = roles

    def classify(self, params: Mapping[str, str]) -> Request:
        message = params.get("Message") or ""
        sender_id = params.get("QQ") or ""
        group_id = params.get("ExternalId") or ""
        bot_self_id = params.get("RobotQQ") or ""
        bot_self_name = params.get("Name") or ""

        # 忽略机器人自己的消息
        if bot_self_id == sender_id:
            return Request.ignore()

        is_in_group = bool(group_id)
        is_someone_at_bot = False
        if is_in_group:
            at_id = f"[@{bot_self_id}] "
            at_name = f"@{bot_self_name} "
            if at_id in message or at_name in message:
                is_someone_at_bot = True
                message = message.replace(at_id, "").replace(at_name, "")

        pic, text = parse_pics(message)
        cmd, word = parse_cmd(text)

        if is_in_group:
            if is_someone_at_bot:
                kind = GROUP_COMMANDS.get(cmd)
            else:
                kind = RequestKind.RECORD_PREV_IMAGE
        elif self.roles.is_admin(sender_id):
            kind = ADMIN_COMMANDS.get(cmd)
        else:
            return Request.ignore()

        if kind is None:
            if pic:
                kind = RequestKind.RECORD_PREV_IMAGE
            else:
                # 未识别的"命令"其实是查询词
                kind = RequestKind.QUERY
                word = cmd

        return Request(
            kind=kind,
            sender_id=sender_id,
            group_id=group_id,
            is_in_group=is_in_group,
            picture=pic,
            word=word,
        )
