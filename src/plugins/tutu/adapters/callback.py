"""HTTP 回调入口 - 兼容旧版机器人框架的表单回调

协议说明:
- 请求: POST,body 为 application/x-www-form-urlencoded(UTF-8)
  关键字段: Event / Message / QQ / ExternalId / RobotQQ / Name
- 响应: 200,每条回复一行
  "<&&>{SendMessage|SendClusterMessage}<&>{目标QQ/群号}<&>{文本}\\r\\n"
  没有回复时 body 为空

通过 NoneBot 驱动器的 HTTPServerSetup 注册,需要支持 HTTP 服务的驱动器(如 ~fastapi)。
"""

from __future__ import annotations

from typing import Dict, Iterable, Union
from urllib.parse import parse_qsl

from nonebot import logger
from nonebot.drivers import URL, HTTPServerSetup
from nonebot.drivers import Request as HTTPRequest
from nonebot.drivers import Response as HTTPResponse

from ..command.models import Reply
from ..command.pipeline import MessagePipeline


def parse_form(body: Union[str, bytes, None]) -> Dict[str, str]:
    """解析表单 body,保留空值(私聊时 ExternalId 为空)。"""

    if not body:
        return {}
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return dict(parse_qsl(body, keep_blank_values=True))


def render_replies(replies: Iterable[Reply]) -> str:
    return "".join(
        f"<&&>{reply.kind.value}<&>{reply.target_id}<&>{reply.text}\r\n" for reply in replies
    )


class CallbackEndpoint:
    """把 HTTP 回调请求交给消息流水线处理。"""

    def __init__(self, pipeline: MessagePipeline) -> None:
        self.pipeline = pipeline

    async def handle(self, request: HTTPRequest) -> HTTPResponse:
        try:
            params = parse_form(request.content)
            replies = await self.pipeline.handle(params)
        except Exception:
            # 仍返回 200,避免平台重复投递同一事件
            logger.exception("处理 HTTP 回调失败")
            return HTTPResponse(200, content="")

        return HTTPResponse(
            200,
            headers={"Content-Type": "text/plain; charset=utf-8"},
            content=render_replies(replies),
        )

    def server_setup(self, path: str) -> HTTPServerSetup:
        return HTTPServerSetup(
            path=URL(path),
            method="POST",
            name="tutu_callback",
            handle_func=self.handle,
        )
