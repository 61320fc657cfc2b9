"""tutu 插件入口。

职责：
- 组装 会话存储 / 图片标签仓储 / 分类器 / 分发器 / 流水线
- 启动时初始化数据库（优先 migrations，失败再兜底 create_all）与定时任务
- 注册两个入口：HTTP 表单回调、OneBot v11 消息事件
"""

from __future__ import annotations

from nonebot import get_driver, logger, on_message
from nonebot.adapters.onebot.v11 import Bot, Event
from nonebot.drivers import ASGIMixin
from nonebot.plugin import PluginMetadata

from .adapters.callback import CallbackEndpoint
from .adapters.onebot import OneBotEventParser, ReplySender
from .command.classifier import MessageClassifier
from .command.dispatcher import Dispatcher
from .command.pipeline import MessagePipeline
from .config import Config, plugin_config
from .policy.roles import StaticAdminRoles
from .scheduler.jobs import init_scheduler
from .session.store import SessionStore
from .storage.migrations_runner import run_migrations
from .storage.repositories.picture_repo import PictureRepository
from .storage.sqlalchemy_engine import engine

__plugin_meta__ = PluginMetadata(
    name="tutu",
    description="给图片打标签，按词找图",
    usage="群里 @tutu help 查看命令",
    type="application",
    config=Config,
    supported_adapters={"~onebot.v11"},
)

driver = get_driver()

sessions = SessionStore()
repository = PictureRepository()
roles = StaticAdminRoles(plugin_config.tutu_admins)
pipeline = MessagePipeline(MessageClassifier(roles), Dispatcher(sessions, repository))
callback = CallbackEndpoint(pipeline)

if plugin_config.tutu_enable_callback:
    if isinstance(driver, ASGIMixin):
        driver.setup_http_server(callback.server_setup(plugin_config.tutu_callback_path))
        logger.info(f"已注册 HTTP 回调：POST {plugin_config.tutu_callback_path}")
    else:
        logger.warning(f"当前驱动器 {driver.type} 不支持 HTTP 服务，HTTP 回调未启用")


@driver.on_startup
async def startup() -> None:
    """NoneBot 启动时执行：初始化数据库与定时任务。"""

    try:
        try:
            applied = await run_migrations()
            if applied:
                logger.info(f"已应用 migrations：{', '.join(applied)}")
        except Exception as exc:
            logger.warning(f"执行 migrations 失败，将回退为 create_all：{exc}")
            async with engine.begin() as conn:
                from .storage.models import Base

                await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:
        logger.error(f"初始化数据库失败：{exc}")
        raise

    init_scheduler(repository)


@driver.on_shutdown
async def shutdown() -> None:
    await engine.dispose()


matcher = on_message(priority=10, block=False)


@matcher.handle()
async def handle_message(bot: Bot, event: Event) -> None:
    """处理单条 OneBot 入站消息。"""

    if not plugin_config.tutu_enable_onebot:
        return

    params = OneBotEventParser.to_params(
        event,
        bot_id=str(bot.self_id),
        bot_name=plugin_config.tutu_bot_name,
    )
    if params is None:
        return

    replies = await pipeline.handle(params)
    if replies:
        await ReplySender.send(bot, replies)
