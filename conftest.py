"""
Pytest configuration and fixtures
"""
from typing import Dict

import nonebot
import pytest
import pytest_asyncio
from nonebot.adapters.onebot.v11 import Adapter as OneBotV11Adapter
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

ADMIN_ID = "10000"
BOT_ID = "99999"
BOT_NAME = "tutu"


def pytest_configure(config):
    # 插件模块导入时需要已初始化的 NoneBot 驱动器
    nonebot.init(
        driver="~fastapi",
        superusers={ADMIN_ID},
        tutu_database_url="sqlite+aiosqlite://",
        tutu_bot_name=BOT_NAME,
    )
    nonebot.get_driver().register_adapter(OneBotV11Adapter)
    nonebot.load_plugin("tutu")


def make_params(
    message: str,
    *,
    sender: str = "20001",
    group: str = "",
    event: str = "",
) -> Dict[str, str]:
    """构造一次入站事件的参数映射（与 HTTP 回调表单字段一致）。"""
    return {
        "Event": event or ("ReceiveClusterIM" if group else "ReceiveNormalIM"),
        "Message": message,
        "QQ": sender,
        "ExternalId": group,
        "RobotQQ": BOT_ID,
        "Name": BOT_NAME,
    }


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite with the plugin schema"""
    from tutu.storage.models import Base

    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def repository(session_factory):
    from tutu.storage.repositories.picture_repo import PictureRepository

    return PictureRepository(session_factory)


@pytest.fixture
def sessions():
    from tutu.session.store import SessionStore

    return SessionStore()


@pytest.fixture
def dispatcher(sessions, repository):
    from tutu.command.dispatcher import Dispatcher

    return Dispatcher(sessions, repository)


@pytest.fixture
def classifier():
    from tutu.command.classifier import MessageClassifier
    from tutu.policy.roles import StaticAdminRoles

    return MessageClassifier(StaticAdminRoles([ADMIN_ID]))


@pytest.fixture
def pipeline(classifier, dispatcher):
    from tutu.command.pipeline import MessagePipeline

    return MessagePipeline(classifier, dispatcher)
