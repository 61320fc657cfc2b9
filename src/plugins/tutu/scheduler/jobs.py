"""定时任务注册（apscheduler）。"""

from __future__ import annotations

from nonebot import logger, require

require("nonebot_plugin_apscheduler")
from nonebot_plugin_apscheduler import scheduler

from ..config import plugin_config
from ..storage.repositories.picture_repo import PictureRepository

_inited = False


async def clean_orphans_job(repository: PictureRepository) -> None:
    """删除孤立图片/词；失败只记录日志，等待下一次执行。"""

    try:
        report = await repository.clean_orphans()
    except Exception as exc:
        logger.error(f"定时清理失败：{exc}")
        return
    logger.info(f"定时清理完成：{report}")


def init_scheduler(repository: PictureRepository) -> None:
    """初始化定时任务。tutu_clean_hour 不在 0-23 时不注册。"""

    global _inited
    if _inited:
        return
    _inited = True

    hour = plugin_config.tutu_clean_hour
    if not 0 <= hour <= 23:
        return

    scheduler.add_job(
        clean_orphans_job,
        "cron",
        hour=hour,
        minute=0,
        args=(repository,),
        id="tutu_daily_clean_orphans",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=3600,
    )
    logger.info(f"已注册每日 {hour:02d}:00 清理孤立图片")
