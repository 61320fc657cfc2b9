"""
Tests for the scheduled orphan cleanup
"""
import pytest
from nonebot_plugin_apscheduler import scheduler

from tutu.scheduler.jobs import clean_orphans_job


class FailingRepository:
    async def clean_orphans(self):
        raise RuntimeError("database is locked")


@pytest.mark.asyncio
async def test_clean_orphans_job(repository):
    await repository.append_word("P1", "cat")
    await repository.delete_picture("P1")

    await clean_orphans_job(repository)

    assert str(await repository.clean_orphans()) == "pic=0 word=0"


@pytest.mark.asyncio
async def test_clean_orphans_job_swallows_failures():
    await clean_orphans_job(FailingRepository())


def test_cleanup_job_not_registered_when_disabled():
    assert scheduler.get_job("tutu_daily_clean_orphans") is None
