"""插件内的异常类型。

命令处理失败时不会中断进程:分发器把异常转换成一条 "<命令> fail: <原因>" 回复。
"""

from __future__ import annotations


class TutuError(Exception):
    """插件异常基类。"""


class StorageError(TutuError):
    """数据库访问失败,消息保留底层错误原文。"""


class InvalidCommandError(TutuError):
    """命令缺少图片/文字,或查询没有结果。不重试。"""

    NO_PIC = "no pic"
    NO_TEXT = "no text"
    NOT_FOUND = "not found"
    DB_EMPTY = "db empty"
