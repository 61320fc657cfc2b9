"""权限查询：判断发送者是否为管理员。

分类器只依赖 RoleResolver 协议，替换为白名单、按群管理员等方案时无需修改分类器。
"""

from __future__ import annotations

from typing import Iterable, Protocol


class RoleResolver(Protocol):
    """权限查询协议。"""

    def is_admin(self, user_id: str) -> bool:
        ...


class StaticAdminRoles:
    """固定管理员列表（来自配置 tutu_admins / SUPERUSERS）。"""

    def __init__(self, admin_ids: Iterable[str]) -> None:
        self._admins = frozenset(str(uid).strip() for uid in admin_ids if str(uid).strip())

    def is_admin(self, user_id: str) -> bool:
        return bool(user_id) and str(user_id) in self._admins

    def __repr__(self) -> str:
        return f"StaticAdminRoles(admins={len(self._admins)})"
