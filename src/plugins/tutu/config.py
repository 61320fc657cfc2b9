"""配置管理模块 - 加载和管理 tutu 插件的所有配置项

这个模块的作用:
1. 定义所有配置项的数据结构(Config类)
2. 从多个来源加载配置(配置文件、NoneBot配置)
3. 提供配置项的默认值和类型转换

配置加载机制:
- 配置来源(按优先级从低到高):
  1. 代码中的默认值(Config类中的default参数)
  2. configs/config.toml文件中的[tutu]段
  3. NoneBot的全局配置(如.env文件)

- 配置键名规则:
  - 在代码中使用: tutu_xxx (如 tutu_database_url)
  - 在config.toml中使用: xxx (如 database_url)
  - 通过alias机制实现自动映射

配置文件查找顺序:
1. 环境变量TUTU_CONFIG_TOML指定的路径
2. 当前工作目录下的configs/config.toml
3. 从当前文件向上查找父目录中的configs/config.toml

使用方式:
```python
from .config import plugin_config

database_url = plugin_config.tutu_database_url
```
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from nonebot import get_driver
from nonebot import logger
from nonebot.compat import model_dump
from pydantic.v1 import BaseModel, Extra, Field, validator


class Config(BaseModel):
    """插件配置模型

    配置项分类:
    1. 权限配置: 管理员QQ号
    2. 机器人身份: 群里被@时使用的显示名
    3. 数据库配置: SQLite连接信息
    4. 入口配置: HTTP回调 / OneBot消息
    5. 定时任务: 每日清理孤立图片
    """

    # ==================== 权限配置 ====================

    tutu_admins: List[str] = Field(default_factory=list, alias="admins")
    # 管理员QQ号列表
    # - 作用: 私聊时只有管理员可以使用命令(delete/replace/info/count/clean)
    # - 默认值: [] (为空时回退使用NoneBot的SUPERUSERS)
    # - 示例: ["280710651"]

    # ==================== 机器人身份 ====================

    tutu_bot_name: str = Field(default="tutu", alias="bot_name")
    # 机器人在群里的显示名
    # - 作用: 识别"@tutu "形式的@消息
    # - 默认值: "tutu"

    # ==================== 数据库配置 ====================

    tutu_database_url: str = Field(
        default="sqlite+aiosqlite:///data/tutu.db",
        alias="database_url",
    )
    # 数据库连接URL
    # - 格式: "sqlite+aiosqlite:///<路径>"
    # - 存储内容: 图片、词、图片与词的关联

    tutu_sqlite_busy_timeout_ms: int = Field(default=3000, alias="sqlite_busy_timeout_ms")
    # SQLite忙碌超时时间(毫秒)
    # - 作用: 数据库被锁定时等待的最长时间

    # ==================== 入口配置 ====================

    tutu_enable_callback: bool = Field(default=True, alias="enable_callback")
    # 是否注册HTTP回调入口(兼容旧版机器人框架的表单回调)
    # - 需要NoneBot使用支持HTTP服务的驱动器(如 ~fastapi)

    tutu_callback_path: str = Field(default="/tutu", alias="callback_path")
    # HTTP回调路径

    tutu_enable_onebot: bool = Field(default=True, alias="enable_onebot")
    # 是否处理OneBot v11消息事件

    # ==================== 定时任务 ====================

    tutu_clean_hour: int = Field(default=-1, alias="clean_hour")
    # 每日自动清理孤立图片/词的执行时间点
    # - 取值: 0-23 表示每天该小时执行; -1 表示不启用

    @validator("tutu_admins", pre=True)
    def _admins_as_strings(cls, value: Any) -> Any:
        """QQ号统一为字符串,允许在配置中写成整数或单个值。"""
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        return [str(v).strip() for v in value if str(v).strip()]

    @validator("tutu_callback_path")
    def _callback_path_leading_slash(cls, value: str) -> str:
        value = (value or "").strip() or "/tutu"
        return value if value.startswith("/") else f"/{value}"

    class Config:
        extra = Extra.ignore
        allow_population_by_field_name = True


def _discover_config_toml() -> Optional[Path]:
    """查找config.toml配置文件的位置,找不到返回None。"""

    env_path = (os.getenv("TUTU_CONFIG_TOML") or "").strip()
    if env_path:
        path = Path(env_path)
        if path.exists() and path.is_file():
            return path

    cwd_path = Path.cwd() / "configs" / "config.toml"
    if cwd_path.exists() and cwd_path.is_file():
        return cwd_path

    here = Path(__file__).resolve()
    for parent in here.parents:
        candidate = parent / "configs" / "config.toml"
        if candidate.exists() and candidate.is_file():
            return candidate

    return None


def _read_toml_section(path: Path) -> Dict[str, Any]:
    """读取config.toml中的[tutu]段,段不存在时返回空字典。"""

    try:
        import tomllib  # Python 3.11+自带
    except Exception:  # pragma: no cover
        import tomli as tomllib  # type: ignore[no-redef]

    data = tomllib.loads(path.read_text(encoding="utf-8"))
    section = data.get("tutu")
    return section if isinstance(section, dict) else {}


def _is_blank(value: Any) -> bool:
    """None、空字符串、空列表视为"未配置"。"""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set)):
        return not value
    return False


def load_config() -> Config:
    """加载插件配置并返回Config对象

    配置合并规则:
    - NoneBot全局配置优先
    - 配置文件只填补未配置的项(不存在、None、空字符串、空列表)
    - tutu_admins为空时回退使用NoneBot的SUPERUSERS

    Side Effects:
        - 调用get_driver()访问NoneBot驱动器(测试环境未初始化时跳过)
        - 读取配置文件(如果存在)
        - 输出配置加载日志
    """

    driver_cfg = None
    try:
        driver_cfg = get_driver().config
    except Exception:
        driver_cfg = None

    raw: dict = {}
    if driver_cfg is not None:
        try:
            raw.update(model_dump(driver_cfg))
        except Exception:
            pass

        section = getattr(driver_cfg, "tutu", None)
        if isinstance(section, dict):
            raw.update(section)

    path = _discover_config_toml()
    if path:
        try:
            for k, v in _read_toml_section(path).items():
                # 统一写成字段原名,避免 alias 在 pydantic 中优先于字段原名而覆盖全局配置
                field_key = k if k.startswith("tutu_") else f"tutu_{k}"
                existing = raw.get(field_key, raw.get(k))
                if _is_blank(existing):
                    raw.pop(k, None)
                    raw[field_key] = v
        except Exception as e:
            logger.warning(f"读取配置文件失败:{path},{e}")

    cfg = Config.parse_obj(raw)

    if not cfg.tutu_admins:
        superusers = raw.get("superusers") or []
        cfg.tutu_admins = sorted(str(u) for u in superusers)

    logger.info(
        "tutu 配置加载完成:admins={} database_url={} callback={} onebot={} clean_hour={} config_file={}",
        len(cfg.tutu_admins),
        cfg.tutu_database_url,
        cfg.tutu_callback_path if cfg.tutu_enable_callback else "未启用",
        cfg.tutu_enable_onebot,
        cfg.tutu_clean_hour,
        str(path) if path else "未发现/未使用",
    )

    return cfg


# 模块级全局变量: 在模块导入时立即加载配置
plugin_config = load_config()
