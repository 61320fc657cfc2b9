"""help / about 等固定回复文本。"""

from __future__ import annotations

VERSION = "4.0"

_USER_COMMANDS = """* help
  显示本说明
* 直接发文字
  查询包含指定文字的图片
* set 字符串
  设置前一张图片对应的文字
* set [图片] 字符串 或 set 字符串 [图片]
  设置指定图片对应的文字
* random
  随机输出一张图片
* about
  显示版本说明"""

_ADMIN_COMMANDS = """* replace 字符串
  替换一张图片对应的文字（set命令是追加）
* delete [图片]
  从数据库中删除指定的图片信息
* info [图片]
  查询一张图片下挂的所有词
* count
  查询现存的图片总数
* clean
  删除掉没有被引用的图片和词"""

HELP = f"""tutu bot v{VERSION}
=============
{_USER_COMMANDS}
"""

HELP_ADMIN = f"""tutu bot admin commands
=======================
{_USER_COMMANDS}

{_ADMIN_COMMANDS}
"""

ABOUT = f"""about tutu
==========
v{VERSION} python nonebot2
2018-09-23 v3.0 rust
2017-08-13 v2.0 spring-boot
2017-05-21 v1.0 python
"""
