"""数据库模型定义 - SQLAlchemy ORM模型(SQLite数据库的表结构定义)

数据库设计说明:
- 使用SQLite作为存储引擎
- 所有时间戳使用Unix时间戳(整数,秒级)
- 图片只保存不透明的图片标识(消息里 [图片=xxx/] 中的 xxx),不保存图片内容

表结构(共3张表):
1. Picture(图片): 以图片标识为唯一键
2. Word(词): 以词文本为唯一键(区分大小写)
3. PictureWord(关联): 图片与词的多对多关系,同一对(图片,词)最多一条

关键概念:
- 孤立图片/词: 没有任何关联的行,由 clean 命令或定时任务删除
- 最新图片: 按关联的 last_modified 倒序,相同时按关联 id 倒序
"""

from __future__ import annotations

import time

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """ORM 基类 - 所有数据库模型类的父类"""

    pass


class Picture(Base):
    """图片表 - 每个图片标识一行

    - 第一次被打标签时隐式创建,之后不再修改
    - 删除图片只删除其关联,图片行留作清理对象
    """

    __tablename__ = "pictures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String, nullable=False)
    # 图片标识 - 消息中 [图片=xxx/] 的 xxx 部分
    # - 唯一: 并发创建同一图片时由唯一约束保证只有一行

    __table_args__ = (
        UniqueConstraint("name", name="uq_pictures_name"),
    )


class Word(Base):
    """词表 - 每个空白分隔的词一行(区分大小写)"""

    __tablename__ = "words"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    word: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("word", name="uq_words_word"),
    )


class PictureWord(Base):
    """图片与词的关联表

    数据增长:
    - 每次 set/replace 为每个新词增加一行
    - 重复设置同一对(图片,词)不产生新行,也不刷新 last_modified

    索引策略:
    - 唯一约束: (picture_id, word_id)
    - 索引: (word_id, last_modified) - 按词查询最新图片
    """

    __tablename__ = "picture_words"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 关联ID - 自增,last_modified 相同时用于判断先后

    picture_id: Mapped[int] = mapped_column(Integer, ForeignKey("pictures.id"), nullable=False)
    word_id: Mapped[int] = mapped_column(Integer, ForeignKey("words.id"), nullable=False)

    last_modified: Mapped[int] = mapped_column(
        Integer,
        default=lambda: int(time.time()),
        onupdate=lambda: int(time.time()),
    )
    # 关联时间 - "按词查询最新图片"的依据

    __table_args__ = (
        UniqueConstraint("picture_id", "word_id", name="uq_picture_words_pair"),
        Index("idx_pw_word_ts", "word_id", "last_modified"),
    )
