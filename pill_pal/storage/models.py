"""
pillpal.db のORMモデル定義
"""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from pill_pal.storage.db import StorageBase


class KvBlob(StorageBase):
    """キーごとの保存値（JSON文字列またはカウンタ文字列）。"""

    __tablename__ = "kv_blobs"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)
