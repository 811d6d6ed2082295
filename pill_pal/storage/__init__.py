"""ローカル保存（pillpal.db）パッケージ。"""

from __future__ import annotations
