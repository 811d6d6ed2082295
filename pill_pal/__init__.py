"""PillPal: 服薬管理とリマインダーのローカルサービス。"""

__version__ = "0.1.0"
