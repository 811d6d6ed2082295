"""PillPal 起動スクリプト。

開発時の手動起動を想定する。
インストール後は `pill-pal` コマンド（[pill_pal/entrypoint.py]）を使う。
"""

from __future__ import annotations


def main() -> None:
    """uvicorn で FastAPI アプリを起動する。"""

    import uvicorn

    # --- setting.toml から待受ポートを取得する ---
    from pill_pal.config import load_config

    toml_config = load_config()

    # --- 開発用: コード変更を自動でリロードする（factory で毎回アプリを作る） ---
    uvicorn.run(
        "pill_pal.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=toml_config.pillpal_port,
        reload=True,
    )


if __name__ == "__main__":
    main()
