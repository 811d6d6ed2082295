"""コマンドライン（`pill-pal`）のエントリポイント。

設定ファイルの有無を確認し、uvicorn をプログラムから起動する。
"""

from __future__ import annotations


def main() -> None:
    """サーバー起動処理。"""

    # --- 先にディレクトリを確実に作る（初回起動時の事故防止） ---
    from pill_pal import paths

    paths.get_config_dir()
    paths.get_data_dir()
    paths.get_logs_dir()

    # --- 設定ファイルが無い場合は、案内して終了 ---
    config_path = paths.get_default_config_file_path()
    if not config_path.exists():
        print("[PillPal] config/setting.toml が見つかりません。")
        print("[PillPal] config/setting.toml を作成してください。")
        print(f"[PillPal] 期待パス: {config_path}")
        return

    from pill_pal.config import load_config
    from pill_pal.main import create_app

    toml_config = load_config(config_path)
    app = create_app(toml_config)

    import uvicorn

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=toml_config.pillpal_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
