"""サインイン（電話番号 + 確認コード）の認証プロバイダ。"""
