"""薬品情報の自動入力（LLM による推定と、1日あたりの利用回数制限）。"""
