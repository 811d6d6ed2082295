"""
薬品情報の自動入力サービス

薬品名や短い説明から、LLM に薬品の詳細（ブランド・成分・規格・適応・用法）を推定させ、
入力中のフォーム（Medicine）へマージして返す。

方針:
    - 1日の上限に達していたら、上流（LLM）は呼ばずに QuotaExceededError。
    - 上流の失敗（通信・タイムアウト・JSON不正）はすべて UpstreamFailureError に揃える。
    - 成功したときだけカウンタを進める。
    - フォームの id は上書きしない。
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Protocol

from pill_pal.autofill.quota import DailyUsageCounter
from pill_pal.errors import QuotaExceededError, UpstreamFailureError, ValidationError
from pill_pal.llm_client import LlmRequestPurpose
from pill_pal.records.models import Medicine


logger = logging.getLogger(__name__)


# LLM 応答のキー -> Medicine のフィールド
_FIELD_MAP = {
    "name": "name",
    "brand": "brand",
    "ingredients": "ingredients",
    "specs": "specs",
    "indications": "indications",
    "usage": "usage",
    "expiryDate": "expiry_date",
}

_INPUT_MAX_CHARS = 2000

_SYSTEM_PROMPT = "\n".join(
    [
        "あなたは経験豊富な薬剤師です。",
        "ユーザーが入力した薬品名や短い説明から、薬品の詳細情報を推定してください。",
        "出力は必ず JSON オブジェクト1つだけにし、次のキーを含めてください。",
        "- name: 一般名",
        "- brand: ブランド名（製品名）",
        "- ingredients: 成分",
        "- specs: 規格（含量・剤形・包装）",
        "- indications: 効能・効果",
        "- usage: 用法・用量",
        "- expiryDate: 使用期限（入力に日付が無ければ空文字）",
        "値はすべて文字列にしてください。臨床上の常識に沿って、できるだけ正確に補完してください。",
    ]
)


class JsonLlmClient(Protocol):
    """自動入力が使う LLM クライアントの最小インターフェース。"""

    def generate_json_response(self, *, system_prompt: str, input_text: str, purpose: str, max_tokens: Any = None) -> Any:
        ...

    def response_json(self, resp: Any) -> Any:
        ...


def merge_autofill_result(form: Medicine, result: dict[str, Any]) -> Medicine:
    """推定結果のうち、既知キーかつ文字列の値だけをフォームへ上書きする。"""

    updates: dict[str, str] = {}
    for key, field_name in _FIELD_MAP.items():
        value = result.get(key)
        if isinstance(value, str):
            updates[field_name] = value
    # --- name は空で上書きしない（必須項目のため） ---
    if not str(updates.get("name", "")).strip():
        updates.pop("name", None)
    return dataclasses.replace(form, **updates)


class MedicineAutofillService:
    """薬品情報の自動入力。"""

    def __init__(self, *, llm_client: JsonLlmClient, counter: DailyUsageCounter) -> None:
        self.llm_client = llm_client
        self.counter = counter

    def remaining(self) -> int:
        """今日の残り利用回数。"""
        return self.counter.remaining()

    def autofill(self, text: str, form: Medicine) -> Medicine:
        """
        入力テキストから薬品情報を推定し、フォームへマージして返す。

        Raises:
            ValidationError: 入力テキストが空。
            QuotaExceededError: 今日の上限に達している。
            UpstreamFailureError: LLM 呼び出しまたは応答の解釈に失敗。
        """

        query = str(text or "").strip()
        if not query:
            raise ValidationError("text is required")
        if len(query) > _INPUT_MAX_CHARS:
            query = query[:_INPUT_MAX_CHARS]

        # --- 上流を呼ぶ前に今日の枠を確保する ---
        reserved = self.counter.try_reserve()
        if reserved is None:
            logger.info("autofill quota exceeded limit=%s", self.counter.limit)
            raise QuotaExceededError("daily autofill limit reached")

        try:
            resp = self.llm_client.generate_json_response(
                system_prompt=_SYSTEM_PROMPT,
                input_text=f"次の薬品を分析してください: {query}",
                purpose=LlmRequestPurpose.SYNC_MEDICINE_AUTOFILL,
            )
            result = self.llm_client.response_json(resp)
            if not isinstance(result, dict):
                raise ValueError(f"autofill response is not a JSON object type={type(result).__name__}")
        except Exception as exc:  # noqa: BLE001
            # 失敗は回数に数えない
            self.counter.release(reserved)
            logger.error("autofill upstream failed: %s", exc)
            raise UpstreamFailureError("autofill failed") from exc

        merged = merge_autofill_result(form, result)
        logger.info("autofill succeeded form_id=%s remaining=%s", form.id, self.counter.remaining())
        return merged
