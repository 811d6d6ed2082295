"""
LLM クライアント（LiteLLM ラッパー）

薬品情報の自動入力で、`litellm.completion()` に JSON オブジェクトを生成させる。

- 送受信ログは `pill_pal.llm_io` ロガーへ出す。llm_log_level が INFO なら
  文字数と所要時間だけ、DEBUG なら内容も切り詰めて出す。OFF なら何も出さない。
- 応答は「ほぼ JSON」のことがある（コードフェンスや前置きの文章、末尾カンマ、文字列中の生改行）。
  response_json() はそれらを吸収してから変換する。
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Optional

import litellm


_LOG_PREVIEW_CHARS = 4000

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
# 文字列中の生の改行/タブは許す
_LENIENT_DECODER = json.JSONDecoder(strict=False)


class LlmRequestPurpose:
    """ログに出す呼び出し目的のラベル。"""

    SYNC_MEDICINE_AUTOFILL = "【同期】＜＜ 薬品情報の自動入力 ＞＞"


def normalize_llm_log_level(value: str) -> str:
    """DEBUG / INFO / OFF のいずれかにする（不明値は INFO）。"""
    level = str(value or "").strip().upper()
    return level if level in ("DEBUG", "INFO", "OFF") else "INFO"


def truncate_for_log(text: Any, max_chars: int = _LOG_PREVIEW_CHARS) -> str:
    s = str(text or "")
    if len(s) <= max_chars:
        return s
    return f"{s[:max_chars]}...(truncated, chars={len(s)})"


def message_content(resp: Any) -> str:
    """choices[0].message.content を文字列で返す（取れなければ空文字）。"""
    try:
        content = resp.choices[0].message.content
    except (AttributeError, IndexError, KeyError, TypeError):
        return ""
    if isinstance(content, list):
        # パート配列で返すプロバイダもある
        return "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)
    return str(content or "")


def finish_reason(resp: Any) -> str:
    try:
        return str(resp.choices[0].finish_reason or "")
    except (AttributeError, IndexError, KeyError, TypeError):
        return ""


def _json_candidate(text: str) -> str:
    """フェンスや前置きを外し、最初の { か [ から始まる部分を返す。"""
    s = str(text or "").strip()
    fenced = _FENCE_RE.search(s)
    if fenced:
        s = fenced.group(1).strip()
    starts = [i for i in (s.find("{"), s.find("[")) if i >= 0]
    return s[min(starts):] if starts else s


def parse_json_lenient(text: str) -> Any:
    """
    LLM 出力から最初の JSON 値を取り出す。後ろに続く文章は無視する。

    Raises:
        ValueError: JSON として読めない（json.JSONDecodeError を含む）。
    """
    candidate = _json_candidate(text)
    if not candidate:
        raise ValueError("empty LLM content")
    try:
        value, _ = _LENIENT_DECODER.raw_decode(candidate)
        return value
    except json.JSONDecodeError:
        pass
    # --- スマートクォートと末尾カンマを直して再挑戦 ---
    repaired = candidate.replace("“", '"').replace("”", '"')
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    value, _ = _LENIENT_DECODER.raw_decode(repaired)
    return value


class LlmClient:
    """LiteLLM で JSON を生成するクライアント。"""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        llm_base_url: Optional[str] = None,
        max_tokens: int = 1024,
        timeout_seconds: int = 15,
        llm_log_level: str = "INFO",
    ):
        self.logger = logging.getLogger(__name__)
        self.io_logger = logging.getLogger("pill_pal.llm_io")
        self.model = model
        self.api_key = api_key
        self.llm_base_url = llm_base_url
        self.max_tokens = int(max_tokens)
        self.timeout_seconds = int(timeout_seconds)
        self.llm_log_level = normalize_llm_log_level(llm_log_level)

    def _completion_kwargs(self, messages: list[dict[str, str]], *, max_tokens: Optional[int]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "response_format": {"type": "json_object"},
            "max_tokens": int(max_tokens or self.max_tokens),
            "timeout": self.timeout_seconds,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.llm_base_url:
            kwargs["api_base"] = self.llm_base_url
        return kwargs

    def generate_json_response(
        self,
        *,
        system_prompt: str,
        input_text: str,
        purpose: str,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """JSON オブジェクトを生成させ、LiteLLM の応答をそのまま返す。例外は呼び出し側へ送る。"""

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": input_text},
        ]
        kwargs = self._completion_kwargs(messages, max_tokens=max_tokens)
        log_on = self.llm_log_level != "OFF"
        if log_on:
            self.io_logger.info(
                "LLM request 送信 %s model=%s chars=%s",
                purpose,
                self.model,
                len(system_prompt) + len(input_text),
            )
        if self.llm_log_level == "DEBUG":
            self.io_logger.debug("LLM request input: %s", truncate_for_log(input_text))

        started = time.perf_counter()
        try:
            resp = litellm.completion(**kwargs)
        except Exception as exc:
            if log_on:
                self.io_logger.error(
                    "LLM request failed %s ms=%s error=%s",
                    purpose,
                    int((time.perf_counter() - started) * 1000),
                    exc,
                )
            raise

        content = message_content(resp)
        if log_on:
            self.io_logger.info(
                "LLM response 受信 %s finish_reason=%s chars=%s ms=%s",
                purpose,
                finish_reason(resp),
                len(content),
                int((time.perf_counter() - started) * 1000),
            )
        if self.llm_log_level == "DEBUG":
            self.io_logger.debug("LLM response content: %s", truncate_for_log(content))
        return resp

    def response_json(self, resp: Any) -> Any:
        """応答本文を JSON として読む。読めなければ ValueError。"""

        content = message_content(resp)
        try:
            return parse_json_lenient(content)
        except ValueError:
            self.logger.debug(
                "LLM JSON parse failed finish_reason=%s content=%s",
                finish_reason(resp),
                truncate_for_log(content),
            )
            raise
