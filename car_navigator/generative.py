"""
Generative Backend

The narrow contract between the resolver and the external language model:
given a prompt and the conversation so far, the backend answers with either a
conversational message or a list of vehicles plus suggested next prompts.

``ChatModelBackend`` implements the contract on an OpenAI-compatible chat
endpoint through LangChain. Anything that goes wrong in a call surfaces as
``BackendError``; the resolver decides what the user sees.
"""

from __future__ import annotations

import json
import re
from typing import Optional, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from car_navigator.logging_config import get_logger
from car_navigator.models import BackendResponse, ConversationTurn, Vehicle
from car_navigator.pipeline_logger import log_backend, log_error

logger = get_logger(__name__)

DEFAULT_SELLING_POINTS = ["魅力的なデザイン", "快適なドライビング体験", "充実した安全性能"]

SYSTEM_PROMPT = """あなたは中古車検索アシスタント「AI Car Navigator」です。親しみやすく、プロフェッショナルなトーンで対話してください。

必ず次のJSONオブジェクトだけを返してください:
{
  "responseType": "CONVERSATION" または "CAR_RESULTS",
  "message": "ユーザーへの応答メッセージ",
  "cars": [
    {
      "name": "車両のフルネーム (例: トヨタ プリウス S)",
      "year": 年式 (西暦の整数),
      "mileage": 走行距離 (km の整数),
      "price": 価格 (万円単位の整数),
      "imageUrl": "https://picsum.photos/seed/{ランダムな文字列}/800/600",
      "specs": {"engine": "例: 1.8L ハイブリッド", "size": "全長x全幅x全高 mm", "safety": "主要な安全装備"}
    }
  ],
  "quickReplies": ["次の行動の選択肢 (3〜4個、不要なら省略)"]
}

ルール:
- 具体的な検索条件 (例:「2020年以降のSUV」「おすすめのスポーツカー」) の場合は responseType を CAR_RESULTS とし、条件に合う車を3〜5台提案する。見つからない場合はその旨を message に書き、cars は空配列にする。
- 特定の車両との比較依頼の場合は長所・短所と類似の競合車種2〜3台を比較し、responseType を CONVERSATION として message に Markdown でまとめる。
- 挨拶や一般的な質問は responseType を CONVERSATION とし、cars は空配列にする。
- 曖昧な質問には「SUVのことですか？」「セダンのことですか？」のような明確化の選択肢を quickReplies に入れる。"""

SELLING_POINTS_SYSTEM_PROMPT = (
    "あなたは優秀な自動車セールスライターです。指定された車両の最も魅力的な点を3つ、簡潔に要約してください。"
    '出力は {"points": ["...", "...", "..."]} 形式のJSONのみとします。'
)

_RE_CODE_FENCE = re.compile(r"^\s*```[\t ]*(?:json)?\s*\n?([\s\S]*?)```\s*$", re.IGNORECASE)


class BackendError(Exception):
    """The generative backend failed, timed out or answered off-contract."""


class GenerativeBackend(Protocol):
    async def generate(
        self,
        prompt: str,
        history: Sequence[ConversationTurn],
    ) -> BackendResponse:
        ...

    async def selling_points(self, vehicle: Vehicle) -> list[str]:
        ...


# =============================================================================
# Response parsing
# =============================================================================


def _strip_code_fence(text: str) -> str:
    match = _RE_CODE_FENCE.match(text or "")
    return match.group(1).strip() if match else (text or "").strip()


def _load_json(text: str) -> dict:
    candidate = _strip_code_fence(text)
    if not candidate:
        raise BackendError("Empty response from generative backend")
    try:
        parsed = json.loads(candidate)
    except ValueError as e:
        raise BackendError(f"Unparseable backend response: {e}") from e
    if not isinstance(parsed, dict):
        raise BackendError("Backend response is not a JSON object")
    return parsed


def parse_backend_payload(text: str) -> BackendResponse:
    """
    Parse raw model output into the response contract.

    Only presence of ``responseType``, ``message`` and ``cars`` is enforced
    beyond what the Vehicle model itself requires.
    """
    payload = _load_json(text)
    missing = [key for key in ("responseType", "message", "cars") if key not in payload]
    if missing:
        raise BackendError(f"Backend response missing fields: {', '.join(missing)}")
    try:
        return BackendResponse.model_validate(payload)
    except ValidationError as e:
        raise BackendError(f"Backend response does not match contract: {e.error_count()} errors") from e


def parse_selling_points(text: str) -> list[str]:
    """Exactly three selling points, or the fixed fallback list."""
    try:
        payload = _load_json(text)
    except BackendError:
        return list(DEFAULT_SELLING_POINTS)
    points = payload.get("points")
    if (
        isinstance(points, list)
        and len(points) == 3
        and all(isinstance(p, str) and p.strip() for p in points)
    ):
        return [p.strip() for p in points]
    return list(DEFAULT_SELLING_POINTS)


def history_to_messages(history: Sequence[ConversationTurn]) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    for turn in history:
        if turn.role == "user":
            messages.append(HumanMessage(content=turn.text))
        else:
            messages.append(AIMessage(content=turn.text))
    return messages


def _selling_points_prompt(vehicle: Vehicle) -> str:
    return (
        "以下の車両情報に基づき、この車に興味を持ちそうな顧客に向けた、"
        "簡潔で魅力的な「おすすめポイント」を日本語で3つだけ作成してください。\n"
        "車両情報:\n"
        f"- 車種: {vehicle.name}\n"
        f"- 年式: {vehicle.year}年\n"
        f"- 価格: {vehicle.price:g}万円\n"
        f"- スペック: {vehicle.specs.engine}, {vehicle.specs.safety}"
    )


# =============================================================================
# LangChain implementation
# =============================================================================


class ChatModelBackend:
    """Generative backend on an OpenAI-compatible chat model."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        llm=None,
    ):
        self.model = model
        if llm is None:
            llm = ChatOpenAI(
                model=model,
                api_key=api_key or "not-set",
                base_url=base_url or None,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        self._llm = llm.bind(response_format={"type": "json_object"})

    async def _complete(self, messages: list[BaseMessage], preview: str) -> str:
        with logger.llm_span(self.model, prompt_preview=preview):
            result = await self._llm.ainvoke(messages)
        content = getattr(result, "content", result)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content if isinstance(content, str) else str(content)

    async def generate(
        self,
        prompt: str,
        history: Sequence[ConversationTurn],
    ) -> BackendResponse:
        messages: list[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT)]
        messages.extend(history_to_messages(history))
        messages.append(HumanMessage(content=prompt))

        try:
            text = await self._complete(messages, prompt)
        except Exception as e:
            raise BackendError(f"Generative backend call failed: {e}") from e

        response = parse_backend_payload(text)
        log_backend("Backend response parsed", {
            "response_type": response.response_type,
            "cars": len(response.cars),
        })
        return response

    async def selling_points(self, vehicle: Vehicle) -> list[str]:
        messages = [
            SystemMessage(content=SELLING_POINTS_SYSTEM_PROMPT),
            HumanMessage(content=_selling_points_prompt(vehicle)),
        ]
        try:
            text = await self._complete(messages, vehicle.name)
        except Exception as e:
            log_error("BACKEND", "Selling points request failed", e)
            return list(DEFAULT_SELLING_POINTS)
        return parse_selling_points(text)
