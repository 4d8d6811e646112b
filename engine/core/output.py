from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from engine.errors import ResponseParseFailed


TEAM_SIZE = 9

ModelT = TypeVar("ModelT", bound=BaseModel)


def _strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped[3:]
        if stripped.startswith("json"):
            stripped = stripped[len("json"):].lstrip()
        stripped = stripped.rstrip()
        if stripped.endswith("```"):
            stripped = stripped[:-3]
    return stripped.strip()


def _extract_json_segment(text: str) -> Optional[str]:
    start = text.find("{")
    if start == -1:
        return None
    stack = 0
    for idx in range(start, len(text)):
        ch = text[idx]
        if ch == "{":
            stack += 1
        elif ch == "}":
            stack -= 1
            if stack == 0:
                return text[start: idx + 1]
    return None


def decode_model_json(text: str) -> Dict[str, Any]:
    """Decode the JSON object a phase prompt asked the model to return.

    Accepts a bare object or one wrapped in a Markdown code fence or in
    surrounding prose.
    """
    cleaned = _strip_code_fences(text or "")
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        segment = _extract_json_segment(cleaned)
        if not segment:
            raise ResponseParseFailed(f"Model response was not valid JSON: {exc}") from exc
        try:
            decoded = json.loads(segment)
        except json.JSONDecodeError as inner:
            raise ResponseParseFailed(f"Model response was not valid JSON: {inner}") from inner

    if not isinstance(decoded, dict):
        raise ResponseParseFailed("Model response was not a JSON object")
    return decoded


def _as_text(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class _ModelReply(BaseModel):
    model_config = ConfigDict(extra="allow")


class ClarityCapture(_ModelReply):
    paraphrase: str
    challengeType: str
    whyItMatters: Optional[str] = None
    needsWhyItMatters: bool = False
    clarifyingQuestion: Optional[str] = None


class TeamMember(_ModelReply):
    name: str
    years: str = ""
    field: str = ""
    relevance: str = ""
    role: str = ""

    @field_validator("years", mode="before")
    @classmethod
    def _years_as_text(cls, value):
        return _as_text(value)


class DreamTeam(_ModelReply):
    team: List[TeamMember] = Field(..., min_length=TEAM_SIZE, max_length=TEAM_SIZE)
    composition: str = ""


class InterrogationQuestion(_ModelReply):
    questionNumber: Any = None
    question: str
    askedBy: Optional[str] = None
    reveals: Optional[str] = None


def parse_model_reply(text: str, schema: Type[ModelT]) -> ModelT:
    data = decode_model_json(text)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ResponseParseFailed(
            f"Model response did not match the {schema.__name__} shape: "
            f"{exc.error_count()} invalid field(s)"
        ) from exc
