"""The three phases of a Perspectivology session.

Each phase is a single model round-trip. Nothing is remembered between
calls: the caller resends the challenge, and for phase 3 the team built in
phase 2, on every request.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from engine.core.output import (
    ClarityCapture,
    DreamTeam,
    InterrogationQuestion,
    parse_model_reply,
)
from engine.core.prompt import (
    PHASE1_SYSTEM_PROMPT,
    TOTAL_QUESTIONS,
    phase2_system_prompt,
    phase2_user_message,
    phase3_system_prompt,
    phase3_user_message,
)
from engine.errors import MissingField
from engine.tools.expert_directory import ExpertRecord, render_expert_pool


logger = logging.getLogger("perspectivology.phases")

SWAP_LIMIT = 3


class Gateway(Protocol):
    def complete(self, system_prompt: str, user_message: str) -> str: ...


class Directory(Protocol):
    def get(self) -> Sequence[ExpertRecord]: ...


def _require(message: str, *values: Any) -> None:
    if not all(values):
        raise MissingField(message)


def clarity_capture(gateway: Gateway, challenge: Optional[str]) -> Dict[str, Any]:
    _require("Challenge required", challenge)

    reply = gateway.complete(PHASE1_SYSTEM_PROMPT, challenge)
    parsed = parse_model_reply(reply, ClarityCapture)
    return {**parsed.model_dump(), "phase": 1}


def build_dream_team(
    gateway: Gateway,
    directory: Directory,
    challenge: Optional[str],
    challenge_type: Optional[str],
) -> Dict[str, Any]:
    _require("Challenge and challengeType required", challenge, challenge_type)

    experts = directory.get()
    if not experts:
        logger.warning("Expert directory is empty; building team without a pool")
    system_prompt = phase2_system_prompt(render_expert_pool(experts))

    reply = gateway.complete(system_prompt, phase2_user_message(challenge, challenge_type))
    parsed = parse_model_reply(reply, DreamTeam)
    return {
        **parsed.model_dump(),
        "phase": 2,
        "swapAvailable": True,
        "swapLimit": SWAP_LIMIT,
    }


def _member_names(team: Iterable[Any]) -> List[str]:
    names = []
    for member in team:
        if isinstance(member, Mapping):
            name = member.get("name")
        else:
            name = getattr(member, "name", None)
        names.append("" if name is None else str(name))
    return names


def interrogate(
    gateway: Gateway,
    challenge: Optional[str],
    team: Optional[Sequence[Any]],
) -> Dict[str, Any]:
    # An empty team is accepted; only an absent one is rejected.
    _require("Challenge and team required", challenge, team is not None)

    system_prompt = phase3_system_prompt(_member_names(team))
    reply = gateway.complete(system_prompt, phase3_user_message(challenge))
    parsed = parse_model_reply(reply, InterrogationQuestion)
    return {
        **parsed.model_dump(),
        "phase": 3,
        "totalQuestions": TOTAL_QUESTIONS,
    }
