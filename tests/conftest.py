from __future__ import annotations

import json
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from engine.tools.expert_directory import ExpertRecord


SAMPLE_CSV = "\n".join(
    [
        "Last,First,Years,Field1,Field2,Descriptor,Field3,Status,Gender,Geography,Recognizable",
        "Doe,Jane,10,Ethics,,Moral philosopher,,0,F,EU,Yes",
        "Smith,John,1950-1990,Economics,Game theory,Strategist,,1,M,US,Yes",
        "Lovelace,Ada,1833-1852,Mathematics,Computing,Analytical pioneer,,0,F,UK,Yes",
        "",
        "Nameless,,2000,Physics,,Unknown,,0,M,US,No",
    ]
)


def team_reply(size: int = 9) -> str:
    roles = [
        "Strategic", "Analytical", "Ethical", "Psychological", "Implementation",
        "Systems", "Contrarian", "Domain", "Domain",
    ]
    team = [
        {
            "name": f"Expert {i}",
            "years": "1900-1950",
            "field": "Field",
            "relevance": "Helps.",
            "role": roles[i % len(roles)],
        }
        for i in range(size)
    ]
    return json.dumps({"team": team, "composition": "Diverse lenses"})


class FakeGateway:
    def __init__(self, reply: str = "{}", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    def complete(self, system_prompt: str, user_message: str) -> str:
        self.calls.append((system_prompt, user_message))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeDirectory:
    def __init__(self, experts=()) -> None:
        self.experts = tuple(experts)
        self.reads = 0

    def get(self):
        self.reads += 1
        return self.experts


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(
        [
            ExpertRecord(
                first_name="Jane",
                last_name="Doe",
                years="10",
                field1="Ethics",
                descriptor="Moral philosopher",
            )
        ]
    )


@pytest.fixture
def client(gateway, directory) -> TestClient:
    app = create_app(gateway=gateway, directory=directory, preload_directory=False)
    return TestClient(app)
