"""
Shared fixtures for the career roadmap coach tests
"""
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

import pytest

# Put the project root on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from career_roadmap.models import PlanRecord, Profile
from career_roadmap.schema import roadmap_from_value
from career_roadmap.state import PlanSession
from career_roadmap.stores.memory_store import MemoryDocumentStore
from career_roadmap.sync import PlanSync

APP_ID = "test-app"


def make_roadmap_payload(steps: int = 7) -> List[Dict[str, Any]]:
    return [
        {
            "step": f"Phase {i + 1}",
            "desc": f"Insight for phase {i + 1}. It matters. Do it well.",
            "links": [{"label": f"Resource {i + 1}", "url": f"https://example.com/{i + 1}"}],
        }
        for i in range(steps)
    ]


class ScriptedClient:
    """Stands in for GeminiClient: returns queued results in order.

    Set `gate` to an asyncio.Event to hold every call until it is set.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls: List[Dict[str, Any]] = []
        self.gate: Optional[asyncio.Event] = None

    async def generate(self, prompt, system_instruction=None, structured_output=False):
        self.calls.append({
            "prompt": prompt,
            "system_instruction": system_instruction,
            "structured_output": structured_output,
        })
        result = self.results.pop(0)
        if self.gate is not None:
            await self.gate.wait()
        return result


class FailingStore(MemoryDocumentStore):
    def set(self, path, data):
        raise RuntimeError("store unavailable")


async def settle(rounds: int = 5):
    """Let scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def roadmap_payload():
    return make_roadmap_payload()


@pytest.fixture
def roadmap_json(roadmap_payload):
    return json.dumps(roadmap_payload)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def sync(store):
    return PlanSync(store, APP_ID)


@pytest.fixture
def alex():
    return Profile(name="Alex", interest="Fintech", goal="CTO")


@pytest.fixture
def saved_record(alex, roadmap_payload):
    return PlanRecord(profile=alex, roadmap=roadmap_from_value(roadmap_payload))


@pytest.fixture
def make_session(sync):
    def factory(*results, plan_sync=None):
        client = ScriptedClient(*results)
        return PlanSession(client, plan_sync or sync), client
    return factory
