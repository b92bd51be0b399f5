"""Data models for the career roadmap coach."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple


@dataclass
class Profile:
    """What the user tells us about themselves."""
    name: str = ""
    interest: str = ""
    goal: str = ""

    def is_complete(self) -> bool:
        # goal may be empty
        return bool(self.name.strip()) and bool(self.interest.strip())

    def to_dict(self):
        return {
            "name": self.name,
            "interest": self.interest,
            "goal": self.goal
        }


@dataclass(frozen=True)
class RoadmapLink:
    """A resource attached to a roadmap step."""
    label: str
    url: str

    def to_dict(self):
        return {"label": self.label, "url": self.url}


@dataclass(frozen=True)
class RoadmapStep:
    """One phase of a roadmap. Stored as {"step", "desc", "links"}."""
    title: str
    description: str
    links: Tuple[RoadmapLink, ...] = ()

    def to_dict(self):
        return {
            "step": self.title,
            "desc": self.description,
            "links": [link.to_dict() for link in self.links]
        }


Roadmap = List[RoadmapStep]


@dataclass
class PlanRecord:
    """The single persisted unit per user: a profile plus an optional roadmap."""
    profile: Profile = field(default_factory=Profile)
    roadmap: Optional[Roadmap] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.profile.to_dict()
        data["roadmap"] = [step.to_dict() for step in self.roadmap] if self.roadmap is not None else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanRecord":
        """Build a record from a stored document.

        Raises ParseFailure if a stored roadmap is present but malformed.
        """
        from career_roadmap.schema import roadmap_from_value

        profile = Profile(
            name=str(data.get("name") or ""),
            interest=str(data.get("interest") or ""),
            goal=str(data.get("goal") or ""),
        )

        raw_roadmap = data.get("roadmap")
        roadmap = roadmap_from_value(raw_roadmap) if raw_roadmap is not None else None

        return cls(profile=profile, roadmap=roadmap)


@dataclass
class ChatMessage:
    """A message in the coach chat."""
    role: Literal["user", "assistant"]
    text: str
    ts: float = field(default_factory=time.time)  # Unix timestamp

    def to_dict(self):
        return {
            "role": self.role,
            "text": self.text,
            "ts": self.ts
        }
