from __future__ import annotations
from typing import Any, List
import json

from career_roadmap.models import Roadmap, RoadmapLink, RoadmapStep


class ParseFailure(ValueError):
    """Model output could not be read as a roadmap."""


def _strip_fence(text: str) -> str:
    """
    Models occasionally wrap JSON in a ```json fence even in JSON mode.
    """
    s = text.strip()
    if s.startswith("```"):
        first_newline = s.find("\n")
        s = s[first_newline + 1:] if first_newline != -1 else ""
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def _first_present(obj: dict, *keys: str) -> Any:
    for key in keys:
        if key in obj and obj[key] is not None:
            return obj[key]
    return None


def _links_from_value(value: Any, index: int) -> tuple:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ParseFailure(f"step {index}: links must be a list")

    links: List[RoadmapLink] = []
    for j, item in enumerate(value):
        if not isinstance(item, dict):
            raise ParseFailure(f"step {index}: link {j} is not an object")
        url = item.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ParseFailure(f"step {index}: link {j} has no url")
        label = item.get("label")
        links.append(RoadmapLink(label=str(label) if label else url, url=url))
    return tuple(links)


def roadmap_from_value(value: Any) -> Roadmap:
    """
    Shape-check an already decoded value.
    Titles are read from "step" or "title", descriptions from "desc" or "description".
    """
    if not isinstance(value, list):
        raise ParseFailure(f"expected a list of steps, got {type(value).__name__}")

    steps: Roadmap = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ParseFailure(f"step {i} is not an object")

        title = _first_present(item, "step", "title")
        if not isinstance(title, str) or not title.strip():
            raise ParseFailure(f"step {i} has no title")

        description = _first_present(item, "desc", "description")
        steps.append(RoadmapStep(
            title=title,
            description="" if description is None else str(description),
            links=_links_from_value(item.get("links"), i),
        ))
    return steps


def parse_roadmap(text: str) -> Roadmap:
    """
    Decode raw model text into an ordered roadmap.
    Raises ParseFailure; never returns a partial roadmap.
    """
    if text is None:
        raise ParseFailure("Empty response")

    try:
        value = json.loads(_strip_fence(text))
    except json.JSONDecodeError as e:
        raise ParseFailure(f"response is not valid JSON: {e}") from e

    return roadmap_from_value(value)


def dump_roadmap(roadmap: Roadmap) -> str:
    """Encode a roadmap in the stored wire format."""
    return json.dumps([step.to_dict() for step in roadmap], ensure_ascii=False)
