"""Control commands recognized before intent resolution.

Each command is a small tagged type; the controller dispatches on the type
and either answers directly or continues to intent resolution.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from gitsplits.conversation.state import ExecutionMode, ExperienceMode

_MENTION_PREFIX_RE = re.compile(r"^@gitsplits\s+", re.IGNORECASE)
_MODE_RE = re.compile(r"^(?:set\s+mode|mode)\s+(advisor|draft|execute)$", re.IGNORECASE)
_EXPERIENCE_RE = re.compile(
    r"^(?:set\s+experience|experience)\s+(guided|hands[_ -]?off)$", re.IGNORECASE
)
_CANCEL_RE = re.compile(r"^cancel(?:\s+plan)?$", re.IGNORECASE)
_REPLAY_RE = re.compile(r"^replay\s+(\S+)$", re.IGNORECASE)
_APPROVE_RE = re.compile(
    r"^approve(?:\s+(\S+))?(?:\s+(override\s+safety|force\s+pay))?$", re.IGNORECASE
)


@dataclass(frozen=True)
class SetMode:
    mode: ExecutionMode


@dataclass(frozen=True)
class SetExperience:
    mode: ExperienceMode


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Replay:
    event_id: str


@dataclass(frozen=True)
class Approve:
    plan_id: str | None = None
    override_safety: bool = False


ControlCommand = Union[SetMode, SetExperience, Cancel, Replay, Approve]


def strip_mention(text: str) -> str:
    return _MENTION_PREFIX_RE.sub("", (text or "").strip()).strip()


def parse_control_command(text: str) -> ControlCommand | None:
    cleaned = strip_mention(text)
    if match := _MODE_RE.match(cleaned):
        return SetMode(match.group(1).lower())  # type: ignore[arg-type]
    if match := _EXPERIENCE_RE.match(cleaned):
        raw = match.group(1).lower()
        return SetExperience("guided" if raw == "guided" else "hands_off")
    if _CANCEL_RE.match(cleaned):
        return Cancel()
    if match := _REPLAY_RE.match(cleaned):
        return Replay(match.group(1))
    if match := _APPROVE_RE.match(cleaned):
        return Approve(match.group(1), override_safety=match.group(2) is not None)
    return None
