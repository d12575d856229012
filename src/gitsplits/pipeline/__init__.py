"""Command pipeline: control commands, intent routing, plans and memory."""

from gitsplits.pipeline.commands import parse_control_command, strip_mention
from gitsplits.pipeline.controller import AgentController, AgentReply
from gitsplits.pipeline.factory import build_collaborators, build_controller

__all__ = [
    "AgentController",
    "AgentReply",
    "build_collaborators",
    "build_controller",
    "parse_control_command",
    "strip_mention",
]
