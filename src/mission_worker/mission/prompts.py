"""Prompt construction for first and follow-up turns."""

from __future__ import annotations

from mission_worker.mission.completion import DONE_MARKER, NEEDS_MORE_WORK_MARKER
from mission_worker.mission.contracts import TaskRequest

PREVIOUS_OUTPUT_MAX_CHARS = 8000
TRUNCATION_NOTICE = (
    f"[... earlier output truncated, showing the last {PREVIOUS_OUTPUT_MAX_CHARS} characters ...]"
)
EMPTY_DESCRIPTION = "No additional description provided."
SECTION_SEPARATOR = "\n\n---\n\n"

PLANNING_SUBJECT_PREFIX = "[PLAN]"
ACTION_PREFIX = "MC_ACTION"
GENERATION_AGENT_IDS: tuple[str, ...] = ("architect", "planner")
_PLANNING_KEYWORDS: tuple[str, ...] = (
    "break down",
    "breakdown",
    "decompose",
    "roadmap",
    "create tasks",
    "create subtasks",
    "plan the",
    "project plan",
    "sprint plan",
)

_TASK_STEPS = """\
1. Read the task description carefully
2. Implement the required functionality
3. Ensure the work is correct and handles basic errors
4. Report what you've created or accomplished"""

_ACTION_PROTOCOL = f"""\
# Structured Actions

This is a planning task. In addition to your written plan, emit one line per
task that should be created, using exactly this format:

{ACTION_PREFIX}: {{"action": "create_task", "subject": "<short subject>", \
"description": "<what needs to be done>", "assignee": "<agent id, optional>", \
"depends_on": ["<subject of a prerequisite task, optional>"]}}

Rules:
- One {ACTION_PREFIX} line per task, each line a single JSON object.
- Do not wrap {ACTION_PREFIX} lines in code fences.
- Keep subjects unique so dependencies can refer to them."""


def build_first_turn_prompt(request: TaskRequest, *, multi_turn: bool) -> str:
    """Full-context prompt for turn 1."""

    context_sections = [
        _section("Agent Context", request.soul_content),
        _section("Team", request.team_context),
        _section("Agent Memory", request.agent_memory),
        _section("Project Memory", request.project_memory),
        _section("Project Communications", request.project_communications),
        _section("Project Documents", request.project_document_index),
        _section("Methodology", request.methodology_context),
    ]
    sections = [section for section in context_sections if section is not None]
    sections.append(_task_details(request))
    if is_planning_task(request):
        sections.append(_ACTION_PROTOCOL)
    sections.append(_first_turn_instructions(multi_turn=multi_turn))
    return SECTION_SEPARATOR.join(sections)


def build_follow_up_prompt(
    request: TaskRequest,
    *,
    turn: int,
    previous_output: str,
    is_final_turn: bool,
) -> str:
    """Abbreviated prompt for turn 2+ carrying the previous turn's output."""

    final_line = (
        "\nThis is the final turn. Produce your best possible complete output now.\n"
        if is_final_turn
        else ""
    )
    return (
        f"# Agent {request.agent_id}: Turn {turn}\n"
        f"\n"
        f"## Previous Output\n"
        f"\n"
        f"{truncate_previous_output(previous_output)}\n"
        f"\n"
        f"## Task Reminder\n"
        f"\n"
        f"**Task ID:** {request.task_id}\n"
        f"**Subject:** {request.task_subject}\n"
        f"\n"
        f"## Instructions\n"
        f"\n"
        f"Review your previous output above and continue the task.\n"
        f"Fix anything that is wrong or unfinished and fill in any gaps.\n"
        f"{final_line}"
        f"\n"
        f"End your response with {DONE_MARKER} if the task is fully complete,\n"
        f"or {NEEDS_MORE_WORK_MARKER} if another pass is still needed."
    )


def truncate_previous_output(output: str) -> str:
    """Keep only the tail of long outputs, with a notice line in front."""

    if len(output) <= PREVIOUS_OUTPUT_MAX_CHARS:
        return output
    return f"{TRUNCATION_NOTICE}\n{output[-PREVIOUS_OUTPUT_MAX_CHARS:]}"


def is_planning_task(request: TaskRequest) -> bool:
    if request.task_subject.startswith(PLANNING_SUBJECT_PREFIX):
        return True
    text = f"{request.task_subject}\n{request.task_description}"
    lowered = text.lower()
    if any(keyword in lowered for keyword in _PLANNING_KEYWORDS):
        return True
    return request.agent_id.lower() in GENERATION_AGENT_IDS and ACTION_PREFIX in text


def _section(title: str, body: str | None) -> str | None:
    if body is None or not body.strip():
        return None
    return f"# {title}\n\n{body}"


def _task_details(request: TaskRequest) -> str:
    description = request.task_description.strip() or EMPTY_DESCRIPTION
    return (
        f"# Current Task\n"
        f"\n"
        f"**Task ID:** {request.task_id}\n"
        f"**Subject:** {request.task_subject}\n"
        f"\n"
        f"## Description\n"
        f"\n"
        f"{description}"
    )


def _first_turn_instructions(*, multi_turn: bool) -> str:
    if not multi_turn:
        return f"# Instructions\n\n{_TASK_STEPS}\n\nBegin the task now."
    return (
        f"# Instructions\n"
        f"\n"
        f"{_TASK_STEPS}\n"
        f"\n"
        f"You may get more than one turn to finish this task.\n"
        f"End your response with {DONE_MARKER} when the task is fully complete,\n"
        f"or with {NEEDS_MORE_WORK_MARKER} if you need another pass.\n"
        f"\n"
        f"Begin the task now."
    )
