"""Local deterministic worker CLI for integration tests and smoke checks."""

from __future__ import annotations

import argparse
import os
import re
import sys
import time

from mission_worker.mission.completion import DONE_MARKER, NEEDS_MORE_WORK_MARKER

_TURN_HEADING = re.compile(r"^# Agent .+: Turn (\d+)$", re.MULTILINE)
_SUBJECT_LINE = re.compile(r"^\*\*Subject:\*\* (.*)$", re.MULTILINE)


def main(argv: list[str] | None = None) -> int:
    """Echo a short summary of the prompt and signal completion."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--url", default=None)
    parser.add_argument("--model", default=None)
    parser.add_argument(
        "--complete-on-turn",
        type=int,
        default=1,
        help="Emit the needs-more-work marker on earlier turns.",
    )
    parser.add_argument("--exit-code", type=int, default=0)
    parser.add_argument("--stderr", default="")
    parser.add_argument("--sleep", type=float, default=0.0)
    parser.add_argument("--print-env", action="append", default=[])
    parser.add_argument("prompt")
    args = parser.parse_args(argv)

    if args.sleep > 0:
        time.sleep(args.sleep)

    turn_match = _TURN_HEADING.search(args.prompt)
    turn = int(turn_match.group(1)) if turn_match else 1
    subject_match = _SUBJECT_LINE.search(args.prompt)
    subject = subject_match.group(1) if subject_match else ""

    print(f"echo worker turn={turn} model={args.model or '-'} subject={subject}")
    print(f"prompt_chars={len(args.prompt)}")
    for name in args.print_env:
        print(f"{name}={os.getenv(name, '')}")
    if args.stderr:
        print(args.stderr, file=sys.stderr)
    if args.exit_code == 0:
        print(DONE_MARKER if turn >= args.complete_on_turn else NEEDS_MORE_WORK_MARKER)
    return args.exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
