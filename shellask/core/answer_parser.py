"""Extraction of runnable shell commands from free-form answers.

Two forms are recognised:
- fenced blocks: lines between two lines whose trimmed text starts with ```
- bare lines outside any block whose trimmed text starts with "$ "

A block that is opened but never closed contributes nothing.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Tuple, Union

logger = logging.getLogger(__name__)

FENCE = "```"
PROMPT_MARKER = "$ "


class FenceState(Enum):
    OUTSIDE = "outside"
    IN_BLOCK = "in_block"
    BLOCK_JUST_CLOSED = "block_just_closed"


@dataclass(frozen=True)
class Block:
    """A completed fenced block, raw lines without the fence markers."""

    lines: Tuple[str, ...]


@dataclass(frozen=True)
class BareLine:
    """A trimmed line found outside any block."""

    text: str


Event = Union[Block, BareLine]


def scan(answer: str) -> Iterator[Event]:
    """
    Walk the answer line by line and yield events in document order.

    A Block is yielded only when its closing fence is seen. Every line
    outside a block (fence lines excluded) is yielded as a BareLine.
    """
    state = FenceState.OUTSIDE
    block_lines: List[str] = []

    for line in answer.split("\n"):
        trimmed = line.strip()
        is_fence = trimmed.startswith(FENCE)

        if state is FenceState.IN_BLOCK:
            if is_fence:
                yield Block(tuple(block_lines))
                block_lines = []
                state = FenceState.BLOCK_JUST_CLOSED
            else:
                block_lines.append(line)
            continue

        # OUTSIDE and BLOCK_JUST_CLOSED behave the same for the next line.
        if is_fence:
            state = FenceState.IN_BLOCK
            block_lines = []
        else:
            state = FenceState.OUTSIDE
            yield BareLine(trimmed)

    if state is FenceState.IN_BLOCK:
        logger.debug("Dropping unterminated code block (%d lines)", len(block_lines))


def _bare_command(text: str) -> str:
    if text.startswith(PROMPT_MARKER):
        return text[len(PROMPT_MARKER):].strip()
    return ""


def _block_commands(block: Block) -> List[str]:
    commands = []
    for line in block.lines:
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        # "$ ls" inside a block is still one runnable line; drop the prompt.
        commands.append(_bare_command(trimmed) or trimmed)
    return commands


def extract_first_command(answer: str) -> str:
    """
    Pick the single command to run for a one-shot `--run`.

    The first completed fenced block wins and is returned whole (a
    multi-line block is a script). If there is none, or it is empty, the
    first "$ "-prefixed line outside blocks is used. Returns "" if neither
    exists.
    """
    events = list(scan(answer))

    for event in events:
        if isinstance(event, Block):
            content = "\n".join(event.lines).strip()
            if content:
                return content
            break

    for event in events:
        if isinstance(event, BareLine):
            command = _bare_command(event.text)
            if command:
                return command
    return ""


def extract_all_commands(answer: str) -> List[str]:
    """
    Every runnable command in the answer, in document order.

    Each non-empty, non-comment line of every completed block is one
    command; each "$ " line outside blocks is one command.
    """
    commands: List[str] = []
    for event in scan(answer):
        if isinstance(event, Block):
            commands.extend(_block_commands(event))
        else:
            command = _bare_command(event.text)
            if command:
                commands.append(command)
    return commands
