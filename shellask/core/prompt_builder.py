"""Prompt assembly and length-budget enforcement.

The outbound text is built from an essential body (the prompt, or for a
refinement the original prompt, previous exchange and refinement text)
followed by an optional "Additional Context:" section. When the text is
over budget the context section is sacrificed first.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

ADDITIONAL_CONTEXT_HEADING = "Additional Context:\n"
REFINE_HEADER = "Refine the following response with the additional context:"


@dataclass(frozen=True)
class TokenBudget:
    """
    Approximate character budget derived from a token limit.

    chars_per_token is a ratio, not a tokenizer; swap this class for one
    backed by a real tokenizer without touching the truncation rules.
    """

    max_tokens: int
    chars_per_token: int = 4

    @property
    def max_chars(self) -> int:
        return self.max_tokens * self.chars_per_token


@dataclass(frozen=True)
class PromptChain:
    """Stored artifacts of the exchange being refined."""

    original_prompt: str
    previous_prompt: str
    previous_response: str
    previous_run_output: str = ""
    previous_context: str = ""


def truncate_to_budget(text: str, max_chars: int, search_from: int = 0) -> str:
    """
    Enforce the character budget, evicting context before anything else.

    1. Within budget: returned unchanged.
    2. With an "Additional Context:" heading at or after `search_from`:
       the context section runs from the heading to the end of the text.
       If it is longer than the overage, exactly `overage` characters are
       cut from its end; otherwise the whole section is dropped, which may
       still leave the text over budget.
    3. Without a heading: cut from the end to exactly `max_chars`.
    """
    if len(text) <= max_chars:
        return text

    overage = len(text) - max_chars
    index = text.find(ADDITIONAL_CONTEXT_HEADING, search_from)

    if index == -1:
        logger.debug("Prompt over budget by %d chars with no context section; cutting tail", overage)
        return text[:max_chars]

    context_len = len(text) - index
    if context_len > overage:
        logger.debug("Trimming %d chars from the end of the context section", overage)
        return text[: len(text) - overage]

    logger.debug(
        "Context section (%d chars) cannot absorb overage of %d; dropping it",
        context_len,
        overage,
    )
    return text[:index]


def with_context_section(body: str, context: str) -> str:
    """Append `context` under the "Additional Context:" heading, if non-empty."""
    if not context:
        return body
    return body + "\n\n" + ADDITIONAL_CONTEXT_HEADING + context


class PromptAssembler:
    """Composes the single string sent to the completion call."""

    def __init__(self, budget: TokenBudget):
        self.budget = budget

    def fit(self, text: str, essential_length: int = 0) -> str:
        """
        Apply the budget to already assembled text.

        Args:
            text: Assembled prompt
            essential_length: Length of the leading essential body; a context
                heading is only looked for after it
        """
        max_chars = self.budget.max_chars
        fitted = truncate_to_budget(text, max_chars, search_from=essential_length)
        logger.debug("Asking prompt (len=%d, maxChars=%d)", len(fitted), max_chars)
        return fitted

    def build_ask(self, prompt: str, context: str = "") -> str:
        """Base prompt plus optional context section, fitted to budget."""
        return self.fit(with_context_section(prompt, context), essential_length=len(prompt))

    def build_refine(self, chain: PromptChain, refinement: str, new_context: str = "") -> str:
        """
        Refinement prompt citing the original prompt and the previous exchange.

        Previous context and newly gathered context share the trailing
        context section so they are the first to go when over budget.
        """
        parts = [
            REFINE_HEADER,
            "ORIGINAL PROMPT:\n" + chain.original_prompt,
            "PREVIOUS PROMPT:\n" + chain.previous_prompt,
            "PREVIOUS RESPONSE:\n" + chain.previous_response,
        ]
        if chain.previous_run_output:
            parts.append("PREVIOUS COMMAND RUN OUTPUT:\n" + chain.previous_run_output)
        parts.append("REFINEMENT CONTEXT:\n" + refinement)

        body = "\n\n".join(parts)
        context = chain.previous_context + new_context
        return self.fit(with_context_section(body, context), essential_length=len(body))


def build_refine_template(chain: PromptChain, header: Optional[str] = None) -> str:
    """
    Seed text for the editor when the user writes a refinement.

    Whatever the user leaves in the file becomes the refinement text.
    """
    text = (header or "Provide refinement/context below:") + "\n\n---\nPrevious Response:\n" + chain.previous_response
    if chain.previous_run_output:
        text += "\n\nRun Output:\n" + chain.previous_run_output
    if chain.previous_context:
        text += "\n\nContext Log:\n" + chain.previous_context
    if chain.original_prompt:
        text += "\n\nOriginal Prompt:\n" + chain.original_prompt
    return text
