"""shellask - ask an LLM for shell commands, refine the answer, run it."""

__version__ = "0.1.0"
