"""Multi-turn task execution controller for CLI-driven LLM workers."""

__version__ = "0.1.0"
