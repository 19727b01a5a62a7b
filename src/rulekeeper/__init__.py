"""rulekeeper - a per-session policy hook for AI coding assistants."""

__version__ = "0.1.0"
