"""Shared string constants for memory records and reconciliation decisions.

Values are plain strings so they can be written straight into Pinecone record
fields and compared against whatever a host or LLM backend sends back.
"""


class MemoryCategory:
    """Coarse label assigned to every stored fact (informational only)."""

    PREFERENCE = "preference"
    DECISION = "decision"
    PROJECT = "project"
    TECHNICAL = "technical"
    FACT = "fact"
    GENERAL = "general"

    ALL = (PREFERENCE, DECISION, PROJECT, TECHNICAL, FACT, GENERAL)


class Provenance:
    """Which pathway produced a memory record."""

    TURN_CAPTURE = "heuristic-turn-capture"
    SUMMARY = "heuristic-summary"
    LLM_EXTRACT = "llm-extract"
    TOOL = "tool-invocation"

    ALL = (TURN_CAPTURE, SUMMARY, LLM_EXTRACT, TOOL)


class Action:
    """Reconciliation decision actions."""

    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    NONE = "NONE"

    ALL = (ADD, UPDATE, DELETE, NONE)

    @classmethod
    def parse(cls, raw) -> str:
        """Uppercase a backend-supplied event name. Unknown names pass through."""
        return str(raw or "").strip().upper()


# Target id used by ADD decisions (and the only id an LLM backend may invent).
NEW_ID = "new"


def field_value(obj, name: str, default=None):
    """Read ``name`` from a mapping or from an attribute-style SDK object."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)
