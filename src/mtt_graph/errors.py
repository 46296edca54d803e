"""Error taxonomy.

Every error here is a programming or data error for a single transformation
run. Nothing in the package catches them; pattern-match failure is ordinary
control flow and never raises.
"""


class MTTError(Exception):
    """Base class for all mtt_graph errors."""


class UnknownState(MTTError):
    """transform() was called with a state no rule declares."""

    def __init__(self, state: str) -> None:
        super().__init__(f"MTT: no rules defined for state '{state}'")
        self.state = state


class UnboundVariable(MTTError):
    """A template or expression referenced a missing binding or parameter."""

    def __init__(self, name: str) -> None:
        super().__init__(f"MTT: unbound variable '{name}'")
        self.name = name


class UnsupportedConstruct(MTTError):
    """Unknown pattern, template or expression type, operator or built-in."""


class EncodingPolicyError(MTTError):
    """Unknown encode/decode policy, or no node can serve as root."""


class TransformDepthExceeded(MTTError):
    """Nested transform() calls went past the configured depth limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"MTT: transform depth exceeded limit of {limit}")
        self.limit = limit


class DSLSyntaxError(MTTError, SyntaxError):
    """Malformed DSL document or expression text."""
