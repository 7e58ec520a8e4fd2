# src/salad_engine/errors.py

from typing import Optional


class GameError(Exception):
    """Base exception for malformed input reaching the rules engine."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ActionResult:
    """Outcome of a room action: either the updated room or a rejection."""

    def __init__(
        self,
        success: bool,
        state=None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ):
        self.success = success
        self.state = state
        self.error_code = error_code
        self.error_message = error_message

    @classmethod
    def ok(cls, state) -> 'ActionResult':
        return cls(success=True, state=state)

    @classmethod
    def error(cls, error_code: str, error_message: str, state=None) -> 'ActionResult':
        return cls(success=False, state=state, error_code=error_code, error_message=error_message)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        if self.success:
            return "ActionResult(success=True)"
        return f"ActionResult(success=False, error_code={self.error_code!r}, error_message={self.error_message!r})"


# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
