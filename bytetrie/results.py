"""Result taxonomy shared by the trie operations.

Every public trie operation reports its outcome through :class:`TrieResult`
instead of raising.  The enumeration is closed and shared with sibling
container implementations, which is why it carries members (such as
``TRY_ADD_EDGE_NO_VERTEX``) that the trie itself never produces.

Callers that prefer exceptions can funnel results through :func:`ensure_ok`,
which raises :class:`TrieOperationError` for anything other than ``OK``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict

__all__ = [
    "TrieResult",
    "TrieOperationError",
    "ensure_ok",
    "result_to_str",
]


class TrieResult(IntEnum):
    """Outcome of a trie operation."""

    OK = 0
    NULL_STRUCTURE = 1
    NULL_HEAD = 2
    NULL_NODE = 3
    TRY_REMOVE_EMPTY_STRUCTURE = 4
    TRY_ADD_EDGE_NO_VERTEX = 5
    ACCESS_OUT_OF_BOUND = 6
    N_ERROR = 7

    @property
    def message(self) -> str:
        """Human-readable description of the result."""

        return result_to_str(self)


_MESSAGES: Dict[int, str] = {
    TrieResult.OK: "ok",
    TrieResult.NULL_STRUCTURE: "structure handle is absent",
    TrieResult.NULL_HEAD: "structure head node is absent",
    TrieResult.NULL_NODE: "node is absent",
    TrieResult.TRY_REMOVE_EMPTY_STRUCTURE: "attempted removal from an empty structure",
    TrieResult.TRY_ADD_EDGE_NO_VERTEX: "attempted to add an edge to a missing vertex",
    TrieResult.ACCESS_OUT_OF_BOUND: "access out of bound: key is not mapped",
    TrieResult.N_ERROR: "number of result kinds (not an outcome)",
}

_UNKNOWN_MESSAGE = "unknown result code"


def result_to_str(code: object) -> str:
    """Return the message associated with *code*.

    Integers outside the taxonomy, booleans and non-integer inputs all map to
    the same stable "unknown" message rather than raising.
    """

    if isinstance(code, bool) or not isinstance(code, int):
        return _UNKNOWN_MESSAGE
    return _MESSAGES.get(int(code), _UNKNOWN_MESSAGE)


class TrieOperationError(LookupError):
    """Raised by :func:`ensure_ok` when an operation did not succeed."""

    def __init__(self, result: TrieResult, context: str | None = None) -> None:
        message = result_to_str(result)
        if context:
            message = f"{context}: {message}"
        super().__init__(message)
        self.result = result


def ensure_ok(result: TrieResult, context: str | None = None) -> TrieResult:
    """Return *result* unchanged when it is ``OK``; raise otherwise."""

    if result != TrieResult.OK:
        raise TrieOperationError(result, context)
    return result
