"""Uncompressed 256-way trie keyed by raw byte sequences.

Every key byte selects one of 256 child slots, so a key of length ``n`` is
represented by exactly ``n`` nodes below the root.  Each node may carry a value
buffer of exactly ``member_size`` bytes; with ``member_size == 0`` the trie
behaves as an existence set.

Operations report their outcome with :class:`~bytetrie.results.TrieResult`
rather than raising.  Only programmer errors that the taxonomy cannot express
(a ``str`` key, an element shorter than ``member_size``, a badly sized output
buffer) raise ``TypeError``/``ValueError``, and they do so before anything is
mutated.

Semantics worth knowing about:

* ``add`` is an upsert and ``size`` counts distinct mapped keys, so overwriting
  a key leaves ``size`` unchanged.
* Nodes are never pruned.  ``remove`` only clears the value, and removing a key
  whose node exists solely as a prefix of a longer key reports
  ``ACCESS_OUT_OF_BOUND``.
* ``set`` never creates a mapping; unknown keys report ``ACCESS_OUT_OF_BOUND``.

The structure performs no locking.  Callers sharing a trie between threads
must serialise access themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import List, Optional, Tuple, Union

from .results import TrieResult

logger = logging.getLogger(__name__)

NBYTE = 256

BytesLike = Union[bytes, bytearray, memoryview]

__all__ = [
    "NBYTE",
    "ByteTrie",
    "TrieNode",
    "trie_add",
    "trie_create",
    "trie_destroy",
    "trie_get",
    "trie_remove",
    "trie_set",
]


def _empty_children() -> List[Optional["TrieNode"]]:
    return [None] * NBYTE


@dataclass(slots=True)
class TrieNode:
    """A single branching point holding an optional value buffer."""

    value: Optional[bytearray] = None
    children: List[Optional["TrieNode"]] = field(default_factory=_empty_children)

    def __post_init__(self) -> None:
        if len(self.children) != NBYTE:
            raise ValueError(f"TrieNode requires exactly {NBYTE} child slots")
        if not all(child is None or isinstance(child, TrieNode) for child in self.children):
            raise TypeError("TrieNode children must be TrieNode instances or None")
        if self.value is not None and not isinstance(self.value, bytearray):
            raise TypeError("TrieNode.value must be a bytearray or None")


def _as_bytes(data: object, label: str) -> bytes:
    # bytes() over a memoryview copies the raw buffer, so every index is 0-255
    # whatever the view's item format.
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"{label} must be a bytes-like object, not {type(data).__name__}")
    return bytes(data)


def _validate_member_size(member_size: object) -> int:
    if not isinstance(member_size, int) or isinstance(member_size, bool):
        raise TypeError("member_size must be an integer")
    if member_size < 0:
        raise ValueError("member_size must be non-negative")
    return member_size


class ByteTrie:
    """Byte-keyed trie mapping keys to fixed-width binary values."""

    __slots__ = ("root", "_size", "_member_size", "_node_count", "_value_count")

    def __init__(self, member_size: int = 0) -> None:
        self.root = TrieNode()
        self._size = 0
        self._member_size = 0
        self._node_count = 1
        self._value_count = 0
        self.create(member_size)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create(self, member_size: int) -> TrieResult:
        """Reset the trie to an empty state storing *member_size*-byte values.

        Any existing contents are released first, so calling ``create`` on a
        destroyed (or populated) trie yields the same empty structure.
        """

        width = _validate_member_size(member_size)
        if self._node_count > 1 or self._value_count:
            self._release()
        self._size = 0
        self._member_size = width
        logger.debug("Created trie with member_size=%d", width)
        return TrieResult.OK

    def destroy(self) -> TrieResult:
        """Release every node and value buffer, then zero the counters.

        The root node itself survives so the trie can be re-created.
        """

        nodes, values = self._release()
        self._size = 0
        self._member_size = 0
        logger.debug("Destroyed trie: released %d nodes and %d values", nodes, values)
        return TrieResult.OK

    # ------------------------------------------------------------------
    # Value operations
    # ------------------------------------------------------------------
    def add(self, key: BytesLike, elem: BytesLike) -> TrieResult:
        """Map *key* to the first ``member_size`` bytes of *elem* (upsert)."""

        path = _as_bytes(key, "key")
        payload = self._payload(elem)
        node = self._node_at_and_allocate(path)
        if node.value is None:
            node.value = bytearray(self._member_size)
            self._value_count += 1
            self._size += 1
        node.value[:] = payload
        return TrieResult.OK

    def remove(self, key: BytesLike) -> TrieResult:
        """Unmap *key*, releasing its value buffer."""

        path = _as_bytes(key, "key")
        node = self._node_at(path)
        if node is None or node.value is None:
            logger.debug("remove rejected: %d-byte key is not mapped", len(path))
            return TrieResult.ACCESS_OUT_OF_BOUND
        node.value = None
        self._value_count -= 1
        self._size -= 1
        return TrieResult.OK

    def get(self, key: BytesLike, out: Union[bytearray, memoryview]) -> TrieResult:
        """Copy the value mapped by *key* into the writable buffer *out*.

        *out* must be exactly ``member_size`` bytes long.  Its contents are
        only meaningful when ``OK`` is returned.
        """

        path = _as_bytes(key, "key")
        target = self._output_view(out)
        node = self._node_at(path)
        if node is None or node.value is None:
            return TrieResult.ACCESS_OUT_OF_BOUND
        target[:] = node.value
        return TrieResult.OK

    def set(self, key: BytesLike, elem: BytesLike) -> TrieResult:
        """Overwrite the value of an already mapped *key* in place."""

        path = _as_bytes(key, "key")
        payload = self._payload(elem)
        node = self._node_at(path)
        if node is None or node.value is None:
            logger.debug("set rejected: %d-byte key is not mapped", len(path))
            return TrieResult.ACCESS_OUT_OF_BOUND
        node.value[:] = payload
        return TrieResult.OK

    def lookup(self, key: BytesLike) -> Optional[bytes]:
        """Return a copy of the value mapped by *key*, or ``None``."""

        node = self._node_at(_as_bytes(key, "key"))
        if node is None or node.value is None:
            return None
        return bytes(node.value)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (bytes, bytearray, memoryview)):
            return False
        return self.lookup(key) is not None

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(member_size={self._member_size}, "
            f"size={self._size}, nodes={self._node_count})"
        )

    @property
    def size(self) -> int:
        """Number of currently mapped keys."""

        return self._size

    @property
    def member_size(self) -> int:
        """Byte width of every stored value."""

        return self._member_size

    @property
    def node_count(self) -> int:
        """Total number of live nodes, root included."""

        return self._node_count

    @property
    def value_count(self) -> int:
        """Number of live value buffers."""

        return self._value_count

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _node_at_and_allocate(self, path: bytes) -> TrieNode:
        node = self.root
        for byte in path:
            child = node.children[byte]
            if child is None:
                child = TrieNode()
                node.children[byte] = child
                self._node_count += 1
            node = child
        return node

    def _node_at(self, path: bytes) -> Optional[TrieNode]:
        node: Optional[TrieNode] = self.root
        for byte in path:
            node = node.children[byte]
            if node is None:
                return None
        return node

    def _payload(self, elem: object) -> bytes:
        data = _as_bytes(elem, "elem")
        if len(data) < self._member_size:
            raise ValueError(
                f"elem must provide at least {self._member_size} bytes, got {len(data)}"
            )
        return data[: self._member_size]

    def _output_view(self, out: object) -> memoryview:
        try:
            view = memoryview(out)  # type: ignore[arg-type]
        except TypeError as exc:
            raise TypeError("out must be a writable bytes-like buffer") from exc
        if not view.c_contiguous:
            raise TypeError("out must be a writable bytes-like buffer")
        if view.readonly:
            raise ValueError("out must be a writable buffer")
        if view.nbytes != self._member_size:
            raise ValueError(
                f"out must be exactly {self._member_size} bytes, got {view.nbytes}"
            )
        return view.cast("B")

    def _release(self) -> Tuple[int, int]:
        """Detach every node below the root in post-order.

        Returns the number of nodes and value buffers released.
        """

        released_nodes = 0
        released_values = 0
        stack: List[Tuple[TrieNode, bool]] = [(self.root, False)]
        while stack:
            node, expanded = stack.pop()
            if not expanded:
                stack.append((node, True))
                stack.extend((child, False) for child in node.children if child is not None)
                continue
            if node.value is not None:
                node.value = None
                released_values += 1
            for index, child in enumerate(node.children):
                if child is not None:
                    node.children[index] = None
                    released_nodes += 1

        self._node_count -= released_nodes
        self._value_count -= released_values
        return released_nodes, released_values


# ----------------------------------------------------------------------
# Handle-style API: an absent trie reports NULL_STRUCTURE
# ----------------------------------------------------------------------
def trie_create(trie: Optional[ByteTrie], member_size: int) -> TrieResult:
    """Initialise *trie* for *member_size*-byte values."""

    if trie is None:
        return TrieResult.NULL_STRUCTURE
    return trie.create(member_size)


def trie_destroy(trie: Optional[ByteTrie]) -> TrieResult:
    """Release every node and value held by *trie*."""

    if trie is None:
        return TrieResult.NULL_STRUCTURE
    return trie.destroy()


def trie_add(trie: Optional[ByteTrie], key: BytesLike, elem: BytesLike) -> TrieResult:
    """Map *key* to *elem* in *trie*, overwriting any previous value."""

    if trie is None:
        return TrieResult.NULL_STRUCTURE
    return trie.add(key, elem)


def trie_remove(trie: Optional[ByteTrie], key: BytesLike) -> TrieResult:
    """Unmap *key* from *trie*."""

    if trie is None:
        return TrieResult.NULL_STRUCTURE
    return trie.remove(key)


def trie_get(
    trie: Optional[ByteTrie], key: BytesLike, out: Union[bytearray, memoryview]
) -> TrieResult:
    """Copy the value mapped by *key* in *trie* into *out*."""

    if trie is None:
        return TrieResult.NULL_STRUCTURE
    return trie.get(key, out)


def trie_set(trie: Optional[ByteTrie], key: BytesLike, elem: BytesLike) -> TrieResult:
    """Overwrite the value of an already mapped *key* in *trie*."""

    if trie is None:
        return TrieResult.NULL_STRUCTURE
    return trie.set(key, elem)
