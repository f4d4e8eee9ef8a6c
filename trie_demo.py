"""Command line walkthrough of the byte-keyed trie.

This script exercises ``bytetrie.trie.ByteTrie`` with a fixed set of nested
keys so the prefix behaviour can be observed directly from the command line.
Three keys that prefix one another (``a``, ``ab``, ``abc``) are stored, the
middle one is removed, and every step prints the operation's result message
together with the values that remain retrievable.

The heavy lifting lives in ``bytetrie``; here we only orchestrate the demo
steps and emit human-readable status lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, List

from bytetrie import ByteTrie, TrieResult

MEMBER_SIZE = 2
DEMO_KEYS = (b"a", b"ab", b"abc")


@dataclass(frozen=True)
class DemoStep:
    """A labelled operation together with its expected outcome."""

    label: str
    action: Callable[[ByteTrie], TrieResult]
    expected: TrieResult

    def run(self, trie: ByteTrie) -> TrieResult:
        """Apply the step to *trie* and check the outcome."""

        result = self.action(trie)
        if result != self.expected:
            raise RuntimeError(
                "Demo step expectation mismatch:"
                f" {self.label} expected {self.expected.name}"
                f" but received {result.name}"
            )
        return result


def _iter_demo_steps() -> Iterator[DemoStep]:
    """Yield the built-in demonstration steps."""

    for index, key in enumerate(DEMO_KEYS, start=1):
        value = index.to_bytes(MEMBER_SIZE, "big")
        yield DemoStep(
            _step_label("add", key),
            lambda trie, key=key, value=value: trie.add(key, value),
            TrieResult.OK,
        )
    yield DemoStep(_step_label("remove", b"ab"), lambda trie: trie.remove(b"ab"), TrieResult.OK)
    yield DemoStep(
        _step_label("remove", b"ab"),
        lambda trie: trie.remove(b"ab"),
        TrieResult.ACCESS_OUT_OF_BOUND,
    )
    yield DemoStep(
        _step_label("set", b"abcd"),
        lambda trie: trie.set(b"abcd", b"\x00\x09"),
        TrieResult.ACCESS_OUT_OF_BOUND,
    )


def _step_label(operation: str, key: bytes) -> str:
    return f"{operation}({key.decode('ascii')!r})"


def _format_contents(trie: ByteTrie) -> str:
    parts: List[str] = []
    for key in DEMO_KEYS:
        value = trie.lookup(key)
        rendered = "-" if value is None else value.hex()
        parts.append(f"{key.decode('ascii')}={rendered}")
    return f"size={len(trie)} " + " ".join(parts)


def main() -> None:
    """Execute the demonstration flow."""

    trie = ByteTrie(MEMBER_SIZE)
    for step in _iter_demo_steps():
        result = step.run(trie)
        print(f"{step.label}: {result.message}")
        print(f"  {_format_contents(trie)}")
    trie.destroy()
    print(f"destroy: size={len(trie)} nodes={trie.node_count}")


if __name__ == "__main__":
    main()
