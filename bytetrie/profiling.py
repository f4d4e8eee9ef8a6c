"""Benchmark and allocation-tracking helpers for :mod:`bytetrie.trie`.

The helpers here exercise a trie end to end and are used both by the test
suite and by the ``python -m bytetrie.profiling`` command line entry point:

* ``benchmark`` – average ``lookup`` latency for a batch of keys.
* ``profile_lifecycle`` – builds a trie from a deterministic random key set
  under ``tracemalloc``, destroys it and verifies that only the root node is
  left behind.  A trie that fails to release its nodes or value buffers raises
  :class:`AllocationLeakError`.
* ``load_benchmark_config`` – reads a suite description from JSON or YAML.
* ``write_profile_json`` – persists a :class:`LifecycleProfile`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
import argparse
import json
import logging
import random
import sys
import time
import tracemalloc
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence

import yaml

from . import trie as trie_module
from .results import ensure_ok
from .trie import ByteTrie

logger = logging.getLogger(__name__)

DEFAULT_MEMBER_SIZE = 8
DEFAULT_KEY_COUNT = 2_000
DEFAULT_KEY_LENGTH = 6
DEFAULT_SAMPLE_SIZE = 500
DEFAULT_SEED = 13
LEAK_TOLERANCE_BYTES = 4096

_TRIE_SOURCE = trie_module.__file__

__all__ = [
    "AllocationLeakError",
    "BenchmarkConfig",
    "BenchmarkConfigError",
    "LifecycleProfile",
    "benchmark",
    "generate_keys",
    "load_benchmark_config",
    "main",
    "profile_lifecycle",
    "write_profile_json",
]


class BenchmarkConfigError(ValueError):
    """Raised when a benchmark suite description is invalid."""


class AllocationLeakError(RuntimeError):
    """Raised when a destroyed trie still holds nodes or values."""


@dataclass(frozen=True)
class BenchmarkConfig:
    """Parameters describing a benchmark run."""

    member_size: int = DEFAULT_MEMBER_SIZE
    key_count: int = DEFAULT_KEY_COUNT
    key_length: int = DEFAULT_KEY_LENGTH
    sample_size: int = DEFAULT_SAMPLE_SIZE
    seed: int = DEFAULT_SEED

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise BenchmarkConfigError(f"{item.name} must be an integer")
        if self.member_size < 0:
            raise BenchmarkConfigError("member_size must be non-negative")
        if self.key_count < 0 or self.key_length < 0 or self.sample_size < 0:
            raise BenchmarkConfigError(
                "key_count, key_length and sample_size must be non-negative"
            )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "BenchmarkConfig":
        if not isinstance(payload, Mapping):
            raise BenchmarkConfigError("benchmark config must be a mapping")
        known = {item.name for item in fields(cls)}
        unknown = sorted(str(name) for name in set(payload) - known)
        if unknown:
            raise BenchmarkConfigError(f"unknown benchmark config fields: {', '.join(unknown)}")
        return cls(**dict(payload))


@dataclass(frozen=True)
class LifecycleProfile:
    """Measurements captured while building and destroying a trie."""

    key_count: int
    member_size: int
    size: int
    node_count: int
    value_count: int
    peak_bytes: int
    build_seconds: float
    lookup_seconds: float
    remaining_nodes: int
    remaining_values: int
    retained_bytes: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_benchmark_config(path: Optional[Path]) -> BenchmarkConfig:
    """Load a :class:`BenchmarkConfig` from a JSON or YAML file.

    ``None`` returns the defaults.  Files ending in ``.json`` are parsed as
    JSON; everything else goes through ``yaml.safe_load``.  An empty YAML
    document is treated as an empty mapping.
    """

    if path is None:
        return BenchmarkConfig()
    try:
        text = Path(path).read_text(encoding="utf-8")
        if Path(path).suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise BenchmarkConfigError(f"failed to parse {path}: {exc}") from exc
    if payload is None:
        payload = {}
    return BenchmarkConfig.from_mapping(payload)


def generate_keys(count: int, length: int, *, seed: int = DEFAULT_SEED) -> List[bytes]:
    """Return *count* distinct pseudo-random keys of *length* bytes.

    Fewer keys are returned when the key space (``256 ** length``) is smaller
    than *count*.
    """

    rng = random.Random(seed)
    capacity = 256**length
    target = min(count, capacity)
    keys: dict[bytes, None] = {}
    while len(keys) < target:
        keys[rng.randbytes(length)] = None
    return list(keys)


def benchmark(trie: ByteTrie, keys: Iterable[bytes]) -> float:
    """Return the average ``lookup`` latency for *keys* in seconds.

    The iterable is consumed once; ``0.0`` is returned when it is empty.
    """

    key_list = list(keys)
    if not key_list:
        return 0.0

    start = time.perf_counter()
    for key in key_list:
        trie.lookup(key)
    elapsed = time.perf_counter() - start
    return elapsed / len(key_list)


def _value_for(index: int, member_size: int) -> bytes:
    return index.to_bytes(8, "little").ljust(member_size, b"\0")[:member_size]


def _traced_trie_bytes() -> int:
    snapshot = tracemalloc.take_snapshot().filter_traces(
        [tracemalloc.Filter(True, _TRIE_SOURCE)]
    )
    return sum(stat.size for stat in snapshot.statistics("filename"))


def profile_lifecycle(config: BenchmarkConfig | None = None) -> LifecycleProfile:
    """Build, measure and destroy a trie according to *config*.

    ``tracemalloc`` stays active from before the first ``add`` until after
    ``destroy``.  Memory still attributed to :mod:`bytetrie.trie` once the trie
    is destroyed must return to the pre-build baseline (within
    ``LEAK_TOLERANCE_BYTES``), independently of the trie's own counters.
    """

    config = config or BenchmarkConfig()
    keys = generate_keys(config.key_count, config.key_length, seed=config.seed)
    trie = ByteTrie(config.member_size)
    sample = random.Random(config.seed).sample(keys, min(config.sample_size, len(keys)))

    tracemalloc.start()
    try:
        baseline = _traced_trie_bytes()
        start = time.perf_counter()
        for index, key in enumerate(keys):
            ensure_ok(trie.add(key, _value_for(index, config.member_size)), "add")
        build_seconds = time.perf_counter() - start
        _current, peak = tracemalloc.get_traced_memory()
        logger.debug("Built trie with %d keys, peak=%d bytes", len(keys), peak)

        lookup_seconds = benchmark(trie, sample)

        size, node_count, value_count = trie.size, trie.node_count, trie.value_count
        ensure_ok(trie.destroy(), "destroy")
        retained = _traced_trie_bytes() - baseline
    finally:
        if tracemalloc.is_tracing():
            tracemalloc.stop()
    logger.debug("Destroyed trie, %d bytes still traced to the trie module", retained)

    if trie.node_count != 1 or trie.value_count != 0 or trie.size != 0:
        raise AllocationLeakError(
            "Destroyed trie still holds allocations: "
            f"nodes={trie.node_count}, values={trie.value_count}, size={trie.size}"
        )
    if retained > LEAK_TOLERANCE_BYTES:
        raise AllocationLeakError(
            f"Destroyed trie retained {retained} bytes allocated by the trie module"
        )

    return LifecycleProfile(
        key_count=len(keys),
        member_size=config.member_size,
        size=size,
        node_count=node_count,
        value_count=value_count,
        peak_bytes=peak,
        build_seconds=build_seconds,
        lookup_seconds=lookup_seconds,
        remaining_nodes=trie.node_count,
        remaining_values=trie.value_count,
        retained_bytes=retained,
    )


def write_profile_json(path: Path, profile: LifecycleProfile) -> None:
    """Persist *profile* to ``path`` as pretty-printed JSON."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(profile.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("value must be an integer") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be non-negative")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Profile building, querying and destroying a byte-keyed trie.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional JSON or YAML benchmark suite description.",
    )
    parser.add_argument(
        "--key-count",
        type=_non_negative_int,
        default=None,
        help="Override the number of keys inserted.",
    )
    parser.add_argument(
        "--member-size",
        type=_non_negative_int,
        default=None,
        help="Override the value width in bytes.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the profile as JSON to this path.",
    )
    parser.add_argument(
        "--output-format",
        choices=["json", "text"],
        default="text",
        help="Print metrics as human-readable text or JSON.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity for diagnostic output.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for profiling the trie lifecycle."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    try:
        config = load_benchmark_config(args.config)
        overrides = {}
        if args.key_count is not None:
            overrides["key_count"] = args.key_count
        if args.member_size is not None:
            overrides["member_size"] = args.member_size
        config = replace(config, **overrides)
    except (OSError, BenchmarkConfigError) as exc:
        logger.error("Invalid benchmark configuration: %s", exc)
        return 2

    try:
        profile = profile_lifecycle(config)
    except AllocationLeakError as exc:
        logger.error("%s", exc)
        return 1

    if args.output is not None:
        write_profile_json(args.output, profile)
        logger.info("Profile written to %s", args.output)

    if args.output_format == "json":
        print(json.dumps(profile.to_dict(), sort_keys=True))
    else:
        print(
            f"Keys: {profile.size} ({profile.node_count} nodes, member_size={profile.member_size})\n"
            f"Peak allocation: {profile.peak_bytes} bytes\n"
            f"Build time: {profile.build_seconds:.6f} s\n"
            f"Average lookup: {profile.lookup_seconds * 1_000_000:.3f} us\n"
            f"After destroy: {profile.remaining_nodes} nodes, "
            f"{profile.remaining_values} values"
        )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
