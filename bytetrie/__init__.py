"""Byte-keyed 256-way trie with a result-code error contract."""

from .profiling import (
    AllocationLeakError,
    BenchmarkConfig,
    BenchmarkConfigError,
    LifecycleProfile,
    benchmark,
    load_benchmark_config,
    profile_lifecycle,
    write_profile_json,
)
from .results import TrieOperationError, TrieResult, ensure_ok, result_to_str
from .trie import (
    NBYTE,
    ByteTrie,
    TrieNode,
    trie_add,
    trie_create,
    trie_destroy,
    trie_get,
    trie_remove,
    trie_set,
)

__all__ = [
    "AllocationLeakError",
    "BenchmarkConfig",
    "BenchmarkConfigError",
    "ByteTrie",
    "LifecycleProfile",
    "NBYTE",
    "TrieNode",
    "TrieOperationError",
    "TrieResult",
    "benchmark",
    "ensure_ok",
    "load_benchmark_config",
    "profile_lifecycle",
    "result_to_str",
    "trie_add",
    "trie_create",
    "trie_destroy",
    "trie_get",
    "trie_remove",
    "trie_set",
    "write_profile_json",
]
