from __future__ import annotations

import json
from pathlib import Path

import pytest

from bytetrie.profiling import (
    AllocationLeakError,
    BenchmarkConfig,
    BenchmarkConfigError,
    LEAK_TOLERANCE_BYTES,
    benchmark,
    generate_keys,
    load_benchmark_config,
    main,
    profile_lifecycle,
    write_profile_json,
)
from bytetrie.results import TrieResult
from bytetrie.trie import ByteTrie, TrieNode

SMALL_CONFIG = BenchmarkConfig(member_size=4, key_count=200, key_length=3, sample_size=50)


def test_benchmark_handles_empty_iterable() -> None:
    trie = ByteTrie(1)
    assert benchmark(trie, []) == 0.0


def test_benchmark_measures_average_latency(monkeypatch: pytest.MonkeyPatch) -> None:
    trie = ByteTrie(1)
    trie.add(b"alpha", b"a")

    timings: list[float] = [10.0, 11.0]

    def fake_perf_counter() -> float:
        return timings.pop(0)

    monkeypatch.setattr("bytetrie.profiling.time.perf_counter", fake_perf_counter)

    duration = benchmark(trie, [b"alpha", b"beta"])
    assert duration == pytest.approx(0.5)


def test_generate_keys_is_deterministic_and_distinct() -> None:
    first = generate_keys(100, 4, seed=7)
    second = generate_keys(100, 4, seed=7)

    assert first == second
    assert len(set(first)) == 100
    assert all(len(key) == 4 for key in first)


def test_generate_keys_is_capped_by_key_space() -> None:
    keys = generate_keys(300, 1)
    assert sorted(keys) == [bytes([value]) for value in range(256)]
    assert generate_keys(5, 0) == [b""]


def test_profile_lifecycle_releases_all_allocations() -> None:
    profile = profile_lifecycle(SMALL_CONFIG)

    assert profile.key_count == 200
    assert profile.size == 200
    assert profile.value_count == 200
    assert profile.node_count > profile.size
    assert profile.peak_bytes > 0
    assert profile.remaining_nodes == 1
    assert profile.remaining_values == 0
    assert profile.retained_bytes <= LEAK_TOLERANCE_BYTES


def test_profile_lifecycle_detects_leaks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ByteTrie, "destroy", lambda self: TrieResult.OK)

    with pytest.raises(AllocationLeakError):
        profile_lifecycle(SMALL_CONFIG)


def test_profile_lifecycle_detects_nodes_kept_alive_behind_reset_counters(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    detached: list[TrieNode] = []

    def release_keeping_subtrees(self: ByteTrie) -> tuple[int, int]:
        released = (self._node_count - 1, self._value_count)
        for index, child in enumerate(self.root.children):
            if child is not None:
                detached.append(child)
                self.root.children[index] = None
        self._node_count = 1
        self._value_count = 0
        return released

    monkeypatch.setattr(ByteTrie, "_release", release_keeping_subtrees)

    with pytest.raises(AllocationLeakError, match="retained"):
        profile_lifecycle(SMALL_CONFIG)
    assert detached


def test_load_benchmark_config_defaults() -> None:
    assert load_benchmark_config(None) == BenchmarkConfig()


def test_load_benchmark_config_from_json(tmp_path: Path) -> None:
    config_path = tmp_path / "suite.json"
    config_path.write_text(json.dumps({"member_size": 2, "key_count": 10}), encoding="utf-8")

    config = load_benchmark_config(config_path)

    assert config.member_size == 2
    assert config.key_count == 10
    assert config.key_length == BenchmarkConfig().key_length


def test_load_benchmark_config_from_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "suite.yaml"
    config_path.write_text("key_length: 2\nseed: 99\n", encoding="utf-8")

    config = load_benchmark_config(config_path)

    assert config.key_length == 2
    assert config.seed == 99


def test_load_benchmark_config_accepts_empty_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "empty.yml"
    config_path.write_text("", encoding="utf-8")
    assert load_benchmark_config(config_path) == BenchmarkConfig()


@pytest.mark.parametrize(
    "filename,payload",
    [
        ("unknown.json", b'{"member_size": 1, "colour": "blue"}'),
        ("negative.yaml", b"member_size: -3\n"),
        ("wrong_type.yaml", b"key_count: many\n"),
        ("not_mapping.yaml", b"- 1\n- 2\n"),
        ("broken.json", b"{not json"),
        ("binary.yaml", b"\xff\xfe\x00garbage"),
    ],
)
def test_load_benchmark_config_rejects_invalid_payloads(
    tmp_path: Path, filename: str, payload: bytes
) -> None:
    config_path = tmp_path / filename
    config_path.write_bytes(payload)
    with pytest.raises(BenchmarkConfigError):
        load_benchmark_config(config_path)


def test_write_profile_json(tmp_path: Path) -> None:
    profile = profile_lifecycle(SMALL_CONFIG)
    target = tmp_path / "reports" / "profile.json"

    write_profile_json(target, profile)

    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["size"] == 200
    assert data["remaining_nodes"] == 1


def test_main_prints_json_profile(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    output = tmp_path / "profile.json"
    exit_code = main(
        ["--key-count", "25", "--member-size", "3", "--output-format", "json", "--output", str(output)]
    )

    assert exit_code == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["size"] == 25
    assert printed["member_size"] == 3
    assert json.loads(output.read_text(encoding="utf-8")) == printed


def test_main_text_output(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--key-count", "10"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("Keys: 10 ")
    assert lines[-1] == "After destroy: 1 nodes, 0 values"


def test_main_reports_invalid_config(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("sample_size: -1\n", encoding="utf-8")
    assert main(["--config", str(config_path)]) == 2
    assert main(["--config", str(tmp_path / "missing.yaml")]) == 2

    binary_path = tmp_path / "binary.yaml"
    binary_path.write_bytes(b"\xff\xfe\x00garbage")
    assert main(["--config", str(binary_path)]) == 2
