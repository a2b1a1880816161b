"""
Tests for simulation caching.
"""

import hashlib
from dataclasses import replace
from unittest.mock import MagicMock

import pandas as pd
import pytest

from impact_simulator.exceptions import CacheIOError
from impact_simulator.models import SimulationOutput
from impact_simulator.simulation_cache import (
    CacheKey,
    FileSimulationStore,
    InMemorySimulationStore,
    cache_key,
    config_fingerprint,
    load_or_compute,
)
from impact_simulator.trial_generation import generate_trials


@pytest.fixture
def counting_generator():
    """Trial generator stub that records its calls."""
    return MagicMock(side_effect=generate_trials)


class TestCacheKey:

    def test_weak_key_uses_name_and_trials(self, small_config):
        key = cache_key(small_config)
        assert key == CacheKey("small_test", 500)
        assert key.fingerprint is None

    def test_weak_key_ignores_other_parameters(self, small_config):
        other = replace(small_config, target_p_uptake=0.2)
        assert cache_key(small_config) == cache_key(other)

    def test_strict_key_distinguishes_parameters(self, small_config):
        other = replace(small_config, target_p_uptake=0.2)
        assert (cache_key(small_config, strict=True)
                != cache_key(other, strict=True))

    def test_fingerprint_is_stable(self, small_config):
        assert (config_fingerprint(small_config)
                == config_fingerprint(replace(small_config)))

    def test_fingerprint_ignores_int_float_spelling(self, small_config):
        as_int = replace(small_config, concentration=40)
        as_float = replace(small_config, concentration=40.0)
        assert as_int == as_float
        assert config_fingerprint(as_int) == config_fingerprint(as_float)

    def test_strict_key_hits_for_equal_configs(
        self, small_config, memory_store, counting_generator
    ):
        load_or_compute(
            replace(small_config, concentration=40.0), use_cache=True,
            store=memory_store, strict_key=True,
            trial_generator=counting_generator
        )
        load_or_compute(
            replace(small_config, concentration=40), use_cache=True,
            store=memory_store, strict_key=True,
            trial_generator=counting_generator
        )
        assert counting_generator.call_count == 1


class TestLoadOrCompute:

    def test_second_call_uses_cache(
        self, small_config, memory_store, counting_generator
    ):
        first = load_or_compute(
            small_config, use_cache=True, store=memory_store,
            random_state=1, trial_generator=counting_generator
        )
        second = load_or_compute(
            small_config, use_cache=True, store=memory_store,
            random_state=2, trial_generator=counting_generator
        )
        assert counting_generator.call_count == 1
        assert second is first

    def test_use_cache_false_recomputes_and_overwrites(
        self, small_config, memory_store, counting_generator
    ):
        first = load_or_compute(
            small_config, use_cache=True, store=memory_store,
            random_state=1, trial_generator=counting_generator
        )
        second = load_or_compute(
            small_config, use_cache=False, store=memory_store,
            random_state=2, trial_generator=counting_generator
        )
        assert counting_generator.call_count == 2
        assert second is not first
        assert memory_store.get(cache_key(small_config)) is second

    def test_stale_entry_returned_for_reused_name(
        self, small_config, memory_store, counting_generator
    ):
        first = load_or_compute(
            small_config, use_cache=True, store=memory_store,
            random_state=1, trial_generator=counting_generator
        )
        changed = replace(small_config, target_p_uptake=0.2)
        second = load_or_compute(
            changed, use_cache=True, store=memory_store,
            random_state=1, trial_generator=counting_generator
        )
        assert second is first
        assert second.config == small_config
        assert counting_generator.call_count == 1

    def test_strict_key_recomputes_for_changed_parameters(
        self, small_config, memory_store, counting_generator
    ):
        load_or_compute(
            small_config, use_cache=True, store=memory_store,
            strict_key=True, trial_generator=counting_generator
        )
        changed = replace(small_config, target_p_uptake=0.2)
        output = load_or_compute(
            changed, use_cache=True, store=memory_store,
            strict_key=True, trial_generator=counting_generator
        )
        assert output.config == changed
        assert counting_generator.call_count == 2

    def test_no_store_always_computes(self, small_config, counting_generator):
        for _ in range(2):
            load_or_compute(
                small_config, use_cache=True,
                trial_generator=counting_generator
            )
        assert counting_generator.call_count == 2

    def test_read_failure_falls_back(self, small_config, counting_generator):
        store = MagicMock(spec=InMemorySimulationStore)
        store.get.side_effect = CacheIOError("corrupt")
        with pytest.warns(RuntimeWarning, match="unreadable"):
            output = load_or_compute(
                small_config, use_cache=True, store=store,
                random_state=1, trial_generator=counting_generator
            )
        assert counting_generator.call_count == 1
        assert len(output.trials) == small_config.n_trials
        store.put.assert_called_once()

    def test_write_failure_keeps_result(self, small_config):
        store = MagicMock(spec=InMemorySimulationStore)
        store.get.return_value = None
        store.put.side_effect = CacheIOError("disk full")
        with pytest.warns(RuntimeWarning, match="Could not cache"):
            output = load_or_compute(
                small_config, use_cache=True, store=store, random_state=1
            )
        assert len(output.trials) == small_config.n_trials


class TestFileSimulationStore:

    @pytest.fixture
    def store(self, tmp_path):
        return FileSimulationStore(tmp_path / "cache")

    @pytest.fixture
    def output(self, small_config):
        return SimulationOutput(
            config=small_config,
            trials=generate_trials(small_config, random_state=4),
        )

    def test_missing_entry_is_none(self, store, small_config):
        assert store.get(cache_key(small_config)) is None

    def test_put_then_get(self, store, output, small_config):
        key = cache_key(small_config)
        store.put(key, output)
        loaded = store.get(key)
        assert loaded.config == small_config
        pd.testing.assert_frame_equal(loaded.trials, output.trials)

    def test_file_survives_new_store(self, tmp_path, output, small_config):
        key = cache_key(small_config)
        FileSimulationStore(tmp_path).put(key, output)
        loaded = FileSimulationStore(tmp_path).get(key)
        pd.testing.assert_frame_equal(loaded.trials, output.trials)

    def test_path_sanitises_name(self, store):
        path = store.path_for(CacheKey("iron / folic acid", 100))
        name_hash = hashlib.sha256(b"iron / folic acid").hexdigest()[:8]
        assert path.name == f"iron_folic_acid_{name_hash}_100.pkl"

    def test_path_includes_fingerprint(self, store):
        path = store.path_for(CacheKey("scenario", 100, "abc123"))
        assert path.name.startswith("scenario_")
        assert path.name.endswith("_100_abc123.pkl")

    def test_similar_names_get_distinct_paths(self, store):
        first = store.path_for(CacheKey("iron/folic acid", 100))
        second = store.path_for(CacheKey("iron folic acid", 100))
        assert first != second

    def test_similar_names_do_not_share_results(
        self, store, small_config, counting_generator
    ):
        slash = replace(small_config, simulation_name="iron/folic acid")
        space = replace(
            small_config, simulation_name="iron folic acid",
            target_p_uptake=0.2
        )
        load_or_compute(
            slash, use_cache=True, store=store, random_state=1,
            trial_generator=counting_generator
        )
        output = load_or_compute(
            space, use_cache=True, store=store, random_state=1,
            trial_generator=counting_generator
        )
        assert output.config == space
        assert counting_generator.call_count == 2
        assert store.get(cache_key(slash)).config == slash

    def test_entry_for_other_key_is_a_miss(self, store, output):
        stored_key = cache_key(output.config)
        store.put(stored_key, output)
        other_key = CacheKey("renamed", output.config.n_trials)
        store.path_for(stored_key).rename(store.path_for(other_key))
        assert store.get(other_key) is None

    def test_corrupt_file_raises_cache_error(self, store, small_config):
        key = cache_key(small_config)
        path = store.path_for(key)
        path.parent.mkdir(parents=True)
        path.write_bytes(b"not a pickle")
        with pytest.raises(CacheIOError):
            store.get(key)

    def test_corrupt_file_recomputed(self, store, small_config):
        key = cache_key(small_config)
        path = store.path_for(key)
        path.parent.mkdir(parents=True)
        path.write_bytes(b"not a pickle")
        with pytest.warns(RuntimeWarning):
            output = load_or_compute(
                small_config, use_cache=True, store=store, random_state=1
            )
        assert len(output.trials) == small_config.n_trials
        # The fresh result replaced the corrupt entry
        pd.testing.assert_frame_equal(store.get(key).trials, output.trials)

    def test_unwritable_directory_reports(self, tmp_path, small_config):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where the cache directory should be")
        store = FileSimulationStore(blocker / "cache")
        with pytest.raises(CacheIOError):
            store.put(cache_key(small_config), SimulationOutput(
                config=small_config,
                trials=generate_trials(small_config, random_state=4),
            ))

    def test_delete_and_clear(self, store, output, small_config):
        key = cache_key(small_config)
        other = CacheKey("other", 500)
        store.put(key, output)
        store.put(other, output)
        assert store.delete(key)
        assert not store.delete(key)
        store.clear()
        assert store.get(other) is None


class TestInMemorySimulationStore:

    def test_roundtrip_and_clear(self, memory_store, small_config):
        key = cache_key(small_config)
        output = SimulationOutput(
            config=small_config,
            trials=generate_trials(small_config, random_state=4),
        )
        memory_store.put(key, output)
        assert key in memory_store
        assert memory_store.get(key) is output
        memory_store.clear()
        assert len(memory_store) == 0
