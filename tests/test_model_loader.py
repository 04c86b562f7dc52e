"""
Tests for model loading and the shared model handle.
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from privacy_redaction.config import NetworkConfig
from privacy_redaction.model_loader import SharedModel, get_shared_model, load_model


class _CountingLoader:
    def __init__(self, fail_times=0, delay=None):
        self.calls = 0
        self._fail_times = fail_times
        self._delay = delay
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            call = self.calls
        if self._delay is not None:
            self._delay.wait(timeout=5)
        if call <= self._fail_times:
            raise RuntimeError("load failed")
        return object()


def test_shared_model_loads_once_across_threads():
    """Concurrent callers all receive the single loaded instance."""
    release = threading.Event()
    loader = _CountingLoader(delay=release)
    handle = SharedModel(loader, name="test")

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(handle.get) for _ in range(8)]
        release.set()
        models = [f.result(timeout=5) for f in futures]

    assert loader.calls == 1
    assert all(m is models[0] for m in models)
    assert handle.is_loaded


def test_shared_model_async_callers_share_load():
    """Async waiters resolve from the same in-flight load."""
    loader = _CountingLoader()
    handle = SharedModel(loader, name="test")

    async def main():
        return await asyncio.gather(*(handle.get_async() for _ in range(5)))

    models = asyncio.run(main())

    assert loader.calls == 1
    assert all(m is models[0] for m in models)
    assert handle.get() is models[0]


def test_shared_model_failure_is_not_memoized():
    """A failed load raises, then a later call retries and succeeds."""
    loader = _CountingLoader(fail_times=1)
    handle = SharedModel(loader, name="test")

    with pytest.raises(RuntimeError, match="load failed"):
        handle.get()
    assert not handle.is_loaded

    model = handle.get()
    assert model is handle.get()
    assert loader.calls == 2


def test_shared_model_reset():
    loader = _CountingLoader()
    handle = SharedModel(loader, name="test")
    first = handle.get()
    handle.reset()
    assert handle.get() is not first
    assert loader.calls == 2


def test_registry_shares_handles(tmp_path):
    """The same network and backend map to one handle."""
    network = NetworkConfig(
        prototxt_path=str(tmp_path / "a.prototxt"),
        weights_path=str(tmp_path / "b.caffemodel"),
    )
    assert get_shared_model(network) is get_shared_model(network)
    assert get_shared_model(network, "cuda") is not get_shared_model(network, "cpu")


def test_load_model_missing_files(tmp_path):
    """Missing model files raise FileNotFoundError naming the path."""
    network = NetworkConfig(
        prototxt_path=str(tmp_path / "missing.prototxt"),
        weights_path=str(tmp_path / "missing.caffemodel"),
    )
    with pytest.raises(FileNotFoundError, match="missing.prototxt"):
        load_model(network)

    (tmp_path / "missing.prototxt").write_text("", encoding="utf-8")
    with pytest.raises(FileNotFoundError, match="missing.caffemodel"):
        load_model(network)
