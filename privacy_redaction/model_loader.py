"""
Model loading for the privacy redaction pipeline.

Responsibility:
    Load a Caffe SSD network from disk, configure the compute backend,
    and hand out one process-wide, lazily initialized handle per network
    so that every caller shares a single load.

Non-goals:
    - No preprocessing, inference, or frame-level logic.
    - No automatic model downloading.
    - No fallback to alternative models.

Failure behavior:
    - Missing model files raise FileNotFoundError with the exact
      missing path and expected location.
    - Incompatible backend raises RuntimeError.
    - A failed load is not memoized; the next caller retries.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import cv2

from privacy_redaction.config import NetworkConfig, get_project_root

logger = logging.getLogger(__name__)


def _resolve(path_str: str) -> Path:
    path = Path(path_str)
    if not path.is_absolute():
        path = get_project_root() / path
    return path


def load_model(network: NetworkConfig, backend: str = "cpu") -> cv2.dnn.Net:
    """Load and configure a Caffe SSD network.

    Args:
        network: NetworkConfig containing the file paths.
        backend: 'cpu' or 'cuda'.

    Returns:
        A configured cv2.dnn.Net ready for inference.

    Raises:
        FileNotFoundError: If prototxt or weights file does not exist.
        RuntimeError: If the requested backend is unavailable.
    """
    prototxt = _resolve(network.prototxt_path)
    weights = _resolve(network.weights_path)

    # Fail fast with actionable messages
    if not prototxt.is_file():
        raise FileNotFoundError(
            f"Model prototxt not found.\n"
            f"  Expected: {prototxt}\n"
            f"  Provide the file or update 'prototxt_path' in your config."
        )

    if not weights.is_file():
        raise FileNotFoundError(
            f"Model weights not found.\n"
            f"  Expected: {weights}\n"
            f"  Download the weights file and place it at the path above,\n"
            f"  or update 'weights_path' in your config."
        )

    logger.info("Loading model: prototxt=%s, weights=%s", prototxt, weights)
    net = cv2.dnn.readNetFromCaffe(str(prototxt), str(weights))

    # Configure backend and target
    if backend == "cuda":
        logger.info("Setting CUDA backend and target.")
        try:
            net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
            net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        except cv2.error as e:
            raise RuntimeError(
                f"Failed to set CUDA backend. Ensure OpenCV was built with "
                f"CUDA support (opencv-contrib-python or custom build).\n"
                f"  OpenCV error: {e}"
            ) from e
    else:
        logger.info("Using CPU backend.")
        net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

    logger.info("Model loaded successfully.")
    return net


class SharedModel:
    """A lazily loaded, memoized model handle.

    The first caller of get() or get_async() starts the load; every caller
    that arrives while it is in flight waits on the same Future. Once the
    load succeeds the model is returned directly. If it fails, every waiter
    sees the same exception and the handle resets so a later call retries.

    `inference_lock` serializes forward passes; cv2.dnn.Net is not safe to
    run from several threads at once.
    """

    def __init__(self, loader: Callable[[], object], name: str = "model") -> None:
        self._loader = loader
        self._name = name
        self._lock = threading.Lock()
        self._future: Optional[Future] = None
        self.inference_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_loaded(self) -> bool:
        future = self._future
        return future is not None and future.done() and future.exception() is None

    def _claim(self) -> Tuple[Future, bool]:
        """Return the in-flight future and whether this caller must run the load."""
        with self._lock:
            if self._future is None:
                self._future = Future()
                return self._future, True
            return self._future, False

    def _run_load(self, future: Future) -> None:
        try:
            model = self._loader()
        except BaseException as e:
            with self._lock:
                if self._future is future:
                    self._future = None
            logger.error("Failed to load %s: %s", self._name, e)
            future.set_exception(e)
        else:
            future.set_result(model)

    def get(self):
        """Return the model, loading it on first use (blocking)."""
        future, owner = self._claim()
        if owner:
            self._run_load(future)
        return future.result()

    async def get_async(self):
        """Return the model without blocking the running event loop."""
        future, owner = self._claim()
        if owner:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._run_load, future)
        return await asyncio.wrap_future(future)

    def reset(self) -> None:
        """Forget a loaded model so the next get() loads it again."""
        with self._lock:
            self._future = None


_REGISTRY: Dict[Tuple[str, str, str], SharedModel] = {}
_REGISTRY_LOCK = threading.Lock()


def get_shared_model(network: NetworkConfig, backend: str = "cpu") -> SharedModel:
    """Return the process-wide handle for a network, creating it if needed.

    Handles are keyed by (prototxt, weights, backend); two adapters built
    from the same network share one load.
    """
    key = (
        str(_resolve(network.prototxt_path)),
        str(_resolve(network.weights_path)),
        backend,
    )
    with _REGISTRY_LOCK:
        handle = _REGISTRY.get(key)
        if handle is None:
            handle = SharedModel(
                loader=lambda: load_model(network, backend),
                name=Path(network.weights_path).name,
            )
            _REGISTRY[key] = handle
        return handle


def clear_shared_models() -> None:
    """Drop all registered handles (used by tests and on shutdown)."""
    with _REGISTRY_LOCK:
        _REGISTRY.clear()
