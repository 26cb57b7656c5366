"""Lazily loaded, process-wide model handle."""
import asyncio
from typing import Callable, Generic, Optional, TypeVar

from gymkiosk.core.exceptions import ModelLoadError
from gymkiosk.core.logging import get_logger

logger = get_logger(__name__)

M = TypeVar('M')


class ModelHandle(Generic[M]):
    """Owns one lazily loaded model.

    The first caller of ``get`` runs the blocking ``loader`` in a worker
    thread; callers arriving while that load is in flight wait on the same
    lock and receive the same instance. A failed load is not cached, so the
    next ``get`` tries again.

    Example:
        ```python
        handle = ModelHandle(lambda: load_face_analysis(settings), max_attempts=2)
        model = await handle.get()
        ```
    """

    def __init__(self, loader: Callable[[], M], max_attempts: int = 1, name: str = "model") -> None:
        """Initialize the handle without loading anything.

        Args:
            loader: Blocking callable returning the loaded model
            max_attempts: Load attempts per ``get`` call before giving up
            name: Model name used in log events
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._loader = loader
        self._max_attempts = max_attempts
        self._name = name
        self._model: Optional[M] = None
        self._lock = asyncio.Lock()
        self.load_attempts = 0

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    async def get(self) -> M:
        """Return the loaded model, loading it on first use.

        Raises:
            ModelLoadError: If every load attempt failed
        """
        if self._model is not None:
            return self._model

        async with self._lock:
            # Another caller may have finished loading while we waited
            if self._model is not None:
                return self._model

            last_error: Optional[BaseException] = None
            for attempt in range(1, self._max_attempts + 1):
                logger.info("Loading model", model=self._name, attempt=attempt)
                try:
                    self.load_attempts += 1
                    model = await asyncio.to_thread(self._loader)
                except Exception as e:
                    last_error = e
                    logger.error(
                        "Model load failed",
                        model=self._name,
                        attempt=attempt,
                        max_attempts=self._max_attempts,
                        error=str(e),
                        exc_info=True
                    )
                    continue

                self._model = model
                logger.info("Model loaded", model=self._name)
                return model

            raise ModelLoadError(
                f"Failed to load {self._name} after {self._max_attempts} attempt(s)",
                details={"error": str(last_error)}
            )

    def release(self) -> None:
        """Drop the loaded model so the next ``get`` loads it again."""
        self._model = None
