"""Abstract recognition engine interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from normalization.utils import RasterImage

from .models import RecognitionResult

logger = logging.getLogger(__name__)


class RecognitionError(RuntimeError):
    """Text recognition failed.

    ``transient`` is True when retrying the same input may succeed
    (engine busy, timeout) and False for permanent failures such as
    undecodable input or a missing engine.
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class RecognitionAdapter(ABC):
    """Converts an image into a :class:`RecognitionResult`.

    Subclasses implement :meth:`_recognize`; anything it raises other
    than :class:`RecognitionError` is wrapped as a permanent failure,
    except timeouts which are reported as transient.
    """

    name = "base"

    def recognize(self, image: RasterImage) -> RecognitionResult:
        try:
            result = self._recognize(image)
        except RecognitionError:
            raise
        except TimeoutError as exc:
            raise RecognitionError(f"{self.name}: timed out: {exc}", transient=True) from exc
        except Exception as exc:
            raise RecognitionError(f"{self.name}: {type(exc).__name__}: {exc}") from exc
        logger.debug("%s recognised %d blocks", self.name, len(result.blocks))
        return result

    @abstractmethod
    def _recognize(self, image: RasterImage) -> RecognitionResult:
        raise NotImplementedError
