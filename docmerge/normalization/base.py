from abc import ABC, abstractmethod

from docmerge.normalization.models import CancelCheck, NormalizationResult


class BaseNormalizer(ABC):
    """Contract for all normalization adapters."""

    @abstractmethod
    def normalize(
        self,
        source_bytes: bytes,
        cancel_check: CancelCheck | None = None,
    ) -> NormalizationResult:
        """Produce a PDF representation of a source document.

        Args:
            source_bytes: Raw uploaded file content.
            cancel_check: Polled between page-processing steps; when it
                          returns True the conversion stops.

        Returns:
            NormalizationResult with PDF bytes and page count.

        Raises:
            NormalizationFailure: if the source cannot be converted.
            NormalizationCancelledError: if cancellation was requested.
        """
