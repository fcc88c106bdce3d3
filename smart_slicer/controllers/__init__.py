"""Controller layer that ties geometry, extraction and the processing queue together."""

from .session import NoSourceImageError, SlicingSession

__all__ = ["SlicingSession", "NoSourceImageError"]
