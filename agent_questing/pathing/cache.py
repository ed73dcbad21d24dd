"""Cache of complete static path segments and their transitive combinations."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Sequence

from ..core.geometry import as_point
from .segments import PathSegment, SegmentKey

logger = logging.getLogger(__name__)


class PathSegmentCache:
    """Store complete segments keyed by ``(start, end)``.

    The first segment stored under a key wins. All reads and merges take the
    same lock so a lookup sees the cache either before or after a merge.
    """

    def __init__(self) -> None:
        self._segments: Dict[SegmentKey, PathSegment] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def store(self, segment: PathSegment) -> bool:
        """Add ``segment`` if it is complete and its key is new."""

        if not segment.is_complete:
            logger.debug("Not caching %s segment %s", segment.status.value, segment)
            return False
        with self._lock:
            if segment.key in self._segments:
                return False
            self._segments[segment.key] = segment
            return True

    def store_all(self, segments: Iterable[PathSegment]) -> int:
        """Merge ``segments`` atomically; return how many were added."""

        added = 0
        with self._lock:
            for segment in segments:
                if segment.is_complete and segment.key not in self._segments:
                    self._segments[segment.key] = segment
                    added += 1
        return added

    def clear(self) -> None:
        with self._lock:
            self._segments.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def lookup(self, destination: Sequence[float]) -> List[PathSegment]:
        """Return all cached segments ending exactly at ``destination``."""

        target = as_point(destination)
        with self._lock:
            return [s for s in self._segments.values() if s.end == target and s.is_complete]

    def get(self, start: Sequence[float], end: Sequence[float]) -> PathSegment | None:
        with self._lock:
            return self._segments.get((as_point(start), as_point(end)))

    def __contains__(self, key: SegmentKey) -> bool:
        with self._lock:
            return key in self._segments

    def __len__(self) -> int:
        with self._lock:
            return len(self._segments)

    @property
    def segments(self) -> List[PathSegment]:
        with self._lock:
            return list(self._segments.values())

    # ------------------------------------------------------------------
    # Closure
    # ------------------------------------------------------------------
    @staticmethod
    def combine(segments: Iterable[PathSegment]) -> List[PathSegment]:
        """Return ``segments`` extended with every chain of adjacent segments.

        Full passes join each ``X->Y`` with each ``Y->Z`` into ``X->Z`` when
        that key is missing, until a pass adds nothing. Self loops are not
        generated and the first segment seen for a key is kept. The input is
        not modified.
        """

        paths: Dict[SegmentKey, PathSegment] = {}
        for segment in segments:
            if segment.is_complete and segment.key not in paths:
                paths[segment.key] = segment

        passes = 0
        while True:
            passes += 1
            by_start: Dict[tuple, List[PathSegment]] = {}
            for segment in paths.values():
                by_start.setdefault(segment.start, []).append(segment)

            added = 0
            for first in list(paths.values()):
                for second in by_start.get(first.end, ()):
                    if second.end == first.start:
                        continue
                    key = (first.start, second.end)
                    if key in paths:
                        continue
                    combined = first.append(second)
                    paths[key] = combined
                    added += 1
                    logger.debug("Created a combined static path %s", combined)
            if added == 0:
                break

        logger.debug("Segment closure reached a fixed point after %d passes", passes)
        return list(paths.values())


__all__ = ["PathSegmentCache"]
