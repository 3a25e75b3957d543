"""
Feedback storage aggregate.

One object owns both the known-course set and the per-course append-only
feedback log, so a commit touches a single lock.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Sequence, Tuple, TypeVar

from .exceptions import MalformedInputError
from .types import FeedbackEntry

T = TypeVar("T")


def paginate(items: Sequence[T], offset: int, limit: int) -> List[T]:
    """
    Bounded slice: empty when ``offset >= len(items)``, ``limit`` clipped
    to what remains.

    Raises:
        MalformedInputError: On negative offset or limit
    """
    if not isinstance(offset, int) or not isinstance(limit, int):
        raise MalformedInputError("offset and limit must be integers")
    if offset < 0 or limit < 0:
        raise MalformedInputError("offset and limit must be non-negative")
    if offset >= len(items):
        return []
    end = min(offset + limit, len(items))
    return list(items[offset:end])


class FeedbackStore:
    def __init__(self) -> None:
        self._courses: List[str] = []
        self._feedbacks: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def commit(self, course: str, ipfs_hash: str) -> FeedbackEntry:
        """Append a feedback pointer and register the course if new."""
        with self._lock:
            log = self._feedbacks.get(course)
            if log is None:
                log = self._feedbacks[course] = []
                self._courses.append(course)
            log.append(ipfs_hash)
        return FeedbackEntry(course=course, ipfs_hash=ipfs_hash)

    def get_feedbacks(self, course: str, offset: int, limit: int) -> List[str]:
        with self._lock:
            log = tuple(self._feedbacks.get(course, ()))
        return paginate(log, offset, limit)

    def get_courses(self, offset: int, limit: int) -> List[str]:
        with self._lock:
            courses = tuple(self._courses)
        return paginate(courses, offset, limit)

    def get_all(self) -> Tuple[List[str], List[List[str]]]:
        with self._lock:
            courses = list(self._courses)
            return courses, [list(self._feedbacks[c]) for c in courses]

    def feedback_count(self, course: str) -> int:
        with self._lock:
            return len(self._feedbacks.get(course, ()))

    def course_count(self) -> int:
        with self._lock:
            return len(self._courses)

    def is_known_course(self, course: str) -> bool:
        with self._lock:
            return course in self._feedbacks

    def snapshot(self) -> Tuple[Tuple[str, ...], Dict[str, Tuple[str, ...]]]:
        """Immutable copy of the whole store, for before/after comparisons."""
        with self._lock:
            return tuple(self._courses), {
                c: tuple(log) for c, log in self._feedbacks.items()
            }
