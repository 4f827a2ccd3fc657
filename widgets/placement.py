"""Ordering of widget ids inside sidebars.

A placement map is a plain ``dict[str, list[str]]`` of sidebar id to the
ordered widget ids shown in it. Every function here mutates the map it is
given and returns it, so callers own the map and decide when to persist it.
Positions accepted from callers are 1-based; anything past the end appends and
anything below 1 inserts first.
"""
from __future__ import annotations

import re
import threading
from contextlib import contextmanager
from typing import Iterable

from .errors import InternalInconsistency

PlacementMap = dict[str, list[str]]

TEMPLATE_INSTANCE_NUMBER = 1


def split_widget_id(widget_id: str) -> tuple[str, int] | None:
    base, sep, number = widget_id.rpartition("-")
    if not sep or not base or not number.isdigit():
        return None
    return base, int(number)


def allocate_instance_number(base_type: str, item_ids: Iterable[str]) -> int:
    """Next free instance number for ``base_type``.

    Number 1 is the template slot of a widget type that was never configured,
    so the first real instance is 2.
    """
    pattern = re.compile(rf"^{re.escape(base_type)}-([0-9]+)$")
    number = TEMPLATE_INSTANCE_NUMBER
    for item_id in item_ids:
        match = pattern.match(item_id)
        if match:
            number = max(number, int(match.group(1)))
    return number + 1


def find_container(placement: PlacementMap, item_id: str) -> str | None:
    found = None
    for container_id, sequence in placement.items():
        count = sequence.count(item_id)
        if not count:
            continue
        if count > 1 or found is not None:
            raise InternalInconsistency(
                f"Widget {item_id} is placed more than once."
            )
        found = container_id
    return found


def check_invariants(placement: PlacementMap) -> None:
    seen: dict[str, str] = {}
    for container_id, sequence in placement.items():
        for item_id in sequence:
            if item_id in seen:
                raise InternalInconsistency(
                    f"Widget {item_id} is placed in both {seen[item_id]} and {container_id}."
                )
            seen[item_id] = container_id


def clamp_position(length: int, requested_position: int) -> int:
    """Clamp a 1-based position to ``[1, length + 1]`` and return it 0-based."""
    return min(max(requested_position, 1), length + 1) - 1


def remove(placement: PlacementMap, item_id: str) -> PlacementMap:
    container_id = find_container(placement, item_id)
    if container_id is None:
        return placement
    sequence = placement[container_id]
    del sequence[sequence.index(item_id)]
    return placement


def insert(
    placement: PlacementMap,
    container_id: str,
    item_id: str,
    requested_position: int,
) -> PlacementMap:
    remove(placement, item_id)
    sequence = placement.setdefault(container_id, [])
    sequence.insert(clamp_position(len(sequence), requested_position), item_id)
    return placement


def move(
    placement: PlacementMap,
    item_id: str,
    dest_container_id: str,
    requested_position: int,
) -> PlacementMap:
    # The position is read against the sequence after the widget left it.
    return insert(remove(placement, item_id), dest_container_id, item_id, requested_position)


class ContainerLocks:
    """One lock per sidebar id, always taken in sorted order."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, container_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(container_id)
            if lock is None:
                lock = self._locks[container_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *container_ids: str | None):
        ordered = sorted({cid for cid in container_ids if cid is not None})
        acquired = []
        try:
            for container_id in ordered:
                lock = self._lock_for(container_id)
                lock.acquire()
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()


container_locks = ContainerLocks()
