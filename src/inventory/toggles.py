"""
Optimistic Toggle Controller and user-facing notifications.

A toggle flips local state first and writes second. When the write fails
the local value goes back to what it was immediately before *that* toggle,
with one refinement for overlapping toggles on the same target:

- a newer write for the target already succeeded: nothing is reverted,
  local state already shows the confirmed newer value;
- a newer write is still in flight: the failed toggle's previous value is
  handed to it, so if the newer write fails too it reverts all the way;
- otherwise local state is reverted.

With a single toggle in flight this is the plain "revert to the value held
before the click" rule.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, Hashable, Iterator, List, Optional

from core.logging import LoggerMixin
from inventory.errors import StoreRequestError


# =============================================================================
# Notifications
# =============================================================================

class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    title: str
    description: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationLog(LoggerMixin):
    """Bounded, newest-last history of notifications shown to the user."""

    def __init__(self, maxlen: int = 50):
        self._entries: Deque[Notification] = deque(maxlen=maxlen)

    def push(self, level: NotificationLevel, title: str, description: str = "") -> Notification:
        notification = Notification(level=level, title=title, description=description)
        self._entries.append(notification)
        log = self.logger.warning if level == NotificationLevel.ERROR else self.logger.info
        log("Notification", level=level.value, title=title, description=description)
        return notification

    def success(self, title: str, description: str = "") -> Notification:
        return self.push(NotificationLevel.SUCCESS, title, description)

    def error(self, title: str, description: str = "") -> Notification:
        return self.push(NotificationLevel.ERROR, title, description)

    def info(self, title: str, description: str = "") -> Notification:
        return self.push(NotificationLevel.INFO, title, description)

    @property
    def latest(self) -> Optional[Notification]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[Notification]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# Toggle controller
# =============================================================================

@dataclass(frozen=True)
class ToggleOutcome:
    """Result of one optimistic toggle."""
    target: Hashable
    value: bool
    ok: bool
    reverted: bool = False
    error: Optional[StoreRequestError] = None


@dataclass
class _PendingToggle:
    sequence: int
    previous: bool


class OptimisticToggleController(LoggerMixin):
    """
    Applies boolean changes locally before the remote write confirms them.

    Usage:
        outcome = await controller.toggle(
            ("visibility", item_id),
            False,
            read=lambda: current_value,
            apply=set_local_value,
            write=lambda value: store.update_item_visibility(item_id, value),
            success=("Visibility updated", "Item hidden from the catalog"),
        )
    """

    def __init__(self, notifications: Optional[NotificationLog] = None):
        self.notifications = notifications if notifications is not None else NotificationLog()
        self._sequence = 0
        self._pending: Dict[Hashable, List[_PendingToggle]] = {}
        self._confirmed: Dict[Hashable, int] = {}

    def in_flight(self, target: Hashable) -> int:
        """Number of unconfirmed writes for a target."""
        return len(self._pending.get(target, ()))

    async def toggle(
        self,
        target: Hashable,
        value: bool,
        *,
        read: Callable[[], bool],
        apply: Callable[[bool], None],
        write: Callable[[bool], Awaitable[Any]],
        success: Optional[tuple] = None,
        failure_title: str = "Update failed",
    ) -> ToggleOutcome:
        """
        Flip `target` to `value` locally, then write it.

        Args:
            target: Key identifying the setting (one per item/singleton)
            value: New value
            read: Returns the current local value
            apply: Sets the local value
            write: Sends the remote write; must raise StoreRequestError on failure
            success: (title, description) notified on success
            failure_title: Title of the error notification
        """
        self._sequence += 1
        pending = _PendingToggle(sequence=self._sequence, previous=read())
        self._pending.setdefault(target, []).append(pending)
        apply(value)
        self.logger.debug("Optimistic toggle applied", target=str(target), value=value, sequence=pending.sequence)

        try:
            await write(value)
        except StoreRequestError as e:
            reverted = self._settle_failure(target, pending, apply)
            self.logger.warning(
                "Toggle write failed",
                target=str(target),
                value=value,
                reverted=reverted,
                error=str(e),
            )
            self.notifications.error(failure_title, e.detail)
            return ToggleOutcome(target=target, value=value, ok=False, reverted=reverted, error=e)
        except BaseException:
            # cancelled or unexpected: roll back like a failed write
            self._settle_failure(target, pending, apply)
            raise

        self._settle_success(target, pending)
        if success is not None:
            self.notifications.success(*success)
        return ToggleOutcome(target=target, value=value, ok=True)

    def _remove(self, target: Hashable, pending: _PendingToggle) -> List[_PendingToggle]:
        ops = self._pending.get(target, [])
        if pending in ops:
            ops.remove(pending)
        if not ops:
            self._pending.pop(target, None)
        return ops

    def _settle_success(self, target: Hashable, pending: _PendingToggle) -> None:
        self._remove(target, pending)
        self._confirmed[target] = max(self._confirmed.get(target, 0), pending.sequence)

    def _settle_failure(
        self, target: Hashable, pending: _PendingToggle, apply: Callable[[bool], None]
    ) -> bool:
        remaining = self._remove(target, pending)
        if self._confirmed.get(target, 0) > pending.sequence:
            return False
        newer = [op for op in remaining if op.sequence > pending.sequence]
        if newer:
            newer[0].previous = pending.previous
            return False
        apply(pending.previous)
        return True
