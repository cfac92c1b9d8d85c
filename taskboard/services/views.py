"""Pure derivations of list, board and calendar views from task snapshots.

Nothing here touches the database; every function takes the latest task
and board snapshots and returns a new value. Tasks and boards may be ORM
rows, response schemas or plain mappings.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from taskboard.localization.helpers import get_translation
from taskboard.schemas.calendar import CalendarEntry, CalendarResponse, DateMarker, MarkerDot

logger = logging.getLogger(__name__)


class DeadlineParseError(ValueError):
    """Deadline value that cannot be read as a point in time."""


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _key(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def sort_tasks(tasks: Iterable[Any]) -> List[Any]:
    """Prioritized first, then incomplete before completed; ties keep input order."""
    return sorted(
        tasks,
        key=lambda task: (
            not bool(_field(task, "is_prioritized", False)),
            bool(_field(task, "is_completed", False)),
        ),
    )


def partition_by_completion(tasks: Iterable[Any]) -> Tuple[List[Any], List[Any]]:
    incomplete: List[Any] = []
    completed: List[Any] = []
    for task in tasks:
        if _field(task, "is_completed", False):
            completed.append(task)
        else:
            incomplete.append(task)
    return incomplete, completed


def _from_epoch(seconds: Any, nanoseconds: Any = 0) -> datetime:
    try:
        total = float(seconds) + float(nanoseconds or 0) / 1_000_000_000
        return datetime.fromtimestamp(total, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise DeadlineParseError(f"Invalid timestamp: {seconds!r}") from exc


def normalize_deadline(value: Any) -> date:
    """Read a deadline in any of its stored shapes as a UTC calendar date.

    Accepted: remote timestamp objects exposing ``ToDatetime()`` or
    ``to_datetime()``, mappings carrying ``seconds``/``_seconds`` and
    optional ``nanoseconds``, ``datetime``, ``date`` and ISO-8601 strings
    (a trailing ``Z`` is allowed). Naive datetimes are taken as UTC.
    """
    if value is None:
        raise DeadlineParseError("Deadline is missing")

    for converter in ("ToDatetime", "to_datetime"):
        method = getattr(value, converter, None)
        if callable(method):
            try:
                value = method()
            except Exception as exc:
                raise DeadlineParseError(f"Cannot convert {value!r}") from exc
            break

    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            raise DeadlineParseError(f"Timestamp mapping without seconds: {value!r}")
        nanoseconds = value.get("nanoseconds", value.get("_nanoseconds", 0))
        value = _from_epoch(seconds, nanoseconds)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as exc:
            raise DeadlineParseError(f"Invalid deadline string: {value!r}") from exc

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(timezone.utc).date()
    if isinstance(value, date):
        return value

    raise DeadlineParseError(f"Unsupported deadline type: {type(value).__name__}")


def bucket_by_deadline_date(tasks: Iterable[Any]) -> Dict[str, List[Any]]:
    """Open, filed tasks with a deadline, keyed by ``YYYY-MM-DD``."""
    buckets: Dict[str, List[Any]] = {}
    for task in tasks:
        deadline = _field(task, "deadline")
        if deadline is None or _field(task, "board_id") is None:
            continue
        if _field(task, "is_completed", False):
            continue
        try:
            day = normalize_deadline(deadline)
        except DeadlineParseError:
            logger.warning("Skipping task %s with unreadable deadline %r", _field(task, "id"), deadline)
            continue
        buckets.setdefault(day.isoformat(), []).append(task)
    return {key: buckets[key] for key in sorted(buckets)}


def marked_date_markers(
    buckets: Mapping[str, Sequence[Any]],
    today_key: str,
    accent_color: str,
    board_colors: Optional[Mapping[str, str]] = None,
) -> Dict[str, DateMarker]:
    """One marker per bucketed date plus the always-selected ``today_key``.

    ``board_colors`` maps board id (as a string) to color. Without it, a
    task's own ``color`` attribute is used, then ``accent_color``.
    """
    markers: Dict[str, DateMarker] = {}
    for day, day_tasks in buckets.items():
        seen: "OrderedDict[str, None]" = OrderedDict()
        for task in day_tasks:
            board_key = _key(_field(task, "board_id"))
            color = None
            if board_colors is not None and board_key is not None:
                color = board_colors.get(board_key)
            if color is None:
                color = _field(task, "color") or accent_color
            seen.setdefault(color, None)
        markers[day] = DateMarker(
            marked=True,
            dots=[MarkerDot(key=color, color=color) for color in seen],
        )

    today = markers.get(today_key, DateMarker())
    markers[today_key] = today.model_copy(update={"selected": True, "selected_color": accent_color})
    return markers


def group_by_board(tasks: Iterable[Any], boards: Iterable[Any]) -> "OrderedDict[Optional[str], List[Any]]":
    """Sorted tasks per board id, boards in given order, then the ``None`` group.

    Every board gets an entry even when empty. Unfiled tasks and tasks whose
    board is not in ``boards`` land in the ``None`` group.
    """
    groups: "OrderedDict[Optional[str], List[Any]]" = OrderedDict()
    for board in boards:
        groups[_key(_field(board, "id"))] = []
    unfiled: List[Any] = []
    for task in sort_tasks(tasks):
        board_key = _key(_field(task, "board_id"))
        if board_key is not None and board_key in groups:
            groups[board_key].append(task)
        else:
            unfiled.append(task)
    groups[None] = unfiled
    return groups


def board_color_map(boards: Iterable[Any]) -> Dict[str, str]:
    return {_key(_field(board, "id")): _field(board, "color") for board in boards}


def attach_board_colors(tasks: Iterable[Any], boards: Iterable[Any], fallback: str) -> List[CalendarEntry]:
    colors = board_color_map(boards)
    untitled = get_translation("calendar.untitled")
    entries = []
    for task in tasks:
        board_id = _field(task, "board_id")
        entries.append(
            CalendarEntry(
                id=_field(task, "id"),
                name=_field(task, "text") or untitled,
                color=colors.get(_key(board_id)) or fallback,
                board_id=board_id,
                is_prioritized=bool(_field(task, "is_prioritized", False)),
            )
        )
    return entries


def calendar_view(
    tasks: Sequence[Any],
    boards: Sequence[Any],
    today_key: str,
    accent_color: str,
    selected_key: Optional[str] = None,
) -> CalendarResponse:
    """Buckets, markers and selected-day tasks for the calendar screen."""
    selected_key = selected_key or today_key
    buckets = bucket_by_deadline_date(tasks)
    colors = board_color_map(boards)
    markers = marked_date_markers(buckets, today_key, accent_color, colors)
    if selected_key != today_key:
        marker = markers.get(selected_key, DateMarker())
        markers[selected_key] = marker.model_copy(update={"selected": True, "selected_color": accent_color})

    entries = {day: attach_board_colors(sort_tasks(items), boards, accent_color) for day, items in buckets.items()}
    return CalendarResponse(
        today=date.fromisoformat(today_key),
        selected_date=date.fromisoformat(selected_key),
        buckets=entries,
        markers=markers,
        selected_tasks=entries.get(selected_key, []),
    )
