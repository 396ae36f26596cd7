"""
Timeline Interchange Payloads

Compact JSON exchange format for head channels, in two variants.

Minute variant (relative minutes):
    [{"n": "Head 1", "t": 480,
      "s": [{"n": "Weld", "c": 0, "i": [[0, 200], [150, 300]]},
            {"n": "Break", "c": 1, "i": [[100, 120]]}],
      "dt": [["setup", 300, 320]]}]

Clock variant (absolute "HH:MM" times, converted to minutes relative to "st"):
    [{"n": "Head 1", "st": "07:00", "et": "15:00",
      "s": [{"n": "Weld", "c": 0, "i": [["07:00", "10:20"]]}]}]

Keys: n=name, t=total minutes, s=sub-channels, c=exclusion flag (1 = cutoff),
i=intervals, dt=downtime items [category, start, end]. Import also accepts the
long names name / totalMinutes / subChannels / isExclusion / intervals /
downtimeItems.

Import is all-or-nothing: the full result is built before anything is
returned, and any malformed entry raises PayloadImportError.
"""

import json
import logging
import math
import re
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple

from core.errors import PayloadImportError
from core.time_windows.models import Channel, DowntimeItem, HeadChannel, TimeInterval
from utils.formatting import clock_to_minutes, minutes_to_clock

logger = logging.getLogger(__name__)

_KEY_ALIASES = {
    'n': ('n', 'name'),
    't': ('t', 'totalMinutes'),
    's': ('s', 'subChannels'),
    'c': ('c', 'isExclusion'),
    'i': ('i', 'intervals'),
    'dt': ('dt', 'downtimeItems'),
    'st': ('st', 'startClock'),
    'et': ('et', 'endClock'),
}

_MISSING = object()

_CODE_FENCE_START = re.compile(r'^```(?:json)?', re.IGNORECASE)
_CODE_FENCE_END = re.compile(r'```$')

MINUTES_PER_DAY = 1440.0


class _ClockFrame(NamedTuple):
    """
    Maps clock minutes onto minutes relative to a head start.

    When the head runs past midnight (et earlier than st), clock times up to
    et that fall before st belong to the next day.
    """
    offset: float
    wrap_until: Optional[float] = None

    def relative(self, clock_minutes: float) -> float:
        """Minutes since the head start, floored at 0"""
        if self.wrap_until is not None and clock_minutes < self.offset and clock_minutes <= self.wrap_until:
            clock_minutes += MINUTES_PER_DAY
        return max(0.0, clock_minutes - self.offset)


def _get(entry: dict, key: str, default: Any = _MISSING) -> Any:
    for alias in _KEY_ALIASES[key]:
        if alias in entry:
            return entry[alias]
    return default


def _require(entry: dict, key: str, where: str) -> Any:
    value = _get(entry, key)
    if value is _MISSING or value is None:
        long_name = _KEY_ALIASES[key][-1]
        raise PayloadImportError(f"{where}: missing required field '{key}' ({long_name})")
    return value


def _number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PayloadImportError(f"{where}: expected a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise PayloadImportError(f"{where}: number must be finite, got {value!r}")
    return number


def _clock(value: Any, where: str) -> float:
    try:
        return clock_to_minutes(value)
    except ValueError as e:
        raise PayloadImportError(f"{where}: {e}") from None


def _list(value: Any, where: str) -> list:
    if not isinstance(value, list):
        raise PayloadImportError(f"{where}: expected a list, got {type(value).__name__}")
    return value


def _pair(value: Any, where: str) -> Tuple[Any, Any]:
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        raise PayloadImportError(f"{where}: expected a [start, end] pair, got {value!r}")
    return value[0], value[1]


def _exclusion_flag(value: Any, where: str) -> bool:
    if value is _MISSING or value is None:
        return False
    if value in (0, 1) or isinstance(value, bool):
        return bool(value)
    raise PayloadImportError(f"{where}: exclusion flag must be 0 or 1, got {value!r}")


def _is_clock_head(entry: dict) -> bool:
    return isinstance(_get(entry, 'st', None), str) and isinstance(_get(entry, 'et', None), str)


def _import_sub_channel(entry: Any, where: str, frame: Optional[_ClockFrame]) -> Channel:
    if not isinstance(entry, dict):
        raise PayloadImportError(f"{where}: expected an object, got {type(entry).__name__}")

    name = str(_require(entry, 'n', where))
    is_exclusion = _exclusion_flag(_get(entry, 'c'), where)
    raw_intervals = _list(_require(entry, 'i', where), f"{where}.i")

    intervals = []
    for idx, raw in enumerate(raw_intervals):
        loc = f"{where}.i[{idx}]"
        start_raw, end_raw = _pair(raw, loc)
        if frame is None:
            start = _number(start_raw, loc)
            end = _number(end_raw, loc)
        else:
            # Clock variant: absolute times shifted to the head start, floored at 0
            start_abs = _clock(start_raw, loc) if isinstance(start_raw, str) else _number(start_raw, loc)
            end_abs = _clock(end_raw, loc) if isinstance(end_raw, str) else _number(end_raw, loc)
            start = frame.relative(start_abs)
            end = frame.relative(end_abs)
        if end <= start:
            logger.debug(f"{loc}: dropped zero or negative length interval ({start:g}, {end:g})")
            continue
        intervals.append(TimeInterval(start, end))

    return Channel(name=name, intervals=tuple(intervals), is_exclusion=is_exclusion)


def _import_downtime(raw_items: Any, where: str, frame: Optional[_ClockFrame]) -> List[DowntimeItem]:
    items = []
    for idx, raw in enumerate(_list(raw_items, where)):
        loc = f"{where}[{idx}]"
        if not isinstance(raw, (list, tuple)) or len(raw) < 3:
            raise PayloadImportError(f"{loc}: expected [category, start, end], got {raw!r}")
        category, start_raw, end_raw = raw[0], raw[1], raw[2]
        if frame is None:
            start, end = _number(start_raw, loc), _number(end_raw, loc)
        else:
            start = frame.relative(_clock(start_raw, loc))
            end = frame.relative(_clock(end_raw, loc))
        items.append(DowntimeItem(category=str(category), start=start, end=end))
    return items


def _import_head(entry: Any, where: str) -> HeadChannel:
    if not isinstance(entry, dict):
        raise PayloadImportError(f"{where}: expected an object, got {type(entry).__name__}")

    name = str(_require(entry, 'n', where))

    if _is_clock_head(entry):
        offset = _clock(_get(entry, 'st'), f"{where}.st")
        end_clock = _clock(_get(entry, 'et'), f"{where}.et")
        if end_clock < offset:
            # Head runs past midnight
            frame = _ClockFrame(offset, wrap_until=end_clock)
            total = end_clock + MINUTES_PER_DAY - offset
        else:
            frame = _ClockFrame(offset)
            total = max(1.0, end_clock - offset)
    else:
        frame = None
        total = _number(_require(entry, 't', where), f"{where}.t")
        if total < 0:
            raise PayloadImportError(f"{where}.t: total minutes must be >= 0, got {total:g}")

    sub_entries = _list(_get(entry, 's', []), f"{where}.s")
    channels = [
        _import_sub_channel(sub, f"{where}.s[{idx}]", frame)
        for idx, sub in enumerate(sub_entries)
    ]
    downtime = _import_downtime(_get(entry, 'dt', []), f"{where}.dt", frame)

    return HeadChannel(
        name=name,
        total_duration=total,
        channels=tuple(channels),
        downtime_items=tuple(downtime),
    )


def import_payload(data: Any) -> Tuple[HeadChannel, ...]:
    """
    Build head channel snapshots from a decoded payload.

    Args:
        data: Decoded JSON (list of head entries, minute or clock variant)

    Returns:
        Tuple of HeadChannel objects in payload order

    Raises:
        PayloadImportError: Top level is not a list, or any entry is malformed
    """
    if not isinstance(data, list):
        raise PayloadImportError(
            f"Payload must be a list of head entries, got {type(data).__name__}"
        )

    heads = tuple(_import_head(entry, f"head[{idx}]") for idx, entry in enumerate(data))
    logger.info(f"Imported {len(heads)} head channel(s)")
    return heads


def _num(value: float):
    """Emit integral floats as ints to keep payloads compact"""
    value = float(value)
    return int(value) if value.is_integer() else value


def export_payload(heads: Sequence[HeadChannel]) -> List[dict]:
    """
    Export head channels to the minute variant.

    Returns:
        JSON-ready list; dt is only included for heads with downtime items
    """
    data = []
    for head in heads:
        entry = {
            'n': head.name,
            't': _num(head.total_duration),
            's': [
                {
                    'n': ch.name,
                    'c': 1 if ch.is_exclusion else 0,
                    'i': [[_num(i.start), _num(i.end)] for i in ch.intervals],
                }
                for ch in head.channels
            ],
        }
        if head.downtime_items:
            entry['dt'] = [[d.category, _num(d.start), _num(d.end)] for d in head.downtime_items]
        data.append(entry)
    return data


def export_clock_payload(heads: Sequence[HeadChannel], start_clock: str = "07:00") -> List[dict]:
    """
    Export head channels to the clock variant.

    Every head is anchored at start_clock; endpoints are rounded to whole
    minutes, so sub-minute detail does not survive this variant. Heads may
    run past midnight, but not for a full day or longer.

    Args:
        heads: Head channels (relative minutes)
        start_clock: Clock time the heads started, "HH:MM"

    Returns:
        JSON-ready list

    Raises:
        ValueError: A head lasts 24 hours or more
    """
    offset = clock_to_minutes(start_clock)
    data = []
    for head in heads:
        if head.total_duration >= MINUTES_PER_DAY:
            raise ValueError(
                f"Head '{head.name}' lasts {head.total_duration:g} minutes; "
                f"the clock variant holds less than {MINUTES_PER_DAY:g}"
            )
        entry = {
            'n': head.name,
            'st': minutes_to_clock(offset),
            'et': minutes_to_clock(offset + head.total_duration),
            's': [
                {
                    'n': ch.name,
                    'c': 1 if ch.is_exclusion else 0,
                    'i': [
                        [minutes_to_clock(offset + i.start), minutes_to_clock(offset + i.end)]
                        for i in ch.intervals
                    ],
                }
                for ch in head.channels
            ],
        }
        if head.downtime_items:
            entry['dt'] = [
                [d.category, minutes_to_clock(offset + d.start), minutes_to_clock(offset + d.end)]
                for d in head.downtime_items
            ]
        data.append(entry)
    return data


def parse_payload_text(text: str) -> Any:
    """
    Decode payload text pasted by a user or read from a file.

    Handles ```json code fences, surrounding prose, and payloads that were
    JSON-encoded twice (a JSON string holding the JSON array).

    Raises:
        PayloadImportError: Empty input or invalid JSON
    """
    if not isinstance(text, str) or not text.strip():
        raise PayloadImportError("Payload text is empty")

    cleaned = _CODE_FENCE_END.sub('', _CODE_FENCE_START.sub('', text.strip())).strip()

    first_arr, last_arr = cleaned.find('['), cleaned.rfind(']')
    first_obj, last_obj = cleaned.find('{'), cleaned.rfind('}')
    if first_arr != -1 and last_arr > first_arr:
        candidate = cleaned[first_arr:last_arr + 1]
    elif first_obj != -1 and last_obj > first_obj:
        candidate = cleaned[first_obj:last_obj + 1]
    else:
        candidate = cleaned

    try:
        parsed = json.loads(candidate)
        if isinstance(parsed, str):
            parsed = json.loads(parsed)
    except json.JSONDecodeError as e:
        try:
            # A double-encoded payload starts with a quote, so the bracket
            # extraction above cut it apart; decode the whole text instead
            parsed = json.loads(json.loads(cleaned))
        except (json.JSONDecodeError, TypeError):
            raise PayloadImportError(f"Invalid JSON payload: {e}") from e

    return parsed


def dumps_payload(heads: Sequence[HeadChannel], start_clock: Optional[str] = None) -> str:
    """Serialize heads to compact JSON (clock variant when start_clock is given)"""
    data = export_payload(heads) if start_clock is None else export_clock_payload(heads, start_clock)
    return json.dumps(data, separators=(',', ':'))


def loads_payload(text: str) -> Tuple[HeadChannel, ...]:
    """Parse payload text and import it"""
    return import_payload(parse_payload_text(text))
