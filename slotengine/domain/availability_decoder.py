"""
Decoding of a provider's stored weekly availability.

Validate-then-construct: the stored JSON is checked structurally with pydantic,
then each day's windows are checked to be chronological and non-overlapping.
The result is either a fully valid ``WeeklyAvailability`` or an
``AvailabilityValidationError`` listing every problem found.
"""

import json
import logging
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import AvailabilityValidationError
from .models import WEEKDAY_NAMES, TimeWindow, WeeklyAvailability, parse_clock

logger = logging.getLogger(__name__)


class _WindowPayload(BaseModel):
    """One stored window, e.g. ``{"start": "09:00", "end": "12:00"}``."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        parse_clock(value)
        return value


class _WeeklyPayload(BaseModel):
    """Stored weekly availability; days that are left out have no windows."""
    model_config = ConfigDict(extra="forbid")

    monday: List[_WindowPayload] = Field(default_factory=list)
    tuesday: List[_WindowPayload] = Field(default_factory=list)
    wednesday: List[_WindowPayload] = Field(default_factory=list)
    thursday: List[_WindowPayload] = Field(default_factory=list)
    friday: List[_WindowPayload] = Field(default_factory=list)
    saturday: List[_WindowPayload] = Field(default_factory=list)
    sunday: List[_WindowPayload] = Field(default_factory=list)


def decode_availability(raw: Union[str, bytes, None]) -> Optional[WeeklyAvailability]:
    """
    Strictly decode stored availability.

    Args:
        raw: Serialized availability as persisted by the profile store

    Returns:
        WeeklyAvailability, or None when nothing is configured
        (missing, blank, or a JSON ``null``)

    Raises:
        AvailabilityValidationError: If the payload is malformed or any day
            holds overlapping or out-of-order windows
    """
    if raw is None:
        return None

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise AvailabilityValidationError([f"not valid UTF-8: {exc}"]) from exc

    if not isinstance(raw, str):
        raise AvailabilityValidationError([f"expected a JSON string, got {type(raw).__name__}"])

    if not raw.strip():
        return None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise AvailabilityValidationError([f"not valid JSON: {exc}"]) from exc
    except RecursionError as exc:
        raise AvailabilityValidationError(["JSON is nested too deeply"]) from exc

    if data is None:
        return None

    try:
        payload = _WeeklyPayload.model_validate(data)
    except ValidationError as exc:
        raise AvailabilityValidationError(_format_validation_errors(exc)) from exc

    windows: Dict[str, Tuple[TimeWindow, ...]] = {}
    problems: List[str] = []

    for day in WEEKDAY_NAMES:
        day_windows, day_problems = _build_day_windows(day, getattr(payload, day))
        windows[day] = day_windows
        problems.extend(day_problems)

    if problems:
        raise AvailabilityValidationError(problems)

    return WeeklyAvailability.from_mapping(windows)


def parse_availability(
    raw: Union[str, bytes, None],
    provider_id: Optional[str] = None,
) -> Optional[WeeklyAvailability]:
    """
    Decode availability at the engine boundary without ever raising.

    Malformed data is reported as a data-integrity warning and treated the
    same as "no availability configured".
    """
    try:
        return decode_availability(raw)
    except AvailabilityValidationError as exc:
        logger.warning(
            "Discarding invalid availability for provider %s: %s",
            provider_id or "<unknown>",
            "; ".join(exc.problems),
        )
        return None


def _build_day_windows(
    day: str,
    payloads: List[_WindowPayload],
) -> Tuple[Tuple[TimeWindow, ...], List[str]]:
    """Construct one day's windows and report ordering problems."""
    built: List[TimeWindow] = []
    problems: List[str] = []

    for index, item in enumerate(payloads):
        try:
            window = TimeWindow.parse(item.start, item.end)
        except ValueError as exc:
            problems.append(f"{day}[{index}]: {exc}")
            continue

        # Touching windows are fine; anything earlier than the previous end is not
        if built and window.start_minute < built[-1].end_minute:
            problems.append(
                f"{day}[{index}]: window {window} overlaps or precedes {built[-1]}"
            )
            continue

        built.append(window)

    return tuple(built), problems


def _format_validation_errors(exc: ValidationError) -> List[str]:
    problems: List[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        problems.append(f"{location}: {error['msg']}")
    return problems
