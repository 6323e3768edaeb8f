"""
Value types shared by the pattern learning engine.

Entries are immutable snapshots of journal rows. Optional context
(environmental, physiological) is parsed once into explicit snapshot types so
the miners never have to poke at nested JSON.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

# Antecedent / outcome types
TRIGGER = "trigger"
FOOD = "food"
SYMPTOM = "symptom"
SLEEP = "sleep"
WEATHER = "weather"
FLARE = "flare"

ANY_OUTCOME = "any"
UNKNOWN_SEVERITY = "unknown"


def normalize_label(value: Any) -> str:
    """Case-normalize a free-form label."""
    if value is None:
        return ""
    return str(value).strip().lower()


def _normalize_labels(values) -> Tuple[str, ...]:
    if not values:
        return ()
    return tuple(sorted({label for label in (normalize_label(v) for v in values) if label}))


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _get(source: Any, name: str, default=None):
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class EnvironmentalSnapshot:
    weather_condition: Optional[str] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> Optional["EnvironmentalSnapshot"]:
        if not isinstance(data, Mapping):
            return None
        weather = data.get("weather")
        if not isinstance(weather, Mapping):
            return None
        return cls(
            weather_condition=normalize_label(weather.get("condition")) or None,
            temperature=_to_float(weather.get("temperature")),
            humidity=_to_float(weather.get("humidity")),
        )


@dataclass(frozen=True)
class PhysiologicalSnapshot:
    sleep_hours: Optional[float] = None
    heart_rate: Optional[float] = None

    @staticmethod
    def _parse_sleep_hours(data: Mapping) -> Optional[float]:
        """
        Read a sleep duration in hours.

        Accepts ``sleep.duration``, ``sleep.hours``, ``sleep.totalMinutes`` or a
        flat ``sleepDuration``. Values above 24 are minutes. Zero or missing
        readings count as no data.
        """
        sleep = data.get("sleep")
        raw = None
        if isinstance(sleep, Mapping):
            raw = _to_float(sleep.get("duration")) or _to_float(sleep.get("hours"))
            if not raw:
                minutes = _to_float(sleep.get("totalMinutes"))
                raw = minutes / 60 if minutes else None
        if not raw:
            raw = _to_float(data.get("sleepDuration"))
        if not raw or raw <= 0:
            return None
        return raw / 60 if raw > 24 else raw

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> Optional["PhysiologicalSnapshot"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            sleep_hours=cls._parse_sleep_hours(data),
            heart_rate=_to_float(data.get("heartRate")),
        )


@dataclass(frozen=True)
class Entry:
    """One logged event, read-only input to the engine."""

    id: Any
    timestamp: datetime
    entry_type: str
    severity: Optional[str] = None
    symptoms: Tuple[str, ...] = ()
    triggers: Tuple[str, ...] = ()
    note: Optional[str] = None
    environmental: Optional[EnvironmentalSnapshot] = None
    physiological: Optional[PhysiologicalSnapshot] = None

    @classmethod
    def from_row(cls, row: Any) -> "Entry":
        """Build an Entry from a ``FlareEntry`` row or an equivalent dict."""
        return cls(
            id=_get(row, "id"),
            timestamp=as_utc(_get(row, "timestamp")),
            entry_type=normalize_label(_get(row, "entry_type")),
            severity=normalize_label(_get(row, "severity")) or None,
            symptoms=_normalize_labels(_get(row, "symptoms")),
            triggers=_normalize_labels(_get(row, "triggers")),
            note=_get(row, "note"),
            environmental=EnvironmentalSnapshot.from_dict(_get(row, "environmental_data")),
            physiological=PhysiologicalSnapshot.from_dict(_get(row, "physiological_data")),
        )

    @property
    def is_flare(self) -> bool:
        return self.entry_type == FLARE

    @property
    def outcome_severity(self) -> str:
        return self.severity or UNKNOWN_SEVERITY

    @property
    def sleep_hours(self) -> Optional[float]:
        return self.physiological.sleep_hours if self.physiological else None

    @property
    def weather_condition(self) -> Optional[str]:
        return self.environmental.weather_condition if self.environmental else None


@dataclass(frozen=True)
class PatternKey:
    """Composite key of an antecedent -> outcome pattern (case-normalized)."""

    antecedent_type: str
    antecedent_value: str
    outcome_type: str
    outcome_value: str

    def __post_init__(self):
        for name in ("antecedent_type", "antecedent_value", "outcome_type", "outcome_value"):
            object.__setattr__(self, name, normalize_label(getattr(self, name)))

    @property
    def label(self) -> str:
        return f"{self.antecedent_value} → {self.outcome_value}"

    def sort_key(self) -> Tuple[str, str, str, str]:
        return (self.antecedent_type, self.antecedent_value, self.outcome_type, self.outcome_value)


@dataclass(frozen=True)
class PatternObservation:
    """A single corroborating observation emitted by a miner."""

    key: PatternKey
    delay_minutes: float
    observed_at: datetime


@dataclass
class PatternRecord:
    """Accumulated evidence for one PatternKey within a run."""

    occurrence_count: int
    avg_delay_minutes: float
    last_occurred: Optional[datetime]
    confidence: float = 0.0
    # Confidence computed directly by a correlator; never rescored
    frozen: bool = field(default=False)

    @classmethod
    def first(cls, observation: PatternObservation) -> "PatternRecord":
        return cls(
            occurrence_count=1,
            avg_delay_minutes=observation.delay_minutes,
            last_occurred=observation.observed_at,
        )

    def add(self, observation: PatternObservation) -> None:
        self.occurrence_count += 1
        self.avg_delay_minutes = (
            self.avg_delay_minutes * (self.occurrence_count - 1) + observation.delay_minutes
        ) / self.occurrence_count
        if self.last_occurred is None or observation.observed_at > self.last_occurred:
            self.last_occurred = observation.observed_at
