"""Heuristic extraction of clinical signals from voice-agent call data.

The voice agent reports a loosely structured ``data_collection_results``
mapping (``key -> {value, rationale}``) whose keys vary between agent
configurations. Each semantic field is resolved by scanning the keys in their
delivered order and taking the first key containing one of the field's
keywords. Python dicts keep JSON insertion order, so the delivery order is the
scan order.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from app.db.enums import CallOutcome
from app.utils.presentation import humanize_identifier

DISPLAY_TIME_ZONE = ZoneInfo("America/New_York")
DEFAULT_PATIENT_NAME = "Patient"

# Ordered keyword lists per field. Order matters only within a list.
PATIENT_NAME_KEYWORDS = ("patient name", "name")
OCCUPATION_KEYWORDS = ("occupation", "job", "profession")
SENTIMENT_KEYWORDS = ("sentiment", "mood", "tone")
READINESS_KEYWORDS = ("readi", "ready", "timeline", "decision", "schedule", "stage")
PREMIUM_LENS_KEYWORDS = ("premium", "lens interest", "iol", "multifocal", "toric")
LASER_KEYWORDS = ("femtosecond", "laser")
IMPACT_SCALE_KEYWORDS = ("scale", "impact", "rating", "score")
ACTIVITIES_KEYWORDS = (
    "activit",
    "daily",
    "affected",
    "struggle",
    "difficult",
    "functional",
    "demands",
    "limitation",
)
HOBBIES_KEYWORDS = ("hobby", "hobbies", "lifestyle", "leisure")
GLASSES_KEYWORDS = ("glass", "independence", "spectacle")
PREFERENCE_KEYWORDS = ("preference", "goal")
MEDICAL_KEYWORDS = ("medical", "condition", "health", "medication", "surgical risk", "ocular")
CONCERNS_KEYWORDS = ("concern", "question", "nervous", "worry", "fear")
DRIVER_KEYWORDS = ("driver", "ride", "transport", "accompan")
EMAIL_KEYWORDS = ("email", "e-mail", "mail address")

_EMPTY_VALUES = {"", "null"}


@dataclass(frozen=True)
class DataCollectionEntry:
    value: str
    rationale: str = ""
    data_collection_id: str | None = None

    @classmethod
    def from_raw(cls, raw: object) -> "DataCollectionEntry":
        if not isinstance(raw, Mapping):
            return cls(value="" if raw is None else str(raw))
        value = raw.get("value")
        rationale = raw.get("rationale")
        collection_id = raw.get("data_collection_id")
        return cls(
            value="" if value is None else str(value),
            rationale="" if rationale is None else str(rationale),
            data_collection_id=str(collection_id) if collection_id else None,
        )


DataCollectionResults = dict[str, DataCollectionEntry]


@dataclass(frozen=True)
class CallHints:
    """Scalars already known for the call (e.g. cached on the stored record)."""

    impact_scale: int | None = None
    activities: str | None = None


@dataclass
class CallInsights:
    patient_name: str | None = None
    occupation: str | None = None
    sentiment: str | None = None
    readiness_value: str | None = None
    readiness_label: str | None = None
    premium_lens_value: str | None = None
    premium_lens_label: str | None = None
    laser_interest_value: str | None = None
    laser_interest_label: str | None = None
    impact_scale: int | None = None
    activities: str | None = None
    hobbies: str | None = None
    glasses_preference: str | None = None
    vision_preference: str | None = None
    medical_history: str | None = None
    concerns: str | None = None
    driver_info: str | None = None
    email: str | None = None
    other_entries: list[tuple[str, DataCollectionEntry]] = field(default_factory=list)


@dataclass(frozen=True)
class DerivedCallFields:
    """Scalars cached on the call record at ingestion."""

    call_outcome: CallOutcome
    call_duration_secs: float | None
    vision_scale: int | None
    activities: str | None
    vision_preference: str | None
    email: str | None

    @property
    def call_successful(self) -> bool | None:
        if self.call_outcome is CallOutcome.SUCCEEDED:
            return True
        if self.call_outcome is CallOutcome.FAILED:
            return False
        return None


@dataclass(frozen=True)
class EvaluationResult:
    criteria_id: str
    result: str
    rationale: str

    @property
    def label(self) -> str:
        return humanize_identifier(self.criteria_id)


@dataclass(frozen=True)
class CallDisplayFields:
    """Everything the post-call emails and patient guide render."""

    patient_name: str
    patient_email: str | None
    vision_scale: int | None
    glasses_preference: str | None
    premium_lens_interest: str | None
    laser_interest: str | None
    activities: str | None
    hobbies: str | None
    medical_conditions: str | None
    concerns: str | None
    vision_preference: str | None
    driver_info: str | None
    call_summary: str | None
    evaluation_results: list[EvaluationResult]
    call_outcome: CallOutcome
    call_timestamp: int
    call_date: datetime
    call_date_label: str
    duration_label: str


# =============================================================================
# Payload access
# =============================================================================


def _section(data: Mapping | None, name: str) -> Mapping:
    if not isinstance(data, Mapping):
        return {}
    value = data.get(name)
    return value if isinstance(value, Mapping) else {}


def data_collection_results(data: Mapping | None) -> DataCollectionResults:
    """Read ``analysis.data_collection_results`` preserving delivery order."""
    raw = _section(_section(data, "analysis"), "data_collection_results")
    return {str(key): DataCollectionEntry.from_raw(entry) for key, entry in raw.items()}


def evaluation_results(data: Mapping | None) -> list[EvaluationResult]:
    raw = _section(_section(data, "analysis"), "evaluation_criteria_results")
    results: list[EvaluationResult] = []
    for key, entry in raw.items():
        if not isinstance(entry, Mapping):
            continue
        results.append(
            EvaluationResult(
                criteria_id=str(entry.get("criteria_id") or key),
                result=str(entry.get("result") or "unknown"),
                rationale=str(entry.get("rationale") or ""),
            )
        )
    return results


# =============================================================================
# Matching helpers
# =============================================================================


def _key_matches(key: str, keywords: tuple[str, ...]) -> bool:
    lowered = key.lower()
    spaced = lowered.replace("_", " ")
    return any(kw in lowered or kw in spaced for kw in keywords)


def find_entry(
    results: Mapping[str, DataCollectionEntry], *keywords: str
) -> tuple[str, DataCollectionEntry] | None:
    """Return the first ``(key, entry)`` whose key contains any keyword."""
    for key, entry in results.items():
        if _key_matches(key, keywords):
            return key, entry
    return None


def find_value(results: Mapping[str, DataCollectionEntry], *keywords: str) -> str | None:
    """Value of the first matching entry; an empty first match counts as absent."""
    match = find_entry(results, *keywords)
    if match is None:
        return None
    return _clean(match[1].value)


def find_unmatched_entries(
    results: Mapping[str, DataCollectionEntry], matched_keys: set[str]
) -> list[tuple[str, DataCollectionEntry]]:
    return [(key, entry) for key, entry in results.items() if key not in matched_keys]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    if stripped.lower() in _EMPTY_VALUES:
        return None
    return stripped


def parse_impact_scale(value: str | None) -> int | None:
    """Integer in 1..10, else ``None`` (out-of-range values are not clamped)."""
    if value is None:
        return None
    match = re.match(r"\s*([+-]?\d+)", value)
    if not match:
        return None
    parsed = int(match.group(1))
    if 1 <= parsed <= 10:
        return parsed
    return None


def parse_name_field(value: str | None) -> tuple[str | None, str | None]:
    """
    Return ``(name, occupation)`` from a name field.

    Some agent configurations pack the name into a JSON object
    (``{"patient_name": ..., "occupation": ...}``); anything that does not
    parse as such is the name verbatim.
    """
    cleaned = _clean(value)
    if cleaned is None:
        return None, None
    if cleaned.startswith("{"):
        try:
            parsed = json.loads(cleaned)
        except ValueError:
            return cleaned, None
        if isinstance(parsed, dict):
            name = parsed.get("patient_name")
            occupation = parsed.get("occupation")
            return (
                _clean(str(name)) if name is not None else None,
                _clean(str(occupation)) if occupation is not None else None,
            )
    return cleaned, None


def accept_email(value: str | None) -> str | None:
    cleaned = _clean(value)
    if cleaned and "@" in cleaned and "." in cleaned:
        return cleaned
    return None


# =============================================================================
# Labels
# =============================================================================


def get_readiness_label(value: str) -> str:
    """Bucket readiness text; buckets are tried in a fixed priority order."""
    lower = value.lower()
    if any(kw in lower for kw in ("ready", "scheduled", "decided", "yes")):
        return "Ready"
    if any(kw in lower for kw in ("considering", "leaning", "likely", "soon")):
        return "Leaning Yes"
    if any(kw in lower for kw in ("not ready", "undecided", "unsure", "no")):
        return "Not Ready"
    return "Unknown"


def get_premium_lens_label(value: str) -> str:
    lower = value.lower().strip()
    if "highly interested" in lower:
        return "Highly Interested"
    if "leaning interest" in lower:
        return "Leaning Interest"
    if "cost concerned" in lower:
        return "Cost Concerned"
    if "neutral" in lower:
        return "Neutral"
    if "not interested" in lower:
        return "Not Interested"
    if lower == "unknown":
        return "Unknown"
    # Free-text answers
    if re.search(r"\b(yes|very interested|definitely|high)\b", lower):
        return "Highly Interested"
    if re.search(r"\b(interested|want|keen|leaning)\b", lower):
        return "Leaning Interest"
    if re.search(r"\b(cost|afford|budget|price)\b", lower):
        return "Cost Concerned"
    if re.search(r"\b(maybe|considering|open|unsure)\b", lower):
        return "Neutral"
    if re.search(r"\b(no|not interested|declined)\b", lower):
        return "Not Interested"
    return "Unknown"


def get_laser_interest_label(value: str) -> str:
    lower = value.lower().strip()
    if "highly interested" in lower:
        return "Highly Interested"
    if "passively receptive" in lower:
        return "Passively Receptive"
    if "cost hesitant" in lower:
        return "Cost Hesitant"
    if "skeptical" in lower:
        return "Skeptical"
    if "not interested" in lower:
        return "Not Interested"
    if lower == "unknown":
        return "Unknown"
    if re.search(r"\b(yes|interested|want|keen)\b", lower):
        return "Highly Interested"
    if re.search(r"\b(open|receptive|maybe)\b", lower):
        return "Passively Receptive"
    if re.search(r"\b(cost|afford|expensive)\b", lower):
        return "Cost Hesitant"
    if re.search(r"\b(skeptic|doubt|unsure|hesitant)\b", lower):
        return "Skeptical"
    if re.search(r"\b(no|not interested|declined)\b", lower):
        return "Not Interested"
    return "Unknown"


# =============================================================================
# Extraction
# =============================================================================


def extract_call_insights(
    results: Mapping[str, DataCollectionEntry],
    hints: CallHints | None = None,
    patient_name: str | None = None,
) -> CallInsights:
    """
    Resolve every semantic field from one call's data collection results.

    Fields are matched independently, so one key may feed several fields; the
    "other" bucket excludes every key that was some field's first match.
    A known patient display name wins over whatever the call extracted.
    """
    hints = hints or CallHints()
    matched_keys: set[str] = set()

    def take(*keywords: str) -> str | None:
        match = find_entry(results, *keywords)
        if match is None:
            return None
        matched_keys.add(match[0])
        return _clean(match[1].value)

    raw_name = take(*PATIENT_NAME_KEYWORDS)
    occupation = take(*OCCUPATION_KEYWORDS)
    sentiment = take(*SENTIMENT_KEYWORDS)
    readiness = take(*READINESS_KEYWORDS)
    premium_lens = take(*PREMIUM_LENS_KEYWORDS)
    laser = take(*LASER_KEYWORDS)
    impact_raw = take(*IMPACT_SCALE_KEYWORDS)
    activities = take(*ACTIVITIES_KEYWORDS)
    hobbies = take(*HOBBIES_KEYWORDS)
    glasses = take(*GLASSES_KEYWORDS)
    preference = take(*PREFERENCE_KEYWORDS)
    medical = take(*MEDICAL_KEYWORDS)
    concerns = take(*CONCERNS_KEYWORDS)
    driver = take(*DRIVER_KEYWORDS)
    email = accept_email(take(*EMAIL_KEYWORDS))

    extracted_name, name_occupation = parse_name_field(raw_name)
    impact_scale = parse_impact_scale(impact_raw)
    if impact_scale is None:
        impact_scale = hints.impact_scale
    if activities is None:
        activities = _clean(hints.activities)

    return CallInsights(
        patient_name=_clean(patient_name) or extracted_name,
        occupation=occupation or name_occupation,
        sentiment=sentiment,
        readiness_value=readiness,
        readiness_label=get_readiness_label(readiness) if readiness else None,
        premium_lens_value=premium_lens,
        premium_lens_label=get_premium_lens_label(premium_lens) if premium_lens else None,
        laser_interest_value=laser,
        laser_interest_label=get_laser_interest_label(laser) if laser else None,
        impact_scale=impact_scale,
        activities=activities,
        hobbies=hobbies,
        glasses_preference=glasses,
        vision_preference=preference,
        medical_history=medical,
        concerns=concerns,
        driver_info=driver,
        email=email,
        other_entries=find_unmatched_entries(results, matched_keys),
    )


def parse_call_outcome(value: object) -> CallOutcome:
    if value is True or value in ("true", "success"):
        return CallOutcome.SUCCEEDED
    if value is False or value in ("false", "failure"):
        return CallOutcome.FAILED
    return CallOutcome.UNKNOWN


def _duration(data: Mapping | None) -> float | None:
    value = _section(data, "metadata").get("call_duration_secs")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def derive_call_fields(data: Mapping | None) -> DerivedCallFields:
    """Ingestion-time scalars; a pure function of the raw payload."""
    results = data_collection_results(data)
    return DerivedCallFields(
        call_outcome=parse_call_outcome(_section(data, "analysis").get("call_successful")),
        call_duration_secs=_duration(data),
        vision_scale=parse_impact_scale(find_value(results, *IMPACT_SCALE_KEYWORDS)),
        activities=find_value(results, *ACTIVITIES_KEYWORDS),
        vision_preference=find_value(results, *PREFERENCE_KEYWORDS),
        email=accept_email(find_value(results, *EMAIL_KEYWORDS)),
    )


def format_duration(secs: float) -> str:
    minutes = int(secs // 60)
    seconds = int(secs % 60 + 0.5)
    return f"{minutes}m {seconds}s" if minutes > 0 else f"{seconds}s"


def format_call_date(call_timestamp: int) -> tuple[datetime, str]:
    moment = datetime.fromtimestamp(call_timestamp, tz=timezone.utc).astimezone(DISPLAY_TIME_ZONE)
    return moment, f"{moment:%B} {moment.day}, {moment.year}"


def resolve_display_fields(
    data: Mapping | None,
    call_timestamp: int,
    *,
    patient_name: str | None = None,
) -> CallDisplayFields:
    """Resolve the notification fields for one call from its raw payload."""
    results = data_collection_results(data)
    insights = extract_call_insights(results, patient_name=patient_name)
    duration = _duration(data)
    call_date, call_date_label = format_call_date(call_timestamp)
    summary = _section(data, "analysis").get("transcript_summary")

    return CallDisplayFields(
        patient_name=insights.patient_name or DEFAULT_PATIENT_NAME,
        patient_email=insights.email,
        vision_scale=insights.impact_scale,
        glasses_preference=insights.glasses_preference,
        premium_lens_interest=insights.premium_lens_value,
        laser_interest=insights.laser_interest_value,
        activities=insights.activities,
        hobbies=insights.hobbies,
        medical_conditions=insights.medical_history,
        concerns=insights.concerns,
        vision_preference=insights.vision_preference,
        driver_info=insights.driver_info,
        call_summary=_clean(summary) if isinstance(summary, str) else None,
        evaluation_results=evaluation_results(data),
        call_outcome=parse_call_outcome(_section(data, "analysis").get("call_successful")),
        call_timestamp=call_timestamp,
        call_date=call_date,
        call_date_label=call_date_label,
        duration_label=format_duration(duration) if duration is not None else "N/A",
    )
