"""Data models shared by the engine and the reporters."""

from covgate.models.finding import MESSAGE_TEMPLATES, Finding, FindingKind, Location, Severity

__all__ = [
    "MESSAGE_TEMPLATES",
    "Finding",
    "FindingKind",
    "Location",
    "Severity",
]
