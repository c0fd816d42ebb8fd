"""Rule-based urgency triage over free-text symptom descriptions.

Two ordered rule tables are evaluated top to bottom: any urgent match wins,
otherwise any watch match, otherwise the result is routine. All matched
reasons of the winning tier are reported, never a mix of tiers.
"""
import re

from kiddoc.models import TriageResult

URGENT_TRIAGE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\b(can'?t breathe|cannot breathe|trouble breathing|struggling to breathe)\b", re.I),
     "Breathing difficulty"),
    (re.compile(r"\b(chest pain|severe chest pain)\b", re.I), "Chest pain"),
    (re.compile(r"\b(unconscious|passed out|not waking up)\b", re.I), "Loss of consciousness"),
    (re.compile(r"\b(seizure|convulsion)\b", re.I), "Possible seizure"),
    (re.compile(r"\b(blue lips|blue face)\b", re.I), "Possible low oxygen signs"),
    (re.compile(r"\b(thoughts of self harm|suicidal|want to die)\b", re.I), "Mental health emergency signs"),
]

WATCH_TRIAGE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\b(high fever|fever over|fever for [0-9]+ days)\b", re.I), "Persistent or high fever"),
    (re.compile(r"\b(vomiting|diarrhea|rash|ear pain|sore throat)\b", re.I), "Symptoms may need a doctor check"),
    (re.compile(r"\b(headache|dizzy|fatigue|stomach pain|tummy hurts)\b", re.I), "Common symptoms to monitor"),
]

TRIAGE_COPY: dict[str, dict[str, tuple[str, str]]] = {
    "en": {
        "emergency": ("Emergency warning", "Some symptoms look urgent. Please seek emergency care now."),
        "caution": ("Doctor follow-up recommended", "These symptoms should be checked by a doctor soon."),
        "routine": ("Monitor and follow guidance", "No urgent red flags detected, but keep monitoring symptoms."),
    },
    "es": {
        "emergency": (
            "Advertencia de emergencia",
            "Algunos sintomas parecen urgentes. Busquen atencion de emergencia ahora.",
        ),
        "caution": ("Se recomienda consulta medica", "Estos sintomas deben revisarse pronto con un medico."),
        "routine": (
            "Monitorear y seguir indicaciones",
            "No se detectaron alertas urgentes, pero sigan observando los sintomas.",
        ),
    },
    "fr": {
        "emergency": (
            "Alerte urgence",
            "Certains symptomes semblent urgents. Veuillez consulter les urgences maintenant.",
        ),
        "caution": ("Suivi medical recommande", "Ces symptomes devraient etre verifies par un medecin rapidement."),
        "routine": (
            "Surveiller et suivre les conseils",
            "Aucun signal urgent detecte, mais continuez a surveiller les symptomes.",
        ),
    },
}


def _matched_reasons(symptoms: str, patterns: list[tuple[re.Pattern, str]]) -> list[str]:
    return [reason for regex, reason in patterns if regex.search(symptoms)]


def _result(level: str, language: str, reasons: list[str]) -> TriageResult:
    copy = TRIAGE_COPY.get(language, TRIAGE_COPY["en"])
    title, message = copy[level]
    return TriageResult(level=level, title=title, message=message, reasons=tuple(reasons))


def classify(symptoms: str, language: str = "en") -> TriageResult:
    """Map symptom text to an urgency tier with localized copy."""
    urgent = _matched_reasons(symptoms, URGENT_TRIAGE_PATTERNS)
    if urgent:
        return _result("emergency", language, urgent)

    watch = _matched_reasons(symptoms, WATCH_TRIAGE_PATTERNS)
    if watch:
        return _result("caution", language, watch)

    return _result("routine", language, [])
