from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .shift_core import Outcome, Phase, ShiftSnapshot

URGENT_TIME_S = 5.0


class HealthBand(StrEnum):
    STABLE = "stable"
    GUARDED = "guarded"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class OptionView:
    hotkey: int
    label: str
    enabled: bool
    highlight: bool
    dimmed: bool


@dataclass(frozen=True, slots=True)
class Headline:
    title: str
    subtitle: str
    action_label: str


def health_band(display_health: int) -> HealthBand:
    if display_health > 60:
        return HealthBand.STABLE
    if display_health > 30:
        return HealthBand.GUARDED
    return HealthBand.CRITICAL


def option_views(snap: ShiftSnapshot) -> list[OptionView]:
    """Button states for the current case.

    Options are clickable only while a case is live and unanswered. Once
    feedback is up, the correct option is highlighted and the rest dimmed,
    whatever the player picked.
    """

    if snap.phase is not Phase.IN_PROGRESS:
        return []
    revealed = snap.feedback is not None
    correct = snap.feedback.correct_option if snap.feedback is not None else None
    views: list[OptionView] = []
    for idx, label in enumerate(snap.options):
        is_correct = revealed and label == correct
        views.append(
            OptionView(
                hotkey=idx + 1,
                label=label,
                enabled=not revealed,
                highlight=is_correct,
                dimmed=revealed and not is_correct,
            )
        )
    return views


def option_for_hotkey(snap: ShiftSnapshot, hotkey: int) -> str | None:
    for view in option_views(snap):
        if view.hotkey == hotkey and view.enabled:
            return view.label
    return None


def format_time_left(seconds: float) -> str:
    return f"{max(0.0, seconds):.1f}s"


def timer_is_urgent(seconds: float) -> bool:
    return seconds < URGENT_TIME_S


def feedback_is_positive(snap: ShiftSnapshot) -> bool:
    return snap.feedback is not None and snap.feedback.outcome is Outcome.CORRECT


def headline(snap: ShiftSnapshot) -> Headline:
    if snap.phase is Phase.WON:
        return Headline(
            title="Perfect Practice",
            subtitle="You successfully saved all patients!",
            action_label="Play Again",
        )
    if snap.phase is Phase.LOST:
        return Headline(
            title="Mission Failed",
            subtitle=f"You lost the patient on Case #{snap.case_number}.",
            action_label="Retry",
        )
    return Headline(
        title="Endocrine ER",
        subtitle="CODE RED: PHARMACOLOGY",
        action_label="Start Shift",
    )


START_RULES: tuple[str, ...] = (
    "High-stakes Pharmacology Challenge",
    "20 seconds to save each patient",
    "Wrong choices cause massive damage",
)

LOSS_QUOTE = (
    '"The negative feedback loop of the endocrine system is unforgiving, '
    'and so is your decision making."'
)
