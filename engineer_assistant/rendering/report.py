"""
Report view model: EngineeringResponse -> what the page shows.

Pure functions only. Ordering of every sequence is kept as received; empty
optional sequences become None so templates drop the whole section.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from engineer_assistant.analyzers.engineering_schema import ActionStep, EngineeringResponse, Priority

MAX_OCR_CHIPS = 8


@dataclass(frozen=True)
class PriorityStyle:
    tone: str  # red | yellow | blue
    badge_class: str
    border_class: str


# Exactly one entry per Priority member, looked up with [] (no fallback).
PRIORITY_STYLES: Dict[Priority, PriorityStyle] = {
    Priority.HIGH: PriorityStyle(tone="red", badge_class="badge-high", border_class="border-high"),
    Priority.MEDIUM: PriorityStyle(tone="yellow", badge_class="badge-medium", border_class="border-medium"),
    Priority.LOW: PriorityStyle(tone="blue", badge_class="badge-low", border_class="border-low"),
}


def classify_priority(priority: Priority) -> PriorityStyle:
    return PRIORITY_STYLES[priority]


@dataclass(frozen=True)
class StepView:
    number: int
    priority_label: str
    style: PriorityStyle
    description: str
    execution: Tuple[str, ...]
    pre_checks: Optional[Tuple[str, ...]]
    post_checks: Optional[Tuple[str, ...]]
    rollback: Optional[Tuple[str, ...]]
    notes: Optional[str]

    @property
    def title(self) -> str:
        return f"#{self.number} {self.description}"


@dataclass(frozen=True)
class ReportView:
    equipment_type: str
    symptoms: Optional[Tuple[str, ...]]
    ocr_texts: Optional[Tuple[str, ...]]
    hypotheses: Optional[Tuple[str, ...]]
    key_terms: Optional[Tuple[str, ...]]
    risks: Optional[Tuple[str, ...]]
    variables_to_confirm: Optional[Tuple[str, ...]]
    sources: Optional[Tuple[str, ...]]
    open_questions: Optional[Tuple[str, ...]]
    steps: Tuple[StepView, ...]

    @property
    def step_count(self) -> int:
        return len(self.steps)


def _section(items: Sequence[str]) -> Optional[Tuple[str, ...]]:
    return tuple(items) if items else None


def build_step_view(step: ActionStep, index: int) -> StepView:
    return StepView(
        number=index + 1,
        priority_label=step.priority.label,
        style=classify_priority(step.priority),
        description=step.description,
        execution=tuple(step.execution_commands),
        pre_checks=_section(step.pre_checks),
        post_checks=_section(step.post_checks),
        rollback=_section(step.rollback_commands),
        notes=step.notes or None,
    )


def build_report(response: EngineeringResponse) -> ReportView:
    summary = response.visual_summary
    return ReportView(
        equipment_type=summary.equipment_type,
        symptoms=_section(summary.observed_symptoms),
        ocr_texts=_section(summary.extracted_texts[:MAX_OCR_CHIPS]),
        hypotheses=_section(summary.hypotheses),
        key_terms=_section(summary.key_terms),
        risks=_section(response.risks_and_precautions),
        variables_to_confirm=_section(response.variables_to_confirm),
        sources=_section(response.sources),
        open_questions=_section(response.open_questions),
        steps=tuple(build_step_view(step, i) for i, step in enumerate(response.action_steps)),
    )
