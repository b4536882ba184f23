"""
EngineeringResponse: the structured plan returned by the multimodal model.

Wire keys are the ones the model is asked to produce (pt-BR). Python attribute
names are English; `model_dump(by_alias=True)` gives the wire shape back.

Every payload coming from the model goes through `EngineeringResponse.model_validate`.
Nothing downstream (renderer, API) ever sees an unvalidated dict.
"""

from __future__ import annotations

import unicodedata
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Priority(str, Enum):
    """Closed set of step priorities. Values are the wire labels."""

    HIGH = "Alta"
    MEDIUM = "Média"
    LOW = "Baixa"

    @property
    def label(self) -> str:
        return self.value


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class VisualSummary(_WireModel):
    equipment_type: str = Field(..., alias="tipo")
    extracted_texts: List[str] = Field(..., alias="textos")
    observed_symptoms: List[str] = Field(..., alias="sintomas")
    hypotheses: List[str] = Field(..., alias="hipoteses")
    key_terms: List[str] = Field(default_factory=list, alias="termos_chave")


class ActionStep(_WireModel):
    priority: Priority = Field(..., alias="prioridade")
    description: str = Field(..., alias="descricao")
    execution_commands: List[str] = Field(..., alias="execucao")
    pre_checks: List[str] = Field(..., alias="pre_checks")
    post_checks: List[str] = Field(..., alias="pos_checks")
    rollback_commands: List[str] = Field(..., alias="rollback")
    notes: Optional[str] = Field(default=None, alias="notas")

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> Any:
        # "Média" may arrive decomposed (e + combining acute)
        if isinstance(value, str):
            return unicodedata.normalize("NFC", value)
        return value


class EngineeringResponse(_WireModel):
    visual_summary: VisualSummary = Field(..., alias="resumo_visual")
    open_questions: List[str] = Field(..., alias="perguntas")
    action_steps: List[ActionStep] = Field(..., alias="comandos")
    variables_to_confirm: List[str] = Field(..., alias="variaveis_para_confirmar")
    risks_and_precautions: List[str] = Field(..., alias="riscos_e_precaucoes")
    sources: List[str] = Field(..., alias="fontes")

    @field_validator("variables_to_confirm")
    @classmethod
    def _dedupe_variables(cls, value: List[str]) -> List[str]:
        # a set of placeholders; keep first-seen order for display
        seen: Dict[str, None] = {}
        for item in value:
            seen.setdefault(item, None)
        return list(seen)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------
# Schema declaration sent with every request (Gemini response_schema format)
# ---------

def _string_array() -> Dict[str, Any]:
    return {"type": "ARRAY", "items": {"type": "STRING"}}


def build_response_schema() -> Dict[str, Any]:
    """
    Schema constraining the model output to the EngineeringResponse shape.

    `termos_chave` and `notas` are declared but not required.
    """
    return {
        "type": "OBJECT",
        "properties": {
            "resumo_visual": {
                "type": "OBJECT",
                "properties": {
                    "tipo": {"type": "STRING"},
                    "textos": _string_array(),
                    "sintomas": _string_array(),
                    "hipoteses": _string_array(),
                    "termos_chave": _string_array(),
                },
                "required": ["tipo", "textos", "sintomas", "hipoteses"],
            },
            "perguntas": _string_array(),
            "comandos": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "prioridade": {"type": "STRING", "enum": [p.value for p in Priority]},
                        "descricao": {"type": "STRING"},
                        "execucao": _string_array(),
                        "pre_checks": _string_array(),
                        "pos_checks": _string_array(),
                        "rollback": _string_array(),
                        "notas": {"type": "STRING"},
                    },
                    "required": ["prioridade", "descricao", "execucao", "pre_checks", "pos_checks", "rollback"],
                },
            },
            "variaveis_para_confirmar": _string_array(),
            "riscos_e_precaucoes": _string_array(),
            "fontes": _string_array(),
        },
        "required": [
            "resumo_visual",
            "perguntas",
            "comandos",
            "variaveis_para_confirmar",
            "riscos_e_precaucoes",
            "fontes",
        ],
    }


RESPONSE_SCHEMA = build_response_schema()
