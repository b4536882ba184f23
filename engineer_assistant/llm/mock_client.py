from __future__ import annotations

import json

from engineer_assistant.llm.client import ModelRequest, ModelResult

_MOCK_PLAN = {
    "resumo_visual": {
        "tipo": "servidor Linux",
        "textos": ["networking.service: Failed"],
        "sintomas": ["serviço de rede parado"],
        "hipoteses": ["configuração de interface inválida"],
        "termos_chave": ["networking", "systemd"],
    },
    "perguntas": [],
    "comandos": [
        {
            "prioridade": "Alta",
            "descricao": "Reiniciar serviço",
            "execucao": ["systemctl restart networking"],
            "pre_checks": ["systemctl status networking"],
            "pos_checks": ["systemctl status networking"],
            "rollback": ["systemctl restart networking"],
            "notas": "[MOCK] plano de desenvolvimento",
        }
    ],
    "variaveis_para_confirmar": [],
    "riscos_e_precaucoes": ["Pode causar breve interrupção"],
    "fontes": ["DOC#B09"],
}


class MockModelClient:
    """Offline stand-in for development. Ignores the image, returns a fixed plan."""

    def __init__(self):
        self._model_id = "mock-engineer"

    @property
    def model_id(self) -> str:
        return self._model_id

    async def generate(self, req: ModelRequest) -> ModelResult:
        return ModelResult(
            text=json.dumps(_MOCK_PLAN, ensure_ascii=False),
            model_id=self._model_id,
            latency_ms=0,
            meta={"mock": True, "prompt_chars": len(req.prompt)},
        )
