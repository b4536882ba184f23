from __future__ import annotations

from engineer_assistant.analyzers.engineering_schema import RESPONSE_SCHEMA
from engineer_assistant.llm.client import ModelRequest
from engineer_assistant.preprocessing.image_input import ImagePayload

SYSTEM_INSTRUCTION = (
    "You are an expert engineering assistant. "
    "Always output valid JSON matching the requested schema."
)

NO_KNOWLEDGE_NOTICE = "Nenhum conhecimento específico fornecido. Use melhores práticas gerais."

TASK_INSTRUCTIONS = """
Você é um assistente de engenharia que analisa IMAGENS e gera um plano de comandos seguro com base em uma Base de Conhecimento (RAG).

Tarefas:
1) Analise a imagem enviada:
   - Identifique tipo de ambiente/equipamento (ex.: switch/roteador, servidor Linux/Windows, painel industrial, tela de erro, diagrama).
   - Extraia textos visíveis (mensagens, códigos de erro, versões, interfaces, IPs, serviços).
   - Descreva sintomas/indícios (ex.: porta down, falha de autenticação, timeout, conflito de VLAN, serviço parado).
   - Inferências: hipóteses plausíveis, sem afirmar como fato se houver ambiguidade.

2) Use o Conhecimento Recuperado (RAG) fornecido (se houver) para gerar comandos e procedimentos alinhados ao contexto:
   - Priorize procedimentos compatíveis com fabricante/SO/versão e contexto visual.
   - Se houver divergência, peça confirmação objetiva antes de comandos arriscados.

3) Entregue saída ESTRUTURADA em JSON.

Critérios:
- Textos: liste exatamente como vistos quando possível.
- Compatibilidade: só gere comandos para o SO/equipamento deduzido ou confirmado. Se incerto, faça perguntas antes.
- Segurança:
  - Nunca inclua comandos destrutivos sem pré-checks e rollback (ex.: rm -rf, format, write erase, drop database).
  - Se forem necessários, peça confirmação explícita e explique o impacto.
- Validação:
  - Inclua pré-checks (estado atual, versão, existência de recurso) e pós-checks (resultado esperado).
  - Adicione rollback para cada bloco de comandos.
- Priorização: classifique cada bloco como Alta, Média ou Baixa, justificando na descrição/notas quando necessário.
- Clareza:
  - Use placeholders para variáveis não confirmadas: <IP>, <HOSTNAME>, <VLAN>, <INTERFACE>, <CAMINHO>, <USUARIO>, <SENHA>, <VERSAO>.
  - Se o contexto estiver insuficiente, inclua perguntas objetivas em "perguntas".
- Fontes: referencie IDs ou metadados dos trechos do RAG usados para cada comando (quando fornecidos).
- Responder em português do Brasil.
""".strip()

SAMPLE_KNOWLEDGE_CONTEXT = """[DOC#A12 | fabricante=Cisco | so=IOS | tema=Interface | risco=baixo]
Para verificar status de interface: show ip interface brief
Para habilitar interface:
conf t
interface <INTERFACE>
no shutdown
end

[DOC#B09 | so=Linux | tema=Rede | risco=médio]
Verificar rotas: ip route show
Reiniciar serviço de rede: systemctl restart networking
Logs de erro: journalctl -xeu networking.service"""


def knowledge_section(knowledge_text: str) -> str:
    """Knowledge text verbatim, or the neutral notice when there is none."""
    if not knowledge_text or not knowledge_text.strip():
        return NO_KNOWLEDGE_NOTICE
    return knowledge_text


def build_prompt(knowledge_text: str) -> str:
    return (
        f"{TASK_INSTRUCTIONS}\n\n"
        "---\n"
        "CONHECIMENTO RECUPERADO (RAG):\n"
        f"{knowledge_section(knowledge_text)}\n"
        "---"
    )


def compose_request(image: ImagePayload, knowledge_text: str, *, request_id: str | None = None) -> ModelRequest:
    """Pure composition: any image/text pair is composable."""
    return ModelRequest(
        prompt=build_prompt(knowledge_text),
        image_data=image.data,
        image_mime_type=image.mime_type,
        system_instruction=SYSTEM_INSTRUCTION,
        response_schema=RESPONSE_SCHEMA,
        request_id=request_id,
    )
