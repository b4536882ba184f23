from __future__ import annotations

from typing import TYPE_CHECKING

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

from engineer_assistant.analyzers.engineering_schema import EngineeringResponse
from engineer_assistant.rendering.report import build_report

if TYPE_CHECKING:
    from engineer_assistant.sessions.workspace import AnalysisSession


# ---------- Templates ----------

_STYLE = r"""
<style>
  body { background: #0d1117; color: #c9d1d9; font-family: system-ui, sans-serif; margin: 0; }
  main { max-width: 1200px; margin: 0 auto; padding: 2rem 1rem; }
  .report { display: grid; grid-template-columns: 1fr 2fr; gap: 1.5rem; }
  .panel { background: #161b22; border: 1px solid #30363d; border-radius: 8px; padding: 1rem; margin-bottom: 1rem; }
  .mono, pre, code { font-family: ui-monospace, monospace; }
  .chip { display: inline-block; background: #30363d; border-radius: 4px; padding: 2px 6px; margin: 2px; font-size: 0.8rem; }
  .step { border: 1px solid #30363d; border-left-width: 4px; border-radius: 8px; margin-bottom: 1rem; }
  .step header { padding: 0.75rem 1rem; display: flex; gap: 0.75rem; align-items: center; }
  .step .body { padding: 0 1rem 1rem; }
  .badge { font-weight: bold; font-size: 0.75rem; text-transform: uppercase; border-radius: 4px; padding: 2px 8px; }
  .border-high { border-left-color: #f85149; } .badge-high { background: #f85149; color: #fff; }
  .border-medium { border-left-color: #d29922; } .badge-medium { background: #d29922; color: #000; }
  .border-low { border-left-color: #58a6ff; } .badge-low { background: #58a6ff; color: #fff; }
  .exec { background: #000; color: #3fb950; padding: 0.5rem; border-radius: 4px; }
  .risks h2 { color: #f85149; } .variables h2 { color: #d29922; }
  .error { background: #3b1219; border: 1px solid #f85149; padding: 1rem; border-radius: 8px; }
</style>
"""

_REPORT_TEMPLATE = r"""
<div class="report">
  <div class="context">
    <section class="panel visual-summary">
      <h2>Análise Visual</h2>
      <div><small>Tipo Identificado</small><div class="mono equipment-type">{{ report.equipment_type }}</div></div>
      {% if report.symptoms %}
      <div><small>Sintomas Detectados</small>
        <ul>{% for s in report.symptoms %}<li class="symptom">{{ s }}</li>{% endfor %}</ul>
      </div>
      {% endif %}
      {% if report.ocr_texts %}
      <div><small>Texto OCR Relevante</small>
        <div>{% for t in report.ocr_texts %}<span class="chip ocr-text">{{ t }}</span>{% endfor %}</div>
      </div>
      {% endif %}
      {% if report.hypotheses %}
      <div><small>Hipóteses</small>
        <ul>{% for h in report.hypotheses %}<li class="hypothesis">{{ h }}</li>{% endfor %}</ul>
      </div>
      {% endif %}
      {% if report.key_terms %}
      <div><small>Termos-chave</small>
        <div>{% for k in report.key_terms %}<span class="chip key-term">{{ k }}</span>{% endfor %}</div>
      </div>
      {% endif %}
    </section>

    {% if report.risks %}
    <section class="panel risks">
      <h2>Riscos &amp; Precauções</h2>
      <ul>{% for r in report.risks %}<li class="risk">{{ r }}</li>{% endfor %}</ul>
    </section>
    {% endif %}

    {% if report.variables_to_confirm %}
    <section class="panel variables">
      <h2>Confirmar Variáveis</h2>
      <div>{% for v in report.variables_to_confirm %}<span class="chip mono variable">{{ v }}</span>{% endfor %}</div>
    </section>
    {% endif %}

    {% if report.sources %}
    <section class="sources">
      <strong>Fontes utilizadas:</strong>
      <ul>{% for src in report.sources %}<li class="source">{{ src }}</li>{% endfor %}</ul>
    </section>
    {% endif %}
  </div>

  <div class="plan panel">
    <h2>Plano de Engenharia <span class="chip step-count">{{ report.step_count }} Passos</span></h2>

    {% if report.open_questions %}
    <section class="open-questions">
      <h3>Perguntas Pendentes</h3>
      <ol>{% for q in report.open_questions %}<li class="question">{{ q }}</li>{% endfor %}</ol>
    </section>
    {% endif %}

    {% for step in report.steps %}
    <article class="step {{ step.style.border_class }}" data-priority="{{ step.priority_label }}">
      <header>
        <span class="badge {{ step.style.badge_class }}">{{ step.priority_label }}</span>
        <h3 class="step-title">{{ step.title }}</h3>
      </header>
      <div class="body">
        {% if step.pre_checks %}
        <div class="pre-checks"><small>Pre-Checks / Validações Iniciais</small>
          {% for c in step.pre_checks %}<div class="mono">$ {{ c }}</div>{% endfor %}
        </div>
        {% endif %}
        <div class="execution"><small>Execução</small>
          <div class="exec">{% for c in step.execution %}<div class="mono command">&gt; {{ c }}</div>{% endfor %}</div>
          {% if step.notes %}<p class="note"><em>Nota: {{ step.notes }}</em></p>{% endif %}
        </div>
        {% if step.post_checks %}
        <div class="post-checks"><small>Post-Checks</small>
          {% for c in step.post_checks %}<div class="mono">$ {{ c }}</div>{% endfor %}
        </div>
        {% endif %}
        {% if step.rollback %}
        <div class="rollback"><small>Rollback Plan</small>
          {% for c in step.rollback %}<div class="mono">$ {{ c }}</div>{% endfor %}
        </div>
        {% endif %}
      </div>
    </article>
    {% endfor %}
  </div>
</div>
"""

_REPORT_PAGE_TEMPLATE = r"""<!doctype html>
<html lang="pt-BR">
<head><meta charset="utf-8" /><title>Relatório de Incidente</title>{{ style | safe }}</head>
<body><main>
  <h1>Relatório de Incidente</h1>
  <p>Gerado por AI com base na evidência visual e documentação.</p>
  {% include "report.html" %}
</main></body>
</html>
"""

_WORKSPACE_TEMPLATE = r"""<!doctype html>
<html lang="pt-BR">
<head><meta charset="utf-8" /><title>Engenheiro IA - Assistente Análise Imagens</title>{{ style | safe }}</head>
<body><main>
  <h1>Engenheiro IA - Assistente Análise Imagens</h1>
  <p class="mono">sessão {{ session.session_id }} · estado {{ session.loading_state.value }}</p>

  {% if report is none %}
  <section class="panel evidence">
    <h2>1. Upload da Evidência</h2>
    {% if session.image %}
    <p class="image-name">{{ session.image.filename }} ({{ session.image.mime_type }}, {{ session.image.size_bytes }} bytes)</p>
    {% else %}
    <p>Nenhuma imagem selecionada. Envie um arquivo ou abra a câmera.</p>
    {% endif %}
    <p class="camera-state">Câmera: {{ session.camera.state.value }} ({{ session.camera.facing_mode.value }})</p>
    {% if session.camera_error %}<p class="camera-error">{{ session.camera_error }}</p>{% endif %}
  </section>

  <section class="panel knowledge">
    <h2>2. Base de Conhecimento (RAG)</h2>
    <pre>{{ session.knowledge_text }}</pre>
  </section>
  {% endif %}

  {% if session.error %}
  <section class="error">
    <h3>Erro na Execução</h3>
    <p class="error-message">{{ session.error }}</p>
  </section>
  {% endif %}

  {% if report is not none %}
  <h2>Relatório de Incidente</h2>
  {% include "report.html" %}
  {% endif %}
</main></body>
</html>
"""

_env = Environment(
    loader=DictLoader(
        {
            "report.html": _REPORT_TEMPLATE,
            "report_page.html": _REPORT_PAGE_TEMPLATE,
            "workspace.html": _WORKSPACE_TEMPLATE,
        }
    ),
    autoescape=select_autoescape(default=True, default_for_string=True),
    undefined=StrictUndefined,
)


# ---------- Public API ----------

def render_report_html(response: EngineeringResponse) -> str:
    """Standalone HTML page for one EngineeringResponse."""
    return _env.get_template("report_page.html").render(report=build_report(response), style=_STYLE)


def render_workspace_html(session: "AnalysisSession") -> str:
    """The whole view for a session: inputs while there is no result, report after."""
    report = build_report(session.result) if session.result is not None else None
    return _env.get_template("workspace.html").render(session=session, report=report, style=_STYLE)
