import io
import json

from fastapi.testclient import TestClient
from PIL import Image

from engineer_assistant.analyzers.engineering_analyzer import EngineeringAnalyzer
from engineer_assistant.analyzers.errors import GENERIC_FAILURE_MESSAGE, BackendError, ConfigurationError
from engineer_assistant.llm.client import ModelRequest, ModelResult
from engineer_assistant.llm.mock_client import MockModelClient
from engineer_assistant.main import create_app
from engineer_assistant.pipelines.analysis_pipeline import AnalysisPipeline


class _TextClient:
    def __init__(self, text: str):
        self.text = text
        self.requests = []

    @property
    def model_id(self) -> str:
        return "fake-model"

    async def generate(self, req: ModelRequest) -> ModelResult:
        self.requests.append(req)
        return ModelResult(text=self.text, model_id=self.model_id, latency_ms=1)


class _RaisingPipeline:
    def __init__(self, exc: Exception):
        self.exc = exc

    async def run(self, image, knowledge_text):
        raise self.exc


def _make_png_bytes(w: int = 64, h: int = 32) -> bytes:
    img = Image.new("RGB", (w, h), color=(255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _client(pipeline) -> TestClient:
    app = create_app()
    app.state.pipeline = pipeline
    return TestClient(app)


def _post_image(client: TestClient, **data):
    files = {"file": ("scan.png", _make_png_bytes(), "image/png")}
    return client.post("/analyze", files=files, data=data, headers={"X-Request-Id": "req-42"})


def test_analyze_returns_wire_keys_and_model_details():
    pipeline = AnalysisPipeline(EngineeringAnalyzer(client_factory=MockModelClient))

    resp = _post_image(_client(pipeline), knowledge_text="[DOC#B09] systemctl restart networking")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-Id") == "req-42"

    body = resp.json()
    result = body["result"]
    assert list(result)[:2] == ["resumo_visual", "perguntas"]
    assert result["comandos"][0]["prioridade"] == "Alta"
    assert result["fontes"] == ["DOC#B09"]
    assert body["details"]["model"]["name"] == "mock-engineer"
    assert "duration_ms" in body["details"]["meta"]


def test_knowledge_text_reaches_the_model():
    client = _TextClient("")
    pipeline = AnalysisPipeline(EngineeringAnalyzer(client_factory=lambda: client))

    _post_image(_client(pipeline), knowledge_text="[DOC#Z99] reload in 5")

    assert len(client.requests) == 1
    assert "[DOC#Z99] reload in 5" in client.requests[0].prompt


def test_empty_model_body_returns_502_with_generic_message():
    pipeline = AnalysisPipeline(EngineeringAnalyzer(client_factory=lambda: _TextClient("")))

    resp = _post_image(_client(pipeline))

    assert resp.status_code == 502
    body = resp.json()
    assert body["error"]["code"] == "invalid_model_output"
    assert body["error"]["message"] == GENERIC_FAILURE_MESSAGE
    assert body["error"]["request_id"] == "req-42"


def test_backend_error_message_is_shown_verbatim():
    resp = _post_image(_client(_RaisingPipeline(BackendError("429 RESOURCE_EXHAUSTED: quota exceeded"))))

    assert resp.status_code == 502
    body = resp.json()
    assert body["error"]["code"] == "backend_error"
    assert body["error"]["message"] == "429 RESOURCE_EXHAUSTED: quota exceeded"


def test_missing_key_returns_500_configuration_error():
    resp = _post_image(_client(_RaisingPipeline(ConfigurationError("API_KEY is missing"))))

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "configuration_error"


def test_non_image_upload_returns_400():
    client = _client(_RaisingPipeline(AssertionError("must not be called")))
    files = {"file": ("notes.txt", b"hello", "text/plain")}

    resp = client.post("/analyze", files=files)

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "unsupported_file_type"


def test_missing_file_returns_422():
    client = _client(_RaisingPipeline(AssertionError("must not be called")))

    resp = client.post("/analyze", data={"knowledge_text": "x"})

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "validation_error"


def test_schema_route_exposes_priority_enum():
    client = _client(_RaisingPipeline(AssertionError("unused")))

    resp = client.get("/analyze/schema")

    assert resp.status_code == 200
    step = resp.json()["properties"]["comandos"]["items"]
    assert step["properties"]["prioridade"]["enum"] == ["Alta", "Média", "Baixa"]


def _plan(priority: str = "Alta") -> dict:
    return {
        "resumo_visual": {"tipo": "switch Cisco", "textos": ["%LINK-3-UPDOWN"], "sintomas": [], "hipoteses": []},
        "perguntas": ["Qual VLAN?"],
        "comandos": [
            {
                "prioridade": priority,
                "descricao": "Reativar interface",
                "execucao": ["interface Gi0/1", "no shutdown"],
                "pre_checks": ["show interface status"],
                "pos_checks": ["show interface status"],
                "rollback": ["shutdown"],
            }
        ],
        "variaveis_para_confirmar": ["<INTERFACE>"],
        "riscos_e_precaucoes": [],
        "fontes": ["DOC#A12"],
    }


def test_render_returns_html_report():
    client = _client(_RaisingPipeline(AssertionError("unused")))

    resp = client.post("/render", json=_plan())

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert '<span class="badge badge-high">Alta</span>' in resp.text
    assert '<section class="open-questions">' in resp.text
    assert "&lt;INTERFACE&gt;" in resp.text


def test_render_rejects_unknown_priority():
    client = _client(_RaisingPipeline(AssertionError("unused")))

    resp = client.post("/render", json=_plan(priority="Urgente"))

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "validation_error"


def test_absent_step_notes_are_omitted_from_the_response():
    pipeline = AnalysisPipeline(EngineeringAnalyzer(client_factory=lambda: _TextClient(json.dumps(_plan()))))

    resp = _post_image(_client(pipeline))

    assert resp.status_code == 200
    step = resp.json()["result"]["comandos"][0]
    assert "notas" not in step
    assert "termos_chave" in resp.json()["result"]["resumo_visual"]


def test_analysis_routes_document_the_error_envelope():
    client = _client(_RaisingPipeline(AssertionError("unused")))

    spec = client.get("/openapi.json").json()

    responses = spec["paths"]["/analyze"]["post"]["responses"]
    for status in ("400", "413", "502"):
        assert responses[status]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
