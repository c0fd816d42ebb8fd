from conftest import RecordingTransport, json_response

GEMINI_OK = json_response({"candidates": [{"content": {"parts": [{"text": "Gemini primary response"}]}}]})


def test_health(make_client):
    response = make_client().get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert isinstance(response.json()["timestamp"], str)


def test_request_id_is_echoed(make_client):
    response = make_client().get("/api/health", headers={"x-request-id": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"
    assert make_client().get("/api/health").headers["x-request-id"]


def test_missing_provider_keys_is_configuration_error(make_client):
    upstream = RecordingTransport(GEMINI_OK)
    response = make_client(upstream).post("/api/diagnose", json={"symptoms": "headache"})

    assert response.status_code == 500
    assert "missing provider keys" in response.json()["error"].lower()
    assert upstream.calls == 0


def test_missing_http_client_is_configuration_error(make_client):
    response = make_client(with_http_client=False, gemini_api_key="test-key").post(
        "/api/diagnose", json={"symptoms": "headache"}
    )
    assert response.status_code == 500
    assert response.json() == {"error": "Server HTTP client is not configured."}


def test_rejects_unsupported_upload_mime_types(make_client):
    upstream = RecordingTransport(GEMINI_OK)
    response = make_client(upstream, gemini_api_key="test-key").post("/api/diagnose", json={
        "symptoms": "headache",
        "file": {
            "base64": "aGVsbG8gd29ybGQ=",
            "mimeType": "application/x-msdownload",
            "fileName": "bad.exe",
            "isImage": False,
        },
    })

    assert response.status_code == 400
    assert "unsupported upload type" in response.json()["error"].lower()
    assert upstream.calls == 0


def test_rejects_unsupported_language_values(make_client):
    upstream = RecordingTransport(GEMINI_OK)
    response = make_client(upstream, gemini_api_key="test-key").post(
        "/api/diagnose", json={"symptoms": "headache", "language": "de"}
    )

    assert response.status_code == 400
    assert "invalid enum value" in response.json()["error"].lower()
    assert upstream.calls == 0


def test_rejects_non_json_body(make_client):
    response = make_client(gemini_api_key="test-key").post(
        "/api/diagnose", content=b"symptoms=headache", headers={"content-type": "text/plain"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid input payload."}


def test_uses_anthropic_when_only_anthropic_key_is_configured(make_client):
    upstream = RecordingTransport(
        json_response({"content": [{"type": "text", "text": "Please seek emergency help immediately."}]})
    )
    response = make_client(upstream, anthropic_api_key="test-key").post("/api/diagnose", json={
        "symptoms": "My child can't breathe and has chest pain",
        "language": "es",
        "readingLevel": "very_simple",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["provider"] == "anthropic"
    assert body["result"] == "Please seek emergency help immediately."
    assert body["triage"]["level"] == "emergency"
    assert body["triage"]["title"] == "Advertencia de emergencia"
    assert body["triage"]["reasons"] == ["Breathing difficulty", "Chest pain"]

    assert upstream.calls == 1
    assert "api.anthropic.com/v1/messages" in upstream.url()
    system = upstream.body()["system"]
    assert "Respond in Spanish" in system
    assert "very short sentences" in system
    assert "seek emergency care immediately" in system


def test_falls_back_from_gemini_to_groq_when_gemini_fails(make_client):
    upstream = RecordingTransport(
        json_response({"error": {"message": "gemini unavailable"}}, 503),
        json_response({"choices": [{"message": {"content": "Groq fallback response"}}]}),
    )
    client = make_client(upstream, gemini_api_key="gem-key", groq_api_key="groq-key", anthropic_api_key="anth-key")

    response = client.post("/api/diagnose", json={"symptoms": "mild headache"})

    assert response.status_code == 200
    assert response.json()["provider"] == "groq"
    assert "Groq fallback response" in response.json()["result"]
    assert upstream.calls == 2
    assert "generativelanguage.googleapis.com" in upstream.url(0)
    assert "api.groq.com/openai/v1/chat/completions" in upstream.url(1)


def test_uses_gemini_first_when_it_succeeds(make_client):
    upstream = RecordingTransport(GEMINI_OK)
    client = make_client(upstream, gemini_api_key="gem-key", groq_api_key="groq-key", anthropic_api_key="anth-key")

    response = client.post("/api/diagnose", json={"symptoms": "mild headache"})

    assert response.status_code == 200
    assert response.json()["provider"] == "gemini"
    assert "Gemini primary response" in response.json()["result"]
    assert upstream.calls == 1
    assert "generativelanguage.googleapis.com" in upstream.url()


def test_all_providers_failing_is_gateway_error(make_client):
    upstream = RecordingTransport(json_response({"error": {"message": "down"}}, 500))
    client = make_client(upstream, gemini_api_key="gem-key", anthropic_api_key="anth-key")

    response = client.post("/api/diagnose", json={"symptoms": "mild headache"})

    assert response.status_code == 502
    assert response.json() == {"error": "All providers failed. gemini: down | anthropic: down"}
    assert upstream.calls == 2


def test_handoff_record_snapshot(make_client):
    upstream = RecordingTransport(GEMINI_OK)
    client = make_client(upstream, gemini_api_key="gem-key")

    response = client.post("/api/diagnose", json={
        "symptoms": "  sore throat  ",
        "name": "Mia",
        "age": 7,
        "language": "fr",
        "readingLevel": "detailed",
    })

    handoff = response.json()["handoff"]
    assert handoff["childName"] == "Mia"
    assert handoff["childAge"] == "7 years old"
    assert handoff["symptoms"] == "sore throat"
    assert handoff["language"] == "fr"
    assert handoff["readingLevel"] == "detailed"
    assert isinstance(handoff["createdAt"], str)
    assert response.json()["triage"]["level"] == "caution"


def test_image_upload_reaches_provider(make_client):
    upstream = RecordingTransport(GEMINI_OK)
    client = make_client(upstream, gemini_api_key="gem-key")

    response = client.post("/api/diagnose", json={
        "symptoms": "red spots on arm",
        "file": {"base64": "iVBORw0KGgoAAAANSUhEUg==", "mimeType": "image/png", "isImage": True},
    })

    assert response.status_code == 200
    parts = upstream.body()["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "image/png"
    assert parts[1]["text"].endswith("Please read and explain it simply for a child.")


def test_production_serves_spa_index(make_client, tmp_path):
    (tmp_path / "index.html").write_text("<html>kiddoc</html>")
    client = make_client(app_env="production", static_dir=tmp_path)

    assert "kiddoc" in client.get("/symptoms/123").text
    assert client.get("/api/unknown").status_code == 404
    assert client.get("/api/health").json()["status"] == "ok"


def test_unexpected_error_is_generic_500(make_client, monkeypatch):
    async def explode(*args, **kwargs):
        raise RuntimeError("secret upstream detail")

    monkeypatch.setattr("kiddoc.ai.pipeline.request_with_fallback", explode)
    client = make_client(gemini_api_key="gem-key")

    response = client.post("/api/diagnose", json={"symptoms": "mild headache"})

    assert response.status_code == 500
    assert response.json() == {"error": "Unexpected server error."}
    assert "secret" not in response.text


def test_non_ascii_groq_key_falls_through_to_anthropic(make_client):
    upstream = RecordingTransport(json_response({"content": [{"type": "text", "text": "Anthropic answer"}]}))
    client = make_client(upstream, groq_api_key="kéy", anthropic_api_key="anth-key")

    response = client.post("/api/diagnose", json={"symptoms": "mild headache"})

    assert response.status_code == 200
    assert response.json()["provider"] == "anthropic"
    assert upstream.calls == 1
    assert "api.anthropic.com/v1/messages" in upstream.url()
