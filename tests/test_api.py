from insights.accounts import RATE_LIMIT_MESSAGE


FILTERS = {"product": "HotDocs", "quarter": "FY26 Q2", "top_n": 5}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "backend": "memory", "connected": True}


def test_meta_endpoints(client):
    assert "HotDocs" in client.get("/meta/products").json()["values"]

    quarters = client.get("/meta/quarters", params={"product": "hotdocs"}).json()
    assert quarters["values"][0] == "FY26 Q2"
    assert quarters["source"] == "sample"

    datasets = {d["name"]: d for d in client.get("/meta/datasets").json()["datasets"]}
    assert datasets["features"]["required"] == ["feature_name", "vote_count", "status"]
    assert datasets["commitment_trends"]["quarter_scoped"] is False

    fields = client.get("/meta/fields").json()["fields"]
    assert fields[0]["key"] == "feature_name"


def test_page_endpoints(client):
    for path in ["/overview", "/responsiveness", "/commitment", "/engagement", "/client-submissions", "/collaboration", "/features", "/data-quality"]:
        r = client.post(path, json=FILTERS)
        assert r.status_code == 200, (path, r.text)
        assert r.json()["filters"]["product"] == "HotDocs"

    features = client.post("/features", json=FILTERS).json()
    assert len(features["top_features"]) == 5
    assert features["charts"]["top_features"]["$schema"].startswith("https://vega.github.io/schema/vega-lite")


def test_data_quality_report(client):
    report = client.post("/data-quality/report", json=FILTERS).json()
    assert report["quarter"] == "FY26 Q2"
    assert report["raw_data"]["metric_summary"]["responsiveness"] == 95


def test_csv_preview_and_errors(client, dashboard_csv):
    r = client.post("/csv/preview", json={"csv_text": dashboard_csv, "file_name": "hotdocs.csv"})
    assert r.status_code == 200
    body = r.json()
    assert body["preview"]["validation"]["is_valid"] is True
    assert body["report"]["file_name"] == "hotdocs.csv"

    r = client.post("/csv/preview", json={"csv_text": ""})
    assert r.status_code == 400
    assert r.json() == {"error": "Empty CSV file", "type": "file", "details": ["The uploaded file contains no data"]}

    r = client.post("/csv/preview", json={"csv_text": "a\n1\n", "dataset": "unknown"})
    assert r.status_code == 400
    assert r.json()["type"] == "application"


def test_validate_headers_and_mapping(client):
    r = client.post("/csv/validate-headers", json={"csv_text": "a,b\n1,2\n", "required_headers": ["a", "z"]})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid CSV structure"

    r = client.post("/csv/mapping/suggest", json={"headers": ["Idea Name", "Vote Count"]})
    assert r.json()["mapping"] == {"Idea Name": "feature_name", "Vote Count": "vote_count"}


def test_uploads(client, backend, dashboard_csv):
    r = client.post("/upload/dashboard", json={"csv_text": dashboard_csv, "product": "HotDocs", "quarter": "FY26 Q3"})
    assert r.status_code == 200
    assert r.json()["data"]["metric_summary"]["responsiveness"] == 88
    assert "FY26 Q3" in client.get("/meta/quarters", params={"product": "HotDocs"}).json()["values"]

    r = client.post(
        "/upload/responsiveness_trends",
        json={"csv_text": "percentage,total_ideas\n91,40\n", "product": "HotDocs", "quarter": "FY26 Q2"},
    )
    assert r.status_code == 200
    assert r.json()["inserted"] == 1
    assert r.json()["replaced"] == 1

    r = client.post("/upload/dashboard", json={"csv_text": dashboard_csv, "product": "LegalHold", "quarter": "FY26 Q2"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid product data"


def test_action_item_crud(client):
    r = client.post("/action-items", json={"product": "HotDocs", "quarter": "FY26 Q2", "text": "Share roadmap"})
    assert r.status_code == 201
    item_id = r.json()["id"]

    items = client.get("/action-items", params={"product": "HotDocs", "quarter": "FY26 Q2"}).json()["items"]
    assert len(items) == 4

    assert client.post(f"/action-items/{item_id}/toggle").json()["completed"] is True
    assert client.patch(f"/action-items/{item_id}", json={"text": "Share roadmap deck"}).json()["text"] == "Share roadmap deck"
    assert client.patch(f"/action-items/{item_id}", json={"text": " "}).status_code == 400
    assert client.delete(f"/action-items/{item_id}").status_code == 204
    assert client.delete(f"/action-items/{item_id}").status_code == 404

    assert client.post("/action-items", json={"product": "HotDocs", "quarter": "FY26 Q2", "text": ""}).status_code == 400


def test_dashboard_config(client):
    params = {"product": "HotDocs", "quarter": "FY26 Q2"}
    assert client.get("/dashboard-config", params=params).json() == {"widget_settings": {}}
    r = client.put("/dashboard-config", json={**params, "widget_settings": {"order": ["kpis", "features"]}})
    assert r.status_code == 200
    assert client.get("/dashboard-config", params=params).json()["widget_settings"] == {"order": ["kpis", "features"]}


def test_export(client):
    r = client.get("/export/client_submissions", params={"product": "HotDocs", "quarter": "FY26 Q2"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=client_submissions.csv" == r.headers["content-disposition"]
    assert len(r.text.strip().splitlines()) == 4

    assert client.get("/export/nope", params={"product": "HotDocs"}).status_code == 400


def test_auth_endpoints(client):
    r = client.post("/auth/password-strength", json={"password": "Secret12!"})
    assert r.json()["is_valid"] is True

    for _ in range(3):
        assert client.post("/auth/password-reset", json={"email": "pm@example.com"}).status_code == 200
    r = client.post("/auth/password-reset", json={"email": "pm@example.com"})
    assert r.status_code == 429
    assert r.json()["message"] == RATE_LIMIT_MESSAGE

    assert client.post("/auth/password-reset", json={"email": "nope"}).status_code == 400


def test_unexpected_errors_return_500(client, backend, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(backend, "select", boom)
    r = client.get("/action-items", params={"product": "HotDocs"})
    assert r.status_code == 500
    assert r.json() == {"error": "boom", "type": "RuntimeError"}


def test_export_backend_failure_returns_json_error(client, backend, monkeypatch):
    def down(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(backend, "select", down)
    r = client.get("/export/features", params={"product": "HotDocs"})
    assert r.status_code == 500
    assert r.json() == {"error": "db down", "type": "RuntimeError"}
