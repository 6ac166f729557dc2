"""
Tests for the HTTP API.
"""
import pytest
from fastapi.testclient import TestClient

from ..api import app, get_runner
from ..core.config import CONFIG_ENV_VAR


@pytest.fixture
def client(tmp_path, monkeypatch):
    settings = tmp_path / "settings.yaml"
    settings.write_text("accounts: []\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(settings))
    get_runner.cache_clear()
    yield TestClient(app)
    get_runner.cache_clear()


class TestApi:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_formats(self, client):
        formats = {item["id"]: item["strategy"] for item in client.get("/formats").json()["formats"]}
        assert formats["TNG_CSV_EXPORT"] == "tabular"
        assert formats["MAYBANK_2_CC"] == "sections"

    def test_extract_text(self, client, casa_rows):
        response = client.post(
            "/extract",
            files={"file": ("nov.txt", "\n".join(casa_rows).encode("utf-8"), "text/plain")},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "nov"
        assert body["account"]["number"] == "123456-789012"
        assert body["ending_balance"] == "124.50"
        assert len(body["transactions"]) == 2

    def test_extract_multi_account_returns_list(self, client, multi_card_rows):
        response = client.post(
            "/extract",
            files={"file": ("cards.txt", "\n".join(multi_card_rows).encode("utf-8"), "text/plain")},
        )
        assert isinstance(response.json(), list)
        assert len(response.json()) == 2

    def test_statement_only_as_form_field(self, client, casa_rows):
        response = client.post(
            "/extract",
            files={"file": ("nov.txt", "\n".join(casa_rows).encode("utf-8"), "text/plain")},
            data={"statement_only": "true"},
        )
        assert "transactions" not in response.json()

    def test_transaction_only_as_query_parameter(self, client, casa_rows):
        response = client.post(
            "/extract?transaction_only=1",
            files={"file": ("nov.txt", "\n".join(casa_rows).encode("utf-8"), "text/plain")},
        )
        body = response.json()
        assert isinstance(body, list)
        assert body[0]["descriptions"][0] == "TRANSFER IN"

    def test_statement_type_override(self, client, casa_rows):
        response = client.post(
            "/extract",
            files={"file": ("nov.txt", "\n".join(casa_rows).encode("utf-8"), "text/plain")},
            data={"statement_type": "TNG"},
        )
        assert response.json() == {}

    def test_extract_csv(self, client, export_csv):
        response = client.post(
            "/extract",
            files={"file": ("export.csv", export_csv.encode("utf-8"), "text/csv")},
        )
        body = response.json()
        assert body["account"]["number"] == "2222222222"
        assert body["nett"] == "20.00"

    def test_text_only(self, client):
        response = client.post(
            "/extract",
            files={"file": ("note.txt", b"first line\n\nsecond line\n", "text/plain")},
            data={"text_only": "yes"},
        )
        assert response.json() == {"filename": "note.txt", "text": "first line\nsecond line"}

    def test_unreadable_export(self, client):
        response = client.post(
            "/extract",
            files={"file": ("bad.csv", b"a,b,c\n1,2,3\n", "text/csv")},
        )
        assert response.status_code == 400
        assert "Could not read file" in response.json()["detail"]

    def test_nothing_found(self, client):
        response = client.post(
            "/extract",
            files={"file": ("empty.txt", b"hello\n", "text/plain")},
        )
        assert response.status_code == 200
        assert response.json() == {}
