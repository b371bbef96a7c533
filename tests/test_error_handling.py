import unittest
from unittest.mock import patch

from controle_compras import create_app
from controle_compras.config import Config
from controle_compras.db import close_db
from controle_compras.errors import (
    AppError,
    CsrfError,
    DuplicateError,
    NotFoundError,
    PersistenceError,
    RateLimitError,
    StoreUnavailableError,
    ValidationError,
)
from controle_compras.infrastructure.repositories import PurchaseRequestRepository
from controle_compras.ui_strings import error_message
from tests.helpers.temp_db import TempDbSandbox


class AppErrorPayloadTest(unittest.TestCase):
    def test_error_taxonomy_status_codes(self) -> None:
        expected = {
            ValidationError: 400,
            CsrfError: 403,
            NotFoundError: 404,
            DuplicateError: 409,
            RateLimitError: 429,
            PersistenceError: 500,
            StoreUnavailableError: 503,
        }
        for error_cls, status in expected.items():
            self.assertEqual(error_cls().http_status, status, error_cls.__name__)

    def test_envelope_hides_details(self) -> None:
        error = PersistenceError(details="relation solicitacoes does not exist")
        payload = error.to_response_payload("req-1")
        self.assertEqual(payload["success"], False)
        self.assertEqual(payload["statusCode"], 500)
        self.assertEqual(payload["error"], error_message("persistence_error"))
        self.assertEqual(payload["request_id"], "req-1")
        self.assertTrue(payload["timestamp"].endswith("Z"))
        self.assertNotIn("relation", str(payload))

    def test_validation_error_carries_messages(self) -> None:
        error = ValidationError(["a", "b"])
        self.assertEqual(error.to_response_payload()["errors"], ["a", "b"])
        self.assertFalse(error.critical)

    def test_store_unavailable_is_a_persistence_error(self) -> None:
        self.assertTrue(issubclass(StoreUnavailableError, PersistenceError))
        self.assertTrue(issubclass(PersistenceError, AppError))


class ErrorHandlingApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="error_api")
        self.app = create_app(self._temp_db.make_config(Config))
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def test_unknown_api_route_returns_json_404(self) -> None:
        response = self.client.get("/api/nao-existe")
        self.assertEqual(response.status_code, 404)
        body = response.get_json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], error_message("api_endpoint_not_found"))
        self.assertEqual(body["path"], "/api/nao-existe")

    def test_wrong_method_returns_json_405(self) -> None:
        response = self.client.get("/api/admin/create-table")
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.get_json()["code"], "method_not_allowed")

    def test_unknown_page_renders_html_404(self) -> None:
        response = self.client.get("/pagina-inexistente")
        self.assertEqual(response.status_code, 404)
        self.assertIn("text/html", response.content_type)
        self.assertIn(error_message("page_not_found"), response.get_data(as_text=True))

    def test_unexpected_exception_returns_generic_500(self) -> None:
        with patch.object(PurchaseRequestRepository, "status_breakdown", side_effect=RuntimeError("segredo interno")):
            response = self.client.get("/api/solicitacoes/stats")

        self.assertEqual(response.status_code, 500)
        body = response.get_json()
        self.assertEqual(body["error"], "Erro interno do servidor")
        self.assertEqual(body["code"], "unexpected_error")
        self.assertTrue((body.get("request_id") or "").strip())
        text = response.get_data(as_text=True)
        self.assertNotIn("segredo interno", text)
        self.assertNotIn("Traceback", text)

    def test_duplicate_error_maps_to_409(self) -> None:
        with patch.object(PurchaseRequestRepository, "status_breakdown", side_effect=DuplicateError(details="dup")):
            response = self.client.get("/api/solicitacoes/stats")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["error"], error_message("duplicate_record"))

    def test_info_endpoint(self) -> None:
        response = self.client.get("/info")
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["version"], self.app.config["APP_VERSION"])
        self.assertIn("uptime", body)
        self.assertTrue(body["python_version"])


if __name__ == "__main__":
    unittest.main()
