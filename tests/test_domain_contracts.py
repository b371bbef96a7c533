import unittest

from controle_compras.domain.contracts import (
    DEFAULT_SORT,
    ListFilters,
    Pagination,
    PurchaseRequestStatus,
    SortOrder,
    page_offset,
    percent_of,
    resolve_page,
    resolve_page_size,
)
from controle_compras.domain.validation import parse_timestamp, validate_purchase_request


class PaginationTest(unittest.TestCase):
    def test_pages_for_25_items(self) -> None:
        pagination = Pagination.build(page=1, limit=10, total_items=25)
        self.assertEqual(pagination.total_pages, 3)
        self.assertTrue(pagination.has_next)
        self.assertFalse(pagination.has_previous)

    def test_zero_items_means_zero_pages(self) -> None:
        pagination = Pagination.build(page=3, limit=10, total_items=0)
        self.assertEqual(pagination.total_pages, 0)
        self.assertEqual(pagination.current_page, 3)
        self.assertFalse(pagination.has_next)
        self.assertTrue(pagination.has_previous)

    def test_offset(self) -> None:
        self.assertEqual(page_offset(1, 10), 0)
        self.assertEqual(page_offset(3, 25), 50)

    def test_resolve_page_and_size(self) -> None:
        self.assertEqual(resolve_page(None), 1)
        self.assertEqual(resolve_page("0"), 1)
        self.assertEqual(resolve_page("7"), 7)
        self.assertEqual(resolve_page("sete"), 1)
        self.assertEqual(resolve_page_size(None), 10)
        self.assertEqual(resolve_page_size("0"), 10)
        self.assertEqual(resolve_page_size("-5"), 1)
        self.assertEqual(resolve_page_size("250"), 100)
        self.assertEqual(resolve_page_size("25"), 25)


class PercentTest(unittest.TestCase):
    def test_half_up_rounding(self) -> None:
        self.assertEqual(percent_of(1, 8), 13)
        self.assertEqual(percent_of(1, 3), 33)
        self.assertEqual(percent_of(2, 3), 67)

    def test_zero_total(self) -> None:
        self.assertEqual(percent_of(0, 0), 0)


class SortOrderTest(unittest.TestCase):
    def test_default_when_empty(self) -> None:
        self.assertEqual(SortOrder.parse(None), DEFAULT_SORT)
        self.assertEqual(SortOrder.parse("   "), DEFAULT_SORT)
        self.assertEqual(DEFAULT_SORT.to_sql(), "data_solicitacao DESC, id DESC")

    def test_parse_is_case_insensitive(self) -> None:
        order = SortOrder.parse("Nome_Pessoa desc")
        self.assertEqual(order, SortOrder("nome_pessoa", "DESC"))
        self.assertEqual(SortOrder.parse("status").direction, "ASC")
        self.assertEqual(SortOrder.parse("id DESC").to_sql(), "id DESC")

    def test_rejects_anything_outside_allow_list(self) -> None:
        for raw in ("senha", "id; DROP TABLE solicitacoes", "status SIDEWAYS", "(SELECT 1) ASC"):
            with self.assertRaises(ValueError, msg=raw):
                SortOrder.parse(raw)


class ListFiltersTest(unittest.TestCase):
    def test_department_alias_and_blank_values(self) -> None:
        filters = ListFilters.from_mapping({"department": "MEDICINA", "status": "  ", "search": None})
        self.assertEqual(filters, ListFilters(setor="MEDICINA"))
        self.assertEqual(ListFilters.from_mapping({}), ListFilters())


class ValidationTest(unittest.TestCase):
    def test_valid_payload_has_no_errors(self) -> None:
        payload = {
            "nome_pessoa": "ANA",
            "setor": "MEDICINA",
            "centro_custo": "CC-1",
            "equipamento": "X" * 5000,
            "status": "Comprado",
        }
        self.assertEqual(validate_purchase_request(payload), [])

    def test_collects_all_violations_in_order(self) -> None:
        payload = {
            "nome_pessoa": "N" * 256,
            "setor": 42,
            "centro_custo": "",
            "status": "Aprovado",
        }
        self.assertEqual(
            validate_purchase_request(payload),
            [
                "Nome da pessoa deve ter no máximo 255 caracteres",
                "O campo 'setor' deve ser um texto",
                "O campo 'centro_custo' é obrigatório",
                "O campo 'equipamento' é obrigatório",
                "Status inválido",
            ],
        )

    def test_update_checks_only_supplied_fields(self) -> None:
        self.assertEqual(validate_purchase_request({"status": "Cancelado"}, is_update=True), [])
        self.assertEqual(
            validate_purchase_request({"equipamento": " ", "status": None}, is_update=True),
            ["Equipamento não pode estar vazio", "Status inválido"],
        )

    def test_invalid_request_date(self) -> None:
        payload = {
            "nome_pessoa": "ANA",
            "setor": "MEDICINA",
            "centro_custo": "CC-1",
            "equipamento": "MONITOR",
            "data_solicitacao": "ontem",
        }
        self.assertEqual(validate_purchase_request(payload), ["Data da solicitação inválida"])

    def test_status_values(self) -> None:
        self.assertEqual(
            PurchaseRequestStatus.values(),
            ["Pendente", "Em Andamento", "Comprado", "Cancelado"],
        )
        self.assertFalse(PurchaseRequestStatus.is_valid("pendente"))

    def test_parse_timestamp_normalizes_to_utc(self) -> None:
        parsed = parse_timestamp("2024-05-10T09:30:00-03:00")
        self.assertEqual(parsed.isoformat(), "2024-05-10T12:30:00+00:00")
        self.assertEqual(parse_timestamp("2024-05-10").isoformat(), "2024-05-10T00:00:00+00:00")
        self.assertIsNone(parse_timestamp("nao e data"))
        self.assertIsNone(parse_timestamp(None))


if __name__ == "__main__":
    unittest.main()
