import sqlite3
import unittest

from controle_compras import create_app
from controle_compras.config import Config
from controle_compras.db import (
    Database,
    _convert_qmark_to_pg,
    check_connection,
    close_db,
    get_db,
    is_postgres_url,
    translate_store_error,
)
from controle_compras.errors import DuplicateError, PersistenceError, StoreUnavailableError, ValidationError
from tests.helpers.temp_db import TempDbSandbox


def _memory_db() -> Database:
    conn = sqlite3.connect(":memory:", isolation_level=None)
    conn.row_factory = sqlite3.Row
    db = Database("sqlite", conn)
    db.execute("CREATE TABLE itens (id INTEGER PRIMARY KEY, codigo TEXT UNIQUE NOT NULL)")
    return db


class DatabaseGatewayTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _memory_db()

    def tearDown(self) -> None:
        self.db.close()

    def _count(self) -> int:
        return int(self.db.execute("SELECT COUNT(*) AS total FROM itens").fetchone()["total"])

    def test_with_transaction_commits(self) -> None:
        def _insert(tx):
            tx.execute("INSERT INTO itens (codigo) VALUES (?)", ("A",))
            tx.execute("INSERT INTO itens (codigo) VALUES (?)", ("B",))
            return "ok"

        self.assertEqual(self.db.with_transaction(_insert), "ok")
        self.assertEqual(self._count(), 2)

    def test_transaction_rolls_back_and_reraises(self) -> None:
        with self.assertRaises(ValidationError):
            with self.db.transaction() as tx:
                tx.execute("INSERT INTO itens (codigo) VALUES (?)", ("A",))
                raise ValidationError(["falhou"])
        self.assertEqual(self._count(), 0)

    def test_nested_transaction_joins_outer(self) -> None:
        with self.assertRaises(RuntimeError):
            with self.db.transaction():
                self.db.execute("INSERT INTO itens (codigo) VALUES (?)", ("A",))
                with self.db.transaction():
                    self.db.execute("INSERT INTO itens (codigo) VALUES (?)", ("B",))
                raise RuntimeError("boom")
        self.assertEqual(self._count(), 0)

    def test_unique_violation_becomes_duplicate_error(self) -> None:
        self.db.execute("INSERT INTO itens (codigo) VALUES (?)", ("A",))
        with self.assertRaises(DuplicateError) as ctx:
            self.db.execute("INSERT INTO itens (codigo) VALUES (?)", ("A",))
        self.assertIsInstance(ctx.exception.__cause__, sqlite3.IntegrityError)
        self.assertEqual(ctx.exception.http_status, 409)

    def test_other_driver_errors_become_persistence_error(self) -> None:
        with self.assertRaises(PersistenceError) as ctx:
            self.db.execute("SELECT * FROM tabela_inexistente")
        self.assertNotIsInstance(ctx.exception, StoreUnavailableError)
        self.assertEqual(ctx.exception.http_status, 500)

    def test_translate_connection_failure(self) -> None:
        error = translate_store_error(sqlite3.OperationalError("unable to open database file"))
        self.assertIsInstance(error, StoreUnavailableError)
        self.assertEqual(error.http_status, 503)

    def test_check_connection(self) -> None:
        self.assertTrue(check_connection(self.db))


class SqlHelpersTest(unittest.TestCase):
    def test_convert_qmark_to_pg(self) -> None:
        self.assertEqual(
            _convert_qmark_to_pg("SELECT * FROM solicitacoes WHERE id = ? AND status = ?"),
            "SELECT * FROM solicitacoes WHERE id = %s AND status = %s",
        )

    def test_is_postgres_url(self) -> None:
        self.assertTrue(is_postgres_url("postgresql://user@host/db"))
        self.assertTrue(is_postgres_url("postgres://user@host/db"))
        self.assertFalse(is_postgres_url("/tmp/controle.db"))
        self.assertFalse(is_postgres_url(None))


class RequestScopedConnectionTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="gateway_scope")
        self.app = create_app(self._temp_db.make_config(Config))

    def tearDown(self) -> None:
        self._temp_db.cleanup()

    def test_get_db_reuses_connection_within_context(self) -> None:
        with self.app.app_context():
            first = get_db()
            second = get_db()
            self.assertIs(first, second)
            self.assertEqual(first.backend, "sqlite")
            close_db()
            self.assertIsNot(get_db(), first)


if __name__ == "__main__":
    unittest.main()
