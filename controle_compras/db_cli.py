from __future__ import annotations

import click
from flask import Flask

from controle_compras.db import check_connection, get_db, is_postgres_url
from controle_compras.errors import AppError
from controle_compras.infrastructure.repositories import PurchaseRequestRepository


SAMPLE_PURCHASE_REQUESTS = (
    {
        "nome_pessoa": "JOÃO DA SILVA",
        "setor": "SAESHIA DO SUCESSO - GRADUAÇÃO",
        "centro_custo": "CC-1001",
        "equipamento": "NOTEBOOK DELL INSPIRON 15",
        "status": "Pendente",
    },
    {
        "nome_pessoa": "MARIA SOUZA",
        "setor": "SAESHIA DO PROPÓSITO",
        "centro_custo": "CC-2005",
        "equipamento": "MONITOR ULTRA WIDE 34 POLEGADAS",
        "status": "Em Andamento",
    },
    {
        "nome_pessoa": "PEDRO ALVES",
        "setor": "SAESHIA DA UNIÃO",
        "centro_custo": "CC-3010",
        "equipamento": "CADEIRA ERGONÔMICA PROFISSIONAL",
        "status": "Comprado",
    },
    {
        "nome_pessoa": "ANA OLIVEIRA",
        "setor": "SAESHIA DA MAGIA",
        "centro_custo": "CC-4002",
        "equipamento": "IMPRESSORA LASER COLORIDA",
        "status": "Cancelado",
    },
    {
        "nome_pessoa": "CARLOS SANTOS",
        "setor": "POLO JOINVILLE",
        "centro_custo": "CC-5008",
        "equipamento": "PROJETOR MULTIMÍDIA 4K",
        "status": "Pendente",
    },
)


def seed_sample_data(db, repository: PurchaseRequestRepository | None = None) -> list[int]:
    repository = repository or PurchaseRequestRepository()

    def _insert_all(tx) -> list[int]:
        return [repository.create(tx, dict(sample)) for sample in SAMPLE_PURCHASE_REQUESTS]

    return db.with_transaction(_insert_all)


def register_db_cli(app: Flask) -> None:
    @app.cli.group("db")
    def db_group() -> None:
        """Comandos de banco de dados (schema, conexao e dados de exemplo)."""

    @db_group.command("ensure-schema")
    def db_ensure_schema() -> None:
        try:
            PurchaseRequestRepository().ensure_schema(get_db())
        except AppError as exc:
            raise click.ClickException(f"Falha ao criar schema: {exc.details or exc.code}") from exc
        click.echo("Tabela de solicitacoes criada/verificada.")

    @db_group.command("check")
    def db_check() -> None:
        backend = "postgres" if is_postgres_url(app.config.get("DB_PATH")) else "sqlite"
        try:
            check_connection(get_db())
        except AppError as exc:
            raise click.ClickException(f"Banco indisponivel ({backend}): {exc.details or exc.code}") from exc
        click.echo(f"Conexao com o banco OK ({backend}).")

    @db_group.command("seed")
    @click.option("--force", is_flag=True, help="Insere mesmo que a tabela ja tenha registros.")
    def db_seed(force: bool) -> None:
        repository = PurchaseRequestRepository()
        try:
            db = get_db()
            repository.ensure_schema(db)
            if not force and repository.count(db) > 0:
                click.echo("Tabela ja possui registros; nada a fazer (use --force).")
                return
            ids = seed_sample_data(db, repository)
        except AppError as exc:
            raise click.ClickException(f"Falha ao inserir dados de exemplo: {exc.details or exc.code}") from exc
        click.echo(f"{len(ids)} solicitacoes de exemplo inseridas.")
