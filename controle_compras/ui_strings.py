from __future__ import annotations

from typing import Dict, List


FRIENDLY_TERMS: Dict[str, str] = {
    "app_name": "Sistema de Controle de Compras",
    "purchase_request": "Solicitacao de compra",
    "purchase_requests": "Solicitacoes",
    "requester": "Solicitante",
    "department": "Setor",
    "cost_center": "Centro de custo",
    "equipment": "Equipamento",
    "requested_at": "Data da solicitacao",
    "status": "Status",
}


STATUS_OPTIONS: List[Dict[str, str]] = [
    {
        "key": "Pendente",
        "label": "Pendente",
        "description": "Solicitacao registrada e aguardando andamento.",
        "css_class": "status-pending",
    },
    {
        "key": "Em Andamento",
        "label": "Em Andamento",
        "description": "Compra em negociacao ou em processo de aprovacao.",
        "css_class": "status-in-progress",
    },
    {
        "key": "Comprado",
        "label": "Comprado",
        "description": "Equipamento adquirido.",
        "css_class": "status-purchased",
    },
    {
        "key": "Cancelado",
        "label": "Cancelado",
        "description": "Solicitacao encerrada sem compra.",
        "css_class": "status-cancelled",
    },
]


SETORES: List[str] = [
    "SAESHIA do Sucesso - Graduação",
    "SAESHIA do Sucesso - Pós-Graduação",
    "SAESHIA do Propósito",
    "SAESHIA das Experiências",
    "SAESHIA da Engenharia da Aprendizagem",
    "SAESHIA da Oportunidade",
    "SAESHIA da União",
    "SAESHIA da Magia",
    "SAESHIA do Equilibrio",
    "SAESHIA da Integridade",
    "SAESHIA da Gente",
    "SAESHIA da Segurança",
    "SAESHIA da Imaginação",
    "SAESHIA da Conquista",
    "SAESHIA da Ciência",
    "Polo Joinville",
    "Conectativo",
    "Medicina",
]


MESSAGES: Dict[str, Dict[str, str]] = {
    "success": {
        "default": "Operação realizada com sucesso",
        "request_created": "Solicitação criada com sucesso",
        "request_updated": "Solicitação atualizada com sucesso",
        "request_deleted": "Solicitação excluída com sucesso",
        "status_updated": "Status atualizado com sucesso",
        "schema_ready": "Tabela de solicitações criada/verificada com sucesso",
    },
    "error": {
        "validation_error": "Dados inválidos",
        "id_invalid": "ID da solicitação é obrigatório e deve ser um número",
        "status_required": "Status é obrigatório",
        "status_invalid": "Status inválido",
        "order_by_invalid": "Ordenação inválida",
        "purchase_request_not_found": "Solicitação não encontrada",
        "no_fields_to_update": "Nenhum campo para atualizar foi fornecido",
        "duplicate_record": "Dados duplicados",
        "persistence_error": "Erro ao acessar o banco de dados",
        "store_unavailable": "Serviço temporariamente indisponível",
        "health_store_unavailable": "Serviço indisponível - erro na conexão com o banco de dados",
        "csrf_invalid": "Token de segurança inválido",
        "rate_limit_exceeded": "Muitas requisições. Tente novamente mais tarde.",
        "api_endpoint_not_found": "Endpoint da API não encontrado",
        "method_not_allowed": "Método não permitido para este endpoint",
        "page_not_found": "A página que você está procurando não foi encontrada.",
        "unexpected_error": "Erro interno do servidor",
    },
    "confirm": {
        "delete_request": "Tem certeza que deseja excluir esta solicitação? Esta ação não pode ser desfeita.",
    },
}


def status_keys() -> List[str]:
    return [item["key"] for item in STATUS_OPTIONS]


def status_css_class(status: str | None) -> str:
    for item in STATUS_OPTIONS:
        if item["key"] == status:
            return item["css_class"]
    return "status-unknown"


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    if default is not None:
        return default
    return key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)


def confirm_message(key: str, default: str | None = None) -> str:
    return get_message("confirm", key, default)


def frontend_bundle() -> Dict[str, object]:
    return {
        "terms": FRIENDLY_TERMS,
        "statuses": STATUS_OPTIONS,
        "messages": MESSAGES,
    }


def template_bundle() -> Dict[str, object]:
    return {
        "ui_terms": FRIENDLY_TERMS,
        "ui_status_options": STATUS_OPTIONS,
        "ui_setores": SETORES,
        "ui_messages": MESSAGES,
        "ui_frontend_bundle": frontend_bundle(),
    }
