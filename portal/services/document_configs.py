"""
Armazenamento das configurações de documentos (templates de categorias/itens).

As categorias são gravadas sempre por inteiro: toda alteração de categoria ou
item copia a lista, altera a posição alvo e regrava a lista completa. Sem
`expected_revision` vale a última escrita; com ele, uma revisão divergente
gera ConfigConflictError.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.models.document import UploadedDocument
from portal.models.document_config import DocumentConfig
from portal.models.user import User, UserRole

logger = logging.getLogger(__name__)

class ConfigError(Exception):
    """Erro base das operações de configuração."""

class ConfigNotFoundError(ConfigError):
    pass

class ConfigValidationError(ConfigError):
    pass

class ConfigConflictError(ConfigError):
    pass

# Configuração padrão, semeada pelo init_db
DEFAULT_CATEGORIES: List[Dict[str, Any]] = [
    {
        "id": "socios-time",
        "name": "Sócios e Time",
        "documents": [
            {"id": "captable-organograma", "name": "Captable e organograma atual", "required": True,
             "description": "Estrutura societária atual da empresa"},
            {"id": "historico-captacoes", "name": "Histórico de captações e movimentações societárias", "required": True,
             "description": "Histórico completo de rodadas de investimento"},
            {"id": "stock-options", "name": "Informações sobre despesas e plano de incentivo para colaboradores (Stock Options)",
             "required": False, "description": "Documentação do plano de stock options, se houver"},
        ],
    },
    {
        "id": "financeiro-operacional",
        "name": "Financeiro/Operacional",
        "documents": [
            {"id": "budget-business-plan", "name": "Budget e Business Plan para os próximos 3 anos", "required": True,
             "description": "Projeções financeiras e plano de negócios"},
            {"id": "metricas-operacionais", "name": "Histórico de métricas operacionais e P&L", "required": True,
             "description": "Demonstrativo de resultados e métricas de negócio"},
            {"id": "dividas-fluxo-caixa", "name": "Informações sobre dívidas e fluxo de caixa", "required": True,
             "description": "Situação financeira atual e projeções de caixa"},
            {"id": "balancetes-auditadas", "name": "Balancetes e demonstrações financeiras auditadas dos últimos 3 anos",
             "required": True, "description": "Demonstrações financeiras auditadas"},
            {"id": "expectativa-captacao", "name": "Expectativa de Captação e Roadmap", "required": True,
             "description": "Plano de captação e roadmap de crescimento"},
        ],
    },
    {
        "id": "utilizacao-recursos",
        "name": "Utilização dos Recursos",
        "documents": [
            {"id": "roadmap-produtos", "name": "Roadmap de produtos/serviços para os próximos 12 meses", "required": True,
             "description": "Plano de desenvolvimento de produtos"},
            {"id": "auditoria-data", "name": "Data da última auditoria disponível", "required": True,
             "description": "Informações sobre a última auditoria realizada"},
        ],
    },
    {
        "id": "certidoes-necessarias",
        "name": "Certidões Necessárias",
        "documents": [
            {"id": "certidoes-gerais", "name": "Certidões de tributos, processos judiciais, protestos e trabalhistas",
             "required": True, "description": "Certidões negativas de débitos e processos"},
        ],
    },
]

def validate_categories(categories: Iterable[Dict[str, Any]]) -> None:
    """Ids de categoria únicos na configuração e ids de item únicos na categoria."""
    seen_categories = set()
    for category in categories:
        if category["id"] in seen_categories:
            raise ConfigValidationError(f"Categoria duplicada: {category['id']}")
        seen_categories.add(category["id"])

        seen_items = set()
        for item in category.get("documents", []):
            if item["id"] in seen_items:
                raise ConfigValidationError(
                    f"Documento duplicado na categoria {category['id']}: {item['id']}"
                )
            seen_items.add(item["id"])

def _check_revision(config: DocumentConfig, expected_revision: Optional[int]) -> None:
    if expected_revision is not None and expected_revision != config.revision:
        raise ConfigConflictError(
            f"Configuração alterada por outro usuário (revisão atual {config.revision}, esperada {expected_revision})"
        )

async def _write_categories(db: AsyncSession, config: DocumentConfig, categories: List[Dict[str, Any]]) -> DocumentConfig:
    validate_categories(categories)
    # Atribuir uma nova lista para o SQLAlchemy detectar a mudança no JSON
    config.categories = categories
    config.revision = (config.revision or 0) + 1
    await db.commit()
    await db.refresh(config)
    return config

async def create(
    db: AsyncSession,
    name: str,
    categories: List[Dict[str, Any]],
    description: Optional[str] = None,
    created_by: Optional[str] = None,
    config_id: Optional[str] = None,
) -> DocumentConfig:
    if not name or not name.strip():
        raise ConfigValidationError("Nome da configuração é obrigatório")
    validate_categories(categories)

    config = DocumentConfig(
        name=name.strip(),
        description=description,
        categories=list(categories),
        revision=1,
        created_by=created_by,
    )
    if config_id:
        config.id = config_id

    db.add(config)
    await db.commit()
    await db.refresh(config)
    logger.info(f"Configuração de documentos criada: {config.id} ({config.name})")
    return config

async def get_all(db: AsyncSession) -> List[DocumentConfig]:
    result = await db.execute(select(DocumentConfig).order_by(DocumentConfig.created_at, DocumentConfig.name))
    return list(result.scalars().all())

async def get_by_id(db: AsyncSession, config_id: str) -> DocumentConfig | None:
    return await db.get(DocumentConfig, config_id)

async def _get_or_raise(db: AsyncSession, config_id: str) -> DocumentConfig:
    config = await get_by_id(db, config_id)
    if config is None:
        raise ConfigNotFoundError("Configuração de documentos não encontrada")
    return config

async def update(
    db: AsyncSession,
    config_id: str,
    changes: Dict[str, Any],
    expected_revision: Optional[int] = None,
) -> DocumentConfig:
    """Atualização parcial de nome, descrição e/ou categorias."""
    config = await _get_or_raise(db, config_id)
    _check_revision(config, expected_revision)

    if "name" in changes and changes["name"] is not None:
        if not changes["name"].strip():
            raise ConfigValidationError("Nome da configuração é obrigatório")
        config.name = changes["name"].strip()
    if "description" in changes:
        config.description = changes["description"]
    if changes.get("categories") is not None:
        return await _write_categories(db, config, list(changes["categories"]))

    config.revision = (config.revision or 0) + 1
    await db.commit()
    await db.refresh(config)
    return config

async def delete(db: AsyncSession, config_id: str) -> None:
    """
    Remove a configuração. Não verifica se há startups usando: elas passam
    a ser lidas como "sem configuração".
    """
    config = await _get_or_raise(db, config_id)
    await db.delete(config)
    await db.commit()
    logger.info(f"Configuração de documentos removida: {config_id}")

# ---------------------------------------------------------------------------
# Categorias e itens (copia, altera e regrava a lista inteira)
# ---------------------------------------------------------------------------

def _category_index(categories: List[Dict[str, Any]], category_id: str) -> int:
    for index, category in enumerate(categories):
        if category["id"] == category_id:
            return index
    raise ConfigNotFoundError(f"Categoria não encontrada: {category_id}")

def _item_index(category: Dict[str, Any], item_id: str) -> int:
    for index, item in enumerate(category.get("documents", [])):
        if item["id"] == item_id:
            return index
    raise ConfigNotFoundError(f"Documento não encontrado: {item_id}")

async def add_category(db: AsyncSession, config_id: str, category: Dict[str, Any],
                       expected_revision: Optional[int] = None) -> DocumentConfig:
    config = await _get_or_raise(db, config_id)
    _check_revision(config, expected_revision)
    categories = copy.deepcopy(config.categories or [])
    categories.append({"id": category["id"], "name": category["name"],
                       "documents": list(category.get("documents", []))})
    return await _write_categories(db, config, categories)

async def update_category(db: AsyncSession, config_id: str, category_id: str, changes: Dict[str, Any],
                          expected_revision: Optional[int] = None) -> DocumentConfig:
    config = await _get_or_raise(db, config_id)
    _check_revision(config, expected_revision)
    categories = copy.deepcopy(config.categories or [])
    index = _category_index(categories, category_id)
    if changes.get("name"):
        categories[index]["name"] = changes["name"]
    return await _write_categories(db, config, categories)

async def remove_category(db: AsyncSession, config_id: str, category_id: str,
                          expected_revision: Optional[int] = None) -> DocumentConfig:
    config = await _get_or_raise(db, config_id)
    _check_revision(config, expected_revision)
    categories = copy.deepcopy(config.categories or [])
    categories.pop(_category_index(categories, category_id))
    return await _write_categories(db, config, categories)

async def add_item(db: AsyncSession, config_id: str, category_id: str, item: Dict[str, Any],
                   expected_revision: Optional[int] = None) -> DocumentConfig:
    config = await _get_or_raise(db, config_id)
    _check_revision(config, expected_revision)
    categories = copy.deepcopy(config.categories or [])
    index = _category_index(categories, category_id)
    categories[index].setdefault("documents", []).append({
        "id": item["id"],
        "name": item["name"],
        "required": bool(item.get("required", False)),
        "description": item.get("description"),
    })
    return await _write_categories(db, config, categories)

async def update_item(db: AsyncSession, config_id: str, category_id: str, item_id: str,
                      changes: Dict[str, Any], expected_revision: Optional[int] = None) -> DocumentConfig:
    config = await _get_or_raise(db, config_id)
    _check_revision(config, expected_revision)
    categories = copy.deepcopy(config.categories or [])
    category = categories[_category_index(categories, category_id)]
    item = category["documents"][_item_index(category, item_id)]
    for field in ("name", "required", "description"):
        if changes.get(field) is not None:
            item[field] = changes[field]
    return await _write_categories(db, config, categories)

async def remove_item(db: AsyncSession, config_id: str, category_id: str, item_id: str,
                      expected_revision: Optional[int] = None) -> DocumentConfig:
    config = await _get_or_raise(db, config_id)
    _check_revision(config, expected_revision)
    categories = copy.deepcopy(config.categories or [])
    category = categories[_category_index(categories, category_id)]
    category["documents"].pop(_item_index(category, item_id))
    return await _write_categories(db, config, categories)

# ---------------------------------------------------------------------------
# Resolução por usuário e reconciliação de uploads órfãos
# ---------------------------------------------------------------------------

async def resolve_for_user(db: AsyncSession, user: User) -> DocumentConfig | None:
    """
    Configuração da startup, ou a padrão quando não houver uma atribuída.
    Uma referência que não existe mais resulta em None.
    """
    config_id = user.document_config_id or settings.DEFAULT_DOCUMENT_CONFIG_ID
    config = await get_by_id(db, config_id)
    if config is None:
        logger.warning(f"Configuração {config_id} não encontrada para o usuário {user.id}")
    return config

async def find_orphaned_uploads(db: AsyncSession, config: DocumentConfig) -> List[UploadedDocument]:
    """
    Uploads (não extras) das startups que usam esta configuração cujo par
    (categoria, item) não existe mais nela.
    """
    valid_keys = {
        (category["id"], item["id"])
        for category in config.categories or []
        for item in category.get("documents", [])
    }

    user_filter = User.document_config_id == config.id
    if config.id == settings.DEFAULT_DOCUMENT_CONFIG_ID:
        user_filter = or_(user_filter, User.document_config_id.is_(None))

    query = (
        select(UploadedDocument)
        .join(User, User.id == UploadedDocument.startup_id)
        .where(User.role == UserRole.STARTUP.value)
        .where(user_filter)
        .where(UploadedDocument.is_extra.is_(False))
    )
    result = await db.execute(query)
    orphans = [
        doc for doc in result.scalars().all()
        if (doc.category, doc.name) not in valid_keys
    ]
    if orphans:
        logger.warning(f"{len(orphans)} upload(s) órfão(s) após alteração da configuração {config.id}")
    return orphans
