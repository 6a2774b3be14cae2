"""
Cálculo de progresso do envio de documentos.

Função única usada pelo painel da startup, pela visão do admin, pelo gerador
de variáveis de mensagem e pela liberação do envio final.

Convenção: quando a configuração não exige nenhum documento o progresso é
100 (nada exigido = tudo atendido). Sem configuração o progresso é 0.
"""

from typing import Any, Iterable, List, Set, Tuple

from portal.schemas.progress import CategoryProgress, ProgressReport

def _uploaded_keys(documents: Iterable[Any]) -> Set[Tuple[str, str]]:
    """Pares (categoria, item) enviados. Documentos extras não contam."""
    return {
        (doc.category, doc.name)
        for doc in documents
        if not getattr(doc, "is_extra", False)
    }

def _percent(uploaded: int, required: int) -> float:
    if required == 0:
        return 100.0
    return round(uploaded * 100 / required, 2)

def calculate_progress(config: Any | None, documents: Iterable[Any]) -> ProgressReport:
    """
    Calcula o percentual de conclusão e as contagens por categoria.

    Args:
        config: DocumentConfig (ou objeto com `id` e `categories`), ou None
        documents: registros de upload de uma única startup

    Returns:
        ProgressReport com percentual, contagens e rótulos enviados/pendentes
    """
    if config is None:
        return ProgressReport(
            config_id=None,
            percent=0.0,
            uploaded_required=0,
            total_required=0,
            categories=[],
        )

    uploaded_keys = _uploaded_keys(documents)
    categories: List[CategoryProgress] = []
    uploaded_items: List[str] = []
    missing_items: List[str] = []
    total_required = 0
    total_uploaded = 0

    for category in config.categories or []:
        required_items = [item for item in category.get("documents", []) if item.get("required")]
        uploaded = 0
        for item in required_items:
            label = f"{category['name']}: {item['name']}"
            if (category["id"], item["id"]) in uploaded_keys:
                uploaded += 1
                uploaded_items.append(label)
            else:
                missing_items.append(label)

        categories.append(CategoryProgress(
            category_id=category["id"],
            category_name=category["name"],
            uploaded=uploaded,
            required=len(required_items),
            percent=_percent(uploaded, len(required_items)),
        ))
        total_required += len(required_items)
        total_uploaded += uploaded

    percent = _percent(total_uploaded, total_required)
    return ProgressReport(
        config_id=getattr(config, "id", None),
        percent=percent,
        uploaded_required=total_uploaded,
        total_required=total_required,
        categories=categories,
        uploaded_items=uploaded_items,
        missing_items=missing_items,
        can_submit=percent == 100,
    )

def document_status(config: Any | None, documents: Iterable[Any]) -> Tuple[List[str], List[str]]:
    """Retorna (enviados, pendentes) como rótulos 'Categoria: Documento'."""
    report = calculate_progress(config, documents)
    return report.uploaded_items, report.missing_items

def can_submit(report: ProgressReport) -> bool:
    return report.percent == 100

def find_item(config: Any | None, category_id: str, item_id: str) -> dict | None:
    """Busca um item da configuração pelo par (categoria, item)."""
    if config is None:
        return None
    for category in config.categories or []:
        if category["id"] != category_id:
            continue
        for item in category.get("documents", []):
            if item["id"] == item_id:
                return item
    return None
