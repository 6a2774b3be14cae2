import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.message_template import MessageTemplate, MessageType
from portal.services.progress import calculate_progress

logger = logging.getLogger(__name__)

UPLOADED_DOCS_BANNER = "✅ *Documentos já recebidos:*"
MISSING_DOCS_BANNER = "📋 *Documentos pendentes:*"

DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "name": "Lembrete",
        "type": MessageType.REMINDER.value,
        "content": (
            "Olá {name}! 👋\n\n"
            "Notamos que você ainda não concluiu o envio de todos os documentos necessários.\n\n"
            "{uploadedDocsSection}\n\n"
            "{missingDocsSection}\n\n"
            "Por favor, acesse o sistema para completar o envio dos documentos pendentes.\n\n"
            "Precisa de ajuda? Entre em contato conosco!\n"
            "📞 WhatsApp: (11) 99999-9999\n"
            "📧 Email: suporte@empresa.com\n\n"
            "Contamos com você! 💪"
        ),
        "variables": ["name", "uploadedDocs", "missingDocs", "uploadedDocsSection", "missingDocsSection"],
    },
    {
        "name": "Conclusão",
        "type": MessageType.COMPLETION.value,
        "content": (
            "Parabéns {name}! 🎉\n\n"
            "Recebemos todos os seus documentos! Obrigado pela colaboração.\n\n"
            "Nossa equipe seguirá com a análise e entraremos em contato em breve.\n\n"
            "Obrigado! 🙏"
        ),
        "variables": ["name"],
    },
    {
        "name": "Boas-vindas",
        "type": MessageType.WELCOME.value,
        "content": (
            "Bem-vindo {name}! 👋\n\n"
            "Seu acesso ao sistema de documentos foi criado com sucesso!\n\n"
            "Acesse o sistema e comece a enviar seus documentos.\n\n"
            "Vamos começar? 🚀"
        ),
        "variables": ["name"],
    },
    {
        "name": "Follow-up",
        "type": MessageType.FOLLOW_UP.value,
        "content": (
            "Oi {name}! 📋\n\n"
            "Lembrete gentil: ainda temos alguns documentos pendentes.\n\n"
            "Por favor, acesse o sistema para completar o envio.\n\n"
            "Contamos com você! 💪"
        ),
        "variables": ["name"],
    },
    {
        "name": "Prazo",
        "type": MessageType.DEADLINE.value,
        "content": (
            "Atenção {name}! ⏰\n\n"
            "O prazo para envio dos documentos é até {deadline}.\n\n"
            "Por favor, complete o envio o quanto antes para evitar atrasos.\n\n"
            "Precisa de ajuda? Entre em contato conosco! 🚨"
        ),
        "variables": ["name", "deadline"],
    },
]

def format_message(template: str, variables: Mapping[str, Any]) -> str:
    """
    Substitui cada `{chave}` pelo valor correspondente, na ordem das chaves.

    Substituição literal: sem escape, sem condicionais. Placeholders sem
    valor permanecem no texto. Um valor que contenha `{outra}` pode ser
    substituído de novo se `outra` vier depois na iteração.
    """
    message = template
    for key, value in variables.items():
        message = message.replace(f"{{{key}}}", str(value))
    return message

def render_docs_section(banner: str, items: Iterable[str]) -> str:
    """Bloco com título e lista em tópicos, terminado por linha em branco."""
    items = list(items)
    if not items:
        return ""
    bullets = "\n".join(f"• {item}" for item in items)
    return f"{banner}\n{bullets}\n\n"

def build_message_variables(user: Any, config: Any | None, documents: Iterable[Any]) -> Dict[str, str]:
    """
    Monta as variáveis disponíveis para os templates de uma startup.
    """
    report = calculate_progress(config, documents)
    deadline = user.deadline.strftime("%d/%m/%Y") if user.deadline else "Não definido"

    return {
        "name": user.name or "Startup",
        "email": user.email,
        "phone": user.phone or "",
        "cnpj": user.cnpj or "",
        "uploadedDocs": ", ".join(report.uploaded_items),
        "missingDocs": ", ".join(report.missing_items),
        "uploadedDocsSection": render_docs_section(UPLOADED_DOCS_BANNER, report.uploaded_items),
        "missingDocsSection": render_docs_section(MISSING_DOCS_BANNER, report.missing_items),
        "deadline": deadline,
        "progress": f"{round(report.percent)}%",
    }

def default_template_content(template_type: str) -> str:
    for template in DEFAULT_TEMPLATES:
        if template["type"] == template_type:
            return template["content"]
    raise KeyError(template_type)

# ---------------------------------------------------------------------------
# Armazenamento de templates
# ---------------------------------------------------------------------------

async def ensure_default_templates(db: AsyncSession) -> bool:
    """
    Cria os templates padrão se a tabela estiver vazia.
    Retorna True se criou. Só roda quando não há nenhum template, então não duplica.
    """
    result = await db.execute(select(MessageTemplate.id).limit(1))
    if result.scalar_one_or_none() is not None:
        return False

    logger.info("Nenhum template de mensagem encontrado, criando templates padrão")
    for template in DEFAULT_TEMPLATES:
        db.add(MessageTemplate(**template))
    await db.commit()
    return True

async def list_templates(db: AsyncSession) -> List[MessageTemplate]:
    await ensure_default_templates(db)
    result = await db.execute(select(MessageTemplate).order_by(MessageTemplate.created_at, MessageTemplate.name))
    return list(result.scalars().all())

async def get_template_by_type(db: AsyncSession, template_type: str) -> MessageTemplate | None:
    """Template do tipo pedido. Havendo mais de um, vale o mais antigo."""
    result = await db.execute(
        select(MessageTemplate)
        .where(MessageTemplate.type == template_type)
        .order_by(MessageTemplate.created_at, MessageTemplate.name)
        .limit(1)
    )
    return result.scalar_one_or_none()

async def get_template(db: AsyncSession, template_id: uuid.UUID) -> MessageTemplate | None:
    return await db.get(MessageTemplate, template_id)

async def create_template(db: AsyncSession, data: Dict[str, Any]) -> MessageTemplate:
    template = MessageTemplate(
        name=data["name"],
        type=data["type"],
        content=data["content"],
        variables=list(data.get("variables") or []),
    )
    db.add(template)
    await db.commit()
    await db.refresh(template)
    logger.info(f"Template de mensagem criado: {template.name} ({template.type})")
    return template

async def update_template(db: AsyncSession, template: MessageTemplate, changes: Dict[str, Any]) -> MessageTemplate:
    """Altera nome, conteúdo e/ou variáveis. O tipo não muda."""
    for field in ("name", "content"):
        if changes.get(field) is not None:
            setattr(template, field, changes[field])
    if changes.get("variables") is not None:
        template.variables = list(changes["variables"])
    await db.commit()
    await db.refresh(template)
    return template

def preview_template(template: MessageTemplate, user: Any, config: Any | None, documents: Iterable[Any]) -> Dict[str, Any]:
    variables = build_message_variables(user, config, documents)
    return {
        "template_id": template.id,
        "startup_id": user.id,
        "message": format_message(template.content, variables),
        "variables": variables,
    }
