"""
Serviço de eventos do back office (local ao processo).

A instância é criada no lifespan da aplicação, os consumidores se inscrevem
na inicialização e tudo é descartado no desligamento. Nada é distribuído entre instâncias.
"""

import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional

from pydantic import BaseModel, Field

from portal.core.config import settings

logger = logging.getLogger(__name__)

class Event(BaseModel):
    id: str
    level: str  # success, error, warning, info
    title: str
    message: str
    timestamp: datetime
    read: bool = False
    persistent: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

EventListener = Callable[[Event], None]

class EventBus:
    """Feed de eventos em memória com inscrição de callbacks."""

    def __init__(self, max_events: int = 50):
        self.max_events = max_events
        self._events: Deque[Event] = deque(maxlen=max_events)
        self._listeners: List[EventListener] = []
        self.running = False

    def start(self) -> None:
        self.running = True
        logger.info("Serviço de eventos iniciado")

    def shutdown(self) -> None:
        self._listeners.clear()
        self._events.clear()
        self.running = False
        logger.info("Serviço de eventos finalizado")

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Inscreve um callback e retorna a função que cancela a inscrição."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(
        self,
        level: str,
        title: str,
        message: str,
        persistent: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Event:
        event = Event(
            id=uuid.uuid4().hex,
            level=level,
            title=title,
            message=message,
            timestamp=datetime.now(timezone.utc),
            persistent=persistent,
            metadata=metadata or {},
        )
        # deque com maxlen descarta os mais antigos
        self._events.appendleft(event)

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Falha em listener de eventos: {e}")

        return event

    def success(self, title: str, message: str, **kwargs) -> Event:
        return self.publish("success", title, message, **kwargs)

    def error(self, title: str, message: str, **kwargs) -> Event:
        return self.publish("error", title, message, persistent=True, **kwargs)

    def warning(self, title: str, message: str, **kwargs) -> Event:
        return self.publish("warning", title, message, **kwargs)

    def info(self, title: str, message: str, **kwargs) -> Event:
        return self.publish("info", title, message, **kwargs)

    def document_uploaded(self, startup_name: str, document_name: str) -> Event:
        return self.info(
            "Documento enviado",
            f"{startup_name} enviou {document_name}",
            metadata={"startup": startup_name, "document": document_name},
        )

    def reminder_sent(self, startup_name: str) -> Event:
        return self.success("Lembrete enviado", f"Lembrete enviado para {startup_name}")

    def recent(self) -> List[Event]:
        return list(self._events)

    def unread_count(self) -> int:
        return sum(1 for event in self._events if not event.read)

    def mark_read(self, event_id: str) -> bool:
        for event in self._events:
            if event.id == event_id:
                event.read = True
                return True
        return False

    def dismiss(self, event_id: str) -> bool:
        for event in list(self._events):
            if event.id == event_id:
                self._events.remove(event)
                return True
        return False

# ---------------------------------------------------------------------------
# Instância do processo, criada no lifespan
# ---------------------------------------------------------------------------

_bus: EventBus | None = None

def init_event_bus(max_events: int) -> EventBus:
    global _bus
    _bus = EventBus(max_events=max_events)
    _bus.start()
    return _bus

def shutdown_event_bus() -> None:
    global _bus
    if _bus is not None:
        _bus.shutdown()
    _bus = None

def get_event_bus() -> EventBus:
    """Dependência FastAPI. Cria a instância sob demanda se o lifespan não rodou."""
    global _bus
    if _bus is None:
        return init_event_bus(settings.EVENT_FEED_MAX_EVENTS)
    return _bus
