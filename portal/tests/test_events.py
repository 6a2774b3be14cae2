from portal.services.events import EventBus, get_event_bus, init_event_bus, shutdown_event_bus

def test_publish_keeps_newest_first() -> None:
    bus = EventBus(max_events=3)
    for n in range(5):
        bus.info(f"Evento {n}", "mensagem")

    titles = [event.title for event in bus.recent()]
    assert titles == ["Evento 4", "Evento 3", "Evento 2"]

def test_subscribe_and_unsubscribe() -> None:
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(received.append)

    bus.success("Ok", "primeiro")
    unsubscribe()
    bus.success("Ok", "segundo")

    assert [event.message for event in received] == ["primeiro"]

def test_listener_failure_does_not_propagate() -> None:
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("falhou")

    bus.subscribe(broken)
    bus.subscribe(received.append)
    event = bus.warning("Atenção", "algo")

    assert received == [event]

def test_error_events_are_persistent() -> None:
    bus = EventBus()
    assert bus.error("Erro", "falha").persistent is True
    assert bus.info("Info", "nada").persistent is False

def test_mark_read_and_dismiss() -> None:
    bus = EventBus()
    first = bus.reminder_sent("Acme")
    second = bus.document_uploaded("Acme", "contrato.pdf")
    assert bus.unread_count() == 2

    assert bus.mark_read(first.id)
    assert bus.unread_count() == 1
    assert bus.dismiss(second.id)
    assert [event.id for event in bus.recent()] == [first.id]
    assert not bus.mark_read("inexistente")
    assert not bus.dismiss("inexistente")

def test_shutdown_clears_listeners_and_events() -> None:
    bus = init_event_bus(10)
    received = []
    bus.subscribe(received.append)
    bus.info("Antes", "x")

    shutdown_event_bus()
    assert bus.recent() == []
    assert not bus.running

    bus.info("Depois", "y")
    assert len(received) == 1

def test_get_event_bus_creates_instance_on_demand() -> None:
    shutdown_event_bus()
    bus = get_event_bus()
    assert bus.running
    assert get_event_bus() is bus
    shutdown_event_bus()
