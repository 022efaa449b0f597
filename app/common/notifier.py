"""
Notificaciones de cambios para que la UI sepa cuándo volver a consultar.

Reemplaza el "trigger sync" global de la ventana: el notificador se inyecta
explícitamente en los servicios que escriben. Solo hace fan-out en proceso;
el transporte hacia terminales remotas queda fuera de este servicio.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Protocol
import itertools
import logging
import threading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    seq: int
    topic: str  # orders | products | clients | cash
    ids: List[str]
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier(Protocol):
    def publish(self, topic: str, ids: Iterable) -> None: ...


Subscriber = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Notificador en proceso con suscriptores y un historial acotado."""

    def __init__(self, history_size: int = 200):
        self._subscribers: List[Subscriber] = []
        self._history: List[ChangeEvent] = []
        self._history_size = history_size
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, topic: str, ids: Iterable) -> None:
        with self._lock:
            event = ChangeEvent(seq=next(self._seq), topic=topic, ids=[str(i) for i in ids])
            self._history.append(event)
            del self._history[:-self._history_size]
            subscribers = list(self._subscribers)

        logger.debug(f"Cambio publicado #{event.seq} en '{topic}': {event.ids}")
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                # Un suscriptor roto no debe revertir una venta ya confirmada
                logger.warning(f"Suscriptor de cambios falló en '{topic}': {e}")

    def events_since(self, seq: int = 0) -> List[ChangeEvent]:
        with self._lock:
            return [e for e in self._history if e.seq > seq]


class NullNotifier:
    def publish(self, topic: str, ids: Iterable) -> None:
        return None


_default_notifier = ChangeNotifier()


def get_notifier() -> ChangeNotifier:
    """Dependencia FastAPI: notificador del proceso."""
    return _default_notifier
