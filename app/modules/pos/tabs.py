"""
Registro en memoria de órdenes en captura (pestañas del cajero).

Cada cajero puede tener varias órdenes abiertas a la vez, identificadas
por un id temporal. Nada de esto se persiste: una pestaña desaparece al
guardarse, cobrarse o abandonarse.
"""
from typing import Any, Dict, List, Optional
import logging
import threading

from app.common.exceptions import NotFound, TabLimitReached
from app.core.config import settings
from app.modules.pos.orders import Order, new_order

logger = logging.getLogger(__name__)


class TabRegistry:

    def __init__(self, max_open_tabs: Optional[int] = None):
        self._tabs: Dict[str, Order] = {}
        self._lock = threading.RLock()
        self.max_open_tabs = max_open_tabs or settings.MAX_OPEN_TABS

    def open(self, cashier_id: str, client: Any = None) -> Order:
        with self._lock:
            if len(self.list(cashier_id)) >= self.max_open_tabs:
                raise TabLimitReached(self.max_open_tabs)
            order = new_order(client=client, cashier_id=cashier_id)
            self._tabs[order.id] = order
        logger.debug(f"Orden {order.id} abierta por {cashier_id}")
        return order

    def get(self, tab_id: str, cashier_id: Optional[str] = None) -> Order:
        with self._lock:
            order = self._tabs.get(tab_id)
        if order is None or (cashier_id is not None and order.cashier_id != cashier_id):
            raise NotFound("Orden abierta", tab_id)
        return order

    def list(self, cashier_id: Optional[str] = None) -> List[Order]:
        with self._lock:
            return [o for o in self._tabs.values() if cashier_id is None or o.cashier_id == cashier_id]

    def replace(self, order: Order) -> Order:
        with self._lock:
            if order.id not in self._tabs:
                raise NotFound("Orden abierta", order.id)
            self._tabs[order.id] = order
        return order

    def discard(self, tab_id: str) -> None:
        with self._lock:
            self._tabs.pop(tab_id, None)


_registry = TabRegistry()


def get_tab_registry() -> TabRegistry:
    """Dependencia FastAPI: órdenes abiertas del proceso."""
    return _registry
