"""
Fixtures compartidas para los tests

Base SQLite en memoria (creada y eliminada por test), override de la
dependencia get_db y registro de órdenes abiertas aislado por test.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_OVERRIDE_PASSWORD"] = "admin123"

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, engine, SessionLocal, get_db
from app.common.notifier import ChangeNotifier, get_notifier
from app.dependencies.sessionDependencies import SessionContext
from app.common.security import get_admin_authorizer
from app.modules.clients.models import Client
from app.modules.pos.tabs import TabRegistry, get_tab_registry
from app.modules.products.models import Product


CASHIER_HEADERS = {"X-Cashier-Id": "caja-1", "X-Cashier-Name": "Ana"}


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def tab_registry():
    return TabRegistry(max_open_tabs=10)


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def session_ctx():
    return SessionContext(cashier_id="caja-1", cashier_name="Ana", authorizer=get_admin_authorizer())


@pytest.fixture
def client(db_session, tab_registry, notifier):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tab_registry] = lambda: tab_registry
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app, headers=CASHIER_HEADERS) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_products(db_session):
    """Catálogo mínimo: dos abarrotes y un producto por peso"""
    arroz = Product(
        code="ARR-001", name="Arroz 1kg", line="Granos", unit="PZA",
        stock=Decimal("100"), cost=Decimal("40.00"),
        price1=Decimal("65.00"), price2=Decimal("62.00"), price3=Decimal("60.00"),
        price4=Decimal("58.00"), price5=Decimal("55.00")
    )
    frijol = Product(
        code="FRI-001", name="Frijol 1kg", line="Granos", unit="PZA",
        stock=Decimal("50"), cost=Decimal("20.00"),
        price1=Decimal("35.00"), price2=Decimal("33.00"), price3=Decimal("32.00"),
        price4=Decimal("31.00"), price5=Decimal("30.00")
    )
    jitomate = Product(
        code="JIT-001", name="Jitomate", line="Verduras", unit="KG", sold_by_weight=True,
        stock=Decimal("40"), cost=Decimal("12.00"),
        price1=Decimal("20.00"), price2=Decimal("19.00"), price3=Decimal("18.00"),
        price4=Decimal("17.00"), price5=Decimal("16.00")
    )
    db_session.add_all([arroz, frijol, jitomate])
    db_session.commit()
    for product in (arroz, frijol, jitomate):
        db_session.refresh(product)
    return {"arroz": arroz, "frijol": frijol, "jitomate": jitomate}


@pytest.fixture
def sample_clients(db_session):
    """Un cliente cerca de su límite y otro con crédito holgado"""
    al_limite = Client(
        name="Abarrotes La Esquina", rfc="AES010101AAA", zone="Centro",
        credit_limit=Decimal("5000.00"), balance=Decimal("4800.00"), default_price_level=2
    )
    holgado = Client(
        name="Fonda Doña Mary", rfc="FDM020202BBB", zone="Norte",
        credit_limit=Decimal("10000.00"), balance=Decimal("0.00"), default_price_level=3
    )
    db_session.add_all([al_limite, holgado])
    db_session.commit()
    db_session.refresh(al_limite)
    db_session.refresh(holgado)
    return {"al_limite": al_limite, "holgado": holgado}
