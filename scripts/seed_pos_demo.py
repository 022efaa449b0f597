"""
Seed script: Populate a demo grocery POS with realistic data.

What it creates:
- Products (~N, default 120) with five price levels and initial stock.
  Some of them are sold by weight (KG) to exercise the tare flow.
- Clients (~25) with credit limits, zones and default price level.
- Sales (default 40) through the real POS service: cash, card, transfer,
  credit and mixed payments, so stock, client balances and cash
  movements stay consistent.

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/seed_pos_demo.py \
        --products 120 --clients 25 --sales 40

Note: This is intended for development environments only.
"""

# Add project root (/code) to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from decimal import Decimal, ROUND_CEILING

from app.database.database import SessionLocal, Base, engine
from app.common.exceptions import POSError
from app.common.money import money
from app.common.notifier import NullNotifier
from app.common.security import get_admin_authorizer
from app.dependencies.sessionDependencies import SessionContext
from app.modules.clients.models import Client
from app.modules.products.models import Product
from app.modules.pos.models import CashRegister, CashRegisterStatus
from app.modules.pos.schemas import ItemAdd, SettleRequest
from app.modules.pos.services import POSOrderService
from app.modules.pos.tabs import TabRegistry


LINES = {
    "Granos": ["Arroz", "Frijol negro", "Frijol bayo", "Lenteja", "Garbanzo", "Avena"],
    "Abarrotes": ["Azúcar", "Sal", "Aceite", "Harina", "Café", "Chocolate"],
    "Lácteos": ["Leche entera", "Queso fresco", "Crema", "Yogurt", "Mantequilla"],
    "Limpieza": ["Detergente", "Cloro", "Jabón de barra", "Suavizante"],
}
WEIGHED = ["Jitomate", "Cebolla", "Papa", "Chile serrano", "Limón", "Aguacate", "Naranja"]
ZONES = ["Centro", "Norte", "Sur", "Oriente", "Poniente", "Central de Abastos"]
BUSINESSES = ["Abarrotes", "Fonda", "Cremería", "Tienda", "Taquería", "Miscelánea", "Cocina Económica"]
OWNERS = ["Don Pepe", "La Güera", "Doña Mary", "El Chino", "Los Primos", "San Judas", "La Esperanza"]
PAYMENTS = ["cash", "cash", "cash", "card", "transfer", "credit", "mixed"]


def pick(seq):
    return random.choice(seq)


def price_levels(base: Decimal):
    # Nivel 1 general, nivel 5 mayoreo
    return {f"price{level}": money(base * (Decimal("1") - Decimal("0.03") * (level - 1))) for level in range(1, 6)}


def create_products(db, product_count: int):
    existing = {code for (code,) in db.query(Product.code).all()}
    products = []
    i = 0
    while len(products) < product_count:
        i += 1
        if i % 5 == 0:
            name, line, unit, by_weight = pick(WEIGHED), "Frutas y Verduras", "KG", True
            stock = Decimal(random.randint(40, 300))
        else:
            line = pick(list(LINES))
            name, unit, by_weight = f"{pick(LINES[line])} {random.choice(['500g', '1kg', '1L', 'pza'])}", "PZA", False
            stock = Decimal(random.randint(10, 200))
        code = f"{line[:3].upper()}-{i:04d}"
        if code in existing:
            continue

        base = Decimal(random.randint(800, 12000)) / 100
        product = Product(
            code=code,
            name=name,
            line=line,
            unit=unit,
            sold_by_weight=by_weight,
            stock=stock,
            cost=money(base * Decimal("0.7")),
            **price_levels(base)
        )
        db.add(product)
        products.append(product)
    db.commit()
    return products


def create_clients(db, client_count: int):
    clients = []
    for i in range(client_count):
        client = Client(
            name=f"{pick(BUSINESSES)} {pick(OWNERS)} {i + 1}",
            rfc=f"DEM{i:06d}XX{i % 10}",
            zone=pick(ZONES),
            phone=f"55-{random.randint(1000, 9999)}-{random.randint(1000, 9999)}",
            credit_limit=Decimal(random.choice([0, 1500, 3000, 5000, 10000])),
            balance=Decimal("0"),
            default_price_level=random.randint(1, 5)
        )
        db.add(client)
        clients.append(client)
    db.commit()
    return clients


def ensure_cash_register(db, opened_by: str):
    register = db.query(CashRegister).filter(CashRegister.status == CashRegisterStatus.OPEN).first()
    if register:
        return register
    register = CashRegister(name="Caja Demo", opening_balance=Decimal("1000.00"), opened_by=opened_by)
    db.add(register)
    db.commit()
    return register


def build_payment(method: str, total: Decimal):
    if method == "cash":
        received = money((total / 50).to_integral_value(rounding=ROUND_CEILING) * 50)
        return {"method": "cash", "received": received}
    if method == "mixed":
        cash = money(total / 2)
        return {"method": "mixed", "breakdown": {"cash": cash, "card": total - cash}}
    return {"method": method}


def create_sales(db, products, clients, sale_count: int):
    session_ctx = SessionContext(cashier_id="seed", cashier_name="Seed", authorizer=get_admin_authorizer())
    service = POSOrderService(db, session_ctx, TabRegistry(), NullNotifier())
    credit_clients = [c for c in clients if c.credit_limit > 0]

    created = 0
    for _ in range(sale_count):
        method = pick(PAYMENTS)
        if method == "credit" and credit_clients:
            client = pick(credit_clients)
        else:
            client = pick(clients) if random.random() < 0.4 else None

        tab = service.open_tab(client.id if client else None)
        try:
            for product in random.sample(products, k=random.randint(1, 6)):
                if product.sold_by_weight:
                    quantity = Decimal(random.randint(500, 3500)) / 1000
                else:
                    quantity = Decimal(random.randint(1, 3))
                tab = service.add_item(tab.id, ItemAdd(product_id=product.id, quantity=quantity))
            payment = build_payment(method, tab.total)
            service.settle_tab(tab.id, SettleRequest.model_validate({"payment": payment}))
        except POSError as e:
            print(f"  Sale skipped ({method}): {e.message}")
            service.abandon_tab(tab.id)
            continue

        created += 1
        if created % 10 == 0:
            print(f"  Sales created: {created}")
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed POS demo data")
    parser.add_argument("--products", type=int, default=120)
    parser.add_argument("--clients", type=int, default=25)
    parser.add_argument("--sales", type=int, default=40)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    parser.add_argument("--create-tables", action="store_true", help="Create tables before seeding")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)
    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("Creating products...")
        products = create_products(db, args.products)
        print(f"Products created: {len(products)}")

        print("Creating clients...")
        clients = create_clients(db, args.clients)
        print(f"Clients created: {len(clients)}")

        register = ensure_cash_register(db, opened_by="Seed")
        print(f"Cash register open: {register.name} ({register.id})")

        print("Creating sales through the POS service...")
        sales_created = create_sales(db, products, clients, args.sales)
        print(f"Sales created: {sales_created}")

        print("\nSeed completed.")
        print("Headers for API requests:")
        print("  X-Cashier-Id: caja-1")
        print("  X-Cashier-Name: <nombre del cajero>")
    finally:
        db.close()


if __name__ == "__main__":
    main()
