"""
Tests para el módulo POS

Tests que cubren:
- Resolución de precios por nivel y precio libre
- Cálculo de tara y peso neto
- Agregado de orden (fusión de líneas, descuentos, total = líneas - descuento)
- Política de crédito y autorización administrativa
- Motor de cobro (efectivo, tarjeta, crédito, mixto, abonos)
- Endpoints de órdenes en captura, cobro, abonos, cancelación y caja
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from app.common.exceptions import (
    InvalidPriceLevel, NonPositiveNetWeight, InsufficientStock, LineNotFound,
    InvalidQuantity, InvalidDiscount, PaymentMismatch, NoClientForCredit,
    CreditLimitExceeded, AuthorizationDenied, InvalidStatusTransition, NotFound
)
from app.common.money import money
from app.modules.clients.models import Client
from app.modules.pos import orders
from app.modules.pos.credit import check_credit, guard_credit, CreditDecision
from app.modules.pos.data_access import SqlAlchemyDataAccess
from app.modules.pos.models import OrderStatus, PaymentMethod
from app.modules.pos.pricing import resolve_price
from app.modules.pos.schemas import (
    CashPayment, CardPayment, TransferPayment, CreditPayment, MixedPayment, PaymentBreakdown
)
from app.modules.pos.settlement import plan_settlement, apply_installment, can_transition
from app.modules.pos.tare import TareOption, compute_net, get_tare_options, find_tare_option
from app.modules.products.models import Product


def make_product(name="Arroz 1kg", stock="100", prices=("65.00", "62.00", "60.00", "58.00", "55.00")):
    return Product(
        id=uuid4(),
        code=name[:3].upper(),
        name=name,
        unit="PZA",
        stock=Decimal(stock),
        **{f"price{level}": Decimal(price) for level, price in enumerate(prices, start=1)}
    )


def make_client(credit_limit="5000.00", balance="4800.00", level=1):
    return Client(
        id=uuid4(),
        name="Abarrotes La Esquina",
        credit_limit=Decimal(credit_limit),
        balance=Decimal(balance),
        default_price_level=level
    )


def dec(value):
    return Decimal(str(value))


def assert_total_matches_lines(order):
    expected = money(sum((line.total for line in order.items), Decimal("0")) - order.discount_total)
    assert abs(order.total - expected) < Decimal("0.01")


# ===== FIXTURES =====

@pytest.fixture
def arroz():
    return make_product()


@pytest.fixture
def frijol():
    return make_product("Frijol 1kg", stock="50", prices=("35.00", "33.00", "32.00", "31.00", "30.00"))


@pytest.fixture
def madera():
    return TareOption(id="2", name="MADERA", weight=Decimal("2.5"))


# ===== PRICING =====

class TestPricingResolver:
    """Tests para resolución de precio unitario"""

    def test_precio_por_nivel(self, arroz):
        assert resolve_price(arroz, 1) == Decimal("65.00")
        assert resolve_price(arroz, 3) == Decimal("60.00")
        assert resolve_price(arroz, 5) == Decimal("55.00")

    def test_precio_libre_tiene_prioridad(self, arroz):
        assert resolve_price(arroz, 1, Decimal("70")) == Decimal("70.00")

    def test_precio_libre_cero_usa_nivel(self, arroz):
        assert resolve_price(arroz, 2, Decimal("0")) == Decimal("62.00")

    @pytest.mark.parametrize("level", [0, 6, -1, "2", 2.5, None])
    def test_nivel_fuera_de_rango(self, arroz, level):
        with pytest.raises(InvalidPriceLevel):
            resolve_price(arroz, level)


# ===== TARE =====

class TestTareCalculator:
    """Tests para cálculo de peso neto"""

    def test_escenario_tara_madera(self, madera):
        """50kg brutos, 3 cajas de madera (2.5kg) -> 42.5kg"""
        assert compute_net(madera, 3, Decimal("50")) == Decimal("42.5")

    def test_escenario_stock_insuficiente(self, madera):
        with pytest.raises(InsufficientStock) as exc:
            compute_net(madera, 3, Decimal("50"), available_stock=Decimal("40"), product_name="Jitomate")
        assert exc.value.shortages[0]["required"] == Decimal("42.5")
        assert exc.value.shortages[0]["available"] == Decimal("40")

    @pytest.mark.parametrize("gross,boxes", [
        (Decimal("10"), 0), (Decimal("12.75"), 1), (Decimal("30"), 4), (Decimal("100.5"), 10)
    ])
    def test_calculo_lineal(self, madera, gross, boxes):
        assert compute_net(madera, boxes, gross) == gross - madera.weight * boxes

    @pytest.mark.parametrize("gross,boxes", [(Decimal("5"), 2), (Decimal("4"), 2), (Decimal("0"), 0)])
    def test_neto_no_positivo_rechazado(self, madera, gross, boxes):
        with pytest.raises(NonPositiveNetWeight):
            compute_net(madera, boxes, gross)

    def test_cajas_negativas(self, madera):
        with pytest.raises(InvalidQuantity):
            compute_net(madera, -1, Decimal("10"))

    def test_catalogo_de_taras(self):
        options = {o.name: o.weight for o in get_tare_options()}
        assert options["SIN TARA"] == Decimal("0")
        assert options["MADERA"] == Decimal("2.5")
        assert options["PLÁSTICO GRANDE"] == Decimal("2.0")
        assert find_tare_option("2").name == "MADERA"

    def test_tara_inexistente(self):
        with pytest.raises(NotFound):
            find_tare_option("999")


# ===== ORDER AGGREGATE =====

class TestOrderAggregate:
    """Tests para el agregado de orden"""

    def test_orden_nueva_cliente_general(self):
        order = orders.new_order(cashier_id="caja-1")
        assert order.id.startswith("temp-")
        assert order.client_id is None
        assert order.client_name == "Cliente General"
        assert order.status == OrderStatus.DRAFT
        assert order.total == Decimal("0.00")

    def test_escenario_subtotal_descuento_total(self, arroz, frijol):
        """2 x 65 + 1 x 35 = 165; descuento 15 -> 150"""
        order = orders.new_order()
        order = orders.add_item(order, arroz, 2)
        order = orders.add_item(order, frijol, 1)
        assert order.subtotal == Decimal("165.00")

        order = orders.apply_discount(order, Decimal("15.00"))
        assert order.discount_total == Decimal("15.00")
        assert order.total == Decimal("150.00")
        assert_total_matches_lines(order)

    def test_operaciones_no_mutan_la_orden_original(self, arroz):
        original = orders.new_order()
        updated = orders.add_item(original, arroz, 1)
        assert original.items == []
        assert len(updated.items) == 1

    def test_fusion_mismo_producto_y_nivel(self, arroz):
        order = orders.add_item(orders.new_order(), arroz, 1)
        order = orders.add_item(order, arroz, 2)
        assert len(order.items) == 1
        assert order.items[0].quantity == Decimal("3")
        assert order.items[0].total == Decimal("195.00")

    def test_nivel_distinto_agrega_linea(self, arroz):
        order = orders.add_item(orders.new_order(), arroz, 1, price_level=1)
        order = orders.add_item(order, arroz, 1, price_level=5)
        assert len(order.items) == 2
        assert [line.unit_price for line in order.items] == [Decimal("65.00"), Decimal("55.00")]

    def test_precio_libre_agrega_linea(self, arroz):
        order = orders.add_item(orders.new_order(), arroz, 1)
        order = orders.add_item(order, arroz, 1, unit_price_override=Decimal("50"))
        assert len(order.items) == 2

    def test_orden_con_cliente_usa_su_nivel(self, arroz):
        client = make_client(level=3)
        order = orders.add_item(orders.new_order(client), arroz, 1)
        assert order.default_price_level == 3
        assert order.items[0].price_level == 3
        assert order.items[0].unit_price == Decimal("60.00")

    def test_cantidad_fraccionaria(self):
        jitomate = make_product("Jitomate", stock="40", prices=("20.00",) * 5)
        order = orders.add_item(orders.new_order(), jitomate, Decimal("1.255"))
        assert order.items[0].total == Decimal("25.10")

    @pytest.mark.parametrize("quantity", [0, -1, Decimal("-0.5")])
    def test_agregar_cantidad_invalida(self, arroz, quantity):
        with pytest.raises(InvalidQuantity):
            orders.add_item(orders.new_order(), arroz, quantity)

    def test_agregar_sin_stock(self, frijol):
        order = orders.add_item(orders.new_order(), frijol, 40)
        with pytest.raises(InsufficientStock):
            orders.add_item(order, frijol, 11)
        assert order.items[0].quantity == Decimal("40")

    def test_quitar_linea(self, arroz, frijol):
        order = orders.add_item(orders.new_order(), arroz, 2)
        order = orders.add_item(order, frijol, 1)
        order = orders.remove_item(order, order.items[0].id)
        assert [line.product_name for line in order.items] == ["Frijol 1kg"]
        assert order.total == Decimal("35.00")

    def test_quitar_linea_inexistente(self, arroz):
        order = orders.add_item(orders.new_order(), arroz, 1)
        with pytest.raises(LineNotFound):
            orders.remove_item(order, "no-existe")

    def test_quitar_linea_ajusta_descuento(self, arroz, frijol):
        order = orders.add_item(orders.new_order(), arroz, 2)
        order = orders.add_item(order, frijol, 1)
        order = orders.apply_discount(order, Decimal("100"))
        order = orders.remove_item(order, order.items[0].id)
        assert order.discount_total == Decimal("35.00")
        assert order.total == Decimal("0.00")

    def test_actualizar_cantidad(self, arroz):
        order = orders.add_item(orders.new_order(), arroz, 1)
        order = orders.update_quantity(order, order.items[0].id, Decimal("4"))
        assert order.total == Decimal("260.00")
        assert_total_matches_lines(order)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_actualizar_cantidad_invalida(self, arroz, quantity):
        order = orders.add_item(orders.new_order(), arroz, 2)
        with pytest.raises(InvalidQuantity):
            orders.update_quantity(order, order.items[0].id, quantity)
        assert order.items[0].quantity == Decimal("2")

    def test_actualizar_cantidad_valida_stock(self, frijol):
        order = orders.add_item(orders.new_order(), frijol, 1)
        with pytest.raises(InsufficientStock):
            orders.update_quantity(order, order.items[0].id, Decimal("51"), frijol)

    def test_actualizar_precio(self, arroz):
        order = orders.add_item(orders.new_order(), arroz, 2)
        line_id = order.items[0].id
        order = orders.update_item_price(order, line_id, arroz, 4)
        assert order.items[0].price_level == 4
        assert order.total == Decimal("116.00")

        order = orders.update_item_price(order, line_id, arroz, 4, Decimal("10"))
        assert order.total == Decimal("20.00")

    def test_actualizar_precio_nivel_invalido(self, arroz):
        order = orders.add_item(orders.new_order(), arroz, 2)
        with pytest.raises(InvalidPriceLevel):
            orders.update_item_price(order, order.items[0].id, arroz, 7)

    @pytest.mark.parametrize("discount", [Decimal("-1"), Decimal("165.01")])
    def test_descuento_invalido(self, arroz, frijol, discount):
        order = orders.add_item(orders.new_order(), arroz, 2)
        order = orders.add_item(order, frijol, 1)
        with pytest.raises(InvalidDiscount):
            orders.apply_discount(order, discount)

    def test_total_cuadra_en_cada_mutacion(self, arroz, frijol):
        order = orders.new_order()
        steps = [
            lambda o: orders.add_item(o, arroz, Decimal("1.5")),
            lambda o: orders.add_item(o, frijol, 3, price_level=2),
            lambda o: orders.apply_discount(o, Decimal("12.34")),
            lambda o: orders.update_quantity(o, o.items[1].id, Decimal("0.333")),
            lambda o: orders.update_item_price(o, o.items[0].id, arroz, 5),
            lambda o: orders.remove_item(o, o.items[1].id),
        ]
        for step in steps:
            order = step(order)
            assert_total_matches_lines(order)


# ===== CREDIT =====

class TestCreditPolicyGuard:
    """Tests para la política de crédito"""

    def test_escenario_excede_limite(self):
        """4800 + 300 = 5100 > 5000"""
        assert check_credit(make_client(), Decimal("300")) == CreditDecision.REQUIRE_AUTHORIZATION

    @pytest.mark.parametrize("amount", ["0", "100", "199.99", "200"])
    def test_permite_hasta_el_disponible(self, amount):
        assert check_credit(make_client(), Decimal(amount)) == CreditDecision.ALLOW

    @pytest.mark.parametrize("amount", ["200.01", "300", "10000"])
    def test_requiere_autorizacion_sobre_el_disponible(self, amount):
        assert check_credit(make_client(), Decimal(amount)) == CreditDecision.REQUIRE_AUTHORIZATION

    def test_sin_cliente(self):
        with pytest.raises(NoClientForCredit):
            check_credit(None, Decimal("10"))

    def test_guard_sin_contrasena(self, session_ctx):
        with pytest.raises(CreditLimitExceeded) as exc:
            guard_credit(make_client(), Decimal("300"), session_ctx)
        assert exc.value.to_dict()["requires_authorization"] is True

    def test_guard_contrasena_incorrecta(self, session_ctx):
        with pytest.raises(AuthorizationDenied):
            guard_credit(make_client(), Decimal("300"), session_ctx, "incorrecta")

    def test_guard_autorizado(self, session_ctx):
        assert guard_credit(make_client(), Decimal("300"), session_ctx, "admin123") is True

    def test_guard_dentro_del_limite(self, session_ctx):
        assert guard_credit(make_client(), Decimal("100"), session_ctx) is False


# ===== SETTLEMENT ENGINE =====

class TestSettlementEngine:
    """Tests para el motor de cobro"""

    def test_escenario_efectivo_con_cambio(self):
        plan = plan_settlement(Decimal("150.00"), CashPayment(received=Decimal("200.00")))
        assert plan.new_status == OrderStatus.PAID
        assert plan.change == Decimal("50.00")
        assert plan.remaining_balance == Decimal("0.00")
        assert plan.cash_kept == Decimal("150.00")
        assert plan.tenders == [(PaymentMethod.CASH, Decimal("150.00"))]

    def test_efectivo_insuficiente(self):
        with pytest.raises(PaymentMismatch):
            plan_settlement(Decimal("150.00"), CashPayment(received=Decimal("149.99")))

    @pytest.mark.parametrize("payment,method", [
        (CardPayment(reference="AUT-123"), PaymentMethod.CARD),
        (TransferPayment(), PaymentMethod.TRANSFER),
    ])
    def test_tarjeta_y_transferencia_liquidan(self, payment, method):
        plan = plan_settlement(Decimal("99.90"), payment)
        assert plan.new_status == OrderStatus.PAID
        assert plan.tenders == [(method, Decimal("99.90"))]
        assert plan.change == Decimal("0.00")
        assert plan.cash_kept == Decimal("0.00")

    def test_credito_sin_cliente(self):
        with pytest.raises(NoClientForCredit):
            plan_settlement(Decimal("100"), CreditPayment())

    def test_credito_queda_pendiente(self):
        client = make_client(credit_limit="10000", balance="0")
        plan = plan_settlement(Decimal("300"), CreditPayment(), client=client)
        assert plan.new_status == OrderStatus.PENDING
        assert plan.remaining_balance == Decimal("300.00")
        assert plan.credit_amount == Decimal("300.00")
        assert plan.tenders == []
        assert plan.is_credit

    def test_credito_excedido_requiere_autorizacion(self, session_ctx):
        with pytest.raises(CreditLimitExceeded):
            plan_settlement(Decimal("300"), CreditPayment(), client=make_client(), session_ctx=session_ctx)

        plan = plan_settlement(Decimal("300"), CreditPayment(), client=make_client(),
                               session_ctx=session_ctx, admin_password="admin123")
        assert plan.credit_authorized is True

    @pytest.mark.parametrize("cash,card,transfer", [
        ("150.00", "0", "0"),
        ("0", "150.00", "0"),
        ("50.00", "50.00", "50.00"),
        ("0.01", "0", "149.99"),
        ("33.33", "33.33", "33.34"),
    ])
    def test_mixto_que_suma_el_total_se_acepta(self, cash, card, transfer):
        breakdown = PaymentBreakdown(cash=Decimal(cash), card=Decimal(card), transfer=Decimal(transfer))
        plan = plan_settlement(Decimal("150.00"), MixedPayment(breakdown=breakdown))
        assert plan.new_status == OrderStatus.PAID
        assert sum(amount for _, amount in plan.tenders) == Decimal("150.00")
        assert plan.cash_kept == Decimal(cash)

    @pytest.mark.parametrize("cash", ["149.98", "150.02", "0"])
    def test_mixto_que_no_suma_se_rechaza(self, cash):
        with pytest.raises(PaymentMismatch):
            plan_settlement(Decimal("150.00"), MixedPayment(breakdown=PaymentBreakdown(cash=Decimal(cash))))

    def test_mixto_con_credito(self):
        client = make_client(credit_limit="10000", balance="0")
        breakdown = PaymentBreakdown(cash=Decimal("50"), card=Decimal("50"), credit=Decimal("50"))
        plan = plan_settlement(Decimal("150.00"), MixedPayment(breakdown=breakdown), client=client)
        assert plan.new_status == OrderStatus.PENDING
        assert plan.remaining_balance == Decimal("50.00")
        assert plan.credit_amount == Decimal("50.00")
        assert len(plan.tenders) == 2

    def test_mixto_credito_sin_cliente(self):
        breakdown = PaymentBreakdown(cash=Decimal("100"), credit=Decimal("50"))
        with pytest.raises(NoClientForCredit):
            plan_settlement(Decimal("150.00"), MixedPayment(breakdown=breakdown))

    def test_mixto_credito_sujeto_a_limite(self, session_ctx):
        breakdown = PaymentBreakdown(cash=Decimal("100"), credit=Decimal("250"))
        with pytest.raises(CreditLimitExceeded):
            plan_settlement(Decimal("350.00"), MixedPayment(breakdown=breakdown),
                            client=make_client(), session_ctx=session_ctx)

    @pytest.mark.parametrize("status", [OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.PENDING])
    def test_solo_borradores_se_cobran(self, status):
        with pytest.raises(InvalidStatusTransition):
            plan_settlement(Decimal("10"), CardPayment(), current_status=status)

    def test_maquina_de_estados(self):
        assert can_transition(OrderStatus.DRAFT, OrderStatus.PENDING)
        assert can_transition(OrderStatus.DRAFT, OrderStatus.PAID)
        assert can_transition(OrderStatus.DRAFT, OrderStatus.CANCELLED)
        assert can_transition(OrderStatus.PENDING, OrderStatus.PAID)
        assert can_transition(OrderStatus.PENDING, OrderStatus.CANCELLED)
        assert not can_transition(OrderStatus.PAID, OrderStatus.CANCELLED)
        assert not can_transition(OrderStatus.CANCELLED, OrderStatus.DRAFT)
        assert not can_transition(OrderStatus.PENDING, OrderStatus.DRAFT)

    @pytest.mark.parametrize("installments", [
        ["50", "50", "50"],
        ["33.33", "33.33", "83.34"],
        ["0.01", "149.99"],
        ["149.99"],
    ])
    def test_abonos_convergen_a_pagado(self, installments):
        status, remaining = OrderStatus.PENDING, Decimal("150.00")
        for amount in installments:
            result = apply_installment(status, remaining, Decimal(amount))
            status, remaining = result.new_status, result.remaining_balance
        assert status == OrderStatus.PAID
        assert remaining == Decimal("0.00")

    def test_abono_parcial_sigue_pendiente(self):
        result = apply_installment(OrderStatus.PENDING, Decimal("150.00"), Decimal("20"))
        assert result.new_status == OrderStatus.PENDING
        assert result.remaining_balance == Decimal("130.00")
        assert result.amount_applied == Decimal("20.00")

    @pytest.mark.parametrize("amount", ["0", "-5", "150.02"])
    def test_abono_invalido(self, amount):
        with pytest.raises(PaymentMismatch):
            apply_installment(OrderStatus.PENDING, Decimal("150.00"), Decimal(amount))

    def test_abono_a_orden_no_pendiente(self):
        with pytest.raises(InvalidStatusTransition):
            apply_installment(OrderStatus.DRAFT, Decimal("0"), Decimal("10"))


# ===== API HELPERS =====

def open_tab(client, client_id=None, headers=None):
    payload = {"client_id": str(client_id)} if client_id else {}
    response = client.post("/pos/tabs/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def add_item(client, tab_id, product, quantity, **extra):
    payload = {"product_id": str(product.id), "quantity": str(quantity), **extra}
    return client.post(f"/pos/tabs/{tab_id}/items", json=payload)


def scenario_tab(client, sample_products):
    """Orden del ejemplo: 2 x 65 + 1 x 35 con descuento de 15"""
    tab = open_tab(client)
    add_item(client, tab["id"], sample_products["arroz"], 2)
    add_item(client, tab["id"], sample_products["frijol"], 1)
    response = client.post(f"/pos/tabs/{tab['id']}/discount", json={"amount": "15"})
    assert response.status_code == 200, response.text
    return response.json()


def credit_tab(client, sample_products, sample_clients, name="holgado", quantity=5):
    tab = open_tab(client, sample_clients[name].id)
    response = add_item(client, tab["id"], sample_products["arroz"], quantity)
    assert response.status_code == 200, response.text
    return response.json()


# ===== TABS API =====

class TestTabsAPI:
    """Tests de endpoints de órdenes en captura"""

    def test_abrir_orden_cliente_general(self, client):
        tab = open_tab(client)
        assert tab["id"].startswith("temp-")
        assert tab["client_name"] == "Cliente General"
        assert tab["status"] == "draft"
        assert tab["items"] == []

    def test_abrir_orden_para_cliente(self, client, sample_clients):
        tab = open_tab(client, sample_clients["al_limite"].id)
        assert tab["client_name"] == "Abarrotes La Esquina"
        assert tab["default_price_level"] == 2

    def test_cliente_inexistente(self, client):
        response = client.post("/pos/tabs/", json={"client_id": str(uuid4())})
        assert response.status_code == 404
        assert response.json()["error_type"] == "not_found"

    def test_escenario_totales(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        assert dec(tab["subtotal"]) == Decimal("165.00")
        assert dec(tab["discount_total"]) == Decimal("15.00")
        assert dec(tab["total"]) == Decimal("150.00")
        assert [line["price_level"] for line in tab["items"]] == [1, 1]

    def test_fusion_de_lineas(self, client, sample_products):
        tab = open_tab(client)
        add_item(client, tab["id"], sample_products["arroz"], 1)
        tab = add_item(client, tab["id"], sample_products["arroz"], 2).json()
        assert len(tab["items"]) == 1
        assert dec(tab["items"][0]["quantity"]) == Decimal("3")

    def test_nivel_de_precio_invalido(self, client, sample_products):
        tab = open_tab(client)
        response = add_item(client, tab["id"], sample_products["arroz"], 1, price_level=9)
        assert response.status_code == 422
        assert response.json()["error_type"] == "invalid_price_level"

    def test_stock_insuficiente_al_agregar(self, client, sample_products):
        tab = open_tab(client)
        response = add_item(client, tab["id"], sample_products["frijol"], 51)
        assert response.status_code == 409
        body = response.json()
        assert body["error_type"] == "insufficient_stock"
        assert body["shortages"][0]["product_name"] == "Frijol 1kg"

    def test_producto_por_peso_con_tara(self, client, sample_products):
        tab = open_tab(client)
        payload = {
            "product_id": str(sample_products["jitomate"].id),
            "tare_option_id": "2",
            "box_count": 2,
            "gross_weight": "20"
        }
        response = client.post(f"/pos/tabs/{tab['id']}/weighed-items", json=payload)
        assert response.status_code == 200, response.text
        line = response.json()["items"][0]
        assert dec(line["quantity"]) == Decimal("15")
        assert dec(line["total"]) == Decimal("300.00")

    def test_producto_por_peso_excede_stock(self, client, sample_products):
        """50kg - 3 cajas de madera = 42.5kg con stock de 40kg"""
        tab = open_tab(client)
        payload = {
            "product_id": str(sample_products["jitomate"].id),
            "tare_option_id": "2",
            "box_count": 3,
            "gross_weight": "50"
        }
        response = client.post(f"/pos/tabs/{tab['id']}/weighed-items", json=payload)
        assert response.status_code == 409
        assert response.json()["error_type"] == "insufficient_stock"
        assert client.get(f"/pos/tabs/{tab['id']}").json()["items"] == []

    def test_producto_por_peso_neto_no_positivo(self, client, sample_products):
        tab = open_tab(client)
        payload = {
            "product_id": str(sample_products["jitomate"].id),
            "tare_option_id": "2",
            "box_count": 2,
            "gross_weight": "5"
        }
        response = client.post(f"/pos/tabs/{tab['id']}/weighed-items", json=payload)
        assert response.status_code == 422
        assert response.json()["error_type"] == "non_positive_net_weight"

    def test_quitar_y_actualizar_lineas(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        arroz_line, frijol_line = tab["items"]

        response = client.patch(
            f"/pos/tabs/{tab['id']}/items/{arroz_line['id']}/quantity", json={"quantity": "3"}
        )
        assert response.status_code == 200
        assert dec(response.json()["total"]) == Decimal("215.00")

        response = client.patch(
            f"/pos/tabs/{tab['id']}/items/{frijol_line['id']}/price", json={"price_level": 5}
        )
        assert dec(response.json()["total"]) == Decimal("210.00")

        response = client.delete(f"/pos/tabs/{tab['id']}/items/{frijol_line['id']}")
        assert response.status_code == 200
        assert len(response.json()["items"]) == 1
        assert dec(response.json()["total"]) == Decimal("180.00")

    def test_linea_inexistente(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        response = client.delete(f"/pos/tabs/{tab['id']}/items/no-existe")
        assert response.status_code == 404
        assert response.json()["error_type"] == "line_not_found"

    def test_cantidad_cero(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        line_id = tab["items"][0]["id"]
        response = client.patch(f"/pos/tabs/{tab['id']}/items/{line_id}/quantity", json={"quantity": "0"})
        assert response.status_code == 422
        assert response.json()["error_type"] == "invalid_quantity"
        assert client.get(f"/pos/tabs/{tab['id']}").json()["items"][0]["quantity"] == tab["items"][0]["quantity"]

    def test_descuento_mayor_al_subtotal(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        response = client.post(f"/pos/tabs/{tab['id']}/discount", json={"amount": "200"})
        assert response.status_code == 422
        assert response.json()["error_type"] == "invalid_discount"

    def test_cambiar_cliente(self, client, sample_products, sample_clients):
        tab = open_tab(client)
        add_item(client, tab["id"], sample_products["arroz"], 1)
        response = client.put(
            f"/pos/tabs/{tab['id']}/client", json={"client_id": str(sample_clients["holgado"].id)}
        )
        body = response.json()
        assert body["client_name"] == "Fonda Doña Mary"
        assert body["default_price_level"] == 3
        assert dec(body["items"][0]["unit_price"]) == Decimal("65.00")

    def test_limite_de_ordenes_abiertas(self, client):
        for _ in range(10):
            open_tab(client)
        response = client.post("/pos/tabs/", json={})
        assert response.status_code == 409
        assert response.json()["error_type"] == "tab_limit_reached"
        assert client.get("/pos/tabs/").json()["total"] == 10

    def test_ordenes_aisladas_por_cajero(self, client):
        tab = open_tab(client)
        other = {"X-Cashier-Id": "caja-2", "X-Cashier-Name": "Luis"}
        assert client.get(f"/pos/tabs/{tab['id']}", headers=other).status_code == 404
        assert client.get("/pos/tabs/", headers=other).json()["total"] == 0

    def test_abandonar_orden(self, client):
        tab = open_tab(client)
        assert client.delete(f"/pos/tabs/{tab['id']}").status_code == 204
        assert client.get(f"/pos/tabs/{tab['id']}").status_code == 404


# ===== SETTLEMENT API =====

class TestSettlementAPI:
    """Tests de cobro de órdenes"""

    def test_escenario_efectivo(self, client, db_session, sample_products):
        tab = scenario_tab(client, sample_products)
        response = client.post(
            f"/pos/tabs/{tab['id']}/settle",
            json={"payment": {"method": "cash", "received": "200.00"}}
        )
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["new_status"] == "paid"
        assert dec(body["change"]) == Decimal("50.00")
        assert dec(body["remaining_balance"]) == Decimal("0")

        order = body["order"]
        assert order["status"] == "paid"
        assert order["payment_state"] == "paid"
        assert order["folio"].startswith("POS-")
        assert dec(order["total"]) == Decimal("150.00")
        assert [(p["method"], dec(p["amount"])) for p in order["payments"]] == [("cash", Decimal("150.00"))]

        db_session.refresh(sample_products["arroz"])
        db_session.refresh(sample_products["frijol"])
        assert sample_products["arroz"].stock == Decimal("98")
        assert sample_products["frijol"].stock == Decimal("49")

        movements = client.get("/pos/cash-movements/").json()
        assert [(m["type"], dec(m["amount"])) for m in movements["movements"]] == [("sale", Decimal("150.00"))]

        assert client.get(f"/pos/tabs/{tab['id']}").status_code == 404

    def test_movimientos_de_inventario_por_venta(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "card"}})
        movements = client.get(f"/products/{sample_products['arroz'].id}/movements").json()
        assert len(movements) == 1
        assert movements[0]["kind"] == "salida"
        assert dec(movements[0]["quantity"]) == Decimal("2")
        assert movements[0]["reference"].startswith("POS-")

    def test_efectivo_insuficiente_no_persiste(self, client, db_session, sample_products):
        tab = scenario_tab(client, sample_products)
        response = client.post(
            f"/pos/tabs/{tab['id']}/settle",
            json={"payment": {"method": "cash", "received": "100.00"}}
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "payment_mismatch"
        assert client.get(f"/pos/tabs/{tab['id']}").status_code == 200
        assert client.get("/pos/orders/").json()["total"] == 0
        db_session.refresh(sample_products["arroz"])
        assert sample_products["arroz"].stock == Decimal("100")

    def test_falla_de_base_revierte_todo_el_cobro(self, client, db_session, sample_products, monkeypatch):
        """Si falla el último paso del cobro no queda venta, pago ni descuento de stock"""
        def disco_lleno(*args, **kwargs):
            raise OperationalError("INSERT INTO cash_movements", {}, Exception("disk full"))

        monkeypatch.setattr(SqlAlchemyDataAccess, "record_cash_movement", disco_lleno)
        tab = scenario_tab(client, sample_products)
        response = client.post(
            f"/pos/tabs/{tab['id']}/settle",
            json={"payment": {"method": "cash", "received": "200.00"}}
        )
        assert response.status_code == 503
        assert response.json()["error_type"] == "data_access_failure"

        assert client.get("/pos/orders/").json()["total"] == 0
        assert client.get(f"/pos/tabs/{tab['id']}").status_code == 200
        db_session.refresh(sample_products["arroz"])
        db_session.refresh(sample_products["frijol"])
        assert sample_products["arroz"].stock == Decimal("100")
        assert sample_products["frijol"].stock == Decimal("50")
        assert client.get(f"/products/{sample_products['arroz'].id}/movements").json() == []

    def test_orden_vacia(self, client):
        tab = open_tab(client)
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "card"}})
        assert response.status_code == 422
        assert response.json()["error_type"] == "empty_order"

    def test_metodo_de_pago_desconocido(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "vales"}})
        assert response.status_code == 422

    def test_credito_sin_cliente(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "credit"}})
        assert response.status_code == 422
        assert response.json()["error_type"] == "no_client_for_credit"

    def test_escenario_credito_excedido(self, client, db_session, sample_products, sample_clients):
        """4800 + 300 > 5000 requiere autorización administrativa"""
        tab = open_tab(client, sample_clients["al_limite"].id)
        add_item(client, tab["id"], sample_products["arroz"], 1, custom_price="300")
        url = f"/pos/tabs/{tab['id']}/settle"

        response = client.post(url, json={"payment": {"method": "credit"}})
        assert response.status_code == 409
        body = response.json()
        assert body["error_type"] == "credit_limit_exceeded"
        assert body["requires_authorization"] is True
        assert client.get("/pos/orders/").json()["total"] == 0

        response = client.post(url, json={"payment": {"method": "credit"}, "admin_password": "otra"})
        assert response.status_code == 403
        assert response.json()["error_type"] == "authorization_denied"

        response = client.post(url, json={"payment": {"method": "credit"}, "admin_password": "admin123"})
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["new_status"] == "pending"
        assert body["credit_authorized"] is True
        assert dec(body["remaining_balance"]) == Decimal("300.00")
        assert body["order"]["payments"] == []
        assert body["order"]["is_credit"] is True

        db_session.refresh(sample_clients["al_limite"])
        assert sample_clients["al_limite"].balance == Decimal("5100.00")

    def test_pago_mixto_con_credito(self, client, db_session, sample_products, sample_clients):
        tab = open_tab(client, sample_clients["holgado"].id)
        add_item(client, tab["id"], sample_products["arroz"], 1, custom_price="150")
        payment = {"method": "mixed", "breakdown": {"cash": "50", "card": "50", "credit": "50"}}
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": payment})
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["new_status"] == "pending"
        assert body["order"]["payment_state"] == "partial"
        assert dec(body["remaining_balance"]) == Decimal("50.00")
        assert sorted(p["method"] for p in body["order"]["payments"]) == ["card", "cash"]

        db_session.refresh(sample_clients["holgado"])
        assert sample_clients["holgado"].balance == Decimal("50.00")

        summary = client.get("/pos/cash-movements/").json()["summary"]
        assert dec(summary["total_sales"]) == Decimal("50.00")

    def test_pago_mixto_descuadrado(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        payment = {"method": "mixed", "breakdown": {"cash": "100", "card": "49.98"}}
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": payment})
        assert response.status_code == 422
        assert response.json()["error_type"] == "payment_mismatch"

    def test_stock_insuficiente_al_cobrar(self, client, db_session, sample_products):
        frijol = sample_products["frijol"]
        tab = open_tab(client)
        add_item(client, tab["id"], frijol, 50)
        # Otra caja vendió mientras tanto
        client.patch(f"/products/{frijol.id}/stock", json={"kind": "salida", "quantity": "10"})

        url = f"/pos/tabs/{tab['id']}/settle"
        response = client.post(url, json={"payment": {"method": "card"}})
        assert response.status_code == 409
        shortage = response.json()["shortages"][0]
        assert shortage["required"] == 50
        assert shortage["available"] == 40

        response = client.post(url, json={"payment": {"method": "card"}, "stock_override": True})
        assert response.status_code == 403

        response = client.post(
            url, json={"payment": {"method": "card"}, "stock_override": True, "admin_password": "admin123"}
        )
        assert response.status_code == 200, response.text
        assert response.json()["stock_override"] is True
        db_session.refresh(frijol)
        assert frijol.stock == Decimal("0")

    def test_guardar_y_cobrar_borrador(self, client, db_session, sample_products):
        tab = scenario_tab(client, sample_products)
        response = client.post(f"/pos/tabs/{tab['id']}/save")
        assert response.status_code == 201, response.text
        saved = response.json()
        assert saved["status"] == "draft"
        assert saved["payment_state"] == "unpaid"
        assert [line["position"] for line in saved["lines"]] == [1, 2]
        db_session.refresh(sample_products["arroz"])
        assert sample_products["arroz"].stock == Decimal("100")

        drafts = client.get("/pos/orders/", params={"status": "draft"}).json()
        assert drafts["total"] == 1

        url = f"/pos/orders/{saved['id']}/settle"
        response = client.post(url, json={"payment": {"method": "transfer", "reference": "SPEI-1"}})
        assert response.status_code == 200, response.text
        assert response.json()["order"]["payments"][0]["reference"] == "SPEI-1"
        db_session.refresh(sample_products["arroz"])
        assert sample_products["arroz"].stock == Decimal("98")

        response = client.post(url, json={"payment": {"method": "card"}})
        assert response.status_code == 409
        assert response.json()["error_type"] == "invalid_status_transition"

    def test_orden_inexistente(self, client):
        response = client.get(f"/pos/orders/{uuid4()}")
        assert response.status_code == 404


# ===== INSTALLMENTS API =====

class TestInstallmentsAPI:
    """Tests de abonos a ventas a crédito"""

    def _credit_sale(self, client, sample_products, sample_clients):
        tab = credit_tab(client, sample_products, sample_clients)
        assert dec(tab["total"]) == Decimal("300.00")
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "credit"}})
        assert response.status_code == 200, response.text
        return response.json()["order"]

    def test_abonos_hasta_liquidar(self, client, db_session, sample_products, sample_clients):
        order = self._credit_sale(client, sample_products, sample_clients)
        assert order["payment_state"] == "unpaid"
        url = f"/pos/orders/{order['id']}/payments"

        response = client.post(url, json={"amount": "100", "method": "cash"})
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["new_status"] == "pending"
        assert body["payment_state"] == "partial"
        assert dec(body["remaining_balance"]) == Decimal("200.00")
        db_session.refresh(sample_clients["holgado"])
        assert sample_clients["holgado"].balance == Decimal("200.00")

        response = client.post(url, json={"amount": "200", "method": "transfer"})
        body = response.json()
        assert body["new_status"] == "paid"
        assert body["payment_state"] == "paid"
        assert dec(body["remaining_balance"]) == Decimal("0")
        assert len(body["order"]["payments"]) == 2
        db_session.refresh(sample_clients["holgado"])
        assert sample_clients["holgado"].balance == Decimal("0.00")

        response = client.post(url, json={"amount": "1"})
        assert response.status_code == 409

        movements = client.get("/pos/cash-movements/").json()["movements"]
        assert [m["type"] for m in movements] == ["credit_payment"]

    def test_abono_con_centavo_de_mas_registra_lo_aplicado(self, client, db_session, sample_products, sample_clients):
        """Un abono de 60.01 sobre 60.00 liquida la venta y solo registra 60.00"""
        tab = open_tab(client, sample_clients["holgado"].id)
        add_item(client, tab["id"], sample_products["arroz"], 1, custom_price="60")
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "credit"}})
        assert response.status_code == 200, response.text
        order = response.json()["order"]

        response = client.post(f"/pos/orders/{order['id']}/payments", json={"amount": "60.01", "method": "cash"})
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["new_status"] == "paid"
        assert dec(body["amount_applied"]) == Decimal("60.00")
        assert [dec(p["amount"]) for p in body["order"]["payments"]] == [Decimal("60.00")]

        cash = client.get("/pos/cash-movements/").json()
        assert [dec(m["amount"]) for m in cash["movements"]] == [Decimal("60.00")]
        assert dec(cash["summary"]["total_credit_payments"]) == Decimal("60.00")
        db_session.refresh(sample_clients["holgado"])
        assert sample_clients["holgado"].balance == Decimal("0.00")

    def test_abono_excede_saldo(self, client, sample_products, sample_clients):
        order = self._credit_sale(client, sample_products, sample_clients)
        response = client.post(f"/pos/orders/{order['id']}/payments", json={"amount": "300.02"})
        assert response.status_code == 422
        assert response.json()["error_type"] == "payment_mismatch"

    def test_abono_cero(self, client, sample_products, sample_clients):
        order = self._credit_sale(client, sample_products, sample_clients)
        response = client.post(f"/pos/orders/{order['id']}/payments", json={"amount": "0"})
        assert response.status_code == 422


# ===== CANCELLATION API =====

class TestCancellationAPI:
    """Tests de cancelación de ventas"""

    def test_cancelar_borrador(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        saved = client.post(f"/pos/tabs/{tab['id']}/save").json()
        response = client.post(f"/pos/orders/{saved['id']}/cancel", json={"reason": "Cliente se arrepintió"})
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancelled_at"] is not None

    def test_cancelar_credito_devuelve_stock_y_saldo(self, client, db_session, sample_products, sample_clients):
        tab = credit_tab(client, sample_products, sample_clients)
        order = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "credit"}}).json()["order"]
        db_session.refresh(sample_products["arroz"])
        assert sample_products["arroz"].stock == Decimal("95")

        response = client.post(f"/pos/orders/{order['id']}/cancel")
        assert response.status_code == 200, response.text
        db_session.refresh(sample_products["arroz"])
        db_session.refresh(sample_clients["holgado"])
        assert sample_products["arroz"].stock == Decimal("100")
        assert sample_clients["holgado"].balance == Decimal("0.00")

        kinds = [m["kind"] for m in client.get(f"/products/{sample_products['arroz'].id}/movements").json()]
        assert sorted(kinds) == ["entrada", "salida"]

    def test_cancelar_venta_con_sobregiro_devuelve_solo_lo_descontado(
            self, client, db_session, sample_products, sample_clients):
        """Con 40 en existencia se venden 50 autorizados; al cancelar el stock vuelve a 40"""
        frijol = sample_products["frijol"]
        tab = open_tab(client, sample_clients["holgado"].id)
        add_item(client, tab["id"], frijol, 50)
        client.patch(f"/products/{frijol.id}/stock", json={"kind": "salida", "quantity": "10"})

        response = client.post(
            f"/pos/tabs/{tab['id']}/settle",
            json={"payment": {"method": "credit"}, "stock_override": True, "admin_password": "admin123"}
        )
        assert response.status_code == 200, response.text
        order = response.json()["order"]
        db_session.refresh(frijol)
        assert frijol.stock == Decimal("0")

        response = client.post(f"/pos/orders/{order['id']}/cancel")
        assert response.status_code == 200, response.text
        db_session.refresh(frijol)
        assert frijol.stock == Decimal("40")

        movements = client.get(f"/products/{frijol.id}/movements").json()
        sale_movements = {m["kind"]: dec(m["quantity"]) for m in movements if (m["reference"] or "").startswith("POS-")}
        assert sale_movements == {"salida": Decimal("40"), "entrada": Decimal("40")}

    def test_venta_pagada_no_se_cancela(self, client, sample_products):
        tab = scenario_tab(client, sample_products)
        order = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "card"}}).json()["order"]
        response = client.post(f"/pos/orders/{order['id']}/cancel")
        assert response.status_code == 409
        assert response.json()["error_type"] == "invalid_status_transition"


# ===== CREDIT CHECK / TARE API =====

class TestCreditAndTareAPI:
    """Tests de consulta de crédito y cálculo de tara"""

    def test_consulta_de_credito(self, client, sample_clients):
        client_id = str(sample_clients["al_limite"].id)
        body = client.post("/pos/credit-check", json={"client_id": client_id, "amount": "300"}).json()
        assert body["decision"] == "require_authorization"
        assert body["requires_authorization"] is True
        assert dec(body["available_credit"]) == Decimal("200.00")

        body = client.post("/pos/credit-check", json={"client_id": client_id, "amount": "200"}).json()
        assert body["decision"] == "allow"

    def test_opciones_de_tara(self, client):
        options = client.get("/pos/tare-options").json()
        assert {"SIN TARA", "MADERA"} <= {o["name"] for o in options}

    def test_calcular_tara(self, client, sample_products):
        payload = {"tare_option_id": "2", "box_count": 3, "gross_weight": "50"}
        body = client.post("/pos/tare/compute", json=payload).json()
        assert dec(body["net_weight"]) == Decimal("42.5")
        assert dec(body["tare_weight"]) == Decimal("7.5")

        payload["product_id"] = str(sample_products["jitomate"].id)
        response = client.post("/pos/tare/compute", json=payload)
        assert response.status_code == 409


# ===== CASH REGISTER API =====

class TestCashRegisterAPI:
    """Tests de caja registradora y movimientos"""

    def test_apertura_venta_y_arqueo(self, client, sample_products):
        response = client.post("/pos/cash-registers/open", json={"opening_balance": "500"})
        assert response.status_code == 201, response.text
        register = response.json()
        assert register["status"] == "open"
        assert register["opened_by"] == "Ana"

        assert client.post("/pos/cash-registers/open", json={"opening_balance": "0"}).status_code == 409

        tab = scenario_tab(client, sample_products)
        client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "cash", "received": "200"}})
        response = client.post("/pos/cash-movements/", json={"type": "expense", "amount": "20", "notes": "Hielo"})
        assert response.status_code == 201, response.text

        current = client.get("/pos/cash-registers/current").json()
        assert dec(current["calculated_balance"]) == Decimal("630.00")

        response = client.post(
            f"/pos/cash-registers/{register['id']}/close", json={"closing_balance": "625"}
        )
        assert response.status_code == 200, response.text
        closed = response.json()
        assert closed["status"] == "closed"
        assert dec(closed["difference"]) == Decimal("-5.00")

        movements = client.get("/pos/cash-movements/", params={"cash_register_id": register["id"]}).json()
        assert dec(movements["summary"]["total_adjustments"]) == Decimal("-5.00")
        assert client.get("/pos/cash-registers/current").status_code == 404

    def test_movimiento_sin_caja_abierta(self, client):
        response = client.post("/pos/cash-movements/", json={"type": "deposit", "amount": "100"})
        assert response.status_code == 409
        assert response.json()["error_type"] == "cash_register_conflict"

    def test_ventas_no_se_registran_manualmente(self, client):
        client.post("/pos/cash-registers/open", json={"opening_balance": "0"})
        response = client.post("/pos/cash-movements/", json={"type": "sale", "amount": "100"})
        assert response.status_code == 422


# ===== DATA ACCESS =====

class TestSqlAlchemyDataAccess:
    """Tests del acceso a datos sobre la Session"""

    def test_salida_descuenta_y_devuelve_lo_movido(self, db_session, sample_products):
        frijol = sample_products["frijol"]
        dao = SqlAlchemyDataAccess(db_session)
        assert dao.update_product_stock(frijol.id, Decimal("-10")) == Decimal("10")
        assert dao.update_product_stock(frijol.id, Decimal("5")) == Decimal("5")
        db_session.refresh(frijol)
        assert frijol.stock == Decimal("45")

    def test_salida_sin_stock_no_modifica(self, db_session, sample_products):
        frijol = sample_products["frijol"]
        dao = SqlAlchemyDataAccess(db_session)
        with pytest.raises(InsufficientStock) as exc_info:
            dao.update_product_stock(frijol.id, Decimal("-60"))

        shortage = exc_info.value.shortages[0]
        assert shortage["required"] == Decimal("60")
        assert shortage["available"] == Decimal("50")
        db_session.refresh(frijol)
        assert frijol.stock == Decimal("50")

    def test_salida_con_sobregiro_deja_en_cero(self, db_session, sample_products):
        frijol = sample_products["frijol"]
        dao = SqlAlchemyDataAccess(db_session)
        taken = dao.update_product_stock(frijol.id, Decimal("-60"), clamp_at_zero=True)
        assert taken == Decimal("50")
        db_session.refresh(frijol)
        assert frijol.stock == Decimal("0")

    def test_listar_productos(self, db_session, sample_products):
        dao = SqlAlchemyDataAccess(db_session)
        assert [p.name for p in dao.list_products()] == ["Arroz 1kg", "Frijol 1kg", "Jitomate"]

        ids = [sample_products["jitomate"].id, sample_products["arroz"].id]
        assert [p.code for p in dao.list_products(ids)] == ["ARR-001", "JIT-001"]
        assert dao.list_products([]) == []


# ===== NOTIFICATIONS =====

class TestChangeNotifications:
    """Tests de notificación de cambios"""

    def test_cobro_publica_cambios(self, client, notifier, sample_products):
        events = []
        notifier.subscribe(events.append)
        tab = scenario_tab(client, sample_products)
        client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "cash", "received": "150"}})
        topics = [event.topic for event in events]
        assert "orders" in topics
        assert "products" in topics
        assert "cash" in topics

    def test_suscriptor_roto_no_interrumpe(self, client, notifier, sample_products):
        def broken(event):
            raise RuntimeError("sin conexión")

        notifier.subscribe(broken)
        tab = scenario_tab(client, sample_products)
        response = client.post(f"/pos/tabs/{tab['id']}/settle", json={"payment": {"method": "card"}})
        assert response.status_code == 200
        assert notifier.events_since(0)


class TestHealth:
    """Tests de endpoints de estado"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert "POS Settlement API" in client.get("/").json()["message"]
