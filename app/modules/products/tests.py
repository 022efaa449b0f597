"""
Tests para el módulo de Productos

Cubre alta de catálogo con niveles de precio, filtros y movimientos
manuales de inventario.
"""

import pytest
from decimal import Decimal
from uuid import uuid4


@pytest.fixture
def product_data():
    return {
        "code": "AZU-001",
        "name": "Azúcar estándar 1kg",
        "line": "Abarrotes",
        "stock": "24",
        "cost": "22.00",
        "price1": "32.00",
        "price3": "29.50"
    }


class TestProductCatalog:
    """Tests de alta y consulta de productos"""

    def test_crear_producto(self, client, product_data):
        response = client.post("/products/", json=product_data)
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["code"] == "AZU-001"
        assert body["unit"] == "PZA"
        assert Decimal(body["stock"]) == Decimal("24")

    def test_niveles_vacios_heredan_precio_general(self, client, product_data):
        body = client.post("/products/", json=product_data).json()
        assert Decimal(body["price2"]) == Decimal("32.00")
        assert Decimal(body["price3"]) == Decimal("29.50")
        assert Decimal(body["price5"]) == Decimal("32.00")

    def test_codigo_duplicado(self, client, product_data):
        client.post("/products/", json=product_data)
        response = client.post("/products/", json=product_data)
        assert response.status_code == 400

    def test_precio_negativo(self, client, product_data):
        product_data["price1"] = "-1"
        assert client.post("/products/", json=product_data).status_code == 422

    def test_listar_y_filtrar(self, client, sample_products):
        body = client.get("/products/").json()
        assert body["total"] == 3

        body = client.get("/products/", params={"line": "Granos"}).json()
        assert {p["name"] for p in body["products"]} == {"Arroz 1kg", "Frijol 1kg"}

        body = client.get("/products/", params={"name": "jito"}).json()
        assert [p["code"] for p in body["products"]] == ["JIT-001"]

    def test_producto_inexistente(self, client):
        response = client.get(f"/products/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_type"] == "not_found"


class TestStockMovements:
    """Tests de movimientos manuales de inventario"""

    def test_entrada(self, client, sample_products):
        product_id = sample_products["frijol"].id
        response = client.patch(
            f"/products/{product_id}/stock",
            json={"kind": "entrada", "quantity": "10", "reference": "Compra 1182"}
        )
        assert response.status_code == 200, response.text
        assert Decimal(response.json()["stock"]) == Decimal("60")

        movements = client.get(f"/products/{product_id}/movements").json()
        assert movements[0]["kind"] == "entrada"
        assert movements[0]["reference"] == "Compra 1182"
        assert movements[0]["user_name"] == "Ana"

    def test_salida_sin_stock(self, client, sample_products):
        product_id = sample_products["frijol"].id
        response = client.patch(f"/products/{product_id}/stock", json={"kind": "salida", "quantity": "51"})
        assert response.status_code == 409
        assert response.json()["error_type"] == "insufficient_stock"
        assert Decimal(client.get(f"/products/{product_id}").json()["stock"]) == Decimal("50")

    def test_ajuste_por_conteo(self, client, sample_products):
        product_id = sample_products["jitomate"].id
        response = client.patch(f"/products/{product_id}/stock", json={"kind": "ajuste", "quantity": "37.5"})
        assert Decimal(response.json()["stock"]) == Decimal("37.5")

        movements = client.get(f"/products/{product_id}/movements").json()
        assert movements[0]["kind"] == "ajuste"
        assert Decimal(movements[0]["quantity"]) == Decimal("2.5")

    def test_cantidad_cero(self, client, sample_products):
        product_id = sample_products["arroz"].id
        response = client.patch(f"/products/{product_id}/stock", json={"kind": "entrada", "quantity": "0"})
        assert response.status_code == 422
        assert response.json()["error_type"] == "invalid_quantity"
