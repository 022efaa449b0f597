"""
Tests para el módulo de Clientes

Cubre alta, búsqueda y consulta del estado de crédito.
"""

import pytest
from decimal import Decimal
from uuid import uuid4


@pytest.fixture
def client_data():
    return {
        "name": "  Cremería El Güero  ",
        "rfc": "CEG030303CCC",
        "zone": "Sur",
        "credit_limit": "3000.00",
        "default_price_level": 4
    }


class TestClientCRUD:
    """Tests de alta y consulta de clientes"""

    def test_crear_cliente(self, client, client_data):
        response = client.post("/clients/", json=client_data)
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["name"] == "Cremería El Güero"
        assert Decimal(body["balance"]) == Decimal("0")
        assert body["default_price_level"] == 4

    def test_rfc_duplicado(self, client, client_data):
        client.post("/clients/", json=client_data)
        response = client.post("/clients/", json=client_data)
        assert response.status_code == 409

    @pytest.mark.parametrize("field,value", [
        ("name", "   "),
        ("default_price_level", 6),
        ("credit_limit", "-10"),
    ])
    def test_datos_invalidos(self, client, client_data, field, value):
        client_data[field] = value
        assert client.post("/clients/", json=client_data).status_code == 422

    def test_buscar_por_nombre_o_rfc(self, client, sample_clients):
        body = client.get("/clients/", params={"search": "fonda"}).json()
        assert [c["name"] for c in body["clients"]] == ["Fonda Doña Mary"]

        body = client.get("/clients/", params={"search": "AES0101"}).json()
        assert body["total"] == 1

    def test_cliente_inexistente(self, client):
        response = client.get(f"/clients/{uuid4()}")
        assert response.status_code == 404


class TestClientCredit:
    """Tests del estado de crédito"""

    def test_estado_de_credito(self, client, sample_clients):
        body = client.get(f"/clients/{sample_clients['al_limite'].id}/credit").json()
        assert Decimal(body["available_credit"]) == Decimal("200.00")
        assert body["over_limit"] is False

    def test_credito_autorizado_deja_sobregiro(self, client, db_session, sample_clients):
        sample = sample_clients["al_limite"]
        sample.balance = Decimal("5100.00")
        db_session.commit()
        body = client.get(f"/clients/{sample.id}/credit").json()
        assert body["over_limit"] is True
        assert Decimal(body["available_credit"]) == Decimal("-100.00")
