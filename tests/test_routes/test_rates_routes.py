# tests/test_routes/test_rates_routes.py
from tests.mocks import MockData


def test_rts_under_threshold_charges_fee(test_client):
    """RTS $30 → "Ships Now" $5"""
    response = test_client.post("/rates", json=MockData.get_rate_request([MockData.get_cart_item(price=3000)]))

    assert response.status_code == 200
    rates = response.json()["rates"]
    assert len(rates) == 1
    assert rates[0] == {
        "service_name": "Ships Now (In-Stock)",
        "service_code": "RTS_STD",
        "total_price": "500",
        "currency": "USD",
        "description": "Free over $50",
    }


def test_rts_over_threshold_is_free(test_client):
    """RTS $60 → "Ships Now" Free"""
    response = test_client.post("/rates", json=MockData.get_rate_request([MockData.get_cart_item(price=6000)]))

    assert response.status_code == 200
    rates = response.json()["rates"]
    assert len(rates) == 1
    assert rates[0]["service_code"] == "RTS_STD"
    assert rates[0]["total_price"] == "0"


def test_gift_cards_only_ship_free(test_client, mock_strategy):
    items = [MockData.get_cart_item(
        variant_id=789014, name="Gift Card", sku="GIFT-CARD", price=5000, product_type="Gift Card"
    )]

    response = test_client.post("/rates", json=MockData.get_rate_request(items))

    assert response.status_code == 200
    assert response.json()["rates"] == [{
        "service_name": "Free Shipping",
        "service_code": "GIFT_CARD_FREE",
        "total_price": "0",
        "currency": "USD",
        "description": "Gift cards ship free",
    }]
    assert mock_strategy.lookup_calls == []


def test_mixed_cart_returns_two_rates(test_client, mock_strategy):
    mock_strategy.statuses = {"222": True}
    items = [
        MockData.get_cart_item(variant_id=111, price=3000),
        MockData.get_cart_item(variant_id=222, price=6000),
    ]

    response = test_client.post("/rates", json=MockData.get_rate_request(items))

    rates = response.json()["rates"]
    assert [(rate["service_code"], rate["total_price"]) for rate in rates] == [
        ("RTS_STD", "500"),
        ("PO_STD", "0"),
    ]
    assert rates[1]["service_name"] == "Ships Later (Pre-Order)"


def test_statuses_are_cached_between_requests(test_client, mock_strategy):
    mock_strategy.statuses = {"222": True}
    payload = MockData.get_rate_request([MockData.get_cart_item(variant_id=222, price=1000)])

    first = test_client.post("/rates", json=payload).json()
    second = test_client.post("/rates", json=payload).json()

    assert first == second
    assert first["rates"][0]["service_code"] == "PO_STD"
    assert mock_strategy.lookup_calls == [["222"]]


def test_empty_cart_returns_no_rates(test_client):
    response = test_client.post("/rates", json=MockData.get_rate_request([]))

    assert response.status_code == 200
    assert response.json() == {"rates": []}


def test_missing_items_is_client_error(test_client):
    response = test_client.post("/rates", json={"rate": {"currency": "USD"}})

    assert response.status_code == 400
    assert response.json()["rates"] == []


def test_non_json_body_is_client_error(test_client):
    response = test_client.post("/rates", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["rates"] == []


def test_kill_switch_suppresses_rates(test_client, services):
    services.config_store.replace(
        services.config_store.snapshot().model_copy(update={"kill_switch": True})
    )

    response = test_client.post("/rates", json=MockData.get_rate_request([MockData.get_cart_item()]))

    assert response.status_code == 200
    assert response.json() == {"rates": []}


def test_status_source_outage_still_quotes(test_client, mock_strategy):
    mock_strategy.should_fail = True

    response = test_client.post("/rates", json=MockData.get_rate_request([MockData.get_cart_item(price=3000)]))

    assert response.status_code == 200
    assert response.json()["rates"][0]["service_code"] == "RTS_STD"


def test_unexpected_error_returns_empty_rates(test_client, mocker):
    mocker.patch(
        "shiprates.services.rate_service.RateService.quote",
        side_effect=RuntimeError("boom"),
    )

    response = test_client.post("/rates", json=MockData.get_rate_request([MockData.get_cart_item()]))

    assert response.status_code == 500
    assert response.json() == {"error": "Rate calculation failed", "rates": []}


def test_rates_endpoint_needs_no_auth(test_client):
    response = test_client.post("/rates", json=MockData.get_rate_request([]))

    assert response.status_code != 401
