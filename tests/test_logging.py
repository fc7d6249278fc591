import logging

from checkout_api.logging import event_id_ctx


def test_records_carry_service_name_and_event_id(json_logs):
    token = event_id_ctx.set("evt_123")
    try:
        logging.getLogger("checkout_api.reconcile").info("Order completed")
    finally:
        event_id_ctx.reset(token)

    [record] = json_logs()
    assert record["message"] == "Order completed"
    assert record["levelname"] == "INFO"
    assert record["name"] == "checkout_api.reconcile"
    assert record["service_name"] == "checkout-api"
    assert record["event_id"] == "evt_123"


def test_event_id_is_empty_outside_a_webhook(json_logs):
    logging.getLogger("checkout_api.routes").warning("Order not linked")

    [record] = json_logs()
    assert record["event_id"] == ""
    assert record["levelname"] == "WARNING"


def test_level_filters_records(json_logs):
    logging.getLogger("checkout_api.main").debug("noise")

    assert json_logs() == []
