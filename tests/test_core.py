from core.exceptions import business_code_to_http_status
from core.logging_config import mask_sensitive
from core.response import error_response, success_response
from core.settings import GatewaySettings
from domain.payment.entity import PaymentCaptureMode
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


def test_payment_codes_map_to_http_status():
    assert business_code_to_http_status(PaymentCode.EXCESSIVE_REFUND) == 422
    assert business_code_to_http_status(PaymentCode.RECONCILIATION_REQUIRED) == 409
    assert business_code_to_http_status(PaymentCode.TIMEOUT) == 504
    assert business_code_to_http_status(PaymentCode.PROTOCOL_ERROR) == 502
    assert business_code_to_http_status(BusinessCode.SERVICE_UNAVAILABLE) == 503
    assert business_code_to_http_status(12345) == 400


def test_mask_sensitive_nested():
    data = {"token": "tok_secret", "nested": [{"account_number": "acct"}], "amount": "10.00", "Token": None}
    assert mask_sensitive(data) == {
        "token": "***",
        "nested": [{"account_number": "***"}],
        "amount": "10.00",
        "Token": None,
    }


def test_response_envelope():
    ok = success_response(data={"eligible": True}).model_dump(mode="json")
    assert ok["code"] == 0 and ok["error"] is None

    err = error_response(code=PaymentCode.TIMEOUT, message="timed out", error_type="GatewayError", request_id="r1")
    body = err.model_dump(mode="json")
    assert body["code"] == 60003
    assert body["error"]["request_id"] == "r1"
    assert body["error"]["timestamp"].endswith("Z")


def test_gateway_settings_capture_mode_and_config():
    settings = GatewaySettings(account_number="acct-7", payment_capture=None)
    assert settings.payment_capture == PaymentCaptureMode.IMMEDIATE
    config = GatewaySettings(account_number="acct-7", payment_capture="authorize").to_config()
    assert config.account_number == "acct-7"
    assert config.capture_immediately is False
