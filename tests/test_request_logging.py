import logging

from django.http import HttpResponse
from django.test import RequestFactory

from apps.logs.middleware import RequestLoggingMiddleware, _credential_headers


def test_credentials_are_masked():
    request = RequestFactory().post(
        "/api/sepay/webhook",
        HTTP_AUTHORIZATION="Apikey super-secret-key",
        HTTP_X_SEPAY_SIGNATURE="abc",
    )

    assert _credential_headers(request) == {"Authorization": "Apik***ey", "X-SEPAY-SIGNATURE": "***"}


def test_request_finished_is_logged_without_raw_key(caplog):
    request = RequestFactory().get("/api/orders/", HTTP_X_API_KEY="test-api-key")
    middleware = RequestLoggingMiddleware(lambda req: HttpResponse(status=204))
    app_logger = logging.getLogger("app")
    # logger "app" không propagate lên root
    app_logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.INFO, logger="app"):
            middleware(request)
    finally:
        app_logger.removeHandler(caplog.handler)

    finished = [r for r in caplog.records if r.getMessage() == "request_finished"]
    assert finished[0].context["status_code"] == 204
    assert "test-api-key" not in str(finished[0].context)
