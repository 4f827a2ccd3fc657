import json

from django.http import HttpResponse, JsonResponse
from django.test import RequestFactory, SimpleTestCase, TestCase

from core.models import RequestErrorLog
from core.request_logs import (
    MAX_LOG_BODY_CHARS,
    capture_request_body,
    capture_request_headers,
    client_ip,
    extract_response_error,
    log_request_error,
)


class CaptureRequestTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_json_body_redacted(self):
        request = self.factory.post(
            "/api",
            data=json.dumps({"password": "hunter2", "nested": {"access_token": "abcdefghijklmnop"}}),
            content_type="application/json",
        )
        body = json.loads(capture_request_body(request, redact_fields={"Password", "access_token"}))
        self.assertEqual(body["password"], "***")
        self.assertEqual(body["nested"]["access_token"], "abcdef...mnop")

    def test_form_body_parsed(self):
        request = self.factory.put(
            "/api",
            data="title=Hi&password=secret",
            content_type="application/x-www-form-urlencoded",
        )
        body = json.loads(capture_request_body(request, redact_fields={"password"}))
        self.assertEqual(body, {"password": ["***"], "title": ["Hi"]})

    def test_invalid_json_kept_raw(self):
        request = self.factory.post("/api", data="{oops", content_type="application/json")
        self.assertEqual(capture_request_body(request), "{oops")

    def test_long_body_truncated(self):
        request = self.factory.post("/api", data="x" * (MAX_LOG_BODY_CHARS + 50), content_type="text/plain")
        self.assertTrue(capture_request_body(request).endswith("...(truncated)"))

    def test_empty_body(self):
        self.assertEqual(capture_request_body(self.factory.get("/api")), "")

    def test_headers_redacted(self):
        request = self.factory.get("/api", HTTP_AUTHORIZATION="Bearer abc", HTTP_X_TRACE="t-1")
        headers = capture_request_headers(request)
        self.assertEqual(headers["Authorization"], "***")
        self.assertEqual(headers["X-Trace"], "t-1")

    def test_client_ip_prefers_forwarded_for(self):
        request = self.factory.get("/api", HTTP_X_FORWARDED_FOR="10.0.0.1, 10.0.0.2")
        self.assertEqual(client_ip(request), "10.0.0.1")
        self.assertEqual(client_ip(self.factory.get("/api")), "127.0.0.1")


class ExtractResponseErrorTests(SimpleTestCase):
    def test_json_error_code(self):
        response = JsonResponse({"error": "not_found", "error_description": "gone"}, status=404)
        error, body = extract_response_error(response)
        self.assertEqual(error, "not_found")
        self.assertIn("gone", body)

    def test_plain_text_error(self):
        error, body = extract_response_error(HttpResponse("Bad thing\n", status=400))
        self.assertEqual(error, "Bad thing")
        self.assertEqual(body, "Bad thing\n")


class LogRequestErrorTests(TestCase):
    def test_success_not_logged(self):
        request = RequestFactory().get("/api")
        self.assertIsNone(log_request_error("widgets", request, JsonResponse({})))
        self.assertFalse(RequestErrorLog.objects.exists())

    def test_error_logged(self):
        request = RequestFactory().get("/api/widgets/v1/widgets/text-9/", HTTP_USER_AGENT="tests")
        response = JsonResponse({"error": "invalid_reference", "error_description": "nope"}, status=400)
        log = log_request_error(RequestErrorLog.SOURCE_WIDGETS, request, response)
        self.assertEqual(log.error, "invalid_reference")
        self.assertEqual(log.status_code, 400)
        self.assertEqual(log.user_agent, "tests")
        self.assertEqual(str(log), "GET /api/widgets/v1/widgets/text-9/ (400)")
