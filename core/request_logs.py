"""Capture failed API requests into ``RequestErrorLog`` with secrets masked."""
import json
from urllib.parse import parse_qs

from django.http import RawPostDataException

from core.models import RequestErrorLog

DEFAULT_REDACT_HEADERS = {"authorization", "cookie"}
MAX_LOG_BODY_CHARS = 10000
TRUNCATED_SUFFIX = "\n...(truncated)"


def mask(value: str) -> str:
    """Keep just enough of a secret to tell two of them apart."""
    if not value:
        return value
    if len(value) <= 12:
        return "***"
    return f"{value[:6]}...{value[-4:]}"


def redact(value, fields: set[str], *, secret: bool = False):
    """Mask every string stored under one of ``fields``, at any depth."""
    if isinstance(value, dict):
        return {
            key: redact(item, fields, secret=secret or str(key).lower() in fields)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact(item, fields, secret=secret) for item in value]
    if secret and isinstance(value, str):
        return mask(value)
    return value


def _clip(text: str) -> str:
    if len(text) > MAX_LOG_BODY_CHARS:
        return text[:MAX_LOG_BODY_CHARS] + TRUNCATED_SUFFIX
    return text


def _parse_body(request):
    """Return ``(payload, raw_text)``; ``payload`` is None when the body is opaque."""
    content_type = request.content_type or ""
    try:
        raw = (request.body or b"").decode("utf-8", errors="replace")
    except RawPostDataException:
        # request.POST was read from the stream first.
        return {key: values for key, values in request.POST.lists()}, ""
    if not raw:
        return None, ""
    if "application/json" in content_type:
        try:
            return json.loads(raw), raw
        except json.JSONDecodeError:
            return None, raw
    if "application/x-www-form-urlencoded" in content_type:
        return parse_qs(raw, keep_blank_values=True), raw
    return None, raw


def capture_request_body(request, *, redact_fields: set[str] | None = None) -> str:
    fields = {field.lower() for field in (redact_fields or ())}
    payload, raw = _parse_body(request)
    if payload is None:
        return _clip(raw)
    if not payload and not raw:
        return ""
    return _clip(json.dumps(redact(payload, fields), indent=2, sort_keys=True))


def capture_request_headers(request, *, redact_headers: set[str] | None = None) -> dict:
    names = {name.lower() for name in (redact_headers or DEFAULT_REDACT_HEADERS)}
    return redact(dict(request.headers), names)


def extract_response_error(response) -> tuple[str, str]:
    """Pull the error code out of a JSON error body, or the text of a plain one."""
    body = response.content.decode("utf-8", errors="replace") if hasattr(response, "content") else ""
    if not body:
        return "", body
    if "application/json" in response.get("Content-Type", ""):
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return "", body
        if not isinstance(payload, dict):
            return "", body
        return str(payload.get("error") or payload.get("error_description") or ""), body
    return (body.strip() if response.status_code >= 400 else ""), body


def client_ip(request) -> str | None:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def log_request_error(
    source: str,
    request,
    response,
    *,
    error: str | None = None,
    response_body: str | None = None,
    redact_fields: set[str] | None = None,
    redact_headers: set[str] | None = None,
) -> RequestErrorLog | None:
    if response.status_code < 400:
        return None

    extracted_error, extracted_body = extract_response_error(response)
    return RequestErrorLog.objects.create(
        source=source,
        method=request.method,
        path=request.path[:255],
        status_code=response.status_code,
        error=extracted_error if error is None else error,
        request_headers=capture_request_headers(request, redact_headers=redact_headers),
        request_query=dict(request.GET.lists()),
        request_body=capture_request_body(request, redact_fields=redact_fields),
        response_body=extracted_body if response_body is None else response_body,
        remote_addr=client_ip(request),
        user_agent=request.META.get("HTTP_USER_AGENT", ""),
        content_type=request.content_type or "",
    )
