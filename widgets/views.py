import json
import logging

from django.conf import settings
from django.http import JsonResponse, QueryDict
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from core.models import RequestErrorLog
from core.request_logs import extract_response_error, log_request_error

from . import services
from .errors import InvalidRequest, WidgetsAPIError
from .permissions import check_permission

logger = logging.getLogger(__name__)

PLACEMENT_FIELDS = {"sidebar_id", "sidebar_position", "widget_id", "widget_base"}
WIDGETS_REDACT_FIELDS = {"access_token", "password"}


def _log_widgets_error(request, response):
    if response.status_code < 400:
        return
    if not getattr(settings, "WIDGETS_API_LOG_ERRORS", True):
        return
    try:
        error, response_body = extract_response_error(response)
        log_request_error(
            RequestErrorLog.SOURCE_WIDGETS,
            request,
            response,
            error=error,
            response_body=response_body,
            redact_fields=WIDGETS_REDACT_FIELDS,
        )
    except Exception:
        logger.exception(
            "Widgets API error log failed",
            extra={"widgets_path": request.path, "widgets_status": response.status_code},
        )


def _normalize_payload(request) -> dict:
    content_type = request.content_type or ""
    if "json" in content_type:
        try:
            raw = json.loads(request.body or "{}")
        except json.JSONDecodeError:
            raise InvalidRequest("Request body is not valid JSON.")
        if not isinstance(raw, dict):
            raise InvalidRequest("Request body must be a JSON object.")
        return raw
    if request.method == "POST":
        form = request.POST
    else:
        form = QueryDict(request.body, encoding=request.encoding)
    return {key: form.get(key) for key in form.keys()}


def _parse_position(value, default=None):
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidRequest("sidebar_position must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest("sidebar_position must be an integer.")


def _parse_sidebar_id(value):
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidRequest("sidebar_id must be a string.")
    return value.strip()


class WidgetsAPIView(View):
    """Shared dispatch: permission predicate, error translation, error log."""

    permissions: dict = {}

    def dispatch(self, request, *args, **kwargs):
        try:
            operation = self.permissions.get(request.method.lower())
            if operation and not check_permission(operation, request):
                response = JsonResponse(
                    {
                        "error": "forbidden",
                        "error_description": "You are not allowed to do that.",
                    },
                    status=403,
                )
            else:
                response = super().dispatch(request, *args, **kwargs)
        except WidgetsAPIError as exc:
            if exc.status >= 500:
                logger.error(
                    "Widgets API failure",
                    extra={"widgets_path": request.path, "widgets_error": exc.code},
                )
            response = JsonResponse(exc.as_json(), status=exc.status)
        _log_widgets_error(request, response)
        return response


@method_decorator(csrf_exempt, name="dispatch")
class SidebarListView(WidgetsAPIView):
    http_method_names = ["get"]
    permissions = {"get": "get_sidebars"}

    def get(self, request):
        return JsonResponse({"sidebars": services.list_sidebars()})


@method_decorator(csrf_exempt, name="dispatch")
class SidebarDetailView(WidgetsAPIView):
    http_method_names = ["get"]
    permissions = {"get": "get_sidebar"}

    def get(self, request, sidebar_id):
        return JsonResponse(services.get_sidebar(sidebar_id))


class SidebarSchemaView(View):
    http_method_names = ["get"]

    def get(self, request):
        return JsonResponse(services.sidebar_schema())


@method_decorator(csrf_exempt, name="dispatch")
class WidgetListView(WidgetsAPIView):
    http_method_names = ["get", "post"]
    permissions = {"get": "get_widgets", "post": "create_widget"}

    def get(self, request):
        return JsonResponse({"widgets": services.list_widgets(request=request)})

    def post(self, request):
        data = _normalize_payload(request)
        base = data.get("widget_base")
        if not isinstance(base, str) or not base.strip():
            raise InvalidRequest("widget_base is required.")
        sidebar_id = _parse_sidebar_id(data.get("sidebar_id"))
        if sidebar_id is None:
            raise InvalidRequest("sidebar_id is required.")
        position = _parse_position(data.get("sidebar_position"), services.DEFAULT_POSITION)
        widget = services.create_widget(base.strip(), sidebar_id, position, request=request)
        return JsonResponse(widget, status=201)


@method_decorator(csrf_exempt, name="dispatch")
class WidgetDetailView(WidgetsAPIView):
    http_method_names = ["get", "post", "put", "patch", "delete"]
    permissions = {
        "get": "get_widget",
        "post": "update_widget",
        "put": "update_widget",
        "patch": "update_widget",
        "delete": "delete_widget",
    }

    def get(self, request, widget_id):
        return JsonResponse(services.get_widget(widget_id, request=request))

    def post(self, request, widget_id):
        data = _normalize_payload(request)
        field_updates = {
            key: value for key, value in data.items() if key not in PLACEMENT_FIELDS
        }
        widget = services.update_widget(
            widget_id,
            field_updates,
            sidebar_id=_parse_sidebar_id(data.get("sidebar_id")),
            position=_parse_position(data.get("sidebar_position")),
            request=request,
        )
        return JsonResponse(widget)

    put = post
    patch = post

    def delete(self, request, widget_id):
        return JsonResponse(services.delete_widget(widget_id, request=request))


class WidgetSchemaView(View):
    http_method_names = ["get"]

    def get(self, request):
        return JsonResponse(services.widget_schema())
