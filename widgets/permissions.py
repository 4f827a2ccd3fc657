"""Pluggable permission predicates for the widgets API.

``WIDGETS_API_PERMISSIONS`` maps an operation name to the dotted path of a
``(request) -> bool`` callable. Operations without an entry are allowed.
Updating and deleting fall back to the create predicate.
"""
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from .errors import InvalidOperation

OPERATIONS = (
    "get_sidebars",
    "get_sidebar",
    "get_widgets",
    "get_widget",
    "create_widget",
    "update_widget",
    "delete_widget",
)
FALLBACKS = {
    "update_widget": "create_widget",
    "delete_widget": "create_widget",
}


def allow_all(request) -> bool:
    return True


def staff_only(request) -> bool:
    user = getattr(request, "user", None)
    return bool(user and user.is_authenticated and user.is_staff)


def get_predicate(operation: str):
    configured = getattr(settings, "WIDGETS_API_PERMISSIONS", {}) or {}
    unknown = sorted(set(configured) - set(OPERATIONS))
    if unknown:
        raise ImproperlyConfigured(
            f"WIDGETS_API_PERMISSIONS has unknown operations: {', '.join(unknown)}"
        )
    target = configured.get(operation)
    if target is None and operation in FALLBACKS:
        target = configured.get(FALLBACKS[operation])
    if target is None:
        return allow_all
    if callable(target):
        return target
    return import_string(target)


def check_permission(operation: str, request) -> bool:
    result = get_predicate(operation)(request)
    if not isinstance(result, bool):
        raise InvalidOperation(
            "Custom permissions handling MUST return a boolean value. "
            "False for no permissions, True for permissions."
        )
    return result
