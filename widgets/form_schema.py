"""Infer the settings fields of a widget type from its rendered form.

The form is rendered with the ``__i__`` placeholder as instance number, so
each field's id ends in ``__i__-<field name>``. This is best effort: markup
the parser cannot make sense of yields no fields rather than an error.
"""
import logging
from html.parser import HTMLParser

from core.plugins import FORM_INDEX_PLACEHOLDER

logger = logging.getLogger(__name__)

FIELD_MARKER = f"{FORM_INDEX_PLACEHOLDER}-"
FIELD_TAGS = ("input", "textarea", "select")


class _FormFieldParser(HTMLParser):
    def __init__(self):
        super().__init__()
        self.fields = []

    def handle_starttag(self, tag, attrs):
        if tag.lower() not in FIELD_TAGS:
            return
        attr_map = {key.lower(): value for key, value in attrs}
        field_id = attr_map.get("id") or ""
        chop = field_id.rfind(FIELD_MARKER)
        if chop == -1:
            return
        name = field_id[chop + len(FIELD_MARKER):]
        if not name:
            return
        self.fields.append((name, tag.lower(), (attr_map.get("type") or "").lower()))


def _parse(markup: str) -> list[tuple[str, str, str]]:
    parser = _FormFieldParser()
    try:
        parser.feed(markup or "")
        parser.close()
    except Exception:
        logger.warning("Could not parse widget form markup", exc_info=True)
        return []
    return parser.fields


def infer_fields(markup: str) -> dict:
    """Field name -> empty default, in form order."""
    fields = {}
    for name, _tag, _input_type in _parse(markup):
        fields.setdefault(name, "")
    return fields


def infer_schema(markup: str) -> dict:
    schema = {}
    for name, tag, input_type in _parse(markup):
        if name in schema:
            continue
        if tag == "input" and input_type == "checkbox":
            schema[name] = {"type": "boolean", "default": False}
        elif tag == "input" and input_type == "number":
            schema[name] = {"type": "number"}
        else:
            schema[name] = {"type": "string"}
    return schema


def _render_form(widget_type) -> str:
    try:
        return widget_type().render_form(FORM_INDEX_PLACEHOLDER)
    except Exception:
        logger.warning(
            "Could not render settings form",
            exc_info=True,
            extra={"widget_base": getattr(widget_type, "slug", "")},
        )
        return ""


def form_fields_for(widget_type) -> dict:
    """Inferred fields for a widget type class; empty when its form won't render."""
    fields = infer_fields(_render_form(widget_type))
    if not fields:
        logger.warning(
            "No settings fields found in widget form",
            extra={"widget_base": widget_type.slug},
        )
    return fields


def form_schema_for(widget_type) -> dict:
    return infer_schema(_render_form(widget_type))
