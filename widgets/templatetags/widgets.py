import logging

from django import template
from django.utils.safestring import mark_safe

register = template.Library()
logger = logging.getLogger(__name__)


@register.simple_tag(takes_context=True)
def render_widget_area(context, area_slug: str) -> str:
    from widgets.registry import lookup_items
    from widgets.store import lookup_containers, lookup_placement_map

    sidebar = lookup_containers().get(area_slug)
    if sidebar is None:
        return ""

    request = context.get("request")
    widget_ids = lookup_placement_map().get(area_slug, [])
    items = lookup_items() if widget_ids else {}
    parts = []
    for widget_id in widget_ids:
        item = items.get(widget_id)
        if item is None or not item.has_output:
            continue
        try:
            parts.append(
                item.render(sidebar.widget_args(item.id, item.classname), request=request)
            )
        except Exception:
            logger.exception("Widget %s failed to render in %s", widget_id, area_slug)
    return mark_safe("".join(parts))
