from django.conf import settings

from core.plugins import BasePlugin, Sidebar


class WidgetsPlugin(BasePlugin):
    name = "widgets"
    label = "Widgets"
    description = "Configurable sidebars and the widgets placed in them."

    def get_widget_types(self):
        from .widget_types import LinksWidget, TextWidget
        return [TextWidget, LinksWidget]

    def get_sidebars(self):
        return [Sidebar.from_dict(item) for item in getattr(settings, "WIDGET_SIDEBARS", [])]
