from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass

from django.template.loader import render_to_string

FORM_INDEX_PLACEHOLDER = "__i__"


@dataclass(frozen=True)
class Sidebar:
    id: str
    name: str = ""
    description: str = ""
    classname: str = ""
    before_widget: str = '<section id="{id}" class="widget {classname}">'
    after_widget: str = "</section>"
    before_title: str = '<h2 class="widget-title">'
    after_title: str = "</h2>"

    @classmethod
    def from_dict(cls, data: dict) -> "Sidebar":
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        if "class" in data and "classname" not in known:
            known["classname"] = data["class"]
        return cls(**known)

    def as_dict(self) -> dict:
        return asdict(self)

    def widget_args(self, widget_id: str, widget_classname: str) -> dict:
        """Decoration for one widget, with its id and class filled in."""
        before = self.before_widget.replace("{id}", widget_id).replace(
            "{classname}", widget_classname
        )
        return {
            "before_widget": before,
            "after_widget": self.after_widget,
            "before_title": self.before_title,
            "after_title": self.after_title,
        }


class BaseWidget(ABC):
    slug: str = ""
    label: str = ""
    description: str = ""
    config_schema: dict = {}
    template_name: str = ""
    form_template_name: str = "widgets/widget_form.html"

    @property
    def classname(self) -> str:
        return f"widget_{self.slug}"

    @abstractmethod
    def render(self, config: dict, request=None, args: dict | None = None) -> str: ...

    def field_id(self, number, field_name: str) -> str:
        return f"widget-{self.slug}-{number}-{field_name}"

    def render_form(self, number=FORM_INDEX_PLACEHOLDER, config: dict | None = None) -> str:
        """Settings form markup for one instance.

        Rendered with the ``__i__`` placeholder as ``number`` it describes the
        fields every instance of this widget type accepts.
        """
        config = config or {}
        fields = []
        for name, field in self.config_schema.get("fields", {}).items():
            fields.append(
                {
                    "name": name,
                    "id": self.field_id(number, name),
                    "input_name": f"widget-{self.slug}[{number}][{name}]",
                    "type": field.get("type", "string"),
                    "label": field.get("label", name),
                    "choices": field.get("choices", []),
                    "value": config.get(name, field.get("default", "")),
                }
            )
        return render_to_string(
            self.form_template_name,
            {"widget": self, "number": number, "fields": fields},
        )


class BasePlugin:
    name: str = ""
    label: str = ""
    version: str = "1.0.0"
    description: str = ""

    def get_widget_types(self) -> list[type[BaseWidget]]:
        return []

    def get_sidebars(self) -> list[Sidebar]:
        return []


class PluginRegistry:
    def __init__(self):
        self._plugins: dict[str, BasePlugin] = {}

    def register(self, plugin: BasePlugin) -> None:
        self._plugins[plugin.name] = plugin

    def all_plugins(self) -> list[BasePlugin]:
        return list(self._plugins.values())

    def get_plugin(self, name: str) -> BasePlugin | None:
        return self._plugins.get(name)

    def get_all_widget_types(self) -> list[type[BaseWidget]]:
        types = []
        for plugin in self._plugins.values():
            types.extend(plugin.get_widget_types())
        return types

    def get_widget_type(self, slug: str) -> type[BaseWidget] | None:
        for cls in self.get_all_widget_types():
            if cls.slug == slug:
                return cls
        return None

    def get_sidebars(self) -> dict[str, Sidebar]:
        sidebars: dict[str, Sidebar] = {}
        for plugin in self._plugins.values():
            for sidebar in plugin.get_sidebars():
                sidebars.setdefault(sidebar.id, sidebar)
        return sidebars


registry = PluginRegistry()
