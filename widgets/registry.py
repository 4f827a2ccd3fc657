from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from core.plugins import BaseWidget

from .instances import InstanceStore
from .placement import TEMPLATE_INSTANCE_NUMBER, split_widget_id


@dataclass
class ItemDescriptor:
    id: str
    base: str
    instance_number: int
    name: str
    description: str
    classname: str
    is_template: bool
    widget_type: type[BaseWidget] = field(repr=False)
    settings: Callable[[], dict | None] = field(repr=False)

    @property
    def has_output(self) -> bool:
        return not self.is_template

    def render(self, args: dict | None = None, request=None) -> str:
        if self.is_template:
            return ""
        return self.widget_type().render(self.settings() or {}, request=request, args=args)

    def render_form(self) -> str:
        return self.widget_type().render_form(self.instance_number, self.settings() or {})


def _descriptor(instances: InstanceStore, widget_type, number: int, is_template: bool):
    base = widget_type.slug

    def settings():
        if is_template:
            return None
        return instances.get_instance(base, number)

    return ItemDescriptor(
        id=f"{base}-{number}",
        base=base,
        instance_number=number,
        name=widget_type.label,
        description=widget_type.description,
        classname=widget_type().classname,
        is_template=is_template,
        widget_type=widget_type,
        settings=settings,
    )


def lookup_items(instances: InstanceStore | None = None) -> dict[str, ItemDescriptor]:
    """Every widget the site knows about, keyed by widget id.

    A widget type without any stored instance still shows up once, as its
    ``{base}-1`` template.
    """
    instances = instances or InstanceStore()
    items = {}
    for widget_type in instances.plugin_registry.get_all_widget_types():
        numbers = list(instances.all_instances(widget_type.slug))
        if not numbers:
            item = _descriptor(instances, widget_type, TEMPLATE_INSTANCE_NUMBER, True)
            items[item.id] = item
            continue
        for number in numbers:
            item = _descriptor(instances, widget_type, number, False)
            items[item.id] = item
    return items


def lookup_item(widget_id: str, instances: InstanceStore | None = None) -> ItemDescriptor | None:
    parts = split_widget_id(widget_id)
    if parts is None:
        return None
    return lookup_items(instances).get(widget_id)
