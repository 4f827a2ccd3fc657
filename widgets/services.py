"""Sidebar and widget operations behind the REST endpoints.

Every mutation computes the complete next placement state under the sidebar
locks before anything is written, then persists settings and placement in a
single transaction.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager

from django.db import transaction

from core.plugins import Sidebar

from . import store
from .errors import InvalidReference
from .form_schema import form_schema_for
from .instances import InstanceStore, type_lock_id
from .placement import (
    PlacementMap,
    check_invariants,
    container_locks,
    find_container,
    insert,
    move,
    remove,
)
from .registry import ItemDescriptor, lookup_item, lookup_items

logger = logging.getLogger(__name__)

DEFAULT_POSITION = 1
DEFAULT_SIDEBAR = Sidebar(id="")


def sidebar_json(sidebar: Sidebar, placement: PlacementMap) -> dict:
    data = sidebar.as_dict()
    data["active_widgets"] = list(placement.get(sidebar.id, []))
    return data


def widget_json(
    item: ItemDescriptor,
    placement: PlacementMap,
    sidebars: dict[str, Sidebar],
    request=None,
) -> dict:
    in_sidebar = find_container(placement, item.id)
    sidebar = sidebars.get(in_sidebar) if in_sidebar else None
    if sidebar is not None:
        args = sidebar.widget_args(item.id, item.classname)
        sidebar_params = sidebar.as_dict()
        sidebar_params["before_widget"] = args["before_widget"]
    else:
        args = DEFAULT_SIDEBAR.widget_args(item.id, item.classname)
        sidebar_params = None

    try:
        output = item.render(args, request=request)
    except Exception:
        logger.exception("Widget %s failed to render", item.id)
        output = ""

    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "classname": item.classname,
        "base": item.base,
        "in_sidebar": in_sidebar,
        "sidebar_params": sidebar_params,
        "has_output": item.has_output,
        "instance_number": item.instance_number,
        "instance": item.settings(),
        "widget_output": output,
    }


def list_sidebars() -> list[dict]:
    placement = store.lookup_placement_map()
    return [sidebar_json(s, placement) for s in store.lookup_containers().values()]


def get_sidebar(sidebar_id: str) -> dict:
    sidebar = store.lookup_containers().get(sidebar_id)
    if sidebar is None:
        raise InvalidReference("Sidebar ID provided is not valid. Please modify request.")
    return sidebar_json(sidebar, store.lookup_placement_map())


def list_widgets(request=None) -> list[dict]:
    placement = store.lookup_placement_map()
    sidebars = store.lookup_containers()
    return [
        widget_json(item, placement, sidebars, request=request)
        for item in lookup_items().values()
    ]


def _get_item(widget_id: str, instances: InstanceStore | None = None) -> ItemDescriptor:
    item = lookup_item(widget_id, instances)
    if item is None:
        raise InvalidReference("Invalid widget ID was provided.")
    return item


def get_widget(widget_id: str, request=None) -> dict:
    item = _get_item(widget_id)
    return widget_json(item, store.lookup_placement_map(), store.lookup_containers(), request)


def _require_sidebar(sidebar_id: str) -> None:
    if sidebar_id not in store.lookup_containers():
        raise InvalidReference("Invalid sidebar ID was provided.")


@contextmanager
def _placement_for_update(widget_id: str, *lock_ids):
    """Yield ``(placement, source_sidebar)`` with the widget's sidebar and
    ``lock_ids`` locked.

    The widget's sidebar is looked up without a lock first, so it is checked
    again once the locks are held.
    """
    while True:
        source = find_container(store.lookup_placement_map(), widget_id)
        with container_locks.hold(source, *lock_ids):
            placement = store.lookup_placement_map()
            if find_container(placement, widget_id) != source:
                continue
            yield placement, source
            return


def create_widget(base: str, sidebar_id: str, position: int = DEFAULT_POSITION, request=None) -> dict:
    instances = InstanceStore()
    if instances.plugin_registry.get_widget_type(base) is None:
        raise InvalidReference("Invalid widget ID or sidebar ID was provided.")
    sidebars = store.lookup_containers()
    if sidebar_id not in sidebars:
        raise InvalidReference("Invalid widget ID or sidebar ID was provided.")

    with container_locks.hold(sidebar_id, type_lock_id(base)):
        number = instances.next_instance(base)
        widget_id = f"{base}-{number}"
        placement = insert(store.lookup_placement_map(), sidebar_id, widget_id, position)
        check_invariants(placement)
        with transaction.atomic():
            instances.create_instance(base, number)
            store.store_placement_map(placement, [sidebar_id])

    logger.info(
        "Widget created",
        extra={"widget_id": widget_id, "sidebar_id": sidebar_id, "sidebar_position": position},
    )
    item = _get_item(widget_id, instances)
    return widget_json(item, placement, sidebars, request=request)


def update_widget(
    widget_id: str,
    field_updates: dict,
    sidebar_id: str | None = None,
    position: int | None = None,
    request=None,
) -> dict:
    instances = InstanceStore()
    item = _get_item(widget_id, instances)
    if sidebar_id is not None:
        _require_sidebar(sidebar_id)

    locked = _placement_for_update(item.id, sidebar_id, type_lock_id(item.base))
    with locked as (placement, source):
        touched = []
        if sidebar_id is not None:
            move(placement, item.id, sidebar_id, DEFAULT_POSITION if position is None else position)
            touched = [source, sidebar_id]
        elif position is not None:
            if source is None:
                raise InvalidReference(
                    "Widget is not in a sidebar; provide sidebar_id to place it."
                )
            move(placement, item.id, source, position)
            touched = [source]
        check_invariants(placement)
        with transaction.atomic():
            instances.update_instance(item.base, item.instance_number, field_updates)
            if touched:
                store.store_placement_map(placement, sorted({t for t in touched if t}))

    logger.info(
        "Widget updated",
        extra={"widget_id": item.id, "sidebar_id": sidebar_id, "sidebar_position": position},
    )
    return widget_json(item, placement, store.lookup_containers(), request=request)


def delete_widget(widget_id: str, request=None) -> dict:
    instances = InstanceStore()
    item = _get_item(widget_id, instances)
    sidebars = store.lookup_containers()

    with _placement_for_update(item.id, type_lock_id(item.base)) as (placement, source):
        previous = widget_json(item, placement, sidebars, request=request)
        remove(placement, item.id)
        with transaction.atomic():
            if source is not None:
                store.store_placement_map(placement, [source])
            instances.delete_instance(item.base, item.instance_number)

    logger.info("Widget deleted", extra={"widget_id": item.id, "sidebar_id": source})
    return {"deleted": True, "previous": previous}


def sidebar_schema() -> dict:
    string = {"type": "string", "context": ["view", "edit", "embed"]}
    return {
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": "sidebar",
        "type": "object",
        "properties": {
            "id": {**string, "description": "Sidebar ID."},
            "name": {**string, "description": "Name of the sidebar."},
            "description": {**string, "description": "Description of the sidebar's purpose."},
            "classname": {**string, "description": "CSS class for the sidebar."},
            "before_widget": {**string, "description": "HTML output before the widget."},
            "after_widget": {**string, "description": "HTML output after the widget."},
            "before_title": {**string, "description": "HTML output before the widget title."},
            "after_title": {**string, "description": "HTML output after the widget title."},
            "active_widgets": {
                "type": "array",
                "description": "Widget IDs in the order they are shown in the sidebar.",
                "context": ["view", "edit", "embed"],
            },
        },
    }


def widget_schema() -> dict:
    context = ["view", "edit", "embed"]
    instances = InstanceStore()
    return {
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": "widget",
        "type": "object",
        "properties": {
            "id": {"type": "string", "description": "Unique ID of the widget.", "context": context},
            "name": {"type": "string", "description": "Name of the widget type.", "context": context},
            "description": {"type": "string", "description": "Description of the widget's purpose.", "context": context},
            "classname": {"type": "string", "description": "CSS class name for the widget.", "context": context},
            "base": {"type": "string", "description": "Widget type the instance belongs to.", "context": context},
            "in_sidebar": {
                "anyOf": [{"type": "string"}, {"type": "null"}],
                "description": "Sidebar the widget is in, null when unplaced.",
                "context": context,
            },
            "sidebar_params": {"type": ["object", "null"], "description": "Sidebar parameters used for rendering the widget.", "context": context},
            "has_output": {"type": "boolean", "description": "Whether the widget will render or not.", "context": context},
            "instance_number": {"type": "integer", "description": "Instance number of the widget.", "context": context},
            "instance": {"type": ["object", "null"], "description": "Settings of the widget instance.", "context": context},
            "widget_output": {"type": "string", "description": "Rendered output of the widget in its sidebar.", "context": context},
        },
        "instance_schemas": {
            widget_type.slug: form_schema_for(widget_type)
            for widget_type in instances.plugin_registry.get_all_widget_types()
        },
    }
