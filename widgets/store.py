import copy

from core.plugins import Sidebar, registry

from .models import Option, SidebarPlacement
from .placement import PlacementMap


def read_option(key: str, default=None):
    option = Option.objects.filter(key=key).only("value").first()
    if option is None:
        return copy.deepcopy(default)
    return option.value


def write_option(key: str, value) -> None:
    Option.objects.update_or_create(key=key, defaults={"value": value})


def lookup_containers() -> dict[str, Sidebar]:
    return registry.get_sidebars()


def lookup_placement_map() -> PlacementMap:
    placement: PlacementMap = {}
    for row in SidebarPlacement.objects.all():
        if isinstance(row.widget_ids, list):
            placement[row.sidebar_id] = [str(widget_id) for widget_id in row.widget_ids]
    return placement


def store_placement_map(placement: PlacementMap, sidebar_ids=None) -> None:
    """Persist the sequences of ``sidebar_ids`` (every sidebar in the map when None)."""
    if sidebar_ids is None:
        sidebar_ids = list(placement)
    for sidebar_id in sidebar_ids:
        SidebarPlacement.objects.update_or_create(
            sidebar_id=sidebar_id,
            defaults={"widget_ids": list(placement.get(sidebar_id, []))},
        )
