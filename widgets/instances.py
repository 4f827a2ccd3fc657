"""Per-instance settings records of widget types.

Each widget type keeps all of its instances in one option, keyed by instance
number, next to two reserved entries that are never instances: the
``_multiwidget`` marker and ``_last_number``, the highest number ever issued
for the type. Callers that write a collection hold the ``widget-type:{base}``
lock from ``type_lock_id``.
"""
import logging

from . import store
from .errors import NotFound
from .form_schema import form_fields_for
from .placement import allocate_instance_number

logger = logging.getLogger(__name__)

MULTIWIDGET_KEY = "_multiwidget"
LAST_NUMBER_KEY = "_last_number"


def option_key(base: str) -> str:
    return f"widget_{base}"


def type_lock_id(base: str) -> str:
    return f"widget-type:{base}"


class InstanceStore:
    def __init__(self, plugin_registry=None, read_option=None, write_option=None):
        if plugin_registry is None:
            from core.plugins import registry as plugin_registry
        self.plugin_registry = plugin_registry
        self.read_option = read_option or store.read_option
        self.write_option = write_option or store.write_option

    def _collection(self, base: str) -> dict:
        collection = self.read_option(option_key(base), {})
        if not isinstance(collection, dict):
            return {}
        return collection

    def _save(self, base: str, collection: dict) -> None:
        collection[MULTIWIDGET_KEY] = 1
        self.write_option(option_key(base), collection)

    def all_instances(self, base: str) -> dict[int, dict]:
        instances = {}
        for key, record in self._collection(base).items():
            if key == MULTIWIDGET_KEY or not str(key).isdigit():
                continue
            if int(key) == 0:
                continue
            instances[int(key)] = record if isinstance(record, dict) else {}
        return dict(sorted(instances.items()))

    def get_instance(self, base: str, number: int) -> dict | None:
        return self.all_instances(base).get(number)

    def item_ids(self) -> list[str]:
        ids = []
        for widget_type in self.plugin_registry.get_all_widget_types():
            ids.extend(f"{widget_type.slug}-{n}" for n in self.all_instances(widget_type.slug))
        return ids

    def last_issued(self, base: str) -> int | None:
        number = self._collection(base).get(LAST_NUMBER_KEY)
        return number if isinstance(number, int) and not isinstance(number, bool) else None

    def next_instance(self, base: str) -> int:
        item_ids = self.item_ids()
        last_issued = self.last_issued(base)
        if last_issued is not None:
            # Deleted instances keep their number out of circulation.
            item_ids.append(f"{base}-{last_issued}")
        return allocate_instance_number(base, item_ids)

    def known_fields(self, base: str) -> set[str]:
        widget_type = self.plugin_registry.get_widget_type(base)
        if widget_type is None:
            return set()
        return set(form_fields_for(widget_type))

    def create_instance(self, base: str, number: int, seed_fields: dict | None = None) -> dict:
        collection = self._collection(base)
        last_issued = self.last_issued(base)
        if seed_fields is None:
            if last_issued is not None or self.all_instances(base):
                seed_fields = {}
            else:
                widget_type = self.plugin_registry.get_widget_type(base)
                seed_fields = form_fields_for(widget_type) if widget_type else {}
        record = dict(seed_fields)
        collection[str(number)] = record
        collection[LAST_NUMBER_KEY] = max(number, last_issued or 0)
        self._save(base, collection)
        logger.info(
            "Widget instance created",
            extra={"widget_base": base, "widget_number": number},
        )
        return record

    def update_instance(self, base: str, number: int, field_updates: dict) -> dict:
        collection = self._collection(base)
        record = collection.get(str(number))
        if number == 0 or not isinstance(record, dict):
            raise NotFound(f"Widget {base}-{number} has no settings.")
        allowed = set(record) | self.known_fields(base)
        for field, value in field_updates.items():
            if field in allowed:
                record[field] = value
        self._save(base, collection)
        return record

    def delete_instance(self, base: str, number: int) -> None:
        collection = self._collection(base)
        if number == 0 or collection.pop(str(number), None) is None:
            return
        self._save(base, collection)
        logger.info(
            "Widget instance deleted",
            extra={"widget_base": base, "widget_number": number},
        )
