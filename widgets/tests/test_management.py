import json
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from widgets.instances import InstanceStore
from widgets.store import store_placement_map

SIDEBARS = [
    {"id": "sidebar-1", "name": "Primary Sidebar"},
    {"id": "sidebar-2", "name": "Footer"},
]


@override_settings(WIDGET_SIDEBARS=SIDEBARS)
class WidgetsListCommandTests(TestCase):
    def _call(self, *args):
        out = StringIO()
        call_command("widgets_list", *args, stdout=out)
        return out.getvalue()

    def test_no_widgets(self):
        self.assertIn("No placed widgets found.", self._call())

    def test_json_output(self):
        instances = InstanceStore()
        instances.create_instance("text", 2, {"title": "About"})
        instances.create_instance("links", 3, {})
        store_placement_map({"sidebar-1": ["text-2"], "sidebar-2": ["links-3", "ghost-1"]})

        rows = json.loads(self._call("--json"))
        self.assertEqual(
            rows,
            [
                {"sidebar": "sidebar-1", "position": 1, "widget": "text-2", "type": "text", "title": "About"},
                {"sidebar": "sidebar-2", "position": 1, "widget": "links-3", "type": "links", "title": ""},
                {"sidebar": "sidebar-2", "position": 2, "widget": "ghost-1", "type": "", "title": ""},
            ],
        )

    def test_table_output(self):
        InstanceStore().create_instance("text", 2, {"title": "About"})
        store_placement_map({"sidebar-1": ["text-2"]})
        lines = self._call().splitlines()
        self.assertEqual(lines[0].split(), ["SIDEBAR", "POSITION", "WIDGET", "TYPE", "TITLE"])
        self.assertEqual(lines[1].split(), ["sidebar-1", "1", "text-2", "text", "About"])

    def test_filter_by_sidebar(self):
        InstanceStore().create_instance("text", 2, {})
        store_placement_map({"sidebar-1": ["text-2"], "sidebar-2": []})
        self.assertEqual(json.loads(self._call("--sidebar", "sidebar-2", "--json")), [])

    def test_unknown_sidebar(self):
        with self.assertRaisesMessage(CommandError, "No registered sidebar found for id 'nope'."):
            self._call("--sidebar", "nope")
