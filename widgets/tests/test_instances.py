"""Tests for InstanceStore and the item registry built on top of it."""
from django.test import TestCase

from core.plugins import PluginRegistry
from widgets.errors import NotFound
from widgets.instances import LAST_NUMBER_KEY, InstanceStore, option_key
from widgets.plugin import WidgetsPlugin
from widgets.registry import lookup_item, lookup_items
from widgets.store import read_option, write_option


def _store():
    plugins = PluginRegistry()
    plugins.register(WidgetsPlugin())
    return InstanceStore(plugin_registry=plugins)


class OptionStoreTests(TestCase):
    def test_missing_option_returns_default_copy(self):
        default = {"a": []}
        value = read_option("nope", default)
        value["a"].append(1)
        self.assertEqual(default, {"a": []})

    def test_write_then_read(self):
        write_option("color", {"value": "blue"})
        write_option("color", {"value": "red"})
        self.assertEqual(read_option("color"), {"value": "red"})


class CreateInstanceTests(TestCase):
    def setUp(self):
        self.instances = _store()

    def test_first_instance_seeded_from_form(self):
        record = self.instances.create_instance("text", 2)
        self.assertEqual(record, {"title": "", "content": ""})
        stored = read_option(option_key("text"))
        self.assertEqual(stored["2"], {"title": "", "content": ""})
        self.assertEqual(stored["_multiwidget"], 1)

    def test_later_instances_start_empty(self):
        self.instances.create_instance("text", 2)
        self.assertEqual(self.instances.create_instance("text", 3), {})

    def test_only_first_ever_instance_is_seeded(self):
        self.instances.create_instance("text", 2)
        self.instances.delete_instance("text", 2)
        self.assertEqual(self.instances.all_instances("text"), {})
        self.assertEqual(self.instances.create_instance("text", 3), {})

    def test_last_number_never_decreases(self):
        self.instances.create_instance("text", 5)
        self.instances.create_instance("text", 3, {})
        self.assertEqual(self.instances.last_issued("text"), 5)

    def test_explicit_seed_fields(self):
        record = self.instances.create_instance("links", 2, {"title": "Elsewhere"})
        self.assertEqual(record, {"title": "Elsewhere"})

    def test_unregistered_type_seeds_nothing(self):
        self.assertEqual(self.instances.create_instance("ghost", 2), {})


class AllInstancesTests(TestCase):
    def setUp(self):
        self.instances = _store()

    def test_reserved_keys_are_not_instances(self):
        write_option(
            option_key("text"),
            {"0": {"title": "meta"}, "_multiwidget": 1, "_last_number": 3, "3": {"title": "c"}, "2": {"title": "b"}},
        )
        self.assertEqual(
            self.instances.all_instances("text"),
            {2: {"title": "b"}, 3: {"title": "c"}},
        )

    def test_non_dict_collection_is_empty(self):
        write_option(option_key("text"), ["broken"])
        self.assertEqual(self.instances.all_instances("text"), {})


class UpdateInstanceTests(TestCase):
    def setUp(self):
        self.instances = _store()
        self.instances.create_instance("text", 2)

    def test_merges_known_fields(self):
        record = self.instances.update_instance("text", 2, {"title": "Hello"})
        self.assertEqual(record, {"title": "Hello", "content": ""})
        self.assertEqual(self.instances.get_instance("text", 2)["title"], "Hello")

    def test_unknown_fields_ignored(self):
        record = self.instances.update_instance("text", 2, {"bogus": "x", "content": "Hi"})
        self.assertNotIn("bogus", record)
        self.assertEqual(record["content"], "Hi")

    def test_empty_instance_accepts_form_fields(self):
        self.instances.create_instance("text", 3)
        record = self.instances.update_instance("text", 3, {"title": "Second", "bogus": 1})
        self.assertEqual(record, {"title": "Second"})

    def test_missing_instance_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.instances.update_instance("text", 9, {"title": "x"})

    def test_reserved_slot_is_not_found(self):
        write_option(option_key("links"), {"0": {}, "_multiwidget": 1})
        with self.assertRaises(NotFound):
            self.instances.update_instance("links", 0, {"title": "x"})


class DeleteInstanceTests(TestCase):
    def setUp(self):
        self.instances = _store()
        self.instances.create_instance("text", 2)

    def test_delete_removes_record(self):
        self.instances.delete_instance("text", 2)
        self.assertIsNone(self.instances.get_instance("text", 2))
        self.assertEqual(read_option(option_key("text")), {"_multiwidget": 1, LAST_NUMBER_KEY: 2})

    def test_delete_is_idempotent(self):
        self.instances.delete_instance("text", 2)
        self.instances.delete_instance("text", 2)
        self.instances.delete_instance("links", 7)
        self.assertIsNone(read_option(option_key("links")))


class NextInstanceTests(TestCase):
    def setUp(self):
        self.instances = _store()

    def test_no_instances_gives_two(self):
        self.assertEqual(self.instances.next_instance("text"), 2)

    def test_follows_highest_instance(self):
        self.instances.create_instance("text", 2)
        self.instances.create_instance("text", 5)
        self.assertEqual(self.instances.next_instance("text"), 6)
        self.assertEqual(self.instances.next_instance("links"), 2)

    def test_deleted_numbers_are_not_reused(self):
        self.instances.create_instance("text", 2)
        self.instances.create_instance("text", 3)
        self.instances.delete_instance("text", 3)
        self.assertEqual(self.instances.next_instance("text"), 4)
        self.assertEqual(read_option(option_key("text"))[LAST_NUMBER_KEY], 3)
        self.assertIsNone(self.instances.last_issued("links"))


class ItemRegistryTests(TestCase):
    def setUp(self):
        self.instances = _store()

    def test_template_items_for_unconfigured_types(self):
        items = lookup_items(self.instances)
        self.assertEqual(set(items), {"text-1", "links-1"})
        template = items["text-1"]
        self.assertTrue(template.is_template)
        self.assertFalse(template.has_output)
        self.assertIsNone(template.settings())
        self.assertEqual(template.render(), "")

    def test_configured_instances_replace_template(self):
        self.instances.create_instance("text", 2, {"title": "Hi", "content": "Body"})
        self.instances.create_instance("text", 4, {})
        items = lookup_items(self.instances)
        self.assertEqual(set(items), {"text-2", "text-4", "links-1"})
        item = items["text-2"]
        self.assertEqual(item.base, "text")
        self.assertEqual(item.instance_number, 2)
        self.assertEqual(item.classname, "widget_text")
        self.assertEqual(item.settings(), {"title": "Hi", "content": "Body"})

    def test_settings_accessor_reads_live_value(self):
        self.instances.create_instance("text", 2)
        item = lookup_item("text-2", self.instances)
        self.instances.update_instance("text", 2, {"title": "Later"})
        self.assertEqual(item.settings()["title"], "Later")

    def test_render_and_form(self):
        self.instances.create_instance("text", 2, {"title": "Hi", "content": "**bold**"})
        item = lookup_item("text-2", self.instances)
        html = item.render({"before_widget": "<aside>", "after_widget": "</aside>"})
        self.assertIn("<aside>", html)
        self.assertIn("<strong>bold</strong>", html)
        form = item.render_form()
        self.assertIn('id="widget-text-2-title"', form)
        self.assertIn('value="Hi"', form)

    def test_lookup_item_unknown(self):
        self.assertIsNone(lookup_item("text-9", self.instances))
        self.assertIsNone(lookup_item("garbage", self.instances))
