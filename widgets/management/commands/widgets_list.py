import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from widgets.registry import lookup_items
from widgets.store import lookup_containers, lookup_placement_map


class Command(BaseCommand):
    help = "List sidebars and the widgets placed in them, in display order."

    def add_arguments(self, parser):
        parser.add_argument("--sidebar", help="Limit output to a single sidebar id.")
        parser.add_argument("--json", action="store_true", help="Emit JSON output.")

    def handle(self, *args, **options):
        sidebar_id = options.get("sidebar")
        as_json = options.get("json", False)

        sidebars = lookup_containers()
        if sidebar_id:
            if sidebar_id not in sidebars:
                raise CommandError(f"No registered sidebar found for id '{sidebar_id}'.")
            sidebars = {sidebar_id: sidebars[sidebar_id]}

        placement = lookup_placement_map()
        items = lookup_items()
        rows = []
        for sid in sorted(sidebars):
            for position, widget_id in enumerate(placement.get(sid, []), start=1):
                rows.append(self._serialize_placement(sid, position, widget_id, items))

        if as_json:
            self.stdout.write(json.dumps(rows))
            return

        if not rows:
            self.stdout.write("No placed widgets found.")
            return

        headers = ["SIDEBAR", "POSITION", "WIDGET", "TYPE", "TITLE"]
        widths = {header: len(header) for header in headers}
        for row in rows:
            widths["SIDEBAR"] = max(widths["SIDEBAR"], len(row["sidebar"]))
            widths["POSITION"] = max(widths["POSITION"], len(str(row["position"])))
            widths["WIDGET"] = max(widths["WIDGET"], len(row["widget"]))
            widths["TYPE"] = max(widths["TYPE"], len(row["type"]))
            widths["TITLE"] = max(widths["TITLE"], len(row["title"]))

        format_str = "  ".join(f"{{{header}:<{widths[header]}}}" for header in headers)
        self.stdout.write(format_str.format(**{header: header for header in headers}))
        for row in rows:
            self.stdout.write(
                format_str.format(
                    SIDEBAR=row["sidebar"],
                    POSITION=row["position"],
                    WIDGET=row["widget"],
                    TYPE=row["type"],
                    TITLE=row["title"],
                )
            )

    def _serialize_placement(self, sidebar_id, position, widget_id, items) -> dict[str, Any]:
        item = items.get(widget_id)
        settings = (item.settings() if item else None) or {}
        return {
            "sidebar": sidebar_id,
            "position": position,
            "widget": widget_id,
            "type": item.base if item else "",
            "title": str(settings.get("title") or ""),
        }
