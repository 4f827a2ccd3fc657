from __future__ import annotations

import logging

import markdown
from django.template.loader import render_to_string

from core.plugins import BaseWidget

logger = logging.getLogger(__name__)


class TextWidget(BaseWidget):
    slug = "text"
    label = "Text / HTML Block"
    description = "Arbitrary text rendered from Markdown."
    template_name = "widgets/text_widget.html"
    config_schema = {
        "fields": {
            "title": {"type": "string", "label": "Title"},
            "content": {"type": "text", "label": "Content (Markdown)"},
        }
    }

    def render(self, config: dict, request=None, args: dict | None = None) -> str:
        md = markdown.Markdown(extensions=["fenced_code"])
        content_html = md.convert(config.get("content") or "")
        return render_to_string(
            self.template_name,
            {
                "title": config.get("title", ""),
                "content_html": content_html,
                "args": args or {},
            },
            request=request,
        )


def parse_links(raw: str) -> list[dict]:
    """Parse ``Label | https://url`` lines, skipping anything without a URL."""
    links = []
    for line in (raw or "").splitlines():
        label, sep, url = line.partition("|")
        if not sep:
            label, url = line, line
        label, url = label.strip(), url.strip()
        if not url:
            continue
        links.append({"label": label or url, "url": url})
    return links


class LinksWidget(BaseWidget):
    slug = "links"
    label = "Links"
    description = "A list of links, one `Label | URL` per line."
    template_name = "widgets/links_widget.html"
    config_schema = {
        "fields": {
            "title": {"type": "string", "label": "Title"},
            "links": {"type": "text", "label": "Links"},
            "sort": {
                "type": "choice",
                "label": "Order",
                "choices": [("manual", "As entered"), ("label", "By label")],
                "default": "manual",
            },
            "new_window": {"type": "boolean", "label": "Open in a new window"},
        }
    }

    def render(self, config: dict, request=None, args: dict | None = None) -> str:
        links = parse_links(config.get("links", ""))
        if config.get("sort") == "label":
            links.sort(key=lambda link: link["label"].lower())
        return render_to_string(
            self.template_name,
            {
                "title": config.get("title", ""),
                "links": links,
                "new_window": bool(config.get("new_window")),
                "args": args or {},
            },
            request=request,
        )
