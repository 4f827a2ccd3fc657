from django.db import models


class Option(models.Model):
    key = models.CharField(max_length=191, unique=True)
    value = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return self.key


class SidebarPlacement(models.Model):
    sidebar_id = models.CharField(max_length=64, unique=True)
    widget_ids = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sidebar_id"]

    def __str__(self):
        return f"{self.sidebar_id} ({len(self.widget_ids or [])} widgets)"
