from django.contrib import admin

from .models import RequestErrorLog


@admin.register(RequestErrorLog)
class RequestErrorLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "source", "method", "path", "status_code", "error")
    list_filter = ("source", "status_code")
    search_fields = ("path", "error")
    readonly_fields = [field.name for field in RequestErrorLog._meta.fields]
