from django.contrib import admin

from .models import Option, SidebarPlacement

admin.site.register(Option)
admin.site.register(SidebarPlacement)
