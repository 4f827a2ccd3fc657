from django.urls import path

from .views import (
    SidebarDetailView,
    SidebarListView,
    SidebarSchemaView,
    WidgetDetailView,
    WidgetListView,
    WidgetSchemaView,
)

app_name = "widgets"

urlpatterns = [
    path("sidebars/", SidebarListView.as_view(), name="sidebar-list"),
    path("sidebars/schema/", SidebarSchemaView.as_view(), name="sidebar-schema"),
    path("sidebars/<str:sidebar_id>/", SidebarDetailView.as_view(), name="sidebar-detail"),
    path("widgets/", WidgetListView.as_view(), name="widget-list"),
    path("widgets/schema/", WidgetSchemaView.as_view(), name="widget-schema"),
    path("widgets/<str:widget_id>/", WidgetDetailView.as_view(), name="widget-detail"),
]
