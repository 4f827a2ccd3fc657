from django.conf import settings
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('api/widgets/v1/', include('widgets.urls')),
    path('admin/', admin.site.urls),
]

if settings.DEBUG:
    from debug_toolbar.toolbar import debug_toolbar_urls

    urlpatterns += debug_toolbar_urls()
