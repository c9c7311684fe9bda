"""
URL configuration for the product management backend.

Every app mounts its routes under /api/. Unknown /api/ paths and server
errors render as problem details through the handlers below.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Product Management Admin Panel"
admin.site.site_title = "Product Management Admin Portal"
admin.site.index_title = "Welcome to the Product Management Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('backend.core.urls')),
    path('api/', include('backend.catalog.urls')),
    path('api/', include('backend.sales.urls')),
    path('api/', include('backend.purchasing.urls')),
    path('api/', include('backend.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]

handler404 = 'backend.core.views.problem_not_found'
handler500 = 'backend.core.views.problem_server_error'
