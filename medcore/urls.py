from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.views.generic import RedirectView

from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView
)

urlpatterns = [
    # Root URL - redirect to API docs
    path('', RedirectView.as_view(url='/api/docs/', permanent=False), name='home'),

    path('admin/', admin.site.urls),

    # API endpoints
    path('api/records/', include('apps.records.urls')),
    path('api/sync/', include('apps.storage.urls')),
    path('api/hospital/', include('apps.hospital.urls')),
    path('api/registry/', include('apps.registry.urls')),
    path('api/billing/', include('apps.billing.urls')),
    path('api/commissions/', include('apps.commissions.urls')),
    path('api/recycle-bin/', include('apps.recycle_bin.urls')),
    path('api/backup/', include('apps.backup.urls')),

    # OpenAPI schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),

    # Swagger UI (Interactive documentation)
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # ReDoc UI (Alternative documentation)
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]

# Serve static and media files in development
if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
