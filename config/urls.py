# config/urls.py

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.views.generic import RedirectView

from apps.core import views as core_views

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Aplicações principais
    path('', include('apps.core.urls')),
    path('ocorrencias/', include('apps.ocorrencias.urls')),
    path('relatorios/', include('apps.relatorios.urls')),
    path('checknf/', include('apps.checknf.urls')),

    # Rotas de integração com a planilha
    path('api/', include('apps.ocorrencias.api_urls')),

    # Health check no formato consumido pelo painel CHECKNF
    path('api/health', core_views.health_check, name='api_health'),

    # Redirecionamentos úteis
    path('dashboard/', RedirectView.as_view(pattern_name='relatorios:dashboard', permanent=False)),
]

# Debug Toolbar se disponível
if settings.DEBUG:
    try:
        import debug_toolbar

        urlpatterns = [
                          path('__debug__/', include(debug_toolbar.urls)),
                      ] + urlpatterns
    except ImportError:
        pass

# Customizar títulos do admin
admin.site.site_header = 'REGGAP Admin'
admin.site.site_title = 'REGGAP'
admin.site.index_title = 'Administração do Sistema'
