# apps/relatorios/urls.py

from django.urls import path
from . import views

app_name = 'relatorios'

urlpatterns = [
    # Dashboard GAP
    path('', views.dashboard, name='dashboard'),
    path('api/dashboard/', views.api_dashboard, name='api_dashboard'),

    # Relatórios com filtros
    path('lista/', views.relatorios, name='lista'),

    # Exportações
    path('exportar/csv/', views.exportar_csv, name='exportar_csv'),
    path('exportar/xlsx/', views.exportar_xlsx, name='exportar_xlsx'),
    path('exportar/pdf/', views.exportar_pdf, name='exportar_pdf'),
    path('exportar/html/', views.exportar_html, name='exportar_html'),
    path('exportar/whatsapp/', views.compartilhar_whatsapp, name='whatsapp'),
]
