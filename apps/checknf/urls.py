# apps/checknf/urls.py

from django.urls import path
from . import views

app_name = 'checknf'

urlpatterns = [
    # Dashboard de notas fiscais
    path('', views.dashboard, name='dashboard'),
    path('api/dashboard/', views.api_dashboard, name='api_dashboard'),
    path('api/filtros/', views.api_filtros, name='api_filtros'),

    # Relatório de pendentes
    path('relatorio/', views.relatorio, name='relatorio'),
    path('relatorio/csv/', views.exportar_csv, name='exportar_csv'),
    path('relatorio/xlsx/', views.exportar_xlsx, name='exportar_xlsx'),
    path('relatorio/pdf/', views.exportar_pdf, name='exportar_pdf'),
    path('relatorio/html/', views.exportar_html, name='exportar_html'),
    path('relatorio/whatsapp/', views.compartilhar_whatsapp, name='whatsapp'),
]
