# apps/ocorrencias/api_urls.py

from django.urls import path
from . import api_views

app_name = 'planilha'

urlpatterns = [
    # Espelho Google Sheets
    path('sheets/save', api_views.salvar_na_planilha, name='salvar'),
    path('sheets/update', api_views.atualizar_na_planilha, name='atualizar'),
    path('sheets/delete', api_views.excluir_da_planilha, name='excluir'),

    # Reexportação completa
    path('sync-sheets', api_views.sincronizar_planilha, name='sincronizar'),
]
