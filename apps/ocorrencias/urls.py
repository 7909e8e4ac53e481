# apps/ocorrencias/urls.py

from django.urls import path
from . import views

app_name = 'ocorrencias'

urlpatterns = [
    # Lista com filtros (HTMX devolve só a tabela)
    path('', views.lista_ocorrencias, name='lista'),

    # Cadastro e edição
    path('nova/', views.nova_ocorrencia, name='nova'),
    path('<int:ocorrencia_id>/editar/', views.editar_ocorrencia, name='editar'),

    # Ações rápidas da lista
    path('<int:ocorrencia_id>/status/', views.alternar_status, name='alternar_status'),
    path('<int:ocorrencia_id>/excluir/', views.excluir_ocorrencia, name='excluir'),

    # Autopreenchimento do cliente
    path('api/cliente/', views.api_cliente, name='api_cliente'),
]
