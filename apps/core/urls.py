# apps/core/urls.py

from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # === ACESSO ===
    # Senha única compartilhada
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),

    # Raiz vai para o dashboard
    path('', views.inicio, name='home'),

    # === MONITORAMENTO ===
    path('health/', views.health_check, name='health'),

    # === CONFIGURAÇÕES ===
    path('configuracoes/', views.configuracoes, name='configuracoes'),

    # Clientes (antes da rota genérica)
    path('configuracoes/clientes/', views.clientes, name='clientes'),
    path('configuracoes/clientes/importar/', views.importar_clientes_view, name='importar_clientes'),
    path('configuracoes/clientes/exportar/', views.exportar_clientes_view, name='exportar_clientes'),
    path('configuracoes/clientes/<int:cliente_id>/alternar/', views.alternar_cliente, name='alternar_cliente'),
    path('configuracoes/clientes/<int:cliente_id>/excluir/', views.excluir_cliente, name='excluir_cliente'),

    # Setores, motivos, tipos e status
    path('configuracoes/<slug:tipo>/', views.configuracoes_tipo, name='configuracoes_tipo'),
    path('configuracoes/<slug:tipo>/<int:item_id>/alternar/', views.alternar_cadastro, name='alternar_cadastro'),
    path('configuracoes/<slug:tipo>/<int:item_id>/excluir/', views.excluir_cadastro, name='excluir_cadastro'),
]
