# apps/checknf/admin.py

from django.contrib import admin
from django.utils.html import format_html

from .models import NotaFiscal
from .utils import normalizar_status

CORES_STATUS = {
    'ENTREGUE': '#10B981',
    'PENDENTE': '#F59E0B',
    'CANCELADA': '#EF4444',
    'DEVOLVIDA': '#F97316',
}


@admin.register(NotaFiscal)
class NotaFiscalAdmin(admin.ModelAdmin):
    """Somente leitura: as notas vêm do sistema externo"""

    list_display = ['numero_nf', 'data_emissao', 'nome_do_cliente', 'fretista', 'placa', 'status_badge', 'valor_total']
    list_filter = ['uf', 'rede', 'situacao']
    search_fields = ['numero_nf', 'cliente', 'nome_fantasia', 'razao_social', 'fretista', 'placa']
    date_hierarchy = 'data_emissao'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def status_badge(self, obj):
        status = normalizar_status(obj.status)
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            CORES_STATUS.get(status, '#6B7280'), status
        )

    status_badge.short_description = 'Status'
