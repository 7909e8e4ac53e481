# apps/ocorrencias/admin.py

from django.contrib import admin
from django.utils.html import format_html

from apps.core.utils import formatar_moeda

from .models import STATUS_FINALIZADO, Ocorrencia


@admin.register(Ocorrencia)
class OcorrenciaAdmin(admin.ModelAdmin):
    """Admin das ocorrências (GAPs)"""

    list_display = [
        'id', 'data_ocorrencia', 'setor', 'tipo_ocorrencia', 'motivo',
        'cliente', 'valor_formatado', 'status_badge', 'reincidencia',
    ]
    list_filter = ['status', 'setor', 'tipo_ocorrencia', 'reincidencia', 'uf']
    search_fields = ['detalhamento', 'cliente', 'rede', 'vendedor', 'nf_anterior', 'nf_substituta']
    readonly_fields = ['data_criacao', 'data_conclusao', 'atualizado_em']
    date_hierarchy = 'data_ocorrencia'

    fieldsets = (
        ('Classificação', {
            'fields': ('data_ocorrencia', 'setor', 'tipo_colaborador', 'tipo_ocorrencia', 'motivo')
        }),
        ('Cliente', {
            'fields': ('cliente', 'rede', 'cidade', 'uf', 'vendedor')
        }),
        ('Detalhes', {
            'fields': ('valor', 'nf_anterior', 'nf_substituta', 'detalhamento', 'tratativa', 'resultado')
        }),
        ('Situação', {
            'fields': ('status', 'reincidencia', 'data_criacao', 'data_conclusao', 'atualizado_em')
        }),
    )

    def valor_formatado(self, obj):
        return formatar_moeda(obj.valor) if obj.valor else '-'

    valor_formatado.short_description = 'Valor'

    def status_badge(self, obj):
        cor = '#10B981' if obj.status == STATUS_FINALIZADO else '#F59E0B'
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cor, obj.status
        )

    status_badge.short_description = 'Status'
