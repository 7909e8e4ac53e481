# apps/core/admin.py

from django.contrib import admin
from django.utils.html import format_html

from .models import Cliente, Motivo, Setor, StatusOcorrencia, TipoColaborador, TipoOcorrencia


def badge_ativo(ativo):
    """Badge verde/cinza para o campo ativo"""
    cor = '#10B981' if ativo else '#6B7280'
    return format_html(
        '<span style="background-color: {}; color: white; '
        'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
        cor, 'Ativo' if ativo else 'Inativo'
    )


class CadastroAdmin(admin.ModelAdmin):
    """Admin compartilhado pelos cadastros auxiliares"""

    list_display = ['nome', 'ativo_badge', 'criado_em']
    list_filter = ['ativo']
    search_fields = ['nome']
    readonly_fields = ['criado_em', 'atualizado_em']
    actions = ['ativar', 'desativar']

    def ativo_badge(self, obj):
        return badge_ativo(obj.ativo)

    ativo_badge.short_description = 'Situação'

    def ativar(self, request, queryset):
        atualizados = queryset.update(ativo=True)
        self.message_user(request, f'{atualizados} item(ns) ativado(s).')

    ativar.short_description = 'Ativar selecionados'

    def desativar(self, request, queryset):
        atualizados = queryset.update(ativo=False)
        self.message_user(request, f'{atualizados} item(ns) desativado(s).')

    desativar.short_description = 'Desativar selecionados'


admin.site.register(Setor, CadastroAdmin)
admin.site.register(Motivo, CadastroAdmin)
admin.site.register(TipoOcorrencia, CadastroAdmin)
admin.site.register(TipoColaborador, CadastroAdmin)
admin.site.register(StatusOcorrencia, CadastroAdmin)


@admin.register(Cliente)
class ClienteAdmin(admin.ModelAdmin):
    """Admin da base de clientes"""

    list_display = ['cliente', 'rede', 'cidade', 'uf', 'vendedor', 'ativo_badge']
    list_filter = ['ativo', 'uf', 'rede']
    search_fields = ['cliente', 'rede', 'cidade', 'vendedor']
    readonly_fields = ['criado_em', 'atualizado_em']

    fieldsets = (
        ('Cliente', {
            'fields': ('cliente', 'rede', 'ativo')
        }),
        ('Localização e Vendas', {
            'fields': ('cidade', 'uf', 'vendedor')
        }),
        ('Datas', {
            'fields': ('criado_em', 'atualizado_em'),
            'classes': ('collapse',)
        })
    )

    def ativo_badge(self, obj):
        return badge_ativo(obj.ativo)

    ativo_badge.short_description = 'Situação'
