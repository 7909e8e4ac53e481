# apps/core/templatetags/reggap.py

from django import template

from apps.core.utils import formatar_data, formatar_data_completa, formatar_moeda

register = template.Library()


@register.filter
def moeda(valor):
    """{{ valor|moeda }} -> R$ 1.234,56"""
    return formatar_moeda(valor)


@register.filter
def data_curta(valor):
    return formatar_data(valor)


@register.filter
def data_br(valor):
    return formatar_data_completa(valor)


@register.filter
def rotulo(texto):
    """MOTIVO_X -> MOTIVO X"""
    return (texto or '').replace('_', ' ')


@register.filter
def get_item(dicionario, chave):
    return dicionario.get(chave) if dicionario else None


def _querystring(request, **alteracoes):
    parametros = request.GET.copy()
    for chave, valor in alteracoes.items():
        parametros[chave] = valor
    return f"?{parametros.urlencode()}"


@register.simple_tag(takes_context=True)
def url_pagina(context, numero):
    """Querystring atual trocando apenas o número da página"""
    return _querystring(context['request'], page=numero)


@register.simple_tag(takes_context=True)
def url_ordenacao(context, prefixo, coluna):
    """
    Clique no cabeçalho: mesma coluna alterna asc/desc, outra coluna começa em asc
    {% url_ordenacao 'atrasos' 'valor' %}
    """
    request = context['request']
    campo, direcao = f'{prefixo}_ordenar', f'{prefixo}_ordem'
    mesma_coluna = request.GET.get(campo) == coluna
    ordem = 'desc' if mesma_coluna and request.GET.get(direcao, 'asc') == 'asc' else 'asc'
    return _querystring(request, **{campo: coluna, direcao: ordem})
