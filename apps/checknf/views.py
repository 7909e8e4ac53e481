# apps/checknf/views.py

import logging

from django.conf import settings
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_http_methods

from apps.core.acesso import acesso_requerido
from apps.core.exportacao import (
    gerar_pdf_tabela,
    gerar_xlsx,
    link_whatsapp,
    nome_arquivo,
    resposta_csv,
    resposta_pdf,
    resposta_xlsx,
)
from apps.core.utils import agora_brasil, formatar_moeda

from .utils import (
    CABECALHO_PENDENTES,
    COLUNAS_ATRASOS,
    COLUNAS_VENCIMENTOS,
    LARGURAS_PENDENTES,
    PERIODOS_NF,
    carregar_pendentes,
    descrever_periodo,
    extrair_filtros_nf,
    filtrar_notas,
    linhas_pendentes,
    linhas_pendentes_pdf,
    montar_dashboard_nf,
    montar_relatorio_pendentes,
    opcoes_filtros_nf,
    resolver_periodo,
    texto_whatsapp_pendentes,
)

logger = logging.getLogger(__name__)

PREFIXO_ARQUIVO = 'relatorio_pendentes_'
FORMATO_DATA_ARQUIVO = '%Y-%m-%d_%H%M'

PARAMETROS_ORDENACAO = ['atrasos_ordenar', 'atrasos_ordem', 'vencimentos_ordenar', 'vencimentos_ordem']


def _dados_dashboard(request):
    filtros = extrair_filtros_nf(request.GET)
    intervalo = resolver_periodo(filtros.get('periodo', ''), filtros.get('data_inicio', ''), filtros.get('data_fim', ''))
    registros = filtrar_notas(filtros, intervalo)

    ordenacao = {p: request.GET[p] for p in PARAMETROS_ORDENACAO if request.GET.get(p)}
    dados = montar_dashboard_nf(registros, request.GET.get('cliente_grafico', ''), ordenacao=ordenacao)
    return filtros, intervalo, dados


@acesso_requerido
def dashboard(request):
    """
    Dashboard de notas fiscais
    HTMX recebe apenas o bloco de indicadores e gráficos
    """
    filtros, intervalo, dados = _dados_dashboard(request)

    context = {
        'title': 'CHECKNF - Dashboard',
        'filtros': filtros,
        'intervalo': intervalo,
        'periodos': PERIODOS_NF,
        'cliente_grafico': request.GET.get('cliente_grafico', ''),
        'colunas_atrasos': COLUNAS_ATRASOS,
        'colunas_vencimentos': COLUNAS_VENCIMENTOS,
        'querystring': request.GET.urlencode(),
        **dados,
    }

    if request.htmx:
        return render(request, 'checknf/partials/dashboard_dados.html', context)

    context['opcoes'] = opcoes_filtros_nf()
    return render(request, 'checknf/dashboard.html', context)


@acesso_requerido
def api_dashboard(request):
    filtros, intervalo, dados = _dados_dashboard(request)
    return JsonResponse({'filtros': filtros, 'periodo': intervalo, **dados})


@acesso_requerido
def api_filtros(request):
    return JsonResponse(opcoes_filtros_nf())


# === RELATÓRIO DE PENDENTES ===

def _pendentes(request):
    filtros = extrair_filtros_nf(request.GET)
    todos, pendentes = carregar_pendentes(filtros)
    return filtros, todos, pendentes


@acesso_requerido
def relatorio(request):
    """
    Notas pendentes (máximo REGGAP_CHECKNF_MAX_REGISTROS), 100 por página
    """
    filtros, todos, pendentes = _pendentes(request)

    paginator = Paginator(pendentes, settings.REGGAP_CHECKNF_ITENS_POR_PAGINA)
    page_obj = paginator.get_page(request.GET.get('page'))

    context = {
        'title': 'CHECKNF - Relatório de Pendentes',
        'filtros': filtros,
        'periodos': PERIODOS_NF,
        'page_obj': page_obj,
        'total_filtrado': len(todos),
        'limite': settings.REGGAP_CHECKNF_MAX_REGISTROS,
        'querystring': request.GET.urlencode(),
        **montar_relatorio_pendentes(pendentes, todos),
    }

    if request.htmx:
        return render(request, 'checknf/partials/relatorio_tabela.html', context)

    context['opcoes'] = opcoes_filtros_nf()
    return render(request, 'checknf/relatorio.html', context)


@acesso_requerido
@require_http_methods(['GET'])
def exportar_csv(request):
    _, _, pendentes = _pendentes(request)
    logger.info("Exportando %s notas pendentes em CSV", len(pendentes))
    arquivo = nome_arquivo(PREFIXO_ARQUIVO, 'csv', FORMATO_DATA_ARQUIVO)
    return resposta_csv(arquivo, CABECALHO_PENDENTES, linhas_pendentes(pendentes))


@acesso_requerido
@require_http_methods(['GET'])
def exportar_xlsx(request):
    _, _, pendentes = _pendentes(request)
    logger.info("Exportando %s notas pendentes em Excel", len(pendentes))

    conteudo = gerar_xlsx(
        'Pendentes',
        CABECALHO_PENDENTES,
        linhas_pendentes(pendentes, valor_numerico=True),
        larguras=LARGURAS_PENDENTES,
        colunas_moeda=(6,),
    )
    return resposta_xlsx(nome_arquivo(PREFIXO_ARQUIVO, 'xlsx', FORMATO_DATA_ARQUIVO), conteudo)


@acesso_requerido
@require_http_methods(['GET'])
def exportar_pdf(request):
    filtros, todos, pendentes = _pendentes(request)
    logger.info("Exportando %s notas pendentes em PDF", len(pendentes))

    dados = montar_relatorio_pendentes(pendentes, todos)
    informacoes = [
        f"Período: {descrever_periodo(filtros)}",
        f"Gerado em: {agora_brasil().strftime('%d/%m/%Y %H:%M')}",
        f"Total de notas pendentes: {dados['estatisticas']['pendentes']}",
        f"Valor total pendente: {formatar_moeda(dados['estatisticas']['valorPendente'])}",
    ]

    conteudo = gerar_pdf_tabela(
        'RELATÓRIO DE NOTAS FISCAIS PENDENTES',
        CABECALHO_PENDENTES,
        linhas_pendentes_pdf(pendentes),
        informacoes=informacoes,
        larguras_mm=[22, 24, 50, 30, 20, 22, 28, 32, 12, 37],
        rodape=' '.join(dados['insights']),
    )
    return resposta_pdf(nome_arquivo(PREFIXO_ARQUIVO, 'pdf', FORMATO_DATA_ARQUIVO), conteudo)


@acesso_requerido
@require_http_methods(['GET'])
def exportar_html(request):
    """Relatório HTML autocontido; ?download=1 baixa como arquivo"""
    filtros, todos, pendentes = _pendentes(request)
    dados = montar_relatorio_pendentes(pendentes, todos)
    gerado_em = agora_brasil()

    graficos = {
        'clientes': {
            'labels': [item['name'] for item in dados['tops']['clientes']],
            'data': [item['value'] for item in dados['tops']['clientes']],
        },
        'fretistas': {
            'labels': [item['name'] for item in dados['tops']['fretistas']],
            'data': [item['count'] for item in dados['tops']['fretistas']],
        },
        'redes': {
            'labels': [item['name'] for item in dados['tops']['redes']],
            'data': [item['value'] for item in dados['tops']['redes']],
        },
        'por_data': {
            'labels': [item['name'] for item in dados['por_data']],
            'data': [item['count'] for item in dados['por_data']],
        },
    }

    context = {
        'titulo': f"Relatório de Notas Fiscais Pendentes - {gerado_em.strftime('%d/%m/%Y')}",
        'periodo': descrever_periodo(filtros),
        'gerado_em': gerado_em,
        'registros': pendentes[:100],
        'graficos': graficos,
        **dados,
    }
    response = render(request, 'checknf/relatorio_html.html', context)

    if request.GET.get('download'):
        arquivo = nome_arquivo(PREFIXO_ARQUIVO, 'html', FORMATO_DATA_ARQUIVO)
        response['Content-Disposition'] = f'attachment; filename="{arquivo}"'
    return response


@acesso_requerido
@require_http_methods(['GET'])
def compartilhar_whatsapp(request):
    filtros, todos, pendentes = _pendentes(request)
    estatisticas = montar_relatorio_pendentes(pendentes, todos)['estatisticas']
    return redirect(link_whatsapp(texto_whatsapp_pendentes(estatisticas, filtros, agora_brasil())))
