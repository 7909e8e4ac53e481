# apps/relatorios/views.py

import logging

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
from apps.ocorrencias.views import opcoes_filtros

from .utils import (
    CABECALHO_CSV,
    CABECALHO_PDF,
    CABECALHO_XLSX,
    LARGURAS_XLSX,
    PERIODOS,
    TITULOS_TOPS,
    extrair_filtros,
    filtrar_ocorrencias,
    linhas_csv,
    linhas_pdf,
    linhas_xlsx,
    montar_dashboard,
    montar_relatorio,
    texto_whatsapp,
)

logger = logging.getLogger(__name__)

PREFIXO_ARQUIVO = 'relatorio-reggap-'


def _ocorrencias_filtradas(request):
    filtros = extrair_filtros(request.GET)
    ocorrencias = [o.como_dict() for o in filtrar_ocorrencias(filtros)]
    return filtros, ocorrencias


def _periodo_evolucao(request):
    periodo = request.GET.get('filtro_evolucao') or 'todo_periodo'
    validos = {valor for valor, _ in PERIODOS}
    return periodo if periodo in validos else 'todo_periodo'


@acesso_requerido
def dashboard(request):
    """
    Dashboard GAP: KPIs, rankings, evolução e tabelas cruzadas
    Com HTMX devolve só o bloco de dados
    """
    filtros, ocorrencias = _ocorrencias_filtradas(request)
    periodo = _periodo_evolucao(request)

    context = {
        'title': 'Dashboard - REGGAP',
        'filtros': filtros,
        'filtro_evolucao': periodo,
        'periodos': PERIODOS,
        'titulos_graficos': TITULOS_TOPS,
        'querystring': request.GET.urlencode(),
        **montar_dashboard(ocorrencias, periodo),
    }

    if request.htmx:
        return render(request, 'relatorios/partials/dashboard_dados.html', context)

    context['opcoes'] = opcoes_filtros()
    return render(request, 'relatorios/dashboard.html', context)


@acesso_requerido
def api_dashboard(request):
    filtros, ocorrencias = _ocorrencias_filtradas(request)
    dados = montar_dashboard(ocorrencias, _periodo_evolucao(request))
    return JsonResponse({'success': True, 'filtros': filtros, **dados})


@acesso_requerido
def relatorios(request):
    """Tela de relatórios com filtros e atalhos de exportação"""
    filtros, ocorrencias = _ocorrencias_filtradas(request)

    context = {
        'title': 'Relatórios - REGGAP',
        'filtros': filtros,
        'querystring': request.GET.urlencode(),
        **montar_relatorio(ocorrencias, filtros),
    }

    if request.htmx:
        return render(request, 'relatorios/partials/relatorio_resumo.html', context)

    context['opcoes'] = opcoes_filtros()
    return render(request, 'relatorios/relatorios.html', context)


# === EXPORTAÇÕES ===

@acesso_requerido
@require_http_methods(['GET'])
def exportar_csv(request):
    _, ocorrencias = _ocorrencias_filtradas(request)
    logger.info("Exportando %s ocorrências em CSV", len(ocorrencias))
    return resposta_csv(nome_arquivo(PREFIXO_ARQUIVO, 'csv'), CABECALHO_CSV, linhas_csv(ocorrencias))


@acesso_requerido
@require_http_methods(['GET'])
def exportar_xlsx(request):
    _, ocorrencias = _ocorrencias_filtradas(request)
    logger.info("Exportando %s ocorrências em Excel", len(ocorrencias))

    conteudo = gerar_xlsx(
        'Ocorrências',
        CABECALHO_XLSX,
        linhas_xlsx(ocorrencias),
        larguras=LARGURAS_XLSX,
        colunas_moeda=(11,),
    )
    return resposta_xlsx(nome_arquivo(PREFIXO_ARQUIVO, 'xlsx'), conteudo)


@acesso_requerido
@require_http_methods(['GET'])
def exportar_pdf(request):
    filtros, ocorrencias = _ocorrencias_filtradas(request)
    logger.info("Exportando %s ocorrências em PDF", len(ocorrencias))

    dados = montar_relatorio(ocorrencias, filtros)
    informacoes = [
        f"Gerado em: {agora_brasil().strftime('%d/%m/%Y %H:%M')}",
        f"Total de registros: {len(ocorrencias)}",
        f"Impacto financeiro: {formatar_moeda(dados['kpis']['impacto_financeiro'])}",
    ]
    informacoes += dados['filtros_aplicados']

    conteudo = gerar_pdf_tabela(
        'RELATÓRIO DE OCORRÊNCIAS - REGGAP',
        CABECALHO_PDF,
        linhas_pdf(ocorrencias),
        informacoes=informacoes,
        larguras_mm=[25, 45, 70, 75, 35, 27],
    )
    return resposta_pdf(nome_arquivo(PREFIXO_ARQUIVO, 'pdf'), conteudo)


@acesso_requerido
@require_http_methods(['GET'])
def exportar_html(request):
    """
    Relatório HTML autocontido (CSS inline + Chart.js via CDN)
    Baixado como arquivo quando ?download=1
    """
    filtros, ocorrencias = _ocorrencias_filtradas(request)
    dados = montar_relatorio(ocorrencias, filtros)

    graficos = {
        nome: {
            'labels': [item['name'] for item in itens],
            'data': [item['value'] for item in itens],
        }
        for nome, itens in dados['tops'].items()
    }
    graficos['evolucao'] = {
        'labels': [item['name'] for item in dados['evolucao']],
        'data': [item['count'] for item in dados['evolucao']],
    }

    context = {
        'gerado_em': agora_brasil(),
        'graficos': graficos,
        'titulos_graficos': TITULOS_TOPS,
        **dados,
    }
    response = render(request, 'relatorios/relatorio_html.html', context)

    if request.GET.get('download'):
        arquivo = nome_arquivo(PREFIXO_ARQUIVO, 'html')
        response['Content-Disposition'] = f'attachment; filename="{arquivo}"'
    return response


@acesso_requerido
@require_http_methods(['GET'])
def compartilhar_whatsapp(request):
    filtros, ocorrencias = _ocorrencias_filtradas(request)
    return redirect(link_whatsapp(texto_whatsapp(ocorrencias, filtros)))
