# apps/ocorrencias/views.py

import logging

from django.conf import settings
from django.contrib import messages
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import DatabaseError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_http_methods
from django_htmx.http import trigger_client_event

from apps.core.acesso import acesso_requerido
from apps.core.models import Cliente, Motivo, Setor, StatusOcorrencia, TipoColaborador, TipoOcorrencia
from apps.core.utils import hoje_brasil
from apps.relatorios.utils import extrair_filtros, filtrar_ocorrencias

from .forms import OcorrenciaForm
from .models import STATUS_EM_ABERTO, STATUS_PADRAO, TIPOS_COM_VALOR, Ocorrencia

logger = logging.getLogger(__name__)

EVENTO_ATUALIZACAO = 'ocorrenciasAtualizadas'


def _espera_json(request):
    return bool(request.htmx) or request.headers.get('x-requested-with') == 'XMLHttpRequest'


def opcoes_filtros():
    """Valores dos selects de filtro (cadastros ativos + valores já usados)"""
    distintos = {}
    for campo in ('vendedor', 'cliente', 'rede', 'cidade', 'uf'):
        distintos[campo] = list(
            Ocorrencia.objects.exclude(**{campo: ''})
            .order_by(campo).values_list(campo, flat=True).distinct()
        )

    return {
        'setores': Setor.objects.nomes_ativos(),
        'motivos': Motivo.objects.nomes_ativos(),
        'tipos_ocorrencia': TipoOcorrencia.objects.nomes_ativos(),
        'tipos_colaborador': TipoColaborador.objects.nomes_ativos(),
        'status': StatusOcorrencia.objects.nomes_ativos() or STATUS_PADRAO,
        'vendedores': distintos['vendedor'],
        'clientes': distintos['cliente'],
        'redes': distintos['rede'],
        'cidades': distintos['cidade'],
        'ufs': distintos['uf'],
    }


@acesso_requerido
def lista_ocorrencias(request):
    """
    Lista filtrável com paginação
    Requisições HTMX recebem apenas a tabela
    """
    filtros = extrair_filtros(request.GET)
    ocorrencias = filtrar_ocorrencias(filtros)

    paginator = Paginator(ocorrencias, settings.REGGAP_ITENS_POR_PAGINA)
    page_obj = paginator.get_page(request.GET.get('page'))

    context = {
        'title': 'Ocorrências - REGGAP',
        'page_obj': page_obj,
        'filtros': filtros,
        'querystring': request.GET.urlencode(),
    }

    if request.htmx:
        return render(request, 'ocorrencias/partials/tabela.html', context)

    context['opcoes'] = opcoes_filtros()
    return render(request, 'ocorrencias/lista.html', context)


def _render_formulario(request, form, ocorrencia=None):
    context = {
        'title': 'Editar Ocorrência' if ocorrencia else 'Nova Ocorrência',
        'form': form,
        'ocorrencia': ocorrencia,
        'clientes': Cliente.objects.ativos().values_list('cliente', flat=True),
        'tipos_com_valor': TIPOS_COM_VALOR,
    }
    return render(request, 'ocorrencias/formulario.html', context)


@acesso_requerido
@require_http_methods(['GET', 'POST'])
def nova_ocorrencia(request):
    form = OcorrenciaForm(initial={
        'data_ocorrencia': hoje_brasil(),
        'status': STATUS_EM_ABERTO,
        'reincidencia': 'NÃO',
    })

    if request.method == 'POST':
        form = OcorrenciaForm(request.POST)

        if form.is_valid():
            try:
                ocorrencia = form.save()
            except DatabaseError:
                logger.exception("Erro ao salvar ocorrência")
                messages.error(request, 'Não foi possível salvar a ocorrência.')
            else:
                logger.info("Ocorrência #%s registrada (%s)", ocorrencia.pk, ocorrencia.tipo_ocorrencia)
                messages.success(request, 'Ocorrência registrada! A ocorrência foi salva com sucesso.')
                return redirect('ocorrencias:nova')
        else:
            for mensagem in form.mensagens_erro():
                messages.error(request, mensagem)

    return _render_formulario(request, form)


@acesso_requerido
@require_http_methods(['GET', 'POST'])
def editar_ocorrencia(request, ocorrencia_id):
    ocorrencia = get_object_or_404(Ocorrencia, id=ocorrencia_id)
    form = OcorrenciaForm(instance=ocorrencia)

    if request.method == 'POST':
        form = OcorrenciaForm(request.POST, instance=ocorrencia)

        if form.is_valid():
            try:
                form.save()
            except DatabaseError:
                logger.exception("Erro ao atualizar ocorrência #%s", ocorrencia_id)
                messages.error(request, 'Não foi possível salvar as alterações.')
            else:
                logger.info("Ocorrência #%s atualizada", ocorrencia_id)
                messages.success(request, 'Ocorrência atualizada! As alterações foram salvas com sucesso.')
                return redirect('ocorrencias:lista')
        else:
            for mensagem in form.mensagens_erro():
                messages.error(request, mensagem)

    return _render_formulario(request, form, ocorrencia)


@acesso_requerido
@require_http_methods(['POST'])
def alternar_status(request, ocorrencia_id):
    """
    Clique no badge: EM ABERTO <-> FINALIZADO
    """
    ocorrencia = get_object_or_404(Ocorrencia, id=ocorrencia_id)

    try:
        novo_status = ocorrencia.alternar_status()
    except ValidationError as e:
        mensagem = e.messages[0]
        if _espera_json(request):
            return JsonResponse({'success': False, 'error': mensagem}, status=400)
        messages.error(request, mensagem)
        return redirect('ocorrencias:lista')

    logger.info("Ocorrência #%s agora está %s", ocorrencia_id, novo_status)

    if _espera_json(request):
        response = JsonResponse({
            'success': True,
            'status': novo_status,
            'message': f'Status alterado para {novo_status}',
        })
        return trigger_client_event(response, EVENTO_ATUALIZACAO)

    messages.success(request, f'Status alterado para {novo_status}')
    return redirect('ocorrencias:lista')


@acesso_requerido
@require_http_methods(['POST'])
def excluir_ocorrencia(request, ocorrencia_id):
    ocorrencia = get_object_or_404(Ocorrencia, id=ocorrencia_id)

    try:
        ocorrencia.delete()
    except DatabaseError:
        logger.exception("Erro ao excluir ocorrência #%s", ocorrencia_id)
        if _espera_json(request):
            return JsonResponse({'success': False, 'error': 'Não foi possível excluir a ocorrência.'}, status=500)
        messages.error(request, 'Não foi possível excluir a ocorrência.')
        return redirect('ocorrencias:lista')

    logger.info("Ocorrência #%s excluída", ocorrencia_id)

    if _espera_json(request):
        response = JsonResponse({'success': True, 'message': 'Ocorrência excluída!'})
        return trigger_client_event(response, EVENTO_ATUALIZACAO)

    messages.success(request, 'Ocorrência excluída! A ocorrência foi removida com sucesso.')
    return redirect('ocorrencias:lista')


@acesso_requerido
def api_cliente(request):
    """Dados de autopreenchimento do cliente selecionado"""
    nome = request.GET.get('cliente', '').strip()
    cliente = Cliente.objects.filter(cliente=nome).first() if nome else None

    if cliente is None:
        return JsonResponse({'success': False, 'error': 'Cliente não encontrado'}, status=404)

    return JsonResponse({
        'success': True,
        'cliente': {'cliente': cliente.cliente, **cliente.dados_autopreenchimento()},
    })
