# apps/ocorrencias/api_views.py

"""
Rotas JSON do espelho da planilha

save/update/delete recebem a ocorrência (ou o id) no corpo da
requisição; sync-sheets reexporta tudo a partir do banco.
"""

import json
import logging

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from apps.core.acesso import acesso_requerido

from .models import Ocorrencia
from .planilhas import PlanilhaError, PlanilhaService

logger = logging.getLogger(__name__)


def _ler_json(request):
    try:
        dados = json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        return None
    return dados if isinstance(dados, dict) else None


def _dados_ocorrencia(payload):
    """
    Se o id existir no banco, o banco prevalece sobre o corpo recebido

    Levanta ValueError/TypeError para id que não seja numérico.
    """
    ocorrencia_id = payload.get('id')
    if ocorrencia_id:
        ocorrencia = Ocorrencia.objects.filter(pk=ocorrencia_id).first()
        if ocorrencia:
            return ocorrencia.como_dict()
    return payload


def _erro(mensagem, status=500):
    return JsonResponse({'success': False, 'error': mensagem}, status=status)


@acesso_requerido
@require_http_methods(['POST'])
def salvar_na_planilha(request):
    payload = _ler_json(request)
    if payload is None:
        return _erro('JSON inválido', status=400)

    try:
        dados = _dados_ocorrencia(payload)
    except (ValueError, TypeError):
        return _erro('ID inválido', status=400)

    try:
        PlanilhaService().salvar(dados)
    except PlanilhaError as e:
        logger.error("Erro ao salvar no Google Sheets: %s", e)
        return _erro(str(e) or 'Erro ao salvar no Google Sheets')

    return JsonResponse({'success': True, 'message': 'Ocorrência salva no Google Sheets'})


@acesso_requerido
@require_http_methods(['POST'])
def atualizar_na_planilha(request):
    payload = _ler_json(request)
    if payload is None:
        return _erro('JSON inválido', status=400)

    try:
        dados = _dados_ocorrencia(payload)
    except (ValueError, TypeError):
        return _erro('ID inválido', status=400)

    try:
        PlanilhaService().atualizar(dados)
    except PlanilhaError as e:
        logger.error("Erro ao atualizar no Google Sheets: %s", e)
        return _erro(str(e) or 'Erro ao atualizar no Google Sheets')

    return JsonResponse({'success': True, 'message': 'Ocorrência atualizada no Google Sheets'})


@acesso_requerido
@require_http_methods(['POST'])
def excluir_da_planilha(request):
    payload = _ler_json(request)
    if payload is None:
        return _erro('JSON inválido', status=400)

    ocorrencia_id = payload.get('id')
    if not ocorrencia_id:
        return _erro('ID é obrigatório', status=400)

    try:
        PlanilhaService().excluir(ocorrencia_id)
    except PlanilhaError as e:
        logger.error("Erro ao remover do Google Sheets: %s", e)
        return _erro(str(e) or 'Erro ao remover do Google Sheets')

    return JsonResponse({'success': True, 'message': 'Ocorrência removida do Google Sheets'})


@acesso_requerido
@require_http_methods(['GET', 'POST'])
def sincronizar_planilha(request):
    """
    Reexporta todas as ocorrências (reconciliação do espelho)
    """
    if request.method == 'GET':
        return JsonResponse({
            'message': 'Use POST para sincronizar dados com Google Sheets',
            'endpoint': '/api/sync-sheets',
            'method': 'POST',
        })

    ocorrencias = [o.como_dict() for o in Ocorrencia.objects.order_by('data_criacao')]

    try:
        PlanilhaService().exportar_todos(ocorrencias)
    except PlanilhaError as e:
        logger.error("Erro ao sincronizar com Google Sheets: %s", e)
        return _erro(str(e) or 'Erro ao sincronizar com Google Sheets')

    total = len(ocorrencias)
    logger.info("Sincronização manual: %s ocorrências", total)
    return JsonResponse({
        'success': True,
        'message': f'✅ {total} ocorrências sincronizadas com sucesso!',
        'count': total,
    })
