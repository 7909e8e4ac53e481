# apps/ocorrencias/signals.py

"""
Espelhamento das ocorrências na planilha

Executado depois do commit e sem garantia: falhas são registradas
no log e nunca chegam ao usuário. /api/sync-sheets reconcilia.
"""

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Ocorrencia
from .planilhas import PlanilhaService, planilha_configurada

logger = logging.getLogger(__name__)


def espelhar(operacao: str, argumento) -> None:
    """Chama PlanilhaService.<operacao>(argumento) registrando qualquer falha"""
    try:
        getattr(PlanilhaService(), operacao)(argumento)
    except Exception as e:  # espelho é best-effort: nada propaga para a requisição
        logger.error("Falha ao espelhar ocorrência na planilha (%s): %s", operacao, e)


@receiver(post_save, sender=Ocorrencia)
def espelhar_ocorrencia_salva(sender, instance, created, **kwargs):
    if not planilha_configurada():
        logger.debug("Planilha não configurada, espelho ignorado")
        return

    dados = instance.como_dict()
    operacao = 'salvar' if created else 'atualizar'
    transaction.on_commit(lambda: espelhar(operacao, dados))


@receiver(post_delete, sender=Ocorrencia)
def espelhar_ocorrencia_excluida(sender, instance, **kwargs):
    if not planilha_configurada():
        return

    ocorrencia_id = instance.pk
    transaction.on_commit(lambda: espelhar('excluir', ocorrencia_id))
