# apps/core/context_processors.py

from django.conf import settings

import apps

from .acesso import acesso_service


def reggap(request):
    """Variáveis globais dos templates"""
    return {
        'acesso_liberado': acesso_service.esta_liberado(request),
        'reggap_versao': apps.__version__,
        'health_poll_ms': settings.REGGAP_HEALTH_POLL_SEGUNDOS * 1000,
    }
