# apps/core/acesso.py

"""
Serviço de Acesso - senha única compartilhada

O REGGAP não tem contas de usuário: uma senha compartilhada libera
as telas e o estado fica gravado na sessão. Não é uma barreira de
segurança, apenas um portão de visualização.
"""

import hmac
import logging
from functools import wraps
from typing import Tuple

from django.conf import settings
from django.contrib.auth.views import redirect_to_login
from django.http import JsonResponse

logger = logging.getLogger(__name__)


class AcessoService:
    """
    Encapsula a verificação da senha e o estado da sessão
    """

    def __init__(self):
        self._chave_sessao = getattr(settings, 'REGGAP_SESSAO_CHAVE', 'reggap_autenticado')

    def entrar(self, request, senha: str) -> Tuple[bool, str]:
        """
        Confere a senha e libera a sessão

        Returns:
            Tuple[sucesso, mensagem]
        """
        if not self._senha_confere(senha):
            logger.warning("Tentativa de acesso com senha incorreta (ip=%s)", self._ip(request))
            return False, "Senha incorreta"

        # Nova chave de sessão ao liberar acesso
        request.session.cycle_key()
        request.session[self._chave_sessao] = True
        logger.info("Acesso liberado (ip=%s)", self._ip(request))
        return True, "Acesso liberado!"

    def sair(self, request) -> None:
        request.session.flush()

    def esta_liberado(self, request) -> bool:
        sessao = getattr(request, 'session', None)
        return bool(sessao is not None and sessao.get(self._chave_sessao))

    def _senha_confere(self, senha: str) -> bool:
        esperada = settings.REGGAP_SENHA_ACESSO or ''
        return hmac.compare_digest((senha or '').encode('utf-8'), esperada.encode('utf-8'))

    @staticmethod
    def _ip(request) -> str:
        return request.META.get('REMOTE_ADDR', '-')


acesso_service = AcessoService()


def _espera_json(request) -> bool:
    """Requisições HTMX, AJAX ou de API recebem 401 em vez de redirecionamento"""
    if getattr(request, 'htmx', False):
        return True
    if request.headers.get('x-requested-with') == 'XMLHttpRequest':
        return True
    return 'application/json' in request.headers.get('accept', '') or '/api/' in request.path


def acesso_requerido(view_func):
    """Decorador que exige a senha de acesso na sessão"""

    @wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        if not acesso_service.esta_liberado(request):
            if _espera_json(request):
                return JsonResponse({'error': 'Acesso não autorizado'}, status=401)
            return redirect_to_login(request.get_full_path(), settings.LOGIN_URL)
        return view_func(request, *args, **kwargs)

    return wrapped_view
