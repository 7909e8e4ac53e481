# apps/core/apps.py

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    """Configuração da app Core"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core - Cadastros e Acesso'

    def ready(self):
        """
        Método chamado quando a aplicação está pronta
        """
        logger.info("App core carregada")
