# apps/checknf/apps.py

from django.apps import AppConfig


class ChecknfConfig(AppConfig):
    """Configuração da app CHECKNF"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.checknf'
    verbose_name = 'CHECKNF - Notas Fiscais'

    def ready(self):
        import logging
        logger = logging.getLogger(__name__)
        logger.info("CHECKNF App inicializada")
