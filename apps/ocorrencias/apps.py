# apps/ocorrencias/apps.py

from django.apps import AppConfig


class OcorrenciasConfig(AppConfig):
    """Configuração da app Ocorrências"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.ocorrencias'
    verbose_name = 'Ocorrências - Registro de GAPs'

    def ready(self):
        """
        Conecta os sinais do espelho da planilha
        """
        import logging
        from . import signals  # noqa: F401

        logger = logging.getLogger(__name__)
        logger.info("Ocorrencias App inicializada - espelho Google Sheets conectado")
