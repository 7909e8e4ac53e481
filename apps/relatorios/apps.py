# apps/relatorios/apps.py

from django.apps import AppConfig


class RelatoriosConfig(AppConfig):
    """Configuração da app Relatórios"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.relatorios'
    verbose_name = 'Relatórios - Dashboard GAP & Exports'

    def ready(self):
        import logging
        logger = logging.getLogger(__name__)
        logger.info("Relatorios App inicializada - ReportLab e XlsxWriter habilitados")
