# apps/checknf/management/commands/importar_notas.py

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from apps.checknf.importacao import ImportacaoNotasError, importar_notas


class Command(BaseCommand):
    help = 'Carrega notas fiscais de um export CSV ou Excel'

    def add_arguments(self, parser):
        parser.add_argument('arquivo', type=str, help='Caminho do .csv ou .xlsx')
        parser.add_argument(
            '--limpar',
            action='store_true',
            help='Remove as notas existentes antes da carga'
        )

    def handle(self, *args, **options):
        caminho = Path(options['arquivo'])
        if not caminho.exists():
            raise CommandError(f'Arquivo não encontrado: {caminho}')

        self.stdout.write(f'📥 Importando notas de {caminho.name}...')

        try:
            resultado = importar_notas(caminho, limpar=options['limpar'])
        except ImportacaoNotasError as e:
            raise CommandError(str(e)) from e

        self.stdout.write(
            self.style.SUCCESS(
                f"✅ {resultado['importadas']} nota(s) importada(s), "
                f"{resultado['ignoradas']} linha(s) ignorada(s)"
            )
        )
