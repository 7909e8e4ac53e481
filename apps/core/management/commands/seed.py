# apps/core/management/commands/seed.py

from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError, connection

from apps.core.models import StatusOcorrencia, TipoOcorrencia

# Valores que o formulário de ocorrências trata de forma especial
CADASTROS_PADRAO = [
    (StatusOcorrencia, ['EM ABERTO', 'FINALIZADO']),
    (TipoOcorrencia, ['CANCELAMENTO', 'REFATURAMENTO', 'DEVOLUCAO TOTAL']),
]


class Command(BaseCommand):
    help = 'Verifica o banco e cria os cadastros padrão (idempotente)'

    def handle(self, *args, **options):
        self.stdout.write('🔍 Verificando banco de dados...')

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except DatabaseError as e:
            raise CommandError(f'Banco não está respondendo: {e}') from e

        criados = 0
        for modelo, nomes in CADASTROS_PADRAO:
            for nome in nomes:
                _, criado = modelo.objects.get_or_create(nome=nome)
                if criado:
                    criados += 1
                    self.stdout.write(f'  ➕ {modelo._meta.verbose_name}: {nome}')

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✅ Cadastros padrão verificados ({criados} novo(s)).\n'
                'Setores, motivos e clientes são cadastrados em /configuracoes/.\n'
            )
        )
