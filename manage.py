#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

REGGAP - Registro de GAPs operacionais + CHECKNF
Grupo DoceMel
"""

import os
import sys


def main():
    """Run administrative tasks."""

    # Configuração padrão para desenvolvimento
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    # Atalhos do REGGAP
    if len(sys.argv) > 1:
        command = sys.argv[1]

        # Setup inicial: migrações, estáticos e cadastros padrão
        if command == 'setup':
            print("🚀 Configurando REGGAP...")

            print("📊 Gerando e aplicando migrações...")
            os.system('python manage.py makemigrations core ocorrencias checknf')
            if os.system('python manage.py migrate') != 0:
                print("❌ Erro nas migrações")
                return

            print("📁 Coletando arquivos estáticos...")
            os.system('python manage.py collectstatic --noinput')

            print("🌱 Populando cadastros padrão...")
            os.system('python manage.py seed')

            print("✅ Setup concluído!")
            print("🔑 A senha de acesso vem de REGGAP_SENHA_ACESSO")
            return

        # Criação do banco PostgreSQL local
        elif command == 'setup-db':
            print("🐘 Configurando PostgreSQL...")

            commands = [
                "CREATE USER reggap_user WITH PASSWORD 'reggap123';",
                "CREATE DATABASE reggap OWNER reggap_user;",
                "GRANT ALL PRIVILEGES ON DATABASE reggap TO reggap_user;",
                "GRANT CREATE ON SCHEMA public TO reggap_user;",
                "ALTER USER reggap_user CREATEDB;"
            ]

            for cmd in commands:
                print(f"Executando: {cmd}")
                exit_code = os.system(f'psql -U postgres -h localhost -c "{cmd}"')
                if exit_code != 0:
                    print("⚠️  Comando pode ter falhado (normal se já existir)")

            print("🧪 Testando conexão...")
            test_result = os.system('psql -U reggap_user -h localhost -d reggap -c "SELECT version();"')

            if test_result == 0:
                print("✅ PostgreSQL configurado com sucesso!")
                print("📊 Execute agora: python manage.py setup")
            else:
                print("❌ Erro na configuração. Verifique:")
                print("   1. PostgreSQL está instalado?")
                print("   2. Serviço postgresql está rodando?")
                print("   3. psql está no PATH?")
            return

        elif command == 'backup':
            print("💾 Criando backup do banco...")
            from datetime import datetime
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            backup_file = f"backup_reggap_{timestamp}.json"
            os.system(f'python manage.py dumpdata core ocorrencias checknf --indent 2 > {backup_file}')
            print(f"✅ Backup criado: {backup_file}")
            return

        elif command == 'reset':
            confirm = input("⚠️  Isso irá apagar TODAS as ocorrências e notas. Continuar? (y/N): ")
            if confirm.lower() == 'y':
                print("🗑️  Resetando banco de dados...")
                os.system('python manage.py flush --noinput')
                os.system('python manage.py migrate')
                os.system('python manage.py seed')
                print("✅ Reset concluído!")
            return

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
