# config/settings/test.py

from .base import *

# === TESTES (pytest-django) ===

DEBUG = False

ALLOWED_HOSTS = ['testserver', 'localhost']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'reggap-test-cache',
    }
}

STORAGES['staticfiles'] = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

REGGAP_SENHA_ACESSO = 'senha-de-teste'

# Espelho da planilha desligado por padrão nos testes
GOOGLE_SHEETS_SPREADSHEET_ID = ''
GOOGLE_SERVICE_ACCOUNT_EMAIL = ''
GOOGLE_PRIVATE_KEY = ''

# Desabilitar logs em testes
LOGGING['handlers'] = {
    'null': {'class': 'logging.NullHandler'},
}
LOGGING['root'] = {'handlers': ['null'], 'level': 'WARNING'}
LOGGING['loggers'] = {
    'django': {'handlers': ['null'], 'propagate': False},
    'apps': {'handlers': ['null'], 'level': 'DEBUG', 'propagate': False},
}
