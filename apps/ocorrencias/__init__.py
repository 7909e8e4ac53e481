# apps/ocorrencias/__init__.py

"""
Ocorrências - Registro de GAPs

Funcionalidades:
- Cadastro, edição e exclusão de ocorrências
- Validação condicional (valor e resultado)
- Espelhamento no Google Sheets
"""
