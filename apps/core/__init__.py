# apps/core/__init__.py

"""
Core - Aplicação base do REGGAP

Contém:
- Cadastros auxiliares (clientes, setores, motivos, tipos, status)
- Controle de acesso por senha única
- Health check
- Agregação e formatação compartilhadas pelos relatórios
"""
