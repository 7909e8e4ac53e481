# apps/__init__.py

"""
REGGAP - Aplicações Django

Este pacote contém todas as aplicações do sistema:
- core: Cadastros auxiliares, acesso por senha única e utilitários
- ocorrencias: Registro de GAPs e espelho no Google Sheets
- relatorios: Dashboard GAP e exportações (CSV, Excel, PDF, HTML, WhatsApp)
- checknf: Painel de acompanhamento de notas fiscais
"""

__version__ = '0.1.0'
__author__ = 'Equipe REGGAP'
