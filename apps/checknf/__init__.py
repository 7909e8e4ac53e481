# apps/checknf/__init__.py

"""
CHECKNF - Acompanhamento de entregas de notas fiscais

Funcionalidades:
- Dashboard de status (entregue, pendente, cancelada, devolvida)
- Relatório de notas pendentes com exportações
"""
