# apps/relatorios/__init__.py

"""
Relatórios - Dashboard e relatórios de ocorrências

Funcionalidades:
- Dashboard GAP com KPIs, rankings e insights
- Exportação CSV/Excel/PDF
- Relatório HTML autocontido e resumo para WhatsApp
"""
