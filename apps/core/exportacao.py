# apps/core/exportacao.py

"""
Geração de arquivos compartilhada pelos relatórios

CSV (UTF-8 com BOM), Excel (xlsxwriter), PDF (ReportLab) e link
do WhatsApp. As views montam as linhas; aqui ficam apenas
formato e serialização.
"""

import csv
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Iterable, List, Optional, Sequence
from urllib.parse import quote

import xlsxwriter
from django.http import HttpResponse
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .utils import agora_brasil

COR_PRIMARIA = '#073e29'

CONTENT_TYPE_XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def nome_arquivo(prefixo: str, extensao: str, formato_data: str = '%Y-%m-%d', momento: datetime = None) -> str:
    """Ex: relatorio-reggap-2024-06-10.csv"""
    momento = momento or agora_brasil()
    return f"{prefixo}{momento.strftime(formato_data)}.{extensao}"


def resposta_csv(arquivo: str, cabecalho: Sequence[str], linhas: Iterable[Sequence]) -> HttpResponse:
    """
    Cria response CSV com BOM para o Excel reconhecer UTF-8
    """
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{arquivo}"'
    response.write('\ufeff')  # BOM para UTF-8

    writer = csv.writer(response)
    writer.writerow(cabecalho)
    for linha in linhas:
        writer.writerow(['' if celula is None else celula for celula in linha])

    return response


def gerar_xlsx(
        nome_aba: str,
        cabecalhos: Sequence[str],
        linhas: Iterable[Sequence],
        larguras: Optional[Sequence[int]] = None,
        colunas_moeda: Sequence[int] = (),
        autofiltro: bool = True,
) -> bytes:
    """
    Gera planilha com cabeçalho estilizado e autofiltro
    Retorna o conteúdo binário do arquivo
    """
    output = BytesIO()
    workbook = xlsxwriter.Workbook(output, {'in_memory': True})

    # Formatos
    header_format = workbook.add_format({
        'bold': True,
        'font_color': 'white',
        'bg_color': COR_PRIMARIA,
        'align': 'center',
        'valign': 'vcenter',
        'text_wrap': True,
        'border': 1,
    })
    cell_format = workbook.add_format({'border': 1, 'valign': 'top'})
    money_format = workbook.add_format({'num_format': '#,##0.00', 'border': 1, 'valign': 'top'})

    sheet = workbook.add_worksheet(nome_aba[:31])

    for col, header in enumerate(cabecalhos):
        sheet.write(0, col, header, header_format)

    total_linhas = 0
    for row, linha in enumerate(linhas, 1):
        total_linhas = row
        for col, celula in enumerate(linha):
            if col in colunas_moeda and isinstance(celula, (int, float, Decimal)):
                sheet.write_number(row, col, celula, money_format)
            else:
                sheet.write(row, col, '' if celula is None else celula, cell_format)

    # Ajustar largura das colunas
    if larguras:
        for col, largura in enumerate(larguras):
            sheet.set_column(col, col, largura)

    if autofiltro and cabecalhos:
        sheet.autofilter(0, 0, max(total_linhas, 1), len(cabecalhos) - 1)

    sheet.freeze_panes(1, 0)

    workbook.close()
    output.seek(0)
    return output.read()


def resposta_xlsx(arquivo: str, conteudo: bytes) -> HttpResponse:
    response = HttpResponse(conteudo, content_type=CONTENT_TYPE_XLSX)
    response['Content-Disposition'] = f'attachment; filename="{arquivo}"'
    return response


def gerar_pdf_tabela(
        titulo: str,
        cabecalhos: Sequence[str],
        linhas: List[Sequence],
        informacoes: Sequence[str] = (),
        larguras_mm: Optional[Sequence[float]] = None,
        rodape: str = '',
) -> bytes:
    """
    PDF paisagem A4 com título, linhas informativas e uma tabela
    """
    output = BytesIO()
    doc = SimpleDocTemplate(
        output,
        pagesize=landscape(A4),
        leftMargin=10 * mm,
        rightMargin=10 * mm,
        topMargin=12 * mm,
        bottomMargin=12 * mm,
        title=titulo,
    )
    story = []

    # Estilos
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'TituloReggap',
        parent=styles['Heading1'],
        fontSize=16,
        spaceAfter=6,
        textColor=colors.HexColor(COR_PRIMARIA),
    )
    cell_style = ParagraphStyle('CelulaReggap', parent=styles['Normal'], fontSize=7, leading=9)

    story.append(Paragraph(_escapar_pdf(titulo), title_style))
    for info in informacoes:
        story.append(Paragraph(_escapar_pdf(info), styles['Normal']))
    story.append(Spacer(1, 10))

    dados = [list(cabecalhos)]
    for linha in linhas:
        dados.append([Paragraph(_escapar_pdf(celula), cell_style) for celula in linha])

    col_widths = [largura * mm for largura in larguras_mm] if larguras_mm else None
    tabela = Table(dados, colWidths=col_widths, repeatRows=1)
    tabela.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.Color(7 / 255, 62 / 255, 41 / 255)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 8),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f0fdf4')]),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#d1d5db')),
    ]))
    story.append(tabela)

    if rodape:
        story.append(Spacer(1, 12))
        story.append(Paragraph(_escapar_pdf(rodape), styles['Normal']))

    doc.build(story)
    output.seek(0)
    return output.read()


def resposta_pdf(arquivo: str, conteudo: bytes) -> HttpResponse:
    response = HttpResponse(conteudo, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{arquivo}"'
    return response


def link_whatsapp(texto: str) -> str:
    """URL de compartilhamento do WhatsApp com o texto codificado"""
    return f"https://wa.me/?text={quote(texto, safe='')}"


def _escapar_pdf(valor) -> str:
    texto = '' if valor is None else str(valor)
    return texto.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')
