# apps/checknf/importacao.py

"""
Carga local de notas fiscais a partir de um export (CSV ou Excel)

As notas pertencem ao sistema externo; esta carga existe para
desenvolvimento e para alimentar o dashboard fora da origem.
"""

import csv
import io
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional
from zipfile import BadZipFile

from django.db import transaction
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .models import NotaFiscal

logger = logging.getLogger(__name__)

CAMPOS_TEXTO = [
    'numero_nf', 'cliente', 'nome_fantasia', 'razao_social', 'rede', 'uf',
    'vendedor', 'fretista', 'placa', 'status', 'situacao',
]
CAMPOS_DATA = ['data_emissao', 'data_entrega', 'data_vencimento']


class ImportacaoNotasError(Exception):
    """Arquivo de notas ilegível ou sem a coluna numero_nf"""


def _data(valor) -> Optional[date]:
    """Aceita date/datetime, YYYY-MM-DD e dd/mm/aaaa"""
    if valor in (None, ''):
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor

    texto = str(valor).strip()
    for formato in ('%Y-%m-%d', '%d/%m/%Y'):
        try:
            return datetime.strptime(texto[:10], formato).date()
        except ValueError:
            continue
    return None


def _valor(valor) -> Decimal:
    """1234.56, 1.234,56 ou R$ 1.234,56"""
    if valor in (None, ''):
        return Decimal('0')
    if isinstance(valor, (int, float, Decimal)):
        return Decimal(str(valor))

    texto = str(valor).replace('R$', '').strip()
    if ',' in texto:
        texto = texto.replace('.', '').replace(',', '.')
    try:
        return Decimal(texto)
    except InvalidOperation:
        return Decimal('0')


def normalizar_linha(linha: Dict) -> Optional[Dict]:
    """Linha crua (cabeçalhos em qualquer caixa) -> campos de NotaFiscal"""
    dados = {str(chave or '').strip().lower(): valor for chave, valor in linha.items()}
    numero = str(dados.get('numero_nf') or '').strip()
    if not numero:
        return None

    nota = {campo: str(dados.get(campo) or '').strip() for campo in CAMPOS_TEXTO}
    nota['uf'] = nota['uf'].upper()[:2]
    for campo in CAMPOS_DATA:
        nota[campo] = _data(dados.get(campo))
    nota['valor_total'] = _valor(dados.get('valor_total'))
    return nota


def ler_arquivo(caminho: Path) -> List[Dict]:
    if caminho.suffix.lower() in ('.xlsx', '.xlsm'):
        return _ler_xlsx(caminho)
    return _ler_csv(caminho)


def _ler_csv(caminho: Path) -> List[Dict]:
    try:
        conteudo = caminho.read_text(encoding='utf-8-sig')
    except (OSError, UnicodeDecodeError) as e:
        raise ImportacaoNotasError(f"Não foi possível ler o arquivo: {e}") from e

    try:
        dialeto = csv.Sniffer().sniff(conteudo[:2048], delimiters=',;')
    except csv.Error:
        dialeto = csv.excel
    return list(csv.DictReader(io.StringIO(conteudo), dialect=dialeto))


def _ler_xlsx(caminho: Path) -> List[Dict]:
    try:
        workbook = load_workbook(caminho, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        raise ImportacaoNotasError(f"Não foi possível ler o arquivo: {e}") from e

    try:
        linhas = workbook.worksheets[0].iter_rows(values_only=True)
        cabecalho = next(linhas, None) or ()
        return [dict(zip(cabecalho, linha)) for linha in linhas]
    finally:
        workbook.close()


def importar_notas(caminho: Path, limpar: bool = False) -> Dict[str, int]:
    """
    Carrega o arquivo na tabela de notas

    Returns:
        Dict com importadas e ignoradas
    """
    linhas = ler_arquivo(caminho)
    if linhas and not any('numero_nf' == str(chave or '').strip().lower() for chave in linhas[0]):
        raise ImportacaoNotasError("Coluna 'numero_nf' não encontrada")

    notas = []
    ignoradas = 0
    for linha in linhas:
        nota = normalizar_linha(linha)
        if nota is None:
            ignoradas += 1
            continue
        notas.append(NotaFiscal(**nota))

    with transaction.atomic():
        if limpar:
            NotaFiscal.objects.all().delete()
        NotaFiscal.objects.bulk_create(notas, batch_size=500)

    resultado = {'importadas': len(notas), 'ignoradas': ignoradas}
    logger.info("Importação de notas: %(importadas)s importadas, %(ignoradas)s ignoradas", resultado)
    return resultado
