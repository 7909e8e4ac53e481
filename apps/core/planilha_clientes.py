# apps/core/planilha_clientes.py

"""
Importação e exportação da base de clientes em Excel

A importação lê a primeira aba com openpyxl; a exportação reaproveita
o gerador xlsxwriter dos relatórios.
"""

import logging
from typing import Dict, IO, Iterable, List, Optional

from django.db import transaction
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from zipfile import BadZipFile

from .exportacao import gerar_xlsx
from .models import Cliente

logger = logging.getLogger(__name__)

COLUNAS_CLIENTES = ['Cliente', 'Rede', 'Cidade', 'UF', 'Vendedor']


class ImportacaoClientesError(Exception):
    """Arquivo de clientes ilegível ou sem a coluna Cliente"""


def ler_planilha_clientes(arquivo: IO) -> List[Dict[str, str]]:
    """
    Lê a primeira aba e devolve dicionários normalizados

    Cabeçalhos são aceitos em qualquer caixa (Cliente, CLIENTE, cliente).
    Valores são aparados, UF vai para maiúsculas e linhas sem cliente
    são descartadas.
    """
    try:
        workbook = load_workbook(arquivo, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        raise ImportacaoClientesError(f"Não foi possível ler o arquivo: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        linhas = sheet.iter_rows(values_only=True)

        cabecalho = next(linhas, None)
        if not cabecalho:
            raise ImportacaoClientesError("Planilha vazia")

        indices = _mapear_cabecalho(cabecalho)
        if 'cliente' not in indices:
            raise ImportacaoClientesError("Coluna 'Cliente' não encontrada")

        registros = []
        for linha in linhas:
            registro = {campo: _celula(linha, indice) for campo, indice in indices.items()}
            if not registro.get('cliente'):
                continue
            registro['uf'] = registro.get('uf', '').upper()[:2]
            for campo in ('rede', 'cidade', 'vendedor'):
                registro.setdefault(campo, '')
            registros.append(registro)
    finally:
        workbook.close()

    return registros


def importar_clientes(arquivo: IO) -> Dict[str, int]:
    """
    Importa (upsert por nome) os clientes da planilha

    Returns:
        Dict com criados, atualizados e ignorados
    """
    registros = ler_planilha_clientes(arquivo)
    resultado = {'criados': 0, 'atualizados': 0, 'ignorados': 0}
    vistos = set()

    with transaction.atomic():
        for registro in registros:
            nome = registro['cliente']
            if nome in vistos:
                resultado['ignorados'] += 1
                continue
            vistos.add(nome)

            _, criado = Cliente.objects.update_or_create(
                cliente=nome,
                defaults={
                    'rede': registro['rede'],
                    'cidade': registro['cidade'],
                    'uf': registro['uf'],
                    'vendedor': registro['vendedor'],
                },
            )
            resultado['criados' if criado else 'atualizados'] += 1

    logger.info(
        "Importação de clientes: %(criados)s criados, %(atualizados)s atualizados, "
        "%(ignorados)s ignorados", resultado
    )
    return resultado


def exportar_clientes(clientes: Optional[Iterable[Cliente]] = None) -> bytes:
    """Gera o Excel da aba 'Clientes'"""
    if clientes is None:
        clientes = Cliente.objects.all()

    linhas = (
        [c.cliente, c.rede, c.cidade, c.uf, c.vendedor]
        for c in clientes
    )
    return gerar_xlsx('Clientes', COLUNAS_CLIENTES, linhas, larguras=[40, 20, 20, 6, 25])


def _mapear_cabecalho(cabecalho) -> Dict[str, int]:
    esperadas = {coluna.lower() for coluna in COLUNAS_CLIENTES}
    indices = {}
    for indice, titulo in enumerate(cabecalho):
        chave = str(titulo or '').strip().lower()
        if chave in esperadas and chave not in indices:
            indices[chave] = indice
    return indices


def _celula(linha, indice: int) -> str:
    if indice >= len(linha) or linha[indice] is None:
        return ''
    return str(linha[indice]).strip()
