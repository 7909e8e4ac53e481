# apps/ocorrencias/planilhas.py

"""
Serviço da Planilha - espelho das ocorrências no Google Sheets

Cada ocorrência vira uma linha da aba 'Registros', na ordem fixa de
CABECALHOS. A linha é localizada pelo id (coluna A) antes de
atualizar ou remover.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import gspread
import requests
from django.conf import settings
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1

from apps.core.utils import agora_brasil

logger = logging.getLogger(__name__)

ABA = 'Registros'

SCOPES = ['https://www.googleapis.com/auth/spreadsheets']

TOKEN_URI = 'https://oauth2.googleapis.com/token'

CABECALHOS = [
    'id',
    'data_criacao',
    'data_conclusao',
    'data_ocorrencia',
    'setor',
    'tipo_colaborador',
    'tipo_ocorrencia',
    'motivo',
    'cliente',
    'rede',
    'cidade',
    'uf',
    'vendedor',
    'valor',
    'detalhamento',
    'resultado',
    'tratativa',
    'status',
    'reincidencia',
    'nf_anterior',
    'nf_substituta',
    'created_at',
    'updated_at',
]


class PlanilhaError(Exception):
    """Falha de comunicação com o Google Sheets"""


class PlanilhaNaoConfiguradaError(PlanilhaError):
    """Credenciais ou ID da planilha ausentes"""


def planilha_configurada() -> bool:
    return all([
        settings.GOOGLE_SHEETS_SPREADSHEET_ID,
        settings.GOOGLE_SERVICE_ACCOUNT_EMAIL,
        settings.GOOGLE_PRIVATE_KEY,
    ])


def _celula(valor):
    if valor is None:
        return ''
    if isinstance(valor, Decimal):
        return float(valor)
    if isinstance(valor, (date, datetime)):
        return valor.isoformat()
    return valor


def linha_planilha(dados: Dict) -> List:
    """
    Converte uma ocorrência (dict) na linha da planilha

    Valores ausentes viram ''. created_at repete data_criacao
    (ou agora) e updated_at é sempre o momento da escrita.
    """
    agora = agora_brasil().isoformat()
    linha = [_celula(dados.get(coluna)) for coluna in CABECALHOS[:-2]]
    linha.append(_celula(dados.get('data_criacao')) or agora)
    linha.append(agora)
    return linha


class PlanilhaService:
    """
    Encapsula o cliente gspread

    A conexão é aberta sob demanda; sem configuração, qualquer operação
    levanta PlanilhaNaoConfiguradaError.
    """

    def __init__(self, spreadsheet_id: str = None, email: str = None, chave_privada: str = None):
        self.spreadsheet_id = spreadsheet_id if spreadsheet_id is not None else settings.GOOGLE_SHEETS_SPREADSHEET_ID
        self.email = email if email is not None else settings.GOOGLE_SERVICE_ACCOUNT_EMAIL
        self.chave_privada = chave_privada if chave_privada is not None else settings.GOOGLE_PRIVATE_KEY
        self._planilha = None

    # === CONEXÃO ===

    def _credenciais(self) -> Credentials:
        if not self.spreadsheet_id:
            raise PlanilhaNaoConfiguradaError('ID da planilha não configurado!')
        if not self.email or not self.chave_privada:
            raise PlanilhaNaoConfiguradaError('Credenciais do Google Service Account não configuradas!')

        info = {
            'type': 'service_account',
            'client_email': self.email,
            # Variáveis de ambiente trazem a chave com '\n' literais
            'private_key': self.chave_privada.replace('\\n', '\n'),
            'token_uri': TOKEN_URI,
        }
        try:
            return Credentials.from_service_account_info(info, scopes=SCOPES)
        except (ValueError, GoogleAuthError) as e:
            raise PlanilhaNaoConfiguradaError(f'Chave da conta de serviço inválida: {e}') from e

    @property
    def planilha(self) -> gspread.Spreadsheet:
        if self._planilha is None:
            cliente = gspread.authorize(self._credenciais())
            self._planilha = cliente.open_by_key(self.spreadsheet_id)
        return self._planilha

    def _aba(self) -> gspread.Worksheet:
        try:
            return self.planilha.worksheet(ABA)
        except gspread.exceptions.WorksheetNotFound:
            logger.info("Aba '%s' não existe, criando", ABA)
            return self.planilha.add_worksheet(title=ABA, rows=1000, cols=len(CABECALHOS))

    def _executar(self, descricao: str, operacao):
        """Converte erros do gspread/google-auth em PlanilhaError"""
        try:
            return operacao()
        except PlanilhaError:
            raise
        except (gspread.exceptions.GSpreadException, GoogleAuthError, requests.RequestException) as e:
            logger.error("Erro ao %s no Google Sheets: %s", descricao, e)
            raise PlanilhaError(f'Erro ao {descricao} no Google Sheets: {e}') from e

    # === OPERAÇÕES ===

    def garantir_cabecalhos(self) -> gspread.Worksheet:
        """Cria a aba se preciso e reescreve a linha 1 quando divergente"""

        def operacao():
            aba = self._aba()
            if aba.row_values(1) != CABECALHOS:
                aba.update(range_name='A1', values=[CABECALHOS], value_input_option='RAW')
            return aba

        return self._executar('garantir cabeçalhos', operacao)

    def localizar_linha(self, ocorrencia_id) -> Optional[int]:
        """Número (base 1) da linha com o id, ou None"""

        def operacao():
            ids = self._aba().col_values(1)[1:]
            alvo = str(ocorrencia_id)
            for indice, valor in enumerate(ids):
                if str(valor) == alvo:
                    return indice + 2
            return None

        return self._executar('localizar linha', operacao)

    def salvar(self, dados: Dict) -> None:
        def operacao():
            aba = self.garantir_cabecalhos()
            aba.append_row(
                linha_planilha(dados),
                value_input_option='RAW',
                insert_data_option='INSERT_ROWS',
                table_range='A2',
            )

        self._executar('salvar', operacao)
        logger.info("Ocorrência %s salva no Google Sheets", dados.get('id'))

    def atualizar(self, dados: Dict) -> None:
        """Reescreve a linha; sem linha correspondente, acrescenta"""
        if not dados.get('id'):
            raise PlanilhaError('ID da ocorrência é obrigatório para atualização!')

        numero = self.localizar_linha(dados['id'])
        if numero is None:
            logger.info("Ocorrência %s não encontrada na planilha, criando linha", dados['id'])
            self.salvar(dados)
            return

        intervalo = f"A{numero}:{rowcol_to_a1(numero, len(CABECALHOS))}"
        self._executar(
            'atualizar',
            lambda: self._aba().update(
                range_name=intervalo, values=[linha_planilha(dados)], value_input_option='RAW'
            ),
        )
        logger.info("Ocorrência %s atualizada no Google Sheets", dados['id'])

    def excluir(self, ocorrencia_id) -> bool:
        """Remove a linha; retorna False quando não estava na planilha"""
        numero = self.localizar_linha(ocorrencia_id)
        if numero is None:
            logger.info("Ocorrência %s não encontrada no Google Sheets", ocorrencia_id)
            return False

        self._executar('remover', lambda: self._aba().delete_rows(numero))
        logger.info("Ocorrência %s removida do Google Sheets", ocorrencia_id)
        return True

    def exportar_todos(self, ocorrencias: Iterable[Dict]) -> int:
        """
        Substitui todas as linhas de dados pelas ocorrências informadas

        Lista vazia não apaga nada (retorna 0).
        """
        linhas = [linha_planilha(dados) for dados in ocorrencias]
        if not linhas:
            return 0

        def operacao():
            aba = self.garantir_cabecalhos()
            aba.batch_clear(['A2:Z'])
            aba.append_rows(
                linhas,
                value_input_option='RAW',
                insert_data_option='INSERT_ROWS',
                table_range='A2',
            )

        self._executar('exportar', operacao)
        logger.info("%s ocorrências exportadas para o Google Sheets", len(linhas))
        return len(linhas)
