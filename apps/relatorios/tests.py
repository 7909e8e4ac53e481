"""
Testes do dashboard GAP, dos cálculos e das exportações
"""
import csv
from datetime import date
from decimal import Decimal
from io import BytesIO, StringIO
from urllib.parse import unquote

from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from openpyxl import load_workbook

from apps.core.tests import AcessoTestCase
from apps.ocorrencias.models import STATUS_EM_ABERTO, STATUS_FINALIZADO, Ocorrencia
from apps.relatorios.utils import (
    CABECALHO_CSV,
    calcular_kpis,
    calcular_tops,
    comparativo_semanal,
    evolucao_temporal,
    extrair_filtros,
    filtrar_ocorrencias,
    filtros_aplicados,
    insights_dashboard,
    insights_relatorio,
    intervalo_periodo,
    quebrar_rotulo,
    tabela_cruzada,
    texto_whatsapp,
    top_campo,
)


def registro(**campos):
    """Ocorrência no formato de Ocorrencia.como_dict()"""
    dados = {
        'id': 1,
        'data_criacao': None,
        'data_conclusao': None,
        'data_ocorrencia': date(2024, 6, 10),
        'setor': 'LOGISTICA',
        'tipo_colaborador': 'MOTORISTA',
        'tipo_ocorrencia': 'ATRASO',
        'motivo': 'AVARIA',
        'cliente': '',
        'rede': '',
        'cidade': '',
        'uf': '',
        'vendedor': '',
        'valor': None,
        'detalhamento': 'Descrição',
        'resultado': '',
        'tratativa': '',
        'status': STATUS_EM_ABERTO,
        'reincidencia': 'NÃO',
        'nf_anterior': '',
        'nf_substituta': '',
    }
    dados.update(campos)
    return dados


def criar_ocorrencia(**campos):
    dados = {
        'data_ocorrencia': date(2024, 6, 10),
        'setor': 'LOGISTICA',
        'tipo_colaborador': 'MOTORISTA',
        'tipo_ocorrencia': 'ATRASO',
        'motivo': 'AVARIA',
        'detalhamento': 'Carga avariada',
    }
    dados.update(campos)
    return Ocorrencia.objects.create(**dados)


class IntervaloPeriodoTests(SimpleTestCase):

    def test_semana_atual_de_segunda_a_domingo(self):
        self.assertEqual(
            intervalo_periodo('semana_atual', date(2024, 6, 12)),
            (date(2024, 6, 10), date(2024, 6, 16)),
        )

    def test_semana_anterior(self):
        self.assertEqual(
            intervalo_periodo('semana_anterior', date(2024, 6, 16)),
            (date(2024, 6, 3), date(2024, 6, 9)),
        )

    def test_mes_anterior_em_janeiro(self):
        self.assertEqual(
            intervalo_periodo('mes_anterior', date(2024, 1, 15)),
            (date(2023, 12, 1), date(2023, 12, 31)),
        )

    def test_mes_atual_em_fevereiro_bissexto(self):
        self.assertEqual(
            intervalo_periodo('mes_atual', date(2024, 2, 10)),
            (date(2024, 2, 1), date(2024, 2, 29)),
        )

    def test_trimestre_anterior_volta_um_ano(self):
        self.assertEqual(
            intervalo_periodo('trimestre_anterior', date(2024, 2, 15)),
            (date(2023, 10, 1), date(2023, 12, 31)),
        )

    def test_trimestre_atual(self):
        self.assertEqual(
            intervalo_periodo('trimestre_atual', date(2024, 8, 1)),
            (date(2024, 7, 1), date(2024, 9, 30)),
        )

    def test_semestre_anterior(self):
        self.assertEqual(
            intervalo_periodo('semestre_anterior', date(2024, 3, 10)),
            (date(2023, 7, 1), date(2023, 12, 31)),
        )
        self.assertEqual(
            intervalo_periodo('semestre_anterior', date(2024, 9, 10)),
            (date(2024, 1, 1), date(2024, 6, 30)),
        )

    def test_ontem_e_ano_anterior(self):
        self.assertEqual(intervalo_periodo('ontem', date(2024, 3, 1)), (date(2024, 2, 29), date(2024, 2, 29)))
        self.assertEqual(intervalo_periodo('ano_anterior', date(2024, 3, 1)), (date(2023, 1, 1), date(2023, 12, 31)))

    def test_sem_filtro(self):
        self.assertIsNone(intervalo_periodo('todo_periodo', date(2024, 6, 10)))
        self.assertIsNone(intervalo_periodo('qualquer', date(2024, 6, 10)))


class CalculosTests(SimpleTestCase):

    def test_kpis(self):
        ocorrencias = [
            registro(tipo_ocorrencia='REFATURAMENTO', valor=Decimal('100.50'), reincidencia='SIM'),
            registro(tipo_ocorrencia='CANCELAMENTO', valor=Decimal('49.50'), status=STATUS_FINALIZADO),
            registro(),
        ]

        kpis = calcular_kpis(ocorrencias)

        self.assertEqual(kpis['total'], 3)
        self.assertEqual(kpis['refaturamentos'], 1)
        self.assertEqual(kpis['valor_refaturamentos'], 100.5)
        self.assertEqual(kpis['cancelamentos'], 1)
        self.assertEqual(kpis['impacto_financeiro'], 150.0)
        self.assertEqual(kpis['em_aberto'], 2)
        self.assertEqual(kpis['finalizadas'], 1)
        self.assertEqual(kpis['taxa_reincidencia'], 33)

    def test_kpis_sem_registros(self):
        kpis = calcular_kpis([])
        self.assertEqual(kpis['total'], 0)
        self.assertEqual(kpis['taxa_reincidencia'], 0)
        self.assertEqual(kpis['mttr_horas'], 0)

    def test_top_descarta_vazios_e_mantem_ordem_nos_empates(self):
        ocorrencias = [
            registro(cliente='B'),
            registro(cliente='A'),
            registro(cliente=''),
            registro(cliente='A'),
            registro(cliente='B'),
            registro(cliente='C'),
        ]

        top = top_campo(ocorrencias, 'cliente', 2)

        self.assertEqual([(item['name'], item['value']) for item in top], [('B', 2), ('A', 2)])

    def test_top_substitui_sublinhado(self):
        top = top_campo([registro(motivo='FALTA_DE_PRODUTO')], 'motivo', 10)
        self.assertEqual(top[0]['name'], 'FALTA DE PRODUTO')
        self.assertEqual(top[0]['linhas'], ['FALTA', 'DE', 'PRODUTO'])

    def test_quebrar_rotulo(self):
        self.assertEqual(quebrar_rotulo('A B C D E'), ['A', 'B', 'C D E'])

    def test_tabela_cruzada_exige_cliente(self):
        ocorrencias = [
            registro(cliente='Mercado', motivo='AVARIA'),
            registro(cliente='', motivo='AVARIA'),
            registro(cliente='Mercado', motivo='AVARIA'),
        ]

        linhas = tabela_cruzada(ocorrencias, 'cliente', 'motivo', exige_a=True)
        self.assertEqual(linhas, [{'key': 'Mercado x AVARIA', 'count': 2}])

        linhas = tabela_cruzada(ocorrencias, 'motivo', 'setor')
        self.assertEqual(linhas, [{'key': 'AVARIA x LOGISTICA', 'count': 3}])

    def test_tabela_cruzada_trunca_chave(self):
        linhas = tabela_cruzada([registro(motivo='M' * 50)], 'motivo', 'setor')
        self.assertEqual(linhas[0]['key'], 'M' * 40 + '...')

    def test_evolucao_temporal(self):
        ocorrencias = [
            registro(data_ocorrencia=date(2024, 6, 11)),
            registro(data_ocorrencia=date(2024, 6, 10)),
            registro(data_ocorrencia=date(2024, 6, 11)),
            registro(data_ocorrencia=date(2024, 5, 1)),
        ]

        evolucao = evolucao_temporal(ocorrencias, 'semana_atual', hoje=date(2024, 6, 12))

        self.assertEqual(evolucao, [
            {'date': '2024-06-10', 'quantidade': 1},
            {'date': '2024-06-11', 'quantidade': 2},
        ])


class ComparativoSemanalTests(SimpleTestCase):
    hoje = date(2024, 6, 12)

    def semanas(self, atual, anterior):
        return (
            [registro(data_ocorrencia=date(2024, 6, 11))] * atual
            + [registro(data_ocorrencia=date(2024, 6, 4))] * anterior
        )

    def test_aumento(self):
        comparativo = comparativo_semanal(self.semanas(3, 2), self.hoje)
        self.assertEqual(comparativo['percentual'], 50)
        self.assertEqual(comparativo['diferenca'], 1)
        self.assertTrue(comparativo['positivo'])

    def test_semana_anterior_vazia(self):
        self.assertEqual(comparativo_semanal(self.semanas(2, 0), self.hoje)['percentual'], 100)
        self.assertEqual(comparativo_semanal(self.semanas(0, 0), self.hoje)['percentual'], 0)

    def test_queda_arredonda_para_cima_no_meio(self):
        comparativo = comparativo_semanal(self.semanas(1, 8), self.hoje)
        self.assertEqual(comparativo['percentual'], -87)
        self.assertFalse(comparativo['positivo'])


class InsightsTests(SimpleTestCase):

    def test_dashboard(self):
        ocorrencias = [
            registro(reincidencia='SIM', valor=Decimal('10'), cliente='Mercado'),
            registro(setor='COMERCIAL', status=STATUS_FINALIZADO),
        ]
        kpis = calcular_kpis(ocorrencias)
        insights = insights_dashboard(kpis, calcular_tops(ocorrencias))

        tipos = {insight['titulo']: insight['tipo'] for insight in insights}
        self.assertEqual(tipos['Alta taxa de reincidência'], 'danger')
        self.assertEqual(tipos['Taxa de resolução'], 'success')
        self.assertIn('Impacto financeiro total', tipos)
        self.assertIn('Cliente com mais ocorrências', tipos)

        setor = insights[0]
        self.assertEqual(setor['descricao'], 'O setor LOGISTICA concentra 50% de todas as ocorrências (1 casos)')

    def test_dashboard_sem_dados(self):
        self.assertEqual(insights_dashboard(calcular_kpis([]), calcular_tops([])), [])

    def test_relatorio_cliente_exige_impacto(self):
        ocorrencias = [registro(cliente='Mercado'), registro(cliente='Mercado'), registro()]

        sem_valor = insights_relatorio(ocorrencias, calcular_kpis(ocorrencias), calcular_tops(ocorrencias))
        self.assertFalse(any('Cliente' in texto for texto in sem_valor))

        ocorrencias[0]['valor'] = Decimal('5')
        com_valor = insights_relatorio(ocorrencias, calcular_kpis(ocorrencias), calcular_tops(ocorrencias))
        self.assertTrue(any('Cliente "Mercado" concentra 66.7%' in texto for texto in com_valor))

    def test_relatorio_motivo_dominante(self):
        ocorrencias = [registro(), registro(), registro(motivo='ATRASO')]
        insights = insights_relatorio(ocorrencias, calcular_kpis(ocorrencias), calcular_tops(ocorrencias))
        self.assertTrue(any(texto.startswith('⚠️ Motivo "AVARIA" representa 67%') for texto in insights))


class FiltrosTests(TestCase):

    def test_extrair_descarta_vazios(self):
        filtros = extrair_filtros({'busca': '  ', 'setor': 'LOGISTICA', 'outro': 'x'})
        self.assertEqual(filtros, {'setor': 'LOGISTICA'})

    def test_filtros_aplicados(self):
        etiquetas = filtros_aplicados({
            'periodo_inicio': '2024-06-01',
            'periodo_fim': '2024-06-30',
            'motivo': 'FALTA_DE_PRODUTO',
            'busca': 'nota',
        })
        self.assertIn('Período: 01/06 a 30/06', etiquetas)
        self.assertIn('Busca: "nota"', etiquetas)
        self.assertTrue(any('FALTA DE PRODUTO' in etiqueta for etiqueta in etiquetas))

    def test_filtrar_busca_datas_e_campos(self):
        criar_ocorrencia(detalhamento='Nota com erro', data_ocorrencia=date(2024, 6, 1))
        alvo = criar_ocorrencia(cliente='Mercado Central', data_ocorrencia=date(2024, 6, 15))
        criar_ocorrencia(cliente='Mercado Central', setor='COMERCIAL', data_ocorrencia=date(2024, 6, 15))

        resultado = filtrar_ocorrencias({
            'busca': 'central',
            'periodo_inicio': '2024-06-10',
            'periodo_fim': '2024-06-20',
            'setor': 'LOGISTICA',
        })

        self.assertEqual(list(resultado), [alvo])

    def test_abertas_primeiro(self):
        finalizada = criar_ocorrencia(status=STATUS_FINALIZADO, resultado='ok')
        aberta = criar_ocorrencia()
        self.assertEqual(list(filtrar_ocorrencias({})), [aberta, finalizada])

    @override_settings(REGGAP_RELATORIOS_MAX_ITENS=1)
    def test_limite_de_registros(self):
        criar_ocorrencia()
        criar_ocorrencia()
        self.assertEqual(len(filtrar_ocorrencias({})), 1)

    def test_texto_whatsapp(self):
        texto = texto_whatsapp(
            [registro(cliente='Mercado', valor=Decimal('10'))],
            {'periodo_inicio': '2024-06-01'},
        )
        self.assertIn('📅 Período: 2024-06-01 a Fim', texto)
        self.assertIn('1. AVARIA - Mercado - 10/06', texto)
        self.assertIn('💰 Impacto: R$ 10,00', texto)


class DashboardViewsTests(AcessoTestCase):

    def setUp(self):
        super().setUp()
        criar_ocorrencia(tipo_ocorrencia='REFATURAMENTO', valor=Decimal('250'), cliente='Mercado Central')
        criar_ocorrencia(setor='COMERCIAL')

    def test_dashboard_completo(self):
        response = self.client.get(reverse('relatorios:dashboard'))
        self.assertTemplateUsed(response, 'relatorios/dashboard.html')
        self.assertEqual(response.context['kpis']['total'], 2)

    def test_dashboard_htmx_com_filtro(self):
        response = self.htmx_get(reverse('relatorios:dashboard'), {'setor': 'COMERCIAL'})
        self.assertTemplateUsed(response, 'relatorios/partials/dashboard_dados.html')
        self.assertTemplateNotUsed(response, 'relatorios/dashboard.html')
        self.assertEqual(response.context['kpis']['total'], 1)

    def test_filtro_evolucao_invalido(self):
        response = self.client.get(reverse('relatorios:dashboard'), {'filtro_evolucao': 'seculo'})
        self.assertEqual(response.context['filtro_evolucao'], 'todo_periodo')

    def test_api_dashboard(self):
        response = self.client.get(reverse('relatorios:api_dashboard'))
        dados = response.json()
        self.assertTrue(dados['success'])
        self.assertEqual(dados['kpis']['impacto_financeiro'], 250.0)
        self.assertEqual(dados['tops']['setores'][0]['value'], 1)

    def test_relatorios(self):
        response = self.client.get(reverse('relatorios:lista'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['total_registros'], 2)


class ExportacaoTests(AcessoTestCase):

    def setUp(self):
        super().setUp()
        criar_ocorrencia(tipo_ocorrencia='REFATURAMENTO', valor=Decimal('1234.5'), cliente='Mercado Central')

    def test_csv_com_bom(self):
        response = self.client.get(reverse('relatorios:exportar_csv'))

        self.assertIn('attachment; filename="relatorio-reggap-', response['Content-Disposition'])
        conteudo = response.content.decode('utf-8')
        self.assertTrue(conteudo.startswith('\ufeffData,Setor'))
        self.assertIn('"R$ 1.234,50"', conteudo)

    def test_csv_uma_linha_por_ocorrencia_filtrada(self):
        criar_ocorrencia(
            data_ocorrencia=date(2024, 6, 3),
            motivo='FALTA_DE_PRODUTO',
            cliente='Padaria Sol',
            rede='REDE NORTE',
            cidade='Londrina',
            uf='pr',
            vendedor='Bruno',
            status=STATUS_FINALIZADO,
            resultado='Produto reposto',
            reincidencia='SIM',
        )

        response = self.client.get(reverse('relatorios:exportar_csv'))
        linhas = list(csv.reader(StringIO(response.content.decode('utf-8-sig'))))

        self.assertEqual(linhas[0], CABECALHO_CSV)
        self.assertEqual(linhas[1:], [
            ['10/06', 'LOGISTICA', 'MOTORISTA', 'REFATURAMENTO', 'AVARIA', 'Mercado Central',
             '', '', '', '', 'R$ 1.234,50', STATUS_EM_ABERTO, 'NÃO'],
            ['03/06', 'LOGISTICA', 'MOTORISTA', 'ATRASO', 'FALTA DE PRODUTO', 'Padaria Sol',
             'REDE NORTE', 'Londrina', 'PR', 'Bruno', '', STATUS_FINALIZADO, 'SIM'],
        ])

        response = self.client.get(reverse('relatorios:exportar_csv'), {'status': STATUS_FINALIZADO})
        linhas = list(csv.reader(StringIO(response.content.decode('utf-8-sig'))))

        self.assertEqual(len(linhas), 2)
        self.assertEqual(linhas[1][CABECALHO_CSV.index('Cliente')], 'Padaria Sol')

    def test_xlsx(self):
        response = self.client.get(reverse('relatorios:exportar_xlsx'))

        sheet = load_workbook(BytesIO(response.content)).active
        self.assertEqual(sheet.cell(row=1, column=1).value, 'Data Ocorrência')
        self.assertEqual(sheet.cell(row=2, column=12).value, 1234.5)

    def test_pdf(self):
        response = self.client.get(reverse('relatorios:exportar_pdf'))
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_pdf_com_marcacao_nos_filtros(self):
        response = self.client.get(reverse('relatorios:exportar_pdf'), {'busca': '<b'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b'%PDF'))

        response = self.client.get(reverse('relatorios:exportar_pdf'), {'cliente': 'M&M <LTDA>'})
        self.assertEqual(response.status_code, 200)

    def test_html(self):
        response = self.client.get(reverse('relatorios:exportar_html'))
        self.assertNotIn('Content-Disposition', response)
        self.assertContains(response, 'Grupo DoceMel')

        response = self.client.get(reverse('relatorios:exportar_html'), {'download': '1'})
        self.assertIn('.html"', response['Content-Disposition'])

    def test_whatsapp(self):
        response = self.client.get(reverse('relatorios:whatsapp'))

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response['Location'].startswith('https://wa.me/?text='))
        self.assertIn('Ocorrências: 1', unquote(response['Location']))

    def test_exportacao_exige_acesso(self):
        self.client.logout()
        response = self.client.get(reverse('relatorios:exportar_csv'))
        self.assertEqual(response.status_code, 302)
