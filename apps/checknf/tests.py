"""
Testes do CHECKNF: período, status, estatísticas, relatório de pendentes e carga
"""
import tempfile
from datetime import date, datetime, timedelta
from decimal import Decimal
from io import BytesIO, StringIO
from pathlib import Path
from urllib.parse import unquote

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from openpyxl import Workbook, load_workbook

from apps.checknf.importacao import ImportacaoNotasError, importar_notas
from apps.checknf.models import NotaFiscal
from apps.checknf.utils import (
    CANCELADA,
    ENTREGUE,
    PENDENTE,
    atrasos_top,
    calcular_estatisticas,
    carregar_pendentes,
    cor_mapa_calor,
    descrever_periodo,
    filtrar_notas,
    grafico_cliente_status,
    grafico_pendencias_dia_semana,
    mapa_calor_rede_status,
    mapa_uf,
    montar_relatorio_pendentes,
    normalizar_status,
    resolver_periodo,
    vencimentos_proximos,
)
from apps.core.tests import AcessoTestCase
from apps.core.utils import hoje_brasil

HOJE = date(2024, 6, 10)


def nota(**campos):
    """Nota no formato de NotaFiscal.objects.values()"""
    dados = {
        'id': 1,
        'numero_nf': '1000',
        'data_emissao': HOJE,
        'data_entrega': None,
        'data_vencimento': None,
        'cliente': 'MERCADO CENTRAL LTDA',
        'nome_fantasia': 'Mercado Central',
        'razao_social': 'Mercado Central Ltda',
        'rede': 'REDE SUL',
        'uf': 'PR',
        'vendedor': 'Ana',
        'fretista': 'Transportes Silva',
        'placa': 'ABC1D23',
        'status': PENDENTE,
        'situacao': '',
        'valor_total': Decimal('100.00'),
    }
    dados.update(campos)
    return dados


def criar_nota(**campos):
    dados = {
        'numero_nf': '1000',
        'data_emissao': hoje_brasil(),
        'nome_fantasia': 'Mercado Central',
        'fretista': 'Transportes Silva',
        'status': PENDENTE,
        'valor_total': Decimal('100.00'),
    }
    dados.update(campos)
    return NotaFiscal.objects.create(**dados)


class ResolverPeriodoTests(SimpleTestCase):

    def test_ultimos_7_dias_inclui_hoje(self):
        self.assertEqual(
            resolver_periodo('ultimos7dias', hoje=HOJE),
            {'inicio': '2024-06-04', 'fim': '2024-06-10'},
        )

    def test_ultimos_30_dias(self):
        self.assertEqual(resolver_periodo('ultimos30dias', hoje=HOJE)['inicio'], '2024-05-12')

    def test_mes_anterior_bissexto(self):
        self.assertEqual(
            resolver_periodo('mesAnterior', hoje=date(2024, 3, 15)),
            {'inicio': '2024-02-01', 'fim': '2024-02-29'},
        )

    def test_mes_atual(self):
        self.assertEqual(
            resolver_periodo('mesAtual', hoje=HOJE),
            {'inicio': '2024-06-01', 'fim': '2024-06-30'},
        )

    def test_personalizado_usa_datas_informadas(self):
        self.assertEqual(
            resolver_periodo('personalizado', ' 2024-01-01 ', '2024-01-31', hoje=HOJE),
            {'inicio': '2024-01-01', 'fim': '2024-01-31'},
        )
        self.assertEqual(resolver_periodo('', hoje=HOJE), {'inicio': '', 'fim': ''})

    def test_token_vence_no_dashboard(self):
        self.assertEqual(
            resolver_periodo('hoje', '2024-01-01', '', hoje=HOJE),
            {'inicio': '2024-06-10', 'fim': '2024-06-10'},
        )

    def test_datas_vencem_no_relatorio(self):
        self.assertEqual(
            resolver_periodo('hoje', '2024-01-01', '', hoje=HOJE, explicitas_prevalecem=True),
            {'inicio': '2024-01-01', 'fim': '2024-06-10'},
        )


class StatusTests(SimpleTestCase):

    def test_normalizacao(self):
        self.assertEqual(normalizar_status(' cancelado '), CANCELADA)
        self.assertEqual(normalizar_status('devolvido'), 'DEVOLVIDA')
        self.assertEqual(normalizar_status('entregue'), ENTREGUE)
        self.assertEqual(normalizar_status(''), PENDENTE)
        self.assertEqual(normalizar_status(None), PENDENTE)
        self.assertEqual(normalizar_status('em rota'), 'EM ROTA')

    def test_idempotente(self):
        for valor in ['cancelado', 'PAGO', '', 'Reenviado', 'entregue', 'x']:
            self.assertEqual(normalizar_status(normalizar_status(valor)), normalizar_status(valor))


class EstatisticasTests(SimpleTestCase):

    def test_estatisticas(self):
        registros = [
            nota(status='entregue', valor_total=Decimal('50')),
            nota(status='', valor_total=Decimal('30')),
            nota(status='Cancelado'),
            nota(data_vencimento=HOJE - timedelta(days=2), data_emissao=HOJE - timedelta(days=5)),
        ]

        stats = calcular_estatisticas(registros, HOJE)

        self.assertEqual(stats['totalNotas'], 4)
        self.assertEqual(stats['notasEntregues'], 1)
        self.assertEqual(stats['notasPendentes'], 2)
        self.assertEqual(stats['notasCanceladas'], 1)
        self.assertEqual(stats['eficiencia'], 50.0)
        self.assertEqual(stats['percentualEntregue'], 25.0)
        self.assertEqual(stats['valorTotal'], 280.0)
        self.assertEqual(stats['valorPendente'], 130.0)
        self.assertEqual(stats['notasAtrasadas'], 1)
        self.assertEqual(stats['notasHoje'], 3)

    def test_sem_registros(self):
        stats = calcular_estatisticas([], HOJE)
        self.assertEqual(stats['eficiencia'], 0)
        self.assertEqual(stats['percentualEntregue'], 0)

    def test_atrasos_ordenados_e_limitados(self):
        registros = [
            nota(id=i, numero_nf=str(i), data_vencimento=HOJE - timedelta(days=i))
            for i in range(1, 36)
        ]
        registros.append(nota(id=99, status=ENTREGUE, data_vencimento=HOJE - timedelta(days=90)))

        atrasos = atrasos_top(registros, HOJE)

        self.assertEqual(len(atrasos), 30)
        self.assertEqual(atrasos[0]['diasAtraso'], 35)
        self.assertEqual(atrasos[-1]['diasAtraso'], 6)
        self.assertNotIn(99, [item['id'] for item in atrasos])

    def test_atrasos_ordenados_pela_coluna(self):
        registros = [
            nota(id=1, valor_total=Decimal('10'), data_vencimento=HOJE - timedelta(days=1)),
            nota(id=2, valor_total=Decimal('99'), data_vencimento=HOJE - timedelta(days=3)),
            nota(id=3, valor_total=Decimal('50'), data_vencimento=HOJE - timedelta(days=2)),
        ]

        atrasos = atrasos_top(registros, HOJE, ordenar_por='valor', ordem='desc')
        self.assertEqual([item['id'] for item in atrasos], [2, 3, 1])

    def test_vencimentos_na_janela_de_7_dias(self):
        registros = [
            nota(id=1, data_vencimento=HOJE + timedelta(days=7)),
            nota(id=2, data_vencimento=HOJE),
            nota(id=3, data_vencimento=HOJE + timedelta(days=8)),
            nota(id=4, data_vencimento=HOJE - timedelta(days=1)),
            nota(id=5, status=ENTREGUE, data_vencimento=HOJE + timedelta(days=1)),
        ]

        vencimentos = vencimentos_proximos(registros, HOJE)

        self.assertEqual([item['id'] for item in vencimentos], [2, 1])
        self.assertEqual(vencimentos[1]['diasRestantes'], 7)


class GraficosTests(SimpleTestCase):

    def test_domingo_fica_no_inicio_da_semana(self):
        domingo = date(2024, 6, 9)
        grafico = grafico_pendencias_dia_semana([nota(data_emissao=domingo)], HOJE)

        self.assertEqual(grafico['labels'][0], 'Dom')
        self.assertEqual(grafico['datasets'][0]['data'], [1, 0, 0, 0, 0, 0, 0])

    def test_dia_semana_ignora_emissoes_antigas(self):
        grafico = grafico_pendencias_dia_semana([nota(data_emissao=HOJE - timedelta(days=8))], HOJE)
        self.assertEqual(sum(grafico['datasets'][0]['data']), 0)

    def test_cores_do_mapa_de_calor(self):
        self.assertEqual(cor_mapa_calor(0, 5, PENDENTE), 'rgba(229, 231, 235, 0.3)')
        self.assertEqual(cor_mapa_calor(1, 10, PENDENTE), 'rgba(254, 240, 138, 0.8)')
        self.assertEqual(cor_mapa_calor(5, 5, PENDENTE), 'rgba(185, 28, 28, 0.9)')
        self.assertEqual(cor_mapa_calor(5, 5, ENTREGUE), 'rgba(34, 197, 94, 0.8)')
        self.assertEqual(cor_mapa_calor(1, 1, 'OUTRO'), 'rgba(229, 231, 235, 0.5)')

    def test_mapa_de_calor_ignora_rede_vazia(self):
        mapa = mapa_calor_rede_status([
            nota(rede='REDE SUL'),
            nota(rede='REDE SUL'),
            nota(rede='', status=ENTREGUE),
        ])

        self.assertEqual(mapa['redes'], ['REDE SUL'])
        self.assertEqual(mapa['maxPendente'], 2)
        self.assertEqual(mapa['matrix'][0]['statuses'][0], {
            'status': PENDENTE, 'count': 2, 'cor': 'rgba(185, 28, 28, 0.9)',
        })

    def test_mapa_uf(self):
        registros = [nota(uf='SP'), nota(uf='PR'), nota(uf='SP'), nota(uf='RS', status=ENTREGUE)]
        self.assertEqual(mapa_uf(registros), [['SP', 2], ['PR', 1]])

    def test_cliente_status_usa_primeiro_cliente(self):
        registros = [
            nota(nome_fantasia='Mercado Central', status=ENTREGUE),
            nota(nome_fantasia='Padaria Sol'),
        ]

        grafico = grafico_cliente_status(registros)
        self.assertEqual(grafico['cliente'], 'Mercado Central')
        self.assertEqual(grafico['datasets'][0]['data'], [1, 0, 0, 0])

        grafico = grafico_cliente_status(registros, 'Padaria Sol')
        self.assertEqual(grafico['datasets'][0]['data'], [0, 1, 0, 0])


class PendentesTests(TestCase):

    def test_filtro_de_status_normalizado(self):
        criar_nota(numero_nf='1', status='CANCELADA')
        criar_nota(numero_nf='2', status='cancelado ')
        criar_nota(numero_nf='3', status='ENTREGUE')

        registros = filtrar_notas({'status': 'Cancelado'}, {'inicio': '', 'fim': ''})

        self.assertEqual(sorted(r['numero_nf'] for r in registros), ['1', '2'])

    def test_filtro_por_periodo_e_busca(self):
        criar_nota(numero_nf='1', data_emissao=date(2024, 6, 1), placa='XYZ9A87')
        criar_nota(numero_nf='2', data_emissao=date(2024, 6, 15), placa='XYZ9A87')
        criar_nota(numero_nf='3', data_emissao=date(2024, 6, 15))

        registros = filtrar_notas({'busca': 'xyz'}, {'inicio': '2024-06-10', 'fim': '2024-06-30'})

        self.assertEqual([r['numero_nf'] for r in registros], ['2'])

    @override_settings(REGGAP_CHECKNF_MAX_REGISTROS=2)
    def test_limite_nao_afeta_estatisticas(self):
        for numero in range(3):
            criar_nota(numero_nf=str(numero), valor_total=Decimal('10'))
        criar_nota(numero_nf='9', status=ENTREGUE)

        todos, pendentes = carregar_pendentes({})
        dados = montar_relatorio_pendentes(pendentes, todos)

        self.assertEqual(len(todos), 3)
        self.assertEqual(len(pendentes), 2)
        self.assertEqual(dados['estatisticas']['pendentes'], 3)
        self.assertEqual(dados['estatisticas']['valorPendente'], 30.0)
        self.assertEqual(dados['tops']['fretistas'], [{'name': 'Transportes Silva', 'count': 2}])

    def test_rankings_e_insights(self):
        pendentes = [
            nota(nome_fantasia='Mercado Central', valor_total=Decimal('80'), vendedor='Ana'),
            nota(nome_fantasia='', razao_social='', valor_total=Decimal('20'), fretista='', vendedor='Bia'),
        ]

        dados = montar_relatorio_pendentes(pendentes)

        self.assertEqual(dados['tops']['clientes'][0], {'name': 'Mercado Central', 'value': 80.0, 'quantidade': 1})
        self.assertEqual(dados['tops']['clientes'][1]['name'], 'Sem cliente')
        self.assertIn('Sem fretista', [item['name'] for item in dados['tops']['fretistas']])
        self.assertIn('⚠️ Cliente "Mercado Central" concentra 80.0% do valor total de pendências.', dados['insights'])
        self.assertEqual(dados['por_data'], [{'name': '10/06/2024', 'count': 2, 'valor': 100.0}])

    def test_descrever_periodo(self):
        self.assertEqual(
            descrever_periodo({'data_inicio': '2024-06-01', 'data_fim': '2024-06-30', 'periodo': 'hoje'}),
            '01/06/2024 a 30/06/2024',
        )
        self.assertEqual(descrever_periodo({'periodo': 'mesAtual'}), 'Mês atual')
        self.assertEqual(descrever_periodo({}), 'Período não especificado')


class CheckNFViewsTests(AcessoTestCase):

    def setUp(self):
        super().setUp()
        criar_nota(numero_nf='1', data_vencimento=hoje_brasil() - timedelta(days=3), rede='REDE SUL', uf='PR')
        criar_nota(numero_nf='2', status='ENTREGUE', nome_fantasia='Padaria Sol')

    def test_dashboard_completo(self):
        response = self.client.get(reverse('checknf:dashboard'))
        self.assertTemplateUsed(response, 'checknf/dashboard.html')
        self.assertEqual(response.context['stats']['totalNotas'], 2)
        self.assertContains(response, reverse('api_health'))

    def test_dashboard_htmx_filtra_status(self):
        response = self.htmx_get(reverse('checknf:dashboard'), {'status': 'entregue', 'periodo': 'hoje'})
        self.assertTemplateUsed(response, 'checknf/partials/dashboard_dados.html')
        self.assertEqual(response.context['stats']['totalNotas'], 1)

    def test_dashboard_ordena_atrasos(self):
        response = self.client.get(reverse('checknf:dashboard'), {
            'atrasos_ordenar': 'valor', 'atrasos_ordem': 'desc',
        })
        self.assertEqual(len(response.context['atrasosTop']), 1)

    def test_api_dashboard(self):
        dados = self.client.get(reverse('checknf:api_dashboard'), {'cliente_grafico': 'Padaria Sol'}).json()

        self.assertEqual(dados['stats']['notasAtrasadas'], 1)
        self.assertEqual(dados['charts']['clienteStatus']['cliente'], 'Padaria Sol')
        self.assertEqual(dados['charts']['mapaUf'], [['PR', 1]])
        self.assertEqual(len(dados['charts']), 13)

    def test_api_filtros(self):
        dados = self.client.get(reverse('checknf:api_filtros')).json()
        self.assertEqual(dados['status'], [ENTREGUE, PENDENTE])
        self.assertEqual(dados['redes'], ['REDE SUL'])

    def test_relatorio_lista_apenas_pendentes(self):
        response = self.client.get(reverse('checknf:relatorio'))

        self.assertTemplateUsed(response, 'checknf/relatorio.html')
        self.assertEqual(response.context['total_filtrado'], 1)
        self.assertEqual(response.context['estatisticas']['pendentes'], 1)

    def test_relatorio_htmx(self):
        response = self.htmx_get(reverse('checknf:relatorio'))
        self.assertTemplateUsed(response, 'checknf/partials/relatorio_tabela.html')

    def test_exportar_csv(self):
        response = self.client.get(reverse('checknf:exportar_csv'))

        self.assertIn('relatorio_pendentes_', response['Content-Disposition'])
        conteudo = response.content.decode('utf-8')
        self.assertTrue(conteudo.startswith('\ufeffNF,Data Emissão,Cliente'))
        self.assertIn('Mercado Central', conteudo)
        self.assertNotIn('Padaria Sol', conteudo)

    def test_exportar_xlsx(self):
        response = self.client.get(reverse('checknf:exportar_xlsx'))
        sheet = load_workbook(BytesIO(response.content)).active
        self.assertEqual(sheet.cell(row=2, column=7).value, 100)

    def test_exportar_pdf(self):
        response = self.client.get(reverse('checknf:exportar_pdf'))
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_exportar_html(self):
        response = self.client.get(reverse('checknf:exportar_html'), {'download': '1'})
        self.assertIn('attachment', response['Content-Disposition'])
        self.assertContains(response, 'CHECKNF - Controle de Notas Fiscais')

    def test_whatsapp(self):
        response = self.client.get(reverse('checknf:whatsapp'), {
            'data_inicio': '2024-06-01', 'data_fim': '2024-06-30',
        })
        texto = unquote(response['Location'])
        self.assertIn('*Período:* 01/06/2024 a 30/06/2024', texto)

    def test_api_exige_acesso(self):
        self.client.logout()
        response = self.client.get(reverse('checknf:api_dashboard'))
        self.assertEqual(response.status_code, 401)


class ImportacaoNotasTests(TestCase):

    def setUp(self):
        diretorio = tempfile.TemporaryDirectory()
        self.addCleanup(diretorio.cleanup)
        self.diretorio = Path(diretorio.name)

    def arquivo(self, nome, conteudo):
        caminho = self.diretorio / nome
        caminho.write_text(conteudo, encoding='utf-8')
        return caminho

    def test_csv_com_ponto_e_virgula(self):
        caminho = self.arquivo('notas.csv', (
            'NUMERO_NF;nome_fantasia;data_emissao;valor_total;uf;status\n'
            '123;Mercado Central;10/06/2024;1.234,56;pr;pendente\n'
            ';Sem número;;;;\n'
        ))

        resultado = importar_notas(caminho)

        self.assertEqual(resultado, {'importadas': 1, 'ignoradas': 1})
        nota_fiscal = NotaFiscal.objects.get()
        self.assertEqual(nota_fiscal.data_emissao, date(2024, 6, 10))
        self.assertEqual(nota_fiscal.valor_total, Decimal('1234.56'))
        self.assertEqual(nota_fiscal.uf, 'PR')

    def test_csv_sem_numero_nf(self):
        caminho = self.arquivo('notas.csv', 'cliente;valor_total\nMercado;10\n')
        with self.assertRaises(ImportacaoNotasError):
            importar_notas(caminho)

    def test_xlsx(self):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(['numero_nf', 'data_emissao', 'valor_total', 'status'])
        sheet.append(['555', datetime(2024, 6, 10), 10.5, 'ENTREGUE'])
        caminho = self.diretorio / 'notas.xlsx'
        workbook.save(caminho)

        importar_notas(caminho)

        nota_fiscal = NotaFiscal.objects.get()
        self.assertEqual(nota_fiscal.numero_nf, '555')
        self.assertEqual(nota_fiscal.data_emissao, date(2024, 6, 10))
        self.assertEqual(nota_fiscal.valor_total, Decimal('10.5'))

    def test_comando_com_limpar(self):
        criar_nota(numero_nf='antiga')
        caminho = self.arquivo('notas.csv', 'numero_nf,status\n1,PENDENTE\n2,ENTREGUE\n')
        saida = StringIO()

        call_command('importar_notas', str(caminho), '--limpar', stdout=saida)

        self.assertEqual(sorted(NotaFiscal.objects.values_list('numero_nf', flat=True)), ['1', '2'])
        self.assertIn('2 nota(s) importada(s)', saida.getvalue())

    def test_comando_arquivo_inexistente(self):
        with self.assertRaises(CommandError):
            call_command('importar_notas', str(self.diretorio / 'nada.csv'), stdout=StringIO())
