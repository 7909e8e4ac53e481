"""
Testes da app core: acesso, health check, cadastros, clientes e utilitários.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from io import BytesIO, StringIO

from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.template import Context, Template
from django.test import RequestFactory, TestCase
from django.urls import reverse
from django.utils import timezone
from openpyxl import Workbook, load_workbook

from apps.core.exportacao import gerar_pdf_tabela
from apps.core.models import Cliente, Setor, StatusOcorrencia, TipoOcorrencia
from apps.core.planilha_clientes import (
    ImportacaoClientesError,
    exportar_clientes,
    importar_clientes,
    ler_planilha_clientes,
)
from apps.core.utils import (
    agregar_top,
    arredondar,
    calcular_mttr,
    formatar_data,
    formatar_moeda,
    para_data,
    para_decimal,
    percentual,
    truncar,
)


class AcessoTestCase(TestCase):
    """Base para testes de telas protegidas pela senha única"""

    def setUp(self):
        self.liberar_acesso()

    def liberar_acesso(self):
        session = self.client.session
        session[settings.REGGAP_SESSAO_CHAVE] = True
        session.save()

    def htmx_get(self, url, data=None):
        return self.client.get(url, data or {}, HTTP_HX_REQUEST='true')

    def htmx_post(self, url, data=None):
        return self.client.post(url, data or {}, HTTP_HX_REQUEST='true')


def planilha_xlsx(linhas, nome='clientes.xlsx'):
    """Gera um .xlsx em memória com openpyxl"""
    workbook = Workbook()
    sheet = workbook.active
    for linha in linhas:
        sheet.append(linha)
    conteudo = BytesIO()
    workbook.save(conteudo)
    conteudo.seek(0)
    conteudo.name = nome
    return conteudo


class AcessoTests(TestCase):
    """Portão de senha única"""

    def test_tela_protegida_redireciona_para_login(self):
        response = self.client.get('/ocorrencias/')
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], '/login/?next=/ocorrencias/')

    def test_htmx_sem_sessao_recebe_401(self):
        response = self.client.get('/ocorrencias/', HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Acesso não autorizado')

    def test_api_sem_sessao_recebe_401(self):
        response = self.client.post('/api/sync-sheets')
        self.assertEqual(response.status_code, 401)

    def test_senha_incorreta(self):
        response = self.client.post(reverse('core:login'), {'senha': 'errada'}, follow=True)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Senha incorreta')
        self.assertFalse(self.client.session.get(settings.REGGAP_SESSAO_CHAVE))

    def test_senha_correta_libera_sessao(self):
        response = self.client.post(reverse('core:login'), {'senha': 'senha-de-teste'})
        self.assertRedirects(response, settings.LOGIN_REDIRECT_URL, fetch_redirect_response=False)
        self.assertTrue(self.client.session.get(settings.REGGAP_SESSAO_CHAVE))

    def test_next_externo_e_ignorado(self):
        response = self.client.post(
            reverse('core:login'),
            {'senha': 'senha-de-teste', 'next': 'https://exemplo.com/'},
        )
        self.assertEqual(response['Location'], settings.LOGIN_REDIRECT_URL)

    def test_next_interno_e_respeitado(self):
        response = self.client.post(
            reverse('core:login'),
            {'senha': 'senha-de-teste', 'next': '/checknf/'},
        )
        self.assertEqual(response['Location'], '/checknf/')

    def test_logout_encerra_sessao(self):
        self.client.post(reverse('core:login'), {'senha': 'senha-de-teste'})
        self.client.get(reverse('core:logout'))
        response = self.client.get('/ocorrencias/')
        self.assertEqual(response.status_code, 302)

    def test_raiz_vai_para_dashboard(self):
        self.client.post(reverse('core:login'), {'senha': 'senha-de-teste'})
        response = self.client.get('/')
        self.assertRedirects(response, reverse('relatorios:dashboard'), fetch_redirect_response=False)


class HealthCheckTests(TestCase):

    def test_health_aberto_sem_senha(self):
        for url in ('/api/health', '/health/'):
            response = self.client.get(url)
            self.assertEqual(response.status_code, 200)
            dados = response.json()
            self.assertEqual(dados['status'], 'healthy')
            self.assertEqual(dados['database'], 'connected')
            self.assertEqual(dados['cache'], 'ok')
            self.assertEqual(dados['sheets'], 'no_connection')
            self.assertIn('timestamp', dados)
            self.assertIn('version', dados)

    def test_sheets_configurado(self):
        with self.settings(
                GOOGLE_SHEETS_SPREADSHEET_ID='planilha',
                GOOGLE_SERVICE_ACCOUNT_EMAIL='conta@projeto.iam.gserviceaccount.com',
                GOOGLE_PRIVATE_KEY='chave',
        ):
            response = self.client.get('/api/health')
        self.assertEqual(response.json()['sheets'], 'synced')


class ConfiguracoesTests(AcessoTestCase):
    """Painel genérico de setores, motivos, tipos e status"""

    def test_configuracoes_abre_setores(self):
        response = self.client.get(reverse('core:configuracoes'))
        self.assertRedirects(response, reverse('core:configuracoes_tipo', kwargs={'tipo': 'setores'}))

    def test_incluir_item_normaliza_nome(self):
        url = reverse('core:configuracoes_tipo', kwargs={'tipo': 'setores'})
        response = self.client.post(url, {'nome': '  logistica '})
        self.assertRedirects(response, url)
        self.assertTrue(Setor.objects.filter(nome='LOGISTICA').exists())

    def test_item_duplicado_e_recusado(self):
        Setor.objects.create(nome='LOGISTICA')
        url = reverse('core:configuracoes_tipo', kwargs={'tipo': 'setores'})
        response = self.client.post(url, {'nome': 'logistica'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Setor.objects.count(), 1)
        self.assertContains(response, 'já está cadastrado')

    def test_alternar_e_excluir_item(self):
        setor = Setor.objects.create(nome='COMERCIAL')

        self.client.post(reverse('core:alternar_cadastro', kwargs={'tipo': 'setores', 'item_id': setor.id}))
        setor.refresh_from_db()
        self.assertFalse(setor.ativo)
        self.assertEqual(Setor.objects.nomes_ativos(), [])

        self.client.post(reverse('core:excluir_cadastro', kwargs={'tipo': 'setores', 'item_id': setor.id}))
        self.assertFalse(Setor.objects.exists())

    def test_tipo_inexistente(self):
        response = self.client.get('/configuracoes/inexistente/')
        self.assertEqual(response.status_code, 404)


class ClientesTests(AcessoTestCase):

    def test_cadastro_manual(self):
        response = self.client.post(reverse('core:clientes'), {
            'cliente': ' Mercado Central ',
            'rede': 'REDE SUL',
            'cidade': 'Curitiba',
            'uf': 'pr',
            'vendedor': 'Ana',
        })
        self.assertRedirects(response, reverse('core:clientes'))
        cliente = Cliente.objects.get()
        self.assertEqual(cliente.cliente, 'Mercado Central')
        self.assertEqual(cliente.uf, 'PR')

    def test_busca(self):
        Cliente.objects.create(cliente='Mercado Central', rede='REDE SUL')
        Cliente.objects.create(cliente='Padaria Norte')
        response = self.client.get(reverse('core:clientes'), {'busca': 'sul'})
        self.assertContains(response, 'Mercado Central')
        self.assertNotContains(response, 'Padaria Norte')

    def test_importar_planilha(self):
        arquivo = planilha_xlsx([
            ['CLIENTE', 'rede', 'Cidade', 'uf', 'Vendedor'],
            ['Mercado Central', 'REDE SUL', 'Curitiba', 'pr', 'Ana'],
            [None, 'REDE X', '', '', ''],
            ['Padaria Norte', '', 'Londrina', 'PR', 'Bruno'],
        ])
        upload = SimpleUploadedFile('clientes.xlsx', arquivo.read())

        response = self.client.post(reverse('core:importar_clientes'), {'arquivo': upload}, follow=True)

        self.assertContains(response, '2 novos')
        self.assertEqual(Cliente.objects.count(), 2)
        self.assertEqual(Cliente.objects.get(cliente='Mercado Central').uf, 'PR')

    def test_importar_arquivo_nao_excel(self):
        upload = SimpleUploadedFile('clientes.csv', b'cliente\nX\n')
        response = self.client.post(reverse('core:importar_clientes'), {'arquivo': upload}, follow=True)
        self.assertContains(response, 'Envie um arquivo Excel')
        self.assertFalse(Cliente.objects.exists())

    def test_exportar_planilha(self):
        Cliente.objects.create(cliente='Mercado Central', uf='PR')
        response = self.client.get(reverse('core:exportar_clientes'))

        self.assertEqual(response.status_code, 200)
        self.assertIn('attachment; filename="clientes-', response['Content-Disposition'])
        sheet = load_workbook(BytesIO(response.content)).active
        self.assertEqual(sheet['A1'].value, 'Cliente')
        self.assertEqual(sheet['A2'].value, 'Mercado Central')

    def test_alternar_cliente_htmx(self):
        cliente = Cliente.objects.create(cliente='Mercado Central')
        response = self.htmx_post(reverse('core:alternar_cliente', kwargs={'cliente_id': cliente.id}))
        self.assertEqual(response.json(), {'success': True, 'ativo': False})


class PlanilhaClientesTests(TestCase):

    def test_upsert_por_nome(self):
        Cliente.objects.create(cliente='Mercado Central', rede='ANTIGA')
        arquivo = planilha_xlsx([
            ['Cliente', 'Rede'],
            ['Mercado Central', 'NOVA'],
            ['Mercado Central', 'REPETIDA'],
            ['Padaria Norte', ''],
        ])

        resultado = importar_clientes(arquivo)

        self.assertEqual(resultado, {'criados': 1, 'atualizados': 1, 'ignorados': 1})
        self.assertEqual(Cliente.objects.get(cliente='Mercado Central').rede, 'NOVA')

    def test_sem_coluna_cliente(self):
        with self.assertRaises(ImportacaoClientesError):
            ler_planilha_clientes(planilha_xlsx([['Rede', 'UF'], ['X', 'PR']]))

    def test_arquivo_corrompido(self):
        with self.assertRaises(ImportacaoClientesError):
            ler_planilha_clientes(BytesIO(b'nao e um xlsx'))

    def test_exportar_gera_xlsx(self):
        Cliente.objects.create(cliente='Mercado Central', cidade='Curitiba')
        sheet = load_workbook(BytesIO(exportar_clientes())).active
        self.assertEqual(sheet.title, 'Clientes')
        self.assertEqual(sheet['C2'].value, 'Curitiba')


class SeedCommandTests(TestCase):

    def test_seed_idempotente(self):
        call_command('seed', stdout=StringIO())
        call_command('seed', stdout=StringIO())

        self.assertEqual(StatusOcorrencia.objects.nomes_ativos(), ['EM ABERTO', 'FINALIZADO'])
        self.assertEqual(TipoOcorrencia.objects.count(), 3)


class UtilsTests(TestCase):

    def test_formatar_moeda(self):
        self.assertEqual(formatar_moeda(1234.5), 'R$ 1.234,50')
        self.assertEqual(formatar_moeda(Decimal('1000000')), 'R$ 1.000.000,00')
        self.assertEqual(formatar_moeda(None), 'R$ 0,00')
        self.assertEqual(formatar_moeda(-10), '-R$ 10,00')

    def test_conversoes(self):
        self.assertEqual(para_decimal('12.5'), Decimal('12.5'))
        self.assertEqual(para_decimal('abc'), Decimal('0'))
        self.assertEqual(para_data('2024-06-10T08:00:00'), date(2024, 6, 10))
        self.assertIsNone(para_data('10/06/2024'))
        self.assertEqual(formatar_data('2024-06-10'), '10/06')
        self.assertEqual(formatar_data(None), '-')

    def test_agregar_top_mantem_ordem_nos_empates(self):
        registros = [{'m': 'B'}, {'m': 'A'}, {'m': 'A'}, {'m': 'B'}, {'m': 'C'}, {'m': None}]
        pares = agregar_top(registros, lambda r: r['m'])
        self.assertEqual(pares, [('B', 2), ('A', 2), ('C', 1)])

    def test_agregar_top_soma_valor_e_limita(self):
        registros = [
            {'c': 'X', 'v': '10.50'},
            {'c': 'Y', 'v': 30},
            {'c': 'X', 'v': None},
            {'c': 'Z', 'v': 1},
        ]
        pares = agregar_top(registros, lambda r: r['c'], valor=lambda r: r['v'], limite=2)
        self.assertEqual(pares, [('Y', Decimal('30')), ('X', Decimal('10.50'))])

    def test_agregar_top_limite_maior_que_entrada(self):
        registros = [{'m': 'A'}, {'m': 'B'}, {'m': 'A'}]
        pares = agregar_top(registros, lambda r: r['m'], limite=10)
        self.assertEqual(pares, [('A', 2), ('B', 1)])

    def test_pdf_escapa_textos_livres(self):
        conteudo = gerar_pdf_tabela(
            'Relatório <b',
            ['Cliente'],
            [['M&M <LTDA>']],
            informacoes=['Busca: "<b"'],
            rodape='Maior pendência: M&M <LTDA',
        )
        self.assertTrue(conteudo.startswith(b'%PDF'))

    def test_arredondamento_comercial(self):
        self.assertEqual(arredondar(12.5), 13)
        self.assertEqual(arredondar(2.675, 2), 2.68)
        self.assertEqual(percentual(1, 8), 13)
        self.assertEqual(percentual(5, 0), 0)

    def test_truncar(self):
        self.assertEqual(truncar('abcdef', 3, '...'), 'abc...')
        self.assertEqual(truncar('abc', 3, '...'), 'abc')

    def test_mttr_apenas_finalizadas(self):
        inicio = timezone.now()
        ocorrencias = [
            {'status': 'FINALIZADO', 'data_criacao': inicio, 'data_conclusao': inicio + timedelta(hours=2)},
            {'status': 'FINALIZADO', 'data_criacao': inicio, 'data_conclusao': inicio + timedelta(hours=5)},
            {'status': 'EM ABERTO', 'data_criacao': inicio, 'data_conclusao': None},
        ]
        self.assertEqual(calcular_mttr(ocorrencias), 3.5)
        self.assertEqual(calcular_mttr([]), 0)


class TemplateTagsTests(TestCase):

    def renderizar(self, texto, request):
        template = Template('{% load reggap %}' + texto)
        return template.render(Context({'request': request}))

    def test_filtros(self):
        template = Template('{% load reggap %}{{ valor|moeda }} {{ data|data_br }} {{ texto|rotulo }}')
        saida = template.render(Context({
            'valor': 1500,
            'data': datetime(2024, 6, 10, 12, 0),
            'texto': 'FALTA_DE_PRODUTO',
        }))
        self.assertEqual(saida, 'R$ 1.500,00 10/06/2024 FALTA DE PRODUTO')

    def test_url_pagina_preserva_filtros(self):
        request = RequestFactory().get('/ocorrencias/', {'setor': 'LOGISTICA', 'page': '1'})
        saida = self.renderizar('{% url_pagina 3 %}', request)
        self.assertIn('setor=LOGISTICA', saida)
        self.assertIn('page=3', saida)

    def test_url_ordenacao_alterna_direcao(self):
        request = RequestFactory().get('/checknf/', {'atrasos_ordenar': 'valor', 'atrasos_ordem': 'asc'})
        self.assertIn('atrasos_ordem=desc', self.renderizar("{% url_ordenacao 'atrasos' 'valor' %}", request))
        self.assertIn('atrasos_ordem=asc', self.renderizar("{% url_ordenacao 'atrasos' 'cliente' %}", request))
