"""
Testes de ocorrências: regras do formulário, modelo, telas e espelho da planilha.
"""
import json
from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.urls import reverse

from apps.core.models import Cliente, Motivo, Setor, StatusOcorrencia, TipoColaborador, TipoOcorrencia
from apps.core.tests import AcessoTestCase
from apps.ocorrencias.forms import OcorrenciaForm
from apps.ocorrencias.models import (
    MSG_CAMPOS_OBRIGATORIOS,
    MSG_RESULTADO_OBRIGATORIO,
    MSG_VALOR_OBRIGATORIO,
    STATUS_EM_ABERTO,
    STATUS_FINALIZADO,
    Ocorrencia,
)
from apps.ocorrencias.planilhas import (
    CABECALHOS,
    PlanilhaError,
    PlanilhaNaoConfiguradaError,
    PlanilhaService,
    linha_planilha,
)

PLANILHA_CONFIGURADA = {
    'GOOGLE_SHEETS_SPREADSHEET_ID': 'planilha-teste',
    'GOOGLE_SERVICE_ACCOUNT_EMAIL': 'conta@projeto.iam.gserviceaccount.com',
    'GOOGLE_PRIVATE_KEY': 'chave',
}


def criar_cadastros():
    Setor.objects.create(nome='LOGISTICA')
    TipoColaborador.objects.create(nome='MOTORISTA')
    TipoOcorrencia.objects.create(nome='REFATURAMENTO')
    TipoOcorrencia.objects.create(nome='ATRASO')
    Motivo.objects.create(nome='AVARIA')
    StatusOcorrencia.objects.create(nome=STATUS_EM_ABERTO)
    StatusOcorrencia.objects.create(nome=STATUS_FINALIZADO)


def criar_ocorrencia(**campos):
    dados = {
        'data_ocorrencia': date(2024, 6, 10),
        'setor': 'LOGISTICA',
        'tipo_colaborador': 'MOTORISTA',
        'tipo_ocorrencia': 'ATRASO',
        'motivo': 'AVARIA',
        'detalhamento': 'Carga chegou avariada',
    }
    dados.update(campos)
    return Ocorrencia.objects.create(**dados)


def dados_formulario(**campos):
    dados = {
        'data_ocorrencia': '2024-06-10',
        'setor': 'LOGISTICA',
        'tipo_colaborador': 'MOTORISTA',
        'tipo_ocorrencia': 'ATRASO',
        'motivo': 'AVARIA',
        'detalhamento': 'Entrega fora do horário',
        'status': STATUS_EM_ABERTO,
        'reincidencia': 'NÃO',
    }
    dados.update(campos)
    return dados


class OcorrenciaFormTests(TestCase):
    """Regras condicionais do cadastro"""

    def setUp(self):
        criar_cadastros()

    def test_formulario_valido(self):
        form = OcorrenciaForm(data=dados_formulario())
        self.assertTrue(form.is_valid(), form.errors)

    def test_campos_obrigatorios(self):
        form = OcorrenciaForm(data=dados_formulario(setor='', detalhamento=''))
        self.assertFalse(form.is_valid())
        self.assertEqual(form.mensagens_erro(), [MSG_CAMPOS_OBRIGATORIOS])

    def test_valor_obrigatorio_para_refaturamento(self):
        form = OcorrenciaForm(data=dados_formulario(tipo_ocorrencia='REFATURAMENTO'))
        self.assertFalse(form.is_valid())
        self.assertIn(MSG_VALOR_OBRIGATORIO, form.errors['valor'])

    def test_valor_obrigatorio_para_cancelamento(self):
        TipoOcorrencia.objects.create(nome='CANCELAMENTO')

        form = OcorrenciaForm(data=dados_formulario(tipo_ocorrencia='CANCELAMENTO'))
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors['valor'], [MSG_VALOR_OBRIGATORIO])

        form = OcorrenciaForm(data=dados_formulario(tipo_ocorrencia='CANCELAMENTO', valor='150.00'))
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['valor'], Decimal('150.00'))

    def test_valor_zero_e_recusado(self):
        form = OcorrenciaForm(data=dados_formulario(tipo_ocorrencia='REFATURAMENTO', valor='0'))
        self.assertFalse(form.is_valid())

    def test_resultado_obrigatorio_ao_finalizar(self):
        form = OcorrenciaForm(data=dados_formulario(status=STATUS_FINALIZADO, resultado='  '))
        self.assertFalse(form.is_valid())
        self.assertIn(MSG_RESULTADO_OBRIGATORIO, form.errors['resultado'])

    def test_nf_descartada_para_tipo_sem_valor(self):
        form = OcorrenciaForm(data=dados_formulario(nf_anterior='123', nf_substituta='456'))
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['nf_anterior'], '')
        self.assertEqual(form.cleaned_data['nf_substituta'], '')

    def test_autopreenchimento_pelo_cliente(self):
        Cliente.objects.create(cliente='Mercado Central', rede='REDE SUL', cidade='Curitiba', uf='PR', vendedor='Ana')
        form = OcorrenciaForm(data=dados_formulario(cliente=' Mercado Central ', vendedor='Carlos'))
        self.assertTrue(form.is_valid(), form.errors)

        ocorrencia = form.save()
        self.assertEqual(ocorrencia.rede, 'REDE SUL')
        self.assertEqual(ocorrencia.uf, 'PR')
        self.assertEqual(ocorrencia.vendedor, 'Carlos')

    def test_edicao_mantem_valor_desativado(self):
        Setor.objects.create(nome='ANTIGO', ativo=False)
        ocorrencia = criar_ocorrencia(setor='ANTIGO')

        form = OcorrenciaForm(instance=ocorrencia)
        valores = [valor for valor, _ in form.fields['setor'].choices]
        self.assertIn('ANTIGO', valores)

        form_novo = OcorrenciaForm()
        self.assertNotIn('ANTIGO', [valor for valor, _ in form_novo.fields['setor'].choices])


class OcorrenciaModelTests(TestCase):

    def test_normaliza_campos(self):
        ocorrencia = criar_ocorrencia(tipo_ocorrencia='REFATURAMENTO', valor=Decimal('10'), uf='pr ', nf_anterior=' nf1 ')
        self.assertEqual(ocorrencia.uf, 'PR')
        self.assertEqual(ocorrencia.nf_anterior, 'NF1')

    def test_nf_limpa_quando_tipo_nao_exige_valor(self):
        ocorrencia = criar_ocorrencia(nf_anterior='NF1')
        self.assertEqual(ocorrencia.nf_anterior, '')

    def test_data_conclusao_acompanha_status(self):
        ocorrencia = criar_ocorrencia(status=STATUS_FINALIZADO, resultado='Resolvido')
        self.assertIsNotNone(ocorrencia.data_conclusao)

        ocorrencia.status = STATUS_EM_ABERTO
        ocorrencia.save()
        self.assertIsNone(ocorrencia.data_conclusao)

    def test_alternar_status(self):
        ocorrencia = criar_ocorrencia(resultado='Cliente reembolsado')
        self.assertEqual(ocorrencia.alternar_status(), STATUS_FINALIZADO)
        self.assertEqual(ocorrencia.alternar_status(), STATUS_EM_ABERTO)

    def test_finalizar_sem_resultado(self):
        ocorrencia = criar_ocorrencia()
        with self.assertRaises(ValidationError):
            ocorrencia.alternar_status()
        ocorrencia.refresh_from_db()
        self.assertEqual(ocorrencia.status, STATUS_EM_ABERTO)

    def test_abertas_primeiro(self):
        finalizada = criar_ocorrencia(status=STATUS_FINALIZADO, resultado='ok')
        aberta = criar_ocorrencia()
        self.assertEqual(list(Ocorrencia.objects.abertas_primeiro()), [aberta, finalizada])

    def test_como_dict(self):
        dados = criar_ocorrencia(cliente='Mercado Central').como_dict()
        self.assertEqual(dados['cliente'], 'Mercado Central')
        self.assertEqual(dados['status'], STATUS_EM_ABERTO)
        self.assertEqual(dados['reincidencia'], 'NÃO')


class OcorrenciaViewsTests(AcessoTestCase):

    def setUp(self):
        super().setUp()
        criar_cadastros()

    def test_nova_ocorrencia_get(self):
        response = self.client.get(reverse('ocorrencias:nova'))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'lista-clientes')

    def test_nova_ocorrencia_post(self):
        response = self.client.post(reverse('ocorrencias:nova'), dados_formulario())
        self.assertRedirects(response, reverse('ocorrencias:nova'), fetch_redirect_response=False)
        self.assertEqual(Ocorrencia.objects.count(), 1)

    def test_nova_ocorrencia_invalida(self):
        response = self.client.post(reverse('ocorrencias:nova'), dados_formulario(tipo_ocorrencia='REFATURAMENTO'))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'o campo Valor é obrigatório')
        self.assertFalse(Ocorrencia.objects.exists())

    def test_editar_ocorrencia(self):
        ocorrencia = criar_ocorrencia()
        url = reverse('ocorrencias:editar', kwargs={'ocorrencia_id': ocorrencia.id})

        response = self.client.post(url, dados_formulario(detalhamento='Texto revisado'))

        self.assertRedirects(response, reverse('ocorrencias:lista'), fetch_redirect_response=False)
        ocorrencia.refresh_from_db()
        self.assertEqual(ocorrencia.detalhamento, 'Texto revisado')

    def test_editar_inexistente(self):
        response = self.client.get(reverse('ocorrencias:editar', kwargs={'ocorrencia_id': 999}))
        self.assertEqual(response.status_code, 404)

    def test_lista_completa_e_parcial(self):
        criar_ocorrencia(detalhamento='Avaria na descarga')
        criar_ocorrencia(detalhamento='Nota com erro')

        response = self.client.get(reverse('ocorrencias:lista'))
        self.assertTemplateUsed(response, 'ocorrencias/lista.html')

        response = self.htmx_get(reverse('ocorrencias:lista'), {'busca': 'descarga'})
        self.assertTemplateUsed(response, 'ocorrencias/partials/tabela.html')
        self.assertTemplateNotUsed(response, 'ocorrencias/lista.html')
        self.assertEqual(response.context['page_obj'].paginator.count, 1)

    def test_alternar_status_htmx(self):
        ocorrencia = criar_ocorrencia(resultado='Resolvido')
        response = self.htmx_post(reverse('ocorrencias:alternar_status', kwargs={'ocorrencia_id': ocorrencia.id}))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], STATUS_FINALIZADO)
        self.assertIn('ocorrenciasAtualizadas', response['HX-Trigger'])

    def test_alternar_status_sem_resultado(self):
        ocorrencia = criar_ocorrencia()
        response = self.htmx_post(reverse('ocorrencias:alternar_status', kwargs={'ocorrencia_id': ocorrencia.id}))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], MSG_RESULTADO_OBRIGATORIO)

    def test_alternar_status_sem_htmx_redireciona(self):
        ocorrencia = criar_ocorrencia(resultado='Resolvido')
        response = self.client.post(reverse('ocorrencias:alternar_status', kwargs={'ocorrencia_id': ocorrencia.id}))
        self.assertRedirects(response, reverse('ocorrencias:lista'), fetch_redirect_response=False)

    def test_alternar_status_exige_post(self):
        ocorrencia = criar_ocorrencia()
        response = self.client.get(reverse('ocorrencias:alternar_status', kwargs={'ocorrencia_id': ocorrencia.id}))
        self.assertEqual(response.status_code, 405)

    def test_excluir_htmx(self):
        ocorrencia = criar_ocorrencia()
        response = self.htmx_post(reverse('ocorrencias:excluir', kwargs={'ocorrencia_id': ocorrencia.id}))

        self.assertTrue(response.json()['success'])
        self.assertIn('ocorrenciasAtualizadas', response['HX-Trigger'])
        self.assertFalse(Ocorrencia.objects.exists())

    def test_api_cliente(self):
        Cliente.objects.create(cliente='Mercado Central', rede='REDE SUL', uf='PR')

        response = self.client.get(reverse('ocorrencias:api_cliente'), {'cliente': 'Mercado Central'})
        self.assertEqual(response.json()['cliente']['rede'], 'REDE SUL')

        response = self.client.get(reverse('ocorrencias:api_cliente'), {'cliente': 'Inexistente'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'success': False, 'error': 'Cliente não encontrado'})


@mock.patch('apps.ocorrencias.api_views.PlanilhaService')
class PlanilhaApiTests(AcessoTestCase):
    """Rotas JSON /api/sheets/* e /api/sync-sheets"""

    def post_json(self, url, dados):
        return self.client.post(url, data=json.dumps(dados), content_type='application/json')

    def test_salvar(self, servico):
        response = self.post_json('/api/sheets/save', {'id': 42, 'setor': 'LOGISTICA'})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['success'])
        servico.return_value.salvar.assert_called_once_with({'id': 42, 'setor': 'LOGISTICA'})

    def test_salvar_usa_registro_do_banco(self, servico):
        ocorrencia = criar_ocorrencia(cliente='Mercado Central')
        self.post_json('/api/sheets/save', {'id': ocorrencia.id, 'cliente': 'Outro'})

        enviado = servico.return_value.salvar.call_args[0][0]
        self.assertEqual(enviado['cliente'], 'Mercado Central')

    def test_json_invalido(self, servico):
        response = self.client.post('/api/sheets/save', data='{nao', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_falha_da_planilha(self, servico):
        servico.return_value.atualizar.side_effect = PlanilhaError('Erro ao atualizar no Google Sheets: cota')
        response = self.post_json('/api/sheets/update', {'id': 1})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['error'], 'Erro ao atualizar no Google Sheets: cota')

    def test_id_nao_numerico(self, servico):
        for url in ('/api/sheets/save', '/api/sheets/update'):
            response = self.post_json(url, {'id': 'abc'})

            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json(), {'success': False, 'error': 'ID inválido'})

        servico.return_value.salvar.assert_not_called()
        servico.return_value.atualizar.assert_not_called()

    def test_excluir_exige_id(self, servico):
        response = self.post_json('/api/sheets/delete', {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'ID é obrigatório')

    def test_excluir(self, servico):
        response = self.post_json('/api/sheets/delete', {'id': 7})
        self.assertTrue(response.json()['success'])
        servico.return_value.excluir.assert_called_once_with(7)

    def test_sync_get_explica_uso(self, servico):
        response = self.client.get('/api/sync-sheets')
        self.assertEqual(response.json()['method'], 'POST')
        servico.return_value.exportar_todos.assert_not_called()

    def test_sync_post(self, servico):
        criar_ocorrencia()
        criar_ocorrencia()

        response = self.client.post('/api/sync-sheets')

        dados = response.json()
        self.assertEqual(dados['count'], 2)
        self.assertEqual(dados['message'], '✅ 2 ocorrências sincronizadas com sucesso!')
        self.assertEqual(len(servico.return_value.exportar_todos.call_args[0][0]), 2)

    def test_rotas_exigem_post(self, servico):
        response = self.client.get('/api/sheets/save')
        self.assertEqual(response.status_code, 405)


@override_settings(**PLANILHA_CONFIGURADA)
@mock.patch('apps.ocorrencias.signals.PlanilhaService')
class EspelhoPlanilhaTests(TestCase):
    """Escrita dupla depois do commit"""

    def test_criacao_espelhada(self, servico):
        with self.captureOnCommitCallbacks(execute=True):
            ocorrencia = criar_ocorrencia()

        servico.return_value.salvar.assert_called_once()
        self.assertEqual(servico.return_value.salvar.call_args[0][0]['id'], ocorrencia.id)

    def test_edicao_espelhada(self, servico):
        ocorrencia = criar_ocorrencia()
        with self.captureOnCommitCallbacks(execute=True):
            ocorrencia.detalhamento = 'Atualizado'
            ocorrencia.save()

        servico.return_value.atualizar.assert_called_once()

    def test_exclusao_espelhada(self, servico):
        ocorrencia = criar_ocorrencia()
        ocorrencia_id = ocorrencia.id
        with self.captureOnCommitCallbacks(execute=True):
            ocorrencia.delete()

        servico.return_value.excluir.assert_called_once_with(ocorrencia_id)

    def test_falha_nao_propaga(self, servico):
        servico.return_value.salvar.side_effect = PlanilhaError('sem rede')
        with self.captureOnCommitCallbacks(execute=True):
            criar_ocorrencia()
        self.assertEqual(Ocorrencia.objects.count(), 1)

    def test_sem_configuracao_nao_agenda(self, servico):
        with self.settings(GOOGLE_SHEETS_SPREADSHEET_ID=''):
            with self.captureOnCommitCallbacks() as callbacks:
                criar_ocorrencia()
        self.assertEqual(callbacks, [])


class PlanilhaServiceTests(TestCase):

    def test_linha_na_ordem_dos_cabecalhos(self):
        linha = linha_planilha({
            'id': 5,
            'data_ocorrencia': date(2024, 6, 10),
            'valor': Decimal('99.90'),
            'cliente': None,
        })
        self.assertEqual(len(linha), len(CABECALHOS))
        self.assertEqual(linha[0], 5)
        self.assertEqual(linha[CABECALHOS.index('data_ocorrencia')], '2024-06-10')
        self.assertEqual(linha[CABECALHOS.index('valor')], 99.9)
        self.assertEqual(linha[CABECALHOS.index('cliente')], '')

    def test_sem_configuracao(self):
        servico = PlanilhaService(spreadsheet_id='', email='', chave_privada='')
        with self.assertRaises(PlanilhaNaoConfiguradaError):
            servico.salvar({'id': 1})

    def test_localizar_e_atualizar_linha(self):
        aba = mock.MagicMock()
        aba.col_values.return_value = ['id', '5', '7']
        aba.row_values.return_value = CABECALHOS
        servico = PlanilhaService('planilha', 'conta', 'chave')

        with mock.patch.object(PlanilhaService, '_aba', return_value=aba):
            self.assertEqual(servico.localizar_linha(7), 3)
            servico.atualizar({'id': 7, 'setor': 'LOGISTICA'})

        self.assertEqual(aba.update.call_args.kwargs['range_name'], 'A3:W3')

    def test_atualizar_sem_linha_acrescenta(self):
        aba = mock.MagicMock()
        aba.col_values.return_value = ['id']
        aba.row_values.return_value = CABECALHOS
        servico = PlanilhaService('planilha', 'conta', 'chave')

        with mock.patch.object(PlanilhaService, '_aba', return_value=aba):
            servico.atualizar({'id': 9})

        aba.append_row.assert_called_once()

    def test_excluir_inexistente(self):
        aba = mock.MagicMock()
        aba.col_values.return_value = ['id', '1']
        servico = PlanilhaService('planilha', 'conta', 'chave')

        with mock.patch.object(PlanilhaService, '_aba', return_value=aba):
            self.assertFalse(servico.excluir(2))
            self.assertTrue(servico.excluir(1))

        aba.delete_rows.assert_called_once_with(2)

    def test_exportar_lista_vazia(self):
        self.assertEqual(PlanilhaService('planilha', 'conta', 'chave').exportar_todos([]), 0)
