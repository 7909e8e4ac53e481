# apps/core/views.py

import logging

from django.conf import settings
from django.contrib import messages
from django.core.cache import cache
from django.core.paginator import Paginator
from django.db import DatabaseError, IntegrityError, connection
from django.db.models import Q
from django.http import Http404, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods

import apps
from apps.ocorrencias.planilhas import planilha_configurada

from .acesso import acesso_requerido, acesso_service
from .exportacao import nome_arquivo, resposta_xlsx
from .forms import AcessoForm, CadastroForm, ClienteForm, ImportarClientesForm
from .models import CADASTROS, Cliente
from .planilha_clientes import ImportacaoClientesError, exportar_clientes, importar_clientes
from .utils import agora_brasil

logger = logging.getLogger(__name__)

TITULOS_CADASTROS = {
    'setores': 'Setores',
    'motivos': 'Motivos',
    'tipos-ocorrencia': 'Tipos de Ocorrência',
    'tipos-colaborador': 'Tipos de Colaborador',
    'status': 'Status',
}


def login_view(request):
    """
    Tela da senha única

    A regra de verificação fica no AcessoService; aqui só HTTP.
    """
    destino = request.POST.get('next') or request.GET.get('next') or ''
    if not url_has_allowed_host_and_scheme(destino, allowed_hosts={request.get_host()}):
        destino = ''

    if acesso_service.esta_liberado(request):
        return redirect(destino or settings.LOGIN_REDIRECT_URL)

    form = AcessoForm()

    if request.method == 'POST':
        form = AcessoForm(request.POST)

        if form.is_valid():
            sucesso, mensagem = acesso_service.entrar(request, form.cleaned_data['senha'])

            if sucesso:
                messages.success(request, mensagem)
                return redirect(destino or settings.LOGIN_REDIRECT_URL)

            messages.error(request, mensagem)

    context = {
        'title': 'Acesso - REGGAP',
        'form': form,
        'next': destino,
    }

    return render(request, 'core/login.html', context)


def logout_view(request):
    acesso_service.sair(request)
    messages.info(request, 'Sessão encerrada.')
    return redirect('core:login')


@acesso_requerido
def inicio(request):
    return redirect('relatorios:dashboard')


def health_check(request):
    """
    Health check para monitoramento

    Aberto (sem senha) para o balanceador e para o indicador de
    status do dashboard CHECKNF.
    """
    status = {
        'status': 'healthy',
        'api': 'online',
        'database': 'connected',
        'cache': 'ok',
        'sheets': 'synced' if planilha_configurada() else 'no_connection',
        'timestamp': agora_brasil().isoformat(),
        'version': apps.__version__,
    }

    try:
        connection.ensure_connection()
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError as e:
        logger.error("Health check: banco indisponível: %s", e)
        status.update({'status': 'unhealthy', 'database': 'disconnected', 'error': str(e)})
        return JsonResponse(status, status=500)

    try:
        cache.set('health_check', 'ok', 60)
        if cache.get('health_check') != 'ok':
            status['cache'] = 'error'
    except Exception as e:  # backends de cache levantam exceções próprias
        logger.warning("Health check: cache indisponível: %s", e)
        status['cache'] = 'error'

    return JsonResponse(status)


# === CONFIGURAÇÕES (cadastros auxiliares) ===

def _modelo_cadastro(tipo):
    modelo = CADASTROS.get(tipo)
    if modelo is None:
        raise Http404('Cadastro inexistente')
    return modelo


@acesso_requerido
def configuracoes(request):
    return redirect('core:configuracoes_tipo', tipo='setores')


@acesso_requerido
@require_http_methods(['GET', 'POST'])
def configuracoes_tipo(request, tipo):
    """
    Painel genérico: lista, inclui, ativa/desativa e exclui itens
    """
    modelo = _modelo_cadastro(tipo)
    form = CadastroForm(modelo=modelo)

    if request.method == 'POST':
        form = CadastroForm(request.POST, modelo=modelo)

        if form.is_valid():
            try:
                item = modelo.objects.create(nome=form.cleaned_data['nome'])
            except IntegrityError:
                logger.exception("Erro ao incluir item em %s", tipo)
                messages.error(request, 'Erro ao salvar. Tente novamente.')
            else:
                logger.info("Cadastro %s: '%s' incluído", tipo, item.nome)
                messages.success(request, f'"{item.nome}" adicionado com sucesso!')
                return redirect('core:configuracoes_tipo', tipo=tipo)
        else:
            for erro in form.errors.get('nome', []):
                messages.error(request, erro)

    context = {
        'title': f'Configurações - {TITULOS_CADASTROS[tipo]}',
        'tipo': tipo,
        'titulos': TITULOS_CADASTROS,
        'itens': modelo.objects.all(),
        'form': form,
    }

    return render(request, 'core/configuracoes.html', context)


@acesso_requerido
@require_http_methods(['POST'])
def alternar_cadastro(request, tipo, item_id):
    modelo = _modelo_cadastro(tipo)
    item = get_object_or_404(modelo, id=item_id)

    ativo = item.alternar_ativo()
    messages.success(request, f'"{item.nome}" {"ativado" if ativo else "desativado"}.')

    if request.htmx:
        return JsonResponse({'success': True, 'ativo': ativo})
    return redirect('core:configuracoes_tipo', tipo=tipo)


@acesso_requerido
@require_http_methods(['POST'])
def excluir_cadastro(request, tipo, item_id):
    modelo = _modelo_cadastro(tipo)
    item = get_object_or_404(modelo, id=item_id)
    nome = item.nome

    try:
        item.delete()
    except DatabaseError:
        logger.exception("Erro ao excluir '%s' de %s", nome, tipo)
        messages.error(request, 'Erro ao excluir. Tente novamente.')
    else:
        logger.info("Cadastro %s: '%s' excluído", tipo, nome)
        messages.success(request, f'"{nome}" excluído.')

    return redirect('core:configuracoes_tipo', tipo=tipo)


# === CLIENTES ===

@acesso_requerido
@require_http_methods(['GET', 'POST'])
def clientes(request):
    """
    Lista de clientes com busca, inclusão manual e importação
    """
    form = ClienteForm()

    if request.method == 'POST':
        form = ClienteForm(request.POST)

        if form.is_valid():
            cliente = form.save()
            logger.info("Cliente '%s' cadastrado", cliente.cliente)
            messages.success(request, f'Cliente "{cliente.cliente}" cadastrado!')
            return redirect('core:clientes')

        for erros in form.errors.values():
            for erro in erros:
                messages.error(request, erro)

    busca = request.GET.get('busca', '').strip()
    queryset = Cliente.objects.all()
    if busca:
        queryset = queryset.filter(
            Q(cliente__icontains=busca) |
            Q(rede__icontains=busca) |
            Q(cidade__icontains=busca) |
            Q(vendedor__icontains=busca)
        )

    paginator = Paginator(queryset, settings.REGGAP_ITENS_POR_PAGINA)
    page_obj = paginator.get_page(request.GET.get('page'))

    context = {
        'title': 'Configurações - Clientes',
        'tipo': 'clientes',
        'titulos': TITULOS_CADASTROS,
        'page_obj': page_obj,
        'busca': busca,
        'form': form,
        'form_importar': ImportarClientesForm(),
    }

    return render(request, 'core/clientes.html', context)


@acesso_requerido
@require_http_methods(['POST'])
def alternar_cliente(request, cliente_id):
    cliente = get_object_or_404(Cliente, id=cliente_id)
    ativo = cliente.alternar_ativo()

    if request.htmx:
        return JsonResponse({'success': True, 'ativo': ativo})

    messages.success(request, f'Cliente "{cliente.cliente}" {"ativado" if ativo else "desativado"}.')
    return redirect('core:clientes')


@acesso_requerido
@require_http_methods(['POST'])
def excluir_cliente(request, cliente_id):
    cliente = get_object_or_404(Cliente, id=cliente_id)
    nome = cliente.cliente
    cliente.delete()

    logger.info("Cliente '%s' excluído", nome)
    messages.success(request, f'Cliente "{nome}" excluído.')
    return redirect('core:clientes')


@acesso_requerido
@require_http_methods(['POST'])
def importar_clientes_view(request):
    form = ImportarClientesForm(request.POST, request.FILES)

    if not form.is_valid():
        for erros in form.errors.values():
            for erro in erros:
                messages.error(request, erro)
        return redirect('core:clientes')

    try:
        resultado = importar_clientes(form.cleaned_data['arquivo'])
    except ImportacaoClientesError as e:
        logger.warning("Importação de clientes recusada: %s", e)
        messages.error(request, str(e))
    else:
        messages.success(
            request,
            f"Importação concluída: {resultado['criados']} novos, "
            f"{resultado['atualizados']} atualizados, {resultado['ignorados']} ignorados."
        )

    return redirect('core:clientes')


@acesso_requerido
def exportar_clientes_view(request):
    conteudo = exportar_clientes()
    return resposta_xlsx(nome_arquivo('clientes-', 'xlsx'), conteudo)
