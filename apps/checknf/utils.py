# apps/checknf/utils.py

"""
Cálculos do CHECKNF

Período, normalização de status, filtros, estatísticas e gráficos do
dashboard de notas fiscais, além do relatório de pendentes. Os
registros circulam como dicts (NotaFiscal.objects.values()).
"""

from calendar import monthrange
from datetime import date, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.db.models import Q

from apps.core.utils import (
    agregar_top, arredondar, formatar_data_completa, formatar_moeda, hoje_brasil,
    montar_grafico, para_data, para_decimal, percentual
)

from .models import NotaFiscal

CAMPOS_NOTA = [
    'id', 'numero_nf', 'data_emissao', 'data_entrega', 'data_vencimento',
    'cliente', 'nome_fantasia', 'razao_social', 'rede', 'uf', 'vendedor',
    'fretista', 'placa', 'status', 'situacao', 'valor_total',
]

PERIODOS_NF = [
    ('', 'Todos'),
    ('hoje', 'Hoje'),
    ('ontem', 'Ontem'),
    ('ultimos7dias', 'Últimos 7 dias'),
    ('ultimos30dias', 'Últimos 30 dias'),
    ('mesAtual', 'Mês atual'),
    ('mesAnterior', 'Mês anterior'),
    ('personalizado', 'Personalizado'),
]

FILTROS_NF = ['fretista', 'placa', 'cliente', 'rede', 'vendedor', 'uf', 'status', 'situacao', 'busca']

PARAMETROS_PERIODO = ['periodo', 'data_inicio', 'data_fim']

SEM_VALOR = '—'

PENDENTE = 'PENDENTE'
ENTREGUE = 'ENTREGUE'
CANCELADA = 'CANCELADA'
DEVOLVIDA = 'DEVOLVIDA'

STATUS_PRINCIPAIS = [ENTREGUE, PENDENTE, CANCELADA, DEVOLVIDA]

SINONIMOS_STATUS = {
    'DEVOLVIDO': DEVOLVIDA,
    'CANCELADO': CANCELADA,
    'REENVIADO': 'REENVIADA',
    'PAGO': 'PAGA',
}

CORES_LINHAS = ['#3b82f6', '#10b981', '#ef4444', '#f59e0b', '#8b5cf6']
CORES_LINHAS_FUNDO = ['#93c5fd', '#6ee7b7', '#fecaca', '#fde68a', '#d8b4fe']

CORES_STATUS = {
    ENTREGUE: ('#22c55e', '#16a34a'),
    PENDENTE: ('#f59e0b', '#d97706'),
    CANCELADA: ('#ef4444', '#dc2626'),
    DEVOLVIDA: ('#f97316', '#ea580c'),
}

DIAS_SEMANA = ['Dom', 'Seg', 'Ter', 'Qua', 'Qui', 'Sex', 'Sáb']

LIMITE_ATRASOS = 30
DIAS_VENCIMENTO = 7

COLUNAS_ATRASOS = [
    ('numeroNota', 'NF'), ('cliente', 'Cliente'), ('fretista', 'Fretista'),
    ('vencimento', 'Vencimento'), ('valor', 'Valor'), ('diasAtraso', 'Dias de atraso'),
]

COLUNAS_VENCIMENTOS = COLUNAS_ATRASOS[:5] + [('diasRestantes', 'Dias restantes')]


# === PERÍODO ===

def _iso(data: Optional[date]) -> str:
    return data.isoformat() if data else ''


def resolver_periodo(periodo: str, data_inicio: str = '', data_fim: str = '',
                     hoje: Optional[date] = None, explicitas_prevalecem: bool = False) -> Dict[str, str]:
    """
    Converte o token de período em {'inicio', 'fim'} (YYYY-MM-DD ou '')

    'personalizado' e tokens vazios/desconhecidos usam as datas
    explícitas. Com explicitas_prevalecem (tela de relatório), datas
    informadas vencem o token.
    """
    hoje = hoje or hoje_brasil()
    data_inicio = (data_inicio or '').strip()
    data_fim = (data_fim or '').strip()

    if periodo == 'hoje':
        inicio = fim = hoje
    elif periodo == 'ontem':
        inicio = fim = hoje - timedelta(days=1)
    elif periodo == 'ultimos7dias':
        inicio, fim = hoje - timedelta(days=6), hoje
    elif periodo == 'ultimos30dias':
        inicio, fim = hoje - timedelta(days=29), hoje
    elif periodo == 'mesAtual':
        inicio = hoje.replace(day=1)
        fim = hoje.replace(day=monthrange(hoje.year, hoje.month)[1])
    elif periodo == 'mesAnterior':
        fim = hoje.replace(day=1) - timedelta(days=1)
        inicio = fim.replace(day=1)
    else:
        return {'inicio': data_inicio, 'fim': data_fim}

    intervalo = {'inicio': _iso(inicio), 'fim': _iso(fim)}
    if explicitas_prevalecem:
        intervalo['inicio'] = data_inicio or intervalo['inicio']
        intervalo['fim'] = data_fim or intervalo['fim']
    return intervalo


# === STATUS ===

def normalizar_status(status) -> str:
    """
    Status canônico em maiúsculas

    Vazio vira PENDENTE; variações (CANCELADO, devolvido...) colapsam
    no mesmo valor. Aplicar duas vezes não muda o resultado.
    """
    valor = str(status or '').strip().upper()
    if not valor:
        return PENDENTE
    return SINONIMOS_STATUS.get(valor, valor)


def contar_status(registros: List[Dict], alvo: str) -> int:
    alvo = normalizar_status(alvo)
    return sum(1 for r in registros if normalizar_status(r.get('status')) == alvo)


def _pendentes(registros: List[Dict]) -> List[Dict]:
    return [r for r in registros if normalizar_status(r.get('status')) == PENDENTE]


# === FILTROS ===

def extrair_filtros_nf(dados) -> Dict[str, str]:
    """Filtros e parâmetros de período; espaços e vazios são descartados"""
    filtros = {}
    for campo in FILTROS_NF + PARAMETROS_PERIODO:
        valor = (dados.get(campo) or '').strip()
        if valor:
            filtros[campo] = valor
    return filtros


def filtrar_notas(filtros: Dict[str, str], intervalo: Dict[str, str], queryset=None) -> List[Dict]:
    """
    Consulta as notas e devolve a lista de dicts

    Status é comparado já normalizado, por isso o filtro roda depois
    da consulta (CANCELADO e CANCELADA são a mesma coisa).
    """
    if queryset is None:
        queryset = NotaFiscal.objects.all()

    queryset = queryset.no_periodo(para_data(intervalo.get('inicio')), para_data(intervalo.get('fim')))

    busca = filtros.get('busca')
    if busca:
        queryset = queryset.filter(
            Q(numero_nf__icontains=busca) |
            Q(cliente__icontains=busca) |
            Q(nome_fantasia__icontains=busca) |
            Q(razao_social__icontains=busca) |
            Q(fretista__icontains=busca) |
            Q(placa__icontains=busca)
        )

    if filtros.get('cliente'):
        queryset = queryset.filter(Q(cliente=filtros['cliente']) | Q(nome_fantasia=filtros['cliente']))

    for campo in ('fretista', 'placa', 'rede', 'vendedor', 'uf', 'situacao'):
        if filtros.get(campo):
            queryset = queryset.filter(**{campo: filtros[campo]})

    registros = list(queryset.values(*CAMPOS_NOTA))

    if filtros.get('status'):
        alvo = normalizar_status(filtros['status'])
        registros = [r for r in registros if normalizar_status(r['status']) == alvo]

    return registros


def opcoes_filtros_nf() -> Dict[str, List[str]]:
    """Valores distintos e ordenados para os selects"""

    def distintos(campo):
        return list(
            NotaFiscal.objects.exclude(**{campo: ''})
            .order_by(campo).values_list(campo, flat=True).distinct()
        )

    status = sorted({normalizar_status(s) for s in NotaFiscal.objects.values_list('status', flat=True)})

    return {
        'fretistas': distintos('fretista'),
        'placas': distintos('placa'),
        'clientes': distintos('cliente'),
        'redes': distintos('rede'),
        'vendedores': distintos('vendedor'),
        'ufs': distintos('uf'),
        'status': status,
        'situacoes': distintos('situacao'),
    }


# === ESTATÍSTICAS ===

def _valor(registro: Dict) -> float:
    return float(para_decimal(registro.get('valor_total')))


def _soma(registros: List[Dict]) -> float:
    return float(sum((para_decimal(r.get('valor_total')) for r in registros), para_decimal(0)))


def calcular_eficiencia(registros: List[Dict]) -> float:
    """(1 - pendentes/total) * 100, duas casas"""
    total = len(registros)
    if total == 0:
        return 0
    return arredondar((1 - contar_status(registros, PENDENTE) / total) * 100, 2)


def calcular_estatisticas(registros: List[Dict], hoje: Optional[date] = None) -> Dict:
    hoje = hoje or hoje_brasil()

    return {
        'totalNotas': len(registros),
        'notasEntregues': contar_status(registros, ENTREGUE),
        'notasPendentes': contar_status(registros, PENDENTE),
        'notasCanceladas': contar_status(registros, CANCELADA),
        'notasDevolvidas': contar_status(registros, DEVOLVIDA),
        'eficiencia': calcular_eficiencia(registros),
        'percentualEntregue': percentual(contar_status(registros, ENTREGUE), len(registros), 2),
        'valorTotal': _soma(registros),
        'valorPendente': _soma(_pendentes(registros)),
        'notasAtrasadas': len(_atrasadas(registros, hoje)),
        'notasHoje': sum(1 for r in registros if para_data(r.get('data_emissao')) == hoje),
    }


# === GRÁFICOS ===

def _chave(campo: str):
    return lambda r: r.get(campo) or SEM_VALOR


def _nome_cliente(registro: Dict) -> str:
    return registro.get('nome_fantasia') or registro.get('cliente') or SEM_VALOR


def _contagem_na_ordem(registros: List[Dict], chave) -> Dict[str, int]:
    """Contagem por chave mantendo a ordem de primeira aparição"""
    contagem: Dict[str, int] = {}
    for r in registros:
        rotulo = chave(r)
        contagem[rotulo] = contagem.get(rotulo, 0) + 1
    return contagem


def _mes(registro: Dict) -> str:
    data = para_data(registro.get('data_emissao'))
    return data.strftime('%Y-%m') if data else ''


def _rotulo_mes(chave_mes: str) -> str:
    ano, mes = chave_mes.split('-')
    return f"{mes}/{ano}"


def _barras(contagem, rotulo: str, cor: str) -> Dict:
    return montar_grafico(
        list(contagem.items()) if isinstance(contagem, dict) else contagem,
        rotulo,
        backgroundColor=f'rgba({cor}, 0.6)',
        borderColor=f'rgba({cor}, 1)',
        borderWidth=1,
    )


def grafico_pendentes_por_fretista(registros: List[Dict]) -> Dict:
    return _barras(_contagem_na_ordem(_pendentes(registros), _chave('fretista')), 'Pendentes', '245, 158, 11')


def _linhas_por_mes(grupos, meses: List[str]) -> Dict:
    datasets = []
    for i, (rotulo, itens) in enumerate(grupos):
        datasets.append({
            'label': rotulo,
            'data': [sum(1 for item in itens if _mes(item) == mes) for mes in meses],
            'borderColor': CORES_LINHAS[i % 5],
            'backgroundColor': CORES_LINHAS_FUNDO[i % 5],
            'tension': 0.3,
            'fill': False,
        })
    return {'labels': [_rotulo_mes(mes) for mes in meses], 'datasets': datasets}


def _top_grupos(registros: List[Dict], chave, limite: int):
    """Top-N grupos por quantidade, devolvendo (rótulo, registros do grupo)"""
    top = agregar_top(registros, chave, limite=limite)
    return [(rotulo, [r for r in registros if chave(r) == rotulo]) for rotulo, _ in top]


def grafico_fretistas_por_mes(registros: List[Dict]) -> Dict:
    """Top 5 fretistas em pendências, apenas meses que ainda têm pendentes"""
    pendentes = _pendentes(registros)
    meses = sorted({_mes(r) for r in pendentes} - {''})
    return _linhas_por_mes(_top_grupos(pendentes, _chave('fretista'), 5), meses)


def clientes_do_grafico(registros: List[Dict]) -> List[str]:
    return list(_contagem_na_ordem(registros, _nome_cliente))


def grafico_cliente_status(registros: List[Dict], cliente: str = '') -> Dict:
    """Rosca de status do cliente escolhido (ou do primeiro da lista)"""
    clientes = clientes_do_grafico(registros)
    cliente = cliente or (clientes[0] if clientes else SEM_VALOR)
    do_cliente = [r for r in registros if _nome_cliente(r) == cliente]
    ordem = [ENTREGUE, PENDENTE, CANCELADA, DEVOLVIDA]

    return {
        'cliente': cliente,
        'labels': ordem,
        'datasets': [{
            'data': [contar_status(do_cliente, status) for status in ordem],
            'backgroundColor': [CORES_STATUS[s][0] for s in ordem],
            'borderColor': [CORES_STATUS[s][1] for s in ordem],
            'borderWidth': 1,
        }],
    }


def grafico_ranking_clientes(registros: List[Dict]) -> Dict:
    top = agregar_top(_pendentes(registros), _nome_cliente, limite=10)
    return _barras(top, 'Pendentes', '59, 130, 246')


def grafico_redes_por_status(registros: List[Dict]) -> Dict:
    redes = list(_contagem_na_ordem(registros, _chave('rede')))
    ordem = [PENDENTE, ENTREGUE, CANCELADA, DEVOLVIDA]
    datasets = []
    for status in ordem:
        datasets.append({
            'label': status,
            'data': [contar_status([r for r in registros if (r.get('rede') or SEM_VALOR) == rede], status)
                     for rede in redes],
            'backgroundColor': CORES_STATUS[status][0],
            'borderColor': CORES_STATUS[status][1],
            'borderWidth': 1,
        })
    return {'labels': redes, 'datasets': datasets}


def mapa_uf(registros: List[Dict], status: str = PENDENTE) -> List[List]:
    """[[uf, quantidade], ...] em ordem decrescente"""
    alvo = normalizar_status(status)
    filtrados = [r for r in registros if normalizar_status(r.get('status')) == alvo]
    return [[uf, total] for uf, total in agregar_top(filtrados, _chave('uf'))]


def grafico_ufs_por_mes(registros: List[Dict]) -> Dict:
    meses = sorted({_mes(r) for r in registros} - {''})
    return _linhas_por_mes(_top_grupos(_pendentes(registros), _chave('uf'), 5), meses)


def grafico_vendedores_pendentes(registros: List[Dict]) -> Dict:
    top = agregar_top(_pendentes(registros), _chave('vendedor'), limite=10)
    return _barras(top, 'Pendentes', '234, 88, 12')


def grafico_pendentes_por_placa(registros: List[Dict]) -> Dict:
    return _barras(_contagem_na_ordem(_pendentes(registros), _chave('placa')), 'Pendentes', '245, 158, 11')


def dias_entre(emissao, entrega) -> Optional[int]:
    """Dias entre emissão e entrega; None quando falta data ou é negativo"""
    inicio, fim = para_data(emissao), para_data(entrega)
    if not inicio or not fim:
        return None
    dias = (fim - inicio).days
    return dias if dias >= 0 else None


def grafico_media_entrega_por_placa(registros: List[Dict]) -> Dict:
    """Top 10 placas pelo tempo médio de entrega (dias)"""
    grupos: Dict[str, List[int]] = {}
    for r in registros:
        if not r.get('data_entrega'):
            continue
        dias = grupos.setdefault(r.get('placa') or SEM_VALOR, [])
        diferenca = dias_entre(r.get('data_emissao'), r.get('data_entrega'))
        if diferenca is not None:
            dias.append(diferenca)

    medias = [(placa, sum(dias) / len(dias) if dias else 0) for placa, dias in grupos.items()]
    medias = sorted(medias, key=lambda par: par[1], reverse=True)[:10]

    return _barras(
        [(placa, arredondar(media, 2)) for placa, media in medias],
        'Dias médios de entrega',
        '16, 185, 129',
    )


def grafico_status_por_dia(registros: List[Dict]) -> Dict:
    ordem = [ENTREGUE, PENDENTE, DEVOLVIDA, CANCELADA]
    dias: Dict[date, Dict[str, int]] = {}
    for r in registros:
        data = para_data(r.get('data_emissao'))
        if not data:
            continue
        contagem = dias.setdefault(data, dict.fromkeys(ordem, 0))
        status = normalizar_status(r.get('status'))
        if status in contagem:
            contagem[status] += 1

    rotulos = sorted(dias)
    datasets = []
    for i, status in enumerate(ordem):
        datasets.append({
            'label': status,
            'data': [dias[d][status] for d in rotulos],
            'borderColor': ['#22c55e', '#f59e0b', '#f97316', '#ef4444'][i],
            'backgroundColor': ['#86efac', '#fde68a', '#fdba74', '#fecaca'][i],
            'tension': 0.3,
            'fill': False,
        })
    return {'labels': [d.isoformat() for d in rotulos], 'datasets': datasets}


def grafico_pendencias_dia_semana(registros: List[Dict], hoje: Optional[date] = None) -> Dict:
    """Pendências emitidas nos últimos 7 dias, por dia da semana (Dom..Sáb)"""
    hoje = hoje or hoje_brasil()
    inicio = hoje - timedelta(days=7)

    contagem = [0] * 7
    for r in _pendentes(registros):
        data = para_data(r.get('data_emissao'))
        if data and inicio <= data <= hoje:
            # weekday(): segunda=0; a lista começa no domingo
            contagem[(data.weekday() + 1) % 7] += 1

    return _barras(list(zip(DIAS_SEMANA, contagem)), 'Pendências', '59, 130, 246')


def cor_mapa_calor(quantidade: int, maximo: int, status: str) -> str:
    """Faixas de cor do mapa rede x status (PENDENTE em destaque)"""
    if quantidade == 0:
        return 'rgba(229, 231, 235, 0.3)'

    intensidade = quantidade / maximo
    if status == PENDENTE:
        if intensidade < 0.2:
            return 'rgba(254, 240, 138, 0.8)'
        if intensidade < 0.4:
            return 'rgba(251, 191, 36, 0.8)'
        if intensidade < 0.6:
            return 'rgba(245, 158, 11, 0.8)'
        if intensidade < 0.8:
            return 'rgba(239, 68, 68, 0.8)'
        return 'rgba(185, 28, 28, 0.9)'

    intensidade = min(intensidade, 1)
    if status == ENTREGUE:
        return f'rgba(34, 197, 94, {round(intensidade * 0.6 + 0.2, 2)})'
    if status == CANCELADA:
        return f'rgba(239, 68, 68, {round(intensidade * 0.5 + 0.2, 2)})'
    if status == DEVOLVIDA:
        return f'rgba(249, 115, 22, {round(intensidade * 0.5 + 0.2, 2)})'
    return 'rgba(229, 231, 235, 0.5)'


def mapa_calor_rede_status(registros: List[Dict]) -> Dict:
    ordem = [PENDENTE, ENTREGUE, CANCELADA, DEVOLVIDA]
    redes = [rede for rede in _contagem_na_ordem(registros, _chave('rede')) if rede != SEM_VALOR]

    matriz = []
    for rede in redes:
        da_rede = [r for r in registros if r.get('rede') == rede]
        matriz.append({
            'rede': rede,
            'statuses': [{'status': s, 'count': contar_status(da_rede, s)} for s in ordem],
        })

    maximo = max([linha['statuses'][0]['count'] for linha in matriz] + [1])
    for linha in matriz:
        for celula in linha['statuses']:
            celula['cor'] = cor_mapa_calor(celula['count'], maximo, celula['status'])

    return {'matrix': matriz, 'maxPendente': maximo, 'statuses': ordem, 'redes': redes}


# === ATRASOS E VENCIMENTOS ===

def _item_prazo(r: Dict) -> Dict:
    return {
        'id': r.get('id'),
        'cliente': _nome_cliente(r),
        'numeroNota': r.get('numero_nf'),
        'valor': _valor(r),
        'fretista': r.get('fretista') or '',
        'dataEntrega': _iso(para_data(r.get('data_entrega'))),
        'emissao': _iso(para_data(r.get('data_emissao'))),
        'vencimento': _iso(para_data(r.get('data_vencimento'))),
        'situacao': r.get('situacao') or PENDENTE,
        'status': normalizar_status(r.get('status')),
    }


def _atrasadas(registros: List[Dict], hoje: date) -> List[Dict]:
    return [
        r for r in _pendentes(registros)
        if para_data(r.get('data_vencimento')) and para_data(r.get('data_vencimento')) < hoje
    ]


CAMPOS_DATA_PRAZO = ('dataEntrega', 'vencimento', 'emissao')


def ordenar_itens(itens: List[Dict], ordenar_por: Optional[str] = None, ordem: str = 'asc') -> List[Dict]:
    """Ordena atrasos/vencimentos pela coluna clicada; sem coluna mantém a ordem"""
    if not ordenar_por:
        return itens

    def chave(item):
        valor = item.get(ordenar_por)
        if ordenar_por in ('valor', 'diasAtraso', 'diasRestantes'):
            return float(valor or 0)
        if ordenar_por in CAMPOS_DATA_PRAZO:
            return valor or ''
        return str(valor if valor is not None else '').lower()

    return sorted(itens, key=chave, reverse=(ordem == 'desc'))


def atrasos_top(registros: List[Dict], hoje: Optional[date] = None,
                ordenar_por: Optional[str] = None, ordem: str = 'asc') -> List[Dict]:
    """Pendentes com vencimento passado, os 30 mais atrasados"""
    hoje = hoje or hoje_brasil()
    itens = []
    for r in _atrasadas(registros, hoje):
        item = _item_prazo(r)
        item['diasAtraso'] = (hoje - para_data(r['data_vencimento'])).days
        itens.append(item)

    itens = sorted(itens, key=lambda item: item['diasAtraso'], reverse=True)[:LIMITE_ATRASOS]
    return ordenar_itens(itens, ordenar_por, ordem)


def vencimentos_proximos(registros: List[Dict], hoje: Optional[date] = None,
                         ordenar_por: Optional[str] = None, ordem: str = 'asc') -> List[Dict]:
    """Pendentes que vencem de hoje até 7 dias à frente"""
    hoje = hoje or hoje_brasil()
    limite = hoje + timedelta(days=DIAS_VENCIMENTO)
    itens = []
    for r in _pendentes(registros):
        vencimento = para_data(r.get('data_vencimento'))
        if vencimento and hoje <= vencimento <= limite:
            item = _item_prazo(r)
            item['diasRestantes'] = (vencimento - hoje).days
            itens.append(item)

    itens = sorted(itens, key=lambda item: item['vencimento'])
    return ordenar_itens(itens, ordenar_por, ordem)


# === DASHBOARD ===

def montar_dashboard_nf(registros: List[Dict], cliente_grafico: str = '', hoje: Optional[date] = None,
                        ordenacao: Optional[Dict[str, str]] = None) -> Dict:
    """Tudo que o dashboard CHECKNF e /checknf/api/dashboard/ exibem"""
    hoje = hoje or hoje_brasil()
    ordenacao = ordenacao or {}

    return {
        'stats': calcular_estatisticas(registros, hoje),
        'charts': {
            'pendentesPorFretista': grafico_pendentes_por_fretista(registros),
            'fretistasPorMes': grafico_fretistas_por_mes(registros),
            'clienteStatus': grafico_cliente_status(registros, cliente_grafico),
            'rankingClientes': grafico_ranking_clientes(registros),
            'redesPorStatus': grafico_redes_por_status(registros),
            'mapaUf': mapa_uf(registros),
            'ufsPorMes': grafico_ufs_por_mes(registros),
            'vendedoresPendentes': grafico_vendedores_pendentes(registros),
            'pendentesPorPlaca': grafico_pendentes_por_placa(registros),
            'mediaEntregaPorPlaca': grafico_media_entrega_por_placa(registros),
            'statusPorDia': grafico_status_por_dia(registros),
            'pendenciasDiaSemana': grafico_pendencias_dia_semana(registros, hoje),
            'mapaCalorRedeStatus': mapa_calor_rede_status(registros),
        },
        'clientes': clientes_do_grafico(registros),
        'atrasosTop': atrasos_top(
            registros, hoje, ordenacao.get('atrasos_ordenar'), ordenacao.get('atrasos_ordem', 'asc')
        ),
        'vencimentosProximos': vencimentos_proximos(
            registros, hoje, ordenacao.get('vencimentos_ordenar'), ordenacao.get('vencimentos_ordem', 'asc')
        ),
    }


# === RELATÓRIO DE PENDENTES ===

def carregar_pendentes(filtros: Dict[str, str], hoje: Optional[date] = None):
    """
    Pendentes do relatório

    Returns:
        Tuple[todos os pendentes filtrados, primeiros REGGAP_CHECKNF_MAX_REGISTROS]
    """
    intervalo = resolver_periodo(
        filtros.get('periodo', ''), filtros.get('data_inicio', ''), filtros.get('data_fim', ''),
        hoje=hoje, explicitas_prevalecem=True,
    )
    registros = filtrar_notas({**filtros, 'status': PENDENTE}, intervalo)
    return registros, registros[:settings.REGGAP_CHECKNF_MAX_REGISTROS]


def _nome_relatorio(r: Dict, padrao: str = 'Sem cliente') -> str:
    return r.get('nome_fantasia') or r.get('razao_social') or padrao


def _top_valor(pendentes: List[Dict], chave, limite: int = 10) -> List[Dict]:
    top = agregar_top(pendentes, chave, valor=lambda r: r.get('valor_total'), limite=limite)
    return [
        {'name': nome, 'value': float(valor), 'quantidade': sum(1 for r in pendentes if chave(r) == nome)}
        for nome, valor in top
    ]


def _por_grupo(pendentes: List[Dict], chave) -> Dict[str, Dict]:
    grupos: Dict[str, Dict] = {}
    for r in pendentes:
        grupo = grupos.setdefault(chave(r), {'count': 0, 'valor': para_decimal(0)})
        grupo['count'] += 1
        grupo['valor'] += para_decimal(r.get('valor_total'))
    return grupos


def pendentes_por_data(pendentes: List[Dict]) -> List[Dict]:
    """Quantidade e valor por data de emissão, em ordem crescente ('Sem data' por último)"""
    grupos = _por_grupo(pendentes, lambda r: para_data(r.get('data_emissao')))
    datas = sorted(grupos, key=lambda d: (d is None, d or date.min))
    return [
        {
            'name': formatar_data_completa(d) if d else 'Sem data',
            'count': grupos[d]['count'],
            'valor': float(grupos[d]['valor']),
        }
        for d in datas
    ]


def pendentes_por_uf(pendentes: List[Dict]) -> List[Dict]:
    grupos = _por_grupo(pendentes, lambda r: r.get('uf') or 'Sem UF')
    ordenados = sorted(grupos.items(), key=lambda par: par[1]['valor'], reverse=True)[:10]
    return [
        {'name': uf, 'count': grupo['count'], 'valor': float(grupo['valor'])}
        for uf, grupo in ordenados
    ]


def insights_pendentes(pendentes: List[Dict], tops: Dict[str, List[Dict]]) -> List[str]:
    insights = []
    total = len(pendentes)
    valor_total = _soma(pendentes)

    if total > 0:
        insights.append(
            f"📊 Total de {total} nota(s) fiscal(is) pendente(s) no período selecionado, "
            f"totalizando {formatar_moeda(valor_total)}."
        )

    if tops['clientes'] and valor_total > 0:
        participacao = tops['clientes'][0]['value'] / valor_total * 100
        if participacao > 20:
            insights.append(
                f"⚠️ Cliente \"{tops['clientes'][0]['name']}\" concentra {participacao:.1f}% "
                f"do valor total de pendências."
            )

    if tops['fretistas']:
        top = tops['fretistas'][0]
        insights.append(f"🚚 Fretista \"{top['name']}\" lidera em pendências com {top['count']} nota(s).")

    if tops['vendedores']:
        top = tops['vendedores'][0]
        insights.append(
            f"👤 Vendedor \"{top['name']}\" lidera em valor pendente com {formatar_moeda(top['value'])}."
        )

    return insights


def montar_relatorio_pendentes(pendentes: List[Dict], todos: Optional[List[Dict]] = None) -> Dict:
    """
    Agregados do relatório de pendentes (tela, HTML e PDF)

    Estatísticas contam todos os pendentes filtrados; rankings e
    tabelas usam apenas os registros exibidos (limitados).
    """
    todos = pendentes if todos is None else todos
    por_fretista = agregar_top(pendentes, lambda r: r.get('fretista') or 'Sem fretista', limite=10)

    tops = {
        'clientes': _top_valor(pendentes, _nome_relatorio),
        'fretistas': [{'name': nome, 'count': total} for nome, total in por_fretista],
        'fretistas_valor': _top_valor(pendentes, lambda r: r.get('fretista') or 'Sem fretista'),
        'redes': _top_valor(pendentes, lambda r: r.get('rede') or 'Sem rede'),
        'vendedores': _top_valor(pendentes, lambda r: r.get('vendedor') or 'Sem vendedor'),
    }

    return {
        'estatisticas': {
            'total': len(todos),
            'pendentes': len(todos),
            'valorTotal': _soma(todos),
            'valorPendente': _soma(todos),
        },
        'tops': tops,
        'por_data': pendentes_por_data(pendentes),
        'por_uf': pendentes_por_uf(pendentes),
        'insights': insights_pendentes(pendentes, tops),
    }


def descrever_periodo(filtros: Dict[str, str]) -> str:
    inicio, fim = filtros.get('data_inicio'), filtros.get('data_fim')
    if inicio and fim:
        return f"{formatar_data_completa(inicio)} a {formatar_data_completa(fim)}"
    rotulos = dict(PERIODOS_NF)
    if filtros.get('periodo') in rotulos and filtros['periodo']:
        return rotulos[filtros['periodo']]
    return 'Período não especificado'


# === EXPORTAÇÃO ===

CABECALHO_PENDENTES = [
    'NF', 'Data Emissão', 'Cliente', 'Fretista', 'Placa', 'Status',
    'Valor Total', 'Rede', 'UF', 'Vendedor',
]

LARGURAS_PENDENTES = [12, 14, 35, 20, 12, 12, 14, 20, 6, 20]


def linhas_pendentes(pendentes: List[Dict], valor_numerico: bool = False) -> List[List]:
    """Uma linha por nota, na ordem de CABECALHO_PENDENTES"""
    linhas = []
    for r in pendentes:
        if valor_numerico:
            valor = _valor(r)
        else:
            valor = str(r['valor_total']) if r.get('valor_total') is not None else '0'
        linhas.append([
            r.get('numero_nf') or '',
            _iso(para_data(r.get('data_emissao'))),
            _nome_relatorio(r, ''),
            r.get('fretista') or '',
            r.get('placa') or '',
            r.get('status') or '',
            valor,
            r.get('rede') or '',
            r.get('uf') or '',
            r.get('vendedor') or '',
        ])
    return linhas


def linhas_pendentes_pdf(pendentes: List[Dict]) -> List[List]:
    linhas = []
    for linha, r in zip(linhas_pendentes(pendentes), pendentes):
        linha[1] = formatar_data_completa(r.get('data_emissao')) if r.get('data_emissao') else '-'
        linha[6] = formatar_moeda(r.get('valor_total'))
        linhas.append(linha)
    return linhas


def texto_whatsapp_pendentes(estatisticas: Dict, filtros: Dict[str, str], gerado_em) -> str:
    inicio, fim = filtros.get('data_inicio'), filtros.get('data_fim')
    if inicio and fim:
        periodo = f"{formatar_data_completa(inicio)} a {formatar_data_completa(fim)}"
    else:
        periodo = 'Período não especificado'

    return (
        "📊 *RELATÓRIO DE NOTAS FISCAIS PENDENTES*\n\n"
        f"📅 *Período:* {periodo}\n\n"
        "📈 *ESTATÍSTICAS:*\n"
        f"• Total de Notas Pendentes: {estatisticas['pendentes']}\n\n"
        "💰 *VALORES:*\n"
        f"• Valor Total Pendente: {formatar_moeda(estatisticas['valorPendente'])}\n\n"
        f"Gerado em: {gerado_em.strftime('%d/%m/%Y %H:%M')}"
    )
