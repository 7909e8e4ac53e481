# apps/relatorios/utils.py

"""
Cálculos do dashboard GAP e dos relatórios de ocorrências

Tudo aqui (exceto filtrar_ocorrencias) opera sobre listas de dicts
produzidas por Ocorrencia.como_dict(), para que dashboard, API JSON e
exportações compartilhem exatamente os mesmos números.
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_FLOOR
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.db.models import Q

from apps.core.utils import (
    agregar_top, formatar_data, formatar_moeda, hoje_brasil, montar_grafico,
    para_data, para_decimal, percentual, calcular_mttr, truncar
)
from apps.ocorrencias.models import STATUS_EM_ABERTO, STATUS_FINALIZADO, Ocorrencia

CORES = ['#073e29', '#10b981', '#059669', '#047857', '#065f46', '#064e3b']

FILTROS_EXATOS = [
    'setor', 'motivo', 'tipo_ocorrencia', 'status', 'tipo_colaborador',
    'vendedor', 'cliente', 'rede', 'cidade', 'uf',
]

FILTROS_OCORRENCIAS = ['busca', 'periodo_inicio', 'periodo_fim'] + FILTROS_EXATOS

PERIODOS = [
    ('todo_periodo', 'Todo o período'),
    ('hoje', 'Hoje'),
    ('ontem', 'Ontem'),
    ('semana_atual', 'Semana atual'),
    ('semana_anterior', 'Semana anterior'),
    ('mes_atual', 'Mês atual'),
    ('mes_anterior', 'Mês anterior'),
    ('trimestre_atual', 'Trimestre atual'),
    ('trimestre_anterior', 'Trimestre anterior'),
    ('semestre_atual', 'Semestre atual'),
    ('semestre_anterior', 'Semestre anterior'),
    ('ano_atual', 'Ano atual'),
    ('ano_anterior', 'Ano anterior'),
]


# === PERÍODOS ===

def _fim_do_mes(ano: int, mes: int) -> date:
    if mes == 12:
        return date(ano, 12, 31)
    return date(ano, mes + 1, 1) - timedelta(days=1)


def _bloco_de_meses(hoje: date, tamanho: int, deslocamento: int) -> Tuple[date, date]:
    """
    Trimestre (tamanho=3) ou semestre (tamanho=6) atual ou anterior
    deslocamento=-1 volta um bloco, atravessando o ano se preciso
    """
    indice = (hoje.month - 1) // tamanho + deslocamento
    ano = hoje.year
    blocos_por_ano = 12 // tamanho
    if indice < 0:
        indice += blocos_por_ano
        ano -= 1

    mes_inicio = indice * tamanho + 1
    mes_fim = mes_inicio + tamanho - 1
    return date(ano, mes_inicio, 1), _fim_do_mes(ano, mes_fim)


def intervalo_periodo(periodo: str, hoje: Optional[date] = None) -> Optional[Tuple[date, date]]:
    """
    Converte o token de período em (inicio, fim), inclusive

    Semanas vão de segunda a domingo. 'todo_periodo', vazio ou
    desconhecido retornam None (sem filtro).
    """
    hoje = hoje or hoje_brasil()

    if periodo == 'hoje':
        return hoje, hoje

    if periodo == 'ontem':
        ontem = hoje - timedelta(days=1)
        return ontem, ontem

    if periodo in ('semana_atual', 'semana_anterior'):
        segunda = hoje - timedelta(days=hoje.weekday())
        if periodo == 'semana_anterior':
            segunda -= timedelta(days=7)
        return segunda, segunda + timedelta(days=6)

    if periodo == 'mes_atual':
        return hoje.replace(day=1), _fim_do_mes(hoje.year, hoje.month)

    if periodo == 'mes_anterior':
        fim = hoje.replace(day=1) - timedelta(days=1)
        return fim.replace(day=1), fim

    if periodo == 'trimestre_atual':
        return _bloco_de_meses(hoje, 3, 0)

    if periodo == 'trimestre_anterior':
        return _bloco_de_meses(hoje, 3, -1)

    if periodo == 'semestre_atual':
        return _bloco_de_meses(hoje, 6, 0)

    if periodo == 'semestre_anterior':
        return _bloco_de_meses(hoje, 6, -1)

    if periodo == 'ano_atual':
        return date(hoje.year, 1, 1), date(hoje.year, 12, 31)

    if periodo == 'ano_anterior':
        return date(hoje.year - 1, 1, 1), date(hoje.year - 1, 12, 31)

    return None


# === FILTROS ===

def extrair_filtros(dados) -> Dict[str, str]:
    """Lê os filtros do GET/POST, descartando valores vazios"""
    filtros = {}
    for campo in FILTROS_OCORRENCIAS:
        valor = (dados.get(campo) or '').strip()
        if valor:
            filtros[campo] = valor
    return filtros


def filtrar_ocorrencias(filtros: Dict[str, str], queryset=None):
    """
    Aplica os filtros do dashboard/relatórios

    Busca livre em detalhamento, cliente, rede e vendedor; datas contra
    data_ocorrencia; demais campos por igualdade. EM ABERTO primeiro,
    limitado a REGGAP_RELATORIOS_MAX_ITENS.
    """
    if queryset is None:
        queryset = Ocorrencia.objects.all()

    busca = filtros.get('busca')
    if busca:
        queryset = queryset.filter(
            Q(detalhamento__icontains=busca) |
            Q(cliente__icontains=busca) |
            Q(rede__icontains=busca) |
            Q(vendedor__icontains=busca)
        )

    inicio = para_data(filtros.get('periodo_inicio'))
    if inicio:
        queryset = queryset.filter(data_ocorrencia__gte=inicio)

    fim = para_data(filtros.get('periodo_fim'))
    if fim:
        queryset = queryset.filter(data_ocorrencia__lte=fim)

    exatos = {campo: filtros[campo] for campo in FILTROS_EXATOS if filtros.get(campo)}
    if exatos:
        queryset = queryset.filter(**exatos)

    return queryset.abertas_primeiro()[:settings.REGGAP_RELATORIOS_MAX_ITENS]


def filtros_aplicados(filtros: Dict[str, str]) -> List[str]:
    """Etiquetas dos filtros ativos exibidas no relatório"""
    etiquetas = []
    if filtros.get('periodo_inicio') and filtros.get('periodo_fim'):
        etiquetas.append(
            f"Período: {formatar_data(filtros['periodo_inicio'])} a {formatar_data(filtros['periodo_fim'])}"
        )

    nomes = [
        ('setor', 'Setor'), ('motivo', 'Motivo'), ('tipo_ocorrencia', 'Tipo'),
        ('status', 'Status'), ('cliente', 'Cliente'), ('rede', 'Rede'),
        ('cidade', 'Cidade'), ('uf', 'UF'), ('vendedor', 'Vendedor'),
    ]
    for campo, titulo in nomes:
        if filtros.get(campo):
            etiquetas.append(f"{titulo}: {rotulo(filtros[campo])}")

    if filtros.get('busca'):
        etiquetas.append(f'Busca: "{filtros["busca"]}"')

    return etiquetas


# === RÓTULOS ===

def rotulo(texto: str) -> str:
    """MOTIVO_X -> MOTIVO X"""
    return (texto or '').replace('_', ' ')


def quebrar_rotulo(texto: str) -> List[str]:
    """
    Rótulo em até três linhas para os eixos dos gráficos
    Até 3 palavras: uma por linha; acima disso o resto vai na terceira
    """
    palavras = rotulo(texto).split()
    if len(palavras) <= 3:
        return palavras
    return [palavras[0], palavras[1], ' '.join(palavras[2:])]


# === KPIs ===

def _soma_valor(ocorrencias) -> float:
    return float(sum((para_decimal(o.get('valor')) for o in ocorrencias), para_decimal(0)))


def taxa_reincidencia(ocorrencias: List[Dict]) -> int:
    if not ocorrencias:
        return 0
    reincidentes = sum(1 for o in ocorrencias if o.get('reincidencia') == 'SIM')
    return percentual(reincidentes, len(ocorrencias))


def calcular_kpis(ocorrencias: List[Dict]) -> Dict:
    refaturamentos = [o for o in ocorrencias if o.get('tipo_ocorrencia') == 'REFATURAMENTO']
    cancelamentos = [o for o in ocorrencias if o.get('tipo_ocorrencia') == 'CANCELAMENTO']

    return {
        'total': len(ocorrencias),
        'refaturamentos': len(refaturamentos),
        'valor_refaturamentos': _soma_valor(refaturamentos),
        'cancelamentos': len(cancelamentos),
        'valor_cancelamentos': _soma_valor(cancelamentos),
        'em_aberto': sum(1 for o in ocorrencias if o.get('status') == STATUS_EM_ABERTO),
        'finalizadas': sum(1 for o in ocorrencias if o.get('status') == STATUS_FINALIZADO),
        'taxa_reincidencia': taxa_reincidencia(ocorrencias),
        'impacto_financeiro': _soma_valor(ocorrencias),
        'mttr_horas': calcular_mttr(ocorrencias),
    }


# === RANKINGS ===

# nome -> (campo, limite, tamanho máximo do rótulo)
TOP_LISTAS = {
    'motivos': ('motivo', 10, None),
    'clientes': ('cliente', 10, 30),
    'tipos_ocorrencia': ('tipo_ocorrencia', 5, None),
    'setores': ('setor', 5, None),
    'tipos_colaborador': ('tipo_colaborador', 5, None),
    'redes': ('rede', 5, None),
    'vendedores': ('vendedor', 10, None),
}

TITULOS_TOPS = {
    'motivos': 'Top 10 Motivos',
    'clientes': 'Top 10 Clientes',
    'tipos_ocorrencia': 'Tipos de Ocorrência',
    'setores': 'Setores',
    'tipos_colaborador': 'Tipos de Colaborador',
    'redes': 'Top 5 Redes',
    'vendedores': 'Top 10 Vendedores',
}


def top_campo(ocorrencias: List[Dict], campo: str, limite: int, tamanho: Optional[int] = None) -> List[Dict]:
    """Top-N por contagem; valores vazios não entram"""
    pares = agregar_top(ocorrencias, lambda o: o.get(campo) or None, limite=limite)
    resultado = []
    for nome, quantidade in pares:
        nome = rotulo(nome)
        if tamanho:
            nome = nome[:tamanho]
        resultado.append({'name': nome, 'value': quantidade, 'linhas': quebrar_rotulo(nome)})
    return resultado


def calcular_tops(ocorrencias: List[Dict]) -> Dict[str, List[Dict]]:
    return {
        nome: top_campo(ocorrencias, campo, limite, tamanho)
        for nome, (campo, limite, tamanho) in TOP_LISTAS.items()
    }


def graficos_tops(tops: Dict[str, List[Dict]]) -> Dict[str, Dict]:
    """Rankings no formato {labels, datasets} do Chart.js"""
    graficos = {}
    for indice, (nome, itens) in enumerate(tops.items()):
        graficos[nome] = montar_grafico(
            [(item['name'], item['value']) for item in itens],
            'Quantidade',
            backgroundColor=CORES[indice % len(CORES)],
        )
    return graficos


# === TABELAS CRUZADAS ===

# nome -> (titulo, campo A, tamanho A, campo B, exige A preenchido)
CRUZAMENTOS = {
    'motivo_setor': ('Motivos x Setor', 'motivo', None, 'setor', False),
    'cliente_motivo': ('Clientes x Motivos', 'cliente', 30, 'motivo', True),
    'colaborador_motivo': ('Tipo Colab x Motivos', 'tipo_colaborador', None, 'motivo', False),
    'colaborador_tipo': ('Tipo Colab x Tipo Ocorrência', 'tipo_colaborador', None, 'tipo_ocorrencia', False),
    'vendedor_tipo': ('Vendedor x Tipo Ocorrência', 'vendedor', None, 'tipo_ocorrencia', True),
    'vendedor_motivo': ('Vendedor x Motivo', 'vendedor', None, 'motivo', True),
}


def tabela_cruzada(ocorrencias: List[Dict], campo_a: str, campo_b: str,
                   tamanho_a: Optional[int] = None, exige_a: bool = False, limite: int = 10) -> List[Dict]:
    def chave(o):
        a = o.get(campo_a) or ''
        if exige_a and not a:
            return None
        if tamanho_a:
            a = a[:tamanho_a]
        return f"{rotulo(a)} x {rotulo(o.get(campo_b))}"

    return [
        {'key': truncar(nome, 40, '...'), 'count': quantidade}
        for nome, quantidade in agregar_top(ocorrencias, chave, limite=limite)
    ]


def calcular_tabelas_cruzadas(ocorrencias: List[Dict]) -> List[Dict]:
    return [
        {
            'nome': nome,
            'titulo': titulo,
            'linhas': tabela_cruzada(ocorrencias, campo_a, campo_b, tamanho_a, exige_a),
        }
        for nome, (titulo, campo_a, tamanho_a, campo_b, exige_a) in CRUZAMENTOS.items()
    ]


# === EVOLUÇÃO E COMPARATIVO ===

def _no_intervalo(o: Dict, intervalo: Tuple[date, date]) -> bool:
    data = para_data(o.get('data_ocorrencia'))
    return bool(data and intervalo[0] <= data <= intervalo[1])


def evolucao_temporal(ocorrencias: List[Dict], periodo: str = 'todo_periodo', hoje: Optional[date] = None) -> List[Dict]:
    """Quantidade por dia (YYYY-MM-DD), em ordem crescente"""
    intervalo = intervalo_periodo(periodo, hoje)
    if intervalo:
        ocorrencias = [o for o in ocorrencias if _no_intervalo(o, intervalo)]

    contagem: Dict[date, int] = {}
    for o in ocorrencias:
        data = para_data(o.get('data_ocorrencia'))
        if data:
            contagem[data] = contagem.get(data, 0) + 1

    return [
        {'date': data.isoformat(), 'quantidade': quantidade}
        for data, quantidade in sorted(contagem.items())
    ]


def evolucao_relatorio(ocorrencias: List[Dict]) -> List[Dict]:
    """Quantidade e valor por dia, rotulados dd/MM"""
    dias: Dict[date, Dict] = {}
    for o in ocorrencias:
        data = para_data(o.get('data_ocorrencia'))
        if not data:
            continue
        dia = dias.setdefault(data, {'count': 0, 'valor': para_decimal(0)})
        dia['count'] += 1
        dia['valor'] += para_decimal(o.get('valor'))

    return [
        {'name': data.strftime('%d/%m'), 'count': dia['count'], 'valor': float(dia['valor'])}
        for data, dia in sorted(dias.items())
    ]


def comparativo_semanal(ocorrencias: List[Dict], hoje: Optional[date] = None) -> Dict:
    """Semana atual x anterior (segunda a domingo)"""
    hoje = hoje or hoje_brasil()
    semana_atual = intervalo_periodo('semana_atual', hoje)
    semana_anterior = intervalo_periodo('semana_anterior', hoje)

    atual = sum(1 for o in ocorrencias if _no_intervalo(o, semana_atual))
    anterior = sum(1 for o in ocorrencias if _no_intervalo(o, semana_anterior))
    diferenca = atual - anterior

    if anterior > 0:
        # Mesmo arredondamento do Math.round (meio vai para +infinito)
        variacao = int((Decimal(diferenca * 100) / anterior + Decimal('0.5')).to_integral_value(rounding=ROUND_FLOOR))
    else:
        variacao = 100 if atual > 0 else 0

    return {
        'semana_atual': atual,
        'semana_anterior': anterior,
        'diferenca': diferenca,
        'percentual': variacao,
        'positivo': diferenca >= 0,
    }


# === INSIGHTS ===

def _participacao_no_top(itens: List[Dict]) -> int:
    total = sum(item['value'] for item in itens)
    return percentual(itens[0]['value'], total)


def insights_dashboard(kpis: Dict, tops: Dict[str, List[Dict]]) -> List[Dict]:
    insights = []

    if tops['setores']:
        top = tops['setores'][0]
        insights.append({
            'tipo': 'warning',
            'titulo': 'Setor com mais ocorrências',
            'descricao': f"O setor {top['name']} concentra {_participacao_no_top(tops['setores'])}% "
                         f"de todas as ocorrências ({top['value']} casos)",
        })

    taxa = kpis['taxa_reincidencia']
    if taxa > 30:
        insights.append({
            'tipo': 'danger',
            'titulo': 'Alta taxa de reincidência',
            'descricao': f"A taxa de reincidência está em {taxa}%. É necessário revisar os procedimentos",
        })
    elif taxa > 0:
        insights.append({
            'tipo': 'success',
            'titulo': 'Taxa de reincidência controlada',
            'descricao': f"A taxa de reincidência está em {taxa}%. Os procedimentos estão funcionando",
        })

    if tops['motivos']:
        top = tops['motivos'][0]
        insights.append({
            'tipo': 'info',
            'titulo': 'Motivo mais frequente',
            'descricao': f"O motivo \"{top['name']}\" representa {_participacao_no_top(tops['motivos'])}% "
                         f"de todas as ocorrências ({top['value']} casos)",
        })

    if kpis['impacto_financeiro'] > 0:
        insights.append({
            'tipo': 'warning',
            'titulo': 'Impacto financeiro total',
            'descricao': f"O impacto financeiro acumulado é de {formatar_moeda(kpis['impacto_financeiro'])}",
        })

    if kpis['em_aberto'] > 0 and kpis['finalizadas'] > 0:
        resolvidas = percentual(kpis['finalizadas'], kpis['em_aberto'] + kpis['finalizadas'])
        insights.append({
            'tipo': 'success',
            'titulo': 'Taxa de resolução',
            'descricao': f"{resolvidas}% das ocorrências já foram finalizadas",
        })

    if tops['clientes']:
        top = tops['clientes'][0]
        insights.append({
            'tipo': 'info',
            'titulo': 'Cliente com mais ocorrências',
            'descricao': f"O cliente \"{top['name']}\" concentra {_participacao_no_top(tops['clientes'])}% "
                         f"de todas as ocorrências ({top['value']} casos)",
        })

    return insights


def insights_relatorio(ocorrencias: List[Dict], kpis: Dict, tops: Dict[str, List[Dict]]) -> List[str]:
    insights = []
    total = len(ocorrencias)

    if total:
        insights.append(
            f"📊 Total de {total} ocorrência(s) registrada(s) no período selecionado, totalizando "
            f"{formatar_moeda(kpis['impacto_financeiro'])} em impacto financeiro."
        )

    if tops['setores']:
        top = tops['setores'][0]
        insights.append(
            f"⚠️ Setor \"{top['name']}\" concentra {_participacao_no_top(tops['setores'])}% de todas as "
            f"ocorrências ({top['value']} casos). Recomenda-se revisão dos procedimentos."
        )

    if kpis['taxa_reincidencia'] > 30:
        insights.append(
            f"🔴 Alta taxa de reincidência de {kpis['taxa_reincidencia']}%. É necessário revisar os "
            f"procedimentos e implementar ações corretivas urgentes."
        )

    if tops['clientes'] and kpis['impacto_financeiro'] > 0:
        participacao = tops['clientes'][0]['value'] / total * 100
        if participacao > 20:
            insights.append(
                f"⚠️ Cliente \"{tops['clientes'][0]['name']}\" concentra {participacao:.1f}% das ocorrências."
            )

    if tops['motivos']:
        top = tops['motivos'][0]
        participacao = _participacao_no_top(tops['motivos'])
        if participacao > 25:
            insights.append(
                f"⚠️ Motivo \"{top['name']}\" representa {participacao}% das ocorrências "
                f"({top['value']} casos). Necessária análise detalhada."
            )

    return insights


# === MONTAGEM ===

def montar_dashboard(ocorrencias: List[Dict], periodo_evolucao: str = 'todo_periodo') -> Dict:
    """Tudo que o dashboard GAP e /relatorios/api/dashboard/ exibem"""
    kpis = calcular_kpis(ocorrencias)
    tops = calcular_tops(ocorrencias)
    evolucao = evolucao_temporal(ocorrencias, periodo_evolucao)

    return {
        'kpis': kpis,
        'tops': tops,
        'graficos': graficos_tops(tops),
        'evolucao': evolucao,
        'grafico_evolucao': montar_grafico(
            [(item['date'], item['quantidade']) for item in evolucao],
            'Quantidade de Registros',
            borderColor='#047857',
            backgroundColor='rgba(4, 120, 87, 0.2)',
            fill=True,
        ),
        'comparativo': comparativo_semanal(ocorrencias),
        'insights': insights_dashboard(kpis, tops),
        'tabelas_cruzadas': calcular_tabelas_cruzadas(ocorrencias),
    }


def montar_relatorio(ocorrencias: List[Dict], filtros: Dict[str, str]) -> Dict:
    """Dados do relatório HTML autocontido"""
    kpis = calcular_kpis(ocorrencias)
    tops = calcular_tops(ocorrencias)

    return {
        'kpis': kpis,
        'tops': tops,
        'comparativo': comparativo_semanal(ocorrencias),
        'evolucao': evolucao_relatorio(ocorrencias),
        'insights': insights_relatorio(ocorrencias, kpis, tops),
        'tabelas_cruzadas': calcular_tabelas_cruzadas(ocorrencias),
        'filtros_aplicados': filtros_aplicados(filtros),
        'registros': ocorrencias[:100],
        'total_registros': len(ocorrencias),
    }


# === EXPORTAÇÃO ===

CABECALHO_CSV = [
    'Data', 'Setor', 'Tipo Colab', 'Tipo Ocorrência', 'Motivo',
    'Cliente', 'Rede', 'Cidade', 'UF', 'Vendedor', 'Valor',
    'Status', 'Reincidência',
]

CABECALHO_XLSX = [
    'Data Ocorrência', 'Data Criação', 'Setor', 'Tipo Colaborador', 'Tipo Ocorrência',
    'Motivo', 'Cliente', 'Rede', 'Cidade', 'UF', 'Vendedor', 'Valor', 'Status',
    'Reincidência', 'NF Anterior', 'NF Substituta', 'Detalhamento', 'Tratativa', 'Resultado',
]

LARGURAS_XLSX = [12, 12, 15, 18, 18, 25, 20, 15, 15, 5, 15, 12, 12, 12, 15, 15, 40, 40, 40]

CABECALHO_PDF = ['Data', 'Setor', 'Motivo', 'Cliente', 'Status', 'Valor']


def linhas_csv(ocorrencias: List[Dict]) -> List[List]:
    return [
        [
            formatar_data(o['data_ocorrencia']),
            o['setor'],
            rotulo(o['tipo_colaborador']),
            rotulo(o['tipo_ocorrencia']),
            rotulo(o['motivo']),
            o['cliente'] or '',
            o['rede'] or '',
            o['cidade'] or '',
            o['uf'] or '',
            o['vendedor'] or '',
            formatar_moeda(o['valor']) if o['valor'] else '',
            o['status'],
            o['reincidencia'] or '',
        ]
        for o in ocorrencias
    ]


def linhas_xlsx(ocorrencias: List[Dict]) -> List[List]:
    return [
        [
            formatar_data(o['data_ocorrencia']),
            formatar_data(o['data_criacao']),
            o['setor'],
            rotulo(o['tipo_colaborador']),
            rotulo(o['tipo_ocorrencia']),
            rotulo(o['motivo']),
            o['cliente'] or '',
            o['rede'] or '',
            o['cidade'] or '',
            o['uf'] or '',
            o['vendedor'] or '',
            float(o['valor'] or 0),
            o['status'],
            o['reincidencia'] or '',
            o['nf_anterior'] or '',
            o['nf_substituta'] or '',
            o['detalhamento'] or '',
            o['tratativa'] or '',
            o['resultado'] or '',
        ]
        for o in ocorrencias
    ]


def linhas_pdf(ocorrencias: List[Dict]) -> List[List]:
    return [
        [
            formatar_data(o['data_ocorrencia']),
            o['setor'],
            rotulo(o['motivo']),
            o['cliente'] or '-',
            o['status'],
            formatar_moeda(o['valor']) if o['valor'] else '-',
        ]
        for o in ocorrencias
    ]


def texto_whatsapp(ocorrencias: List[Dict], filtros: Dict[str, str]) -> str:
    principais = '\n'.join(
        f"{i}. {rotulo(o['motivo'])} - {o['cliente'] or 'N/A'} - {formatar_data(o['data_ocorrencia'])}"
        for i, o in enumerate(ocorrencias[:5], 1)
    )
    impacto = formatar_moeda(_soma_valor(ocorrencias))

    return (
        "📊 REGGAP - RELATÓRIO\n\n"
        f"📅 Período: {filtros.get('periodo_inicio') or 'Início'} a {filtros.get('periodo_fim') or 'Fim'}\n"
        f"🔴 Ocorrências: {len(ocorrencias)}\n\n"
        f"⚠️ Principais:\n{principais}\n\n"
        f"💰 Impacto: {impacto}"
    )
