# apps/core/utils.py

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from zoneinfo import ZoneInfo
from django.utils import timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

FUSO_BRASIL = ZoneInfo('America/Sao_Paulo')


def agora_brasil() -> datetime:
    """Data/hora atual no fuso de São Paulo"""
    return timezone.now().astimezone(FUSO_BRASIL)


def hoje_brasil() -> date:
    return agora_brasil().date()


def para_decimal(valor: Any) -> Decimal:
    """
    Converte valores vindos do banco, planilha ou formulário em Decimal
    Valores vazios ou inválidos contam como zero
    """
    if valor is None or valor == '':
        return Decimal('0')
    if isinstance(valor, Decimal):
        return valor
    try:
        return Decimal(str(valor).strip())
    except (InvalidOperation, ValueError):
        return Decimal('0')


def para_data(valor: Any) -> Optional[date]:
    """Aceita date, datetime ou string ISO (YYYY-MM-DD...)"""
    if not valor:
        return None
    if isinstance(valor, datetime):
        if timezone.is_aware(valor):
            valor = valor.astimezone(FUSO_BRASIL)
        return valor.date()
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor).strip()[:10])
    except ValueError:
        return None


def formatar_moeda(valor: Any) -> str:
    """
    Formata valor no padrão brasileiro
    Ex: 1234.5 -> "R$ 1.234,50"
    """
    numero = para_decimal(valor).quantize(Decimal('0.01'))
    negativo = numero < 0
    texto = f"{abs(numero):,.2f}".replace(',', 'X').replace('.', ',').replace('X', '.')
    return f"-R$ {texto}" if negativo else f"R$ {texto}"


def formatar_numero(valor: Any) -> str:
    """Número com separador de milhar brasileiro e duas casas"""
    return formatar_moeda(valor).replace('R$ ', '')


def formatar_data(valor: Any) -> str:
    """dd/MM ou '-' quando vazio/inválido"""
    data = para_data(valor)
    return data.strftime('%d/%m') if data else '-'


def formatar_data_completa(valor: Any) -> str:
    """dd/MM/yyyy ou '-' quando vazio/inválido"""
    data = para_data(valor)
    return data.strftime('%d/%m/%Y') if data else '-'


def calcular_mttr(ocorrencias: Iterable[Dict]) -> float:
    """
    Tempo médio de resolução (horas) das ocorrências finalizadas
    Considera apenas registros com data de criação e conclusão
    """
    duracoes = []
    for ocorrencia in ocorrencias:
        inicio = ocorrencia.get('data_criacao')
        fim = ocorrencia.get('data_conclusao')
        if ocorrencia.get('status') != 'FINALIZADO' or not inicio or not fim:
            continue
        delta = fim - inicio
        duracoes.append(delta.total_seconds() / 3600)

    if not duracoes:
        return 0
    return round(sum(duracoes) / len(duracoes), 1)


# === AGREGAÇÃO ===

def agregar_top(
        registros: Iterable[Any],
        chave: Callable[[Any], Any],
        valor: Optional[Callable[[Any], Any]] = None,
        limite: Optional[int] = None,
) -> List[Tuple[Any, Any]]:
    """
    Agrupa registros por chave, conta (ou soma valor) e ordena decrescente

    Usado por todos os rankings do dashboard e dos relatórios.
    Empates mantêm a ordem em que a chave apareceu primeiro
    (sorted é estável). Chaves None são descartadas.
    """
    totais: Dict[Any, Any] = {}

    for registro in registros:
        rotulo = chave(registro)
        if rotulo is None:
            continue
        if valor is None:
            totais[rotulo] = totais.get(rotulo, 0) + 1
        else:
            totais[rotulo] = totais.get(rotulo, Decimal('0')) + para_decimal(valor(registro))

    pares = sorted(totais.items(), key=lambda par: par[1], reverse=True)

    if limite is not None:
        pares = pares[:limite]

    return pares


def montar_grafico(pares: Iterable[Tuple[Any, Any]], rotulo: str, **opcoes) -> Dict:
    """
    Converte pares (rótulo, valor) no formato {labels, datasets} do Chart.js
    Opções extras (cores, borderWidth...) vão direto para o dataset
    """
    pares = list(pares)
    dataset = {
        'label': rotulo,
        'data': [_valor_json(v) for _, v in pares],
    }
    dataset.update(opcoes)

    return {
        'labels': [str(r) for r, _ in pares],
        'datasets': [dataset],
    }


def _valor_json(valor: Any) -> Any:
    if isinstance(valor, Decimal):
        return float(valor)
    return valor


def arredondar(valor: Any, casas: int = 0):
    """
    Arredondamento comercial (meio para cima)
    round() do Python usa meio-para-par: round(12.5) == 12
    """
    quantum = Decimal(1).scaleb(-casas)
    resultado = Decimal(str(valor)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(resultado) if casas == 0 else float(resultado)


def percentual(parte: Any, total: Any, casas: int = 0):
    """Percentual seguro (0 quando total é zero)"""
    total = para_decimal(total)
    if total <= 0:
        return 0
    return arredondar(para_decimal(parte) / total * 100, casas)


def truncar(texto: str, limite: int, reticencias: str = '') -> str:
    texto = texto or ''
    if len(texto) <= limite:
        return texto
    return texto[:limite] + reticencias
