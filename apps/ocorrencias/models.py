# apps/ocorrencias/models.py

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

STATUS_EM_ABERTO = 'EM ABERTO'
STATUS_FINALIZADO = 'FINALIZADO'
STATUS_PADRAO = [STATUS_EM_ABERTO, STATUS_FINALIZADO]

REINCIDENCIA_CHOICES = [
    ('SIM', 'Sim'),
    ('NÃO', 'Não'),
]

# Tipos que exigem valor e aceitam NF anterior/substituta
TIPOS_COM_VALOR = ['CANCELAMENTO', 'REFATURAMENTO', 'DEVOLUCAO TOTAL']

MSG_CAMPOS_OBRIGATORIOS = 'Preencha todos os campos obrigatórios.'
MSG_VALOR_OBRIGATORIO = 'Para este tipo de ocorrência, o campo Valor é obrigatório.'
MSG_RESULTADO_OBRIGATORIO = 'Para finalizar uma ocorrência, o campo Resultado é obrigatório.'


class OcorrenciaQuerySet(models.QuerySet):

    def em_aberto(self):
        return self.filter(status=STATUS_EM_ABERTO)

    def finalizadas(self):
        return self.filter(status=STATUS_FINALIZADO)

    def abertas_primeiro(self):
        """EM ABERTO no topo, depois as mais recentes"""
        return self.annotate(
            _ordem_status=models.Case(
                models.When(status=STATUS_EM_ABERTO, then=models.Value(0)),
                default=models.Value(1),
                output_field=models.IntegerField(),
            )
        ).order_by('_ordem_status', '-data_criacao')


class Ocorrencia(models.Model):
    """
    GAP - ocorrência operacional registrada por um setor

    Setor, motivo, tipos e dados do cliente são gravados como texto
    (desnormalizados), exatamente como aparecem na planilha espelho.
    """

    # === DATAS ===
    data_criacao = models.DateTimeField(default=timezone.now, editable=False)
    data_conclusao = models.DateTimeField(null=True, blank=True)
    data_ocorrencia = models.DateField()

    # === CLASSIFICAÇÃO ===
    setor = models.CharField(max_length=150)
    tipo_colaborador = models.CharField(max_length=150)
    tipo_ocorrencia = models.CharField(max_length=150)
    motivo = models.CharField(max_length=150)

    # === CLIENTE (copiado do cadastro) ===
    cliente = models.CharField(max_length=200, blank=True)
    rede = models.CharField(max_length=150, blank=True)
    cidade = models.CharField(max_length=150, blank=True)
    uf = models.CharField(max_length=2, blank=True)
    vendedor = models.CharField(max_length=150, blank=True)

    valor = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    # === DESCRIÇÃO ===
    detalhamento = models.TextField()
    resultado = models.TextField(blank=True)
    tratativa = models.TextField(blank=True)

    status = models.CharField(max_length=50, default=STATUS_EM_ABERTO)
    reincidencia = models.CharField(max_length=3, choices=REINCIDENCIA_CHOICES, default='NÃO')

    nf_anterior = models.CharField(max_length=50, blank=True)
    nf_substituta = models.CharField(max_length=50, blank=True)

    atualizado_em = models.DateTimeField(auto_now=True)

    objects = OcorrenciaQuerySet.as_manager()

    class Meta:
        db_table = 'ocorrencias'
        ordering = ['-data_criacao']
        verbose_name = 'Ocorrência'
        verbose_name_plural = 'Ocorrências'
        indexes = [
            models.Index(fields=['data_ocorrencia']),
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"#{self.pk} {self.tipo_ocorrencia} - {self.motivo}"

    def save(self, *args, **kwargs):
        self.uf = (self.uf or '').strip().upper()[:2]
        self.nf_anterior = (self.nf_anterior or '').strip().upper()
        self.nf_substituta = (self.nf_substituta or '').strip().upper()

        if not self.exige_valor:
            self.nf_anterior = ''
            self.nf_substituta = ''

        if self.status == STATUS_FINALIZADO:
            if not self.data_conclusao:
                self.data_conclusao = timezone.now()
        else:
            self.data_conclusao = None

        super().save(*args, **kwargs)

    @property
    def exige_valor(self):
        return self.tipo_ocorrencia in TIPOS_COM_VALOR

    @property
    def finalizada(self):
        return self.status == STATUS_FINALIZADO

    def alternar_status(self):
        """
        EM ABERTO <-> FINALIZADO

        Finalizar sem resultado é recusado com ValidationError.
        """
        if self.finalizada:
            self.status = STATUS_EM_ABERTO
        else:
            if not (self.resultado or '').strip():
                raise ValidationError(MSG_RESULTADO_OBRIGATORIO)
            self.status = STATUS_FINALIZADO

        self.save()
        return self.status

    def como_dict(self):
        """Campos usados pelos relatórios e pela planilha espelho"""
        return {
            'id': self.pk,
            'data_criacao': self.data_criacao,
            'data_conclusao': self.data_conclusao,
            'data_ocorrencia': self.data_ocorrencia,
            'setor': self.setor,
            'tipo_colaborador': self.tipo_colaborador,
            'tipo_ocorrencia': self.tipo_ocorrencia,
            'motivo': self.motivo,
            'cliente': self.cliente,
            'rede': self.rede,
            'cidade': self.cidade,
            'uf': self.uf,
            'vendedor': self.vendedor,
            'valor': self.valor,
            'detalhamento': self.detalhamento,
            'resultado': self.resultado,
            'tratativa': self.tratativa,
            'status': self.status,
            'reincidencia': self.reincidencia,
            'nf_anterior': self.nf_anterior,
            'nf_substituta': self.nf_substituta,
        }
