# apps/checknf/models.py

from django.db import models


class NotaFiscalQuerySet(models.QuerySet):

    def no_periodo(self, inicio=None, fim=None):
        """Filtra por data de emissão; limites vazios ficam abertos"""
        queryset = self
        if inicio:
            queryset = queryset.filter(data_emissao__gte=inicio)
        if fim:
            queryset = queryset.filter(data_emissao__lte=fim)
        return queryset


class NotaFiscal(models.Model):
    """
    Nota fiscal acompanhada pelo CHECKNF

    Os registros chegam do sistema de faturamento/logística; a aplicação
    apenas lê. O status vem cru (pode ter variações como CANCELADO ou
    'entregue ') e é normalizado antes de qualquer contagem.
    """

    numero_nf = models.CharField(max_length=50, db_index=True)

    # === DATAS ===
    data_emissao = models.DateField(null=True, blank=True, db_index=True)
    data_entrega = models.DateField(null=True, blank=True)
    data_vencimento = models.DateField(null=True, blank=True)

    # === CLIENTE ===
    cliente = models.CharField(max_length=200, blank=True)
    nome_fantasia = models.CharField(max_length=200, blank=True)
    razao_social = models.CharField(max_length=200, blank=True)
    rede = models.CharField(max_length=150, blank=True)
    uf = models.CharField(max_length=2, blank=True)
    vendedor = models.CharField(max_length=150, blank=True)

    # === TRANSPORTE ===
    fretista = models.CharField(max_length=150, blank=True)
    placa = models.CharField(max_length=20, blank=True)

    status = models.CharField(max_length=50, blank=True)
    situacao = models.CharField(max_length=50, blank=True)
    valor_total = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    objects = NotaFiscalQuerySet.as_manager()

    class Meta:
        db_table = 'notas_fiscais'
        ordering = ['-data_emissao', '-id']
        verbose_name = 'Nota Fiscal'
        verbose_name_plural = 'Notas Fiscais'

    def __str__(self):
        return f"NF {self.numero_nf} - {self.nome_do_cliente}"

    @property
    def nome_do_cliente(self):
        return self.nome_fantasia or self.cliente or self.razao_social
