# apps/core/models.py

from django.db import models


class CadastroQuerySet(models.QuerySet):
    """QuerySet compartilhado pelos cadastros auxiliares"""

    def ativos(self):
        return self.filter(ativo=True)

    def nomes_ativos(self):
        """Lista simples de nomes ativos, usada nos selects dos formulários"""
        return list(self.ativos().values_list('nome', flat=True))


class CadastroBase(models.Model):
    """
    Base abstrata para as tabelas de apoio {nome, ativo}

    Setor, motivo, tipo de ocorrência, tipo de colaborador e status
    compartilham a mesma estrutura e o mesmo painel de configuração.
    """

    nome = models.CharField(max_length=150, unique=True)
    ativo = models.BooleanField(default=True)

    # === METADADOS ===
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    objects = CadastroQuerySet.as_manager()

    class Meta:
        abstract = True
        ordering = ['nome']

    def save(self, *args, **kwargs):
        self.nome = (self.nome or '').strip().upper()
        super().save(*args, **kwargs)

    def alternar_ativo(self):
        """Liga/desliga o registro sem removê-lo"""
        self.ativo = not self.ativo
        self.save(update_fields=['ativo', 'atualizado_em'])
        return self.ativo

    def __str__(self):
        return self.nome


class Setor(CadastroBase):
    """Setor responsável pela ocorrência"""

    class Meta(CadastroBase.Meta):
        db_table = 'setor'
        verbose_name = 'Setor'
        verbose_name_plural = 'Setores'


class Motivo(CadastroBase):
    """Motivo da ocorrência"""

    class Meta(CadastroBase.Meta):
        db_table = 'motivo'
        verbose_name = 'Motivo'
        verbose_name_plural = 'Motivos'


class TipoOcorrencia(CadastroBase):

    class Meta(CadastroBase.Meta):
        db_table = 'tipo_ocorrencia'
        verbose_name = 'Tipo de Ocorrência'
        verbose_name_plural = 'Tipos de Ocorrência'


class TipoColaborador(CadastroBase):

    class Meta(CadastroBase.Meta):
        db_table = 'tipo_colaborador'
        verbose_name = 'Tipo de Colaborador'
        verbose_name_plural = 'Tipos de Colaborador'


class StatusOcorrencia(CadastroBase):

    class Meta(CadastroBase.Meta):
        db_table = 'status'
        verbose_name = 'Status'
        verbose_name_plural = 'Status'


class ClienteQuerySet(models.QuerySet):

    def ativos(self):
        return self.filter(ativo=True)


class Cliente(models.Model):
    """
    Cliente com dados desnormalizados

    Rede, cidade, UF e vendedor são copiados para a ocorrência
    no momento do cadastro (autopreenchimento).
    """

    cliente = models.CharField(max_length=200, unique=True)
    rede = models.CharField(max_length=150, blank=True)
    cidade = models.CharField(max_length=150, blank=True)
    uf = models.CharField(max_length=2, blank=True)
    vendedor = models.CharField(max_length=150, blank=True)
    ativo = models.BooleanField(default=True)

    # === METADADOS ===
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    objects = ClienteQuerySet.as_manager()

    class Meta:
        db_table = 'clientes'
        ordering = ['cliente']
        verbose_name = 'Cliente'
        verbose_name_plural = 'Clientes'

    def save(self, *args, **kwargs):
        self.cliente = (self.cliente or '').strip()
        self.uf = (self.uf or '').strip().upper()[:2]
        super().save(*args, **kwargs)

    def alternar_ativo(self):
        self.ativo = not self.ativo
        self.save(update_fields=['ativo', 'atualizado_em'])
        return self.ativo

    def dados_autopreenchimento(self):
        """Campos copiados para a ocorrência quando o cliente é selecionado"""
        return {
            'rede': self.rede,
            'cidade': self.cidade,
            'uf': self.uf,
            'vendedor': self.vendedor,
        }

    def __str__(self):
        return self.cliente


# Mapeamento usado pelo painel genérico de configurações
CADASTROS = {
    'setores': Setor,
    'motivos': Motivo,
    'tipos-ocorrencia': TipoOcorrencia,
    'tipos-colaborador': TipoColaborador,
    'status': StatusOcorrencia,
}
