# apps/ocorrencias/forms.py

from django import forms

from apps.core.models import (
    Cliente, Motivo, Setor, StatusOcorrencia, TipoColaborador, TipoOcorrencia
)

from .models import (
    MSG_CAMPOS_OBRIGATORIOS, MSG_RESULTADO_OBRIGATORIO, MSG_VALOR_OBRIGATORIO,
    REINCIDENCIA_CHOICES, STATUS_FINALIZADO, STATUS_PADRAO, TIPOS_COM_VALOR,
    Ocorrencia
)

CLASSE_INPUT = 'form-input w-full px-4 py-2 border rounded-lg'
CLASSE_SELECT = 'form-select w-full px-4 py-2 border rounded-lg'

# Campo do formulário -> cadastro que alimenta o select
CAMPOS_CADASTRO = {
    'setor': Setor,
    'tipo_colaborador': TipoColaborador,
    'tipo_ocorrencia': TipoOcorrencia,
    'motivo': Motivo,
}


def _opcoes(nomes, atual=''):
    """Choices de um select; mantém o valor atual mesmo se desativado"""
    nomes = list(nomes)
    if atual and atual not in nomes:
        nomes.append(atual)
    return [('', 'Selecione')] + [(nome, nome.replace('_', ' ')) for nome in nomes]


class OcorrenciaForm(forms.ModelForm):
    """
    Cadastro e edição de ocorrência

    Selects populados com os cadastros ativos. Regras condicionais:
    - valor obrigatório para CANCELAMENTO, REFATURAMENTO e DEVOLUCAO TOTAL
    - resultado obrigatório para status FINALIZADO
    """

    setor = forms.ChoiceField(label='Setor Responsável')
    tipo_colaborador = forms.ChoiceField(label='Tipo de Colaborador')
    tipo_ocorrencia = forms.ChoiceField(label='Tipo de Ocorrência')
    motivo = forms.ChoiceField(label='Motivo')
    status = forms.ChoiceField(label='Status')
    reincidencia = forms.ChoiceField(label='Reincidência', choices=REINCIDENCIA_CHOICES, initial='NÃO')

    class Meta:
        model = Ocorrencia
        fields = [
            'data_ocorrencia', 'setor', 'tipo_colaborador', 'tipo_ocorrencia', 'motivo',
            'cliente', 'rede', 'cidade', 'uf', 'vendedor', 'valor',
            'detalhamento', 'resultado', 'tratativa', 'status', 'reincidencia',
            'nf_anterior', 'nf_substituta',
        ]
        labels = {
            'data_ocorrencia': 'Data da Ocorrência',
            'uf': 'UF',
            'valor': 'Valor (R$)',
            'nf_anterior': 'NF Anterior',
            'nf_substituta': 'NF Substituta',
        }
        widgets = {
            'data_ocorrencia': forms.DateInput(attrs={'class': CLASSE_INPUT, 'type': 'date'}, format='%Y-%m-%d'),
            'cliente': forms.TextInput(attrs={
                'class': CLASSE_INPUT,
                'list': 'lista-clientes',
                'placeholder': 'Digite para buscar',
                'autocomplete': 'off',
            }),
            'rede': forms.TextInput(attrs={'class': CLASSE_INPUT}),
            'cidade': forms.TextInput(attrs={'class': CLASSE_INPUT}),
            'uf': forms.TextInput(attrs={'class': CLASSE_INPUT, 'maxlength': 2}),
            'vendedor': forms.TextInput(attrs={'class': CLASSE_INPUT}),
            'valor': forms.NumberInput(attrs={'class': CLASSE_INPUT, 'step': '0.01', 'min': '0'}),
            'detalhamento': forms.Textarea(attrs={'class': CLASSE_INPUT, 'rows': 4}),
            'resultado': forms.Textarea(attrs={'class': CLASSE_INPUT, 'rows': 3}),
            'tratativa': forms.Textarea(attrs={'class': CLASSE_INPUT, 'rows': 3}),
            'nf_anterior': forms.TextInput(attrs={'class': CLASSE_INPUT}),
            'nf_substituta': forms.TextInput(attrs={'class': CLASSE_INPUT}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        for campo, modelo in CAMPOS_CADASTRO.items():
            atual = getattr(self.instance, campo, '') if self.instance.pk else ''
            self.fields[campo].choices = _opcoes(modelo.objects.nomes_ativos(), atual)

        status_ativos = StatusOcorrencia.objects.nomes_ativos() or STATUS_PADRAO
        status_atual = self.instance.status if self.instance.pk else ''
        self.fields['status'].choices = _opcoes(status_ativos, status_atual)[1:]
        if not self.instance.pk:
            self.fields['status'].initial = STATUS_PADRAO[0]

        for nome, field in self.fields.items():
            if isinstance(field.widget, forms.Select):
                field.widget.attrs.setdefault('class', CLASSE_SELECT)
            if field.required:
                field.error_messages['required'] = MSG_CAMPOS_OBRIGATORIOS

    def clean_uf(self):
        return (self.cleaned_data.get('uf') or '').strip().upper()[:2]

    def clean_cliente(self):
        return (self.cleaned_data.get('cliente') or '').strip()

    def clean(self):
        cleaned_data = super().clean()

        tipo = cleaned_data.get('tipo_ocorrencia')
        valor = cleaned_data.get('valor')
        if tipo in TIPOS_COM_VALOR and not valor:
            self.add_error('valor', MSG_VALOR_OBRIGATORIO)

        if tipo and tipo not in TIPOS_COM_VALOR:
            cleaned_data['nf_anterior'] = ''
            cleaned_data['nf_substituta'] = ''

        if cleaned_data.get('status') == STATUS_FINALIZADO and not (cleaned_data.get('resultado') or '').strip():
            self.add_error('resultado', MSG_RESULTADO_OBRIGATORIO)

        # Autopreenchimento pelo cadastro do cliente quando os campos vierem vazios
        nome_cliente = cleaned_data.get('cliente')
        if nome_cliente:
            cliente = Cliente.objects.filter(cliente=nome_cliente).first()
            if cliente:
                for campo, valor_cliente in cliente.dados_autopreenchimento().items():
                    if not cleaned_data.get(campo):
                        cleaned_data[campo] = valor_cliente

        return cleaned_data

    def mensagens_erro(self):
        """Erros únicos, na ordem dos campos, para exibir como toast"""
        mensagens = []
        for erros in self.errors.values():
            for erro in erros:
                if erro not in mensagens:
                    mensagens.append(erro)
        return mensagens
