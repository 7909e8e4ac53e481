# apps/core/forms.py

from django import forms
from django.core.exceptions import ValidationError

from .models import Cliente

CLASSE_INPUT = 'form-input w-full px-4 py-2 border rounded-lg'


class AcessoForm(forms.Form):
    """Formulário da senha única de acesso"""

    senha = forms.CharField(
        label='Senha de acesso',
        widget=forms.PasswordInput(attrs={
            'class': CLASSE_INPUT,
            'placeholder': 'Digite a senha',
            'autofocus': True
        })
    )


class CadastroForm(forms.Form):
    """Inclusão de item nos cadastros auxiliares (setor, motivo...)"""

    nome = forms.CharField(
        label='Nome',
        max_length=150,
        widget=forms.TextInput(attrs={
            'class': CLASSE_INPUT,
            'placeholder': 'Nome do item'
        })
    )

    def __init__(self, *args, modelo=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.modelo = modelo

    def clean_nome(self):
        nome = self.cleaned_data['nome'].strip().upper()

        if not nome:
            raise ValidationError('Informe o nome.')

        if self.modelo is not None and self.modelo.objects.filter(nome=nome).exists():
            raise ValidationError(f'"{nome}" já está cadastrado.')

        return nome


class ClienteForm(forms.ModelForm):
    """Cadastro manual de cliente"""

    class Meta:
        model = Cliente
        fields = ['cliente', 'rede', 'cidade', 'uf', 'vendedor']
        widgets = {
            'cliente': forms.TextInput(attrs={'class': CLASSE_INPUT, 'placeholder': 'Nome do cliente'}),
            'rede': forms.TextInput(attrs={'class': CLASSE_INPUT}),
            'cidade': forms.TextInput(attrs={'class': CLASSE_INPUT}),
            'uf': forms.TextInput(attrs={'class': CLASSE_INPUT, 'maxlength': 2}),
            'vendedor': forms.TextInput(attrs={'class': CLASSE_INPUT}),
        }

    def clean_cliente(self):
        cliente = self.cleaned_data['cliente'].strip()
        if not cliente:
            raise ValidationError('Informe o nome do cliente.')
        return cliente

    def clean_uf(self):
        return (self.cleaned_data.get('uf') or '').strip().upper()[:2]


class ImportarClientesForm(forms.Form):
    """Upload da planilha de clientes"""

    arquivo = forms.FileField(
        label='Planilha (.xlsx)',
        widget=forms.ClearableFileInput(attrs={
            'class': CLASSE_INPUT,
            'accept': '.xlsx,.xlsm'
        })
    )

    def clean_arquivo(self):
        arquivo = self.cleaned_data['arquivo']

        if not arquivo.name.lower().endswith(('.xlsx', '.xlsm')):
            raise ValidationError('Envie um arquivo Excel (.xlsx).')

        return arquivo
