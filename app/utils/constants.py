"""
Application-wide constants for the Tramitação TJPA system.

Defines the closed vocabularies (departments, statuses, request types,
execution steps), the PTRES / expense-element catalogue of the budget plan,
and the money / percentage precision used across services and schemas.
"""

from decimal import Decimal
from enum import Enum
from typing import Final


# ---------------------------------------------------------------------------
# Departments (destino_atual)
# ---------------------------------------------------------------------------


class Destino(str, Enum):
    SODPA = "SODPA"
    AJSEFIN = "AJSEFIN"
    SEFIN = "SEFIN"
    PRESIDENCIA = "PRESIDENCIA"
    SOSFU = "SOSFU"


# Pseudo-origin used on the history entry written when a request is submitted
ORIGEM_SOLICITANTE: Final[str] = "SOLICITANTE"


# ---------------------------------------------------------------------------
# Process statuses
# ---------------------------------------------------------------------------


class StatusSolicitacao(str, Enum):
    ENVIADO = "ENVIADO"
    DEVOLVIDO = "DEVOLVIDO"
    EM_ANALISE_AJSEFIN = "EM_ANALISE_AJSEFIN"
    PARECER_EMITIDO = "PARECER_EMITIDO"
    AGUARDANDO_ASSINATURA_SEFIN = "AGUARDANDO_ASSINATURA_SEFIN"
    APROVADO = "APROVADO"
    DEVOLVIDO_PARA_AJUSTE = "DEVOLVIDO_PARA_AJUSTE"
    DEVOLVIDO_PELO_ORDENADOR = "DEVOLVIDO_PELO_ORDENADOR"
    AGUARDANDO_ASSINATURA = "AGUARDANDO_ASSINATURA"
    EM_ANALISE_PRESIDENCIA = "EM_ANALISE_PRESIDENCIA"
    CONCLUIDO = "CONCLUIDO"
    REJEITADO = "REJEITADO"
    CANCELADO = "CANCELADO"


STATUS_LABELS: Final[dict[str, str]] = {
    "ENVIADO": "Enviado",
    "DEVOLVIDO": "Devolvido",
    "EM_ANALISE_AJSEFIN": "Em Análise Jurídica",
    "PARECER_EMITIDO": "Parecer Emitido",
    "AGUARDANDO_ASSINATURA_SEFIN": "Aguardando Assinatura SEFIN",
    "APROVADO": "Aprovado",
    "DEVOLVIDO_PARA_AJUSTE": "Devolvido para Ajuste",
    "DEVOLVIDO_PELO_ORDENADOR": "Devolvido pelo Ordenador",
    "AGUARDANDO_ASSINATURA": "Aguardando Assinatura do Ordenador",
    "EM_ANALISE_PRESIDENCIA": "Em Análise Presidência",
    "CONCLUIDO": "Concluído",
    "REJEITADO": "Rejeitado",
    "CANCELADO": "Cancelado",
}

STATUS_TERMINAIS: Final[frozenset[str]] = frozenset({"CONCLUIDO", "REJEITADO", "CANCELADO"})

# Every (destino, status) pair a record may be in.  Anything else is corrupt.
ESTADOS_VALIDOS: Final[frozenset[tuple[str, str]]] = frozenset(
    {
        ("SODPA", "ENVIADO"),
        ("SODPA", "DEVOLVIDO"),
        ("SODPA", "REJEITADO"),
        ("SODPA", "CANCELADO"),
        ("AJSEFIN", "EM_ANALISE_AJSEFIN"),
        ("SEFIN", "PARECER_EMITIDO"),
        ("SEFIN", "AGUARDANDO_ASSINATURA_SEFIN"),
        ("SEFIN", "AGUARDANDO_ASSINATURA"),
        ("SEFIN", "APROVADO"),
        ("SOSFU", "APROVADO"),
        ("SOSFU", "DEVOLVIDO_PARA_AJUSTE"),
        ("SOSFU", "DEVOLVIDO_PELO_ORDENADOR"),
        ("SOSFU", "CONCLUIDO"),
        ("PRESIDENCIA", "EM_ANALISE_PRESIDENCIA"),
    }
)


# ---------------------------------------------------------------------------
# Request types and destination scopes
# ---------------------------------------------------------------------------


class TipoSolicitacao(str, Enum):
    PASSAGEM = "PASSAGEM"
    DIARIA = "DIARIA"
    MISTA = "MISTA"


# Three-letter code embedded in the protocol number
SIGLAS_TIPO: Final[dict[str, str]] = {
    "DIARIA": "DIA",
    "PASSAGEM": "PAS",
    "MISTA": "MIS",
}


class TipoDestino(str, Enum):
    ESTADO = "ESTADO"
    PAIS = "PAIS"
    INTERNACIONAL = "INTERNACIONAL"


# Trips leaving the state need the Presidency's authorization
DESTINOS_COM_PRESIDENCIA: Final[frozenset[str]] = frozenset({"PAIS", "INTERNACIONAL"})


# ---------------------------------------------------------------------------
# Execution wizard
# ---------------------------------------------------------------------------


class EtapaExecucao(str, Enum):
    PORTARIA = "PORTARIA"
    CERTIDAO = "CERTIDAO"
    NE = "NE"
    DL = "DL"
    OB = "OB"
    TRAMITAR = "TRAMITAR"


ETAPAS_SEQUENCIA: Final[list[str]] = ["PORTARIA", "CERTIDAO", "NE", "DL", "OB", "TRAMITAR"]
ETAPAS_OBRIGATORIAS: Final[list[str]] = ["PORTARIA", "CERTIDAO", "NE"]


class TipoDocumentoFinanceiro(str, Enum):
    NE = "NE"
    DL = "DL"
    OB = "OB"


class TipoDocumento(str, Enum):
    PORTARIA_SF = "PORTARIA_SF"
    CERTIDAO_REGULARIDADE = "CERTIDAO_REGULARIDADE"
    NOTA_EMPENHO = "NOTA_EMPENHO"
    LIQUIDACAO = "LIQUIDACAO"
    ORDEM_BANCARIA = "ORDEM_BANCARIA"
    AUTORIZACAO_ORDENADOR = "AUTORIZACAO_ORDENADOR"


# Wizard step → document type generated / uploaded at that step
DOCUMENTO_POR_ETAPA: Final[dict[str, str]] = {
    "PORTARIA": "PORTARIA_SF",
    "CERTIDAO": "CERTIDAO_REGULARIDADE",
    "NE": "NOTA_EMPENHO",
    "DL": "LIQUIDACAO",
    "OB": "ORDEM_BANCARIA",
}

DOCUMENTO_LABELS: Final[dict[str, str]] = {
    "PORTARIA_SF": "Portaria SF",
    "CERTIDAO_REGULARIDADE": "Certidão de Regularidade",
    "NOTA_EMPENHO": "Nota de Empenho",
    "LIQUIDACAO": "Documento de Liquidação",
    "ORDEM_BANCARIA": "Ordem Bancária",
    "AUTORIZACAO_ORDENADOR": "Autorização do Ordenador de Despesa",
}

ACCEPTED_UPLOAD_TYPES: Final[frozenset[str]] = frozenset({"application/pdf"})

TAREFA_PENDENTE: Final[str] = "PENDING"
TAREFA_ASSINADA: Final[str] = "SIGNED"
TAREFA_REJEITADA: Final[str] = "REJECTED"


# ---------------------------------------------------------------------------
# Budget plan catalogue (PTRES → Dotação → Elemento)
# ---------------------------------------------------------------------------

PTRES_CONFIG: Final[dict[str, dict[str, str]]] = {
    "8193": {
        "name": "Ordinário",
        "description": "Suprimento de Fundos Ordinário - Comarcas",
    },
    "8727": {
        "name": "Extra-Emergencial",
        "description": "Suprimento Extraordinário - Emergências",
    },
    "8163": {
        "name": "Extra-Júri",
        "description": "Suprimento Extraordinário - Sessões de Júri",
    },
}

EXPENSE_ELEMENTS: Final[list[dict[str, str]]] = [
    {"code": "33.90.30", "name": "Material de Consumo"},
    {"code": "33.90.33", "name": "Passagens e Locomoção"},
    {"code": "33.90.36", "name": "Serviços PF"},
    {"code": "33.90.39", "name": "Serviços PJ"},
]

DEFAULT_TOTAL_BUDGET: Final[Decimal] = Decimal("6000000.00")
DEFAULT_DOTACAO_BASE: Final[int] = 170


# ---------------------------------------------------------------------------
# Precision
# ---------------------------------------------------------------------------

CENTAVOS: Final[Decimal] = Decimal("0.01")
