"""Error taxonomy for receipt generation, classification and storage calls.

Heuristic misses (no receiver name, no matching rule) are not errors; those
paths return ``None``.
"""


class FinanceiroError(Exception):
    """Base class for domain errors surfaced to the user."""

    default_message = "Erro inesperado."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ConfigurationError(FinanceiroError):
    """Required church settings are missing or incomplete."""

    default_message = "Configure os dados da igreja antes de gerar documentos."


class AlreadyGenerated(FinanceiroError):
    """The entry already has a receipt number allocated."""

    default_message = "Recibo já gerado para este lançamento."


class ValidationError(FinanceiroError):
    """Malformed input caught before any external call."""

    def __init__(self, message: str | None = None, field: str | None = None):
        super().__init__(message or "Dados inválidos.")
        self.field = field


class TransportError(FinanceiroError):
    """A storage, database or HTTP collaborator call failed."""

    default_message = "Falha de comunicação com o serviço externo."
