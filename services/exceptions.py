"""
Erreurs métier de l'API, converties en réponses HTTP dans main.py
"""


class FinanceError(Exception):
    status_code = 500

    def __init__(self, message: str = "Server Error"):
        super().__init__(message)
        self.message = message


class ValidationError(FinanceError):
    status_code = 400


class NotFoundError(FinanceError):
    status_code = 404


class ConflictError(FinanceError):
    status_code = 400


class UnauthorizedError(FinanceError):
    status_code = 401


class ConfigurationError(FinanceError):
    pass
