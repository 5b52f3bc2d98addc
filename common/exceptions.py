"""
Base error type for the MedCore engine.

Every domain error carries a human readable message, a short machine code
and the HTTP status the API layer answers with.
"""


class ClinicError(Exception):
    """Base exception for billing, ledger and recycle bin errors"""
    default_code = 'error'
    status_code = 400

    def __init__(self, message: str, code: str = None, status_code: int = None):
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ConfirmationRequiredError(ClinicError):
    """Destructive action submitted without an explicit confirmation"""
    default_code = 'confirmation_required'
    status_code = 400
