"""
Domain exceptions raised by the economy and ARC services.

The HTTP layer renders every ``AkariError`` as ``{"ok": false, "error": ...}``
with the exception's ``status_code``.
"""


class AkariError(Exception):
    """Base class of all business-rule violations."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AkariError):
    status_code = 404


class InsufficientBalanceError(AkariError):
    def __init__(self, balance: float, required: float) -> None:
        super().__init__(f"Insufficient MYST balance: have {balance:g}, need {required:g}")
        self.balance = balance
        self.required = required


class ReferralError(AkariError):
    pass


class WheelLimitError(AkariError):
    pass


class WithdrawalError(AkariError):
    pass


class PredictionError(AkariError):
    pass
