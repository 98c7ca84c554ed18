from __future__ import annotations

SESSION_EXPIRED = "Oturum süresi dolmuş. Lütfen tekrar giriş yapın."
INSTITUTION_REQUIRED = "Lütfen bir kurum seçin"
CONNECTION_FAILED = "Scrapper API sunucusuna bağlanılamıyor. Lütfen bağlantıyı kontrol edin."
REQUEST_TIMED_OUT = "İstek zaman aşımına uğradı."
UNPROCESSABLE_PAYLOAD = "Sunucudan gelen veri işlenemedi."


class TaramaError(Exception):
    """Base error; ``message`` is safe to show to the operator."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PreconditionError(TaramaError):
    pass


class AuthError(PreconditionError):
    def __init__(self, message: str = SESSION_EXPIRED) -> None:
        super().__init__(message)


class ConnectivityError(TaramaError):
    def __init__(self, message: str = CONNECTION_FAILED) -> None:
        super().__init__(message)


class RequestTimeoutError(TaramaError):
    def __init__(self, message: str = REQUEST_TIMED_OUT) -> None:
        super().__init__(message)


class ProtocolError(TaramaError):
    def __init__(self, message: str = UNPROCESSABLE_PAYLOAD) -> None:
        super().__init__(message)


class RemoteError(TaramaError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
