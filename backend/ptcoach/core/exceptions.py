# backend/ptcoach/core/exceptions.py

class BaseAppException(Exception):
    """Базовое исключение для приложения."""
    pass

class UserActionException(BaseAppException):
    """
    Базовое исключение для ошибок, которые показываются пользователю.
    `status_code` используется обработчиком в main.py при формировании ответа.
    """
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

class InvalidRequestError(UserActionException):
    """Некорректные или неполные входные данные."""
    status_code = 400

class PermissionDeniedError(UserActionException):
    """У пользователя нет прав на операцию с этим ресурсом."""
    status_code = 403

class NotFoundError(UserActionException):
    """Пакет, покупка или запись о платеже не найдены."""
    status_code = 404

class PaymentNotConfiguredError(UserActionException):
    """Настройки PayTR отсутствуют или неполные."""
    status_code = 503

class PaymentGatewayError(UserActionException):
    """PayTR вернул статус, отличный от success."""
    status_code = 502

    def __init__(self, message: str, response: dict | None = None):
        self.response = response
        super().__init__(message)

class PaymentGatewayUnavailableError(UserActionException):
    """Сетевая ошибка или неразборчивый ответ при обращении к PayTR."""
    status_code = 500
