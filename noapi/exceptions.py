"""
Иерархия ошибок генератора
"""


class NoApiError(Exception):
    """Базовая ошибка noapi"""


class ConfigError(NoApiError):
    """Не удалось собрать рабочую конфигурацию"""


class FetchError(NoApiError):
    """Ошибка загрузки документа по сети"""

    def __init__(self, message, locator=None, status_code=None):
        self.message = message
        self.locator = locator
        self.status_code = status_code
        prefix = f"[{status_code}] " if status_code else ""
        super().__init__(f"{prefix}{locator}: {message}" if locator else message)


class DocumentUnavailable(NoApiError):
    """Нет ни локального документа, ни успешной загрузки"""


class SelectorNotFound(NoApiError):
    """Селектор не совпал ни с одной операцией или схемой"""

    def __init__(self, selector, message=None):
        self.selector = selector
        super().__init__(message or f"Не найдено: {selector}")


class WriteFailure(NoApiError):
    """Ошибка записи файла"""

    def __init__(self, path, reason, unit=None):
        self.path = path
        self.reason = reason
        self.unit = unit
        super().__init__(f"{path}: {reason}")


class CodegenError(NoApiError):
    """Бэкенд не смог сгенерировать код для селектора"""

    def __init__(self, selector, message):
        self.selector = selector
        super().__init__(f"{selector}: {message}")


class SendRequestError(NoApiError):
    """Ошибка запроса из сгенерированного клиента"""

    def __init__(self, message, path=None, status_code=None, body=None):
        self.message = message
        self.path = path
        self.status_code = status_code
        self.body = body
        super().__init__(f"[{status_code}] {path}: {message}" if path else message)
