from typing import Optional

from .exchange import BaseExchangeError


class ConfigurationError(BaseExchangeError):
    """
    Invalid or missing client setup, raised before any request is made.

    ``setting_name`` is the dotted path of the offending setting
    (``"recv_window"``, ``"features.margin"``, ``"logging.file.path"``).
    """

    def __init__(self, message: str, setting_name: Optional[str] = None):
        self.setting_name = setting_name
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        if self.setting_name:
            return f"{self.setting_name}: {self.message}"
        return self.message
