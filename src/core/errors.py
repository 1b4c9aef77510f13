"""
Errors — Таксономия ошибок движка волатильности

Все ошибки вычисления обнаруживаются синхронно и пробрасываются вызывающему
как типизированные исключения. Никаких clamp/NaN-сентинелов.

Иерархия:
    VolatilityError
    ├── InputError               — невалидные сэмплы / несовпадение sample_count
    │   └── ConfigurationError   — невалидный конфиг или ключи другой формы
    ├── ArithmeticOverflow       — выход за разрядность FixedPoint
    │   └── FixedPointDivisionByZero
    ├── ScaleMismatchError       — операнды с разным scale
    ├── DivergenceWarning        — Reference vs Optimized вне толерантности (strict)
    ├── DivergenceDefect         — Optimized vs Circuit != 0 (всегда фатально)
    └── BackendFailure           — сбой proving backend (retry → fatal)
"""

from typing import Optional


class VolatilityError(Exception):
    """Базовая ошибка движка волатильности."""


class InputError(VolatilityError):
    """
    Невалидный вход: немонотонные timestamps, слишком короткая
    последовательность, несовпадение с объявленным sample_count.

    Фатальна, поднимается до начала вычислений.
    """


class ConfigurationError(InputError):
    """Невалидная конфигурация (файл конфига, ключи, форма схемы)."""


class ArithmeticOverflow(VolatilityError):
    """
    Операция FixedPoint вышла за допустимую разрядность.

    Фатальна для запроса: указывает на неверный scale или величину входа.
    """


class FixedPointDivisionByZero(ArithmeticOverflow):
    """Деление FixedPoint на ноль."""


class ScaleMismatchError(VolatilityError, ValueError):
    """Операнды одной операции имеют разный scale_bits."""


class DivergenceWarning(VolatilityError):
    """
    Reference vs Optimized превысил tolerance_units.

    Поднимается только в strict режиме; иначе фиксируется в отчёте.
    """

    def __init__(self, message: str, report: Optional[object] = None):
        super().__init__(message)
        self.report = report


class DivergenceDefect(VolatilityError):
    """
    Optimized vs Circuit расходятся хотя бы на одну единицу.

    Это дефект реализации circuit, а не допустимый дрейф округления.
    """

    def __init__(self, message: str, report: Optional[object] = None):
        super().__init__(message)
        self.report = report


class BackendFailure(VolatilityError):
    """
    Сбой proving backend (сеть, таймаут, отказ backend).

    retryable=False означает, что повтор бессмысленен (например, ключи
    не соответствуют форме circuit).
    """

    def __init__(self, message: str, retryable: bool = True, attempts: int = 0):
        super().__init__(message)
        self.retryable = retryable
        self.attempts = attempts
