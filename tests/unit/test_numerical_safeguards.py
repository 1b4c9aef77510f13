"""
Тесты для модуля Numerical Safeguards

Проверяет:
1. Границы signed разрядности и checked_range
2. Деление и сдвиги с округлением toward zero
3. Деление на ноль
4. Валидацию параметров
"""

import pytest

from src.core.errors import ArithmeticOverflow, FixedPointDivisionByZero
from src.core.math.numerical_safeguards import (
    MAX_SCALE_BITS,
    checked_range,
    div_toward_zero,
    fits_signed,
    shift_right_toward_zero,
    signed_bounds,
    validate_non_negative_int,
    validate_positive_int,
    validate_scale_bits,
    validate_value_bits,
)

# =============================================================================
# ТЕСТЫ РАЗРЯДНОСТИ
# =============================================================================


class TestSignedBounds:
    """Тесты для signed_bounds / fits_signed"""

    def test_bounds_8_bits(self) -> None:
        assert signed_bounds(8) == (-128, 127)

    def test_bounds_1_bit(self) -> None:
        assert signed_bounds(1) == (-1, 0)

    def test_invalid_bits(self) -> None:
        with pytest.raises(ValueError):
            signed_bounds(0)

    @pytest.mark.parametrize(
        "value,expected",
        [(127, True), (128, False), (-128, True), (-129, False), (0, True)],
    )
    def test_fits_signed_edges(self, value: int, expected: bool) -> None:
        assert fits_signed(value, 8) is expected


class TestCheckedRange:
    """Тесты для checked_range"""

    def test_in_range_returned_unchanged(self) -> None:
        assert checked_range(100, 8) == 100

    def test_overflow_raises_instead_of_wrapping(self) -> None:
        with pytest.raises(ArithmeticOverflow, match="overflows 8-bit"):
            checked_range(128, 8, "sum")

    def test_negative_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflow):
            checked_range(-(1 << 255) - 1, 256)

    def test_wide_values(self) -> None:
        assert checked_range((1 << 255) - 1, 256) == (1 << 255) - 1


# =============================================================================
# ТЕСТЫ ОКРУГЛЕНИЯ
# =============================================================================


class TestDivTowardZero:
    """Тесты для div_toward_zero"""

    @pytest.mark.parametrize(
        "numerator,denominator,expected",
        [(7, 2, 3), (-7, 2, -3), (7, -2, -3), (-7, -2, 3), (6, 3, 2), (0, 5, 0), (1, 3, 0)],
    )
    def test_truncates_toward_zero(self, numerator: int, denominator: int, expected: int) -> None:
        assert div_toward_zero(numerator, denominator) == expected

    def test_differs_from_floor_division_for_negatives(self) -> None:
        assert -7 // 2 == -4
        assert div_toward_zero(-7, 2) == -3

    def test_division_by_zero(self) -> None:
        with pytest.raises(FixedPointDivisionByZero):
            div_toward_zero(1, 0)

    def test_division_by_zero_is_arithmetic_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflow):
            div_toward_zero(1, 0)


class TestShiftRightTowardZero:
    """Тесты для shift_right_toward_zero"""

    @pytest.mark.parametrize(
        "value,shift,expected",
        [(5, 1, 2), (-5, 1, -2), (-1, 3, 0), (16, 4, 1), (-16, 4, -1), (7, 0, 7)],
    )
    def test_shift(self, value: int, shift: int, expected: int) -> None:
        assert shift_right_toward_zero(value, shift) == expected

    def test_matches_div_toward_zero(self) -> None:
        for value in range(-40, 41):
            assert shift_right_toward_zero(value, 3) == div_toward_zero(value, 8)

    def test_negative_shift_rejected(self) -> None:
        with pytest.raises(ValueError):
            shift_right_toward_zero(1, -1)


# =============================================================================
# ТЕСТЫ ВАЛИДАЦИИ
# =============================================================================


class TestValidation:
    """Тесты валидации параметров"""

    def test_scale_bits_bounds(self) -> None:
        validate_scale_bits(0)
        validate_scale_bits(MAX_SCALE_BITS)
        with pytest.raises(ValueError):
            validate_scale_bits(MAX_SCALE_BITS + 1)
        with pytest.raises(ValueError):
            validate_scale_bits(-1)

    def test_value_bits_bounds(self) -> None:
        validate_value_bits(128)
        with pytest.raises(ValueError, match="bits must be in"):
            validate_value_bits(4)

    def test_positive_int(self) -> None:
        validate_positive_int(1, "x")
        with pytest.raises(ValueError, match="x must be positive"):
            validate_positive_int(0, "x")

    def test_non_negative_int(self) -> None:
        validate_non_negative_int(0, "y")
        with pytest.raises(ValueError, match="y must be non-negative"):
            validate_non_negative_int(-1, "y")
