import pytest

from thawpool.errors import ArithmeticFault, ValidationError
from thawpool.safe_uint import (BPS_DEN, U256_MAX, apply_bps, check_bps, fee_split,
                                is_u256, mul_div_down, require_u256, u256_add,
                                u256_div, u256_mul, u256_sub, u256_sub_floor)


def test_domain_guard():
    assert is_u256(0)
    assert is_u256(U256_MAX)
    assert not is_u256(U256_MAX + 1)
    assert not is_u256(-1)
    assert not is_u256(True)
    assert not is_u256(1.0)
    with pytest.raises(ArithmeticFault):
        require_u256(1, -1)


def test_checked_ops_fail_fast():
    assert u256_add(U256_MAX - 1, 1) == U256_MAX
    with pytest.raises(ArithmeticFault):
        u256_add(U256_MAX, 1)
    with pytest.raises(ArithmeticFault):
        u256_sub(1, 2)
    with pytest.raises(ArithmeticFault):
        u256_mul(1 << 200, 1 << 60)
    with pytest.raises(ArithmeticFault):
        u256_div(5, 0)
    assert u256_div(7, 2) == 3


def test_mul_div_checks_the_product_first():
    # quotient would fit, product does not
    with pytest.raises(ArithmeticFault):
        mul_div_down(1 << 200, 1 << 60, 1 << 60)
    assert mul_div_down(10, 3, 4) == 7


def test_sub_floor_saturates():
    assert u256_sub_floor(5, 9) == 0
    assert u256_sub_floor(9, 5) == 4


def test_bps_helpers_floor_and_split_exactly():
    check_bps(BPS_DEN)
    with pytest.raises(ArithmeticFault):
        check_bps(BPS_DEN + 1)
    assert apply_bps(333, 30) == 0  # 0.999 floors to 0
    assert apply_bps(10_000, 30) == 30
    fee, rest = fee_split(12_345, 30)
    assert fee == 37
    assert fee + rest == 12_345


def test_arithmetic_fault_is_a_validation_error():
    with pytest.raises(ValidationError) as ei:
        u256_sub(0, 1)
    err = ei.value
    assert err.code == "ARITHMETIC_FAULT"
    assert err.category == "ValidationError"
    assert err.to_dict()["details"] == {"x": 0, "y": 1}
