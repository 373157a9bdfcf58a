"""Tests for SalaryConfig validation and loading."""

import pytest

from payroll_modules.structures.config import SalaryConfig


class TestSalaryConfig:

    def test_defaults(self):
        config = SalaryConfig.with_defaults()
        assert config.amount_decimal_places == 2
        assert config.allow_chained_percentages is True
        assert config.rename_policy == "cascade"
        assert config.autosave_debounce_seconds == 1.0
        assert config.statutory_display_name("provident_fund") == "Provident Fund (PF)"

    def test_from_dict(self):
        config = SalaryConfig.from_dict({
            "allow_chained_percentages": False,
            "rename_policy": "restrict",
            "statutory_display_names": {"professional_tax": "PT"},
        })
        assert config.allow_chained_percentages is False
        assert config.rename_policy == "restrict"
        assert config.statutory_display_name("professional_tax") == "PT"
        assert config.statutory_display_name("provident_fund") == "Provident Fund (PF)"

    @pytest.mark.parametrize("kwargs", [
        {"amount_decimal_places": -1},
        {"amount_decimal_places": 10},
        {"rename_policy": "ignore"},
        {"autosave_debounce_seconds": 0},
        {"statutory_display_names": {"pension": "Pension"}},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            SalaryConfig(**kwargs)

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            SalaryConfig.from_dict({"not_a_setting": 1})
