"""
Salary Structure Configuration Schema.

Defines the structure and sensible defaults for the salary-component
engine.  Actual values are loaded from tenant configuration at runtime.
"""

from dataclasses import dataclass, field
from typing import Self

from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.structures.config")

VALID_RENAME_POLICIES = {"cascade", "restrict"}

DEFAULT_STATUTORY_DISPLAY_NAMES: dict[str, str] = {
    "provident_fund": "Provident Fund (PF)",
    "employee_state_insurance": "Employee State Insurance (ESI)",
    "professional_tax": "Professional Tax",
    "tax_deducted_at_source": "Tax Deducted At Source (TDS)",
}


@dataclass
class SalaryConfig:
    """
    Configuration schema for the salary-component engine.

    Override at instantiation with tenant-specific values:

        config = SalaryConfig(
            autosave_debounce_seconds=2.0,
            **load_from_database("salary_settings"),
        )
    """

    # Rounding applied after each resolution pass
    amount_decimal_places: int = 2

    # Percentage components referencing earlier percentage components
    allow_chained_percentages: bool = True

    # "cascade" rewrites references on rename, "restrict" rejects renaming
    # a component that other components reference
    rename_policy: str = "cascade"

    # Batch payroll processing auto-save
    autosave_debounce_seconds: float = 1.0

    # Fallback names when no payroll-component record names the element
    statutory_display_names: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_STATUTORY_DISPLAY_NAMES)
    )

    def __post_init__(self):
        if self.amount_decimal_places < 0:
            raise ValueError("amount_decimal_places cannot be negative")
        if self.amount_decimal_places > 9:
            raise ValueError("amount_decimal_places cannot exceed storage precision (9)")

        if self.rename_policy not in VALID_RENAME_POLICIES:
            raise ValueError(
                f"rename_policy must be one of {VALID_RENAME_POLICIES}, "
                f"got '{self.rename_policy}'"
            )

        if self.autosave_debounce_seconds <= 0:
            raise ValueError("autosave_debounce_seconds must be positive")

        unknown = set(self.statutory_display_names) - set(DEFAULT_STATUTORY_DISPLAY_NAMES)
        if unknown:
            raise ValueError(f"Unknown statutory elements: {sorted(unknown)}")

        logger.info(
            "salary_config_initialized",
            extra={
                "amount_decimal_places": self.amount_decimal_places,
                "allow_chained_percentages": self.allow_chained_percentages,
                "rename_policy": self.rename_policy,
                "autosave_debounce_seconds": self.autosave_debounce_seconds,
            },
        )

    def statutory_display_name(self, element: str) -> str:
        return self.statutory_display_names.get(
            element, DEFAULT_STATUTORY_DISPLAY_NAMES[element]
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the engine's standard defaults."""
        logger.info("salary_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from database/file)."""
        logger.info(
            "salary_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        data = dict(data)
        if "statutory_display_names" in data:
            data["statutory_display_names"] = {
                **DEFAULT_STATUTORY_DISPLAY_NAMES,
                **data["statutory_display_names"],
            }
        return cls(**data)
