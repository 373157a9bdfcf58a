"""
Tests for StructureEditSession.

Validates:
- Key counter shared by earnings, deductions and statutory deductions
- Failed mutations leave the list unchanged and focus the right component
- Totals are recomputed after every mutation
- Statutory availability and the closed-session guard on save results
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import deduction, earning, percentage
from payroll_kernel.exceptions import (
    DuplicateComponentNameError,
    IncompleteComponentError,
    InvalidReferenceError,
    ReservedComponentNameError,
    StatutoryComponentLockedError,
)
from payroll_modules.structures.config import SalaryConfig
from payroll_modules.structures.models import (
    CalculationType,
    ComponentType,
    Editability,
    SalaryStructure,
    StructureSaveResult,
)
from payroll_modules.structures.session import StructureEditSession


def _named(session, component_type, name):
    result = session.add_component(component_type)
    assert result.is_success
    session.rename(result.component.key, name)
    return result.component.key


@pytest.fixture
def statutory():
    return (
        deduction("SD1", "Provident Fund (PF)", "1800", statutory=True),
        deduction("SD2", "Professional Tax", "200", statutory=True),
    )


class TestAddComponent:

    def test_keys_share_one_counter(self):
        session = StructureEditSession()
        e = _named(session, ComponentType.EARNING, "Basic")
        d = _named(session, ComponentType.DEDUCTION, "Loan")
        e2 = _named(session, ComponentType.EARNING, "DA")
        assert (e, d, e2) == ("E1", "D2", "E3")

    def test_counter_not_reused_after_remove(self):
        session = StructureEditSession()
        key = _named(session, ComponentType.EARNING, "Basic")
        session.remove(key)
        assert session.add_component(ComponentType.EARNING).component.key == "E2"

    def test_second_unnamed_component_rejected(self):
        session = StructureEditSession()
        first = session.add_component(ComponentType.EARNING)
        result = session.add_component(ComponentType.DEDUCTION)
        assert not result.is_success
        assert isinstance(result.error, IncompleteComponentError)
        assert result.focus_key == first.component.key
        assert len(session.components) == 1

    def test_earnings_and_deductions_views(self):
        session = StructureEditSession()
        _named(session, ComponentType.EARNING, "Basic")
        _named(session, ComponentType.DEDUCTION, "Loan")
        assert [c.name for c in session.earnings] == ["Basic"]
        assert [c.name for c in session.deductions] == ["Loan"]


class TestMutations:

    @pytest.fixture
    def session(self):
        structure = SalaryStructure(
            name="Staff",
            components=(
                earning("E1", "Basic", "5000"),
                percentage("E2", "HRA", "20", ["Basic"], order=1),
                deduction("D3", "Loan", "100", order=2),
            ),
        )
        return StructureEditSession(structure=structure)

    def test_totals_follow_each_mutation(self, session):
        assert session.totals.gross == Decimal("6000.00")
        session.set_amount("E1", Decimal("6000"))
        assert session.components[1].amount == Decimal("1200.00")
        assert session.totals.gross == Decimal("7200.00")
        assert session.totals.net == Decimal("7100.00")

    def test_duplicate_rename_focuses_conflicting_component(self, session):
        before = session.components
        result = session.rename("D3", "basic")
        assert isinstance(result.error, DuplicateComponentNameError)
        assert result.focus_key == "E1"
        assert session.components == before

    def test_rename_cascades_into_references(self, session):
        session.rename("E1", "Base")
        assert session.components[1].reference_components == ("Base",)
        assert session.components[1].amount == Decimal("1000.00")

    def test_restrict_policy(self):
        session = StructureEditSession(
            config=SalaryConfig(rename_policy="restrict"),
            structure=SalaryStructure(
                name="Staff",
                components=(
                    earning("E1", "Basic", "5000"),
                    percentage("E2", "HRA", "20", ["Basic"], order=1),
                ),
            ),
        )
        result = session.rename("E1", "Base")
        assert isinstance(result.error, InvalidReferenceError)

    def test_switch_to_value_clears_percentage(self, session):
        session.change_calculation_type("E2", CalculationType.VALUE)
        hra = session.components[1]
        assert hra.calculation_type is CalculationType.VALUE
        assert hra.amount is None
        assert session.totals.gross == Decimal("5000.00")

    def test_set_percentage(self, session):
        result = session.set_percentage("E2", Decimal("50"), ["Basic"])
        assert result.is_success
        assert result.component.amount == Decimal("2500.00")

    def test_forward_reference_rejected(self, session):
        session.change_calculation_type("D3", CalculationType.PERCENTAGE)
        result = session.set_percentage("E2", Decimal("10"), ["Loan"])
        assert isinstance(result.error, InvalidReferenceError)
        assert result.focus_key == "E2"

    def test_chaining_disabled_by_config(self):
        session = StructureEditSession(
            config=SalaryConfig(allow_chained_percentages=False),
            structure=SalaryStructure(
                name="Staff",
                components=(
                    earning("E1", "Basic", "5000"),
                    percentage("E2", "HRA", "20", ["Basic"], order=1),
                    percentage("E3", "Special", None, [], order=2),
                ),
            ),
        )
        result = session.set_percentage("E3", Decimal("10"), ["HRA"])
        assert not result.is_success

    def test_removed_reference_resolves_to_zero(self, session):
        session.remove("E1")
        assert session.components[0].reference_components == ("Basic",)
        assert session.components[0].amount == Decimal("0.00")

    def test_set_taxable(self, session):
        session.set_taxable("E1", False)
        assert session.components[0].is_taxable is False

    def test_change_editability(self, session):
        result = session.change_editability("E1", Editability.EDITABLE)
        assert result.component.editability is Editability.EDITABLE

    def test_unknown_key_is_a_failed_result(self, session):
        result = session.set_amount("E99", Decimal("1"))
        assert not result.is_success
        assert result.focus_key == "E99"

    def test_loaded_components_rekeyed(self):
        structure = SalaryStructure(
            name="Staff",
            components=(
                earning("E7", "Basic", "5000"),
                deduction("SD1", "PF", "1800", statutory=True),
            ),
        )
        session = StructureEditSession(structure=structure)
        assert [c.key for c in session.components] == ["E1", "SD2"]
        assert session.add_component(ComponentType.DEDUCTION).component.key == "D3"


class TestStatutory:

    def test_available_statutory_excludes_present(self, statutory):
        session = StructureEditSession(required_statutory=statutory)
        session.add_statutory("Provident Fund (PF)")
        assert [c.name for c in session.available_statutory] == ["Professional Tax"]

    def test_add_statutory_gets_session_key(self, statutory):
        session = StructureEditSession(required_statutory=statutory)
        _named(session, ComponentType.EARNING, "Basic")
        result = session.add_statutory("professional tax")
        assert result.component.key == "SD2"
        assert result.component.is_statutory

    def test_add_unavailable_statutory_fails(self, statutory):
        session = StructureEditSession(required_statutory=statutory)
        session.add_statutory("Professional Tax")
        assert not session.add_statutory("Professional Tax").is_success

    def test_removed_statutory_becomes_available(self, statutory):
        session = StructureEditSession(required_statutory=statutory)
        key = session.add_statutory("Professional Tax").component.key
        session.remove(key)
        assert len(session.available_statutory) == 2

    def test_statutory_locks(self, statutory):
        session = StructureEditSession(required_statutory=statutory)
        key = session.add_statutory("Provident Fund (PF)").component.key
        for result in (
            session.rename(key, "PF"),
            session.change_calculation_type(key, CalculationType.PERCENTAGE),
            session.change_editability(key, Editability.EDITABLE),
            session.set_amount(key, Decimal("1")),
        ):
            assert isinstance(result.error, StatutoryComponentLockedError)

    def test_check_statutory(self, statutory):
        session = StructureEditSession(required_statutory=statutory)
        session.add_statutory("Professional Tax")
        assert session.check_statutory().missing == ("Provident Fund (PF)",)

    def test_earning_cannot_take_statutory_name(self, statutory):
        session = StructureEditSession(required_statutory=statutory)
        key = _named(session, ComponentType.EARNING, "Special")
        result = session.rename(key, "provident fund (pf)")
        assert isinstance(result.error, ReservedComponentNameError)
        assert result.focus_key == key
        assert session.components[0].name == "Special"
        assert len(session.available_statutory) == 2
        assert session.check_statutory().missing == (
            "Provident Fund (PF)", "Professional Tax",
        )

    def test_loaded_earning_with_statutory_name_blocks_add(self, statutory):
        structure = SalaryStructure(
            name="Legacy",
            components=(earning("E1", "Professional Tax", "200"),),
        )
        session = StructureEditSession(structure=structure, required_statutory=statutory)
        assert "Professional Tax" in [c.name for c in session.available_statutory]
        assert session.check_statutory().missing == (
            "Provident Fund (PF)", "Professional Tax",
        )

        result = session.add_statutory("Professional Tax")
        assert isinstance(result.error, DuplicateComponentNameError)
        assert result.focus_key == session.components[0].key
        assert len(session.components) == 1


class TestLifecycle:

    def test_save_result_applied_while_open(self):
        session = StructureEditSession()
        saved_id = uuid4()
        applied = session.apply_save_result(
            StructureSaveResult.saved(SalaryStructure(name="Staff", id=saved_id))
        )
        assert applied
        assert session.structure_id == saved_id

    def test_save_result_discarded_after_close(self):
        session = StructureEditSession()
        session.close()
        applied = session.apply_save_result(
            StructureSaveResult.saved(SalaryStructure(name="Staff", id=uuid4()))
        )
        assert not applied
        assert session.structure_id is None
        assert not session.active

    def test_update_details_and_to_structure(self):
        session = StructureEditSession()
        _named(session, ComponentType.EARNING, "Basic")
        session.update_details(name="Staff", description="Default", is_active=False)
        structure = session.to_structure()
        assert structure.name == "Staff"
        assert structure.description == "Default"
        assert structure.is_active is False
        assert [c.name for c in structure.components] == ["Basic"]
