"""
Shared pytest fixtures for OpenDW tests.
"""

from types import SimpleNamespace
from typing import Dict, Optional

import pytest

from opendw.backend.base import SolverBackend
from opendw.core.duties import ConstrDuty, FormDuty, VarDuty
from opendw.core.ids import ConstrId, VarId
from opendw.core.registry import FormulationRegistry
from opendw.core.solution import SolutionStatus
from opendw.core.varconstr import ConstrSense


def pytest_configure(config):
    """Add custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")


class ScriptedBackend(SolverBackend):
    """Backend that returns preset results and records what it was given."""

    def __init__(
        self,
        status: SolutionStatus = SolutionStatus.OPTIMAL,
        result_count: int = 1,
        objective: float = 0.0,
        primal: Optional[Dict[VarId, float]] = None,
        duals: Optional[Dict[ConstrId, float]] = None,
        dual_bound: Optional[float] = None,
    ):
        self.status = status
        self.result_count = result_count
        self.objective = objective
        self.primal = primal or {}
        self.duals = duals
        self.dual_bound = dual_bound
        self.loaded = []
        self.runs = 0

    def _load_impl(self, formulation) -> None:
        self.loaded.append(formulation)

    def _run_impl(self) -> None:
        self.runs += 1

    def get_termination_status(self) -> SolutionStatus:
        return self.status

    def get_result_count(self) -> int:
        return self.result_count

    def get_objective_value(self) -> float:
        return self.objective

    def get_primal_values(self):
        return dict(self.primal)

    def get_dual_values(self):
        return None if self.duals is None else dict(self.duals)

    def get_dual_bound(self):
        return self.dual_bound


@pytest.fixture
def backend_cls():
    """The scripted backend class."""
    return ScriptedBackend


@pytest.fixture
def registry():
    return FormulationRegistry()


@pytest.fixture
def scenario(registry):
    """
    Master with x1 (pure master, cost 2), x2 (subproblem representative,
    cost 3) and c1: x1 + x2 <= 10.
    """
    master = registry.new_formulation(FormDuty.DW_MASTER)
    x1 = master.create_variable("x1", duty=VarDuty.MASTER_PURE_VAR, cost=2.0)
    x2 = master.create_variable("x2", duty=VarDuty.MASTER_REP_PRICING_VAR, cost=3.0)
    c1 = master.create_constraint(
        "c1",
        duty=ConstrDuty.MASTER_MIXED_CONSTR,
        rhs=10.0,
        sense=ConstrSense.LESS,
        members={x1.id: 1.0, x2.id: 1.0},
    )
    return SimpleNamespace(registry=registry, master=master, x1=x1, x2=x2, c1=c1)


@pytest.fixture
def rich_master(scenario):
    """
    The scenario master extended with entities every helper must skip or keep:

    - conv: convexity constraint on x2 (skipped)
    - c_off: inactive constraint on x1 (skipped)
    - c_impl: implicit constraint on x1 (skipped)
    - c2: 2 x1 - x3 + 4 col >= 1 (kept)
    - x3: pure master variable, cost 5
    - x4: inactive representative, cost 7
    - col: generated column, cost 11
    """
    master = scenario.master
    x1, x2 = scenario.x1, scenario.x2
    x3 = master.create_variable("x3", duty=VarDuty.MASTER_PURE_VAR, cost=5.0)
    x4 = master.create_variable(
        "x4", duty=VarDuty.MASTER_REP_PRICING_SETUP_VAR, cost=7.0, is_active=False
    )
    col = master.create_variable("col", duty=VarDuty.MASTER_COL, cost=11.0)
    conv = master.create_constraint(
        "conv", duty=ConstrDuty.MASTER_CONVEXITY_CONSTR, rhs=1.0,
        sense=ConstrSense.LESS, members={x2.id: 1.0, x4.id: 1.0, col.id: 1.0},
    )
    c_off = master.create_constraint(
        "c_off", duty=ConstrDuty.MASTER_PURE_CONSTR, rhs=3.0,
        members={x1.id: 1.0}, is_active=False,
    )
    c_impl = master.create_constraint(
        "c_impl", duty=ConstrDuty.MASTER_PURE_CONSTR, rhs=4.0,
        members={x1.id: 1.0}, is_explicit=False,
    )
    c2 = master.create_constraint(
        "c2", duty=ConstrDuty.MASTER_MIXED_CONSTR, rhs=1.0,
        members={x1.id: 2.0, x3.id: -1.0, x4.id: 6.0, col.id: 4.0},
    )
    scenario.__dict__.update(
        x3=x3, x4=x4, col=col, conv=conv, c_off=c_off, c_impl=c_impl, c2=c2
    )
    return scenario
