"""
Tests for the Formulation aggregate.

This module tests:
- Adding variables and constraints with memberships
- Perennial/current value bookkeeping and deactivation
- Cloning across formulations
- Objective sense restriction
- optimize() delegation (via a scripted backend)
- compute_original_cost
- FormulationRegistry parent links
"""

import math

import pytest

from opendw.core.duties import ConstrDuty, Flag, FormDuty, VarDuty
from opendw.core.exceptions import NotFoundError, UnsupportedOperationError
from opendw.core.formulation import (
    Formulation,
    clone_in_formulation,
    clone_varconstr,
)
from opendw.core.ids import ConstrId, VarId
from opendw.core.solution import PrimalSolution, SolutionStatus
from opendw.core.varconstr import ConstrData, Constraint, VarData, Variable


# =============================================================================
# Adding entities
# =============================================================================

class TestAdd:
    """Tests for Formulation.add and create_*."""

    def test_add_variable_with_membership(self):
        """Test that a variable's column lands in the coefficient relation."""
        form = Formulation(1)
        c = Constraint(ConstrId(1), "c", ConstrData(rhs=4.0))
        form.add(c)
        x = Variable(VarId(1), "x", VarData(cost=1.0))
        form.add(x, {c.id: 2.5})

        assert form.has_var(x.id)
        assert form.get_var(x.id) is x
        assert form.constr_members_of_var(x.id) == {c.id: 2.5}
        assert form.var_members_of_constr(c.id) == {x.id: 2.5}

    def test_add_constraint_records_perennial_rhs(self):
        """Test that the perennial rhs is recorded at insertion."""
        form = Formulation(1)
        c = Constraint(ConstrId(1), "c", ConstrData(rhs=4.0))
        form.add(c)
        form.set_cur_rhs(c.id, 1.0)

        assert form.get_perennial_rhs(c.id) == 4.0
        assert form.get_cur_rhs(c.id) == 1.0

    def test_add_incrementally(self):
        """Test adding columns one at a time, as pricing does."""
        form = Formulation(1)
        c = form.create_constraint("c", rhs=1.0)
        cols = [
            form.create_variable(f"col{i}", duty=VarDuty.MASTER_COL, cost=float(i),
                                 flag=Flag.DYNAMIC, members={c.id: 1.0})
            for i in range(3)
        ]

        assert form.num_variables == 3
        assert form.var_members_of_constr(c.id) == {col.id: 1.0 for col in cols}
        assert all(col.flag == Flag.DYNAMIC for col in cols)

    def test_add_all(self):
        """Test adding several entities with memberships."""
        form = Formulation(1)
        c = form.create_constraint("c")
        xs = [Variable(VarId(10 + i)) for i in range(2)]
        form.add_all(xs, [{c.id: 1.0}, {c.id: 2.0}])

        assert form.var_members_of_constr(c.id) == {xs[0].id: 1.0, xs[1].id: 2.0}

    def test_add_all_length_mismatch(self):
        form = Formulation(1)
        with pytest.raises(ValueError):
            form.add_all([Variable(VarId(1)), Variable(VarId(2))], [{}])

    def test_add_wrong_type(self):
        form = Formulation(1)
        with pytest.raises(TypeError):
            form.add("not an entity")

    def test_create_assigns_unique_ids(self):
        """Test that create_* draws fresh ids tagged with the formulation."""
        form = Formulation(7)
        x = form.create_variable("x", duty=VarDuty.MASTER_PURE_VAR)
        y = form.create_variable("y")

        assert x.id != y.id
        assert x.id.assigned_form_uid == 7
        assert x.id.origin_form_uid == 7
        assert x.duty == VarDuty.MASTER_PURE_VAR

    def test_get_absent_raises(self):
        form = Formulation(1)
        with pytest.raises(NotFoundError):
            form.get_var(VarId(1))
        with pytest.raises(NotFoundError):
            form.get_constr(ConstrId(1))
        with pytest.raises(NotFoundError):
            form.get_perennial_rhs(ConstrId(1))


# =============================================================================
# Queries and current values
# =============================================================================

class TestQueries:
    """Tests for filtering and value bookkeeping."""

    def test_var_ids_filters(self, rich_master):
        master = rich_master.master

        assert set(master.var_ids(duty_category=frozenset({VarDuty.MASTER_PURE_VAR}))) == {
            rich_master.x1.id, rich_master.x3.id
        }
        active = master.var_ids(active_only=True)
        assert rich_master.x4.id not in active
        costly = master.var_ids(predicate=lambda v: v.perennial_cost > 6.0)
        assert set(costly) == {rich_master.x4.id, rich_master.col.id}

    def test_constr_ids_filters(self, rich_master):
        master = rich_master.master
        explicit = master.constr_ids(predicate=lambda c: c.is_explicit, active_only=True)

        assert rich_master.c_off.id not in explicit
        assert rich_master.c_impl.id not in explicit
        assert rich_master.conv.id in explicit

    def test_cost_and_bounds(self, scenario):
        master, x1 = scenario.master, scenario.x1
        master.set_cur_cost(x1.id, 8.0)
        master.set_cur_bounds(x1.id, ub=3.0)

        assert master.get_perennial_cost(x1.id) == 2.0
        assert master.get_cur_cost(x1.id) == 8.0
        assert master.get_cur_lb(x1.id) == 0.0
        assert master.get_cur_ub(x1.id) == 3.0
        assert math.isinf(master.get_perennial_ub(x1.id))

    def test_deactivate_keeps_entity(self, scenario):
        """Test that deactivation never deletes."""
        master, x1, c1 = scenario.master, scenario.x1, scenario.c1
        master.deactivate(x1.id)
        master.deactivate(c1.id)

        assert master.has_var(x1.id)
        assert not master.is_active(x1.id)
        assert not master.is_active(c1.id)
        assert master.constr_members_of_var(x1.id) == {c1.id: 1.0}

        master.activate(x1.id)
        assert master.is_active(x1.id)

    def test_reset_to_perennial(self, scenario):
        master, x1, c1 = scenario.master, scenario.x1, scenario.c1
        master.set_cur_cost(x1.id, 100.0)
        master.set_cur_rhs(c1.id, 0.0)
        master.deactivate(x1.id)

        assert master.reset_to_perennial([x1.id]) == 1
        assert master.get_cur_cost(x1.id) == 2.0
        assert master.is_active(x1.id)
        assert master.get_cur_rhs(c1.id) == 0.0

        assert master.reset_to_perennial() == 3
        assert master.get_cur_rhs(c1.id) == 10.0

    def test_reset_accepts_any_iterable(self, scenario):
        master, x1, x2 = scenario.master, scenario.x1, scenario.x2
        master.set_cur_cost(x1.id, 9.0)
        master.set_cur_cost(x2.id, 9.0)

        assert master.reset_to_perennial(id for id in (x1.id, x2.id)) == 2
        assert master.get_cur_cost(x1.id) == 2.0
        assert master.reset_to_perennial({x2.id}) == 1
        assert master.get_cur_cost(x2.id) == 3.0

    def test_summary(self, scenario):
        summary = scenario.master.summary()

        assert "Formulation id" in summary
        assert "Min + 2.0 x1 + 3.0 x2" in summary
        assert "c1 : + 1.0 x1 + 1.0 x2 <= 10.0" in summary
        assert "MASTER_PURE_VAR" in summary


# =============================================================================
# Cloning
# =============================================================================

class TestClone:
    """Tests for clone_in_formulation."""

    def _original(self, registry):
        """Original formulation: c: x + 2 y >= 1, d: 3 y <= 5."""
        orig = registry.new_formulation(FormDuty.ORIGINAL)
        x = orig.create_variable("x", cost=1.0)
        y = orig.create_variable("y", cost=2.0)
        c = orig.create_constraint("c", rhs=1.0, members={x.id: 1.0, y.id: 2.0})
        d = orig.create_constraint("d", rhs=5.0, members={y.id: 3.0})
        return orig, x, y, c, d

    def test_clone_variables_preserves_column(self, registry):
        """Test that every coefficient of a cloned column is found in dest."""
        orig, x, y, c, d = self._original(registry)
        master = registry.new_formulation(FormDuty.DW_MASTER)

        clones = clone_in_formulation([x.id, y.id], orig, master, Flag.STATIC,
                                      VarDuty.MASTER_REP_PRICING_VAR)

        for clone, origin in zip(clones, (x, y)):
            assert clone is not origin
            assert clone.duty == VarDuty.MASTER_REP_PRICING_VAR
            assert clone.id.assigned_form_uid == master.uid
            assert master.get_var(origin.id) is clone
            for constr_id, coeff in orig.constr_members_of_var(origin.id).items():
                assert master.coefficients.get(constr_id, origin.id) == coeff
        assert master.coefficients.get(d.id, y.id) == 3.0

    def test_clone_constraints_preserves_row(self, registry):
        """Test that every coefficient of a cloned row is found in dest."""
        orig, x, y, c, d = self._original(registry)
        master = registry.new_formulation(FormDuty.DW_MASTER)

        (clone,) = clone_in_formulation([c.id], orig, master, Flag.STATIC,
                                        ConstrDuty.MASTER_MIXED_CONSTR)

        assert clone.duty == ConstrDuty.MASTER_MIXED_CONSTR
        assert master.var_members_of_constr(c.id) == {x.id: 1.0, y.id: 2.0}
        assert master.get_perennial_rhs(c.id) == 1.0

    def test_clone_does_not_change_source(self, registry):
        orig, x, y, c, d = self._original(registry)
        master = registry.new_formulation(FormDuty.DW_MASTER)
        clone_in_formulation([x.id], orig, master, Flag.DYNAMIC, VarDuty.MASTER_PURE_VAR)
        master.set_cur_cost(x.id, 50.0)

        assert orig.get_var(x.id).duty == VarDuty.ORIGINAL_VAR
        assert orig.get_cur_cost(x.id) == 1.0
        assert orig.get_var(x.id).flag == Flag.STATIC

    def test_clone_records_origin(self, registry):
        orig, x, y, c, d = self._original(registry)
        master = registry.new_formulation(FormDuty.DW_MASTER)
        clone_in_formulation([y.id], orig, master, Flag.STATIC, VarDuty.MASTER_REP_PRICING_VAR)

        src_uid, origin_id = master.clone_origins[y.id]
        assert src_uid == orig.uid
        assert origin_id.duty == VarDuty.ORIGINAL_VAR

    def test_clone_merges_existing_memberships(self, registry):
        """Test that pairs already in dest are kept when a column is cloned."""
        orig, x, y, c, d = self._original(registry)
        master = registry.new_formulation(FormDuty.DW_MASTER)
        conv = master.create_constraint("conv", duty=ConstrDuty.MASTER_CONVEXITY_CONSTR)
        master.coefficients.set(conv.id, y.id, 1.0)

        clone_in_formulation([y.id], orig, master, Flag.STATIC, VarDuty.MASTER_REP_PRICING_VAR)

        assert master.constr_members_of_var(y.id) == {conv.id: 1.0, c.id: 2.0, d.id: 3.0}

    def test_clone_varconstr_without_membership(self, registry):
        orig, x, y, c, d = self._original(registry)
        sp = registry.new_formulation(FormDuty.DW_SP)
        clone = clone_varconstr(orig.get_var(y.id), orig, sp, Flag.STATIC, VarDuty.DW_SP_PRICING_VAR)

        assert sp.get_var(y.id) is clone
        assert sp.constr_members_of_var(y.id) == {}

    def test_clone_absent_id_raises(self, registry):
        orig, *_ = self._original(registry)
        master = registry.new_formulation(FormDuty.DW_MASTER)
        with pytest.raises(NotFoundError):
            clone_in_formulation([VarId(999)], orig, master, Flag.STATIC, VarDuty.MASTER_PURE_VAR)


# =============================================================================
# Objective sense
# =============================================================================

class TestObjectiveSense:
    """Tests for register_objective_sense."""

    def test_minimize_accepted(self):
        form = Formulation(1)
        form.register_objective_sense(True)
        assert form.is_minimize

    def test_maximize_rejected(self):
        """Test that maximization always fails and leaves the sense unchanged."""
        form = Formulation(1)
        x = form.create_variable("x", cost=3.0)

        with pytest.raises(UnsupportedOperationError):
            form.register_objective_sense(False)
        assert form.is_minimize
        assert form.objective_sense == "Min"
        assert form.get_cur_cost(x.id) == 3.0

    def test_unsupported_is_not_implemented(self):
        form = Formulation(1)
        with pytest.raises(NotImplementedError):
            form.register_objective_sense(False)


# =============================================================================
# Optimize
# =============================================================================

class TestOptimize:
    """Tests for Formulation.optimize with a scripted backend."""

    def test_zero_results(self, scenario, backend_cls):
        """Test the no-result outcome: +inf, no solutions, no dual, no raise."""
        backend = backend_cls(status=SolutionStatus.INFEASIBLE, result_count=0)
        result = scenario.master.optimize(backend)

        assert result.status == SolutionStatus.INFEASIBLE
        assert result.objective_value == math.inf
        assert result.primal_solutions == []
        assert result.dual_solution is None
        assert not result.has_solution
        assert scenario.master.primal_solution_record is None

    def test_with_results(self, scenario, backend_cls):
        master, x1, x2, c1 = scenario.master, scenario.x1, scenario.x2, scenario.c1
        backend = backend_cls(
            objective=7.0,
            primal={x1.id: 2.0, x2.id: 1.0},
            duals={c1.id: -0.5},
        )
        status, objective, solutions, dual = master.optimize(backend)

        assert status == SolutionStatus.OPTIMAL
        assert objective == 7.0
        assert len(solutions) == 1
        assert solutions[0].values == {x1.id: 2.0, x2.id: 1.0}
        assert solutions[0].form_uid == master.uid
        assert dual.values == {c1.id: -0.5}
        assert dual.bound == 7.0
        assert backend.loaded == [master]
        assert master.primal_solution_record is solutions[0]
        assert master.dual_solution_record is dual

    def test_without_duals(self, scenario, backend_cls):
        """Test a result without dual values (e.g. a MIP)."""
        backend = backend_cls(objective=2.0, primal={scenario.x1.id: 1.0}, dual_bound=1.5)
        result = scenario.master.optimize(backend)

        assert result.has_solution
        assert result.dual_solution is None
        assert scenario.master.dual_solution_record is None

    def test_no_update(self, scenario, backend_cls):
        backend = backend_cls(objective=2.0, primal={scenario.x1.id: 1.0}, duals={})
        scenario.master.optimize(backend, update_form=False)

        assert scenario.master.primal_solution_record is None
        assert scenario.master.dual_solution_record is None

    def test_default_backend(self, registry, backend_cls):
        backend = backend_cls(result_count=0)
        form = registry.new_formulation(FormDuty.DW_SP, backend=backend)
        form.optimize()
        assert backend.runs == 1

    def test_no_backend(self):
        with pytest.raises(ValueError):
            Formulation(1).optimize()


class TestOriginalCost:
    """Tests for compute_original_cost."""

    def test_uses_perennial_costs(self, scenario):
        master, x1, x2 = scenario.master, scenario.x1, scenario.x2
        master.set_cur_cost(x1.id, 1000.0)
        solution = PrimalSolution(master.uid, {x1.id: 2.0, x2.id: 0.5}, objective_value=5.5)

        assert master.compute_original_cost(solution) == pytest.approx(5.5)

    def test_zero_entries_are_dropped(self, scenario):
        solution = PrimalSolution(scenario.master.uid, {scenario.x1.id: 0.0})
        assert len(solution) == 0
        assert scenario.master.compute_original_cost(solution) == 0.0


class TestIncumbents:
    """Tests for incumbent bound bookkeeping."""

    def test_primal_bound(self):
        form = Formulation(1)
        assert form.update_primal_inc_bound(10.0)
        assert not form.update_primal_inc_bound(12.0)
        assert form.primal_inc_bound == 10.0

    def test_dual_bound(self):
        form = Formulation(1)
        assert form.update_dual_inc_bound(3.0)
        assert not form.update_dual_inc_bound(2.0)
        assert form.dual_inc_bound == 3.0


# =============================================================================
# Registry
# =============================================================================

class TestRegistry:
    """Tests for FormulationRegistry."""

    def test_tree(self, registry):
        reform = registry.new_formulation(FormDuty.REFORMULATION)
        master = registry.new_formulation(FormDuty.DW_MASTER, parent=reform)
        sp1 = registry.new_formulation(FormDuty.DW_SP, parent=master)
        sp2 = registry.new_formulation(FormDuty.DW_SP, parent=master)

        assert registry.parent_of(sp1) is master
        assert registry.parent_of(master) is reform
        assert registry.parent_of(reform) is None
        assert registry.children_of(master) == [sp1, sp2]
        assert registry.formulations(FormDuty.DW_SP) == [sp1, sp2]
        assert len(registry) == 4
        assert sp1.uid in registry

    def test_ids_unique_across_formulations(self, registry):
        master = registry.new_formulation(FormDuty.DW_MASTER)
        sp = registry.new_formulation(FormDuty.DW_SP, parent=master)
        x = master.create_variable("x")
        y = sp.create_variable("y")

        assert x.id != y.id

    def test_foreign_parent_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.new_formulation(FormDuty.DW_SP, parent=Formulation(1))

    def test_get_absent(self, registry):
        with pytest.raises(NotFoundError):
            registry.get(42)
