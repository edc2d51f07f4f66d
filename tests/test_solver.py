import unittest

from mixcalc.catalog import default_catalog
from mixcalc.errors import ConvergenceError, InvalidInputError
from mixcalc.factories import new_spirit
from mixcalc.mixture import Mixture
from mixcalc.models import SolverTarget, WorkingTarget
from mixcalc.solver import SolverConfig, analyze_state, deviation, solve, validate_target


def neutral(volume, abv, brix=0.0):
    return WorkingTarget(volume=volume, abv=abv, brix=brix, moles_h=10 ** -7)


class TestDeviation(unittest.TestCase):
    def test_relative_to_actual(self):
        self.assertAlmostEqual(deviation(40.0, 50.0), -0.25)
        self.assertAlmostEqual(deviation(40.0, 30.0), 0.25)

    def test_zero_cases(self):
        self.assertEqual(deviation(0.0, 0.0), 0.0)
        self.assertEqual(deviation(0.0, 5.0), 1.0)
        self.assertEqual(deviation(5.0, 0.0), 1.0)

    def test_negative_target_rejected(self):
        with self.assertRaises(InvalidInputError):
            deviation(1.0, -1.0)


class TestAnalyzeState(unittest.TestCase):
    def setUp(self):
        self.spirit = new_spirit(default_catalog(), 100.0, 40.0)

    def test_on_target(self):
        state = analyze_state(self.spirit, neutral(100.0, 40.0))
        self.assertAlmostEqual(state.deviations.abv, 0.0, delta=1e-3)
        self.assertAlmostEqual(state.deviations.brix, 0.0, delta=1e-3)
        self.assertAlmostEqual(state.deviations.volume, 0.0, delta=1e-3)
        self.assertAlmostEqual(state.deviations.moles_h, 0.0, delta=1e-3)
        self.assertAlmostEqual(state.error, 0.0, delta=1e-3)

    def test_abv_deviation(self):
        self.assertAlmostEqual(
            analyze_state(self.spirit, neutral(100.0, 50.0)).deviations.abv, -0.25, delta=1e-3
        )
        self.assertAlmostEqual(
            analyze_state(self.spirit, neutral(100.0, 30.0)).deviations.abv, 0.25, delta=1e-3
        )

    def test_invalid_working_targets(self):
        with self.assertRaises(InvalidInputError):
            analyze_state(self.spirit, WorkingTarget(volume=100.0, abv=40.0, brix=0.0, moles_h=0.0))
        with self.assertRaises(InvalidInputError):
            analyze_state(self.spirit, neutral(0.0, 40.0))


class TestValidateTarget(unittest.TestCase):
    def test_ranges(self):
        validate_target(SolverTarget(volume=100.0, abv=0.0, brix=100.0, ph=7.0))
        for target in (
            SolverTarget(volume=0.0, abv=40.0, brix=0.0, ph=7.0),
            SolverTarget(volume=100.0, abv=101.0, brix=0.0, ph=7.0),
            SolverTarget(volume=100.0, abv=40.0, brix=-1.0, ph=7.0),
            SolverTarget(volume=100.0, abv=40.0, brix=0.0, ph=7.5),
            SolverTarget(volume=100.0, abv=40.0, brix=0.0, ph=-0.1),
        ):
            with self.assertRaises(InvalidInputError):
                validate_target(target)


class TestSolve(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()
        self.mixture = new_spirit(self.catalog, 100.0, 40.0).add_ingredient(
            self.catalog.component("sucrose"), 50.0, name="sugar"
        )
        self.initial = SolverTarget(
            volume=self.mixture.volume,
            abv=self.mixture.abv,
            brix=self.mixture.brix,
            ph=self.mixture.ph,
        )
        self.config = SolverConfig(seed=7)

    def target(self, **changes):
        values = dict(
            volume=self.initial.volume,
            abv=self.initial.abv,
            brix=self.initial.brix,
            ph=self.initial.ph,
        )
        values.update(changes)
        return SolverTarget(**values)

    def test_solve_for_abv(self):
        result = solve(self.mixture, self.target(abv=50.0), self.config)
        self.assertAlmostEqual(result.abv, 50.0, delta=0.1)
        self.assertAlmostEqual(result.brix, self.initial.brix, delta=0.1)
        self.assertAlmostEqual(result.volume, self.initial.volume, delta=0.1)

    def test_solve_for_lower_abv(self):
        result = solve(self.mixture, self.target(abv=25.0), self.config)
        self.assertAlmostEqual(result.abv, 25.0, delta=0.1)
        self.assertAlmostEqual(result.brix, self.initial.brix, delta=0.1)

    def test_solve_for_brix(self):
        result = solve(self.mixture, self.target(brix=25.0), self.config)
        self.assertAlmostEqual(result.brix, 25.0, delta=0.1)
        self.assertAlmostEqual(result.abv, self.initial.abv, delta=0.1)
        self.assertAlmostEqual(result.volume, self.initial.volume, delta=0.1)

    def test_solve_for_ph(self):
        acid = (
            Mixture(self.catalog)
            .add_ingredient(self.catalog.component("water"), 999.0, name="water")
            .add_ingredient(self.catalog.component("citric-acid"), 1.0, id="citric-acid")
            .set_volume(1000.0)
        )
        self.assertLess(acid.ph, 3.0)
        result = solve(acid, SolverTarget(volume=1000.0, abv=0.0, brix=0.0, ph=3.5), self.config)
        self.assertAlmostEqual(result.ph, 3.5, delta=0.1)
        self.assertAlmostEqual(result.volume, 1000.0, delta=0.1)
        self.assertLess(result.get_ingredient_mass("citric-acid"), 1.0)

    def test_input_is_not_mutated(self):
        before = self.mixture.clone()
        solve(self.mixture, self.target(abv=50.0), self.config)
        self.assertEqual(self.mixture, before)

    def test_result_keeps_ids(self):
        result = solve(self.mixture, self.target(abv=50.0), self.config)
        self.assertEqual(result.id, self.mixture.id)
        self.assertEqual(result.ingredient_ids, self.mixture.ingredient_ids)

    def test_already_on_target(self):
        result = solve(self.mixture, self.initial, self.config)
        self.assertAlmostEqual(result.mass, self.mixture.mass, delta=1e-9)

    def test_unreachable_target_raises(self):
        water = Mixture(self.catalog).add_ingredient(self.catalog.component("water"), 100.0)
        with self.assertRaises(ConvergenceError):
            solve(
                water,
                SolverTarget(volume=100.0, abv=40.0, brix=0.0, ph=7.0),
                SolverConfig(max_iterations=5, seed=1),
            )

    def test_invalid_target_raises_before_search(self):
        with self.assertRaises(InvalidInputError):
            solve(self.mixture, self.target(abv=150.0))

    def test_set_abv_updates_in_place(self):
        mixture_id = self.mixture.id
        self.mixture.set_abv(50.0, self.config)
        self.assertEqual(self.mixture.id, mixture_id)
        self.assertAlmostEqual(self.mixture.abv, 50.0, delta=0.1)
        self.assertAlmostEqual(self.mixture.brix, self.initial.brix, delta=0.1)

    def test_set_brix_updates_in_place(self):
        self.mixture.set_brix(20.0, self.config)
        self.assertAlmostEqual(self.mixture.brix, 20.0, delta=0.1)
        self.assertAlmostEqual(self.mixture.abv, self.initial.abv, delta=0.1)


if __name__ == "__main__":
    unittest.main()
