"""End-to-end tests: orchestrator and the command-line entry point."""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

from sprint_forecast.cli.run_forecast import main
from sprint_forecast.config import Config
from sprint_forecast.ingest.params import SimulationParameters
from sprint_forecast.pipeline.orchestrator import run_forecast
from sprint_forecast.sim.monte_carlo import NonTerminatingSimulationError
from sprint_forecast.viz.report import HEADER


class RunForecastTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.cfg = Config(random_state=7, monte_carlo_trials=2000)

    def test_tables_and_summary(self) -> None:
        params = SimulationParameters(target=10, allocation=1.0, trials=2000)
        res = run_forecast([5, 10], params, self.cfg)
        self.assertEqual(int(res["frequency"].sum()), 2000)
        self.assertEqual(res["cumulative"]["Total"].iloc[-1], 2000)
        self.assertEqual(res["summary"]["Trials"], 2000)
        self.assertEqual(res["summary"]["Failed trials"], 0)
        self.assertEqual(res["summary"]["Sprints in history"], 2)
        self.assertEqual(res["summary"]["Sprints (P95)"], 2)

    def test_exports(self) -> None:
        params = SimulationParameters(target=30, allocation=0.5, trials=500)
        res = run_forecast([5, 8, 13], params, self.cfg, outdir=self.tmp.name)
        self.assertTrue(os.path.exists(res["csv"]))
        self.assertTrue(os.path.exists(res["confidence_chart"]))
        self.assertTrue(os.path.exists(res["fan_chart"]))

    def test_abandoned_trials_keep_table_below_full_confidence(self) -> None:
        cfg = Config(random_state=3, max_rounds_per_trial=3)
        params = SimulationParameters(target=10, allocation=1.0, trials=400)
        res = run_forecast([1, 10], params, cfg, strict=False)
        failed = res["batch"].failed
        self.assertGreater(failed, 0)
        self.assertEqual(res["cumulative"]["Total"].iloc[-1], 400 - failed)
        self.assertLess(res["cumulative"]["Confidence"].iloc[-1], 100.0)
        self.assertEqual(res["summary"]["Failed trials"], failed)
        self.assertEqual(res["summary"]["Sprints (P95)"], "not reached within 3")

    def test_non_terminating_pool_raises(self) -> None:
        params = SimulationParameters(target=1, allocation=1.0, trials=100)
        with self.assertRaises(NonTerminatingSimulationError):
            run_forecast([0], params, self.cfg)


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.history = os.path.join(self.tmp.name, "sprints.csv")
        with open(self.history, "w", encoding="utf-8") as f:
            f.write("sprint,completed_story_points\n1,5\n2,10\n")

    def _run(self, *argv):
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(list(argv))
        return code, buf.getvalue()

    def test_flags_only(self) -> None:
        code, out = self._run("--history", self.history, "--target", "10", "--growth", "0",
                              "--allocation", "1.0", "--trials", "1000", "--seed", "3")
        self.assertEqual(code, 0)
        self.assertIn(HEADER, out)
        self.assertIn("| 100.00%", out)

    def test_prompts_for_missing_values(self) -> None:
        with mock.patch("builtins.input", side_effect=["10", "1.0", "0"]) as ask:
            code, out = self._run("--history", self.history, "--trials", "200", "--seed", "1")
        self.assertEqual(code, 0)
        self.assertEqual(ask.call_count, 3)
        self.assertIn("| 100.00%", out)

    def test_missing_history_with_zero_target(self) -> None:
        code, out = self._run("--history", os.path.join(self.tmp.name, "nope.csv"),
                              "--no-prompt", "--trials", "50")
        self.assertEqual(code, 0)
        self.assertIn("0      \t50    \t| 100.00%", out)

    def test_missing_history_with_positive_target_fails(self) -> None:
        code, _ = self._run("--history", os.path.join(self.tmp.name, "nope.csv"),
                            "--no-prompt", "--target", "5", "--trials", "50")
        self.assertEqual(code, 2)

    def test_all_zero_history_fails_fast(self) -> None:
        with open(self.history, "w", encoding="utf-8") as f:
            f.write("completed_story_points\n0\n0\n")
        code, _ = self._run("--history", self.history, "--no-prompt", "--target", "1",
                            "--trials", "50")
        self.assertEqual(code, 2)

    def test_lenient_run_reports_failed_trials(self) -> None:
        code, out = self._run("--history", self.history, "--no-prompt", "--target", "100",
                              "--growth", "0", "--trials", "50", "--max-rounds", "3",
                              "--lenient")
        self.assertEqual(code, 0)
        self.assertIn("(no completed trials)", out)

    def test_long_forecast_fits_default_round_cap(self) -> None:
        with open(self.history, "w", encoding="utf-8") as f:
            f.write("completed_story_points\n1\n")
        code, out = self._run("--history", self.history, "--no-prompt", "--target", "1500",
                              "--growth", "0", "--trials", "3")
        self.assertEqual(code, 0)
        self.assertIn("1500   \t3     \t| 100.00%", out)


if __name__ == "__main__":
    unittest.main()
