import logging
import os
import tempfile
import unittest

from serverfarm.config import SimulationConfig
from serverfarm.dispatcher import Dispatcher
from serverfarm.models import RequestType
from serverfarm.simulator import FIRST_ARRIVAL_ID, STATS_LOGGER, Simulator


class TestSimulator(unittest.TestCase):
    def setUp(self):
        """Set up a small seeded simulation with no statistics file."""
        self.config = SimulationConfig(servers=2, cycles=200, seed=7, log_file=None)
        self.sim = Simulator(self.config)

    def tearDown(self):
        self.sim.close()

    def test_farm_from_config(self):
        d = self.sim.dispatcher
        self.assertEqual(d.worker_count(), 2)
        self.assertEqual(d.max_workers, 4)
        self.assertEqual(d.min_workers, 1)

    def test_random_request_ranges(self):
        for i in range(200):
            request = self.sim.random_request(i)
            octets = [int(part) for part in request.origin.split(".")]
            self.assertEqual(len(octets), 4)
            self.assertTrue(all(1 <= o <= 254 for o in octets))
            self.assertIsInstance(request.category, RequestType)
            self.assertTrue(1 <= request.priority <= 10)
            self.assertTrue(5 <= request.remaining_cost <= 50)
            self.assertEqual(request.id, i)

    def test_seed_makes_workload_repeatable(self):
        other = Simulator(self.config)
        first = [self.sim.random_request(i).origin for i in range(5)]
        second = [other.random_request(i).origin for i in range(5)]
        self.assertEqual(first, second)

    def test_initialize_queue(self):
        self.assertEqual(self.sim.initialize_queue(), 200)
        self.assertEqual(self.sim.dispatcher.queue.peek().id, 1)

    def test_initialize_queue_stops_when_full(self):
        """The initial fill stops at the first refusal."""
        sim = Simulator(SimulationConfig(servers=20, cycles=200, seed=1, log_file=None))
        with self.assertLogs('serverfarm.simulator', level='WARNING'):
            self.assertEqual(sim.initialize_queue(), 1000)
        self.assertEqual(sim.dispatcher.queue.total_admitted, 1000)

    def test_arrivals_stop_near_the_end(self):
        sim = Simulator(SimulationConfig(servers=1, cycles=100, seed=3, arrival_rate=1.0, log_file=None))
        sim.cycle = 79
        self.assertIsNotNone(sim.maybe_generate())
        sim.cycle = 80
        self.assertIsNone(sim.maybe_generate())

    def test_generated_ids_continue_from_first_arrival_id(self):
        first = self.sim.generate_request()
        second = self.sim.generate_request()
        self.assertEqual((first.id, second.id), (FIRST_ARRIVAL_ID, FIRST_ARRIVAL_ID + 1))

    def test_toggle_auto_generate(self):
        self.assertEqual(self.sim.toggle_auto_generate(), "OFF")
        self.sim.cycle = 0
        self.sim.config.arrival_rate = 1.0
        self.assertIsNone(self.sim.maybe_generate())
        self.assertEqual(self.sim.toggle_auto_generate(), "ON")

    def test_block_last_origin(self):
        self.assertIsNone(self.sim.block_last_origin())
        request = self.sim.generate_request()
        self.assertEqual(self.sim.block_last_origin(), request.origin)
        self.assertTrue(self.sim.dispatcher.queue.is_blocked(request.origin))

    def test_conservation_over_run(self):
        """Every request taken off the queue is resident, completed or discarded."""
        self.sim.initialize_queue()
        d = self.sim.dispatcher
        while not self.sim.finished:
            self.sim.tick()
            q = d.queue
            self.assertEqual(q.total_admitted, q.total_removed + q.size())
            resident = sum(w.load for w in d.workers)
            self.assertEqual(q.total_removed, resident + d.total_processed() + d.total_discarded())
            self.assertTrue(d.min_workers <= d.worker_count() <= d.max_workers)
            self.assertTrue(0 <= d.cursor < d.worker_count())

    def test_run_returns_summary(self):
        self.sim.initialize_queue()
        seen = []
        summary = self.sim.run(on_status=seen.append)

        self.assertEqual(summary["cycles"], 200)
        self.assertEqual(len(summary["server_stats"]), self.sim.dispatcher.worker_count())
        self.assertGreater(summary["total_processed"], 0)
        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0]["cycle"], 200)

    def test_get_metrics(self):
        metrics = self.sim.get_metrics()
        self.assertEqual(metrics["cycle"], 0)
        self.assertGreater(metrics["memory_usage_mb"], 0)
        self.assertIn("cpu_percent", metrics)
        self.assertEqual(metrics["workers"], 2)


class TestStatisticsLog(unittest.TestCase):
    def setUp(self):
        with tempfile.NamedTemporaryFile(suffix=".txt", delete=False) as f:
            self.log_path = f.name

    def tearDown(self):
        if os.path.exists(self.log_path):
            os.unlink(self.log_path)

    def test_log_file_rows(self):
        """A header block, then one row per logged cycle."""
        config = SimulationConfig(servers=1, cycles=250, seed=5, log_file=self.log_path)
        sim = Simulator(config, dispatcher=Dispatcher(1, 2, 1, 0.8))
        sim.initialize_queue()
        sim.run()

        with open(self.log_path, encoding="utf-8") as f:
            lines = f.read().splitlines()

        self.assertEqual(lines[0], "Load Balancer Simulation Log")
        self.assertEqual(lines[1], "Servers: 1, Cycles: 250")
        rows = lines[4:]
        self.assertEqual(len(rows), 3)
        self.assertTrue(rows[0].startswith("Cycle   100 | Servers: "))
        self.assertTrue(rows[-1].startswith("Cycle   250 | "))
        self.assertIsNone(sim.stats_log)

    def test_simulators_keep_separate_logs(self):
        """Each simulator writes its own file and leaves no logger registered behind."""
        with tempfile.NamedTemporaryFile(suffix=".txt", delete=False) as f:
            other_path = f.name
        try:
            first = Simulator(SimulationConfig(servers=1, cycles=100, seed=1, log_file=self.log_path))
            second = Simulator(SimulationConfig(servers=3, cycles=100, seed=1, log_file=other_path))
            first.run()
            second.run()

            with open(self.log_path, encoding="utf-8") as f:
                first_lines = f.read().splitlines()
            with open(other_path, encoding="utf-8") as f:
                second_lines = f.read().splitlines()
        finally:
            os.unlink(other_path)

        self.assertEqual(first_lines[1], "Servers: 1, Cycles: 100")
        self.assertEqual(second_lines[1], "Servers: 3, Cycles: 100")
        self.assertEqual(len(first_lines), 5)
        self.assertEqual(len(second_lines), 5)
        registered = [name for name in logging.Logger.manager.loggerDict if name.startswith(STATS_LOGGER)]
        self.assertEqual(registered, [])


if __name__ == '__main__':
    unittest.main()
