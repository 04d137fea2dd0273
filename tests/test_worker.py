import unittest

from serverfarm.config import DEFAULT_WORKER_CAPACITY
from serverfarm.models import Denial, Request
from serverfarm.worker import Worker


class TestWorker(unittest.TestCase):
    def setUp(self):
        """Set up a fresh capacity-3 worker for each test."""
        self.worker = Worker(1, "192.168.1.1", 3)

    def test_defaults(self):
        """A worker built with no arguments uses the default capacity."""
        worker = Worker()
        self.assertEqual(worker.id, 0)
        self.assertEqual(worker.address, "0.0.0.0")
        self.assertEqual(worker.capacity, DEFAULT_WORKER_CAPACITY)
        self.assertTrue(worker.active)
        self.assertEqual(worker.load, 0)

    def test_submit_until_full(self):
        """Submits succeed up to capacity, then are refused without side effects."""
        for i in range(3):
            self.assertTrue(self.worker.submit(Request(id=i)))
        self.assertFalse(self.worker.can_accept())

        outcome = self.worker.submit(Request(id=99))
        self.assertFalse(outcome)
        self.assertIs(outcome.reason, Denial.WORKER_FULL)
        self.assertEqual(self.worker.load, 3)
        self.assertEqual(self.worker.queue_size(), 3)

    def test_inactive_worker(self):
        """An inactive worker refuses work and does not advance what it holds."""
        request = Request(remaining_cost=2)
        self.worker.submit(request)
        self.worker.set_active(False)

        outcome = self.worker.submit(Request())
        self.assertIs(outcome.reason, Denial.INACTIVE)
        self.assertFalse(self.worker.can_accept())
        self.assertEqual(self.worker.advance(), 0)
        self.assertEqual(request.remaining_cost, 2)

    def test_completes_on_nth_advance(self):
        """A cost-n request retires on exactly the n-th advance."""
        self.worker.submit(Request(remaining_cost=3))
        self.assertEqual(self.worker.advance(), 0)
        self.assertEqual(self.worker.advance(), 0)
        self.assertEqual(self.worker.advance(), 1)
        self.assertEqual(self.worker.load, 0)
        self.assertEqual(self.worker.completed_count, 1)

    def test_advance_preserves_order(self):
        """Survivors keep their relative order after a retirement."""
        for request_id, cost in ((1, 3), (2, 1), (3, 2)):
            self.worker.submit(Request(id=request_id, remaining_cost=cost))

        self.assertEqual(self.worker.advance(), 1)
        self.assertEqual([r.id for r in self.worker.resident_requests()], [1, 3])
        self.assertEqual([r.remaining_cost for r in self.worker.resident_requests()], [2, 1])
        self.assertEqual(self.worker.load, self.worker.queue_size())

    def test_cost_consumed_is_value_at_retirement(self):
        """The cost a request holds when retired is what gets accumulated."""
        self.worker.submit(Request(remaining_cost=0))
        self.worker.submit(Request(remaining_cost=2))
        self.worker.advance()
        self.worker.advance()

        self.assertEqual(self.worker.completed_count, 2)
        self.assertEqual(self.worker.total_cost_consumed, 1)
        self.assertEqual(self.worker.average_processing_time(), 0.5)

    def test_advance_on_empty_worker(self):
        """Advancing an idle worker is a no-op."""
        self.assertEqual(self.worker.advance(), 0)
        self.assertEqual(self.worker.average_processing_time(), 0.0)

    def test_utilization(self):
        """Utilization is load over capacity in percent, guarded for zero capacity."""
        self.worker.submit(Request())
        self.assertAlmostEqual(self.worker.utilization(), 100 / 3)

        empty = Worker(capacity=0)
        self.assertEqual(empty.utilization(), 0.0)
        self.assertIs(empty.submit(Request()).reason, Denial.WORKER_FULL)

    def test_describe(self):
        """The summary line names id, address, load, utilization, count and flag."""
        self.worker.submit(Request())
        self.assertEqual(
            self.worker.describe(),
            "Server 1 (192.168.1.1): Load: 1/3 (33.3%) | Processed: 0 | Active: Yes",
        )
        self.worker.set_active(False)
        self.assertTrue(self.worker.describe().endswith("Active: No"))

    def test_get_metrics(self):
        """Metrics reflect the worker's counters."""
        self.worker.submit(Request(remaining_cost=1))
        self.worker.advance()
        metrics = self.worker.get_metrics()
        self.assertEqual(metrics["worker_id"], 1)
        self.assertEqual(metrics["completed"], 1)
        self.assertEqual(metrics["load"], 0)
        self.assertTrue(metrics["active"])


if __name__ == '__main__':
    unittest.main()
