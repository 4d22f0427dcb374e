from __future__ import annotations

import threading
import time
import unittest

from imgtmpl_core.core.single_flight import SingleFlight


def _wait_for_waiters(flight: SingleFlight, key: str, count: int, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        with flight._lock:
            call = flight._calls.get(key)
            if call is not None and call.waiters >= count:
                return True
        time.sleep(0.001)
    return False


class SingleFlightTests(unittest.TestCase):
    def test_concurrent_callers_share_one_execution(self) -> None:
        flight: SingleFlight[int] = SingleFlight()
        gate = threading.Event()
        started = threading.Event()
        runs: list[int] = []
        results: list[tuple[int, bool]] = []
        results_lock = threading.Lock()

        def work() -> int:
            runs.append(1)
            started.set()
            gate.wait(timeout=5)
            return 42

        def call() -> None:
            value = flight.do("k", work)
            with results_lock:
                results.append(value)

        leader = threading.Thread(target=call)
        leader.start()
        self.assertTrue(started.wait(timeout=5))
        followers = [threading.Thread(target=call) for _ in range(4)]
        for t in followers:
            t.start()
        self.assertTrue(_wait_for_waiters(flight, "k", 4))
        gate.set()
        for t in [leader, *followers]:
            t.join(timeout=5)

        self.assertEqual(len(runs), 1)
        self.assertEqual([value for value, _ in results], [42] * 5)
        self.assertTrue(all(shared for _, shared in results))
        self.assertFalse(flight.in_flight("k"))

    def test_error_reaches_every_waiter_and_key_is_forgotten(self) -> None:
        flight: SingleFlight[int] = SingleFlight()
        gate = threading.Event()
        started = threading.Event()
        errors: list[BaseException] = []

        def work() -> int:
            started.set()
            gate.wait(timeout=5)
            raise OSError("boom")

        def call() -> None:
            try:
                flight.do("k", work)
            except OSError as exc:
                errors.append(exc)

        leader = threading.Thread(target=call)
        leader.start()
        self.assertTrue(started.wait(timeout=5))
        follower = threading.Thread(target=call)
        follower.start()
        self.assertTrue(_wait_for_waiters(flight, "k", 1))
        gate.set()
        leader.join(timeout=5)
        follower.join(timeout=5)

        self.assertEqual(len(errors), 2)
        self.assertFalse(flight.in_flight("k"))
        self.assertEqual(flight.do("k", lambda: 7), (7, False))

    def test_sequential_calls_run_again(self) -> None:
        flight: SingleFlight[str] = SingleFlight()
        counter = []

        def work() -> str:
            counter.append(1)
            return "v"

        flight.do("a", work)
        flight.do("a", work)
        self.assertEqual(len(counter), 2)


if __name__ == "__main__":
    unittest.main()
