"""
Username Availability Tests

Query gating and the debounced, cancel-and-replace checker. Timers are
replaced with a fake that fires only when the test says so.
"""
from unittest.mock import MagicMock

from django.test import SimpleTestCase

from apps.profiles.availability import DebouncedUsernameCheck, UsernameAvailability, UsernameQuery


class FakeTimer:
    """Stands in for threading.Timer; fire() runs the callback synchronously."""

    created = []

    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class UsernameQueryTests(SimpleTestCase):

    def test_checkable_needs_username_and_location(self):
        self.assertTrue(UsernameQuery('ca_jane', 5, 12).is_checkable())
        self.assertFalse(UsernameQuery('ca', 5, 12).is_checkable())
        self.assertFalse(UsernameQuery('ca_jane', 0, 12).is_checkable())
        self.assertFalse(UsernameQuery('ca_jane', 5, 0).is_checkable())

    def test_from_profile(self):
        self.assertIsNone(UsernameQuery.from_profile(None))
        query = UsernameQuery.from_profile({'username': 'ca_jane', 'state_id': 5, 'district_id': 12})
        self.assertEqual(query, UsernameQuery('ca_jane', 5, 12))


class DebouncedUsernameCheckTests(SimpleTestCase):

    def setUp(self):
        FakeTimer.created = []
        self.checker = MagicMock(return_value=UsernameAvailability(is_available=True))
        self.results = []
        self.watcher = DebouncedUsernameCheck(
            checker=self.checker,
            on_result=lambda query, result: self.results.append((query, result)),
            delay_ms=800,
            exclude_user_id='user-1',
            timer_factory=FakeTimer,
        )

    def test_schedules_after_quiet_period(self):
        query = UsernameQuery('ca_jane', 5, 12)

        self.assertTrue(self.watcher.schedule(query))

        timer = FakeTimer.created[-1]
        self.assertEqual(timer.interval, 0.8)
        self.assertTrue(timer.started)
        self.assertTrue(self.watcher.is_pending)
        self.checker.assert_not_called()

        timer.fire()

        self.checker.assert_called_once_with('ca_jane', 5, 12, exclude_user_id='user-1')
        self.assertEqual(self.results, [(query, self.checker.return_value)])
        self.assertFalse(self.watcher.is_pending)
        self.assertFalse(self.watcher.is_checking)

    def test_new_input_cancels_pending_check(self):
        self.watcher.schedule(UsernameQuery('ca_jan', 5, 12))
        first = FakeTimer.created[-1]

        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        second = FakeTimer.created[-1]

        self.assertTrue(first.cancelled)

        # A cancelled timer that fires anyway is ignored
        first.fire()
        self.checker.assert_not_called()

        second.fire()
        self.checker.assert_called_once_with('ca_jane', 5, 12, exclude_user_id='user-1')

    def test_state_change_triggers_a_new_check(self):
        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        FakeTimer.created[-1].fire()

        self.assertTrue(self.watcher.schedule(UsernameQuery('ca_jane', 6, 12)))
        FakeTimer.created[-1].fire()

        self.assertEqual(self.checker.call_count, 2)
        self.assertEqual(self.checker.call_args.args, ('ca_jane', 6, 12))

    def test_incomplete_query_only_cancels(self):
        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        pending = FakeTimer.created[-1]

        self.assertFalse(self.watcher.schedule(UsernameQuery('ca', 5, 12)))

        self.assertTrue(pending.cancelled)
        self.assertEqual(len(FakeTimer.created), 1)
        self.assertIsNone(self.watcher.last_result)

    def test_persisted_triple_is_not_checked(self):
        self.watcher.persisted = UsernameQuery('ca_jane', 5, 12)

        self.assertFalse(self.watcher.schedule(UsernameQuery('ca_jane', 5, 12)))
        self.assertEqual(FakeTimer.created, [])

    def test_stale_result_is_dropped(self):
        """A check that finishes after newer input must not publish its result."""
        query = UsernameQuery('ca_jane', 5, 12)

        def slow_checker(*args, **kwargs):
            # Input changes while the request is in flight
            self.watcher.schedule(UsernameQuery('ca_janet', 5, 12))
            return UsernameAvailability(is_available=False, suggested=['ca_janeca'])

        self.watcher.checker = slow_checker
        self.watcher.schedule(query)
        FakeTimer.created[0].fire()

        self.assertEqual(self.results, [])
        self.assertIsNone(self.watcher.last_result)

    def test_checker_error_goes_to_on_error(self):
        errors = []
        self.watcher.on_error = lambda query, exc: errors.append(exc)
        self.checker.side_effect = RuntimeError('boom')

        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        FakeTimer.created[-1].fire()

        self.assertEqual(len(errors), 1)
        self.assertEqual(self.results, [])
        self.assertFalse(self.watcher.is_checking)

    def test_cancel(self):
        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        generation = self.watcher.generation

        self.watcher.cancel()

        self.assertTrue(FakeTimer.created[-1].cancelled)
        self.assertGreater(self.watcher.generation, generation)
        self.assertFalse(self.watcher.is_pending)

    def test_cancel_while_in_flight_drops_the_error(self):
        errors = []
        self.watcher.on_error = lambda query, exc: errors.append(exc)

        def failing_checker(*args, **kwargs):
            self.watcher.cancel()
            raise RuntimeError('connection reset')

        self.watcher.checker = failing_checker
        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        FakeTimer.created[-1].fire()

        self.assertEqual(errors, [])
        self.assertFalse(self.watcher.is_checking)

    def test_cancel_while_in_flight_drops_the_result(self):
        def cancelling_checker(*args, **kwargs):
            self.watcher.cancel()
            return UsernameAvailability(is_available=True)

        self.watcher.checker = cancelling_checker
        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        FakeTimer.created[-1].fire()

        self.assertEqual(self.results, [])
        self.assertFalse(self.watcher.is_checking)

    def test_replaced_check_leaves_newer_check_running(self):
        def replacing_checker(*args, **kwargs):
            self.watcher.schedule(UsernameQuery('ca_janet', 5, 12))
            raise RuntimeError('timeout')

        self.watcher.checker = replacing_checker
        self.watcher.schedule(UsernameQuery('ca_jane', 5, 12))
        FakeTimer.created[0].fire()

        self.assertFalse(self.watcher.is_checking)
        self.assertTrue(self.watcher.is_pending)

        self.watcher.checker = self.checker
        FakeTimer.created[-1].fire()

        self.checker.assert_called_once_with('ca_janet', 5, 12, exclude_user_id='user-1')
        self.assertEqual(len(self.results), 1)
        self.assertFalse(self.watcher.is_checking)
