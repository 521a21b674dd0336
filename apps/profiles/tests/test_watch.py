"""
Username Watch Tests
"""
import uuid
from unittest.mock import MagicMock

from django.core.cache import cache
from django.test import SimpleTestCase

from apps.profiles.availability import UsernameAvailability, UsernameQuery
from apps.profiles.watch import (
    WatchStatus,
    discard_watcher,
    get_published_check,
    get_watcher,
    publish_check,
)


class UsernameWatchTests(SimpleTestCase):

    def setUp(self):
        cache.clear()
        self.user_id = str(uuid.uuid4())

    def tearDown(self):
        discard_watcher(self.user_id)

    def test_one_watcher_per_user(self):
        factory = MagicMock(side_effect=lambda: MagicMock())

        first = get_watcher(self.user_id, factory)
        second = get_watcher(self.user_id, factory)

        self.assertIs(first, second)
        factory.assert_called_once_with()

    def test_publish_done_includes_availability(self):
        query = UsernameQuery('ca_jane', 5, 12)

        publish_check(self.user_id, WatchStatus.DONE, query, UsernameAvailability(is_available=True))

        published = get_published_check(self.user_id)
        self.assertEqual(published['status'], 'done')
        self.assertEqual(published['username'], 'ca_jane')
        self.assertTrue(published['is_available'])

    def test_discard_cancels_and_forgets(self):
        watcher = MagicMock()
        get_watcher(self.user_id, lambda: watcher)
        publish_check(self.user_id, WatchStatus.PENDING, UsernameQuery('ca_jane', 5, 12))

        discard_watcher(self.user_id)

        watcher.cancel.assert_called_once_with()
        self.assertEqual(get_published_check(self.user_id)['status'], 'idle')
        self.assertIsNot(get_watcher(self.user_id, MagicMock), watcher)
