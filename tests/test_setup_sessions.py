from __future__ import annotations

import unittest

from wizard.sessions import SetupSessionStore


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class SetupSessionStoreTests(unittest.TestCase):
    def setUp(self):
        self.clock = _Clock()
        self.store = SetupSessionStore(ttl_seconds=900, clock=self.clock)

    def test_one_session_per_user(self):
        self.store.create(1, "start")
        self.store.create(1, "guild")
        self.assertEqual(len(self.store), 1)
        self.assertEqual(self.store.get(1).step, "guild")

    def test_get_expires_idle_session(self):
        self.store.create(1, "start")
        self.clock.now += 901
        self.assertIsNone(self.store.get(1))
        self.assertEqual(len(self.store), 0)

    def test_set_and_touch_extend_lifetime(self):
        session = self.store.create(1, "start")
        self.clock.now += 600
        self.store.set(1, session)
        self.clock.now += 600
        self.assertIsNotNone(self.store.get(1))
        self.assertTrue(self.store.touch(1))
        self.clock.now += 899
        self.assertIsNotNone(self.store.get(1))

    def test_sweep_removes_only_expired(self):
        self.store.create(1, "start")
        self.clock.now += 500
        self.store.create(2, "start")
        self.clock.now += 500
        self.assertEqual(self.store.sweep_expired(), 1)
        self.assertIsNone(self.store.get(1))
        self.assertIsNotNone(self.store.get(2))

    def test_delete(self):
        self.store.create(1, "start")
        self.assertTrue(self.store.delete(1))
        self.assertFalse(self.store.delete(1))
        self.assertFalse(self.store.touch(1))


if __name__ == "__main__":
    unittest.main()
