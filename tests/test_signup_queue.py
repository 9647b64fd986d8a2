from __future__ import annotations

import unittest

from misc.signup_queue import SignupQueue


class SignupQueueTests(unittest.TestCase):
    def test_entries_keep_signup_order(self):
        queue = SignupQueue()
        self.assertTrue(queue.add(1, 10, "Alice", "Link"))
        self.assertTrue(queue.add(1, 20, "Bob"))
        self.assertEqual([e.user_id for e in queue.list(1)], [10, 20])
        self.assertEqual(queue.list(1)[0].slot, "Link")

    def test_resignup_keeps_position_and_updates_slot(self):
        queue = SignupQueue()
        queue.add(1, 10, "Alice")
        queue.add(1, 20, "Bob")
        self.assertFalse(queue.add(1, 10, "Alice", "Samus"))
        entries = queue.list(1)
        self.assertEqual([e.user_id for e in entries], [10, 20])
        self.assertEqual(entries[0].slot, "Samus")

    def test_guilds_are_separate(self):
        queue = SignupQueue()
        queue.add(1, 10, "Alice")
        queue.add(2, 20, "Bob")
        self.assertEqual([e.user_id for e in queue.list(2)], [20])
        self.assertEqual(queue.list(3), [])

    def test_remove_and_clear(self):
        queue = SignupQueue()
        queue.add(1, 10, "Alice")
        queue.add(1, 20, "Bob")
        self.assertTrue(queue.remove(1, 10))
        self.assertFalse(queue.remove(1, 10))
        self.assertEqual(queue.clear(1), 1)
        self.assertEqual(queue.clear(1), 0)

    def test_position_is_one_based(self):
        queue = SignupQueue()
        queue.add(1, 10, "Alice")
        queue.add(1, 20, "Bob")
        self.assertEqual(queue.position(1, 20), 2)
        self.assertIsNone(queue.position(1, 30))
        self.assertIsNone(queue.position(2, 10))


if __name__ == "__main__":
    unittest.main()
