import random
import unittest
from unittest import mock

from aiosignaling import RoomFull, RoomManager
from aiosignaling.rooms import LOBBY_PREFIX, Room


class RoomTest(unittest.TestCase):
    def test_room(self):
        room = Room("r1")
        self.assertEqual(repr(room), "Room(r1)")
        self.assertFalse(room.full)
        self.assertFalse(room.lobby)
        self.assertIsNone(room.other("a"))

        room.members.append("a")
        self.assertIsNone(room.other("a"))
        self.assertEqual(room.other("b"), "a")

        room.members.append("b")
        self.assertTrue(room.full)
        self.assertEqual(room.other("a"), "b")
        self.assertEqual(room.other("b"), "a")


class RoomManagerTest(unittest.TestCase):
    def setUp(self):
        self.notifier = mock.Mock()
        self.rooms = RoomManager(self.notifier)

    def test_join_creates_room(self):
        room_id = self.rooms.join("a", "r1")
        self.assertEqual(room_id, "r1")
        self.assertIn("r1", self.rooms)
        self.assertEqual(len(self.rooms), 1)
        self.assertEqual(self.rooms.room_of("a"), "r1")
        self.assertIsNone(self.rooms.peer_of("a"))

        room = self.rooms.get("r1")
        self.assertEqual(room.members, ["a"])
        self.assertGreater(room.created_at, 0)
        self.notifier.on_join.assert_called_once_with(room, "a")
        self.notifier.on_peer_join.assert_not_called()

    def test_join_second_member(self):
        self.rooms.join("a", "r1")
        self.rooms.join("b", "r1")

        room = self.rooms.get("r1")
        self.assertEqual(room.members, ["a", "b"])
        self.assertEqual(self.rooms.peer_of("a"), "b")
        self.assertEqual(self.rooms.peer_of("b"), "a")
        self.notifier.on_join.assert_called_once_with(room, "a")
        self.notifier.on_peer_join.assert_called_once_with(room)

    def test_join_full(self):
        self.rooms.join("a", "r1")
        self.rooms.join("b", "r1")

        with self.assertRaises(RoomFull) as cm:
            self.rooms.join("c", "r1")
        self.assertEqual(cm.exception.room_id, "r1")
        self.assertIsNone(self.rooms.room_of("c"))
        self.assertEqual(self.rooms.get("r1").members, ["a", "b"])

    def test_join_full_keeps_current_room(self):
        self.rooms.join("a", "r1")
        self.rooms.join("b", "r1")
        self.rooms.join("c", "r2")

        with self.assertRaises(RoomFull):
            self.rooms.join("c", "r1")
        self.assertEqual(self.rooms.room_of("c"), "r2")
        self.assertIn("r2", self.rooms)
        self.notifier.on_leave.assert_not_called()

    def test_join_same_room(self):
        self.rooms.join("a", "r1")
        self.assertEqual(self.rooms.join("a", "r1"), "r1")
        self.assertEqual(self.rooms.get("r1").members, ["a"])
        self.assertEqual(self.notifier.on_join.call_count, 1)

    def test_join_other_room(self):
        self.rooms.join("a", "r1")
        self.rooms.join("b", "r1")
        old_room = self.rooms.get("r1")

        self.rooms.join("a", "r2")
        self.assertEqual(self.rooms.room_of("a"), "r2")
        self.assertEqual(old_room.members, ["b"])
        self.assertIsNone(self.rooms.peer_of("b"))
        self.notifier.on_leave.assert_called_once_with(old_room, "a", "b")

    def test_join_other_room_as_sole_member(self):
        self.rooms.join("a", "r1")
        self.rooms.join("a", "r2")
        self.assertNotIn("r1", self.rooms)
        self.assertIn("r2", self.rooms)
        self.notifier.on_leave.assert_not_called()

    def test_leave(self):
        self.rooms.join("a", "r1")
        self.rooms.join("b", "r1")
        room = self.rooms.get("r1")

        self.assertEqual(self.rooms.leave("a"), "r1")
        self.assertIsNone(self.rooms.room_of("a"))
        self.assertEqual(room.members, ["b"])
        self.notifier.on_leave.assert_called_once_with(room, "a", "b")

        # the last member leaving deletes the room
        self.assertEqual(self.rooms.leave("b"), "r1")
        self.assertNotIn("r1", self.rooms)
        self.assertIsNone(self.rooms.get("r1"))
        self.assertEqual(len(self.rooms), 0)
        self.assertEqual(self.notifier.on_leave.call_count, 1)

    def test_leave_not_in_room(self):
        self.assertIsNone(self.rooms.leave("a"))
        self.notifier.on_leave.assert_not_called()

    def test_room_reusable_after_leave(self):
        self.rooms.join("a", "r1")
        self.rooms.join("b", "r1")
        self.rooms.leave("a")
        self.rooms.join("c", "r1")
        self.assertEqual(self.rooms.get("r1").members, ["b", "c"])
        self.assertEqual(self.rooms.peer_of("c"), "b")

    def test_lobby_pairing(self):
        room_a = self.rooms.join("a")
        room_b = self.rooms.join("b")
        room_c = self.rooms.join("c")
        room_d = self.rooms.join("d")

        # clients are paired in arrival order
        self.assertTrue(room_a.startswith(LOBBY_PREFIX))
        self.assertEqual(room_a, room_b)
        self.assertEqual(room_c, room_d)
        self.assertNotEqual(room_a, room_c)
        self.assertTrue(self.rooms.get(room_a).lobby)
        self.assertEqual(self.rooms.peer_of("a"), "b")
        self.assertEqual(self.rooms.peer_of("d"), "c")

    def test_lobby_oldest_first(self):
        room_a = self.rooms.join("a")
        self.rooms.join("b")
        room_c = self.rooms.join("c")
        self.rooms.join("d")

        # a and c are now waiting, a for longer
        self.rooms.leave("b")
        self.rooms.leave("d")
        self.assertEqual(self.rooms.join("e"), room_a)
        self.assertEqual(self.rooms.join("f"), room_c)

    def test_lobby_join_twice(self):
        room_a = self.rooms.join("a")
        self.assertEqual(self.rooms.join("a"), room_a)
        self.assertEqual(self.rooms.get(room_a).members, ["a"])

    def test_lobby_room_left_empty(self):
        room_a = self.rooms.join("a")
        self.rooms.leave("a")
        self.assertNotIn(room_a, self.rooms)

        room_b = self.rooms.join("b")
        self.assertNotEqual(room_a, room_b)
        self.assertEqual(self.rooms.get(room_b).members, ["b"])

    def test_lobby_room_joined_by_name(self):
        room_a = self.rooms.join("a")
        self.rooms.join("b", room_a)
        self.assertEqual(self.rooms.peer_of("a"), "b")

        # the room is no longer offered to lobby clients
        self.assertNotEqual(self.rooms.join("c"), room_a)

    def test_lobby_from_named_room(self):
        self.rooms.join("a", "r1")
        self.rooms.join("b", "r1")

        room_id = self.rooms.join("a")
        self.assertTrue(room_id.startswith(LOBBY_PREFIX))
        self.assertEqual(self.rooms.get("r1").members, ["b"])

    def test_random_operations(self):
        connections = ["c%d" % i for i in range(8)]
        names = ["r1", "r2", "r3", None]
        generator = random.Random(1234)

        for step in range(2000):
            connection_id = generator.choice(connections)
            if generator.random() < 0.6:
                try:
                    self.rooms.join(connection_id, generator.choice(names))
                except RoomFull:
                    pass
            else:
                self.rooms.leave(connection_id)
            self.assertInvariants(connections)

    def assertInvariants(self, connections):
        seen = {}
        for room_id in list(self.rooms._rooms):
            room = self.rooms.get(room_id)
            self.assertIn(len(room.members), (1, 2))
            for member in room.members:
                self.assertNotIn(member, seen)
                seen[member] = room_id

        for connection_id in connections:
            self.assertEqual(self.rooms.room_of(connection_id), seen.get(connection_id))
            peer_id = self.rooms.peer_of(connection_id)
            if peer_id is not None:
                self.assertEqual(self.rooms.peer_of(peer_id), connection_id)
