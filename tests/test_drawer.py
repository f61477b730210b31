import unittest
from urllib.parse import parse_qs

from src.calendar_engine.drawer import (
    DrawerStateStore,
    MemoryLocation,
    decode_drawer,
    encode_drawer,
)
from src.calendar_engine.models import ALL_CLASSES, DrawerParams, DrawerState


class TestDrawerCodec(unittest.TestCase):
    def test_encode_open_state_keeps_other_keys(self):
        state = DrawerState(is_open=True, post_id="p1", class_id="c1")
        query = encode_drawer(state, "d=2024-05-10&v=week")
        self.assertEqual(
            parse_qs(query),
            {"d": ["2024-05-10"], "v": ["week"], "drawer": ["activity"], "postId": ["p1"], "classId": ["c1"]},
        )

    def test_encode_closed_state_removes_drawer_keys(self):
        query = encode_drawer(DrawerState(), "d=2024-05-10&drawer=activity&postId=p1&classId=c1")
        self.assertEqual(query, "d=2024-05-10")

    def test_all_classes_never_written(self):
        state = DrawerState(is_open=True, post_id="p1", class_id=ALL_CLASSES)
        self.assertNotIn("classId", parse_qs(encode_drawer(state)))

    def test_round_trip(self):
        for state in (
            DrawerState(is_open=True, post_id="p1", class_id="c1"),
            DrawerState(is_open=True, post_id="p 2/x", class_id=None),
        ):
            decoded = decode_drawer(encode_drawer(state, "d=2024-05-10"))
            self.assertEqual(
                (decoded.is_open, decoded.post_id, decoded.class_id),
                (state.is_open, state.post_id, state.class_id),
            )

    def test_closed_round_trip(self):
        self.assertIsNone(decode_drawer(encode_drawer(DrawerState(), "d=2024-05-10")))

    def test_partial_or_malformed_params_ignored(self):
        self.assertIsNone(decode_drawer("postId=p1"))
        self.assertIsNone(decode_drawer("drawer=activity"))
        self.assertIsNone(decode_drawer("drawer=other&postId=p1"))
        self.assertIsNone(decode_drawer("drawer=activity&postId=" + "x" * 101))
        self.assertIsNone(decode_drawer("drawer=activity&postId=p1&classId=" + "y" * 101))

    def test_all_classes_in_url_means_no_class(self):
        state = decode_drawer("drawer=activity&postId=p1&classId=ALL_CLASSES")
        self.assertIsNone(state.class_id)


class TestDrawerStateStore(unittest.TestCase):
    def setUp(self):
        self.location = MemoryLocation("/teacher/calendar", "d=2024-05-10")
        self.store = DrawerStateStore(self.location)
        self.seen = []
        self.store.subscribe(self.seen.append)

    def test_open_and_close_sync_url_without_history(self):
        self.store.open(DrawerParams(post_id="p1", class_id="c1"))
        self.assertEqual(decode_drawer(self.location.query).post_id, "p1")
        self.store.close()
        self.assertEqual(self.location.query, "d=2024-05-10")
        self.assertEqual(len(self.location.entries), 1)

    def test_many_transitions_never_grow_history(self):
        for n in range(25):
            self.store.open(DrawerParams(post_id=f"p{n}"))
            if n % 3 == 0:
                self.store.close()
        self.assertEqual(len(self.location.entries), 1)

    def test_retarget_notifies_once_without_closing(self):
        self.store.open(DrawerParams(post_id="p1", class_id="c1"))
        self.store.open(DrawerParams(post_id="p2", class_id="c2"))
        self.assertEqual([s.post_id for s in self.seen], ["p1", "p2"])
        self.assertTrue(all(s.is_open for s in self.seen))
        self.assertEqual(decode_drawer(self.location.query).class_id, "c2")

    def test_reopening_same_target_is_silent(self):
        self.store.open(DrawerParams(post_id="p1"))
        self.store.open(DrawerParams(post_id="p1"))
        self.assertEqual(len(self.seen), 1)

    def test_close_when_closed_is_silent(self):
        self.store.close()
        self.assertEqual(self.seen, [])

    def test_unsubscribe(self):
        unsubscribe = self.store.subscribe(self.seen.append)
        unsubscribe()
        self.store.open(DrawerParams(post_id="p1"))
        self.assertEqual(len(self.seen), 1)

    def test_restore_from_url_once(self):
        location = MemoryLocation("/student/calendar", "drawer=activity&postId=p7&classId=c3")
        store = DrawerStateStore(location)
        self.assertTrue(store.restore_from_url())
        self.assertEqual((store.state.post_id, store.state.class_id, store.state.mode), ("p7", "c3", "calendar"))
        store.close()
        location.replace("drawer=activity&postId=p8")
        self.assertFalse(store.restore_from_url())
        self.assertFalse(store.is_open)

    def test_restore_skipped_after_user_action(self):
        location = MemoryLocation("/student/calendar", "drawer=activity&postId=p7")
        store = DrawerStateStore(location)
        store.open(DrawerParams(post_id="p1"))
        self.assertFalse(store.restore_from_url())
        self.assertEqual(store.state.post_id, "p1")

    def test_restore_without_params(self):
        self.assertFalse(self.store.restore_from_url())
        self.assertFalse(self.store.is_open)


if __name__ == "__main__":
    unittest.main()
