import unittest
from datetime import date
from unittest import mock

from src.calendar_engine.drawer import MemoryLocation, decode_drawer
from src.calendar_engine.errors import TransientStoreError
from src.calendar_engine.layout import Breakpoint
from src.calendar_engine.modals import ModalId
from src.calendar_engine.navigation import decode_day_summary
from src.calendar_engine.schedule import month_grid_days
from src.calendar_engine.session import CalendarSession
from src.calendar_engine.store import InMemoryRecordStore
from tests.helpers import OTHER_TEACHER, STUDENT, TEACHER, make_config, post_row, utc

MAY_START = utc(2024, 5, 1)
MAY_END = utc(2024, 5, 31, 23, 59, 59)
NOW = utc(2024, 5, 11, 8, 0)


def seeded_store():
    return InMemoryRecordStore(
        [
            post_row("A", "ASSIGNMENT", dueAt="2024-05-10T14:00:00Z", title="Essay"),
            post_row(
                "E",
                "EVENT",
                eventStartAt="2024-05-10T09:00:00Z",
                eventEndAt="2024-05-10T10:00:00Z",
                title="Assembly",
                audience="GLOBAL",
                classId=None,
            ),
            post_row("D", "EXAM", dueAt="2024-05-20T08:00:00Z", title="Draft exam", status="DRAFT"),
        ]
    )


class TestCalendarSession(unittest.TestCase):
    def setUp(self):
        self.store = seeded_store()
        self.location = MemoryLocation("/teacher/calendar", "d=2024-05-10")
        self.session = CalendarSession(TEACHER, self.store, self.location, make_config())
        self.session.load_range(MAY_START, MAY_END)

    def tearDown(self):
        self.session.close()

    def item(self, record_id):
        return next(i for i in self.session.items if i.record_id == record_id)

    def test_load_range_normalizes(self):
        self.assertEqual(sorted(i.id for i in self.session.items), ["A", "D", "E"])

    def test_store_error_keeps_previous_items(self):
        previous = list(self.session.items)
        with mock.patch.object(
            self.store, "get_by_id_and_date_range", side_effect=TransientStoreError("down")
        ):
            items = self.session.load_range(MAY_START, MAY_END)
        self.assertEqual(items, previous)
        self.assertEqual(self.session.notifications[-1].variant, "error")

    def test_buckets(self):
        days = month_grid_days(date(2024, 5, 1))
        buckets = self.session.buckets(days, Breakpoint.MOBILE, now=NOW)
        self.assertEqual([i.id for i in buckets["2024-05-10"].visible_items], ["E", "A"])
        self.assertEqual(len(buckets), len(days))

    def test_open_details_syncs_url_and_modal(self):
        self.assertTrue(self.session.open_details(self.item("A")))
        self.assertTrue(self.session.modals.is_modal_open(ModalId.ACTIVITY_DRAWER))
        state = decode_drawer(self.location.query)
        self.assertEqual((state.post_id, state.class_id), ("A", "c1"))
        self.session.close_details()
        self.assertFalse(self.session.drawer.is_open)
        self.assertIsNone(decode_drawer(self.location.query))
        self.assertEqual(len(self.location.entries), 1)

    def test_retarget_never_closes_drawer(self):
        seen = []
        self.session.drawer.subscribe(seen.append)
        self.session.open_details(self.item("A"))
        self.session.open_details(self.item("E"))
        self.assertEqual([s.is_open for s in seen], [True, True])
        self.assertEqual(self.session.drawer.state.post_id, "E")
        self.assertIsNone(decode_drawer(self.location.query).class_id)

    def test_day_click_closes_open_drawer_first(self):
        self.session.open_details(self.item("A"))
        self.assertFalse(self.session.handle_day_click(date(2024, 5, 10)))
        self.assertFalse(self.session.drawer.is_open)
        self.assertIsNone(self.session.modals.active_id)
        self.assertTrue(self.session.handle_day_click(date(2024, 5, 10)))
        self.assertTrue(self.session.modals.is_modal_open(ModalId.DAY_FOCUS))

    def test_opening_day_focus_closes_drawer(self):
        self.session.open_details(self.item("A"))
        self.session.modals.open_modal(ModalId.DAY_FOCUS, date(2024, 5, 10))
        self.assertFalse(self.session.drawer.is_open)
        self.assertIsNone(decode_drawer(self.location.query))

    def test_drop_moves_and_reloads(self):
        outcome = self.session.handle_drop("A", date(2024, 5, 12), now=NOW)
        self.assertTrue(outcome.updated)
        self.assertEqual(self.item("A").start_at, utc(2024, 5, 12, 14, 0))
        self.assertEqual(self.session.notifications[-1].variant, "info")

    def test_drop_by_non_owner(self):
        session = CalendarSession(OTHER_TEACHER, self.store, MemoryLocation(), make_config())
        session.load_range(MAY_START, MAY_END)
        outcome = session.handle_drop("A", date(2024, 5, 12), now=NOW)
        self.assertFalse(outcome.decision.allowed)
        self.assertEqual(self.store.update_calls, [])
        session.close()


class TestMount(unittest.TestCase):
    def test_restores_drawer_once(self):
        location = MemoryLocation("/teacher/calendar", "drawer=activity&postId=A&classId=c1")
        session = CalendarSession(TEACHER, seeded_store(), location, make_config())
        self.assertEqual(session.mount(), "activity_drawer")
        self.assertTrue(session.drawer.is_open)
        self.assertTrue(session.modals.is_modal_open(ModalId.ACTIVITY_DRAWER))
        session.close_details()
        self.assertIsNone(session.mount())
        self.assertFalse(session.drawer.is_open)
        session.close()

    def test_student_day_summary(self):
        location = MemoryLocation("/student/calendar", "day=2024-05-10&summary=1")
        session = CalendarSession(STUDENT, seeded_store(), location, make_config())
        self.assertEqual(session.mount(), "day_summary")
        self.assertEqual(session.modals.active_data, date(2024, 5, 10))
        session.modals.close_modal(ModalId.DAY_SUMMARY)
        self.assertEqual(location.query, "")
        session.close()

    def test_day_summary_ignored_for_teachers(self):
        location = MemoryLocation("/teacher/calendar", "day=2024-05-10&summary=1")
        session = CalendarSession(TEACHER, seeded_store(), location, make_config())
        self.assertIsNone(session.mount())
        session.close()

    def test_student_cannot_open_drafts(self):
        session = CalendarSession(STUDENT, seeded_store(), MemoryLocation(), make_config())
        session.load_range(MAY_START, MAY_END)
        draft = next(i for i in session.items if i.record_id == "D")
        self.assertFalse(session.open_details(draft))
        self.assertFalse(session.drawer.is_open)
        session.close()



class TestDaySummary(unittest.TestCase):
    def setUp(self):
        self.location = MemoryLocation("/student/calendar", "d=2024-05-10")
        self.session = CalendarSession(STUDENT, seeded_store(), self.location, make_config())

    def tearDown(self):
        self.session.close()

    def test_open_writes_deep_link(self):
        self.session.open_day_summary(date(2024, 5, 10))
        self.assertTrue(self.session.modals.is_modal_open(ModalId.DAY_SUMMARY))
        self.assertEqual(decode_day_summary(self.location.query), date(2024, 5, 10))
        self.assertEqual(len(self.location.entries), 1)

    def test_switching_days_keeps_deep_link(self):
        self.session.open_day_summary(date(2024, 5, 10))
        self.session.open_day_summary(date(2024, 5, 11))
        self.assertEqual(self.session.modals.active_data, date(2024, 5, 11))
        self.assertEqual(decode_day_summary(self.location.query), date(2024, 5, 11))
        self.assertIn("d=2024-05-10", self.location.query)

    def test_close_clears_deep_link(self):
        self.session.open_day_summary(date(2024, 5, 10))
        self.session.modals.close_modal(ModalId.DAY_SUMMARY)
        self.assertIsNone(decode_day_summary(self.location.query))
        self.assertEqual(self.location.query, "d=2024-05-10")


class TestDaySummaryDeferred(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.location = MemoryLocation("/student/calendar", "")
        config = make_config(modal_settle_delay_ms=10)
        self.session = CalendarSession(STUDENT, seeded_store(), self.location, config)

    async def asyncTearDown(self):
        self.session.close()

    async def test_link_written_only_once_open(self):
        self.session.open_day_summary(date(2024, 5, 10))
        self.assertEqual(self.location.query, "")
        await self.session.modals.settle()
        self.assertEqual(decode_day_summary(self.location.query), date(2024, 5, 10))

    async def test_superseded_open_leaves_no_link(self):
        self.session.open_day_summary(date(2024, 5, 10))
        self.session.modals.open_modal(ModalId.DAY_FOCUS, date(2024, 5, 10))
        await self.session.modals.settle()
        self.assertTrue(self.session.modals.is_modal_open(ModalId.DAY_FOCUS))
        self.assertIsNone(decode_day_summary(self.location.query))


if __name__ == "__main__":
    unittest.main()
