import unittest
from datetime import date
from zoneinfo import ZoneInfo

from src.calendar_engine.models import GLOBAL_SCOPE, Role
from src.calendar_engine.navigation import (
    CalendarLink,
    build_calendar_url,
    calendar_route,
    class_calendar_url,
    clear_day_summary,
    decode_day_summary,
    encode_day_summary,
    item_calendar_url,
    parse_calendar_params,
)
from tests.helpers import make_item, utc

TODAY = date(2024, 5, 15)


class TestBuildCalendarUrl(unittest.TestCase):
    def test_routes_per_role(self):
        self.assertEqual(calendar_route(Role.STUDENT), "/student/calendar")
        self.assertEqual(calendar_route("teacher"), "/teacher/calendar")
        self.assertEqual(calendar_route("parent"), "/calendar")
        self.assertEqual(calendar_route(None), "/calendar")

    def test_full_link(self):
        link = CalendarLink(
            date=date(2024, 5, 10), class_id="c1", post_id="p9", highlight_post=True, view="week"
        )
        self.assertEqual(
            build_calendar_url(Role.TEACHER, link),
            "/teacher/calendar?d=2024-05-10&classId=c1&postId=p9&highlight=true&v=week",
        )

    def test_defaults_are_omitted(self):
        self.assertEqual(build_calendar_url(Role.STUDENT), "/student/calendar")
        self.assertEqual(
            build_calendar_url(Role.STUDENT, CalendarLink(class_id="ALL_CLASSES", view="month")),
            "/student/calendar",
        )

    def test_day_modal_defaults_to_today(self):
        url = build_calendar_url(Role.REGISTRAR, CalendarLink(open_day_modal=True), today=TODAY)
        self.assertEqual(url, "/registrar/calendar?d=2024-05-15&modal=day")

    def test_class_calendar(self):
        self.assertEqual(class_calendar_url(Role.TEACHER, "c1"), "/teacher/class/c1/calendar")
        self.assertEqual(
            class_calendar_url("student", "c1", date(2024, 5, 10)),
            "/student/class/c1/calendar?d=2024-05-10&modal=day",
        )
        with self.assertRaises(ValueError):
            class_calendar_url(Role.TEACHER, "")

    def test_item_link_uses_local_day(self):
        item = make_item("p1", start=utc(2024, 5, 11, 1, 30))
        url = item_calendar_url(item, Role.TEACHER, ZoneInfo("America/Sao_Paulo"))
        self.assertEqual(url, "/teacher/calendar?d=2024-05-10&classId=c1&postId=p1&highlight=true")

    def test_item_link_for_global_item_has_no_class(self):
        item = make_item("p1", class_scope=GLOBAL_SCOPE)
        self.assertNotIn("classId", item_calendar_url(item, Role.STUDENT))


class TestParseCalendarParams(unittest.TestCase):
    def test_valid(self):
        params = parse_calendar_params("?d=2024-06-01&v=week&classId=c1&postId=p1", today=TODAY)
        self.assertEqual(params.date, date(2024, 6, 1))
        self.assertEqual(params.view, "week")
        self.assertEqual(params.class_id, "c1")
        self.assertEqual(params.post_id, "p1")
        self.assertTrue(params.is_valid)

    def test_fallbacks(self):
        params = parse_calendar_params("d=2024-13-45&v=year&classId=ALL_CLASSES", today=TODAY)
        self.assertEqual(params.date, TODAY)
        self.assertEqual(params.view, "month")
        self.assertIsNone(params.class_id)
        self.assertEqual(params.errors, ("Invalid date format", "Invalid view type"))

    def test_date_window(self):
        self.assertEqual(parse_calendar_params("d=2014-01-01", today=TODAY).date, date(2014, 1, 1))
        self.assertEqual(parse_calendar_params("d=2034-12-31", today=TODAY).date, date(2034, 12, 31))
        far = parse_calendar_params("d=2035-01-01", today=TODAY)
        self.assertEqual(far.date, TODAY)
        self.assertFalse(far.is_valid)

    def test_long_ids_rejected(self):
        params = parse_calendar_params("postId=" + "x" * 101, today=TODAY)
        self.assertIsNone(params.post_id)
        self.assertEqual(params.errors, ("Invalid post ID format",))


class TestDaySummaryLink(unittest.TestCase):
    def test_encode_decode(self):
        query = encode_day_summary(date(2024, 5, 10), "d=2024-05-01")
        self.assertEqual(query, "d=2024-05-01&day=2024-05-10&summary=1")
        self.assertEqual(decode_day_summary(query), date(2024, 5, 10))

    def test_requires_summary_flag(self):
        self.assertIsNone(decode_day_summary("day=2024-05-10"))
        self.assertIsNone(decode_day_summary("day=bad&summary=1"))

    def test_clear(self):
        self.assertEqual(clear_day_summary("d=2024-05-01&day=2024-05-10&summary=1"), "d=2024-05-01")


if __name__ == "__main__":
    unittest.main()
