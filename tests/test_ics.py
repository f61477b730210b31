import unittest

from src.calendar_engine.ics import build_ics, escape_text, ics_filename
from src.calendar_engine.models import Kind
from tests.helpers import make_item, utc

NOW = utc(2024, 5, 1, 12, 0)


class TestBuildIcs(unittest.TestCase):
    def test_event_document(self):
        item = make_item(
            "e1",
            Kind.EVENT,
            utc(2024, 5, 10, 9, 0),
            end_at=utc(2024, 5, 10, 11, 0),
            record_id="post-1",
            title="Science fair",
            location_text="Main hall",
        )
        text = build_ics(item, uid_domain="school.test", now=NOW)
        lines = text.split("\r\n")
        self.assertEqual(lines[0], "BEGIN:VCALENDAR")
        self.assertIn("UID:post-1@school.test", lines)
        self.assertIn("DTSTAMP:20240501T120000Z", lines)
        self.assertIn("DTSTART:20240510T090000Z", lines)
        self.assertIn("DTEND:20240510T110000Z", lines)
        self.assertIn("SUMMARY:Science fair", lines)
        self.assertIn("LOCATION:Main hall", lines)
        self.assertIn("DESCRIPTION:Science fair - Main hall", lines)
        self.assertTrue(text.endswith("END:VCALENDAR\r\n"))
        self.assertNotIn("\n", text.replace("\r\n", ""))

    def test_deadline_gets_one_hour_block(self):
        item = make_item("a1", Kind.EXAM, utc(2024, 5, 10, 14, 0))
        lines = build_ics(item, now=NOW).split("\r\n")
        self.assertIn("DTSTART:20240510T140000Z", lines)
        self.assertIn("DTEND:20240510T150000Z", lines)

    def test_text_is_escaped(self):
        self.assertEqual(escape_text("a,b;c\\d\ne"), "a\\,b\\;c\\\\d\\ne")
        item = make_item("a1", title="Quiz; part 1, 2")
        self.assertIn("SUMMARY:Quiz\\; part 1\\, 2", build_ics(item, now=NOW).split("\r\n"))


class TestIcsFilename(unittest.TestCase):
    def test_unsafe_characters_replaced(self):
        self.assertEqual(ics_filename("Field trip: Zoo!"), "Field_trip__Zoo_.ics")

    def test_empty_title(self):
        self.assertEqual(ics_filename(""), "event.ics")


if __name__ == "__main__":
    unittest.main()
