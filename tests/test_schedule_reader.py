from __future__ import annotations

import tempfile
import unittest
from datetime import date
from pathlib import Path

import pandas as pd

from errors import MissingDataError
from schedule_reader import find_service_row, load_schedule_frame, read_service, upcoming_saturday

SCHEDULE_CSV = """Sabbath Schedule 2024,,,,,,,,,
Date,Opening Hymn,Closing Hymn,Scripture Reading,Scripture Reader,Sermon Title,Speaker,Special Music,Intercessory Prayer,Children's Story
05/25/2024,#100 Great Is Thy Faithfulness,#506,John 3:16,Ana,Love,Pastor Lee,Choir,Elder Kim,Ben
06/01/2024,12,462,"Ps 23:1-2, John 10:11",Carl,The Good Shepherd,Pastor Lee,,Elder Kim,
"""


class TestUpcomingSaturday(unittest.TestCase):
    def test_weekday(self) -> None:
        self.assertEqual(upcoming_saturday(date(2024, 5, 29)), date(2024, 6, 1))  # Wednesday

    def test_saturday_is_today(self) -> None:
        self.assertEqual(upcoming_saturday(date(2024, 6, 1)), date(2024, 6, 1))

    def test_sunday(self) -> None:
        self.assertEqual(upcoming_saturday(date(2024, 6, 2)), date(2024, 6, 8))


class TestScheduleReader(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "schedule.csv"
        self.path.write_text(SCHEDULE_CSV, encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_row_for_date(self) -> None:
        svc = read_service(self.path, date(2024, 6, 1))
        self.assertEqual(svc.service_date, "06/01/2024")
        self.assertEqual(svc.opening_hymn_number, "012")
        self.assertEqual(svc.closing_hymn_number, "462")
        self.assertEqual(svc.scripture_reading, "Ps 23:1-2, John 10:11")
        self.assertEqual(svc.reader, "Carl")
        self.assertEqual(svc.sermon_title, "The Good Shepherd")
        self.assertEqual(svc.special_music, "")
        self.assertEqual(svc.story, "")

    def test_hymn_cell_with_title(self) -> None:
        svc = read_service(self.path, date(2024, 5, 25))
        self.assertEqual(svc.opening_hymn_number, "100")
        self.assertEqual(svc.prayer, "Elder Kim")

    def test_no_row_for_date(self) -> None:
        svc = read_service(self.path, date(2024, 7, 6))
        self.assertEqual(svc.service_date, "07/06/2024")
        self.assertIsNone(svc.opening_hymn_number)
        self.assertIsNone(svc.closing_hymn_number)

    def test_unsupported_format(self) -> None:
        for name in ("schedule.ods", "schedule.xls"):
            with self.assertRaises(ValueError):
                load_schedule_frame(Path(self._tmp.name) / name)

    def test_frame_with_datetime_cells(self) -> None:
        frame = pd.DataFrame([
            ["title", None, None],
            ["Date", "Opening Hymn", "Closing Hymn"],
            [pd.Timestamp(2024, 6, 1), 1.0, "#2"],
        ])
        svc = find_service_row(frame, date(2024, 6, 1))
        self.assertEqual((svc.opening_hymn_number, svc.closing_hymn_number), ("001", "002"))


class TestWorkbookSheets(unittest.TestCase):
    def test_sheet_chosen_by_keyword(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "schedule.xlsx"
            with pd.ExcelWriter(path, engine="openpyxl") as writer:
                pd.DataFrame([["x"], ["y"]]).to_excel(writer, sheet_name="Notes", header=False, index=False)
                pd.DataFrame([["Sabbath"], ["Date"]]).to_excel(
                    writer, sheet_name="Sabbath Schedule 2024", header=False, index=False
                )
            frame = load_schedule_frame(path, "Sabbath Schedule")
            self.assertEqual(frame.iloc[1, 0], "Date")

            with self.assertRaises(MissingDataError):
                load_schedule_frame(path, "Potluck")


if __name__ == "__main__":
    unittest.main()
