"""Tests for the Google Sheets backend's row mapping and writes, with a fake worksheet."""

import asyncio
import datetime as dt

import pytest

from tabungan.models.transaction import Category, NewTransaction, TransactionUpdate
from tabungan.services.storage import NotFoundError, StorageError
from tabungan.services.storage.google_sheets import (
    TRANSACTION_COLUMNS,
    GoogleSheetsTransactionStorage,
    row_to_record,
    transaction_to_row,
)


class FakeWorksheet:
    def __init__(self, rows):
        self.rows = [list(TRANSACTION_COLUMNS)] + [list(row) for row in rows]
        self.updates = []
        self.fail_writes = False

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def update(self, range_name=None, values=None, value_input_option=None):
        self.updates.append((range_name, value_input_option))
        if self.fail_writes:
            raise RuntimeError("quota exceeded")
        row_idx = int(range_name.split(":")[0][1:])
        self.rows[row_idx - 1] = list(values[0])


class FakeSheetsClient:
    def __init__(self, worksheet):
        self.worksheet = worksheet

    def get_transactions_sheet(self):
        return self.worksheet


def _row(record_id, category="rumah", amount="1000", date="2025-10-03", active="TRUE"):
    return [record_id, category, amount, "", date, active, "", ""]


class TestRowMapping:
    """Tests for sheet row conversion."""

    def test_row_to_record(self):
        record = row_to_record(_row("3", "anak", "-5000"))
        assert record.id == "3"
        assert record.category is Category.CHILD
        assert record.amount == -5000
        assert record.note is None

    def test_short_row_defaults_to_active(self):
        record = row_to_record(["1", "holiday", "10", "Bali", "2025-01-01"])
        assert record.active is True

    def test_transaction_to_row(self):
        tx = NewTransaction(category=Category.HOUSING, amount=-200000, date=dt.date(2025, 9, 1))
        now = dt.datetime(2025, 9, 1, 8, 0)
        row = transaction_to_row("7", tx, now)
        assert row[:6] == ["7", "rumah", "-200000", "", "2025-09-01", "TRUE"]


class TestGoogleSheetsTransactionStorage:
    """Tests for filtering, ids and cell writes."""

    @pytest.fixture
    def sheet(self):
        return FakeWorksheet([
            _row("1", date="2025-01-01"),
            _row("2", category="anak", date="2025-03-01"),
            _row("3", date="2025-02-01", active="FALSE"),
            _row("4", category="mobil"),
        ])

    @pytest.fixture
    def storage(self, sheet):
        return GoogleSheetsTransactionStorage(FakeSheetsClient(sheet))

    def test_fetch_all_skips_inactive_and_malformed(self, storage):
        records = asyncio.run(storage.fetch_all())
        assert [r.id for r in records] == ["2", "1"]

    def test_fetch_by_category(self, storage):
        records = asyncio.run(storage.fetch_by_category(Category.HOUSING))
        assert [r.id for r in records] == ["1"]

    def test_insert_uses_next_id(self, storage, sheet):
        tx = NewTransaction(category=Category.HOLIDAY, amount=5, date=dt.date(2025, 4, 1))
        assert asyncio.run(storage.insert(tx)) == "5"
        assert sheet.rows[-1][1] == "holiday"

    def test_update_writes_cells(self, storage, sheet):
        asyncio.run(storage.update("1", TransactionUpdate(amount=-750, note="Listrik")))
        assert sheet.rows[1][2] == "-750"
        assert sheet.rows[1][3] == "Listrik"
        assert sheet.rows[1][7] != ""

    def test_soft_delete(self, storage, sheet):
        asyncio.run(storage.soft_delete("2"))
        assert sheet.rows[2][5] == "FALSE"

    def test_unknown_id(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.soft_delete("99"))

    def test_update_is_one_raw_row_write(self, storage, sheet):
        asyncio.run(storage.update("1", TransactionUpdate(amount=5, note="=1+1")))
        assert sheet.updates == [("A2:H2", "RAW")]
        assert sheet.rows[1][3] == "=1+1"

    def test_leading_zero_note_is_kept(self, storage, sheet):
        asyncio.run(storage.update("1", TransactionUpdate(note="007")))
        assert sheet.rows[1][3] == "007"

    def test_soft_delete_is_one_raw_row_write(self, storage, sheet):
        asyncio.run(storage.soft_delete("2"))
        assert sheet.updates == [("A3:H3", "RAW")]

    def test_failed_write_leaves_row_unchanged(self, storage, sheet):
        before = list(sheet.rows[1])
        sheet.fail_writes = True
        with pytest.raises(StorageError):
            asyncio.run(storage.update("1", TransactionUpdate(amount=-1, note="x")))
        assert sheet.rows[1] == before

    def test_short_row_is_padded(self, sheet):
        sheet.rows.append(["9", "holiday", "10", "", "2025-05-01"])
        storage = GoogleSheetsTransactionStorage(FakeSheetsClient(sheet))
        asyncio.run(storage.soft_delete("9"))
        assert len(sheet.rows[-1]) == len(TRANSACTION_COLUMNS)
        assert sheet.rows[-1][5] == "FALSE"
