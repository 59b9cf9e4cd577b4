"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because:
1. The household can read and fix its ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for one household)
- No transactions: dedup is check-then-append and only safe for
  sequential runs
- Limited query capabilities (we filter in Python)

Three worksheets are used:
- Ledger:   one entry per row, ledger order = row order
- Settings: key/value rows (budget, categories, fixed expenses, accounts,
            recipient, advisor message, alert flags)
- AuditLog: append-only audit events
"""

import json
import re
from datetime import date, datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from kakeibo.config import GoogleSheetsSettings
from kakeibo.models.alert import AlertState
from kakeibo.models.audit import AuditEvent, AuditEventType, AuditSeverity
from kakeibo.models.ledger import (
    UNCATEGORIZED,
    UNSET_ACCOUNT,
    Account,
    EntryUpdate,
    FixedExpense,
    FlowType,
    HouseholdSettings,
    LedgerEntry,
    OriginMethod,
    PeriodFilter,
)
from kakeibo.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    NotFoundError,
    SettingsStoreInterface,
    StorageError,
)


# Column mappings for the Ledger sheet
LEDGER_COLUMNS = [
    "date",
    "amount",
    "category",
    "memo",
    "type",
    "method",
    "is_fixed",
    "account",
]

CATEGORY_COLUMN = LEDGER_COLUMNS.index("category") + 1
MEMO_COLUMN = LEDGER_COLUMNS.index("memo") + 1

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

SETTINGS_COLUMNS = ["key", "value"]

# Keys of the Settings sheet
BUDGET_KEY = "Monthly_Budget"
RECIPIENT_KEY = "Line_User_Id"
CATEGORIES_KEY = "Custom_Categories"
FIXED_EXPENSES_KEY = "Fixed_Expenses"
ACCOUNTS_KEY = "Accounts_List"
ADVICE_KEY = "Advice_Message"
ALERT_MONTH_KEY = "Alert_Month"
ALERT_80_KEY = "Alert_80_Sent"
ALERT_100_KEY = "Alert_100_Sent"

# Labels written by older hand-kept sheets
_LEGACY_FLOW_TYPES = {"支出": FlowType.EXPENSE, "収入": FlowType.INCOME}
_LEGACY_ORIGINS = {
    "LINE手入力": OriginMethod.MANUAL,
    "ダッシュボード入力": OriginMethod.DASHBOARD,
    "自動(カード)": OriginMethod.CARD_AUTO,
    "自動(固定費)": OriginMethod.FIXED_AUTO,
}
_LEGACY_SENTINELS = {"未分類": UNCATEGORIZED, "未設定": UNSET_ACCOUNT}


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: GoogleSheetsSettings):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_ledger_sheet(self) -> gspread.Worksheet:
        """Get or create the Ledger worksheet."""
        return self._get_or_create(self._settings.ledger_sheet_name, LEDGER_COLUMNS, 1000)

    def get_settings_sheet(self) -> gspread.Worksheet:
        """Get or create the Settings worksheet."""
        return self._get_or_create(self._settings.settings_sheet_name, SETTINGS_COLUMNS, 50)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        # More rows for audit log
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        value = row[index]
    except IndexError:
        return default
    return str(value).strip() if value not in (None, "") else default


def parse_sheet_date(text: str) -> tuple[date, Optional[datetime]]:
    """
    Parse a Date cell: "2026/02/21", "2026-02-21" or "2026/02/21 09:00:00".

    Returns the calendar day and, when the cell carried a time, the full
    timestamp.
    """
    text = text.strip().replace("-", "/")
    for fmt in ("%Y/%m/%d %H:%M:%S", "%Y/%m/%d %H:%M"):
        try:
            moment = datetime.strptime(text, fmt)
            return moment.date(), moment
        except ValueError:
            continue
    return datetime.strptime(text[:10], "%Y/%m/%d").date(), None


# "Ledger!A5:H5" or "'Ledger'!A5:H5"
_UPDATED_ROW = re.compile(r"!\$?[A-Z]+\$?(\d+)")


def position_from_append(response) -> Optional[int]:
    """Ledger position of the row an append_row response reports, if any."""
    try:
        updated_range = response["updates"]["updatedRange"]
    except (KeyError, TypeError):
        return None
    match = _UPDATED_ROW.search(updated_range or "")
    # Row 1 holds the headers
    return int(match.group(1)) - 1 if match else None


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger.

    Row 1 holds the headers, so the entry at position N lives in row N + 1.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _entry_to_row(self, entry: LedgerEntry) -> list:
        """Convert a LedgerEntry to a spreadsheet row."""
        if entry.entry_time is not None:
            date_cell = entry.timestamp.strftime("%Y/%m/%d %H:%M:%S")
        else:
            date_cell = entry.date_label
        return [
            date_cell,
            entry.amount,
            entry.category,
            entry.memo,
            entry.flow_type.value,
            entry.origin.value,
            str(entry.fixed),
            entry.account,
        ]

    def _row_to_entry(self, row: list, position: int) -> LedgerEntry:
        """Convert a spreadsheet row to a LedgerEntry."""
        entry_date, moment = parse_sheet_date(_safe_get(row, 0))

        flow_text = _safe_get(row, 4, FlowType.EXPENSE.value)
        flow_type = _LEGACY_FLOW_TYPES.get(flow_text) or FlowType(flow_text)

        origin_text = _safe_get(row, 5, OriginMethod.MANUAL.value)
        try:
            origin = OriginMethod(origin_text)
        except ValueError:
            origin = _LEGACY_ORIGINS.get(origin_text, OriginMethod.CARD_AUTO)

        category = _safe_get(row, 2)
        account = _safe_get(row, 7)

        return LedgerEntry(
            entry_date=entry_date,
            entry_time=moment.time() if moment else None,
            amount=int(_safe_get(row, 1).replace(",", "")),
            category=_LEGACY_SENTINELS.get(category, category),
            memo=_safe_get(row, 3),
            flow_type=flow_type,
            origin=origin,
            fixed=_safe_get(row, 6).lower() == "true",
            account=_LEGACY_SENTINELS.get(account, account),
            position=position,
        )

    async def append(self, entry: LedgerEntry) -> int:
        """
        Append an entry and return its position.

        The row is written once and never retried. The position comes from
        the append response; only the fallback lookup is retried.
        """
        try:
            sheet = self._client.get_ledger_sheet()
            response = sheet.append_row(self._entry_to_row(entry), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to append entry: {e}")

        position = position_from_append(response)
        if position is None:
            position = self._last_position(sheet)
        return position

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _last_position(self, sheet: gspread.Worksheet) -> int:
        try:
            # Header row is not an entry
            return len(sheet.col_values(1)) - 1
        except Exception as e:
            raise StorageError(f"Entry appended but its position is unknown: {e}")

    async def read_all(self, period: Optional[PeriodFilter] = None) -> list[LedgerEntry]:
        """Read all entries in row order, skipping malformed rows."""
        try:
            sheet = self._client.get_ledger_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read ledger: {e}")

        entries = []
        for position, row in enumerate(all_rows, start=1):
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                entry = self._row_to_entry(row, position)
            except (ValueError, TypeError):
                continue  # Skip malformed rows

            if period is None or period.contains(entry.entry_date):
                entries.append(entry)

        return entries

    async def update(self, position: int, update: EntryUpdate) -> bool:
        """Overwrite the category and/or memo cells of one row."""
        try:
            sheet = self._client.get_ledger_sheet()
            row_count = len(sheet.col_values(1))
            row_index = position + 1
            if position < 1 or row_index > row_count:
                return False

            if update.category is not None:
                sheet.update_cell(row_index, CATEGORY_COLUMN, update.category)
            if update.memo is not None:
                sheet.update_cell(row_index, MEMO_COLUMN, update.memo)
            return True
        except Exception as e:
            raise StorageError(f"Failed to update entry {position}: {e}")

    async def delete(self, period: PeriodFilter) -> int:
        """Delete every row inside the period, bottom-up so indices stay valid."""
        entries = await self.read_all(period)
        if not entries:
            return 0

        try:
            sheet = self._client.get_ledger_sheet()
            for entry in sorted(entries, key=lambda e: e.position, reverse=True):
                sheet.delete_rows(entry.position + 1)
            return len(entries)
        except Exception as e:
            raise StorageError(f"Failed to delete {period.label}: {e}")


class GoogleSheetsSettingsStore(SettingsStoreInterface):
    """
    Key/value Settings sheet.

    Fixed expenses and accounts are JSON-serialized into a single cell.
    """

    def __init__(self, client: GoogleSheetsClient, default_budget: int = 120000):
        self._client = client
        self._default_budget = default_budget

    def _read_values(self) -> dict[str, str]:
        sheet = self._client.get_settings_sheet()
        values = {}
        for row in sheet.get_all_values()[1:]:
            key = _safe_get(row, 0)
            if key:
                values[key] = _safe_get(row, 1)
        return values

    def _write_values(self, values: dict[str, str]) -> None:
        sheet = self._client.get_settings_sheet()
        rows = sheet.get_all_values()
        index_by_key = {
            _safe_get(row, 0): idx
            for idx, row in enumerate(rows[1:], start=2)
        }
        for key, value in values.items():
            if key in index_by_key:
                sheet.update_cell(index_by_key[key], 2, value)
            else:
                sheet.append_row([key, value], value_input_option="RAW")
                index_by_key[key] = len(rows) + 1
                rows.append([key, value])

    async def load_settings(self) -> HouseholdSettings:
        try:
            values = self._read_values()
        except Exception as e:
            raise StorageError(f"Failed to read settings: {e}")

        budget_text = values.get(BUDGET_KEY, "").replace(",", "")
        budget = int(budget_text) if budget_text.isdigit() and int(budget_text) > 0 else self._default_budget

        fixed_expenses = []
        for item in _load_json_list(values.get(FIXED_EXPENSES_KEY)):
            # Older sheets stored the day of month under "date"
            if "day" not in item and "date" in item:
                item = {**item, "day": item["date"]}
            try:
                fixed_expenses.append(FixedExpense.model_validate(item))
            except ValueError:
                continue

        accounts = []
        for item in _load_json_list(values.get(ACCOUNTS_KEY)):
            try:
                accounts.append(Account.model_validate(item))
            except ValueError:
                continue

        return HouseholdSettings(
            monthly_budget=budget,
            categories=values.get(CATEGORIES_KEY, ""),
            fixed_expenses=fixed_expenses,
            accounts=accounts,
            recipient_id=values.get(RECIPIENT_KEY) or None,
            advice_message=values.get(ADVICE_KEY) or None,
        )

    async def save_settings(self, settings: HouseholdSettings) -> bool:
        values = {
            BUDGET_KEY: str(settings.monthly_budget),
            CATEGORIES_KEY: ",".join(settings.categories),
            FIXED_EXPENSES_KEY: json.dumps(
                [f.model_dump() for f in settings.fixed_expenses], ensure_ascii=False
            ),
            ACCOUNTS_KEY: json.dumps(
                [a.model_dump() for a in settings.accounts], ensure_ascii=False
            ),
        }
        if settings.recipient_id:
            values[RECIPIENT_KEY] = settings.recipient_id
        try:
            self._write_values(values)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save settings: {e}")

    async def load_alert_state(self) -> AlertState:
        try:
            values = self._read_values()
        except Exception as e:
            raise StorageError(f"Failed to read alert state: {e}")
        return AlertState(
            month_key=values.get(ALERT_MONTH_KEY, ""),
            sent80=values.get(ALERT_80_KEY, "").lower() == "true",
            sent100=values.get(ALERT_100_KEY, "").lower() == "true",
        )

    async def save_alert_state(self, state: AlertState) -> bool:
        try:
            self._write_values({
                ALERT_MONTH_KEY: state.month_key,
                ALERT_80_KEY: str(state.sent80),
                ALERT_100_KEY: str(state.sent100),
            })
            return True
        except Exception as e:
            raise StorageError(f"Failed to save alert state: {e}")

    async def save_recipient(self, recipient_id: str) -> bool:
        try:
            self._write_values({RECIPIENT_KEY: recipient_id})
            return True
        except Exception as e:
            raise StorageError(f"Failed to save recipient: {e}")

    async def save_advice(self, message: str) -> bool:
        try:
            self._write_values({ADVICE_KEY: message})
            return True
        except Exception as e:
            raise StorageError(f"Failed to save advice: {e}")


def _load_json_list(text: Optional[str]) -> list[dict]:
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return []
    return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, TypeError):
                    continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
