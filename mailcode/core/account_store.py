"""
Account Store - JSON persistence for accounts and browser sessions

Files live under the data directory:
- accounts.json: list of accounts (camelCase keys)
- sessions.json: list of browser session records

A missing file reads as an empty list. Every change rewrites the whole
file as pretty-printed JSON.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, List

from mailcode.core.errors import StorageError
from mailcode.models.account import Account, BrowserSession

logger = logging.getLogger(__name__)

ACCOUNTS_FILE = "accounts.json"
SESSIONS_FILE = "sessions.json"


class JsonStorage:
    """Reads and writes JSON documents in one directory"""

    def __init__(self, data_dir: str = "data"):
        """
        Initialize JSON storage

        Args:
            data_dir: Directory holding the JSON files
        """
        self.data_dir = Path(data_dir)

    def path_for(self, filename: str) -> Path:
        return self.data_dir / filename

    def load(self, filename: str, default: Any = None) -> Any:
        """
        Load a JSON document

        Args:
            filename: File name inside data_dir
            default: Value returned when the file does not exist

        Returns:
            Parsed JSON, or default

        Raises:
            StorageError: If the file is unreadable or not valid JSON
        """
        path = self.path_for(filename)
        if not path.exists():
            return default

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def save(self, filename: str, data: Any) -> None:
        """
        Write a JSON document, creating data_dir if needed

        Raises:
            StorageError: If the file cannot be written
        """
        path = self.path_for(filename)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

        logger.debug(f"📝 Saved {path}")


class AccountStore:
    """Account and browser session CRUD over JsonStorage"""

    def __init__(self, storage: JsonStorage):
        self.storage = storage
        self._lock = threading.Lock()

    def _load_accounts(self) -> List[Account]:
        data = self.storage.load(ACCOUNTS_FILE, default=[])
        accounts = []
        for idx, item in enumerate(data):
            try:
                accounts.append(Account.from_dict(item))
            except (ValueError, TypeError) as e:
                raise StorageError(f"Invalid account #{idx + 1} in {ACCOUNTS_FILE}: {e}") from e
        return accounts

    def _save_accounts(self, accounts: List[Account]) -> None:
        self.storage.save(ACCOUNTS_FILE, [account.to_dict() for account in accounts])

    def list_accounts(self) -> List[Account]:
        """Return all stored accounts"""
        with self._lock:
            return self._load_accounts()

    def save_account(self, account: Account) -> None:
        """Insert or replace an account by id"""
        with self._lock:
            accounts = self._load_accounts()
            for idx, existing in enumerate(accounts):
                if existing.id == account.id:
                    accounts[idx] = account
                    logger.info(f"Updated account {account.email}")
                    break
            else:
                accounts.append(account)
                logger.info(f"✅ Added account {account.email}")
            self._save_accounts(accounts)

    def delete_account(self, account_id: str) -> bool:
        """
        Delete an account

        Returns:
            bool: True if an account was removed
        """
        with self._lock:
            accounts = self._load_accounts()
            remaining = [a for a in accounts if a.id != account_id]
            removed = len(remaining) < len(accounts)
            if removed:
                self._save_accounts(remaining)

        if removed:
            logger.info(f"🗑️ Deleted account {account_id}")
        return removed

    def update_last_login(self, account_id: str) -> bool:
        """
        Set an account's last login time to now

        Returns:
            bool: True if the account exists
        """
        with self._lock:
            accounts = self._load_accounts()
            found = False
            for account in accounts:
                if account.id == account_id:
                    account.mark_logged_in()
                    found = True
            if found:
                self._save_accounts(accounts)
        return found

    def _load_sessions(self) -> List[BrowserSession]:
        try:
            return [
                BrowserSession.from_dict(item)
                for item in self.storage.load(SESSIONS_FILE, default=[])
            ]
        except (ValueError, TypeError) as e:
            raise StorageError(f"Invalid session in {SESSIONS_FILE}: {e}") from e

    def list_sessions(self) -> List[BrowserSession]:
        with self._lock:
            return self._load_sessions()

    def save_browser_session(self, account_id: str) -> BrowserSession:
        """Record a fresh browser session, replacing the account's previous one"""
        with self._lock:
            sessions = [s for s in self._load_sessions() if s.account_id != account_id]
            session = BrowserSession(account_id=account_id)
            sessions.append(session)
            self.storage.save(SESSIONS_FILE, [s.to_dict() for s in sessions])
        return session
