"""
Account Model - Stored login credentials and their mailbox settings

Represents a single user account with:
- Login credentials for the target site
- Mailbox credentials used by the verification code receiver
- Last login tracking

Accounts are persisted as JSON with camelCase keys so the UI can read
the file layout directly.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class Account:
    """Stored account with mailbox settings"""

    def __init__(
        self,
        id: str,
        email: str,
        password: str,
        email_password: str,
        smtp_server: str,
        smtp_port: int,
        last_login_time: Optional[str] = None,
    ):
        """
        Initialize Account

        Args:
            id: Account identifier chosen by the UI
            email: Login email (also the mailbox user)
            password: Login password for the target site
            email_password: Mailbox password
            smtp_server: Mail server host used for code retrieval
            smtp_port: Mail server port (POP3 over SSL/TLS, usually 995)
            last_login_time: Last login timestamp (RFC 3339)
        """
        self.id = id
        self.email = email
        self.password = password
        self.email_password = email_password
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.last_login_time = last_login_time

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        """
        Create Account from its JSON representation

        Args:
            data: Account dictionary with camelCase keys

        Returns:
            Account: Account instance

        Raises:
            ValueError: If required fields are missing
        """
        required_fields = [
            "id",
            "email",
            "password",
            "emailPassword",
            "smtpServer",
            "smtpPort",
        ]

        missing_fields = [field for field in required_fields if field not in data]
        if missing_fields:
            raise ValueError(f"Missing required fields: {', '.join(missing_fields)}")

        return cls(
            id=data["id"],
            email=data["email"],
            password=data["password"],
            email_password=data["emailPassword"],
            smtp_server=data["smtpServer"],
            smtp_port=int(data["smtpPort"]),
            last_login_time=data.get("lastLoginTime"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON representation (camelCase keys)"""
        data = {
            "id": self.id,
            "email": self.email,
            "password": self.password,
            "emailPassword": self.email_password,
            "smtpServer": self.smtp_server,
            "smtpPort": self.smtp_port,
        }
        if self.last_login_time:
            data["lastLoginTime"] = self.last_login_time
        return data

    def mark_logged_in(self, now: Optional[datetime] = None) -> None:
        """Set last_login_time to now (UTC, RFC 3339)"""
        now = now or datetime.now(timezone.utc)
        self.last_login_time = now.isoformat()


class BrowserSession:
    """Browser session record for an account"""

    def __init__(
        self,
        account_id: str,
        cookies: Optional[str] = None,
        local_storage: Optional[str] = None,
    ):
        self.account_id = account_id
        self.cookies = cookies
        self.local_storage = local_storage

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrowserSession":
        if "accountId" not in data:
            raise ValueError("Missing required fields: accountId")
        return cls(
            account_id=data["accountId"],
            cookies=data.get("cookies"),
            local_storage=data.get("localStorage"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accountId": self.account_id,
            "cookies": self.cookies,
            "localStorage": self.local_storage,
        }
