"""
=============================================================================
USER STORE - Per-user persistence for appliances, settings and saved bills
=============================================================================
Everything a user owns is kept as one JSON document under the key
"powerpredict_user_<email>":

    {
        "appliances": [...],
        "billSettings": {...},
        "savedBills": [...]
    }

The signed-in user is remembered under "powerpredict_current_user".

Documents live in a key-value backend:
- LocalFileBackend: a JSON file on disk (default, no AWS needed)
- DynamoDBService: a DynamoDB table (USE_DYNAMODB=true)

Store operations never raise on storage problems. Failures are logged
and reported as False / None / [] so callers can carry on.
=============================================================================
"""

import json
import logging
import os
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from backend.lib.bill_core.aggregate import bill_statistics
from backend.lib.bill_core.models import Appliance, BillSettings, SavedBill, User, UserData

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "powerpredict_"
CURRENT_USER_KEY = f"{STORAGE_PREFIX}current_user"
EXPORT_VERSION = "2.0"

# AWS and disk failures, corrupt JSON and malformed documents
STORE_ERRORS = (BotoCoreError, ClientError, OSError, ValueError, KeyError, TypeError)


class KeyValueBackend:
    """String-to-string storage used by UserStore."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class LocalFileBackend(KeyValueBackend):
    """
    Keeps every key in a single JSON object on disk.
    The file is read and rewritten on each call.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _dump(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)


def backend_from_env() -> KeyValueBackend:
    """
    DynamoDB when USE_DYNAMODB=true and the table is reachable,
    otherwise a local file under DATA_DIR.
    """
    if os.getenv("USE_DYNAMODB", "false").lower() == "true":
        try:
            from backend.lib.dynamodb_service import DynamoDBService
            service = DynamoDBService()
            if service.create_table_if_not_exists():
                logger.info("DynamoDB storage enabled")
                return service
        except (BotoCoreError, ClientError) as e:
            logger.warning("DynamoDB initialization failed: %s. Using local storage.", e)

    data_dir = Path(os.getenv("DATA_DIR", "backend/data"))
    logger.info("Using local storage in %s", data_dir)
    return LocalFileBackend(data_dir / "users.json")


def user_key(email: str) -> str:
    return f"{STORAGE_PREFIX}user_{email}"


class UserStore:
    def __init__(self, backend: KeyValueBackend, clock: Callable[[], datetime] = datetime.now):
        self.backend = backend
        self.clock = clock

    # ------------------------------------------------------------------
    # raw document access
    # ------------------------------------------------------------------

    def get_user_data(self, email: str) -> Optional[UserData]:
        """None when the user has no data yet or it cannot be read."""
        try:
            raw = self.backend.get(user_key(email))
            if raw is None:
                return None
            return UserData.from_dict(json.loads(raw))
        except STORE_ERRORS as e:
            logger.error("Error reading user data for %s: %s", email, e)
            return None

    def _write(self, email: str, data: UserData) -> bool:
        try:
            self.backend.set(user_key(email), json.dumps(data.to_dict()))
            return True
        except STORE_ERRORS as e:
            logger.error("Error saving user data for %s: %s", email, e)
            return False

    def _existing(self, email: str) -> UserData:
        return self.get_user_data(email) or UserData()

    # ------------------------------------------------------------------
    # appliances and settings
    # ------------------------------------------------------------------

    def save_appliances(self, email: str, appliances: List[Appliance]) -> bool:
        data = self._existing(email)
        data.appliances = list(appliances)
        return self._write(email, data)

    def save_bill_settings(self, email: str, settings: BillSettings) -> bool:
        data = self._existing(email)
        data.bill_settings = settings
        return self._write(email, data)

    # ------------------------------------------------------------------
    # saved bills
    # ------------------------------------------------------------------

    def save_bill(self, email: str, bill: SavedBill) -> bool:
        """Newest bills first."""
        data = self._existing(email)
        data.saved_bills = [bill] + data.saved_bills
        return self._write(email, data)

    def get_bills(self, email: str) -> List[SavedBill]:
        data = self.get_user_data(email)
        return data.saved_bills if data else []

    def get_bill(self, email: str, bill_id: str) -> Optional[SavedBill]:
        for bill in self.get_bills(email):
            if bill.id == bill_id:
                return bill
        return None

    def delete_bill(self, email: str, bill_id: str) -> bool:
        data = self.get_user_data(email)
        if data is None:
            return False
        data.saved_bills = [b for b in data.saved_bills if b.id != bill_id]
        return self._write(email, data)

    def update_bill(self, email: str, bill_id: str, updated: SavedBill) -> bool:
        """Replace the bill with the given id, stamping updated_at."""
        data = self.get_user_data(email)
        if data is None:
            return False
        if not any(b.id == bill_id for b in data.saved_bills):
            return False
        now = self.clock()
        data.saved_bills = [
            replace(updated, updated_at=now) if b.id == bill_id else b
            for b in data.saved_bills
        ]
        return self._write(email, data)

    def bill_statistics(self, email: str) -> Dict:
        return bill_statistics(self.get_bills(email))

    # ------------------------------------------------------------------
    # import / export
    # ------------------------------------------------------------------

    def export_user_data(self, email: str) -> Optional[str]:
        data = self.get_user_data(email)
        if data is None:
            return None
        document = data.to_dict()
        document["exportDate"] = self.clock().isoformat()
        document["version"] = EXPORT_VERSION
        return json.dumps(document, indent=2)

    def import_user_data(self, email: str, json_text: str) -> bool:
        """
        Replace the user's data with an exported document.
        The document needs at least "appliances" and "billSettings";
        "savedBills" defaults to an empty list.
        """
        try:
            document = json.loads(json_text)
            if not isinstance(document, dict):
                return False
            if document.get("appliances") is None or document.get("billSettings") is None:
                return False
            data = UserData.from_dict(document)
        except STORE_ERRORS as e:
            logger.warning("Error importing user data for %s: %s", email, e)
            return False
        return self._write(email, data)

    # ------------------------------------------------------------------
    # session
    # ------------------------------------------------------------------

    def set_current_user(self, user: User) -> bool:
        try:
            self.backend.set(CURRENT_USER_KEY, json.dumps(user.to_dict()))
            return True
        except STORE_ERRORS as e:
            logger.error("Error saving user session: %s", e)
            return False

    def get_current_user(self) -> Optional[User]:
        try:
            raw = self.backend.get(CURRENT_USER_KEY)
            return User.from_dict(json.loads(raw)) if raw else None
        except STORE_ERRORS as e:
            logger.error("Error reading user session: %s", e)
            return None

    def clear_current_user(self) -> bool:
        try:
            self.backend.delete(CURRENT_USER_KEY)
            return True
        except STORE_ERRORS as e:
            logger.error("Error clearing user session: %s", e)
            return False
