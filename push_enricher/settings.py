"""Settings stores shared between the application and the notification service."""

import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from .config import SettingsConfig
from .errors import SettingsError

logger = logging.getLogger(__name__)


class SettingsStore(ABC):
    """Abstract key/value store persisted outside the process."""

    def __init__(self, refresh_token_key: str = "refreshToken"):
        self.refresh_token_key = refresh_token_key

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Get a setting value.

        Args:
            key: Setting key.

        Returns:
            The stored value, or None if not found.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    def get_refresh_token(self) -> Optional[str]:
        return self.get(self.refresh_token_key)

    def save_refresh_token(self, token: str) -> None:
        """Store the offline refresh token handed over by the application."""
        if not token or not token.strip():
            raise ValueError("Refresh token must not be empty")
        self.set(self.refresh_token_key, token.strip())
        logger.info(f"Stored refresh token under '{self.refresh_token_key}'")

    def clear_refresh_token(self) -> None:
        """Forget the refresh token, e.g. on logout."""
        self.delete(self.refresh_token_key)
        logger.info(f"Cleared refresh token under '{self.refresh_token_key}'")


class SQLiteSettingsStore(SettingsStore):
    """Settings kept in a SQLite file both processes can open."""

    def __init__(self, db_path: str, refresh_token_key: str = "refreshToken"):
        super().__init__(refresh_token_key)
        self.db_path = db_path
        try:
            conn = self._connect()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS settings (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SettingsError(f"could not open settings database {db_path}: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        # Every call opens its own connection so writes from the application
        # are visible immediately.
        return sqlite3.connect(self.db_path)

    def get(self, key: str) -> Optional[str]:
        try:
            conn = self._connect()
            try:
                row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SettingsError(f"could not read setting '{key}': {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    (key, value)
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SettingsError(f"could not write setting '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("DELETE FROM settings WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SettingsError(f"could not delete setting '{key}': {e}") from e


class DynamoDBSettingsStore(SettingsStore):
    """Settings kept in a DynamoDB table keyed by ``key``."""

    def __init__(self, table_name: str, refresh_token_key: str = "refreshToken", table=None):
        super().__init__(refresh_token_key)
        self.table_name = table_name
        self.table = table if table is not None else boto3.resource('dynamodb').Table(table_name)

    def get(self, key: str) -> Optional[str]:
        try:
            response = self.table.get_item(Key={'key': key})
        except ClientError as e:
            logger.error(f"DynamoDB error reading '{key}' from {self.table_name}: {e}")
            raise SettingsError(f"could not read setting '{key}': {e}") from e
        if 'Item' not in response:
            return None
        return response['Item'].get('value')

    def set(self, key: str, value: str) -> None:
        try:
            self.table.put_item(Item={'key': key, 'value': value})
        except ClientError as e:
            logger.error(f"DynamoDB error writing '{key}' to {self.table_name}: {e}")
            raise SettingsError(f"could not write setting '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.table.delete_item(Key={'key': key})
        except ClientError as e:
            logger.error(f"DynamoDB error deleting '{key}' from {self.table_name}: {e}")
            raise SettingsError(f"could not delete setting '{key}': {e}") from e


def create_settings_store(config: SettingsConfig) -> SettingsStore:
    """Create a settings store based on configuration."""
    if config.backend == "dynamodb":
        return DynamoDBSettingsStore(config.table_name, config.refresh_token_key)
    else:
        return SQLiteSettingsStore(config.db_path, config.refresh_token_key)
