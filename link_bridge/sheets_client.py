"""Google Sheets API client used as the tabular store."""

import json
import logging
import os
from typing import Any, List, Optional

import google.auth
from google.auth.exceptions import DefaultCredentialsError
from google.oauth2 import service_account
from googleapiclient.discovery import build

from .config_manager import BridgeConfig
from .utils.exceptions import ConfigurationError, TableStoreError, WriteError
from .utils.sheets_error_handler import SheetsErrorHandler, safe_sheets_operation

logger = logging.getLogger(__name__)

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def load_service_account_credentials(creds_path: str):
    """Load service-account (JWT) credentials from a JSON key file."""
    if not os.path.exists(creds_path):
        raise ConfigurationError(
            f"Google creds file not found at {creds_path}",
            error_code="missing_credentials",
        )

    try:
        with open(creds_path, "r", encoding="utf-8") as f:
            info = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Google creds file at {creds_path} is not valid JSON: {e}",
            error_code="invalid_credentials",
        )

    if not info.get("client_email") or not info.get("private_key"):
        raise ConfigurationError(
            f"Google creds file at {creds_path} lacks client_email or private_key",
            error_code="invalid_credentials",
        )

    return service_account.Credentials.from_service_account_info(
        info, scopes=SHEETS_SCOPES
    )


def load_default_credentials():
    """Load application-default credentials (metadata server, gcloud, env)."""
    try:
        credentials, _project = google.auth.default(scopes=SHEETS_SCOPES)
    except DefaultCredentialsError as e:
        raise ConfigurationError(
            f"Google application default credentials unavailable: {e}",
            error_code="missing_credentials",
        )
    return credentials


class SheetsClient:
    """Thin read/write wrapper over ``spreadsheets.values``.

    Every call is a single blocking round trip without retry.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        service: Any = None,
        credentials: Any = None,
        error_handler: Optional[SheetsErrorHandler] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self._credentials = credentials
        self._service = service
        self.error_handler = error_handler or SheetsErrorHandler()

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "SheetsClient":
        """Create a client with the credential variant selected by configuration."""
        config.require("sheet_id")
        if config.google_auth_mode == "default":
            credentials = load_default_credentials()
        else:
            credentials = load_service_account_credentials(config.google_creds_path)
        return cls(config.sheet_id, credentials=credentials)

    @property
    def service(self) -> Any:
        """Lazily built Sheets v4 service."""
        if self._service is None:
            self._service = build(
                "sheets", "v4", credentials=self._credentials, cache_discovery=False
            )
        return self._service

    def read_range(self, range_name: str) -> List[List[Any]]:
        """Read a range; trailing empty rows and cells are omitted by the API."""
        with safe_sheets_operation(
            "read_range",
            self.error_handler,
            TableStoreError,
            {"range": range_name},
        ):
            response = (
                self.service.spreadsheets()
                .values()
                .get(spreadsheetId=self.spreadsheet_id, range=range_name)
                .execute()
            )

        values = response.get("values") or []
        logger.debug(f"Read {len(values)} rows from {range_name}")
        return values

    def write_range(self, range_name: str, values: List[List[Any]]) -> dict:
        """Write raw values to a range."""
        with safe_sheets_operation(
            "write_range",
            self.error_handler,
            WriteError,
            {"range": range_name},
        ):
            response = (
                self.service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=self.spreadsheet_id,
                    range=range_name,
                    valueInputOption="RAW",
                    body={"values": values},
                )
                .execute()
            )

        logger.debug(f"Wrote {len(values)} rows to {range_name}")
        return response or {}
