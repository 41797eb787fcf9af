"""Unit tests for the Google Sheets client and its error handling."""

import json
from unittest.mock import MagicMock, Mock, patch

import httplib2
import pytest
import requests
from googleapiclient.errors import HttpError

from link_bridge.config_manager import BridgeConfig
from link_bridge.sheets_client import SheetsClient, load_service_account_credentials
from link_bridge.utils.exceptions import ConfigurationError, TableStoreError, WriteError
from link_bridge.utils.sheets_error_handler import SheetsErrorHandler, safe_sheets_operation


def http_error(status: int) -> HttpError:
    resp = httplib2.Response({"status": status})
    return HttpError(resp, b'{"error": {"message": "failure"}}')


class TestSheetsClient:
    """Test cases for SheetsClient."""

    def setup_method(self):
        self.service = MagicMock()
        self.values = self.service.spreadsheets.return_value.values.return_value
        self.client = SheetsClient("sheet-id", service=self.service)

    def test_read_range(self):
        self.values.get.return_value.execute.return_value = {
            "range": "'Stats'!A1:Z1",
            "values": [["Nickname", "Discord ID"]],
        }

        rows = self.client.read_range("'Stats'!A1:Z1")

        assert rows == [["Nickname", "Discord ID"]]
        self.values.get.assert_called_once_with(
            spreadsheetId="sheet-id", range="'Stats'!A1:Z1"
        )

    def test_read_empty_range(self):
        self.values.get.return_value.execute.return_value = {"range": "'Stats'!A2:Z1000"}

        assert self.client.read_range("'Stats'!A2:Z1000") == []

    def test_write_range_raw(self):
        self.values.update.return_value.execute.return_value = {"updatedCells": 1}

        self.client.write_range("'Stats'!C2", [["999"]])

        self.values.update.assert_called_once_with(
            spreadsheetId="sheet-id",
            range="'Stats'!C2",
            valueInputOption="RAW",
            body={"values": [["999"]]},
        )

    def test_read_http_error_becomes_table_store_error(self):
        self.values.get.return_value.execute.side_effect = http_error(403)

        with pytest.raises(TableStoreError) as exc_info:
            self.client.read_range("'Stats'!A1:Z1")
        assert not isinstance(exc_info.value, WriteError)
        assert exc_info.value.error_code == "permission"

    def test_write_http_error_becomes_write_error(self):
        self.values.update.return_value.execute.side_effect = http_error(503)

        with pytest.raises(WriteError):
            self.client.write_range("'Stats'!C2", [["999"]])

    def test_from_config_requires_sheet_id(self):
        with pytest.raises(ConfigurationError, match="GOOGLE_SHEET_ID"):
            SheetsClient.from_config(BridgeConfig(sheet_id=""))

    @patch("link_bridge.sheets_client.load_service_account_credentials")
    def test_from_config_jwt(self, mock_load):
        mock_load.return_value = "creds"
        config = BridgeConfig(sheet_id="sheet-id", google_creds_path="/tmp/creds.json")

        client = SheetsClient.from_config(config)

        mock_load.assert_called_once_with("/tmp/creds.json")
        assert client.spreadsheet_id == "sheet-id"

    @patch("link_bridge.sheets_client.load_default_credentials")
    def test_from_config_default_credentials(self, mock_load):
        mock_load.return_value = "adc"
        config = BridgeConfig(sheet_id="sheet-id", google_auth_mode="default")

        SheetsClient.from_config(config)

        mock_load.assert_called_once_with()

    @patch("link_bridge.sheets_client.build")
    def test_service_built_lazily(self, mock_build):
        client = SheetsClient("sheet-id", credentials="creds")
        mock_build.assert_not_called()

        _ = client.service
        _ = client.service

        mock_build.assert_called_once_with(
            "sheets", "v4", credentials="creds", cache_discovery=False
        )


class TestServiceAccountCredentials:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_service_account_credentials(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "creds.json"
        path.write_text("{ not json")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_service_account_credentials(str(path))

    def test_missing_fields(self, tmp_path):
        path = tmp_path / "creds.json"
        path.write_text(json.dumps({"type": "service_account"}))

        with pytest.raises(ConfigurationError, match="client_email"):
            load_service_account_credentials(str(path))

    @patch("link_bridge.sheets_client.service_account.Credentials.from_service_account_info")
    def test_valid_file(self, mock_from_info, tmp_path):
        info = {"client_email": "bot@example.iam.gserviceaccount.com", "private_key": "key"}
        path = tmp_path / "creds.json"
        path.write_text(json.dumps(info))

        load_service_account_credentials(str(path))

        mock_from_info.assert_called_once_with(
            info, scopes=["https://www.googleapis.com/auth/spreadsheets"]
        )


class TestSheetsErrorHandler:
    def setup_method(self):
        self.handler = SheetsErrorHandler()

    @pytest.mark.parametrize("status,retryable", [(429, True), (503, True), (400, False), (403, False)])
    def test_http_error_retryable(self, status, retryable):
        assert self.handler.is_retryable_error(http_error(status)) is retryable

    def test_categorize_bad_range(self):
        info = self.handler.categorize_error(http_error(400))
        assert info["category"] == "bad_range"
        assert info["status_code"] == 400

    def test_network_errors(self):
        error = requests.exceptions.ConnectionError("down")
        assert self.handler.is_retryable_error(error) is True
        assert self.handler.categorize_error(TimeoutError("slow"))["category"] == "network"

    def test_safe_operation_passes_bridge_errors_through(self):
        original = ConfigurationError("bad config")
        with pytest.raises(ConfigurationError) as exc_info:
            with safe_sheets_operation("read_range"):
                raise original
        assert exc_info.value is original

    def test_safe_operation_wraps_other_errors(self):
        with pytest.raises(WriteError) as exc_info:
            with safe_sheets_operation("write_range", error_class=WriteError):
                raise ValueError("boom")
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_safe_operation_logs_errors(self):
        handler = Mock(wraps=SheetsErrorHandler())
        with pytest.raises(TableStoreError):
            with safe_sheets_operation("read_range", handler, context={"range": "A1"}):
                raise http_error(500)
        assert handler.handle_error.call_args[0][1] == "read_range"
