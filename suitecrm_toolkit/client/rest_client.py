"""
SuiteCRM REST client.

Speaks the v4_1 REST dialect: every call is a form POST carrying a method
name and a JSON-encoded ``rest_data`` payload. The client owns the session
token and maps transport and protocol failures onto the toolkit's error
taxonomy.
"""

import base64
import hashlib
import json
import logging
from typing import Any, Mapping

from ..core.errors import (
    AuthenticationError,
    CRMConnectionError,
    ProtocolError,
    RecordNotFoundError,
)
from ..core.models import CRMConfig
from ..core.query import build_search_query
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

APPLICATION_NAME = "suitecrm_toolkit"

# Fault numbers SuiteCRM returns in place of a result
INVALID_LOGIN = 10
INVALID_SESSION = 11


def encode_name_value_list(data: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Encode a record as the ordered ``[{name, value}, ...]`` wire form."""
    return [{"name": name, "value": value} for name, value in data.items()]


def decode_name_value_list(values: Any) -> dict[str, Any]:
    """
    Flatten a wire name/value list into a plain dict.

    SuiteCRM sends either a JSON object keyed by field name or a list of
    pairs depending on the call; both decode the same way.
    """
    if not values:
        return {}
    pairs = values.values() if isinstance(values, dict) else values
    record = {}
    for pair in pairs:
        if isinstance(pair, dict) and "name" in pair:
            record[pair["name"]] = pair.get("value")
    return record


def parse_entry_list(entries: Any) -> list[dict[str, Any]]:
    """Convert an ``entry_list`` into a list of flat records."""
    if not entries:
        return []
    if isinstance(entries, dict):
        entries = list(entries.values())
    return [decode_name_value_list(entry.get("name_value_list")) for entry in entries]


def _is_fault(envelope: dict[str, Any]) -> bool:
    return "number" in envelope and "name" in envelope and "description" in envelope


class SuiteCRMClient:
    """
    Session-holding client for the SuiteCRM v4_1 REST API.

    Lifecycle:
    - Unauthenticated until ``login()`` succeeds
    - Every data call requires a session and fails before any network
      call when there is none
    - ``logout()`` (or an invalid-session fault) returns to unauthenticated
    """

    def __init__(self, config: CRMConfig, transport: Transport | None = None):
        """
        Initialize the client.

        Args:
            config: Connection settings
            transport: Optional transport (an HttpTransport is created if None)
        """
        self.config = config

        # Track if we own the transport (for cleanup)
        self._owns_transport = transport is None

        if transport is None:
            self.transport = HttpTransport(
                timeout=config.timeout,
                ssl_verify=config.ssl_verify,
            )
        else:
            self.transport = transport

        self.session_id: str | None = None
        self.user_id: str | None = None
        self.last_response: dict[str, Any] | None = None

    def close(self) -> None:
        """Log out and close the transport if we created it."""
        self.logout()
        if self._owns_transport:
            self.transport.close()

    def __enter__(self):
        """Context manager support."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager cleanup."""
        self.close()
        return False

    # ===== SESSION METHODS =====

    def is_authenticated(self) -> bool:
        """True while the client holds a session token."""
        return bool(self.session_id)

    def login(self, username: str | None = None, password: str | None = None) -> bool:
        """
        Authenticate and store the session token.

        Args:
            username: Defaults to the configured username
            password: Defaults to the configured password

        Returns:
            True on success

        Raises:
            AuthenticationError: On any failure, carrying the raw response
        """
        username = username or self.config.username
        password = password or self.config.password

        self.session_id = None
        self.user_id = None

        payload = {
            "user_auth": {
                "user_name": username,
                "password": hashlib.md5(password.encode("utf-8")).hexdigest(),
                "version": "1",
            },
            "application_name": APPLICATION_NAME,
            "name_value_list": [],
        }

        try:
            response = self._request("login", payload)
        except AuthenticationError:
            raise
        except ProtocolError as e:
            raise AuthenticationError(
                f"Authentication failed: {e}", response=self.last_response
            ) from e

        if not response.get("id"):
            raise AuthenticationError(
                "Authentication failed: Invalid credentials or response",
                response=self.last_response,
            )

        self.session_id = response["id"]
        self.user_id = decode_name_value_list(response.get("name_value_list")).get("user_id")
        logger.info(f"Logged in to {self.config.url} as '{username}'")
        return True

    def logout(self) -> bool:
        """
        End the session.

        Best effort: the local session is cleared whatever the server says,
        and nothing is raised.

        Returns:
            True if the server accepted the logout or there was no session
        """
        if not self.is_authenticated():
            return True

        try:
            self._request("logout", {"session": self.session_id})
            succeeded = True
        except ProtocolError as e:
            logger.debug(f"Logout request failed: {e}")
            succeeded = False

        self.session_id = None
        self.user_id = None
        logger.info(f"Logged out of {self.config.url}")
        return succeeded

    def _ensure_authenticated(self) -> None:
        if not self.is_authenticated():
            raise AuthenticationError("Not authenticated. Please login first.")

    # ===== RECORD METHODS =====

    def create_record(self, module: str, data: Mapping[str, Any]) -> str:
        """
        Create a record.

        Returns:
            The new record's id

        Raises:
            AuthenticationError: If not logged in
            ProtocolError: If the server does not return an id
        """
        self._ensure_authenticated()

        response = self._request("set_entry", {
            "session": self.session_id,
            "module_name": module,
            "name_value_list": encode_name_value_list(data),
        }, module=module)

        if not response.get("id"):
            raise ProtocolError(
                f"Failed to create record in module '{module}'",
                response=self.last_response,
                module=module,
            )
        return response["id"]

    def update_record(self, module: str, record_id: str, data: Mapping[str, Any]) -> bool:
        """
        Update a record.

        Returns:
            True only if the server echoes back the id that was sent
        """
        self._ensure_authenticated()

        name_value_list = encode_name_value_list(data)
        name_value_list.append({"name": "id", "value": record_id})

        response = self._request("set_entry", {
            "session": self.session_id,
            "module_name": module,
            "name_value_list": name_value_list,
        }, module=module)

        echoed = response.get("id")
        if echoed != record_id:
            logger.warning(
                f"Update of {module} '{record_id}' was acknowledged for '{echoed}'"
            )
            return False
        return True

    def get_record(
        self,
        module: str,
        record_id: str,
        fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        """
        Fetch one record by id.

        Returns:
            The record, or None if the response carries no entries

        Raises:
            RecordNotFoundError: If the server reports the record as missing
        """
        self._ensure_authenticated()

        try:
            response = self._request("get_entry", {
                "session": self.session_id,
                "module_name": module,
                "id": record_id,
                "select_fields": list(fields or []),
                "link_name_to_fields_array": [],
                "track_view": False,
            }, module=module)
        except AuthenticationError:
            raise
        except ProtocolError as e:
            if "not found" in str(e).lower():
                raise RecordNotFoundError(
                    f"Record '{record_id}' not found in module '{module}'",
                    module=module,
                    record_id=record_id,
                    response=self.last_response,
                ) from e
            raise

        records = parse_entry_list(response.get("entry_list"))
        if not records:
            return None

        record = records[0]
        if str(record.get("deleted", "0")) == "1":
            raise RecordNotFoundError(
                f"Record '{record_id}' not found in module '{module}'",
                module=module,
                record_id=record_id,
                response=self.last_response,
            )
        return record

    def search_records(
        self,
        module: str,
        criteria: Mapping[str, Any] | str | None = None,
        fields: list[str] | None = None,
        limit: int = 20,
        offset: int = 0,
        order_by: str = "",
    ) -> list[dict[str, Any]]:
        """
        Search a module.

        Args:
            module: Module name
            criteria: Field criteria, or an already compiled query string
            fields: Fields to select (all when empty)
            limit: Maximum number of records
            offset: Number of records to skip
            order_by: Optional ORDER BY clause

        Returns:
            Matching records; an empty list when nothing matches
        """
        self._ensure_authenticated()

        response = self._request("get_entry_list", {
            "session": self.session_id,
            "module_name": module,
            "query": build_search_query(criteria),
            "order_by": order_by,
            "offset": offset,
            "select_fields": list(fields or []),
            "link_name_to_fields_array": [],
            "max_results": limit,
            "deleted": 0,
            "favorites": False,
        }, module=module)

        return parse_entry_list(response.get("entry_list"))

    def delete_record(self, module: str, record_id: str) -> bool:
        """Soft-delete a record by setting its deleted flag."""
        self._ensure_authenticated()

        response = self._request("set_entry", {
            "session": self.session_id,
            "module_name": module,
            "name_value_list": [
                {"name": "id", "value": record_id},
                {"name": "deleted", "value": "1"},
            ],
        }, module=module)

        return bool(response.get("id"))

    def count_records(
        self,
        module: str,
        criteria: Mapping[str, Any] | str | None = None,
        include_deleted: bool = False,
    ) -> int:
        """Count records matching the criteria without fetching them."""
        self._ensure_authenticated()

        response = self._request("get_entries_count", {
            "session": self.session_id,
            "module_name": module,
            "query": build_search_query(criteria),
            "deleted": 1 if include_deleted else 0,
        }, module=module)

        try:
            return int(response.get("result_count", 0))
        except (TypeError, ValueError) as e:
            raise ProtocolError(
                f"Invalid record count for module '{module}'",
                response=self.last_response,
                module=module,
            ) from e

    # ===== RELATIONSHIP METHODS =====

    def set_relationship(
        self,
        module: str,
        record_id: str,
        link_field: str,
        related_ids: list[str],
        delete: bool = False,
    ) -> bool:
        """
        Link (or unlink) related records through a link field.

        Returns:
            True if every relationship was applied
        """
        self._ensure_authenticated()

        response = self._request("set_relationship", {
            "session": self.session_id,
            "module_name": module,
            "module_id": record_id,
            "link_field_name": link_field,
            "related_ids": list(related_ids),
            "name_value_list": [],
            "delete": 1 if delete else 0,
        }, module=module)

        changed = response.get("deleted" if delete else "created", 0)
        return bool(changed) and not response.get("failed")

    def get_relationships(
        self,
        module: str,
        record_id: str,
        link_field: str,
        related_fields: list[str] | None = None,
        related_criteria: Mapping[str, Any] | str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Fetch records related through a link field."""
        self._ensure_authenticated()

        response = self._request("get_relationships", {
            "session": self.session_id,
            "module_name": module,
            "module_id": record_id,
            "link_field_name": link_field,
            "related_module_query": build_search_query(related_criteria),
            "related_fields": list(related_fields or ["id"]),
            "related_module_link_name_to_fields_array": [],
            "deleted": 0,
            "order_by": "",
            "offset": offset,
            "limit": limit,
        }, module=module)

        return parse_entry_list(response.get("entry_list"))

    def set_note_attachment(self, note_id: str, filename: str, content: bytes) -> str:
        """
        Upload a file as the attachment of a note.

        Returns:
            The note id echoed by the server
        """
        self._ensure_authenticated()

        response = self._request("set_note_attachment", {
            "session": self.session_id,
            "note": {
                "id": note_id,
                "filename": filename,
                "file": base64.b64encode(content).decode("ascii"),
            },
        }, module="Notes")

        if not response.get("id"):
            raise ProtocolError(
                f"Failed to attach '{filename}' to note '{note_id}'",
                response=self.last_response,
                module="Notes",
            )
        return response["id"]

    def get_module_fields(self, module: str, fields: list[str] | None = None) -> dict[str, Any]:
        """Fetch field definitions for a module."""
        self._ensure_authenticated()

        response = self._request("get_module_fields", {
            "session": self.session_id,
            "module_name": module,
            "fields": list(fields or []),
        }, module=module)

        return response.get("module_fields") or {}

    # ===== DISPATCH =====

    def _request(
        self,
        method: str,
        payload: dict[str, Any],
        module: str | None = None,
    ) -> dict[str, Any]:
        """
        Send one protocol call and decode the envelope.

        Args:
            method: REST method name (e.g. "get_entry")
            payload: rest_data payload; key order is significant
            module: Module name for error context

        Returns:
            Decoded response envelope (empty dict for a null body)

        Raises:
            CRMConnectionError: On transport failure or a non-2xx status
            AuthenticationError: If the server rejects the session or login
            ProtocolError: If the body is not valid JSON or is a fault
        """
        rest_data = json.dumps(payload)
        logger.debug(f"SuiteCRM call: {method}")
        if self.config.debug:
            logger.debug(f"rest_data for {method}: {json.dumps(self._redact(payload))}")

        raw = self.transport.post(self.config.rest_url, {
            "method": method,
            "input_type": "JSON",
            "response_type": "JSON",
            "rest_data": rest_data,
        })
        self.last_response = raw.to_dict()

        if raw.error:
            raise CRMConnectionError(
                f"HTTP request failed: {raw.error}",
                response=self.last_response,
                status_code=raw.status_code or None,
            )
        if not 200 <= raw.status_code < 300:
            raise CRMConnectionError(
                f"HTTP request failed with status {raw.status_code}",
                response=self.last_response,
                status_code=raw.status_code,
            )

        if self.config.debug:
            logger.debug(f"Response for {method}: {raw.body}")

        try:
            envelope = json.loads(raw.body) if raw.body.strip() else None
        except ValueError as e:
            raise ProtocolError(
                f"Invalid JSON response: {e}",
                response=self.last_response,
                module=module,
            ) from e

        if envelope is None:
            return {}
        if not isinstance(envelope, dict):
            raise ProtocolError(
                f"Unexpected response for {method}: {raw.body[:200]}",
                response=self.last_response,
                module=module,
            )

        if _is_fault(envelope):
            self._raise_fault(envelope, module)
        return envelope

    def _raise_fault(self, envelope: dict[str, Any], module: str | None) -> None:
        number = str(envelope.get("number"))
        message = f"{envelope.get('name')}: {envelope.get('description')}"

        if number == str(INVALID_SESSION):
            self.session_id = None
            self.user_id = None
            raise AuthenticationError(
                f"Session rejected by server ({message})",
                response=self.last_response,
                module=module,
            )
        if number == str(INVALID_LOGIN):
            raise AuthenticationError(
                f"Authentication failed: {message}",
                response=self.last_response,
            )
        raise ProtocolError(message, response=self.last_response, module=module)

    @staticmethod
    def _redact(payload: dict[str, Any]) -> dict[str, Any]:
        redacted = dict(payload)
        if "user_auth" in redacted:
            redacted["user_auth"] = {**redacted["user_auth"], "password": "***"}
        if "session" in redacted:
            redacted["session"] = "***"
        return redacted
