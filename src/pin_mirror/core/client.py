import json
import logging
import threading
from typing import Any

import requests
from pydantic import BaseModel, ValidationError

from ..config import Config
from ..errors import MalformedResponse, RateLimitExceeded, RemoteError
from ..sync.models import Group, RemoteRecord
from .retry import RetryPolicy
from .schemas import (
    ApiErrorBody,
    AuthResponse,
    GroupList,
    GroupRow,
    PinFileResponse,
    PinListResponse,
)

logger = logging.getLogger(__name__)

# keyvalue that marks a pin as managed by pin-mirror
MANAGED_KEY = "localfolder"
PATH_KEY = "localfile"


class PinataClient:
    def __init__(
        self, config: Config, retry_policy: RetryPolicy | None = None
    ):
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy.fixed(
            config.max_retries, config.retry_delay
        )
        self._thread_local = threading.local()
        self.base_url = config.api_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """Session bound to the calling thread."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["Authorization"] = f"Bearer {self.config.pinata_jwt}"
        return session

    def _request(
        self, method: str, path: str, **kwargs: Any
    ) -> requests.Response:
        """
        Send a request, retrying on HTTP 429 according to the retry policy.

        Raises:
            RateLimitExceeded: If every attempt was rate limited.
            RemoteError: For any other non-2xx response or transport failure.
        """
        url = f"{self.base_url}{path}"
        logger.debug("FETCH: %s %s", method, url)

        response = self.retry_policy.retrying()(
            self._send, method, url, path, **kwargs
        )
        if not response.ok:
            raise RemoteError(
                f"{method} {path} failed: {self._error_detail(response)}",
                status_code=response.status_code,
            )
        return response

    def _send(
        self, method: str, url: str, path: str, **kwargs: Any
    ) -> requests.Response:
        try:
            response = self._get_session().request(
                method, url, timeout=(10, 120), **kwargs
            )
        except requests.RequestException as exc:
            raise RemoteError(f"{method} {path} failed: {exc}") from exc
        if response.status_code == 429:
            raise RateLimitExceeded(
                f"{method} {path}: rate limited", status_code=429
            )
        return response

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            body = ApiErrorBody.model_validate(response.json())
        except (ValueError, ValidationError):
            return response.text.strip() or response.reason or "unknown error"
        return body.describe() or response.reason or "unknown error"

    @staticmethod
    def _parse(response: requests.Response, schema: Any) -> Any:
        """Validate a JSON body against a pydantic model or TypeAdapter."""
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponse(
                f"Response is not JSON: {exc}",
                status_code=response.status_code,
            ) from exc
        try:
            if isinstance(schema, type) and issubclass(schema, BaseModel):
                return schema.model_validate(payload)
            return schema.validate_python(payload)
        except ValidationError as exc:
            raise MalformedResponse(
                f"Unexpected response shape: {exc.error_count()} error(s)",
                status_code=response.status_code,
            ) from exc

    def test_authentication(self) -> str:
        """
        Validate the JWT against the API.
        Returns the server's greeting message if successful.
        """
        response = self._request("GET", "/data/testAuthentication")
        return self._parse(response, AuthResponse).message

    def list_pins(
        self, group_id: str | None = None, local_folder: str | None = None
    ) -> list[RemoteRecord]:
        """
        List every pinned item managed by pin-mirror, following pagination.

        Paging continues while a page comes back full (exactly
        ``page_limit`` rows) and stops at the first short page.

        Args:
            group_id: Restrict the listing to one group. ``None`` lists
                all pins of the account.
            local_folder: Keep only pins whose ``localfolder`` keyvalue
                equals this value. ``None`` keeps every managed pin.

        Returns:
            Records for pins carrying the ``localfolder`` keyvalue.
        """
        page_limit = self.config.page_limit
        offset = 0
        rows = []

        while True:
            params: dict[str, Any] = {
                "status": "pinned",
                "pageLimit": page_limit,
                "pageOffset": offset,
            }
            if group_id:
                params["groupId"] = group_id
            response = self._request("GET", "/data/pinList", params=params)
            page = self._parse(response, PinListResponse)
            rows.extend(page.rows)
            if len(page.rows) != page_limit:
                break
            offset += page_limit

        records: list[RemoteRecord] = []
        for row in rows:
            keyvalues = row.metadata.keyvalues or {}
            owner = keyvalues.get(MANAGED_KEY)
            if not owner:
                continue
            if local_folder is not None and str(owner) != local_folder:
                continue
            relative_path = keyvalues.get(PATH_KEY) or row.metadata.name
            if not relative_path:
                logger.warning(
                    "Pin %s has no recorded path, ignoring", row.ipfs_pin_hash
                )
                continue
            records.append(
                RemoteRecord(
                    relative_path=str(relative_path),
                    content_hash=row.ipfs_pin_hash,
                    remote_id=row.ipfs_pin_hash,
                    group_id=group_id,
                )
            )
        logger.debug(
            "Listed %d managed pins (%d rows) in scope %s",
            len(records),
            len(rows),
            group_id or "<all>",
        )
        return records

    def pin_file(
        self,
        relative_path: str,
        content: bytes,
        metadata: dict[str, Any],
        group_id: str | None = None,
    ) -> str:
        """
        Upload and pin one file.

        Args:
            relative_path: Root-relative path; its basename is the upload
                file name.
            content: File bytes.
            metadata: ``pinataMetadata`` envelope (name and keyvalues).
            group_id: Group to place the pin in, if any.

        Returns:
            CID assigned by the pinning service.
        """
        logger.info("Uploading file: %s", relative_path)
        file_name = relative_path.rsplit("/", 1)[-1]
        options: dict[str, Any] = {"cidVersion": 0}
        if group_id:
            options["groupId"] = group_id

        response = self._request(
            "POST",
            "/pinning/pinFileToIPFS",
            files={"file": (file_name, content)},
            data={
                "pinataOptions": json.dumps(options),
                "pinataMetadata": json.dumps(metadata),
            },
        )
        return self._parse(response, PinFileResponse).IpfsHash

    def unpin(self, cid: str) -> bool:
        """
        Remove a pin.

        Returns:
            True when the service acknowledged the unpin with ``OK``.
        """
        logger.info("Unpinning %s", cid)
        response = self._request("DELETE", f"/pinning/unpin/{cid}")
        return response.text.strip() == "OK"

    def list_groups(self) -> list[Group]:
        """
        List every group of the account.
        """
        response = self._request("GET", "/groups")
        rows: list[GroupRow] = self._parse(response, GroupList)
        return [Group(name=row.name, remote_group_id=row.id) for row in rows]

    def create_group(self, name: str) -> str:
        """
        Create a group.

        Args:
            name: Group name (a local top-level folder name).

        Returns:
            Identifier of the new group.

        Raises:
            ValueError: If name is empty.
        """
        if not name or not name.strip():
            raise ValueError("Group name is required and cannot be empty")
        logger.info("Creating group: %s", name)
        response = self._request("POST", "/groups", json={"name": name})
        return self._parse(response, GroupRow).id
