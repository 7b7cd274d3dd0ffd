"""Remote image hosting via the Cloudinary REST API.

Browsers upload straight to Cloudinary with credentials signed here; this
module only signs uploads and deletes assets.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Final, Protocol

import cloudinary.utils
import httpx

from estate_listings.errors import RemoteAssetError
from estate_listings.logging import get_logger
from estate_listings.models import UploadCredentials

if TYPE_CHECKING:
    from estate_listings.config import Settings

logger = get_logger(__name__)

_API_BASE_URL: Final = "https://api.cloudinary.com/v1_1"
_DEFAULT_TIMEOUT: Final = 10.0

# Destroy results that leave no asset behind
_DELETED_RESULTS: Final = frozenset({"ok", "not found"})


class AssetGateway(Protocol):
    """What the listing service needs from an image host."""

    def request_upload_credentials(self) -> UploadCredentials: ...

    async def delete_asset(self, public_id: str) -> None: ...


class CloudinaryGateway:
    """Signs uploads and deletes images in a Cloudinary account."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        *,
        folder: str = "listings",
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self.folder = folder
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> CloudinaryGateway:
        return cls(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret.get_secret_value(),
            folder=settings.cloudinary_folder,
            timeout=settings.cloudinary_timeout_seconds,
            client=client,
        )

    def _sign(self, params: dict[str, str | int]) -> str:
        if not self._api_secret:
            raise RemoteAssetError("Cloudinary API secret is not configured")
        signature: str = cloudinary.utils.api_sign_request(params, self._api_secret)
        return signature

    def request_upload_credentials(self) -> UploadCredentials:
        """Sign a direct-upload request into the listings folder."""
        timestamp = int(time.time())
        signature = self._sign({"timestamp": timestamp, "folder": self.folder})
        return UploadCredentials(
            timestamp=timestamp,
            signature=signature,
            folder=self.folder,
            api_key=self.api_key,
            cloud_name=self.cloud_name,
        )

    async def delete_asset(self, public_id: str) -> None:
        """Delete an image by public id.

        An asset that is already gone counts as deleted.

        Raises:
            RemoteAssetError: On transport errors, non-2xx responses or an
                unexpected destroy result.
        """
        if self._client is not None:
            await self._delete_with_client(self._client, public_id)
            return

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            await self._delete_with_client(client, public_id)

    async def _delete_with_client(self, client: httpx.AsyncClient, public_id: str) -> None:
        timestamp = int(time.time())
        form = {
            "public_id": public_id,
            "timestamp": str(timestamp),
            "api_key": self.api_key,
            "signature": self._sign({"public_id": public_id, "timestamp": timestamp}),
        }
        url = f"{_API_BASE_URL}/{self.cloud_name}/image/destroy"
        try:
            resp = await client.post(url, data=form)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as e:
            logger.error("remote_asset_delete_failed", public_id=public_id, error=str(e))
            raise RemoteAssetError(f"Failed to delete asset {public_id!r}: {e}") from e
        except ValueError as e:
            logger.error("remote_asset_delete_bad_response", public_id=public_id)
            raise RemoteAssetError(f"Unreadable destroy response for {public_id!r}") from e

        result = payload.get("result") if isinstance(payload, dict) else None
        if result not in _DELETED_RESULTS:
            logger.error("remote_asset_delete_rejected", public_id=public_id, result=result)
            raise RemoteAssetError(f"Asset {public_id!r} was not deleted: {result}")

        logger.info("remote_asset_deleted", public_id=public_id, result=result)
