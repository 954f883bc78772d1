"""
Media uploads to Cloudinary.

Talks to the Cloudinary upload REST endpoint directly with a shared
``httpx.AsyncClient`` so every upload carries an explicit timeout. Request
signing comes from the Cloudinary SDK.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import cloudinary.utils
import httpx

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


class UploadError(Exception):
    pass


@dataclass
class UploadResult:
    url: str
    public_id: str


class CloudinaryUploader:
    def __init__(
        self,
        client: httpx.AsyncClient,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        timeout: float = 20.0,
    ):
        self.client = client
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout

    def _signature(self, params: dict) -> str:
        return cloudinary.utils.api_sign_request(params, self.api_secret)

    async def upload(
        self,
        data: bytes,
        filename: str,
        folder: str,
        public_id: Optional[str] = None,
    ) -> UploadResult:
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise UploadError("Media uploads are not configured")

        params = {"folder": folder, "timestamp": int(time.time())}
        if public_id:
            params["public_id"] = public_id

        form = {
            **{key: str(value) for key, value in params.items()},
            "api_key": self.api_key,
            "signature": self._signature(params),
        }
        url = f"{CLOUDINARY_API_BASE}/{self.cloud_name}/auto/upload"

        try:
            response = await self.client.post(
                url,
                data=form,
                files={"file": (filename, data)},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise UploadError(f"Upload request failed: {e}") from e

        if response.status_code != 200:
            raise UploadError(
                f"Upload rejected with status {response.status_code}: {response.text}"
            )

        body = response.json()
        logger.info(f"Uploaded {filename} to {body.get('secure_url')}")
        return UploadResult(url=body["secure_url"], public_id=body["public_id"])

    async def close(self):
        await self.client.aclose()
