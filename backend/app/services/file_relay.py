import logging

import httpx

from ..schemas.applications import Attachment, RelayResult

logger = logging.getLogger(__name__)

INTERNAL_BASE_URL = "http://internal"
UPLOAD_PATH = "/api/upload"
FAILED_ATTACHMENT_MESSAGE = "Attachment could not be stored"


class FileRelayError(RuntimeError):
    pass


def _safe_truncate(s: str, n: int = 300) -> str:
    s = s or ""
    if len(s) <= n:
        return s
    return s[:n] + "…"


class FileRelay:
    """
    Forwards validated attachments to the upload endpoint, one request per file.

    With `base_url` empty the relay talks to `asgi_app` in-process over
    httpx.ASGITransport; otherwise it calls the remote upload service.
    Failures are reported per attachment in the RelayResult, never raised.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        asgi_app=None,
        token: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url and asgi_app is None and transport is None:
            raise ValueError("FileRelay needs a base_url, an asgi_app or a transport")
        self.base_url = base_url or INTERNAL_BASE_URL
        self.asgi_app = asgi_app
        self.token = token
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        transport = self._transport
        if transport is None and self.asgi_app is not None and self.base_url == INTERNAL_BASE_URL:
            transport = httpx.ASGITransport(app=self.asgi_app, raise_app_exceptions=False)
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_s, transport=transport)

    async def _send_one(
        self,
        client: httpx.AsyncClient,
        *,
        application_id: int,
        attachment: Attachment,
        authorization: str | None,
    ) -> dict:
        headers = {}
        if self.token:
            headers["X-Internal-Token"] = self.token
        if authorization:
            headers["Authorization"] = authorization

        r = await client.post(
            UPLOAD_PATH,
            params={"applicationId": str(application_id)},
            files={attachment.field: (attachment.filename, attachment.data, attachment.content_type)},
            headers=headers,
        )
        if r.status_code >= 400:
            raise FileRelayError(f"upload returned {r.status_code}: {_safe_truncate(r.text)}")

        stored = ((r.json() or {}).get("files") or {}).get(attachment.field)
        if not stored:
            raise FileRelayError("upload response did not include the stored file")
        return stored

    async def relay(
        self,
        application_id: int,
        attachments: list[Attachment],
        *,
        authorization: str | None = None,
    ) -> RelayResult:
        result = RelayResult()
        if not attachments:
            return result

        async with self._client() as client:
            for attachment in attachments:
                try:
                    result.stored[attachment.field] = await self._send_one(
                        client,
                        application_id=application_id,
                        attachment=attachment,
                        authorization=authorization,
                    )
                except (httpx.HTTPError, FileRelayError, ValueError) as e:
                    logger.error(
                        f"Relay of {attachment.field} for application {application_id} failed: {e}"
                    )
                    result.failed[attachment.field] = FAILED_ATTACHMENT_MESSAGE
        return result
