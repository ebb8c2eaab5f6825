"""
Telegram Bot API Client

Thin async wrapper over the Bot API methods the simulator needs:
messages, document upload/edit, pinning and file download.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

from typing import Any, Dict, Optional

import httpx

from app.shared.exceptions import TelegramAPIError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class TelegramBotClient:
    """
    Telegram Bot API client.

    Every call returns the `result` field of the API response and raises
    TelegramAPIError on `ok: false`, transport errors and unreadable bodies.

    Usage:
        async with TelegramBotClient(bot_token) as bot:
            await bot.send_message("-100123", "<b>hello</b>")
            chat = await bot.call("getChat", {"chat_id": "-100123"})
    """

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Telegram client.

        Args:
            bot_token: Bot token from @BotFather
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests inject one with a MockTransport)
        """
        self.bot_token = bot_token
        self.timeout = timeout
        self._client = client

    @property
    def api_base(self) -> str:
        return f"{self.BASE_URL}/bot{self.bot_token}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _unwrap(self, method: str, response: httpx.Response) -> Any:
        try:
            payload = response.json()
        except ValueError:
            raise TelegramAPIError(method, f"invalid JSON response (HTTP {response.status_code})")

        if not payload.get("ok"):
            raise TelegramAPIError(
                method,
                payload.get("description", "unknown error"),
                payload.get("error_code")
            )
        return payload.get("result")

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call a Bot API method with a JSON body.

        Args:
            method: Bot API method name (e.g. "getChat")
            params: Method parameters

        Returns:
            The `result` field of the response
        """
        client = await self._get_client()
        try:
            response = await client.post(f"{self.api_base}/{method}", json=params or {})
        except httpx.HTTPError as e:
            raise TelegramAPIError(method, f"request failed: {str(e)}")
        return self._unwrap(method, response)

    async def call_form(
        self,
        method: str,
        data: Dict[str, Any],
        files: Dict[str, Any]
    ) -> Any:
        """Call a Bot API method with a multipart body (file uploads)."""
        client = await self._get_client()
        try:
            response = await client.post(f"{self.api_base}/{method}", data=data, files=files)
        except httpx.HTTPError as e:
            raise TelegramAPIError(method, f"request failed: {str(e)}")
        return self._unwrap(method, response)

    async def download_file(self, file_id: str) -> bytes:
        """Resolve a file_id and download its content."""
        file_info = await self.call("getFile", {"file_id": file_id})
        file_path = file_info.get("file_path") if file_info else None
        if not file_path:
            raise TelegramAPIError("getFile", f"no file_path for {file_id}")

        client = await self._get_client()
        try:
            response = await client.get(f"{self.BASE_URL}/file/bot{self.bot_token}/{file_path}")
        except httpx.HTTPError as e:
            raise TelegramAPIError("downloadFile", f"request failed: {str(e)}")

        if response.status_code != 200:
            raise TelegramAPIError("downloadFile", f"HTTP {response.status_code}", response.status_code)
        return response.content

    async def send_message(
        self,
        chat_id: str,
        text: str,
        parse_mode: Optional[str] = "HTML",
        disable_web_page_preview: bool = True
    ) -> Any:
        """Send a text message."""
        params: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": disable_web_page_preview,
        }
        if parse_mode:
            params["parse_mode"] = parse_mode
        return await self.call("sendMessage", params)
