# backend/integrations/slack_client.py
# Slack Web API 클라이언트

from typing import Any, Dict, List, Optional

import httpx

from core.errors import SlackAPIError


class SlackClient:
    """Slack Web API 클라이언트 (봇 토큰)"""

    BASE_URL = "https://slack.com/api"

    def __init__(
        self,
        bot_token: str,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.bot_token = bot_token
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=30.0)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.bot_token}"}

    async def _call(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        API 메서드 호출

        읽기 메서드는 GET + query, 쓰기 메서드는 POST + JSON
        """
        url = f"{self.base_url}/{method}"
        if json is not None:
            response = await self.http_client.post(url, headers=self._headers(), json=json)
        else:
            response = await self.http_client.get(url, headers=self._headers(), params=params)

        response.raise_for_status()
        data = response.json()

        if not data.get("ok"):
            raise SlackAPIError(method, data.get("error", "unknown_error"))

        return data

    async def auth_test(self) -> Dict[str, Any]:
        return await self._call("auth.test", json={})

    async def conversations_info(self, channel: str) -> Dict[str, Any]:
        data = await self._call("conversations.info", params={"channel": channel})
        return data.get("channel", {})

    async def conversations_list(self, types: str = "public_channel,private_channel") -> List[Dict[str, Any]]:
        data = await self._call("conversations.list", params={"types": types, "limit": 1000})
        return data.get("channels", [])

    async def users_info(self, user: str) -> Dict[str, Any]:
        data = await self._call("users.info", params={"user": user})
        return data.get("user", {})

    async def users_list(self) -> List[Dict[str, Any]]:
        data = await self._call("users.list", params={"limit": 1000})
        return data.get("members", [])

    async def post_message(
        self,
        channel: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """메시지 전송"""
        payload: Dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            payload["blocks"] = blocks
        return await self._call("chat.postMessage", json=payload)

    async def close(self):
        await self.http_client.aclose()
